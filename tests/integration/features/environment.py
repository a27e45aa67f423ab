"""Behave environment hooks for formflow integration scenarios.

Loads variables from ``.env`` and ``tests/integration/.env.test`` without
overriding the real environment, then picks a transport:

- mock mode (``TEST_MOCK_MODE`` truthy, or no ``TEST_BASE_URL``): the app is
  built in-process over the in-memory gateway and driven by FastAPI's
  TestClient;
- live mode: an ``httpx.Client`` against ``TEST_BASE_URL``. The server under
  test must be started with test support routes enabled.

Each scenario starts from a clean event buffer and session registry via
``POST /__test__/reset-state``.
"""

from __future__ import annotations

import os
from typing import Any

import httpx
from dotenv import load_dotenv


def _truthy(value: str | None) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


def before_all(context: Any) -> None:
    load_dotenv(override=False)
    load_dotenv(dotenv_path=os.path.join("tests", "integration", ".env.test"), override=False)

    context.api_prefix = os.getenv("TEST_API_PREFIX", "/api/v1")
    base_url = os.getenv("TEST_BASE_URL", "").rstrip("/")
    context.test_mock_mode = _truthy(os.getenv("TEST_MOCK_MODE")) or not base_url

    if context.test_mock_mode:
        from fastapi.testclient import TestClient

        from formflow.config import load_config
        from formflow.logic.storage_inmemory import InMemoryStorageGateway
        from formflow.main import create_app

        cfg = load_config()
        context.app_gateway = InMemoryStorageGateway()
        context.client = TestClient(create_app(gateway=context.app_gateway, config=cfg, test_support=True))
        print("[env] mock mode: in-process app over the in-memory gateway")
    else:
        context.client = httpx.Client(base_url=base_url, timeout=10.0)
        health = context.client.get("/health")
        assert health.status_code == 200, f"API at {base_url} is not healthy: {health.status_code}"
        print(f"[env] live mode: {base_url}")


def before_scenario(context: Any, scenario: Any) -> None:
    resp = context.client.post("/__test__/reset-state")
    assert resp.status_code == 204, f"reset-state failed: {resp.status_code}"
    context.vars = {}
    context.last_response = None


def after_all(context: Any) -> None:
    client = getattr(context, "client", None)
    if client is not None:
        client.close()
