"""Request-scoped accessors for objects held on ``app.state``."""

from __future__ import annotations

from functools import partial
from typing import Any, Dict

from fastapi import Request

from formflow.config import AppConfig
from formflow.logic.public_tokens import generate_public_token
from formflow.logic.session_registry import SessionRegistry
from formflow.logic.storage_gateway import StorageGateway


def get_gateway(request: Request) -> StorageGateway:
    return request.app.state.gateway


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_sessions(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def draft_options(request: Request) -> Dict[str, Any]:
    """Keyword options for FormDraft built from the app configuration."""
    cfg = get_config(request)
    return {"token_factory": partial(generate_public_token, cfg.publish.token_length)}


__all__ = ["get_gateway", "get_config", "get_sessions", "draft_options"]
