from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

from formflow.config import AppConfig, load_config
from formflow.db.base import get_engine
from formflow.db.migrations_runner import apply_migrations
from formflow.http.problem import (
    handle_formflow_error,
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
)
from formflow.http.request_id import RequestIdMiddleware
from formflow.logging_setup import configure_logging
from formflow.logic.errors import FormflowError
from formflow.logic.session_registry import SessionRegistry
from formflow.logic.storage_gateway import SqlStorageGateway, StorageGateway
from formflow.logic.storage_inmemory import InMemoryStorageGateway
from formflow.middleware.cors import apply_cors
from formflow.routes import api_router

logger = logging.getLogger(__name__)


def build_gateway(cfg: AppConfig) -> StorageGateway:
    """Construct the configured storage backend.

    For the SQL backend the packaged migrations are applied here, before the
    first request, when ``database.auto_apply_migrations`` is enabled.
    """
    if cfg.storage.backend == "memory":
        logger.info("storage_backend=memory")
        return InMemoryStorageGateway()
    engine = get_engine(cfg.database.dsn)
    if cfg.database.auto_apply_migrations:
        try:
            applied = apply_migrations(engine)
        except Exception:
            logger.error("Failed to apply migrations at startup", exc_info=True)
            raise
        logger.info("startup_migrations_applied count=%s", len(applied))
    else:
        logger.info("AUTO_APPLY_MIGRATIONS disabled; skipping migrations at startup")
    return SqlStorageGateway(engine)


def create_app(
    gateway: Optional[StorageGateway] = None,
    config: Optional[AppConfig] = None,
    *,
    test_support: bool = False,
) -> FastAPI:
    configure_logging()
    cfg = config or load_config()
    app = FastAPI(title="formflow")
    app.state.config = cfg
    app.state.gateway = gateway or build_gateway(cfg)
    app.state.sessions = SessionRegistry()

    app.add_exception_handler(FormflowError, handle_formflow_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.add_middleware(RequestIdMiddleware)
    apply_cors(app)

    app.include_router(api_router, prefix="/api/v1")
    if test_support:
        from formflow.routes.test_support import router as test_support_router

        app.include_router(test_support_router)

    @app.get("/health")
    def health():
        if not app.state.gateway.ping():
            return {"status": "degraded", "storage": False}
        return {"status": "ok", "storage": True}

    return app


# Intentionally do not instantiate the app at import time to prevent side effects.
