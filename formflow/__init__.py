"""FastAPI application package for formflow, a form builder and respondent service.

This package exposes the application factory. It wires cross-cutting
middleware (request-id, CORS), problem+json error handlers and mounts the API
routers. Business logic lives in `formflow/logic/` and route handlers in
`formflow/routes/`.
"""

from __future__ import annotations

from formflow.main import create_app

__all__ = ["create_app"]
