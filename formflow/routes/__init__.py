"""APIRouter registration for formflow."""

from __future__ import annotations

from fastapi import APIRouter

from formflow.routes.forms import router as forms_router
from formflow.routes.public import router as public_router
from formflow.routes.responses import router as responses_router
from formflow.routes.sessions import router as sessions_router

api_router = APIRouter()
api_router.include_router(forms_router, tags=["Forms", "Publication"])
api_router.include_router(responses_router, tags=["Responses", "Export"])
api_router.include_router(public_router, tags=["Respondent"])
api_router.include_router(sessions_router, tags=["Respondent"])

__all__ = ["api_router"]
