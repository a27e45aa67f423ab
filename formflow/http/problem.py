"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and handler callables that render domain
errors and framework errors as application/problem+json responses:

- NotFoundError       -> 404
- ValidationError     -> 422 (AnswerRequiredError adds question_id and step)
- FlowStateError      -> 409
- StorageError        -> 503 (the caller keeps its edits and may retry)
- request validation  -> 422
- anything else       -> 500, logged with traceback
"""

from __future__ import annotations

from typing import Any, Dict
import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from formflow.logic.errors import (
    AnswerRequiredError,
    FlowStateError,
    FormflowError,
    NotFoundError,
    StorageError,
    ValidationError,
)

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)

# Checked in order; subclasses before their bases
_STATUS_BY_ERROR: list[tuple[type[FormflowError], int, str]] = [
    (NotFoundError, 404, "Not Found"),
    (AnswerRequiredError, 422, "Answer Required"),
    (ValidationError, 422, "Unprocessable Entity"),
    (FlowStateError, 409, "Conflict"),
    (StorageError, 503, "Storage Unavailable"),
]


def problem(status: int, title: str, detail: str = "", code: str | None = None, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"type": "about:blank", "title": title, "status": status, "detail": detail}
    if code:
        body["code"] = code
    body.update(extra)
    return body


def problem_response(body: Dict[str, Any], headers: Dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(body, status_code=int(body["status"]), media_type=PROBLEM_MEDIA_TYPE, headers=headers)


def problem_for_error(exc: FormflowError) -> Dict[str, Any]:
    for cls, status, title in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            break
    else:
        status, title = 500, "Internal Server Error"
    extra: Dict[str, Any] = {}
    if isinstance(exc, AnswerRequiredError):
        extra = {"question_id": exc.question_id, "step": exc.step}
    return problem(status, title, str(exc), exc.code, **extra)


async def handle_formflow_error(request: Request, exc: FormflowError) -> JSONResponse:  # noqa: D401
    body = problem_for_error(exc)
    if body["status"] >= 500:
        logger.error("domain_error path=%s code=%s detail=%s", request.url.path, exc.code, exc)
    else:
        logger.info("domain_error path=%s code=%s status=%s", request.url.path, exc.code, body["status"])
    return problem_response(body)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status = int(getattr(exc, "status_code", 500) or 500)
    if isinstance(exc.detail, dict):
        body = {"status": status, **exc.detail}
    else:
        body = problem(status, "Error", str(exc.detail or ""))
    headers = {str(k): str(v) for k, v in (exc.headers or {}).items()}
    return problem_response(body, headers or None)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    body = problem(
        422,
        "Invalid Request",
        "Request validation failed",
        "REQUEST_INVALID",
        errors=[
            {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
            for e in exc.errors()
        ],
    )
    return problem_response(body)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return problem_response(problem(500, "Internal Server Error"))


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem",
    "problem_response",
    "problem_for_error",
    "handle_formflow_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
