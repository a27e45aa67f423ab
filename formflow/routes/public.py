"""Public respondent routes addressed by a form's public token."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from formflow.logic.respondent_flow import RespondentSession
from formflow.logic.session_registry import SessionRegistry
from formflow.logic.storage_gateway import StorageGateway
from formflow.models.payloads import SubmissionPayload
from formflow.routes.deps import get_gateway, get_sessions

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/f/{token}", summary="Public view of a published form")
def get_public_form(token: str, gateway: StorageGateway = Depends(get_gateway)) -> Dict[str, Any]:
    session = RespondentSession(gateway).load(token)
    return {
        "form": {
            "id": session.form.id,
            "title": session.form.title,
            "description": session.form.description,
        },
        "questions": [q.model_dump(exclude={"created_at", "updated_at"}) for q in session.questions],
    }


@router.post("/f/{token}/sessions", summary="Start a respondent session", status_code=201)
def start_session(
    token: str,
    gateway: StorageGateway = Depends(get_gateway),
    sessions: SessionRegistry = Depends(get_sessions),
) -> JSONResponse:
    session = sessions.add(RespondentSession(gateway).load(token))
    return JSONResponse(
        session.snapshot(),
        status_code=201,
        headers={"Location": f"/api/v1/sessions/{session.session_id}"},
    )


@router.post("/f/{token}/responses", summary="Submit all answers at once", status_code=201)
def submit_responses(
    token: str,
    payload: SubmissionPayload,
    gateway: StorageGateway = Depends(get_gateway),
) -> Dict[str, Any]:
    """One-shot submission; runs the same full-form gate as the stepper."""
    session = RespondentSession(gateway).load(token)
    known = {q.id for q in session.questions}
    for question_id, value in payload.answers.items():
        if question_id in known:
            session.set_answer(question_id, value)
        else:
            logger.info("public.submit.unknown_question token=%s question_id=%s", token, question_id)
    response = session.submit()
    return {"response": response.model_dump(), "state": session.state.value}


__all__ = ["router"]
