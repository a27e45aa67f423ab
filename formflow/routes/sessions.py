"""Step-wise respondent session routes.

A session is created through ``POST /f/{token}/sessions`` and then driven one
question at a time. Every route returns the session snapshot.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from formflow.logic.session_registry import SessionRegistry
from formflow.models.payloads import AnswerPayload
from formflow.routes.deps import get_sessions

router = APIRouter()


@router.get("/sessions/{session_id}", summary="Session snapshot")
def get_session(session_id: str, sessions: SessionRegistry = Depends(get_sessions)) -> Dict[str, Any]:
    return sessions.get(session_id).snapshot()


@router.delete("/sessions/{session_id}", summary="Discard a session", status_code=204)
def discard_session(session_id: str, sessions: SessionRegistry = Depends(get_sessions)) -> Response:
    sessions.get(session_id)
    sessions.discard(session_id)
    return Response(status_code=204)


@router.put("/sessions/{session_id}/answers/{question_id}", summary="Record an answer")
def put_answer(
    session_id: str,
    question_id: str,
    payload: AnswerPayload,
    sessions: SessionRegistry = Depends(get_sessions),
) -> Dict[str, Any]:
    session = sessions.get(session_id)
    session.set_answer(question_id, payload.value)
    return session.snapshot()


@router.post("/sessions/{session_id}/next", summary="Advance, or submit on the last step")
def next_step(session_id: str, sessions: SessionRegistry = Depends(get_sessions)) -> Dict[str, Any]:
    session = sessions.get(session_id)
    session.next()
    return session.snapshot()


@router.post("/sessions/{session_id}/previous", summary="Go back one step")
def previous_step(session_id: str, sessions: SessionRegistry = Depends(get_sessions)) -> Dict[str, Any]:
    session = sessions.get(session_id)
    session.previous()
    return session.snapshot()


@router.post("/sessions/{session_id}/reset", summary="Start another response")
def reset_session(session_id: str, sessions: SessionRegistry = Depends(get_sessions)) -> Dict[str, Any]:
    session = sessions.get(session_id)
    session.reset()
    return session.snapshot()


__all__ = ["router"]
