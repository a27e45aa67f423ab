"""Form catalogue: listing, deletion and the responses view loader.

Encapsulates the multi-collection reads and writes used by the dashboard
and responses routes, keeping the HTTP layer free of gateway calls.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, List, Tuple

from formflow.logic.errors import NotFoundError, StorageError
from formflow.logic.events import FORM_DELETED, publish
from formflow.logic.storage_gateway import StorageGateway
from formflow.models.form import Form
from formflow.models.question import Question
from formflow.models.response import Response

logger = logging.getLogger(__name__)


def get_form(gateway: StorageGateway, form_id: str) -> Form:
    rows = gateway.select("forms", {"id": form_id})
    if not rows:
        raise NotFoundError(f"form {form_id} not found")
    return Form.model_validate(rows[0])


def list_forms(gateway: StorageGateway) -> List[Dict[str, Any]]:
    """Forms, most recently updated first, with question and response counts."""
    forms = [Form.model_validate(r) for r in gateway.select("forms", order="-updated_at")]
    if not forms:
        return []
    ids = [f.id for f in forms]
    question_counts = Counter(r["form_id"] for r in gateway.select("questions", {"form_id": ids}))
    response_counts = Counter(r["form_id"] for r in gateway.select("responses", {"form_id": ids}))
    return [
        {
            **f.model_dump(),
            "question_count": question_counts.get(f.id, 0),
            "response_count": response_counts.get(f.id, 0),
        }
        for f in forms
    ]


def delete_form(gateway: StorageGateway, form_id: str) -> None:
    """Delete a form with its responses and questions.

    Children go first so a failure part-way never leaves orphans pointing at
    a missing form; the sequence is still not atomic.
    """
    get_form(gateway, form_id)
    try:
        responses = gateway.delete("responses", {"form_id": form_id})
        questions = gateway.delete("questions", {"form_id": form_id})
        gateway.delete("forms", {"id": form_id})
    except StorageError:
        logger.error("catalogue.delete_form.failed form_id=%s", form_id, exc_info=True)
        raise
    logger.info(
        "catalogue.delete_form form_id=%s responses=%s questions=%s",
        form_id,
        responses,
        questions,
    )
    publish(FORM_DELETED, {"form_id": form_id})


def load_form_responses(gateway: StorageGateway, form_id: str) -> Tuple[Form, List[Question], List[Response]]:
    """Single read feeding both the table view and the CSV export."""
    form = get_form(gateway, form_id)
    questions = [
        Question.model_validate(r)
        for r in gateway.select("questions", {"form_id": form_id}, order="order_number")
    ]
    responses = [
        Response.model_validate(r)
        for r in gateway.select("responses", {"form_id": form_id}, order="-created_at")
    ]
    return form, questions, responses


__all__ = ["get_form", "list_forms", "delete_form", "load_form_responses"]
