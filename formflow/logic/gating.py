"""Gating verdict computation.

Computes a verdict with the shape `{ ok: bool, blocking_items: [] }` over an
ordered question list and an answer map. The respondent flow uses it as the
authoritative check before a submission is written.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence
import logging

from formflow.logic.validation import blocks_advance
from formflow.models.question import Question

logger = logging.getLogger(__name__)


def evaluate_gating(questions: Sequence[Question], answers: Mapping[str, Any]) -> Dict[str, Any]:
    """Return blocking items for required questions without an answer.

    Items keep question order so the first item is the step a respondent
    should be sent back to.
    """
    items: List[Dict[str, Any]] = [
        {"question_id": q.id, "step": step, "reason": "missing_required_answer"}
        for step, q in enumerate(questions)
        if blocks_advance(q, answers)
    ]
    ok = len(items) == 0
    logger.info(
        "gating_verdict ok=%s missing=%s total_required=%s",
        ok,
        [i["question_id"] for i in items],
        sum(1 for q in questions if q.required),
    )
    return {"ok": ok, "blocking_items": items}


__all__ = ["evaluate_gating"]
