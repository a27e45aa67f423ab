"""Save-time reconciliation planning.

Pure functions that decide what a draft save has to write. Keeping the plan
separate from the writes lets the planner be tested without a backend and
lets the draft apply the plan in a fixed order: form, upserts, tombstones.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

from formflow.logic.errors import ValidationError
from formflow.models.question import Question


@dataclass(frozen=True)
class SyncPlan:
    to_upsert: Tuple[Question, ...]
    # persisted but no longer in the draft
    to_delete: Tuple[str, ...]
    # in the draft but not yet persisted
    created: Tuple[str, ...]


def plan_question_sync(persisted_ids: Iterable[str], questions: Sequence[Question]) -> SyncPlan:
    """Compute the upsert set and the tombstone sweep for a draft save."""
    draft_ids = [q.id for q in questions]
    if len(set(draft_ids)) != len(draft_ids):
        dupes = sorted({i for i in draft_ids if draft_ids.count(i) > 1})
        raise ValidationError(f"duplicate question ids in draft: {dupes}")
    persisted = {str(i) for i in persisted_ids}
    current = set(draft_ids)
    return SyncPlan(
        to_upsert=tuple(questions),
        to_delete=tuple(sorted(persisted - current)),
        created=tuple(i for i in draft_ids if i not in persisted),
    )


def dense_order_numbers(questions: Sequence[Question]) -> bool:
    """True when order numbers are exactly 0..n-1 in list order."""
    return [q.order_number for q in questions] == list(range(len(questions)))


__all__ = ["SyncPlan", "plan_question_sync", "dense_order_numbers"]
