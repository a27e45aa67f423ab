"""Respondent flow: step-wise traversal of a published form.

A ``RespondentSession`` walks one respondent through a form's questions one
at a time. Two independent gates protect submission:

- the per-step gate in ``next()`` refuses to advance past a required
  question without an answer;
- the full-form gate in ``submit()`` re-checks every required question, and
  on failure moves the session to the first offending question.

Both gates share ``blocks_advance`` from ``formflow.logic.validation``.

States: loading -> in_progress(step) -> submitting -> submitted, with
not_found as the terminal state of a failed load.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Callable, Dict, List, Optional

from formflow.logic.clock import new_id, utc_now_iso
from formflow.logic.errors import (
    AnswerRequiredError,
    FlowStateError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from formflow.logic.events import RESPONSE_SUBMITTED, publish
from formflow.logic.gating import evaluate_gating
from formflow.logic.storage_gateway import StorageGateway
from formflow.logic.validation import blocks_advance, normalise_answer, validate_answer_value
from formflow.models.form import Form
from formflow.models.question import Question
from formflow.models.response import Response

logger = logging.getLogger(__name__)


class FlowState(str, enum.Enum):
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    NOT_FOUND = "not_found"


class RespondentSession:
    def __init__(
        self,
        gateway: StorageGateway,
        *,
        session_id: Optional[str] = None,
        clock: Callable[[], str] = utc_now_iso,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self._gateway = gateway
        self._clock = clock
        self._id_factory = id_factory
        self.session_id = session_id or id_factory()
        self.state = FlowState.LOADING
        self.step = 0
        self.answers: Dict[str, str] = {}
        self.form: Optional[Form] = None
        self.questions: List[Question] = []
        self.response: Optional[Response] = None

    # -- helpers ---------------------------------------------------------

    def _require(self, *states: FlowState) -> None:
        if self.state not in states:
            raise FlowStateError(
                f"session is {self.state.value}; expected {' or '.join(s.value for s in states)}"
            )

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def last_index(self) -> int:
        return max(self.total - 1, 0)

    @property
    def is_last_step(self) -> bool:
        return self.step == self.last_index

    @property
    def current_question(self) -> Optional[Question]:
        if self.state != FlowState.IN_PROGRESS or not self.questions:
            return None
        return self.questions[self.step]

    @property
    def progress_percent(self) -> int:
        """Display-only progress; carries no control semantics."""
        if not self.total:
            return 0
        return round((self.step + 1) / self.total * 100)

    def _question(self, question_id: str) -> Question:
        for q in self.questions:
            if q.id == question_id:
                return q
        raise ValidationError(f"question {question_id} is not part of this form")

    # -- transitions -----------------------------------------------------

    def load(self, public_token: str) -> "RespondentSession":
        """Resolve a public token to a published form with questions."""
        self._require(FlowState.LOADING)
        try:
            rows = self._gateway.select("forms", {"public_url": public_token, "published": True})
            if not rows:
                raise NotFoundError("Form not found or not published")
            form = Form.model_validate(rows[0])
            question_rows = self._gateway.select("questions", {"form_id": form.id}, order="order_number")
        except (NotFoundError, StorageError):
            self.state = FlowState.NOT_FOUND
            logger.info("respondent.load.not_found token=%s", public_token)
            raise
        if not question_rows:
            self.state = FlowState.NOT_FOUND
            raise NotFoundError("Form has no questions")
        self.form = form
        self.questions = [Question.model_validate(r) for r in question_rows]
        self.state = FlowState.IN_PROGRESS
        self.step = 0
        logger.info(
            "respondent.load.ready session_id=%s form_id=%s questions=%s",
            self.session_id,
            form.id,
            self.total,
        )
        return self

    def set_answer(self, question_id: str, value: Any) -> None:
        """Record an answer; None or blank text clears it."""
        self._require(FlowState.IN_PROGRESS)
        question = self._question(question_id)
        answer = normalise_answer(value)
        validate_answer_value(question, answer)
        if answer is None:
            self.answers.pop(question_id, None)
        else:
            self.answers[question_id] = answer

    def next(self) -> FlowState:
        """Advance one step, or submit when on the last step."""
        self._require(FlowState.IN_PROGRESS)
        question = self.questions[self.step]
        if blocks_advance(question, self.answers):
            logger.info(
                "respondent.next.blocked session_id=%s step=%s question_id=%s",
                self.session_id,
                self.step,
                question.id,
            )
            raise AnswerRequiredError(question.id, self.step)
        if self.step < self.last_index:
            self.step += 1
            return self.state
        self.submit()
        return self.state

    def previous(self) -> FlowState:
        self._require(FlowState.IN_PROGRESS)
        if self.step > 0:
            self.step -= 1
        return self.state

    def go_to(self, step: int) -> FlowState:
        """Jump to a step without running the per-step gate."""
        self._require(FlowState.IN_PROGRESS)
        if not 0 <= step < self.total:
            raise ValidationError(f"step {step} out of range 0..{self.last_index}")
        self.step = step
        return self.state

    def submit(self) -> Response:
        """Run the full-form gate and write the response."""
        self._require(FlowState.IN_PROGRESS)
        verdict = evaluate_gating(self.questions, self.answers)
        if not verdict["ok"]:
            first = verdict["blocking_items"][0]
            self.step = first["step"]
            logger.info(
                "respondent.submit.rejected session_id=%s missing=%s",
                self.session_id,
                [i["question_id"] for i in verdict["blocking_items"]],
            )
            raise AnswerRequiredError(
                first["question_id"], first["step"], "Please answer all required questions"
            )

        if self.form is None:
            raise FlowStateError("session has no loaded form")
        self.state = FlowState.SUBMITTING
        response = Response(
            id=self._id_factory(),
            form_id=self.form.id,
            response_data=dict(self.answers),
            created_at=self._clock(),
        )
        try:
            self._gateway.insert("responses", response.model_dump())
        except StorageError:
            logger.error("respondent.submit.failed session_id=%s", self.session_id, exc_info=True)
            self.state = FlowState.IN_PROGRESS
            self.step = self.last_index
            raise
        self.response = response
        self.state = FlowState.SUBMITTED
        publish(RESPONSE_SUBMITTED, {"form_id": self.form.id, "response_id": response.id})
        return response

    def reset(self) -> FlowState:
        """Start over after a submission ("submit another response")."""
        self._require(FlowState.SUBMITTED)
        self.answers = {}
        self.response = None
        self.step = 0
        self.state = FlowState.IN_PROGRESS
        return self.state

    # -- views -----------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        current = self.current_question
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "step": self.step,
            "total": self.total,
            "progress_percent": self.progress_percent,
            "is_last_step": self.is_last_step,
            "form": (
                {"id": self.form.id, "title": self.form.title, "description": self.form.description}
                if self.form
                else None
            ),
            "current_question": current.model_dump() if current else None,
            "answers": dict(self.answers),
            "gating": evaluate_gating(self.questions, self.answers) if self.questions else None,
            "response_id": self.response.id if self.response else None,
        }


__all__ = ["FlowState", "RespondentSession"]
