"""Form draft: an editable form plus its ordered question list.

A ``FormDraft`` owns its question list while editing. Edits are in-memory
only; ``save()`` reconciles the draft into storage (upsert the form, upsert
every question, sweep persisted questions the draft no longer holds).
``publish()``/``unpublish()`` toggle visibility of the persisted form.

The gateway is not transactional, so a failed save can leave storage
partially written. The draft itself is only replaced after every write
succeeded; on failure it still holds the caller's edits for a manual retry.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from formflow.logic.clock import new_id, utc_now_iso
from formflow.logic.errors import NotFoundError, StorageError, ValidationError
from formflow.logic.events import FORM_PUBLISHED, FORM_SAVED, FORM_UNPUBLISHED, publish
from formflow.logic.public_tokens import allocate_public_token, generate_public_token
from formflow.logic.reconciliation import dense_order_numbers, plan_question_sync
from formflow.logic.storage_gateway import StorageGateway
from formflow.models.form import Form
from formflow.models.question import EDITABLE_FIELDS, Question
from formflow.models.question_kind import DEFAULT_OPTIONS, QuestionKind

logger = logging.getLogger(__name__)

FORM_EDITABLE_FIELDS = frozenset({"title", "description"})


def _question_id(item: Union[Question, str]) -> str:
    return item.id if isinstance(item, Question) else str(item)


class FormDraft:
    def __init__(
        self,
        gateway: StorageGateway,
        form: Form,
        questions: Optional[Iterable[Question]] = None,
        *,
        is_new: bool = True,
        clock: Callable[[], str] = utc_now_iso,
        id_factory: Callable[[], str] = new_id,
        token_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self._gateway = gateway
        self._clock = clock
        self._id_factory = id_factory
        self._token_factory = token_factory or generate_public_token
        self.form = form
        self.questions: List[Question] = list(questions or [])
        self.is_new = is_new

    # -- construction ----------------------------------------------------

    @classmethod
    def create(
        cls,
        gateway: StorageGateway,
        *,
        title: str = "Untitled Form",
        description: Optional[str] = "",
        **options: Any,
    ) -> "FormDraft":
        clock = options.get("clock") or utc_now_iso
        id_factory = options.get("id_factory") or new_id
        now = clock()
        form = Form(id=id_factory(), title=title, description=description, created_at=now, updated_at=now)
        return cls(gateway, form, [], is_new=True, **options)

    @classmethod
    def load(cls, gateway: StorageGateway, form_id: str, **options: Any) -> "FormDraft":
        rows = gateway.select("forms", {"id": form_id})
        if not rows:
            raise NotFoundError(f"form {form_id} not found")
        question_rows = gateway.select("questions", {"form_id": form_id}, order="order_number")
        logger.info("form_draft.loaded form_id=%s questions=%s", form_id, len(question_rows))
        return cls(
            gateway,
            Form.model_validate(rows[0]),
            [Question.model_validate(r) for r in question_rows],
            is_new=False,
            **options,
        )

    # -- lookups ---------------------------------------------------------

    def _index(self, question_id: str) -> Optional[int]:
        for i, q in enumerate(self.questions):
            if q.id == question_id:
                return i
        return None

    def question(self, question_id: str) -> Optional[Question]:
        idx = self._index(question_id)
        return self.questions[idx] if idx is not None else None

    def to_view(self) -> Dict[str, Any]:
        return {
            "form": self.form.model_dump(),
            "questions": [q.model_dump() for q in self.questions],
        }

    # -- form edits ------------------------------------------------------

    def update_form(self, **fields: Any) -> Form:
        unknown = set(fields) - FORM_EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"fields not editable on a form: {sorted(unknown)}")
        try:
            self.form = Form.model_validate({**self.form.model_dump(), **fields})
        except PydanticValidationError as exc:
            raise ValidationError(str(exc)) from exc
        return self.form

    # -- question edits --------------------------------------------------

    def add_question(self, kind: str) -> Question:
        if kind not in QuestionKind.ALL:
            raise ValidationError(f"unknown question kind: {kind}")
        now = self._clock()
        question = Question(
            id=self._id_factory(),
            form_id=self.form.id,
            question_type=kind,
            required=False,
            order_number=len(self.questions),
            options=list(DEFAULT_OPTIONS) if QuestionKind.is_choice(kind) else None,
            created_at=now,
            updated_at=now,
        )
        self.questions.append(question)
        return question

    def update_question(self, question_id: str, **fields: Any) -> Optional[Question]:
        """Merge editable fields into a question.

        Returns the updated question, or None when the id is unknown (the
        edit is dropped). Switching to short_text clears options; switching
        to a choice kind without options assigns the default option list.
        """
        idx = self._index(question_id)
        if idx is None:
            logger.info("form_draft.update_question.unknown question_id=%s", question_id)
            return None
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"fields not editable on a question: {sorted(unknown)}")

        merged = {**self.questions[idx].model_dump(), **fields, "updated_at": self._clock()}
        kind = merged.get("question_type")
        if kind not in QuestionKind.ALL:
            raise ValidationError(f"unknown question kind: {kind}")
        if QuestionKind.is_choice(kind):
            if merged.get("options") is None:
                merged["options"] = list(DEFAULT_OPTIONS)
        else:
            merged["options"] = None
        try:
            updated = Question.model_validate(merged)
        except PydanticValidationError as exc:
            raise ValidationError(str(exc)) from exc
        self.questions[idx] = updated
        return updated

    def remove_question(self, question_id: str) -> bool:
        """Drop a question; order numbers are left for an explicit reorder."""
        idx = self._index(question_id)
        if idx is None:
            return False
        del self.questions[idx]
        return True

    def reorder_questions(self, ordered: Sequence[Union[Question, str]]) -> List[Question]:
        ids = [_question_id(item) for item in ordered]
        current = {q.id: q for q in self.questions}
        if len(ids) != len(current) or set(ids) != set(current):
            raise ValidationError("reorder must be a permutation of the draft's questions")
        now = self._clock()
        self.questions = [
            current[qid].model_copy(update={"order_number": index, "updated_at": now})
            for index, qid in enumerate(ids)
        ]
        return self.questions

    def renumber(self) -> List[Question]:
        """Reorder in the current list order, closing gaps left by removals."""
        return self.reorder_questions([q.id for q in self.questions])

    def replace_questions(self, items: Sequence[Mapping[str, Any]]) -> List[Question]:
        """Make the draft hold exactly ``items``, in that order.

        Items with a known ``id`` update that question; the rest are added as
        new questions. Questions missing from ``items`` are removed and become
        tombstones on the next save.
        """
        ordered: List[str] = []
        for item in items:
            fields = {k: v for k, v in item.items() if k != "id"}
            existing = item.get("id")
            if existing is None or self.question(existing) is None:
                existing = self.add_question(fields.get("question_type", QuestionKind.SHORT_TEXT)).id
            self.update_question(existing, **fields)
            ordered.append(existing)
        for question in list(self.questions):
            if question.id not in ordered:
                self.remove_question(question.id)
        return self.reorder_questions(ordered)

    # -- option edits ----------------------------------------------------

    def _choice_options(self, question_id: str) -> List[str]:
        question = self.question(question_id)
        if question is None:
            raise NotFoundError(f"question {question_id} not found")
        if not QuestionKind.is_choice(question.question_type):
            raise ValidationError(f"question {question_id} does not take options")
        return list(question.options or [])

    def add_option(self, question_id: str) -> Optional[Question]:
        options = self._choice_options(question_id)
        options.append(f"Option {len(options) + 1}")
        return self.update_question(question_id, options=options)

    def set_option(self, question_id: str, index: int, value: str) -> Optional[Question]:
        options = self._choice_options(question_id)
        if not 0 <= index < len(options):
            raise ValidationError(f"option index {index} out of range")
        options[index] = value
        return self.update_question(question_id, options=options)

    def remove_option(self, question_id: str, index: int) -> Optional[Question]:
        options = self._choice_options(question_id)
        if not 0 <= index < len(options):
            raise ValidationError(f"option index {index} out of range")
        if len(options) <= 1:
            # The last option stays; a choice question always offers one
            return self.question(question_id)
        del options[index]
        return self.update_question(question_id, options=options)

    # -- persistence -----------------------------------------------------

    def save(self) -> Form:
        """Reconcile the draft into storage and return the stored form."""
        now = self._clock()
        form = self.form.model_copy(update={"updated_at": now})
        questions = [q.model_copy(update={"form_id": form.id, "updated_at": now}) for q in self.questions]
        logger.info(
            "form_draft.save.start form_id=%s questions=%s is_new=%s dense_order=%s",
            form.id,
            len(questions),
            self.is_new,
            dense_order_numbers(questions),
        )
        try:
            persisted_ids = [r["id"] for r in self._gateway.select("questions", {"form_id": form.id})]
            plan = plan_question_sync(persisted_ids, questions)
            stored = self._gateway.upsert("forms", form.model_dump())
            for question in plan.to_upsert:
                self._gateway.upsert("questions", question.model_dump())
            if plan.to_delete:
                self._gateway.delete("questions", {"form_id": form.id, "id": list(plan.to_delete)})
        except StorageError:
            logger.error("form_draft.save.failed form_id=%s", form.id, exc_info=True)
            raise

        self.form = Form.model_validate(stored)
        self.questions = questions
        created_form = self.is_new
        self.is_new = False
        logger.info(
            "form_draft.save.complete form_id=%s upserted=%s created=%s deleted=%s",
            form.id,
            len(plan.to_upsert),
            len(plan.created),
            len(plan.to_delete),
        )
        publish(
            FORM_SAVED,
            {
                "form_id": form.id,
                "created_form": created_form,
                "questions": len(questions),
                "deleted_question_ids": list(plan.to_delete),
            },
        )
        return self.form

    def _persisted_form(self) -> Form:
        if self.is_new:
            raise ValidationError("save the form before changing its publication")
        rows = self._gateway.select("forms", {"id": self.form.id})
        if not rows:
            raise NotFoundError(f"form {self.form.id} not found")
        return Form.model_validate(rows[0])

    def _refresh_publication(self, stored: Form) -> Form:
        self.form = self.form.model_copy(
            update={
                "published": stored.published,
                "public_url": stored.public_url,
                "updated_at": stored.updated_at,
            }
        )
        return self.form

    def publish(self) -> Form:
        """Mark the form published, keeping any public token it already has."""
        if not self.questions:
            raise ValidationError("a form needs at least one question to be published")
        persisted = self._persisted_form()
        token = persisted.public_url or allocate_public_token(self._gateway, self._token_factory)
        record = persisted.model_copy(
            update={"published": True, "public_url": token, "updated_at": self._clock()}
        )
        try:
            stored = Form.model_validate(self._gateway.upsert("forms", record.model_dump()))
        except StorageError:
            logger.error("form_draft.publish.failed form_id=%s", self.form.id, exc_info=True)
            raise
        publish(FORM_PUBLISHED, {"form_id": stored.id, "public_url": stored.public_url})
        return self._refresh_publication(stored)

    def unpublish(self) -> Form:
        """Hide the form; the token is retained so re-publishing restores the link."""
        persisted = self._persisted_form()
        record = persisted.model_copy(update={"published": False, "updated_at": self._clock()})
        try:
            stored = Form.model_validate(self._gateway.upsert("forms", record.model_dump()))
        except StorageError:
            logger.error("form_draft.unpublish.failed form_id=%s", self.form.id, exc_info=True)
            raise
        publish(FORM_UNPUBLISHED, {"form_id": stored.id})
        return self._refresh_publication(stored)


__all__ = ["FormDraft", "FORM_EDITABLE_FIELDS"]
