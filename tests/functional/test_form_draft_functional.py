"""Functional tests for the form draft: editing, save reconciliation and publication.

Save and publication tests run against both storage backends through the
parametrised ``gateway`` fixture.
"""

from __future__ import annotations

import logging

import pytest

from formflow.logic import events
from formflow.logic.draft import FormDraft
from formflow.logic.errors import NotFoundError, StorageError, ValidationError
from formflow.models.question_kind import DEFAULT_OPTIONS, QuestionKind


@pytest.fixture
def draft(memory_gateway, clock, ids):
    return FormDraft.create(memory_gateway, title="Team Survey", clock=clock, id_factory=ids)


def _stored_questions(gateway, form_id):
    return gateway.select("questions", {"form_id": form_id}, order="order_number")


# -----------------------------
# Editing
# -----------------------------


def test_new_draft_defaults(draft):
    assert draft.is_new is True
    assert draft.form.title == "Team Survey"
    assert draft.form.published is False
    assert draft.form.public_url is None
    assert draft.questions == []


def test_add_question_assigns_kind_defaults_and_next_order(draft):
    text = draft.add_question(QuestionKind.SHORT_TEXT)
    choice = draft.add_question(QuestionKind.MULTIPLE_CHOICE)

    assert text.options is None
    assert text.question_text == "New Question"
    assert text.required is False
    assert choice.options == list(DEFAULT_OPTIONS)
    assert [q.order_number for q in draft.questions] == [0, 1]
    assert {q.form_id for q in draft.questions} == {draft.form.id}


def test_add_question_rejects_unknown_kind(draft):
    with pytest.raises(ValidationError):
        draft.add_question("checkbox")


def test_switching_kind_normalises_options(draft):
    q = draft.add_question(QuestionKind.DROPDOWN)

    as_text = draft.update_question(q.id, question_type=QuestionKind.SHORT_TEXT)
    assert as_text.options is None

    back_to_choice = draft.update_question(q.id, question_type=QuestionKind.MULTIPLE_CHOICE)
    assert back_to_choice.options == list(DEFAULT_OPTIONS)


def test_update_question_keeps_explicit_options_for_choice(draft):
    q = draft.add_question(QuestionKind.SHORT_TEXT)
    updated = draft.update_question(q.id, question_type=QuestionKind.DROPDOWN, options=["Red", "Blue"])
    assert updated.options == ["Red", "Blue"]


def test_update_question_with_unknown_id_is_dropped(draft):
    draft.add_question(QuestionKind.SHORT_TEXT)
    assert draft.update_question("missing", question_text="Ignored") is None
    assert [q.question_text for q in draft.questions] == ["New Question"]


def test_update_question_rejects_empty_choice_options(draft):
    q = draft.add_question(QuestionKind.MULTIPLE_CHOICE)
    with pytest.raises(ValidationError):
        draft.update_question(q.id, options=[])
    assert draft.question(q.id).options == list(DEFAULT_OPTIONS)


def test_update_question_rejects_non_editable_fields(draft):
    q = draft.add_question(QuestionKind.SHORT_TEXT)
    with pytest.raises(ValidationError):
        draft.update_question(q.id, order_number=7)


def test_update_form_only_accepts_title_and_description(draft):
    draft.update_form(title="Renamed", description="About the team")
    assert (draft.form.title, draft.form.description) == ("Renamed", "About the team")
    with pytest.raises(ValidationError):
        draft.update_form(published=True)


def test_option_helpers(draft):
    q = draft.add_question(QuestionKind.MULTIPLE_CHOICE)

    assert draft.add_option(q.id).options[-1] == "Option 4"
    assert draft.set_option(q.id, 0, "Yes").options[0] == "Yes"
    assert draft.remove_option(q.id, 1).options == ["Yes", "Option 3", "Option 4"]


def test_remove_last_option_is_a_no_op(draft):
    q = draft.add_question(QuestionKind.DROPDOWN)
    draft.update_question(q.id, options=["Only"])

    assert draft.remove_option(q.id, 0).options == ["Only"]


def test_option_helpers_refuse_short_text(draft):
    q = draft.add_question(QuestionKind.SHORT_TEXT)
    with pytest.raises(ValidationError):
        draft.add_option(q.id)


def test_reorder_requires_a_permutation(draft):
    a = draft.add_question(QuestionKind.SHORT_TEXT)
    b = draft.add_question(QuestionKind.SHORT_TEXT)
    c = draft.add_question(QuestionKind.SHORT_TEXT)

    draft.reorder_questions([c, a, b.id])
    assert [q.id for q in draft.questions] == [c.id, a.id, b.id]
    assert [q.order_number for q in draft.questions] == [0, 1, 2]

    with pytest.raises(ValidationError):
        draft.reorder_questions([a.id, b.id])
    with pytest.raises(ValidationError):
        draft.reorder_questions([a.id, a.id, b.id])


def test_remove_then_renumber_closes_gaps(draft):
    a = draft.add_question(QuestionKind.SHORT_TEXT)
    b = draft.add_question(QuestionKind.SHORT_TEXT)
    c = draft.add_question(QuestionKind.SHORT_TEXT)

    assert draft.remove_question(b.id) is True
    assert draft.remove_question(b.id) is False
    assert [q.order_number for q in draft.questions] == [0, 2]

    draft.renumber()
    assert [(q.id, q.order_number) for q in draft.questions] == [(a.id, 0), (c.id, 1)]


def test_replace_questions_updates_adds_and_drops(draft):
    keep = draft.add_question(QuestionKind.SHORT_TEXT)
    drop = draft.add_question(QuestionKind.SHORT_TEXT)

    draft.replace_questions(
        [
            {"question_type": QuestionKind.DROPDOWN, "question_text": "Colour", "options": ["Red"]},
            {"id": keep.id, "question_type": QuestionKind.SHORT_TEXT, "question_text": "Name", "required": True},
        ]
    )

    assert [q.question_text for q in draft.questions] == ["Colour", "Name"]
    assert draft.questions[1].id == keep.id
    assert draft.questions[1].required is True
    assert draft.question(drop.id) is None
    assert [q.order_number for q in draft.questions] == [0, 1]


# -----------------------------
# Save reconciliation
# -----------------------------


def test_save_persists_form_and_ordered_questions(gateway, clock, ids):
    draft = FormDraft.create(gateway, title="Signup", clock=clock, id_factory=ids)
    draft.add_question(QuestionKind.SHORT_TEXT)
    draft.add_question(QuestionKind.MULTIPLE_CHOICE)

    stored = draft.save()

    assert draft.is_new is False
    assert stored.title == "Signup"
    rows = _stored_questions(gateway, draft.form.id)
    assert [r["order_number"] for r in rows] == [0, 1]
    assert rows[1]["options"] == list(DEFAULT_OPTIONS)
    assert rows[0]["options"] is None


def test_save_sweeps_removed_questions(gateway, clock, ids):
    draft = FormDraft.create(gateway, clock=clock, id_factory=ids)
    a = draft.add_question(QuestionKind.SHORT_TEXT)
    b = draft.add_question(QuestionKind.SHORT_TEXT)
    draft.save()
    events.get_buffered_events(clear=True)

    draft.remove_question(a.id)
    draft.renumber()
    draft.save()

    rows = _stored_questions(gateway, draft.form.id)
    assert [(r["id"], r["order_number"]) for r in rows] == [(b.id, 0)]
    saved = [e for e in events.get_buffered_events() if e["type"] == events.FORM_SAVED]
    assert saved[-1]["payload"]["deleted_question_ids"] == [a.id]


def test_saving_an_empty_draft_deletes_every_persisted_question(gateway, clock, ids):
    draft = FormDraft.create(gateway, clock=clock, id_factory=ids)
    draft.add_question(QuestionKind.SHORT_TEXT)
    draft.save()

    draft.replace_questions([])
    draft.save()

    assert _stored_questions(gateway, draft.form.id) == []


def test_load_round_trips_a_saved_draft(gateway, clock, ids):
    draft = FormDraft.create(gateway, title="Poll", description="Pick one", clock=clock, id_factory=ids)
    q = draft.add_question(QuestionKind.DROPDOWN)
    draft.update_question(q.id, question_text="Favourite", required=True, options=["A", "B"])
    draft.save()

    loaded = FormDraft.load(gateway, draft.form.id)

    assert loaded.is_new is False
    assert loaded.form.description == "Pick one"
    assert [(x.question_text, x.required, x.options) for x in loaded.questions] == [("Favourite", True, ["A", "B"])]


def test_load_unknown_form_raises_not_found(gateway):
    with pytest.raises(NotFoundError):
        FormDraft.load(gateway, "nope")


def test_failed_save_keeps_the_draft_for_retry(memory_gateway, clock, ids, mocker):
    draft = FormDraft.create(memory_gateway, title="Retry me", clock=clock, id_factory=ids)
    q = draft.add_question(QuestionKind.SHORT_TEXT)
    draft.update_question(q.id, question_text="Edited")
    mocker.patch.object(memory_gateway, "upsert", side_effect=StorageError("connection refused"))

    with pytest.raises(StorageError):
        draft.save()

    assert draft.is_new is True
    assert draft.question(q.id).question_text == "Edited"
    assert events.get_buffered_events() == []


def test_partial_save_failure_leaves_earlier_writes_in_place(memory_gateway, clock, ids, mocker):
    draft = FormDraft.create(memory_gateway, clock=clock, id_factory=ids)
    draft.add_question(QuestionKind.SHORT_TEXT)
    real_upsert = memory_gateway.upsert

    def _fail_on_questions(collection, record):
        if collection == "questions":
            raise StorageError("write timeout")
        return real_upsert(collection, record)

    mocker.patch.object(memory_gateway, "upsert", side_effect=_fail_on_questions)

    with pytest.raises(StorageError):
        draft.save()

    assert memory_gateway.select("forms", {"id": draft.form.id})
    assert memory_gateway.select("questions", {"form_id": draft.form.id}) == []
    assert draft.is_new is True


# -----------------------------
# Publication
# -----------------------------


def test_publish_requires_a_question_and_a_saved_form(memory_gateway, clock, ids):
    draft = FormDraft.create(memory_gateway, clock=clock, id_factory=ids)
    with pytest.raises(ValidationError):
        draft.publish()

    draft.add_question(QuestionKind.SHORT_TEXT)
    with pytest.raises(ValidationError):
        draft.publish()


def test_publish_assigns_a_stable_token(gateway, clock, ids):
    draft = FormDraft.create(gateway, clock=clock, id_factory=ids, token_factory=lambda: "tok12345")
    draft.add_question(QuestionKind.SHORT_TEXT)
    draft.save()

    published = draft.publish()
    assert published.published is True
    assert published.public_url == "tok12345"

    hidden = draft.unpublish()
    assert hidden.published is False
    assert hidden.public_url == "tok12345"

    again = draft.publish()
    assert again.public_url == "tok12345"
    stored = gateway.select("forms", {"id": draft.form.id})[0]
    assert (stored["published"], stored["public_url"]) == (True, "tok12345")


def test_publish_retries_on_token_collision(memory_gateway, clock, ids):
    first = FormDraft.create(memory_gateway, clock=clock, id_factory=ids, token_factory=lambda: "taken000")
    first.add_question(QuestionKind.SHORT_TEXT)
    first.save()
    first.publish()

    tokens = iter(["taken000", "fresh000"])
    second = FormDraft.create(memory_gateway, clock=clock, id_factory=ids, token_factory=lambda: next(tokens))
    second.add_question(QuestionKind.SHORT_TEXT)
    second.save()

    assert second.publish().public_url == "fresh000"


def test_publish_keeps_unsaved_title_edits(memory_gateway, clock, ids):
    draft = FormDraft.create(memory_gateway, title="Stored", clock=clock, id_factory=ids)
    draft.add_question(QuestionKind.SHORT_TEXT)
    draft.save()
    draft.update_form(title="Unsaved")

    draft.publish()

    assert draft.form.title == "Unsaved"
    assert memory_gateway.select("forms", {"id": draft.form.id})[0]["title"] == "Stored"


def test_publication_events(memory_gateway, clock, ids):
    draft = FormDraft.create(memory_gateway, clock=clock, id_factory=ids, token_factory=lambda: "evt00000")
    draft.add_question(QuestionKind.SHORT_TEXT)
    draft.save()
    draft.publish()
    draft.unpublish()

    types = [e["type"] for e in events.get_buffered_events()]
    assert types == [events.FORM_SAVED, events.FORM_PUBLISHED, events.FORM_UNPUBLISHED]


def test_save_logs_whether_order_numbers_are_dense(draft, caplog):
    caplog.set_level(logging.INFO, logger="formflow.logic.draft")
    a = draft.add_question(QuestionKind.SHORT_TEXT)
    draft.add_question(QuestionKind.SHORT_TEXT)
    draft.remove_question(a.id)
    draft.save()
    draft.renumber()
    draft.save()

    starts = [r.getMessage() for r in caplog.records if r.getMessage().startswith("form_draft.save.start")]
    assert [m.rsplit("dense_order=", 1)[1] for m in starts] == ["False", "True"]
