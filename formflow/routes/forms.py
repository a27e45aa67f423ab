"""Builder routes: form CRUD, question edits and publication.

Each mutating route loads the stored draft, applies the edit in memory and
saves it, so a request is one full reconciliation against storage.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response

from formflow.logic.catalogue import delete_form, list_forms
from formflow.logic.draft import FormDraft
from formflow.logic.errors import NotFoundError
from formflow.logic.storage_gateway import StorageGateway
from formflow.models.payloads import (
    FormCreate,
    FormUpdate,
    QuestionCreate,
    QuestionOrder,
    QuestionPatch,
)
from formflow.routes.deps import draft_options, get_gateway

router = APIRouter()
logger = logging.getLogger(__name__)


def _form_location(form_id: str) -> str:
    return f"/api/v1/forms/{form_id}"


@router.get("/forms", summary="List forms, most recently updated first")
def get_forms(gateway: StorageGateway = Depends(get_gateway)) -> Dict[str, Any]:
    forms = list_forms(gateway)
    return {"forms": forms, "count": len(forms)}


@router.post("/forms", summary="Create a form", status_code=201)
def create_form(
    payload: FormCreate,
    gateway: StorageGateway = Depends(get_gateway),
    options: Dict[str, Any] = Depends(draft_options),
) -> JSONResponse:
    draft = FormDraft.create(gateway, title=payload.title, description=payload.description, **options)
    draft.save()
    logger.info("forms.create form_id=%s", draft.form.id)
    return JSONResponse(
        draft.to_view(),
        status_code=201,
        headers={"Location": _form_location(draft.form.id)},
    )


@router.get("/forms/{form_id}", summary="Load a form with its questions")
def get_form(form_id: str, gateway: StorageGateway = Depends(get_gateway)) -> Dict[str, Any]:
    return FormDraft.load(gateway, form_id).to_view()


@router.put("/forms/{form_id}", summary="Replace the draft and save it")
def put_form(
    form_id: str,
    payload: FormUpdate,
    gateway: StorageGateway = Depends(get_gateway),
    options: Dict[str, Any] = Depends(draft_options),
) -> Dict[str, Any]:
    draft = FormDraft.load(gateway, form_id, **options)
    form_fields = payload.model_dump(exclude_unset=True, exclude={"questions"})
    if form_fields:
        draft.update_form(**form_fields)
    if payload.questions is not None:
        draft.replace_questions(
            [item.model_dump(exclude_unset=True) | {"id": item.id} for item in payload.questions]
        )
    draft.save()
    return draft.to_view()


@router.delete("/forms/{form_id}", summary="Delete a form with its questions and responses", status_code=204)
def remove_form(form_id: str, gateway: StorageGateway = Depends(get_gateway)) -> Response:
    delete_form(gateway, form_id)
    return Response(status_code=204)


@router.post("/forms/{form_id}/questions", summary="Add a question", status_code=201)
def add_question(
    form_id: str,
    payload: QuestionCreate,
    gateway: StorageGateway = Depends(get_gateway),
    options: Dict[str, Any] = Depends(draft_options),
) -> Dict[str, Any]:
    draft = FormDraft.load(gateway, form_id, **options)
    question = draft.add_question(payload.kind)
    draft.save()
    return {"question": draft.question(question.id).model_dump(), **draft.to_view()}


@router.put("/forms/{form_id}/questions/order", summary="Reorder questions by id")
def reorder_questions(
    form_id: str,
    payload: QuestionOrder,
    gateway: StorageGateway = Depends(get_gateway),
    options: Dict[str, Any] = Depends(draft_options),
) -> Dict[str, Any]:
    draft = FormDraft.load(gateway, form_id, **options)
    draft.reorder_questions(payload.question_ids)
    draft.save()
    return draft.to_view()


@router.patch("/forms/{form_id}/questions/{question_id}", summary="Update a question")
def patch_question(
    form_id: str,
    question_id: str,
    payload: QuestionPatch,
    gateway: StorageGateway = Depends(get_gateway),
    options: Dict[str, Any] = Depends(draft_options),
) -> Dict[str, Any]:
    draft = FormDraft.load(gateway, form_id, **options)
    updated = draft.update_question(question_id, **payload.changes())
    if updated is None:
        raise NotFoundError(f"question {question_id} not found")
    draft.save()
    return {"question": draft.question(question_id).model_dump(), **draft.to_view()}


@router.delete("/forms/{form_id}/questions/{question_id}", summary="Remove a question")
def delete_question(
    form_id: str,
    question_id: str,
    gateway: StorageGateway = Depends(get_gateway),
    options: Dict[str, Any] = Depends(draft_options),
) -> Dict[str, Any]:
    draft = FormDraft.load(gateway, form_id, **options)
    if not draft.remove_question(question_id):
        raise NotFoundError(f"question {question_id} not found")
    draft.renumber()
    draft.save()
    return draft.to_view()


@router.post("/forms/{form_id}/publish", summary="Publish a form")
def publish_form(
    form_id: str,
    gateway: StorageGateway = Depends(get_gateway),
    options: Dict[str, Any] = Depends(draft_options),
) -> Dict[str, Any]:
    draft = FormDraft.load(gateway, form_id, **options)
    form = draft.publish()
    return {"form": form.model_dump(), "public_path": f"/api/v1/f/{form.public_url}"}


@router.post("/forms/{form_id}/unpublish", summary="Unpublish a form")
def unpublish_form(
    form_id: str,
    gateway: StorageGateway = Depends(get_gateway),
    options: Dict[str, Any] = Depends(draft_options),
) -> Dict[str, Any]:
    draft = FormDraft.load(gateway, form_id, **options)
    return {"form": draft.unpublish().model_dump()}


__all__ = ["router"]
