"""Responses view and CSV export for a form."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from formflow.config import AppConfig
from formflow.logic.catalogue import load_form_responses
from formflow.logic.csv_io import CSV_MEDIA_TYPE, build_export_csv, content_disposition, export_filename
from formflow.logic.storage_gateway import StorageGateway
from formflow.logic.tabulation import tabulate
from formflow.routes.deps import get_config, get_gateway

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/forms/{form_id}/responses", summary="Tabulated responses, newest first")
def get_responses(
    form_id: str,
    gateway: StorageGateway = Depends(get_gateway),
    cfg: AppConfig = Depends(get_config),
) -> Dict[str, Any]:
    form, questions, responses = load_form_responses(gateway, form_id)
    table = tabulate(questions, responses, cfg.export.missing_placeholder)
    return {"form": form.model_dump(), "table": table.to_dict()}


@router.get("/forms/{form_id}/responses/export", summary="Download responses as CSV")
def export_responses(
    form_id: str,
    gateway: StorageGateway = Depends(get_gateway),
    cfg: AppConfig = Depends(get_config),
) -> Response:
    form, questions, responses = load_form_responses(gateway, form_id)
    body = build_export_csv(
        questions,
        responses,
        delimiter=cfg.export.delimiter,
        placeholder=cfg.export.missing_placeholder,
    )
    filename = export_filename(form.title, cfg.export.filename_filler)
    logger.info("responses.export form_id=%s rows=%s filename=%s", form_id, len(responses), filename)
    return Response(
        content=body,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": content_disposition(filename)},
    )


__all__ = ["router"]
