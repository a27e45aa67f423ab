"""Response record as stored in the `responses` collection."""

from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, Field


class Response(BaseModel):
    id: str
    form_id: str
    # question_id -> answer text; answers for removed questions are kept as-is
    response_data: Dict[str, str] = Field(default_factory=dict)
    created_at: str


__all__ = ["Response"]
