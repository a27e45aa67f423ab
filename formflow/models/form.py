"""Form record as stored in the `forms` collection."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class Form(BaseModel):
    id: str
    title: str = "Untitled Form"
    description: Optional[str] = ""
    created_at: str
    updated_at: str
    published: bool = False
    # Public token; assigned on first publish and retained afterwards
    public_url: Optional[str] = Field(default=None)


__all__ = ["Form"]
