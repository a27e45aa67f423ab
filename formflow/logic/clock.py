"""Timestamp and identifier helpers shared by drafts and sessions."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone


def utc_now_iso() -> str:
    """Return an RFC3339 UTC timestamp with a trailing 'Z'.

    Microsecond precision keeps lexical order equal to time order, which the
    responses listing relies on.
    """
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def new_id() -> str:
    return str(uuid.uuid4())


__all__ = ["utc_now_iso", "parse_timestamp", "new_id"]
