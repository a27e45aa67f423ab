"""RFC4180 CSV export of collected responses.

Header row: the submission date column followed by question texts in order
position order. One row per response, newest first. Fields are written
through the stdlib csv writer, so delimiter, quote and newline characters
inside answers are quoted rather than corrupting the row. This module is a
pure transform over already-loaded lists; it never touches storage.
"""

from __future__ import annotations

import csv
import io
import re
import unicodedata
from datetime import datetime
from typing import Sequence
from urllib.parse import quote

from formflow.logic.clock import parse_timestamp
from formflow.logic.tabulation import DEFAULT_PLACEHOLDER, answer_cells, order_questions, order_responses
from formflow.models.question import Question
from formflow.models.response import Response


EXPORT_DATE_HEADER = "Submission Date"
EXPORT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
FILENAME_SUFFIX = "_responses.csv"
FALLBACK_STEM = "form"
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


def format_export_date(timestamp: str) -> str:
    dt: datetime = parse_timestamp(timestamp)
    return dt.strftime(EXPORT_DATE_FORMAT)


def build_export_csv(
    questions: Sequence[Question],
    responses: Sequence[Response],
    *,
    delimiter: str = ",",
    placeholder: str = DEFAULT_PLACEHOLDER,
) -> str:
    ordered = order_questions(questions)
    buf = io.StringIO(newline="")
    writer = csv.writer(buf, delimiter=delimiter, quotechar='"', quoting=csv.QUOTE_MINIMAL)
    writer.writerow([EXPORT_DATE_HEADER, *[q.question_text for q in ordered]])
    for r in order_responses(responses):
        writer.writerow([format_export_date(r.created_at), *answer_cells(ordered, r, placeholder)])
    return buf.getvalue()


def export_filename(title: str, filler: str = "_") -> str:
    """Derive the download name from the form title.

    Whitespace runs collapse to the filler; path separators and quotes are
    replaced too so the name is safe inside a Content-Disposition header.
    """
    base = re.sub(r"\s+", lambda _m: filler, title or "")
    base = re.sub(r'[\\/"]', lambda _m: filler, base)
    return f"{base}{FILENAME_SUFFIX}"


def ascii_filename(filename: str) -> str:
    """Fold a download name to printable ASCII for the plain ``filename`` parameter.

    Accents are stripped via NFKD; scripts with no ASCII form (Cyrillic, CJK,
    emoji) drop out, and a stem left with no letters becomes ``form``.
    """
    folded = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    folded = "".join(c for c in folded if c.isprintable() and c not in '\\"')
    stem = folded[: -len(FILENAME_SUFFIX)] if folded.endswith(FILENAME_SUFFIX) else folded
    if not any(c.isalnum() for c in stem):
        stem = FALLBACK_STEM
    return f"{stem}{FILENAME_SUFFIX}"


def content_disposition(filename: str) -> str:
    # Header values are latin-1 on the wire; the UTF-8 name rides in filename* (RFC 5987)
    return f"attachment; filename=\"{ascii_filename(filename)}\"; filename*=UTF-8''{quote(filename, safe='')}"


__all__ = [
    "EXPORT_DATE_HEADER",
    "EXPORT_DATE_FORMAT",
    "CSV_MEDIA_TYPE",
    "format_export_date",
    "build_export_csv",
    "export_filename",
    "ascii_filename",
    "content_disposition",
]
