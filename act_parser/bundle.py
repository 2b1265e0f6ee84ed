"""
Test Bundle
===========
Builds the JSON shape a test store persists for one parsed test:

    {
      "id": "...",
      "name": "...",
      "createdAt": "2024-01-01T00:00:00+00:00",
      "sections": {"english": [question, ...], ...},
      "pdfData": "<base64 PDF>",
      "sectionPages": {"english": 3, ...},
      "pageQuestions": {"english": {"3": ["english-1", ...]}, ...}
    }
"""

from __future__ import annotations

import base64
import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .models import ParseResult

logger = logging.getLogger(__name__)


def build_bundle(
    result: ParseResult,
    name: str,
    pdf_bytes: Optional[bytes] = None,
) -> dict:
    """
    Convert a parse result into a storable test bundle.

    Questions are dumped with camelCase keys. `pdfData` is omitted when no
    document bytes are given.
    """
    sections = {}
    page_questions = {}
    for section in result.sections:
        subject = section.section.value
        sections[subject] = [
            q.model_dump(mode="json", by_alias=True, exclude_none=True)
            for q in section.questions
        ]
        page_questions[subject] = {
            str(page): list(ids)
            for page, ids in section.page_questions.items()
        }

    bundle = {
        "id": uuid.uuid4().hex[:12],
        "name": name,
        "createdAt": datetime.now(timezone.utc).isoformat(),
        "sections": sections,
        "sectionPages": dict(result.section_pages),
        "pageQuestions": page_questions,
    }
    if pdf_bytes:
        bundle["pdfData"] = base64.b64encode(pdf_bytes).decode("ascii")
    return bundle


def write_bundle(bundle: dict, path: str | Path) -> Path:
    """Write a bundle as JSON, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(bundle, f, indent=2, ensure_ascii=False)
    logger.info(f"Saved bundle: {path}")
    return path
