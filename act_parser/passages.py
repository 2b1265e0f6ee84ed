"""
Passage Attribution
===================
English and Reading questions belong to numbered passages
(`PASSAGE I`, `PASSAGE II`, ...). The passage body is the text between the
heading and the first question number that follows it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .choices import normalize_whitespace

PASSAGE_HEADING = re.compile(r"^[ \t]*PASSAGE\s+([IVX]+)\b", re.MULTILINE)
FIRST_QUESTION = re.compile(r"\n[ \t]*\d{1,2}[.)]\s")


@dataclass
class Passage:
    """One passage heading and its body text."""
    passage_id: str
    start: int
    body: str


def find_passages(text: str) -> list[Passage]:
    """All passage headings in `text`, in order of appearance."""
    passages = []
    for m in PASSAGE_HEADING.finditer(text):
        roman = m.group(1).upper()
        rest = text[m.end():]
        first_q = FIRST_QUESTION.search(rest)
        body = rest[:first_q.start()] if first_q else ""
        passages.append(Passage(
            passage_id=f"passage-{roman}",
            start=m.start(),
            body=normalize_whitespace(body),
        ))
    return passages


def passage_for_offset(passages: list[Passage], offset: int) -> Optional[Passage]:
    """The last passage whose heading precedes `offset`."""
    current = None
    for passage in passages:
        if passage.start < offset:
            current = passage
        else:
            break
    return current
