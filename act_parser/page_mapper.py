"""
Page Mapper
===========
Assigns each question the page its number first appears on.

Pages are re-read from the source one at a time starting at the section's
start page, and run through the same stripped, validated number detection
the segmenter uses, so a stray line number in a passage does not claim a
question.
"""

from __future__ import annotations

import logging

from .models import Anomaly, AnomalyType, Question
from .page_source import PageTextSource
from .segmenter import QuestionSegmenter

logger = logging.getLogger(__name__)


def map_questions_to_pages(
    source: PageTextSource,
    questions: list[Question],
    start_page: int,
    segmenter: QuestionSegmenter,
) -> tuple[list[Question], dict[int, list[str]]]:
    """
    Map questions to pages.

    Args:
        source: Page text source of the document.
        questions: Questions of one section. Not modified.
        start_page: 1-based page the section starts on.
        segmenter: Segmenter of the same section profile.

    Returns:
        (copies of the questions with page_number set, page → question ids)
    """
    mapped = [q.model_copy(deep=True) for q in questions]
    by_number = {q.number: q for q in mapped}
    unassigned = set(by_number)
    page_questions: dict[int, list[str]] = {}

    start = max(start_page, 1)
    for page_number in range(start, source.page_count + 1):
        if not unassigned:
            break
        numbers = segmenter.detect_numbers(source.page_text(page_number))
        for number in numbers:
            if number not in unassigned:
                continue
            question = by_number[number]
            question.page_number = page_number
            page_questions.setdefault(page_number, []).append(question.id)
            unassigned.discard(number)

    for number in sorted(unassigned):
        question = by_number[number]
        question.page_number = start
        page_questions.setdefault(start, []).append(question.id)
        question.anomalies.append(Anomaly(
            type=AnomalyType.PAGE_FALLBACK,
            severity=20,
            message=f"Number not found on any page; using start page {start}",
            context={"start_page": start},
        ))

    if unassigned:
        logger.debug(
            f"{len(unassigned)} questions fell back to page {start}"
        )
    return mapped, dict(sorted(page_questions.items()))
