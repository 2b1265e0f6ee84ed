"""
Question Segmenter
==================
Turns one section's text into Question objects.

Pipeline:
    1. Strip boilerplate (page furniture, legal paragraphs, filler rows)
    2. Find line-start question numbers within the section's range
    3. Keep only numbers followed by a choice marker inside the lookahead
       window, first occurrence per number
    4. Cut each kept number's block up to the next kept number
    5. Split prompt / choices, apply the acceptance rules
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from .choices import ChoiceExtractor, normalize_math_text, normalize_whitespace
from .config import BoilerplateRules
from .models import Anomaly, AnomalyType, Question
from .passages import find_passages, passage_for_offset
from .profiles import SectionProfile

logger = logging.getLogger(__name__)

QUESTION_START = re.compile(r"^[ \t]*(\d{1,2})\.\s+", re.MULTILINE)


@dataclass
class QuestionBlock:
    """Raw text of one validated question number."""
    number: int
    offset: int
    text: str


class QuestionSegmenter:
    """
    Segments section text for a single section profile.

    Usage:
        segmenter = QuestionSegmenter(profile, rules)
        questions = segmenter.segment(section_text)
        numbers = segmenter.detect_numbers(page_text)
    """

    def __init__(self, profile: SectionProfile, rules: BoilerplateRules):
        self.profile = profile
        self.rules = rules
        self.extractor = ChoiceExtractor(profile, rules)
        self.marker = profile.choice_marker()

    # ── Detection ─────────────────────────────────────────────────────────

    def clean(self, text: str) -> str:
        return self.rules.strip_text(text)

    def validated_matches(self, text: str) -> list[re.Match[str]]:
        """
        Line-start numbers in range with a choice marker in their window,
        in text order. `text` must already be cleaned.
        """
        valid_range = self.profile.question_range
        candidates = [
            m for m in QUESTION_START.finditer(text)
            if int(m.group(1)) in valid_range
        ]

        validated = []
        for idx, m in enumerate(candidates):
            if self.profile.lookahead is not None:
                window_end = min(m.end() + self.profile.lookahead, len(text))
            elif idx + 1 < len(candidates):
                window_end = candidates[idx + 1].start()
            else:
                window_end = len(text)
            if self.marker.search(text, m.end(), window_end):
                validated.append(m)
        return validated

    def validated_starts(self, text: str) -> dict[int, re.Match[str]]:
        """Number → its first validated match."""
        kept: dict[int, re.Match[str]] = {}
        for m in self.validated_matches(text):
            kept.setdefault(int(m.group(1)), m)
        return kept

    def detect_numbers(self, text: str) -> list[int]:
        """Sorted, de-duplicated question numbers present in raw text."""
        return sorted(self.validated_starts(self.clean(text)))

    def blocks(self, text: str) -> list[QuestionBlock]:
        """
        Question blocks of cleaned text, in question-number order.

        A block runs to the next validated question start (repeats of an
        already seen number included), or to the next passage heading when
        that comes first.
        """
        matches = self.validated_matches(text)
        kept: dict[int, re.Match[str]] = {}
        for m in matches:
            kept.setdefault(int(m.group(1)), m)

        boundaries = [m.start() for m in matches]
        if self.profile.has_passages:
            boundaries = sorted(
                boundaries + [p.start for p in find_passages(text)]
            )

        result = []
        for number in sorted(kept):
            m = kept[number]
            stop = next((b for b in boundaries if b > m.start()), len(text))
            result.append(QuestionBlock(
                number=number,
                offset=m.start(),
                text=text[m.end():stop],
            ))
        return result

    # ── Segmentation ──────────────────────────────────────────────────────

    def segment(self, section_text: str) -> list[Question]:
        """Extract every acceptable question from a section slice."""
        text = self.clean(section_text)
        passages = find_passages(text) if self.profile.has_passages else []

        questions = []
        for block in self.blocks(text):
            question = self._build_question(block)
            if question is None:
                continue
            passage = passage_for_offset(passages, block.offset)
            if passage is not None:
                question.passage_id = passage.passage_id
                question.passage = passage.body or None
            questions.append(question)

        logger.debug(
            f"{self.profile.subject.value}: {len(questions)} questions "
            f"from section text"
        )
        return questions

    def _build_question(self, block: QuestionBlock) -> Optional[Question]:
        qid = f"{self.profile.subject.value}-{block.number}"

        if self.rules.is_rejected(block.text):
            logger.debug(f"{qid}: block rejected as boilerplate")
            return None

        raw_prompt, region = self.extractor.split_block(block.text)
        prompt = normalize_whitespace(raw_prompt)
        if self.profile.normalize_math:
            prompt = normalize_math_text(prompt)

        if len(prompt) < self.profile.min_prompt_length and not (
            self.profile.allow_empty_prompt and prompt == ""
        ):
            logger.debug(f"{qid}: prompt too short ({len(prompt)} chars)")
            return None

        choices, letters = self.extractor.extract(region, block.number)
        anomalies = []

        if self.profile.fixed_choice_count is not None:
            if self.extractor.all_empty(choices):
                logger.debug(f"{qid}: no choice text found")
                return None
            padded = self.extractor.padded_count(choices)
            if padded:
                anomalies.append(Anomaly(
                    type=AnomalyType.PADDED_CHOICES,
                    severity=40,
                    message=f"{padded} of {len(choices)} choices missing",
                    context={"padded": padded},
                ))
        elif len(choices) < self.profile.min_choices:
            logger.debug(f"{qid}: only {len(choices)} choices")
            return None

        return Question(
            id=qid,
            prompt=prompt,
            choices=choices,
            choice_letters=letters,
            anomalies=anomalies,
        )
