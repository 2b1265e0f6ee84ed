"""
Answer Key Extractor
====================
Reads the scoring-key tables printed after the tests.

The same table comes out of the PDF text layer in several shapes depending
on how the printer laid out its columns, so several strategies run over
the key text and their results are merged.

Merge rule: strategies run in STRATEGIES order; for each question number
the first strategy that produced an entry wins.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

from .models import Anomaly, AnomalyType, Question
from .profiles import SectionProfile
from .slicer import slice_between

logger = logging.getLogger(__name__)

AnswerKey = dict[int, str]
Strategy = Callable[[str, range, str], AnswerKey]

# A/F → 0, B/G → 1, C/H → 2, D/J → 3, E/K → 4
PARITY_INDEX = {
    "A": 0, "B": 1, "C": 2, "D": 3, "E": 4,
    "F": 0, "G": 1, "H": 2, "J": 3, "K": 4,
}

_NUMBER_LINE = re.compile(r"^(\d{1,2})\.?$")


def line_pair_strategy(text: str, valid: range, letters: str) -> AnswerKey:
    """A line holding only a number, followed by a line holding one letter."""
    key: AnswerKey = {}
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    for current, following in zip(lines, lines[1:]):
        m = _NUMBER_LINE.match(current)
        if not m:
            continue
        number = int(m.group(1))
        if number in valid and len(following) == 1 and following in letters:
            key.setdefault(number, following)
    return key


def row_token_strategy(text: str, valid: range, letters: str) -> AnswerKey:
    """Rows like `12. C ____`: number and letter lead the row."""
    row = re.compile(rf"^(\d{{1,2}})\.\s*([{letters}])(?![A-Za-z])")
    key: AnswerKey = {}
    for line in text.splitlines():
        m = row.match(line.strip())
        if not m:
            continue
        number = int(m.group(1))
        if number in valid:
            key.setdefault(number, m.group(2))
    return key


def concatenated_token_strategy(text: str, valid: range, letters: str) -> AnswerKey:
    """Tokens like `14A` where the columns ran together."""
    token = re.compile(rf"(?<!\d)(\d{{1,2}})([{letters}])(?![A-Za-z])")
    key: AnswerKey = {}
    for m in token.finditer(text):
        number = int(m.group(1))
        if number in valid:
            key.setdefault(number, m.group(2))
    return key


STRATEGIES: list[Strategy] = [
    line_pair_strategy,
    row_token_strategy,
    concatenated_token_strategy,
]


def merge_strategies(
    text: str,
    valid: range,
    letters: str,
    strategies: Optional[list[Strategy]] = None,
) -> AnswerKey:
    """Run strategies in order; the first entry found per number is kept."""
    merged: AnswerKey = {}
    for strategy in strategies or STRATEGIES:
        found = strategy(text, valid, letters)
        added = 0
        for number, letter in found.items():
            if number not in merged and letter:
                merged[number] = letter
                added += 1
        logger.debug(f"{strategy.__name__}: {len(found)} entries, {added} new")
    return dict(sorted(merged.items()))


def extract_answer_key(text: str, profile: SectionProfile) -> Optional[AnswerKey]:
    """
    Answer key for one section, or None when no key table is found.

    An empty dict means the heading was found but no entry parsed.
    """
    if profile.key_start is None:
        return None
    region = slice_between(text, profile.key_start, profile.key_end)
    if region is None:
        logger.info(f"{profile.subject.value}: no scoring key found")
        return None
    key = merge_strategies(region, profile.question_range, profile.key_letters)
    logger.info(f"{profile.subject.value}: {len(key)} answer key entries")
    return key


def letter_to_index(question: Question, letter: str) -> Optional[int]:
    """
    Choice index for a key letter.

    The letter's own position among the question's choice letters wins;
    otherwise the A/F parity table is used if that index exists.
    """
    if letter in question.choice_letters:
        return question.choice_letters.index(letter)
    index = PARITY_INDEX.get(letter)
    if index is not None and index < len(question.choices):
        return index
    return None


def apply_answer_key(questions: list[Question], key: Optional[AnswerKey]) -> None:
    """
    Set answers in place from `key`.

    Questions without a usable entry keep `answer_index` unset and record
    an anomaly saying why. Nothing is recorded when no key was found.
    """
    if key is None:
        return

    for question in questions:
        letter = key.get(question.number)
        if letter is None:
            question.anomalies.append(Anomaly(
                type=AnomalyType.MISSING_ANSWER,
                severity=60,
                message="No entry in the answer key",
            ))
            continue

        question.answer_letter = letter
        index = letter_to_index(question, letter)
        if index is not None:
            question.answer_index = index
        elif letter in PARITY_INDEX:
            question.anomalies.append(Anomaly(
                type=AnomalyType.ANSWER_OUT_OF_RANGE,
                severity=70,
                message=(
                    f"Key letter {letter} does not fit "
                    f"{len(question.choices)} choices"
                ),
                context={"letter": letter, "choices": len(question.choices)},
            ))
        else:
            question.anomalies.append(Anomaly(
                type=AnomalyType.UNRECOGNIZED_ANSWER_LETTER,
                severity=70,
                message=f"Unrecognized key letter {letter!r}",
                context={"letter": letter},
            ))
