"""
Format Profiles
===============
Per-layout parameters consumed by one shared extraction pipeline.

A FormatProfile holds one SectionProfile per subject. Everything that
differs between the enhanced and classic printings lives here: header
anchors (their minute/question counts are what tells the layouts apart),
valid number ranges, choice alphabets, and scoring-key headings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from .exceptions import UnsupportedFormatError
from .models import FormatVariant, Subject

# Choice letters alternate A-D / F-J between consecutive questions
ABCD_FGHJ = "ABCDFGHJ"
# Classic math prints five choices: A-E / F-K
A_THROUGH_K = "ABCDEFGHJK"

DEFAULT_LOOKAHEAD = 500

_DASH = r"\s*[—–-]\s*"


def _header(subject: str, minutes: int, questions: int) -> re.Pattern[str]:
    return re.compile(
        rf"{subject}\s+TEST\s+{minutes}\s+Minutes{_DASH}{questions}\s+Questions",
        re.IGNORECASE,
    )


def _anchor(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


@dataclass(frozen=True)
class SectionProfile:
    """Extraction parameters for one (format, subject) pair."""

    subject: Subject
    start_anchor: re.Pattern[str]
    end_anchor: re.Pattern[str]
    max_question: int
    alphabet: str = ABCD_FGHJ
    lookahead: Optional[int] = DEFAULT_LOOKAHEAD

    # Math prints a fixed number of choices; pad or truncate to it
    fixed_choice_count: Optional[int] = None
    # Slot letters for odd and even questions; each choice fills its own
    # letter's slot and only missing letters stay empty
    slot_letters: Optional[tuple[str, str]] = None
    min_choices: int = 2
    min_prompt_length: int = 10
    allow_empty_prompt: bool = False

    # Classic choice cleanup (page furniture cut, math notation)
    clean_choices: bool = False
    normalize_math: bool = False
    normalize_fractions: bool = False

    has_passages: bool = False

    key_start: Optional[re.Pattern[str]] = None
    key_end: Optional[re.Pattern[str]] = None
    key_letters: str = ABCD_FGHJ

    def slots_for(self, number: int) -> Optional[str]:
        """Slot letters of question `number`, or None for positional choices."""
        if self.slot_letters is None:
            return None
        odd, even = self.slot_letters
        return odd if number % 2 else even

    @property
    def question_range(self) -> range:
        return range(1, self.max_question + 1)

    def choice_marker(self) -> re.Pattern[str]:
        """`<letter>.` or `<letter>)` standing alone, followed by whitespace."""
        return _choice_marker(self.alphabet)


_MARKER_CACHE: dict[str, re.Pattern[str]] = {}


def _choice_marker(alphabet: str) -> re.Pattern[str]:
    pattern = _MARKER_CACHE.get(alphabet)
    if pattern is None:
        pattern = re.compile(
            rf"(?<![A-Za-z0-9])([{alphabet}])[.)](?=\s|$)"
        )
        _MARKER_CACHE[alphabet] = pattern
    return pattern


@dataclass(frozen=True)
class FormatProfile:
    """All subject profiles of one layout."""

    variant: FormatVariant
    label: str
    sections: tuple[SectionProfile, ...] = field(default_factory=tuple)

    def section(self, subject: Subject | str) -> Optional[SectionProfile]:
        key = Subject(subject)
        for profile in self.sections:
            if profile.subject == key:
                return profile
        return None


# ─── Enhanced (2022+) ─────────────────────────────────────────────────────────

ENHANCED = FormatProfile(
    variant=FormatVariant.ENHANCED,
    label="Enhanced ACT",
    sections=(
        SectionProfile(
            subject=Subject.ENGLISH,
            start_anchor=_header("ENGLISH", 35, 50),
            end_anchor=_anchor(r"(?:MATH|MATHEMATICS)\s+TEST"),
            max_question=50,
            has_passages=True,
            key_start=_anchor(r"English\s+Scoring\s+Key"),
            key_end=_anchor(
                r"(?:Mathematics|Math|Reading|Science)\s+Scoring\s+Key"
            ),
        ),
        SectionProfile(
            subject=Subject.MATH,
            start_anchor=_header("(?:MATH|MATHEMATICS)", 50, 45),
            end_anchor=_anchor(r"READING\s+TEST"),
            max_question=45,
            fixed_choice_count=4,
            key_start=_anchor(r"(?:Mathematics|Math)\s+Scoring\s+Key"),
            key_end=_anchor(r"(?:Reading|Science)\s+Scoring\s+Key"),
        ),
        SectionProfile(
            subject=Subject.READING,
            start_anchor=_header("READING", 40, 36),
            end_anchor=_anchor(r"SCIENCE\s+TEST"),
            max_question=36,
            has_passages=True,
            key_start=_anchor(r"Reading\s+Scoring\s+Key"),
            key_end=_anchor(r"Science\s+Scoring\s+Key"),
        ),
    ),
)


# ─── Classic (pre-2022) ───────────────────────────────────────────────────────

CLASSIC = FormatProfile(
    variant=FormatVariant.CLASSIC,
    label="Classic ACT",
    sections=(
        SectionProfile(
            subject=Subject.ENGLISH,
            start_anchor=_header("ENGLISH", 45, 75),
            end_anchor=_anchor(r"MATHEMATICS\s+TEST|END\s+OF\s+TEST\s+1\b"),
            max_question=75,
            allow_empty_prompt=True,
            clean_choices=True,
            normalize_fractions=True,
            has_passages=True,
            key_start=_anchor(rf"Test\s+1:\s*English{_DASH}Scoring\s+Key"),
            key_end=_anchor(r"Test\s+[234]:"),
            key_letters=A_THROUGH_K,
        ),
        SectionProfile(
            subject=Subject.MATH,
            start_anchor=_header("MATHEMATICS", 60, 60),
            end_anchor=_anchor(r"READING\s+TEST|END\s+OF\s+TEST\s+2\b"),
            max_question=60,
            alphabet=A_THROUGH_K,
            fixed_choice_count=5,
            slot_letters=("ABCDE", "FGHJK"),
            clean_choices=True,
            normalize_math=True,
            key_start=_anchor(rf"Test\s+2:\s*Mathematics{_DASH}Scoring\s+Key"),
            key_end=_anchor(r"Test\s+[34]:"),
            key_letters=A_THROUGH_K,
        ),
        SectionProfile(
            subject=Subject.READING,
            start_anchor=_header("READING", 35, 40),
            end_anchor=_anchor(r"SCIENCE\s+TEST|END\s+OF\s+TEST\s+3\b"),
            max_question=40,
            clean_choices=True,
            normalize_fractions=True,
            has_passages=True,
            key_start=_anchor(rf"Test\s+3:\s*Reading{_DASH}Scoring\s+Key"),
            key_end=_anchor(r"Test\s+4:"),
            key_letters=A_THROUGH_K,
        ),
    ),
)


# Unstructured practice tests: recognized, nothing extracted
OTHER = FormatProfile(
    variant=FormatVariant.OTHER,
    label="Other practice test",
)


PROFILES: dict[FormatVariant, FormatProfile] = {
    FormatVariant.ENHANCED: ENHANCED,
    FormatVariant.CLASSIC: CLASSIC,
    FormatVariant.OTHER: OTHER,
}


def get_profile(variant: FormatVariant | str) -> FormatProfile:
    """
    Look up a profile by variant or its string value.

    Raises:
        UnsupportedFormatError: For unknown variants.
    """
    try:
        key = FormatVariant(variant)
    except ValueError as e:
        raise UnsupportedFormatError(
            f"Unknown format {variant!r}; expected one of "
            f"{', '.join(v.value for v in FormatVariant)}"
        ) from e
    return PROFILES[key]
