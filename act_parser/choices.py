"""
Choice Extractor
================
Separates a question block into prompt and answer choices.

Choice boundaries are found by a character scan that tracks parenthesis
depth. A `B.`-looking token inside parentheses, as in `f(x) = (B. 2x + 1)`,
is content, not the start of choice B.
"""

from __future__ import annotations

import re
from typing import Optional

from .config import BoilerplateRules
from .profiles import SectionProfile


_WHITESPACE = re.compile(r"\s+")

UNICODE_FRACTIONS = {
    "½": "1/2", "⅓": "1/3", "⅔": "2/3", "¼": "1/4", "¾": "3/4",
    "⅕": "1/5", "⅖": "2/5", "⅗": "3/5", "⅘": "4/5", "⅙": "1/6",
    "⅚": "5/6", "⅐": "1/7", "⅛": "1/8", "⅜": "3/8", "⅝": "5/8",
    "⅞": "7/8", "⅑": "1/9", "⅒": "1/10",
}

MATH_SYMBOLS = {
    "×": "*",
    "÷": "/",
    "≤": "<=",
    "≥": ">=",
    "≠": "!=",
}

_FRACTION_REWRITES = [
    (re.compile(r"(\d+)\s*/\s*(\d+)"), r"\1/\2"),
    (re.compile(r"(\d+)\s+over\s+(\d+)", re.IGNORECASE), r"\1/\2"),
]

_MATH_REWRITES = [
    (re.compile(r"(\d+)\s+point\s+(\d+)", re.IGNORECASE), r"\1.\2"),
    (re.compile(r"\bsqrt\s*\(([^)]+)\)", re.IGNORECASE), r"√(\1)"),
    (re.compile(r"√\s*\(\s*([^)]+?)\s*\)"), r"√(\1)"),
    (re.compile(r"(\w+)\s+squared\b", re.IGNORECASE), r"\1^2"),
    (re.compile(r"(\w+)\s+cubed\b", re.IGNORECASE), r"\1^3"),
]


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def normalize_fractions(text: str) -> str:
    """Unicode fraction glyphs, `n / m` and `n over m` become `n/m`."""
    for glyph, plain in UNICODE_FRACTIONS.items():
        text = text.replace(glyph, plain)
    for pattern, replacement in _FRACTION_REWRITES:
        text = pattern.sub(replacement, text)
    return text


def normalize_math_text(text: str) -> str:
    """Rewrite fraction and symbol glyphs the PDF text layer mangles."""
    text = normalize_fractions(text)
    for pattern, replacement in _MATH_REWRITES:
        text = pattern.sub(replacement, text)
    for glyph, plain in MATH_SYMBOLS.items():
        text = text.replace(glyph, plain)
    return text


def find_choice_markers(
    text: str,
    marker: re.Pattern[str],
    first_only: bool = False,
) -> list[re.Match[str]]:
    """
    Choice markers that sit at parenthesis depth zero, in order.

    A closing parenthesis never drives the depth below zero, so a stray
    `)` cannot hide every later marker.
    """
    found: list[re.Match[str]] = []
    depth = 0
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "(":
            depth += 1
        elif ch == ")":
            if depth > 0:
                depth -= 1
        elif depth == 0:
            m = marker.match(text, i)
            if m:
                found.append(m)
                if first_only:
                    break
                i = m.end()
                continue
        i += 1
    return found


class ChoiceExtractor:
    """
    Splits question blocks for one section profile.

    Usage:
        extractor = ChoiceExtractor(profile, rules)
        prompt, region = extractor.split_block(block)
        choices, letters = extractor.extract(region, number)
    """

    def __init__(self, profile: SectionProfile, rules: BoilerplateRules):
        self.profile = profile
        self.rules = rules
        self.marker = profile.choice_marker()

    def split_block(self, block: str) -> tuple[str, str]:
        """
        Split at the first depth-zero marker into (prompt, choice region).

        An unclosed `(` in the prompt leaves no depth-zero marker; the
        split then falls back to the first marker at any depth.
        """
        found = find_choice_markers(block, self.marker, first_only=True)
        first = found[0] if found else self.marker.search(block)
        if not first:
            return block, ""
        cut = first.start()
        return block[:cut], block[cut:]

    def extract(
        self, region: str, number: Optional[int] = None
    ) -> tuple[list[str], list[str]]:
        """
        Split a choice region into parallel (choices, letters) lists.

        Sections with a fixed choice count are truncated or padded with
        empty strings to exactly that many entries. Where the profile has
        slot letters and `number` is given, each choice goes into its own
        letter's slot.
        """
        choices: list[str] = []
        letters: list[str] = []

        markers = find_choice_markers(region, self.marker)
        for idx, m in enumerate(markers):
            stop = markers[idx + 1].start() if idx + 1 < len(markers) else len(region)
            text = self._clean(region[m.end():stop])
            if text:
                choices.append(text)
                letters.append(m.group(1))

        slots = self.profile.slots_for(number) if number is not None else None
        if slots is not None:
            return self._place_by_letter(choices, letters, slots)

        count = self.profile.fixed_choice_count
        if count is not None:
            choices = choices[:count]
            letters = letters[:count]
            while len(choices) < count:
                choices.append("")
                letters.append("")

        return choices, letters

    def _place_by_letter(
        self, choices: list[str], letters: list[str], slots: str
    ) -> tuple[list[str], list[str]]:
        # A/F share slot 0, B/G slot 1, and so on, so a letter printed
        # with the wrong parity still lands in its position
        odd, even = self.profile.slot_letters
        placed = [""] * len(slots)
        for text, letter in zip(choices, letters):
            group = odd if letter in odd else even
            pos = group.find(letter)
            if 0 <= pos < len(placed) and not placed[pos]:
                placed[pos] = text
        return placed, list(slots)

    def _clean(self, text: str) -> str:
        text = normalize_whitespace(text)
        if self.profile.clean_choices:
            text = self.rules.truncate_choice(text)
        if self.profile.normalize_math:
            text = normalize_math_text(text)
        elif self.profile.normalize_fractions:
            text = normalize_fractions(text)
        return text

    def padded_count(self, choices: list[str]) -> int:
        """Number of empty placeholder slots."""
        return sum(1 for c in choices if not c)

    def all_empty(self, choices: list[str]) -> bool:
        return not any(c.strip() for c in choices)
