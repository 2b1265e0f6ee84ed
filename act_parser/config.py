"""
Configuration
=============
Engine settings and the boilerplate rule set.

The boilerplate lists (page furniture, legal paragraphs, choice cut
markers) are versioned JSON data rather than constants, so new document
printings can be handled by shipping a new rules file.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, PrivateAttr, ValidationError, field_validator

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_BOILERPLATE_PATH = Path(__file__).parent / "data" / "boilerplate.json"

_FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}


@dataclass
class ParserConfig:
    """Configuration for the parser engine."""

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Heuristic data
    boilerplate_path: Optional[str] = None

    # PDF text extraction (passed to PdfPageTextSource)
    text_flags: Optional[int] = None
    sort_text: bool = False

    # Output settings
    output_dir: str = "output"
    save_output: bool = False
    save_bundle: bool = False


# ─── Boilerplate Rules ────────────────────────────────────────────────────────


class PatternRule(BaseModel):
    """A regex with flag letters and an optional replacement."""
    pattern: str
    flags: str = ""
    replacement: str = " "

    @field_validator("flags")
    @classmethod
    def _known_flags(cls, value: str) -> str:
        unknown = set(value) - set(_FLAG_MAP)
        if unknown:
            raise ValueError(f"unknown regex flags: {''.join(sorted(unknown))}")
        return value

    @field_validator("pattern")
    @classmethod
    def _compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid pattern {value!r}: {e}") from e
        return value

    def compile(self) -> re.Pattern[str]:
        flags = 0
        for letter in self.flags:
            flags |= _FLAG_MAP[letter]
        return re.compile(self.pattern, flags)


class BoilerplateRules(BaseModel):
    """
    Strings and patterns that are not question content.

    strip:             removed from section text before segmentation
    reject_substrings: a block containing any of these is not a question
    choice_truncate:   choice text is cut at the first match (classic only)
    """
    version: int = 1
    strip: list[PatternRule] = Field(default_factory=list)
    reject_substrings: list[str] = Field(default_factory=list)
    choice_truncate: list[PatternRule] = Field(default_factory=list)

    _strip_compiled: list[tuple[re.Pattern[str], str]] = PrivateAttr(
        default_factory=list
    )
    _truncate_compiled: list[re.Pattern[str]] = PrivateAttr(
        default_factory=list
    )

    def model_post_init(self, __context) -> None:
        self._strip_compiled = [
            (rule.compile(), rule.replacement) for rule in self.strip
        ]
        self._truncate_compiled = [
            rule.compile() for rule in self.choice_truncate
        ]

    def strip_text(self, text: str) -> str:
        """Apply every strip rule in order."""
        for pattern, replacement in self._strip_compiled:
            text = pattern.sub(replacement, text)
        return text

    def is_rejected(self, text: str) -> bool:
        return any(s in text for s in self.reject_substrings)

    def truncate_choice(self, text: str) -> str:
        """Cut choice text at the earliest truncate marker."""
        cut = len(text)
        for pattern in self._truncate_compiled:
            m = pattern.search(text)
            if m and m.start() < cut:
                cut = m.start()
        return text[:cut].strip()


def load_boilerplate(path: Optional[str | Path] = None) -> BoilerplateRules:
    """
    Load boilerplate rules from JSON.

    Args:
        path: Rules file; the packaged default when omitted.

    Raises:
        ConfigError: If the file is unreadable or malformed.
    """
    rules_path = Path(path) if path else DEFAULT_BOILERPLATE_PATH
    try:
        with open(rules_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read boilerplate rules {rules_path}: {e}") from e

    try:
        rules = BoilerplateRules.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid boilerplate rules {rules_path}: {e}") from e

    logger.debug(
        f"Loaded boilerplate rules v{rules.version} from {rules_path} "
        f"({len(rules.strip)} strip, {len(rules.choice_truncate)} truncate)"
    )
    return rules
