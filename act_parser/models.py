"""
Data Models
===========
Pydantic models for structured ACT parsing output.
All models are serializable to JSON; question fields use camelCase aliases
so the dumped shape matches what the test store persists.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    model_validator,
)
from pydantic.alias_generators import to_camel


# ─── Enums ────────────────────────────────────────────────────────────────────


class FormatVariant(str, Enum):
    """Document layout variant."""
    ENHANCED = "enhanced"
    CLASSIC = "classic"
    OTHER = "other"


class Subject(str, Enum):
    """Subject sections the parser models."""
    ENGLISH = "english"
    MATH = "math"
    READING = "reading"


class AnomalyType(str, Enum):
    """Issues recorded on a question while it is assembled."""
    MISSING_ANSWER = "missing_answer"
    UNRECOGNIZED_ANSWER_LETTER = "unrecognized_answer_letter"
    ANSWER_OUT_OF_RANGE = "answer_out_of_range"
    PADDED_CHOICES = "padded_choices"
    PAGE_FALLBACK = "page_fallback"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ─── Anomaly Model ────────────────────────────────────────────────────────────


class Anomaly(_CamelModel):
    """A structural anomaly detected on a question."""
    type: AnomalyType
    severity: int = Field(
        ge=0, le=100,
        description="Severity score 0-100"
    )
    message: str
    context: Optional[dict] = None


# ─── Question / Section Models ────────────────────────────────────────────────


class Question(_CamelModel):
    """
    One reconstructed multiple-choice question.

    `choices` and `choice_letters` are parallel lists. `answer_index`
    stays unset when no key entry was found or the key letter could not
    be placed on a choice; `answer_letter` keeps the raw key letter.
    """
    id: str = Field(description='"<subject>-<number>"')
    prompt: str
    choices: list[str] = Field(default_factory=list)
    choice_letters: list[str] = Field(default_factory=list)
    answer_index: Optional[int] = None
    answer_letter: Optional[str] = None
    page_number: Optional[int] = None
    passage_id: Optional[str] = None
    passage: Optional[str] = None
    anomalies: list[Anomaly] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_parallel_choices(self) -> Question:
        if len(self.choices) != len(self.choice_letters):
            raise ValueError(
                f"{self.id}: {len(self.choices)} choices but "
                f"{len(self.choice_letters)} choice letters"
            )
        if self.answer_index is not None and not (
            0 <= self.answer_index < len(self.choices)
        ):
            raise ValueError(
                f"{self.id}: answer index {self.answer_index} out of range"
            )
        return self

    @property
    def number(self) -> int:
        """Question number parsed from the id."""
        return int(self.id.rsplit("-", 1)[1])

    @property
    def subject(self) -> str:
        return self.id.rsplit("-", 1)[0]


class Section(_CamelModel):
    """All questions of one subject plus their page indexes."""
    section: Subject
    questions: list[Question] = Field(default_factory=list)
    section_pages: dict[str, int] = Field(default_factory=dict)
    page_questions: dict[int, list[str]] = Field(default_factory=dict)


class FormatDetection(BaseModel):
    """Outcome of filename-based format detection."""
    format: FormatVariant
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str


# ─── Validation / Parse Result Models ────────────────────────────────────────


class ValidationReport(BaseModel):
    """Post-parse validation report."""
    total_questions_detected: int = 0
    questions_with_answer: int = 0
    expected_question_counts: dict[str, int] = Field(default_factory=dict)
    found_question_counts: dict[str, int] = Field(default_factory=dict)
    missing_question_numbers: dict[str, list[int]] = Field(
        default_factory=dict
    )
    duplicate_question_ids: list[str] = Field(default_factory=list)
    questions_missing_answer: list[str] = Field(default_factory=list)
    invariant_violations: list[str] = Field(default_factory=list)
    anomaly_breakdown: dict[str, int] = Field(default_factory=dict)

    @computed_field
    @property
    def success_rate(self) -> float:
        """Share of detected questions that carry an answer."""
        if self.total_questions_detected == 0:
            return 0.0
        return round(
            self.questions_with_answer / self.total_questions_detected * 100,
            2
        )


class ParseResult(BaseModel):
    """
    Complete output of a parse run.
    Owned by the caller once returned.
    """
    sections: list[Section] = Field(default_factory=list)
    format: FormatVariant
    reason: str
    confidence: float = 1.0
    page_count: int = 0
    section_pages: dict[str, int] = Field(default_factory=dict)
    section_errors: dict[str, str] = Field(default_factory=dict)
    validation: ValidationReport = Field(default_factory=ValidationReport)
    parser_version: str = "1.0.0"

    def get_section(self, subject: Subject | str) -> Optional[Section]:
        """Return the section for a subject, if it was extracted."""
        key = Subject(subject)
        for section in self.sections:
            if section.section == key:
                return section
        return None
