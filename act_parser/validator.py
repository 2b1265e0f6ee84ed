"""
Validation Engine
=================
Post-parse validation and reporting.

After parsing each PDF, generates a report per subject:
    - Questions detected vs. the count the section header promises
    - Missing Question Numbers (never extracted)
    - Duplicate Question IDs
    - Questions Missing Answer
    - Invariant violations (choice counts, letter halves, answer range)
    - Anomaly breakdown by type

Never silently ignores failures.
"""

from __future__ import annotations

import logging
from collections import Counter

from .models import Section, ValidationReport
from .profiles import FormatProfile

logger = logging.getLogger(__name__)

FIRST_HALF = set("ABCDE")
SECOND_HALF = set("FGHJK")


class ValidationEngine:
    """
    Validates extracted sections and produces a report.
    """

    def validate(
        self,
        sections: list[Section],
        profile: FormatProfile,
    ) -> ValidationReport:
        """
        Run full validation on extracted sections.

        Args:
            sections: Sections returned by the engine.
            profile: Format profile the sections were extracted with.

        Returns:
            ValidationReport with all detected issues.
        """
        report = ValidationReport()

        for section_profile in profile.sections:
            report.expected_question_counts[section_profile.subject.value] = (
                section_profile.max_question
            )

        questions = [q for s in sections for q in s.questions]
        if not questions:
            logger.warning("No questions to validate")

        report.total_questions_detected = len(questions)

        id_counts = Counter(q.id for q in questions)
        report.duplicate_question_ids = sorted(
            qid for qid, count in id_counts.items() if count > 1
        )

        for section_profile in profile.sections:
            subject = section_profile.subject.value
            section = next(
                (s for s in sections if s.section == section_profile.subject),
                None,
            )
            found = {q.number for q in section.questions} if section else set()
            report.found_question_counts[subject] = len(found)
            report.missing_question_numbers[subject] = sorted(
                set(section_profile.question_range) - found
            )

        anomaly_counts: dict[str, int] = {}
        for section in sections:
            section_profile = profile.section(section.section)
            for q in section.questions:
                if q.answer_index is not None:
                    report.questions_with_answer += 1
                else:
                    report.questions_missing_answer.append(q.id)

                report.invariant_violations.extend(
                    self._check_question(q, section_profile)
                )

                for anomaly in q.anomalies:
                    key = anomaly.type.value
                    anomaly_counts[key] = anomaly_counts.get(key, 0) + 1

        report.anomaly_breakdown = anomaly_counts

        self._log_summary(report)
        return report

    def _check_question(self, q, section_profile) -> list[str]:
        violations = []
        if section_profile is None:
            return violations

        fixed = section_profile.fixed_choice_count
        if fixed is not None and len(q.choices) != fixed:
            violations.append(
                f"{q.id}: {len(q.choices)} choices, expected {fixed}"
            )
        if fixed is None and len(q.choices) > len(section_profile.alphabet):
            violations.append(f"{q.id}: {len(q.choices)} choices")

        letters = {letter for letter in q.choice_letters if letter}
        stray = letters - set(section_profile.alphabet)
        if stray:
            violations.append(
                f"{q.id}: letters {''.join(sorted(stray))} outside alphabet"
            )
        if letters & FIRST_HALF and letters & SECOND_HALF:
            violations.append(
                f"{q.id}: mixes A-E and F-K choice letters"
            )

        if q.answer_index is not None and not (
            0 <= q.answer_index < len(q.choices)
        ):
            violations.append(f"{q.id}: answer index out of range")
        return violations

    def _log_summary(self, report: ValidationReport):
        logger.info("=" * 60)
        logger.info("VALIDATION REPORT")
        logger.info("=" * 60)
        logger.info(
            f"Total Questions Detected: {report.total_questions_detected}"
        )
        logger.info(
            f"With Answer: {report.questions_with_answer} "
            f"({report.success_rate}%)"
        )
        for subject, expected in report.expected_question_counts.items():
            found = report.found_question_counts.get(subject, 0)
            missing = report.missing_question_numbers.get(subject, [])
            logger.info(
                f"  {subject}: {found}/{expected} found, "
                f"{len(missing)} missing"
            )
        logger.info(
            f"Duplicate Question IDs: {len(report.duplicate_question_ids)}"
        )
        logger.info(
            f"Questions Missing Answer: "
            f"{len(report.questions_missing_answer)}"
        )
        logger.info(
            f"Invariant Violations: {len(report.invariant_violations)}"
        )
        for violation in report.invariant_violations:
            logger.warning(f"  • {violation}")

        if report.anomaly_breakdown:
            logger.info("Anomaly Breakdown:")
            for anomaly_type, count in sorted(
                report.anomaly_breakdown.items()
            ):
                logger.info(f"  • {anomaly_type}: {count}")

        logger.info("=" * 60)
