"""
ACT Parser Engine
=================
Main orchestrator that combines format detection, section slicing,
question segmentation, answer keys, and page mapping into a complete
parsing pipeline.

Usage:
    engine = ParserEngine(config)
    result = engine.parse(pdf_bytes, "Preparing_for_the_ACT.pdf")
    # result is a ParseResult with one Section per extracted subject

Architecture:
    PDF bytes → PageTextSource → combined text → SectionSlicer →
    QuestionSegmenter → AnswerKeyExtractor → PageMapper →
    ValidationEngine → ParseResult (JSON)
"""

from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Callable, Optional

from . import __version__
from .answer_key import apply_answer_key, extract_answer_key
from .bundle import build_bundle, write_bundle
from .config import ParserConfig, load_boilerplate
from .detector import detect_format
from .exceptions import DocumentDecodeError
from .models import FormatDetection, FormatVariant, ParseResult, Section
from .page_mapper import map_questions_to_pages
from .page_source import PageTextSource, PdfPageTextSource
from .profiles import FormatProfile, SectionProfile, get_profile
from .segmenter import QuestionSegmenter
from .slicer import find_anchor_page, slice_between
from .validator import ValidationEngine

logger = logging.getLogger(__name__)

SourceFactory = Callable[[bytes], PageTextSource]


class ParserEngine:
    """
    Main ACT parsing engine.

    Orchestrates the full pipeline:
        1. Format detection (filename, or a caller override)
        2. Page text extraction and section start pages
        3. Per-subject segmentation, answer keys, page mapping
        4. Validation
        5. Output formatting

    Subjects are processed independently: an unexpected failure in one is
    logged and recorded in `section_errors`. Decode failures propagate.
    """

    def __init__(
        self,
        config: Optional[ParserConfig] = None,
        source_factory: Optional[SourceFactory] = None,
    ):
        self.config = config or ParserConfig()
        self._setup_logging()
        self.rules = load_boilerplate(self.config.boilerplate_path)
        self.source_factory = source_factory or self._open_pdf

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        # Configure root logger for the act_parser package
        package_logger = logging.getLogger("act_parser")
        package_logger.setLevel(log_level)

        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        # Console handler
        if not package_logger.handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(formatter)
            package_logger.addHandler(console)

        # File handler
        if self.config.log_file:
            log_path = Path(self.config.log_file).absolute()
            already = any(
                isinstance(h, logging.FileHandler)
                and Path(h.baseFilename) == log_path
                for h in package_logger.handlers
            )
            if not already:
                log_path.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(log_path, encoding="utf-8")
                file_handler.setLevel(log_level)
                file_handler.setFormatter(formatter)
                package_logger.addHandler(file_handler)

    def _open_pdf(self, data: bytes) -> PageTextSource:
        return PdfPageTextSource(
            data,
            text_flags=self.config.text_flags,
            sort=self.config.sort_text,
        )

    # ── Entry points ──────────────────────────────────────────────────────

    def parse_file(
        self,
        pdf_path: str,
        format_override: Optional[FormatVariant | str] = None,
    ) -> ParseResult:
        """
        Parse a PDF file from disk.

        Raises:
            FileNotFoundError: If the PDF file doesn't exist.
            DocumentDecodeError: If the file is not a readable PDF.
        """
        pdf_path = os.path.abspath(pdf_path)
        if not os.path.exists(pdf_path):
            raise FileNotFoundError(f"PDF not found: {pdf_path}")

        with open(pdf_path, "rb") as f:
            data = f.read()
        return self.parse(data, os.path.basename(pdf_path), format_override)

    def parse(
        self,
        data: bytes,
        filename: str,
        format_override: Optional[FormatVariant | str] = None,
    ) -> ParseResult:
        """
        Parse PDF bytes into per-subject question sections.

        Args:
            data: Raw document bytes.
            filename: Original filename, used for format detection.
            format_override: Layout to use instead of detecting one.

        Returns:
            ParseResult with sections, format decision, and validation.

        Raises:
            DocumentDecodeError: If the bytes cannot be decoded.
            UnsupportedFormatError: If the override names no known layout.
        """
        start_time = time.time()
        logger.info(f"Starting parse of: {filename}")

        # ── Step 1: Format decision ───────────────────────────────────
        if format_override is not None:
            profile = get_profile(format_override)
            detection = FormatDetection(
                format=profile.variant,
                confidence=1.0,
                reason=f"User selected {profile.label} format",
            )
        else:
            detection = detect_format(filename)
            profile = get_profile(detection.format)

        # ── Step 2: Read pages ────────────────────────────────────────
        with self.source_factory(data) as source:
            page_count = source.page_count
            pages = [source.page_text(n) for n in range(1, page_count + 1)]
            full_text = "\n".join(pages)
            logger.info(f"Read {page_count} pages ({len(full_text)} chars)")

            start_pages = {
                sp.subject: find_anchor_page(pages, sp.start_anchor)
                for sp in profile.sections
            }

            # ── Step 3: Subjects ──────────────────────────────────────
            sections: list[Section] = []
            section_pages: dict[str, int] = {}
            section_errors: dict[str, str] = {}

            for section_profile in profile.sections:
                subject = section_profile.subject.value
                try:
                    section = self._extract_section(
                        source,
                        full_text,
                        section_profile,
                        start_pages.get(section_profile.subject),
                    )
                except DocumentDecodeError:
                    raise
                except Exception as e:
                    logger.exception(f"{subject}: extraction failed")
                    section_errors[subject] = str(e)
                    continue

                if not section.questions:
                    logger.info(f"{subject}: no questions, section omitted")
                    continue
                sections.append(section)
                section_pages.update(section.section_pages)

        # ── Step 4: Validation ────────────────────────────────────────
        validator = ValidationEngine()
        validation = validator.validate(sections, profile)

        reason = detection.reason
        if not sections:
            reason = f"{reason}. {self._retry_hint(profile)}"

        result = ParseResult(
            sections=sections,
            format=detection.format,
            reason=reason,
            confidence=detection.confidence,
            page_count=page_count,
            section_pages=section_pages,
            section_errors=section_errors,
            validation=validation,
            parser_version=__version__,
        )

        elapsed = time.time() - start_time
        logger.info(
            f"Parse complete in {elapsed:.2f}s - "
            f"{validation.total_questions_detected} questions extracted"
        )

        # ── Step 5: Save output ───────────────────────────────────────
        if self.config.save_output or self.config.save_bundle:
            self._save_outputs(result, filename, data)

        return result

    # ── Per-subject pipeline ──────────────────────────────────────────────

    def _extract_section(
        self,
        source: PageTextSource,
        full_text: str,
        section_profile: SectionProfile,
        start_page: Optional[int],
    ) -> Section:
        subject = section_profile.subject.value

        section_text = slice_between(
            full_text, section_profile.start_anchor, section_profile.end_anchor
        )
        if section_text is None:
            logger.warning(f"{subject}: section header not found")
            return Section(section=section_profile.subject)

        segmenter = QuestionSegmenter(section_profile, self.rules)
        questions = segmenter.segment(section_text)
        logger.info(f"{subject}: {len(questions)} questions segmented")

        key = extract_answer_key(full_text, section_profile)
        apply_answer_key(questions, key)

        questions, page_questions = map_questions_to_pages(
            source, questions, start_page or 1, segmenter
        )

        section_pages = {}
        if questions:
            first = min(questions, key=lambda q: q.number)
            section_pages[subject] = first.page_number

        return Section(
            section=section_profile.subject,
            questions=questions,
            section_pages=section_pages,
            page_questions=page_questions,
        )

    @staticmethod
    def _retry_hint(profile: FormatProfile) -> str:
        if profile.variant == FormatVariant.ENHANCED:
            other = get_profile(FormatVariant.CLASSIC).label
        elif profile.variant == FormatVariant.CLASSIC:
            other = get_profile(FormatVariant.ENHANCED).label
        else:
            return "No questions extracted; try the enhanced or classic format"
        return f"No questions extracted; try the {other} format"

    # ── Output ────────────────────────────────────────────────────────────

    def _save_outputs(self, result: ParseResult, filename: str, data: bytes):
        output_dir = Path(self.config.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        stem = self._output_stem(filename)

        if self.config.save_output:
            self._save_json(result, output_dir / f"{stem}_parsed.json")
        if self.config.save_bundle:
            bundle = build_bundle(result, Path(filename).stem, data)
            try:
                write_bundle(bundle, output_dir / f"{stem}_bundle.json")
            except OSError as e:
                logger.error(f"Failed to save bundle: {e}")

        logger.info(f"Output saved to: {output_dir}")

    @staticmethod
    def _output_stem(filename: str) -> str:
        """Filesystem-safe stem of the source filename."""
        name = Path(filename).stem or "document"
        clean_name = "".join(
            c if c.isalnum() or c in "-_" else "_"
            for c in name
        )
        return clean_name[:50]

    def _save_json(self, result: ParseResult, filepath: Path):
        """Save ParseResult to JSON file."""
        try:
            data = result.model_dump(mode="json")
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            logger.info(f"Saved JSON output: {filepath}")
        except OSError as e:
            logger.error(f"Failed to save JSON: {e}")
