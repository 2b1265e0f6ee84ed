"""
Test Suite for the Parser Engine
================================
End-to-end runs over pre-extracted page text and generated PDFs.
"""

from __future__ import annotations

import base64
import json

import pytest

from act_parser import parse_pdf
from act_parser.bundle import build_bundle, write_bundle
from act_parser.config import ParserConfig
from act_parser.engine import ParserEngine
from act_parser.exceptions import DocumentDecodeError, UnsupportedFormatError
from act_parser.models import AnomalyType, FormatVariant, ParseResult
from act_parser.page_source import PdfPageTextSource, StaticPageTextSource

from .conftest import CLASSIC_PAGES, ENHANCED_PAGES, make_pdf, static_engine

ENHANCED_NAME = "Preparing_for_the_ACT.pdf"
CLASSIC_NAME = "ACT_2015_Form_1572CPRE.pdf"


# ═══════════════════════════════════════════════════════════════════════════════
# ENHANCED LAYOUT
# ═══════════════════════════════════════════════════════════════════════════════


class TestEnhancedParse:
    """Full pipeline on the enhanced layout."""

    @pytest.fixture
    def result(self) -> ParseResult:
        return static_engine(ENHANCED_PAGES).parse(b"%PDF-static", ENHANCED_NAME)

    def test_format_decision(self, result):
        assert result.format == FormatVariant.ENHANCED
        assert result.confidence == 0.9
        assert "Preparing" in result.reason
        assert result.page_count == len(ENHANCED_PAGES)

    def test_sections_in_subject_order(self, result):
        assert [s.section.value for s in result.sections] == [
            "english", "math", "reading",
        ]
        assert [len(s.questions) for s in result.sections] == [2, 2, 1]

    def test_english_questions(self, result):
        english = result.get_section("english")
        q1, q2 = english.questions
        assert q1.id == "english-1"
        assert q1.prompt == "Which choice best maintains the tone of the essay?"
        assert q1.choices == ["NO CHANGE", "kept watching", "had kept", "keeping"]
        assert q1.answer_index == 0
        assert q2.choice_letters == ["F", "G", "H", "J"]
        assert q2.choices[-1] == "OMIT the underlined portion."
        assert q2.answer_letter == "H"
        assert q2.answer_index == 2

    def test_english_passage(self, result):
        q1 = result.get_section("english").questions[0]
        assert q1.passage_id == "passage-I"
        assert q1.passage == (
            "The Lighthouse Keeper My grandfather kept the light for thirty years."
        )

    def test_math_padding_and_answers(self, result):
        math = result.get_section("math")
        q1, q2 = math.questions
        assert q1.choices == ["7", "12", "34", "43"]
        assert q1.answer_index == 1
        assert q2.choices == ["8", "15", "16", ""]
        assert q2.answer_index == 1
        assert [a.type for a in q2.anomalies] == [AnomalyType.PADDED_CHOICES]

    def test_reading_concatenated_key(self, result):
        q1 = result.get_section("reading").questions[0]
        assert q1.answer_letter == "A"
        assert q1.answer_index == 0
        assert q1.passage_id == "passage-I"

    def test_pages(self, result):
        assert result.section_pages == {"english": 2, "math": 3, "reading": 4}
        english = result.get_section("english")
        assert english.section_pages == {"english": 2}
        assert english.page_questions == {2: ["english-1", "english-2"]}
        assert all(
            q.page_number is not None
            for s in result.sections for q in s.questions
        )

    def test_validation(self, result):
        validation = result.validation
        assert validation.total_questions_detected == 5
        assert validation.questions_with_answer == 5
        assert validation.success_rate == 100.0
        assert validation.invariant_violations == []
        assert validation.found_question_counts == {
            "english": 2, "math": 2, "reading": 1,
        }

    def test_properties_hold(self, result):
        for section in result.sections:
            numbers = [q.number for q in section.questions]
            assert numbers == sorted(set(numbers))
            for q in section.questions:
                assert len(q.choices) == len(q.choice_letters)
                if q.answer_index is not None:
                    assert 0 <= q.answer_index < len(q.choices)


# ═══════════════════════════════════════════════════════════════════════════════
# CLASSIC LAYOUT
# ═══════════════════════════════════════════════════════════════════════════════


class TestClassicParse:
    """Full pipeline on the classic layout."""

    @pytest.fixture
    def result(self) -> ParseResult:
        return static_engine(CLASSIC_PAGES).parse(b"%PDF-static", CLASSIC_NAME)

    def test_format_decision(self, result):
        assert result.format == FormatVariant.CLASSIC
        assert result.confidence == 0.8

    def test_english_empty_prompts(self, result):
        english = result.get_section("english")
        assert [q.prompt for q in english.questions] == ["", ""]
        assert english.questions[1].choices[-1] == "lake; and"
        assert english.questions[1].answer_index == 3

    def test_math_five_choices(self, result):
        q1, q2 = result.get_section("math").questions
        assert q1.choice_letters == ["A", "B", "C", "D", "E"]
        assert q1.answer_index == 2
        assert q2.prompt == "What is 1/2 of 10^2?"
        assert q2.answer_letter == "K"
        assert q2.answer_index == 4

    def test_reading_line_pair_key(self, result):
        q1 = result.get_section("reading").questions[0]
        assert q1.answer_index == 1
        assert q1.passage == (
            "PROSE FICTION: The narrator returns home. "
            "I had not seen the house in ten years."
        )

    def test_pages(self, result):
        assert result.section_pages == {"english": 2, "math": 3, "reading": 4}


# ═══════════════════════════════════════════════════════════════════════════════
# DISPATCH / ERRORS
# ═══════════════════════════════════════════════════════════════════════════════


class TestDispatch:
    """Format overrides, isolation, and failure handling."""

    def test_override_reason(self):
        result = static_engine(ENHANCED_PAGES).parse(
            b"%PDF-static", "scan.pdf", format_override="enhanced"
        )
        assert result.format == FormatVariant.ENHANCED
        assert result.confidence == 1.0
        assert result.reason == "User selected Enhanced ACT format"
        assert len(result.sections) == 3

    def test_wrong_format_hint(self):
        result = static_engine(ENHANCED_PAGES).parse(
            b"%PDF-static", ENHANCED_NAME, format_override=FormatVariant.CLASSIC
        )
        assert result.sections == []
        assert "try the Enhanced ACT format" in result.reason

    def test_other_format_extracts_nothing(self):
        result = static_engine(ENHANCED_PAGES).parse(
            b"%PDF-static", ENHANCED_NAME, format_override="other"
        )
        assert result.format == FormatVariant.OTHER
        assert result.sections == []

    def test_unknown_override(self):
        with pytest.raises(UnsupportedFormatError):
            static_engine(ENHANCED_PAGES).parse(b"x", ENHANCED_NAME, "legacy")

    def test_missing_section_does_not_block_others(self):
        pages = [p for p in ENHANCED_PAGES if not p.startswith("MATHEMATICS")]
        result = static_engine(pages).parse(b"%PDF-static", ENHANCED_NAME)
        assert [s.section.value for s in result.sections] == ["english", "reading"]
        assert "math" not in result.section_pages

    def test_section_failure_is_isolated(self, monkeypatch):
        from act_parser import engine as engine_module

        real = engine_module.extract_answer_key

        def flaky(text, profile):
            if profile.subject.value == "math":
                raise RuntimeError("key table exploded")
            return real(text, profile)

        monkeypatch.setattr(engine_module, "extract_answer_key", flaky)
        result = static_engine(ENHANCED_PAGES).parse(b"%PDF-static", ENHANCED_NAME)
        assert result.section_errors == {"math": "key table exploded"}
        assert [s.section.value for s in result.sections] == ["english", "reading"]

    def test_decode_error_propagates(self):
        def broken(data):
            raise DocumentDecodeError("bad bytes")

        engine = ParserEngine(
            ParserConfig(log_level="WARNING"), source_factory=broken
        )
        with pytest.raises(DocumentDecodeError):
            engine.parse(b"x", ENHANCED_NAME)

    def test_missing_answer_key(self):
        pages = ENHANCED_PAGES[:-1]
        result = static_engine(pages).parse(b"%PDF-static", ENHANCED_NAME)
        assert result.validation.questions_with_answer == 0
        q = result.get_section("english").questions[0]
        assert q.answer_index is None
        assert q.anomalies == []

    def test_deterministic(self):
        engine = static_engine(CLASSIC_PAGES)
        first = engine.parse(b"%PDF-static", CLASSIC_NAME)
        second = engine.parse(b"%PDF-static", CLASSIC_NAME)
        assert first.model_dump() == second.model_dump()

    def test_save_outputs(self, tmp_path):
        engine = static_engine(
            ENHANCED_PAGES,
            output_dir=str(tmp_path),
            save_output=True,
            save_bundle=True,
        )
        engine.parse(b"%PDF-static", ENHANCED_NAME)

        parsed = json.loads(
            (tmp_path / "Preparing_for_the_ACT_parsed.json").read_text("utf-8")
        )
        assert parsed["format"] == "enhanced"
        bundle = json.loads(
            (tmp_path / "Preparing_for_the_ACT_bundle.json").read_text("utf-8")
        )
        assert base64.b64decode(bundle["pdfData"]) == b"%PDF-static"


# ═══════════════════════════════════════════════════════════════════════════════
# PDF SOURCE
# ═══════════════════════════════════════════════════════════════════════════════


class TestPdfSource:
    """PyMuPDF-backed page source and parsing real PDF bytes."""

    def test_page_text(self, enhanced_pdf):
        with PdfPageTextSource(enhanced_pdf) as source:
            assert source.page_count == len(ENHANCED_PAGES)
            fragments = source.get_page_text(3)
            assert fragments[0] == "MATHEMATICS TEST"
            assert "1. What is the value of 3x when x = 4?" in fragments

    def test_page_out_of_range(self, enhanced_pdf):
        with PdfPageTextSource(enhanced_pdf) as source:
            with pytest.raises(IndexError):
                source.get_page_text(0)

    def test_sources_with_different_settings_coexist(self, enhanced_pdf):
        plain = PdfPageTextSource(enhanced_pdf, text_flags=0)
        sorted_ = PdfPageTextSource(enhanced_pdf, sort=True)
        assert plain.page_text(2) == sorted_.page_text(2)
        plain.close()
        sorted_.close()

    def test_garbage_bytes(self):
        with pytest.raises(DocumentDecodeError):
            PdfPageTextSource(b"this is not a pdf")

    def test_empty_bytes(self):
        with pytest.raises(DocumentDecodeError):
            PdfPageTextSource(b"")

    def test_parse_pdf_bytes(self, enhanced_pdf):
        engine = ParserEngine(ParserConfig(log_level="WARNING"))
        result = engine.parse(enhanced_pdf, ENHANCED_NAME)
        assert [len(s.questions) for s in result.sections] == [2, 2, 1]
        assert result.section_pages == {"english": 2, "math": 3, "reading": 4}
        assert result.validation.success_rate == 100.0

    def test_parse_file(self, enhanced_pdf, tmp_path):
        path = tmp_path / ENHANCED_NAME
        path.write_bytes(enhanced_pdf)
        result = ParserEngine(ParserConfig(log_level="WARNING")).parse_file(str(path))
        assert result.format == FormatVariant.ENHANCED

    def test_parse_file_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ParserEngine().parse_file(str(tmp_path / "missing.pdf"))

    def test_module_entry_point(self, enhanced_pdf):
        result = parse_pdf(enhanced_pdf, ENHANCED_NAME)
        assert len(result.sections) == 3

    def test_decode_failure_through_engine(self):
        with pytest.raises(DocumentDecodeError):
            ParserEngine().parse(b"%PDF-1.4 truncated", "broken.pdf")


# ═══════════════════════════════════════════════════════════════════════════════
# BUNDLE
# ═══════════════════════════════════════════════════════════════════════════════


class TestBundle:
    """Test the storable test bundle."""

    @pytest.fixture
    def result(self) -> ParseResult:
        return static_engine(ENHANCED_PAGES).parse(b"%PDF-static", ENHANCED_NAME)

    def test_shape(self, result):
        bundle = build_bundle(result, "Practice 1", b"%PDF-static")
        assert bundle["name"] == "Practice 1"
        assert set(bundle["sections"]) == {"english", "math", "reading"}
        assert bundle["sectionPages"] == {"english": 2, "math": 3, "reading": 4}
        assert bundle["pageQuestions"]["math"] == {"3": ["math-1", "math-2"]}
        assert base64.b64decode(bundle["pdfData"]) == b"%PDF-static"

    def test_questions_use_camel_case(self, result):
        bundle = build_bundle(result, "Practice 1")
        q = bundle["sections"]["english"][0]
        assert q["choiceLetters"] == ["A", "B", "C", "D"]
        assert q["answerIndex"] == 0
        assert q["pageNumber"] == 2
        assert "pdfData" not in bundle

    def test_write_bundle(self, result, tmp_path):
        bundle = build_bundle(result, "Practice 1", b"%PDF")
        path = write_bundle(bundle, tmp_path / "nested" / "bundle.json")
        assert json.loads(path.read_text("utf-8"))["name"] == "Practice 1"


class TestStaticSource:
    """Test the pre-extracted page source."""

    def test_string_pages_split_into_fragments(self):
        source = StaticPageTextSource(["a\nb", ["c", "d"]])
        assert source.page_count == 2
        assert source.get_page_text(1) == ["a", "b"]
        assert source.page_text(2) == "c\nd"

    def test_out_of_range(self):
        with pytest.raises(IndexError):
            StaticPageTextSource(["a"]).get_page_text(2)

    def test_make_pdf_round_trip(self):
        data = make_pdf(["hello world"])
        with PdfPageTextSource(data) as source:
            assert source.get_page_text(1) == ["hello world"]
