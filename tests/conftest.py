"""
Shared fixtures: page texts for both layouts and generated PDFs.
"""

from __future__ import annotations

import fitz
import pytest

from act_parser.config import ParserConfig, load_boilerplate
from act_parser.engine import ParserEngine
from act_parser.page_source import StaticPageTextSource


ENHANCED_PAGES = [
    "Preparing for the ACT\nPractice Test 1",
    (
        "ENGLISH TEST\n"
        "35 Minutes—50 Questions\n"
        "PASSAGE I\n"
        "The Lighthouse Keeper\n"
        "My grandfather kept the light for thirty years.\n"
        "1. Which choice best maintains the tone of the essay?\n"
        "A. NO CHANGE\n"
        "B. kept watching\n"
        "C. had kept\n"
        "D. keeping\n"
        "2. Which choice most effectively concludes the paragraph?\n"
        "F. NO CHANGE\n"
        "G. the tower\n"
        "H. that light\n"
        "J. OMIT the underlined portion.\n"
        "GO ON TO THE NEXT PAGE."
    ),
    (
        "MATHEMATICS TEST\n"
        "50 Minutes—45 Questions\n"
        "DO YOUR FIGURING HERE.\n"
        "1. What is the value of 3x when x = 4?\n"
        "A. 7\n"
        "B. 12\n"
        "C. 34\n"
        "D. 43\n"
        "2. A rectangle is 5 long and 3 wide. What is its area?\n"
        "F. 8\n"
        "G. 15\n"
        "H. 16"
    ),
    (
        "READING TEST\n"
        "40 Minutes—36 Questions\n"
        "PASSAGE I\n"
        "LITERARY NARRATIVE: This passage is adapted from a novel.\n"
        "The river ran high that spring, and the town waited.\n"
        "1. The main purpose of the passage is to:\n"
        "A. describe a flood.\n"
        "B. praise the town.\n"
        "C. criticize the river.\n"
        "D. explain a custom."
    ),
    "SCIENCE TEST\n35 Minutes—40 Questions",
    (
        "English Scoring Key\n"
        "1\n"
        "A\n"
        "2.\n"
        "H\n"
        "Mathematics Scoring Key\n"
        "1. B ____\n"
        "2. G ____\n"
        "Reading Scoring Key\n"
        "1A 2F\n"
        "Science Scoring Key"
    ),
]


CLASSIC_PAGES = [
    "The ACT Form 1572CPRE",
    (
        "ENGLISH TEST\n"
        "45 Minutes—75 Questions\n"
        "PASSAGE I\n"
        "Summer at the Lake\n"
        "We spent every summer at the lake.\n"
        "1. A. NO CHANGE\n"
        "B. spends\n"
        "C. spending\n"
        "D. had spent\n"
        "2. F. NO CHANGE\n"
        "G. lake, and\n"
        "H. lake and,\n"
        "J. lake; and PASSAGE II\n"
        "END OF TEST 1"
    ),
    (
        "MATHEMATICS TEST\n"
        "60 Minutes—60 Questions\n"
        "1. If 2x + 3 = 11, what is x?\n"
        "A. 2\n"
        "B. 3\n"
        "C. 4\n"
        "D. 5\n"
        "E. 7\n"
        "2. What is ½ of 10 squared?\n"
        "F. 25\n"
        "G. 50\n"
        "H. 100\n"
        "J. 200\n"
        "K. 400\n"
        "END OF TEST 2"
    ),
    (
        "READING TEST\n"
        "35 Minutes—40 Questions\n"
        "PASSAGE I\n"
        "PROSE FICTION: The narrator returns home.\n"
        "I had not seen the house in ten years.\n"
        "1. The narrator's attitude is best described as:\n"
        "A. hopeful.\n"
        "B. bitter.\n"
        "C. indifferent.\n"
        "D. amused.\n"
        "END OF TEST 3"
    ),
    "SCIENCE TEST\n35 Minutes—40 Questions",
    (
        "Test 1: English—Scoring Key\n"
        "1. A\n"
        "2. J\n"
        "Test 2: Mathematics—Scoring Key\n"
        "1C 2K\n"
        "Test 3: Reading—Scoring Key\n"
        "1\n"
        "B\n"
        "Test 4: Science—Scoring Key"
    ),
]


def make_pdf(pages: list[str]) -> bytes:
    """Build a PDF with one text page per entry."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((50, 60), text, fontsize=10)
    data = doc.tobytes()
    doc.close()
    return data


def static_engine(pages: list[str], **config) -> ParserEngine:
    """Engine that reads pre-extracted page text instead of PDF bytes."""
    config.setdefault("log_level", "WARNING")
    return ParserEngine(
        ParserConfig(**config),
        source_factory=lambda data: StaticPageTextSource(pages),
    )


@pytest.fixture
def rules():
    return load_boilerplate()


@pytest.fixture
def enhanced_pdf() -> bytes:
    # base14 fonts have no em dash; the header anchors accept a hyphen
    return make_pdf([p.replace("—", "-") for p in ENHANCED_PAGES])
