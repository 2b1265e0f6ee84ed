"""
ACT Practice Test Parser
========================
Reconstructs multiple-choice questions from ACT practice-test PDFs that
carry no structural markup.

Architecture:
    - Page Text Source: Decodes the PDF into per-page text fragments
    - Format Detector: Picks the enhanced or classic layout from the filename
    - Section Slicer: Cuts the combined text at subject header anchors
    - Question Segmenter: Finds validated question numbers and blocks
    - Choice Extractor: Splits answer choices with parenthesis awareness
    - Answer Key Extractor: Reads the scoring-key tables
    - Page Mapper: Assigns every question the page it starts on

Version: 1.0.0
"""

__version__ = "1.0.0"


def parse_pdf(data: bytes, filename: str, format_override=None):
    """Parse PDF bytes with a default-configured engine."""
    from .engine import ParserEngine

    return ParserEngine().parse(data, filename, format_override=format_override)
