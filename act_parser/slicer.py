"""
Section Slicer
==============
Cuts one section out of the combined document text using a start/end
anchor pair.
"""

from __future__ import annotations

import re
from typing import Optional


def slice_between(
    text: str,
    start: re.Pattern[str],
    end: Optional[re.Pattern[str]] = None,
) -> Optional[str]:
    """
    Return text from the first `start` match up to the first `end` match
    after it, or to the end of the text when `end` never matches.

    Returns None when `start` does not occur.
    """
    start_match = start.search(text)
    if not start_match:
        return None

    stop = len(text)
    if end is not None:
        end_match = end.search(text, start_match.end())
        if end_match:
            stop = end_match.start()

    return text[start_match.start():stop]


def find_anchor_page(pages: list[str], anchor: re.Pattern[str]) -> Optional[int]:
    """1-based number of the first page whose text matches `anchor`."""
    for idx, page_text in enumerate(pages, start=1):
        if anchor.search(page_text):
            return idx
    return None
