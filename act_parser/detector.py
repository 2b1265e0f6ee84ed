"""
Format Detector
===============
Chooses the document layout from the filename alone. No document content
is read here.
"""

from __future__ import annotations

import logging
import re

from .models import FormatDetection, FormatVariant

logger = logging.getLogger(__name__)

ENHANCED_MARKER = "preparing"

# Classic (pre-2022) forms carry their administration year in the name
CLASSIC_YEARS = range(2005, 2022)
YEAR_PATTERN = re.compile(r"(?<!\d)(\d{4})(?!\d)")


def detect_format(filename: str) -> FormatDetection:
    """
    Detect the layout variant of a test from its filename.

    Rules, first match wins:
        1. contains "preparing"           → enhanced, 0.9
        2. contains "act" and a year token → classic, 0.8
        3. anything else                   → classic, 0.7

    The "other" variant is never chosen here.
    """
    lower = (filename or "").lower()

    if ENHANCED_MARKER in lower:
        detection = FormatDetection(
            format=FormatVariant.ENHANCED,
            confidence=0.9,
            reason='Filename contains "Preparing" - likely enhanced ACT official guide',
        )
    elif "act" in lower and _has_classic_year(lower):
        detection = FormatDetection(
            format=FormatVariant.CLASSIC,
            confidence=0.8,
            reason="Filename contains ACT and a test year - likely classic ACT form",
        )
    else:
        detection = FormatDetection(
            format=FormatVariant.CLASSIC,
            confidence=0.7,
            reason="Using the classic parser for tests without an enhanced marker",
        )

    logger.info(
        f"Detected format {detection.format.value} "
        f"(confidence {detection.confidence}) for {filename!r}"
    )
    return detection


def _has_classic_year(lower_name: str) -> bool:
    return any(
        int(token) in CLASSIC_YEARS
        for token in YEAR_PATTERN.findall(lower_name)
    )
