"""
Page Text Sources
=================
Decodes document bytes into per-page ordered text fragments.

PdfPageTextSource wraps PyMuPDF (fitz). Extraction options are passed to
the constructor; nothing is configured globally, so two sources with
different settings can coexist in one process.
"""

from __future__ import annotations

import logging
from typing import Optional

import fitz  # PyMuPDF

from .exceptions import DocumentDecodeError

logger = logging.getLogger(__name__)


class PageTextSource:
    """
    Interface the pipeline reads from.

    Pages are 1-indexed. Joining a page's fragments with newlines is
    assumed to reproduce reading order.
    """

    @property
    def page_count(self) -> int:
        raise NotImplementedError

    def get_page_text(self, page_number: int) -> list[str]:
        raise NotImplementedError

    def page_text(self, page_number: int) -> str:
        """Fragments of one page joined with newlines."""
        return "\n".join(self.get_page_text(page_number))

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _check_page(self, page_number: int):
        if not 1 <= page_number <= self.page_count:
            raise IndexError(
                f"Page {page_number} out of range 1..{self.page_count}"
            )


class PdfPageTextSource(PageTextSource):
    """
    PyMuPDF-backed source. One fragment per text line, spans joined.

    Args:
        data: Raw PDF bytes.
        text_flags: fitz TEXT_* flags for get_text("dict").
        sort: Re-sort blocks top-left to bottom-right instead of
            content-stream order.

    Raises:
        DocumentDecodeError: If the bytes are not a readable PDF.
    """

    DEFAULT_FLAGS = fitz.TEXT_PRESERVE_WHITESPACE | fitz.TEXT_PRESERVE_LIGATURES

    def __init__(
        self,
        data: bytes,
        text_flags: Optional[int] = None,
        sort: bool = False,
    ):
        if not data:
            raise DocumentDecodeError("Empty document")

        self.text_flags = (
            text_flags if text_flags is not None else self.DEFAULT_FLAGS
        )
        self.sort = sort

        try:
            self._doc = fitz.open(stream=data, filetype="pdf")
        except (RuntimeError, ValueError) as e:
            raise DocumentDecodeError(f"Cannot open PDF: {e}") from e

        if self._doc.needs_pass:
            self._doc.close()
            raise DocumentDecodeError("PDF is encrypted")
        if self._doc.page_count == 0:
            self._doc.close()
            raise DocumentDecodeError("PDF has no pages")

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    def get_page_text(self, page_number: int) -> list[str]:
        self._check_page(page_number)
        page = self._doc[page_number - 1]
        try:
            page_dict = page.get_text(
                "dict", flags=self.text_flags, sort=self.sort
            )
        except RuntimeError as e:
            raise DocumentDecodeError(
                f"Cannot read text of page {page_number}: {e}"
            ) from e

        fragments = []
        for block in page_dict.get("blocks", []):
            if block.get("type") != 0:
                continue
            for line in block.get("lines", []):
                text = "".join(span["text"] for span in line.get("spans", []))
                if text.strip():
                    fragments.append(text)
        return fragments

    def close(self):
        if not self._doc.is_closed:
            self._doc.close()


class StaticPageTextSource(PageTextSource):
    """Source over text that was already extracted, one entry per page."""

    def __init__(self, pages: list[list[str] | str]):
        self._pages = [
            page.split("\n") if isinstance(page, str) else list(page)
            for page in pages
        ]

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def get_page_text(self, page_number: int) -> list[str]:
        self._check_page(page_number)
        return list(self._pages[page_number - 1])
