"""Backend protocol for page rasterisation."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from PIL import Image


class DocumentHandle(Protocol):
    """An opened document that worker threads render pages from.

    ``render_page`` may be called concurrently from several threads; a
    backend whose library is not thread-safe serialises internally.
    ``close`` must be idempotent.
    """

    @property
    def page_count(self) -> int:
        """Number of pages in the document."""

    def render_page(self, page_index: int, dpi: int) -> Image.Image:
        """Rasterise page *page_index* (zero-based) at *dpi*."""

    def close(self) -> None:
        """Release the native document."""


class RenderBackend(Protocol):
    """Protocol for opening documents for rendering."""

    def open(self, pdf_path: Path) -> DocumentHandle:
        """Open *pdf_path*, raising :class:`~pdfrasterx.exceptions.InvalidPDFError` on failure."""
