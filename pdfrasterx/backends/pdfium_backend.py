"""pypdfium2 backend implementation for pdfrasterx."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import pypdfium2 as pdfium
from PIL import Image

from ..exceptions import InvalidPDFError
from .base import DocumentHandle, RenderBackend

_LOGGER = logging.getLogger("pdfrasterx.render")

# PDFium keeps global state and is not thread-safe, even across documents.
_PDFIUM_LOCK = threading.RLock()

POINTS_PER_INCH = 72.0


class PdfiumDocument(DocumentHandle):
    """A PDFium document whose renders are serialised behind a process-wide lock."""

    def __init__(self, pdf: pdfium.PdfDocument, path: Path) -> None:
        self._pdf = pdf
        self.path = path
        self._closed = False
        with _PDFIUM_LOCK:
            self._page_count = len(pdf)

    @property
    def page_count(self) -> int:
        return self._page_count

    def render_page(self, page_index: int, dpi: int) -> Image.Image:
        if not 0 <= page_index < self._page_count:
            raise IndexError(f"Page index {page_index} out of range (0..{self._page_count - 1})")
        with _PDFIUM_LOCK:
            if self._closed:
                raise RuntimeError("Document handle is closed")
            page = self._pdf[page_index]
            try:
                bitmap = page.render(scale=dpi / POINTS_PER_INCH)
                try:
                    # The image must not reference PDFium memory outside the lock.
                    image = bitmap.to_pil().copy()
                finally:
                    bitmap.close()
            finally:
                page.close()
        return image

    def close(self) -> None:
        with _PDFIUM_LOCK:
            if self._closed:
                return
            self._closed = True
            self._pdf.close()
        _LOGGER.debug("Closed PDFium document %s", self.path)


class PdfiumBackend(RenderBackend):
    """Backend implementation that uses `pypdfium2` under the hood."""

    def __init__(self, password: str | None = None) -> None:
        self.password = password

    def open(self, pdf_path: Path) -> PdfiumDocument:
        path = Path(pdf_path)
        if not path.exists() or not path.is_file():
            raise InvalidPDFError(f"PDF file not found: {pdf_path}")

        try:
            with _PDFIUM_LOCK:
                pdf = pdfium.PdfDocument(str(path), password=self.password)
        except pdfium.PdfiumError as exc:
            raise InvalidPDFError(f"Corrupted or invalid PDF file: {pdf_path}. Error: {exc}") from exc
        except OSError as exc:
            raise InvalidPDFError(f"Unable to read PDF file: {pdf_path}. Error: {exc}") from exc

        document = PdfiumDocument(pdf, path)
        _LOGGER.debug("Opened %s with %d page(s)", path, document.page_count)
        return document
