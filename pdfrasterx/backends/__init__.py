"""Backend abstractions for pdfrasterx."""

from .base import DocumentHandle, RenderBackend
from .pdfium_backend import PdfiumBackend, PdfiumDocument

__all__ = [
    "DocumentHandle",
    "RenderBackend",
    "PdfiumBackend",
    "PdfiumDocument",
]
