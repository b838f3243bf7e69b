"""Pre-flight validation for :mod:`pdfrasterx`.

The validator is a gate, not an authority on page-level health: it only
decides whether a document is hopeless (missing, empty, not a PDF, or
failing to load for a reason repair cannot address). Anything else goes on
to full conversion, where the worker pool decides which pages fail.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pypdf import PdfReader
from pypdf.errors import (
    DependencyError,
    FileNotDecryptedError,
    ParseError,
    PdfReadError,
    PdfStreamError,
)

from .types import ValidationVerdict
from .utils import resolve_path

_LOGGER = logging.getLogger("pdfrasterx.validate")

PDF_MAGIC = b"%PDF-"

_STRUCTURAL_ERRORS = (PdfReadError, PdfStreamError, ParseError)
_STRUCTURAL_SIGNATURES = (
    "expected",
    "invalid",
    "damaged",
    "xref",
    "startxref",
    "trailer",
    "eof marker",
    "stream",
)


def has_pdf_header(path: Path) -> bool:
    """Return whether *path* starts with the ``%PDF-`` magic bytes."""

    try:
        with path.open("rb") as handle:
            return handle.read(len(PDF_MAGIC)) == PDF_MAGIC
    except OSError:
        return False


def is_structural_failure(exc: BaseException) -> bool:
    """Classify a load failure as structural damage that repair may fix."""

    if isinstance(exc, _STRUCTURAL_ERRORS):
        return True
    text = str(exc).lower()
    return any(signature in text for signature in _STRUCTURAL_SIGNATURES)


def validate_pdf(path: str | os.PathLike[str]) -> ValidationVerdict:
    """Quickly validate the PDF at *path*.

    Checks run in order: existence and size, magic header, then a load probe
    with :class:`pypdf.PdfReader`. The probe's file handle is closed before
    returning.
    """

    pdf_path = resolve_path(path)
    _LOGGER.debug("Validating PDF at %s", pdf_path)

    if not pdf_path.exists() or not pdf_path.is_file():
        return ValidationVerdict(loadable=False, diagnostic="File does not exist")

    if pdf_path.stat().st_size == 0:
        return ValidationVerdict(loadable=False, diagnostic="File is empty")

    if not has_pdf_header(pdf_path):
        return ValidationVerdict(loadable=False, diagnostic="Invalid PDF header")

    try:
        with pdf_path.open("rb") as stream:
            reader = PdfReader(stream)
            encrypted = reader.is_encrypted
            if encrypted:
                # Documents with only an owner password open with an empty user password.
                try:
                    reader.decrypt("")
                except DependencyError as exc:
                    # pypdf cannot inspect this cipher; the renderer gets the final word.
                    return ValidationVerdict(
                        loadable=True,
                        encrypted=True,
                        diagnostic=f"Encryption could not be inspected: {exc}",
                    )
                except (FileNotDecryptedError, NotImplementedError) as exc:
                    _LOGGER.debug("Empty-password decrypt failed for %s: %s", pdf_path, exc)
            try:
                page_count = len(reader.pages)
            except FileNotDecryptedError as exc:
                return ValidationVerdict(
                    loadable=False,
                    encrypted=True,
                    diagnostic=f"PDF is encrypted and requires a password: {exc}",
                )
    except Exception as exc:
        suspect = is_structural_failure(exc)
        _LOGGER.info(
            "Load probe failed for %s (%s): %s",
            pdf_path,
            "structural damage" if suspect else "unrecoverable",
            exc,
        )
        return ValidationVerdict(
            loadable=False,
            structurally_suspect=suspect,
            diagnostic=f"{type(exc).__name__}: {exc}",
        )

    if page_count == 0:
        return ValidationVerdict(loadable=False, encrypted=encrypted, diagnostic="PDF has no pages")

    return ValidationVerdict(loadable=True, encrypted=encrypted, page_count=page_count)


__all__ = ["validate_pdf", "has_pdf_header", "is_structural_failure", "PDF_MAGIC"]
