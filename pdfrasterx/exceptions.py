"""
Custom exceptions for pdfrasterx.

Document-level failures (:class:`InvalidPDFError`, :class:`ConversionTimeout`,
:class:`ConversionCancelled`) abort a conversion. Repair failures are
non-fatal and only ever stop one repair strategy. Page-level render failures
are never raised; they travel as failed :class:`~pdfrasterx.types.PageOutcome`
records.
"""

from __future__ import annotations


class PDFRasterXError(Exception):
    """Base exception for all pdfrasterx errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def default_message(self) -> str:
        return "An unknown pdfrasterx error occurred."


class InvalidPDFError(PDFRasterXError):
    """Raised when the input is missing, empty, not a PDF, or cannot be loaded."""

    @property
    def default_message(self) -> str:
        return "Invalid or unreadable PDF file."


class ConversionTimeout(PDFRasterXError):
    """Raised when a rendering pass exceeds its wall-clock timeout."""

    @property
    def default_message(self) -> str:
        return "Conversion timed out."


class ConversionCancelled(PDFRasterXError):
    """Raised when a conversion is cancelled by its caller."""

    @property
    def default_message(self) -> str:
        return "Conversion was cancelled."


class RepairError(PDFRasterXError):
    """Base class for failures of a single repair strategy."""

    def __init__(self, message: str = "", *, strategy: str | None = None) -> None:
        super().__init__(message)
        self.strategy = strategy

    @property
    def default_message(self) -> str:
        return "PDF repair failed."


class RepairUnavailable(RepairError):
    """Raised when the tool behind a repair strategy was not found at probe time."""

    @property
    def default_message(self) -> str:
        return "Repair tool is not available."


class RepairTimeout(RepairError):
    """Raised when a repair process exceeds its timeout and is killed."""

    @property
    def default_message(self) -> str:
        return "Repair tool timed out."


class RepairFailed(RepairError):
    """Raised when a repair process exits unsuccessfully."""

    def __init__(
        self,
        message: str = "",
        *,
        strategy: str | None = None,
        returncode: int | None = None,
        output: str = "",
    ) -> None:
        super().__init__(message, strategy=strategy)
        self.returncode = returncode
        self.output = output


__all__ = [
    "PDFRasterXError",
    "InvalidPDFError",
    "ConversionTimeout",
    "ConversionCancelled",
    "RepairError",
    "RepairUnavailable",
    "RepairTimeout",
    "RepairFailed",
]
