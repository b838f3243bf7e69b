"""
Type definitions and dataclasses for pdfrasterx.

This module defines the records exchanged between the worker pool, the
aggregator and the orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .utils import remove_file


class ImageFormat(str, Enum):
    """Output raster formats."""

    JPEG = "jpg"
    PNG = "png"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def pillow_format(self) -> str:
        return "JPEG" if self is ImageFormat.JPEG else "PNG"

    @property
    def lossy(self) -> bool:
        return self is ImageFormat.JPEG

    @classmethod
    def parse(cls, value: "str | ImageFormat") -> "ImageFormat":
        """Resolve *value* from an extension, a Pillow name or a format alias."""

        if isinstance(value, ImageFormat):
            return value
        key = str(value).strip().lower().lstrip(".")
        try:
            return _FORMAT_ALIASES[key]
        except KeyError:
            raise ValueError(f"Unsupported image format: {value!r}") from None


_FORMAT_ALIASES: dict[str, ImageFormat] = {
    "jpg": ImageFormat.JPEG,
    "jpeg": ImageFormat.JPEG,
    "raster-lossy": ImageFormat.JPEG,
    "png": ImageFormat.PNG,
    "raster-lossless": ImageFormat.PNG,
}


@dataclass(frozen=True)
class QualityConfig:
    """Encoder settings applied when writing page images."""

    jpeg_quality: int = 90
    png_compress_level: int = 6

    def __post_init__(self) -> None:
        if not 1 <= self.jpeg_quality <= 95:
            raise ValueError("jpeg_quality must be between 1 and 95")
        if not 0 <= self.png_compress_level <= 9:
            raise ValueError("png_compress_level must be between 0 and 9")


@dataclass(frozen=True)
class OutputDescriptor:
    """Describes one page image written to disk."""

    filename: str
    size_bytes: int
    path: str
    dpi: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page": self.filename,
            "size_bytes": self.size_bytes,
            "path": self.path,
            "dpi": self.dpi,
        }


@dataclass(frozen=True)
class PageOutcome:
    """Result of rendering a single page during one pass."""

    page_index: int
    success: bool
    output: Optional[OutputDescriptor] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if self.page_index < 0:
            raise ValueError("page_index must be >= 0")
        if self.success and self.output is None:
            raise ValueError("A successful outcome requires an output descriptor")

    @classmethod
    def succeeded(cls, page_index: int, output: OutputDescriptor) -> "PageOutcome":
        return cls(page_index=page_index, success=True, output=output)

    @classmethod
    def failed(cls, page_index: int, error: str) -> "PageOutcome":
        return cls(page_index=page_index, success=False, error=error)

    @property
    def page_number(self) -> int:
        return self.page_index + 1


@dataclass(frozen=True)
class ValidationVerdict:
    """
    Outcome of the pre-flight document check.

    Attributes:
        loadable: Whether the probe could open the document
        encrypted: Whether the document declares encryption
        structurally_suspect: Whether the probe failed with a known
            structural-damage signature, so repair may still help
        page_count: Number of pages reported by the probe (0 if unknown)
        diagnostic: Human-readable reason for a failed or suspect verdict
    """

    loadable: bool
    encrypted: bool = False
    structurally_suspect: bool = False
    page_count: int = 0
    diagnostic: Optional[str] = None

    @property
    def is_fatal(self) -> bool:
        return not self.loadable and not self.structurally_suspect


@dataclass
class RepairArtifact:
    """A repaired copy of the source document produced by one strategy."""

    path: Path
    strategy: str
    elapsed_seconds: float = 0.0
    output: str = ""

    def discard(self) -> None:
        """Remove the artifact from disk, logging instead of raising on failure."""

        remove_file(self.path)


_PENDING = "not rendered yet"


@dataclass
class ConversionReport:
    """
    Cumulative result of one conversion, merged into after every pass.

    Every page index lives in exactly one of ``file_records`` (successful)
    or ``page_errors`` (failed or not yet rendered), so
    ``successful_pages + len(failed_page_indices) == total_pages`` always
    holds.
    """

    total_pages: int
    dpi_used: int
    image_format: ImageFormat
    source_name: str = ""
    file_records: Dict[int, OutputDescriptor] = field(default_factory=dict)
    page_errors: Dict[int, Optional[str]] = field(default_factory=dict)
    repair_method_chain: List[str] = field(default_factory=list)
    elapsed_millis: int = 0

    @classmethod
    def start(
        cls,
        total_pages: int,
        *,
        dpi: int,
        image_format: ImageFormat,
        source_name: str = "",
    ) -> "ConversionReport":
        """Create a report with every page pending."""

        if total_pages < 0:
            raise ValueError("total_pages must be >= 0")
        return cls(
            total_pages=total_pages,
            dpi_used=dpi,
            image_format=image_format,
            source_name=source_name,
            page_errors={index: _PENDING for index in range(total_pages)},
        )

    @property
    def successful_pages(self) -> int:
        return len(self.file_records)

    @property
    def failed_pages(self) -> int:
        return len(self.page_errors)

    @property
    def failed_page_indices(self) -> List[int]:
        return sorted(self.page_errors)

    @property
    def failure_rate(self) -> float:
        if self.total_pages == 0:
            return 0.0
        return self.failed_pages / self.total_pages

    @property
    def repair_method(self) -> Optional[str]:
        return "+".join(self.repair_method_chain) or None

    @property
    def errors(self) -> List[str]:
        return [
            f"Page {index + 1}: {self.page_errors[index] or 'unknown error'}"
            for index in self.failed_page_indices
        ]

    def is_complete(self) -> bool:
        return not self.page_errors

    def to_dict(self) -> Dict[str, Any]:
        files = []
        for index in sorted(self.file_records):
            entry = self.file_records[index].to_dict()
            entry["page_number"] = index + 1
            files.append(entry)
        data: Dict[str, Any] = {
            "input_file": self.source_name,
            "total_pages": self.total_pages,
            "successful_pages": self.successful_pages,
            "failed_pages": self.failed_pages,
            "failed_page_indices": self.failed_page_indices,
            "time_taken_seconds": self.elapsed_millis / 1000.0,
            "elapsed_millis": self.elapsed_millis,
            "dpi": self.dpi_used,
            "output_format": self.image_format.value,
            "repair_method": self.repair_method,
            "repair_method_chain": list(self.repair_method_chain),
            "files": files,
        }
        if self.page_errors:
            data["errors"] = self.errors
        return data

    def __str__(self) -> str:
        return (
            "ConversionReport(total={total}, success={success}, failed={failed}, "
            "repair={repair})"
        ).format(
            total=self.total_pages,
            success=self.successful_pages,
            failed=self.failed_pages,
            repair=self.repair_method,
        )


__all__ = [
    "ImageFormat",
    "QualityConfig",
    "OutputDescriptor",
    "PageOutcome",
    "ValidationVerdict",
    "RepairArtifact",
    "ConversionReport",
]
