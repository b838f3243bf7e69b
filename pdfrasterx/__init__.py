"""
pdfrasterx - Convert PDF pages to images, repairing damaged documents.

Pages are rendered in parallel. When too many pages fail, the document is
rewritten with qpdf, then with Ghostscript, and only the pages that are still
failing are rendered again. A final pass retries at a lower resolution.

Quick Start:
    >>> from pdfrasterx import convert_pdf
    >>> report = convert_pdf('input.pdf', 'output/', dpi=150, image_format='png')
    >>> report.successful_pages, report.repair_method

Main Classes:
    - ConversionOrchestrator: Validation, rendering passes and repair escalation
    - PageRenderWorkerPool: Renders a subset of pages on a thread pool
    - RepairExecutor: Runs qpdf or Ghostscript against a whole document
    - JobStore: Expiring registry of conversion jobs

Data Classes:
    - ConversionReport: Cumulative result of a conversion
    - ValidationVerdict: Result of the load probe
    - PageOutcome / OutputDescriptor: Result of one page render

Exceptions:
    - PDFRasterXError: Base exception
    - InvalidPDFError: Input cannot be loaded
    - ConversionTimeout / ConversionCancelled: Conversion aborted
    - RepairError: A repair strategy failed (never escapes a conversion)

For CLI usage, use the 'pdfrasterx' command after installation.
"""

# Core classes
from pdfrasterx.converter import ConversionOrchestrator, ConversionState, convert_pdf
from pdfrasterx.pool import PageRenderWorkerPool, compute_worker_count
from pdfrasterx.repair import RepairExecutor, RepairStrategy
from pdfrasterx.jobs import Job, JobStatus, JobStore

# Configuration
from pdfrasterx.config import ConverterSettings

# Data types
from pdfrasterx.types import (
    ConversionReport,
    ImageFormat,
    OutputDescriptor,
    PageOutcome,
    QualityConfig,
    RepairArtifact,
    ValidationVerdict,
)

# Exceptions
from pdfrasterx.exceptions import (
    PDFRasterXError,
    InvalidPDFError,
    ConversionTimeout,
    ConversionCancelled,
    RepairError,
    RepairUnavailable,
    RepairTimeout,
    RepairFailed,
)

# Utility functions
from pdfrasterx.aggregator import merge_outcomes
from pdfrasterx.validators import validate_pdf
from pdfrasterx.probe import probe_tool
from pdfrasterx.utils import format_file_size

__version__ = "1.0.0"
__license__ = "MIT"

__all__ = [
    # Main classes
    "ConversionOrchestrator",
    "ConversionState",
    "PageRenderWorkerPool",
    "RepairExecutor",
    "RepairStrategy",
    "Job",
    "JobStatus",
    "JobStore",
    "ConverterSettings",
    # Data types
    "ConversionReport",
    "ImageFormat",
    "OutputDescriptor",
    "PageOutcome",
    "QualityConfig",
    "RepairArtifact",
    "ValidationVerdict",
    # Exceptions
    "PDFRasterXError",
    "InvalidPDFError",
    "ConversionTimeout",
    "ConversionCancelled",
    "RepairError",
    "RepairUnavailable",
    "RepairTimeout",
    "RepairFailed",
    # Functions
    "convert_pdf",
    "compute_worker_count",
    "merge_outcomes",
    "validate_pdf",
    "probe_tool",
    "format_file_size",
    # Version info
    "__version__",
]
