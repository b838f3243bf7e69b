"""Conversion orchestration: validation, rendering passes and repair escalation.

One call to :meth:`ConversionOrchestrator.convert` walks these states::

    VALIDATING -> INITIAL_PASS -> RATE_GATE -> (REPAIR -> RETRY)* -> DEGRADED_RETRY -> DONE

Every retry renders only the pages that are still failing, so pages that
succeeded once are never rendered again. Repair failures only skip a
strategy; invalid input, pass timeouts and cancellation abort the whole
conversion with a single exception and no report.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence, Union

from .aggregator import merge_outcomes
from .backends import PdfiumBackend
from .backends.base import DocumentHandle, RenderBackend
from .config import MAX_DPI, MIN_DPI, ConverterSettings
from .exceptions import ConversionCancelled, InvalidPDFError, RepairError
from .metadata import write_metadata
from .pool import PageRenderWorkerPool, ProgressCallback
from .repair import RepairExecutor, RepairStrategy
from .types import ConversionReport, ImageFormat, RepairArtifact, ValidationVerdict
from .utils import resolve_path
from .validators import validate_pdf

_LOGGER = logging.getLogger("pdfrasterx.convert")

DPI_FALLBACK_METHOD = "dpi-fallback"

Source = Union[str, "os.PathLike[str]", bytes]


class ConversionState(str, Enum):
    VALIDATING = "validating"
    INITIAL_PASS = "initial-pass"
    RATE_GATE = "rate-gate"
    REPAIR = "repair"
    RETRY = "retry"
    DEGRADED_RETRY = "degraded-retry"
    DONE = "done"


StateListener = Callable[[ConversionState, ConversionReport | None], None]


class RepairRunner(Protocol):
    """The part of :class:`~pdfrasterx.repair.RepairExecutor` the orchestrator relies on."""

    @property
    def strategies(self) -> Sequence[RepairStrategy]: ...

    def is_available(self, strategy: RepairStrategy | str) -> bool: ...

    def any_available(self) -> bool: ...

    def repair(
        self,
        document: str | os.PathLike[str],
        strategy: RepairStrategy | str,
        *,
        work_dir: Path | None = None,
    ) -> RepairArtifact: ...


@dataclass
class _Run:
    """Mutable state of one conversion; never shared between conversions."""

    output_dir: Path
    dpi: int
    image_format: ImageFormat
    work_dir: Path
    cancel_event: threading.Event
    progress_callback: Optional[ProgressCallback]
    listener: Optional[StateListener]
    source: Path | None = None
    source_name: str = ""
    handle: DocumentHandle | None = None
    artifact: RepairArtifact | None = None
    report: ConversionReport | None = None
    history: List[ConversionState] = field(default_factory=list)


class ConversionOrchestrator:
    """Drives a full PDF-to-images conversion with repair escalation."""

    def __init__(
        self,
        settings: ConverterSettings | None = None,
        *,
        backend: RenderBackend | None = None,
        repair_executor: RepairRunner | None = None,
        pool: PageRenderWorkerPool | None = None,
        validator: Callable[[Path], ValidationVerdict] = validate_pdf,
    ) -> None:
        self.settings = settings or ConverterSettings()
        self.backend = backend or PdfiumBackend()
        self.repair_executor = repair_executor if repair_executor is not None else RepairExecutor(self.settings)
        self.pool = pool or PageRenderWorkerPool(self.settings)
        self._validate = validator

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def convert(
        self,
        source: Source,
        output_dir: str | os.PathLike[str],
        dpi: int = 150,
        image_format: ImageFormat | str = ImageFormat.PNG,
        *,
        source_name: str | None = None,
        cancel_event: threading.Event | None = None,
        progress_callback: ProgressCallback | None = None,
        on_state: StateListener | None = None,
    ) -> ConversionReport:
        """Convert *source* (a path or raw PDF bytes) into one image per page.

        Returns the final report, which may still list failed pages when
        every recovery avenue was exhausted. Raises
        :class:`~pdfrasterx.exceptions.InvalidPDFError`,
        :class:`~pdfrasterx.exceptions.ConversionTimeout` or
        :class:`~pdfrasterx.exceptions.ConversionCancelled` otherwise.
        """

        if not MIN_DPI <= dpi <= MAX_DPI:
            raise ValueError(f"DPI must be between {MIN_DPI} and {MAX_DPI}, got {dpi}")
        image_format = ImageFormat.parse(image_format)

        started = time.monotonic()
        work_root = self.settings.work_dir
        if work_root is not None:
            work_root.mkdir(parents=True, exist_ok=True)
        run = _Run(
            output_dir=resolve_path(output_dir),
            dpi=dpi,
            image_format=image_format,
            work_dir=Path(tempfile.mkdtemp(prefix="pdfrasterx-", dir=work_root)),
            cancel_event=cancel_event or threading.Event(),
            progress_callback=progress_callback,
            listener=on_state,
        )
        try:
            self._stage_source(run, source, source_name)
            self._validate_and_open(run)
            self._initial_pass(run)
            if self._rate_gate(run):
                self._escalate(run)

            report = self._require_report(run)
            report.elapsed_millis = int((time.monotonic() - started) * 1000)
            self._enter(run, ConversionState.DONE)
            if self.settings.write_metadata:
                write_metadata(report, run.output_dir)
            _LOGGER.info(
                "Converted %d of %d page(s) from %s in %.2fs%s",
                report.successful_pages,
                report.total_pages,
                run.source_name,
                report.elapsed_millis / 1000.0,
                f" (repair: {report.repair_method})" if report.repair_method else "",
            )
            return report
        finally:
            self._release(run)

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------
    def _stage_source(self, run: _Run, source: Source, source_name: str | None) -> None:
        if isinstance(source, (bytes, bytearray)):
            staged = run.work_dir / "input.pdf"
            staged.write_bytes(bytes(source))
            run.source = staged
            run.source_name = source_name or staged.name
        else:
            run.source = resolve_path(source)
            run.source_name = source_name or run.source.name

    def _validate_and_open(self, run: _Run) -> None:
        self._enter(run, ConversionState.VALIDATING)
        assert run.source is not None
        verdict = self._validate(run.source)
        if verdict.is_fatal:
            raise InvalidPDFError(f"{run.source_name}: {verdict.diagnostic or 'invalid PDF'}")
        if verdict.structurally_suspect:
            _LOGGER.warning("%s shows structural damage (%s); continuing", run.source_name, verdict.diagnostic)
        if verdict.encrypted:
            _LOGGER.info("%s is encrypted; rendering without a password", run.source_name)

        run.handle = self.backend.open(run.source)
        total_pages = run.handle.page_count
        if total_pages == 0:
            raise InvalidPDFError(f"{run.source_name}: PDF has no pages")
        run.report = ConversionReport.start(
            total_pages,
            dpi=run.dpi,
            image_format=run.image_format,
            source_name=run.source_name,
        )

    def _initial_pass(self, run: _Run) -> None:
        self._enter(run, ConversionState.INITIAL_PASS)
        assert run.handle is not None
        report = self._require_report(run)
        self._render_failed(run, run.handle, run.dpi)
        if report.failed_pages:
            _LOGGER.warning("%d of %d page(s) failed on the first pass", report.failed_pages, report.total_pages)

    def _rate_gate(self, run: _Run) -> bool:
        """Decide whether the initial failures justify repair work."""

        self._enter(run, ConversionState.RATE_GATE)
        report = self._require_report(run)
        if report.is_complete():
            return False

        threshold = self.settings.repair_skip_threshold
        if report.failure_rate < threshold:
            _LOGGER.info(
                "Failure rate %.1f%% is below the %.1f%% repair threshold; skipping repair",
                report.failure_rate * 100,
                threshold * 100,
            )
            return False

        if not self.repair_executor.any_available():
            _LOGGER.warning("%d page(s) failed but no repair tool is available", report.failed_pages)
            return False
        return True

    def _escalate(self, run: _Run) -> None:
        report = self._require_report(run)
        assert run.source is not None

        for strategy in self.repair_executor.strategies:
            if report.is_complete():
                break
            self._check_cancelled(run)
            self._enter(run, ConversionState.REPAIR)
            if not self.repair_executor.is_available(strategy):
                _LOGGER.info("Skipping %s: %s is not available", strategy.value, strategy.tool)
                continue

            _LOGGER.info("Attempting %s for %d failing page(s)", strategy.value, report.failed_pages)
            try:
                # Every strategy starts from the pristine input, not an earlier repair.
                artifact = self.repair_executor.repair(run.source, strategy, work_dir=run.work_dir)
            except RepairError as exc:
                _LOGGER.warning("%s failed: %s", strategy.value, exc)
                continue

            try:
                handle = self.backend.open(artifact.path)
            except InvalidPDFError as exc:
                _LOGGER.warning("%s produced an unreadable document: %s", strategy.value, exc)
                artifact.discard()
                continue

            self._replace_artifact(run, artifact)
            self._enter(run, ConversionState.RETRY)
            try:
                recovered = self._render_failed(run, handle, run.dpi)
            finally:
                handle.close()

            if recovered:
                report.repair_method_chain.append(strategy.value)
                _LOGGER.info("%s recovered %d page(s)", strategy.value, recovered)
            if report.is_complete():
                _LOGGER.info("%s repair successful - all pages recovered", strategy.value)

        if report.is_complete() or run.dpi <= self.settings.fallback_dpi:
            return

        self._check_cancelled(run)
        self._enter(run, ConversionState.DEGRADED_RETRY)
        _LOGGER.info(
            "Falling back to %d DPI for %d remaining page(s)",
            self.settings.fallback_dpi,
            report.failed_pages,
        )
        recovered = self._degraded_retry(run)
        if recovered:
            report.repair_method_chain.append(DPI_FALLBACK_METHOD)
            _LOGGER.info("Recovered %d page(s) using %d DPI fallback", recovered, self.settings.fallback_dpi)

    def _degraded_retry(self, run: _Run) -> int:
        assert run.handle is not None
        if run.artifact is None:
            return self._render_failed(run, run.handle, self.settings.fallback_dpi)

        try:
            handle = self.backend.open(run.artifact.path)
        except InvalidPDFError as exc:
            _LOGGER.warning("Repaired document could not be reopened, using the original: %s", exc)
            return self._render_failed(run, run.handle, self.settings.fallback_dpi)
        try:
            return self._render_failed(run, handle, self.settings.fallback_dpi)
        finally:
            handle.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _render_failed(self, run: _Run, handle: DocumentHandle, dpi: int) -> int:
        """Render every page still failing in the report and merge; return pages recovered."""

        report = self._require_report(run)
        targets = report.failed_page_indices
        before = report.failed_pages
        outcomes = self.pool.render_pages(
            handle,
            targets,
            dpi,
            run.image_format,
            self.settings.quality,
            run.output_dir,
            timeout=self.settings.pass_timeout,
            cancel_event=run.cancel_event,
            progress_callback=run.progress_callback,
        )
        self._check_cancelled(run)
        merge_outcomes(report, outcomes)
        return before - report.failed_pages

    def _replace_artifact(self, run: _Run, artifact: RepairArtifact) -> None:
        if run.artifact is not None:
            run.artifact.discard()
        run.artifact = artifact

    def _check_cancelled(self, run: _Run) -> None:
        if run.cancel_event.is_set():
            raise ConversionCancelled(f"Conversion of {run.source_name} was cancelled")

    def _enter(self, run: _Run, state: ConversionState) -> None:
        run.history.append(state)
        _LOGGER.debug("%s -> %s", run.source_name, state.value)
        if run.listener is not None:
            run.listener(state, run.report)

    @staticmethod
    def _require_report(run: _Run) -> ConversionReport:
        if run.report is None:
            raise RuntimeError("Conversion report requested before the document was opened")
        return run.report

    def _release(self, run: _Run) -> None:
        if run.handle is not None:
            try:
                run.handle.close()
            except Exception as exc:
                _LOGGER.warning("Failed to close PDF document: %s", exc)
            run.handle = None
        if run.artifact is not None:
            run.artifact.discard()
            run.artifact = None
        shutil.rmtree(run.work_dir, ignore_errors=True)


def convert_pdf(
    source: Source,
    output_dir: str | os.PathLike[str],
    dpi: int = 150,
    image_format: ImageFormat | str = ImageFormat.PNG,
    *,
    settings: ConverterSettings | None = None,
    **kwargs,
) -> ConversionReport:
    """Convert *source* to page images with a default orchestrator."""

    orchestrator = ConversionOrchestrator(settings)
    return orchestrator.convert(source, output_dir, dpi, image_format, **kwargs)


__all__ = [
    "ConversionOrchestrator",
    "ConversionState",
    "DPI_FALLBACK_METHOD",
    "convert_pdf",
]
