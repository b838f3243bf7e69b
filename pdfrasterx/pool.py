"""Parallel page rendering for :mod:`pdfrasterx`."""

from __future__ import annotations

import logging
import math
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from .backends.base import DocumentHandle
from .config import ConverterSettings
from .exceptions import ConversionTimeout
from .imaging import page_filename, write_image
from .types import ImageFormat, OutputDescriptor, PageOutcome, QualityConfig
from .utils import remove_file

_LOGGER = logging.getLogger("pdfrasterx.pool")

ProgressCallback = Callable[[int, int], None]
ImageWriter = Callable[..., int]


def _any_set(events: Sequence[threading.Event]) -> bool:
    return any(event.is_set() for event in events)


def compute_worker_count(
    page_count: int,
    *,
    pages_per_thread_unit: int,
    min_threads: int,
    max_threads: int,
    available_parallelism: int | None = None,
) -> int:
    """Size a pass: one worker per *pages_per_thread_unit* pages, clamped.

    The result lies in ``[min_threads, min(max_threads, available_parallelism)]``
    for any non-empty page set. If ``min_threads`` exceeds that ceiling the
    ceiling wins. An empty page set needs no workers.
    """

    if page_count <= 0:
        return 0
    available = available_parallelism or os.cpu_count() or 1
    ceiling = max(1, min(max_threads, available))
    floor = min(min_threads, ceiling)
    wanted = math.ceil(page_count / pages_per_thread_unit)
    return max(floor, min(wanted, ceiling))


class PageRenderWorkerPool:
    """Renders a subset of pages from an open document on a thread pool."""

    def __init__(
        self,
        settings: ConverterSettings | None = None,
        *,
        image_writer: ImageWriter = write_image,
    ) -> None:
        self.settings = settings or ConverterSettings()
        self._write_image = image_writer

    def worker_count(self, page_count: int) -> int:
        return compute_worker_count(
            page_count,
            pages_per_thread_unit=self.settings.pages_per_thread_unit,
            min_threads=self.settings.min_threads,
            max_threads=self.settings.max_threads,
            available_parallelism=self.settings.available_parallelism,
        )

    def _render_one(
        self,
        document: DocumentHandle,
        page_index: int,
        dpi: int,
        image_format: ImageFormat,
        quality: QualityConfig,
        output_dir: Path,
        stop_events: Sequence[threading.Event],
    ) -> PageOutcome:
        if _any_set(stop_events):
            return PageOutcome.failed(page_index, "cancelled before rendering")

        try:
            image = document.render_page(page_index, dpi)
        except Exception as exc:
            _LOGGER.warning("Page %d failed to render at %d DPI: %s", page_index + 1, dpi, exc)
            return PageOutcome.failed(page_index, f"render failed at {dpi} DPI: {exc}")

        # A pass that timed out or was cancelled must not leave files behind.
        if _any_set(stop_events):
            image.close()
            return PageOutcome.failed(page_index, "cancelled before writing")

        filename = page_filename(page_index, image_format)
        destination = output_dir / filename
        try:
            size = self._write_image(image, destination, image_format, quality)
        except Exception as exc:
            remove_file(destination)
            _LOGGER.warning("Page %d failed to encode as %s: %s", page_index + 1, image_format.value, exc)
            return PageOutcome.failed(page_index, f"encoding failed: {exc}")
        finally:
            image.close()

        if _any_set(stop_events):
            remove_file(destination)
            return PageOutcome.failed(page_index, "cancelled while writing")

        return PageOutcome.succeeded(
            page_index,
            OutputDescriptor(filename=filename, size_bytes=size, path=str(destination.resolve()), dpi=dpi),
        )

    def render_pages(
        self,
        document: DocumentHandle,
        page_indices: Sequence[int],
        dpi: int,
        image_format: ImageFormat,
        quality: QualityConfig,
        output_dir: Path,
        *,
        timeout: float | None = None,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> List[PageOutcome]:
        """Render *page_indices* and return one outcome per page, ordered by index.

        Blocks until every page was attempted. Raises
        :class:`~pdfrasterx.exceptions.ConversionTimeout` if the pass takes
        longer than *timeout* (``settings.pass_timeout`` by default).
        """

        indices = sorted(set(page_indices))
        if not indices:
            return []

        timeout = self.settings.pass_timeout if timeout is None else timeout
        # Only the private event is ever set here; the caller's event may be shared.
        stop = threading.Event()
        stop_events = (stop,) if cancel_event is None else (stop, cancel_event)
        workers = self.worker_count(len(indices))
        output_dir.mkdir(parents=True, exist_ok=True)
        _LOGGER.info("Rendering %d page(s) at %d DPI with %d thread(s)", len(indices), dpi, workers)

        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pdfrasterx-render")
        timed_out = False
        try:
            futures: Dict[Future[PageOutcome], int] = {
                executor.submit(
                    self._render_one,
                    document,
                    index,
                    dpi,
                    image_format,
                    quality,
                    output_dir,
                    stop_events,
                ): index
                for index in indices
            }
            outcomes: Dict[int, PageOutcome] = {}
            try:
                for future in as_completed(futures, timeout=timeout):
                    index = futures[future]
                    exc = future.exception()
                    if exc is not None:
                        outcomes[index] = PageOutcome.failed(index, f"worker error: {exc}")
                    else:
                        outcomes[index] = future.result()
                    if progress_callback:
                        progress_callback(len(outcomes), len(indices))
            except FuturesTimeoutError:
                timed_out = True
                stop.set()
                for future in futures:
                    future.cancel()
                _LOGGER.error(
                    "Pass timed out after %gs with %d of %d page(s) done",
                    timeout,
                    len(outcomes),
                    len(indices),
                )
                raise ConversionTimeout(
                    f"Conversion timed out after {timeout:g} seconds "
                    f"({len(outcomes)} of {len(indices)} pages attempted)"
                ) from None
        except BaseException:
            stop.set()
            raise
        finally:
            # Running renders cannot be interrupted; a timed-out pass leaves them behind.
            executor.shutdown(wait=not timed_out, cancel_futures=True)

        return [outcomes[index] for index in indices]


__all__ = ["PageRenderWorkerPool", "compute_worker_count"]
