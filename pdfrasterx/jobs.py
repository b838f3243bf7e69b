"""In-memory bookkeeping for conversion jobs."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from threading import Lock
from typing import Callable, Dict, List, Optional

from .types import ConversionReport, ImageFormat

_LOGGER = logging.getLogger("pdfrasterx.jobs")

DEFAULT_EXPIRY = timedelta(hours=1)


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass
class Job:
    id: str
    dpi: int
    image_format: ImageFormat
    original_filename: str
    created_at: datetime
    status: JobStatus = JobStatus.PENDING
    report: Optional[ConversionReport] = None
    error: Optional[str] = None
    metadata: Dict[str, object] = field(default_factory=dict)

    def is_expired(self, now: datetime, expiry: timedelta) -> bool:
        return now - self.created_at > expiry


class JobStore:
    """Thread-safe job registry with time-based expiry.

    ``on_remove`` is called with every job that leaves the store, whether by
    :meth:`delete` or :meth:`sweep_expired`, so callers can clean up the
    job's output directory.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utc_now,
        expiry: timedelta = DEFAULT_EXPIRY,
        on_remove: Optional[Callable[[Job], None]] = None,
    ) -> None:
        self._jobs: Dict[str, Job] = {}
        self._clock = clock
        self._expiry = expiry
        self._on_remove = on_remove
        self._lock = Lock()

    def create(
        self,
        original_filename: str,
        *,
        dpi: int = 150,
        image_format: ImageFormat | str = ImageFormat.PNG,
    ) -> Job:
        job = Job(
            id=uuid.uuid4().hex,
            dpi=dpi,
            image_format=ImageFormat.parse(image_format),
            original_filename=original_filename,
            created_at=self._clock(),
        )
        with self._lock:
            self._jobs[job.id] = job
        _LOGGER.debug("Created job %s for %s", job.id, original_filename)
        return job

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def exists(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._jobs

    def update_status(self, job_id: str, status: JobStatus | str, *, error: str | None = None) -> Job:
        with self._lock:
            job = self._require(job_id)
            job.status = JobStatus(status)
            if error is not None:
                job.error = error
            return job

    def attach_report(self, job_id: str, report: ConversionReport) -> Job:
        """Store *report* on the job and mark it completed."""

        with self._lock:
            job = self._require(job_id)
            job.report = report
            job.status = JobStatus.COMPLETED
            return job

    def delete(self, job_id: str) -> bool:
        with self._lock:
            job = self._jobs.pop(job_id, None)
        if job is None:
            return False
        self._notify_removed(job)
        return True

    def sweep_expired(self) -> List[str]:
        """Drop every job older than the expiry and return their ids."""

        now = self._clock()
        with self._lock:
            expired = [job for job in self._jobs.values() if job.is_expired(now, self._expiry)]
            for job in expired:
                del self._jobs[job.id]

        for job in expired:
            self._notify_removed(job)
        if expired:
            _LOGGER.info("Removed %d expired job(s)", len(expired))
        return [job.id for job in expired]

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def _require(self, job_id: str) -> Job:
        try:
            return self._jobs[job_id]
        except KeyError:
            raise KeyError(f"Unknown job: {job_id}") from None

    def _notify_removed(self, job: Job) -> None:
        if self._on_remove is None:
            return
        try:
            self._on_remove(job)
        except Exception as exc:
            _LOGGER.warning("Cleanup for job %s failed: %s", job.id, exc)


__all__ = ["Job", "JobStatus", "JobStore", "DEFAULT_EXPIRY"]
