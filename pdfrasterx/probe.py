"""Availability probing for external command-line tools."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import Collection, Optional

from . import utils

_LOGGER = logging.getLogger("pdfrasterx.probe")

# Some tools exit with 1 when asked for their version.
DEFAULT_ACCEPTED_CODES = frozenset({0, 1})


class ToolStatus(str, Enum):
    """Result of probing an external tool."""

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a single probe."""

    executable: Optional[str]
    status: ToolStatus
    detail: str = ""
    version: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.status is ToolStatus.AVAILABLE


def probe_tool(
    executable: str | None,
    *,
    version_flag: str = "--version",
    timeout: float = 5.0,
    accepted_codes: Collection[int] = DEFAULT_ACCEPTED_CODES,
) -> ProbeResult:
    """Probe *executable* by running it with *version_flag*.

    ``UNAVAILABLE`` means the tool is missing or rejected the flag;
    ``UNKNOWN`` means the probe itself could not complete (timeout or an OS
    error other than a missing binary). Only ``AVAILABLE`` tools are used.
    """

    if not executable:
        return ProbeResult(executable=None, status=ToolStatus.UNAVAILABLE, detail="no executable configured")

    resolved = utils.which([executable])
    if resolved is None:
        return ProbeResult(executable=executable, status=ToolStatus.UNAVAILABLE, detail="not found on PATH")

    try:
        completed = utils.run_subprocess([resolved, version_flag], timeout=timeout)
    except subprocess.TimeoutExpired:
        _LOGGER.warning("Probe of %s timed out after %.1fs", resolved, timeout)
        return ProbeResult(executable=resolved, status=ToolStatus.UNKNOWN, detail=f"probe timed out after {timeout}s")
    except FileNotFoundError as exc:
        return ProbeResult(executable=resolved, status=ToolStatus.UNAVAILABLE, detail=str(exc))
    except OSError as exc:
        _LOGGER.warning("Probe of %s failed: %s", resolved, exc)
        return ProbeResult(executable=resolved, status=ToolStatus.UNKNOWN, detail=str(exc))

    output = utils.combined_output(completed.stdout, completed.stderr)
    first_line = output.splitlines()[0] if output else None
    if completed.returncode in accepted_codes:
        return ProbeResult(executable=resolved, status=ToolStatus.AVAILABLE, version=first_line)
    return ProbeResult(
        executable=resolved,
        status=ToolStatus.UNAVAILABLE,
        detail=f"exit code {completed.returncode}",
        version=first_line,
    )


__all__ = ["ToolStatus", "ProbeResult", "probe_tool", "DEFAULT_ACCEPTED_CODES"]
