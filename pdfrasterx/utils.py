"""Utility helpers for :mod:`pdfrasterx`."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import MutableMapping, Sequence

_LOGGER = logging.getLogger("pdfrasterx")


def resolve_path(path: os.PathLike[str] | str) -> Path:
    """Resolve *path* into an absolute :class:`~pathlib.Path`."""

    resolved = Path(path).expanduser().resolve()
    _LOGGER.debug("Resolved path '%s' to '%s'", path, resolved)
    return resolved


def ensure_parent_dir(path: Path) -> None:
    """Create parent directory for *path* if it does not exist."""

    path.parent.mkdir(parents=True, exist_ok=True)


def which(executables: Sequence[str]) -> str | None:
    """Return the first executable from *executables* found on ``PATH``."""

    for candidate in executables:
        found = shutil.which(candidate)
        if found:
            _LOGGER.debug("Detected external tool: %s -> %s", candidate, found)
            return found
    return None


def run_subprocess(
    command: Sequence[str],
    *,
    timeout: float | None = None,
    env: MutableMapping[str, str] | None = None,
    check: bool = False,
) -> subprocess.CompletedProcess[str]:
    """Run *command* capturing output.

    Parameters
    ----------
    command:
        Command and arguments to execute.
    timeout:
        Wall-clock limit in seconds. On expiry the child is killed and
        :class:`subprocess.TimeoutExpired` propagates.
    env:
        Optional environment overrides.
    check:
        Whether to raise :class:`subprocess.CalledProcessError` on non-zero exit.
    """

    _LOGGER.debug("Executing command: %s", " ".join(command))
    completed = subprocess.run(
        list(command),
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        check=check,
        text=True,
        errors="replace",
        timeout=timeout,
    )
    _LOGGER.debug(
        "Command finished with exit code %s\nstdout: %s\nstderr: %s",
        completed.returncode,
        completed.stdout,
        completed.stderr,
    )
    return completed


def combined_output(stdout: str | bytes | None, stderr: str | bytes | None) -> str:
    """Join captured stdout and stderr into one diagnostic string."""

    parts = []
    for stream in (stdout, stderr):
        if not stream:
            continue
        if isinstance(stream, bytes):
            stream = stream.decode("utf-8", errors="replace")
        parts.append(stream.strip())
    return "\n".join(part for part in parts if part)


def format_file_size(size_bytes: float) -> str:
    """
    Format file size in human-readable format.

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string (e.g., "1.5 MB", "500.0 B")
    """
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_bytes < 1024.0:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.1f} PB"


def remove_file(path: Path) -> None:
    """Best-effort removal of *path*."""

    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        _LOGGER.warning("Could not remove %s: %s", path, exc)


__all__ = [
    "resolve_path",
    "ensure_parent_dir",
    "which",
    "run_subprocess",
    "combined_output",
    "format_file_size",
    "remove_file",
]
