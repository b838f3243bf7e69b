"""External repair tool integration for :mod:`pdfrasterx`."""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
import time
from enum import Enum
from pathlib import Path
from typing import Dict, List, Sequence

from . import utils
from .config import ConverterSettings
from .exceptions import RepairFailed, RepairTimeout, RepairUnavailable
from .probe import ProbeResult, ToolStatus, probe_tool
from .types import RepairArtifact

_LOGGER = logging.getLogger("pdfrasterx.repair")

GHOSTSCRIPT_CANDIDATES: Sequence[str] = ("gs", "gswin64c", "gswin32c")


class RepairStrategy(str, Enum):
    """Repair strategies in escalation order, cheapest first."""

    FAST = "fast-repair"
    COMPREHENSIVE = "comprehensive-repair"

    @property
    def tool(self) -> str:
        return "qpdf" if self is RepairStrategy.FAST else "ghostscript"


STRATEGY_ORDER: tuple[RepairStrategy, ...] = (RepairStrategy.FAST, RepairStrategy.COMPREHENSIVE)

# qpdf exits with 3 when it succeeded but reported warnings, which is the
# normal case for the damaged files it is asked to rewrite.
_SUCCESS_CODES: Dict[RepairStrategy, frozenset[int]] = {
    RepairStrategy.FAST: frozenset({0, 3}),
    RepairStrategy.COMPREHENSIVE: frozenset({0}),
}


def build_qpdf_command(executable: str, source: Path, output: Path) -> list[str]:
    """Construct the qpdf command that rewrites *source* without re-encoding content."""

    return [
        executable,
        "--linearize",
        str(source),
        str(output),
    ]


def build_ghostscript_command(executable: str, source: Path, output: Path) -> list[str]:
    """Construct the Ghostscript command that regenerates *source* at full fidelity."""

    return [
        executable,
        "-sDEVICE=pdfwrite",
        "-dNOPAUSE",
        "-dBATCH",
        "-dSAFER",
        "-dPDFSETTINGS=/prepress",
        "-dColorConversionStrategy=/LeaveColorUnchanged",
        "-dDownsampleMonoImages=false",
        "-dDownsampleGrayImages=false",
        "-dDownsampleColorImages=false",
        "-dAutoFilterColorImages=false",
        "-dAutoFilterGrayImages=false",
        f"-sOutputFile={output}",
        str(source),
    ]


class RepairExecutor:
    """Runs one repair strategy at a time against a whole document.

    Tool availability is probed once, when the executor is created, unless
    ``probe=False`` is passed (call :meth:`probe` later in that case).
    """

    def __init__(self, settings: ConverterSettings | None = None, *, probe: bool = True) -> None:
        self.settings = settings or ConverterSettings()
        self._executables: Dict[RepairStrategy, str | None] = {
            RepairStrategy.FAST: self.settings.qpdf_path,
            RepairStrategy.COMPREHENSIVE: self.settings.ghostscript_path
            or utils.which(GHOSTSCRIPT_CANDIDATES)
            or GHOSTSCRIPT_CANDIDATES[0],
        }
        self._probes: Dict[RepairStrategy, ProbeResult] = {}
        if probe and self.settings.repair_enabled:
            self.probe()

    @property
    def strategies(self) -> tuple[RepairStrategy, ...]:
        return STRATEGY_ORDER

    def probe(self) -> Dict[RepairStrategy, ProbeResult]:
        """Probe every strategy's tool and remember the results."""

        for strategy in STRATEGY_ORDER:
            result = probe_tool(self._executables[strategy], timeout=self.settings.probe_timeout)
            self._probes[strategy] = result
            _LOGGER.info(
                "Repair tool %s: %s%s",
                strategy.tool,
                result.status.value,
                f" ({result.detail})" if result.detail else "",
            )
        if not self.any_available():
            _LOGGER.warning(
                "No repair tools available. Install qpdf or Ghostscript for better PDF compatibility."
            )
        return dict(self._probes)

    def availability(self) -> Dict[RepairStrategy, ProbeResult]:
        return {
            strategy: self._probes.get(
                strategy,
                ProbeResult(self._executables[strategy], ToolStatus.UNKNOWN, detail="not probed"),
            )
            for strategy in STRATEGY_ORDER
        }

    def is_available(self, strategy: RepairStrategy | str) -> bool:
        if not self.settings.repair_enabled:
            return False
        result = self._probes.get(RepairStrategy(strategy))
        return result is not None and result.available

    def available_strategies(self) -> List[RepairStrategy]:
        return [strategy for strategy in STRATEGY_ORDER if self.is_available(strategy)]

    def any_available(self) -> bool:
        return bool(self.available_strategies())

    def _build_command(self, strategy: RepairStrategy, source: Path, output: Path) -> list[str]:
        probe = self._probes[strategy]
        executable = probe.executable or self._executables[strategy]
        if strategy is RepairStrategy.FAST:
            return build_qpdf_command(executable, source, output)
        if strategy is RepairStrategy.COMPREHENSIVE:
            return build_ghostscript_command(executable, source, output)
        raise ValueError(f"Unsupported repair strategy: {strategy}")

    def repair(
        self,
        document: str | os.PathLike[str],
        strategy: RepairStrategy | str,
        *,
        work_dir: Path | None = None,
    ) -> RepairArtifact:
        """Run *strategy* against *document* and return the repaired artifact.

        The caller owns the artifact and must :meth:`~RepairArtifact.discard` it.
        """

        strategy = RepairStrategy(strategy)
        if not self.is_available(strategy):
            raise RepairUnavailable(f"{strategy.tool} is not available", strategy=strategy.value)

        source = utils.resolve_path(document)
        handle, name = tempfile.mkstemp(
            prefix=f"{strategy.tool}-repaired-",
            suffix=".pdf",
            dir=str(work_dir) if work_dir else None,
        )
        os.close(handle)
        output = Path(name)
        command = self._build_command(strategy, source, output)
        timeout = self.settings.repair_timeout

        _LOGGER.info("Running %s with %s on %s", strategy.value, strategy.tool, source.name)
        started = time.monotonic()
        try:
            completed = utils.run_subprocess(command, timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            utils.remove_file(output)
            raise RepairTimeout(
                f"{strategy.tool} repair timed out after {timeout:g} seconds",
                strategy=strategy.value,
            ) from exc
        except OSError as exc:
            utils.remove_file(output)
            raise RepairFailed(
                f"{strategy.tool} could not be started: {exc}",
                strategy=strategy.value,
            ) from exc

        elapsed = time.monotonic() - started
        captured = utils.combined_output(completed.stdout, completed.stderr)
        produced = output.exists() and output.stat().st_size > 0
        if completed.returncode not in _SUCCESS_CODES[strategy] or not produced:
            utils.remove_file(output)
            raise RepairFailed(
                f"{strategy.tool} repair failed with exit code {completed.returncode}: {captured}",
                strategy=strategy.value,
                returncode=completed.returncode,
                output=captured,
            )

        _LOGGER.info("%s repair completed in %.2fs", strategy.tool, elapsed)
        return RepairArtifact(path=output, strategy=strategy.value, elapsed_seconds=elapsed, output=captured)


__all__ = [
    "RepairStrategy",
    "RepairExecutor",
    "STRATEGY_ORDER",
    "GHOSTSCRIPT_CANDIDATES",
    "build_qpdf_command",
    "build_ghostscript_command",
]
