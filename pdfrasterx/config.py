"""Runtime settings for :mod:`pdfrasterx`."""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping

from .types import QualityConfig

ENV_PREFIX = "PDFRASTERX_"

MIN_DPI = 50
MAX_DPI = 600


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ConverterSettings:
    """Tunables for the worker pool, the repair tools and the image encoder."""

    pages_per_thread_unit: int = 50
    min_threads: int = 2
    max_threads: int = 8
    available_parallelism: int | None = None
    pass_timeout: float = 3600.0
    repair_timeout: float = 300.0
    probe_timeout: float = 5.0
    repair_skip_threshold: float = 0.05
    fallback_dpi: int = 72
    repair_enabled: bool = True
    qpdf_path: str = "qpdf"
    ghostscript_path: str | None = None
    jpeg_quality: int = 90
    png_compress_level: int = 6
    write_metadata: bool = True
    work_dir: Path | None = None

    def __post_init__(self) -> None:
        if self.pages_per_thread_unit < 1:
            raise ValueError("pages_per_thread_unit must be >= 1")
        if self.min_threads < 1:
            raise ValueError("min_threads must be >= 1")
        if self.max_threads < self.min_threads:
            raise ValueError("max_threads must be >= min_threads")
        if self.available_parallelism is not None and self.available_parallelism < 1:
            raise ValueError("available_parallelism must be >= 1")
        if not 0.0 <= self.repair_skip_threshold <= 1.0:
            raise ValueError("repair_skip_threshold must be between 0 and 1")
        if self.pass_timeout <= 0 or self.repair_timeout <= 0 or self.probe_timeout <= 0:
            raise ValueError("timeouts must be positive")
        if not MIN_DPI <= self.fallback_dpi <= MAX_DPI:
            raise ValueError(f"fallback_dpi must be between {MIN_DPI} and {MAX_DPI}")
        QualityConfig(jpeg_quality=self.jpeg_quality, png_compress_level=self.png_compress_level)

    @property
    def quality(self) -> QualityConfig:
        return QualityConfig(jpeg_quality=self.jpeg_quality, png_compress_level=self.png_compress_level)

    def with_overrides(self, **overrides: Any) -> "ConverterSettings":
        """Return a copy with every non-``None`` override applied."""

        updates = {key: value for key, value in overrides.items() if value is not None}
        return dataclasses.replace(self, **updates)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ConverterSettings":
        """Build settings from ``PDFRASTERX_*`` environment variables."""

        env = os.environ if environ is None else environ
        converters: dict[str, Callable[[str], Any]] = {
            "pages_per_thread_unit": int,
            "min_threads": int,
            "max_threads": int,
            "available_parallelism": int,
            "pass_timeout": float,
            "repair_timeout": float,
            "probe_timeout": float,
            "repair_skip_threshold": float,
            "fallback_dpi": int,
            "repair_enabled": _parse_bool,
            "qpdf_path": str,
            "ghostscript_path": str,
            "jpeg_quality": int,
            "png_compress_level": int,
            "write_metadata": _parse_bool,
            "work_dir": lambda raw: Path(raw).expanduser(),
        }
        values: dict[str, Any] = {}
        for name, convert in converters.items():
            raw = env.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None or raw == "":
                continue
            try:
                values[name] = convert(raw)
            except ValueError as exc:
                raise ValueError(f"Invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}") from exc
        return cls(**values)


__all__ = ["ConverterSettings", "ENV_PREFIX", "MIN_DPI", "MAX_DPI"]
