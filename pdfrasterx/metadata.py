"""Persisted conversion summary written next to the page images."""

from __future__ import annotations

import json
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from .types import ConversionReport

METADATA_FILENAME = "metadata.json"


def _utc_now() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def build_metadata(report: ConversionReport) -> Dict[str, Any]:
    payload = report.to_dict()
    payload["timestamp"] = _utc_now()
    return payload


def write_metadata(report: ConversionReport, output_dir: Path) -> Path:
    """Atomically write ``metadata.json`` for *report* into *output_dir*."""

    output_dir.mkdir(parents=True, exist_ok=True)
    destination = output_dir / METADATA_FILENAME
    with tempfile.NamedTemporaryFile("w", delete=False, dir=output_dir, suffix=".tmp", encoding="utf-8") as handle:
        json.dump(build_metadata(report), handle, indent=2)
        temp_path = Path(handle.name)
    temp_path.replace(destination)
    return destination


def read_metadata(output_dir: Path) -> Dict[str, Any]:
    return json.loads((output_dir / METADATA_FILENAME).read_text(encoding="utf-8"))


__all__ = ["METADATA_FILENAME", "build_metadata", "write_metadata", "read_metadata"]
