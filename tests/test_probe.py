from __future__ import annotations

import subprocess

import pytest

from pdfrasterx import utils as raster_utils
from pdfrasterx.probe import ToolStatus, probe_tool


def _completed(returncode: int, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(["tool", "--version"], returncode, stdout, stderr)


@pytest.fixture()
def on_path(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(raster_utils, "which", lambda executables: f"/opt/bin/{executables[0]}")


def test_probe_without_executable() -> None:
    result = probe_tool(None)
    assert result.status is ToolStatus.UNAVAILABLE
    assert not result.available


def test_probe_tool_not_on_path(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(raster_utils, "which", lambda executables: None)

    result = probe_tool("qpdf")

    assert result.status is ToolStatus.UNAVAILABLE
    assert result.detail == "not found on PATH"


def test_probe_success_reports_version(monkeypatch: pytest.MonkeyPatch, on_path: None) -> None:
    seen = {}

    def fake_run(command, *, timeout=None, env=None, check=False):
        seen["command"] = command
        seen["timeout"] = timeout
        return _completed(0, "qpdf version 11.9.0\nRun qpdf --copyright\n")

    monkeypatch.setattr(raster_utils, "run_subprocess", fake_run)

    result = probe_tool("qpdf", timeout=2.5)

    assert result.available
    assert result.executable == "/opt/bin/qpdf"
    assert result.version == "qpdf version 11.9.0"
    assert seen == {"command": ["/opt/bin/qpdf", "--version"], "timeout": 2.5}


def test_probe_accepts_exit_code_one(monkeypatch: pytest.MonkeyPatch, on_path: None) -> None:
    monkeypatch.setattr(raster_utils, "run_subprocess", lambda command, **kwargs: _completed(1, stderr="usage"))

    assert probe_tool("gs").status is ToolStatus.AVAILABLE


def test_probe_rejects_other_exit_codes(monkeypatch: pytest.MonkeyPatch, on_path: None) -> None:
    monkeypatch.setattr(raster_utils, "run_subprocess", lambda command, **kwargs: _completed(127))

    result = probe_tool("gs")

    assert result.status is ToolStatus.UNAVAILABLE
    assert result.detail == "exit code 127"


def test_probe_timeout_is_unknown(monkeypatch: pytest.MonkeyPatch, on_path: None) -> None:
    def hang(command, *, timeout=None, **kwargs):
        raise subprocess.TimeoutExpired(command, timeout)

    monkeypatch.setattr(raster_utils, "run_subprocess", hang)

    result = probe_tool("gs", timeout=0.5)

    assert result.status is ToolStatus.UNKNOWN
    assert not result.available


def test_probe_permission_error_is_unknown(monkeypatch: pytest.MonkeyPatch, on_path: None) -> None:
    def denied(command, **kwargs):
        raise PermissionError("permission denied")

    monkeypatch.setattr(raster_utils, "run_subprocess", denied)

    assert probe_tool("qpdf").status is ToolStatus.UNKNOWN


def test_probe_vanished_binary_is_unavailable(monkeypatch: pytest.MonkeyPatch, on_path: None) -> None:
    def missing(command, **kwargs):
        raise FileNotFoundError(command[0])

    monkeypatch.setattr(raster_utils, "run_subprocess", missing)

    assert probe_tool("qpdf").status is ToolStatus.UNAVAILABLE
