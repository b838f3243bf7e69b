from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from pdfrasterx import cli as cli_module
from pdfrasterx.cli import cli
from pdfrasterx.probe import ProbeResult, ToolStatus
from pdfrasterx.repair import RepairStrategy


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def test_validate_valid_pdf(runner: CliRunner, sample_pdf: Path) -> None:
    result = runner.invoke(cli, ["validate", str(sample_pdf)])

    assert result.exit_code == 0
    assert "Loadable" in result.output
    assert "5" in result.output


def test_validate_rejects_non_pdf(runner: CliRunner, tmp_path: Path) -> None:
    bogus = tmp_path / "not.pdf"
    bogus.write_text("not a pdf")

    result = runner.invoke(cli, ["validate", str(bogus)])

    assert result.exit_code == 1
    assert "Invalid PDF header" in result.output


def test_tools_lists_strategies(runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
    class StubExecutor:
        def __init__(self, settings) -> None:
            self.settings = settings

        def availability(self):
            return {
                RepairStrategy.FAST: ProbeResult("/usr/bin/qpdf", ToolStatus.AVAILABLE, version="qpdf 11.9.0"),
                RepairStrategy.COMPREHENSIVE: ProbeResult("gs", ToolStatus.UNAVAILABLE, detail="not found on PATH"),
            }

    monkeypatch.setattr(cli_module, "RepairExecutor", StubExecutor)

    result = runner.invoke(cli, ["tools"])

    assert result.exit_code == 0
    assert "fast-repair" in result.output
    assert "qpdf 11.9.0" in result.output
    assert "unavailable" in result.output


def test_convert_rejects_out_of_range_dpi(runner: CliRunner, sample_pdf: Path, tmp_path: Path) -> None:
    result = runner.invoke(cli, ["convert", str(sample_pdf), "-o", str(tmp_path / "out"), "--dpi", "1000"])

    assert result.exit_code != 0
    assert not (tmp_path / "out").exists()


def test_convert_invalid_pdf_exits_with_error(runner: CliRunner, tmp_path: Path) -> None:
    bogus = tmp_path / "not.pdf"
    bogus.write_text("not a pdf")

    result = runner.invoke(cli, ["convert", str(bogus), "-o", str(tmp_path / "out"), "--no-repair"])

    assert result.exit_code == 1
    assert "Error" in result.output


def test_convert_renders_pages(runner: CliRunner, sample_pdf: Path, tmp_path: Path) -> None:
    pytest.importorskip("pypdfium2")
    output = tmp_path / "out"

    result = runner.invoke(
        cli,
        ["convert", str(sample_pdf), "-o", str(output), "--dpi", "72", "--format", "jpg", "--no-repair"],
    )

    assert result.exit_code == 0, result.output
    assert sorted(p.name for p in output.glob("*.jpg")) == [f"page-00{i}.jpg" for i in range(1, 6)]
    assert (output / "metadata.json").exists()
    assert "Converted all 5 page(s)" in result.output
