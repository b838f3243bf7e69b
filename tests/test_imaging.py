from __future__ import annotations

import json
from pathlib import Path

import pytest
from PIL import Image

from pdfrasterx.imaging import page_filename, write_image
from pdfrasterx.metadata import METADATA_FILENAME, build_metadata, read_metadata, write_metadata
from pdfrasterx.types import ConversionReport, ImageFormat, OutputDescriptor, QualityConfig


def test_page_filename_is_one_based_and_padded() -> None:
    assert page_filename(0, ImageFormat.PNG) == "page-001.png"
    assert page_filename(41, ImageFormat.JPEG) == "page-042.jpg"
    assert page_filename(1233, ImageFormat.PNG) == "page-1234.png"


def test_write_png(tmp_path: Path) -> None:
    image = Image.new("RGBA", (20, 10), (255, 0, 0, 128))
    path = tmp_path / "nested" / "page-001.png"

    size = write_image(image, path, ImageFormat.PNG, QualityConfig(png_compress_level=9))

    assert size == path.stat().st_size
    with Image.open(path) as written:
        assert written.format == "PNG"
        assert written.size == (20, 10)


def test_write_jpeg_converts_alpha(tmp_path: Path) -> None:
    image = Image.new("RGBA", (16, 16), (0, 0, 255, 200))
    path = tmp_path / "page-001.jpg"

    write_image(image, path, ImageFormat.JPEG, QualityConfig(jpeg_quality=50))

    with Image.open(path) as written:
        assert written.format == "JPEG"
        assert written.mode == "RGB"


def test_write_jpeg_closes_converted_copy_only(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    image = Image.new("RGBA", (16, 16), (0, 0, 255, 200))
    closed_modes: list[str] = []
    original_close = Image.Image.close

    def recording_close(self: Image.Image) -> None:
        closed_modes.append(self.mode)
        original_close(self)

    monkeypatch.setattr(Image.Image, "close", recording_close)

    write_image(image, tmp_path / "page-001.jpg", ImageFormat.JPEG, QualityConfig())

    assert closed_modes == ["RGB"]
    assert image.mode == "RGBA"
    assert image.getpixel((0, 0)) == (0, 0, 255, 200)


def test_metadata_round_trip(tmp_path: Path) -> None:
    report = ConversionReport.start(2, dpi=150, image_format=ImageFormat.PNG, source_name="doc.pdf")
    report.file_records[0] = OutputDescriptor("page-001.png", 10, str(tmp_path / "page-001.png"), 150)
    del report.page_errors[0]
    report.page_errors[1] = "render failed"

    path = write_metadata(report, tmp_path / "out")

    assert path == tmp_path / "out" / METADATA_FILENAME
    data = read_metadata(tmp_path / "out")
    assert data["successful_pages"] == 1
    assert data["errors"] == ["Page 2: render failed"]
    assert "timestamp" in data
    assert list((tmp_path / "out").iterdir()) == [path]


def test_build_metadata_is_json_serialisable() -> None:
    report = ConversionReport.start(1, dpi=72, image_format=ImageFormat.JPEG)
    json.dumps(build_metadata(report))
