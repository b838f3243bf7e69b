from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple
import sys
import threading

import pytest
from PIL import Image
from pypdf import PdfWriter

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pdfrasterx.exceptions import InvalidPDFError, RepairFailed, RepairUnavailable  # noqa: E402
from pdfrasterx.repair import STRATEGY_ORDER, RepairStrategy  # noqa: E402
from pdfrasterx.types import RepairArtifact  # noqa: E402

FailurePredicate = Callable[[str, int, int], bool]


def _never_fails(_name: str, _index: int, _dpi: int) -> bool:
    return False


class FakeDocument:
    """In-memory document whose pages fail according to a predicate."""

    def __init__(
        self,
        path: Path,
        page_count: int,
        fails: FailurePredicate = _never_fails,
        block: Optional[threading.Event] = None,
    ) -> None:
        self.path = Path(path)
        self._page_count = page_count
        self._fails = fails
        self._block = block
        self.renders: List[Tuple[int, int]] = []
        self.close_calls = 0

    @property
    def page_count(self) -> int:
        return self._page_count

    def render_page(self, page_index: int, dpi: int) -> Image.Image:
        self.renders.append((page_index, dpi))
        if self._block is not None:
            self._block.wait(5)
        if self._fails(self.path.name, page_index, dpi):
            raise RuntimeError(f"broken content stream on page {page_index + 1}")
        return Image.new("RGB", (8, 8), "white")

    def close(self) -> None:
        self.close_calls += 1


class FakeBackend:
    """Opens :class:`FakeDocument` instances and remembers them."""

    def __init__(
        self,
        page_count: int = 5,
        fails: FailurePredicate = _never_fails,
        *,
        unopenable: Iterable[str] = (),
        block: Optional[threading.Event] = None,
    ) -> None:
        self.page_count = page_count
        self.fails = fails
        self.unopenable = set(unopenable)
        self.block = block
        self.documents: List[FakeDocument] = []

    def open(self, pdf_path: Path) -> FakeDocument:
        path = Path(pdf_path)
        if path.name in self.unopenable:
            raise InvalidPDFError(f"Corrupted or invalid PDF file: {path}")
        document = FakeDocument(path, self.page_count, self.fails, self.block)
        self.documents.append(document)
        return document

    def documents_named(self, name: str) -> List[FakeDocument]:
        return [document for document in self.documents if document.path.name == name]


class FakeRepairExecutor:
    """Writes a stand-in artifact named after the strategy instead of running tools."""

    def __init__(
        self,
        available: Iterable[RepairStrategy] = STRATEGY_ORDER,
        failing: Iterable[RepairStrategy] = (),
    ) -> None:
        self.available = set(available)
        self.failing = set(failing)
        self.calls: List[Tuple[Path, RepairStrategy]] = []
        self.artifacts: List[RepairArtifact] = []

    @property
    def strategies(self) -> tuple[RepairStrategy, ...]:
        return STRATEGY_ORDER

    def is_available(self, strategy: RepairStrategy | str) -> bool:
        return RepairStrategy(strategy) in self.available

    def any_available(self) -> bool:
        return bool(self.available)

    def repair(self, document, strategy, *, work_dir: Path | None = None) -> RepairArtifact:
        strategy = RepairStrategy(strategy)
        self.calls.append((Path(document), strategy))
        if strategy not in self.available:
            raise RepairUnavailable(strategy=strategy.value)
        if strategy in self.failing:
            raise RepairFailed("exit code 2", strategy=strategy.value, returncode=2)
        assert work_dir is not None
        path = work_dir / f"{strategy.value}.pdf"
        path.write_bytes(b"%PDF-1.4\n%repaired\n")
        artifact = RepairArtifact(path=path, strategy=strategy.value)
        self.artifacts.append(artifact)
        return artifact


def write_pdf(path: Path, pages: int = 5) -> Path:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    with path.open("wb") as stream:
        writer.write(stream)
    return path


@pytest.fixture()
def sample_pdf(tmp_path: Path) -> Path:
    return write_pdf(tmp_path / "sample.pdf", pages=5)


@pytest.fixture()
def empty_pdf(tmp_path: Path) -> Path:
    pdf_path = tmp_path / "empty.pdf"
    writer = PdfWriter()
    with pdf_path.open("wb") as stream:
        writer.write(stream)
    return pdf_path


@pytest.fixture()
def pdf_factory(tmp_path: Path) -> Callable[[str, int], Path]:
    def _create(filename: str, pages: int = 1) -> Path:
        return write_pdf(tmp_path / filename, pages=pages)

    return _create


@pytest.fixture()
def failing_pages() -> Callable[[Dict[str, set[int]]], FailurePredicate]:
    """Build a predicate from ``{document name: failing page indices}``."""

    def _build(table: Dict[str, set[int]], *, above_dpi: int | None = None) -> FailurePredicate:
        def _fails(name: str, index: int, dpi: int) -> bool:
            if index not in table.get(name, set()):
                return False
            return above_dpi is None or dpi > above_dpi

        return _fails

    return _build
