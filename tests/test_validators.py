from __future__ import annotations

from pathlib import Path

from pypdf import PdfWriter
from pypdf.errors import PdfReadError

from pdfrasterx.validators import has_pdf_header, is_structural_failure, validate_pdf


def test_validate_pdf_valid_file(sample_pdf: Path) -> None:
    verdict = validate_pdf(sample_pdf)

    assert verdict.loadable
    assert not verdict.encrypted
    assert verdict.page_count == 5
    assert verdict.diagnostic is None
    assert not verdict.is_fatal


def test_validate_pdf_missing_file(tmp_path: Path) -> None:
    verdict = validate_pdf(tmp_path / "missing.pdf")

    assert verdict.is_fatal
    assert verdict.diagnostic == "File does not exist"


def test_validate_pdf_empty_file(tmp_path: Path) -> None:
    path = tmp_path / "zero.pdf"
    path.write_bytes(b"")

    verdict = validate_pdf(path)

    assert verdict.is_fatal
    assert verdict.diagnostic == "File is empty"


def test_validate_pdf_rejects_non_pdf(tmp_path: Path) -> None:
    bogus = tmp_path / "not.pdf"
    bogus.write_text("not a pdf")

    verdict = validate_pdf(bogus)

    assert verdict.is_fatal
    assert verdict.diagnostic == "Invalid PDF header"
    assert not has_pdf_header(bogus)


def test_validate_pdf_without_pages(empty_pdf: Path) -> None:
    verdict = validate_pdf(empty_pdf)

    assert verdict.is_fatal
    assert verdict.diagnostic == "PDF has no pages"


def test_truncated_pdf_is_structurally_suspect(sample_pdf: Path, tmp_path: Path) -> None:
    truncated = tmp_path / "truncated.pdf"
    truncated.write_bytes(b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog")

    verdict = validate_pdf(truncated)

    assert not verdict.loadable
    assert verdict.structurally_suspect
    assert not verdict.is_fatal
    assert verdict.diagnostic


def test_password_protected_pdf_is_fatal(tmp_path: Path) -> None:
    path = tmp_path / "locked.pdf"
    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    writer.encrypt(user_password="secret", owner_password="owner")
    with path.open("wb") as stream:
        writer.write(stream)

    verdict = validate_pdf(path)

    assert not verdict.loadable
    assert verdict.encrypted
    assert "password" in verdict.diagnostic


def test_owner_password_only_pdf_is_loadable(tmp_path: Path) -> None:
    path = tmp_path / "owner.pdf"
    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    writer.encrypt(user_password="", owner_password="owner")
    with path.open("wb") as stream:
        writer.write(stream)

    verdict = validate_pdf(path)

    assert verdict.loadable
    assert verdict.encrypted
    assert verdict.page_count == 1


def test_is_structural_failure_classifies_errors() -> None:
    assert is_structural_failure(PdfReadError("EOF marker not found"))
    assert is_structural_failure(ValueError("invalid xref table"))
    assert not is_structural_failure(MemoryError("out of memory"))
