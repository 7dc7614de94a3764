"""Tests for PDF text extraction."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from pypdf import PdfWriter
from pypdf.errors import PdfReadError

from pipeline.pdf.text_extractor import ExtractionError, PdfTextExtractor


def write_blank_pdf(path: Path, metadata: dict[str, str] | None = None) -> Path:
    """Write a one-page PDF with no text layer."""
    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    if metadata:
        writer.add_metadata(metadata)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        writer.write(f)
    return path


def mock_reader(*page_texts: str | None, encrypted: bool = False) -> MagicMock:
    """Build a PdfReader stand-in whose pages return the given text."""
    reader = MagicMock()
    reader.is_encrypted = encrypted
    reader.decrypt.return_value = 0
    pages = []
    for text in page_texts:
        page = MagicMock()
        page.extract_text.return_value = text
        pages.append(page)
    reader.pages = pages
    return reader


class TestExtractText:
    """Tests for PdfTextExtractor.extract_text."""

    def test_resolves_against_storage_root(self, tmp_path: Path) -> None:
        extractor = PdfTextExtractor(tmp_path)
        assert extractor.resolve_path("bills/hb12.pdf") == tmp_path / "bills" / "hb12.pdf"

    def test_missing_file(self, tmp_path: Path) -> None:
        extractor = PdfTextExtractor(tmp_path)
        with pytest.raises(ExtractionError, match="PDF file not found at path"):
            extractor.extract_text("bills/missing.pdf")

    def test_blank_pdf_has_no_text(self, tmp_path: Path) -> None:
        write_blank_pdf(tmp_path / "bills" / "scanned.pdf")
        extractor = PdfTextExtractor(tmp_path)

        with pytest.raises(ExtractionError, match="no extractable text"):
            extractor.extract_text("bills/scanned.pdf")

    def test_joins_pages(self, tmp_path: Path) -> None:
        (tmp_path / "bill.pdf").write_bytes(b"%PDF-1.7")
        reader = mock_reader("Section 1. Short title\nBody", None, "Section 2. Scope")

        with patch("pipeline.pdf.text_extractor.PdfReader", return_value=reader):
            text = PdfTextExtractor(tmp_path).extract_text("bill.pdf")

        assert text == "Section 1. Short title\nBody\n\nSection 2. Scope"

    def test_corrupted_pdf(self, tmp_path: Path) -> None:
        (tmp_path / "bill.pdf").write_bytes(b"not a pdf")

        with patch(
            "pipeline.pdf.text_extractor.PdfReader",
            side_effect=PdfReadError("EOF marker not found"),
        ):
            with pytest.raises(ExtractionError, match="corrupted or encrypted") as exc:
                PdfTextExtractor(tmp_path).extract_text("bill.pdf")

        assert isinstance(exc.value.__cause__, PdfReadError)

    def test_encrypted_pdf(self, tmp_path: Path) -> None:
        (tmp_path / "bill.pdf").write_bytes(b"%PDF-1.7")
        reader = mock_reader("secret", encrypted=True)

        with patch("pipeline.pdf.text_extractor.PdfReader", return_value=reader):
            with pytest.raises(ExtractionError, match="encrypted"):
                PdfTextExtractor(tmp_path).extract_text("bill.pdf")

        reader.decrypt.assert_called_once_with("")

    def test_encrypted_with_empty_password(self, tmp_path: Path) -> None:
        """PDFs encrypted only with an owner password still open."""
        (tmp_path / "bill.pdf").write_bytes(b"%PDF-1.7")
        reader = mock_reader("Section 1. Title", encrypted=True)
        reader.decrypt.return_value = 1

        with patch("pipeline.pdf.text_extractor.PdfReader", return_value=reader):
            text = PdfTextExtractor(tmp_path).extract_text("bill.pdf")

        assert text == "Section 1. Title"

    def test_page_extraction_failure(self, tmp_path: Path) -> None:
        (tmp_path / "bill.pdf").write_bytes(b"%PDF-1.7")
        reader = mock_reader("ok")
        reader.pages[0].extract_text.side_effect = PdfReadError("bad content stream")

        with patch("pipeline.pdf.text_extractor.PdfReader", return_value=reader):
            with pytest.raises(ExtractionError, match="bad content stream"):
                PdfTextExtractor(tmp_path).extract_text("bill.pdf")

    def test_page_builtin_error(self, tmp_path: Path) -> None:
        """Malformed fonts raise KeyError inside pypdf."""
        (tmp_path / "bill.pdf").write_bytes(b"%PDF-1.7")
        reader = mock_reader("ok")
        reader.pages[0].extract_text.side_effect = KeyError("/Font")

        with patch("pipeline.pdf.text_extractor.PdfReader", return_value=reader):
            with pytest.raises(ExtractionError, match="Unable to extract text") as exc:
                PdfTextExtractor(tmp_path).extract_text("bill.pdf")

        assert isinstance(exc.value.__cause__, KeyError)

    def test_reader_builtin_error(self, tmp_path: Path) -> None:
        (tmp_path / "bill.pdf").write_bytes(b"%PDF-1.7")

        with patch(
            "pipeline.pdf.text_extractor.PdfReader",
            side_effect=ValueError("invalid literal for int()"),
        ):
            with pytest.raises(ExtractionError, match="corrupted or encrypted"):
                PdfTextExtractor(tmp_path).extract_text("bill.pdf")


class TestExtractMetadata:
    """Tests for PdfTextExtractor.extract_metadata."""

    def test_reads_document_info(self, tmp_path: Path) -> None:
        write_blank_pdf(
            tmp_path / "bill.pdf",
            metadata={
                "/Title": "The Data Protection Bill",
                "/Author": "Office of the Attorney General",
                "/Keywords": "privacy, data",
            },
        )

        info = PdfTextExtractor(tmp_path).extract_metadata("bill.pdf")

        assert info.title == "The Data Protection Bill"
        assert info.author == "Office of the Attorney General"
        assert info.keywords == "privacy, data"
        assert info.subject is None
        assert info.page_count == 1

    def test_no_document_info(self, tmp_path: Path) -> None:
        (tmp_path / "bill.pdf").write_bytes(b"%PDF-1.7")
        reader = mock_reader("a", "b")
        reader.metadata = None

        with patch("pipeline.pdf.text_extractor.PdfReader", return_value=reader):
            info = PdfTextExtractor(tmp_path).extract_metadata("bill.pdf")

        assert info.title is None
        assert info.creation_date is None
        assert info.page_count == 2

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ExtractionError):
            PdfTextExtractor(tmp_path).extract_metadata("missing.pdf")


class TestValidatePdf:
    """Tests for PdfTextExtractor.validate_pdf."""

    def test_real_pdf(self, tmp_path: Path) -> None:
        assert PdfTextExtractor.validate_pdf(write_blank_pdf(tmp_path / "bill.pdf"))

    def test_uppercase_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "BILL.PDF"
        path.write_bytes(b"%PDF-1.4\n")
        assert PdfTextExtractor.validate_pdf(path)

    def test_wrong_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "bill.txt"
        path.write_bytes(b"%PDF-1.4\n")
        assert not PdfTextExtractor.validate_pdf(path)

    def test_wrong_magic_bytes(self, tmp_path: Path) -> None:
        path = tmp_path / "bill.pdf"
        path.write_bytes(b"<html>not a pdf</html>")
        assert not PdfTextExtractor.validate_pdf(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        assert not PdfTextExtractor.validate_pdf(tmp_path / "missing.pdf")
