"""PDF text extraction for bill documents.

Bills carry a logical ``pdf_path`` relative to the document store. This
module resolves that path, reads the PDF with pypdf and returns its text
layer. Scanned (image-only) PDFs have no text layer and are reported as
extraction failures; OCR is out of scope.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol

from pypdf import PdfReader

from app.core.errors import BillClauseError

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"


class ExtractionError(BillClauseError):
    """The PDF is missing, unreadable, encrypted, or has no extractable text."""


class TextExtractor(Protocol):
    """Anything that can turn a bill's logical PDF path into plain text."""

    def extract_text(self, pdf_path: str) -> str: ...


@dataclass
class PdfMetadata:
    """Document information dictionary of a PDF.

    Attributes:
        title: /Title entry.
        author: /Author entry.
        subject: /Subject entry.
        keywords: /Keywords entry.
        creator: /Creator entry (authoring application).
        producer: /Producer entry (PDF library).
        creation_date: /CreationDate, when parseable.
        page_count: Number of pages.
    """

    title: str | None
    author: str | None
    subject: str | None
    keywords: str | None
    creator: str | None
    producer: str | None
    creation_date: datetime | None
    page_count: int


class PdfTextExtractor:
    """Extract text from bill PDFs stored under a common root directory."""

    def __init__(self, storage_root: str | Path):
        """Initialize the extractor.

        Args:
            storage_root: Directory that bill ``pdf_path`` values are relative to.
        """
        self.storage_root = Path(storage_root)

    def resolve_path(self, pdf_path: str) -> Path:
        """Return the filesystem path for a logical PDF path."""
        return self.storage_root / pdf_path

    def extract_text(self, pdf_path: str) -> str:
        """Extract the text layer of every page, one page per block of lines.

        Args:
            pdf_path: Logical path of the PDF (relative to the storage root).

        Returns:
            The extracted text.

        Raises:
            ExtractionError: If the file is missing, cannot be parsed, is
                encrypted, or contains no extractable text.
        """
        reader = self._open(pdf_path)
        try:
            pages = [page.extract_text() or "" for page in reader.pages]
        except Exception as e:
            # Malformed content streams raise builtin errors, not PyPdfError
            logger.warning(f"Text extraction failed for {pdf_path}: {e!r}")
            raise ExtractionError(
                f"Unable to extract text from PDF {pdf_path}: {e}"
            ) from e

        text = "\n".join(pages)
        if not text.strip():
            raise ExtractionError(
                "PDF contains no extractable text. May be scanned or image-based."
            )

        logger.debug(f"Extracted {len(text)} characters from {len(pages)} pages")
        return text

    def extract_metadata(self, pdf_path: str) -> PdfMetadata:
        """Read the document information dictionary of a PDF.

        Raises:
            ExtractionError: If the file is missing or cannot be parsed.
        """
        reader = self._open(pdf_path)
        info = reader.metadata
        if info is None:
            return PdfMetadata(
                title=None,
                author=None,
                subject=None,
                keywords=None,
                creator=None,
                producer=None,
                creation_date=None,
                page_count=len(reader.pages),
            )

        try:
            creation_date = info.creation_date
        except ValueError:
            # Malformed /CreationDate strings are common in generated PDFs
            creation_date = None

        keywords = info.get("/Keywords")
        return PdfMetadata(
            title=info.title,
            author=info.author,
            subject=info.subject,
            keywords=str(keywords) if keywords is not None else None,
            creator=info.creator,
            producer=info.producer,
            creation_date=creation_date,
            page_count=len(reader.pages),
        )

    @staticmethod
    def validate_pdf(path: str | Path) -> bool:
        """Check that a file has a .pdf extension and starts with the PDF magic bytes."""
        path = Path(path)
        if not path.is_file() or path.suffix.lower() != ".pdf":
            return False
        with path.open("rb") as f:
            return f.read(len(PDF_MAGIC)) == PDF_MAGIC

    def _open(self, pdf_path: str) -> PdfReader:
        full_path = self.resolve_path(pdf_path)
        if not full_path.is_file():
            raise ExtractionError(f"PDF file not found at path: {full_path}")

        try:
            reader = PdfReader(full_path)
            if reader.is_encrypted and not reader.decrypt(""):
                raise ExtractionError(f"PDF {pdf_path} is encrypted")
        except ExtractionError:
            raise
        except Exception as e:
            logger.warning(f"PDF parser failed for {pdf_path}: {e!r}")
            raise ExtractionError(
                "Unable to extract text from PDF. File may be corrupted or encrypted."
            ) from e
        return reader
