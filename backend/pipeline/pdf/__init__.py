"""PDF text extraction for bill documents."""

from pipeline.pdf.text_extractor import (
    ExtractionError,
    PdfMetadata,
    PdfTextExtractor,
    TextExtractor,
)

__all__ = [
    "ExtractionError",
    "PdfMetadata",
    "PdfTextExtractor",
    "TextExtractor",
]
