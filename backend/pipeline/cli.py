"""CLI for parsing bills into clauses."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from app.core.errors import BillClauseError
from pipeline.clauses.builder import ClauseForest, build_clauses
from pipeline.clauses.normalizer import normalize_text
from pipeline.pdf.text_extractor import ExtractionError, PdfTextExtractor

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)-5.5s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Characters of clause content shown per line in tree output
PREVIEW_WIDTH = 60


def read_source(path: Path, pdf: bool = False) -> str:
    """Read raw bill text from a plain-text file or a PDF.

    Args:
        path: File to read.
        pdf: If True, extract the text layer of a PDF instead.

    Returns:
        The raw (unnormalized) text.

    Raises:
        ExtractionError: If the PDF cannot be read.
    """
    if pdf:
        extractor = PdfTextExtractor(path.parent)
        return extractor.extract_text(path.name)
    return path.read_text(encoding="utf-8")


def print_forest(forest: ClauseForest) -> None:
    """Print a clause forest as an indented tree."""
    if forest.preamble:
        print(f"Preamble: {forest.preamble[:PREVIEW_WIDTH]}")

    numbers: dict[int, str] = {}
    for draft in forest:
        parent_number = numbers.get(draft.parent_index)
        full_number = f"{parent_number}.{draft.number}" if parent_number else draft.number
        numbers[draft.index] = full_number

        indent = "  " * draft.clause_type.level
        heading = f" {draft.title}" if draft.title else ""
        preview = draft.content.replace("\n", " ")
        if len(preview) > PREVIEW_WIDTH:
            preview = preview[:PREVIEW_WIDTH] + "..."
        print(f"{indent}[{full_number}] ({draft.clause_type.value}){heading}")
        if preview:
            print(f"{indent}    {preview}")

    print(f"\nTotal: {len(forest)} clauses")
    if forest.is_fallback:
        print("  (no section headers found; whole text stored as one clause)")


def show_pdf_info(path: Path) -> int:
    """Print the document information of a PDF.

    Returns:
        0 on success, 1 on failure.
    """
    if not PdfTextExtractor.validate_pdf(path):
        logger.error(f"{path} is not a PDF file")
        return 1

    try:
        info = PdfTextExtractor(path.parent).extract_metadata(path.name)
    except ExtractionError as e:
        logger.error(str(e))
        return 1

    print(f"\n{path.name}")
    print(f"  Pages:    {info.page_count}")
    print(f"  Title:    {info.title or '-'}")
    print(f"  Author:   {info.author or '-'}")
    print(f"  Subject:  {info.subject or '-'}")
    print(f"  Producer: {info.producer or '-'}")
    if info.creation_date:
        print(f"  Created:  {info.creation_date.isoformat()}")
    return 0


async def parse_bill_command(bill_id: int, hierarchical: bool | None = None) -> int:
    """Parse a stored bill's PDF and replace its clauses.

    Args:
        bill_id: Bill to parse.
        hierarchical: Override the configured hierarchical parsing mode.

    Returns:
        0 on success, 1 on failure.
    """
    from app.models.base import async_session_maker
    from pipeline.clauses.parsing_service import ClauseParsingService

    async with async_session_maker() as session:
        service = ClauseParsingService(session, hierarchical=hierarchical)
        try:
            clauses = await service.parse_bill_clauses(bill_id)
        except BillClauseError as e:
            logger.error(f"Failed to parse bill {bill_id}: {e}")
            return 1

    top_level = sum(1 for c in clauses if c.parent_clause_id is None)
    logger.info(
        f"Bill {bill_id}: {len(clauses)} clauses stored "
        f"({top_level} top-level, {len(clauses) - top_level} nested)"
    )
    return 0


def main() -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(description="Bill clause parsing CLI")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Normalize-text command
    normalize_parser = subparsers.add_parser(
        "normalize-text",
        help="Print the whitespace-normalized text of a file",
    )
    normalize_parser.add_argument("file", type=Path, help="Text or PDF file")
    normalize_parser.add_argument(
        "--pdf",
        action="store_true",
        help="Treat the file as a PDF and extract its text layer",
    )

    # Build-clauses command
    build_parser = subparsers.add_parser(
        "build-clauses",
        help="Split a file into clauses without touching the database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Flat sections from extracted text
  %(prog)s bill.txt

  # Nested subsections straight from a PDF
  %(prog)s bill.pdf --pdf --hierarchical
""",
    )
    build_parser.add_argument("file", type=Path, help="Text or PDF file")
    build_parser.add_argument(
        "--pdf",
        action="store_true",
        help="Treat the file as a PDF and extract its text layer",
    )
    build_parser.add_argument(
        "--hierarchical",
        action="store_true",
        help="Detect subsections, paragraphs and subparagraphs",
    )

    # PDF-info command
    info_parser = subparsers.add_parser(
        "pdf-info", help="Show the document information of a PDF"
    )
    info_parser.add_argument("file", type=Path, help="PDF file")

    # Parse-bill command
    parse_bill_parser = subparsers.add_parser(
        "parse-bill",
        help="Parse a stored bill's PDF and replace its clauses in the database",
    )
    parse_bill_parser.add_argument("bill_id", type=int, help="Bill ID")
    mode = parse_bill_parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--hierarchical",
        dest="hierarchical",
        action="store_true",
        default=None,
        help="Detect nested clauses (overrides CLAUSE_HIERARCHICAL_PARSE)",
    )
    mode.add_argument(
        "--flat",
        dest="hierarchical",
        action="store_false",
        help="Only split into sections (overrides CLAUSE_HIERARCHICAL_PARSE)",
    )

    args = parser.parse_args()

    if args.command in ("normalize-text", "build-clauses"):
        if not args.file.exists():
            logger.error(f"File not found: {args.file}")
            return 1
        try:
            text = normalize_text(read_source(args.file, pdf=args.pdf))
        except ExtractionError as e:
            logger.error(str(e))
            return 1

        if args.command == "normalize-text":
            print(text)
        else:
            print_forest(build_clauses(text, hierarchical=args.hierarchical))
        return 0

    elif args.command == "pdf-info":
        return show_pdf_info(args.file)

    elif args.command == "parse-bill":
        return asyncio.run(parse_bill_command(args.bill_id, args.hierarchical))

    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
