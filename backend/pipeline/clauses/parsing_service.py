"""Clause parsing service: orchestrator turning a bill's PDF into clauses.

This is the main entry point for (re)building a bill's clause tree. It
coordinates:
1. Loading the bill and checking that a PDF is attached
2. Extracting the PDF's text layer
3. Normalizing whitespace
4. Building the clause forest
5. Replacing the bill's stored clauses in one transaction

Failures at any step leave the bill's existing clauses untouched.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.errors import BillNotFoundError, NoPdfAttachedError
from app.crud.clause import replace_clauses
from app.models.bill import Bill, BillClause
from pipeline.clauses.builder import ClauseBuilder, ClauseForest
from pipeline.clauses.normalizer import normalize_text
from pipeline.pdf.text_extractor import PdfTextExtractor, TextExtractor

logger = logging.getLogger(__name__)


class ClauseParsingService:
    """Parse bill PDFs into persisted clause trees.

    The service holds no state between calls; concurrent parses of the
    same bill are serialized by the row lock taken in ``replace_clauses``.
    """

    def __init__(
        self,
        session: AsyncSession,
        extractor: TextExtractor | None = None,
        hierarchical: bool | None = None,
    ):
        """Initialize the service.

        Args:
            session: Database session.
            extractor: Text extraction collaborator (default: PdfTextExtractor
                rooted at ``settings.pdf_storage_root``).
            hierarchical: Detect nested clauses; defaults to
                ``settings.clause_hierarchical_parse``.
        """
        self.session = session
        self.extractor = extractor or PdfTextExtractor(settings.pdf_storage_root)
        if hierarchical is None:
            hierarchical = settings.clause_hierarchical_parse
        self.builder = ClauseBuilder(hierarchical=hierarchical)

    def build_forest(self, raw_text: str) -> ClauseForest:
        """Normalize extracted text and build its clause forest."""
        return self.builder.build(normalize_text(raw_text))

    async def parse_bill_clauses(self, bill_id: int) -> list[BillClause]:
        """Parse a bill's PDF and replace its clauses with the result.

        Args:
            bill_id: Bill to parse.

        Returns:
            The persisted clauses ordered by display_order.

        Raises:
            BillNotFoundError: If the bill does not exist.
            NoPdfAttachedError: If the bill has no PDF.
            ExtractionError: If the PDF text cannot be extracted.
            PersistenceError: If storing the clauses fails.
        """
        bill = await self.session.get(Bill, bill_id)
        if bill is None:
            raise BillNotFoundError(bill_id)
        if not bill.pdf_path:
            raise NoPdfAttachedError(bill_id)

        try:
            raw_text = await asyncio.to_thread(
                self.extractor.extract_text, bill.pdf_path
            )
            forest = self.build_forest(raw_text)
            if forest.is_fallback:
                logger.warning(
                    f"No section headers found in bill {bill_id}; "
                    "stored as a single clause"
                )
            clauses = await replace_clauses(self.session, bill_id, forest)
        except Exception as e:
            logger.error(f"Clause parsing failed for bill {bill_id}: {e}")
            raise

        logger.info(f"Parsed {len(clauses)} clauses for bill {bill_id}")
        return clauses
