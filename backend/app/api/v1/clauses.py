"""Clause endpoints for viewing, parsing and editing a bill's clause tree."""

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    BillClauseError,
    BillNotFoundError,
    ClauseDeletionBlockedError,
    ClauseNotFoundError,
    ClauseNotFoundInBillError,
    ClauseValidationError,
    NoPdfAttachedError,
    PersistenceError,
)
from app.crud.clause import (
    describe_clause,
    get_clause_detail,
    list_clause_trees,
    to_clause_schemas,
)
from app.crud.clause_editing import add_clause, delete_clause, update_clause
from app.models.base import get_async_session
from app.models.enums import OrphanPolicy
from app.schemas.clause import (
    ClauseCreateSchema,
    ClauseDetailSchema,
    ClauseSchema,
    ClauseTreeSchema,
    ClauseUpdateSchema,
    ParseResultSchema,
)
from pipeline.clauses.parsing_service import ClauseParsingService
from pipeline.pdf.text_extractor import ExtractionError

router = APIRouter()

# Checked in order, so subclasses come before their bases
_STATUS_CODES: list[tuple[type[BillClauseError], int]] = [
    (BillNotFoundError, 404),
    (ClauseNotFoundError, 404),
    (ClauseNotFoundInBillError, 404),
    (NoPdfAttachedError, 409),
    (ClauseDeletionBlockedError, 409),
    (ClauseValidationError, 422),
    (ExtractionError, 422),
    (PersistenceError, 503),
]


def _to_http_error(error: BillClauseError) -> HTTPException:
    """Translate a clause engine error into an HTTP error response."""
    status_code = next(
        (code for cls, code in _STATUS_CODES if isinstance(error, cls)), 500
    )
    if status_code == 422 and isinstance(error, ClauseValidationError):
        detail: object = [
            {"loc": ["body", field], "msg": message, "type": "value_error"}
            for field, message in error.errors.items()
        ]
    else:
        detail = str(error)
    return HTTPException(status_code=status_code, detail=detail)


@router.get("/{bill_id}/clauses")
async def read_clauses(
    bill_id: int,
    session: AsyncSession = Depends(get_async_session),
) -> list[ClauseTreeSchema]:
    """List a bill's top-level clauses with their immediate children."""
    try:
        return await list_clause_trees(session, bill_id)
    except BillClauseError as e:
        raise _to_http_error(e) from e


@router.get("/{bill_id}/clauses/{clause_id}")
async def read_clause(
    bill_id: int,
    clause_id: int,
    session: AsyncSession = Depends(get_async_session),
) -> ClauseDetailSchema:
    """Get a clause with its parent, children, analytics and path."""
    try:
        return await get_clause_detail(session, bill_id, clause_id)
    except BillClauseError as e:
        raise _to_http_error(e) from e


@router.post("/{bill_id}/clauses/parse")
async def parse_clauses(
    bill_id: int,
    session: AsyncSession = Depends(get_async_session),
) -> ParseResultSchema:
    """Re-parse the bill's PDF, replacing all of its clauses."""
    try:
        clauses = await ClauseParsingService(session).parse_bill_clauses(bill_id)
    except BillClauseError as e:
        raise _to_http_error(e) from e
    return ParseResultSchema(
        bill_id=bill_id, count=len(clauses), clauses=to_clause_schemas(clauses)
    )


@router.post("/{bill_id}/clauses", status_code=201)
async def create_clause(
    bill_id: int,
    payload: ClauseCreateSchema,
    session: AsyncSession = Depends(get_async_session),
) -> ClauseSchema:
    """Add a clause after the bill's last clause."""
    try:
        clause = await add_clause(session, bill_id, payload)
        return await describe_clause(session, clause)
    except BillClauseError as e:
        raise _to_http_error(e) from e


@router.patch("/{bill_id}/clauses/{clause_id}")
async def patch_clause(
    bill_id: int,
    clause_id: int,
    payload: ClauseUpdateSchema,
    session: AsyncSession = Depends(get_async_session),
) -> ClauseSchema:
    """Update the given fields of a clause."""
    try:
        clause = await update_clause(session, bill_id, clause_id, payload)
        return await describe_clause(session, clause)
    except BillClauseError as e:
        raise _to_http_error(e) from e


@router.delete("/{bill_id}/clauses/{clause_id}", status_code=204)
async def remove_clause(
    bill_id: int,
    clause_id: int,
    orphan_policy: OrphanPolicy | None = Query(
        None, description="What to do with the clause's children"
    ),
    session: AsyncSession = Depends(get_async_session),
) -> Response:
    """Delete a clause; children are handled by the orphan policy."""
    try:
        await delete_clause(session, bill_id, clause_id, policy=orphan_policy)
    except BillClauseError as e:
        raise _to_http_error(e) from e
    return Response(status_code=204)
