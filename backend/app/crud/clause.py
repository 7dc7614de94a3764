"""CRUD operations for bill clause trees.

A bill's clauses are written in one of two ways: ``replace_clauses`` swaps
the whole set for a freshly parsed forest inside a single transaction, and
the functions in ``app.crud.clause_editing`` change individual clauses.
Reads return clauses ordered by ``display_order``; hierarchical numbers
("5.2.a") and root-to-clause paths are derived from ``parent_clause_id``
links on demand.
"""

import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    BillClauseError,
    BillNotFoundError,
    ClauseNotFoundError,
    ClauseNotFoundInBillError,
    PersistenceError,
)
from app.models.bill import Bill, BillClause, ClauseAnalytics
from app.schemas.clause import (
    ClauseAnalyticsSchema,
    ClauseDetailSchema,
    ClausePathEntrySchema,
    ClauseSchema,
    ClauseTreeSchema,
)
from pipeline.clauses.builder import ClauseForest

logger = logging.getLogger(__name__)


@asynccontextmanager
async def write_transaction(
    session: AsyncSession, description: str
) -> AsyncIterator[None]:
    """Commit the enclosed writes, or roll all of them back.

    Every failure, cancellation included, rolls the session back. Storage
    errors are re-raised as PersistenceError; anything else propagates
    unchanged.
    """
    try:
        yield
        await session.commit()
    except BillClauseError:
        await session.rollback()
        raise
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception(f"{description} failed")
        raise PersistenceError(f"{description} failed: {e}") from e
    except BaseException:
        logger.exception(f"{description} failed")
        await session.rollback()
        raise


async def lock_bill(session: AsyncSession, bill_id: int) -> Bill:
    """Load a bill and hold its row lock until the transaction ends.

    Serializes concurrent parses and manual additions for the same bill.
    Databases without row locks (SQLite) ignore the FOR UPDATE clause.

    Raises:
        BillNotFoundError: If the bill does not exist.
    """
    result = await session.execute(
        select(Bill).where(Bill.bill_id == bill_id).with_for_update()
    )
    bill = result.scalar_one_or_none()
    if bill is None:
        raise BillNotFoundError(bill_id)
    return bill


async def delete_clauses(session: AsyncSession, clause_ids: Iterable[int]) -> None:
    """Delete clauses by id together with their analytics rows."""
    ids = list(clause_ids)
    if not ids:
        return
    await session.execute(
        delete(ClauseAnalytics).where(ClauseAnalytics.clause_id.in_(ids))
    )
    await session.execute(delete(BillClause).where(BillClause.clause_id.in_(ids)))


async def replace_clauses(
    session: AsyncSession, bill_id: int, forest: ClauseForest
) -> list[BillClause]:
    """Replace every clause of a bill with a freshly built forest.

    Existing clauses (and their analytics) are deleted and the drafts are
    inserted in one transaction; on any failure the transaction is rolled
    back and the bill keeps its previous clause set.

    Args:
        session: Database session.
        bill_id: Bill whose clauses are replaced.
        forest: Drafts in display order, parents before children.

    Returns:
        The persisted clauses ordered by display_order.

    Raises:
        BillNotFoundError: If the bill does not exist.
        PersistenceError: If the storage layer rejects the write.
    """
    persisted: dict[int, BillClause] = {}

    async with write_transaction(session, f"Replacing clauses for bill {bill_id}"):
        await lock_bill(session, bill_id)

        existing = await session.execute(
            select(BillClause.clause_id).where(BillClause.bill_id == bill_id)
        )
        await delete_clauses(session, existing.scalars().all())

        for draft in forest:
            clause = BillClause(
                bill_id=bill_id,
                clause_number=draft.number,
                clause_type=draft.clause_type,
                title=draft.title,
                content=draft.content,
                clause_metadata=dict(draft.metadata),
                display_order=draft.display_order,
            )
            if draft.parent_index is not None:
                clause.parent = persisted[draft.parent_index]
            session.add(clause)
            persisted[draft.index] = clause

        await session.flush()

    clauses = sorted(persisted.values(), key=lambda c: c.display_order)
    logger.info(f"Stored {len(clauses)} clauses for bill {bill_id}")
    return clauses


# =============================================================================
# Reads
# =============================================================================


async def get_bill_clauses(session: AsyncSession, bill_id: int) -> list[BillClause]:
    """Return every clause of a bill, ordered by display_order."""
    result = await session.execute(
        select(BillClause)
        .where(BillClause.bill_id == bill_id)
        .order_by(BillClause.display_order)
    )
    return list(result.scalars().all())


async def get_top_level_clauses(
    session: AsyncSession, bill_id: int
) -> list[BillClause]:
    """Return a bill's top-level clauses, ordered by display_order."""
    result = await session.execute(
        select(BillClause)
        .where(
            BillClause.bill_id == bill_id,
            BillClause.parent_clause_id.is_(None),
        )
        .order_by(BillClause.display_order)
    )
    return list(result.scalars().all())


async def get_child_clauses(
    session: AsyncSession, clause_id: int
) -> list[BillClause]:
    """Return the immediate children of a clause, ordered by display_order."""
    result = await session.execute(
        select(BillClause)
        .where(BillClause.parent_clause_id == clause_id)
        .order_by(BillClause.display_order)
    )
    return list(result.scalars().all())


async def get_clause_analytics(
    session: AsyncSession, clause_id: int
) -> ClauseAnalytics | None:
    """Return the analytics aggregate of a clause, if one has been computed."""
    result = await session.execute(
        select(ClauseAnalytics).where(ClauseAnalytics.clause_id == clause_id)
    )
    return result.scalar_one_or_none()


async def get_clause_in_bill(
    session: AsyncSession, bill_id: int, clause_id: int
) -> BillClause:
    """Load a clause and check that it belongs to the addressed bill.

    Raises:
        ClauseNotFoundError: If no clause has this id.
        ClauseNotFoundInBillError: If the clause belongs to another bill.
    """
    clause = await session.get(BillClause, clause_id)
    if clause is None:
        raise ClauseNotFoundError(clause_id)
    if clause.bill_id != bill_id:
        raise ClauseNotFoundInBillError(clause_id, bill_id)
    return clause


async def get_clause_path(
    session: AsyncSession, clause: BillClause
) -> list[BillClause]:
    """Return the clauses from the root section down to ``clause`` (inclusive).

    The walk stops at a parent id that no longer resolves to a row.
    """
    path = [clause]
    seen = {clause.clause_id}
    current = clause
    while current.parent_clause_id is not None and current.parent_clause_id not in seen:
        parent = await session.get(BillClause, current.parent_clause_id)
        if parent is None:
            break
        path.insert(0, parent)
        seen.add(parent.clause_id)
        current = parent
    return path


async def get_full_clause_number(session: AsyncSession, clause: BillClause) -> str:
    """Return the dot-joined hierarchical number of a clause (e.g. "5.2.a")."""
    path = await get_clause_path(session, clause)
    return ".".join(c.clause_number for c in path)


def full_clause_numbers(clauses: Iterable[BillClause]) -> dict[int, str]:
    """Compute hierarchical numbers for a set of clauses from one bill.

    Parents missing from ``clauses`` end the chain, as in get_clause_path.

    Returns:
        Mapping of clause_id to its dot-joined number.
    """
    by_id = {c.clause_id: c for c in clauses}
    numbers: dict[int, str] = {}

    for clause in by_id.values():
        chain = [clause]
        seen = {clause.clause_id}
        current = clause
        while (
            current.parent_clause_id in by_id
            and current.parent_clause_id not in seen
            and current.clause_id not in numbers
        ):
            current = by_id[current.parent_clause_id]
            seen.add(current.clause_id)
            chain.append(current)

        # chain runs child -> ancestor; reuse any number already computed
        prefix = numbers.get(chain[-1].clause_id)
        if prefix is not None:
            chain.pop()
        for node in reversed(chain):
            prefix = (
                node.clause_number if prefix is None else f"{prefix}.{node.clause_number}"
            )
            numbers[node.clause_id] = prefix

    return numbers


# =============================================================================
# Schema builders
# =============================================================================


def to_clause_schema(clause: BillClause, full_number: str) -> ClauseSchema:
    """Build a ClauseSchema from an ORM clause."""
    return ClauseSchema(
        clause_id=clause.clause_id,
        bill_id=clause.bill_id,
        clause_number=clause.clause_number,
        full_number=full_number,
        clause_type=clause.clause_type,
        parent_clause_id=clause.parent_clause_id,
        title=clause.title,
        content=clause.content,
        metadata=clause.clause_metadata or {},
        display_order=clause.display_order,
    )


def to_analytics_schema(analytics: ClauseAnalytics) -> ClauseAnalyticsSchema:
    """Build a ClauseAnalyticsSchema, including the derived percentages."""
    return ClauseAnalyticsSchema(
        submissions_count=analytics.submissions_count,
        support_count=analytics.support_count,
        oppose_count=analytics.oppose_count,
        neutral_count=analytics.neutral_count,
        support_percentage=analytics.support_percentage,
        oppose_percentage=analytics.oppose_percentage,
        neutral_percentage=analytics.neutral_percentage,
        dominant_sentiment=analytics.dominant_sentiment,
        sentiment_scores=analytics.sentiment_scores,
        top_keywords=analytics.top_keywords,
        last_analyzed_at=analytics.last_analyzed_at,
    )


def to_clause_schemas(clauses: list[BillClause]) -> list[ClauseSchema]:
    """Build schemas for clauses of one bill, computing their full numbers."""
    numbers = full_clause_numbers(clauses)
    return [to_clause_schema(c, numbers[c.clause_id]) for c in clauses]


async def describe_clause(session: AsyncSession, clause: BillClause) -> ClauseSchema:
    """Build the schema of a single clause, looking up its ancestors."""
    return to_clause_schema(clause, await get_full_clause_number(session, clause))


async def list_clause_trees(
    session: AsyncSession, bill_id: int
) -> list[ClauseTreeSchema]:
    """Return a bill's top-level clauses, each with its immediate children.

    Raises:
        BillNotFoundError: If the bill does not exist.
    """
    if await session.get(Bill, bill_id) is None:
        raise BillNotFoundError(bill_id)

    clauses = await get_bill_clauses(session, bill_id)
    numbers = full_clause_numbers(clauses)

    children_by_parent: dict[int, list[ClauseSchema]] = {}
    for clause in clauses:
        if clause.parent_clause_id is not None:
            children_by_parent.setdefault(clause.parent_clause_id, []).append(
                to_clause_schema(clause, numbers[clause.clause_id])
            )

    return [
        ClauseTreeSchema(
            **to_clause_schema(clause, numbers[clause.clause_id]).model_dump(),
            children=children_by_parent.get(clause.clause_id, []),
        )
        for clause in clauses
        if clause.parent_clause_id is None
    ]


async def get_clause_detail(
    session: AsyncSession, bill_id: int, clause_id: int
) -> ClauseDetailSchema:
    """Return a clause with its parent, children, analytics and path.

    Raises:
        ClauseNotFoundError: If no clause has this id.
        ClauseNotFoundInBillError: If the clause belongs to another bill.
    """
    clause = await get_clause_in_bill(session, bill_id, clause_id)
    path = await get_clause_path(session, clause)
    full_number = ".".join(c.clause_number for c in path)

    parent_schema = None
    if len(path) > 1:
        parent = path[-2]
        parent_schema = to_clause_schema(
            parent, ".".join(c.clause_number for c in path[:-1])
        )

    children = await get_child_clauses(session, clause.clause_id)
    analytics = await get_clause_analytics(session, clause.clause_id)

    return ClauseDetailSchema(
        **to_clause_schema(clause, full_number).model_dump(),
        parent=parent_schema,
        children=[
            to_clause_schema(child, f"{full_number}.{child.clause_number}")
            for child in children
        ],
        analytics=to_analytics_schema(analytics) if analytics else None,
        path=[
            ClausePathEntrySchema(
                clause_id=c.clause_id,
                clause_number=c.clause_number,
                clause_type=c.clause_type,
                title=c.title,
            )
            for c in path
        ],
    )
