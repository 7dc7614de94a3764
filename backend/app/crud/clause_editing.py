"""Manual clause editing: add, update and delete individual clauses.

These operations work on persisted clauses after (or instead of) an
automatic parse. They never renumber other clauses: an added clause is
appended after the bill's current last ``display_order``, and updates
cannot touch ``display_order`` or ``bill_id``. Every operation checks that
the clause belongs to the bill it was addressed through.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.errors import ClauseDeletionBlockedError, ClauseValidationError
from app.crud.clause import (
    delete_clauses,
    get_child_clauses,
    get_clause_in_bill,
    get_clause_path,
    lock_bill,
    write_transaction,
)
from app.models.bill import BillClause
from app.models.enums import ClauseType, OrphanPolicy
from app.schemas.clause import ClauseCreateSchema, ClauseUpdateSchema

logger = logging.getLogger(__name__)

# Fields an update may set but never clear
_NON_NULLABLE_FIELDS = ("clause_number", "clause_type", "content")


async def _validate_hierarchy(
    session: AsyncSession,
    bill_id: int,
    clause_type: ClauseType,
    parent_clause_id: int | None,
    clause_id: int | None = None,
) -> None:
    """Check that a clause of ``clause_type`` may sit under ``parent_clause_id``.

    Sections are top-level; every other type needs a parent of a shallower
    type in the same bill. When ``clause_id`` is given (an update), the
    clause may not move beneath itself and its existing children must
    remain deeper than its new type.

    Raises:
        ClauseValidationError: With one message per offending field.
    """
    errors: dict[str, str] = {}

    if clause_type == ClauseType.SECTION:
        if parent_clause_id is not None:
            errors["parent_clause_id"] = "A section cannot have a parent clause"
    elif parent_clause_id is None:
        errors["parent_clause_id"] = f"A {clause_type.value} must have a parent clause"
    else:
        parent = await session.get(BillClause, parent_clause_id)
        if parent is None or parent.bill_id != bill_id:
            errors["parent_clause_id"] = (
                f"Clause {parent_clause_id} does not exist in bill {bill_id}"
            )
        elif parent.clause_type.level >= clause_type.level:
            errors["clause_type"] = (
                f"A {clause_type.value} cannot be nested under a "
                f"{parent.clause_type.value}"
            )
        elif clause_id is not None and clause_id in {
            c.clause_id for c in await get_clause_path(session, parent)
        }:
            errors["parent_clause_id"] = (
                "A clause cannot be moved beneath itself or its descendants"
            )

    if clause_id is not None and "clause_type" not in errors:
        result = await session.execute(
            select(BillClause.clause_type).where(
                BillClause.parent_clause_id == clause_id
            )
        )
        if any(t.level <= clause_type.level for t in result.scalars().all()):
            errors["clause_type"] = (
                f"Existing child clauses cannot sit under a {clause_type.value}"
            )

    if errors:
        raise ClauseValidationError(errors)


async def add_clause(
    session: AsyncSession, bill_id: int, payload: ClauseCreateSchema
) -> BillClause:
    """Add a clause after the bill's current last clause.

    The new clause gets ``display_order = max(display_order) + 1`` (0 for a
    bill without clauses); no other clause is touched.

    Raises:
        BillNotFoundError: If the bill does not exist.
        ClauseValidationError: If the type/parent combination is invalid.
        PersistenceError: If the storage layer rejects the write.
    """
    async with write_transaction(session, f"Adding clause to bill {bill_id}"):
        await lock_bill(session, bill_id)
        await _validate_hierarchy(
            session, bill_id, payload.clause_type, payload.parent_clause_id
        )

        result = await session.execute(
            select(func.max(BillClause.display_order)).where(
                BillClause.bill_id == bill_id
            )
        )
        last_order = result.scalar()

        clause = BillClause(
            bill_id=bill_id,
            clause_number=payload.clause_number,
            clause_type=payload.clause_type,
            parent_clause_id=payload.parent_clause_id,
            title=payload.title,
            content=payload.content,
            clause_metadata=payload.metadata or {},
            display_order=0 if last_order is None else last_order + 1,
        )
        session.add(clause)
        await session.flush()

    logger.info(
        f"Added clause {clause.clause_id} ({clause.clause_number}) to bill {bill_id}"
    )
    return clause


async def update_clause(
    session: AsyncSession,
    bill_id: int,
    clause_id: int,
    payload: ClauseUpdateSchema,
) -> BillClause:
    """Apply the fields set in ``payload`` to a clause.

    Raises:
        ClauseNotFoundError: If no clause has this id.
        ClauseNotFoundInBillError: If the clause belongs to another bill.
        ClauseValidationError: If a required field is cleared or the new
            type/parent combination is invalid.
        PersistenceError: If the storage layer rejects the write.
    """
    async with write_transaction(session, f"Updating clause {clause_id}"):
        clause = await get_clause_in_bill(session, bill_id, clause_id)
        changes = payload.model_dump(exclude_unset=True)

        errors = {
            name: "This field cannot be null"
            for name in _NON_NULLABLE_FIELDS
            if name in changes and changes[name] is None
        }
        if errors:
            raise ClauseValidationError(errors)

        if "clause_type" in changes or "parent_clause_id" in changes:
            await _validate_hierarchy(
                session,
                bill_id,
                changes.get("clause_type", clause.clause_type),
                changes.get("parent_clause_id", clause.parent_clause_id),
                clause_id=clause.clause_id,
            )

        if "metadata" in changes:
            changes["clause_metadata"] = changes.pop("metadata") or {}
        for name, value in changes.items():
            setattr(clause, name, value)
        await session.flush()

    logger.info(f"Updated clause {clause_id}: {sorted(changes)}")
    return clause


async def _descendant_ids(session: AsyncSession, clause_id: int) -> list[int]:
    """Return the ids of every clause below ``clause_id``, breadth first."""
    found: list[int] = []
    seen = {clause_id}
    frontier = [clause_id]
    while frontier:
        result = await session.execute(
            select(BillClause.clause_id).where(
                BillClause.parent_clause_id.in_(frontier)
            )
        )
        frontier = [cid for cid in result.scalars().all() if cid not in seen]
        seen.update(frontier)
        found.extend(frontier)
    return found


async def delete_clause(
    session: AsyncSession,
    bill_id: int,
    clause_id: int,
    policy: OrphanPolicy | None = None,
) -> None:
    """Delete a clause, handling its children according to ``policy``.

    - BLOCK: refuse when the clause has children.
    - CASCADE_DELETE: delete the clause and its whole subtree.
    - REPARENT_TO_GRANDPARENT: move children to the clause's parent; refused
      for a section, whose children would have no parent left.

    Args:
        session: Database session.
        bill_id: Bill the clause is addressed through.
        clause_id: Clause to delete.
        policy: Orphan policy; defaults to ``settings.clause_orphan_policy``.

    Raises:
        ClauseNotFoundError: If no clause has this id.
        ClauseNotFoundInBillError: If the clause belongs to another bill.
        ClauseDeletionBlockedError: If the policy refuses the deletion.
        PersistenceError: If the storage layer rejects the write.
    """
    policy = policy or OrphanPolicy(settings.clause_orphan_policy)

    async with write_transaction(session, f"Deleting clause {clause_id}"):
        clause = await get_clause_in_bill(session, bill_id, clause_id)
        children = await get_child_clauses(session, clause.clause_id)
        doomed = [clause.clause_id]

        if children:
            if policy == OrphanPolicy.BLOCK:
                raise ClauseDeletionBlockedError(clause.clause_id, len(children))
            if policy == OrphanPolicy.CASCADE_DELETE:
                doomed.extend(await _descendant_ids(session, clause.clause_id))
            else:
                if clause.parent_clause_id is None:
                    raise ClauseDeletionBlockedError(
                        clause.clause_id,
                        len(children),
                        reason=(
                            f"Clause {clause.clause_id} is top-level; its "
                            "children have no grandparent to move to"
                        ),
                    )
                for child in children:
                    child.parent_clause_id = clause.parent_clause_id
                await session.flush()

        await delete_clauses(session, doomed)

    logger.info(
        f"Deleted {len(doomed)} clause(s) from bill {bill_id} "
        f"(clause {clause_id}, policy {policy.value})"
    )
