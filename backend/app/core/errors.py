"""Errors raised by clause parsing, persistence and editing.

Every error carries a human-readable message; the API layer maps each
class to an HTTP status in ``app.api.v1.clauses``.
"""


class BillClauseError(Exception):
    """Base class for all clause engine errors."""


class BillNotFoundError(BillClauseError):
    """The referenced bill does not exist."""

    def __init__(self, bill_id: int):
        self.bill_id = bill_id
        super().__init__(f"Bill {bill_id} not found")


class ClauseNotFoundError(BillClauseError):
    """The referenced clause does not exist."""

    def __init__(self, clause_id: int):
        self.clause_id = clause_id
        super().__init__(f"Clause {clause_id} not found")


class ClauseNotFoundInBillError(BillClauseError):
    """The clause exists but belongs to a different bill than the one addressed."""

    def __init__(self, clause_id: int, bill_id: int):
        self.clause_id = clause_id
        self.bill_id = bill_id
        super().__init__(f"Clause {clause_id} does not belong to bill {bill_id}")


class NoPdfAttachedError(BillClauseError):
    """The bill has no source document, so there is nothing to parse."""

    def __init__(self, bill_id: int):
        self.bill_id = bill_id
        super().__init__(f"Bill {bill_id} has no PDF file attached")


class ClauseValidationError(BillClauseError):
    """A manual edit payload is inconsistent with the clause hierarchy.

    Attributes:
        errors: Mapping of offending field name to message.
    """

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        details = "; ".join(f"{name}: {message}" for name, message in errors.items())
        super().__init__(f"Invalid clause: {details}")


class ClauseDeletionBlockedError(ClauseValidationError):
    """Deleting the clause would orphan its children under the active policy."""

    def __init__(self, clause_id: int, child_count: int, reason: str | None = None):
        self.clause_id = clause_id
        self.child_count = child_count
        super().__init__(
            {
                "clause_id": reason
                or f"Clause {clause_id} has {child_count} child clause(s)"
            }
        )


class PersistenceError(BillClauseError):
    """The storage layer rejected a write; the transaction was rolled back."""
