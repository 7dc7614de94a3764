"""SQLAlchemy models for bill clause structuring."""

from app.models.base import Base, TimestampMixin, async_session_maker, get_async_session
from app.models.bill import Bill, BillClause, ClauseAnalytics
from app.models.enums import ClauseType, OrphanPolicy, Sentiment

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "async_session_maker",
    "get_async_session",
    # Enums
    "ClauseType",
    "OrphanPolicy",
    "Sentiment",
    # Bills
    "Bill",
    "BillClause",
    "ClauseAnalytics",
]
