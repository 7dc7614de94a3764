"""Bill, BillClause and ClauseAnalytics models."""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, JSONType, TimestampMixin, enum_column
from app.models.enums import ClauseType, Sentiment


class Bill(Base, TimestampMixin):
    """A bill whose source PDF is split into clauses."""

    __tablename__ = "bill"

    bill_id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    bill_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    # Logical path within the document store; None until a PDF is uploaded
    pdf_path: Mapped[str | None] = mapped_column(String(500), nullable=True)

    clauses: Mapped[list["BillClause"]] = relationship(
        back_populates="bill",
        order_by="BillClause.display_order",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Bill({self.bill_id}: {self.title})>"


class BillClause(Base, TimestampMixin):
    """A node in a bill's clause hierarchy.

    ``clause_number`` holds only this node's own token ("5", "a", "2");
    the dotted hierarchical number ("5.2.a") is derived from the
    ``parent_clause_id`` chain and never stored.  ``display_order`` is
    unique per bill and increases in document order across the whole
    flattened tree.
    """

    __tablename__ = "bill_clause"

    clause_id: Mapped[int] = mapped_column(primary_key=True)
    bill_id: Mapped[int] = mapped_column(
        ForeignKey("bill.bill_id", ondelete="CASCADE"), nullable=False
    )
    clause_number: Mapped[str] = mapped_column(String(255), nullable=False)
    clause_type: Mapped[ClauseType] = mapped_column(
        enum_column(ClauseType, "clause_type"),
        default=ClauseType.SECTION,
        nullable=False,
    )
    parent_clause_id: Mapped[int | None] = mapped_column(
        ForeignKey("bill_clause.clause_id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    clause_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONType, default=dict, nullable=False
    )
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Relationships
    bill: Mapped["Bill"] = relationship(back_populates="clauses")
    parent: Mapped[Optional["BillClause"]] = relationship(
        remote_side="BillClause.clause_id",
        foreign_keys=[parent_clause_id],
        back_populates="children",
    )
    children: Mapped[list["BillClause"]] = relationship(
        back_populates="parent",
        foreign_keys=[parent_clause_id],
        order_by="BillClause.display_order",
        passive_deletes=True,
    )
    analytics: Mapped[Optional["ClauseAnalytics"]] = relationship(
        back_populates="clause", passive_deletes=True
    )

    __table_args__ = (
        Index("idx_bill_clause_bill_number", "bill_id", "clause_number"),
        UniqueConstraint(
            "bill_id", "display_order", name="uq_bill_clause_bill_display_order"
        ),
        Index("idx_bill_clause_parent", "parent_clause_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<BillClause({self.clause_type.value} {self.clause_number} "
            f"of bill {self.bill_id})>"
        )


class ClauseAnalytics(Base, TimestampMixin):
    """Aggregated public feedback for a single clause."""

    __tablename__ = "clause_analytics"

    analytics_id: Mapped[int] = mapped_column(primary_key=True)
    clause_id: Mapped[int] = mapped_column(
        ForeignKey("bill_clause.clause_id", ondelete="CASCADE"), nullable=False
    )
    submissions_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    support_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    oppose_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    neutral_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sentiment_scores: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType, nullable=True
    )
    top_keywords: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    last_analyzed_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )

    clause: Mapped["BillClause"] = relationship(back_populates="analytics")

    __table_args__ = (UniqueConstraint("clause_id", name="uq_clause_analytics_clause"),)

    def _percentage(self, count: int) -> float:
        if not self.submissions_count:
            return 0.0
        return round(count / self.submissions_count * 100, 2)

    @property
    def support_percentage(self) -> float:
        return self._percentage(self.support_count)

    @property
    def oppose_percentage(self) -> float:
        return self._percentage(self.oppose_count)

    @property
    def neutral_percentage(self) -> float:
        return self._percentage(self.neutral_count)

    @property
    def dominant_sentiment(self) -> Sentiment:
        """Sentiment with the most submissions; ties favour support, then oppose."""
        top = max(self.support_count, self.oppose_count, self.neutral_count)
        if top == self.support_count:
            return Sentiment.SUPPORT
        if top == self.oppose_count:
            return Sentiment.OPPOSE
        return Sentiment.NEUTRAL

    def __repr__(self) -> str:
        return f"<ClauseAnalytics(clause {self.clause_id}: {self.submissions_count})>"
