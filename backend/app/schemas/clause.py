"""Pydantic schemas for bill clauses.

Read schemas are built from ORM objects in ``app.crud.clause``; write
schemas validate manual edit payloads before they reach the database.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import ClauseType, Sentiment


class ClauseSchema(BaseModel):
    """A persisted clause.

    Attributes:
        clause_id: Database id.
        bill_id: Owning bill.
        clause_number: The clause's own number token (e.g. "a").
        full_number: Dot-joined numbers from the root section (e.g. "5.2.a").
        clause_type: Level of the clause.
        parent_clause_id: Parent clause, None for sections.
        title: Heading text.
        content: Body text excluding child clauses.
        metadata: Provenance facts recorded by the parser or editor.
        display_order: Bill-wide document order.
    """

    clause_id: int
    bill_id: int
    clause_number: str
    full_number: str
    clause_type: ClauseType
    parent_clause_id: int | None = None
    title: str | None = None
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    display_order: int


class ClauseTreeSchema(ClauseSchema):
    """A clause together with its immediate children (used for bill listings)."""

    children: list[ClauseSchema] = Field(default_factory=list)


class ClausePathEntrySchema(BaseModel):
    """One step on the path from a root section down to a clause."""

    clause_id: int
    clause_number: str
    clause_type: ClauseType
    title: str | None = None


class ClauseAnalyticsSchema(BaseModel):
    """Aggregated public feedback on a clause."""

    submissions_count: int = 0
    support_count: int = 0
    oppose_count: int = 0
    neutral_count: int = 0
    support_percentage: float = 0.0
    oppose_percentage: float = 0.0
    neutral_percentage: float = 0.0
    dominant_sentiment: Sentiment = Sentiment.SUPPORT
    sentiment_scores: dict[str, Any] | None = None
    top_keywords: list[str] | None = None
    last_analyzed_at: datetime | None = None


class ClauseDetailSchema(ClauseSchema):
    """Full view of a single clause."""

    parent: ClauseSchema | None = None
    children: list[ClauseSchema] = Field(default_factory=list)
    analytics: ClauseAnalyticsSchema | None = None
    path: list[ClausePathEntrySchema] = Field(default_factory=list)


class ClauseCreateSchema(BaseModel):
    """Payload for manually adding a clause to a bill."""

    model_config = ConfigDict(extra="ignore")

    clause_number: str = Field(..., min_length=1, max_length=255)
    clause_type: ClauseType
    parent_clause_id: int | None = None
    title: str | None = None
    content: str = Field(..., min_length=1)
    metadata: dict[str, Any] | None = None


class ClauseUpdateSchema(BaseModel):
    """Partial update of a clause; only fields that are set are applied.

    ``bill_id`` and ``display_order`` are not part of the schema and can
    never be changed by an update.
    """

    model_config = ConfigDict(extra="ignore")

    clause_number: str | None = Field(None, min_length=1, max_length=255)
    clause_type: ClauseType | None = None
    parent_clause_id: int | None = None
    title: str | None = None
    content: str | None = Field(None, min_length=1)
    metadata: dict[str, Any] | None = None


class ParseResultSchema(BaseModel):
    """Result of parsing a bill's PDF into clauses."""

    bill_id: int
    count: int
    clauses: list[ClauseSchema]
