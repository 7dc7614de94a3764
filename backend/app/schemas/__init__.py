"""Pydantic schemas module.

This module contains Pydantic models used for:
- API request/response validation
- Data transfer between layers (pipeline, crud, API)

Naming convention:
- Schema suffix to distinguish from SQLAlchemy models
- Clause* prefix for bill clause entities
"""

from app.schemas.clause import (
    ClauseAnalyticsSchema,
    ClauseCreateSchema,
    ClauseDetailSchema,
    ClausePathEntrySchema,
    ClauseSchema,
    ClauseTreeSchema,
    ClauseUpdateSchema,
    ParseResultSchema,
)

__all__ = [
    "ClauseAnalyticsSchema",
    "ClauseCreateSchema",
    "ClauseDetailSchema",
    "ClausePathEntrySchema",
    "ClauseSchema",
    "ClauseTreeSchema",
    "ClauseUpdateSchema",
    "ParseResultSchema",
]
