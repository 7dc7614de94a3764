"""Bill clause structuring: normalize extracted text and rebuild its clause tree."""

from pipeline.clauses.builder import (
    ClauseBuilder,
    ClauseDraft,
    ClauseForest,
    build_clauses,
)
from pipeline.clauses.normalizer import normalize_text
from pipeline.clauses.patterns import (
    CLAUSE_RULES,
    SECTION_RULES,
    SUBSECTION_RULES,
    ClauseRule,
    ClauseRuleType,
    LineMatch,
    match_line,
)

__all__ = [
    # Normalizer
    "normalize_text",
    # Patterns
    "CLAUSE_RULES",
    "SECTION_RULES",
    "SUBSECTION_RULES",
    "ClauseRule",
    "ClauseRuleType",
    "LineMatch",
    "match_line",
    # Builder
    "ClauseBuilder",
    "ClauseDraft",
    "ClauseForest",
    "build_clauses",
    # Service
    "ClauseParsingService",
]


# Lazy import: the service pulls in the database layer
def __getattr__(name: str):
    if name == "ClauseParsingService":
        from pipeline.clauses.parsing_service import ClauseParsingService

        return ClauseParsingService
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
