"""SQLAlchemy ENUM types for the database schema."""

import enum


class ClauseType(str, enum.Enum):
    """Level of a clause within a bill, from largest to smallest unit."""

    SECTION = "section"  # Section 5
    SUBSECTION = "subsection"  # 5(1), 5.1
    PARAGRAPH = "paragraph"  # 5(1)(a), 5.1.1
    SUBPARAGRAPH = "subparagraph"  # 5(1)(a)(i)

    @property
    def level(self) -> int:
        """Nesting depth (0 = section)."""
        return _CLAUSE_LEVELS.index(self)

    @classmethod
    def for_level(cls, level: int) -> "ClauseType":
        """Return the clause type at a nesting depth."""
        return _CLAUSE_LEVELS[level]


_CLAUSE_LEVELS = [
    ClauseType.SECTION,
    ClauseType.SUBSECTION,
    ClauseType.PARAGRAPH,
    ClauseType.SUBPARAGRAPH,
]


class OrphanPolicy(str, enum.Enum):
    """What happens to the children of a clause when it is deleted."""

    BLOCK = "block"  # Refuse to delete a clause that has children
    CASCADE_DELETE = "cascade_delete"  # Delete the whole subtree
    REPARENT_TO_GRANDPARENT = "reparent_to_grandparent"  # Lift children one level


class Sentiment(str, enum.Enum):
    """Dominant sentiment of the public submissions on a clause."""

    SUPPORT = "support"
    OPPOSE = "oppose"
    NEUTRAL = "neutral"
