"""Clause builder: reconstruct a bill's clause structure from normalized text.

The builder walks the text once, line by line. Every line that matches the
section header rule closes the open section and opens a new one; every
other non-empty line is content of the open section. Sections are emitted
in document order, so ``display_order`` is simply the emission index.

By default the output is flat (every clause is a section). With
``hierarchical=True`` each section's lines are re-scanned when it closes,
and parenthesized or dotted markers open nested subsections, paragraphs
and subparagraphs beneath it. Nested clauses are emitted right after their
section, so parents always precede their descendants.

The builder is total: any string produces at least one clause. A document
without a single section header yields one auto-generated clause holding
the whole text.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from app.models.enums import ClauseType
from pipeline.clauses.patterns import (
    DOTTED_SUBSECTION,
    SECTION_RULES,
    SUBSECTION_RULES,
    ClauseRuleType,
    LineMatch,
    match_line,
)

logger = logging.getLogger(__name__)

FALLBACK_NUMBER = "1"
FALLBACK_TITLE = "Full Bill Text"

# Levels available beneath a section: subsection, paragraph, subparagraph
MAX_SUBSECTION_DEPTH = 3

# Roman numerals that can also be read as letters: (i), (v), (x), (ii), ...
ROMAN_MARKER = re.compile(r"^(?=[ivx]+$)x{0,3}(?:ix|iv|v?i{0,3})$")


@dataclass
class ClauseDraft:
    """A clause produced by the builder, before it is persisted.

    Attributes:
        index: Position in the forest; stands in for the database id.
        number: The clause's own number token ("5", "a", "2").
        clause_type: Level of the clause.
        content: Body text, excluding text captured by child clauses.
        display_order: Document-order position across the whole forest.
        title: Heading text (sections only).
        parent_index: ``index`` of the parent draft, None for sections.
        metadata: Provenance facts (``line_start``, ``auto_generated``, ...).
    """

    index: int
    number: str
    clause_type: ClauseType
    content: str
    display_order: int
    title: str | None = None
    parent_index: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ClauseForest:
    """Clause drafts in display order, parents before their descendants.

    Attributes:
        drafts: Every draft, ordered by ``display_order``.
        preamble: Text that appeared before the first section header.
    """

    drafts: list[ClauseDraft] = field(default_factory=list)
    preamble: str = ""

    def __iter__(self) -> Iterator[ClauseDraft]:
        return iter(self.drafts)

    def __len__(self) -> int:
        return len(self.drafts)

    def roots(self) -> list[ClauseDraft]:
        """Return the top-level (section) drafts."""
        return [d for d in self.drafts if d.parent_index is None]

    def children(self, index: int) -> list[ClauseDraft]:
        """Return the immediate children of the draft at ``index``."""
        return [d for d in self.drafts if d.parent_index == index]

    @property
    def is_fallback(self) -> bool:
        """True when no section header was found in the text."""
        return len(self.drafts) == 1 and bool(
            self.drafts[0].metadata.get("auto_generated")
        )


@dataclass
class _Line:
    number: int  # 0-based line index in the normalized text
    text: str


@dataclass
class _OpenNode:
    """A clause that is still collecting lines."""

    number: str
    line_start: int
    lines: list[_Line] = field(default_factory=list)
    title: str | None = None
    level: int = 0
    style: str | None = None
    marker: str | None = None
    parent: "_OpenNode | None" = None
    index: int | None = None


def _marker_style(token: str, stack: list[_OpenNode]) -> str:
    """Classify a parenthesized marker token by numbering style.

    Single-letter roman candidates (i, v, x) count as letters only when
    they continue an open alphabetic sequence, e.g. (h) -> (i).
    """
    if token.isdigit():
        return "numeric"
    if not token.isalpha() or not (token.islower() or token.isupper()):
        return "mixed"
    case = "lower" if token.islower() else "upper"
    if ROMAN_MARKER.match(token.lower()):
        if len(token) == 1 and _continues_alpha(token, stack, f"{case}_alpha"):
            return f"{case}_alpha"
        return f"{case}_roman"
    return f"{case}_alpha"


def _continues_alpha(token: str, stack: list[_OpenNode], style: str) -> bool:
    for node in stack:
        if node.style == style and len(node.number) == 1:
            if ord(token.lower()) == ord(node.number.lower()) + 1:
                return True
    return False


def _is_dotted_child(line: str, section_number: str) -> bool:
    """Whether ``line`` is a dotted subsection ("5.1 ...") of section ``section_number``."""
    match = match_line(line, [DOTTED_SUBSECTION])
    if match is None:
        return False
    try:
        return int(match.number.split(".")[0]) == int(section_number)
    except ValueError:
        # Token too long to convert; leave the line to the section rule
        return False


class ClauseBuilder:
    """Single-pass builder turning normalized bill text into a ClauseForest.

    Each ``build`` call keeps its state in locals, so one builder may be
    shared between callers.
    """

    def __init__(self, hierarchical: bool = False):
        """Initialize the builder.

        Args:
            hierarchical: Also detect subsections/paragraphs inside sections.
        """
        self.hierarchical = hierarchical

    def build(self, text: str) -> ClauseForest:
        """Build the clause forest for a document.

        Args:
            text: Normalized bill text (see ``normalize_text``).

        Returns:
            ClauseForest with at least one draft.
        """
        forest = ClauseForest()
        preamble: list[str] = []
        current: _OpenNode | None = None

        for line_number, raw_line in enumerate(text.split("\n")):
            line = raw_line.strip()
            if not line:
                continue

            match = self._match_section(line, current)
            if match is None:
                if current is None:
                    preamble.append(line)
                else:
                    current.lines.append(_Line(line_number, line))
                continue

            if current is not None:
                self._emit_section(forest, current)
            current = _OpenNode(
                number=match.number, title=match.heading, line_start=line_number
            )

        if current is not None:
            self._emit_section(forest, current)

        if not forest.drafts:
            logger.debug("No section headers found; emitting fallback clause")
            forest.drafts.append(
                ClauseDraft(
                    index=0,
                    number=FALLBACK_NUMBER,
                    clause_type=ClauseType.SECTION,
                    title=FALLBACK_TITLE,
                    content=text.strip(),
                    display_order=0,
                    metadata={"auto_generated": True},
                )
            )
            return forest

        if preamble:
            forest.preamble = "\n".join(preamble)
            forest.drafts[0].metadata["preamble"] = forest.preamble

        logger.debug(
            f"Built {len(forest.roots())} sections, {len(forest)} clauses total"
        )
        return forest

    def _match_section(self, line: str, current: _OpenNode | None) -> LineMatch | None:
        match = match_line(line, SECTION_RULES)
        if (
            match is not None
            and self.hierarchical
            and current is not None
            and _is_dotted_child(line, current.number)
        ):
            return None
        return match

    def _emit_section(self, forest: ClauseForest, section: _OpenNode) -> None:
        if self.hierarchical:
            own_lines, nested = self._split_subsections(section)
        else:
            own_lines, nested = section.lines, []

        draft = self._append(
            forest,
            number=section.number,
            clause_type=ClauseType.SECTION,
            lines=own_lines,
            line_start=section.line_start,
            title=section.title,
        )
        section.index = draft.index

        for node in nested:
            parent = node.parent or section
            metadata = {"marker": node.marker} if node.marker else {}
            child = self._append(
                forest,
                number=node.number,
                clause_type=ClauseType.for_level(node.level),
                lines=node.lines,
                line_start=node.line_start,
                parent_index=parent.index,
                **metadata,
            )
            node.index = child.index

    @staticmethod
    def _append(
        forest: ClauseForest,
        number: str,
        clause_type: ClauseType,
        lines: list[_Line],
        line_start: int,
        title: str | None = None,
        parent_index: int | None = None,
        **metadata: Any,
    ) -> ClauseDraft:
        position = len(forest.drafts)
        draft = ClauseDraft(
            index=position,
            number=number,
            clause_type=clause_type,
            title=title,
            content="\n".join(line.text for line in lines).strip(),
            display_order=position,
            parent_index=parent_index,
            metadata={"line_start": line_start, **metadata},
        )
        forest.drafts.append(draft)
        return draft

    def _split_subsections(
        self, section: _OpenNode
    ) -> tuple[list[_Line], list[_OpenNode]]:
        """Split a section's lines into its own content and nested clauses.

        Returns:
            Tuple of (lines kept by the section, nested nodes in document order).
        """
        own: list[_Line] = []
        opened: list[_OpenNode] = []
        stack: list[_OpenNode] = []

        for line in section.lines:
            match = match_line(line.text, SUBSECTION_RULES)
            node = self._open_subsection(match, line, stack) if match else None
            if node is None:
                (stack[-1].lines if stack else own).append(line)
            else:
                opened.append(node)

        return own, opened

    @staticmethod
    def _open_subsection(
        match: LineMatch, line: _Line, stack: list[_OpenNode]
    ) -> _OpenNode | None:
        """Open a nested clause for ``match``, closing deeper open clauses.

        Returns None when the marker would nest deeper than a subparagraph;
        the line then stays content of the clause that is open.
        """
        marker = None
        if match.rule_type == ClauseRuleType.DOTTED_SUBSECTION:
            style = "dotted"
            number = match.number.rsplit(".", 1)[-1]
            marker = match.number
            # "5.1" sits at depth 1, "5.1.2" at depth 2
            del stack[match.number.count(".") - 1 :]
        else:
            style = _marker_style(match.number, stack)
            number = match.number
            for depth, open_node in enumerate(stack):
                if open_node.style == style:
                    del stack[depth:]
                    break

        level = len(stack) + 1
        if level > MAX_SUBSECTION_DEPTH:
            return None

        node = _OpenNode(
            number=number,
            line_start=line.number,
            lines=[_Line(line.number, match.heading)],
            level=level,
            style=style,
            marker=marker,
            parent=stack[-1] if stack else None,
        )
        stack.append(node)
        return node


def build_clauses(text: str, hierarchical: bool = False) -> ClauseForest:
    """Build the clause forest for normalized bill text.

    Args:
        text: Normalized bill text.
        hierarchical: Also detect nested clauses inside each section.

    Returns:
        ClauseForest with at least one draft.
    """
    return ClauseBuilder(hierarchical=hierarchical).build(text)
