"""Clause boundary patterns for bill text.

Each line of a normalized bill is checked against an ordered list of
rules; the first rule that matches decides what the line starts. A line
matched by no rule is continuation content of the clause that is open.

Rule Categories:
- Section header: "Section 5. Interpretation", "5. Interpretation", "5 - Short title"
- Parenthesized subsection: "(1) The Cabinet Secretary may...", "(a) a person who..."
- Dotted subsection: "5.1 The Authority shall...", "5.1.2 Where..."

The order of a rule list is its priority. Adding a rule or changing
priority is a change to one of the lists at the bottom of this module.
"""

import enum
import re
from dataclasses import dataclass


class ClauseRuleType(enum.StrEnum):
    """Kind of clause boundary a rule detects."""

    SECTION_HEADER = "section_header"
    PAREN_SUBSECTION = "paren_subsection"
    DOTTED_SUBSECTION = "dotted_subsection"


@dataclass(frozen=True)
class ClauseRule:
    """A clause boundary rule: a line regex plus what it detects.

    The regex must define two groups: the clause's number token and the
    heading text that follows it on the same line.
    """

    name: str
    rule_type: ClauseRuleType
    regex: str
    description: str
    flags: int = re.IGNORECASE

    def compile(self) -> re.Pattern[str]:
        """Compile the regex with the rule's flags (always ASCII digits)."""
        return re.compile(self.regex, self.flags | re.ASCII)


@dataclass(frozen=True)
class LineMatch:
    """A line that opens a new clause.

    Attributes:
        rule_type: Which rule fired.
        number: The raw number token ("5", "a", "5.1").
        heading: Remaining text on the line after the token (may be empty).
    """

    rule_type: ClauseRuleType
    number: str
    heading: str


# Real-world examples:
# 1. "Section 1. Short title"
# 2. "SECTION 12 - Regulations"
# 3. "3. Interpretation"
# 4. "7" (number alone, heading empty)
SECTION_HEADER = ClauseRule(
    name="section_header",
    rule_type=ClauseRuleType.SECTION_HEADER,
    regex=r"^(?:Section\s+)?(\d+)\.?\s*-?\s*(.*)$",
    description='Optional "Section" keyword, numeric token, optional "." or "-", heading',
)

# Real-world examples:
# 1. "(1) The Cabinet Secretary may make regulations"
# 2. "(b) in the case of a body corporate, to a fine"
# 3. "(iv) any other matter"
PAREN_SUBSECTION = ClauseRule(
    name="paren_subsection",
    rule_type=ClauseRuleType.PAREN_SUBSECTION,
    regex=r"^\(([a-z0-9]+)\)\s+(.+)$",
    description="Bracketed alphanumeric marker followed by text",
)

# Real-world examples:
# 1. "5.1 The Authority shall keep records"
# 2. "12.3.4 Notwithstanding paragraph 12.3.2"
DOTTED_SUBSECTION = ClauseRule(
    name="dotted_subsection",
    rule_type=ClauseRuleType.DOTTED_SUBSECTION,
    regex=r"^(\d+\.\d+(?:\.\d+)?)\s+(.+)$",
    description="Dotted numeric marker, one or two dots deep, followed by text",
    flags=0,
)

# Default automatic parse: only section headers open clauses
SECTION_RULES: list[ClauseRule] = [SECTION_HEADER]

# Applied to a section's own lines by the optional hierarchical pass
SUBSECTION_RULES: list[ClauseRule] = [PAREN_SUBSECTION, DOTTED_SUBSECTION]

# Every rule, in priority order
CLAUSE_RULES: list[ClauseRule] = [SECTION_HEADER, PAREN_SUBSECTION, DOTTED_SUBSECTION]

_COMPILED: dict[ClauseRule, re.Pattern[str]] = {}


def _compiled(rule: ClauseRule) -> re.Pattern[str]:
    pattern = _COMPILED.get(rule)
    if pattern is None:
        pattern = _COMPILED[rule] = rule.compile()
    return pattern


def match_line(line: str, rules: list[ClauseRule] = CLAUSE_RULES) -> LineMatch | None:
    """Classify a trimmed, non-empty line against rules in priority order.

    Args:
        line: A single line with surrounding whitespace already removed.
        rules: Rules to try, highest priority first.

    Returns:
        LineMatch for the first rule that matches, or None when the line
        is continuation content.
    """
    for rule in rules:
        m = _compiled(rule).match(line)
        if m:
            return LineMatch(
                rule_type=rule.rule_type,
                number=m.group(1),
                heading=m.group(2).strip(),
            )
    return None
