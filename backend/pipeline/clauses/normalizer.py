"""Whitespace normalization for text extracted from bill PDFs.

PDF extraction produces a mix of line-ending conventions, runs of spaces
used for visual alignment, and long stretches of blank lines at page
breaks. Normalization reduces all of that to single spaces and at most
one blank line between paragraphs, so the clause builder can work line by
line.
"""

import re

# Runs of horizontal whitespace
_HORIZONTAL_WS = re.compile(r"[ \t]+")

# Three or more newlines (two or more blank lines)
_BLANK_LINE_RUN = re.compile(r"\n{3,}")


def normalize_text(raw: str) -> str:
    """Normalize line endings and whitespace in extracted bill text.

    - ``\\r\\n`` and bare ``\\r`` become ``\\n``
    - runs of spaces/tabs collapse to one space
    - three or more consecutive newlines collapse to exactly two
    - leading/trailing whitespace of the whole document is trimmed

    Pure and total: every string (including "") normalizes, and
    ``normalize_text(normalize_text(x)) == normalize_text(x)``.

    Args:
        raw: Text as returned by the PDF extractor.

    Returns:
        The normalized text.
    """
    text = raw.replace("\r\n", "\n").replace("\r", "\n")
    text = _HORIZONTAL_WS.sub(" ", text)
    text = _BLANK_LINE_RUN.sub("\n\n", text)
    return text.strip()
