"""
Presentation-markup stripping for uploaded content.

File processors hand us markdown-flavoured text (bold markers, headings,
bullets). None of that helps retrieval, so it is removed before the
length guard and chunking run.
"""

import re

_BOLD = re.compile(r"\*\*")
_HEADING = re.compile(r"#{1,6}\s")
_BULLET = re.compile(r"^\s*[-*+]\s", re.MULTILINE)
_BLANK_RUNS = re.compile(r"\n{3,}")


def clean_content(content: str) -> str:
    """Strip bold/heading/bullet markers and collapse blank-line runs."""
    cleaned = _BOLD.sub("", content)
    cleaned = _HEADING.sub("", cleaned)
    cleaned = _BULLET.sub("", cleaned)
    cleaned = _BLANK_RUNS.sub("\n\n", cleaned)
    return cleaned.strip()
