"""
Render search results as a markdown context block for chat answers.
"""

from __future__ import annotations

from pulse_docstore.core import SearchResult

DEFAULT_PREVIEW_CHARS = 300


def format_search_result(result: SearchResult, position: int, preview_chars: int = DEFAULT_PREVIEW_CHARS) -> str:
    """One `Document N` entry with relevance and a content preview."""
    file_name = result.metadata.file_name or "Unknown"
    content = result.metadata.content or ""
    relevance = f"{result.score * 100:.0f}"
    preview = content[:preview_chars]
    if len(content) > preview_chars:
        preview += "..."
    return f"**Document {position}: {file_name}** ({relevance}% relevance)\n{preview}"


def format_search_context(results: list[SearchResult], preview_chars: int = DEFAULT_PREVIEW_CHARS) -> str:
    """
    Markdown block listing the results in order.

    Returns an empty string when there is nothing to show.
    """
    if not results:
        return ""

    entries = "\n\n".join(
        format_search_result(result, i + 1, preview_chars) for i, result in enumerate(results)
    )
    plural = "s" if len(results) > 1 else ""
    return (
        "**Found Relevant Information from Your Documents:**\n\n"
        f"{entries}\n\n"
        f"**Search Context:** Found {len(results)} relevant document section{plural}."
    )
