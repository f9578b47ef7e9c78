"""
Sentence-aligned chunking.

Single responsibility: split text into bounded-size chunks without ever
cutting a sentence in half. A sentence longer than the limit becomes a
chunk of its own.
"""

from __future__ import annotations

import re

from pulse_docstore.core import TextChunk

DEFAULT_MAX_CHUNK_SIZE = 800

# A sentence is a run of non-terminators plus the terminators that end it.
_SENTENCE = re.compile(r"[^.!?]+[.!?]*")
_TERMINATORS = ".!?"


def split_sentences(text: str) -> list[str]:
    """Split on `.`, `!` and `?`, keeping each sentence's own terminator."""
    sentences = []
    for match in _SENTENCE.finditer(text):
        sentence = match.group(0).strip()
        if sentence.rstrip(_TERMINATORS).strip():
            sentences.append(sentence)
    return sentences


def chunk_text(text: str, max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE) -> list[TextChunk]:
    """
    Greedily pack sentences into chunks of at most max_chunk_size characters.

    Args:
        text: Source text
        max_chunk_size: Character limit per chunk

    Returns:
        Chunks in source order with dense zero-based indexes
    """
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be positive")

    pieces: list[str] = []
    buffer = ""

    for sentence in split_sentences(text):
        if buffer and len(buffer) + 1 + len(sentence) > max_chunk_size:
            pieces.append(buffer)
            buffer = sentence
        elif buffer:
            buffer = f"{buffer} {sentence}"
        else:
            buffer = sentence

    if buffer:
        pieces.append(buffer)

    total = len(pieces)
    return [TextChunk(text=piece, index=i, total_chunks=total) for i, piece in enumerate(pieces)]
