"""
Embeddings Module - Single Responsibility: Generate text embeddings.

FeatureHashEmbeddings is a deterministic stand-in for a learned
embedding model. Distinctive tokens are hashed into a 384-dimensional
space with TF weighting, several hash passes per token, a light
positional signal and a few document-level statistics, then the vector
is L2-normalized. Texts that share distinctive tokens end up pointing
in similar directions.

The same input always produces the same vector, bit for bit.
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter

import numpy as np

from pulse_docstore.core import EMBEDDING_DIMENSIONS, EmbeddingProvider

logger = logging.getLogger(__name__)

HASH_PASSES = 5
POSITIONAL_TOKENS = 50
MIN_TOKEN_LENGTH = 3

_NON_WORD = re.compile(r"[^A-Za-z0-9_\s]")
_WHITESPACE = re.compile(r"\s+")
_SENTENCE_SPLIT = re.compile(r"[.!?]+")

_MASK_31 = 0x7FFFFFFF


def _shift_left_int32(value: int, bits: int) -> int:
    """Left shift with signed 32-bit wrap-around."""
    shifted = (value << bits) & 0xFFFFFFFF
    return shifted - 0x100000000 if shifted & 0x80000000 else shifted


def word_hash(word: str, seed: int) -> int:
    """Seeded 31-bit string hash: hash*31 + char + seed*31 per character."""
    h = 0
    for ch in word:
        h = (_shift_left_int32(h, 5) - h + ord(ch) + seed * 31) & _MASK_31
    return h


def position_hash(word: str, position: int) -> int:
    """31-bit string hash mixed with the token position."""
    h = 0
    for ch in word:
        h = (_shift_left_int32(h, 3) + ord(ch) + position) & _MASK_31
    return h


def normalize_text(text: str) -> str:
    """Lowercase, replace punctuation with spaces, collapse whitespace."""
    cleaned = _NON_WORD.sub(" ", text.lower())
    return _WHITESPACE.sub(" ", cleaned).strip()


def tokenize(text: str) -> list[str]:
    """Normalized whitespace tokens longer than two characters."""
    return [word for word in normalize_text(text).split(" ") if len(word) >= MIN_TOKEN_LENGTH]


def shannon_entropy(words: list[str]) -> float:
    """Entropy (bits) of the word-frequency distribution."""
    total = len(words)
    if total == 0:
        return 0.0
    entropy = 0.0
    for count in Counter(words).values():
        p = count / total
        entropy -= p * math.log2(p)
    return entropy


class FeatureHashEmbeddings:
    """
    Deterministic feature-hashing embedding provider.

    Never raises from embed(): if building the vector fails, a random
    normalized vector is returned so the caller can carry on.
    """

    def __init__(self, dimensions: int = EMBEDDING_DIMENSIONS):
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed(self, text: str) -> np.ndarray:
        """Generate the embedding for a single text."""
        try:
            return self._build(text)
        except Exception as e:
            logger.error(f"Embedding generation failed, using random fallback: {e}")
            return self._random_fallback()

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        """Generate embeddings for multiple texts, in order."""
        return [self.embed(text) for text in texts]

    def _build(self, text: str) -> np.ndarray:
        dims = self._dimensions
        words = tokenize(text)
        unique_words = list(dict.fromkeys(words))
        vector = np.zeros(dims, dtype=np.float64)

        # Term-frequency features, several hash passes per unique word
        frequencies = Counter(words)
        unique_count = len(unique_words)
        for word_index, word in enumerate(unique_words):
            tf = frequencies[word] / len(words)
            weight = tf * math.log(unique_count / (1 + word_index))
            for seed in range(HASH_PASSES):
                h = word_hash(word, seed)
                vector[h % dims] += weight * math.sin(h * 0.001)
                vector[(h * 31) % dims] += weight * math.cos(h * 0.001)
                vector[(h * 97) % dims] += weight * math.tan(h * 0.0001)

        # Positional signal for leading tokens
        for position, word in enumerate(words[:POSITIONAL_TOKENS]):
            h = position_hash(word, position)
            vector[h % dims] += (1 / (position + 1)) * 0.1

        # Document-level statistics
        avg_word_length = sum(len(w) for w in words) / len(words) if words else 0.0
        sentence_count = len(_SENTENCE_SPLIT.split(text))
        vector[0] += avg_word_length * 0.01
        vector[1] += shannon_entropy(words) * 0.01
        vector[2] += sentence_count * 0.001
        vector[3] += len(words) * 0.0001

        norm = float(np.linalg.norm(vector))
        if norm > 0:
            vector /= norm

        logger.debug(
            f"Embedded text: {len(words)} tokens, {unique_count} unique, "
            f"avg length {avg_word_length:.2f}"
        )
        return vector

    def _random_fallback(self) -> np.ndarray:
        rng = np.random.default_rng()
        fallback = rng.random(self._dimensions) - 0.5
        return fallback / np.linalg.norm(fallback)


def get_embedding_provider(dimensions: int = EMBEDDING_DIMENSIONS) -> EmbeddingProvider:
    """Factory function for the embedding provider."""
    return FeatureHashEmbeddings(dimensions=dimensions)
