"""Offline embedding helpers.

Provides a pluggable Embedder protocol and a deterministic hash-based
implementation used by the mock provider (CI runs, local dry runs). Same
text always yields the same unit vector; NOT suitable for semantic search.
"""

from __future__ import annotations

import hashlib
import math
from typing import Protocol


class Embedder(Protocol):
    """Protocol for text -> vector embedding."""

    def embed(self, text: str) -> list[float]:
        """Return a dense vector for *text*."""
        ...


class DeterministicEmbedder:
    """Hash-based deterministic embedder.

    Produces a normalized `dim`-dimensional vector derived from the SHA-256
    digest of the input text.
    """

    def __init__(self, dim: int = 768) -> None:
        self._dim = dim

    @property
    def dim(self) -> int:
        return self._dim

    def embed(self, text: str) -> list[float]:
        """Generate a deterministic embedding from *text*."""
        digest = hashlib.sha256(text.encode()).digest()
        # Expand 32 bytes into `dim` floats using sin-hash mixing
        raw: list[float] = []
        for i in range(self._dim):
            byte_val = digest[i % len(digest)]
            raw.append((math.sin(byte_val * 0.1 + i * 0.01) + 1.0) / 2.0)
        norm = math.sqrt(sum(x * x for x in raw))
        if norm == 0:
            return [0.0] * self._dim
        return [x / norm for x in raw]


def unit_vector(dim: int, axis: int = 0) -> list[float]:
    """Vector with a single 1.0 at *axis*; nonzero norm keeps cosine defined."""
    v = [0.0] * dim
    v[axis] = 1.0
    return v


__all__ = ["DeterministicEmbedder", "Embedder", "unit_vector"]
