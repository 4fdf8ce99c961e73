"""In-memory cosine similarity search over indexed ADRs.

- Score every record against the query embedding
- Keep scores >= threshold, stable-sort descending, truncate to top_k
- Mismatched dimensions or zero-norm vectors score 0.0 (never NaN)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from archguard.knowledge.adr import ArchitecturalRecord


@dataclass(frozen=True)
class SimilarityHit:
    """A single search result with score."""

    record: ArchitecturalRecord
    score: float


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Compute cosine similarity between two vectors.

    Returns 0.0 when the lengths differ or either norm is zero.
    """
    if len(a) != len(b):
        return 0.0

    dot = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return dot / (norm_a * norm_b)


class SimilarityIndex:
    """Read-only ADR search index. Built once per run, then only queried."""

    def __init__(self, records: Sequence[ArchitecturalRecord]) -> None:
        self._records = tuple(records)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> tuple[ArchitecturalRecord, ...]:
        return self._records

    def search(
        self,
        query_embedding: Sequence[float],
        threshold: float,
        top_k: int = 3,
    ) -> list[SimilarityHit]:
        """Return up to *top_k* records scoring at least *threshold*.

        Results are ordered by descending score; ties keep index order.
        """
        scored = [
            SimilarityHit(record=record, score=cosine_similarity(query_embedding, record.embedding))
            for record in self._records
        ]
        hits = [hit for hit in scored if hit.score >= threshold]
        # list.sort is stable, so equal scores keep index order
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[: max(top_k, 0)]
