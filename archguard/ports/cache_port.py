"""ResultCachePort - verdict cache interface.

Keys are fingerprints of every judgment input, so an entry never goes
stale; there is no TTL or eviction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from archguard.judge.drift_judge import Verdict


class ResultCachePort(ABC):
    """Port: fingerprint -> verdict storage."""

    @abstractmethod
    def get(self, fingerprint: str) -> Verdict | None:
        """Return the stored verdict, or None if absent or unreadable."""

    @abstractmethod
    def put(self, fingerprint: str, verdict: Verdict) -> None:
        """Store *verdict*; overwriting an existing key is allowed."""
