"""LLMProvider - model capability interface.

Encapsulates the two model calls the pipeline needs: text embeddings for
ADR retrieval and chat completions for drift judgment. Backends (local,
cloud, test double) implement this port without touching pipeline logic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class LLMProvider(ABC):
    """Port: embedding and chat operations."""

    name: str = "provider"

    @abstractmethod
    async def create_embedding(self, text: str) -> list[float]:
        """Return a dense vector for *text*.

        Raises:
            ProviderError: On transport or backend failure.
        """

    @abstractmethod
    async def chat(self, system_prompt: str, user_prompt: str) -> str:
        """Send one system + user exchange and return the raw text reply.

        Raises:
            ProviderError: On transport or backend failure.
        """
