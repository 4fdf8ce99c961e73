"""Mock LLMProvider for tests and offline runs.

Returns preset responses instead of calling a model. Hooks let tests
script failures, capture prompts, or return specific verdict JSON.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from archguard.knowledge.embedding import unit_vector
from archguard.ports.llm_call_port import LLMProvider

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from archguard.knowledge.embedding import Embedder

DEFAULT_MOCK_VERDICT = '{"violation": false, "reasoning": "default mock", "quoted_code": ""}'


class MockProvider(LLMProvider):
    """Test double implementing LLMProvider.

    Without hooks, embeddings are a fixed unit vector (or come from
    `embedder` when given) and chat returns a non-violation verdict.
    """

    name = "mock"

    def __init__(
        self,
        *,
        embedding_dim: int = 1536,
        embedder: Embedder | None = None,
        embed_fn: Callable[[str], Awaitable[list[float]]] | None = None,
        chat_fn: Callable[[str, str], Awaitable[str]] | None = None,
    ) -> None:
        self._embedding_dim = embedding_dim
        self._embedder = embedder
        self._embed_fn = embed_fn
        self._chat_fn = chat_fn
        self.embed_calls = 0
        self.chat_calls = 0

    async def create_embedding(self, text: str) -> list[float]:
        self.embed_calls += 1
        if self._embed_fn is not None:
            return await self._embed_fn(text)
        if self._embedder is not None:
            return self._embedder.embed(text)
        return unit_vector(self._embedding_dim)

    async def chat(self, system_prompt: str, user_prompt: str) -> str:
        self.chat_calls += 1
        if self._chat_fn is not None:
            return await self._chat_fn(system_prompt, user_prompt)
        return DEFAULT_MOCK_VERDICT
