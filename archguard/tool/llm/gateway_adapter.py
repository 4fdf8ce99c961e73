"""LLMProvider real implementation via LiteLLM.

- One adapter for OpenAI, Ollama and Gemini through LiteLLM's unified API
- Chat requests ask for JSON output; embeddings use the configured embed model
- Backend failures are wrapped in ProviderError so callers can retry
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import litellm

from archguard.ports.llm_call_port import LLMProvider
from archguard.shared.errors import ProviderError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class LiteLLMProvider(LLMProvider):
    """LiteLLM-backed implementation of LLMProvider.

    `model` and `embed_model` are LiteLLM model strings, already carrying the
    backend prefix where one is needed (e.g. ``ollama/llama3.2``).
    """

    def __init__(
        self,
        *,
        model: str,
        embed_model: str,
        name: str = "litellm",
        temperature: float = 0.0,
        timeout_s: int = 120,
        api_key: str | None = None,
        base_url: str | None = None,
        acompletion_fn: Callable[..., Awaitable[Any]] | None = None,
        aembedding_fn: Callable[..., Awaitable[Any]] | None = None,
    ) -> None:
        self.name = name
        self._model = model
        self._embed_model = embed_model
        self._temperature = temperature
        self._timeout_s = timeout_s
        self._api_key = api_key
        self._base_url = base_url
        self._acompletion = acompletion_fn or litellm.acompletion
        self._aembedding = aembedding_fn or litellm.aembedding

        litellm.drop_params = True

    def _optional_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if self._api_key:
            params["api_key"] = self._api_key
        if self._base_url:
            params["api_base"] = self._base_url
        return params

    async def chat(self, system_prompt: str, user_prompt: str) -> str:
        """Invoke the chat model and return the raw reply text."""
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        try:
            response = await self._acompletion(
                model=self._model,
                messages=messages,
                temperature=self._temperature,
                timeout=self._timeout_s,
                response_format={"type": "json_object"},
                **self._optional_params(),
            )
        except Exception as exc:
            logger.debug("Chat call failed for model=%s", self._model, exc_info=True)
            raise ProviderError(self.name, f"chat failed for model {self._model}: {exc}") from exc

        if not response.choices:
            raise ProviderError(self.name, f"no choices returned by model {self._model}")
        return response.choices[0].message.content or ""

    async def create_embedding(self, text: str) -> list[float]:
        """Embed *text* with the configured embedding model."""
        try:
            response = await self._aembedding(
                model=self._embed_model,
                input=[text],
                timeout=self._timeout_s,
                **self._optional_params(),
            )
        except Exception as exc:
            logger.debug("Embedding call failed for model=%s", self._embed_model, exc_info=True)
            raise ProviderError(
                self.name, f"embedding failed for model {self._embed_model}: {exc}"
            ) from exc

        if not response.data:
            raise ProviderError(self.name, f"no embedding data returned by {self._embed_model}")
        item = response.data[0]
        vector = item["embedding"] if isinstance(item, dict) else item.embedding
        return [float(x) for x in vector]
