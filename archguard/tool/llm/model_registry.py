"""Provider registry: maps archguard.yaml provider settings to an LLMProvider.

Supported backends: openai, ollama, gemini (all through LiteLLM) and mock.
Chat and embedding backends are configured separately (llm vs vector_store)
and each model name gets the LiteLLM prefix its backend needs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from archguard.knowledge.embedding import DeterministicEmbedder
from archguard.shared.errors import ConfigError
from archguard.tool.llm.gateway_adapter import LiteLLMProvider
from archguard.tool.llm.mock_adapter import MockProvider

if TYPE_CHECKING:
    from archguard.ports.llm_call_port import LLMProvider
    from archguard.shared.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_URL = "http://localhost:11434"


@dataclass(frozen=True)
class ProviderConfig:
    """Static description of a supported backend."""

    name: str
    model_prefix: str
    default_model: str
    default_embed_model: str
    needs_api_key: bool


PROVIDERS: dict[str, ProviderConfig] = {
    "openai": ProviderConfig(
        name="openai",
        model_prefix="",
        default_model="gpt-4o-mini",
        default_embed_model="text-embedding-3-small",
        needs_api_key=True,
    ),
    "ollama": ProviderConfig(
        name="ollama",
        model_prefix="ollama/",
        default_model="llama3.2",
        default_embed_model="nomic-embed-text",
        needs_api_key=False,
    ),
    "gemini": ProviderConfig(
        name="gemini",
        model_prefix="gemini/",
        default_model="gemini-1.5-flash",
        default_embed_model="text-embedding-004",
        needs_api_key=True,
    ),
}


def resolve_model_name(provider: str, model: str, *, embedding: bool = False) -> str:
    """Return the LiteLLM model string for *model* on *provider*."""
    config = PROVIDERS.get(provider)
    if config is None:
        msg = f"unknown provider: {provider}"
        raise ConfigError(msg)
    name = model or (config.default_embed_model if embedding else config.default_model)
    if config.model_prefix and not name.startswith(config.model_prefix):
        return config.model_prefix + name
    return name


def embedding_model_name(settings: Settings) -> str:
    """Model string that actually produces the index embeddings.

    This is the identity recorded in and checked against the index snapshot,
    so provider defaults and LiteLLM prefixes are resolved. The mock backend
    records the configured name as is.
    """
    chat_backend = settings.llm.provider.strip().lower()
    if chat_backend == "mock":
        return settings.vector_store.model
    embed_backend = (settings.vector_store.provider or chat_backend).strip().lower()
    return resolve_model_name(embed_backend, settings.vector_store.model, embedding=True)


def create_provider(settings: Settings, *, api_key: str = "") -> LLMProvider:
    """Build the provider selected by `llm.provider`.

    The embedding backend follows `vector_store.provider` (falling back to the
    chat backend when unset), so a cloud chat model can pair with local
    embeddings.

    Raises:
        ConfigError: If a provider name is not supported.
    """
    chat_backend = settings.llm.provider.strip().lower()
    if chat_backend == "mock":
        dim = settings.vector_store.embedding_dim or 768
        return MockProvider(embedding_dim=dim, embedder=DeterministicEmbedder(dim))

    model = resolve_model_name(chat_backend, settings.llm.model)
    embed_model = embedding_model_name(settings)

    if PROVIDERS[chat_backend].needs_api_key and not api_key:
        logger.warning(
            "ARCHGUARD_API_KEY is not set. %s provider may fail.",
            chat_backend,
        )

    base_url = settings.llm.base_url or None
    if base_url is None and chat_backend == "ollama":
        base_url = DEFAULT_OLLAMA_URL

    return LiteLLMProvider(
        name=chat_backend,
        model=model,
        embed_model=embed_model,
        temperature=settings.llm.temperature,
        api_key=api_key or None,
        base_url=base_url,
    )
