"""Project configuration loaded from archguard.yaml.

The YAML file is parsed with yaml.safe_load and validated into pydantic
models. Zero or missing numeric limits fall back to their defaults so that a
minimal config file behaves like the generated one.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from archguard.shared.errors import ConfigError

CONFIG_FILENAME = "archguard.yaml"
DEFAULT_INDEX_FILE = ".archguard/index.json"
DEFAULT_CACHE_DIR = ".archguard/cache"
DEFAULT_ADR_PATH = "./docs/arch"
DEFAULT_MAX_TOKENS = 8000
DEFAULT_MAX_CONCURRENCY = 5
DEFAULT_TOP_K = 3

API_KEY_ENV = "ARCHGUARD_API_KEY"


class LLMSettings(BaseModel):
    """Chat model used by the drift judge."""

    model_config = ConfigDict(extra="ignore")

    provider: str = "ollama"
    model: str = ""
    base_url: str = ""
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = 0.0
    system_prompt: str = ""

    @field_validator("max_tokens", mode="before")
    @classmethod
    def _default_max_tokens(cls, v: object) -> object:
        if v is None or v == 0:
            return DEFAULT_MAX_TOKENS
        return v


class VectorStoreSettings(BaseModel):
    """Embedding model and similarity search parameters."""

    model_config = ConfigDict(extra="ignore")

    provider: str = "ollama"
    model: str = ""
    embedding_dim: int = 0
    similarity_threshold: float = 0.75
    top_k: int = DEFAULT_TOP_K

    @field_validator("top_k", mode="before")
    @classmethod
    def _default_top_k(cls, v: object) -> object:
        if v is None or v == 0:
            return DEFAULT_TOP_K
        return v


class AnalysisSettings(BaseModel):
    """ADR source location and per-run analysis limits."""

    model_config = ConfigDict(extra="ignore")

    adr_path: str = DEFAULT_ADR_PATH
    accepted_statuses: list[str] = Field(default_factory=lambda: ["Accepted", "Active"])
    exclude_patterns: list[str] = Field(default_factory=list)
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY

    @field_validator("max_concurrency", mode="before")
    @classmethod
    def _default_concurrency(cls, v: object) -> object:
        if v is None or (isinstance(v, int) and v <= 0):
            return DEFAULT_MAX_CONCURRENCY
        return v

    @field_validator("exclude_patterns", "accepted_statuses", mode="before")
    @classmethod
    def _none_as_empty(cls, v: object) -> object:
        return [] if v is None else v


class Settings(BaseModel):
    """Root of archguard.yaml."""

    model_config = ConfigDict(extra="ignore")

    version: str = "1"
    llm: LLMSettings = Field(default_factory=LLMSettings)
    vector_store: VectorStoreSettings = Field(default_factory=VectorStoreSettings)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)
    index_file: str = DEFAULT_INDEX_FILE
    cache_dir: str = DEFAULT_CACHE_DIR

    @field_validator("index_file", "cache_dir", mode="before")
    @classmethod
    def _empty_path_default(cls, v: object, info: ValidationInfo) -> object:
        if v:
            return v
        return DEFAULT_CACHE_DIR if info.field_name == "cache_dir" else DEFAULT_INDEX_FILE


def load_settings(path: str | Path = CONFIG_FILENAME) -> Settings:
    """Read and validate a config file.

    Raises:
        ConfigError: If the file cannot be read, is not YAML, or fails validation.
    """
    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"failed to read config file {config_path}: {exc}"
        raise ConfigError(msg) from exc

    try:
        data = yaml.safe_load(raw) or {}
    except yaml.YAMLError as exc:
        msg = f"failed to parse config file {config_path}: {exc}"
        raise ConfigError(msg) from exc

    if not isinstance(data, dict):
        msg = f"config file {config_path} must contain a mapping"
        raise ConfigError(msg)

    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        msg = f"invalid config file {config_path}: {exc}"
        raise ConfigError(msg) from exc


def api_key_from_env() -> str:
    """API key for cloud providers, empty when unset."""
    return os.environ.get(API_KEY_ENV, "")


def render_default_config(adr_path: str) -> str:
    """YAML written by `archguard init`."""
    return f"""version: "1"

llm:
  provider: "ollama"
  model: "llama3.2"
  base_url: "http://localhost:11434"
  max_tokens: {DEFAULT_MAX_TOKENS}
  temperature: 0.0

vector_store:
  provider: "ollama"
  model: "nomic-embed-text"
  embedding_dim: 768
  similarity_threshold: 0.75

analysis:
  adr_path: "{adr_path}"
  accepted_statuses: ["Accepted", "Active"]
  exclude_patterns:
    - "**/*_test.py"
    - "vendor/**"
    - "README.md"
    - "dist/**"
"""
