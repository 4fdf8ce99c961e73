"""Token budget for file context sent to the judge.

- Content within the token ceiling is sent in full
- Oversized content is replaced by its diff when one exists
- Otherwise content is cut at the ceiling and rolled back to the last
  newline so the model never sees a half line
- Tokenizer: model-specific tiktoken encoding, cl100k_base for unknown
  models, and a ~4 bytes/token heuristic if tiktoken cannot load at all
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import tiktoken

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 8000
DEFAULT_TOKENIZER_MODEL = "gpt-3.5-turbo"
FALLBACK_ENCODING = "cl100k_base"
BYTES_PER_TOKEN = 4


class ContextMode(enum.StrEnum):
    """How a file's context text was selected."""

    FULL = "full"
    DIFF = "diff"
    TRUNCATED = "truncated"


@dataclass(frozen=True)
class AnalysisContext:
    """Per-file, per-run context. Never persisted."""

    file_path: str
    text: str
    mode: ContextMode


class Tokenizer(Protocol):
    """Minimal encode/decode surface the budgeter needs."""

    def encode(self, text: str) -> list[int]: ...

    def decode(self, tokens: list[int]) -> str: ...


class TiktokenTokenizer:
    """Tokenizer backed by a tiktoken Encoding."""

    def __init__(self, encoding: tiktoken.Encoding) -> None:
        self._encoding = encoding

    @property
    def name(self) -> str:
        return self._encoding.name

    def encode(self, text: str) -> list[int]:
        # Source files may legitimately contain special-token text
        return self._encoding.encode(text, disallowed_special=())

    def decode(self, tokens: list[int]) -> str:
        return self._encoding.decode(tokens)


def resolve_tokenizer(model: str) -> Tokenizer | None:
    """Return the tokenizer for *model*, or None if tiktoken is unusable.

    Provider prefixes (``ollama/``, ``gemini/``) are stripped before lookup;
    unrecognized models use the cl100k_base encoding.
    """
    name = (model or DEFAULT_TOKENIZER_MODEL).rsplit("/", 1)[-1]
    try:
        try:
            encoding = tiktoken.encoding_for_model(name)
        except KeyError:
            encoding = tiktoken.get_encoding(FALLBACK_ENCODING)
    except Exception:
        logger.warning("Tokenizer initialization failed for model=%s", name, exc_info=True)
        return None
    return TiktokenTokenizer(encoding)


def roll_back_to_line_boundary(text: str) -> str:
    """Cut *text* after its last newline; unchanged if it has none."""
    last_newline = text.rfind("\n")
    if last_newline == -1:
        return text
    return text[: last_newline + 1]


class TokenBudgeter:
    """Selects `(text, mode)` for one file under a token ceiling."""

    def __init__(
        self,
        *,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        model: str = "",
        tokenizer: Tokenizer | None = None,
        tokenizer_factory: Callable[[str], Tokenizer | None] = resolve_tokenizer,
    ) -> None:
        self._max_tokens = max_tokens if max_tokens > 0 else DEFAULT_MAX_TOKENS
        self._model = model
        self._tokenizer = tokenizer
        self._factory = tokenizer_factory
        self._resolved = tokenizer is not None

    @property
    def max_tokens(self) -> int:
        return self._max_tokens

    def _get_tokenizer(self) -> Tokenizer | None:
        if not self._resolved:
            self._tokenizer = self._factory(self._model)
            self._resolved = True
        return self._tokenizer

    async def select(
        self,
        content: str,
        diff_fetcher: Callable[[], Awaitable[str]] | None = None,
    ) -> tuple[str, ContextMode]:
        """Pick the context text for *content*.

        Args:
            content: Full file text.
            diff_fetcher: Returns the file's diff; empty string means none.
                Errors from it are treated as "no diff".
        """
        tokenizer = self._get_tokenizer()
        if tokenizer is None:
            return self._select_by_bytes(content)

        tokens = tokenizer.encode(content)
        if len(tokens) <= self._max_tokens:
            return content, ContextMode.FULL

        diff = await self._fetch_diff(diff_fetcher)
        if diff:
            return diff, ContextMode.DIFF

        truncated = tokenizer.decode(tokens[: self._max_tokens])
        return roll_back_to_line_boundary(truncated), ContextMode.TRUNCATED

    def _select_by_bytes(self, content: str) -> tuple[str, ContextMode]:
        raw = content.encode("utf-8")
        limit = self._max_tokens * BYTES_PER_TOKEN
        if len(raw) <= limit:
            return content, ContextMode.FULL
        cut = raw[:limit].decode("utf-8", errors="ignore")
        return roll_back_to_line_boundary(cut), ContextMode.TRUNCATED

    async def _fetch_diff(self, diff_fetcher: Callable[[], Awaitable[str]] | None) -> str:
        if diff_fetcher is None:
            return ""
        try:
            return await diff_fetcher()
        except Exception as exc:
            logger.debug("Diff unavailable, truncating instead: %s", exc)
            return ""
