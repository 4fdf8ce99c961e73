"""Drift judge: asks the chat model whether a file contradicts an ADR.

- Prompt built from the fixed template with delimiter-escaped inputs
- Reply parsed as a JSON verdict: first the `{...}` slice, then the raw text
- Provider errors and unparseable replies are retried (4 attempts, 2s/4s/8s)
- Exhausted attempts raise JudgeError; cancellation propagates immediately
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from archguard.judge.prompts import build_user_prompt
from archguard.shared.errors import JudgeError, VerdictParseError
from archguard.tool.resilience.retry import RetryExhaustedError, RetryPolicy, retry_with_backoff

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from archguard.ports.llm_call_port import LLMProvider

logger = logging.getLogger(__name__)


class Verdict(BaseModel):
    """Model judgment for one (file, ADR) pair. Immutable once produced."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    violation: bool
    reasoning: str = ""
    quoted_code: str = ""

    @field_validator("reasoning", "quoted_code", mode="before")
    @classmethod
    def _none_as_empty(cls, v: object) -> object:
        return "" if v is None else v


def extract_json_object(text: str) -> str:
    """Slice from the first '{' to the last '}', dropping conversational wrapping."""
    text = text.strip()
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]
    return text


def parse_verdict(raw: str) -> Verdict:
    """Parse a model reply into a Verdict.

    Raises:
        VerdictParseError: If neither the extracted object nor the raw reply parses.
    """
    try:
        return Verdict.model_validate_json(extract_json_object(raw))
    except ValidationError:
        pass
    try:
        return Verdict.model_validate_json(raw)
    except ValidationError as exc:
        msg = f"invalid json from provider: {exc.error_count()} validation error(s)"
        raise VerdictParseError(msg, raw=raw) from exc


class DriftJudge:
    """LLM-backed violation judgment with retry."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self._provider = provider
        self._policy = policy or RetryPolicy()
        self._sleep = sleep

    async def judge(
        self,
        adr_text: str,
        file_context: str,
        file_path: str,
        system_prompt: str,
    ) -> Verdict:
        """Judge whether *file_context* contradicts *adr_text*.

        Raises:
            JudgeError: After all attempts fail.
        """
        user_prompt = build_user_prompt(adr_text, file_context, file_path)

        async def _attempt() -> Verdict:
            raw = await self._provider.chat(system_prompt, user_prompt)
            return parse_verdict(raw)

        try:
            return await retry_with_backoff(
                _attempt,
                policy=self._policy,
                sleep=self._sleep,
                label=f"judge {file_path}",
            )
        except RetryExhaustedError as exc:
            raise JudgeError(exc.attempts, exc.last_error) from exc
