"""Tests for context selection under a token ceiling.

- within budget: full content
- over budget with a diff: the diff, verbatim
- over budget without a diff: truncated, rolled back to a line boundary
- tokenizer unavailable: ~4 bytes/token heuristic
"""

from __future__ import annotations

import pytest

from archguard.analysis.budget import (
    ContextMode,
    TokenBudgeter,
    resolve_tokenizer,
    roll_back_to_line_boundary,
)
from archguard.shared.errors import ContentError


class CharTokenizer:
    """One token per character; makes cut points easy to reason about."""

    def encode(self, text: str) -> list[int]:
        return [ord(c) for c in text]

    def decode(self, tokens: list[int]) -> str:
        return "".join(chr(t) for t in tokens)


def _diff_returning(diff: str):
    calls: list[int] = []

    async def fetch() -> str:
        calls.append(1)
        return diff

    return fetch, calls


class TestRollBack:
    def test_cuts_after_last_newline(self) -> None:
        assert roll_back_to_line_boundary("Line1\nLine2\nLi") == "Line1\nLine2\n"

    def test_no_newline_unchanged(self) -> None:
        assert roll_back_to_line_boundary("Line1Li") == "Line1Li"


class TestTokenBudgeter:
    @pytest.mark.asyncio
    async def test_full_when_within_budget(self) -> None:
        budgeter = TokenBudgeter(max_tokens=100, tokenizer=CharTokenizer())
        fetch, calls = _diff_returning("diff")
        text, mode = await budgeter.select("Line1\nLine2", fetch)
        assert (text, mode) == ("Line1\nLine2", ContextMode.FULL)
        assert calls == []

    @pytest.mark.asyncio
    async def test_exact_budget_is_full(self) -> None:
        budgeter = TokenBudgeter(max_tokens=5, tokenizer=CharTokenizer())
        assert await budgeter.select("abcde") == ("abcde", ContextMode.FULL)

    @pytest.mark.asyncio
    async def test_diff_when_over_budget(self) -> None:
        budgeter = TokenBudgeter(max_tokens=4, tokenizer=CharTokenizer())
        long_diff = "+" * 50
        fetch, calls = _diff_returning(long_diff)
        text, mode = await budgeter.select("Line1\nLine2\nLine3", fetch)
        assert mode is ContextMode.DIFF
        assert text == long_diff  # never re-truncated
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_truncates_to_line_boundary(self) -> None:
        budgeter = TokenBudgeter(max_tokens=8, tokenizer=CharTokenizer())
        fetch, _ = _diff_returning("")
        text, mode = await budgeter.select("Line1\nLine2\nLine3", fetch)
        assert mode is ContextMode.TRUNCATED
        assert text == "Line1\n"

    @pytest.mark.asyncio
    async def test_truncation_without_newline_returns_raw_cut(self) -> None:
        budgeter = TokenBudgeter(max_tokens=3, tokenizer=CharTokenizer())
        text, mode = await budgeter.select("Line1\nLine2\nLine3")
        assert (text, mode) == ("Lin", ContextMode.TRUNCATED)

    @pytest.mark.asyncio
    async def test_diff_error_means_no_diff(self) -> None:
        async def broken() -> str:
            raise ContentError("git exploded")

        budgeter = TokenBudgeter(max_tokens=8, tokenizer=CharTokenizer())
        text, mode = await budgeter.select("Line1\nLine2\nLine3", broken)
        assert (text, mode) == ("Line1\n", ContextMode.TRUNCATED)

    @pytest.mark.asyncio
    async def test_real_tokenizer_truncation_ends_on_newline(self) -> None:
        content = "".join(f"line number {i} with some words\n" for i in range(400))
        budgeter = TokenBudgeter(max_tokens=50, model="gpt-4o-mini")
        text, mode = await budgeter.select(content)
        assert mode is ContextMode.TRUNCATED
        assert text.endswith("\n")
        assert content.startswith(text)

    def test_zero_max_tokens_defaults(self) -> None:
        assert TokenBudgeter(max_tokens=0).max_tokens == 8000


class TestByteFallback:
    @pytest.fixture
    def budgeter(self) -> TokenBudgeter:
        return TokenBudgeter(max_tokens=3, tokenizer_factory=lambda _model: None)

    @pytest.mark.asyncio
    async def test_small_content_full(self, budgeter: TokenBudgeter) -> None:
        assert await budgeter.select("abc\ndef") == ("abc\ndef", ContextMode.FULL)

    @pytest.mark.asyncio
    async def test_large_content_truncated_at_line(self, budgeter: TokenBudgeter) -> None:
        fetch, calls = _diff_returning("some diff")
        text, mode = await budgeter.select("Line1\nLine2\nLine3", fetch)
        assert (text, mode) == ("Line1\nLine2\n", ContextMode.TRUNCATED)
        assert calls == []

    @pytest.mark.asyncio
    async def test_factory_resolved_once(self) -> None:
        calls: list[str] = []

        def factory(model: str) -> None:
            calls.append(model)

        budgeter = TokenBudgeter(max_tokens=3, model="llama3.2", tokenizer_factory=factory)
        await budgeter.select("a")
        await budgeter.select("b")
        assert calls == ["llama3.2"]


class TestResolveTokenizer:
    @pytest.mark.parametrize("model", ["gpt-4o-mini", "ollama/llama3.2", "gemini/gemini-1.5-flash", ""])
    def test_resolves_for_known_and_unknown_models(self, model: str) -> None:
        tokenizer = resolve_tokenizer(model)
        if tokenizer is None:
            pytest.skip("tiktoken encodings unavailable")
        assert tokenizer.decode(tokenizer.encode("hello\nworld")) == "hello\nworld"

    def test_special_token_text_is_plain_text(self) -> None:
        tokenizer = resolve_tokenizer("gpt-4o-mini")
        if tokenizer is None:
            pytest.skip("tiktoken encodings unavailable")
        assert tokenizer.encode("<|endoftext|>")
