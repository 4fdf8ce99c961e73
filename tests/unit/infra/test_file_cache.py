"""Tests for the content-addressed verdict cache.

- put then get round-trips; unknown key is a miss
- corrupt or unreadable entries behave exactly like a miss
- changing any fingerprint input changes the key
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from archguard.infra.cache.file_cache import FileResultCache, compute_fingerprint
from archguard.judge.drift_judge import Verdict

if TYPE_CHECKING:
    from pathlib import Path

BASE_INPUTS = ("model", "adr text", "file text", "system prompt", "template")


@pytest.fixture
def cache(tmp_path: Path) -> FileResultCache:
    return FileResultCache(tmp_path / "cache")


class TestFileResultCache:
    def test_creates_directory(self, tmp_path: Path) -> None:
        cache = FileResultCache(tmp_path / "nested" / "cache")
        assert cache.directory.is_dir()

    def test_round_trip(self, cache: FileResultCache) -> None:
        verdict = Verdict(violation=True, reasoning="why", quoted_code="import x")
        fp = compute_fingerprint(*BASE_INPUTS)
        cache.put(fp, verdict)
        assert cache.get(fp) == verdict

    def test_unknown_fingerprint_misses(self, cache: FileResultCache) -> None:
        assert cache.get("0" * 64) is None

    @pytest.mark.parametrize("garbage", ["{not json", '{"reasoning": "no flag"}', ""])
    def test_corrupt_entry_misses(self, cache: FileResultCache, garbage: str) -> None:
        fp = compute_fingerprint(*BASE_INPUTS)
        (cache.directory / f"{fp}.json").write_text(garbage, encoding="utf-8")
        assert cache.get(fp) is None

    def test_overwrite_is_idempotent(self, cache: FileResultCache) -> None:
        verdict = Verdict(violation=False, reasoning="ok")
        fp = compute_fingerprint(*BASE_INPUTS)
        cache.put(fp, verdict)
        cache.put(fp, verdict)
        assert cache.get(fp) == verdict
        assert [p.name for p in cache.directory.iterdir()] == [f"{fp}.json"]


class TestFingerprint:
    def test_deterministic(self) -> None:
        assert compute_fingerprint(*BASE_INPUTS) == compute_fingerprint(*BASE_INPUTS)

    @pytest.mark.parametrize("position", range(5))
    def test_each_input_changes_key(self, position: int) -> None:
        changed = list(BASE_INPUTS)
        changed[position] += " (edited)"
        assert compute_fingerprint(*changed) != compute_fingerprint(*BASE_INPUTS)

    def test_separator_prevents_boundary_shift(self) -> None:
        a = compute_fingerprint("ab", "c", "d", "e", "f")
        b = compute_fingerprint("a", "bc", "d", "e", "f")
        assert a != b
