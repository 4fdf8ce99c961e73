"""Unified error hierarchy for ArchGuard.

All domain errors inherit from ArchGuardError. Fatal errors (configuration,
index) abort a run before analysis starts; per-file and per-ADR errors are
caught by the analysis engine and reported locally.
"""

from __future__ import annotations


class ArchGuardError(Exception):
    """Base error for all ArchGuard exceptions."""

    def __init__(self, message: str, code: str = "ARCHGUARD_ERROR") -> None:
        self.code = code
        super().__init__(message)


# -- Configuration / environment errors (fatal to the run) --


class ConfigError(ArchGuardError):
    """Configuration file is missing, unreadable or invalid."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="CONFIG_INVALID")


class IndexNotFoundError(ArchGuardError):
    """No ADR index exists at the configured path."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"ADR index not found at {path} (run 'archguard index' to build it)",
            code="INDEX_NOT_FOUND",
        )


class IndexMismatchError(ArchGuardError):
    """Saved index does not match the current configuration or ADR contents."""

    def __init__(self, reasons: list[str]) -> None:
        self.reasons = list(reasons)
        super().__init__(
            "index metadata mismatch:\n  " + "\n  ".join(self.reasons),
            code="INDEX_STALE",
        )


class IndexBuildError(ArchGuardError):
    """Index build failed (ADR directory unreadable or an embedding call failed)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="INDEX_BUILD_FAILED")


# -- Port errors (raised by adapters) --


class ProviderError(ArchGuardError):
    """A model provider call failed (transport or backend error)."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"{provider}: {message}", code="PROVIDER_ERROR")


class ContentError(ArchGuardError):
    """File content, diff or file listing could not be retrieved."""

    def __init__(self, message: str, path: str = "") -> None:
        self.path = path
        super().__init__(message, code="CONTENT_ERROR")


# -- Judgment errors (local to one file/ADR pair) --


class VerdictParseError(ArchGuardError):
    """Model response could not be parsed as a verdict."""

    def __init__(self, message: str, raw: str = "") -> None:
        self.raw = raw
        super().__init__(message, code="VERDICT_INVALID")


class JudgeError(ArchGuardError):
    """Drift judgment failed after all attempts."""

    def __init__(self, attempts: int, last_error: Exception) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"analysis failed after {attempts} attempts: {last_error}",
            code="JUDGE_FAILED",
        )


# -- Outcome --


class ViolationsFoundError(ArchGuardError):
    """Analysis completed and found at least one architectural violation."""

    def __init__(self, count: int, result: object | None = None) -> None:
        self.count = count
        self.result = result
        super().__init__(
            f"found {count} architectural violations",
            code="VIOLATIONS_FOUND",
        )


__all__ = [
    "ArchGuardError",
    "ConfigError",
    "ContentError",
    "IndexBuildError",
    "IndexMismatchError",
    "IndexNotFoundError",
    "JudgeError",
    "ProviderError",
    "VerdictParseError",
    "ViolationsFoundError",
]
