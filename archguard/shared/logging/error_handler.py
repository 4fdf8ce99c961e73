"""Structured error logging for per-file and per-ADR failures.

- Log records carry: error_code, message, stack_trace, file/ADR identifiers
- `context` holds stage-specific triage fields (stage, provider, backend,
  attempts, context mode, truncated raw model reply)
- The full record rides on `extra["structured_error"]` for JSON handlers
"""

from __future__ import annotations

import logging
import traceback
from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class StructuredError:
    """One failure, flattened for logging."""

    error_code: str
    message: str
    stack_trace: str
    context: dict[str, Any] = field(default_factory=dict)
    file_path: str = ""
    adr_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def create_structured_error(
    exc: BaseException,
    *,
    error_code: str = "",
    file_path: str = "",
    adr_id: str = "",
    context: dict[str, Any] | None = None,
) -> StructuredError:
    """Create a StructuredError from an exception.

    If the exception has a `.code` attribute (ArchGuardError subclass),
    it is used as the error_code unless overridden.
    """
    code = error_code or getattr(exc, "code", type(exc).__name__)
    stack = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return StructuredError(
        error_code=code,
        message=str(exc),
        stack_trace="".join(stack),
        context=dict(context or {}),
        file_path=file_path,
        adr_id=adr_id,
    )


def _render_context(context: dict[str, Any]) -> str:
    return " ".join(f"{key}={value}" for key, value in context.items() if key != "raw_response")


def log_structured_error(
    logger: logging.Logger,
    exc: BaseException,
    *,
    error_code: str = "",
    file_path: str = "",
    adr_id: str = "",
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> StructuredError:
    """Log an exception as a structured error and return it."""
    structured = create_structured_error(
        exc,
        error_code=error_code,
        file_path=file_path,
        adr_id=adr_id,
        context=context,
    )
    logger.log(
        level,
        "structured_error code=%s file=%s adr=%s %s: %s",
        structured.error_code,
        file_path or "-",
        adr_id or "-",
        _render_context(structured.context) or "-",
        structured.message,
        extra={"structured_error": structured.to_dict()},
    )
    return structured
