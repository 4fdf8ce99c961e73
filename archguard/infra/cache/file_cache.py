"""Content-addressed verdict cache on the local filesystem.

- Key: SHA-256 fingerprint of (model, ADR text, file context, system
  prompt, user prompt template); any change yields a new key
- Value: one JSON-serialized Verdict per `<fingerprint>.json`
- Missing and corrupt entries are both plain misses
- No lock: a duplicate write for the same key stores the same value
"""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from archguard.judge.drift_judge import Verdict
from archguard.ports.cache_port import ResultCachePort

logger = logging.getLogger(__name__)

_KEY_SEPARATOR = b"||"


def compute_fingerprint(
    model_name: str,
    adr_content: str,
    file_content: str,
    system_prompt: str,
    user_prompt_template: str,
) -> str:
    """Deterministic cache key over the ordered judgment inputs."""
    h = hashlib.sha256()
    parts = (model_name, adr_content, file_content, system_prompt, user_prompt_template)
    for i, part in enumerate(parts):
        if i:
            h.update(_KEY_SEPARATOR)
        h.update(part.encode("utf-8"))
    return h.hexdigest()


class FileResultCache(ResultCachePort):
    """Flat fingerprint -> Verdict store under one directory."""

    def __init__(self, cache_dir: str | Path) -> None:
        self._dir = Path(cache_dir)
        self._dir.mkdir(parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        return self._dir

    def _path(self, fingerprint: str) -> Path:
        return self._dir / f"{fingerprint}.json"

    def get(self, fingerprint: str) -> Verdict | None:
        """Return the cached verdict, or None on a miss or unreadable entry."""
        path = self._path(fingerprint)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Cache entry %s unreadable, treating as miss: %s", fingerprint, exc)
            return None

        try:
            return Verdict.model_validate_json(raw)
        except ValidationError:
            logger.debug("Cache entry %s corrupt, treating as miss", fingerprint)
            return None

    def put(self, fingerprint: str, verdict: Verdict) -> None:
        """Store *verdict* under *fingerprint*.

        Raises:
            OSError: If the entry cannot be written.
        """
        path = self._path(fingerprint)
        tmp_path = path.with_name(f"{path.name}.{os.getpid()}.tmp")
        tmp_path.write_text(verdict.model_dump_json(), encoding="utf-8")
        os.replace(tmp_path, path)
