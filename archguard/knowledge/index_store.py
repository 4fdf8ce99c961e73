"""ADR index snapshot: build, persist, load and validate.

Task flow:
- build_index: parse ADRs, keep accepted statuses, embed with bounded
  parallelism (5 in flight), fail the whole build on any embedding error
- save_snapshot: write JSON to `<path>.tmp`, then atomically rename
- load_snapshot: refuse a snapshot whose model name, dimension or content
  hash differs from the current configuration and ADR files
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from archguard.knowledge.adr import ArchitecturalRecord, collect_records, iter_adr_files
from archguard.knowledge.search import SimilarityIndex
from archguard.shared.errors import IndexBuildError, IndexMismatchError, IndexNotFoundError

if TYPE_CHECKING:
    from archguard.ports.llm_call_port import LLMProvider

logger = logging.getLogger(__name__)

EMBEDDING_CONCURRENCY = 5


@dataclass(frozen=True)
class IndexSnapshot:
    """Full set of indexed ADRs plus the metadata that makes them valid."""

    records: tuple[ArchitecturalRecord, ...] = field(default_factory=tuple)
    content_hash: str = ""
    model_name: str = ""
    dim: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "adrs": [r.to_dict() for r in self.records],
            "hash": self.content_hash,
            "model_name": self.model_name,
            "dim": self.dim,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IndexSnapshot:
        return cls(
            records=tuple(ArchitecturalRecord.from_dict(d) for d in data.get("adrs") or []),
            content_hash=str(data.get("hash", "")),
            model_name=str(data.get("model_name", "")),
            dim=int(data.get("dim", 0)),
        )

    def to_index(self) -> SimilarityIndex:
        return SimilarityIndex(self.records)


def compute_content_hash(adr_dir: str | Path, model_name: str) -> str:
    """SHA-256 over the model name and every ADR file name + bytes.

    Raises:
        IndexBuildError: If the ADR directory does not exist.
    """
    root = Path(adr_dir)
    if not root.is_dir():
        msg = f"ADR directory not found: {root}"
        raise IndexBuildError(msg)

    hasher = hashlib.sha256()
    hasher.update(model_name.encode())
    for path in iter_adr_files(root):
        hasher.update(path.name.encode())
        try:
            hasher.update(path.read_bytes())
        except OSError:
            logger.warning("Could not read %s while hashing ADRs", path)
    return hasher.hexdigest()


def validate_snapshot(
    snapshot: IndexSnapshot,
    *,
    model_name: str,
    dim: int,
    current_hash: str,
) -> None:
    """Raise IndexMismatchError listing every mismatch, if any."""
    reasons: list[str] = []
    if snapshot.model_name != model_name:
        reasons.append(
            f"Model mismatch (Saved: {snapshot.model_name!r}, Config: {model_name!r})"
        )
    if snapshot.dim != dim:
        reasons.append(f"Dimension mismatch (Saved: {snapshot.dim}, Config: {dim})")
    if snapshot.content_hash != current_hash:
        reasons.append(
            f"Hash mismatch\n    Saved:   {snapshot.content_hash}\n    Current: {current_hash}"
        )
    if reasons:
        raise IndexMismatchError(reasons)


def load_snapshot(
    path: str | Path,
    *,
    model_name: str,
    dim: int,
    current_hash: str,
) -> IndexSnapshot:
    """Read the index file and verify it matches the current configuration.

    Raises:
        IndexNotFoundError: If no index file exists.
        IndexMismatchError: If the file is malformed or stale.
    """
    index_path = Path(path)
    try:
        raw = index_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise IndexNotFoundError(str(index_path)) from None

    try:
        snapshot = IndexSnapshot.from_dict(json.loads(raw))
    except (ValueError, TypeError, AttributeError) as exc:
        raise IndexMismatchError([f"Unreadable index file {index_path}: {exc}"]) from exc

    validate_snapshot(snapshot, model_name=model_name, dim=dim, current_hash=current_hash)
    return snapshot


def save_snapshot(snapshot: IndexSnapshot, path: str | Path) -> None:
    """Persist *snapshot* atomically (temp file + rename)."""
    index_path = Path(path)
    index_path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path = index_path.with_name(index_path.name + ".tmp")
    tmp_path.write_text(json.dumps(snapshot.to_dict(), indent=2), encoding="utf-8")
    os.replace(tmp_path, index_path)


async def build_index(
    adr_dir: str | Path,
    *,
    model_name: str,
    provider: LLMProvider,
    accepted_statuses: list[str],
    concurrency: int = EMBEDDING_CONCURRENCY,
) -> IndexSnapshot:
    """Parse and embed all accepted ADRs under *adr_dir*.

    Raises:
        IndexBuildError: If the directory is missing or any embedding fails.
            No partial snapshot is returned.
    """
    root = Path(adr_dir)
    if not root.is_dir():
        msg = f"ADR directory not found: {root}"
        raise IndexBuildError(msg)

    records = collect_records(root, accepted_statuses)
    logger.info("Found %d valid ADRs. Generating embeddings...", len(records))

    sem = asyncio.Semaphore(concurrency)

    async def _embed(record: ArchitecturalRecord) -> ArchitecturalRecord:
        async with sem:
            try:
                vector = await provider.create_embedding(record.embedding_text())
            except Exception as exc:
                msg = f"failed to embed ADR {record.rel_path}: {exc}"
                raise IndexBuildError(msg) from exc
        return record.with_embedding(vector)

    tasks = [asyncio.create_task(_embed(r)) for r in records]
    try:
        embedded = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    dim = len(embedded[0].embedding) if embedded else 0
    if embedded:
        logger.info("Index built with %d dimensions.", dim)

    return IndexSnapshot(
        records=tuple(embedded),
        content_hash=compute_content_hash(root, model_name),
        model_name=model_name,
        dim=dim,
    )
