"""Architectural decision records and their markdown parser.

An ADR file starts with a YAML frontmatter block (title, status, optional
scope glob) delimited by `---` lines; everything after the closing
delimiter is the decision text. The identifier is the filename prefix up to
the first dash (`0001-use-go.md` -> `0001`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_FRONTMATTER_DELIMITER = "---"


class ADRParseError(ValueError):
    """An ADR file has no usable frontmatter."""


@dataclass(frozen=True)
class ArchitecturalRecord:
    """One indexed ADR. Immutable once the index is built."""

    id: str
    title: str
    status: str
    content: str
    scope: str = ""
    rel_path: str = ""
    embedding: tuple[float, ...] = field(default=(), repr=False)

    def with_embedding(self, embedding: list[float]) -> ArchitecturalRecord:
        return replace(self, embedding=tuple(embedding))

    def embedding_text(self) -> str:
        """Text sent to the embedding model for this record."""
        return f"Title: {self.title}\nStatus: {self.status}\nContent: {self.content}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status,
            "scope": self.scope,
            "content": self.content,
            "embedding": list(self.embedding),
            "rel_path": self.rel_path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ArchitecturalRecord:
        return cls(
            id=str(data.get("id", "")),
            title=str(data.get("title", "")),
            status=str(data.get("status", "")),
            scope=str(data.get("scope") or ""),
            content=str(data.get("content", "")),
            embedding=tuple(float(x) for x in data.get("embedding") or ()),
            rel_path=str(data.get("rel_path", "")),
        )


def parse_adr(path: Path, root_dir: Path) -> ArchitecturalRecord:
    """Parse one ADR markdown file.

    Raises:
        ADRParseError: If the frontmatter is missing or malformed.
        OSError: If the file cannot be read.
    """
    text = path.read_text(encoding="utf-8")
    if not text.startswith(_FRONTMATTER_DELIMITER):
        msg = f"no frontmatter found in {path}"
        raise ADRParseError(msg)

    parts = text.split(_FRONTMATTER_DELIMITER, 2)
    if len(parts) < 3:
        msg = f"invalid frontmatter format in {path}"
        raise ADRParseError(msg)

    try:
        meta = yaml.safe_load(parts[1]) or {}
    except yaml.YAMLError as exc:
        msg = f"failed to parse frontmatter in {path}: {exc}"
        raise ADRParseError(msg) from exc
    if not isinstance(meta, dict):
        msg = f"frontmatter in {path} is not a mapping"
        raise ADRParseError(msg)

    return ArchitecturalRecord(
        id=path.name.split("-")[0],
        title=str(meta.get("title") or ""),
        status=str(meta.get("status") or ""),
        scope=str(meta.get("scope") or ""),
        content=parts[2],
        rel_path=path.relative_to(root_dir).as_posix(),
    )


def has_accepted_status(record: ArchitecturalRecord, accepted_statuses: list[str]) -> bool:
    """Case-insensitive, whitespace-trimmed status match."""
    status = record.status.strip().casefold()
    return any(status == s.strip().casefold() for s in accepted_statuses)


def iter_adr_files(adr_dir: Path) -> list[Path]:
    """All markdown files under *adr_dir*, recursively, in sorted path order."""
    return sorted(p for p in adr_dir.rglob("*.md") if p.is_file())


def collect_records(adr_dir: Path, accepted_statuses: list[str]) -> list[ArchitecturalRecord]:
    """Parse every ADR under *adr_dir* and keep the ones with an accepted status.

    Files that fail to parse are skipped with a warning.
    """
    records: list[ArchitecturalRecord] = []
    for path in iter_adr_files(adr_dir):
        try:
            record = parse_adr(path, adr_dir)
        except (ADRParseError, OSError, UnicodeDecodeError) as exc:
            logger.warning("Skipping %s: %s", path, exc)
            continue
        if has_accepted_status(record, accepted_statuses):
            records.append(record)
        else:
            logger.debug("Skipping %s: status %r not accepted", path, record.status)
    return records
