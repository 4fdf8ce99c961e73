"""ADR scope globs, exclusion patterns and inline suppression.

Glob translation to an anchored regex:
    **/  -> zero or more leading directories
    **   -> any run of characters, separators included
    *    -> any run of characters except '/'
    ?    -> one character except '/'
    other regex metacharacters are escaped
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from archguard.knowledge.adr import ArchitecturalRecord

SUPPRESSION_PREFIX = "archguard-ignore:"
HEADER_SCAN_CHARS = 2000


@lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a path glob into an anchored regular expression."""
    out: list[str] = ["^"]
    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        if c == "*":
            if i + 1 < n and pattern[i + 1] == "*":
                if i + 2 < n and pattern[i + 2] == "/":
                    out.append("(?:.*/)?")
                    i += 3
                    continue
                out.append(".*")
                i += 2
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        else:
            out.append(re.escape(c))
        i += 1
    out.append("$")
    return re.compile("".join(out))


def match_glob(pattern: str, path: str) -> bool:
    """True if *path* (forward-slash separated) matches *pattern*."""
    return glob_to_regex(pattern).match(path.replace("\\", "/")) is not None


def applies(record: ArchitecturalRecord, file_path: str) -> bool:
    """An ADR with no scope applies everywhere; otherwise its glob decides."""
    if not record.scope:
        return True
    return match_glob(record.scope, file_path)


def suppression_marker(adr_id: str) -> str:
    return f"{SUPPRESSION_PREFIX} {adr_id}"


def is_suppressed(text: str, adr_id: str) -> bool:
    """True if the first HEADER_SCAN_CHARS of *text* carry the ignore marker for *adr_id*.

    Plain substring match: `archguard-ignore: 00012` also suppresses ADR `0001`.
    """
    return suppression_marker(adr_id) in text[:HEADER_SCAN_CHARS]


def is_excluded(file_path: str, patterns: Iterable[str]) -> bool:
    """True if *file_path* matches any configured exclusion glob."""
    return any(match_glob(pattern, file_path) for pattern in patterns)
