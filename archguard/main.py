"""Composition root: wires config, providers, index, cache and engine.

- build_provider: LLMProvider from settings + ARCHGUARD_API_KEY
- select_content: ContentPort from the `check` target and flags
- load_index: validated SimilarityIndex from the saved snapshot
- run_index / run_check: the two analysis commands, provider injectable
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, TextIO

from archguard.analysis.content import (
    SingleFileContent,
    StagedContent,
    TrackedContent,
    WorktreeContent,
)
from archguard.analysis.engine import AnalysisEngine, EngineOptions
from archguard.infra.cache.file_cache import FileResultCache
from archguard.knowledge.index_store import (
    build_index,
    compute_content_hash,
    load_snapshot,
    save_snapshot,
)
from archguard.shared.config import api_key_from_env
from archguard.tool.llm.model_registry import create_provider, embedding_model_name

if TYPE_CHECKING:
    from pathlib import Path

    from archguard.analysis.engine import PipelineResult
    from archguard.knowledge.index_store import IndexSnapshot
    from archguard.knowledge.search import SimilarityIndex
    from archguard.metrics.analysis_metrics import AnalysisMetrics
    from archguard.ports.content_port import ContentPort
    from archguard.ports.llm_call_port import LLMProvider
    from archguard.shared.config import Settings

logger = logging.getLogger(__name__)


def build_provider(settings: Settings) -> LLMProvider:
    return create_provider(settings, api_key=api_key_from_env())


def select_content(
    target: str | None,
    *,
    staged: bool = False,
    all_files: bool = False,
    root: str | Path | None = None,
) -> ContentPort:
    """Pick the file source for `check`.

    An explicit target wins over flags: `.` scans every tracked file, any
    other path scans just that file. Otherwise `--staged`, then `--all`,
    then uncommitted worktree changes.
    """
    if target:
        if target == ".":
            return TrackedContent(root)
        return SingleFileContent(target, root)
    if staged:
        return StagedContent(root)
    if all_files:
        return TrackedContent(root)
    return WorktreeContent(root)


def load_index(settings: Settings) -> SimilarityIndex:
    """Load the saved index and verify it against config and ADR contents.

    Raises:
        IndexBuildError: If the ADR directory is missing.
        IndexNotFoundError: If no index has been built.
        IndexMismatchError: If the index is stale or malformed.
    """
    model_name = embedding_model_name(settings)
    current_hash = compute_content_hash(settings.analysis.adr_path, model_name)
    snapshot = load_snapshot(
        settings.index_file,
        model_name=model_name,
        dim=settings.vector_store.embedding_dim,
        current_hash=current_hash,
    )
    logger.info("Loaded index with %d ADRs from %s", len(snapshot.records), settings.index_file)
    return snapshot.to_index()


async def run_index(
    settings: Settings,
    provider: LLMProvider,
    *,
    out: TextIO | None = None,
) -> IndexSnapshot:
    """Rebuild and save the ADR index."""
    out = out if out is not None else sys.stdout
    snapshot = await build_index(
        settings.analysis.adr_path,
        model_name=embedding_model_name(settings),
        provider=provider,
        accepted_statuses=settings.analysis.accepted_statuses,
    )
    save_snapshot(snapshot, settings.index_file)
    out.write("ADR Index updated successfully.\n")
    return snapshot


async def run_check(
    settings: Settings,
    provider: LLMProvider,
    content: ContentPort,
    *,
    options: EngineOptions | None = None,
    metrics: AnalysisMetrics | None = None,
    out: TextIO | None = None,
) -> PipelineResult:
    """Validate the index and run the drift pipeline.

    Raises:
        ViolationsFoundError: If any violation is reported.
    """
    out = out if out is not None else sys.stdout
    index = load_index(settings)
    engine = AnalysisEngine(
        settings,
        index,
        provider,
        content,
        options=options,
        cache=FileResultCache(settings.cache_dir),
        metrics=metrics,
        out=out,
    )
    result = await engine.run()
    out.write("No architectural violations found.\n")
    return result
