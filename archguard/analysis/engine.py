"""Analysis engine: fans files out to bounded concurrent workers.

Per file (one unit of work, semaphore-bounded):
  1. Context selection (full | diff | truncated) via TokenBudgeter
  2. CI warn-open: truncated context in CI mode skips the file entirely
  3. Embedding of the diff (or the selected text), capped at 6000 chars
  4. Similarity search -> scope filter -> suppression filter
  5. Per-ADR: cache lookup, DriftJudge on miss, cache store
  6. Report buffered per file; flushed with the violation count under one lock

Per-file and per-ADR failures are reported inline and never abort the run.
A run with violations raises ViolationsFoundError.
"""

from __future__ import annotations

import asyncio
import io
import logging
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TextIO

from archguard.analysis.budget import AnalysisContext, ContextMode, TokenBudgeter
from archguard.analysis.scope import applies, is_excluded, is_suppressed
from archguard.infra.cache.file_cache import compute_fingerprint
from archguard.judge.drift_judge import DriftJudge
from archguard.judge.prompts import USER_PROMPT_TEMPLATE, resolve_system_prompt
from archguard.shared.errors import (
    ArchGuardError,
    JudgeError,
    ProviderError,
    VerdictParseError,
    ViolationsFoundError,
)
from archguard.shared.logging.error_handler import log_structured_error

if TYPE_CHECKING:
    from archguard.judge.drift_judge import Verdict
    from archguard.knowledge.search import SimilarityHit, SimilarityIndex
    from archguard.metrics.analysis_metrics import AnalysisMetrics
    from archguard.ports.cache_port import ResultCachePort
    from archguard.ports.content_port import ContentPort
    from archguard.ports.llm_call_port import LLMProvider
    from archguard.shared.config import Settings

logger = logging.getLogger(__name__)

EMBEDDING_QUERY_MAX_CHARS = 6000
RAW_RESPONSE_LOG_CHARS = 500


@dataclass(frozen=True)
class EngineOptions:
    """Run-wide switches passed in at construction."""

    debug: bool = False
    ci: bool = False


@dataclass
class PipelineResult:
    """Aggregate outcome of one run. Mutated only under the engine lock."""

    violations: int = 0
    files_analyzed: int = 0
    files_skipped: int = 0
    files_excluded: int = 0
    judge_calls: int = 0
    cache_hits: int = 0
    judge_errors: int = 0

    @property
    def passed(self) -> bool:
        return self.violations == 0


@dataclass
class _FileTally:
    """Per-worker counters merged into PipelineResult on flush."""

    violations: int = 0
    skipped: bool = False
    judge_calls: int = 0
    cache_hits: int = 0
    judge_errors: int = 0


def find_line_number(text: str, quote: str) -> int:
    """1-based line of the first occurrence of *quote* in *text*; 0 if absent or empty."""
    if not quote:
        return 0
    idx = text.find(quote)
    if idx == -1:
        return 0
    return len(text[:idx].split("\n"))


def embedding_query(diff: str, context_text: str) -> str:
    """The text embedded for retrieval: the diff when present, else the context."""
    query = diff or context_text
    return query[:EMBEDDING_QUERY_MAX_CHARS]


class AnalysisEngine:
    """Runs the drift pipeline over every file a ContentPort lists."""

    def __init__(
        self,
        settings: Settings,
        index: SimilarityIndex,
        provider: LLMProvider,
        content: ContentPort,
        *,
        options: EngineOptions | None = None,
        cache: ResultCachePort | None = None,
        judge: DriftJudge | None = None,
        budgeter: TokenBudgeter | None = None,
        metrics: AnalysisMetrics | None = None,
        out: TextIO | None = None,
    ) -> None:
        self._settings = settings
        self._index = index
        self._provider = provider
        self._content = content
        self._options = options or EngineOptions()
        self._cache = cache
        self._judge = judge or DriftJudge(provider)
        self._budgeter = budgeter or TokenBudgeter(
            max_tokens=settings.llm.max_tokens,
            model=settings.llm.model,
        )
        self._metrics = metrics
        self._out = out if out is not None else sys.stdout
        self._system_prompt = resolve_system_prompt(settings.llm.system_prompt)

        self._lock = asyncio.Lock()
        self._result = PipelineResult()

    @property
    def options(self) -> EngineOptions:
        return self._options

    async def run(self) -> PipelineResult:
        """Analyze all files.

        Raises:
            ContentError: If the file listing cannot be produced.
            ViolationsFoundError: If any violation was reported; `.result`
                carries the full PipelineResult.
        """
        self._result = PipelineResult()
        files = await self._content.list_files()

        patterns = self._settings.analysis.exclude_patterns
        selected: list[str] = []
        for file_path in files:
            if is_excluded(file_path, patterns):
                logger.debug("Excluded %s", file_path)
                self._result.files_excluded += 1
                self._count_skip("excluded")
                continue
            selected.append(file_path)

        semaphore = asyncio.Semaphore(self._settings.analysis.max_concurrency)

        async def _bounded(file_path: str) -> None:
            async with semaphore:
                await self._analyze_file(file_path)

        await asyncio.gather(*(_bounded(f) for f in selected))

        result = self._result
        logger.info(
            "Analysis finished: files=%d violations=%d judge_calls=%d cache_hits=%d",
            result.files_analyzed,
            result.violations,
            result.judge_calls,
            result.cache_hits,
        )
        if result.violations > 0:
            raise ViolationsFoundError(result.violations, result=result)
        return result

    # -- per file --

    async def _analyze_file(self, file_path: str) -> None:
        buf = io.StringIO()
        tally = _FileTally()
        if self._metrics is not None:
            with self._metrics.timer(self._metrics.file_analysis_duration):
                await self._process(file_path, buf, tally)
        else:
            await self._process(file_path, buf, tally)
        await self._flush(buf, tally)

    async def _process(self, file_path: str, buf: io.StringIO, tally: _FileTally) -> None:
        debug = self._options.debug
        if debug:
            buf.write(f"Analyzing {file_path}...\n")

        diff_memo: dict[str, str] = {}

        async def _diff() -> str:
            if "diff" not in diff_memo:
                try:
                    diff_memo["diff"] = await self._content.get_diff(file_path)
                except ArchGuardError as exc:
                    logger.debug("No diff for %s: %s", file_path, exc)
                    diff_memo["diff"] = ""
            return diff_memo["diff"]

        try:
            raw = await self._content.get_content(file_path)
        except ArchGuardError as exc:
            log_structured_error(
                logger,
                exc,
                file_path=file_path,
                context=self._error_context(exc, stage="read"),
                level=logging.WARNING,
            )
            buf.write(f"Error reading file {file_path}: {exc}\n")
            self._skip(tally, "read_error")
            return

        text, mode = await self._budgeter.select(raw, _diff)
        context = AnalysisContext(file_path=file_path, text=text, mode=mode)
        if debug:
            buf.write(f"  Context mode: {context.mode}\n")

        if context.mode is ContextMode.TRUNCATED and self._options.ci:
            buf.write(
                f"  [WARN-OPEN] File {file_path} was truncated for analysis. "
                "In CI mode this is treated as a warning (no failure).\n"
            )
            self._skip(tally, "warn_open")
            return

        query = embedding_query(await _diff(), context.text)
        try:
            embedding = await self._embed(query)
        except ArchGuardError as exc:
            log_structured_error(
                logger,
                exc,
                file_path=file_path,
                context=self._error_context(exc, stage="embed", mode=str(context.mode)),
                level=logging.WARNING,
            )
            buf.write(f"Error generating embedding for {file_path}: {exc}\n")
            self._skip(tally, "embedding_error")
            return

        hits = self._index.search(
            embedding,
            self._settings.vector_store.similarity_threshold,
            self._settings.vector_store.top_k,
        )
        if not hits:
            if debug:
                buf.write("  No relevant ADRs found.\n")
            return

        for hit in hits:
            await self._check_adr(context, hit, buf, tally)

    async def _embed(self, text: str) -> list[float]:
        if self._metrics is None:
            return await self._provider.create_embedding(text)
        with self._metrics.timer(self._metrics.embedding_duration):
            return await self._provider.create_embedding(text)

    async def _check_adr(
        self,
        context: AnalysisContext,
        hit: SimilarityHit,
        buf: io.StringIO,
        tally: _FileTally,
    ) -> None:
        record = hit.record
        debug = self._options.debug

        if not applies(record, context.file_path):
            return

        if is_suppressed(context.text, record.id):
            if debug:
                buf.write(f"  Skipping ADR {record.title} (Suppressed)\n")
            logger.info("ADR %s suppressed for %s", record.id, context.file_path)
            return

        if debug:
            buf.write(f"  Checking against ADR: {record.title} ({hit.score:.2f})\n")

        fingerprint = compute_fingerprint(
            self._settings.llm.model,
            record.content,
            context.text,
            self._system_prompt,
            USER_PROMPT_TEMPLATE,
        )

        verdict = await self._cache_get(fingerprint)
        if verdict is not None:
            tally.cache_hits += 1
            if debug:
                buf.write(f"  Cache hit for {record.title}\n")
        else:
            if debug:
                buf.write("  Cache miss. Calling LLM...\n")
            tally.judge_calls += 1
            try:
                verdict = await self._judge_pair(record.content, context)
            except ArchGuardError as exc:
                tally.judge_errors += 1
                self._count_judgment("error")
                log_structured_error(
                    logger,
                    exc,
                    file_path=context.file_path,
                    adr_id=record.id,
                    context=self._error_context(
                        exc, stage="judge", model=self._settings.llm.model, mode=str(context.mode)
                    ),
                    level=logging.WARNING,
                )
                buf.write(f"    Warning: LLM analysis failed for ADR {record.id}: {exc}\n")
                return
            await self._cache_put(fingerprint, verdict)

        self._count_judgment("violation" if verdict.violation else "pass")
        if verdict.violation:
            line = find_line_number(context.text, verdict.quoted_code)
            buf.write(f"    [VIOLATION] {record.title} [Line {line}]\n")
            buf.write(f"    Reasoning: {verdict.reasoning}\n")
            if verdict.quoted_code:
                buf.write(f"    Code: {verdict.quoted_code}\n")
            tally.violations += 1

    async def _judge_pair(self, adr_text: str, context: AnalysisContext) -> Verdict:
        if self._metrics is None:
            return await self._judge.judge(
                adr_text, context.text, context.file_path, self._system_prompt
            )
        with self._metrics.timer(self._metrics.judge_duration):
            return await self._judge.judge(
                adr_text, context.text, context.file_path, self._system_prompt
            )

    # -- cache --

    # Cache adapters do blocking disk I/O; keep it off the event loop.

    async def _cache_get(self, fingerprint: str) -> Verdict | None:
        if self._cache is None:
            return None
        verdict = await asyncio.to_thread(self._cache.get, fingerprint)
        if self._metrics is not None:
            self._metrics.cache_lookups.labels(status="miss" if verdict is None else "hit").inc()
        return verdict

    async def _cache_put(self, fingerprint: str, verdict: Verdict) -> None:
        if self._cache is None:
            return
        try:
            await asyncio.to_thread(self._cache.put, fingerprint, verdict)
        except OSError as exc:
            logger.debug("Failed to cache analysis result: %s", exc)

    # -- error context --

    def _error_context(self, exc: ArchGuardError, *, stage: str, **extra: str) -> dict[str, Any]:
        """Triage fields for a structured error log entry."""
        context: dict[str, Any] = {"stage": stage, "provider": self._provider.name, **extra}
        cause = exc.last_error if isinstance(exc, JudgeError) else exc
        if isinstance(exc, JudgeError):
            context["attempts"] = exc.attempts
        if isinstance(cause, ProviderError):
            context["backend"] = cause.provider
        if isinstance(cause, VerdictParseError):
            context["raw_response"] = cause.raw[:RAW_RESPONSE_LOG_CHARS]
        return context

    # -- aggregation --

    def _skip(self, tally: _FileTally, reason: str) -> None:
        tally.skipped = True
        self._count_skip(reason)

    def _count_skip(self, reason: str) -> None:
        if self._metrics is not None:
            self._metrics.files_skipped.labels(reason=reason).inc()

    def _count_judgment(self, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.judgments.labels(outcome=outcome).inc()

    async def _flush(self, buf: io.StringIO, tally: _FileTally) -> None:
        async with self._lock:
            self._out.write(buf.getvalue())
            self._out.flush()
            result = self._result
            result.violations += tally.violations
            result.files_analyzed += 1
            result.files_skipped += int(tally.skipped)
            result.judge_calls += tally.judge_calls
            result.cache_hits += tally.cache_hits
            result.judge_errors += tally.judge_errors
            if tally.violations and self._metrics is not None:
                self._metrics.violations.inc(tally.violations)
