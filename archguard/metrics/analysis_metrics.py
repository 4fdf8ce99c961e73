"""Prometheus metrics for the analysis pipeline.

Histograms:
1. archguard_embedding_duration_seconds     - file embedding latency
2. archguard_judge_duration_seconds         - drift judgment latency (incl. retries)
3. archguard_file_analysis_duration_seconds - full per-file pipeline latency
Counters:
4. archguard_cache_lookups_total{status}    - hit | miss
5. archguard_judgments_total{outcome}       - pass | violation | error
6. archguard_files_skipped_total{reason}    - excluded | warn_open | read_error |
                                              embedding_error
7. archguard_violations_total               - violations reported
"""

from __future__ import annotations

import time
from collections.abc import Generator  # noqa: TC003 -- used at runtime by contextmanager
from contextlib import contextmanager

from prometheus_client import CollectorRegistry, Counter, Histogram

# Model calls dominate: 50ms to 2min
_LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0)


def _histogram(
    name: str,
    documentation: str,
    registry: CollectorRegistry | None,
) -> Histogram:
    """Create a Histogram with optional registry."""
    if registry is not None:
        return Histogram(name, documentation, buckets=_LATENCY_BUCKETS, registry=registry)
    return Histogram(name, documentation, buckets=_LATENCY_BUCKETS)


def _counter(
    name: str,
    documentation: str,
    labelnames: list[str],
    registry: CollectorRegistry | None,
) -> Counter:
    """Create a Counter with optional registry."""
    if registry is not None:
        return Counter(name, documentation, labelnames, registry=registry)
    return Counter(name, documentation, labelnames)


class AnalysisMetrics:
    """Central registry for pipeline metrics.

    Pass a custom CollectorRegistry for testing isolation. Creating two
    instances on the default global registry raises a duplicate-timeseries
    error, so the CLI builds exactly one.
    """

    def __init__(self, *, registry: CollectorRegistry | None = None) -> None:
        self.embedding_duration = _histogram(
            "archguard_embedding_duration_seconds",
            "Time spent embedding a file's diff or content",
            registry,
        )
        self.judge_duration = _histogram(
            "archguard_judge_duration_seconds",
            "Time spent judging one (file, ADR) pair, retries included",
            registry,
        )
        self.file_analysis_duration = _histogram(
            "archguard_file_analysis_duration_seconds",
            "Time spent on one file's full pipeline",
            registry,
        )
        self.cache_lookups = _counter(
            "archguard_cache_lookups_total",
            "Verdict cache lookups",
            ["status"],
            registry,
        )
        self.judgments = _counter(
            "archguard_judgments_total",
            "Drift judgments by outcome",
            ["outcome"],
            registry,
        )
        self.files_skipped = _counter(
            "archguard_files_skipped_total",
            "Files that left the pipeline before judgment",
            ["reason"],
            registry,
        )
        self.violations = _counter(
            "archguard_violations_total",
            "Architectural violations reported",
            [],
            registry,
        )

    @contextmanager
    def timer(self, histogram: Histogram) -> Generator[None, None, None]:
        """Context manager that observes elapsed time on a histogram.

        Duration is always recorded, even if the block raises an exception.
        """
        start = time.monotonic()
        try:
            yield
        finally:
            histogram.observe(time.monotonic() - start)
