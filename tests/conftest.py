"""Root conftest - shared fixtures for all test layers.

Markers:
    @pytest.mark.unit   - No external deps
    @pytest.mark.smoke  - Fast subset
    @pytest.mark.e2e    - End-to-end pipeline scenarios
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from prometheus_client import CollectorRegistry

from archguard.knowledge.adr import ArchitecturalRecord
from archguard.metrics.analysis_metrics import AnalysisMetrics
from archguard.shared.config import Settings

if TYPE_CHECKING:
    from pathlib import Path


ADR_GO_ONLY = """---
title: "Go Only"
status: "Accepted"
---

All services must be Go.
"""

ADR_NO_ORM = """---
title: "No ORM"
status: "Active"
scope: "**/*.py"
---

Data access goes through plain SQL repositories. ORMs are not allowed.
"""

ADR_DRAFT = """---
title: "Draft Idea"
status: "Proposed"
---

Maybe use Rust.
"""


@pytest.fixture
def registry() -> CollectorRegistry:
    """Isolated Prometheus registry per test."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> AnalysisMetrics:
    return AnalysisMetrics(registry=registry)


@pytest.fixture
def adr_dir(tmp_path: Path) -> Path:
    """ADR tree with two accepted records and one proposed record."""
    root = tmp_path / "docs" / "arch"
    (root / "data").mkdir(parents=True)
    (root / "0001-go-only.md").write_text(ADR_GO_ONLY, encoding="utf-8")
    (root / "data" / "0002-no-orm.md").write_text(ADR_NO_ORM, encoding="utf-8")
    (root / "0003-draft.md").write_text(ADR_DRAFT, encoding="utf-8")
    return root


@pytest.fixture
def go_only_record() -> ArchitecturalRecord:
    return ArchitecturalRecord(
        id="0001",
        title="Go Only",
        status="Accepted",
        content="All services must be Go",
        rel_path="0001-go-only.md",
        embedding=(1.0, 0.0, 0.0),
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with threshold 0 so every ADR matches."""
    return Settings.model_validate(
        {
            "llm": {"provider": "mock", "model": "mock-model"},
            "vector_store": {"provider": "mock", "model": "mock-embed", "similarity_threshold": 0.0},
            "analysis": {"adr_path": str(tmp_path / "docs" / "arch")},
            "index_file": str(tmp_path / ".archguard" / "index.json"),
            "cache_dir": str(tmp_path / ".archguard" / "cache"),
        }
    )
