"""archguard command line.

Commands:
  init                  interactive local setup (ADR dir, config, cache dir, .gitignore)
  index                 rebuild the ADR index
  check [path|.]        detect architectural drift (--staged, --all, --debug, --ci)

Exit codes: 0 = no violations, 1 = violations found or any fatal error.
The CLI always runs from the repository root; relative path arguments given
from a subdirectory are rewritten against the root first.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from prometheus_client import CollectorRegistry, write_to_textfile

from archguard.analysis.engine import EngineOptions
from archguard.infra.git import get_repo_root
from archguard.main import build_provider, run_check, run_index, select_content
from archguard.metrics.analysis_metrics import AnalysisMetrics
from archguard.shared.config import (
    CONFIG_FILENAME,
    DEFAULT_ADR_PATH,
    DEFAULT_CACHE_DIR,
    load_settings,
    render_default_config,
)
from archguard.shared.errors import ArchGuardError, ViolationsFoundError

if TYPE_CHECKING:
    from collections.abc import Callable

    from archguard.ports.llm_call_port import LLMProvider
    from archguard.shared.config import Settings

logger = logging.getLogger(__name__)

GITIGNORE_ENTRY = ".archguard/"

ADR_TEMPLATE = """---
title: "[Short, Descriptive Title]"
status: "[Accepted | Proposed | Superseded]"
scope: "[Optional: glob pattern, e.g., **/*.py]"
---

# [ADR Title]

## Context

[Describe the problem or context that requires a decision.]

## Decision

[Clearly state the decision and any rules or constraints it imposes.]

## Consequences

[Describe the expected outcomes, both positive and negative.]
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="archguard",
        description="ArchGuard - Architectural Drift Detector",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Initialize ArchGuard in the current repository")
    sub.add_parser("index", help="Rebuild the ADR index")

    check = sub.add_parser("check", help="Check for architectural violations")
    check.add_argument(
        "path",
        nargs="?",
        default=None,
        help="File to check, or '.' for every tracked file",
    )
    check.add_argument("--staged", action="store_true", help="Scan staged files only")
    check.add_argument("--all", dest="all_files", action="store_true", help="Scan all tracked files")
    check.add_argument("--debug", action="store_true", help="Enable debug output")
    check.add_argument(
        "--ci",
        action="store_true",
        help="CI-safe mode: truncated files warn instead of being analyzed",
    )
    check.add_argument(
        "--metrics-file",
        default=None,
        help="Write Prometheus metrics in text format to this path after the run",
    )
    return parser


def rewrite_to_root(path: str, cwd: str | Path, repo_root: str | Path) -> str:
    """Express a cwd-relative *path* relative to *repo_root*, forward-slashed.

    `.` stays `.` only when cwd is the root; from a subdirectory it becomes
    that subdirectory.
    """
    absolute = Path(cwd, path).resolve()
    try:
        rel = absolute.relative_to(Path(repo_root).resolve())
    except ValueError:
        return path
    return rel.as_posix()


def ensure_gitignore(root: Path, out: TextIO) -> bool:
    """Append `.archguard/` to root/.gitignore unless already listed. True if added."""
    gitignore = root / ".gitignore"
    try:
        existing = gitignore.read_text(encoding="utf-8")
    except FileNotFoundError:
        existing = ""

    if any(line.strip() == GITIGNORE_ENTRY for line in existing.splitlines()):
        return False

    prefix = "\n" if existing and not existing.endswith("\n") else ""
    with gitignore.open("a", encoding="utf-8") as fh:
        fh.write(f"{prefix}{GITIGNORE_ENTRY}\n")
    out.write(f"Added {GITIGNORE_ENTRY} to .gitignore\n")
    return True


def _confirm(input_fn: Callable[[str], str], prompt: str) -> bool:
    return input_fn(prompt).strip().lower() == "y"


def run_init(root: Path, *, input_fn: Callable[[str], str], out: TextIO) -> None:
    """Interactive setup. Paths are relative to *root*."""
    adr_path = input_fn(f"Enter ADR directory path [{DEFAULT_ADR_PATH}]: ").strip()
    adr_path = adr_path or DEFAULT_ADR_PATH
    adr_dir = root / adr_path

    if not adr_dir.exists():
        if _confirm(input_fn, f"Directory '{adr_path}' does not exist. Create it now? (y/n): "):
            adr_dir.mkdir(parents=True, exist_ok=True)
            out.write(f"Created directory: {adr_path}\n")
            if _confirm(
                input_fn,
                "Would you like to include a standard ADR_TEMPLATE.md to get started? (y/n): ",
            ):
                template = adr_dir / "ADR_TEMPLATE.md"
                template.write_text(ADR_TEMPLATE, encoding="utf-8")
                out.write(f"Created template: {template.relative_to(root).as_posix()}\n")
        else:
            out.write("Skipping directory creation.\n")

    config_path = root / CONFIG_FILENAME
    if config_path.exists() and not _confirm(
        input_fn, f"{CONFIG_FILENAME} already exists. Overwrite with defaults? (y/n): "
    ):
        out.write("Initialization cancelled.\n")
        return

    config_path.write_text(render_default_config(adr_path), encoding="utf-8")
    out.write(f"Created config: {CONFIG_FILENAME}\n")

    (root / DEFAULT_CACHE_DIR).mkdir(parents=True, exist_ok=True)
    out.write(f"Created directory: {DEFAULT_CACHE_DIR}\n")

    ensure_gitignore(root, out)

    out.write(
        "\nArchGuard initialized successfully!\n"
        "Next steps:\n"
        f"  1. Add your ADR files to {adr_path}\n"
        "  2. Run: archguard index\n"
        "  3. Run: archguard check\n"
    )


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _execute(
    args: argparse.Namespace,
    *,
    provider_factory: Callable[[Settings], LLMProvider],
    input_fn: Callable[[str], str],
    out: TextIO,
) -> None:
    repo_root = await get_repo_root()
    cwd = os.getcwd()
    if getattr(args, "path", None):
        args.path = rewrite_to_root(args.path, cwd, repo_root)
    if getattr(args, "metrics_file", None):
        args.metrics_file = str(Path(cwd, args.metrics_file).resolve())
    if Path(cwd).resolve() != Path(repo_root).resolve():
        os.chdir(repo_root)

    if args.command == "init":
        run_init(Path("."), input_fn=input_fn, out=out)
        return

    settings = load_settings(CONFIG_FILENAME)
    provider = provider_factory(settings)

    if args.command == "index":
        await run_index(settings, provider, out=out)
        return

    registry = CollectorRegistry()
    metrics = AnalysisMetrics(registry=registry)
    content = select_content(args.path, staged=args.staged, all_files=args.all_files)
    if args.debug:
        out.write("[DEBUG] Mode Enabled\n")
    try:
        await run_check(
            settings,
            provider,
            content,
            options=EngineOptions(debug=args.debug, ci=args.ci),
            metrics=metrics,
            out=out,
        )
    finally:
        if args.metrics_file:
            write_to_textfile(args.metrics_file, registry)


def main(
    argv: list[str] | None = None,
    *,
    provider_factory: Callable[[Settings], LLMProvider] | None = None,
    input_fn: Callable[[str], str] = input,
    out: TextIO | None = None,
) -> int:
    """Entry point for the `archguard` console script."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(getattr(args, "debug", False))
    out = out if out is not None else sys.stdout

    out.write("ArchGuard - Architectural Drift Detector\n")
    try:
        asyncio.run(
            _execute(
                args,
                provider_factory=provider_factory or build_provider,
                input_fn=input_fn,
                out=out,
            )
        )
    except ViolationsFoundError as exc:
        print(f"Error: analysis failed: {exc}", file=sys.stderr)
        return 1
    except ArchGuardError as exc:
        logger.debug("Fatal error", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
