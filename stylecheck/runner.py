# Run orchestration: analyze files in a thread pool, optionally fixing them
# until the output stops changing, and stop early when cancelled.

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from tree_sitter import Parser

from stylecheck.config import Config, get_default_config
from stylecheck.context import FileContext, context_from_source, location_for
from stylecheck.errors import SourceSyntaxError
from stylecheck.evaluator import evaluate
from stylecheck.findings.models import FileError, FileReport, Location, RuleFailure
from stylecheck.fixes import PlannedEdit, apply_edits, synthesize_all
from stylecheck.parser import create_parser
from stylecheck.rules.registry import RuleStore

logger = logging.getLogger(__name__)

# tree-sitter parsers are not safe to share between threads.
_local = threading.local()


def _thread_parser() -> Parser:
    parser = getattr(_local, "parser", None)
    if parser is None:
        parser = create_parser()
        _local.parser = parser
    return parser


@dataclass
class RunResult:
    """Per-file reports ordered by path, and whether the run was cancelled."""

    reports: list[FileReport] = field(default_factory=list)
    cancelled: bool = False


def _syntax_error_report(path: Path, exc: SourceSyntaxError) -> FileReport:
    return FileReport(
        path=path,
        error=FileError(
            message=f"syntax error: {exc.message}",
            location=Location(path=path, line=exc.line, column=exc.column),
        ),
    )


def _build_context(path: Path, source: bytes, store: RuleStore, config: Config, parser: Optional[Parser]) -> FileContext:
    return context_from_source(
        path,
        source,
        parser=parser or _thread_parser(),
        suppression_entries=config.suppression_entries,
        known_ids=store.ids,
    )


def fix_until_stable(
    ctx: FileContext,
    store: RuleStore,
    config: Config,
    parser: Optional[Parser] = None,
) -> tuple[FileReport, bytes]:
    """
    Apply fixes pass after pass until nothing changes or max_fix_passes is hit.

    Each pass re-parses and re-evaluates the current text, so every edit is
    computed against the buffer it is applied to. A pass whose output no
    longer parses is discarded, and each rule with an edit in it gets a
    fix-phase RuleFailure. The report describes the final text: the
    violations that remain, and the conflicts that kept edits from applying.
    """
    path = ctx.path
    current = ctx.source
    applied = 0
    rejected: list[RuleFailure] = []
    for n in range(1, config.max_fix_passes + 1):
        evaluation = evaluate(ctx.unit, store, ctx.suppressions)
        plan = synthesize_all(evaluation.violations, ctx.unit, store)
        if not plan.edits:
            break
        candidate = apply_edits(current, plan.text_edits)
        if candidate == current:
            break
        try:
            next_ctx = _build_context(path, candidate, store, config, parser)
        except SourceSyntaxError as e:
            logger.warning(
                "Fix pass %d for %s produced unparsable output (%s); keeping previous text",
                n, path, e.message,
            )
            rejected = _rejected_pass_failures(ctx, plan.edits, e)
            break
        logger.debug("Fix pass %d for %s applied %d edit(s)", n, path, len(plan.edits))
        current, ctx = candidate, next_ctx
        applied += len(plan.edits)
    else:
        logger.warning("Fixes for %s did not converge after %d passes", path, config.max_fix_passes)

    evaluation = evaluate(ctx.unit, store, ctx.suppressions)
    plan = synthesize_all(evaluation.violations, ctx.unit, store)
    report = FileReport(
        path=path,
        violations=evaluation.violations,
        failures=evaluation.failures + plan.failures + rejected,
        conflicts=plan.conflicts,
        fixes_applied=applied,
    )
    return report, current


def _rejected_pass_failures(
    ctx: FileContext, edits: list[PlannedEdit], exc: SourceSyntaxError
) -> list[RuleFailure]:
    """One fix-phase failure per rule whose edits were in a pass that broke the syntax."""
    failures: list[RuleFailure] = []
    seen: set[str] = set()
    for planned in edits:
        violation = planned.violation
        if violation.rule_id in seen:
            continue
        seen.add(violation.rule_id)
        failures.append(
            RuleFailure(
                rule_id=violation.rule_id,
                phase="fix",
                message=f"fix produced unparsable output ({exc.message}); edits discarded",
                location=location_for(ctx.unit, violation.span),
                span=violation.span,
            )
        )
    return failures


def analyze_source(
    source: bytes,
    path: Path,
    store: RuleStore,
    config: Optional[Config] = None,
    parser: Optional[Parser] = None,
) -> tuple[FileReport, bytes]:
    """
    Evaluate (and with config.fix, repair) one file's source.

    Returns the report and the resulting text, which equals source unless
    fixes were applied. Syntax errors are reported, never raised.
    """
    if config is None:
        config = get_default_config()
    try:
        ctx = _build_context(path, source, store, config, parser)
    except SourceSyntaxError as e:
        logger.warning("Skipping %s: %s", path, e)
        return _syntax_error_report(path, e), source

    if config.fix:
        return fix_until_stable(ctx, store, config, parser)

    evaluation = evaluate(ctx.unit, store, ctx.suppressions)
    report = FileReport(path=path, violations=evaluation.violations, failures=evaluation.failures)
    return report, source


def analyze_file(
    path: Path,
    store: RuleStore,
    config: Optional[Config] = None,
    parser: Optional[Parser] = None,
) -> FileReport:
    """Read, evaluate and (with config.fix) rewrite one file."""
    if config is None:
        config = get_default_config()
    try:
        source = path.read_bytes()
    except OSError as e:
        logger.error("Failed to read file %s: %s", path, e)
        return FileReport(
            path=path,
            error=FileError(
                message=f"cannot read file: {e.strerror or e}",
                location=Location(path=path, line=1, column=1),
            ),
        )

    try:
        report, result = analyze_source(source, path, store, config, parser)
    except Exception as e:
        logger.exception("Internal error while analyzing %s", path)
        return FileReport(
            path=path,
            error=FileError(
                message=f"internal error: {type(e).__name__}: {e}",
                location=Location(path=path, line=1, column=1),
            ),
        )
    if config.fix and result != source:
        path.write_bytes(result)
        logger.info("Fixed %s: %d edit(s) applied", path, report.fixes_applied)
    return report


def run(
    paths: Iterable[Path],
    store: RuleStore,
    config: Optional[Config] = None,
    cancel: Optional[threading.Event] = None,
) -> RunResult:
    """
    Analyze every path in a thread pool.

    The store is shared read-only by all workers. cancel is checked after
    each file; once set, pending files are skipped and the result is marked
    cancelled. Files already in flight still finish and are reported.
    Ctrl-C sets it too.
    """
    if config is None:
        config = get_default_config()
    if cancel is None:
        cancel = threading.Event()
    paths = list(paths)
    reports: list[FileReport] = []

    def _work(path: Path) -> Optional[FileReport]:
        if cancel.is_set():
            return None
        return analyze_file(path, store, config)

    logger.info("Checking %d file(s) with %s worker(s)", len(paths), config.jobs or "default")
    executor = ThreadPoolExecutor(max_workers=config.jobs, thread_name_prefix="stylecheck")
    futures: list[Future] = []
    collected: set[Future] = set()
    try:
        futures = [executor.submit(_work, p) for p in paths]
        for future in as_completed(futures):
            collected.add(future)
            report = future.result()
            if report is not None:
                reports.append(report)
            if cancel.is_set():
                logger.warning("Run cancelled; skipping files not yet started")
                break
    except KeyboardInterrupt:
        logger.warning("Interrupted; cancelling remaining files")
        cancel.set()
    finally:
        executor.shutdown(wait=True, cancel_futures=True)

    # Files already in flight when the run was cancelled finish (and may have
    # been rewritten); their reports are kept.
    for future in futures:
        if future in collected or future.cancelled() or not future.done():
            continue
        report = future.result()
        if report is not None:
            reports.append(report)
    if cancel.is_set():
        logger.warning("Run cancelled; %d of %d file(s) analyzed", len(reports), len(paths))

    reports.sort(key=lambda r: str(r.path))
    return RunResult(reports=reports, cancelled=cancel.is_set())
