# Diagnostics sink: deduplicate, order, render (text or structured) and
# decide the process exit status.

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import IO, Iterable, Mapping, Optional, Sequence

from rich.console import Console

from stylecheck.config import Config, OutputFormat
from stylecheck.findings.models import (
    ExitStatus,
    FileError,
    RuleFailure,
    Severity,
    UnresolvedConflict,
    Violation,
)
from stylecheck.reporting.console import print_report
from stylecheck.reporting.structured import build_records, render_structured
from stylecheck.runner import RunResult

logger = logging.getLogger(__name__)


def dedupe(violations: Iterable[Violation]) -> list[Violation]:
    """Drop repeated (rule id, file, span, message) entries; first one wins."""
    seen: set[tuple] = set()
    unique: list[Violation] = []
    for v in violations:
        key = v.key()
        if key in seen:
            continue
        seen.add(key)
        unique.append(v)
    return unique


def exit_status(
    violations: Sequence[Violation],
    failures: Sequence[RuleFailure] = (),
    *,
    cancelled: bool = False,
    fail_on: Severity = Severity.ERROR,
) -> ExitStatus:
    """
    130 if cancelled, 2 on any rule failure, 1 if any violation is at least
    as severe as fail_on, otherwise 0. Files skipped for syntax errors do not
    count.
    """
    if cancelled:
        return ExitStatus.CANCELLED
    if failures:
        return ExitStatus.RULE_FAILURE
    if any(v.severity.rank >= fail_on.rank for v in violations):
        return ExitStatus.VIOLATIONS
    return ExitStatus.OK


def report(
    violations: Iterable[Violation],
    failures: Iterable[RuleFailure] = (),
    *,
    errors: Iterable[FileError] = (),
    conflicts: Iterable[UnresolvedConflict] = (),
    cancelled: bool = False,
    fail_on: Severity = Severity.ERROR,
    output_format: OutputFormat = OutputFormat.TEXT,
    console: Optional[Console] = None,
    stream: Optional[IO[str]] = None,
    analyzed_files: Optional[Sequence[Path]] = None,
    fixes_applied: int = 0,
    verbose: bool = False,
    descriptions: Optional[Mapping[str, str]] = None,
) -> ExitStatus:
    """Render every diagnostic and return the exit status for the run."""
    unique = dedupe(violations)
    unique.sort(key=lambda v: (str(v.path), v.span.start, v.span.end, v.rule_id, v.message))
    failures = list(failures)
    errors = list(errors)
    conflicts = list(conflicts)

    if output_format is OutputFormat.STRUCTURED:
        out = stream if stream is not None else sys.stdout
        out.write(render_structured(build_records(unique, failures, errors, conflicts)))
        out.flush()
    else:
        print_report(
            unique,
            failures,
            errors,
            conflicts,
            analyzed_files=analyzed_files,
            fixes_applied=fixes_applied,
            console=console,
            verbose=verbose,
            descriptions=descriptions,
        )

    status = exit_status(unique, failures, cancelled=cancelled, fail_on=fail_on)
    logger.debug(
        "Reported %d violation(s), %d failure(s), %d skipped file(s), %d conflict(s): exit %d",
        len(unique),
        len(failures),
        len(errors),
        len(conflicts),
        int(status),
    )
    return status


def report_run(
    result: RunResult,
    config: Config,
    *,
    console: Optional[Console] = None,
    stream: Optional[IO[str]] = None,
    verbose: bool = False,
    descriptions: Optional[Mapping[str, str]] = None,
) -> ExitStatus:
    """Flatten a RunResult's per-file reports and hand them to report()."""
    violations: list[Violation] = []
    failures: list[RuleFailure] = []
    errors: list[FileError] = []
    conflicts: list[UnresolvedConflict] = []
    fixes_applied = 0
    for file_report in result.reports:
        violations.extend(file_report.violations)
        failures.extend(file_report.failures)
        conflicts.extend(file_report.conflicts)
        if file_report.error is not None:
            errors.append(file_report.error)
        fixes_applied += file_report.fixes_applied
    return report(
        violations,
        failures,
        errors=errors,
        conflicts=conflicts,
        cancelled=result.cancelled,
        fail_on=config.fail_on,
        output_format=config.output_format,
        console=console,
        stream=stream,
        analyzed_files=[r.path for r in result.reports],
        fixes_applied=fixes_applied,
        verbose=verbose,
        descriptions=descriptions,
    )
