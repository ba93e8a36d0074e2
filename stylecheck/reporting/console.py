# Rich console output: style violations grouped by file, then problems that
# stopped a file or a fix from being processed, then a summary.

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from stylecheck.findings.models import FileError, RuleFailure, UnresolvedConflict, Violation

# Severity → Rich style
SEVERITY_STYLE = {
    "error": "bold red",
    "warning": "bold yellow",
    "suggestion": "bold blue",
}

DEFAULT_SEVERITY_STYLE = "bold white"


def _severity_style(severity: str) -> str:
    return SEVERITY_STYLE.get(severity.lower(), DEFAULT_SEVERITY_STYLE)


def _shorten_path(path: str | Path) -> str:
    """Return the path relative to the working directory when it lies below it."""
    p = Path(path)
    try:
        return p.resolve().relative_to(Path.cwd().resolve()).as_posix()
    except ValueError:
        return p.as_posix()


def print_report(
    violations: Sequence[Violation],
    failures: Sequence[RuleFailure] = (),
    errors: Sequence[FileError] = (),
    conflicts: Sequence[UnresolvedConflict] = (),
    analyzed_files: Optional[Sequence[Path]] = None,
    fixes_applied: int = 0,
    console: Optional[Console] = None,
    verbose: bool = False,
    descriptions: Optional[Mapping[str, str]] = None,
) -> None:
    """
    Print diagnostics with Rich: one table per file (path order, then
    position). With verbose, each table is followed by the offending source
    lines and the convention behind every rule that fired. Files that could
    not be parsed, rule failures and dropped fixes follow. analyzed_files
    adds a per-file summary table.
    """
    console = console or Console()

    if not (violations or failures or errors or conflicts) and not analyzed_files:
        console.print(
            Panel(
                "[green]No style violations found.[/green]",
                title="stylecheck",
                border_style="green",
                box=box.ROUNDED,
            )
        )
        return

    by_file: dict[str, list[Violation]] = {}
    for v in violations:
        by_file.setdefault(str(v.path), []).append(v)

    for path in sorted(by_file):
        file_violations = sorted(by_file[path], key=lambda v: (v.span.start, v.span.end, v.rule_id))

        console.print()
        console.print(Panel(
            f"[bold cyan]{_shorten_path(path)}[/bold cyan]",
            box=box.SIMPLE_HEAD,
            border_style="blue",
            padding=(0, 1),
        ))

        table = Table(
            show_header=True,
            header_style="bold magenta",
            box=box.SIMPLE,
            padding=(0, 1),
            expand=False,
        )
        table.add_column("Line", justify="right", style="dim", width=5)
        table.add_column("Col", justify="right", style="dim", width=4)
        table.add_column("Severity", width=10)
        table.add_column("Rule", width=24)
        table.add_column("Message", style="white")

        for v in file_violations:
            loc = v.location
            table.add_row(
                str(loc.line),
                str(loc.column),
                Text(v.severity.value.upper(), style=_severity_style(v.severity.value)),
                Text(f"[{v.rule_id}]", style="dim"),
                Text(v.message),
            )

        console.print(table)

        if verbose:
            for v in file_violations:
                if v.location.snippet:
                    console.print(f"  [dim]{v.location.line:>5} |[/dim] {escape(v.location.snippet)}", highlight=False)
            seen: set[str] = set()
            for v in file_violations:
                if v.rule_id in seen or not descriptions:
                    continue
                seen.add(v.rule_id)
                hint = descriptions.get(v.rule_id)
                if hint:
                    console.print(f"  [dim]\\[{v.rule_id}][/dim] {escape(hint)}", highlight=False)
            console.print()

    _print_problems(failures, errors, conflicts, console)

    if analyzed_files:
        _print_file_summary_table(violations, errors, analyzed_files, console)

    _print_summary(violations, failures, errors, conflicts, fixes_applied, console)


def _print_problems(
    failures: Sequence[RuleFailure],
    errors: Sequence[FileError],
    conflicts: Sequence[UnresolvedConflict],
    console: Console,
) -> None:
    if not (failures or errors or conflicts):
        return
    table = Table(
        title="Problems",
        show_header=True,
        header_style="bold red",
        box=box.ROUNDED,
        padding=(0, 1),
    )
    table.add_column("Location", style="white")
    table.add_column("Kind", width=20)
    table.add_column("Detail", style="white")

    for e in sorted(errors, key=lambda e: (str(e.location.path), e.location.line)):
        loc = e.location
        table.add_row(
            f"{_shorten_path(loc.path)}:{loc.line}:{loc.column}",
            Text("syntax-error", style="bold red"),
            Text(e.message),
        )
    for f in sorted(failures, key=lambda f: (str(f.location.path), f.span.start, f.rule_id)):
        loc = f.location
        table.add_row(
            f"{_shorten_path(loc.path)}:{loc.line}:{loc.column}",
            Text("rule-failure", style="bold red"),
            Text(f"[{f.rule_id}] {f.phase}: {f.message}"),
        )
    for c in sorted(conflicts, key=lambda c: (str(c.violation.path), c.edit.span.start)):
        loc = c.violation.location
        table.add_row(
            f"{_shorten_path(loc.path)}:{loc.line}:{loc.column}",
            Text("unresolved-conflict", style="bold yellow"),
            Text(f"[{c.violation.rule_id}] fix overlaps another edit; not applied"),
        )
    console.print()
    console.print(table)


def _print_file_summary_table(
    violations: Sequence[Violation],
    errors: Sequence[FileError],
    analyzed_files: Sequence[Path],
    console: Console,
) -> None:
    """Print a table of conforming vs non-conforming files."""
    by_path: dict[str, int] = {}
    for v in violations:
        key = str(v.path)
        by_path[key] = by_path.get(key, 0) + 1
    broken = {str(e.location.path) for e in errors}

    table = Table(
        title="Files Summary",
        show_header=True,
        header_style="bold cyan",
        box=box.ROUNDED,
        padding=(0, 1),
    )
    table.add_column("File", style="white")
    table.add_column("Status", width=10)
    table.add_column("Violations", justify="right", width=10)

    for p in sorted(analyzed_files, key=str):
        key = str(p)
        if key in broken:
            status = Text("SKIPPED", style="bold red")
        elif key in by_path:
            status = Text("VIOLATES", style="bold yellow")
        else:
            status = Text("OK", style="bold green")
        table.add_row(_shorten_path(p), status, str(by_path.get(key, 0)))

    console.print()
    console.print(Panel(table, border_style="cyan", box=box.ROUNDED))


def _print_summary(
    violations: Sequence[Violation],
    failures: Sequence[RuleFailure],
    errors: Sequence[FileError],
    conflicts: Sequence[UnresolvedConflict],
    fixes_applied: int,
    console: Console,
) -> None:
    """Print a compact one-line summary."""
    by_severity: dict[str, int] = {}
    for v in violations:
        s = v.severity.value
        by_severity[s] = by_severity.get(s, 0) + 1

    total = len(violations)
    parts = [f"[bold]{total} violation{'s' if total != 1 else ''}[/bold]"]
    for sev in ("error", "warning", "suggestion"):
        if sev in by_severity:
            parts.append(f"[{_severity_style(sev)}]{by_severity[sev]} {sev}[/]")
    if errors:
        parts.append(f"[bold red]{len(errors)} file(s) skipped[/]")
    if failures:
        parts.append(f"[bold red]{len(failures)} rule failure(s)[/]")
    if conflicts:
        parts.append(f"[bold yellow]{len(conflicts)} conflict(s)[/]")
    if fixes_applied:
        parts.append(f"[green]{fixes_applied} fix(es) applied[/]")

    problems = total or failures or errors or conflicts
    console.print()
    console.print(
        Panel(
            " | ".join(parts),
            title="Summary",
            border_style="yellow" if problems else "green",
            box=box.ROUNDED,
        )
    )
