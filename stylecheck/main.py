from __future__ import annotations

"""
Typer CLI entry point and orchestration of the style-checking pipeline.

- ``check``: resolves files and directories into .cs files, loads and merges
  configuration, runs every enabled rule (fixing files with --fix) and
  prints diagnostics as Rich tables or JSON Lines. The exit status is the
  one decided by the diagnostics sink (0, 1, 2 or 130).
- ``rules``: lists the built-in rules with their default severity.
"""

import logging
import threading
from pathlib import Path
from typing import List, Optional

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from stylecheck.config import OutputFormat, build_store, load_config, merge_cli
from stylecheck.errors import ConfigError
from stylecheck.findings.models import ExitStatus
from stylecheck.reporting.sink import report_run
from stylecheck.rules.registry import RuleStore
from stylecheck.runner import run
from stylecheck.traversal import DEFAULT_IGNORE_DIRS, collect_paths

logger = logging.getLogger(__name__)

app = typer.Typer(help="stylecheck - coding-style conformance checker for C# source files.")


def _configure_logging(verbose: bool) -> None:
    """Log to stderr through Rich; --verbose shows per-file progress and debug detail."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, show_time=False)],
        force=True,
    )


@app.command()
def check(
    paths: List[Path] = typer.Argument(
        ...,
        exists=True,
        readable=True,
        resolve_path=True,
        help="C# files or directories to check.",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (default: nearest stylecheck.toml or pyproject.toml [tool.stylecheck]).",
    ),
    fix: Optional[bool] = typer.Option(None, "--fix/--no-fix", help="Rewrite files with the available fixes."),
    output_format: Optional[OutputFormat] = typer.Option(
        None, "--format", "-f", case_sensitive=False, help="text (default) or structured (JSON Lines)."
    ),
    exclude_rule: List[str] = typer.Option([], "--exclude-rule", "-x", help="Rule id to disable (repeatable)."),
    severity: List[str] = typer.Option([], "--severity", "-s", help="Override a rule's severity: RULE=LEVEL (repeatable)."),
    fail_on: Optional[str] = typer.Option(
        None, "--fail-on", help="Lowest severity that makes the exit status 1 (default: error)."
    ),
    jobs: Optional[int] = typer.Option(None, "--jobs", "-j", min=1, help="Worker threads."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show snippets, rule descriptions and debug logs."),
) -> None:
    """
    Check C# sources against the coding-style rules.

    Exit status: 0 clean, 1 violations at or above --fail-on, 2 rule
    failure or configuration error, 130 interrupted.
    """
    _configure_logging(verbose)
    try:
        config = load_config(config_file)
        config = merge_cli(
            config,
            fix=fix,
            output_format=output_format,
            excluded_rules=exclude_rule,
            severities=severity,
            fail_on=fail_on,
            jobs=jobs,
        )
        store = build_store(config)
    except ConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=int(ExitStatus.RULE_FAILURE))

    if len(store) == 0:
        typer.echo("No rules are enabled in the current configuration.", err=True)

    try:
        files = collect_paths(paths, ignore_dirs=DEFAULT_IGNORE_DIRS | set(config.exclude_dirs))
    except (FileNotFoundError, NotADirectoryError) as e:
        raise typer.BadParameter(str(e))
    if not files:
        logger.warning("No .cs files found under %s", ", ".join(str(p) for p in paths))

    cancel = threading.Event()
    result = run(files, store, config, cancel=cancel)
    status = report_run(
        result,
        config,
        verbose=verbose,
        descriptions={rule.id: rule.description for rule in store},
    )
    raise typer.Exit(code=int(status))


@app.command()
def rules() -> None:
    """List the built-in rules, their default severity and whether they can fix."""
    table = Table(show_header=True, header_style="bold magenta", box=box.SIMPLE)
    table.add_column("Rule", style="cyan")
    table.add_column("Severity")
    table.add_column("Fix", justify="center")
    table.add_column("Description", style="white")
    for rule in RuleStore.builtin():
        table.add_row(rule.id, rule.severity.value, "yes" if rule.fixable else "", rule.description)
    Console().print(table)


def main() -> None:
    """Entry point for the ``stylecheck`` script and `python -m stylecheck.main`."""
    app()


if __name__ == "__main__":
    main()
