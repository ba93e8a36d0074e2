# Whitespace discipline: spaces for indentation, no trailing whitespace,
# at most one blank line in a row, labels outdented by one level.

from __future__ import annotations

from typing import Iterable, Optional

from stylecheck.findings.models import Severity, TextEdit, Violation
from stylecheck.model import INDENT_WIDTH, Node, NodeKind, SourceUnit, Span, indent_width
from stylecheck.rules.base import BlankLineRule, Hit, Rule, RuleContext


def _leading_whitespace(unit: SourceUnit, line: Span) -> Span:
    text = unit.source[line.start : line.end]
    return Span(line.start, line.start + len(text) - len(text.lstrip(b" \t")))


def check_indent_spaces(node: Node, ctx: RuleContext) -> Iterable[Hit]:
    unit = ctx.unit
    for line in unit.iter_lines():
        lead = _leading_whitespace(unit, line)
        if lead.end == line.end:
            # Whitespace-only lines belong to trailing-whitespace.
            continue
        if b"\t" not in unit.source[lead.start : lead.end]:
            continue
        if unit.in_literal(lead.start):
            continue
        yield Hit(lead, "Indentation uses tabs; indent with four spaces")


def fix_indent_spaces(node: Node, violation: Violation, unit: SourceUnit) -> Optional[TextEdit]:
    text = unit.text_of(violation.span)
    return TextEdit(span=violation.span, replacement=text.replace("\t", " " * INDENT_WIDTH))


def check_trailing_whitespace(node: Node, ctx: RuleContext) -> Iterable[Hit]:
    unit = ctx.unit
    for line in unit.iter_lines():
        text = unit.source[line.start : line.end]
        stripped = text.rstrip(b" \t")
        if len(stripped) == len(text):
            continue
        start = line.start + len(stripped)
        if unit.in_literal(start):
            continue
        yield Hit(Span(start, line.end), "Trailing whitespace")


def fix_trailing_whitespace(node: Node, violation: Violation, unit: SourceUnit) -> Optional[TextEdit]:
    return TextEdit(span=violation.span, replacement="")


def blank_run_ending_at(container: Node, last: Span) -> list[Node]:
    """The run of consecutive blank-line children of container ending at span last."""
    run: list[Node] = []
    for child in container.children:
        if child.kind is NodeKind.BLANK_LINE:
            run.append(child)
            if child.span == last:
                return run
        else:
            run = []
    return []


def fix_multiple_blank_lines(node: Node, violation: Violation, unit: SourceUnit) -> Optional[TextEdit]:
    """Keep the first blank line of the run and delete the rest, newlines included."""
    run = blank_run_ending_at(node, violation.span)
    if len(run) < 2:
        return None
    end = run[-1].span.end
    if unit.source[end : end + 1] == b"\n":
        end += 1
    return TextEdit(span=Span(run[1].span.start, end), replacement="")


def _expected_label_indent(node: Node, unit: SourceUnit) -> Optional[int]:
    block = next((a for a in node.ancestors() if a.kind is NodeKind.BLOCK), None)
    if block is None:
        return None
    return indent_width(unit.line_indent(block.span.start))


def check_label_indentation(node: Node, ctx: RuleContext) -> Iterable[Hit]:
    unit = ctx.unit
    if not unit.starts_line(node.span.start):
        return
    expected = _expected_label_indent(node, unit)
    if expected is None:
        return
    actual = indent_width(unit.line_indent(node.span.start))
    if actual == expected:
        return
    span = node.name_span or Span(node.span.start, node.span.start)
    yield Hit(
        span,
        f"Label '{node.name}' should be indented {expected} columns, one level "
        f"less than the statements around it (found {actual})",
    )


def fix_label_indentation(node: Node, violation: Violation, unit: SourceUnit) -> Optional[TextEdit]:
    expected = _expected_label_indent(node, unit)
    if expected is None:
        return None
    line = unit.line_span(node.span.start)
    return TextEdit(span=Span(line.start, node.span.start), replacement=" " * expected)


RULES = (
    Rule(
        id="indent-spaces",
        name="Indent with spaces",
        severity=Severity.ERROR,
        kinds=frozenset({NodeKind.SOURCE}),
        check=check_indent_spaces,
        fix=fix_indent_spaces,
        description="Use four spaces of indentation, never tabs.",
    ),
    Rule(
        id="trailing-whitespace",
        name="Trailing whitespace",
        severity=Severity.WARNING,
        kinds=frozenset({NodeKind.SOURCE}),
        check=check_trailing_whitespace,
        fix=fix_trailing_whitespace,
        description="Avoid spurious free spaces at the end of lines.",
    ),
    BlankLineRule(
        id="multiple-blank-lines",
        name="Consecutive blank lines",
        severity=Severity.ERROR,
        fix=fix_multiple_blank_lines,
        limit=1,
        description="Avoid more than one empty line at any time.",
    ),
    Rule(
        id="label-indentation",
        name="Label indentation",
        severity=Severity.WARNING,
        kinds=frozenset({NodeKind.LABEL}),
        check=check_label_indentation,
        fix=fix_label_indentation,
        description="goto labels are indented one level less than the current statements.",
    ),
)
