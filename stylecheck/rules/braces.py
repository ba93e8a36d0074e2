# Brace placement: every opening brace of a block goes on its own line,
# aligned with the construct that owns it (Allman style).

from __future__ import annotations

from typing import Iterable, Optional

from stylecheck.findings.models import Severity, TextEdit, Violation
from stylecheck.model import INDENT_WIDTH, BracePlacement, Node, NodeKind, SourceUnit, Span
from stylecheck.rules.base import Hit, Rule, RuleContext


def _exempt(node: Node, unit: SourceUnit) -> bool:
    owner = node.parent
    if owner is None:
        return False
    # Lambdas and anonymous methods keep their brace inline with the expression.
    if owner.kind is NodeKind.LAMBDA:
        return True
    # `get { return _x; }` and `{ get; set; }` written on one line are accepted.
    if owner.kind is NodeKind.ACCESSOR or node.syntax == "accessor_list":
        return unit.line_index(node.span.start) == unit.line_index(node.span.end)
    return False


def check_next_line_brace(node: Node, ctx: RuleContext) -> Iterable[Hit]:
    unit = ctx.unit
    brace = node.span.start
    if unit.source[brace : brace + 1] != b"{":
        return
    if node.brace_placement is not BracePlacement.SAME_LINE or _exempt(node, unit):
        return
    yield Hit(Span(brace, brace + 1), "Opening brace should be on its own line")


def fix_next_line_brace(node: Node, violation: Violation, unit: SourceUnit) -> Optional[TextEdit]:
    """
    Move ``{`` to a new line at the owner's indentation.

    Code that followed the brace on the same line moves to the next line,
    one level deeper; an immediately closing ``}`` gets its own line too.
    """
    source = unit.source
    brace = node.span.start
    owner = node.parent if node.parent is not None else node
    indent = unit.line_indent(owner.span.start)
    nl = unit.newline

    start = brace
    while start > 0 and source[start - 1 : start] in (b" ", b"\t"):
        start -= 1

    after = brace + 1
    rest = after
    while rest < len(source) and source[rest : rest + 1] in (b" ", b"\t"):
        rest += 1
    next_char = source[rest : rest + 1]

    replacement = f"{nl}{indent}{{"
    end = after
    if next_char == b"}":
        replacement += f"{nl}{indent}}}"
        end = rest + 1
    elif next_char not in (b"", b"\n", b"\r") and not source.startswith(b"//", rest):
        replacement += f"{nl}{indent}{' ' * INDENT_WIDTH}"
        end = rest
    return TextEdit(span=Span(start, end), replacement=replacement)


RULES = (
    Rule(
        id="next-line-brace",
        name="Opening brace on its own line",
        severity=Severity.ERROR,
        kinds=frozenset({NodeKind.BLOCK}),
        check=check_next_line_brace,
        fix=fix_next_line_brace,
        description=(
            "Use Allman style braces: each opening brace begins a new line, "
            "indented like the statement or declaration it belongs to."
        ),
    ),
)
