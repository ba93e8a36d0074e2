# Namespace imports: at the top of the file, outside namespaces, sorted with
# System namespaces first.

from __future__ import annotations

from typing import Iterable

from stylecheck.findings.models import Severity
from stylecheck.model import Node, NodeKind, SourceUnit
from stylecheck.rules.base import Hit, OrderingRule, Rule, RuleContext


def _is_system(name: str) -> bool:
    return name == "System" or name.startswith("System.")


def using_sort_key(node: Node, unit: SourceUnit) -> tuple:
    """
    global usings, then plain, static and alias directives; within each
    group System namespaces first, then ordinal case-insensitive by name.
    """
    name = node.name or ""
    if node.tags.get("alias"):
        group = 2
        name = str(node.tags["alias"])
    elif node.tags.get("static"):
        group = 1
    else:
        group = 0
    return (
        0 if node.tags.get("global") else 1,
        group,
        0 if _is_system(name) else 1,
        name.casefold(),
        name,
    )


def _label(node: Node, unit: SourceUnit) -> str:
    return f"'{unit.text_of(node.span)}'"


def _select_usings(container: Node, child: Node) -> bool:
    return child.kind is NodeKind.IMPORT


def check_using_placement(node: Node, ctx: RuleContext) -> Iterable[Hit]:
    if ctx.enclosing(NodeKind.NAMESPACE) is None:
        return
    yield Hit(
        node.span,
        f"Using directive '{node.name}' should be placed at the top of the file, "
        "outside the namespace declaration",
    )


RULES = (
    OrderingRule(
        id="using-order",
        name="Using directive order",
        severity=Severity.ERROR,
        kinds=frozenset({NodeKind.SOURCE, NodeKind.NAMESPACE, NodeKind.BLOCK}),
        select=_select_usings,
        key=using_sort_key,
        label=_label,
        message="Using directive {item} should come before {before}",
        attach_comments=False,
        description=(
            "Using directives are sorted alphabetically, with System "
            "namespaces placed on top."
        ),
    ),
    Rule(
        id="using-placement",
        name="Using directive placement",
        severity=Severity.WARNING,
        kinds=frozenset({NodeKind.IMPORT}),
        check=check_using_placement,
        description="Namespace imports go at the top of the file, outside namespace declarations.",
    ),
)
