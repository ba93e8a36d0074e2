# Member layout inside a type body: fields before everything else.

from __future__ import annotations

from stylecheck.findings.models import Severity
from stylecheck.model import Node, NodeKind, SourceUnit
from stylecheck.rules.base import OrderingRule

_MEMBER_KINDS = frozenset({NodeKind.FIELD, NodeKind.PROPERTY, NodeKind.METHOD, NodeKind.TYPE_DECL})

_LABELS = {
    NodeKind.FIELD: "field",
    NodeKind.PROPERTY: "property",
    NodeKind.METHOD: "method",
    NodeKind.TYPE_DECL: "nested type",
}


def _select_members(container: Node, child: Node) -> bool:
    if container.parent is None or container.parent.kind is not NodeKind.TYPE_DECL:
        return False
    return child.kind in _MEMBER_KINDS


def field_first_key(node: Node, unit: SourceUnit) -> int:
    return 0 if node.kind is NodeKind.FIELD else 1


def _label(node: Node, unit: SourceUnit) -> str:
    kind = _LABELS.get(node.kind, "member")
    if node.kind is NodeKind.FIELD and node.declarators:
        return f"{kind} '{node.declarators[0][0]}'"
    if node.name:
        return f"{kind} '{node.name}'"
    return kind


RULES = (
    OrderingRule(
        id="fields-first",
        name="Fields first",
        severity=Severity.WARNING,
        kinds=frozenset({NodeKind.BLOCK}),
        select=_select_members,
        key=field_first_key,
        label=_label,
        message="Field declarations belong at the top of the type: {item} should come before {before}",
        description="Specify fields at the top within type declarations.",
    ),
)
