# Visibility: always spell out accessibility, and put it first among the modifiers.

from __future__ import annotations

from typing import Iterable, Optional

from stylecheck.findings.models import Severity, TextEdit, Violation
from stylecheck.model import ACCESS_MODIFIERS, Node, NodeKind, SourceUnit, Span
from stylecheck.rules.base import Hit, Rule, RuleContext

_KIND_LABELS = {
    NodeKind.TYPE_DECL: "Type",
    NodeKind.FIELD: "Field",
    NodeKind.PROPERTY: "Property",
    NodeKind.METHOD: "Method",
}

# Declarations the language does not allow an accessibility modifier on.
_NO_ACCESSIBILITY = frozenset(
    {"destructor_declaration", "local_function_statement", "operator_declaration",
     "conversion_operator_declaration"}
)


def _exempt(node: Node) -> bool:
    if node.syntax in _NO_ACCESSIBILITY:
        return True
    if node.tags.get("declared_in") in ("interface_declaration", "enum_declaration"):
        return True
    if node.tags.get("explicit_interface"):
        return True
    if node.syntax == "constructor_declaration" and node.is_static:
        return True
    # Another part of a partial declaration may carry the accessibility.
    return "partial" in node.modifiers


def check_explicit_visibility(node: Node, ctx: RuleContext) -> Iterable[Hit]:
    if node.explicit_accessibility or node.accessibility is None or _exempt(node):
        return
    span = node.name_span
    if span is None:
        start = node.header_start if node.header_start is not None else node.span.start
        span = Span(start, start)
    label = _KIND_LABELS.get(node.kind, "Declaration")
    name = f" '{node.name}'" if node.name else ""
    yield Hit(
        span,
        f"{label}{name} should declare its accessibility explicitly "
        f"(implicitly {node.accessibility})",
    )


def fix_explicit_visibility(node: Node, violation: Violation, unit: SourceUnit) -> Optional[TextEdit]:
    if node.accessibility is None:
        return None
    if node.modifier_spans:
        at = node.modifier_spans[0].start
    elif node.header_start is not None:
        at = node.header_start
    else:
        return None
    return TextEdit(span=Span(at, at), replacement=f"{node.accessibility} ")


def canonical_modifiers(modifiers: tuple[str, ...]) -> tuple[str, ...]:
    """Accessibility first (in written order), then the rest with static before readonly."""
    access = [m for m in modifiers if m in ACCESS_MODIFIERS]
    rest = [m for m in modifiers if m not in ACCESS_MODIFIERS]
    if "static" in rest and "readonly" in rest and rest.index("readonly") < rest.index("static"):
        rest.remove("readonly")
        rest.insert(rest.index("static") + 1, "readonly")
    return tuple(access + rest)


def check_modifier_order(node: Node, ctx: RuleContext) -> Iterable[Hit]:
    if len(node.modifiers) < 2:
        return
    expected = canonical_modifiers(node.modifiers)
    if expected == node.modifiers:
        return
    span = Span(node.modifier_spans[0].start, node.modifier_spans[-1].end)
    yield Hit(
        span,
        f"Modifiers should be ordered '{' '.join(expected)}', "
        f"not '{' '.join(node.modifiers)}'",
    )


def fix_modifier_order(node: Node, violation: Violation, unit: SourceUnit) -> Optional[TextEdit]:
    spans = node.modifier_spans
    # Only rewrite when nothing but whitespace separates the modifiers.
    for left, right in zip(spans, spans[1:]):
        if unit.source[left.end : right.start].strip():
            return None
    span = Span(spans[0].start, spans[-1].end)
    return TextEdit(span=span, replacement=" ".join(canonical_modifiers(node.modifiers)))


_DECLARATIONS = frozenset({NodeKind.TYPE_DECL, NodeKind.FIELD, NodeKind.PROPERTY, NodeKind.METHOD})

RULES = (
    Rule(
        id="explicit-visibility",
        name="Explicit accessibility",
        severity=Severity.ERROR,
        kinds=_DECLARATIONS,
        check=check_explicit_visibility,
        fix=fix_explicit_visibility,
        description=(
            "Always specify visibility, even when it is the default "
            "(private string _foo, not string _foo)."
        ),
    ),
    Rule(
        id="modifier-order",
        name="Modifier order",
        severity=Severity.WARNING,
        kinds=_DECLARATIONS,
        check=check_modifier_order,
        fix=fix_modifier_order,
        description=(
            "Visibility is the first modifier (public abstract, not abstract "
            "public); readonly comes after static."
        ),
    ),
)
