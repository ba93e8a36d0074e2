# Naming conventions: private fields, constants and test methods.

from __future__ import annotations

import re
from typing import Iterable

from stylecheck.findings.models import Severity
from stylecheck.model import Casing, Node, NodeKind, classify_casing, split_field_prefix
from stylecheck.rules.base import Hit, Rule, RuleContext

_NON_PUBLIC = frozenset({"private", "internal", "private protected"})

# Types whose fields follow the private-field convention; enums and interfaces have none.
_FIELD_OWNERS = frozenset(
    {"class_declaration", "struct_declaration", "record_declaration", "record_struct_declaration"}
)

TEST_ATTRIBUTES = frozenset({"Fact", "Theory", "Test", "TestMethod", "TestCase", "TestCaseSource"})

# Method_Scenario_Expectation: PascalCase segments joined by single underscores.
_TEST_NAME_RE = re.compile(r"^[A-Z][A-Za-z0-9]*(?:_[A-Z0-9][A-Za-z0-9]*)*$")


def _camel(name: str) -> str:
    name = name.lstrip("_")
    return name[:1].lower() + name[1:] if name else name


def expected_field_prefix(node: Node) -> str:
    if "ThreadStatic" in node.attributes:
        return "t_"
    if node.is_static:
        return "s_"
    return "_"


def check_private_field_naming(node: Node, ctx: RuleContext) -> Iterable[Hit]:
    if node.syntax != "field_declaration" or node.is_const:
        return
    if node.accessibility not in _NON_PUBLIC:
        return
    if node.tags.get("declared_in") not in _FIELD_OWNERS:
        return
    prefix = expected_field_prefix(node)
    for name, span in node.declarators:
        actual_prefix, rest = split_field_prefix(name)
        if actual_prefix == prefix and classify_casing(rest) is Casing.CAMEL:
            continue
        suggestion = prefix + _camel(rest)
        yield Hit(
            span,
            f"{node.accessibility.capitalize()} field '{name}' should be named "
            f"'{suggestion}' ({prefix}camelCase)",
        )


def check_constant_naming(node: Node, ctx: RuleContext) -> Iterable[Hit]:
    if not node.is_const:
        return
    for name, span in node.declarators:
        casing = classify_casing(name)
        if casing is not Casing.PASCAL:
            yield Hit(span, f"Constant '{name}' should be PascalCase, not {casing.value}")


def check_test_method_naming(node: Node, ctx: RuleContext) -> Iterable[Hit]:
    if not node.name or node.name_span is None:
        return
    if not TEST_ATTRIBUTES.intersection(node.attributes):
        return
    if _TEST_NAME_RE.match(node.name):
        return
    yield Hit(
        node.name_span,
        f"Test method '{node.name}' should use PascalCase segments separated by "
        "underscores (Method_Scenario_Expectation)",
    )


RULES = (
    Rule(
        id="private-field-naming",
        name="Private field naming",
        severity=Severity.ERROR,
        kinds=frozenset({NodeKind.FIELD}),
        check=check_private_field_naming,
        description=(
            "Private and internal fields use _camelCase; static fields use "
            "s_camelCase and [ThreadStatic] fields t_camelCase."
        ),
    ),
    Rule(
        id="constant-naming",
        name="Constant naming",
        severity=Severity.WARNING,
        kinds=frozenset({NodeKind.FIELD, NodeKind.LOCAL}),
        check=check_constant_naming,
        description="Constant fields and locals use PascalCase.",
    ),
    Rule(
        id="test-method-naming",
        name="Test method naming",
        severity=Severity.WARNING,
        kinds=frozenset({NodeKind.METHOD}),
        check=check_test_method_naming,
        description=(
            "Methods marked [Fact], [Theory], [Test], [TestMethod] or [TestCase] "
            "are named Method_Scenario_Expectation."
        ),
    ),
)
