"""Unit tests for using-directive ordering and placement."""

from pathlib import Path

from stylecheck.evaluator import evaluate
from stylecheck.fixes import apply_edits, synthesize_all
from stylecheck.parser import parse
from stylecheck.rules.registry import RuleStore, builtin_rules


def _store(rule_id: str) -> RuleStore:
    return RuleStore(r for r in builtin_rules() if r.id == rule_id)


def _run_rule(source: bytes, rule_id: str) -> list:
    unit = parse(source, path=Path("Test.cs"))
    return evaluate(unit, _store(rule_id)).violations


def _fix(source: bytes, rule_id: str) -> bytes:
    unit = parse(source)
    store = _store(rule_id)
    plan = synthesize_all(evaluate(unit, store).violations, unit, store)
    return apply_edits(source, plan.text_edits)


def test_sorted_usings_pass():
    source = b"using System;\nusing System.IO;\nusing Microsoft.Extensions.Logging;\nusing Xunit;\n"
    assert _run_rule(source, "using-order") == []


def test_system_namespaces_come_first():
    source = b"using Acme.Core;\nusing System;\n"
    violations = _run_rule(source, "using-order")
    assert len(violations) == 1
    assert violations[0].location.line == 2


def test_case_insensitive_alphabetical_order():
    source = b"using acme.Zeta;\nusing Acme.Alpha;\n"
    assert len(_run_rule(source, "using-order")) == 1


def test_static_and_alias_directives_after_plain():
    source = b"using static System.Math;\nusing Json = Newtonsoft.Json;\nusing System;\n"
    violations = _run_rule(source, "using-order")
    assert len(violations) == 1
    assert "'using System;'" in violations[0].message


def test_fix_is_stable_sort_keeping_separators():
    source = b"using Xunit;\nusing System.IO;\nusing Acme.Core;\nusing System;\n\npublic class A\n{\n}\n"
    fixed = _fix(source, "using-order")
    assert fixed == b"using System;\nusing System.IO;\nusing Acme.Core;\nusing Xunit;\n\npublic class A\n{\n}\n"
    assert _run_rule(fixed, "using-order") == []


def test_fix_keeps_comments_in_place():
    source = b"// header\nusing B;\n// between\nusing A;\n"
    fixed = _fix(source, "using-order")
    assert fixed == b"// header\nusing A;\n// between\nusing B;\n"


def test_usings_inside_namespace_are_ordered_and_misplaced():
    source = b"""namespace Acme
{
    using Acme.Core;
    using System;

    public class A
    {
    }
}
"""
    assert len(_run_rule(source, "using-order")) == 1
    placement = _run_rule(source, "using-placement")
    assert [v.location.line for v in placement] == [3, 4]


def test_top_level_usings_are_well_placed():
    source = b"using System;\n\nnamespace Acme\n{\n    public class A\n    {\n    }\n}\n"
    assert _run_rule(source, "using-placement") == []
