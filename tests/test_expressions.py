"""Unit tests for expression-level rules."""

from pathlib import Path

import pytest

from stylecheck.evaluator import evaluate
from stylecheck.fixes import apply_edits, synthesize_all
from stylecheck.parser import parse
from stylecheck.rules.expressions import escape_non_ascii, type_is_evident
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


def _method(body: bytes, params: bytes = b"") -> bytes:
    return (
        b"public class A\n{\n    private int _count;\n\n    public void M("
        + params
        + b")\n    {\n        "
        + body
        + b"\n    }\n}\n"
    )


class TestThisQualifier:
    def test_unneeded_this_reported_and_removed(self):
        source = _method(b"this._count = 1;")
        violations = _run_rule(source, "this-qualifier")
        assert len(violations) == 1
        assert (violations[0].location.line, violations[0].location.column) == (7, 9)
        assert b"        _count = 1;" in _fix(source, "this-qualifier")

    def test_this_allowed_when_parameter_shadows_member(self):
        source = b"""public class A
{
    private int count;

    public A(int count)
    {
        this.count = count;
    }
}
"""
        assert _run_rule(source, "this-qualifier") == []

    def test_this_allowed_when_local_shadows_member(self):
        assert _run_rule(_method(b"int _count = this._count;"), "this-qualifier") == []

    def test_bare_this_ignored(self):
        assert _run_rule(_method(b"Register(this);"), "this-qualifier") == []

    def test_accessor_reported_once(self):
        source = b"""public class A
{
    private int _x;

    public int X
    {
        get { return this._x; }
    }
}
"""
        assert len(_run_rule(source, "this-qualifier")) == 1

    @pytest.mark.parametrize(
        "body",
        [
            b"foreach (string name in names) { this.name = name; }",
            b"names.ForEach(name => Log(this.name + name));",
            b"names.ForEach((string name) => Log(this.name + name));",
            b"try { Run(); } catch (Exception name) { Log(this.name, name); }",
            b"if (TryGet(out var name)) { this.name = name; }",
            b"if (item is string name) { this.name = name; }",
        ],
    )
    def test_this_allowed_when_any_binding_shadows_member(self, body):
        source = (
            b"public class A\n{\n    private string name;\n\n    public void M(string[] names, object item)\n    {\n        "
            + body
            + b"\n    }\n}\n"
        )
        assert _run_rule(source, "this-qualifier") == []
        assert _fix(source, "this-qualifier") == source

    def test_enclosing_method_name_does_not_count_as_a_binding(self):
        source = b"""public class A
{
    public void Reset(int depth)
    {
        if (depth > 0)
        {
            this.Reset(depth - 1);
        }
    }
}
"""
        assert len(_run_rule(source, "this-qualifier")) == 1


class TestVarUsage:
    @pytest.mark.parametrize(
        "initializer",
        [
            "new List<int>()",
            "new Widget { Name = \"a\" }",
            "new { X = 1 }",
            "new[] { 1, 2 }",
            "(string)value",
            "value as string",
            "default(int)",
        ],
    )
    def test_evident_types(self, initializer):
        assert type_is_evident(initializer)

    @pytest.mark.parametrize("initializer", ["Compute()", "items.Count", "1", "x + y"])
    def test_non_evident_types(self, initializer):
        assert not type_is_evident(initializer)

    def test_var_with_call_reported_at_keyword(self):
        violations = _run_rule(_method(b"var total = Compute();"), "var-usage")
        assert len(violations) == 1
        v = violations[0]
        assert (v.location.line, v.location.column) == (7, 9)
        assert v.span.end - v.span.start == 3
        assert "'total'" in v.message

    def test_var_with_new_passes(self):
        assert _run_rule(_method(b"var items = new List<int>();"), "var-usage") == []

    def test_explicit_type_passes(self):
        assert _run_rule(_method(b"int total = Compute();"), "var-usage") == []


class TestKeywordTypes:
    SOURCE = b"""public class A
{
    private Int32 _a;
    private System.String _b;

    public int M() => Int32.Parse(_b);
}
"""

    def test_bcl_names_reported(self):
        violations = _run_rule(self.SOURCE, "keyword-types")
        assert [v.location.line for v in violations] == [3, 4, 6]
        assert "'System.String'" in violations[1].message
        assert "'string'" in violations[1].message

    def test_fix_uses_keywords(self):
        fixed = _fix(self.SOURCE, "keyword-types")
        assert b"private int _a;" in fixed
        assert b"private string _b;" in fixed
        assert b"=> int.Parse(_b);" in fixed
        assert _run_rule(fixed, "keyword-types") == []

    def test_other_qualifiers_and_declarations_ignored(self):
        source = b"""public class String
{
    private Acme.Int32 _a;
    private Acme.System.String _b;
}
"""
        assert _run_rule(source, "keyword-types") == []

    def test_enum_members_named_after_types_ignored(self):
        source = b"""public enum DataType
{
    Boolean,
    String,
    Int32,
}
"""
        assert _run_rule(source, "keyword-types") == []
        assert _fix(source, "keyword-types") == source

    def test_declared_member_and_variable_names_ignored(self):
        source = b"""public class Schema
{
    public string String { get; set; }

    public int Int32() => 0;

    public void Define(int Boolean)
    {
        int Double = 1;
        String = "x";
    }
}
"""
        assert _run_rule(source, "keyword-types") == []

    def test_type_positions_still_reported_beside_declared_names(self):
        source = b"""public class Schema
{
    public String Object { get; set; }
}
"""
        violations = _run_rule(source, "keyword-types")
        assert len(violations) == 1
        assert "'String'" in violations[0].message
        assert b"public string Object { get; set; }" in _fix(source, "keyword-types")


class TestNameofUsage:
    def test_parameter_name_literal_reported_and_fixed(self):
        source = _method(b'throw new ArgumentNullException("value");', params=b"string value")
        violations = _run_rule(source, "nameof-usage")
        assert len(violations) == 1
        assert "nameof(value)" in violations[0].message
        fixed = _fix(source, "nameof-usage")
        assert b"new ArgumentNullException(nameof(value));" in fixed

    def test_second_argument_position(self):
        source = _method(b'throw new ArgumentException("bad", "value");', params=b"string value")
        assert len(_run_rule(source, "nameof-usage")) == 1

    def test_other_strings_ignored(self):
        source = _method(b'Log("value is missing", "other");', params=b"string value")
        assert _run_rule(source, "nameof-usage") == []


class TestNonAsciiLiterals:
    def test_escape_non_ascii(self):
        assert escape_non_ascii('"café"') == '"caf\\u00E9"'
        assert escape_non_ascii("\U0001F600") == "\\uD83D\\uDE00"
        assert escape_non_ascii("plain") == "plain"

    def test_string_and_char_literals_reported(self):
        source = 'public class A\n{\n    private string _s = "café";\n    private char _c = \'é\';\n}\n'.encode()
        violations = _run_rule(source, "non-ascii-literals")
        assert [v.location.line for v in violations] == [3, 4]

    def test_fix_escapes(self):
        source = 'public class A\n{\n    private string _s = "café";\n}\n'.encode()
        fixed = _fix(source, "non-ascii-literals")
        assert b'private string _s = "caf\\u00E9";' in fixed
        assert fixed.isascii()

    def test_verbatim_strings_and_comments_ignored(self):
        source = 'public class A\n{\n    // café\n    private string _s = @"café";\n}\n'.encode()
        assert _run_rule(source, "non-ascii-literals") == []
