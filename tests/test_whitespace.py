"""Unit tests for whitespace rules: tabs, trailing whitespace, blank-line runs, labels."""

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


class TestMultipleBlankLines:
    SOURCE = b"""public class Spacing
{
    private int _a;



    private int _b;
}
"""

    def test_three_blank_lines_reported_once_at_third(self):
        violations = _run_rule(self.SOURCE, "multiple-blank-lines")
        assert len(violations) == 1
        v = violations[0]
        assert v.location.line == 6
        assert "3 consecutive blank lines" in v.message

    def test_position_independent_of_file_length(self):
        prefix = b"".join(b"    private int _f%d;\n" % i for i in range(40))
        source = self.SOURCE.replace(b"    private int _a;\n", prefix + b"    private int _a;\n")
        violations = _run_rule(source, "multiple-blank-lines")
        assert len(violations) == 1
        assert violations[0].location.line == 6 + 40

    def test_single_blank_line_allowed(self):
        source = b"public class A\n{\n    private int _a;\n\n    private int _b;\n}\n"
        assert _run_rule(source, "multiple-blank-lines") == []

    def test_each_run_reported(self):
        source = b"public class A\n{\n    private int _a;\n\n\n    private int _b;\n\n\n    private int _c;\n}\n"
        violations = _run_rule(source, "multiple-blank-lines")
        assert [v.location.line for v in violations] == [5, 8]

    def test_blank_lines_inside_method_body(self):
        source = b"public class A\n{\n    public void M()\n    {\n        int a = 1;\n\n\n        int b = 2;\n    }\n}\n"
        assert len(_run_rule(source, "multiple-blank-lines")) == 1

    def test_fix_collapses_run_to_one_line(self):
        fixed = _fix(self.SOURCE, "multiple-blank-lines")
        assert fixed == b"public class Spacing\n{\n    private int _a;\n\n    private int _b;\n}\n"


class TestIndentSpaces:
    def test_tab_indentation_reported_per_line(self):
        source = b"public class A\n{\n\tprivate int _a;\n\tprivate int _b;\n}\n"
        violations = _run_rule(source, "indent-spaces")
        assert [v.location.line for v in violations] == [3, 4]

    def test_spaces_pass(self):
        assert _run_rule(b"public class A\n{\n    private int _a;\n}\n", "indent-spaces") == []

    def test_fix_replaces_tabs_with_four_spaces(self):
        source = b"public class A\n{\n\tprivate int _a;\n}\n"
        assert _fix(source, "indent-spaces") == b"public class A\n{\n    private int _a;\n}\n"

    def test_tabs_inside_verbatim_string_ignored(self):
        source = b'public class A\n{\n    private string _s = @"line\n\tindented";\n}\n'
        assert _run_rule(source, "indent-spaces") == []


class TestTrailingWhitespace:
    def test_trailing_spaces_reported(self):
        source = b"public class A   \n{\n    private int _a;\t\n}\n"
        violations = _run_rule(source, "trailing-whitespace")
        assert [(v.location.line, v.location.column) for v in violations] == [(1, 15), (3, 20)]

    def test_fix_strips_trailing_whitespace(self):
        source = b"public class A   \n{\n}\n"
        assert _fix(source, "trailing-whitespace") == b"public class A\n{\n}\n"


class TestLabelIndentation:
    def test_label_one_level_out_passes(self):
        source = b"""public class A
{
    public void M()
    {
        goto done;
    done:
        return;
    }
}
"""
        assert _run_rule(source, "label-indentation") == []

    def test_label_at_statement_level_reported_and_fixed(self):
        source = b"""public class A
{
    public void M()
    {
        goto done;
        done:
        return;
    }
}
"""
        violations = _run_rule(source, "label-indentation")
        assert len(violations) == 1
        assert "'done'" in violations[0].message
        fixed = _fix(source, "label-indentation")
        assert b"\n    done:\n" in fixed
