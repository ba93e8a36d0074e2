"""Tests for suppression directives and configured per-file suppressions."""

from pathlib import Path

from stylecheck.evaluator import evaluate
from stylecheck.model import Span
from stylecheck.parser import parse
from stylecheck.rules.registry import RuleStore
from stylecheck.suppressions import (
    ALL_RULES,
    Suppression,
    SuppressionSet,
    parse_directive,
    path_matches,
)

KNOWN = RuleStore.builtin().ids


def _violations(source: bytes, entries=(), path: Path = Path("Legacy.cs")):
    unit = parse(source, path=path)
    store = RuleStore.builtin()
    suppressions = SuppressionSet.from_unit(unit, entries, store.ids)
    return evaluate(unit, store, suppressions).violations


def _ids(violations):
    return [v.rule_id for v in violations]


def test_parse_directive():
    assert parse_directive("// stylecheck: disable-next-line a, b") == ("disable-next-line", ("a", "b"))
    assert parse_directive("// stylecheck: existing-style") == ("existing-style", (ALL_RULES,))
    assert parse_directive("/* stylecheck: restore a */") == ("restore", ("a",))
    assert parse_directive("// just a comment") is None


def test_suppression_matches_rule_and_containment():
    entry = Suppression("private-field-naming", Span(10, 50))
    assert entry.matches("private-field-naming", Span(20, 30))
    assert not entry.matches("private-field-naming", Span(40, 60))
    assert not entry.matches("constant-naming", Span(20, 30))
    assert Suppression(ALL_RULES, Span(10, 50)).matches("anything", Span(10, 50))


def test_suppression_set_is_ordered_and_queryable():
    a = Suppression("x", Span(30, 40))
    b = Suppression("y", Span(0, 10))
    sset = SuppressionSet([a, b])
    assert list(sset) == [b, a]
    assert a in sset
    assert len(sset) == 2
    assert sset.suppresses("x", Span(31, 32))
    assert not sset.suppresses("x", Span(1, 2))


def test_existing_style_covers_rest_of_container():
    source = b"""public class Legacy
{
    // stylecheck: existing-style private-field-naming
    private int m_count;
    private int m_total;
}

public class Modern
{
    private int m_count;
}
"""
    violations = [v for v in _violations(source) if v.rule_id == "private-field-naming"]
    assert len(violations) == 1
    assert violations[0].location.line == 10


def test_disable_next_line_only_covers_next_line():
    source = b"""public class Legacy
{
    // stylecheck: disable-next-line private-field-naming
    private int m_count;
    private int m_total;
}
"""
    violations = [v for v in _violations(source) if v.rule_id == "private-field-naming"]
    assert [v.location.line for v in violations] == [5]


def test_disable_restore_region():
    source = b"""public class Legacy
{
    // stylecheck: disable
    int count;
    // stylecheck: restore
    int total;
}
"""
    violations = _violations(source)
    assert all(v.location.line != 4 for v in violations)
    assert {"explicit-visibility", "private-field-naming"} <= {
        v.rule_id for v in violations if v.location.line == 6
    }


def test_unterminated_disable_runs_to_end_of_file():
    source = b"""public class Legacy
{
    // stylecheck: disable private-field-naming
    private int count;
    private int total;
}
"""
    assert "private-field-naming" not in _ids(_violations(source))


def test_configured_suppression_applies_to_matching_files():
    source = b"public class Legacy\n{\n    private int m_count;\n}\n"
    entries = [("private-field-naming", ["**/Generated/*.cs", "Legacy.cs"])]
    assert "private-field-naming" not in _ids(_violations(source, entries))
    assert "private-field-naming" in _ids(_violations(source, entries, path=Path("Other.cs")))


def test_unknown_rule_in_directive_is_logged(caplog):
    source = b"public class A\n{\n    // stylecheck: disable-next-line no-such-rule\n    private int _x;\n}\n"
    unit = parse(source, path=Path("A.cs"))
    with caplog.at_level("WARNING"):
        SuppressionSet.from_unit(unit, (), KNOWN)
    assert "no-such-rule" in caplog.text


def test_path_matches():
    assert path_matches(Path("src/Generated/Api.cs"), ["src/Generated/*.cs"])
    assert path_matches(Path("src/Generated/Api.cs"), ["*.cs"])
    assert not path_matches(Path("src/Api.cs"), ["Generated/*.cs"])
