"""Tests for the structural model helpers: casing, spans, SourceUnit line/column math."""

from stylecheck.model import (
    Casing,
    Span,
    classify_casing,
    indent_width,
    split_field_prefix,
)
from stylecheck.parser import parse


class TestCasing:
    def test_pascal(self):
        assert classify_casing("Widget") is Casing.PASCAL
        assert classify_casing("IO") is Casing.PASCAL

    def test_camel(self):
        assert classify_casing("widgetCount") is Casing.CAMEL

    def test_all_caps(self):
        assert classify_casing("MAX_SIZE") is Casing.ALL_CAPS
        assert classify_casing("HTTP") is Casing.ALL_CAPS

    def test_leading_underscore(self):
        assert classify_casing("_name") is Casing.LEADING_UNDERSCORE

    def test_verbatim_identifier(self):
        assert classify_casing("@class") is Casing.CAMEL

    def test_unknown(self):
        assert classify_casing("") is Casing.UNKNOWN
        assert classify_casing("Mixed_Case") is Casing.UNKNOWN


def test_split_field_prefix():
    assert split_field_prefix("_count") == ("_", "count")
    assert split_field_prefix("s_count") == ("s_", "count")
    assert split_field_prefix("t_count") == ("t_", "count")
    assert split_field_prefix("m_count") == ("m_", "count")
    assert split_field_prefix("count") == ("", "count")


def test_indent_width_counts_tab_as_one_level():
    assert indent_width("    ") == 4
    assert indent_width("\t") == 4
    assert indent_width("\t  ") == 6


def test_span_contains_and_overlaps():
    outer = Span(0, 10)
    assert outer.contains(Span(2, 5))
    assert outer.contains(Span(10, 10))
    assert not outer.contains(Span(5, 11))
    assert Span(0, 5).overlaps(Span(4, 6))
    assert not Span(0, 5).overlaps(Span(5, 6))
    assert Span(3, 7).length == 4


def test_line_col_is_one_based():
    unit = parse(b"public class A\n{\n}\n")
    brace = unit.source.index(b"{")
    assert unit.line_col(0) == (1, 1)
    assert unit.line_col(brace) == (2, 1)


def test_line_col_counts_characters_not_bytes():
    source = 'public class A\n{\n    private string _s = "é"; private int _x;\n}\n'.encode("utf-8")
    unit = parse(source)
    offset = source.index(b"private int")
    line, col = unit.line_col(offset)
    assert line == 3
    assert col == len('    private string _s = "é"; ') + 1


def test_line_span_excludes_crlf():
    unit = parse(b"public class A\r\n{\r\n}\r\n")
    span = unit.line_span(0)
    assert unit.text_of(span) == "public class A"
    assert unit.newline == "\r\n"


def test_starts_line_and_line_indent():
    source = b"public class A\n{\n    private int _x;\n}\n"
    unit = parse(source)
    field = source.index(b"private")
    assert unit.starts_line(field)
    assert not unit.starts_line(source.index(b"int"))
    assert unit.line_indent(field) == "    "


def test_tokens_in_span():
    source = b"public class A\n{\n}\n"
    unit = parse(source)
    texts = [t.text for t in unit.tokens_in(Span(0, len(b"public class A")))]
    assert texts == ["public", "class", "A"]


def test_in_literal():
    source = b'public class A\n{\n    private string _s = "a  b";\n}\n'
    unit = parse(source)
    inside = source.index(b"a  b") + 1
    assert unit.in_literal(inside)
    assert not unit.in_literal(source.index(b"_s"))
