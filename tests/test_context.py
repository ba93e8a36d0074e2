"""Tests for stylecheck.context: FileContext, create_context, locations and node/declaration counts."""

from pathlib import Path

import pytest

from stylecheck.context import (
    FileContext,
    context_from_source,
    count_unit_stats,
    create_context,
    location_for,
)
from stylecheck.errors import SourceSyntaxError
from stylecheck.model import Span
from stylecheck.parser import create_parser, parse


def test_count_unit_stats():
    unit = parse(b"public class A\n{\n    private int _x;\n    public void M()\n    {\n    }\n}\n")
    nodes, declarations = count_unit_stats(unit)
    assert nodes >= 4
    assert declarations == 3


def test_create_context_sample_cs(tmp_path):
    cs_file = tmp_path / "Program.cs"
    cs_file.write_bytes(b"public class Program\n{\n}\n")
    ctx = create_context(cs_file)
    assert ctx is not None
    assert ctx.path == cs_file
    assert ctx.source == b"public class Program\n{\n}\n"
    assert ctx.unit.root is not None
    assert len(ctx.suppressions) == 0


def test_create_context_nonexistent():
    ctx = create_context(Path("/nonexistent/File.cs"))
    assert ctx is None


def test_create_context_malformed_raises(tmp_path):
    cs_file = tmp_path / "Bad.cs"
    cs_file.write_bytes(b"public class Bad\n{\n    public void M(\n}\n")
    with pytest.raises(SourceSyntaxError):
        create_context(cs_file)


def test_context_from_source_logs_counts(caplog):
    with caplog.at_level("INFO"):
        ctx = context_from_source(Path("A.cs"), b"public class A\n{\n}\n", parser=create_parser())
    assert isinstance(ctx, FileContext)
    assert "Parsed A.cs" in caplog.text


def test_context_collects_suppressions():
    source = b"public class A\n{\n    // stylecheck: disable-next-line private-field-naming\n    int count;\n}\n"
    ctx = context_from_source(Path("A.cs"), source, known_ids={"private-field-naming"})
    assert len(ctx.suppressions) == 1


def test_location_for():
    source = b"public class A\n{\n    private int _x;\n}\n"
    unit = parse(source, path=Path("A.cs"))
    start = source.index(b"_x")
    loc = location_for(unit, Span(start, start + 2))
    assert loc.path == Path("A.cs")
    assert (loc.line, loc.column) == (3, 17)
    assert (loc.end_line, loc.end_column) == (3, 19)
    assert loc.snippet == "private int _x;"
