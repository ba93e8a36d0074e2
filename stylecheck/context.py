# Per-file analysis context: path, source bytes, structural model and the
# suppressions that apply to the file. Handles reading and parsing C# files,
# unreadable files, and logging of node/declaration counts.

import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence

from tree_sitter import Parser

from stylecheck.findings.models import Location
from stylecheck.model import DECLARATION_KINDS, SourceUnit, Span
from stylecheck.parser import create_parser, parse
from stylecheck.suppressions import SuppressionSet

logger = logging.getLogger(__name__)


def count_unit_stats(unit: SourceUnit) -> tuple[int, int]:
    """
    Return (total node count, declaration count) for the structural model.

    Useful for logging how much was parsed.
    """
    nodes = 0
    declarations = 0
    for node in unit.walk():
        nodes += 1
        if node.kind in DECLARATION_KINDS:
            declarations += 1
    return nodes, declarations


class FileContext:
    """
    Per-file state for rule evaluation: path, raw source bytes, the parsed
    SourceUnit and its SuppressionSet.
    """

    def __init__(
        self,
        path: Path,
        source: bytes,
        unit: SourceUnit,
        suppressions: Optional[SuppressionSet] = None,
    ) -> None:
        self.path = path
        self.source = source
        self.unit = unit
        self.suppressions = suppressions if suppressions is not None else SuppressionSet()


def location_for(unit: SourceUnit, span: Span) -> Location:
    """1-based start/end position of span plus the first source line it covers."""
    line, column = unit.line_col(span.start)
    end_line, end_column = unit.line_col(span.end)
    snippet = unit.text_of(unit.line_span(span.start)).strip()
    return Location(
        path=unit.path,
        line=line,
        column=column,
        end_line=end_line,
        end_column=end_column,
        snippet=snippet or None,
    )


def context_from_source(
    path: Path,
    source: bytes,
    parser: Optional[Parser] = None,
    suppression_entries: Sequence[tuple[str, Sequence[str]]] = (),
    known_ids: Optional[Iterable[str]] = None,
) -> FileContext:
    """
    Parse source (already read from path) into a FileContext.

    Raises:
        SourceSyntaxError: the grammar rejected the file.
    """
    if parser is None:
        parser = create_parser()
    unit = parse(source, path=path, parser=parser)
    suppressions = SuppressionSet.from_unit(unit, suppression_entries, known_ids)
    node_count, decl_count = count_unit_stats(unit)
    logger.info(
        "Parsed %s: %d nodes, %d declaration(s), %d suppression(s)",
        path,
        node_count,
        decl_count,
        len(suppressions),
    )
    return FileContext(path=path, source=source, unit=unit, suppressions=suppressions)


def create_context(
    path: Path,
    parser: Optional[Parser] = None,
    suppression_entries: Sequence[tuple[str, Sequence[str]]] = (),
    known_ids: Optional[Iterable[str]] = None,
) -> Optional[FileContext]:
    """
    Read a C# file and parse it into a FileContext.

    - Unreadable file (permission, missing): returns None and logs error.
    - Malformed C# (unbalanced braces, unterminated declarations): raises
      SourceSyntaxError; the caller reports it and skips the file.

    Returns:
        FileContext if the file was read and parsed, None if the file
        could not be read.
    """
    try:
        source = path.read_bytes()
    except OSError as e:
        logger.error("Failed to read file %s: %s", path, e)
        return None
    return context_from_source(path, source, parser, suppression_entries, known_ids)
