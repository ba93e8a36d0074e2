# Tree-sitter setup and parsing: turn C# source bytes into a SourceUnit.

import logging
from pathlib import Path
from typing import Optional

import tree_sitter
from tree_sitter import Language
from tree_sitter_c_sharp import language as _csharp_language_capsule

from stylecheck.errors import SourceSyntaxError
from stylecheck.model import SourceUnit
from stylecheck.structure import build_unit, find_error_node

logger = logging.getLogger(__name__)

# C# grammar: wrap the tree-sitter-c-sharp capsule for use with tree_sitter.Parser
_CSHARP_LANGUAGE = Language(_csharp_language_capsule())


def get_csharp_language() -> Language:
    """Return the Tree-sitter Language object for C#."""
    return _CSHARP_LANGUAGE


def create_parser() -> tree_sitter.Parser:
    """Create and return a Tree-sitter Parser configured for C#."""
    parser = tree_sitter.Parser(_CSHARP_LANGUAGE)
    return parser


def parse_bytes(
    source: bytes,
    parser: Optional[tree_sitter.Parser] = None,
) -> tree_sitter.Tree:
    """
    Parse C# source bytes into a tree-sitter syntax tree.

    The tree is not lowered yet; parse() rejects malformed input and builds
    the structural model from it.
    """
    if parser is None:
        parser = create_parser()
    tree = parser.parse(source)
    if tree.root_node.has_error:
        bad = find_error_node(tree.root_node)
        row, col = bad.start_point if bad is not None else tree.root_node.start_point
        logger.warning(
            "C# source has syntax errors (%d bytes; first at line %d, column %d)",
            len(source), row + 1, col + 1,
        )
    else:
        logger.debug(
            "Parsed %d bytes of C# source into %d top-level syntax node(s)",
            len(source), tree.root_node.named_child_count,
        )
    return tree


def parse(
    source: bytes,
    path: Path = Path("<memory>"),
    parser: Optional[tree_sitter.Parser] = None,
) -> SourceUnit:
    """
    Parse C# source into the structural model.

    Raises:
        SourceSyntaxError: the source has unbalanced or malformed declarations.
            Style problems never raise; only input the grammar rejects does.
    """
    tree = parse_bytes(source, parser=parser)
    bad = find_error_node(tree.root_node)
    if bad is not None:
        row, col = bad.start_point
        if bad.is_missing:
            message = f"missing '{bad.type}'"
        else:
            snippet = source[bad.start_byte : bad.end_byte].decode("utf-8", errors="replace")
            snippet = snippet.strip().splitlines()[0] if snippet.strip() else ""
            message = f"unexpected '{snippet[:40]}'" if snippet else "unexpected input"
        raise SourceSyntaxError(
            message,
            path=path,
            line=row + 1,
            column=col + 1,
            offset=bad.start_byte,
        )
    unit = build_unit(path, source, tree)
    logger.debug("Built structural model for %s: %d top-level declaration(s)",
                 path, len(unit.declarations))
    return unit
