# Structural model: a shallow, language-agnostic node tree over one file's bytes.
# Rules query this model (kinds, spans, names, modifiers, blank-line runs,
# brace placement, indentation) instead of the grammar's concrete syntax tree.

from __future__ import annotations

import bisect
import enum
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, NamedTuple, Optional

INDENT_WIDTH = 4

ACCESS_MODIFIERS = ("public", "private", "protected", "internal", "file")


class Span(NamedTuple):
    """Half-open byte range [start, end) into a SourceUnit buffer."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start

    def contains(self, other: "Span") -> bool:
        return self.start <= other.start and other.end <= self.end

    def overlaps(self, other: "Span") -> bool:
        return self.start < other.end and other.start < self.end


class NodeKind(enum.Enum):
    SOURCE = "source"
    NAMESPACE = "namespace"
    IMPORT = "import"
    TYPE_DECL = "type"
    FIELD = "field"
    PROPERTY = "property"
    METHOD = "method"
    ACCESSOR = "accessor"
    LAMBDA = "lambda"
    BLOCK = "block"
    LOCAL = "local"
    STATEMENT = "statement"
    LABEL = "label"
    COMMENT = "comment"
    BLANK_LINE = "blank_line"


# Kinds whose children get BLANK_LINE nodes synthesised between them.
CONTAINER_KINDS = frozenset({NodeKind.SOURCE, NodeKind.NAMESPACE, NodeKind.BLOCK})

# Kinds that can carry modifiers and an accessibility.
DECLARATION_KINDS = frozenset(
    {NodeKind.TYPE_DECL, NodeKind.FIELD, NodeKind.PROPERTY, NodeKind.METHOD}
)


class Casing(enum.Enum):
    PASCAL = "PascalCase"
    CAMEL = "camelCase"
    ALL_CAPS = "ALL_CAPS"
    LEADING_UNDERSCORE = "_leadingUnderscore"
    UNKNOWN = "unknown"


class BracePlacement(enum.Enum):
    SAME_LINE = "same-line"
    NEXT_LINE = "next-line"


_PASCAL_RE = re.compile(r"^[A-Z][A-Za-z0-9]*$")
_CAMEL_RE = re.compile(r"^[a-z][A-Za-z0-9]*$")
_ALL_CAPS_RE = re.compile(r"^[A-Z][A-Z0-9]*(?:_[A-Z0-9]+)*$")

# Hungarian-ish prefixes seen on fields: _x, s_x, t_x, m_x.
_FIELD_PREFIX_RE = re.compile(r"^(?P<prefix>[stm]_|_)(?P<rest>.*)$")


def classify_casing(name: str) -> Casing:
    """
    Classify an identifier's casing.

    Two-letter acronyms such as ``IO`` count as PascalCase, matching the .NET
    naming guidelines; longer all-uppercase names are ALL_CAPS.
    """
    name = name.lstrip("@")
    if not name:
        return Casing.UNKNOWN
    if name.startswith("_"):
        return Casing.LEADING_UNDERSCORE
    if _ALL_CAPS_RE.match(name) and (len(name) > 2 or "_" in name):
        return Casing.ALL_CAPS
    if _PASCAL_RE.match(name):
        return Casing.PASCAL
    if _CAMEL_RE.match(name):
        return Casing.CAMEL
    return Casing.UNKNOWN


def split_field_prefix(name: str) -> tuple[str, str]:
    """Split ``s_count`` into ``("s_", "count")``; names without a prefix get ``""``."""
    m = _FIELD_PREFIX_RE.match(name)
    if m is None:
        return "", name
    return m.group("prefix"), m.group("rest")


def indent_width(whitespace: str) -> int:
    """Column width of leading whitespace; a tab counts as one indent unit."""
    return sum(INDENT_WIDTH if ch == "\t" else 1 for ch in whitespace)


@dataclass(eq=False)
class Node:
    """
    One structural element of a SourceUnit.

    Children are owned by their parent and ordered by span. Nodes compare by
    identity so they can be used as dictionary keys during evaluation.
    """

    kind: NodeKind
    span: Span
    syntax: str = ""
    children: list["Node"] = field(default_factory=list)
    parent: Optional["Node"] = field(default=None, repr=False)
    name: Optional[str] = None
    name_span: Optional[Span] = None
    # (name, span) for every declarator of a field or local declaration
    declarators: tuple[tuple[str, Span], ...] = ()
    modifiers: tuple[str, ...] = ()
    modifier_spans: tuple[Span, ...] = ()
    accessibility: Optional[str] = None
    explicit_accessibility: bool = False
    attributes: tuple[str, ...] = ()
    parameters: tuple[str, ...] = ()
    header_start: Optional[int] = None
    indent: int = 0
    indent_depth: int = 0
    leading_blank_lines: int = 0
    trailing_blank_lines: int = 0
    brace_placement: Optional[BracePlacement] = None
    tags: dict[str, object] = field(default_factory=dict, repr=False)

    @property
    def casing(self) -> Casing:
        if not self.name:
            return Casing.UNKNOWN
        return classify_casing(self.name)

    @property
    def is_const(self) -> bool:
        return "const" in self.modifiers

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers

    def walk(self) -> Iterator["Node"]:
        """Yield this node and every descendant in document order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def ancestors(self) -> Iterator["Node"]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def members(self) -> list["Node"]:
        """Children that are neither blank lines nor comments."""
        return [
            c for c in self.children
            if c.kind not in (NodeKind.BLANK_LINE, NodeKind.COMMENT)
        ]


@dataclass(frozen=True)
class Token:
    """A grammar leaf: keyword, punctuation, identifier, comment or literal piece."""

    type: str
    span: Span
    text: str
    # identifier that introduces a name rather than referring to one
    declares: bool = False


@dataclass(frozen=True)
class Literal:
    """A string or character literal; kind is string, verbatim, raw, char or interpolated."""

    kind: str
    span: Span


class SourceUnit:
    """
    One parsed file: path, immutable source bytes and the structural model.

    Line/column helpers are 1-based for display; all spans are byte offsets.
    """

    def __init__(
        self,
        path: Path,
        source: bytes,
        root: Node,
        tokens: list[Token],
        literals: list[Literal],
    ) -> None:
        self.path = path
        self.source = source
        self.root = root
        self.tokens = tokens
        self.literals = literals
        self._line_starts = [0] + [m.end() for m in re.finditer(b"\n", source)]
        self._token_starts = [t.span.start for t in tokens]
        self._token_ends = [t.span.end for t in tokens]
        self.newline = "\r\n" if b"\r\n" in source else "\n"

    @property
    def declarations(self) -> list[Node]:
        """Top-level declarations, in source order."""
        return self.root.members()

    def walk(self) -> Iterator[Node]:
        return self.root.walk()

    def text_of(self, span: Span) -> str:
        return self.source[span.start : span.end].decode("utf-8", errors="replace")

    def line_index(self, offset: int) -> int:
        """0-based line number containing offset."""
        return bisect.bisect_right(self._line_starts, offset) - 1

    def line_col(self, offset: int) -> tuple[int, int]:
        """1-based (line, column) for a byte offset; columns count characters."""
        idx = self.line_index(offset)
        start = self._line_starts[idx]
        col = len(self.source[start:offset].decode("utf-8", errors="replace"))
        return idx + 1, col + 1

    def line_span(self, offset: int) -> Span:
        """Span of the line containing offset, without its line terminator."""
        idx = self.line_index(offset)
        start = self._line_starts[idx]
        end = self.source.find(b"\n", start)
        if end == -1:
            end = len(self.source)
        if end > start and self.source[end - 1 : end] == b"\r":
            end -= 1
        return Span(start, end)

    def iter_lines(self) -> Iterator[Span]:
        for idx in range(len(self._line_starts)):
            start = self._line_starts[idx]
            if start == len(self.source) and idx > 0:
                return
            yield self.line_span(start)

    def line_indent(self, offset: int) -> str:
        """Leading whitespace of the line containing offset."""
        line = self.line_span(offset)
        text = self.source[line.start : line.end]
        stripped = text.lstrip(b" \t")
        return text[: len(text) - len(stripped)].decode("ascii")

    def starts_line(self, offset: int) -> bool:
        """True when only whitespace precedes offset on its line."""
        line = self.line_span(offset)
        return not self.source[line.start : offset].strip(b" \t")

    def tokens_in(self, span: Span) -> list[Token]:
        lo = bisect.bisect_left(self._token_starts, span.start)
        hi = bisect.bisect_left(self._token_starts, span.end)
        return self.tokens[lo:hi]

    def token_before(self, offset: int) -> Optional[Token]:
        """Last token ending at or before offset."""
        idx = bisect.bisect_right(self._token_ends, offset) - 1
        return self.tokens[idx] if idx >= 0 else None

    def token_after(self, offset: int) -> Optional[Token]:
        """First token starting at or after offset."""
        idx = bisect.bisect_left(self._token_starts, offset)
        return self.tokens[idx] if idx < len(self.tokens) else None

    def space_before(self, offset: int) -> bool:
        return offset > 0 and self.source[offset - 1 : offset] in (b" ", b"\t")

    def space_after(self, offset: int) -> bool:
        return self.source[offset : offset + 1] in (b" ", b"\t")

    def in_literal(self, offset: int) -> bool:
        """True when offset lies strictly inside a string or char literal."""
        for lit in self.literals:
            if lit.span.start < offset < lit.span.end:
                return True
            if lit.span.start >= offset:
                break
        return False
