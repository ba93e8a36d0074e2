# Lowering of the tree-sitter C# syntax tree into the structural model.
# Mapped grammar types become Nodes; everything else is transparent and its
# mapped descendants attach to the nearest mapped ancestor.

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator, Optional

from tree_sitter import Node as TSNode
from tree_sitter import Tree

from stylecheck.model import (
    ACCESS_MODIFIERS,
    CONTAINER_KINDS,
    DECLARATION_KINDS,
    INDENT_WIDTH,
    BracePlacement,
    Literal,
    Node,
    NodeKind,
    SourceUnit,
    Span,
    Token,
    indent_width,
)

logger = logging.getLogger(__name__)

_KIND_BY_TYPE: dict[str, NodeKind] = {
    "compilation_unit": NodeKind.SOURCE,
    "namespace_declaration": NodeKind.NAMESPACE,
    "file_scoped_namespace_declaration": NodeKind.NAMESPACE,
    "using_directive": NodeKind.IMPORT,
    "class_declaration": NodeKind.TYPE_DECL,
    "struct_declaration": NodeKind.TYPE_DECL,
    "interface_declaration": NodeKind.TYPE_DECL,
    "enum_declaration": NodeKind.TYPE_DECL,
    "record_declaration": NodeKind.TYPE_DECL,
    "record_struct_declaration": NodeKind.TYPE_DECL,
    "delegate_declaration": NodeKind.TYPE_DECL,
    "field_declaration": NodeKind.FIELD,
    "event_field_declaration": NodeKind.FIELD,
    "property_declaration": NodeKind.PROPERTY,
    "indexer_declaration": NodeKind.PROPERTY,
    "event_declaration": NodeKind.PROPERTY,
    "method_declaration": NodeKind.METHOD,
    "constructor_declaration": NodeKind.METHOD,
    "destructor_declaration": NodeKind.METHOD,
    "operator_declaration": NodeKind.METHOD,
    "conversion_operator_declaration": NodeKind.METHOD,
    "local_function_statement": NodeKind.METHOD,
    "accessor_declaration": NodeKind.ACCESSOR,
    "lambda_expression": NodeKind.LAMBDA,
    "anonymous_method_expression": NodeKind.LAMBDA,
    "block": NodeKind.BLOCK,
    "declaration_list": NodeKind.BLOCK,
    "enum_member_declaration_list": NodeKind.BLOCK,
    "switch_body": NodeKind.BLOCK,
    "accessor_list": NodeKind.BLOCK,
    "local_declaration_statement": NodeKind.LOCAL,
    "labeled_statement": NodeKind.LABEL,
    "comment": NodeKind.COMMENT,
}

# Statement wrappers that carry no structure of their own.
_TRANSPARENT = frozenset({"global_statement"})

_LITERAL_KINDS = {
    "string_literal": "string",
    "verbatim_string_literal": "verbatim",
    "raw_string_literal": "raw",
    "character_literal": "char",
    "interpolated_string_expression": "interpolated",
}

_MODIFIER_KEYWORDS = frozenset(
    {
        "abstract", "async", "const", "extern", "file", "fixed", "internal",
        "new", "override", "partial", "private", "protected", "public",
        "readonly", "required", "sealed", "static", "unsafe", "virtual",
        "volatile",
    }
)

_IMPORT_RE = re.compile(
    r"^(?P<global>global\s+)?using\s+(?P<static>static\s+)?"
    r"(?:(?P<alias>@?\w+)\s*=\s*)?(?P<name>[^;]+?)\s*;",
    re.S,
)


def _kind_for(ts_type: str) -> Optional[NodeKind]:
    if ts_type in _TRANSPARENT:
        return None
    kind = _KIND_BY_TYPE.get(ts_type)
    if kind is None and ts_type.endswith("_statement"):
        return NodeKind.STATEMENT
    return kind


def _first_child(ts_node: TSNode, ts_type: str) -> Optional[TSNode]:
    for child in ts_node.children:
        if child.type == ts_type:
            return child
    return None


def _attribute_name(raw: str) -> str:
    """``System.FactAttribute`` and ``Fact`` both normalise to ``Fact``."""
    name = raw.split("<", 1)[0].rsplit(".", 1)[-1].strip()
    if name.endswith("Attribute") and len(name) > len("Attribute"):
        name = name[: -len("Attribute")]
    return name


def find_error_node(root: TSNode) -> Optional[TSNode]:
    """Return the first ERROR or MISSING node in document order, or None."""
    if not root.has_error:
        return None
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_error or node.is_missing:
            return node
        stack.extend(
            reversed([c for c in node.children if c.has_error or c.is_missing])
        )
    return None


class _Lowering:
    """Converts one tree-sitter tree into Nodes, annotating them as it goes."""

    def __init__(self, source: bytes) -> None:
        self.source = source

    def text(self, ts_node: TSNode) -> str:
        return self.source[ts_node.start_byte : ts_node.end_byte].decode(
            "utf-8", errors="replace"
        )

    def lower(self, root: TSNode) -> list[Node]:
        # Post-order walk on an explicit stack: long expression chains nest
        # far deeper than the interpreter's recursion limit.
        frames: list[tuple[TSNode, Iterator[TSNode], list[Node]]] = [
            (root, iter(root.children), [])
        ]
        while True:
            ts_node, pending, collected = frames[-1]
            child = next(pending, None)
            if child is not None:
                frames.append((child, iter(child.children), []))
                continue
            frames.pop()
            lowered = self._lower_one(ts_node, collected)
            if not frames:
                return lowered
            frames[-1][2].extend(lowered)

    def _lower_one(self, ts_node: TSNode, children: list[Node]) -> list[Node]:
        kind = _kind_for(ts_node.type)
        if kind is None:
            return children
        node = Node(
            kind=kind,
            span=Span(ts_node.start_byte, ts_node.end_byte),
            syntax=ts_node.type,
            children=children,
        )
        for child in children:
            child.parent = node
        self._annotate(node, ts_node)
        return [node]

    # -- annotation -------------------------------------------------------

    def _annotate(self, node: Node, ts_node: TSNode) -> None:
        indent = _line_indent(self.source, node.span.start)
        node.indent = indent_width(indent)
        node.indent_depth = indent.count("\t") + indent.count(" ") // INDENT_WIDTH

        if node.kind is NodeKind.IMPORT:
            self._annotate_import(node, ts_node)
            return
        if node.kind is NodeKind.BLOCK:
            node.brace_placement = _brace_placement(self.source, node.span.start)
            return
        if node.kind in (
            NodeKind.SOURCE, NodeKind.COMMENT, NodeKind.STATEMENT, NodeKind.LAMBDA
        ):
            return
        if node.kind is NodeKind.LABEL:
            ident = _first_child(ts_node, "identifier")
            if ident is not None:
                node.name = self.text(ident)
                node.name_span = Span(ident.start_byte, ident.end_byte)
            return

        modifiers: list[str] = []
        modifier_spans: list[Span] = []
        attributes: list[str] = []
        header_start: Optional[int] = None
        for child in ts_node.children:
            if child.type == "attribute_list":
                for attr in child.named_children:
                    if attr.type != "attribute":
                        continue
                    attr_name = attr.child_by_field_name("name")
                    raw = self.text(attr_name if attr_name is not None else attr)
                    attributes.append(_attribute_name(raw))
                continue
            if child.type == "comment":
                continue
            if header_start is None:
                header_start = child.start_byte
            if child.type == "modifier" or (
                not child.is_named and child.type in _MODIFIER_KEYWORDS
            ):
                modifiers.append(self.text(child).strip())
                modifier_spans.append(Span(child.start_byte, child.end_byte))
            if child.type == "explicit_interface_specifier":
                node.tags["explicit_interface"] = True

        node.modifiers = tuple(modifiers)
        node.modifier_spans = tuple(modifier_spans)
        node.attributes = tuple(attributes)
        node.header_start = header_start if header_start is not None else node.span.start

        if node.kind in (NodeKind.FIELD, NodeKind.LOCAL):
            node.declarators = self._declarators(ts_node)
            if node.declarators:
                node.name, node.name_span = node.declarators[0]
            return

        name = ts_node.child_by_field_name("name")
        if name is not None:
            node.name = self.text(name)
            node.name_span = Span(name.start_byte, name.end_byte)
        if node.kind is NodeKind.METHOD:
            node.parameters = self._parameters(ts_node)
        elif node.kind is NodeKind.ACCESSOR and node.name in ("set", "init"):
            node.parameters = ("value",)

    def _annotate_import(self, node: Node, ts_node: TSNode) -> None:
        m = _IMPORT_RE.match(self.text(ts_node))
        if m is None:
            logger.debug("Unrecognised using directive at byte %d", node.span.start)
            node.name = self.text(ts_node)
            return
        node.name = re.sub(r"\s+", "", m.group("name"))
        node.tags["global"] = m.group("global") is not None
        node.tags["static"] = m.group("static") is not None
        node.tags["alias"] = m.group("alias")

    def _declarators(self, ts_node: TSNode) -> tuple[tuple[str, Span], ...]:
        found: list[tuple[str, Span]] = []
        for decl in ts_node.children:
            if decl.type != "variable_declaration":
                continue
            for var in decl.children:
                if var.type != "variable_declarator":
                    continue
                ident = var.child_by_field_name("name")
                if ident is None:
                    ident = _first_child(var, "identifier")
                if ident is not None:
                    found.append(
                        (self.text(ident), Span(ident.start_byte, ident.end_byte))
                    )
        return tuple(found)

    def _parameters(self, ts_node: TSNode) -> tuple[str, ...]:
        plist = ts_node.child_by_field_name("parameters")
        if plist is None:
            plist = _first_child(ts_node, "parameter_list")
        if plist is None:
            return ()
        names: list[str] = []
        for param in plist.named_children:
            if param.type != "parameter":
                continue
            ident = param.child_by_field_name("name")
            if ident is None:
                idents = [c for c in param.children if c.type == "identifier"]
                ident = idents[-1] if idents else None
            if ident is not None:
                names.append(self.text(ident))
        return tuple(names)


def _line_indent(source: bytes, offset: int) -> str:
    start = source.rfind(b"\n", 0, offset) + 1
    end = start
    while end < len(source) and source[end : end + 1] in (b" ", b"\t"):
        end += 1
    return source[start:end].decode("ascii")


def _brace_placement(source: bytes, brace: int) -> BracePlacement:
    pos = brace
    while pos > 0 and source[pos - 1 : pos] in (b" ", b"\t"):
        pos -= 1
    if pos == 0 or source[pos - 1 : pos] in (b"\n", b"\r"):
        return BracePlacement.NEXT_LINE
    return BracePlacement.SAME_LINE


def _blank_lines(source: bytes, lo: int, hi: int) -> list[Span]:
    """Whitespace-only lines lying entirely inside [lo, hi), newline excluded."""
    if lo >= hi:
        return []
    if lo == 0 or source[lo - 1 : lo] == b"\n":
        line_start = lo
    else:
        nl = source.find(b"\n", lo, hi)
        if nl == -1:
            return []
        line_start = nl + 1
    spans: list[Span] = []
    while line_start < hi:
        nl = source.find(b"\n", line_start, hi)
        if nl == -1:
            break
        if not source[line_start:nl].strip():
            spans.append(Span(line_start, nl))
        line_start = nl + 1
    return spans


def _insert_blank_lines(source: bytes, root: Node) -> None:
    for node in list(root.walk()):
        if node.kind not in CONTAINER_KINDS:
            continue
        lo, hi = node.span.start, node.span.end
        if node.kind is NodeKind.BLOCK and source[lo : lo + 1] == b"{":
            lo += 1
            if source[hi - 1 : hi] == b"}":
                hi -= 1
        blanks: list[Node] = []
        cursor = lo
        for child in node.children:
            blanks.extend(_blank_nodes(source, cursor, child.span.start, node))
            cursor = child.span.end
        blanks.extend(_blank_nodes(source, cursor, hi, node))
        if blanks:
            node.children = sorted(node.children + blanks, key=lambda n: n.span.start)
        _count_blank_neighbours(node.children)


def _blank_nodes(source: bytes, lo: int, hi: int, parent: Node) -> list[Node]:
    return [
        Node(kind=NodeKind.BLANK_LINE, span=span, syntax="blank_line", parent=parent)
        for span in _blank_lines(source, lo, hi)
    ]


def _count_blank_neighbours(children: list[Node]) -> None:
    run = 0
    for child in children:
        if child.kind is NodeKind.BLANK_LINE:
            run += 1
            continue
        child.leading_blank_lines = run
        run = 0
    run = 0
    for child in reversed(children):
        if child.kind is NodeKind.BLANK_LINE:
            run += 1
            continue
        child.trailing_blank_lines = run
        run = 0


def _default_accessibility(node: Node, enclosing_type: Optional[Node]) -> str:
    if enclosing_type is None:
        return "internal"
    if enclosing_type.syntax == "interface_declaration":
        return "public"
    return "private"


def _assign_accessibility(root: Node) -> None:
    stack: list[tuple[Node, Optional[Node]]] = [(root, None)]
    while stack:
        node, enclosing_type = stack.pop()
        for child in node.children:
            if child.kind in DECLARATION_KINDS and child.syntax != "local_function_statement":
                if enclosing_type is not None:
                    child.tags["declared_in"] = enclosing_type.syntax
                explicit = [m for m in child.modifiers if m in ACCESS_MODIFIERS]
                if explicit:
                    child.accessibility = " ".join(sorted(explicit, key=ACCESS_MODIFIERS.index))
                    child.explicit_accessibility = True
                else:
                    child.accessibility = _default_accessibility(child, enclosing_type)
            inner = child if child.kind is NodeKind.TYPE_DECL else enclosing_type
            stack.append((child, inner))


_IDENTIFIER_TYPES = frozenset({"identifier", "implicit_parameter"})

# Grammar nodes whose ``name`` field binds a new name.
_BINDING_PARENTS = frozenset(
    {
        "class_declaration", "struct_declaration", "interface_declaration",
        "enum_declaration", "record_declaration", "record_struct_declaration",
        "delegate_declaration", "enum_member_declaration", "type_parameter",
        "method_declaration", "constructor_declaration", "destructor_declaration",
        "local_function_statement", "property_declaration", "event_declaration",
        "variable_declarator", "parameter", "catch_declaration",
        "declaration_expression", "declaration_pattern",
        "from_clause", "let_clause", "join_clause", "query_continuation",
    }
)

# Every identifier directly inside these is a binding: x => ..., var (a, b), var x.
_DESIGNATIONS = frozenset(
    {"implicit_parameter", "parenthesized_variable_designation", "var_pattern", "tuple_pattern"}
)

# Always carry a name; older grammars leave the field unlabelled.
_NAME_REQUIRED = frozenset({"enum_member_declaration", "variable_declarator", "parameter"})


def _declares(ident: TSNode) -> bool:
    """True when ident is the name being bound rather than a use of one."""
    if ident.type == "implicit_parameter":
        return True
    parent = ident.parent
    if parent is None:
        return False
    if parent.type in _DESIGNATIONS:
        return True
    if parent.type == "foreach_statement":
        return parent.child_by_field_name("left") == ident
    if parent.type not in _BINDING_PARENTS:
        return False
    name = parent.child_by_field_name("name")
    if name is not None:
        return name == ident
    if parent.type not in _NAME_REQUIRED:
        return False
    idents = [c for c in parent.children if c.type == "identifier"]
    return bool(idents) and idents[-1] == ident


def _collect_leaves(root: TSNode, source: bytes) -> tuple[list[Token], list[Literal]]:
    tokens: list[Token] = []
    literals: list[Literal] = []
    stack = [root]
    while stack:
        ts_node = stack.pop()
        lit_kind = _LITERAL_KINDS.get(ts_node.type)
        if lit_kind is not None:
            if lit_kind == "string" and source[ts_node.start_byte : ts_node.start_byte + 1] == b"@":
                lit_kind = "verbatim"
            literals.append(Literal(lit_kind, Span(ts_node.start_byte, ts_node.end_byte)))
        if ts_node.child_count == 0:
            if ts_node.end_byte > ts_node.start_byte:
                parent = ts_node.parent
                ident: Optional[TSNode] = None
                if parent is not None and parent.type == "identifier":
                    ident = parent
                elif ts_node.type in _IDENTIFIER_TYPES:
                    ident = ts_node
                span = Span(ts_node.start_byte, ts_node.end_byte)
                text = source[span.start : span.end].decode("utf-8", errors="replace")
                if ident is None:
                    tokens.append(Token(ts_node.type, span, text))
                else:
                    tokens.append(Token("identifier", span, text, declares=_declares(ident)))
            continue
        stack.extend(reversed(ts_node.children))
    tokens.sort(key=lambda t: t.span.start)
    literals.sort(key=lambda lit: lit.span.start)
    return tokens, literals


def build_unit(path: Path, source: bytes, tree: Tree) -> SourceUnit:
    """
    Lower a parsed tree into a SourceUnit.

    The caller is responsible for rejecting trees with syntax errors first;
    see parser.parse().
    """
    nodes = _Lowering(source).lower(tree.root_node)
    if len(nodes) == 1 and nodes[0].kind is NodeKind.SOURCE:
        root = nodes[0]
    else:
        root = Node(kind=NodeKind.SOURCE, span=Span(0, len(source)), children=nodes)
        for child in nodes:
            child.parent = root
    root.span = Span(0, len(source))
    _insert_blank_lines(source, root)
    _assign_accessibility(root)
    tokens, literals = _collect_leaves(tree.root_node, source)
    return SourceUnit(path=path, source=source, root=root, tokens=tokens, literals=literals)
