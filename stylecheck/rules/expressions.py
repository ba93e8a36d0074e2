# Expression-level conventions: this., var, keyword type names, nameof and
# non-ASCII characters in literals.

from __future__ import annotations

import re
from typing import Iterable, Optional

from stylecheck.findings.models import Severity, TextEdit, Violation
from stylecheck.model import Node, NodeKind, SourceUnit, Span, Token
from stylecheck.rules.base import Hit, Rule, RuleContext

# BCL type name -> C# keyword
KEYWORD_TYPES = {
    "Boolean": "bool",
    "Byte": "byte",
    "SByte": "sbyte",
    "Char": "char",
    "Decimal": "decimal",
    "Double": "double",
    "Single": "float",
    "Int16": "short",
    "UInt16": "ushort",
    "Int32": "int",
    "UInt32": "uint",
    "Int64": "long",
    "UInt64": "ulong",
    "Object": "object",
    "String": "string",
}

_DECLARING_KEYWORDS = frozenset({"class", "struct", "interface", "enum", "record", "namespace"})

_CODE_BODIES = (NodeKind.METHOD, NodeKind.PROPERTY, NodeKind.ACCESSOR)


def _nested_spans(node: Node, kinds: tuple[NodeKind, ...]) -> list[Span]:
    return [d.span for d in node.walk() if d is not node and d.kind in kinds]


def _inside(offset: int, spans: list[Span]) -> bool:
    return any(s.start <= offset < s.end for s in spans)


def _bound_names(node: Node, unit: SourceUnit) -> set[str]:
    """Every name bound inside node, from its parameters down to pattern variables."""
    names = set(node.parameters)
    for tok in unit.tokens_in(node.span):
        if tok.declares and tok.span != node.name_span:
            names.add(tok.text)
    return names


# -- this-qualifier ---------------------------------------------------------


def check_this_qualifier(node: Node, ctx: RuleContext) -> Iterable[Hit]:
    unit = ctx.unit
    nested = _nested_spans(node, _CODE_BODIES)
    shadowing = _bound_names(node, unit)
    tokens = unit.tokens_in(node.span)
    for i, tok in enumerate(tokens[:-2]):
        if tok.text != "this" or tokens[i + 1].text != ".":
            continue
        member = tokens[i + 2]
        if member.type != "identifier" or _inside(tok.span.start, nested):
            continue
        if member.text in shadowing:
            # this.x = x; the qualifier is what tells the member apart
            continue
        yield Hit(
            Span(tok.span.start, tokens[i + 1].span.end),
            f"Avoid 'this.' when accessing '{member.text}'; it is not needed here",
        )


def fix_this_qualifier(node: Node, violation: Violation, unit: SourceUnit) -> Optional[TextEdit]:
    return TextEdit(span=violation.span, replacement="")


# -- var-usage ----------------------------------------------------------------

_VAR_DECL_RE = re.compile(
    r"^(?:(?:await\s+)?using\s+)?(?P<var>var)\s+(?P<name>@?\w+)\s*=\s*(?P<init>.+?)\s*;\s*$",
    re.S,
)
_TYPED_NEW_RE = re.compile(r"^new\s+[A-Za-z_@][\w.]*\s*(?:<.*>)?\s*[(\[{]", re.S)
_IMPLICIT_NEW_RE = re.compile(r"^new\s*(?:\(|\{|\[\s*\])")
_CAST_RE = re.compile(r"^\(\s*[A-Za-z_@][\w.<>,\s\[\]?]*\)\s*[\w@(\"']")
_AS_RE = re.compile(r"\bas\s+[A-Za-z_@][\w.<>,\s\[\]?]*$")
_DEFAULT_RE = re.compile(r"^default\s*\(")


def type_is_evident(initializer: str) -> bool:
    """True when the right-hand side names the type (new T(), (T)x, x as T, default(T))."""
    init = initializer.strip()
    if _IMPLICIT_NEW_RE.match(init):
        # anonymous types and new[] have no type name to write instead
        return True
    return bool(
        _TYPED_NEW_RE.match(init)
        or _CAST_RE.match(init)
        or _AS_RE.search(init)
        or _DEFAULT_RE.match(init)
    )


def check_var_usage(node: Node, ctx: RuleContext) -> Iterable[Hit]:
    text = ctx.unit.text_of(node.span)
    m = _VAR_DECL_RE.match(text)
    if m is None or type_is_evident(m.group("init")):
        return
    start = node.span.start + len(text[: m.start("var")].encode("utf-8"))
    yield Hit(
        Span(start, start + 3),
        f"Use an explicit type for '{m.group('name')}'; 'var' is only for "
        "declarations whose type is named on the right-hand side",
    )


# -- keyword-types ----------------------------------------------------------


def _names_a_member(prev: Optional[Token], nxt: Token) -> bool:
    # Int32 = 1; or Int32(); refer to a property or method, never to a type
    if nxt.text == "=":
        return True
    return nxt.text == "(" and (prev is None or prev.text != "new")


def check_keyword_types(node: Node, ctx: RuleContext) -> Iterable[Hit]:
    tokens = ctx.unit.tokens
    for i, tok in enumerate(tokens):
        if tok.type != "identifier" or tok.text not in KEYWORD_TYPES or tok.declares:
            continue
        prev = tokens[i - 1] if i > 0 else None
        if prev is not None and prev.text in _DECLARING_KEYWORDS:
            continue
        nxt = tokens[i + 1] if i + 1 < len(tokens) else None
        if nxt is not None and _names_a_member(prev, nxt):
            continue
        start = tok.span.start
        if prev is not None and prev.text == ".":
            qualifier = tokens[i - 2] if i > 1 else None
            before = tokens[i - 3] if i > 2 else None
            if qualifier is None or qualifier.text != "System":
                continue
            if before is not None and before.text in (".", "::"):
                continue
            start = qualifier.span.start
        keyword = KEYWORD_TYPES[tok.text]
        yield Hit(
            Span(start, tok.span.end),
            f"Use the '{keyword}' keyword instead of '{ctx.unit.text_of(Span(start, tok.span.end))}'",
        )


def fix_keyword_types(node: Node, violation: Violation, unit: SourceUnit) -> Optional[TextEdit]:
    name = unit.text_of(violation.span).rsplit(".", 1)[-1]
    keyword = KEYWORD_TYPES.get(name)
    if keyword is None:
        return None
    return TextEdit(span=violation.span, replacement=keyword)


# -- nameof-usage -----------------------------------------------------------

_PLAIN_STRING_RE = re.compile(r'^"(?P<body>@?[A-Za-z_]\w*)"$')


def check_nameof_usage(node: Node, ctx: RuleContext) -> Iterable[Hit]:
    if not node.parameters:
        return
    unit = ctx.unit
    nested = _nested_spans(node, _CODE_BODIES)
    params = set(node.parameters)
    for lit in unit.literals:
        if lit.kind != "string" or not node.span.contains(lit.span):
            continue
        if _inside(lit.span.start, nested):
            continue
        m = _PLAIN_STRING_RE.match(unit.text_of(lit.span))
        if m is None or m.group("body") not in params:
            continue
        prev = unit.token_before(lit.span.start)
        nxt = unit.token_after(lit.span.end)
        if prev is None or nxt is None or prev.text not in ("(", ",") or nxt.text not in (")", ","):
            continue
        name = m.group("body")
        yield Hit(lit.span, f'Use nameof({name}) instead of the string literal "{name}"')


def fix_nameof_usage(node: Node, violation: Violation, unit: SourceUnit) -> Optional[TextEdit]:
    m = _PLAIN_STRING_RE.match(unit.text_of(violation.span))
    if m is None:
        return None
    return TextEdit(span=violation.span, replacement=f"nameof({m.group('body')})")


# -- non-ascii-literals -----------------------------------------------------


def escape_non_ascii(text: str) -> str:
    """Replace every non-ASCII character with \\uXXXX (surrogate pairs above the BMP)."""
    out: list[str] = []
    for ch in text:
        code = ord(ch)
        if code < 0x80:
            out.append(ch)
        elif code <= 0xFFFF:
            out.append(f"\\u{code:04X}")
        else:
            code -= 0x10000
            out.append(f"\\u{0xD800 + (code >> 10):04X}\\u{0xDC00 + (code & 0x3FF):04X}")
    return "".join(out)


def check_non_ascii_literals(node: Node, ctx: RuleContext) -> Iterable[Hit]:
    unit = ctx.unit
    for lit in unit.literals:
        # Escapes mean nothing inside verbatim and raw strings.
        if lit.kind not in ("string", "char"):
            continue
        if unit.text_of(lit.span).isascii():
            continue
        yield Hit(lit.span, "Non-ASCII characters in literal; use \\uXXXX escape sequences")


def fix_non_ascii_literals(node: Node, violation: Violation, unit: SourceUnit) -> Optional[TextEdit]:
    return TextEdit(span=violation.span, replacement=escape_non_ascii(unit.text_of(violation.span)))


RULES = (
    Rule(
        id="this-qualifier",
        name="Avoid this.",
        severity=Severity.SUGGESTION,
        kinds=frozenset(_CODE_BODIES),
        check=check_this_qualifier,
        fix=fix_this_qualifier,
        description="Avoid this. unless it is needed to tell a member from a parameter or local.",
    ),
    Rule(
        id="var-usage",
        name="var only with an evident type",
        severity=Severity.SUGGESTION,
        kinds=frozenset({NodeKind.LOCAL}),
        check=check_var_usage,
        description=(
            "Only use var when the type is explicitly named on the right-hand "
            "side, typically due to new or an explicit cast."
        ),
    ),
    Rule(
        id="keyword-types",
        name="Language keywords for types",
        severity=Severity.SUGGESTION,
        kinds=frozenset({NodeKind.SOURCE}),
        check=check_keyword_types,
        fix=fix_keyword_types,
        description="Use int, string, float instead of Int32, String, Single, including for static calls.",
    ),
    Rule(
        id="nameof-usage",
        name="nameof instead of string literals",
        severity=Severity.SUGGESTION,
        kinds=frozenset({NodeKind.METHOD}),
        check=check_nameof_usage,
        fix=fix_nameof_usage,
        description='Use nameof(param) instead of "param" when passing a parameter name.',
    ),
    Rule(
        id="non-ascii-literals",
        name="Escape non-ASCII characters",
        severity=Severity.WARNING,
        kinds=frozenset({NodeKind.SOURCE}),
        check=check_non_ascii_literals,
        fix=fix_non_ascii_literals,
        description="Use \\uXXXX escape sequences instead of literal non-ASCII characters.",
    ),
)
