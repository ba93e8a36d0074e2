# Ordering rules share one algorithm: pick the container's participating
# children, compare them against the rule's key, and, for the fix, emit the
# stable sort of those children while every separator stays where it was.

from __future__ import annotations

from typing import Any, Optional, Sequence

from stylecheck.findings.models import TextEdit
from stylecheck.model import Node, NodeKind, SourceUnit, Span
from stylecheck.rules.base import OrderingRule


def ordered_members(rule: OrderingRule, container: Node) -> list[Node]:
    """Children of container that take part in rule's order, in source order."""
    assert rule.select is not None
    return [child for child in container.children if rule.select(container, child)]


def first_out_of_order(keys: Sequence[Any]) -> Optional[tuple[int, int]]:
    """
    Find the first element that sorts before its predecessor.

    Returns (index, before) where before is the earliest earlier element it
    should precede, or None when keys are already non-decreasing.
    """
    for i in range(1, len(keys)):
        if keys[i] < keys[i - 1]:
            before = next(j for j in range(i) if keys[i] < keys[j])
            return i, before
    return None


def _same_line(unit: SourceUnit, a: int, b: int) -> bool:
    return unit.line_index(a) == unit.line_index(b)


def segment_span(container: Node, member: Node, unit: SourceUnit) -> Span:
    """
    The member's span widened to carry its comments along when it moves.

    Comments directly above the member (no blank line in between) and a
    trailing comment on the member's last line belong to it.
    """
    children = container.children
    idx = children.index(member)
    start = member.span.start
    k = idx - 1
    while k >= 0 and children[k].kind is NodeKind.COMMENT:
        prev = children[k - 1] if k > 0 else None
        if (
            prev is not None
            and prev.kind is not NodeKind.BLANK_LINE
            and _same_line(unit, prev.span.end, children[k].span.start)
        ):
            break
        start = children[k].span.start
        k -= 1
    end = member.span.end
    if idx + 1 < len(children):
        nxt = children[idx + 1]
        if nxt.kind is NodeKind.COMMENT and _same_line(unit, member.span.end, nxt.span.start):
            end = nxt.span.end
    return Span(start, end)


def stable_sort_edit(
    rule: OrderingRule, container: Node, unit: SourceUnit
) -> Optional[TextEdit]:
    """Edit that rewrites the members of container into rule's stable order."""
    assert rule.key is not None
    members = ordered_members(rule, container)
    if len(members) < 2:
        return None
    keys = [rule.key(m, unit) for m in members]
    order = sorted(range(len(members)), key=lambda i: keys[i])
    if order == list(range(len(members))):
        return None
    if rule.attach_comments:
        spans = [segment_span(container, m, unit) for m in members]
    else:
        spans = [m.span for m in members]
    source = unit.source
    texts = [source[s.start : s.end] for s in spans]
    separators = [source[spans[i].end : spans[i + 1].start] for i in range(len(spans) - 1)]
    out = bytearray()
    for pos, idx in enumerate(order):
        out += texts[idx]
        if pos < len(separators):
            out += separators[pos]
    return TextEdit(
        span=Span(spans[0].start, spans[-1].end),
        replacement=out.decode("utf-8", errors="replace"),
    )
