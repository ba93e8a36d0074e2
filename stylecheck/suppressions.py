# Suppressions: explicit (rule id, span) exclusions collected from inline
# "stylecheck:" comments and from configured per-file glob entries.
#
# Directives, one per comment:
#   // stylecheck: existing-style <ids>      rest of the enclosing container
#   // stylecheck: disable-next-line <ids>   the following line
#   // stylecheck: disable <ids>             until a matching restore (or EOF)
#   // stylecheck: restore <ids>
# No ids, or "*", means every rule.

from __future__ import annotations

import fnmatch
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence

from stylecheck.model import NodeKind, SourceUnit, Span

logger = logging.getLogger(__name__)

ALL_RULES = "*"

_DIRECTIVE_RE = re.compile(
    r"^(?://|/\*)\s*stylecheck:\s*"
    r"(?P<directive>existing-style|disable-next-line|disable|restore)\b"
    r"(?P<ids>[^*]*)"
)
_ID_SPLIT_RE = re.compile(r"[\s,]+")


@dataclass(frozen=True)
class Suppression:
    rule_id: str
    span: Span
    # "inline" or "config"
    source: str = "inline"

    def matches(self, rule_id: str, span: Span) -> bool:
        if self.rule_id != ALL_RULES and self.rule_id != rule_id:
            return False
        return self.span.contains(span)


class SuppressionSet:
    """Immutable collection of suppressions for one file."""

    def __init__(self, entries: Iterable[Suppression] = ()) -> None:
        self._entries = tuple(sorted(entries, key=lambda s: (s.span.start, s.span.end, s.rule_id)))

    def suppresses(self, rule_id: str, span: Span) -> bool:
        return any(entry.matches(rule_id, span) for entry in self._entries)

    def __contains__(self, item: object) -> bool:
        return item in self._entries

    def __iter__(self) -> Iterator[Suppression]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"SuppressionSet({list(self._entries)!r})"

    @classmethod
    def from_unit(
        cls,
        unit: SourceUnit,
        config_entries: Sequence[tuple[str, Sequence[str]]] = (),
        known_ids: Optional[Iterable[str]] = None,
    ) -> "SuppressionSet":
        """
        Collect the suppressions that apply to unit.

        config_entries are (rule id, path globs) pairs; a matching glob
        suppresses the rule for the whole file. Unknown ids in inline
        directives are logged and otherwise ignored.
        """
        known = frozenset(known_ids) if known_ids is not None else None
        entries: list[Suppression] = []
        whole_file = Span(0, len(unit.source))
        for rule_id, globs in config_entries:
            if path_matches(unit.path, globs):
                entries.append(Suppression(rule_id, whole_file, "config"))
        entries.extend(_inline_suppressions(unit, known))
        return cls(entries)


def path_matches(path: Path, globs: Iterable[str]) -> bool:
    posix = path.as_posix()
    for pattern in globs:
        if fnmatch.fnmatch(posix, pattern) or path.match(pattern):
            return True
    return False


def parse_directive(comment: str) -> Optional[tuple[str, tuple[str, ...]]]:
    """Return (directive, rule ids) for a stylecheck comment, or None."""
    m = _DIRECTIVE_RE.match(comment.strip())
    if m is None:
        return None
    ids = tuple(i for i in _ID_SPLIT_RE.split(m.group("ids").strip()) if i)
    return m.group("directive"), ids or (ALL_RULES,)


def _next_line(unit: SourceUnit, offset: int) -> Optional[Span]:
    nl = unit.source.find(b"\n", offset)
    if nl == -1 or nl + 1 >= len(unit.source):
        return None
    line = unit.line_span(nl + 1)
    # Include the terminator so a violation covering the whole line still matches.
    end = unit.source.find(b"\n", nl + 1)
    return Span(line.start, len(unit.source) if end == -1 else end + 1)


def _inline_suppressions(unit: SourceUnit, known: Optional[frozenset[str]]) -> list[Suppression]:
    entries: list[Suppression] = []
    open_regions: dict[str, int] = {}
    for node in unit.walk():
        if node.kind is not NodeKind.COMMENT:
            continue
        parsed = parse_directive(unit.text_of(node.span))
        if parsed is None:
            continue
        directive, ids = parsed
        if known is not None:
            for rule_id in ids:
                if rule_id != ALL_RULES and rule_id not in known:
                    line, col = unit.line_col(node.span.start)
                    logger.warning(
                        "%s:%d:%d: unknown rule id '%s' in stylecheck directive",
                        unit.path, line, col, rule_id,
                    )
        if directive == "existing-style":
            end = node.parent.span.end if node.parent is not None else len(unit.source)
            entries.extend(Suppression(i, Span(node.span.start, end)) for i in ids)
        elif directive == "disable-next-line":
            line_span = _next_line(unit, node.span.end)
            if line_span is not None:
                entries.extend(Suppression(i, line_span) for i in ids)
        elif directive == "disable":
            for rule_id in ids:
                open_regions.setdefault(rule_id, node.span.start)
        else:
            closing = list(open_regions) if ids == (ALL_RULES,) else ids
            for rule_id in closing:
                start = open_regions.pop(rule_id, None)
                if start is not None:
                    entries.append(Suppression(rule_id, Span(start, node.span.end)))
    for rule_id, start in open_regions.items():
        entries.append(Suppression(rule_id, Span(start, len(unit.source))))
    return entries
