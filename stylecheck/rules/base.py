# Rule definitions: the immutable value every style rule is expressed as.
# Concrete rules (braces, naming, imports, ...) build Rule instances from a
# check function and, where the fix is mechanical, a fix function.

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, NamedTuple, Optional

from stylecheck.findings.models import Severity, TextEdit, Violation
from stylecheck.model import Node, NodeKind, SourceUnit, Span


class Hit(NamedTuple):
    """What a check function yields: where the violation is and what to say."""

    span: Span
    message: str


@dataclass(frozen=True)
class RuleContext:
    """
    Ambient state handed to a check function alongside the node.

    parents runs from the root down to the node's parent; blank_run is the
    number of consecutive blank lines directly preceding the node.
    """

    unit: SourceUnit
    parents: tuple[Node, ...]
    sibling_index: int
    blank_run: int = 0

    @property
    def path(self) -> Path:
        return self.unit.path

    @property
    def parent(self) -> Optional[Node]:
        return self.parents[-1] if self.parents else None

    def enclosing(self, *kinds: NodeKind) -> Optional[Node]:
        """Innermost ancestor whose kind is one of kinds."""
        for node in reversed(self.parents):
            if node.kind in kinds:
                return node
        return None


CheckFn = Callable[[Node, RuleContext], Iterable[Hit]]
FixFn = Callable[[Node, Violation, SourceUnit], Optional[TextEdit]]


@dataclass(frozen=True)
class Rule:
    """
    A style rule.

    - id: stable identifier used in configuration, suppressions and output
    - kinds: node kinds the evaluator dispatches this rule on
    - check: (node, context) -> iterable of Hit
    - fix: optional (node, violation, unit) -> TextEdit | None

    Rules hold no state; the evaluator may call them from several threads.
    """

    id: str
    name: str
    severity: Severity
    kinds: frozenset[NodeKind] = frozenset()
    check: Optional[CheckFn] = None
    fix: Optional[FixFn] = None
    description: str = ""

    @property
    def fixable(self) -> bool:
        return self.fix is not None


@dataclass(frozen=True)
class OrderingRule(Rule):
    """
    A total order over some children of a container node.

    The evaluator compares the declared sequence of selected children against
    ``key`` once per container (``kinds`` are the container kinds) and the fix
    is always the stable sort by ``key``.
    """

    select: Optional[Callable[[Node, Node], bool]] = None
    key: Optional[Callable[[Node, SourceUnit], Any]] = None
    label: Optional[Callable[[Node, SourceUnit], str]] = None
    message: str = "{item} should come before {before}"
    # Move comments directly above a member together with it.
    attach_comments: bool = True

    @property
    def fixable(self) -> bool:
        return True


@dataclass(frozen=True)
class BlankLineRule(Rule):
    """Limit on consecutive blank lines; tracked by the evaluator across siblings."""

    limit: int = 1
