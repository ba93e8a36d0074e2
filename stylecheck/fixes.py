# Fix synthesis: turn violations into text edits computed against one
# buffer, drop edits that collide, and apply the survivors.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from stylecheck.context import location_for
from stylecheck.findings.models import RuleFailure, TextEdit, UnresolvedConflict, Violation
from stylecheck.model import SourceUnit
from stylecheck.ordering import stable_sort_edit
from stylecheck.rules.base import OrderingRule
from stylecheck.rules.registry import RuleStore

logger = logging.getLogger(__name__)


def synthesize(violation: Violation, unit: SourceUnit, store: RuleStore) -> Optional[TextEdit]:
    """
    Compute the edit that resolves violation, or None when its rule has no fix.

    Exceptions raised by the rule's fix function propagate; synthesize_all
    turns them into RuleFailure entries.
    """
    rule = store.get(violation.rule_id)
    if rule is None or not rule.fixable or violation.node is None:
        return None
    if isinstance(rule, OrderingRule):
        return stable_sort_edit(rule, violation.node, unit)
    assert rule.fix is not None
    return rule.fix(violation.node, violation, unit)


def edits_conflict(a: TextEdit, b: TextEdit) -> bool:
    """Two edits conflict when they overlap or both touch the same offset."""
    if a.span.start == b.span.start:
        return True
    return a.span.start < b.span.end and b.span.start < a.span.end


@dataclass
class PlannedEdit:
    violation: Violation
    edit: TextEdit


@dataclass
class FixPlan:
    """Mutually compatible edits for one pass, plus what could not be included."""

    edits: list[PlannedEdit] = field(default_factory=list)
    conflicts: list[UnresolvedConflict] = field(default_factory=list)
    failures: list[RuleFailure] = field(default_factory=list)

    @property
    def text_edits(self) -> list[TextEdit]:
        return [p.edit for p in self.edits]


def synthesize_all(
    violations: Iterable[Violation],
    unit: SourceUnit,
    store: RuleStore,
) -> FixPlan:
    """
    Synthesize edits for violations in order, against the same buffer.

    An edit identical to one already accepted is dropped silently; one that
    otherwise overlaps an accepted edit becomes an UnresolvedConflict.
    """
    plan = FixPlan()
    for violation in violations:
        try:
            edit = synthesize(violation, unit, store)
        except Exception as exc:
            logger.exception("Fix for %s failed at %s", violation.rule_id, violation.location.path)
            plan.failures.append(
                RuleFailure(
                    rule_id=violation.rule_id,
                    phase="fix",
                    message=f"{type(exc).__name__}: {exc}",
                    location=location_for(unit, violation.span),
                    span=violation.span,
                )
            )
            continue
        if edit is None:
            continue
        if unit.text_of(edit.span) == edit.replacement:
            continue
        blocker = next((p.edit for p in plan.edits if edits_conflict(p.edit, edit)), None)
        if blocker is None:
            plan.edits.append(PlannedEdit(violation, edit))
        elif blocker == edit:
            continue
        else:
            logger.debug(
                "Dropping %s edit at %s: overlaps an accepted edit at %s",
                violation.rule_id,
                edit.span,
                blocker.span,
            )
            plan.conflicts.append(
                UnresolvedConflict(violation=violation, edit=edit, blocked_by=blocker)
            )
    return plan


def apply_edits(source: bytes, edits: Iterable[TextEdit]) -> bytes:
    """
    Apply disjoint edits to source.

    Raises:
        ValueError: two edits overlap.
    """
    ordered = sorted(edits, key=lambda e: (e.span.start, e.span.end))
    for left, right in zip(ordered, ordered[1:]):
        if right.span.start < left.span.end:
            raise ValueError(f"overlapping edits at {left.span} and {right.span}")
    out = bytearray(source)
    for edit in reversed(ordered):
        out[edit.span.start : edit.span.end] = edit.replacement.encode("utf-8")
    return bytes(out)
