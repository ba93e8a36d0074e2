# Rule evaluation: one depth-first pass over a SourceUnit, dispatching each
# node to the rules registered for its kind. Blank-line runs and ordering
# rules are handled here, at the container level.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from stylecheck.context import location_for
from stylecheck.findings.models import RuleFailure, Violation
from stylecheck.model import CONTAINER_KINDS, Node, NodeKind, SourceUnit, Span
from stylecheck.ordering import first_out_of_order, ordered_members
from stylecheck.rules.base import BlankLineRule, OrderingRule, Rule, RuleContext
from stylecheck.rules.registry import RuleStore
from stylecheck.suppressions import SuppressionSet

logger = logging.getLogger(__name__)


@dataclass
class Evaluation:
    """Outcome of evaluating one SourceUnit: ordered violations and rule failures."""

    violations: list[Violation] = field(default_factory=list)
    failures: list[RuleFailure] = field(default_factory=list)


def violation_sort_key(v: Violation) -> tuple:
    return v.span.start, v.span.end, v.rule_id, v.message


class _Evaluator:
    def __init__(self, unit: SourceUnit, store: RuleStore) -> None:
        self.unit = unit
        self.store = store
        self.violations: list[Violation] = []
        self.failures: list[RuleFailure] = []

    def _violation(self, rule: Rule, node: Node, span: Span, message: str) -> Violation:
        return Violation(
            rule_id=rule.id,
            message=message,
            location=location_for(self.unit, span),
            span=span,
            severity=rule.severity,
            node=node,
        )

    def _failure(self, rule: Rule, node: Node, exc: Exception) -> None:
        logger.exception(
            "Rule %s failed on %s node at %s:%d",
            rule.id,
            node.kind.value,
            self.unit.path,
            self.unit.line_col(node.span.start)[0],
        )
        self.failures.append(
            RuleFailure(
                rule_id=rule.id,
                phase="check",
                message=f"{type(exc).__name__}: {exc}",
                location=location_for(self.unit, node.span),
                span=node.span,
            )
        )

    def visit(self, node: Node, parents: tuple[Node, ...], index: int, blank_run: int) -> None:
        ctx = RuleContext(unit=self.unit, parents=parents, sibling_index=index, blank_run=blank_run)
        for rule in self.store.for_kind(node.kind):
            if rule.check is None:
                continue
            try:
                hits = list(rule.check(node, ctx))
            except Exception as exc:
                self._failure(rule, node, exc)
                continue
            for hit in hits:
                self.violations.append(self._violation(rule, node, hit.span, hit.message))

        for rule in self.store.ordering_for(node.kind):
            try:
                self._check_order(rule, node)
            except Exception as exc:
                self._failure(rule, node, exc)

        blank_rule = self.store.blank_line_rule
        track_blanks = blank_rule is not None and node.kind in CONTAINER_KINDS
        child_parents = parents + (node,)
        run: list[Node] = []
        for i, child in enumerate(node.children):
            if child.kind is NodeKind.BLANK_LINE:
                run.append(child)
                continue
            if track_blanks:
                self._check_blank_run(blank_rule, node, run)
            self.visit(child, child_parents, i, len(run))
            run = []
        if track_blanks:
            self._check_blank_run(blank_rule, node, run)

    def _check_order(self, rule: OrderingRule, container: Node) -> None:
        assert rule.key is not None
        members = ordered_members(rule, container)
        if len(members) < 2:
            return
        keys = [rule.key(m, self.unit) for m in members]
        found = first_out_of_order(keys)
        if found is None:
            return
        i, before = found
        label = rule.label or (lambda n, _unit: n.name or n.kind.value)
        message = rule.message.format(
            item=label(members[i], self.unit),
            before=label(members[before], self.unit),
        )
        self.violations.append(self._violation(rule, container, members[i].span, message))

    def _check_blank_run(self, rule: BlankLineRule, container: Node, run: list[Node]) -> None:
        if len(run) <= rule.limit:
            return
        message = f"{len(run)} consecutive blank lines; at most {rule.limit} allowed"
        self.violations.append(self._violation(rule, container, run[-1].span, message))


def evaluate(
    unit: SourceUnit,
    store: RuleStore,
    suppressions: Optional[SuppressionSet] = None,
) -> Evaluation:
    """
    Evaluate every enabled rule against unit.

    A rule that raises is recorded as a RuleFailure and evaluation carries
    on with the remaining rules and nodes. Suppressed violations are dropped.
    Violations come back ordered by (span start, span end, rule id).
    """
    evaluator = _Evaluator(unit, store)
    evaluator.visit(unit.root, (), 0, 0)

    violations = evaluator.violations
    if suppressions is not None and len(suppressions):
        kept = [v for v in violations if not suppressions.suppresses(v.rule_id, v.span)]
        if len(kept) != len(violations):
            logger.debug("%s: %d violation(s) suppressed", unit.path, len(violations) - len(kept))
        violations = kept
    violations.sort(key=violation_sort_key)
    failures = sorted(evaluator.failures, key=lambda f: (f.span.start, f.span.end, f.rule_id))
    logger.debug(
        "Evaluated %s: %d violation(s), %d rule failure(s)",
        unit.path,
        len(violations),
        len(failures),
    )
    return Evaluation(violations=violations, failures=failures)
