# The rule definition store: built once from the rule modules, frozen, then
# shared by every worker thread.

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional

from stylecheck.errors import ConfigError
from stylecheck.findings.models import Severity
from stylecheck.model import NodeKind
from stylecheck.rules import braces, expressions, imports, members, naming, visibility, whitespace
from stylecheck.rules.base import BlankLineRule, OrderingRule, Rule

logger = logging.getLogger(__name__)

_RULE_MODULES = (braces, whitespace, naming, visibility, imports, members, expressions)


def builtin_rules() -> list[Rule]:
    """Every rule shipped with stylecheck, in module order."""
    rules: list[Rule] = []
    for module in _RULE_MODULES:
        rules.extend(module.RULES)
    return rules


class RuleStore:
    """
    Immutable set of enabled rules keyed by id, with per-kind dispatch tables.

    Severity overrides are applied when the store is built; after that the
    store never changes, so evaluation can share it across threads.
    """

    def __init__(self, rules: Iterable[Rule]) -> None:
        by_id: dict[str, Rule] = {}
        for rule in rules:
            if rule.id in by_id:
                raise ConfigError(f"duplicate rule id '{rule.id}'")
            by_id[rule.id] = rule
        self._rules: Mapping[str, Rule] = MappingProxyType(by_id)

        plain: dict[NodeKind, list[Rule]] = {}
        ordering: dict[NodeKind, list[OrderingRule]] = {}
        for rule in sorted(by_id.values(), key=lambda r: r.id):
            if isinstance(rule, BlankLineRule):
                continue
            table = ordering if isinstance(rule, OrderingRule) else plain
            for kind in rule.kinds:
                table.setdefault(kind, []).append(rule)
        self._plain = MappingProxyType({k: tuple(v) for k, v in plain.items()})
        self._ordering = MappingProxyType({k: tuple(v) for k, v in ordering.items()})
        blank = [r for r in by_id.values() if isinstance(r, BlankLineRule)]
        self._blank_line_rule: Optional[BlankLineRule] = blank[0] if blank else None
        logger.debug("Rule store built with %d rules", len(by_id))

    @classmethod
    def builtin(cls) -> "RuleStore":
        return cls(builtin_rules())

    def get(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)

    def __getitem__(self, rule_id: str) -> Rule:
        return self._rules[rule_id]

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __iter__(self) -> Iterator[Rule]:
        return iter(sorted(self._rules.values(), key=lambda r: r.id))

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def ids(self) -> frozenset[str]:
        return frozenset(self._rules)

    def for_kind(self, kind: NodeKind) -> tuple[Rule, ...]:
        return self._plain.get(kind, ())

    def ordering_for(self, kind: NodeKind) -> tuple[OrderingRule, ...]:
        return self._ordering.get(kind, ())

    @property
    def blank_line_rule(self) -> Optional[BlankLineRule]:
        return self._blank_line_rule

    def severity_of(self, rule_id: str) -> Severity:
        rule = self._rules.get(rule_id)
        return rule.severity if rule is not None else Severity.ERROR
