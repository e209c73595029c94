"""Rule registry with a fluent configuration API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping, Optional, Union

from pydantic import ValidationError

from .cache import DecisionCache, Evaluator
from .cidr import parse_cidr
from .exceptions import DuplicateResourceError, MalformedRuleError
from .paths import ResourcePattern, compile_resource
from .policy import RuleRecord
from .resolver import PolicyResolver
from .types import ALLOW, DENY, Rule, RuleKind


@dataclass
class Batch:
    """Resources targeted by the next ``allow``/``deny`` calls.

    Adding rules never closes a batch. The next registration closes it, but
    only once one of its members owns a rule.
    """

    identities: list[str] = field(default_factory=list)

    def add(self, identity: str, rules: Mapping[str, list[Rule]]) -> None:
        if any(rules.get(member) for member in self.identities):
            self.identities = []
        if identity in self.identities:
            raise DuplicateResourceError(
                message="Duplicate resource name",
                details={"resource": identity},
            )
        self.identities.append(identity)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self.identities))

    def __len__(self) -> int:
        return len(self.identities)


class Registry:
    """Collects resource patterns and their ordered allow/deny rules.

    Rules can be declared fluently::

        evaluate = (
            Registry()
            .for_resource("/health_check")
            .deny("*")
            .allow("127.0.0.1/32")
            .build()
        )

    or from a list of records, where each record registers its resources,
    then applies its ``deny`` values, then its ``allow`` values::

        Registry([{"resource": "/health_check", "deny": "*", "allow": "127.0.0.1/32"}])
    """

    def __init__(self, records: Optional[Iterable[Union[RuleRecord, Mapping[str, Any]]]] = None) -> None:
        self._rules: dict[str, list[Rule]] = {}
        self._patterns: dict[str, ResourcePattern] = {}
        self.batch = Batch()
        if records is None:
            return
        if isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Iterable):
            raise MalformedRuleError(message="Rules have to be a list")
        for record in records:
            self._apply(_validate_record(record))

    @classmethod
    def from_records(cls, records: Iterable[Union[RuleRecord, Mapping[str, Any]]]) -> "Registry":
        return cls(records)

    def _apply(self, record: RuleRecord) -> None:
        for path in record.resource:
            self.for_resource(path)
        for cidr in record.deny:
            self.deny(cidr)
        for cidr in record.allow:
            self.allow(cidr)

    def for_resource(self, path: Any) -> "Registry":
        """Register a resource path spec and add it to the open batch."""

        pattern = compile_resource(path)
        self.batch.add(pattern.identity, self._rules)
        if not pattern.is_literal:
            self._patterns.setdefault(pattern.identity, pattern)
        self._rules.setdefault(pattern.identity, [])
        return self

    def allow(self, cidr: Any) -> "Registry":
        self._add_rule(ALLOW, cidr)
        return self

    def deny(self, cidr: Any) -> "Registry":
        self._add_rule(DENY, cidr)
        return self

    def _add_rule(self, kind: RuleKind, cidr: Any) -> None:
        rule = Rule(kind=kind, range=parse_cidr(cidr))
        for identity in self.batch:
            self._rules[identity].append(rule)

    @property
    def resources(self) -> list[str]:
        return list(self._rules)

    def rules_for(self, path: Any) -> list[Rule]:
        """Rules registered for the resource spec ``path`` (not for matching paths)."""

        return list(self._rules.get(compile_resource(path).identity, []))

    def build(self) -> Evaluator:
        """Freeze the current rules into a memoized evaluation function."""

        patterns = sorted(self._patterns.values(), key=lambda pattern: pattern.sort_key)
        resolver = PolicyResolver(
            patterns=patterns,
            rules={identity: tuple(rules) for identity, rules in self._rules.items()},
        )
        return Evaluator(resolver, DecisionCache())


def _validate_record(record: Any) -> RuleRecord:
    if isinstance(record, RuleRecord):
        return record
    if not isinstance(record, Mapping):
        raise MalformedRuleError(message="Rule has to be a mapping", details={"rule": repr(record)})
    try:
        return RuleRecord.model_validate(dict(record))
    except ValidationError as exc:
        raise MalformedRuleError(message=str(exc), details={"rule": dict(record)}) from exc
