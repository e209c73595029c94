"""Most-specific-CIDR-wins policy resolution."""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from .cidr import CATCH_ALL_RANGE, IPAddress, parse_address
from .paths import ResourcePattern
from .types import Rule, Verdict


def most_specific(rules: Iterable[Rule], address: IPAddress) -> Verdict:
    """Fold the rules applicable to ``address`` into a single verdict.

    Starts from an allow over every address of the family of ``address``,
    which is also how wide ``*`` counts. A narrower range replaces the
    current winner, a wider one is ignored, and equally sized ranges are
    combined so that any deny wins the tie.
    """

    winner = Verdict(allowed=True, range=CATCH_ALL_RANGE, size=CATCH_ALL_RANGE.size_for(address))
    matched = 0
    for rule in rules:
        matched += 1
        size = rule.range.size_for(address)
        if size == winner.size:
            winner = Verdict(allowed=winner.allowed and rule.allowed, range=rule.range, size=size)
        elif size < winner.size:
            winner = Verdict(allowed=rule.allowed, range=rule.range, size=size)
    return Verdict(allowed=winner.allowed, range=winner.range, size=winner.size, matched=matched)


class PolicyResolver:
    """Resolves (path, address) pairs against a frozen set of rules."""

    def __init__(self, patterns: Sequence[ResourcePattern], rules: Mapping[str, tuple[Rule, ...]]) -> None:
        self.patterns = tuple(patterns)
        self.rules = dict(rules)

    def candidate_rules(self, path: str) -> list[Rule]:
        """All rules of every resource whose pattern matches ``path``."""

        keys = [pattern.identity for pattern in self.patterns if pattern.matches(path)]
        keys.append(path)
        collected: list[Rule] = []
        for key in keys:
            collected.extend(self.rules.get(key, ()))
        return collected

    def applicable(self, path: str, address: IPAddress) -> list[Rule]:
        return [rule for rule in self.candidate_rules(path) if rule.range.contains(address)]

    def explain(self, path: str, address: str) -> Verdict:
        parsed = parse_address(address)
        return most_specific(self.applicable(path, parsed), parsed)

    def resolve(self, path: str, address: str) -> bool:
        """Return ``True`` when ``address`` may access ``path``.

        Raises :class:`~ipacl.exceptions.InvalidAddressError` when ``address``
        is not an IPv4 or IPv6 literal.
        """

        return self.explain(path, address).allowed
