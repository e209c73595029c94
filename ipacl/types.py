"""Shared data structures for ipacl."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from .cidr import AddressRange

RuleKind = Literal["allow", "deny"]

ALLOW: RuleKind = "allow"
DENY: RuleKind = "deny"


@dataclass(frozen=True, slots=True)
class Rule:
    """An allow or deny rule for one range of addresses."""

    kind: RuleKind
    range: AddressRange

    @property
    def allowed(self) -> bool:
        return self.kind == ALLOW


@dataclass(frozen=True, slots=True)
class Verdict:
    """The winning rule of a resolution; ties are folded into ``allowed``."""

    allowed: bool
    range: AddressRange
    size: int
    matched: int = 0


@dataclass(slots=True)
class Metrics:
    """Simple counter metrics for the authorization sidecar."""

    allowed: int = 0
    denied: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"allowed": self.allowed, "denied": self.denied, "errors": self.errors}
