"""ipacl: IP address access control for resource paths."""

from .cache import DecisionCache, Evaluator
from .exceptions import (
    BadPolicy,
    DuplicateResourceError,
    InvalidAddressError,
    InvalidCidrError,
    InvalidResourceError,
    IPACLException,
    MalformedRuleError,
)
from .middleware import ACLMiddleware
from .policy import Policy, RuleRecord, load_policy
from .registry import Batch, Registry

__all__ = [
    "ACLMiddleware",
    "BadPolicy",
    "Batch",
    "DecisionCache",
    "DuplicateResourceError",
    "Evaluator",
    "IPACLException",
    "InvalidAddressError",
    "InvalidCidrError",
    "InvalidResourceError",
    "MalformedRuleError",
    "Policy",
    "Registry",
    "RuleRecord",
    "load_policy",
]
