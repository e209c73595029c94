"""Custom exceptions for ipacl."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class IPACLException(Exception):
    """Base class for ipacl exceptions."""

    message: str
    http_status: int = 400
    details: dict[str, object] | None = None

    def __str__(self) -> str:  # pragma: no cover - dataclass str wrapper
        return self.message


@dataclass
class InvalidResourceError(IPACLException):
    """Raised when a resource path spec is not a non-empty string."""

    http_status: int = 422


@dataclass
class DuplicateResourceError(IPACLException):
    """Raised when the same resource is registered twice in one open batch."""

    http_status: int = 409


@dataclass
class InvalidCidrError(IPACLException):
    """Raised when a rule value is neither ``*`` nor a valid CIDR block."""

    http_status: int = 422


@dataclass
class MalformedRuleError(IPACLException):
    """Raised when a declarative rule record is not well formed."""

    http_status: int = 422


@dataclass
class InvalidAddressError(IPACLException):
    """Raised when an evaluated remote address cannot be parsed."""

    http_status: int = 400


@dataclass
class BadPolicy(IPACLException):
    """Raised when a policy file cannot be parsed or validated."""

    http_status: int = 422
