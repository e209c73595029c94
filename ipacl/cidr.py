"""CIDR block parsing and address containment."""

from __future__ import annotations

from dataclasses import dataclass
from ipaddress import IPv4Address, IPv4Network, IPv6Address, IPv6Network, ip_address, ip_network
from typing import Any, Union

from .exceptions import InvalidAddressError, InvalidCidrError

CATCH_ALL = "*"

IPAddress = Union[IPv4Address, IPv6Address]
IPNetwork = Union[IPv4Network, IPv6Network]


@dataclass(frozen=True)
class AddressRange:
    """One or more networks treated as a single range of ``size`` addresses."""

    networks: tuple[IPNetwork, ...]
    size: int

    def contains(self, address: IPAddress) -> bool:
        return any(address.version == net.version and address in net for net in self.networks)

    def size_for(self, address: IPAddress) -> int:
        """Addresses covered in the family of ``address``; ``*`` spans the whole family."""

        if self is CATCH_ALL_RANGE:
            return 2**address.max_prefixlen
        return self.size

    def __str__(self) -> str:
        if self is CATCH_ALL_RANGE:
            return CATCH_ALL
        return ",".join(str(net) for net in self.networks)


CATCH_ALL_RANGE = AddressRange(
    networks=(IPv4Network("0.0.0.0/0"), IPv6Network("::/0")),
    size=2**128,
)


def parse_cidr(value: Any) -> AddressRange:
    """Validate a rule value, mapping ``*`` to the range of every address.

    Anything else must be ``address/prefix``; host bits are allowed
    (``192.168.0.1/24`` is the same range as ``192.168.0.0/24``).
    """

    if value == CATCH_ALL:
        return CATCH_ALL_RANGE
    if not isinstance(value, str) or "/" not in value:
        raise InvalidCidrError(message=f"Invalid CIDR block: {value!r}", details={"cidr": value})
    try:
        network = ip_network(value.strip(), strict=False)
    except ValueError as exc:
        raise InvalidCidrError(message=f"Invalid CIDR block: {value!r}", details={"cidr": value}) from exc
    return AddressRange(networks=(network,), size=network.num_addresses)


def parse_address(value: Any) -> IPAddress:
    """Parse a remote address; IPv4-mapped IPv6 addresses become IPv4."""

    if not isinstance(value, str):
        raise InvalidAddressError(message=f"Invalid address: {value!r}", details={"address": value})
    try:
        address = ip_address(value.strip())
    except ValueError as exc:
        raise InvalidAddressError(message=f"Invalid address: {value!r}", details={"address": value}) from exc
    if isinstance(address, IPv6Address) and address.ipv4_mapped is not None:
        return address.ipv4_mapped
    return address
