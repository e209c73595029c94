from ipaddress import ip_network

import pytest

from ipacl.cidr import parse_address, parse_cidr
from ipacl.exceptions import InvalidAddressError
from ipacl.registry import Registry
from ipacl.resolver import most_specific
from ipacl.types import Rule


def all_in_range(cidr: str):
    for address in ip_network(cidr, strict=False):
        yield str(address)


def test_health_check_scenario() -> None:
    evaluate = Registry().for_resource("/health_check").deny("*").allow("127.0.0.1/32").build()
    assert evaluate("/health_check", "127.0.0.1") is True
    assert evaluate("/health_check", "10.0.0.1") is False


def test_baseline_allow_without_rules() -> None:
    evaluate = Registry().build()
    assert evaluate("/anything", "8.8.8.8") is True


def test_unmatched_path_and_address_allow() -> None:
    evaluate = Registry().for_resource("/private").deny("10.0.0.0/8").build()
    assert evaluate("/public", "10.0.0.1")
    assert evaluate("/private", "11.0.0.1")
    assert not evaluate("/private", "10.0.0.1")


def test_deny_all() -> None:
    evaluate = Registry().for_resource("/path").deny("*").build()
    assert not evaluate("/path", "127.0.0.1")
    assert not evaluate("/path", "::1")


def test_allow_all_addresses_of_given_ranges() -> None:
    ranges = ["192.168.0.1/24", "172.10.154.100/25", "127.0.0.1/32"]
    registry = Registry().for_resource("/path").deny("*")
    for cidr in ranges:
        registry.allow(cidr)
    evaluate = registry.build()
    for cidr in ranges:
        for address in all_in_range(cidr):
            assert evaluate("/path", address)
    assert not evaluate("/path", "192.168.1.0")
    assert not evaluate("/path", "172.10.154.128")


def test_deny_all_addresses_of_given_ranges() -> None:
    ranges = ["192.168.0.1/24", "172.10.154.100/25", "127.0.0.1/32"]
    registry = Registry().for_resource("/path").allow("*")
    for cidr in ranges:
        registry.deny(cidr)
    evaluate = registry.build()
    for cidr in ranges:
        for address in all_in_range(cidr):
            assert not evaluate("/path", address)
    assert evaluate("/path", "172.10.154.127") is False
    assert evaluate("/path", "172.10.154.128") is True


def test_nested_ranges() -> None:
    evaluate = (
        Registry()
        .for_resource("/path")
        .deny("*")
        .allow("192.168.0.1/24")
        .deny("192.168.0.1/25")
        .build()
    )
    assert not evaluate("/path", "104.16.39.59")
    assert not evaluate("/path", "192.168.0.1")
    assert not evaluate("/path", "192.168.0.127")
    assert evaluate("/path", "192.168.0.128")
    assert evaluate("/path", "192.168.0.254")


@pytest.mark.parametrize("order", ["wide-first", "narrow-first"])
def test_most_specific_wins_regardless_of_order(order: str) -> None:
    registry = Registry().for_resource("/path")
    if order == "wide-first":
        registry.allow("10.0.0.0/8").deny("10.1.0.0/16")
    else:
        registry.deny("10.1.0.0/16").allow("10.0.0.0/8")
    evaluate = registry.build()
    assert not evaluate("/path", "10.1.2.3")
    assert evaluate("/path", "10.2.0.1")


def test_tie_resolves_to_deny() -> None:
    evaluate = Registry().for_resource("/path").allow("10.0.0.0/24").deny("10.0.0.0/24").build()
    assert not evaluate("/path", "10.0.0.5")

    evaluate = Registry().for_resource("/path").deny("10.0.0.0/24").allow("10.0.0.0/24").build()
    assert not evaluate("/path", "10.0.0.5")


def test_most_specific_fold() -> None:
    address = parse_address("10.0.0.1")
    wide_allow = Rule(kind="allow", range=parse_cidr("10.0.0.0/8"))
    wide_deny = Rule(kind="deny", range=parse_cidr("11.0.0.0/8"))
    narrow_allow = Rule(kind="allow", range=parse_cidr("10.0.0.0/16"))

    assert most_specific([], address).allowed
    assert most_specific([], address).matched == 0
    assert most_specific([], address).size == 2**32
    assert most_specific([], parse_address("::1")).size == 2**128

    verdict = most_specific([wide_allow, narrow_allow, wide_deny], address)
    assert verdict.allowed
    assert str(verdict.range) == "10.0.0.0/16"
    assert verdict.matched == 3

    assert not most_specific([wide_allow, wide_deny], address).allowed
    assert not most_specific([wide_allow, wide_deny, Rule(kind="allow", range=parse_cidr("12.0.0.0/8"))], address).allowed


def test_wildcard_resources_pool_rules() -> None:
    evaluate = (
        Registry()
        .for_resource("/path/*")
        .deny("*")
        .allow("10.0.0.0/8")
        .for_resource("/path/secret")
        .deny("10.0.0.0/8")
        .build()
    )
    assert evaluate("/path/1", "10.0.0.1")
    assert evaluate("/path/1/2", "10.0.0.1")
    assert not evaluate("/path/1", "8.8.8.8")
    assert not evaluate("/path/secret", "10.0.0.1")
    assert evaluate("/other", "8.8.8.8")


def test_parameterized_resource() -> None:
    evaluate = Registry().for_resource("/users/:id").deny("*").allow("192.168.0.0/16").build()
    assert evaluate("/users/42", "192.168.4.2")
    assert not evaluate("/users/42", "172.16.0.1")
    assert evaluate("/users", "172.16.0.1")


def test_ipv6_rules() -> None:
    evaluate = Registry().for_resource("/path").deny("*").allow("::1/128").allow("2001:db8::/32").build()
    assert evaluate("/path", "::1")
    assert evaluate("/path", "2001:db8::dead:beef")
    assert not evaluate("/path", "::2")
    assert not evaluate("/path", "127.0.0.1")


def test_ipv4_mapped_address_uses_ipv4_rules() -> None:
    evaluate = Registry().for_resource("/path").deny("*").allow("10.0.0.0/8").build()
    assert evaluate("/path", "::ffff:10.0.0.1")
    assert not evaluate("/path", "::ffff:11.0.0.1")


def test_catch_all_ties_with_ipv4_everything() -> None:
    evaluate = Registry().for_resource("/path").deny("*").allow("0.0.0.0/0").build()
    assert not evaluate("/path", "8.8.8.8")
    assert not evaluate("/path", "2001:db8::1")

    evaluate = Registry().for_resource("/path").allow("0.0.0.0/0").deny("*").build()
    assert not evaluate("/path", "8.8.8.8")


def test_catch_all_ties_with_ipv6_everything() -> None:
    evaluate = Registry().for_resource("/path").deny("*").allow("::/0").build()
    assert not evaluate("/path", "2001:db8::1")
    assert not evaluate("/path", "8.8.8.8")


def test_allowed_catch_all_loses_to_narrower_deny_in_either_family() -> None:
    evaluate = Registry().for_resource("/path").allow("*").deny("0.0.0.0/1").deny("::/1").build()
    assert not evaluate("/path", "10.0.0.1")
    assert evaluate("/path", "200.0.0.1")
    assert not evaluate("/path", "::1")
    assert evaluate("/path", "8000::1")


def test_invalid_address_raises() -> None:
    evaluate = Registry().for_resource("/path").deny("*").build()
    with pytest.raises(InvalidAddressError):
        evaluate("/path", "not-an-address")
    assert len(evaluate.cache) == 0


def test_explain_reports_winning_range() -> None:
    evaluate = Registry().for_resource("/path").deny("*").allow("127.0.0.1/32").build()
    allowed = evaluate.explain("/path", "127.0.0.1")
    assert allowed.allowed
    assert str(allowed.range) == "127.0.0.1/32"
    assert allowed.matched == 2
    denied = evaluate.explain("/path", "10.0.0.1")
    assert not denied.allowed
    assert str(denied.range) == "*"
