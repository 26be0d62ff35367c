from __future__ import annotations

from types import SimpleNamespace

import pytest

from drc_loyalty.services.internal_auth import (
    DEFAULT_INTERNAL_ACTOR,
    extract_client_ip,
    extract_internal_actor,
    is_client_ip_allowed,
    is_valid_internal_token,
    parse_networks,
)

OPS_ALLOWLIST = "127.0.0.1,172.16.0.0/12"


def _request(*, peer: str | None, headers: dict[str, str] | None = None) -> SimpleNamespace:
    return SimpleNamespace(
        headers=headers or {},
        client=(SimpleNamespace(host=peer) if peer is not None else None),
    )


@pytest.mark.parametrize(
    ("expected_token", "received_token", "allowed"),
    [
        ("ops-token", "ops-token", True),
        ("ops-token", "ops-token ", False),
        ("ops-token", None, False),
        ("", "", False),
    ],
)
def test_internal_token_must_match_configured_value(
    expected_token: str, received_token: str | None, allowed: bool
) -> None:
    assert is_valid_internal_token(expected_token=expected_token, received_token=received_token) is allowed


@pytest.mark.parametrize(
    ("client_ip", "allowed"),
    [
        ("127.0.0.1", True),
        ("172.20.4.9", True),
        ("172.32.0.1", False),
        ("garbage", False),
        (None, False),
    ],
)
def test_ops_allowlist_matches_addresses_and_ranges(client_ip: str | None, allowed: bool) -> None:
    assert is_client_ip_allowed(client_ip=client_ip, allowlist=OPS_ALLOWLIST) is allowed


def test_malformed_allowlist_entries_are_ignored() -> None:
    networks = parse_networks("172.16.0.0/12,,10.0.0.300, fd00::/8 ")
    assert [str(network) for network in networks] == ["172.16.0.0/12", "fd00::/8"]


def test_forwarded_address_is_trusted_only_behind_known_proxy() -> None:
    behind_proxy = _request(peer="127.0.0.1", headers={"X-Forwarded-For": "172.18.0.7, 127.0.0.1"})
    direct = _request(peer="41.243.10.2", headers={"X-Forwarded-For": "172.18.0.7"})

    assert extract_client_ip(behind_proxy, trusted_proxies="127.0.0.1/32") == "172.18.0.7"
    assert extract_client_ip(direct, trusted_proxies="127.0.0.1/32") == "41.243.10.2"


def test_unparseable_forwarded_address_yields_no_client_ip() -> None:
    request = _request(peer="127.0.0.1", headers={"X-Forwarded-For": "unknown"})
    assert extract_client_ip(request, trusted_proxies="127.0.0.1/32") is None
    assert extract_client_ip(_request(peer=None)) is None


@pytest.mark.parametrize(
    ("headers", "expected_actor"),
    [
        ({}, DEFAULT_INTERNAL_ACTOR),
        ({"X-Internal-Actor": "   "}, DEFAULT_INTERNAL_ACTOR),
        ({"X-Internal-Actor": " ops-anna "}, "ops-anna"),
        ({"X-Internal-Actor": "r" * 80}, "r" * 64),
    ],
)
def test_reviewer_identity_comes_from_actor_header(headers: dict[str, str], expected_actor: str) -> None:
    assert extract_internal_actor(_request(peer="127.0.0.1", headers=headers)) == expected_actor
