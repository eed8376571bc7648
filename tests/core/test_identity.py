"""Tests for the client identity dimension."""

from __future__ import annotations

import pytest

from tally.core.identity import (
    ForwardedPosition,
    RemoteAddress,
    identity_key,
    select_address,
    with_identity,
)


class TestSelectAddress:
    def test_forwarded_first_entry_by_default(self) -> None:
        remote = RemoteAddress(forwarded_for="1.1.1.1, 2.2.2.2", peer="10.0.0.1")
        assert select_address(remote) == "1.1.1.1"

    def test_forwarded_last_entry(self) -> None:
        remote = RemoteAddress(forwarded_for="1.1.1.1, 2.2.2.2", peer="10.0.0.1")
        assert select_address(remote, ForwardedPosition.LAST) == "2.2.2.2"

    def test_position_accepts_plain_string(self) -> None:
        remote = RemoteAddress(forwarded_for="1.1.1.1,2.2.2.2")
        assert select_address(remote, "last") == "2.2.2.2"

    def test_falls_back_to_peer_last_element(self) -> None:
        assert select_address(RemoteAddress(peer="3.3.3.3, 4.4.4.4")) == "4.4.4.4"

    def test_blank_forwarded_header_uses_peer(self) -> None:
        assert select_address(RemoteAddress(forwarded_for="  ", peer="5.5.5.5")) == "5.5.5.5"

    def test_nothing_known(self) -> None:
        assert select_address(RemoteAddress()) == ""


class TestIdentityKey:
    def test_dots_escaped(self) -> None:
        assert identity_key("9.9.9.9") == "__clientIp;;9(dot)9(dot)9(dot)9"

    def test_ipv6_left_as_is(self) -> None:
        assert identity_key("::1") == "__clientIp;;::1"


class TestWithIdentity:
    def test_adds_key_with_value_one(self) -> None:
        deltas = {"views": 2}
        merged = with_identity(deltas, RemoteAddress(forwarded_for="9.9.9.9"))
        assert merged == {"views": 2, "__clientIp;;9(dot)9(dot)9(dot)9": 1}
        assert deltas == {"views": 2}

    def test_no_address_returns_copy(self) -> None:
        deltas = {"views": 2}
        merged = with_identity(deltas, RemoteAddress())
        assert merged == deltas
        assert merged is not deltas

    @pytest.mark.parametrize("position", list(ForwardedPosition))
    def test_single_entry_same_for_any_position(self, position) -> None:
        merged = with_identity({"a": 1}, RemoteAddress(forwarded_for="8.8.8.8"), position)
        assert merged["__clientIp;;8(dot)8(dot)8(dot)8"] == 1
