"""
Client identity dimension - derives a storage-safe counter key from the
caller's network address.

Every accepted submission bumps one ``__clientIp;;<address>`` key by 1, so a
site's record also counts submissions per client address. ``.`` is escaped
as ``(dot)`` because dotted names are unsafe as dynamic field names in
document stores and the escaped form is what existing records contain.

Address selection:
    1. ``X-Forwarded-For`` present → split on ``,`` and take the entry at
       the configured position (``first`` = originating client, ``last`` =
       nearest proxy, the legacy behaviour).
    2. Otherwise the direct peer address (last ``,``-separated element).
    3. Otherwise no identity key is added.

Examples:
    >>> identity_key("9.9.9.9")
    '__clientIp;;9(dot)9(dot)9(dot)9'
    >>> select_address(RemoteAddress(forwarded_for="1.1.1.1, 2.2.2.2"))
    '1.1.1.1'
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tally.core.models.counters import RESERVED_PREFIX, CounterMap

CLIENT_IP_DIMENSION = f"{RESERVED_PREFIX}clientIp"
DIMENSION_SEPARATOR = ";;"


class ForwardedPosition(str, Enum):
    """Which ``X-Forwarded-For`` entry identifies the client."""

    FIRST = "first"
    LAST = "last"


@dataclass(frozen=True, slots=True)
class RemoteAddress:
    """Network addresses observed for one request."""

    forwarded_for: str | None = None
    peer: str | None = None


def select_address(
    remote: RemoteAddress,
    position: ForwardedPosition = ForwardedPosition.FIRST,
) -> str:
    """Pick the client address for *remote*; ``""`` when none is known."""
    forwarded = (remote.forwarded_for or "").strip()
    if forwarded:
        entries = forwarded.split(",")
        first = ForwardedPosition(position) is ForwardedPosition.FIRST
        chosen = entries[0] if first else entries[-1]
        return chosen.strip()
    if remote.peer:
        return remote.peer.split(",")[-1].strip()
    return ""


def identity_key(address: str) -> str:
    """Build the escaped client-address dimension key."""
    escaped = address.replace(".", "(dot)")
    return f"{CLIENT_IP_DIMENSION}{DIMENSION_SEPARATOR}{escaped}"


def with_identity(
    deltas: CounterMap,
    remote: RemoteAddress,
    position: ForwardedPosition = ForwardedPosition.FIRST,
) -> CounterMap:
    """Return a copy of *deltas* with the client dimension set to 1.

    *deltas* is returned unchanged (as a copy) when no address is known.
    """
    merged = dict(deltas)
    address = select_address(remote, position)
    if address:
        merged[identity_key(address)] = 1
    return merged


__all__ = [
    "CLIENT_IP_DIMENSION",
    "ForwardedPosition",
    "RemoteAddress",
    "identity_key",
    "select_address",
    "with_identity",
]
