"""
External identifiers for bridge endpoints.

Endpoints leave the service keyed by an HMAC-SHA256 over their three-tuple
(address, port, protocol) instead of by fingerprint. The fingerprint is
shared between a bridge and all of its pluggable transports, the
three-tuple is not, so a bridge's plain listener cannot be linked to its
transport listeners by identifier alone.
"""

import hashlib
import hmac
from ipaddress import IPv4Address, IPv6Address
from typing import NamedTuple


class ThreeTuple(NamedTuple):
    """An endpoint's network identity."""

    address: IPv4Address | IPv6Address
    port: int
    protocol: str

    def __str__(self) -> str:
        return f"{self.address}-{self.port}-{self.protocol}"


def derive_id(key: bytes | str, three_tuple: ThreeTuple) -> str:
    """
    Derive the external identifier of an endpoint.

    Args:
        key: Process-wide master secret
        three_tuple: The endpoint's (address, port, protocol)

    Returns:
        Hex-encoded HMAC-SHA256 of ``"<address>-<port>-<protocol>"``
    """
    if isinstance(key, str):
        key = key.encode("utf-8")
    if not key:
        raise ValueError("master key must not be empty")
    return hmac.new(key, str(three_tuple).encode("utf-8"), hashlib.sha256).hexdigest()
