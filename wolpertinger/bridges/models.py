"""In-memory data model for bridges, their pluggable transports and the registry."""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from wolpertinger.bridges.addresses import IPAddress
from wolpertinger.bridges.identity import ThreeTuple, derive_id

BRIDGE_TYPE_VANILLA = "vanilla"
PROTO_TCP = "tcp"


class DistributionGroup(str, Enum):
    """Channel through which a bridge is handed out."""

    MOAT = "moat"
    HTTPS = "https"
    EMAIL = "email"
    UNALLOCATED = "unallocated"


@dataclass(frozen=True)
class Location:
    """A place where an endpoint was observed as blocked."""

    country_code: str | None = None
    asn: str | None = None

    def __post_init__(self):
        if not self.country_code and not self.asn:
            raise ValueError("Location needs a country code or an AS number")


@dataclass(eq=False)
class Transport:
    """A pluggable-transport listener attached to a bridge."""

    type: str
    address: IPAddress
    port: int
    fingerprint: str
    arguments: dict[str, list[str]] = field(default_factory=dict)
    protocol: str = PROTO_TCP
    blocked_in: list[Location] = field(default_factory=list)

    def same_as(self, other: "Transport") -> bool:
        """
        Return True if both transports describe the same listener.

        Compared: type, address, port, fingerprint and the full argument
        mapping (values in order). Block history does not take part.
        """
        return (
            self.type == other.type
            and self.address == other.address
            and self.port == other.port
            and self.fingerprint == other.fingerprint
            and self.arguments == other.arguments
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transport):
            return NotImplemented
        return self.same_as(other)

    @property
    def three_tuple(self) -> ThreeTuple:
        return ThreeTuple(self.address, self.port, self.protocol)

    def external_id(self, key: bytes | str) -> str:
        """Identifier derived from the transport's own three-tuple."""
        return derive_id(key, self.three_tuple)

    def __str__(self) -> str:
        args = ",".join(f"{k}={v}" for k, values in self.arguments.items() for v in values)
        return f"{self.type} {self.address}:{self.port} {self.fingerprint} {args}".rstrip()


@dataclass
class Bridge:
    """
    A relay record.

    Bridges coming from the descriptor parser only carry a fingerprint and
    transports; address, port, distribution group and timestamps are filled
    from the relational store.
    """

    fingerprint: str
    address: IPAddress | None = None
    port: int | None = None
    protocol: str = PROTO_TCP
    distribution_group: DistributionGroup | None = None
    first_seen: datetime | None = None
    last_seen: datetime | None = None
    transports: list[Transport] = field(default_factory=list)
    blocked_in: list[Location] = field(default_factory=list)

    type = BRIDGE_TYPE_VANILLA

    def add_transport(self, transport: Transport) -> bool:
        """Append a transport unless an identical one is present. Returns True if added."""
        if any(existing.same_as(transport) for existing in self.transports):
            return False
        self.transports.append(transport)
        return True

    @property
    def three_tuple(self) -> ThreeTuple:
        if self.address is None or self.port is None:
            raise ValueError(f"bridge {self.fingerprint} has no address/port")
        return ThreeTuple(self.address, self.port, self.protocol)

    def external_id(self, key: bytes | str) -> str:
        """Identifier derived from the bridge's own three-tuple, not its fingerprint."""
        return derive_id(key, self.three_tuple)


class Registry(Mapping[str, Bridge]):
    """
    Bridges keyed by fingerprint.

    A registry is assembled once (by the parser, the loader or the
    reconciler) and treated as read-only after it is published.
    """

    def __init__(self, bridges: Iterable[Bridge] = ()):
        self._bridges: dict[str, Bridge] = {}
        for bridge in bridges:
            self._bridges[bridge.fingerprint] = bridge

    def __getitem__(self, fingerprint: str) -> Bridge:
        return self._bridges[fingerprint]

    def __iter__(self) -> Iterator[str]:
        return iter(self._bridges)

    def __len__(self) -> int:
        return len(self._bridges)

    def __repr__(self) -> str:
        return f"Registry({len(self)} bridges, {self.transport_count()} transports)"

    def transport_count(self) -> int:
        return sum(len(b.transports) for b in self._bridges.values())
