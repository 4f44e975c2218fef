"""Probe API schemas."""

from pydantic import BaseModel, Field

from wolpertinger.bridges.models import Bridge, Transport


class BridgeOut(BaseModel):
    """A bridge reachable on its own OR port."""

    type: str = Field(examples=["vanilla"])
    protocol: str = Field(examples=["tcp"])
    address: str
    port: int
    fingerprint: str

    @classmethod
    def from_bridge(cls, bridge: Bridge) -> "BridgeOut":
        return cls(
            type=bridge.type,
            protocol=bridge.protocol,
            address=str(bridge.address),
            port=bridge.port,
            fingerprint=bridge.fingerprint,
        )


class TransportOut(BaseModel):
    """A pluggable-transport listener."""

    type: str = Field(examples=["obfs4"])
    protocol: str = Field(examples=["tcp"])
    address: str
    port: int
    arguments: dict[str, list[str]] = Field(default_factory=dict)

    @classmethod
    def from_transport(cls, transport: Transport) -> "TransportOut":
        return cls(
            type=transport.type,
            protocol=transport.protocol,
            address=str(transport.address),
            port=transport.port,
            arguments={key: list(values) for key, values in transport.arguments.items()},
        )


# Maps an endpoint's external identifier to its public fields
ProbeResponse = dict[str, BridgeOut | TransportOut]


def serialize_endpoint(endpoint: Bridge | Transport) -> BridgeOut | TransportOut:
    if isinstance(endpoint, Transport):
        return TransportOut.from_transport(endpoint)
    return BridgeOut.from_bridge(endpoint)
