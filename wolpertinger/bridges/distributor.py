"""Selection of bridges handed to censorship measurement probes."""

import random
from collections.abc import Iterable
from dataclasses import dataclass

from wolpertinger.bridges.models import Bridge, DistributionGroup, Transport
from wolpertinger.bridges.store import RegistryStore
from wolpertinger.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_BRIDGES = 3
DEFAULT_PROBING_RESISTANT_TRANSPORTS = frozenset({"obfs4", "scramblesuit"})
ELIGIBLE_GROUPS = frozenset({DistributionGroup.UNALLOCATED})


@dataclass(frozen=True)
class ProbeRequest:
    """Who is asking for bridges, and from where."""

    client_id: str
    probe_type: str
    country_code: str


Endpoint = Bridge | Transport


class Distributor:
    """
    Hands out a small, rotating set of unallocated bridges.

    Bridges in the unallocated pool are not given to users by any other
    channel, so probing them does not burn bridges in use. Each answer
    holds at most ``max_bridges`` endpoints keyed by external identifier.
    """

    def __init__(
        self,
        store: RegistryStore,
        master_key: bytes | str,
        max_bridges: int = DEFAULT_MAX_BRIDGES,
        probing_resistant: Iterable[str] = DEFAULT_PROBING_RESISTANT_TRANSPORTS,
        rng: random.Random | None = None,
    ):
        if max_bridges < 1:
            raise ValueError("max_bridges must be at least 1")
        self.store = store
        self.master_key = master_key
        self.max_bridges = max_bridges
        self.probing_resistant = frozenset(probing_resistant)
        self._rng = rng or random.SystemRandom()

    def pick_endpoint(self, bridge: Bridge) -> Endpoint:
        """The bridge's first probing-resistant transport, or the bridge itself."""
        for transport in bridge.transports:
            if transport.type in self.probing_resistant:
                return transport
        return bridge

    def select(self, request: ProbeRequest) -> dict[str, Endpoint]:
        """
        Pick endpoints for one request.

        The request's probe type and country code are recorded but do not
        filter the selection yet.
        """
        registry = self.store.snapshot()
        eligible = [b for b in registry.values() if b.distribution_group in ELIGIBLE_GROUPS]
        chosen = self._rng.sample(eligible, min(self.max_bridges, len(eligible)))

        endpoints: dict[str, Endpoint] = {}
        for bridge in chosen:
            endpoint = self.pick_endpoint(bridge)
            endpoints[endpoint.external_id(self.master_key)] = endpoint

        logger.info(
            "Selected bridges for probe",
            extra={
                "client_id": request.client_id,
                "probe_type": request.probe_type,
                "country_code": request.country_code,
                "eligible": len(eligible),
                "returned": len(endpoints),
            },
        )
        return endpoints
