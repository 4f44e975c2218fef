"""Bridge registry module.

This module builds and serves the bridge registry:
- Extra-info descriptor parsing (pluggable transports)
- Loading the latest harvest from the relational store
- Reconciliation into one registry, published atomically
- Periodic refresh and probe distribution
"""

from wolpertinger.bridges.distributor import Distributor, ProbeRequest
from wolpertinger.bridges.extrainfo import parse_extrainfo_doc, read_extrainfo_file
from wolpertinger.bridges.identity import ThreeTuple, derive_id
from wolpertinger.bridges.loader import load_bridges_from_db
from wolpertinger.bridges.models import Bridge, DistributionGroup, Location, Registry, Transport
from wolpertinger.bridges.reconcile import reconcile
from wolpertinger.bridges.scheduler import RefreshScheduler, SchedulerState
from wolpertinger.bridges.store import RegistryStore

__all__ = [
    "Bridge",
    "Transport",
    "Location",
    "Registry",
    "DistributionGroup",
    "ThreeTuple",
    "derive_id",
    "parse_extrainfo_doc",
    "read_extrainfo_file",
    "load_bridges_from_db",
    "reconcile",
    "RegistryStore",
    "RefreshScheduler",
    "SchedulerState",
    "Distributor",
    "ProbeRequest",
]
