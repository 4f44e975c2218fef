"""Merge relational bridge records with parsed transport descriptors."""

from dataclasses import replace

from wolpertinger.bridges.models import Registry


def reconcile(db_registry: Registry, parsed_registry: Registry) -> Registry:
    """
    Build the unified registry.

    The relational registry decides which bridges exist and carries their
    metadata; the parsed registry decides their transports. A bridge
    present in both gets the parsed transport list wholesale. Parsed-only
    fingerprints are dropped. Neither input is modified.

    Block history is recorded per fingerprint, so every transport of a
    bridge carries a copy of the bridge's blocked locations.
    """
    merged = []
    for fingerprint, bridge in db_registry.items():
        parsed = parsed_registry.get(fingerprint)
        source = parsed.transports if parsed is not None else bridge.transports
        transports = [replace(t, blocked_in=list(bridge.blocked_in)) for t in source]
        merged.append(replace(bridge, transports=transports, blocked_in=list(bridge.blocked_in)))
    return Registry(merged)
