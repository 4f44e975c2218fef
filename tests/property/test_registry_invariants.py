"""Property-based tests for parsing, reconciliation and selection invariants."""

import random
from ipaddress import IPv4Address, IPv6Address

from hypothesis import given, settings, strategies as st

from wolpertinger.bridges.distributor import Distributor, ProbeRequest
from wolpertinger.bridges.extrainfo import parse_extrainfo_doc
from wolpertinger.bridges.identity import ThreeTuple, derive_id
from wolpertinger.bridges.models import Bridge, DistributionGroup, Registry, Transport
from wolpertinger.bridges.reconcile import reconcile
from wolpertinger.bridges.store import RegistryStore

fingerprints = st.text(alphabet="0123456789ABCDEF", min_size=40, max_size=40)
tokens = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789-_", min_size=1, max_size=8)
values = st.text(alphabet="abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789+/", max_size=12)
arguments = st.dictionaries(tokens, st.lists(values, min_size=1, max_size=3), max_size=3)

transports = st.builds(
    Transport,
    type=tokens,
    address=st.ip_addresses(),
    port=st.integers(min_value=0, max_value=65535),
    fingerprint=st.just(""),
    arguments=arguments,
)


def _render(doc: dict[str, list[Transport]]) -> str:
    lines = []
    for fingerprint, listeners in doc.items():
        lines.append(f"extra-info nickname {fingerprint}")
        for t in listeners:
            host = f"[{t.address}]" if isinstance(t.address, IPv6Address) else str(t.address)
            line = f"transport {t.type} {host}:{t.port}"
            args = ",".join(f"{key}={value}" for key, vals in t.arguments.items() for value in vals)
            if args:
                line += f" {args}"
            lines.append(line)
    return "\n".join(lines) + "\n"


def _deduplicated(listeners: list[Transport]) -> list[Transport]:
    unique: list[Transport] = []
    for t in listeners:
        if not any(t.same_as(u) for u in unique):
            unique.append(t)
    return unique


@settings(max_examples=100, deadline=None)
@given(doc=st.dictionaries(fingerprints, st.lists(transports, max_size=4), max_size=6))
def test_parse_preserves_bridges_and_unique_transports(doc: dict[str, list[Transport]]) -> None:
    """
    Property: every rendered bridge comes back with its distinct transports.

    Invariants:
    - Parsed fingerprints equal rendered fingerprints
    - Transport lists hold no duplicates and keep first-seen order
    """
    for fingerprint, listeners in doc.items():
        for t in listeners:
            t.fingerprint = fingerprint

    registry = parse_extrainfo_doc(_render(doc).splitlines())

    assert list(registry) == list(doc)
    for fingerprint, listeners in doc.items():
        assert registry[fingerprint].transports == _deduplicated(listeners)


def _bridge(fingerprint: str, index: int, group: DistributionGroup | None = DistributionGroup.UNALLOCATED) -> Bridge:
    return Bridge(
        fingerprint=fingerprint,
        address=IPv4Address(0x0A000000 + index + 1),
        port=9001,
        distribution_group=group,
    )


@settings(max_examples=100, deadline=None)
@given(
    db_fps=st.sets(fingerprints, max_size=8),
    parsed_fps=st.sets(fingerprints, max_size=8),
)
def test_reconcile_keeps_exactly_the_relational_bridges(db_fps: set[str], parsed_fps: set[str]) -> None:
    """
    Property: the merged registry's fingerprints are the relational ones.

    Invariants:
    - Parsed-only fingerprints are dropped
    - Shared fingerprints take the parsed transports
    """
    db_registry = Registry(_bridge(fp, i) for i, fp in enumerate(sorted(db_fps)))
    parsed_registry = Registry(
        Bridge(
            fingerprint=fp,
            transports=[Transport(type="obfs4", address=IPv4Address("192.0.2.1"), port=i, fingerprint=fp)],
        )
        for i, fp in enumerate(sorted(parsed_fps))
    )

    merged = reconcile(db_registry, parsed_registry)

    assert set(merged) == db_fps
    for fp in db_fps & parsed_fps:
        assert merged[fp].transports == parsed_registry[fp].transports
    for fp in db_fps - parsed_fps:
        assert merged[fp].transports == []


@settings(max_examples=100, deadline=None)
@given(
    groups=st.lists(st.sampled_from([*DistributionGroup, None]), max_size=20),
    max_bridges=st.integers(min_value=1, max_value=6),
    seed=st.integers(),
)
def test_selection_is_bounded_and_unallocated(groups, max_bridges: int, seed: int) -> None:
    """
    Property: answers never exceed the bound and only hold unallocated bridges.

    Invariants:
    - len(answer) == min(max_bridges, eligible)
    - Every endpoint belongs to an unallocated bridge
    """
    bridges = [_bridge(f"{i:040X}", i, group) for i, group in enumerate(groups)]
    distributor = Distributor(
        RegistryStore(Registry(bridges)), b"key", max_bridges=max_bridges, rng=random.Random(seed)
    )

    answer = distributor.select(ProbeRequest(client_id="", probe_type="", country_code=""))

    eligible = {b.fingerprint for b in bridges if b.distribution_group is DistributionGroup.UNALLOCATED}
    assert len(answer) == min(max_bridges, len(eligible))
    assert {endpoint.fingerprint for endpoint in answer.values()} <= eligible


@settings(max_examples=100, deadline=None)
@given(
    key=st.binary(min_size=1, max_size=64),
    address=st.ip_addresses(),
    port=st.integers(min_value=0, max_value=65535),
    protocol=st.sampled_from(["tcp", "udp"]),
)
def test_derived_ids_are_stable_hex(key: bytes, address, port: int, protocol: str) -> None:
    """
    Property: identifiers are deterministic 64-character lowercase hex strings.
    """
    three_tuple = ThreeTuple(address, port, protocol)
    first = derive_id(key, three_tuple)

    assert first == derive_id(key, ThreeTuple(address, port, protocol))
    assert len(first) == 64
    assert set(first) <= set("0123456789abcdef")
