"""Tests for publishing registries and selecting from them concurrently."""

import random
import threading

from tests.helpers.factories import FP_A, make_bridge, make_registry
from wolpertinger.bridges.distributor import Distributor, ProbeRequest
from wolpertinger.bridges.models import Registry
from wolpertinger.bridges.store import RegistryStore


def test_empty_store():
    store = RegistryStore()
    assert store.generation == 0
    assert not store.is_populated
    assert len(store.snapshot()) == 0


def test_store_built_with_registry_is_populated():
    registry = make_registry(make_bridge(FP_A))
    store = RegistryStore(registry)
    assert store.generation == 1
    assert store.is_populated
    assert store.snapshot() is registry


def test_replace_publishes_and_returns_previous():
    store = RegistryStore()
    first = make_registry(make_bridge(FP_A))
    second = Registry()

    assert len(store.replace(first)) == 0
    assert store.replace(second) is first
    assert store.snapshot_with_generation() == (2, second)


def test_snapshot_survives_replace():
    first = make_registry(make_bridge(FP_A))
    store = RegistryStore(first)

    snapshot = store.snapshot()
    store.replace(Registry())

    assert snapshot is first
    assert list(snapshot) == [FP_A]


def _generation_registry(marker: int) -> Registry:
    # Every bridge of one generation listens on the same port.
    return make_registry(
        *(make_bridge(f"{marker:08d}{i:032d}", address=f"10.0.{i}.1", port=marker) for i in range(20))
    )


def test_selection_never_mixes_generations():
    store = RegistryStore(_generation_registry(1))
    distributor = Distributor(store, b"key", max_bridges=5, rng=random.Random(7))
    request = ProbeRequest(client_id="", probe_type="", country_code="")
    stop = threading.Event()
    mixed: list[set[int]] = []

    def publisher():
        marker = 2
        while True:
            store.replace(_generation_registry(marker))
            if stop.is_set():
                break
            marker = marker % 1000 + 1

    def reader():
        for _ in range(500):
            ports = {endpoint.port for endpoint in distributor.select(request).values()}
            if len(ports) != 1:
                mixed.append(ports)

    writer = threading.Thread(target=publisher)
    readers = [threading.Thread(target=reader) for _ in range(4)]
    writer.start()
    for t in readers:
        t.start()
    for t in readers:
        t.join()
    stop.set()
    writer.join()

    assert mixed == []
    assert store.generation > 1
