"""Holder of the currently published bridge registry."""

import threading

from wolpertinger.bridges.models import Registry


class RegistryStore:
    """
    Owns exactly one published registry.

    The refresh task publishes a new registry with :meth:`replace`; request
    handlers take a :meth:`snapshot` and iterate it after the lock is
    released. Published registries are never modified, so handing out the
    reference is enough for a consistent view.
    """

    def __init__(self, registry: Registry | None = None):
        self._lock = threading.Lock()
        self._registry = registry if registry is not None else Registry()
        self._generation = 1 if registry is not None else 0

    def replace(self, registry: Registry) -> Registry:
        """Atomically publish ``registry`` and return the previous one."""
        with self._lock:
            previous = self._registry
            self._registry = registry
            self._generation += 1
        return previous

    def snapshot(self) -> Registry:
        """Return the current registry; empty before the first publish."""
        with self._lock:
            return self._registry

    def snapshot_with_generation(self) -> tuple[int, Registry]:
        with self._lock:
            return self._generation, self._registry

    @property
    def generation(self) -> int:
        """Number of registries published so far."""
        with self._lock:
            return self._generation

    @property
    def is_populated(self) -> bool:
        return self.generation > 0
