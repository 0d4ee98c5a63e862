"""Name-keyed registry of synthesized types.

Entries live for the lifetime of the registry and are never evicted or
replaced. Lookups of existing names never wait on a synthesis; creating a
name runs the factory under a lock owned by that name alone, so concurrent
requests for the same name wait for one synthesis and then observe its
result while other names proceed in parallel. Hit and miss counters are
updated under their own lock.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .logging import get_logger

logger = get_logger("registry")

T = TypeVar("T")


@dataclass
class RegistryStats:
    """Statistics for registry lookups."""

    hits: int = 0
    misses: int = 0
    entries: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "entries": self.entries,
            "hit_rate": f"{self.hit_rate:.2%}",
        }


class TypeRegistry(Generic[T]):
    """Registry mapping names to synthesized entries."""

    def __init__(self, kind: str = "type") -> None:
        self.kind = kind
        self._entries: dict[str, T] = {}
        self._lock = threading.Lock()
        self._name_locks: dict[str, threading.Lock] = {}
        self._stats = RegistryStats()
        self._stats_lock = threading.Lock()

    @property
    def stats(self) -> RegistryStats:
        with self._stats_lock:
            self._stats.entries = len(self._entries)
        return self._stats

    def _record(self, hit: bool) -> None:
        with self._stats_lock:
            if hit:
                self._stats.hits += 1
            else:
                self._stats.misses += 1

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def names(self) -> list[str]:
        return list(self._entries)

    def get(self, name: str) -> T | None:
        """Get an entry by name, or None."""
        return self._entries.get(name)

    def _lock_for(self, name: str) -> threading.Lock:
        with self._lock:
            lock = self._name_locks.get(name)
            if lock is None:
                lock = self._name_locks[name] = threading.Lock()
            return lock

    def get_or_create(self, name: str, factory: Callable[[], T]) -> T:
        """Get an entry, creating it with factory on first request.

        The factory runs at most once per name; if it raises, nothing is
        stored and the next request tries again.
        """
        entry = self._entries.get(name)
        if entry is not None:
            self._record(hit=True)
            return entry

        with self._lock_for(name):
            entry = self._entries.get(name)
            if entry is not None:
                self._record(hit=True)
                return entry

            self._record(hit=False)
            logger.debug(f"Creating {self.kind}", name=name)
            entry = factory()
            self._entries[name] = entry
            return entry
