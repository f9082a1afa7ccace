"""
Key/value store abstraction for process-wide mutable state.

Sessions and preference links are both kept behind this interface so the
application can be handed a different backing store (and tests an
in-memory one with controllable timing).  Read-modify-write sequences
must be wrapped in ``async with store.lock(key)``.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Generic, List, Optional, Tuple, TypeVar

V = TypeVar("V")


class KeyValueStore(ABC, Generic[V]):
    """get / set / delete plus a per-key lock."""

    @abstractmethod
    async def get(self, key: str) -> Optional[V]:
        ...

    @abstractmethod
    async def set(self, key: str, value: V) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove *key*. Returns False if it was not present."""
        ...

    @abstractmethod
    async def values(self) -> List[V]:
        """All live values in insertion order."""
        ...

    @abstractmethod
    def lock(self, key: str) -> asyncio.Lock:
        """Lock serialising read-modify-write on *key*."""
        ...


class InMemoryStore(KeyValueStore[V]):
    """
    Dict-backed store.

    With ``ttl_seconds`` set, an entry expires a fixed time after it was
    first written; later writes to the same key do not extend it.  Expired
    entries are swept on write at most once per TTL period, so keys that are
    never read again do not accumulate.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._data: Dict[str, Tuple[float, V]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._next_sweep = 0.0

    def _expired(self, created: float) -> bool:
        return self._ttl is not None and self._clock() - created >= self._ttl

    def _release_lock(self, key: str) -> None:
        # A held lock stays; its holder and waiters still rely on it.
        lk = self._locks.get(key)
        if lk is not None and not lk.locked():
            del self._locks[key]

    def _evict(self, key: str) -> None:
        self._data.pop(key, None)
        self._release_lock(key)

    def _sweep(self) -> None:
        if self._ttl is None:
            return
        now = self._clock()
        if now < self._next_sweep:
            return
        self._next_sweep = now + self._ttl
        for key, (created, _) in list(self._data.items()):
            if self._expired(created):
                self._data.pop(key, None)
        for key in [k for k in self._locks if k not in self._data]:
            self._release_lock(key)

    async def get(self, key: str) -> Optional[V]:
        entry = self._data.get(key)
        if entry is None:
            return None
        created, value = entry
        if self._expired(created):
            self._evict(key)
            return None
        return value

    async def set(self, key: str, value: V) -> None:
        self._sweep()
        entry = self._data.get(key)
        created = entry[0] if entry and not self._expired(entry[0]) else self._clock()
        self._data[key] = (created, value)

    async def delete(self, key: str) -> bool:
        existed = self._data.pop(key, None) is not None
        self._release_lock(key)
        return existed

    async def values(self) -> List[V]:
        live: List[V] = []
        for key, (created, value) in list(self._data.items()):
            if self._expired(created):
                self._evict(key)
                continue
            live.append(value)
        return live

    def lock(self, key: str) -> asyncio.Lock:
        lk = self._locks.get(key)
        if lk is None:
            lk = asyncio.Lock()
            self._locks[key] = lk
        return lk
