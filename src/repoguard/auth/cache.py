"""Process-wide caches for App assertions and installation credentials."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Generic, TypeVar

from repoguard.models.credentials import utcnow

T = TypeVar("T")


class CredentialCache(ABC, Generic[T]):
    """Keyed store of short-lived credentials.

    Reads never block. Callers that intend to refresh an entry take
    ``lock(key)`` first and re-check ``get`` once they hold it, so concurrent
    requests for the same key mint at most one replacement.
    """

    @abstractmethod
    def get(self, key: str) -> T | None:
        """Return the cached credential, or None if absent or expiring."""
        ...

    @abstractmethod
    def put(self, key: str, credential: T, expires_at: datetime) -> None:
        ...

    @abstractmethod
    def lock(self, key: str) -> asyncio.Lock:
        """Return the refresh lock for ``key``."""
        ...

    def invalidate(self, key: str) -> None:
        """Drop ``key``; a no-op unless the cache stores entries."""


@dataclass
class _Entry(Generic[T]):
    credential: T
    expires_at: datetime


class InMemoryCredentialCache(CredentialCache[T]):
    """Dict-backed cache that treats entries as expired ``skew`` early."""

    def __init__(
        self,
        skew: timedelta = timedelta(seconds=60),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._skew = skew
        self._clock = clock
        self._entries: dict[str, _Entry[T]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() + self._skew >= entry.expires_at:
            self._entries.pop(key, None)
            return None
        return entry.credential

    def put(self, key: str, credential: T, expires_at: datetime) -> None:
        self._entries[key] = _Entry(credential=credential, expires_at=expires_at)

    def lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


class NullCredentialCache(CredentialCache[T]):
    """Always-refresh cache: nothing is stored and locks are never shared."""

    def get(self, key: str) -> T | None:
        return None

    def put(self, key: str, credential: T, expires_at: datetime) -> None:
        return None

    def lock(self, key: str) -> asyncio.Lock:
        return asyncio.Lock()
