"""Tests for the credential caches."""

from datetime import datetime, timedelta, timezone

import pytest

from repoguard.auth.cache import InMemoryCredentialCache, NullCredentialCache


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))


def test_in_memory_returns_fresh_entry(clock):
    cache = InMemoryCredentialCache(skew=timedelta(seconds=60), clock=clock)
    cache.put("4242", "token", clock.now + timedelta(minutes=10))
    assert cache.get("4242") == "token"
    assert cache.get("other") is None
    assert len(cache) == 1


def test_in_memory_expires_entries_skew_early(clock):
    cache = InMemoryCredentialCache(skew=timedelta(seconds=60), clock=clock)
    expires_at = clock.now + timedelta(minutes=10)
    cache.put("4242", "token", expires_at)

    clock.now = expires_at - timedelta(seconds=61)
    assert cache.get("4242") == "token"

    clock.now = expires_at - timedelta(seconds=60)
    assert cache.get("4242") is None
    assert len(cache) == 0


def test_in_memory_invalidate(clock):
    cache = InMemoryCredentialCache(clock=clock)
    cache.put("a", "token", clock.now + timedelta(hours=1))
    cache.invalidate("a")
    cache.invalidate("missing")
    assert cache.get("a") is None


@pytest.mark.asyncio
async def test_in_memory_lock_is_shared_per_key():
    cache = InMemoryCredentialCache()
    assert cache.lock("a") is cache.lock("a")
    assert cache.lock("a") is not cache.lock("b")


@pytest.mark.asyncio
async def test_null_cache_never_stores():
    cache = NullCredentialCache()
    cache.put("a", "token", datetime.now(timezone.utc) + timedelta(hours=1))
    assert cache.get("a") is None
    assert cache.lock("a") is not cache.lock("a")
