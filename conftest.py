"""
Root pytest fixtures shared by every package's tests.

Provides:
    - mock_redis_client: dict-backed AsyncMock implementing the Redis commands
      the record store uses (strings with NX, sorted sets, sets, MULTI/EXEC pipelines)
    - record_store: RecordStore over mock_redis_client
"""

import copy

import pytest
from unittest.mock import AsyncMock, MagicMock

from shared.record_store import RecordStore


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests with every collaborator mocked")
    config.addinivalue_line("markers", "integration: tests wiring several components together")


def _parse_bound(bound):
    """Redis score bound: -inf, +inf, 12.5 or (12.5 (exclusive)."""
    if isinstance(bound, (int, float)):
        return float(bound), False
    bound = str(bound)
    exclusive = bound.startswith("(")
    if exclusive:
        bound = bound[1:]
    return float(bound), exclusive


class _FakePipeline:
    """MULTI/EXEC stand-in: queued commands run on execute(), all or nothing."""

    def __init__(self, client):
        self.client = client
        self.queued = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.queued = []
        return False

    def __getattr__(self, command):
        def queue(*args, **kwargs):
            self.queued.append((command, args, kwargs))
            return self
        return queue

    async def execute(self):
        buckets = (self.client.strings, self.client.zsets, self.client.sets)
        snapshot = [copy.deepcopy(bucket) for bucket in buckets]
        try:
            results = []
            for command, args, kwargs in self.queued:
                results.append(await getattr(self.client, command)(*args, **kwargs))
            return results
        except Exception:
            for bucket, saved in zip(buckets, snapshot):
                bucket.clear()
                bucket.update(saved)
            raise
        finally:
            self.queued = []


def _make_fake_redis():
    strings = {}
    zsets = {}
    sets = {}

    client = AsyncMock()
    client.strings = strings
    client.zsets = zsets
    client.sets = sets

    async def get(key):
        return strings.get(key)

    async def set_(key, value, nx=False, ex=None, **kwargs):
        if nx and key in strings:
            return None
        strings[key] = value
        return True

    async def delete(*keys):
        removed = 0
        for key in keys:
            for bucket in (strings, zsets, sets):
                if key in bucket:
                    del bucket[key]
                    removed += 1
        return removed

    async def zadd(name, mapping, **kwargs):
        zset = zsets.setdefault(name, {})
        added = sum(1 for member in mapping if member not in zset)
        zset.update({member: float(score) for member, score in mapping.items()})
        return added

    async def zrem(name, *members):
        zset = zsets.get(name, {})
        removed = 0
        for member in members:
            if member in zset:
                del zset[member]
                removed += 1
        return removed

    async def zrangebyscore(name, min_score, max_score, **kwargs):
        low, low_exclusive = _parse_bound(min_score)
        high, high_exclusive = _parse_bound(max_score)

        def in_range(score):
            above = score > low if low_exclusive else score >= low
            below = score < high if high_exclusive else score <= high
            return above and below

        items = sorted(zsets.get(name, {}).items(), key=lambda item: (item[1], item[0]))
        return [member for member, score in items if in_range(score)]

    async def sadd(name, *values):
        bucket = sets.setdefault(name, set())
        added = sum(1 for value in values if value not in bucket)
        bucket.update(values)
        return added

    async def smembers(name):
        return set(sets.get(name, set()))

    client.get = AsyncMock(side_effect=get)
    client.set = AsyncMock(side_effect=set_)
    client.delete = AsyncMock(side_effect=delete)
    client.zadd = AsyncMock(side_effect=zadd)
    client.zrem = AsyncMock(side_effect=zrem)
    client.zrangebyscore = AsyncMock(side_effect=zrangebyscore)
    client.sadd = AsyncMock(side_effect=sadd)
    client.smembers = AsyncMock(side_effect=smembers)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock(return_value=None)
    client.pipeline = MagicMock(side_effect=lambda transaction=True: _FakePipeline(client))

    return client


@pytest.fixture
def mock_redis_client():
    """Dict-backed async Redis stand-in (decode_responses=True semantics)."""
    return _make_fake_redis()


@pytest.fixture
def record_store(mock_redis_client):
    return RecordStore(mock_redis_client, namespace="test")
