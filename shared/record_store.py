"""
Redis-backed record store.

Records are JSON documents stored under ``<namespace>:<table>:<key>``.
Timestamp filtering ("created before X", "expires before Y") goes through
sorted-set indexes under ``<namespace>:index:<name>`` scored by epoch seconds.

Uniqueness is enforced by Redis itself: ``insert`` uses ``SET ... NX`` so two
concurrent inserts of the same key cannot both succeed. Writes that must land
together are queued on a ``RecordBatch`` and committed as one MULTI/EXEC.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class RecordStoreError(Exception):
    """Persistence layer unavailable or returned garbage."""


class DuplicateRecordError(RecordStoreError):
    """Insert rejected because the key already exists."""

    def __init__(self, table: str, key: str):
        super().__init__(f"{table} record already exists: {key}")
        self.table = table
        self.key = key


class RecordStore:
    """Insert/update/select/delete on JSON records plus timestamp indexes."""

    def __init__(self, client: redis.Redis, namespace: str = "companion"):
        self.client = client
        self.namespace = namespace

    def _key(self, table: str, key: str) -> str:
        return f"{self.namespace}:{table}:{key}"

    def _index_key(self, index: str) -> str:
        return f"{self.namespace}:index:{index}"

    def _set_key(self, name: str) -> str:
        return f"{self.namespace}:set:{name}"

    async def get(self, table: str, key: str) -> Optional[Dict[str, Any]]:
        try:
            raw = await self.client.get(self._key(table, key))
        except redis.RedisError as e:
            raise RecordStoreError(f"Failed to read {table}/{key}: {e}") from e

        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise RecordStoreError(f"Corrupted {table} record {key}: {e}") from e

    async def insert(self, table: str, key: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a record, failing if one already exists under ``key``.

        Raises:
            DuplicateRecordError: The key is taken
            RecordStoreError: Redis failure
        """
        try:
            created = await self.client.set(self._key(table, key), json.dumps(record, default=str), nx=True)
        except redis.RedisError as e:
            raise RecordStoreError(f"Failed to insert {table}/{key}: {e}") from e

        if not created:
            raise DuplicateRecordError(table, key)
        return record

    async def upsert(self, table: str, key: str, record: Dict[str, Any]) -> Dict[str, Any]:
        try:
            await self.client.set(self._key(table, key), json.dumps(record, default=str))
        except redis.RedisError as e:
            raise RecordStoreError(f"Failed to upsert {table}/{key}: {e}") from e
        return record

    async def update(self, table: str, key: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Merge ``changes`` into an existing record.

        Returns:
            The updated record, or None when no record exists (nothing is written)
        """
        record = await self.get(table, key)
        if record is None:
            return None
        record.update(changes)
        return await self.upsert(table, key, record)

    async def delete(self, table: str, key: str) -> bool:
        try:
            removed = await self.client.delete(self._key(table, key))
        except redis.RedisError as e:
            raise RecordStoreError(f"Failed to delete {table}/{key}: {e}") from e
        return bool(removed)

    async def index_add(self, index: str, member: str, score: float) -> None:
        try:
            await self.client.zadd(self._index_key(index), {member: score})
        except redis.RedisError as e:
            raise RecordStoreError(f"Failed to index {member} in {index}: {e}") from e

    async def index_remove(self, index: str, member: str) -> None:
        try:
            await self.client.zrem(self._index_key(index), member)
        except redis.RedisError as e:
            raise RecordStoreError(f"Failed to unindex {member} from {index}: {e}") from e

    async def index_below(self, index: str, cutoff: float) -> List[str]:
        """Members whose score is strictly less than ``cutoff``."""
        try:
            return list(await self.client.zrangebyscore(self._index_key(index), "-inf", f"({cutoff}"))
        except redis.RedisError as e:
            raise RecordStoreError(f"Failed to query index {index}: {e}") from e

    async def set_add(self, name: str, member: str) -> None:
        try:
            await self.client.sadd(self._set_key(name), member)
        except redis.RedisError as e:
            raise RecordStoreError(f"Failed to add {member} to {name}: {e}") from e

    async def set_members(self, name: str) -> List[str]:
        try:
            return sorted(await self.client.smembers(self._set_key(name)))
        except redis.RedisError as e:
            raise RecordStoreError(f"Failed to read set {name}: {e}") from e

    # ------------------------------------------------------------------ #
    # Transactions
    # ------------------------------------------------------------------ #

    def batch(self) -> "RecordBatch":
        return RecordBatch(self)

    async def commit(self, batch: "RecordBatch") -> None:
        """
        Apply every queued write in one MULTI/EXEC transaction.

        Raises:
            RecordStoreError: Redis failure (nothing from the batch is applied)
        """
        if not batch.commands:
            return
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                for command, args in batch.commands:
                    getattr(pipe, command)(*args)
                await pipe.execute()
        except redis.RedisError as e:
            raise RecordStoreError(f"Failed to commit {len(batch.commands)} writes: {e}") from e


class RecordBatch:
    """
    Writes queued for a single ``RecordStore.commit``.

    Usage:
        batch = store.batch()
        batch.upsert("entitlements", user_id, record)
        batch.index_add("entitlements_by_expiry", user_id, expires_at)
        await store.commit(batch)
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self.commands: List[Tuple[str, tuple]] = []

    def upsert(self, table: str, key: str, record: Dict[str, Any]) -> "RecordBatch":
        self.commands.append(("set", (self.store._key(table, key), json.dumps(record, default=str))))
        return self

    def index_add(self, index: str, member: str, score: float) -> "RecordBatch":
        self.commands.append(("zadd", (self.store._index_key(index), {member: score})))
        return self

    def index_remove(self, index: str, member: str) -> "RecordBatch":
        self.commands.append(("zrem", (self.store._index_key(index), member)))
        return self

    def set_add(self, name: str, member: str) -> "RecordBatch":
        self.commands.append(("sadd", (self.store._set_key(name), member)))
        return self
