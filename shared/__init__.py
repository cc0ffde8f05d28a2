"""
Shared Utilities for the Companion Backend

Common building blocks used by every component:
- Redis client factory for the restricted and service credential levels
- JSON record store with store-level uniqueness and timestamp indexes
- Structured (JSON line) logging for pipeline events
- Bounded-timeout retry helper for external calls

Usage:
    from shared import RedisConfig, RedisClients, RecordStore

    clients = await RedisClients.connect(RedisConfig.from_env())
    store = RecordStore(clients.restricted, namespace="companion")
"""

from .redis_client import (
    RedisConfig,
    RedisClients,
    create_redis_client,
    ping_redis,
)

from .record_store import (
    RecordStore,
    RecordBatch,
    RecordStoreError,
    DuplicateRecordError,
)

from .structured_logger import StructuredLogger

from .retry import call_with_retry, TRANSIENT_ERRORS

__all__ = [
    # Redis client utilities
    "RedisConfig",
    "RedisClients",
    "create_redis_client",
    "ping_redis",
    # Record store
    "RecordStore",
    "RecordBatch",
    "RecordStoreError",
    "DuplicateRecordError",
    # Logging
    "StructuredLogger",
    # Retry
    "call_with_retry",
    "TRANSIENT_ERRORS",
]
