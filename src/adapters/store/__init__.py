"""Key-value store adapters - In-memory and PostgreSQL implementations."""

from .memory import InMemoryBlobStores, InMemoryKeyValueStore
from .postgres import PostgresBlobStores, PostgresKeyValueStore, run_migrations

__all__ = [
    "InMemoryBlobStores",
    "InMemoryKeyValueStore",
    "PostgresBlobStores",
    "PostgresKeyValueStore",
    "run_migrations",
]
