"""Database module - connection management, normalization and idempotent writes."""

from src.database.connection import (
    get_sync_client,
    get_sync_database,
    close_sync_client,
    get_async_client,
    get_async_database,
    close_async_client,
    ping_database,
    ping_async,
)
from src.database.writer import StoreWriter, WriteOutcome

__all__ = [
    "get_sync_client",
    "get_sync_database",
    "close_sync_client",
    "get_async_client",
    "get_async_database",
    "close_async_client",
    "ping_database",
    "ping_async",
    "StoreWriter",
    "WriteOutcome",
]
