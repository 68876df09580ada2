"""
MongoDB connection management.

Provides both sync (pymongo) and async (motor) clients.
- Use the sync client for one-off CLI checks
- Use the async client for ingestion, enrichment, analytics and the scheduler
"""

from pymongo import MongoClient
from pymongo.database import Database
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from src.config.settings import settings


# ============================================================
# Synchronous Client (for CLI connectivity checks)
# ============================================================

_sync_client: MongoClient | None = None


def get_sync_client() -> MongoClient:
    """Get or create the synchronous MongoDB client."""
    global _sync_client
    if _sync_client is None:
        _sync_client = MongoClient(settings.MONGODB_URI, serverSelectionTimeoutMS=5000)
    return _sync_client


def get_sync_database() -> Database:
    """Get the synchronous database instance."""
    client = get_sync_client()
    return client[settings.MONGODB_DATABASE]


def close_sync_client() -> None:
    """Close the synchronous client connection."""
    global _sync_client
    if _sync_client is not None:
        _sync_client.close()
        _sync_client = None


# ============================================================
# Asynchronous Client (pipelines and scheduled jobs)
# ============================================================

_async_client: AsyncIOMotorClient | None = None


def get_async_client() -> AsyncIOMotorClient:
    """Get or create the asynchronous MongoDB client."""
    global _async_client
    if _async_client is None:
        _async_client = AsyncIOMotorClient(settings.MONGODB_URI)
    return _async_client


def get_async_database() -> AsyncIOMotorDatabase:
    """Get the asynchronous database instance."""
    client = get_async_client()
    return client[settings.MONGODB_DATABASE]


async def close_async_client() -> None:
    """Close the asynchronous client connection."""
    global _async_client
    if _async_client is not None:
        _async_client.close()
        _async_client = None


# ============================================================
# Connectivity checks
# ============================================================

def ping_database() -> bool:
    """
    Check that we can reach MongoDB.

    Returns:
        True if the server answered ping, raises exception otherwise.
    """
    client = get_sync_client()
    # The ping command is lightweight and confirms connectivity
    result = client.admin.command("ping")
    return result.get("ok") == 1.0


async def ping_async(db: AsyncIOMotorDatabase) -> bool:
    """Async ping against the database's client; True if the server answered."""
    result = await db.command("ping")
    return result.get("ok") == 1.0
