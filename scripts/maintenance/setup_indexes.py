"""
Setup Database Indexes

Creates the unique natural-key indexes every idempotent write relies on,
plus the lookup indexes used by analytics.

Usage:
    # Create all indexes (synchronous - default)
    python scripts/maintenance/setup_indexes.py

    # Drop existing and recreate
    python scripts/maintenance/setup_indexes.py --drop

    # Just list existing indexes
    python scripts/maintenance/setup_indexes.py --list

    # Use async version (same code path as the scraper)
    python scripts/maintenance/setup_indexes.py --async
"""
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from pymongo import ASCENDING

from src.config.settings import settings
from src.database.connection import (
    close_async_client,
    close_sync_client,
    get_async_database,
    get_sync_database,
    ping_database,
)
from src.database.writer import LOOKUP_INDEXES, UNIQUE_INDEXES, StoreWriter


async def main_async(args):
    """Async version of main"""
    try:
        await StoreWriter(get_async_database()).ensure_indexes()
    finally:
        await close_async_client()


def list_indexes_sync(db):
    for collection in sorted(UNIQUE_INDEXES):
        print(f"\n📁 {collection}")
        for name, info in db[collection].index_information().items():
            unique = " (unique)" if info.get("unique") else ""
            keys = ", ".join(field for field, _ in info["key"])
            print(f"   • {name}: {keys}{unique}")


def create_indexes_sync(db, drop_existing: bool = False):
    collections = set(UNIQUE_INDEXES) | {collection for collection, _ in LOOKUP_INDEXES}

    if drop_existing:
        for collection in sorted(collections):
            db[collection].drop_indexes()
            print(f"   🗑️  Dropped indexes on {collection}")

    for collection, keys in UNIQUE_INDEXES.items():
        db[collection].create_index(
            [(key, ASCENDING) for key in keys],
            unique=True,
            name=f"unique_{'_'.join(keys)}",
        )
        print(f"   ✅ {collection}: unique ({', '.join(keys)})")

    for collection, key in LOOKUP_INDEXES:
        db[collection].create_index([(key, ASCENDING)], name=f"idx_{key}")
        print(f"   ✅ {collection}: {key}")


def main_sync(args):
    """Synchronous version of main"""
    db = get_sync_database()
    try:
        ping_database()
        if args.list:
            list_indexes_sync(db)
        else:
            create_indexes_sync(db, drop_existing=args.drop)
    finally:
        close_sync_client()


def main():
    import argparse

    parser = argparse.ArgumentParser(
        description=f"Create MongoDB indexes for {settings.APP_NAME}"
    )
    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop existing indexes before creating new ones"
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List existing indexes only (don't create)"
    )
    parser.add_argument(
        "--async",
        dest="use_async",
        action="store_true",
        help="Use the async writer (motor)"
    )

    args = parser.parse_args()

    print(f"🔧 {settings.APP_NAME} - Database Index Setup")
    print("=" * 60)
    print()

    if args.list:
        print("📋 Listing existing indexes...")
    else:
        print("⚙️  Creating database indexes...")
        if args.drop:
            print("⚠️  Will drop existing indexes first!")

    print()

    try:
        if args.use_async and not args.list:
            print("Using async connection (motor)...")
            asyncio.run(main_async(args))
        else:
            print("Using synchronous connection (pymongo)...")
            main_sync(args)

        print()
        print("✅ Index setup complete!")
        print()
        print("💡 Tips:")
        print("   • Unique indexes make repeated scrapes converge instead of duplicating")
        print("   • Run --list to verify indexes were created")

    except Exception as e:
        print(f"\n❌ Error: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
