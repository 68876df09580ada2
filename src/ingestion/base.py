"""
Base ingester class with connection management.

Every ingester is fetch_data -> transform -> load. Items are processed one at
a time and each one is awaited to completion, so a failure in one item never
leaves another half-written. A bad item is counted and skipped; only errors
outside the item loop stop a run.
"""
from abc import ABC, abstractmethod
from typing import AsyncGenerator, TypeVar, Generic, Optional
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
import logging

from src.config.settings import settings
from src.database.writer import StoreWriter, WriteOutcome

T = TypeVar('T')


class BaseIngester(ABC, Generic[T]):
    """
    Base class for all data ingesters with proper async connection handling.

    Pass a database to share one client across ingesters; otherwise the
    ingester opens its own client in connect() and closes it in disconnect().
    """

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = db
        self.writer: Optional[StoreWriter] = None
        self._owns_client = False
        self.stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> dict:
        return {
            "processed": 0,
            "inserted": 0,
            "updated": 0,
            "skipped": 0,
            "errors": 0,
            "started_at": None,
            "completed_at": None
        }

    async def connect(self):
        """
        Initialize database connection and writer.

        Override this if you need custom connection logic.
        """
        if self.db is None:
            self.client = AsyncIOMotorClient(settings.MONGODB_URI)
            self.db = self.client[settings.MONGODB_DATABASE]
            self._owns_client = True
            self.logger.info(f"Connected to MongoDB: {settings.MONGODB_DATABASE}")
        if self.writer is None:
            self.writer = StoreWriter(self.db)

    async def disconnect(self):
        """Close the database connection if this ingester opened it"""
        if self._owns_client and self.client:
            self.client.close()
            self.client = None
            self.db = None
            self.writer = None
            self._owns_client = False
            self.logger.info("Disconnected from MongoDB")

    @abstractmethod
    async def fetch_data(self, **kwargs) -> AsyncGenerator[dict, None]:
        """
        Fetch data from external source.

        This should be an async generator that yields raw data items.

        Args:
            **kwargs: Parameters for fetching data

        Yields:
            Raw data dictionaries from the source
        """
        pass

    @abstractmethod
    async def transform(self, raw_data: dict) -> T:
        """
        Transform raw data to our model.

        Args:
            raw_data: Raw data dictionary from source

        Returns:
            Transformed data model

        Raises:
            ValueError: If the raw item is not a usable record
        """
        pass

    @abstractmethod
    async def load(self, item: T) -> WriteOutcome:
        """
        Load item into database (upsert).

        Args:
            item: Transformed data item

        Returns:
            What the write did
        """
        pass

    async def process_item(self, raw_item: dict):
        """
        Process a single item through the ETL pipeline.

        Args:
            raw_item: Raw data from source
        """
        self.stats["processed"] += 1

        try:
            item = await self.transform(raw_item)
        except ValueError as e:
            # Incomplete scrape rows are expected; drop them quietly
            self.stats["skipped"] += 1
            self.logger.debug(f"Skipping invalid item: {e}")
            return

        try:
            outcome = await self.load(item)
        except Exception as e:
            self.stats["errors"] += 1
            self.logger.error(f"Error processing item: {e}", exc_info=True)
            return

        if outcome == WriteOutcome.INSERTED:
            self.stats["inserted"] += 1
        elif outcome == WriteOutcome.UPDATED:
            self.stats["updated"] += 1
        elif outcome == WriteOutcome.SKIPPED:
            self.stats["skipped"] += 1
        else:
            self.stats["errors"] += 1

    async def run(self, **kwargs) -> dict:
        """
        Execute the full ETL pipeline with proper async handling.

        Args:
            **kwargs: Passed to fetch_data()

        Returns:
            Statistics dict with counts and timing
        """
        self.logger.info(f"Starting {self.__class__.__name__}...")
        self.reset_stats()
        self.stats["started_at"] = datetime.now(timezone.utc)

        try:
            # Connect to database
            await self.connect()

            # Await each item so writes finish before the next fetch
            async for raw_item in self.fetch_data(**kwargs):
                await self.process_item(raw_item)

        except KeyboardInterrupt:
            self.logger.warning("Ingestion interrupted by user")
            raise

        except Exception as e:
            self.logger.error(f"Fatal error during ingestion: {e}")
            raise

        finally:
            # Record completion time
            self.stats["completed_at"] = datetime.now(timezone.utc)

            # Log final statistics
            duration = self.stats["completed_at"] - self.stats["started_at"]
            self.logger.info(
                f"Ingestion complete. "
                f"Processed: {self.stats['processed']}, "
                f"Inserted: {self.stats['inserted']}, "
                f"Updated: {self.stats['updated']}, "
                f"Skipped: {self.stats['skipped']}, "
                f"Errors: {self.stats['errors']}, "
                f"Duration: {duration}"
            )

            # Close connection (now safe - all operations completed)
            await self.disconnect()

        return self.stats

    def reset_stats(self):
        """Reset statistics counters"""
        self.stats = self._empty_stats()
