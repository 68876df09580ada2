"""
Scraping orchestrator.

Walks the source registry one source at a time:

    Idle -> Running(source_index) -> Completed | PartiallyFailed

Each source is scraped by its own GovernmentSourceIngester. A source that
fails (retries exhausted, bad markup, database trouble) is recorded and the
run moves on. Between sources the orchestrator waits 60 / rate_limit seconds.

Usage:
    orchestrator = DataOrchestrator()
    summary = await orchestrator.run_once()
    print(summary.status, summary.records_written)
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from src.database.connection import get_async_database
from src.database.writer import StoreWriter
from src.ingestion.fetcher import Fetcher
from src.ingestion.government import GovernmentSourceIngester
from src.ingestion.retry import RetryPolicy
from src.ingestion.sources import SOURCE_REGISTRY
from src.models.source import Source


class RunStatus(str, Enum):
    """State of the orchestrator's current or last run."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially_failed"


class SourceStatus(str, Enum):
    """How one source fared in a run."""
    SUCCEEDED = "succeeded"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class SourceResult:
    """Outcome of scraping one source."""
    source_name: str
    status: SourceStatus
    stats: Dict[str, Any] = field(default_factory=dict)
    failed_urls: List[str] = field(default_factory=list)
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def records_written(self) -> int:
        return self.stats.get("inserted", 0) + self.stats.get("updated", 0)

    @property
    def errors(self) -> int:
        return self.stats.get("errors", 0) + len(self.failed_urls) + (1 if self.error else 0)


@dataclass
class RunSummary:
    """Everything a run did, source by source."""
    started_at: datetime
    completed_at: Optional[datetime] = None
    status: RunStatus = RunStatus.RUNNING
    results: List[SourceResult] = field(default_factory=list)

    @property
    def records_written(self) -> int:
        return sum(result.records_written for result in self.results)

    @property
    def failed_sources(self) -> List[str]:
        return [r.source_name for r in self.results if r.status != SourceStatus.SUCCEEDED]

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "status": self.status.value,
            "records_written": self.records_written,
            "failed_sources": self.failed_sources,
            "sources": [
                {
                    "name": r.source_name,
                    "status": r.status.value,
                    "records": r.records_written,
                    "errors": r.errors,
                    "duration_seconds": round(r.duration_seconds, 2),
                }
                for r in self.results
            ],
        }


class DataOrchestrator:
    """
    Runs every registry source through its ingester, sequentially.

    Only one source is in flight at a time; the database and fetcher are
    shared across sources.
    """

    def __init__(
        self,
        db: Optional[AsyncIOMotorDatabase] = None,
        sources: Optional[List[Source]] = None,
        fetcher: Optional[Fetcher] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """
        Args:
            db: Database to write to (default: the shared async database)
            sources: Sources to scrape (default: the whole registry)
            fetcher: HTTP fetcher (default: one created per run)
            policy: Retry policy for every fetch (default from settings)
            sleep: Awaitable used for the between-source delay
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self.db = db
        self.sources = sources if sources is not None else SOURCE_REGISTRY
        self.fetcher = fetcher
        self.policy = policy
        self.sleep = sleep

        self.state = RunStatus.IDLE
        self.current_index: Optional[int] = None
        self.last_started_at: Optional[datetime] = None
        self.last_completed_at: Optional[datetime] = None
        self.last_summary: Optional[RunSummary] = None
        self._run_sources: List[Source] = self.sources
        self._indexes_ready = False

    def _database(self) -> AsyncIOMotorDatabase:
        if self.db is None:
            self.db = get_async_database()
        return self.db

    async def _ensure_indexes(self, db: AsyncIOMotorDatabase):
        if self._indexes_ready:
            return
        try:
            await StoreWriter(db).ensure_indexes()
            self._indexes_ready = True
        except PyMongoError as e:
            self.logger.warning(f"Could not ensure indexes, continuing: {e}")

    async def _run_source(self, source: Source, fetcher: Fetcher, db: AsyncIOMotorDatabase) -> SourceResult:
        """Scrape one source; never raises."""
        started = time.monotonic()
        ingester = GovernmentSourceIngester(source, fetcher, db=db, policy=self.policy)

        try:
            stats = await ingester.run()
        except Exception as e:
            self.logger.error(f"Source {source.name} failed: {e}", exc_info=True)
            return SourceResult(
                source_name=source.name,
                status=SourceStatus.FAILED,
                stats=dict(ingester.stats),
                error=str(e),
                duration_seconds=time.monotonic() - started,
            )

        failed_urls = [failure.url for failure in ingester.failures]
        if ingester.endpoints_total and ingester.endpoints_failed == ingester.endpoints_total:
            status = SourceStatus.FAILED
        elif failed_urls or stats.get("errors"):
            status = SourceStatus.PARTIAL
        else:
            status = SourceStatus.SUCCEEDED

        return SourceResult(
            source_name=source.name,
            status=status,
            stats=dict(stats),
            failed_urls=failed_urls,
            duration_seconds=time.monotonic() - started,
        )

    async def run_once(self, sources: Optional[List[Source]] = None) -> RunSummary:
        """
        Scrape every source once.

        Args:
            sources: Override the configured sources for this run only

        Returns:
            RunSummary with one SourceResult per source
        """
        sources = sources if sources is not None else self.sources
        summary = RunSummary(started_at=datetime.now(timezone.utc))

        self.state = RunStatus.RUNNING
        self.current_index = None
        self._run_sources = sources
        self.last_started_at = summary.started_at
        self.logger.info(f"Starting scraping run over {len(sources)} sources")

        owns_fetcher = self.fetcher is None
        fetcher = self.fetcher or Fetcher()

        try:
            db = self._database()
            await self._ensure_indexes(db)

            for index, source in enumerate(sources):
                self.current_index = index
                self.logger.info(f"[{index + 1}/{len(sources)}] Scraping {source}")

                result = await self._run_source(source, fetcher, db)
                summary.results.append(result)
                self.logger.info(
                    f"{source.name}: {result.status.value}, "
                    f"{result.records_written} records, {result.errors} errors"
                )

                if index < len(sources) - 1:
                    await self.sleep(source.request_delay_seconds)
        finally:
            if owns_fetcher:
                await fetcher.close()

            summary.completed_at = datetime.now(timezone.utc)
            failed = len(summary.failed_sources)
            summary.status = RunStatus.PARTIALLY_FAILED if failed else RunStatus.COMPLETED
            self.state = summary.status
            self.current_index = None
            self.last_completed_at = summary.completed_at
            self.last_summary = summary

        self.logger.info(
            f"Run {summary.status.value}: {summary.records_written} records from "
            f"{len(sources) - failed}/{len(sources)} sources in {summary.duration_seconds:.1f}s"
        )
        return summary

    async def run_comprehensive_scraping(self) -> RunSummary:
        """Scrape the whole configured registry (on-demand trigger)."""
        return await self.run_once()

    def status(self) -> Dict[str, Any]:
        """Current state for the health monitor and CLI."""
        sources = self._run_sources
        return {
            "state": self.state.value,
            "current_source_index": self.current_index,
            "current_source": sources[self.current_index].name if self.current_index is not None else None,
            "total_sources": len(sources),
            "last_started_at": self.last_started_at,
            "last_completed_at": self.last_completed_at,
            "last_summary": self.last_summary.to_dict() if self.last_summary else None,
        }
