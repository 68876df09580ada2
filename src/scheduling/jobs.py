"""
Master data orchestrator.

Wires the platform's recurring work into the Scheduler:

- government: scrape every registry source (after a startup delay)
- news: pull feeds, enrich pending articles, rebuild topic comparisons
- analytics: recompute the analytics snapshot
- health: collect health metrics

Usage:
    master = MasterDataOrchestrator()
    master.start()
    ...
    await master.stop()
"""
import logging
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from src.analytics.aggregator import Aggregator
from src.analytics.health import HealthMonitor
from src.config.settings import settings
from src.database.connection import get_async_database
from src.enrichment.client import TextEnrichmentClient
from src.enrichment.enricher import ArticleEnricher
from src.ingestion.fetcher import Fetcher
from src.ingestion.news import NewsIngester
from src.ingestion.orchestrator import DataOrchestrator
from src.models.source import NewsSource
from src.scheduling.scheduler import ScheduledJob, Scheduler

JOB_GOVERNMENT = "government"
JOB_NEWS = "news"
JOB_ANALYTICS = "analytics"
JOB_HEALTH = "health"

# Order used by force_data_refresh
REFRESH_ORDER = [JOB_GOVERNMENT, JOB_NEWS, JOB_ANALYTICS]


class MasterDataOrchestrator:
    """
    Owns every recurring job and reports on their health.
    """

    def __init__(
        self,
        db: Optional[AsyncIOMotorDatabase] = None,
        orchestrator: Optional[DataOrchestrator] = None,
        news_sources: Optional[List[NewsSource]] = None,
        enrichment_client: Optional[TextEnrichmentClient] = None,
        enabled: Optional[bool] = None,
        jobs: Optional[List[str]] = None
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.db = db if db is not None else get_async_database()
        self.orchestrator = orchestrator or DataOrchestrator(db=self.db)
        self.news_sources = news_sources
        self.enricher = ArticleEnricher(self.db, client=enrichment_client)
        self.aggregator = Aggregator(self.db)
        self.health_monitor = HealthMonitor(self.db)
        self.scheduler = Scheduler(self.build_jobs(jobs), enabled=enabled)

    def build_jobs(self, names: Optional[List[str]] = None) -> List[ScheduledJob]:
        """
        The recurring jobs, with intervals from settings.

        Args:
            names: Only build these jobs (default: all)

        Raises:
            ValueError: If a name is not one of the jobs
        """
        jobs = [
            ScheduledJob(
                name=JOB_GOVERNMENT,
                func=self.sync_government,
                interval_seconds=settings.GOVERNMENT_SYNC_INTERVAL_MINUTES * 60,
                initial_delay_seconds=settings.STARTUP_DELAY_SECONDS,
            ),
            ScheduledJob(
                name=JOB_NEWS,
                func=self.sync_news,
                interval_seconds=settings.NEWS_SYNC_INTERVAL_MINUTES * 60,
            ),
            ScheduledJob(
                name=JOB_ANALYTICS,
                func=self.recompute_analytics,
                interval_seconds=settings.ANALYTICS_INTERVAL_MINUTES * 60,
                initial_delay_seconds=settings.STARTUP_DELAY_SECONDS,
            ),
            ScheduledJob(
                name=JOB_HEALTH,
                func=self.collect_health,
                interval_seconds=settings.HEALTH_INTERVAL_MINUTES * 60,
            ),
        ]
        if names is None:
            return jobs

        unknown = set(names) - {job.name for job in jobs}
        if unknown:
            raise ValueError(f"Unknown jobs: {', '.join(sorted(unknown))}")
        return [job for job in jobs if job.name in names]

    # ========================================================================
    # Job bodies
    # ========================================================================

    async def sync_government(self) -> Dict[str, Any]:
        summary = await self.orchestrator.run_once()
        return summary.to_dict()

    async def sync_news(self) -> Dict[str, Any]:
        """Ingest feeds, then enrich and compare what came in."""
        async with Fetcher() as fetcher:
            ingester = NewsIngester(fetcher, db=self.db, news_sources=self.news_sources)
            ingested = await ingester.run()

        enriched = await self.enricher.enrich_pending()
        topics = await self.enricher.build_topic_comparisons()
        return {
            "articles_inserted": ingested["inserted"],
            "feeds_failed": len(ingester.failures),
            "enrichment": enriched,
            "topic_comparisons": topics,
        }

    async def recompute_analytics(self) -> Dict[str, Any]:
        snapshot = await self.aggregator.recompute()
        return {"totals": snapshot.totals, "failed_sections": snapshot.failed_sections}

    async def collect_health(self) -> Dict[str, Any]:
        report = await self.health_monitor.collect_metrics(
            scraper_status=self.orchestrator.status(),
            job_status=self.job_health(),
        )
        return {"status": report.status.value, "issues": report.issues}

    # ========================================================================
    # Control and status
    # ========================================================================

    def start(self):
        self.scheduler.start()

    async def stop(self):
        await self.scheduler.stop()

    def job_health(self) -> Dict[str, Dict[str, Any]]:
        return self.scheduler.status()

    def get_system_status(self) -> Dict[str, Any]:
        """Scheduler, job and scraper state in one dict."""
        jobs = self.job_health()
        return {
            "scheduler_running": self.scheduler.is_running,
            "jobs": jobs,
            "jobs_in_error": [name for name, job in jobs.items() if job["status"] == "error"],
            "scraper": self.orchestrator.status(),
        }

    async def force_data_refresh(self) -> Dict[str, bool]:
        """
        Run government, news and analytics now, one after another.

        Jobs left out of this orchestrator's schedule are skipped.

        Returns:
            Job name to whether it ran (False when it was already running)
        """
        self.logger.info("Forcing full data refresh")
        ran = {}
        for name in REFRESH_ORDER:
            if name in self.scheduler.jobs:
                ran[name] = await self.scheduler.run_now(name)
        return ran
