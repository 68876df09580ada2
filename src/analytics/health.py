"""
Platform health monitor.

Collects database reachability, data-quality counters, scraper state and
scheduled job state into a HealthReport, and stores it.
"""
import logging
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from src.config.constants import (
    COLLECTION_ARTICLES,
    COLLECTION_BILLS,
    COLLECTION_HEALTH_SNAPSHOTS,
    COLLECTION_OFFICIALS,
    DEFAULT_BILL_CATEGORY,
    UNKNOWN_JURISDICTION,
)
from src.database.connection import ping_async
from src.database.writer import StoreWriter
from src.ingestion.orchestrator import RunStatus
from src.models.analytics import HealthReport, HealthStatus

# Enrichment backlog above which the platform counts as degraded
PENDING_ARTICLES_WARNING = 100


class HealthMonitor:
    """
    Builds HealthReports.

    Usage:
        monitor = HealthMonitor(db)
        report = await monitor.collect_metrics(scraper_status=orchestrator.status())
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.db = db
        self.writer = StoreWriter(db)

    async def database_metrics(self) -> Dict[str, Any]:
        """Ping result; raises PyMongoError when the server is unreachable."""
        connected = await ping_async(self.db)
        return {"connected": connected}

    async def data_quality(self) -> Dict[str, Any]:
        """Completeness counters over the stored records."""
        officials = self.db[COLLECTION_OFFICIALS]
        total_officials = await officials.count_documents({})
        with_email = await officials.count_documents({"contact.email": {"$exists": True, "$ne": None}})
        unknown = await officials.count_documents({"jurisdiction": UNKNOWN_JURISDICTION})

        total_bills = await self.db[COLLECTION_BILLS].count_documents({})
        uncategorized = await self.db[COLLECTION_BILLS].count_documents({"category": DEFAULT_BILL_CATEGORY})

        pending = await self.db[COLLECTION_ARTICLES].count_documents({"enriched": False})

        return {
            "officials": total_officials,
            "officials_with_email": with_email,
            "contact_coverage": round(with_email * 100 / total_officials, 1) if total_officials else 0.0,
            "officials_unknown_jurisdiction": unknown,
            "bills": total_bills,
            "bills_uncategorized": uncategorized,
            "articles_pending_enrichment": pending,
        }

    async def collect_metrics(
        self,
        scraper_status: Optional[Dict[str, Any]] = None,
        job_status: Optional[Dict[str, Any]] = None,
        save: bool = True
    ) -> HealthReport:
        """
        Assemble a HealthReport.

        Args:
            scraper_status: DataOrchestrator.status() output
            job_status: Per-job health from the master orchestrator
            save: Append the report to the health_snapshots collection

        Returns:
            The report. CRITICAL when the database is unreachable, DEGRADED
            for partial scraper failures, job errors or an enrichment backlog.
        """
        report = HealthReport(scraper=scraper_status or {}, jobs=job_status or {})

        try:
            report.database = await self.database_metrics()
            report.data_quality = await self.data_quality()
        except PyMongoError as e:
            self.logger.error(f"Database health check failed: {e}")
            report.database = {"connected": False, "error": str(e)}
            report.status = HealthStatus.CRITICAL
            report.issues.append("Database unreachable")
            return report

        if report.scraper.get("state") == RunStatus.PARTIALLY_FAILED.value:
            failed = (report.scraper.get("last_summary") or {}).get("failed_sources", [])
            report.issues.append(f"Last scraping run partially failed ({len(failed)} sources)")

        for name, job in report.jobs.items():
            if job.get("status") == "error":
                report.issues.append(f"Job {name} failed: {job.get('last_error')}")

        if report.data_quality.get("articles_pending_enrichment", 0) > PENDING_ARTICLES_WARNING:
            report.issues.append("Enrichment backlog above threshold")

        if report.issues:
            report.status = HealthStatus.DEGRADED

        if save:
            document = report.model_dump()
            document["status"] = report.status.value
            await self.writer.save_snapshot(COLLECTION_HEALTH_SNAPSHOTS, document)

        self.logger.info(f"Health: {report.status.value} ({len(report.issues)} issues)")
        return report
