"""
Master script to run all data pipelines in sequence.

This orchestrates the complete data sync workflow, running each pipeline
in the correct dependency order, or runs them forever on their schedules.

Usage:
    python scripts/pipelines/sync_all.py                          # Run everything once
    python scripts/pipelines/sync_all.py --only government        # Selective
    python scripts/pipelines/sync_all.py --skip enrichment        # Skip steps
    python scripts/pipelines/sync_all.py --sources "House of Commons"
    python scripts/pipelines/sync_all.py --dry-run                # See what would run
    python scripts/pipelines/sync_all.py --daemon                 # Run the scheduler
"""
import asyncio
import logging
import sys
from pathlib import Path
from datetime import datetime, timezone
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from src.config.settings import settings
from src.database.connection import close_async_client, get_async_database
from src.enrichment.enricher import ArticleEnricher
from src.analytics.aggregator import Aggregator
from src.ingestion.fetcher import Fetcher
from src.ingestion.news import NewsIngester
from src.ingestion.orchestrator import DataOrchestrator
from src.ingestion.sources import get_sources
from src.scheduling.jobs import (
    JOB_ANALYTICS,
    JOB_GOVERNMENT,
    JOB_HEALTH,
    JOB_NEWS,
    MasterDataOrchestrator,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Pipeline Definitions
# ============================================================================

class Pipeline:
    """Represents a single data pipeline"""

    def __init__(
        self,
        name: str,
        description: str,
        run_func,
        depends_on: List[str] = None
    ):
        self.name = name
        self.description = description
        self.run_func = run_func
        self.depends_on = depends_on or []


# Define all available pipelines
PIPELINES = {
    "government": Pipeline(
        name="government",
        description="Scrape officials, bills, votes, statements, committees and elections",
        run_func=lambda options: sync_government(options),
        depends_on=[]
    ),

    "news": Pipeline(
        name="news",
        description="Pull political coverage from news feeds",
        run_func=lambda options: sync_news(options),
        depends_on=[]
    ),

    "enrichment": Pipeline(
        name="enrichment",
        description="Classify pending articles and rebuild topic comparisons",
        run_func=lambda options: enrich_articles(options),
        depends_on=["news"]  # Enriches what news ingested
    ),

    "analytics": Pipeline(
        name="analytics",
        description="Recompute the analytics snapshot",
        run_func=lambda options: recompute_analytics(options),
        depends_on=["government", "enrichment"]
    ),
}

# Scheduled job that runs each pipeline under --daemon
PIPELINE_JOBS = {
    "government": JOB_GOVERNMENT,
    "news": JOB_NEWS,
    "enrichment": JOB_NEWS,
    "analytics": JOB_ANALYTICS,
}


# ============================================================================
# Individual Pipeline Functions
# ============================================================================

async def sync_government(options: dict) -> dict:
    """Scrape every selected registry source"""
    print("\n" + "="*60)
    print("🏛️ SCRAPING GOVERNMENT SOURCES")
    print("="*60)

    orchestrator = DataOrchestrator(db=get_async_database(), sources=options["sources"])
    summary = await orchestrator.run_once()

    for result in summary.results:
        marker = "✅" if result.status.value == "succeeded" else "⚠️ "
        print(f"   {marker} {result.source_name}: {result.records_written} records, {result.errors} errors")

    stats = {
        "processed": sum(r.stats.get("processed", 0) for r in summary.results),
        "inserted": sum(r.stats.get("inserted", 0) for r in summary.results),
        "updated": sum(r.stats.get("updated", 0) for r in summary.results),
        "errors": sum(r.errors for r in summary.results),
    }
    print(f"\n✅ Government: {stats['processed']} processed, "
          f"{stats['inserted']} new, {stats['updated']} updated "
          f"({len(summary.failed_sources)} sources with failures)")

    return stats


async def sync_news(options: dict) -> dict:
    """Pull political coverage from news feeds"""
    print("\n" + "="*60)
    print("📰 SYNCING NEWS")
    print("="*60)

    async with Fetcher() as fetcher:
        ingester = NewsIngester(fetcher, db=get_async_database())
        stats = await ingester.run()

    print(f"✅ News: {stats['processed']} processed, {stats['inserted']} new, "
          f"{ingester.filtered} non-political skipped")

    return stats


async def enrich_articles(options: dict) -> dict:
    """Classify pending articles and compare coverage by topic"""
    print("\n" + "="*60)
    print("🧠 ENRICHING ARTICLES")
    print("="*60)

    enricher = ArticleEnricher(get_async_database())
    stats = await enricher.enrich_pending()
    topics = await enricher.build_topic_comparisons()

    print(f"✅ Enrichment: {stats['enriched']} enriched "
          f"({stats['fallback']} with default labels), {topics} topic comparisons")

    return {"processed": stats["processed"], "inserted": stats["enriched"], "errors": stats["failed"]}


async def recompute_analytics(options: dict) -> dict:
    """Recompute the analytics snapshot"""
    print("\n" + "="*60)
    print("📊 RECOMPUTING ANALYTICS")
    print("="*60)

    snapshot = await Aggregator(get_async_database()).recompute()

    for name, count in snapshot.totals.items():
        print(f"   {name}: {count}")
    if snapshot.failed_sections:
        print(f"   ⚠️  Failed sections: {', '.join(snapshot.failed_sections)}")

    return {"processed": sum(snapshot.totals.values()), "inserted": 1, "errors": len(snapshot.failed_sections)}


# ============================================================================
# Main Orchestration
# ============================================================================

def resolve_dependencies(pipelines_to_run: List[str]) -> List[str]:
    """
    Order pipelines so each runs after any of its dependencies being run.

    Dependencies that were not selected are not added.

    Args:
        pipelines_to_run: List of pipeline names to run

    Returns:
        Ordered list of the selected pipelines
    """
    resolved = []
    selected = set(pipelines_to_run)

    def add_with_deps(name: str):
        if name in resolved:
            return
        for dep in PIPELINES[name].depends_on:
            if dep in selected:
                add_with_deps(dep)
        resolved.append(name)

    for name in pipelines_to_run:
        add_with_deps(name)

    return resolved


async def run_all_pipelines(
    only: Optional[List[str]] = None,
    skip: Optional[List[str]] = None,
    source_names: Optional[List[str]] = None,
    dry_run: bool = False
):
    """
    Run all or selected pipelines.

    Args:
        only: If set, only run these pipelines
        skip: Skip these pipelines
        source_names: Limit government scraping to these sources
        dry_run: Don't actually run, just show what would run
    """
    start_time = datetime.now(timezone.utc)

    print("="*60)
    print(f"🚀 {settings.APP_NAME.upper()} - FULL DATA SYNC")
    print("="*60)
    print(f"Started: {start_time.strftime('%Y-%m-%d %H:%M:%S UTC')}")
    print()

    # Determine which pipelines to run
    if only:
        pipelines_to_run = only
    else:
        pipelines_to_run = list(PIPELINES.keys())

    # Apply filters
    if skip:
        pipelines_to_run = [p for p in pipelines_to_run if p not in skip]

    ordered = resolve_dependencies(pipelines_to_run)
    sources = get_sources(names=source_names)
    options = {"sources": sources}

    print("📋 Pipeline Order:")
    for i, name in enumerate(ordered, 1):
        pipeline = PIPELINES[name]
        print(f"   {i}. {name} - {pipeline.description}")
    if "government" in ordered:
        print(f"\n🌐 Government sources: {len(sources)}")
        for source in sources:
            print(f"   - {source}")
    print()

    if dry_run:
        print("🏁 Dry run complete. Use without --dry-run to actually run.")
        return

    # Run each pipeline
    all_stats = {}

    try:
        for i, name in enumerate(ordered, 1):
            pipeline = PIPELINES[name]

            print(f"\n{'='*60}")
            print(f"[{i}/{len(ordered)}] Running: {name}")
            print(f"{'='*60}")

            try:
                stats = await pipeline.run_func(options)
                all_stats[name] = stats

            except Exception as e:
                logger.error(f"Pipeline '{name}' failed: {e}")
                print(f"\n❌ Pipeline '{name}' FAILED: {e}")
                all_stats[name] = {"error": str(e)}
    finally:
        await close_async_client()

    # Final summary
    end_time = datetime.now(timezone.utc)
    duration = end_time - start_time

    print("\n" + "="*60)
    print("✅ ALL PIPELINES COMPLETE")
    print("="*60)
    print(f"Duration: {duration}")
    print()
    print("📊 Summary:")

    for name, stats in all_stats.items():
        if "error" in stats:
            print(f"   ❌ {name}: FAILED - {stats['error']}")
        else:
            processed = stats.get('processed', 0)
            inserted = stats.get('inserted', 0)
            print(f"   ✅ {name}: {processed} processed, {inserted} new")

    print()


def select_daemon_jobs(
    only: Optional[List[str]] = None,
    skip: Optional[List[str]] = None
) -> Optional[List[str]]:
    """
    Scheduled jobs for the selected pipelines. Health checks always run.

    News and enrichment share the news job, so they are selected together.

    Returns:
        Job names, or None when every pipeline is selected

    Raises:
        ValueError: If only one of news and enrichment is selected
    """
    if not only and not skip:
        return None

    selected = {name for name in (only or PIPELINES) if name not in (skip or [])}
    if ("news" in selected) != ("enrichment" in selected):
        raise ValueError("news and enrichment run as one scheduled job; select or skip both with --daemon")

    wanted = {PIPELINE_JOBS[name] for name in selected}
    return [job for job in (JOB_GOVERNMENT, JOB_NEWS, JOB_ANALYTICS) if job in wanted] + [JOB_HEALTH]


def build_master(
    source_names: Optional[List[str]] = None,
    jobs: Optional[List[str]] = None,
    db=None
) -> MasterDataOrchestrator:
    """Scheduler over the selected sources and jobs."""
    db = db if db is not None else get_async_database()
    orchestrator = DataOrchestrator(db=db, sources=get_sources(names=source_names))
    return MasterDataOrchestrator(db=db, orchestrator=orchestrator, enabled=True, jobs=jobs)


async def run_daemon(
    source_names: Optional[List[str]] = None,
    jobs: Optional[List[str]] = None,
    dry_run: bool = False
):
    """Run the selected pipelines on their schedules until interrupted."""
    master = build_master(source_names=source_names, jobs=jobs)

    print(f"🕒 Scheduled jobs: {', '.join(master.scheduler.jobs)}")
    print(f"🌐 Government sources: {len(master.orchestrator.sources)}")
    if dry_run:
        print("🏁 Dry run complete. Use without --dry-run to start the scheduler.")
        return

    master.start()
    print(f"🕒 Scheduler running (first government scrape in {settings.STARTUP_DELAY_SECONDS}s). Ctrl+C to stop.")

    try:
        await asyncio.Event().wait()
    finally:
        await master.stop()
        await close_async_client()


def _split(value: Optional[str]) -> Optional[List[str]]:
    return [part.strip() for part in value.split(",") if part.strip()] if value else None


async def main():
    """CLI entry point"""
    import argparse

    parser = argparse.ArgumentParser(
        description="Run all data pipelines in sequence",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run everything once
  python scripts/pipelines/sync_all.py

  # Run only specific pipelines
  python scripts/pipelines/sync_all.py --only government,analytics

  # Skip specific pipelines
  python scripts/pipelines/sync_all.py --skip enrichment

  # Scrape only some sources
  python scripts/pipelines/sync_all.py --only government --sources "House of Commons,City of Toronto"

  # See what would run without running
  python scripts/pipelines/sync_all.py --dry-run

  # Keep running on the built-in schedule
  python scripts/pipelines/sync_all.py --daemon

  # Schedule only the government scrape of one source
  python scripts/pipelines/sync_all.py --daemon --only government --sources "House of Commons"
        """
    )

    parser.add_argument(
        "--only",
        type=str,
        help="Comma-separated list of pipelines to run (e.g., government,news)"
    )

    parser.add_argument(
        "--skip",
        type=str,
        help="Comma-separated list of pipelines to skip"
    )

    parser.add_argument(
        "--sources",
        type=str,
        help="Comma-separated list of source names to scrape (default: all)"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would run without actually running"
    )

    parser.add_argument(
        "--daemon",
        action="store_true",
        help="Run the scheduler instead of a single pass"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format=settings.LOG_FORMAT
    )

    # Parse comma-separated lists
    only = _split(args.only)
    skip = _split(args.skip)
    source_names = _split(args.sources)

    # Validate pipeline names
    all_pipeline_names = set(PIPELINES.keys())

    for selection in (only, skip):
        if selection:
            invalid = set(selection) - all_pipeline_names
            if invalid:
                print(f"❌ Unknown pipelines: {', '.join(invalid)}")
                print(f"   Available: {', '.join(all_pipeline_names)}")
                sys.exit(1)

    if source_names and not get_sources(names=source_names):
        print(f"❌ No registry sources match: {', '.join(source_names)}")
        sys.exit(1)

    jobs = None
    if args.daemon:
        try:
            jobs = select_daemon_jobs(only, skip)
        except ValueError as e:
            print(f"❌ {e}")
            sys.exit(1)

    try:
        if args.daemon:
            await run_daemon(source_names=source_names, jobs=jobs, dry_run=args.dry_run)
        else:
            await run_all_pipelines(
                only=only,
                skip=skip,
                source_names=source_names,
                dry_run=args.dry_run
            )
        sys.exit(0)

    except KeyboardInterrupt:
        print("\n\n⚠️  Sync interrupted by user")
        sys.exit(1)
    except Exception as e:
        print(f"\n\n❌ Fatal error: {e}")
        logging.exception("Fatal error")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
