"""
Analytics aggregator.

Recomputes summary statistics from the store with aggregation pipelines
and appends an AnalyticsSnapshot. Reads never block the scrapers; the only
write is the snapshot itself.

Usage:
    aggregator = Aggregator(db)
    snapshot = await aggregator.recompute()
    print(snapshot.party_distribution[:3])
"""
import logging
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from src.config.constants import (
    COLLECTION_ANALYTICS_SNAPSHOTS,
    COLLECTION_ARTICLES,
    COLLECTION_BILLS,
    COLLECTION_COMMITTEES,
    COLLECTION_ELECTIONS,
    COLLECTION_OFFICIALS,
    COLLECTION_STATEMENTS,
    COLLECTION_TOPIC_COMPARISONS,
    COLLECTION_VOTES,
)
from src.database.writer import StoreWriter
from src.models.analytics import AnalyticsSnapshot

TOTALS_COLLECTIONS = [
    COLLECTION_OFFICIALS,
    COLLECTION_BILLS,
    COLLECTION_VOTES,
    COLLECTION_STATEMENTS,
    COLLECTION_COMMITTEES,
    COLLECTION_ELECTIONS,
    COLLECTION_ARTICLES,
    COLLECTION_TOPIC_COMPARISONS,
]

POSITION_LIMIT = 20
TOPIC_LIMIT = 15

# Articles labelled by the classifier, excluding stored default labels
LABELLED_ARTICLES = {"enriched": True, "fallback": {"$ne": True}}


def _count_by(field: str, match: Optional[dict] = None, limit: Optional[int] = None) -> List[dict]:
    """$group pipeline counting documents per value of a field, largest first."""
    pipeline: List[Dict[str, Any]] = []
    if match:
        pipeline.append({"$match": match})
    pipeline.extend([
        {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
        {"$sort": {"count": -1}},
    ])
    if limit:
        pipeline.append({"$limit": limit})
    return pipeline


class Aggregator:
    """
    Computes AnalyticsSnapshots.

    A section whose query fails is logged, left empty and named in
    failed_sections; the rest of the snapshot is still produced.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.db = db
        self.writer = StoreWriter(db)

    async def _grouped(self, collection: str, pipeline: List[dict]) -> List[dict]:
        results = []
        async for item in self.db[collection].aggregate(pipeline):
            results.append(item)
        return results

    async def _counts(self, collection: str, field: str, match: Optional[dict] = None) -> Dict[str, int]:
        rows = await self._grouped(collection, _count_by(field, match))
        return {str(row["_id"]) if row["_id"] is not None else "Unknown": row["count"] for row in rows}

    async def _ranked(
        self, collection: str, field: str, label: str, match: Optional[dict] = None, limit: Optional[int] = None
    ) -> List[dict]:
        rows = await self._grouped(collection, _count_by(field, match, limit))
        return [{label: row["_id"] if row["_id"] is not None else "Unknown", "count": row["count"]} for row in rows]

    # ========================================================================
    # Sections
    # ========================================================================

    async def totals(self) -> Dict[str, int]:
        return {name: await self.db[name].count_documents({}) for name in TOTALS_COLLECTIONS}

    async def party_distribution(self) -> List[dict]:
        return await self._ranked(COLLECTION_OFFICIALS, "party", "party")

    async def jurisdiction_breakdown(self) -> List[dict]:
        return await self._ranked(COLLECTION_OFFICIALS, "jurisdiction", "jurisdiction")

    async def level_breakdown(self) -> Dict[str, int]:
        return await self._counts(COLLECTION_OFFICIALS, "level")

    async def position_hierarchy(self) -> List[dict]:
        return await self._ranked(COLLECTION_OFFICIALS, "position", "position", limit=POSITION_LIMIT)

    async def bill_categories(self) -> Dict[str, int]:
        return await self._counts(COLLECTION_BILLS, "category")

    async def bill_statuses(self) -> Dict[str, int]:
        return await self._counts(COLLECTION_BILLS, "status")

    async def article_averages(self) -> Dict[str, Optional[float]]:
        pipeline = [
            {"$match": LABELLED_ARTICLES},
            {"$group": {
                "_id": None,
                "credibility": {"$avg": "$credibility_score"},
                "sentiment": {"$avg": "$sentiment_score"},
            }},
        ]
        rows = await self.db[COLLECTION_ARTICLES].aggregate(pipeline).to_list(1)
        if not rows:
            return {"credibility": None, "sentiment": None}
        row = rows[0]
        return {
            "credibility": round(row["credibility"], 2) if row.get("credibility") is not None else None,
            "sentiment": round(row["sentiment"], 3) if row.get("sentiment") is not None else None,
        }

    async def bias_distribution(self) -> Dict[str, int]:
        return await self._counts(COLLECTION_ARTICLES, "bias_rating", LABELLED_ARTICLES)

    async def topic_frequency(self) -> List[dict]:
        pipeline = [
            {"$match": {"enriched": True}},
            {"$unwind": "$key_topics"},
            {"$group": {"_id": "$key_topics", "count": {"$sum": 1}}},
            {"$sort": {"count": -1}},
            {"$limit": TOPIC_LIMIT},
        ]
        rows = await self._grouped(COLLECTION_ARTICLES, pipeline)
        return [{"topic": row["_id"], "count": row["count"]} for row in rows]

    async def source_distribution(self) -> Dict[str, int]:
        return await self._counts(COLLECTION_ARTICLES, "source")

    # ========================================================================
    # Snapshot
    # ========================================================================

    async def recompute(self, save: bool = True) -> AnalyticsSnapshot:
        """
        Compute every section and (by default) store the snapshot.

        Args:
            save: Append the snapshot to the analytics_snapshots collection

        Returns:
            The snapshot, with failed_sections naming anything that errored
        """
        snapshot = AnalyticsSnapshot()

        sections = {
            "totals": self.totals,
            "party_distribution": self.party_distribution,
            "jurisdiction_breakdown": self.jurisdiction_breakdown,
            "level_breakdown": self.level_breakdown,
            "position_hierarchy": self.position_hierarchy,
            "bill_categories": self.bill_categories,
            "bill_statuses": self.bill_statuses,
            "bias_distribution": self.bias_distribution,
            "topic_frequency": self.topic_frequency,
            "source_distribution": self.source_distribution,
        }
        for name, compute in sections.items():
            try:
                setattr(snapshot, name, await compute())
            except PyMongoError as e:
                self.logger.error(f"Analytics section {name} failed: {e}")
                snapshot.failed_sections.append(name)

        try:
            averages = await self.article_averages()
            snapshot.credibility_average = averages["credibility"]
            snapshot.sentiment_average = averages["sentiment"]
            snapshot.default_labelled_articles = await self.db[COLLECTION_ARTICLES].count_documents(
                {"enriched": True, "fallback": True}
            )
        except PyMongoError as e:
            self.logger.error(f"Analytics section article_averages failed: {e}")
            snapshot.failed_sections.append("article_averages")

        if save:
            await self.writer.save_snapshot(COLLECTION_ANALYTICS_SNAPSHOTS, snapshot.model_dump())

        self.logger.info(
            f"Analytics recomputed: {snapshot.totals.get(COLLECTION_OFFICIALS, 0)} officials, "
            f"{snapshot.totals.get(COLLECTION_BILLS, 0)} bills, "
            f"{snapshot.totals.get(COLLECTION_ARTICLES, 0)} articles"
            + (f" (failed: {', '.join(snapshot.failed_sections)})" if snapshot.failed_sections else "")
        )
        return snapshot

    async def latest(self) -> Optional[dict]:
        """Most recently stored snapshot document, if any."""
        cursor = self.db[COLLECTION_ANALYTICS_SNAPSHOTS].find({}).sort("generated_at", -1).limit(1)
        rows = await cursor.to_list(length=1)
        return rows[0] if rows else None
