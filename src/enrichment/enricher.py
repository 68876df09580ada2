"""
Article enrichment and cross-source topic comparison.

enrich_pending() labels stored articles that have not been enriched yet,
pausing between classifier calls. build_topic_comparisons() then groups
enriched articles by topic and compares how outlets covered each topic.
"""
import asyncio
import logging
from collections import defaultdict
from statistics import mean
from typing import Any, Awaitable, Callable, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from src.config.constants import (
    COLLECTION_ARTICLES,
    DEFAULT_TOPIC,
    ENRICHMENT_CALL_DELAY,
    MIN_SOURCES_FOR_COMPARISON,
)
from src.config.settings import settings
from src.database.normalization import infer_topics
from src.database.writer import StoreWriter, WriteOutcome
from src.enrichment.client import TextEnrichmentClient
from src.models.article import EnrichmentLabels
from src.models.topic import PoliticalBias, TopicComparison

# Sentiment beyond these bounds counts as clearly positive / negative
POSITIVE_SENTIMENT = 0.2
NEGATIVE_SENTIMENT = -0.2
FACTUALITY_GAP = 30

LEAN_BUCKETS = {
    "left": "left",
    "center-left": "left",
    "center": "center",
    "center-right": "right",
    "right": "right",
}


def _percentages(counts: Dict[str, int]) -> Dict[str, int]:
    """Integer shares summing to 100 (largest remainder)."""
    total = sum(counts.values())
    raw = {key: count * 100 / total for key, count in counts.items()}
    shares = {key: int(value) for key, value in raw.items()}
    leftover = 100 - sum(shares.values())
    for key in sorted(raw, key=lambda k: raw[k] - shares[k], reverse=True)[:leftover]:
        shares[key] += 1
    return shares


def political_bias_from(ratings: List[str]) -> PoliticalBias:
    """Coverage share by lean; the 33/34/33 default when nothing is rated."""
    counts = {"left": 0, "center": 0, "right": 0}
    for rating in ratings:
        bucket = LEAN_BUCKETS.get((rating or "").lower())
        if bucket:
            counts[bucket] += 1
    if not any(counts.values()):
        return PoliticalBias()
    return PoliticalBias(**_percentages(counts))


def compare_topic(topic: str, articles: List[Dict[str, Any]]) -> TopicComparison:
    """
    Compare enriched articles from several outlets on one topic.

    Consensus falls as outlets' credibility scores spread apart. Outlets with
    clearly opposite sentiment, or far-apart factuality, are reported as
    discrepancies.
    """
    sources = sorted({doc["source"] for doc in articles})

    credibility = [float(doc.get("credibility_score", 50.0)) for doc in articles]
    factuality = [float(doc.get("factuality_score", 50.0)) for doc in articles]
    consensus = max(0.0, 100.0 - (max(credibility) - min(credibility)))

    sentiment_by_source: Dict[str, List[float]] = defaultdict(list)
    for doc in articles:
        sentiment_by_source[doc["source"]].append(float(doc.get("sentiment_score", 0.0)))
    positive = sorted(s for s, values in sentiment_by_source.items() if mean(values) > POSITIVE_SENTIMENT)
    negative = sorted(s for s, values in sentiment_by_source.items() if mean(values) < NEGATIVE_SENTIMENT)

    discrepancies = []
    if positive and negative:
        discrepancies.append(
            f"Sentiment split: {', '.join(positive)} positive vs {', '.join(negative)} negative"
        )
    if max(factuality) - min(factuality) >= FACTUALITY_GAP:
        discrepancies.append(
            f"Factuality gap of {max(factuality) - min(factuality):.0f} points between outlets"
        )

    patterns = sorted({
        technique
        for doc in articles
        for technique in (doc.get("propaganda_techniques") or [])
    })

    return TopicComparison(
        topic=topic,
        sources=sources,
        consensus_level=round(consensus, 1),
        major_discrepancies=discrepancies,
        propaganda_patterns=patterns,
        factual_accuracy=round(mean(factuality), 1),
        political_bias=political_bias_from([doc.get("bias_rating") for doc in articles]),
        article_count=len(articles),
    )


class ArticleEnricher:
    """
    Labels pending articles and maintains topic comparisons.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        client: Optional[TextEnrichmentClient] = None,
        call_delay: float = ENRICHMENT_CALL_DELAY,
        with_claims: bool = False,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """
        Args:
            db: Database holding the articles collection
            client: Classifier (default: one configured from settings)
            call_delay: Seconds between successive classifier calls
            with_claims: Also run claim analysis on each article
            sleep: Awaitable used for the pause between calls
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self.db = db
        self.writer = StoreWriter(db)
        self.client = client or TextEnrichmentClient()
        self.call_delay = call_delay
        self.with_claims = with_claims
        self.sleep = sleep
        self._calls = 0

    async def _pace(self):
        """Wait before every classifier call after the first."""
        if self._calls and self.call_delay > 0:
            await self.sleep(self.call_delay)
        self._calls += 1

    async def label(self, doc: Dict[str, Any]) -> EnrichmentLabels:
        """Classifier labels for one stored article, with keyword topic fallback."""
        title = doc.get("title", "")
        text = doc.get("content") or title

        await self._pace()
        labels = await self.client.classify(text, title=title, source=doc.get("source", ""))

        if self.with_claims and not labels.fallback:
            await self._pace()
            claims = await self.client.analyze_claims(text)
            if not claims.fallback:
                labels = labels.model_copy(update={
                    "propaganda_techniques": sorted(set(labels.propaganda_techniques) | set(claims.propaganda_techniques)),
                    "emotional_tone": claims.emotional_tone,
                    "claims": claims.claims,
                })

        if not labels.key_topics:
            labels = labels.model_copy(update={"key_topics": infer_topics(f"{title} {text}")})
        return labels

    async def enrich_pending(self, limit: Optional[int] = None) -> Dict[str, int]:
        """
        Enrich up to `limit` unenriched articles, newest first.

        Returns:
            Counts: processed, enriched, fallback, failed
        """
        limit = limit or settings.ENRICHMENT_BATCH_SIZE
        stats = {"processed": 0, "enriched": 0, "fallback": 0, "failed": 0}
        self._calls = 0

        cursor = self.db[COLLECTION_ARTICLES].find({"enriched": False}).sort("created_at", -1).limit(limit)
        pending = await cursor.to_list(length=limit)
        self.logger.info(f"Enriching {len(pending)} pending articles")

        for doc in pending:
            stats["processed"] += 1
            labels = await self.label(doc)
            outcome = await self.writer.update_article_enrichment(doc["url"], labels)

            if outcome == WriteOutcome.UPDATED:
                stats["enriched"] += 1
                if labels.fallback:
                    stats["fallback"] += 1
            else:
                stats["failed"] += 1

        self.logger.info(
            f"Enrichment complete. Enriched: {stats['enriched']} "
            f"(defaults: {stats['fallback']}), Failed: {stats['failed']}"
        )
        return stats

    async def build_topic_comparisons(self) -> int:
        """
        Recompute comparisons for every topic covered by enough outlets.

        Returns:
            Number of topics written
        """
        groups: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        async for doc in self.db[COLLECTION_ARTICLES].find({"enriched": True}):
            for topic in doc.get("key_topics") or [DEFAULT_TOPIC]:
                groups[topic].append(doc)

        written = 0
        for topic, articles in sorted(groups.items()):
            outlets = {doc["source"] for doc in articles}
            if len(outlets) < MIN_SOURCES_FOR_COMPARISON:
                continue
            outcome = await self.writer.upsert_topic_comparison(compare_topic(topic, articles))
            if outcome in (WriteOutcome.INSERTED, WriteOutcome.UPDATED):
                written += 1

        self.logger.info(f"Updated {written} topic comparisons from {len(groups)} topics")
        return written
