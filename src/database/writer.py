"""
Idempotent store writer.

Every record is written with update_one(..., upsert=True) keyed on its
natural key, so re-running a scrape converges instead of duplicating.

Merge rules:
- Officials, bills and committees: incoming non-empty fields go in $set,
  empty ones are dropped so they never blank a stored value. Defaults
  (party, status, trust score, ...) go in $setOnInsert.
- Votes, statements, articles and elections: insert if absent, never overwritten.

Duplicate key errors from racing upserts are the normal convergence path and
are swallowed. Any other write error is logged and the record is skipped.
"""
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from src.config.constants import (
    COLLECTION_ARTICLES,
    COLLECTION_BILLS,
    COLLECTION_COMMITTEES,
    COLLECTION_ELECTIONS,
    COLLECTION_OFFICIALS,
    COLLECTION_STATEMENTS,
    COLLECTION_TOPIC_COMPARISONS,
    COLLECTION_VOTES,
    UNKNOWN_JURISDICTION,
)
from src.database.normalization import default_position
from src.models.article import Article, EnrichmentLabels
from src.models.bill import Bill
from src.models.committee import Committee, ElectionRecord
from src.models.official import Official
from src.models.statement import Statement
from src.models.topic import TopicComparison
from src.models.vote import VotingRecord


class WriteOutcome(str, Enum):
    """What a single write did."""
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


# Natural keys, enforced by unique indexes
UNIQUE_INDEXES: Dict[str, List[str]] = {
    COLLECTION_OFFICIALS: ["name", "jurisdiction"],
    COLLECTION_BILLS: ["bill_number"],
    COLLECTION_VOTES: ["bill_number", "vote_date"],
    COLLECTION_STATEMENTS: ["official_id", "content_hash"],
    COLLECTION_ARTICLES: ["url"],
    COLLECTION_TOPIC_COMPARISONS: ["topic"],
    COLLECTION_COMMITTEES: ["name", "jurisdiction"],
    COLLECTION_ELECTIONS: ["name", "jurisdiction", "date"],
}

# Secondary lookup indexes
LOOKUP_INDEXES: List[Tuple[str, str]] = [
    (COLLECTION_OFFICIALS, "party"),
    (COLLECTION_OFFICIALS, "level"),
    (COLLECTION_BILLS, "category"),
    (COLLECTION_VOTES, "vote_date"),
    (COLLECTION_ARTICLES, "enriched"),
    (COLLECTION_ARTICLES, "source"),
]

OFFICIAL_DEFAULTS = {"party": "Independent"}
BILL_DEFAULTS = {"status": "Introduced", "bill_type": "Public Bill"}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def present(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Drop None and empty values so they never overwrite stored data."""
    return {key: value for key, value in fields.items() if value is not None and value != "" and value != []}


def _enum_value(value):
    return value.value if isinstance(value, Enum) else value


class StoreWriter:
    """
    Writes normalized records into MongoDB.

    Every public method returns a WriteOutcome and never raises for a
    database error, so a bad record cannot stop a batch.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    # ========================================================================
    # Setup
    # ========================================================================

    async def ensure_indexes(self):
        """Create the unique natural-key indexes and lookup indexes."""
        for collection, keys in UNIQUE_INDEXES.items():
            await self.db[collection].create_index(
                [(key, ASCENDING) for key in keys],
                unique=True,
                name=f"unique_{'_'.join(keys)}",
            )
        for collection, key in LOOKUP_INDEXES:
            await self.db[collection].create_index([(key, ASCENDING)], name=f"idx_{key}")
        self.logger.info(f"Ensured indexes on {len(UNIQUE_INDEXES)} collections")

    # ========================================================================
    # Core upsert
    # ========================================================================

    async def _upsert(
        self,
        collection: str,
        key: Dict[str, Any],
        set_fields: Optional[Dict[str, Any]],
        on_insert: Optional[Dict[str, Any]],
        description: str,
        insert_only: bool = False
    ) -> WriteOutcome:
        """
        update_one with upsert=True, classified into a WriteOutcome.

        Fields present in $set are removed from $setOnInsert (MongoDB rejects
        the same path in both), as are the key fields, which an upsert copies
        from the filter.
        """
        update: Dict[str, Any] = {}
        if set_fields:
            update["$set"] = set_fields
        insert_fields = {
            name: value for name, value in (on_insert or {}).items()
            if name not in (set_fields or {}) and name not in key
        }
        if insert_fields:
            update["$setOnInsert"] = insert_fields
        if not update:
            update["$setOnInsert"] = {"first_seen": _now()}

        try:
            result = await self.db[collection].update_one(key, update, upsert=True)
        except DuplicateKeyError:
            # Another writer inserted the same natural key first
            self.logger.debug(f"Duplicate key for {description}, skipping")
            return WriteOutcome.SKIPPED
        except PyMongoError as e:
            self.logger.error(f"Error writing {description}: {e}")
            return WriteOutcome.FAILED

        if result.upserted_id is not None:
            return WriteOutcome.INSERTED
        return WriteOutcome.SKIPPED if insert_only else WriteOutcome.UPDATED

    # ========================================================================
    # Officials
    # ========================================================================

    async def upsert_official(self, official: Official) -> WriteOutcome:
        """
        Insert or update an official keyed by (name, jurisdiction).

        Non-empty incoming fields overwrite; empty ones leave stored values
        alone. Trust score and default position/party are set only on insert.
        """
        key = {"name": official.name, "jurisdiction": official.jurisdiction}

        set_fields = present({
            "position": official.position,
            "party": official.party,
            "level": _enum_value(official.level),
            "constituency": official.constituency,
            "contact.email": official.contact.email,
            "contact.phone": official.contact.phone,
            "contact.office": official.contact.office,
            "contact.website": official.contact.website,
            "profile_url": official.profile_url,
            "image_url": official.image_url,
            "source_name": official.source_name,
            "source_url": official.source_url,
        })
        set_fields["last_updated"] = _now()

        on_insert = {
            **OFFICIAL_DEFAULTS,
            "position": default_position(official.level, official.jurisdiction),
            "trust_score": official.trust_score,
            "first_seen": _now(),
        }

        return await self._upsert(COLLECTION_OFFICIALS, key, set_fields, on_insert, f"official {official.name}")

    # ========================================================================
    # Bills
    # ========================================================================

    async def upsert_bill(self, bill: Bill) -> WriteOutcome:
        """Insert or update a bill keyed by bill number, COALESCE-style."""
        key = {"bill_number": bill.bill_number}

        set_fields = present({
            "title": bill.title,
            "summary": bill.summary,
            "status": bill.status,
            "bill_type": bill.bill_type,
            "category": bill.category,
            "sponsor": bill.sponsor,
            "introduced_date": bill.introduced_date,
            "jurisdiction": bill.jurisdiction,
            "level": _enum_value(bill.level),
            "source_name": bill.source_name,
            "source_url": bill.source_url,
        })
        set_fields["last_updated"] = _now()

        on_insert = {**BILL_DEFAULTS, "first_seen": _now()}

        return await self._upsert(COLLECTION_BILLS, key, set_fields, on_insert, f"bill {bill.bill_number}")

    # ========================================================================
    # Votes
    # ========================================================================

    async def insert_vote_if_absent(self, vote: VotingRecord) -> WriteOutcome:
        """
        Store a division unless one exists for the same (bill_number, vote_date).

        Existing records are never overwritten. The bill need not exist.
        """
        key = {"bill_number": vote.bill_number, "vote_date": vote.vote_date}
        doc = vote.model_dump()
        doc["first_seen"] = _now()

        return await self._upsert(
            COLLECTION_VOTES, key, None, doc, f"vote on {vote.bill_number}", insert_only=True
        )

    # ========================================================================
    # Statements
    # ========================================================================

    async def find_official_id(self, name: str, jurisdiction: Optional[str] = None) -> Optional[str]:
        """Id of the official with this exact name, preferring the given jurisdiction."""
        officials = self.db[COLLECTION_OFFICIALS]
        if jurisdiction and jurisdiction != UNKNOWN_JURISDICTION:
            match = await officials.find_one({"name": name, "jurisdiction": jurisdiction})
            if match:
                return str(match["_id"])
        match = await officials.find_one({"name": name})
        return str(match["_id"]) if match else None

    async def insert_statement_if_speaker_known(self, statement: Statement) -> WriteOutcome:
        """
        Store a statement only if its speaker resolves to a stored official.

        Unknown speakers are dropped silently (SKIPPED).
        """
        try:
            official_id = await self.find_official_id(statement.speaker_name, statement.jurisdiction)
        except PyMongoError as e:
            self.logger.error(f"Error resolving speaker {statement.speaker_name}: {e}")
            return WriteOutcome.FAILED

        if official_id is None:
            self.logger.debug(f"No official named {statement.speaker_name}, dropping statement")
            return WriteOutcome.SKIPPED

        content_hash = statement.content_hash
        key = {"official_id": official_id, "content_hash": content_hash}
        doc = statement.model_dump(exclude={"official_id"})
        doc["first_seen"] = _now()

        return await self._upsert(
            COLLECTION_STATEMENTS, key, None, doc,
            f"statement by {statement.speaker_name}", insert_only=True
        )

    # ========================================================================
    # Committees and elections
    # ========================================================================

    async def upsert_committee(self, committee: Committee) -> WriteOutcome:
        """Insert or update a committee keyed by (name, jurisdiction)."""
        key = {"name": committee.name, "jurisdiction": committee.jurisdiction}
        set_fields = present({
            "committee_type": committee.committee_type,
            "chair": committee.chair,
            "members": committee.members,
            "source_url": committee.source_url,
        })
        set_fields["last_updated"] = _now()
        return await self._upsert(
            COLLECTION_COMMITTEES, key, set_fields, {"first_seen": _now()}, f"committee {committee.name}"
        )

    async def insert_election_if_absent(self, election: ElectionRecord) -> WriteOutcome:
        """Store an election listing unless it is already known."""
        key = {"name": election.name, "jurisdiction": election.jurisdiction, "date": election.date}
        doc = election.model_dump()
        doc["first_seen"] = _now()
        return await self._upsert(
            COLLECTION_ELECTIONS, key, None, doc, f"election {election.name}", insert_only=True
        )

    # ========================================================================
    # Articles
    # ========================================================================

    async def insert_article_if_absent(self, article: Article) -> WriteOutcome:
        """
        Store an article unless its URL is already stored.

        Re-scraping a known URL is a no-op; enrichment is not reset.
        """
        key = {"url": article.url}
        doc = article.to_document()
        return await self._upsert(
            COLLECTION_ARTICLES, key, None, doc, f"article {article.url}", insert_only=True
        )

    async def update_article_enrichment(self, url: str, labels: EnrichmentLabels) -> WriteOutcome:
        """Attach classifier labels to a stored article."""
        fields = labels.model_dump()
        fields["enriched"] = True
        fields["enriched_at"] = _now()
        try:
            result = await self.db[COLLECTION_ARTICLES].update_one({"url": url}, {"$set": fields})
        except PyMongoError as e:
            self.logger.error(f"Error saving enrichment for {url}: {e}")
            return WriteOutcome.FAILED
        return WriteOutcome.UPDATED if result.matched_count else WriteOutcome.SKIPPED

    # ========================================================================
    # Topic comparisons and snapshots
    # ========================================================================

    async def upsert_topic_comparison(self, comparison: TopicComparison) -> WriteOutcome:
        """Replace the stored comparison for a topic with a freshly computed one."""
        key = {"topic": comparison.topic}
        set_fields = comparison.model_dump(exclude={"topic"})
        return await self._upsert(
            COLLECTION_TOPIC_COMPARISONS, key, set_fields, {"first_seen": _now()},
            f"topic comparison {comparison.topic}"
        )

    async def save_snapshot(self, collection: str, document: Dict[str, Any]) -> WriteOutcome:
        """Append an analytics or health snapshot."""
        try:
            await self.db[collection].insert_one(dict(document))
        except PyMongoError as e:
            self.logger.error(f"Error saving snapshot to {collection}: {e}")
            return WriteOutcome.FAILED
        return WriteOutcome.INSERTED
