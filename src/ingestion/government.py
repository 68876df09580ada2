"""
Government website ingester.

Scrapes every endpoint of one registry Source: fetch with retries, extract
records with the selector rules, normalize, and write idempotently.

An endpoint that exhausts its retries is logged and skipped; the other
endpoints of the source still run.

Usage:
    async with Fetcher() as fetcher:
        ingester = GovernmentSourceIngester(get_source("Legislative Assembly of Ontario"), fetcher)
        stats = await ingester.run()
"""
from typing import AsyncGenerator, Callable, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

from src.database import normalization
from src.database.writer import WriteOutcome
from src.ingestion.base import BaseIngester
from src.ingestion.extractor import extract
from src.ingestion.fetcher import Fetcher
from src.ingestion.retry import RetryPolicy, TerminalFailure, with_retry
from src.models.source import EntityType, Source

# Officials first so statements can resolve their speakers in the same run
ENTITY_ORDER = list(EntityType)

NORMALIZERS: Dict[EntityType, Callable[..., BaseModel]] = {
    EntityType.OFFICIALS: normalization.normalize_official,
    EntityType.BILLS: normalization.normalize_bill,
    EntityType.VOTES: normalization.normalize_vote,
    EntityType.STATEMENTS: normalization.normalize_statement,
    EntityType.COMMITTEES: normalization.normalize_committee,
    EntityType.ELECTIONS: normalization.normalize_election,
}


class GovernmentSourceIngester(BaseIngester[Tuple[EntityType, BaseModel]]):
    """
    Ingests all entity types one Source publishes.
    """

    def __init__(
        self,
        source: Source,
        fetcher: Fetcher,
        db: Optional[AsyncIOMotorDatabase] = None,
        policy: Optional[RetryPolicy] = None,
        entity_types: Optional[List[EntityType]] = None
    ):
        """
        Args:
            source: Registry entry to scrape
            fetcher: Shared HTTP fetcher
            db: Shared database (a private client is opened when omitted)
            policy: Retry policy for each endpoint fetch
            entity_types: Restrict to these entity types (default: all the source has)
        """
        super().__init__(db)
        self.source = source
        self.fetcher = fetcher
        self.policy = policy
        wanted = entity_types or source.entity_types
        self.entity_types = [et for et in ENTITY_ORDER if et in wanted and source.supplies(et)]
        self.failures: List[TerminalFailure] = []
        self.extracted: Dict[EntityType, int] = {}

    @property
    def endpoints_failed(self) -> int:
        return len(self.failures)

    @property
    def endpoints_total(self) -> int:
        return len(self.entity_types)

    async def fetch_data(self, **kwargs) -> AsyncGenerator[dict, None]:
        """
        Fetch each endpoint and yield extracted records.

        Yields:
            {"entity_type", "page_url", "fields"} per extracted record
        """
        self.failures = []
        self.extracted = {}

        for entity_type in self.entity_types:
            url = self.source.url_for(entity_type)

            try:
                response = await with_retry(
                    lambda url=url: self.fetcher.fetch(url),
                    self.policy,
                    description=f"{self.source.name} {entity_type.value}",
                )
            except TerminalFailure as e:
                self.failures.append(e)
                self.logger.error(f"Skipping {entity_type.value} for {self.source.name}: {e}")
                continue

            records = extract(response.text, entity_type, source=self.source, page_url=response.url)
            self.extracted[entity_type] = len(records)
            self.logger.info(f"Extracted {len(records)} {entity_type.value} from {response.url}")

            for record in records:
                yield {"entity_type": entity_type, "page_url": response.url, "fields": record}

    async def transform(self, raw_data: dict) -> Tuple[EntityType, BaseModel]:
        """Normalize an extracted record into its model."""
        entity_type = raw_data["entity_type"]
        normalizer = NORMALIZERS[entity_type]
        return entity_type, normalizer(raw_data["fields"], self.source, raw_data["page_url"])

    async def load(self, item: Tuple[EntityType, BaseModel]) -> WriteOutcome:
        """Write a normalized record with the merge rule for its entity type."""
        entity_type, record = item
        writers = {
            EntityType.OFFICIALS: self.writer.upsert_official,
            EntityType.BILLS: self.writer.upsert_bill,
            EntityType.VOTES: self.writer.insert_vote_if_absent,
            EntityType.STATEMENTS: self.writer.insert_statement_if_speaker_known,
            EntityType.COMMITTEES: self.writer.upsert_committee,
            EntityType.ELECTIONS: self.writer.insert_election_if_absent,
        }
        return await writers[entity_type](record)
