"""
Tests for the idempotent store writer.
"""
import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import DuplicateKeyError, OperationFailure

from src.database.writer import StoreWriter, WriteOutcome, present
from src.models.article import Article, EnrichmentLabels
from src.models.bill import Bill
from src.models.committee import ElectionRecord
from src.models.official import ContactInfo, Official
from src.models.source import GovernmentLevel
from src.models.statement import Statement
from src.models.vote import VotingRecord


def _official(**overrides) -> Official:
    fields = dict(
        name="Jane Doe",
        jurisdiction="Ontario",
        party="Liberal",
        level=GovernmentLevel.PROVINCIAL,
        constituency="Test Riding",
    )
    fields.update(overrides)
    return Official(**fields)


def _run(coro):
    return asyncio.run(coro)


class TestOfficials:
    """Upsert keyed by (name, jurisdiction)"""

    @pytest.fixture
    def writer(self, fake_db):
        writer = StoreWriter(fake_db)
        _run(writer.ensure_indexes())
        return writer

    def test_insert_then_update_keeps_one_document(self, writer, fake_db):
        first = _run(writer.upsert_official(_official()))
        second = _run(writer.upsert_official(_official()))

        assert first == WriteOutcome.INSERTED
        assert second == WriteOutcome.UPDATED
        assert len(fake_db.officials.docs) == 1

    def test_defaults_apply_on_insert_only(self, writer, fake_db):
        _run(writer.upsert_official(_official(party=None)))
        doc = fake_db.officials.docs[0]

        assert doc["party"] == "Independent"
        assert doc["position"] == "MPP"
        assert doc["trust_score"] == 75
        assert "first_seen" in doc

        first_seen = doc["first_seen"]
        _run(writer.upsert_official(_official(party="NDP", trust_score=90)))
        doc = fake_db.officials.docs[0]

        assert doc["party"] == "NDP"
        assert doc["trust_score"] == 75
        assert doc["first_seen"] == first_seen

    def test_empty_fields_do_not_blank_stored_values(self, writer, fake_db):
        _run(writer.upsert_official(_official(contact=ContactInfo(email="jane@ola.org"))))
        _run(writer.upsert_official(_official(party=None, constituency=None)))

        doc = fake_db.officials.docs[0]
        assert doc["party"] == "Liberal"
        assert doc["constituency"] == "Test Riding"
        assert doc["contact"]["email"] == "jane@ola.org"

    def test_non_empty_fields_overwrite(self, writer, fake_db):
        _run(writer.upsert_official(_official(contact=ContactInfo(email="old@ola.org"))))
        _run(writer.upsert_official(_official(
            constituency="New Riding",
            contact=ContactInfo(email="new@ola.org", phone="(416) 555-0100"),
        )))

        doc = fake_db.officials.docs[0]
        assert doc["constituency"] == "New Riding"
        assert doc["contact"] == {"email": "new@ola.org", "phone": "(416) 555-0100"}

    def test_same_name_in_other_jurisdiction_is_separate(self, writer, fake_db):
        _run(writer.upsert_official(_official()))
        _run(writer.upsert_official(_official(jurisdiction="Alberta")))

        assert len(fake_db.officials.docs) == 2

    def test_present_drops_empty_values(self):
        assert present({"a": None, "b": "", "c": [], "d": 0, "e": "x"}) == {"d": 0, "e": "x"}


class TestWriteErrors:
    """Database errors become outcomes, never exceptions"""

    def _writer_with_collection(self, collection) -> StoreWriter:
        db = MagicMock()
        db.__getitem__.return_value = collection
        return StoreWriter(db)

    def test_duplicate_key_is_skipped(self):
        collection = MagicMock()
        collection.update_one = AsyncMock(side_effect=DuplicateKeyError("E11000 duplicate key error"))
        writer = self._writer_with_collection(collection)

        assert _run(writer.upsert_official(_official())) == WriteOutcome.SKIPPED

    def test_other_errors_fail_the_record(self):
        collection = MagicMock()
        collection.update_one = AsyncMock(side_effect=OperationFailure("disk full"))
        writer = self._writer_with_collection(collection)

        assert _run(writer.upsert_bill(Bill(bill_number="C-1", title="Test", jurisdiction="Canada"))) \
            == WriteOutcome.FAILED

    def test_set_and_set_on_insert_never_share_a_path(self):
        collection = MagicMock()
        collection.update_one = AsyncMock(return_value=MagicMock(upserted_id="new-id"))
        writer = self._writer_with_collection(collection)

        _run(writer.upsert_official(_official(position="MPP", party="Liberal")))

        key, update = collection.update_one.call_args.args
        assert key == {"name": "Jane Doe", "jurisdiction": "Ontario"}
        assert collection.update_one.call_args.kwargs == {"upsert": True}
        assert not set(update["$set"]) & set(update["$setOnInsert"])
        assert "party" not in update["$setOnInsert"]
        assert "trust_score" in update["$setOnInsert"]


class TestBills:
    def test_bill_defaults_and_merge(self, fake_db):
        writer = StoreWriter(fake_db)

        outcome = _run(writer.upsert_bill(Bill(bill_number="C-69", title="Impact Assessment Act", jurisdiction="Canada")))
        assert outcome == WriteOutcome.INSERTED
        doc = fake_db.bills.docs[0]
        assert doc["status"] == "Introduced"
        assert doc["bill_type"] == "Public Bill"

        _run(writer.upsert_bill(Bill(
            bill_number="C-69", title="Impact Assessment Act", jurisdiction="Canada", status="Royal Assent"
        )))
        assert len(fake_db.bills.docs) == 1
        assert fake_db.bills.docs[0]["status"] == "Royal Assent"


class TestInsertOnly:
    """Votes, statements, elections and articles are never overwritten"""

    def test_vote_insert_if_absent(self, fake_db):
        writer = StoreWriter(fake_db)
        vote_date = datetime(2024, 3, 5, tzinfo=timezone.utc)
        vote = VotingRecord(bill_number="C-21", vote_date=vote_date, yes_votes=172, no_votes=148,
                            jurisdiction="Canada", chamber="House of Commons")
        recount = vote.model_copy(update={"yes_votes": 1})

        assert _run(writer.insert_vote_if_absent(vote)) == WriteOutcome.INSERTED
        assert _run(writer.insert_vote_if_absent(recount)) == WriteOutcome.SKIPPED
        assert len(fake_db.votes.docs) == 1
        assert fake_db.votes.docs[0]["yes_votes"] == 172

    def test_vote_for_unknown_bill_is_stored(self, fake_db):
        writer = StoreWriter(fake_db)
        vote = VotingRecord(bill_number="C-999", jurisdiction="Canada", chamber="House of Commons")

        assert _run(writer.insert_vote_if_absent(vote)) == WriteOutcome.INSERTED

    def test_statement_needs_known_speaker(self, fake_db):
        writer = StoreWriter(fake_db)
        statement = Statement(speaker_name="Jane Doe", content="Housing matters.", jurisdiction="Ontario")

        assert _run(writer.insert_statement_if_speaker_known(statement)) == WriteOutcome.SKIPPED
        assert fake_db.statements.docs == []

        _run(writer.upsert_official(_official()))
        assert _run(writer.insert_statement_if_speaker_known(statement)) == WriteOutcome.INSERTED
        assert _run(writer.insert_statement_if_speaker_known(statement)) == WriteOutcome.SKIPPED

        doc = fake_db.statements.docs[0]
        assert doc["official_id"] == str(fake_db.officials.docs[0]["_id"])
        assert doc["content_hash"] == statement.content_hash

    def test_speaker_found_in_other_jurisdiction(self, fake_db):
        writer = StoreWriter(fake_db)
        _run(writer.upsert_official(_official(jurisdiction="Canada")))

        official_id = _run(writer.find_official_id("Jane Doe", "Ontario"))

        assert official_id == str(fake_db.officials.docs[0]["_id"])

    def test_election_insert_if_absent(self, fake_db):
        writer = StoreWriter(fake_db)
        election = ElectionRecord(name="45th General Election", jurisdiction="Canada",
                                  date=datetime(2025, 4, 28, tzinfo=timezone.utc))

        assert _run(writer.insert_election_if_absent(election)) == WriteOutcome.INSERTED
        assert _run(writer.insert_election_if_absent(election)) == WriteOutcome.SKIPPED

    def test_article_insert_if_absent(self, fake_db):
        writer = StoreWriter(fake_db)
        article = Article(title="Budget tabled", url="https://news.example.ca/budget", source="CBC News")

        assert _run(writer.insert_article_if_absent(article)) == WriteOutcome.INSERTED
        assert _run(writer.insert_article_if_absent(
            article.model_copy(update={"title": "Changed"})
        )) == WriteOutcome.SKIPPED

        doc = fake_db.articles.docs[0]
        assert doc["title"] == "Budget tabled"
        assert doc["enriched"] is False


class TestEnrichmentUpdate:
    def test_labels_are_set_on_stored_article(self, fake_db):
        writer = StoreWriter(fake_db)
        _run(writer.insert_article_if_absent(
            Article(title="Budget tabled", url="https://news.example.ca/budget", source="CBC News")
        ))

        labels = EnrichmentLabels(credibility_score=82, bias_rating="center-left", key_topics=["Economy"])
        outcome = _run(writer.update_article_enrichment("https://news.example.ca/budget", labels))

        assert outcome == WriteOutcome.UPDATED
        doc = fake_db.articles.docs[0]
        assert doc["enriched"] is True
        assert doc["credibility_score"] == 82.0
        assert doc["key_topics"] == ["Economy"]
        assert doc["enriched_at"] is not None

    def test_missing_article_is_skipped(self, fake_db):
        writer = StoreWriter(fake_db)
        outcome = _run(writer.update_article_enrichment("https://nowhere.example", EnrichmentLabels()))

        assert outcome == WriteOutcome.SKIPPED
        assert fake_db.articles.docs == []


class TestIndexes:
    def test_unique_indexes_are_created(self, fake_db):
        _run(StoreWriter(fake_db).ensure_indexes())

        names = [index["name"] for index in fake_db.officials.indexes]
        assert "unique_name_jurisdiction" in names
        assert any(index["unique"] for index in fake_db.articles.indexes)
