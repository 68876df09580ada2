"""
Tests for the scraping orchestrator, run end to end against mocked HTTP
and the in-memory database.
"""
import asyncio

import pytest
from pymongo.errors import OperationFailure

from src.ingestion.fetcher import Fetcher
from src.ingestion.government import GovernmentSourceIngester
from src.ingestion.orchestrator import DataOrchestrator, RunStatus, SourceStatus
from src.models.source import EntityType, GovernmentLevel

from tests.conftest import SleepRecorder, make_source

ONTARIO_MEMBERS = "https://www.ola.org/members"
BC_MEMBERS = "https://www.leg.bc.ca/members"
ALBERTA_MEMBERS = "https://www.assembly.ab.ca/members"

ALBERTA_TABLE = """
<table>
  <tr><th>Name</th><th>Party</th><th>Constituency</th></tr>
  <tr><td>John Smith</td><td>UCP</td><td>Calgary-Elbow</td></tr>
</table>
"""


def _sources():
    return [
        make_source(name="Ontario", base_url="https://www.ola.org", jurisdiction="Ontario"),
        make_source(name="British Columbia", base_url="https://www.leg.bc.ca", jurisdiction="British Columbia"),
        make_source(name="Alberta", base_url="https://www.assembly.ab.ca", jurisdiction="Alberta"),
    ]


async def _run(orchestrator: DataOrchestrator, fetcher: Fetcher, sources=None):
    try:
        return await orchestrator.run_once(sources)
    finally:
        await fetcher.close()


class TestRunOnce:
    """Source isolation and run status"""

    @pytest.fixture
    def pause(self):
        return SleepRecorder()

    def test_failing_source_does_not_stop_the_run(self, fake_db, routes, fast_policy, pause, members_html):
        routes.routes.update({
            ONTARIO_MEMBERS: (200, members_html),
            BC_MEMBERS: (503, "unavailable"),
            ALBERTA_MEMBERS: (200, ALBERTA_TABLE),
        })
        fetcher = Fetcher(transport=routes.transport)
        orchestrator = DataOrchestrator(
            db=fake_db, sources=_sources(), fetcher=fetcher, policy=fast_policy, sleep=pause
        )

        summary = asyncio.run(_run(orchestrator, fetcher))

        assert summary.status == RunStatus.PARTIALLY_FAILED
        assert summary.failed_sources == ["British Columbia"]
        assert summary.records_written == 2
        assert [r.status for r in summary.results] == [
            SourceStatus.SUCCEEDED, SourceStatus.FAILED, SourceStatus.SUCCEEDED
        ]
        assert summary.results[1].failed_urls == [BC_MEMBERS]
        # Retried up to the policy's budget, then given up
        assert routes.count(BC_MEMBERS) == 3

        names = sorted(doc["name"] for doc in fake_db.officials.docs)
        assert names == ["Jane Doe", "John Smith"]

    def test_all_sources_succeeding_completes(self, fake_db, routes, fast_policy, pause, members_html):
        routes.routes[ONTARIO_MEMBERS] = (200, members_html)
        fetcher = Fetcher(transport=routes.transport)
        orchestrator = DataOrchestrator(
            db=fake_db, sources=_sources()[:1], fetcher=fetcher, policy=fast_policy, sleep=pause
        )

        summary = asyncio.run(_run(orchestrator, fetcher))

        assert summary.status == RunStatus.COMPLETED
        assert summary.failed_sources == []
        assert orchestrator.state == RunStatus.COMPLETED

    def test_pauses_between_sources_only(self, fake_db, routes, fast_policy, pause):
        sources = _sources()
        sources[0] = make_source(name="Fast", base_url="https://www.ola.org", rate_limit_per_minute=120)
        fetcher = Fetcher(transport=routes.transport)
        orchestrator = DataOrchestrator(
            db=fake_db, sources=sources, fetcher=fetcher, policy=fast_policy, sleep=pause
        )

        asyncio.run(_run(orchestrator, fetcher))

        # 60 / rate limit after each source except the last
        assert pause.delays == [0.5, 1.0]

    def test_permanent_http_error_is_not_retried(self, fake_db, routes, fast_policy, pause, members_html):
        source = make_source(endpoints={
            EntityType.OFFICIALS: "/members",
            EntityType.BILLS: "/bills",
        })
        routes.routes[ONTARIO_MEMBERS] = (200, members_html)
        fetcher = Fetcher(transport=routes.transport)
        orchestrator = DataOrchestrator(db=fake_db, sources=[source], fetcher=fetcher, policy=fast_policy, sleep=pause)

        summary = asyncio.run(_run(orchestrator, fetcher))

        assert routes.count("https://www.ola.org/bills") == 1
        assert summary.results[0].status == SourceStatus.PARTIAL
        assert len(fake_db.officials.docs) == 1

    def test_write_errors_mark_source_partial(self, fake_db, routes, fast_policy, pause, members_html):
        routes.routes[ONTARIO_MEMBERS] = (200, members_html)
        fake_db.officials.fail_with = OperationFailure("not primary")
        fetcher = Fetcher(transport=routes.transport)
        orchestrator = DataOrchestrator(
            db=fake_db, sources=_sources()[:1], fetcher=fetcher, policy=fast_policy, sleep=pause
        )

        summary = asyncio.run(_run(orchestrator, fetcher))

        assert summary.results[0].status == SourceStatus.PARTIAL
        assert summary.results[0].stats["errors"] == 1
        assert summary.status == RunStatus.PARTIALLY_FAILED

    def test_unexpected_exception_fails_only_that_source(
        self, fake_db, routes, fast_policy, pause, members_html, monkeypatch
    ):
        routes.routes.update({
            ONTARIO_MEMBERS: (200, members_html),
            ALBERTA_MEMBERS: (200, ALBERTA_TABLE),
        })
        original_fetch_data = GovernmentSourceIngester.fetch_data

        def fetch_data(self, **kwargs):
            if self.source.name == "Ontario":
                raise RuntimeError("boom")
            return original_fetch_data(self, **kwargs)

        monkeypatch.setattr(GovernmentSourceIngester, "fetch_data", fetch_data)
        sources = [_sources()[0], _sources()[2]]
        fetcher = Fetcher(transport=routes.transport)
        orchestrator = DataOrchestrator(db=fake_db, sources=sources, fetcher=fetcher, policy=fast_policy, sleep=pause)

        summary = asyncio.run(_run(orchestrator, fetcher))

        assert summary.results[0].status == SourceStatus.FAILED
        assert summary.results[0].error == "boom"
        assert summary.results[1].status == SourceStatus.SUCCEEDED
        assert [doc["name"] for doc in fake_db.officials.docs] == ["John Smith"]


class TestEndToEnd:
    """Scrape -> extract -> normalize -> upsert, twice"""

    def test_repeat_scrape_converges_to_one_record(self, fake_db, routes, fast_policy, members_html):
        routes.routes[ONTARIO_MEMBERS] = (200, members_html)
        source = make_source(
            name="Legislative Assembly of Ontario",
            base_url="https://www.ola.org",
            level=GovernmentLevel.PROVINCIAL,
            jurisdiction="Ontario",
        )
        fetcher = Fetcher(transport=routes.transport)
        orchestrator = DataOrchestrator(
            db=fake_db, sources=[source], fetcher=fetcher, policy=fast_policy, sleep=SleepRecorder()
        )

        async def scrape_twice():
            try:
                first = await orchestrator.run_once()
                second = await orchestrator.run_once()
            finally:
                await fetcher.close()
            return first, second

        first, second = asyncio.run(scrape_twice())

        assert first.results[0].stats["inserted"] == 1
        assert second.results[0].stats["inserted"] == 0
        assert second.results[0].stats["updated"] == 1

        assert len(fake_db.officials.docs) == 1
        doc = fake_db.officials.docs[0]
        assert doc["name"] == "Jane Doe"
        assert doc["party"] == "Liberal"
        assert doc["constituency"] == "Test Riding"
        assert doc["jurisdiction"] == "Ontario"
        assert doc["level"] == "provincial"
        assert doc["position"] == "MPP"
        assert doc["trust_score"] == 75
        assert doc["source_url"] == ONTARIO_MEMBERS

    def test_concurrent_runs_converge(self, fake_db, routes, fast_policy, members_html):
        routes.routes.update({
            ONTARIO_MEMBERS: (200, members_html),
            "https://www.ola.org/bills": (
                200, '<div data-bill-number="Bill 23"><h3>More Homes Built Faster Act</h3></div>'
            ),
            ALBERTA_MEMBERS: (200, ALBERTA_TABLE),
        })
        sources = [
            make_source(name="Ontario", endpoints={
                EntityType.OFFICIALS: "/members",
                EntityType.BILLS: "/bills",
            }),
            make_source(name="Alberta", base_url="https://www.assembly.ab.ca", jurisdiction="Alberta"),
        ]

        async def yielding_sleep(seconds):
            await asyncio.sleep(0)

        fetcher = Fetcher(transport=routes.transport)
        first = DataOrchestrator(db=fake_db, sources=sources, fetcher=fetcher, policy=fast_policy,
                                 sleep=yielding_sleep)
        second = DataOrchestrator(db=fake_db, sources=list(reversed(sources)), fetcher=fetcher,
                                  policy=fast_policy, sleep=yielding_sleep)

        async def overlapping_runs():
            try:
                return await asyncio.gather(first.run_once(), second.run_once())
            finally:
                await fetcher.close()

        summaries = asyncio.run(overlapping_runs())

        assert [s.status for s in summaries] == [RunStatus.COMPLETED, RunStatus.COMPLETED]
        keys = [(doc["name"], doc["jurisdiction"]) for doc in fake_db.officials.docs]
        assert sorted(keys) == [("Jane Doe", "Ontario"), ("John Smith", "Alberta")]
        assert len(fake_db.bills.docs) == 1
        assert routes.count(ONTARIO_MEMBERS) == 2

    def test_statements_resolve_speakers_scraped_in_the_same_run(self, fake_db, routes, fast_policy, members_html):
        hansard = """
        <div class="intervention"><span class="speaker">Jane Doe</span><p>Housing matters to my riding.</p></div>
        <div class="intervention"><span class="speaker">Nobody Known</span><p>This will be dropped.</p></div>
        """
        routes.routes.update({
            ONTARIO_MEMBERS: (200, members_html),
            "https://www.ola.org/hansard": (200, hansard),
        })
        source = make_source(endpoints={
            EntityType.STATEMENTS: "/hansard",
            EntityType.OFFICIALS: "/members",
        })
        fetcher = Fetcher(transport=routes.transport)
        orchestrator = DataOrchestrator(db=fake_db, sources=[source], fetcher=fetcher, policy=fast_policy,
                                        sleep=SleepRecorder())

        summary = asyncio.run(_run(orchestrator, fetcher))

        assert len(fake_db.statements.docs) == 1
        assert fake_db.statements.docs[0]["speaker_name"] == "Jane Doe"
        assert summary.results[0].stats["skipped"] == 1


class TestStatus:
    def test_status_before_any_run(self, fake_db):
        orchestrator = DataOrchestrator(db=fake_db, sources=_sources())

        status = orchestrator.status()

        assert status["state"] == "idle"
        assert status["total_sources"] == 3
        assert status["last_summary"] is None

    def test_status_during_and_after_run(self, fake_db, routes, fast_policy, members_html):
        routes.routes[ONTARIO_MEMBERS] = (200, members_html)
        seen = []
        orchestrator = None

        async def watching_sleep(seconds):
            seen.append(orchestrator.status())

        fetcher = Fetcher(transport=routes.transport)
        orchestrator = DataOrchestrator(
            db=fake_db, sources=_sources(), fetcher=fetcher, policy=fast_policy, sleep=watching_sleep
        )

        asyncio.run(_run(orchestrator, fetcher, sources=_sources()[:2]))

        assert seen[0]["state"] == "running"
        assert seen[0]["current_source"] == "Ontario"
        assert seen[0]["total_sources"] == 2

        status = orchestrator.status()
        assert status["state"] == "partially_failed"
        assert status["current_source"] is None
        assert status["last_summary"]["failed_sources"] == ["British Columbia"]
