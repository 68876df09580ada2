"""
Tests for the news feed ingester.
"""
import asyncio

import pytest

from src.ingestion.fetcher import Fetcher
from src.ingestion.news import NewsIngester
from src.models.source import NewsSource, PoliticalLean

from tests.conftest import SleepRecorder

CBC_FEED = "https://www.cbc.ca/cmlink/rss-politics"
DOWN_FEED = "https://down.example.ca/feed"

FEED = """<?xml version="1.0"?>
<rss version="2.0"><channel>
  <item>
    <title>Finance minister tables federal budget</title>
    <link>https://www.cbc.ca/news/politics/budget</link>
    <description>The government tabled its budget on Tuesday.</description>
    <pubDate>Tue, 16 Apr 2024 20:00:00 GMT</pubDate>
  </item>
  <item>
    <title>Premier calls snap election</title>
    <link>https://www.cbc.ca/news/politics/snap-election</link>
    <description>Voters head to the polls next month.</description>
  </item>
  <item>
    <title>Leafs win in overtime</title>
    <link>https://www.cbc.ca/sports/leafs</link>
    <description>A thrilling finish at the arena.</description>
  </item>
</channel></rss>
"""

BUDGET_PAGE = """
<article>
  <p>The federal budget includes new spending on housing and defence.</p>
  <p>Opposition parties criticized the deficit projections.</p>
</article>
"""


@pytest.fixture
def feeds():
    return [
        NewsSource(name="Down Outlet", feed_url=DOWN_FEED),
        NewsSource(name="CBC News", feed_url=CBC_FEED, political_lean=PoliticalLean.CENTER_LEFT,
                   credibility_score=85),
    ]


class TestNewsIngester:
    """Feed ingestion"""

    def _ingester(self, fake_db, routes, feeds, policy, pause):
        fetcher = Fetcher(transport=routes.transport)
        return NewsIngester(fetcher, db=fake_db, news_sources=feeds, policy=policy, sleep=pause)

    async def _run(self, ingester):
        try:
            return await ingester.run()
        finally:
            await ingester.fetcher.close()

    def test_ingests_political_items_only(self, fake_db, routes, feeds, fast_policy):
        routes.routes.update({
            DOWN_FEED: (503, "down"),
            CBC_FEED: (200, FEED),
            "https://www.cbc.ca/news/politics/budget": (200, BUDGET_PAGE),
        })
        pause = SleepRecorder()
        ingester = self._ingester(fake_db, routes, feeds, fast_policy, pause)

        stats = asyncio.run(self._run(ingester))

        assert stats["inserted"] == 2
        assert ingester.filtered == 1
        assert len(ingester.failures) == 1
        assert ingester.failures[0].url == DOWN_FEED
        # One pause between the two feeds
        assert pause.delays == [2.0]

        by_url = {doc["url"]: doc for doc in fake_db.articles.docs}
        budget = by_url["https://www.cbc.ca/news/politics/budget"]
        assert budget["source"] == "CBC News"
        assert budget["political_lean"] == "center-left"
        assert budget["source_credibility"] == 85
        assert budget["content"].startswith("The federal budget includes")
        assert budget["published_at"] is not None
        assert budget["enriched"] is False

        # Article page 404s, so the feed description is kept
        snap = by_url["https://www.cbc.ca/news/politics/snap-election"]
        assert snap["content"] == "Voters head to the polls next month."

    def test_stored_urls_are_not_refetched(self, fake_db, routes, feeds, fast_policy):
        routes.routes.update({
            CBC_FEED: (200, FEED),
            "https://www.cbc.ca/news/politics/budget": (200, BUDGET_PAGE),
        })
        feeds = feeds[1:]

        asyncio.run(self._run(self._ingester(fake_db, routes, feeds, fast_policy, SleepRecorder())))
        page_fetches = routes.count("https://www.cbc.ca/news/politics/budget")

        second = self._ingester(fake_db, routes, feeds, fast_policy, SleepRecorder())
        stats = asyncio.run(self._run(second))

        assert stats["inserted"] == 0
        assert stats["skipped"] == 2
        assert routes.count("https://www.cbc.ca/news/politics/budget") == page_fetches
        assert len(fake_db.articles.docs) == 2

    def test_feed_description_only_mode(self, fake_db, routes, feeds, fast_policy):
        routes.routes[CBC_FEED] = (200, FEED)
        fetcher = Fetcher(transport=routes.transport)
        ingester = NewsIngester(
            fetcher, db=fake_db, news_sources=feeds[1:], policy=fast_policy,
            fetch_full_text=False, sleep=SleepRecorder(),
        )

        asyncio.run(self._run(ingester))

        assert routes.calls == [CBC_FEED]
        assert len(fake_db.articles.docs) == 2
