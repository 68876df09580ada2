"""
News feed ingester.

Pulls the newest items from each outlet's RSS/Atom feed, keeps the ones
about politics, and stores them as unenriched articles. Enrichment runs
later as a separate step (src.enrichment.enricher).
"""
import asyncio
from typing import AsyncGenerator, Awaitable, Callable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from src.config.constants import (
    ARTICLES_PER_FEED,
    COLLECTION_ARTICLES,
    FEED_ACCEPT,
    MIN_ARTICLE_TEXT_LENGTH,
    NEWS_SOURCE_DELAY,
)
from src.database.normalization import clean_or_none, clean_text, is_political_content, parse_date
from src.database.writer import WriteOutcome
from src.ingestion.base import BaseIngester
from src.ingestion.extractor import extract_article_text, parse_feed
from src.ingestion.fetcher import Fetcher
from src.ingestion.retry import RetryPolicy, TerminalFailure, with_retry
from src.ingestion.sources import NEWS_SOURCES
from src.models.article import Article
from src.models.source import NewsSource


class NewsIngester(BaseIngester[Article]):
    """
    Ingests political coverage from the NEWS_SOURCES feeds.

    Feeds are visited one after another with a pause between them. Articles
    whose URL is already stored are not fetched again.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        db: Optional[AsyncIOMotorDatabase] = None,
        news_sources: Optional[List[NewsSource]] = None,
        policy: Optional[RetryPolicy] = None,
        per_feed: int = ARTICLES_PER_FEED,
        feed_delay: float = NEWS_SOURCE_DELAY,
        fetch_full_text: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        super().__init__(db)
        self.fetcher = fetcher
        self.news_sources = news_sources if news_sources is not None else NEWS_SOURCES
        self.policy = policy
        self.per_feed = per_feed
        self.feed_delay = feed_delay
        self.fetch_full_text = fetch_full_text
        self.sleep = sleep
        self.failures: List[TerminalFailure] = []
        self.filtered = 0

    async def _already_stored(self, url: str) -> bool:
        existing = await self.db[COLLECTION_ARTICLES].find_one({"url": url}, {"_id": 1})
        return existing is not None

    async def _full_text(self, url: str, fallback: str) -> str:
        """Article body from its page, or the feed description if that fails."""
        if not self.fetch_full_text:
            return fallback
        try:
            response = await with_retry(lambda: self.fetcher.fetch(url), self.policy, description=f"article {url}")
        except TerminalFailure as e:
            self.logger.debug(f"Using feed description for {url}: {e}")
            return fallback

        text = extract_article_text(response.text)
        return text if len(text) >= MIN_ARTICLE_TEXT_LENGTH else fallback

    async def fetch_data(self, **kwargs) -> AsyncGenerator[dict, None]:
        """
        Yield political feed items not yet stored.

        Yields:
            {"news_source", "item", "content"} per new article
        """
        self.failures = []
        self.filtered = 0

        for index, news_source in enumerate(self.news_sources):
            if index > 0:
                await self.sleep(self.feed_delay)

            try:
                response = await with_retry(
                    lambda news_source=news_source: self.fetcher.fetch(
                        news_source.feed_url, headers={"Accept": FEED_ACCEPT}
                    ),
                    self.policy,
                    description=f"{news_source.name} feed",
                )
            except TerminalFailure as e:
                self.failures.append(e)
                self.logger.error(f"Skipping feed {news_source.name}: {e}")
                continue

            items = parse_feed(response.text, limit=self.per_feed)
            self.logger.info(f"Fetched {len(items)} items from {news_source.name}")

            for item in items:
                if not is_political_content(item["title"], item["description"]):
                    self.filtered += 1
                    continue
                if await self._already_stored(item["link"]):
                    self.stats["skipped"] += 1
                    continue

                content = await self._full_text(item["link"], item["description"])
                yield {"news_source": news_source, "item": item, "content": content}

    async def transform(self, raw_data: dict) -> Article:
        """Build an Article from a feed item."""
        news_source: NewsSource = raw_data["news_source"]
        item = raw_data["item"]

        title = clean_text(item.get("title"))
        if not title or not item.get("link"):
            raise ValueError("Feed item without title or link")

        return Article(
            title=title,
            url=item["link"],
            source=news_source.name,
            content=raw_data.get("content") or "",
            published_at=parse_date(item.get("published")),
            author=clean_or_none(item.get("author")),
            political_lean=news_source.political_lean.value,
            source_credibility=news_source.credibility_score,
        )

    async def load(self, item: Article) -> WriteOutcome:
        return await self.writer.insert_article_if_absent(item)
