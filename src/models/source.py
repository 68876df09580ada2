"""
Data source models.

A Source describes one government website we scrape: where it lives,
which entity types it publishes, and how often and how fast we may crawl it.
Sources are static configuration and are never persisted.
"""
from enum import Enum
from typing import Dict, List, Optional
from urllib.parse import urljoin, urlparse

from pydantic import BaseModel, ConfigDict, Field

from src.config.constants import (
    DEFAULT_RATE_LIMIT_PER_MINUTE,
    TIER_DAILY,
    TIER_FREQUENT,
    TIER_WEEKLY,
)


class GovernmentLevel(str, Enum):
    """Level of government."""
    FEDERAL = "federal"
    PROVINCIAL = "provincial"
    MUNICIPAL = "municipal"


class EntityType(str, Enum):
    """Kinds of records a source can supply."""
    OFFICIALS = "officials"
    BILLS = "bills"
    VOTES = "votes"
    STATEMENTS = "statements"
    COMMITTEES = "committees"
    ELECTIONS = "elections"


class Source(BaseModel):
    """
    A government website treated as one unit of scraping configuration.

    `endpoints` maps each entity type to a path (or absolute URL) on the site.
    `container_selectors` and `field_selectors` are tried before the generic
    extraction rules, for sites whose markup we know a little about.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Human-readable source name")
    base_url: str = Field(..., description="Site root, e.g. https://www.ola.org")
    level: GovernmentLevel
    jurisdiction: str = Field(..., description="Jurisdiction name, e.g. Ontario")
    endpoints: Dict[EntityType, str] = Field(default_factory=dict)
    crawl_frequency_hours: int = Field(24, ge=1)
    rate_limit_per_minute: int = Field(DEFAULT_RATE_LIMIT_PER_MINUTE, ge=1)

    container_selectors: Dict[EntityType, List[str]] = Field(default_factory=dict)
    field_selectors: Dict[EntityType, Dict[str, List[str]]] = Field(default_factory=dict)

    @property
    def domain(self) -> str:
        """Host name without a leading www."""
        host = urlparse(self.base_url).netloc.lower()
        return host[4:] if host.startswith("www.") else host

    @property
    def entity_types(self) -> List[EntityType]:
        return list(self.endpoints.keys())

    @property
    def tier(self) -> str:
        """Run tier bucket derived from the crawl frequency hint."""
        if self.crawl_frequency_hours <= 6:
            return TIER_FREQUENT
        if self.crawl_frequency_hours <= 24:
            return TIER_DAILY
        return TIER_WEEKLY

    @property
    def request_delay_seconds(self) -> float:
        """Pause to leave after finishing with this source."""
        return 60.0 / self.rate_limit_per_minute

    def url_for(self, entity_type: EntityType) -> Optional[str]:
        """Absolute URL of the endpoint for an entity type, if the source has one."""
        path = self.endpoints.get(entity_type)
        if path is None:
            return None
        return urljoin(self.base_url.rstrip("/") + "/", path.lstrip("/"))

    def supplies(self, entity_type: EntityType) -> bool:
        return entity_type in self.endpoints

    def __str__(self) -> str:
        return f"{self.name} ({self.jurisdiction}, {self.level.value})"


class PoliticalLean(str, Enum):
    """Editorial lean of a news outlet."""
    LEFT = "left"
    CENTER_LEFT = "center-left"
    CENTER = "center"
    CENTER_RIGHT = "center-right"
    RIGHT = "right"


class NewsSource(BaseModel):
    """A news outlet whose RSS feed we pull for political coverage."""
    model_config = ConfigDict(frozen=True)

    name: str
    feed_url: str
    political_lean: PoliticalLean = PoliticalLean.CENTER
    credibility_score: int = Field(75, ge=0, le=100)
    language: str = "en"

    def __str__(self) -> str:
        return f"{self.name} ({self.political_lean.value})"
