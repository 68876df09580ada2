"""Data models module."""

from src.models.source import (
    EntityType,
    GovernmentLevel,
    NewsSource,
    PoliticalLean,
    Source,
)

from src.models.official import (
    ContactInfo,
    Official,
)

from src.models.bill import Bill
from src.models.vote import VotingRecord
from src.models.statement import Statement
from src.models.committee import Committee, ElectionRecord

from src.models.article import (
    Article,
    EnrichmentLabels,
    default_labels,
)

from src.models.topic import (
    PoliticalBias,
    TopicComparison,
)

from src.models.analytics import (
    AnalyticsSnapshot,
    HealthReport,
    HealthStatus,
)

__all__ = [
    # Sources
    "EntityType",
    "GovernmentLevel",
    "NewsSource",
    "PoliticalLean",
    "Source",
    # Government records
    "ContactInfo",
    "Official",
    "Bill",
    "VotingRecord",
    "Statement",
    "Committee",
    "ElectionRecord",
    # News
    "Article",
    "EnrichmentLabels",
    "default_labels",
    "PoliticalBias",
    "TopicComparison",
    # Analytics
    "AnalyticsSnapshot",
    "HealthReport",
    "HealthStatus",
]
