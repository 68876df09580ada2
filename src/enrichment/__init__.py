"""Text enrichment module - classifier client and article enrichment."""

from src.enrichment.client import TextEnrichmentClient
from src.enrichment.enricher import ArticleEnricher, compare_topic

__all__ = [
    "TextEnrichmentClient",
    "ArticleEnricher",
    "compare_topic",
]
