"""
Cross-source topic comparison model.
"""
from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, Field


class PoliticalBias(BaseModel):
    """Share (percent) of coverage by lean."""
    left: int = 33
    center: int = 34
    right: int = 33


class TopicComparison(BaseModel):
    """
    How different outlets covered the same topic in one aggregation pass.

    Only built when at least two sources covered the topic.
    """

    topic: str = Field(..., description="Natural key")
    sources: List[str] = Field(default_factory=list)
    consensus_level: float = Field(50.0, ge=0, le=100)
    major_discrepancies: List[str] = Field(default_factory=list)
    propaganda_patterns: List[str] = Field(default_factory=list)
    factual_accuracy: float = Field(50.0, ge=0, le=100)
    political_bias: PoliticalBias = Field(default_factory=PoliticalBias)
    article_count: int = 0

    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
