"""
Analytics snapshot and health report models.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class AnalyticsSnapshot(BaseModel):
    """Summary statistics recomputed from the store on a schedule."""

    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    totals: Dict[str, int] = Field(default_factory=dict)
    party_distribution: List[Dict[str, Any]] = Field(default_factory=list)
    jurisdiction_breakdown: List[Dict[str, Any]] = Field(default_factory=list)
    level_breakdown: Dict[str, int] = Field(default_factory=dict)
    position_hierarchy: List[Dict[str, Any]] = Field(default_factory=list)

    bill_categories: Dict[str, int] = Field(default_factory=dict)
    bill_statuses: Dict[str, int] = Field(default_factory=dict)

    credibility_average: Optional[float] = None
    sentiment_average: Optional[float] = None
    # Enriched articles holding default labels, left out of the averages
    default_labelled_articles: int = 0
    bias_distribution: Dict[str, int] = Field(default_factory=dict)
    topic_frequency: List[Dict[str, Any]] = Field(default_factory=list)
    source_distribution: Dict[str, int] = Field(default_factory=dict)

    # Sections that could not be computed this pass
    failed_sections: List[str] = Field(default_factory=list)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    CRITICAL = "critical"


class HealthReport(BaseModel):
    """Point-in-time platform health metrics."""

    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: HealthStatus = HealthStatus.HEALTHY

    database: Dict[str, Any] = Field(default_factory=dict)
    data_quality: Dict[str, Any] = Field(default_factory=dict)
    scraper: Dict[str, Any] = Field(default_factory=dict)
    jobs: Dict[str, Any] = Field(default_factory=dict)

    issues: List[str] = Field(default_factory=list)
