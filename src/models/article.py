"""
News article and enrichment label models.
"""
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

BIAS_RATINGS = ("left", "center-left", "center", "center-right", "right")


def _clamp(value: Any, low: float, high: float, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


def _as_string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [part for part in value.split(",")]
    if not isinstance(value, (list, tuple, set)):
        raise ValueError(f"expected a list of strings, got {type(value).__name__}")
    return [str(item).strip() for item in value if str(item).strip()]


class EnrichmentLabels(BaseModel):
    """
    Structured labels returned by the text classifier.

    Out-of-range numbers are clamped and unknown bias ratings collapse to
    "center" so a sloppy model response still validates.
    """

    credibility_score: float = Field(50.0, description="0-100")
    sentiment_score: float = Field(0.0, description="-1 (negative) to 1 (positive)")
    bias_rating: str = "center"
    key_topics: List[str] = Field(default_factory=list)
    propaganda_techniques: List[str] = Field(default_factory=list)
    factuality_score: float = Field(50.0, description="0-100")

    political_impact: float = 50.0
    public_impact: float = 50.0
    fact_check: str = "Analysis pending"
    summary: str = ""
    emotional_tone: str = "neutral"
    claims: List[str] = Field(default_factory=list)

    # True when these are the fixed fallback values, not a model response
    fallback: bool = False

    @field_validator("credibility_score", "factuality_score", "political_impact", "public_impact", mode="before")
    @classmethod
    def _clamp_percent(cls, value):
        return _clamp(value, 0.0, 100.0, 50.0)

    @field_validator("sentiment_score", mode="before")
    @classmethod
    def _clamp_sentiment(cls, value):
        return _clamp(value, -1.0, 1.0, 0.0)

    @field_validator("bias_rating", mode="before")
    @classmethod
    def _normalize_bias(cls, value):
        rating = str(value or "").strip().lower().replace("_", "-").replace(" ", "-")
        return rating if rating in BIAS_RATINGS else "center"

    @field_validator("key_topics", "propaganda_techniques", "claims", mode="before")
    @classmethod
    def _listify(cls, value):
        return _as_string_list(value)

    @field_validator("fact_check", "summary", "emotional_tone", mode="before")
    @classmethod
    def _stringify(cls, value):
        return "" if value is None else str(value)


def default_labels() -> EnrichmentLabels:
    """The fixed labels stored when enrichment is unavailable or fails."""
    return EnrichmentLabels(
        credibility_score=50.0,
        sentiment_score=0.0,
        bias_rating="center",
        key_topics=[],
        propaganda_techniques=[],
        factuality_score=50.0,
        political_impact=50.0,
        public_impact=50.0,
        fact_check="Analysis pending",
        summary="",
        emotional_tone="neutral",
        claims=[],
        fallback=True,
    )


class Article(BaseModel):
    """
    A news article pulled from an RSS feed.

    Keyed by url. Enrichment fields are written later by the enrichment job;
    until then `enriched` is False.
    """

    title: str
    url: str
    source: str
    content: str = ""
    published_at: Optional[datetime] = None
    author: Optional[str] = None

    political_lean: Optional[str] = None
    source_credibility: Optional[int] = None

    enriched: bool = False
    enriched_at: Optional[datetime] = None
    labels: Optional[EnrichmentLabels] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_document(self) -> dict:
        """Flatten into the stored document shape (labels inline)."""
        doc = self.model_dump(exclude={"labels"})
        if self.labels is not None:
            doc.update(self.labels.model_dump())
        return doc

    def __str__(self) -> str:
        return f"{self.source}: {self.title[:70]}"
