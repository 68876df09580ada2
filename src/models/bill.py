"""
Legislation data models.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from src.config.constants import DEFAULT_BILL_CATEGORY
from src.models.source import GovernmentLevel


class Bill(BaseModel):
    """
    A bill before a federal, provincial or territorial legislature.

    Keyed by bill number (e.g. "C-69", "S-12"). Status and type stay None
    when not scraped; defaults are applied only when the bill is first stored.
    """

    bill_number: str = Field(..., description="Letter prefix, dash and digits, e.g. C-69")
    title: str

    summary: Optional[str] = None
    status: Optional[str] = None
    bill_type: Optional[str] = None
    category: str = DEFAULT_BILL_CATEGORY
    sponsor: Optional[str] = None
    introduced_date: Optional[datetime] = None

    jurisdiction: str
    level: GovernmentLevel = GovernmentLevel.FEDERAL

    source_name: Optional[str] = None
    source_url: Optional[str] = None
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def __str__(self) -> str:
        return f"Bill {self.bill_number}: {self.title[:60]}"
