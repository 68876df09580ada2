"""
Official data models.

Defines the structure for MPs, senators, provincial members and municipal councillors.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from src.models.source import GovernmentLevel


class ContactInfo(BaseModel):
    """Contact details scraped from a member profile or listing."""
    email: Optional[str] = None
    phone: Optional[str] = None
    office: Optional[str] = None
    website: Optional[str] = None

    def is_empty(self) -> bool:
        return not any([self.email, self.phone, self.office, self.website])


class Official(BaseModel):
    """
    An elected or appointed official.

    Natural key is (name, jurisdiction). Optional fields stay None when the
    source did not publish them so a re-scrape never blanks stored values.
    """

    # Natural key
    name: str = Field(..., min_length=1)
    jurisdiction: str = Field(..., description="Jurisdiction name, e.g. Canada, Ontario, Toronto")

    # Political info
    position: Optional[str] = Field(None, description="MP, Senator, MPP, Mayor, ...")
    party: Optional[str] = None
    level: GovernmentLevel = GovernmentLevel.FEDERAL
    constituency: Optional[str] = Field(None, description="Riding, district or ward")

    contact: ContactInfo = Field(default_factory=ContactInfo)
    profile_url: Optional[str] = None
    image_url: Optional[str] = None

    # Only ever written on insert
    trust_score: int = Field(75, ge=0, le=100)

    # Provenance
    source_name: Optional[str] = None
    source_url: Optional[str] = None
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def __str__(self) -> str:
        party = f" ({self.party})" if self.party else ""
        riding = f" - {self.constituency}" if self.constituency else ""
        return f"{self.position or 'Member'} {self.name}{party}{riding}, {self.jurisdiction}"
