"""
Voting record data models.

Recorded divisions scraped from legislature vote pages.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class VotingRecord(BaseModel):
    """
    The outcome of one recorded division on a bill.

    Keyed by (bill_number, vote_date). The bill does not have to exist in
    the store yet; bills and votes come from different pages at different times.
    """

    bill_number: str
    vote_date: Optional[datetime] = None

    vote_type: Optional[str] = None
    result: Optional[str] = None

    yes_votes: int = Field(0, ge=0)
    no_votes: int = Field(0, ge=0)
    abstentions: int = Field(0, ge=0)

    jurisdiction: str
    chamber: str = Field(..., description="House of Commons, Senate, Legislative Assembly")

    source_url: Optional[str] = None
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_votes(self) -> int:
        return self.yes_votes + self.no_votes + self.abstentions

    @property
    def passed(self) -> bool:
        if self.result:
            lowered = self.result.lower()
            if any(word in lowered for word in ("agreed", "passed", "carried", "adopted")):
                return True
            if any(word in lowered for word in ("negatived", "defeated", "failed", "rejected")):
                return False
        return self.yes_votes > self.no_votes

    def __str__(self) -> str:
        date_str = self.vote_date.date().isoformat() if self.vote_date else "undated"
        return f"Vote on {self.bill_number} ({date_str}): {self.yes_votes}-{self.no_votes}"
