"""
Committee and election data models.
"""
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field


class Committee(BaseModel):
    """A standing, special or joint committee of a legislature."""

    name: str
    jurisdiction: str
    committee_type: Optional[str] = None
    chair: Optional[str] = None
    members: List[str] = Field(default_factory=list)

    source_url: Optional[str] = None
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ElectionRecord(BaseModel):
    """A general election or by-election listed by an electoral agency."""

    name: str
    jurisdiction: str
    date: Optional[datetime] = None
    election_type: Optional[str] = Field(None, description="General, By-election, Referendum")

    source_url: Optional[str] = None
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
