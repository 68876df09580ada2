"""
Statement data models (Hansard interventions, speeches).
"""
import hashlib
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class Statement(BaseModel):
    """
    Something an official said on the record.

    Stored only when `speaker_name` resolves to a known official;
    `official_id` is filled in by the writer after that lookup.
    """

    speaker_name: str
    content: str
    date: Optional[datetime] = None
    context: Optional[str] = None
    source: str = "House of Commons Hansard"
    source_url: Optional[str] = None

    official_id: Optional[str] = None
    jurisdiction: Optional[str] = None

    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def content_hash(self) -> str:
        """Stable hash of the statement text, used to skip re-inserts."""
        return hashlib.sha256(self.content.strip().encode("utf-8")).hexdigest()
