"""Feed result model for Gatherly."""

from typing import List
from pydantic import BaseModel, Field

from gatherly.models.activity import Activity


class FeedWarning(BaseModel):
    """Non-fatal problem encountered while building a feed."""

    source: str = Field(..., description="'friends', 'creators' or 'participants'")
    message: str
    batches: List[int] = Field(default_factory=list, description="Indices of failed creator batches")


class FeedResult(BaseModel):
    """Upcoming activities relevant to a user, soonest first."""

    activities: List[Activity] = Field(default_factory=list)
    warnings: List[FeedWarning] = Field(default_factory=list)
    partial: bool = Field(False, description="True when some source failed (see warnings)")
