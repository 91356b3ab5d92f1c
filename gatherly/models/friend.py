"""Friend edge data model for Gatherly."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class Friend(BaseModel):
    """Denormalized snapshot of a friend, as stored under the owner's edge.

    A friendship is only real when the reverse edge exists as well.
    """

    uid: str = Field(..., description="Friend's user id")
    display_name: Optional[str] = Field(None, description="Friend's display name at the time the edge was written")
    photo_url: Optional[str] = Field(None, description="Friend's avatar URL at the time the edge was written")


class FriendEdge(BaseModel):
    """One directional edge record: owner -> friend."""

    owner_uid: str = Field(..., description="User whose friend list holds this edge")
    friend: Friend = Field(..., description="Snapshot of the friend")
    created_at: datetime = Field(..., description="Edge creation timestamp")
