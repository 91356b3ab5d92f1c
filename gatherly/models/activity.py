"""Activity data model for Gatherly."""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from gatherly.clock import to_naive_utc


def normalize_location(value: Optional[str]) -> Optional[str]:
    """Empty or whitespace-only locations mean "no location"."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class Participant(BaseModel):
    """Membership entry on an activity. Identity is `uid`; the rest is display payload."""

    uid: str = Field(..., description="Participant user id (membership key)")
    name: Optional[str] = Field(None, description="Display name at join time")
    photo_url: Optional[str] = Field(None, description="Avatar URL at join time")


class Activity(BaseModel):
    """Canonical Activity model."""

    id: str = Field(..., description="Unique activity identifier (UUID v4)")
    title: str = Field(..., description="Activity title")
    date: datetime = Field(..., description="When the activity happens (naive UTC)")
    location: Optional[str] = Field(None, description="Where the activity happens")
    creator_id: str = Field(..., description="User id of the creator")
    creator_name: str = Field(..., description="Creator display name (denormalized)")
    creator_photo_url: Optional[str] = Field(None, description="Creator avatar URL (denormalized)")
    participants: List[Participant] = Field(default_factory=list, description="Members in join order")
    created_at: datetime = Field(..., description="Creation timestamp")

    def has_participant(self, uid: str) -> bool:
        return any(p.uid == uid for p in self.participants)


class ActivityCreate(BaseModel):
    """Input for creating an activity."""

    title: str = Field(..., min_length=1)
    date: datetime
    location: Optional[str] = None
    creator_id: str = Field(..., min_length=1)
    creator_name: str = Field(..., min_length=1)
    creator_photo_url: Optional[str] = None

    @field_validator("location")
    @classmethod
    def _normalize_location(cls, v: Optional[str]) -> Optional[str]:
        return normalize_location(v)

    @field_validator("date")
    @classmethod
    def _naive_utc_date(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class ActivityPatch(BaseModel):
    """Mutable activity fields. Fields not set by the caller are left untouched.

    Setting `location` explicitly to None (or "") clears it.
    """

    title: Optional[str] = Field(None, min_length=1)
    date: Optional[datetime] = None
    location: Optional[str] = None

    @field_validator("location")
    @classmethod
    def _normalize_location(cls, v: Optional[str]) -> Optional[str]:
        return normalize_location(v)

    @field_validator("date")
    @classmethod
    def _naive_utc_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v) if v is not None else None
