"""User profile data model for Gatherly."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class UserProfile(BaseModel):
    """User profile record, keyed by the auth provider's uid."""

    uid: str = Field(..., description="Opaque, stable user identifier")
    email: Optional[str] = Field(None, description="User email address")
    display_name: Optional[str] = Field(None, description="User display name")
    photo_url: Optional[str] = Field(None, description="Avatar URL")
    child_nickname: Optional[str] = Field(None, max_length=50, description="Optional child nickname")
    created_at: datetime = Field(..., description="Profile creation timestamp (set once)")
