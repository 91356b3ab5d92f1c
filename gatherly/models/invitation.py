"""Invitation data model for Gatherly."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class Invitation(BaseModel):
    """Single-use invitation; possessing the code authorizes redemption."""

    code: str = Field(..., description="Short random token (primary key)")
    inviter_id: str = Field(..., description="User id of the inviter")
    inviter_name: Optional[str] = Field(None, description="Inviter display name (denormalized)")
    created_at: datetime = Field(..., description="Creation timestamp")
    expires_at: datetime = Field(..., description="Expiry timestamp")

    def is_expired(self, now: datetime) -> bool:
        """True once `expires_at` is strictly in the past."""
        return self.expires_at < now


class Redemption(BaseModel):
    """Outcome of a successful invitation redemption."""

    code: str
    inviter_id: str
    inviter_name: Optional[str] = None
    already_friends: bool = Field(False, description="True if the friendship existed before redemption")
