"""Data models for Gatherly."""

from gatherly.models.user import UserProfile
from gatherly.models.friend import Friend, FriendEdge
from gatherly.models.invitation import Invitation, Redemption
from gatherly.models.activity import Activity, ActivityCreate, ActivityPatch, Participant
from gatherly.models.feed import FeedResult, FeedWarning

__all__ = [
    "UserProfile",
    "Friend",
    "FriendEdge",
    "Invitation",
    "Redemption",
    "Activity",
    "ActivityCreate",
    "ActivityPatch",
    "Participant",
    "FeedResult",
    "FeedWarning",
]
