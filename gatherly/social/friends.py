"""Friend graph: symmetric friendships stored as two directional edges.

A friendship exists only when both edges exist. `add` writes whichever
sides are missing in one commit, which also repairs a pair left one-sided
by an earlier failure. Reads never report a one-sided pair as friends.
"""

import logging
from typing import Callable, List
from datetime import datetime
from sqlalchemy.orm import Session

from gatherly.clock import utcnow
from gatherly.database.database import transaction
from gatherly.database.friend_repository import FriendEdgeRepository
from gatherly.database.user_repository import UserRepository
from gatherly.models.friend import Friend, FriendEdge
from gatherly.social.exceptions import (
    AlreadyFriendsError,
    ProfileNotFoundError,
    SelfReferenceError,
)

logger = logging.getLogger(__name__)


class FriendGraph:
    """Maintains friend edge pairs between user profiles."""

    def __init__(self, db: Session, now: Callable[[], datetime] = utcnow):
        self.db = db
        self.edges = FriendEdgeRepository(db)
        self.users = UserRepository(db)
        self.now = now

    def _snapshot_edge(self, owner_uid: str, friend_uid: str) -> FriendEdge:
        profile = self.users.get(friend_uid)
        if profile is None:
            raise ProfileNotFoundError()
        return FriendEdge(
            owner_uid=owner_uid,
            friend=Friend(uid=profile.uid, display_name=profile.display_name, photo_url=profile.photo_url),
            created_at=self.now(),
        )

    def stage_add(self, user_a: str, user_b: str) -> List[FriendEdge]:
        """Check and stage the missing edges between two users without committing.

        Raises:
            SelfReferenceError: user_a == user_b
            AlreadyFriendsError: both edges already exist
            ProfileNotFoundError: a missing side's friend profile doesn't exist
        """
        if user_a == user_b:
            raise SelfReferenceError()

        has_ab = self.edges.get_edge(user_a, user_b) is not None
        has_ba = self.edges.get_edge(user_b, user_a) is not None
        if has_ab and has_ba:
            raise AlreadyFriendsError()
        if has_ab or has_ba:
            logger.warning(f"Repairing one-sided friend edge between {user_a} and {user_b}")

        # Resolve both snapshots before writing anything.
        missing: List[FriendEdge] = []
        if not has_ab:
            missing.append(self._snapshot_edge(user_a, user_b))
        if not has_ba:
            missing.append(self._snapshot_edge(user_b, user_a))

        self.edges.upsert_many(missing, commit=False)
        return missing

    def add(self, user_a: str, user_b: str) -> List[FriendEdge]:
        """Make two users friends, writing both missing sides in one commit.

        Returns:
            The edges that were written
        """
        with transaction(self.db):
            written = self.stage_add(user_a, user_b)
        logger.info(f"Friendship created between {user_a} and {user_b} ({len(written)} edge(s) written)")
        return written

    def remove(self, user_a: str, user_b: str) -> None:
        """Remove both edges between two users. Already-absent edges are fine."""
        deleted = self.edges.delete_pair(user_a, user_b)
        logger.info(f"Friendship removed between {user_a} and {user_b} ({deleted} edge(s) deleted)")

    def list(self, user_id: str) -> List[Friend]:
        """Friends of user_id, ordered by display name (nulls last), then uid.

        One-sided edges are not friendships and are left out.
        """
        return self.edges.list_mutual(user_id)

    def are_friends(self, user_a: str, user_b: str) -> bool:
        if user_a == user_b:
            return False
        return (
            self.edges.get_edge(user_a, user_b) is not None
            and self.edges.get_edge(user_b, user_a) is not None
        )
