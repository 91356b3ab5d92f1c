"""Activity feed: upcoming activities of a user, their friends, and the ones they joined.

Creator lookups go through an "in" query that accepts a bounded number of
values, so the relevant people are queried in batches and the results merged.
A failing source never sinks the whole feed: what succeeded is returned with
a warning naming what failed.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional
from sqlalchemy.orm import Session

from gatherly.clock import utcnow
from gatherly.database.activity_repository import ActivityRepository
from gatherly.models.activity import Activity
from gatherly.models.constants import FEED_QUERY_FANOUT_LIMIT
from gatherly.models.feed import FeedResult, FeedWarning
from gatherly.social.exceptions import GatherlyError, PartialAggregationError
from gatherly.social.friends import FriendGraph

logger = logging.getLogger(__name__)


def unique_in_order(values: Iterable[str]) -> List[str]:
    """Deduplicate while preserving order."""
    seen = set()
    unique: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            unique.append(value)
    return unique


def chunked(values: List[str], size: int) -> List[List[str]]:
    """Split values into consecutive batches of at most `size`."""
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [values[i:i + size] for i in range(0, len(values), size)]


def merge_activities(*sources: Iterable[Activity]) -> List[Activity]:
    """Merge activity lists, keeping one entry per id, ordered by date then id."""
    by_id: Dict[str, Activity] = {}
    for source in sources:
        for activity in source:
            by_id.setdefault(activity.id, activity)
    return sorted(by_id.values(), key=lambda a: (a.date, a.id))


class FeedAggregator:
    """Builds the upcoming-activity feed for a user."""

    def __init__(
        self,
        db: Session,
        friends: Optional[FriendGraph] = None,
        *,
        fanout_limit: int = FEED_QUERY_FANOUT_LIMIT,
        now: Callable[[], datetime] = utcnow,
    ):
        if fanout_limit < 1:
            raise ValueError("fanout_limit must be at least 1")
        self.friends = friends or FriendGraph(db, now=now)
        self.activities = ActivityRepository(db, max_in_values=fanout_limit)
        self.fanout_limit = fanout_limit
        self.now = now

    def relevant_people(self, uid: str, warnings: List[FeedWarning]) -> List[str]:
        """The user followed by their friends. Falls back to the user alone if friends can't be read."""
        try:
            friend_ids = [friend.uid for friend in self.friends.list(uid)]
        except GatherlyError as e:
            logger.warning(f"Friend list unavailable for {uid}, feed limited to own activities: {type(e).__name__}: {e}")
            warnings.append(FeedWarning(source="friends", message=f"friend list unavailable: {type(e).__name__}"))
            friend_ids = []
        return unique_in_order([uid, *friend_ids])

    def for_user(self, uid: str, strict: bool = False) -> FeedResult:
        """Upcoming activities created by the user or a friend, or joined by the user.

        Args:
            uid: User to build the feed for
            strict: Raise PartialAggregationError instead of returning a partial feed

        Returns:
            FeedResult with activities sorted by date and any warnings
        """
        now = self.now()
        warnings: List[FeedWarning] = []
        people = self.relevant_people(uid, warnings)

        by_creator: List[Activity] = []
        failed_batches: List[int] = []
        for index, batch in enumerate(chunked(people, self.fanout_limit)):
            try:
                by_creator.extend(self.activities.list_upcoming_by_creators(batch, now))
            except GatherlyError as e:
                logger.warning(f"Feed creator batch {index} failed for {uid}: {type(e).__name__}: {e}")
                failed_batches.append(index)
        if failed_batches:
            warnings.append(
                FeedWarning(
                    source="creators",
                    message=f"{len(failed_batches)} creator batch(es) failed",
                    batches=failed_batches,
                )
            )

        try:
            joined = self.activities.list_upcoming_by_participant(uid, now)
        except GatherlyError as e:
            logger.warning(f"Feed participant lookup failed for {uid}: {type(e).__name__}: {e}")
            warnings.append(FeedWarning(source="participants", message=f"joined activities unavailable: {type(e).__name__}"))
            joined = []

        result = FeedResult(
            activities=merge_activities(by_creator, joined),
            warnings=warnings,
            partial=bool(warnings),
        )
        logger.debug(
            f"Feed for {uid}: {len(result.activities)} activities from {len(people)} people, "
            f"{len(warnings)} warning(s)"
        )
        if strict and result.partial:
            raise PartialAggregationError(result)
        return result
