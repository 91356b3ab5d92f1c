"""Repository for Activity database operations."""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence
from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from gatherly.models.activity import Activity, Participant
from gatherly.models.constants import FEED_QUERY_FANOUT_LIMIT
from gatherly.database.models import ActivityDB, ActivityParticipantDB
from gatherly.social.exceptions import StoreUnavailableError
from gatherly.clock import utcnow

logger = logging.getLogger(__name__)

_MUTABLE_FIELDS = ("title", "date", "location")


class ActivityRepository:
    """Repository for Activity database operations.

    Participants live in their own rows keyed by (activity_id, uid), so
    membership changes are single-row inserts/deletes rather than a
    read-modify-write of the whole list.
    """

    def __init__(self, db: Session, max_in_values: int = FEED_QUERY_FANOUT_LIMIT):
        self.db = db
        self.max_in_values = max_in_values

    def create(self, activity: Activity) -> Activity:
        """Create a new activity together with its initial participants."""
        try:
            activity_db = ActivityDB.from_pydantic(activity)
            self.db.add(activity_db)
            self.db.commit()
            self.db.refresh(activity_db)
            logger.debug(f"Created activity {activity.id}: {activity.title[:50]}")
            return activity_db.to_pydantic()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create activity {activity.id}: {type(e).__name__}: {str(e)}")
            raise StoreUnavailableError("create_activity", activity.id) from e

    def _get_row(self, activity_id: str) -> Optional[ActivityDB]:
        try:
            return self.db.query(ActivityDB).filter(ActivityDB.id == activity_id).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError("get_activity", activity_id) from e

    def get(self, activity_id: str) -> Optional[Activity]:
        """Get activity by ID."""
        activity_db = self._get_row(activity_id)
        return activity_db.to_pydantic() if activity_db else None

    def update_fields(self, activity_id: str, fields: Dict[str, object]) -> Optional[Activity]:
        """Partially update title/date/location. Returns None if the activity doesn't exist."""
        unknown = set(fields) - set(_MUTABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)}")

        activity_db = self._get_row(activity_id)
        if activity_db is None:
            return None
        for name, value in fields.items():
            setattr(activity_db, name, value)

        try:
            self.db.commit()
            self.db.refresh(activity_db)
            logger.debug(f"Updated activity {activity_id}: {sorted(fields)}")
            return activity_db.to_pydantic()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update activity {activity_id}: {type(e).__name__}: {str(e)}")
            raise StoreUnavailableError("update_activity", activity_id) from e

    def delete(self, activity_id: str) -> bool:
        """Delete an activity and its participant rows. Returns False if it was already gone."""
        try:
            self.db.query(ActivityParticipantDB).filter(
                ActivityParticipantDB.activity_id == activity_id
            ).delete(synchronize_session=False)
            deleted = (
                self.db.query(ActivityDB)
                .filter(ActivityDB.id == activity_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
            logger.debug(f"Deleted activity {activity_id} ({deleted} row)")
            return deleted > 0
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete activity {activity_id}: {type(e).__name__}: {str(e)}")
            raise StoreUnavailableError("delete_activity", activity_id) from e

    def _has_participant(self, activity_id: str, uid: str) -> bool:
        row = (
            self.db.query(ActivityParticipantDB.uid)
            .filter(
                ActivityParticipantDB.activity_id == activity_id,
                ActivityParticipantDB.uid == uid,
            )
            .first()
        )
        return row is not None

    def _next_position(self, activity_id: str) -> int:
        # The creator holds 0 and cannot leave, so joiners always come after it.
        current = (
            self.db.query(func.max(ActivityParticipantDB.position))
            .filter(ActivityParticipantDB.activity_id == activity_id)
            .scalar()
        )
        return 0 if current is None else current + 1

    def add_participant(self, activity_id: str, participant: Participant, joined_at: Optional[datetime] = None) -> bool:
        """Insert a membership row keyed by uid.

        Returns:
            True if added, False if the uid was already a participant
        """
        try:
            if self._has_participant(activity_id, participant.uid):
                return False
            self.db.add(
                ActivityParticipantDB(
                    activity_id=activity_id,
                    uid=participant.uid,
                    name=participant.name,
                    photo_url=participant.photo_url,
                    position=self._next_position(activity_id),
                    joined_at=joined_at or utcnow(),
                )
            )
            self.db.commit()
            logger.debug(f"Added participant {participant.uid} to activity {activity_id}")
            return True
        except IntegrityError:
            # A concurrent join inserted the same key first.
            self.db.rollback()
            logger.debug(f"Participant {participant.uid} already in activity {activity_id}")
            return False
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Failed to add participant {participant.uid} to {activity_id}: {type(e).__name__}: {str(e)}"
            )
            raise StoreUnavailableError("join_activity", activity_id) from e

    def remove_participant(self, activity_id: str, uid: str) -> bool:
        """Delete the membership row for uid. Returns False if there was none."""
        try:
            deleted = (
                self.db.query(ActivityParticipantDB)
                .filter(
                    ActivityParticipantDB.activity_id == activity_id,
                    ActivityParticipantDB.uid == uid,
                )
                .delete(synchronize_session=False)
            )
            self.db.commit()
            logger.debug(f"Removed {deleted} participant row(s) for {uid} from activity {activity_id}")
            return deleted > 0
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to remove participant {uid} from {activity_id}: {type(e).__name__}: {str(e)}")
            raise StoreUnavailableError("leave_activity", activity_id) from e

    def list_upcoming_by_creators(self, creator_ids: Sequence[str], since: datetime) -> List[Activity]:
        """Activities created by any of `creator_ids` with date >= since, oldest first.

        Raises:
            ValueError: if more creator ids are given than one "in" query accepts
        """
        if len(creator_ids) > self.max_in_values:
            raise ValueError(
                f"'in' query accepts at most {self.max_in_values} values, got {len(creator_ids)}"
            )
        if not creator_ids:
            return []
        try:
            rows = (
                self.db.query(ActivityDB)
                .filter(ActivityDB.creator_id.in_(list(creator_ids)), ActivityDB.date >= since)
                .order_by(ActivityDB.date)
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError("list_activities_by_creators") from e
        return [row.to_pydantic() for row in rows]

    def list_upcoming_by_participant(self, uid: str, since: datetime) -> List[Activity]:
        """Activities uid participates in with date >= since, oldest first."""
        try:
            rows = (
                self.db.query(ActivityDB)
                .join(ActivityParticipantDB, ActivityParticipantDB.activity_id == ActivityDB.id)
                .filter(ActivityParticipantDB.uid == uid, ActivityDB.date >= since)
                .order_by(ActivityDB.date)
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError("list_activities_by_participant", uid) from e
        return [row.to_pydantic() for row in rows]
