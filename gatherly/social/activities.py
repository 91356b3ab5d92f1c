"""Activity lifecycle and participant membership."""

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional
from sqlalchemy.orm import Session

from gatherly.clock import utcnow
from gatherly.database.activity_repository import ActivityRepository
from gatherly.models.activity import Activity, ActivityCreate, ActivityPatch, Participant
from gatherly.social.exceptions import ActivityNotFoundError, InvalidPatchError

logger = logging.getLogger(__name__)


class ActivityManager:
    """Creates, edits and deletes activities and manages who takes part.

    Creator-only operations (update, delete) do not check the acting user;
    the caller must compare it with `creator_id` first.
    """

    def __init__(self, db: Session, now: Callable[[], datetime] = utcnow):
        self.activities = ActivityRepository(db)
        self.now = now

    def create(self, data: ActivityCreate) -> str:
        """Create an activity with the creator as its only participant.

        Returns:
            The new activity id
        """
        activity = Activity(
            id=str(uuid.uuid4()),
            title=data.title,
            date=data.date,
            location=data.location,
            creator_id=data.creator_id,
            creator_name=data.creator_name,
            creator_photo_url=data.creator_photo_url,
            participants=[
                Participant(uid=data.creator_id, name=data.creator_name, photo_url=data.creator_photo_url)
            ],
            created_at=self.now(),
        )
        created = self.activities.create(activity)
        logger.info(f"Activity {created.id} created by {created.creator_id}")
        return created.id

    def get(self, activity_id: str) -> Optional[Activity]:
        return self.activities.get(activity_id)

    def update(self, activity_id: str, patch: ActivityPatch) -> Activity:
        """Apply the fields set on `patch` (title, date, location).

        Raises:
            InvalidPatchError: the patch clears title or date
            ActivityNotFoundError: no activity with that id
        """
        fields = patch.model_dump(exclude_unset=True)
        for required in ("title", "date"):
            if required in fields and fields[required] is None:
                raise InvalidPatchError(required)
        if not fields:
            activity = self.activities.get(activity_id)
        else:
            activity = self.activities.update_fields(activity_id, fields)
        if activity is None:
            raise ActivityNotFoundError()
        return activity

    def delete(self, activity_id: str) -> None:
        """Delete an activity; an already-deleted activity is fine."""
        if self.activities.delete(activity_id):
            logger.info(f"Activity {activity_id} deleted")

    def join(self, activity_id: str, participant: Participant) -> Activity:
        """Add participant keyed by uid. Joining twice keeps the first snapshot.

        Raises:
            ActivityNotFoundError: no activity with that id
        """
        activity = self.activities.get(activity_id)
        if activity is None:
            raise ActivityNotFoundError()
        if activity.has_participant(participant.uid):
            return activity
        if self.activities.add_participant(activity_id, participant, joined_at=self.now()):
            logger.info(f"{participant.uid} joined activity {activity_id}")
        return self._reload(activity_id)

    def leave(self, activity_id: str, uid: str) -> Activity:
        """Remove uid from the participants. Matching is by uid only.

        Not being a participant is a no-op; the creator can't leave (only delete).

        Raises:
            ActivityNotFoundError: no activity with that id
        """
        activity = self.activities.get(activity_id)
        if activity is None:
            raise ActivityNotFoundError()
        if uid == activity.creator_id:
            logger.debug(f"Ignoring leave by creator {uid} on activity {activity_id}")
            return activity
        if self.activities.remove_participant(activity_id, uid):
            logger.info(f"{uid} left activity {activity_id}")
        return self._reload(activity_id)

    def _reload(self, activity_id: str) -> Activity:
        activity = self.activities.get(activity_id)
        if activity is None:
            # Deleted between the membership write and the read back.
            raise ActivityNotFoundError()
        return activity
