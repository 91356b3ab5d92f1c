"""Repository for UserProfile database operations."""

import logging
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from gatherly.models.user import UserProfile
from gatherly.database.models import UserDB
from gatherly.social.exceptions import ProfileNotFoundError, StoreUnavailableError

logger = logging.getLogger(__name__)
_UNSET = object()


class UserRepository:
    """Repository for UserProfile database operations."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, uid: str) -> Optional[UserProfile]:
        """Get profile by uid."""
        try:
            user_db = self.db.query(UserDB).filter(UserDB.uid == uid).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError("get_profile", uid) from e
        return user_db.to_pydantic() if user_db else None

    def create_if_absent(self, profile: UserProfile) -> UserProfile:
        """Insert the profile unless one already exists for its uid.

        An existing record is returned untouched; `created_at` is never overwritten.
        """
        existing = self.get(profile.uid)
        if existing:
            return existing
        try:
            user_db = UserDB.from_pydantic(profile)
            self.db.add(user_db)
            self.db.commit()
            self.db.refresh(user_db)
            logger.debug(f"Created profile {profile.uid}")
            return user_db.to_pydantic()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create profile {profile.uid}: {type(e).__name__}: {str(e)}")
            raise StoreUnavailableError("create_profile", profile.uid) from e

    def update_profile(
        self,
        uid: str,
        *,
        display_name=_UNSET,
        photo_url=_UNSET,
        child_nickname=_UNSET,
    ) -> UserProfile:
        """Update display fields of a profile.

        Uses an UNSET sentinel so callers can explicitly clear values by passing None.
        """
        try:
            user_db = self.db.query(UserDB).filter(UserDB.uid == uid).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError("update_profile", uid) from e
        if user_db is None:
            raise ProfileNotFoundError()

        changed = False
        if display_name is not _UNSET:
            user_db.display_name = display_name
            changed = True
        if photo_url is not _UNSET:
            user_db.photo_url = photo_url
            changed = True
        if child_nickname is not _UNSET:
            user_db.child_nickname = child_nickname
            changed = True
        if not changed:
            return user_db.to_pydantic()

        try:
            self.db.commit()
            self.db.refresh(user_db)
            logger.debug(f"Updated profile {uid}")
            return user_db.to_pydantic()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update profile {uid}: {type(e).__name__}: {str(e)}")
            raise StoreUnavailableError("update_profile", uid) from e
