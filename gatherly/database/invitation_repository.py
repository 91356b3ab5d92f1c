"""Repository for Invitation database operations."""

import logging
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from gatherly.models.invitation import Invitation
from gatherly.database.models import InvitationDB
from gatherly.social.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


class InvitationRepository:
    """Repository for Invitation database operations."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, code: str) -> Optional[Invitation]:
        """Get invitation by code."""
        try:
            row = self.db.query(InvitationDB).filter(InvitationDB.code == code).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError("get_invitation", code) from e
        return row.to_pydantic() if row else None

    def save(self, invitation: Invitation) -> bool:
        """Write an invitation keyed by its code, overwriting any existing one.

        Returns:
            True if a record with the same code was overwritten
        """
        try:
            overwritten = (
                self.db.query(InvitationDB.code).filter(InvitationDB.code == invitation.code).first() is not None
            )
            self.db.merge(InvitationDB.from_pydantic(invitation))
            self.db.commit()
            logger.debug(f"Saved invitation {invitation.code} for {invitation.inviter_id}")
            return overwritten
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save invitation {invitation.code}: {type(e).__name__}: {str(e)}")
            raise StoreUnavailableError("save_invitation", invitation.code) from e

    def delete(self, code: str, *, commit: bool = True) -> bool:
        """Delete an invitation if it exists.

        The row count makes this a conditional delete: of two concurrent
        callers inside transactions, only one sees True.
        """
        try:
            deleted = (
                self.db.query(InvitationDB)
                .filter(InvitationDB.code == code)
                .delete(synchronize_session=False)
            )
            if commit:
                self.db.commit()
            logger.debug(f"Deleted {deleted} invitation(s) with code {code}")
            return deleted > 0
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete invitation {code}: {type(e).__name__}: {str(e)}")
            raise StoreUnavailableError("delete_invitation", code) from e
