"""Invitation lifecycle: single-use, time-bounded codes that create friendships."""

import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Callable, Optional
from sqlalchemy.orm import Session

from gatherly.clock import utcnow
from gatherly.database.database import transaction
from gatherly.database.invitation_repository import InvitationRepository
from gatherly.models.constants import INVITATION_TTL_DAYS, INVITE_CODE_LENGTH
from gatherly.models.invitation import Invitation, Redemption
from gatherly.social.exceptions import (
    AlreadyFriendsError,
    InvitationExpiredError,
    InvitationNotFoundError,
    SelfRedemptionError,
)
from gatherly.social.friends import FriendGraph

logger = logging.getLogger(__name__)

# Unambiguous, URL-safe: no 0/O or 1/l/I.
CODE_ALPHABET = "".join(c for c in string.ascii_letters + string.digits if c not in "0O1lI")


def generate_code(length: int = INVITE_CODE_LENGTH) -> str:
    """Generate a random invitation code from the OS CSPRNG."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


class InvitationManager:
    """Creates, looks up, redeems and deletes invitations."""

    def __init__(
        self,
        db: Session,
        friends: Optional[FriendGraph] = None,
        *,
        ttl_days: int = INVITATION_TTL_DAYS,
        code_length: int = INVITE_CODE_LENGTH,
        now: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.invitations = InvitationRepository(db)
        self.friends = friends or FriendGraph(db, now=now)
        self.ttl = timedelta(days=ttl_days)
        self.code_length = code_length
        self.now = now

    def create(self, inviter_id: str, inviter_name: Optional[str]) -> Invitation:
        """Create an invitation that expires after the configured TTL.

        Codes are not checked for uniqueness: the write is keyed by code, so a
        collision overwrites the older invitation. That is logged.
        """
        created_at = self.now()
        invitation = Invitation(
            code=generate_code(self.code_length),
            inviter_id=inviter_id,
            inviter_name=inviter_name,
            created_at=created_at,
            expires_at=created_at + self.ttl,
        )
        if self.invitations.save(invitation):
            logger.warning(f"Invitation code collision; overwrote existing code {invitation.code}")
        logger.info(f"Invitation {invitation.code} created by {inviter_id}")
        return invitation

    def get(self, code: str) -> Optional[Invitation]:
        """Fetch an invitation. Expiry is left to the caller (see Invitation.is_expired)."""
        return self.invitations.get(code)

    def delete(self, code: str) -> None:
        """Delete an invitation; absent codes are fine."""
        self.invitations.delete(code)

    def redeem(self, code: str, redeemer_id: str) -> Redemption:
        """Redeem an invitation, making the redeemer and the inviter friends.

        The invitation is consumed when the friendship is created and also when
        the two users were already friends. It is left in place when the
        redeemer is the inviter, and when the friend write fails for any other
        reason so the caller can retry.

        Raises:
            InvitationNotFoundError: unknown code, or consumed by a concurrent redeem
            InvitationExpiredError: expired (the invitation is deleted)
            SelfRedemptionError: redeemer is the inviter
            ProfileNotFoundError: a profile needed for the friend snapshot is missing
        """
        invitation = self.invitations.get(code)
        if invitation is None:
            raise InvitationNotFoundError()

        if invitation.is_expired(self.now()):
            self.invitations.delete(code)
            logger.info(f"Expired invitation {code} deleted on redeem attempt by {redeemer_id}")
            raise InvitationExpiredError()

        if redeemer_id == invitation.inviter_id:
            raise SelfRedemptionError()

        already_friends = False
        with transaction(self.db):
            # Conditional delete first: only one concurrent redeem gets a row back.
            if not self.invitations.delete(code, commit=False):
                raise InvitationNotFoundError()
            try:
                self.friends.stage_add(redeemer_id, invitation.inviter_id)
            except AlreadyFriendsError:
                already_friends = True

        logger.info(
            f"Invitation {code} redeemed by {redeemer_id} "
            f"(inviter {invitation.inviter_id}, already_friends={already_friends})"
        )
        return Redemption(
            code=code,
            inviter_id=invitation.inviter_id,
            inviter_name=invitation.inviter_name,
            already_friends=already_friends,
        )
