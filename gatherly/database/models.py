"""SQLAlchemy database models for Gatherly."""

import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Integer
from sqlalchemy.orm import relationship

from gatherly.clock import utcnow
from gatherly.database.database import Base


class UserDB(Base):
    """Database model for UserProfile."""

    __tablename__ = "users"

    # Primary key (auth provider uid)
    uid = Column(String, primary_key=True)

    # Profile
    email = Column(String, nullable=True)
    display_name = Column(String, nullable=True)
    photo_url = Column(String, nullable=True)
    child_nickname = Column(String, nullable=True)

    # Set once on insert
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from gatherly.models.user import UserProfile
        return UserProfile(
            uid=self.uid,
            email=self.email,
            display_name=self.display_name,
            photo_url=self.photo_url,
            child_nickname=self.child_nickname,
            created_at=self.created_at,
        )

    @classmethod
    def from_pydantic(cls, profile):
        """Create database model from Pydantic model."""
        return cls(
            uid=profile.uid,
            email=profile.email,
            display_name=profile.display_name,
            photo_url=profile.photo_url,
            child_nickname=profile.child_nickname,
            created_at=profile.created_at,
        )


class FriendEdgeDB(Base):
    """One directional friend edge: a snapshot of `friend_uid` stored under `owner_uid`.

    Nothing in the schema links an edge to its reverse; FriendGraph keeps the
    pair consistent.
    """

    __tablename__ = "friend_edges"

    # Composite primary key: one row per (owner, friend) direction.
    owner_uid = Column(String, primary_key=True)
    friend_uid = Column(String, primary_key=True, index=True)

    # Denormalized friend snapshot
    display_name = Column(String, nullable=True)
    photo_url = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from gatherly.models.friend import Friend, FriendEdge
        return FriendEdge(
            owner_uid=self.owner_uid,
            friend=Friend(uid=self.friend_uid, display_name=self.display_name, photo_url=self.photo_url),
            created_at=self.created_at,
        )

    @classmethod
    def from_pydantic(cls, edge):
        """Create database model from Pydantic model."""
        return cls(
            owner_uid=edge.owner_uid,
            friend_uid=edge.friend.uid,
            display_name=edge.friend.display_name,
            photo_url=edge.friend.photo_url,
            created_at=edge.created_at,
        )


class InvitationDB(Base):
    """Database model for Invitation."""

    __tablename__ = "invitations"

    code = Column(String, primary_key=True)
    inviter_id = Column(String, nullable=False, index=True)
    inviter_name = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False, index=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from gatherly.models.invitation import Invitation
        return Invitation(
            code=self.code,
            inviter_id=self.inviter_id,
            inviter_name=self.inviter_name,
            created_at=self.created_at,
            expires_at=self.expires_at,
        )

    @classmethod
    def from_pydantic(cls, invitation):
        """Create database model from Pydantic model."""
        return cls(
            code=invitation.code,
            inviter_id=invitation.inviter_id,
            inviter_name=invitation.inviter_name,
            created_at=invitation.created_at,
            expires_at=invitation.expires_at,
        )


class ActivityDB(Base):
    """Database model for Activity."""

    __tablename__ = "activities"
    __table_args__ = (
        # Feed queries filter by creator and upcoming date.
        Index("ix_activities_creator_date", "creator_id", "date"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    title = Column(String, nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    location = Column(String, nullable=True)

    # Denormalized creator snapshot
    creator_id = Column(String, nullable=False)
    creator_name = Column(String, nullable=False)
    creator_photo_url = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    participants = relationship(
        "ActivityParticipantDB",
        order_by=lambda: [ActivityParticipantDB.position, ActivityParticipantDB.joined_at],
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from gatherly.models.activity import Activity, Participant
        return Activity(
            id=self.id,
            title=self.title,
            date=self.date,
            location=self.location,
            creator_id=self.creator_id,
            creator_name=self.creator_name,
            creator_photo_url=self.creator_photo_url,
            participants=[
                Participant(uid=p.uid, name=p.name, photo_url=p.photo_url)
                for p in self.participants
            ],
            created_at=self.created_at,
        )

    @classmethod
    def from_pydantic(cls, activity):
        """Create database model (with participant rows) from Pydantic model."""
        row = cls(
            id=activity.id,
            title=activity.title,
            date=activity.date,
            location=activity.location,
            creator_id=activity.creator_id,
            creator_name=activity.creator_name,
            creator_photo_url=activity.creator_photo_url,
            created_at=activity.created_at,
        )
        row.participants = [
            ActivityParticipantDB(
                activity_id=activity.id,
                uid=p.uid,
                name=p.name,
                photo_url=p.photo_url,
                position=position,
                joined_at=activity.created_at,
            )
            for position, p in enumerate(activity.participants)
        ]
        return row


class ActivityParticipantDB(Base):
    """Membership row. The (activity_id, uid) key makes join/leave keyed by uid alone."""

    __tablename__ = "activity_participants"

    activity_id = Column(String, ForeignKey("activities.id", ondelete="CASCADE"), primary_key=True)
    uid = Column(String, primary_key=True, index=True)

    # Join sequence within the activity; the creator is 0
    position = Column(Integer, nullable=False, default=0)

    # Display payload, never part of the key
    name = Column(String, nullable=True)
    photo_url = Column(String, nullable=True)

    joined_at = Column(DateTime, nullable=False, default=utcnow)
