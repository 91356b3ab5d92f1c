"""FastAPI web application for Gatherly."""

import logging
from datetime import datetime
from typing import List, Optional
from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from gatherly.auth.dependencies import get_current_user
from gatherly.clock import utcnow
from gatherly.database.database import get_db, init_db
from gatherly.database.user_repository import UserRepository
from gatherly.models.activity import Activity, ActivityCreate, ActivityPatch, Participant
from gatherly.models.feed import FeedResult
from gatherly.models.friend import Friend
from gatherly.models.invitation import Invitation, Redemption
from gatherly.models.user import UserProfile
from gatherly.social.activities import ActivityManager
from gatherly.social.exceptions import (
    AlreadyFriendsError,
    GatherlyError,
    InvalidPatchError,
    InvitationExpiredError,
    NotFoundError,
    SelfRedemptionError,
    SelfReferenceError,
    StoreUnavailableError,
)
from gatherly.social.feed import FeedAggregator
from gatherly.social.friends import FriendGraph
from gatherly.social.invitations import InvitationManager

logger = logging.getLogger(__name__)

UNKNOWN_CREATOR_NAME = "Unknown User"

# Initialize FastAPI app
app = FastAPI(
    title="Gatherly API",
    description="Plan activities with friends and see what's coming up",
    version="0.1.0",
)


_STATUS_BY_ERROR = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AlreadyFriendsError, status.HTTP_409_CONFLICT),
    (SelfReferenceError, status.HTTP_400_BAD_REQUEST),
    (SelfRedemptionError, status.HTTP_400_BAD_REQUEST),
    (InvalidPatchError, status.HTTP_400_BAD_REQUEST),
    (InvitationExpiredError, status.HTTP_410_GONE),
    (StoreUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


@app.exception_handler(GatherlyError)
async def gatherly_error_handler(request: Request, exc: GatherlyError) -> JSONResponse:
    """Map domain errors to HTTP responses with a stable `reason` code."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = code
            break
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "reason": exc.reason})


# Request/response models
class ProfileUpdateRequest(BaseModel):
    """Profile fields a user may change. Omitted fields are left untouched."""
    display_name: Optional[str] = Field(None, min_length=2, max_length=50)
    photo_url: Optional[str] = None
    child_nickname: Optional[str] = Field(None, max_length=50)


class ActivityCreateRequest(BaseModel):
    """Request for creating an activity; the creator is the current user."""
    title: str = Field(..., min_length=3, max_length=100)
    date: datetime
    location: Optional[str] = Field(None, max_length=100)


class ActivityUpdateRequest(BaseModel):
    """Request for editing an activity. Omitted fields are left untouched."""
    title: Optional[str] = Field(None, min_length=3, max_length=100)
    date: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=100)


class ActivityResponse(BaseModel):
    """Response wrapping a single activity."""
    activity: Activity


class FriendsResponse(BaseModel):
    """Response for the friend list."""
    friends: List[Friend]


class InvitationResponse(BaseModel):
    """Response wrapping an invitation."""
    invitation: Invitation


def _require_creator(activity: Optional[Activity], user: UserProfile) -> Activity:
    if activity is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity not found")
    if activity.creator_id != user.uid:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the creator can do this")
    return activity


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": "0.1.0"}


# --- Profile ---

@app.get("/me", response_model=UserProfile)
def get_me(current_user: UserProfile = Depends(get_current_user)):
    """Current user's profile."""
    return current_user


@app.patch("/me", response_model=UserProfile)
def update_me(
    request: ProfileUpdateRequest,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update display name, photo or child nickname."""
    return UserRepository(db).update_profile(current_user.uid, **request.model_dump(exclude_unset=True))


# --- Friends ---

@app.get("/friends", response_model=FriendsResponse)
def list_friends(
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Current user's friends, by display name."""
    return FriendsResponse(friends=FriendGraph(db).list(current_user.uid))


@app.delete("/friends/{friend_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_friend(
    friend_id: str,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Remove a friendship (both directions). Succeeds if it doesn't exist."""
    FriendGraph(db).remove(current_user.uid, friend_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Invitations ---

@app.post("/invitations", response_model=InvitationResponse, status_code=status.HTTP_201_CREATED)
def create_invitation(
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create an invitation code for the current user."""
    invitation = InvitationManager(db).create(current_user.uid, current_user.display_name)
    return InvitationResponse(invitation=invitation)


@app.get("/invitations/{code}", response_model=InvitationResponse)
def get_invitation(
    code: str,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Look up an invitation. Expired invitations are deleted and reported as gone."""
    manager = InvitationManager(db)
    invitation = manager.get(code)
    if invitation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invitation not found")
    if invitation.is_expired(utcnow()):
        manager.delete(code)
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="Invitation expired")
    return InvitationResponse(invitation=invitation)


@app.post("/invitations/{code}/redeem", response_model=Redemption)
def redeem_invitation(
    code: str,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Accept an invitation and become friends with the inviter."""
    return InvitationManager(db).redeem(code, current_user.uid)


@app.delete("/invitations/{code}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invitation(
    code: str,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Withdraw an invitation. Only the inviter may; missing codes succeed."""
    manager = InvitationManager(db)
    invitation = manager.get(code)
    if invitation is not None:
        if invitation.inviter_id != current_user.uid:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the inviter can do this")
        manager.delete(code)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Activities ---

@app.post("/activities", response_model=ActivityResponse, status_code=status.HTTP_201_CREATED)
def create_activity(
    request: ActivityCreateRequest,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create an activity; the current user becomes creator and first participant."""
    manager = ActivityManager(db)
    activity_id = manager.create(
        ActivityCreate(
            title=request.title,
            date=request.date,
            location=request.location,
            creator_id=current_user.uid,
            creator_name=current_user.display_name or UNKNOWN_CREATOR_NAME,
            creator_photo_url=current_user.photo_url,
        )
    )
    return ActivityResponse(activity=manager.get(activity_id))


@app.get("/activities/{activity_id}", response_model=ActivityResponse)
def get_activity(
    activity_id: str,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get an activity by ID."""
    activity = ActivityManager(db).get(activity_id)
    if activity is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity not found")
    return ActivityResponse(activity=activity)


@app.patch("/activities/{activity_id}", response_model=ActivityResponse)
def update_activity(
    activity_id: str,
    request: ActivityUpdateRequest,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Edit title, date or location. Creator only."""
    manager = ActivityManager(db)
    _require_creator(manager.get(activity_id), current_user)
    patch = ActivityPatch(**request.model_dump(exclude_unset=True))
    return ActivityResponse(activity=manager.update(activity_id, patch))


@app.delete("/activities/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_activity(
    activity_id: str,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete an activity. Creator only; an already-deleted activity succeeds."""
    manager = ActivityManager(db)
    activity = manager.get(activity_id)
    if activity is not None:
        _require_creator(activity, current_user)
        manager.delete(activity_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/activities/{activity_id}/join", response_model=ActivityResponse)
def join_activity(
    activity_id: str,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Join an activity as the current user."""
    participant = Participant(
        uid=current_user.uid,
        name=current_user.display_name,
        photo_url=current_user.photo_url,
    )
    return ActivityResponse(activity=ActivityManager(db).join(activity_id, participant))


@app.post("/activities/{activity_id}/leave", response_model=ActivityResponse)
def leave_activity(
    activity_id: str,
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Leave an activity. The creator stays; they can delete it instead."""
    return ActivityResponse(activity=ActivityManager(db).leave(activity_id, current_user.uid))


# --- Feed ---

@app.get("/feed", response_model=FeedResult)
def get_feed(
    current_user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Upcoming activities from the current user and their friends, soonest first."""
    return FeedAggregator(db).for_user(current_user.uid)


if __name__ == "__main__":
    import uvicorn
    init_db()
    uvicorn.run(app, host="0.0.0.0", port=8000)
