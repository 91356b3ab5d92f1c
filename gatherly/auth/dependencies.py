"""FastAPI dependencies for authentication."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from gatherly.auth.jwt import decode_access_token
from gatherly.clock import utcnow
from gatherly.database.database import get_db
from gatherly.database.user_repository import UserRepository
from gatherly.models.user import UserProfile

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> UserProfile:
    """Get the authenticated user's profile, creating it on first sign-in.

    Raises:
        HTTPException: If the token is missing or invalid
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return UserRepository(db).create_if_absent(
        UserProfile(
            uid=payload["sub"],
            email=payload.get("email"),
            display_name=payload.get("name"),
            photo_url=payload.get("picture"),
            created_at=utcnow(),
        )
    )
