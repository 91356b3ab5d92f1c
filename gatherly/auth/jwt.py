"""JWT token generation and validation for Gatherly."""

import os
import jwt
from datetime import timedelta
from typing import Optional, Dict
from dotenv import load_dotenv

from gatherly.clock import utcnow

load_dotenv()

# JWT configuration
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRATION_HOURS = int(os.getenv("JWT_EXPIRATION_HOURS", "24"))


def create_access_token(
    uid: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
    picture: Optional[str] = None,
) -> str:
    """Create a JWT access token for a user.

    Profile claims are optional; they seed the profile on first sign-in.
    """
    now = utcnow()
    payload = {
        "sub": uid,
        "exp": now + timedelta(hours=JWT_EXPIRATION_HOURS),
        "iat": now,
    }
    if email is not None:
        payload["email"] = email
    if name is not None:
        payload["name"] = name
    if picture is not None:
        payload["picture"] = picture
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict]:
    """Decode and validate a JWT access token.

    Returns:
        Decoded token payload (dict with 'sub' key for uid), or None if invalid
    """
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None
