"""
Verification of the identity provider's bearer ID tokens.

Tokens are HS256 JWTs signed with ``SECRET_KEY`` whose ``sub`` claim is the user id.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from showtracker.core.config import settings
from showtracker.exceptions import AuthenticationError


def create_id_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": user_id, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_id_token(token: str) -> str:
    """Return the user id carried by ``token``."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError:
        raise AuthenticationError("Invalid auth token")
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid auth token")
    return str(user_id)
