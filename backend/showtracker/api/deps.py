import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from showtracker.core.config import settings
from showtracker.core.security import verify_id_token
from showtracker.db.session import get_db
from showtracker.exceptions import AuthenticationError, ConfigurationError
from showtracker.models.user import User

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> str:
    """Verify the bearer ID token; the user row is created on first sight."""
    if not credentials or not credentials.credentials:
        raise AuthenticationError()

    user_id = verify_id_token(credentials.credentials)
    if not db.get(User, user_id):
        db.add(User(id=user_id))
        db.commit()
    return user_id


def get_tvdb_api_key() -> str:
    api_key = settings.THETVDB_API_KEY
    if not api_key:
        logger.warning("THETVDB_API_KEY not configured; you cannot get information from the TVDB")
        raise ConfigurationError()
    return api_key
