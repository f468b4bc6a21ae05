"""
Per-user TheTVDB credential store (PIN, bearer token, token expiry).
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import logging

from sqlalchemy.orm import Session

from showtracker.core.config import settings
from showtracker.models.user import User

logger = logging.getLogger(__name__)


@dataclass
class UserAuth:
    tvdb_pin: Optional[str] = None
    tvdb_token: Optional[str] = None
    tvdb_token_expires_at: Optional[datetime] = None


def is_expired(ts: Optional[datetime]) -> bool:
    if ts is None:
        return True
    return ts <= datetime.utcnow()


def compute_expiry() -> datetime:
    return datetime.utcnow() + timedelta(days=settings.TOKEN_TTL_DAYS)


class CredentialStore:
    def __init__(self, db: Session):
        self.db = db

    def _get_or_create_user(self, user_id: str) -> User:
        user = self.db.get(User, user_id)
        if not user:
            user = User(id=user_id)
            self.db.add(user)
        return user

    def get_user_auth(self, user_id: str) -> UserAuth:
        """Never fails on a missing user; returns an empty record instead."""
        user = self.db.get(User, user_id)
        if not user:
            return UserAuth()
        return UserAuth(
            tvdb_pin=user.tvdb_pin,
            tvdb_token=user.tvdb_token,
            tvdb_token_expires_at=user.tvdb_token_expires_at,
        )

    def persist_auth(self, user_id: str, pin: str, token: str) -> datetime:
        user = self._get_or_create_user(user_id)
        user.tvdb_pin = pin
        user.tvdb_token = token
        user.tvdb_token_expires_at = compute_expiry()
        self.db.commit()
        return user.tvdb_token_expires_at

    def save_pin(self, user_id: str, pin: str) -> None:
        """A new PIN invalidates the stored token."""
        user = self._get_or_create_user(user_id)
        user.tvdb_pin = pin
        user.tvdb_token = None
        user.tvdb_token_expires_at = None
        self.db.commit()
        logger.info(f"TVDB PIN saved for user {user_id}; cached token cleared")
