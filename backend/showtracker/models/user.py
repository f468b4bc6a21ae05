"""
User model holding the per-user TheTVDB credential.

The id is the identity provider's uid. The PIN is kept server-side so the
scheduled refresh can log in without the user being present.
"""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from showtracker.db.base_class import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)

    # TheTVDB credential
    tvdb_pin = Column(String, nullable=True)
    tvdb_token = Column(String, nullable=True)
    tvdb_token_expires_at = Column(DateTime, nullable=True)

    # Refresh bookkeeping
    last_manual_refresh_at = Column(DateTime, nullable=True)  # cooldown anchor
    last_refresh_at = Column(DateTime, nullable=True)
    last_refresh_trigger = Column(String, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    shows = relationship("UserShow", back_populates="user", cascade="all, delete")
