from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, ForeignKeyConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from showtracker.db.base_class import Base
import enum


class AttentionState(str, enum.Enum):
    NEW_UNWATCHED = "new-unwatched"
    UNWATCHED = "unwatched"
    WATCHED = "watched"


class UserShow(Base):
    __tablename__ = "user_shows"
    __table_args__ = (UniqueConstraint("user_id", "tvdb_id", name="uq_user_show"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    tvdb_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=True)
    added_at = Column(DateTime, server_default=func.now())
    season_count = Column(Integer, nullable=True)
    attention_state = Column(String, nullable=False, default=AttentionState.NEW_UNWATCHED.value)
    last_refresh_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="shows")
    watches = relationship("EpisodeWatch", back_populates="show", cascade="all, delete")


class EpisodeWatch(Base):
    """A row exists only while the episode is watched; unwatching deletes it."""
    __tablename__ = "episode_watches"
    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id", "tvdb_id"], ["user_shows.user_id", "user_shows.tvdb_id"], ondelete="CASCADE"
        ),
    )

    user_id = Column(String, primary_key=True)
    tvdb_id = Column(String, primary_key=True)
    episode_id = Column(String, primary_key=True)
    watched_at = Column(DateTime, server_default=func.now())
    season_number = Column(Integer, nullable=True)
    episode_number = Column(Integer, nullable=True)

    show = relationship("UserShow", back_populates="watches")
