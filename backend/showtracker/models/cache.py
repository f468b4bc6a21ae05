from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text
from sqlalchemy.sql import func
from showtracker.db.base_class import Base


class ShowCache(Base):
    """Show metadata shared by every user. Only backend code writes it."""
    __tablename__ = "show_cache"

    tvdb_id = Column(String, primary_key=True, index=True)
    title = Column(String, nullable=True)
    poster = Column(String, nullable=True)
    overview = Column(Text, nullable=True)
    first_aired = Column(String, nullable=True)
    last_aired = Column(String, nullable=True)
    latest_episode_air_date = Column(String, nullable=True)
    status = Column(String, nullable=True)
    network = Column(String, nullable=True)
    has_all_episodes = Column(Boolean, default=False, nullable=False)
    episodes_updated_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class EpisodeCache(Base):
    __tablename__ = "episode_cache"

    tvdb_id = Column(String, primary_key=True, index=True)  # TVDB series id
    episode_id = Column(String, primary_key=True)  # TVDB episode id
    title = Column(String, nullable=True)
    season_number = Column(Integer, nullable=True)
    episode_number = Column(Integer, nullable=True)
    air_date = Column(String, nullable=True)
    absolute_number = Column(Integer, nullable=True)
    overview = Column(Text, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
