"""
Writer for the shared show/episode cache.

Writes merge: only the fields handed in are touched, nothing is cleared.
Once ``has_all_episodes`` is set, episode lookups for the show are served from
the cache without calling TheTVDB.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
import logging

from sqlalchemy.orm import Session

from showtracker.core.config import settings
from showtracker.models.cache import ShowCache, EpisodeCache
from showtracker.services.tvdb import TvdbEpisode

logger = logging.getLogger(__name__)

SHOW_CACHE_FIELDS = {
    "title", "poster", "overview", "first_aired", "last_aired",
    "latest_episode_air_date", "status", "network", "has_all_episodes",
    "episodes_updated_at",
}


class CacheWriter:
    def __init__(self, db: Session, batch_size: Optional[int] = None):
        self.db = db
        self.batch_size = batch_size or settings.CACHE_BATCH_SIZE

    def get_show(self, tvdb_id: str) -> Optional[ShowCache]:
        return self.db.get(ShowCache, str(tvdb_id))

    def get_episodes(self, tvdb_id: str, season: Optional[int] = None) -> List[EpisodeCache]:
        query = self.db.query(EpisodeCache).filter(EpisodeCache.tvdb_id == str(tvdb_id))
        if season is not None:
            query = query.filter(EpisodeCache.season_number == season)
        return query.order_by(EpisodeCache.season_number, EpisodeCache.episode_number).all()

    def cache_show(self, tvdb_id: str, show_data: Dict[str, Any]) -> ShowCache:
        tvdb_id = str(tvdb_id)
        cached = self.get_show(tvdb_id)
        if not cached:
            cached = ShowCache(tvdb_id=tvdb_id, has_all_episodes=False)
            self.db.add(cached)

        for field, value in show_data.items():
            if field not in SHOW_CACHE_FIELDS:
                continue
            setattr(cached, field, value)
        cached.updated_at = datetime.utcnow()

        self.db.commit()
        return cached

    def cache_episodes_batch(self, tvdb_id: str, episodes: Iterable[TvdbEpisode]) -> int:
        """Upsert episodes keyed by TVDB episode id, committing every ``batch_size`` writes."""
        tvdb_id = str(tvdb_id)
        existing = {e.episode_id: e for e in self.db.query(EpisodeCache).filter(EpisodeCache.tvdb_id == tvdb_id).all()}

        written = 0
        now = datetime.utcnow()
        for episode in episodes:
            cached = existing.get(episode.id)
            if not cached:
                cached = EpisodeCache(tvdb_id=tvdb_id, episode_id=episode.id)
                self.db.add(cached)
                existing[episode.id] = cached

            cached.title = episode.name
            cached.season_number = episode.season_number
            cached.episode_number = episode.number
            cached.air_date = episode.air_date
            cached.absolute_number = episode.absolute_number
            cached.overview = episode.overview
            cached.updated_at = now

            written += 1
            if written % self.batch_size == 0:
                self.db.commit()

        self.db.commit()
        logger.debug(f"Cached {written} episodes for show {tvdb_id}")
        return written

    def prune_episodes(self, tvdb_id: str, keep_ids: Iterable[str]) -> int:
        """Delete cached episodes of the show that are not in ``keep_ids``; returns how many were removed."""
        tvdb_id = str(tvdb_id)
        keep_ids = {str(i) for i in keep_ids}
        stale = [
            e for e in self.db.query(EpisodeCache).filter(EpisodeCache.tvdb_id == tvdb_id).all()
            if e.episode_id not in keep_ids
        ]
        for episode in stale:
            self.db.delete(episode)
        self.db.commit()
        if stale:
            logger.info(f"Removed {len(stale)} episodes no longer listed for show {tvdb_id}")
        return len(stale)

    def mark_episodes_complete(self, tvdb_id: str) -> ShowCache:
        return self.cache_show(tvdb_id, {"has_all_episodes": True, "episodes_updated_at": datetime.utcnow()})
