"""
Per-user library operations: tracked shows, watch state and attention state.

Watch state is presence-based: an ``EpisodeWatch`` row means watched, no row
means unwatched.
"""
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Set
import logging

from sqlalchemy.orm import Session

from showtracker.core.config import settings
from showtracker.exceptions import NotFoundError
from showtracker.models.cache import EpisodeCache
from showtracker.models.library import AttentionState, UserShow, EpisodeWatch
from showtracker.models.user import User
from showtracker.services.cache_writer import CacheWriter
from showtracker.services.tvdb import TvdbClient

logger = logging.getLogger(__name__)

ATTENTION_PRIORITY = {
    AttentionState.NEW_UNWATCHED.value: 0,
    AttentionState.UNWATCHED.value: 1,
    AttentionState.WATCHED.value: 2,
}


def _parse_air_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _aired_episodes(episodes: Iterable[EpisodeCache], today: date) -> List[EpisodeCache]:
    """Regular-season episodes with an air date on or before ``today``. Specials (season 0) are ignored."""
    aired = []
    for episode in episodes:
        if not episode.season_number or episode.season_number <= 0:
            continue
        air_date = _parse_air_date(episode.air_date)
        if air_date and air_date <= today:
            aired.append(episode)
    return aired


def compute_attention_state(
    episodes: Iterable[EpisodeCache],
    watched_ids: Set[str],
    today: Optional[date] = None,
    new_window_days: Optional[int] = None,
) -> str:
    today = today or datetime.utcnow().date()
    window = timedelta(days=new_window_days if new_window_days is not None else settings.NEW_EPISODE_WINDOW_DAYS)

    unwatched = [e for e in _aired_episodes(episodes, today) if e.episode_id not in watched_ids]
    if not unwatched:
        return AttentionState.WATCHED.value
    if any(_parse_air_date(e.air_date) >= today - window for e in unwatched):
        return AttentionState.NEW_UNWATCHED.value
    return AttentionState.UNWATCHED.value


def count_seasons(season_numbers: Iterable[Optional[int]]) -> int:
    return len({s for s in season_numbers if s and s > 0})


def serialize_episode(episode: EpisodeCache) -> Dict[str, Any]:
    return {
        "id": episode.episode_id,
        "title": episode.title,
        "seasonNumber": episode.season_number,
        "episodeNumber": episode.episode_number,
        "airDate": episode.air_date,
        "absoluteNumber": episode.absolute_number,
        "overview": episode.overview,
    }


def _get_user_show(db: Session, user_id: str, tvdb_id: str) -> UserShow:
    show = db.query(UserShow).filter(UserShow.user_id == user_id, UserShow.tvdb_id == str(tvdb_id)).first()
    if not show:
        raise NotFoundError(f"Show {tvdb_id} is not in your library")
    return show


def _watched_ids(db: Session, user_id: str, tvdb_id: str) -> Set[str]:
    rows = db.query(EpisodeWatch.episode_id).filter(
        EpisodeWatch.user_id == user_id,
        EpisodeWatch.tvdb_id == str(tvdb_id)
    ).all()
    return {r[0] for r in rows}


def recompute_attention_state(db: Session, show: UserShow) -> str:
    episodes = CacheWriter(db).get_episodes(show.tvdb_id)
    show.attention_state = compute_attention_state(episodes, _watched_ids(db, show.user_id, show.tvdb_id))
    return show.attention_state


async def add_show(db: Session, user_id: str, client: TvdbClient, tvdb_id: str) -> Dict[str, Any]:
    """Fetch extended metadata, cache it and start tracking the show for the user."""
    tvdb_id = str(tvdb_id)
    show = await client.fetch_show_extended(tvdb_id)

    writer = CacheWriter(db)
    cached = writer.cache_show(tvdb_id, show.cache_fields())

    if not db.get(User, user_id):
        db.add(User(id=user_id))

    entry = db.query(UserShow).filter(UserShow.user_id == user_id, UserShow.tvdb_id == tvdb_id).first()
    if not entry:
        entry = UserShow(
            user_id=user_id,
            tvdb_id=tvdb_id,
            attention_state=AttentionState.NEW_UNWATCHED.value,
            added_at=datetime.utcnow(),
        )
        db.add(entry)
    entry.title = show.name
    db.commit()

    logger.info(f"User {user_id} added show {tvdb_id} ({show.name})")
    return {
        "title": cached.title,
        "poster": cached.poster,
        "overview": cached.overview,
        "firstAired": cached.first_aired,
        "lastAired": cached.last_aired,
        "status": cached.status,
        "network": cached.network,
        "hasAllEpisodes": cached.has_all_episodes,
        "id": tvdb_id,
    }


async def get_episodes(
    db: Session, client: TvdbClient, tvdb_id: str, season: Optional[int] = None
) -> List[Dict[str, Any]]:
    """Serve from the shared cache when it is complete, otherwise fill it from TheTVDB first."""
    tvdb_id = str(tvdb_id)
    writer = CacheWriter(db)
    cached = writer.get_show(tvdb_id)

    if not (cached and cached.has_all_episodes):
        episodes = await client.fetch_all_episodes(tvdb_id)
        writer.cache_episodes_batch(tvdb_id, episodes)
        if client.is_complete(episodes):
            writer.prune_episodes(tvdb_id, (e.id for e in episodes))
            writer.mark_episodes_complete(tvdb_id)
        else:
            logger.warning(f"Episode list for {tvdb_id} may be truncated; cache left incomplete")
    else:
        logger.debug(f"Serving episodes for {tvdb_id} from cache")

    return [serialize_episode(e) for e in writer.get_episodes(tvdb_id, season)]


def update_season_count(db: Session, user_id: str, tvdb_id: str, episodes: List[Dict[str, Any]]) -> Optional[int]:
    """Persist the number of regular seasons for the user's entry, if the show is tracked."""
    season_count = count_seasons(e.get("seasonNumber") for e in episodes)
    if season_count <= 0:
        return None
    entry = db.query(UserShow).filter(UserShow.user_id == user_id, UserShow.tvdb_id == str(tvdb_id)).first()
    if entry:
        entry.season_count = season_count
        db.commit()
    return season_count


def list_shows(db: Session, user_id: str) -> List[Dict[str, Any]]:
    writer = CacheWriter(db)
    today = datetime.utcnow().date()
    shows = []

    for entry in db.query(UserShow).filter(UserShow.user_id == user_id).all():
        meta = writer.get_show(entry.tvdb_id)
        watched = _watched_ids(db, user_id, entry.tvdb_id)
        aired = _aired_episodes(writer.get_episodes(entry.tvdb_id), today)
        shows.append({
            "id": entry.tvdb_id,
            "title": entry.title or (meta.title if meta else None),
            "attentionState": entry.attention_state,
            "lastRefreshAt": entry.last_refresh_at,
            "addedAt": entry.added_at,
            "seasonCount": entry.season_count,
            "unwatchedCount": len([e for e in aired if e.episode_id not in watched]),
            "poster": meta.poster if meta else None,
            "overview": meta.overview if meta else None,
            "firstAired": meta.first_aired if meta else None,
            "lastAired": meta.last_aired if meta else None,
            "status": meta.status if meta else None,
            "network": meta.network if meta else None,
        })

    shows.sort(key=lambda s: ATTENTION_PRIORITY.get(s["attentionState"], len(ATTENTION_PRIORITY)))
    return shows


def remove_show(db: Session, user_id: str, tvdb_id: str) -> None:
    show = _get_user_show(db, user_id, tvdb_id)
    # watch rows go with the entry (relationship cascade)
    db.delete(show)
    db.commit()
    logger.info(f"User {user_id} removed show {tvdb_id}")


def mark_episode_watched(db: Session, user_id: str, tvdb_id: str, episode_id: str) -> str:
    show = _get_user_show(db, user_id, tvdb_id)
    episode_id = str(episode_id)

    watch = db.get(EpisodeWatch, (user_id, show.tvdb_id, episode_id))
    if not watch:
        cached = db.get(EpisodeCache, (show.tvdb_id, episode_id))
        watch = EpisodeWatch(
            user_id=user_id,
            tvdb_id=show.tvdb_id,
            episode_id=episode_id,
            watched_at=datetime.utcnow(),
            season_number=cached.season_number if cached else None,
            episode_number=cached.episode_number if cached else None,
        )
        db.add(watch)
        db.flush()

    state = recompute_attention_state(db, show)
    db.commit()
    return state


def mark_episode_unwatched(db: Session, user_id: str, tvdb_id: str, episode_id: str) -> str:
    show = _get_user_show(db, user_id, tvdb_id)
    watch = db.get(EpisodeWatch, (user_id, show.tvdb_id, str(episode_id)))
    if watch:
        db.delete(watch)
        db.flush()

    state = recompute_attention_state(db, show)
    db.commit()
    return state


def set_season_watched(db: Session, user_id: str, tvdb_id: str, season: int, watched: bool) -> Dict[str, Any]:
    """Mark every cached episode of ``season`` watched (or unwatched). Returns the new state and episode count."""
    show = _get_user_show(db, user_id, tvdb_id)
    episodes = CacheWriter(db).get_episodes(show.tvdb_id, season)
    already = _watched_ids(db, user_id, show.tvdb_id)
    now = datetime.utcnow()

    for episode in episodes:
        if watched and episode.episode_id not in already:
            db.add(EpisodeWatch(
                user_id=user_id,
                tvdb_id=show.tvdb_id,
                episode_id=episode.episode_id,
                watched_at=now,
                season_number=episode.season_number,
                episode_number=episode.episode_number,
            ))
        elif not watched and episode.episode_id in already:
            db.delete(db.get(EpisodeWatch, (user_id, show.tvdb_id, episode.episode_id)))
    db.flush()

    state = recompute_attention_state(db, show)
    db.commit()
    return {"attentionState": state, "episodes": len(episodes)}
