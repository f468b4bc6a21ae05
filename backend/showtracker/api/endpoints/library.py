"""
Per-user library endpoints: list and remove shows, watch/unwatch episodes and seasons.

These only touch the local store; none of them call TheTVDB.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from showtracker.api.deps import get_current_user_id
from showtracker.db.session import get_db
from showtracker.schemas import LibraryResponse, OkResponse, SeasonWatchStateResponse, WatchStateResponse
from showtracker.services import library

router = APIRouter()


@router.get("/shows", response_model=LibraryResponse)
def list_shows(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return {"shows": library.list_shows(db, user_id)}


@router.delete("/shows/{tvdb_id}", response_model=OkResponse)
def remove_show(tvdb_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    library.remove_show(db, user_id, tvdb_id)
    return OkResponse(ok=True)


@router.put("/shows/{tvdb_id}/episodes/{episode_id}/watched", response_model=WatchStateResponse)
def mark_episode_watched(
    tvdb_id: str, episode_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)
):
    state = library.mark_episode_watched(db, user_id, tvdb_id, episode_id)
    return WatchStateResponse(ok=True, attentionState=state)


@router.delete("/shows/{tvdb_id}/episodes/{episode_id}/watched", response_model=WatchStateResponse)
def mark_episode_unwatched(
    tvdb_id: str, episode_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)
):
    state = library.mark_episode_unwatched(db, user_id, tvdb_id, episode_id)
    return WatchStateResponse(ok=True, attentionState=state)


@router.put("/shows/{tvdb_id}/seasons/{season}/watched", response_model=SeasonWatchStateResponse)
def mark_season_watched(
    tvdb_id: str, season: int, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)
):
    result = library.set_season_watched(db, user_id, tvdb_id, season, watched=True)
    return SeasonWatchStateResponse(ok=True, **result)


@router.delete("/shows/{tvdb_id}/seasons/{season}/watched", response_model=SeasonWatchStateResponse)
def mark_season_unwatched(
    tvdb_id: str, season: int, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)
):
    result = library.set_season_watched(db, user_id, tvdb_id, season, watched=False)
    return SeasonWatchStateResponse(ok=True, **result)
