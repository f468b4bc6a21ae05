"""
Search, add-show and episode-list endpoints backed by TheTVDB.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from showtracker.api.deps import get_current_user_id, get_tvdb_api_key
from showtracker.core.config import settings
from showtracker.db.session import get_db
from showtracker.exceptions import MissingPinError, ShowTrackerException, ValidationError
from showtracker.schemas import (
    AddShowRequest, AddShowResponse, EpisodesResponse, SearchResponse, SearchResult, ShowResponse,
)
from showtracker.services import library
from showtracker.services.refresh import prepare_client_for_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/searchShows", response_model=SearchResponse)
async def search_shows(
    query: Optional[str] = None,
    q: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    api_key: str = Depends(get_tvdb_api_key),
    db: Session = Depends(get_db),
):
    term = (query if query is not None else q or "").strip()
    if len(term) < 2:
        raise ValidationError("query_required", "Query must be at least 2 characters")

    try:
        client = await prepare_client_for_user(db, user_id, api_key)
        results = await client.search_shows(term, settings.SEARCH_LIMIT)
    except MissingPinError:
        raise
    except Exception as e:
        logger.error(f"searchShows failed for user {user_id} (query={term!r}): {e}")
        raise ShowTrackerException(str(e) or "Search failed", code="search_failed")

    logger.info(f"searchShows success for user {user_id} (query={term!r}, count={len(results)})")
    return SearchResponse(results=[SearchResult(id=r.id, title=r.title, year=r.year) for r in results])


@router.post("/addShow", response_model=AddShowResponse)
async def add_show(
    payload: Optional[AddShowRequest] = None,
    user_id: str = Depends(get_current_user_id),
    api_key: str = Depends(get_tvdb_api_key),
    db: Session = Depends(get_db),
):
    tvdb_id = str(payload.tvdbId).strip() if payload and payload.tvdbId is not None else ""
    if not tvdb_id:
        raise ValidationError("tvdb_id_required", "tvdbId is required")

    try:
        client = await prepare_client_for_user(db, user_id, api_key)
        show = await library.add_show(db, user_id, client, tvdb_id)
    except MissingPinError:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"addShow failed for user {user_id} (tvdbId={tvdb_id}): {e}")
        raise ShowTrackerException(str(e) or "Add show failed", code="add_show_failed")

    return AddShowResponse(show=ShowResponse(**show))


@router.get("/getEpisodes", response_model=EpisodesResponse)
async def get_episodes(
    tvdbId: Optional[str] = None,
    season: Optional[int] = None,
    user_id: str = Depends(get_current_user_id),
    api_key: str = Depends(get_tvdb_api_key),
    db: Session = Depends(get_db),
):
    tvdb_id = (tvdbId or "").strip()
    if not tvdb_id:
        raise ValidationError("tvdb_id_required", "tvdbId is required")

    try:
        client = await prepare_client_for_user(db, user_id, api_key)
        episodes = await library.get_episodes(db, client, tvdb_id, season)
        if season is None:
            library.update_season_count(db, user_id, tvdb_id, episodes)
    except MissingPinError:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"getEpisodes failed for user {user_id} (tvdbId={tvdb_id}): {e}")
        raise ShowTrackerException(str(e) or "Get episodes failed", code="get_episodes_failed")

    return {"episodes": episodes}
