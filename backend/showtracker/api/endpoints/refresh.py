import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from showtracker.api.deps import get_current_user_id, get_tvdb_api_key
from showtracker.db.session import get_db
from showtracker.exceptions import ShowTrackerException
from showtracker.models.refresh_execution import RefreshExecution, RefreshTrigger
from showtracker.schemas import RefreshHistoryResponse, RefreshNowRequest, RefreshNowResponse
from showtracker.services.refresh import claim_manual_refresh, map_refresh_error_to_response, refresh_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/refreshShowsNow", response_model=RefreshNowResponse)
async def refresh_shows_now(
    payload: Optional[RefreshNowRequest] = None,
    user_id: str = Depends(get_current_user_id),
    api_key: str = Depends(get_tvdb_api_key),
    db: Session = Depends(get_db),
):
    # Per-user throttle; the slot is taken before the refresh runs
    claim_manual_refresh(db, user_id)

    pin = None
    if payload and payload.pin and payload.pin.strip():
        pin = payload.pin.strip()

    try:
        result = await refresh_user(db, user_id, api_key, pin, RefreshTrigger.MANUAL)
    except Exception as e:
        status, code, message = map_refresh_error_to_response(e)
        if status >= 500:
            logger.exception(f"Manual refresh failed for user {user_id}")
        raise ShowTrackerException(message, code=code, status_code=status)

    logger.info(f"Manual refresh requested by {user_id}: {result.model_dump()}")
    return RefreshNowResponse(ok=True, message="Manual refresh", result=result.model_dump())


@router.get("/refresh/history", response_model=RefreshHistoryResponse)
def get_refresh_history(
    limit: int = 20,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    executions = db.query(RefreshExecution).filter(
        RefreshExecution.user_id == user_id
    ).order_by(RefreshExecution.started_at.desc(), RefreshExecution.id.desc()).limit(limit).all()
    return RefreshHistoryResponse(executions=executions)
