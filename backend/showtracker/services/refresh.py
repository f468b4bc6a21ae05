"""
Refresh orchestration: per-user TVDB client preparation and show/episode refresh.

Everything runs sequentially. A failing show is counted and skipped, a failing
user in the all-users run is counted and skipped; neither aborts the batch.
"""
from datetime import datetime, timedelta
import math
from typing import Optional, Tuple
import logging

from pydantic import BaseModel
from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from showtracker.core.config import settings
from showtracker.exceptions import MissingPinError, ThrottledError
from showtracker.models.library import UserShow
from showtracker.models.refresh_execution import RefreshExecution, RefreshTrigger, ExecutionStatus
from showtracker.models.user import User
from showtracker.services.cache_writer import CacheWriter
from showtracker.services.credentials import CredentialStore, is_expired
from showtracker.services.library import count_seasons, recompute_attention_state
from showtracker.services.tvdb import TvdbClient

logger = logging.getLogger(__name__)


class RefreshSummary(BaseModel):
    updatedShows: int = 0
    updatedEpisodes: int = 0
    failures: int = 0

    def add(self, other: "RefreshSummary") -> None:
        self.updatedShows += other.updatedShows
        self.updatedEpisodes += other.updatedEpisodes
        self.failures += other.failures


async def prepare_client_for_user(
    db: Session, user_id: str, tvdb_api_key: str, pin_override: Optional[str] = None
) -> TvdbClient:
    """
    Return a client with a usable token for ``user_id``.

    Logs in (and persists the new token) when the stored token is missing or
    expired, or when a PIN was supplied on the request: a new PIN makes any
    previously issued token untrustworthy for this user.
    """
    store = CredentialStore(db)
    auth = store.get_user_auth(user_id)
    pin_to_use = pin_override or auth.tvdb_pin
    if not pin_to_use:
        raise MissingPinError("PIN required for TVDB login")

    seed_token = None if pin_override else auth.tvdb_token
    client = TvdbClient(tvdb_api_key, pin=pin_to_use, token=seed_token)

    if pin_override or not auth.tvdb_token or is_expired(auth.tvdb_token_expires_at):
        client.token = None
        token = await client.login()
        store.persist_auth(user_id, pin_to_use, token)
        logger.info(f"Obtained new TVDB token for user {user_id}")

    return client


async def _refresh_show(db: Session, writer: CacheWriter, client: TvdbClient, entry: UserShow) -> int:
    """Refresh one tracked show; returns the number of episodes written."""
    show = await client.fetch_show(entry.tvdb_id)
    episodes = await client.fetch_all_episodes(entry.tvdb_id)

    air_dates = [e.air_date for e in episodes if e.air_date]
    fields = show.cache_fields()
    if air_dates:
        fields["latest_episode_air_date"] = max(air_dates)
    writer.cache_show(entry.tvdb_id, fields)

    written = writer.cache_episodes_batch(entry.tvdb_id, episodes)
    if client.is_complete(episodes):
        writer.prune_episodes(entry.tvdb_id, (e.id for e in episodes))
        writer.mark_episodes_complete(entry.tvdb_id)

    now = datetime.utcnow()
    entry.last_refresh_at = now
    if show.name:
        entry.title = show.name
    season_count = count_seasons(e.season_number for e in episodes)
    if season_count:
        entry.season_count = season_count
    recompute_attention_state(db, entry)
    db.commit()
    return written


async def refresh_user_shows(db: Session, user_id: str, client: TvdbClient) -> RefreshSummary:
    summary = RefreshSummary()
    writer = CacheWriter(db)
    entries = db.query(UserShow).filter(UserShow.user_id == user_id).all()

    for entry in entries:
        tvdb_id = entry.tvdb_id
        try:
            written = await _refresh_show(db, writer, client, entry)
            summary.updatedShows += 1
            summary.updatedEpisodes += written
        except Exception as e:
            db.rollback()
            summary.failures += 1
            logger.exception(f"Refresh failed for show {tvdb_id} (user {user_id}): {e}")

    return summary


async def refresh_user(
    db: Session,
    user_id: str,
    tvdb_api_key: str,
    pin: Optional[str] = None,
    trigger: RefreshTrigger = RefreshTrigger.MANUAL,
) -> RefreshSummary:
    client = await prepare_client_for_user(db, user_id, tvdb_api_key, pin)

    execution = RefreshExecution(user_id=user_id, trigger=trigger, status=ExecutionStatus.RUNNING)
    db.add(execution)
    db.commit()

    try:
        summary = await refresh_user_shows(db, user_id, client)
    except Exception as e:
        db.rollback()
        execution.status = ExecutionStatus.FAILED
        execution.error_message = str(e)
        execution.completed_at = datetime.utcnow()
        db.commit()
        raise

    now = datetime.utcnow()
    user = db.get(User, user_id)
    if user:
        user.last_refresh_at = now
        user.last_refresh_trigger = trigger.value

    execution.status = ExecutionStatus.SUCCESS
    execution.completed_at = now
    execution.updated_shows = summary.updatedShows
    execution.updated_episodes = summary.updatedEpisodes
    execution.failures = summary.failures
    db.commit()

    logger.info(f"Refresh ({trigger.value}) for user {user_id}: {summary.model_dump()}")
    return summary


async def refresh_all_users(db: Session, tvdb_api_key: str) -> RefreshSummary:
    total = RefreshSummary()
    user_ids = [row[0] for row in db.query(User.id).order_by(User.id).all()]

    for user_id in user_ids:
        try:
            summary = await refresh_user(db, user_id, tvdb_api_key, trigger=RefreshTrigger.SCHEDULED)
            total.add(summary)
        except MissingPinError:
            db.rollback()
            total.failures += 1
            logger.warning(f"Skipping user {user_id}: MISSING_PIN")
        except Exception as e:
            db.rollback()
            total.failures += 1
            logger.exception(f"Scheduled refresh failed for user {user_id}: {e}")

    logger.info(f"Refresh executed (all users): {total.model_dump()}")
    return total


def map_refresh_error_to_response(err: Exception) -> Tuple[int, str, str]:
    """Returns (status, code, message). The only error classification the refresh flow needs."""
    if isinstance(err, MissingPinError):
        return 400, "pin_required", "TVDB PIN not set for this user"
    return 500, "refresh_failed", str(err) or "Refresh failed"


def claim_manual_refresh(db: Session, user_id: str, now: Optional[datetime] = None) -> None:
    """
    Take the user's manual-refresh slot or raise ``ThrottledError``.

    The check and the write are one conditional UPDATE, so two concurrent
    requests cannot both get through the cooldown.
    """
    now = now or datetime.utcnow()
    cooldown = timedelta(minutes=settings.MANUAL_REFRESH_COOLDOWN_MINUTES)

    result = db.execute(
        update(User)
        .where(
            User.id == user_id,
            or_(User.last_manual_refresh_at.is_(None), User.last_manual_refresh_at <= now - cooldown),
        )
        .values(last_manual_refresh_at=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    if result.rowcount:
        return

    user = db.get(User, user_id)
    if not user or user.last_manual_refresh_at is None:
        user = user or User(id=user_id)
        user.last_manual_refresh_at = now
        db.add(user)
        db.commit()
        return

    remaining = (cooldown - (now - user.last_manual_refresh_at)).total_seconds()
    raise ThrottledError(max(1, math.ceil(remaining)))
