import asyncio
import logging
from showtracker.core.celery_app import celery_app
from showtracker.core.config import settings
from showtracker.db.session import SessionLocal
from showtracker.services.refresh import refresh_all_users

logger = logging.getLogger(__name__)


@celery_app.task
def refresh_shows_scheduled_task():
    """Refresh every user's shows. No-op when the TVDB API key is not configured."""
    api_key = settings.THETVDB_API_KEY
    if not api_key:
        logger.warning("THETVDB_API_KEY not configured; skipping scheduled refresh")
        return None

    db = SessionLocal()
    try:
        logger.info("Scheduled refresh starting")
        result = asyncio.run(refresh_all_users(db, api_key))
        logger.info(f"Scheduled refresh completed: {result.model_dump()}")
        return result.model_dump()
    finally:
        db.close()
