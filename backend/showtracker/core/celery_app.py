from celery import Celery
from celery.signals import setup_logging as celery_setup_logging
from showtracker.core.config import settings

celery_app = Celery("worker", broker=settings.REDIS_URL, backend=settings.REDIS_URL)

celery_app.conf.update(task_track_started=True)

# Configure Celery Beat schedule
celery_app.conf.beat_schedule = {
    'refresh-shows-every-12-hours': {
        'task': 'showtracker.tasks.refresh.refresh_shows_scheduled_task',
        'schedule': settings.REFRESH_INTERVAL_HOURS * 3600.0,
    },
}
celery_app.conf.timezone = settings.TIMEZONE


@celery_setup_logging.connect
def _configure_worker_logging(**kwargs):
    from showtracker.core.logging_config import setup_logging
    setup_logging()


# Import tasks to register them
from showtracker.tasks import refresh  # noqa
