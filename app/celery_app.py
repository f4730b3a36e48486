"""Celery application configuration."""

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging

from app.core.config import settings
from app.core.logging import configure_logging

# Create Celery instance
celery_app = Celery(
    "forten",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.tasks.backfill_tasks"],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)

# Configure Celery Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    "backfill-chat-metadata": {
        "task": "app.tasks.backfill_tasks.backfill_chat_metadata_task",
        "schedule": crontab(hour=settings.backfill_schedule_hour, minute=0),
        "options": {"expires": 3600},  # Task expires after 1 hour
    },
}

celery_app.conf.task_routes = {
    "app.tasks.backfill_tasks.*": {"queue": "metadata"},
}


@setup_logging.connect
def _configure_worker_logging(**kwargs):
    configure_logging()
