"""Celery application and beat schedule.

Broker and result backend are both Redis. Workers run the periodic
maintenance jobs in ``app.infrastructure.tasks.maintenance_tasks`` in a
process of their own, away from the API's event loop.
"""

from celery import Celery
from celery.schedules import crontab

from app.core.config import settings

celery_app = Celery(
    "dramahub",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["app.infrastructure.tasks.maintenance_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    result_expires=86400,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
    beat_schedule={
        "purge-expired-sessions": {
            "task": "maintenance.purge_expired_sessions",
            "schedule": crontab(minute=0),
        },
        "purge-search-history": {
            "task": "maintenance.purge_search_history",
            "schedule": crontab(hour=3, minute=30),
        },
        "refresh-new-flags": {
            "task": "maintenance.refresh_new_flags",
            "schedule": crontab(hour=0, minute=5),
        },
    },
)
