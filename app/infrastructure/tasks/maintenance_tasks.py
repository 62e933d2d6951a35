"""Celery task wrappers for periodic maintenance.

Each task is a thin synchronous shell around a coroutine in
``app.services.background_tasks``; ``asyncio.run()`` gives every run a
fresh event loop. Failures are retried twice, five minutes apart.
"""

import asyncio
import logging

from app.infrastructure.tasks.celery_app import celery_app
from app.services.background_tasks import (
    purge_expired_sessions_task,
    purge_search_history_task,
    refresh_new_flags_task,
)

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="maintenance.purge_expired_sessions", max_retries=2)
def purge_expired_sessions(self) -> int:
    try:
        return asyncio.run(purge_expired_sessions_task())
    except Exception as exc:
        logger.warning(
            "purge_expired_sessions failed (attempt %d/%d): %s",
            self.request.retries + 1,
            self.max_retries + 1,
            exc,
        )
        raise self.retry(exc=exc, countdown=300)


@celery_app.task(bind=True, name="maintenance.purge_search_history", max_retries=2)
def purge_search_history(self) -> int:
    """Drop search history older than the retention window."""
    try:
        return asyncio.run(purge_search_history_task())
    except Exception as exc:
        logger.warning(
            "purge_search_history failed (attempt %d/%d): %s",
            self.request.retries + 1,
            self.max_retries + 1,
            exc,
        )
        raise self.retry(exc=exc, countdown=300)


@celery_app.task(bind=True, name="maintenance.refresh_new_flags", max_retries=2)
def refresh_new_flags(self) -> int:
    """Recompute ``is_new`` for every drama and drop stale rankings."""
    try:
        return asyncio.run(refresh_new_flags_task())
    except Exception as exc:
        logger.warning(
            "refresh_new_flags failed (attempt %d/%d): %s",
            self.request.retries + 1,
            self.max_retries + 1,
            exc,
        )
        raise self.retry(exc=exc, countdown=300)
