"""Async implementations of periodic maintenance work.

The ``*_task`` coroutines are what Celery workers run: each opens its own
database session and Redis client, independent of any request. The plain
functions beneath them hold the logic and take their collaborators as
arguments.
"""

import logging
from datetime import timedelta
from typing import Optional

from app.core.cache import CacheService
from app.core.config import settings
from app.core.redis_client import create_redis_client
from app.domain.entities import utcnow
from app.domain.repositories import IDramaRepository, ISearchHistoryRepository, IUserSessionRepository
from app.infrastructure.database.connection import worker_session_maker
from app.infrastructure.database.repository import (
    CategoryRepository,
    DramaRepository,
    SearchHistoryRepository,
    UserSessionRepository,
)
from app.services.drama_service import HIGHLIGHTS_KEY, LIST_PREFIX, NEW_PREFIX
from app.services.ranking_service import RankingService

logger = logging.getLogger(__name__)


async def purge_expired_sessions(session_repository: IUserSessionRepository) -> int:
    removed = await session_repository.purge_expired(utcnow())
    logger.info("BG-TASK: purged %d expired or closed sessions", removed)
    return removed


async def purge_search_history(
    history_repository: ISearchHistoryRepository, retention_days: Optional[int] = None
) -> int:
    retention_days = retention_days or settings.search_history_retention_days
    cutoff = utcnow() - timedelta(days=retention_days)
    removed = await history_repository.purge_before(cutoff)
    logger.info("BG-TASK: purged %d search history entries older than %s", removed, cutoff)
    return removed


async def refresh_new_flags(
    drama_repository: IDramaRepository,
    ranking_service: RankingService,
    cache: CacheService,
) -> int:
    """Re-derive ``is_new`` from release dates and drop caches that depend on it."""
    cutoff = utcnow() - timedelta(days=settings.new_drama_window_days)
    changed = await drama_repository.refresh_new_flags(cutoff)
    if changed:
        await ranking_service.clear_ranking_cache()
        await cache.delete(HIGHLIGHTS_KEY)
        for prefix in (LIST_PREFIX, NEW_PREFIX):
            await cache.delete_pattern(f"{prefix}:*")
    logger.info("BG-TASK: is_new flag changed on %d dramas", changed)
    return changed


# ---------------------------------------------------------------------------
# Worker entry points
# ---------------------------------------------------------------------------
async def purge_expired_sessions_task() -> int:
    async with worker_session_maker() as session:
        return await purge_expired_sessions(UserSessionRepository(session))


async def purge_search_history_task() -> int:
    async with worker_session_maker() as session:
        return await purge_search_history(SearchHistoryRepository(session))


async def refresh_new_flags_task() -> int:
    client = create_redis_client()
    try:
        cache = CacheService(client)
        async with worker_session_maker() as session:
            drama_repo = DramaRepository(session)
            ranking_service = RankingService(
                drama_repository=drama_repo,
                category_repository=CategoryRepository(session),
                cache=cache,
            )
            return await refresh_new_flags(drama_repo, ranking_service, cache)
    finally:
        await client.aclose()
