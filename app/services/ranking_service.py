"""Time-windowed drama leaderboards.

Scores are a weighted blend of ``log10(views+1)``, rating,
``log10(comments+1)`` and ``log10(favorites+1)``. The weights shift with the
window: short windows favour views and engagement, all-time favours rating
and favourites. Daily and weekly windows additionally decay stale entries.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import numpy as np
from pydantic import TypeAdapter

from app.core.cache import CacheService
from app.core.config import settings
from app.domain.entities import Drama, utcnow
from app.domain.queries import DramaQuery, RankingType
from app.domain.repositories import ICategoryRepository, IDramaRepository
from app.domain.results import (
    CategoryRanking,
    RankingItem,
    RankingMetrics,
    RankingResult,
    RankingTrendItem,
    RankingTrends,
)
from app.domain.services import IRankingService

logger = logging.getLogger(__name__)

ALL_TIME_START = datetime(2020, 1, 1)
HOT_BOOST = 1.1
NEW_BOOST = 1.05
# Upper bound on dramas pulled from the store per window
MAX_CANDIDATES = 1000

_RANKING_ADAPTER = TypeAdapter(RankingResult)
_CATEGORY_RANKINGS_ADAPTER = TypeAdapter(list[CategoryRanking])


@dataclass(frozen=True)
class RankingWeights:
    view: float
    rating: float
    comment: float
    favorite: float


BASE_WEIGHTS = RankingWeights(view=0.4, rating=0.3, comment=0.15, favorite=0.15)
ENGAGEMENT_WEIGHTS = RankingWeights(view=0.5, rating=0.1, comment=0.2, favorite=0.2)

WINDOW_WEIGHTS = {
    RankingType.DAILY: ENGAGEMENT_WEIGHTS,
    RankingType.WEEKLY: ENGAGEMENT_WEIGHTS,
    RankingType.MONTHLY: BASE_WEIGHTS,
    RankingType.ALL_TIME: RankingWeights(view=0.2, rating=0.4, comment=0.1, favorite=0.3),
}

# (floor, horizon in hours) of the linear decay applied to short windows
WINDOW_DECAY = {
    RankingType.DAILY: (0.5, 48.0),
    RankingType.WEEKLY: (0.7, 336.0),
}


def shift_months(value: datetime, months: int) -> datetime:
    """Move ``value`` by whole calendar months, clamping the day."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def window_bounds(ranking_type: RankingType, now: datetime) -> tuple[datetime, datetime]:
    if ranking_type == RankingType.DAILY:
        return now - timedelta(days=1), now
    if ranking_type == RankingType.WEEKLY:
        return now - timedelta(days=7), now
    if ranking_type == RankingType.MONTHLY:
        return shift_months(now, -1), now
    return ALL_TIME_START, now


def previous_window_bounds(ranking_type: RankingType, now: datetime) -> tuple[datetime, datetime]:
    """The window immediately preceding the current one, of equal length."""
    if ranking_type == RankingType.DAILY:
        return now - timedelta(days=2), now - timedelta(days=1)
    if ranking_type == RankingType.WEEKLY:
        return now - timedelta(days=14), now - timedelta(days=7)
    if ranking_type == RankingType.MONTHLY:
        return shift_months(now, -2), shift_months(now, -1)
    return ALL_TIME_START, shift_months(now, -1)


def ranking_scores(dramas: list[Drama], ranking_type: RankingType, now: datetime) -> np.ndarray:
    """Vectorised window score for every drama, rounded to two decimals."""
    if not dramas:
        return np.zeros(0)
    weights = WINDOW_WEIGHTS.get(ranking_type, BASE_WEIGHTS)

    views = np.array([d.view_count for d in dramas], dtype=float)
    ratings = np.array([d.rating for d in dramas], dtype=float)
    comments = np.array([d.comment_count for d in dramas], dtype=float)
    favorites = np.array([d.favorite_count for d in dramas], dtype=float)

    scores = (
        np.log10(views + 1) * weights.view * 20
        + ratings * weights.rating * 10
        + np.log10(comments + 1) * weights.comment * 15
        + np.log10(favorites + 1) * weights.favorite * 15
    )

    if ranking_type in WINDOW_DECAY:
        floor, horizon = WINDOW_DECAY[ranking_type]
        hours = np.array([(now - d.updated_at).total_seconds() / 3600 for d in dramas])
        scores *= np.maximum(floor, 1 - np.clip(hours, 0, None) / horizon)

    scores *= np.where([d.is_hot for d in dramas], HOT_BOOST, 1.0)
    scores *= np.where([d.is_new for d in dramas], NEW_BOOST, 1.0)
    return np.round(scores, 2)


class RankingService(IRankingService):

    def __init__(
        self,
        drama_repository: IDramaRepository,
        category_repository: ICategoryRepository,
        cache: CacheService,
    ):
        self.drama_repository = drama_repository
        self.category_repository = category_repository
        self.cache = cache

    async def get_ranking(
        self, ranking_type: RankingType, category: Optional[str] = None, limit: int = 20
    ) -> RankingResult:
        key = f"ranking:{ranking_type.value}:{category or 'all'}:{limit}"
        result, _ = await self.cache.get_or_load(
            key,
            settings.cache_ttl_ranking,
            lambda: self._current_ranking(ranking_type, category, limit),
            _RANKING_ADAPTER,
        )
        return result

    async def get_category_rankings(self, ranking_type: RankingType, limit: int = 10) -> list[CategoryRanking]:
        key = f"ranking:category:{ranking_type.value}:{limit}"

        async def load() -> list[CategoryRanking]:
            categories = await self.category_repository.list_categories(active_only=True)
            return [
                CategoryRanking(
                    category=category.name,
                    ranking=await self._current_ranking(ranking_type, category.name, limit),
                )
                for category in categories
            ]

        result, _ = await self.cache.get_or_load(
            key, settings.cache_ttl_ranking, load, _CATEGORY_RANKINGS_ADAPTER
        )
        return result

    async def get_ranking_trends(
        self, ranking_type: RankingType, category: Optional[str] = None, limit: int = 20
    ) -> RankingTrends:
        """Compare the current leaderboard with the preceding equivalent window.

        ``change`` is positive when a drama climbed. Dramas missing from the
        previous window are flagged as new entrants with a change of zero.
        """
        current = await self.get_ranking(ranking_type, category, limit)
        prev_start, prev_end = previous_window_bounds(ranking_type, utcnow())
        previous = await self._calculate(
            ranking_type, prev_start, prev_end, category, limit, filter_window=True
        )
        previous_ranks = {item.drama.id: item.rank for item in previous.items}

        items = []
        for item in current.items:
            previous_rank = previous_ranks.get(item.drama.id)
            items.append(
                RankingTrendItem(
                    rank=item.rank,
                    drama=item.drama,
                    score=item.score,
                    change=previous_rank - item.rank if previous_rank is not None else 0,
                    previous_rank=previous_rank,
                    is_new=previous_rank is None,
                )
            )
        return RankingTrends(type=ranking_type.value, items=items, category=category)

    async def clear_ranking_cache(self) -> int:
        deleted = await self.cache.delete_pattern("ranking:*")
        logger.info("Cleared %d ranking cache entries", deleted)
        return deleted

    async def _current_ranking(
        self, ranking_type: RankingType, category: Optional[str], limit: int
    ) -> RankingResult:
        start, end = window_bounds(ranking_type, utcnow())
        return await self._calculate(
            ranking_type, start, end, category, limit,
            filter_window=ranking_type != RankingType.ALL_TIME,
        )

    async def _calculate(
        self,
        ranking_type: RankingType,
        start: datetime,
        end: datetime,
        category: Optional[str],
        limit: int,
        filter_window: bool,
    ) -> RankingResult:
        query = DramaQuery(
            category=category,
            updated_from=start if filter_window else None,
            updated_to=end if filter_window else None,
            sort=[("view_count", "desc")],
            limit=MAX_CANDIDATES,
        )
        dramas = await self.drama_repository.find(query)
        scores = ranking_scores(dramas, ranking_type, utcnow())
        order = np.argsort(-scores, kind="stable")[:limit]

        items = []
        for rank, index in enumerate(order, start=1):
            drama = dramas[int(index)]
            items.append(
                RankingItem(
                    rank=rank,
                    drama=drama,
                    score=float(scores[index]),
                    metrics=RankingMetrics(
                        view_count=drama.view_count,
                        rating=drama.rating,
                        comment_count=drama.comment_count,
                        favorite_count=drama.favorite_count,
                    ),
                )
            )
        logger.info(
            "Calculated %s ranking (%s): %d of %d candidates",
            ranking_type.value, category or "all", len(items), len(dramas),
        )
        return RankingResult(
            type=ranking_type.value,
            items=items,
            total=len(items),
            period_start=start,
            period_end=end,
            category=category,
        )
