"""Multi-strategy recommendation engine for DramaHub.

Six strategies, each a store query followed by a fixed linear score:

  1. Personalized   (learned category / tag / actor weights + rating affinity)
  2. Similar        (shared category, tags and cast with a seed drama)
  3. Trending       (views, rating and freshness)
  4. Hot            (editorially flagged dramas)
  5. New            (recent releases)
  6. Category-based (best rated within the requested categories)

Every call is wrapped by the read-through cache, keyed on the full request.
"""

import logging
import math
import time
from typing import Optional
from uuid import UUID

from pydantic import TypeAdapter

from app.core.cache import CacheService, build_key, to_jsonable
from app.core.config import settings
from app.domain.entities import Drama, UserPreference, utcnow
from app.domain.queries import DramaQuery, RecommendationRequest, RecommendationType
from app.domain.repositories import IDramaRepository, IUserPreferenceRepository
from app.domain.results import RecommendationItem, RecommendationResult
from app.domain.services import IRecommendationService

logger = logging.getLogger(__name__)

CACHE_NAMESPACE = "recommendation"

ALGORITHMS = {
    RecommendationType.PERSONALIZED: "collaborative_filtering + content_based",
    RecommendationType.SIMILAR: "content_similarity",
    RecommendationType.TRENDING: "trending_score",
    RecommendationType.HOT: "popularity_score",
    RecommendationType.NEW: "release_date",
    RecommendationType.CATEGORY_BASED: "category_matching",
}
FALLBACK_ALGORITHM = "default_hot"

# Preference weight above which a category/tag drives the candidate query
QUERY_WEIGHT_THRESHOLD = 0.3
# Category weight above which the reason mentions the category
REASON_WEIGHT_THRESHOLD = 0.5
# Preferred rating assumed until the user has one on record
DEFAULT_PREFERRED_RATING = 8.0

_RESULT_ADAPTER = TypeAdapter(RecommendationResult)


# ======================================================================
# Scores
# ======================================================================
def personalized_score(drama: Drama, pref: UserPreference) -> float:
    score = pref.categories.get(drama.category, 0.0) * 40
    score += sum(pref.tags.get(tag, 0.0) * 20 for tag in drama.tags)
    score += sum(pref.actors.get(actor, 0.0) * 15 for actor in drama.cast)
    preferred = pref.rating_range.get("preferred", DEFAULT_PREFERRED_RATING)
    score += max(0.0, 25 - abs(drama.rating - preferred) * 5)
    return min(100.0, score)


def similarity_score(seed: Drama, candidate: Drama) -> float:
    score = 30.0 if candidate.category == seed.category else 0.0
    score += 10 * len(set(seed.tags) & set(candidate.tags))
    score += 15 * len(set(seed.cast) & set(candidate.cast))
    score += max(0.0, 20 - abs(candidate.rating - seed.rating) * 4)
    return min(100.0, score)


def trending_score(drama: Drama, now) -> float:
    days_since_update = max(0.0, (now - drama.updated_at).total_seconds() / 86400)
    return (
        math.log10(drama.view_count + 1) * 10
        + drama.rating * 8
        + max(0.0, 20 - days_since_update * 0.5)
    )


def hot_score(drama: Drama) -> float:
    return drama.rating * 10 + math.log10(drama.view_count + 1)


def new_score(drama: Drama) -> float:
    return 80 + drama.rating


def category_score(drama: Drama) -> float:
    return drama.rating * 8 + math.log10(drama.view_count + 1)


# ======================================================================
# Reasons
# ======================================================================
def personalized_reason(drama: Drama, pref: UserPreference) -> str:
    reasons = []
    if pref.categories.get(drama.category, 0.0) > REASON_WEIGHT_THRESHOLD:
        reasons.append(f"You like {drama.category}")
    if drama.rating >= pref.rating_range.get("preferred", DEFAULT_PREFERRED_RATING):
        reasons.append("Highly rated")
    return ", ".join(reasons) or "Recommended for you"


def similar_reason(seed: Drama, candidate: Drama) -> str:
    reasons = []
    if candidate.category == seed.category:
        reasons.append(f"Also {seed.category}")
    common_cast = [actor for actor in candidate.cast if actor in set(seed.cast)]
    if common_cast:
        reasons.append(f"Shares cast member {common_cast[0]}")
    return ", ".join(reasons) or "Similar content"


# ======================================================================
# Service
# ======================================================================
class RecommendationService(IRecommendationService):
    """Dispatches a request to one strategy and caches the ranked result."""

    def __init__(
        self,
        drama_repository: IDramaRepository,
        preference_repository: IUserPreferenceRepository,
        cache: CacheService,
    ):
        self.drama_repository = drama_repository
        self.preference_repository = preference_repository
        self.cache = cache

    async def get_recommendations(self, request: RecommendationRequest) -> RecommendationResult:
        started = time.perf_counter()
        key = build_key(CACHE_NAMESPACE, to_jsonable(request))
        result, hit = await self.cache.get_or_load(
            key,
            settings.cache_ttl_recommendation,
            lambda: self._generate(request),
            _RESULT_ADAPTER,
        )
        if hit:
            result.execution_time = round((time.perf_counter() - started) * 1000, 2)
        return result

    async def _generate(self, request: RecommendationRequest) -> RecommendationResult:
        started = time.perf_counter()
        algorithm = ALGORITHMS.get(request.type, FALLBACK_ALGORITHM)
        exclude_ids = await self._watched_ids(request)

        if request.type == RecommendationType.PERSONALIZED:
            items = await self._personalized(request, exclude_ids)
            if items is None:
                logger.info("No preferences for user %s, falling back to hot", request.user_id)
                algorithm = FALLBACK_ALGORITHM
                items = await self._hot(request, exclude_ids)
        elif request.type == RecommendationType.SIMILAR:
            items = await self._similar(request, exclude_ids)
        elif request.type == RecommendationType.TRENDING:
            items = await self._trending(request, exclude_ids)
        elif request.type == RecommendationType.NEW:
            items = await self._new(request, exclude_ids)
        elif request.type == RecommendationType.CATEGORY_BASED:
            items = await self._category_based(request, exclude_ids)
        else:
            items = await self._hot(request, exclude_ids)

        items.sort(key=lambda item: item.score, reverse=True)
        items = items[: request.limit]
        for item in items:
            item.score = round(item.score, 2)

        logger.info(
            "Generated %d %s recommendations for user %s",
            len(items), request.type.value, request.user_id,
        )
        return RecommendationResult(
            type=request.type.value,
            items=items,
            total=len(items),
            algorithm=algorithm,
            user_id=request.user_id,
            generated_at=utcnow(),
            execution_time=round((time.perf_counter() - started) * 1000, 2),
        )

    async def _watched_ids(self, request: RecommendationRequest) -> list[UUID]:
        if not (request.exclude_watched and request.user_id):
            return []
        pref = await self.preference_repository.get(request.user_id)
        if pref is None:
            return []
        return [UUID(drama_id) for drama_id in pref.recent_dramas]

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------
    async def _personalized(
        self, request: RecommendationRequest, exclude_ids: list[UUID]
    ) -> Optional[list[RecommendationItem]]:
        """Score candidates against learned weights; None when nothing is learned yet."""
        if request.user_id is None:
            return None
        pref = await self.preference_repository.get(request.user_id)
        if pref is None:
            return None

        categories = [name for name, weight in pref.categories.items() if weight > QUERY_WEIGHT_THRESHOLD]
        tags = [name for name, weight in pref.tags.items() if weight > QUERY_WEIGHT_THRESHOLD]
        preferred = pref.rating_range.get("preferred", DEFAULT_PREFERRED_RATING)
        query = DramaQuery(
            categories=categories or None,
            tags=tags or None,
            min_rating=max(0.0, preferred - 1) if preferred > 0 else None,
            exclude_ids=exclude_ids,
            sort=[("rating", "desc"), ("view_count", "desc")],
            limit=request.limit * 2,
        )
        candidates = await self.drama_repository.find(query)
        return [
            RecommendationItem(
                drama=drama,
                score=personalized_score(drama, pref),
                reason=personalized_reason(drama, pref),
                type=RecommendationType.PERSONALIZED.value,
            )
            for drama in candidates
        ]

    async def _similar(self, request: RecommendationRequest, exclude_ids: list[UUID]) -> list[RecommendationItem]:
        if request.drama_id is None:
            return []
        seed = await self.drama_repository.get_by_id(request.drama_id)
        if seed is None:
            logger.info("Seed drama %s not found for similar recommendations", request.drama_id)
            return []

        query = DramaQuery(
            related_to=seed,
            exclude_ids=exclude_ids,
            sort=[("rating", "desc"), ("view_count", "desc")],
            limit=request.limit * 2,
        )
        candidates = await self.drama_repository.find(query)
        return [
            RecommendationItem(
                drama=drama,
                score=similarity_score(seed, drama),
                reason=similar_reason(seed, drama),
                type=RecommendationType.SIMILAR.value,
            )
            for drama in candidates
            if drama.id != seed.id
        ]

    async def _trending(self, request: RecommendationRequest, exclude_ids: list[UUID]) -> list[RecommendationItem]:
        query = DramaQuery(
            categories=request.categories or None,
            exclude_ids=exclude_ids,
            sort=[("view_count", "desc"), ("rating", "desc"), ("updated_at", "desc")],
            limit=request.limit,
        )
        now = utcnow()
        return [
            RecommendationItem(
                drama=drama,
                score=trending_score(drama, now),
                reason="Trending now with fast-growing views",
                type=RecommendationType.TRENDING.value,
            )
            for drama in await self.drama_repository.find(query)
        ]

    async def _hot(self, request: RecommendationRequest, exclude_ids: list[UUID]) -> list[RecommendationItem]:
        query = DramaQuery(
            is_hot=True,
            categories=request.categories or None,
            exclude_ids=exclude_ids,
            sort=[("rating", "desc"), ("view_count", "desc")],
            limit=request.limit,
        )
        return [
            RecommendationItem(
                drama=drama,
                score=hot_score(drama),
                reason="Hot pick, highly rated and widely watched",
                type=RecommendationType.HOT.value,
            )
            for drama in await self.drama_repository.find(query)
        ]

    async def _new(self, request: RecommendationRequest, exclude_ids: list[UUID]) -> list[RecommendationItem]:
        query = DramaQuery(
            is_new=True,
            categories=request.categories or None,
            exclude_ids=exclude_ids,
            sort=[("release_date", "desc")],
            limit=request.limit,
        )
        return [
            RecommendationItem(
                drama=drama,
                score=new_score(drama),
                reason="Just released",
                type=RecommendationType.NEW.value,
            )
            for drama in await self.drama_repository.find(query)
        ]

    async def _category_based(
        self, request: RecommendationRequest, exclude_ids: list[UUID]
    ) -> list[RecommendationItem]:
        if not request.categories:
            return []
        query = DramaQuery(
            categories=request.categories,
            exclude_ids=exclude_ids,
            sort=[("rating", "desc"), ("view_count", "desc")],
            limit=request.limit,
        )
        return [
            RecommendationItem(
                drama=drama,
                score=category_score(drama),
                reason=f"Top pick in {drama.category}",
                type=RecommendationType.CATEGORY_BASED.value,
            )
            for drama in await self.drama_repository.find(query)
        ]
