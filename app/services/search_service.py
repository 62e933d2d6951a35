"""Full-text search across dramas, users and categories."""

import logging
import math
import time
from collections import Counter
from datetime import timedelta
from typing import Optional
from uuid import UUID, uuid4

import numpy as np
from pydantic import TypeAdapter

from app.core.cache import CacheService, build_key, to_jsonable
from app.core.config import settings
from app.domain.entities import Category, Drama, SearchHistoryEntry, User, utcnow
from app.domain.exceptions import ValidationFailedError
from app.domain.queries import DramaQuery, SearchFilters, SearchSortBy, SearchType, SortOrder
from app.domain.repositories import (
    ICategoryRepository,
    IDramaRepository,
    ISearchHistoryRepository,
    IUserRepository,
)
from app.domain.results import FacetCount, PopularSearch, SearchFacets, SearchResult, SearchResultItem
from app.domain.services import ISearchService

logger = logging.getLogger(__name__)

HIGHLIGHT_CONTEXT = 20
MIN_SUGGESTION_LENGTH = 2
SUGGESTION_WINDOW_DAYS = 30
POPULAR_WINDOW_DAYS = 7
MAX_DRAMA_MATCHES = 200
MAX_USER_MATCHES = 50

RATING_BUCKETS = [("9-10", 9.0, 10.0), ("8-9", 8.0, 9.0), ("7-8", 7.0, 8.0), ("6-7", 6.0, 7.0), ("0-6", 0.0, 6.0)]

_RESULT_ADAPTER = TypeAdapter(SearchResult)
_POPULAR_ADAPTER = TypeAdapter(list[PopularSearch])


# ---------------------------------------------------------------------------
# Relevance scoring
# ---------------------------------------------------------------------------
def levenshtein_distance(source: str, target: str) -> int:
    """Edit distance, one vectorised DP row per character of ``source``."""
    if source == target:
        return 0
    if not source:
        return len(target)
    if not target:
        return len(source)

    target_chars = np.array(list(target))
    offsets = np.arange(len(target) + 1)
    previous = offsets.copy()
    for i, char in enumerate(source, start=1):
        current = np.empty_like(previous)
        current[0] = i
        # substitution / deletion
        current[1:] = np.minimum(previous[1:] + 1, previous[:-1] + (target_chars != char))
        # insertion: current[j] = min over k <= j of current[k] + (j - k)
        current = np.minimum.accumulate(current - offsets) + offsets
        previous = current
    return int(previous[-1])


def string_similarity(first: str, second: str) -> float:
    longer, shorter = (first, second) if len(first) >= len(second) else (second, first)
    if not longer:
        return 1.0
    return (len(longer) - levenshtein_distance(longer, shorter)) / len(longer)


def relevance_score(query: str, title: str, description: Optional[str] = None) -> float:
    """Score how well ``title`` (and optionally ``description``) matches ``query``.

    Exact title match scores 100, a title containing the query 80 and a title
    starting with the query 60. A description mention adds 20
    and edit-distance similarity adds up to 40, capped at 100 overall.
    """
    needle = query.strip().lower()
    haystack = (title or "").lower()

    score = 0.0
    if haystack == needle:
        score = 100.0
    elif needle in haystack:
        score = 80.0
    elif haystack.startswith(needle):
        score = 60.0

    if description and needle in description.lower():
        score += 20
    score += string_similarity(needle, haystack) * 40
    return min(100.0, round(score, 2))


def highlight(text: Optional[str], query: str) -> Optional[str]:
    """Excerpt around the first case-insensitive hit, with ``...`` markers."""
    if not text or not query:
        return None
    index = text.lower().find(query.lower())
    if index == -1:
        return None
    start = max(0, index - HIGHLIGHT_CONTEXT)
    end = min(len(text), index + len(query) + HIGHLIGHT_CONTEXT)
    excerpt = text[start:end]
    if start > 0:
        excerpt = "..." + excerpt
    if end < len(text):
        excerpt = excerpt + "..."
    return excerpt


def build_highlights(query: str, *fields: Optional[str]) -> list[str]:
    return [excerpt for excerpt in (highlight(field, query) for field in fields) if excerpt]


def _sort_value(item: SearchResultItem, sort_by: SearchSortBy):
    if sort_by == SearchSortBy.RELEVANCE:
        return item.score
    if sort_by in (SearchSortBy.RATING, SearchSortBy.VIEW_COUNT):
        return item.metadata.get(sort_by.value) or 0
    # ISO timestamps sort chronologically as strings
    return item.metadata.get(sort_by.value) or ""


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------
class SearchService(ISearchService):

    def __init__(
        self,
        drama_repository: IDramaRepository,
        user_repository: IUserRepository,
        category_repository: ICategoryRepository,
        history_repository: ISearchHistoryRepository,
        cache: CacheService,
    ):
        self.drama_repository = drama_repository
        self.user_repository = user_repository
        self.category_repository = category_repository
        self.history_repository = history_repository
        self.cache = cache

    async def search(
        self, query: str, filters: SearchFilters, user_id: Optional[UUID] = None
    ) -> SearchResult:
        started = time.perf_counter()
        query = query.strip()
        if not query:
            raise ValidationFailedError("Search keyword must not be empty")
        key = build_key("search:result", {"query": query, "filters": to_jsonable(filters)})
        result, _ = await self.cache.get_or_load(
            key,
            settings.cache_ttl_search,
            lambda: self._search(query, filters),
            _RESULT_ADAPTER,
        )
        result.execution_time = round((time.perf_counter() - started) * 1000, 2)

        if user_id is not None:
            await self.history_repository.record(
                SearchHistoryEntry(
                    id=uuid4(),
                    user_id=user_id,
                    query=query,
                    filters=to_jsonable(filters),
                    result_count=result.total,
                )
            )
        return result

    async def get_search_suggestions(self, query: str, limit: int = 5) -> list[str]:
        query = query.strip()
        if len(query) < MIN_SUGGESTION_LENGTH:
            return []
        since = utcnow() - timedelta(days=SUGGESTION_WINDOW_DAYS)
        return await self.history_repository.suggestions(query, since, limit)

    async def get_popular_searches(self, limit: int = 10) -> list[PopularSearch]:
        async def load() -> list[PopularSearch]:
            since = utcnow() - timedelta(days=POPULAR_WINDOW_DAYS)
            rows = await self.history_repository.popular(since, min_count=2, limit=limit)
            return [PopularSearch(keyword=keyword, count=count) for keyword, count in rows]

        result, _ = await self.cache.get_or_load(
            f"search:popular:{limit}", settings.cache_ttl_search, load, _POPULAR_ADAPTER
        )
        return result

    async def _search(self, query: str, filters: SearchFilters) -> SearchResult:
        items: list[SearchResultItem] = []
        dramas: list[Drama] = []

        if filters.type in (SearchType.ALL, SearchType.DRAMA):
            dramas = await self._search_dramas(query, filters)
            items.extend(self._drama_item(query, drama) for drama in dramas)
        if filters.type in (SearchType.ALL, SearchType.USER):
            users = await self.user_repository.search(query, limit=MAX_USER_MATCHES)
            items.extend(self._user_item(query, user) for user in users)

        categories = await self.category_repository.list_categories(active_only=True)
        if filters.type in (SearchType.ALL, SearchType.CATEGORY):
            needle = query.lower()
            items.extend(
                self._category_item(query, category)
                for category in categories
                if needle in category.name.lower() or needle in (category.description or "").lower()
            )

        items.sort(
            key=lambda item: _sort_value(item, filters.sort_by),
            reverse=filters.sort_order == SortOrder.DESC,
        )
        total = len(items)
        offset = (filters.page - 1) * filters.limit
        logger.info("Search %r matched %d items", query, total)
        return SearchResult(
            items=items[offset: offset + filters.limit],
            total=total,
            page=filters.page,
            limit=filters.limit,
            pages=math.ceil(total / filters.limit) if filters.limit else 0,
            query=query,
            filters=to_jsonable(filters),
            suggestions=await self.get_search_suggestions(query),
            facets=self._facets(dramas, categories),
        )

    async def _search_dramas(self, query: str, filters: SearchFilters) -> list[Drama]:
        drama_query = DramaQuery(
            search=query or None,
            category=filters.category,
            tags=filters.tags,
            min_rating=filters.min_rating,
            max_rating=filters.max_rating,
            min_view_count=filters.min_view_count,
            max_view_count=filters.max_view_count,
            release_date_from=filters.release_date_from,
            release_date_to=filters.release_date_to,
            is_hot=filters.is_hot,
            is_new=filters.is_new,
            sort=[("rating", "desc"), ("view_count", "desc")],
            limit=MAX_DRAMA_MATCHES,
        )
        return await self.drama_repository.find(drama_query)

    @staticmethod
    def _drama_item(query: str, drama: Drama) -> SearchResultItem:
        return SearchResultItem(
            id=drama.id,
            type=SearchType.DRAMA.value,
            title=drama.title,
            description=drama.description,
            thumbnail=drama.poster or None,
            score=relevance_score(query, drama.title, drama.description),
            highlights=build_highlights(query, drama.title, drama.description),
            metadata={
                "category": drama.category,
                "tags": drama.tags,
                "rating": drama.rating,
                "view_count": drama.view_count,
                "release_date": drama.release_date.isoformat(),
                "created_at": drama.created_at.isoformat(),
                "updated_at": drama.updated_at.isoformat(),
                "is_hot": drama.is_hot,
                "is_new": drama.is_new,
            },
        )

    @staticmethod
    def _user_item(query: str, user: User) -> SearchResultItem:
        profile = user.profile or {}
        return SearchResultItem(
            id=user.id,
            type=SearchType.USER.value,
            title=user.display_name,
            description=profile.get("bio"),
            thumbnail=user.avatar,
            score=relevance_score(query, user.username, profile.get("nickname")),
            highlights=build_highlights(query, user.username, profile.get("nickname"), profile.get("bio")),
            metadata={
                "username": user.username,
                "role": user.role,
                "created_at": user.created_at.isoformat(),
                "updated_at": user.updated_at.isoformat(),
            },
        )

    @staticmethod
    def _category_item(query: str, category: Category) -> SearchResultItem:
        return SearchResultItem(
            id=category.id,
            type=SearchType.CATEGORY.value,
            title=category.name,
            description=category.description,
            score=relevance_score(query, category.name, category.description),
            highlights=build_highlights(query, category.name, category.description),
            metadata={
                "color": category.color,
                "drama_count": category.drama_count,
                "created_at": category.created_at.isoformat(),
                "updated_at": category.updated_at.isoformat(),
            },
        )

    @staticmethod
    def _facets(dramas: list[Drama], categories: list[Category]) -> SearchFacets:
        ratings = []
        for label, low, high in RATING_BUCKETS:
            # the top bucket is closed so a perfect 10 is counted
            count = sum(
                1 for d in dramas
                if low <= d.rating < high or (high == 10.0 and d.rating == 10.0)
            )
            ratings.append(FacetCount(value=label, count=count))

        years = Counter(str(d.release_date.year) for d in dramas)
        return SearchFacets(
            categories=[FacetCount(value=c.name, count=c.drama_count) for c in categories],
            ratings=ratings,
            years=[FacetCount(value=year, count=count) for year, count in sorted(years.items(), reverse=True)],
        )
