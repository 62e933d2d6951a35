"""Drama catalog queries behind the read-through cache."""

import logging
import math
from datetime import timedelta
from typing import Optional
from uuid import UUID

from pydantic import TypeAdapter

from app.core.cache import CacheService, build_key, to_jsonable
from app.core.config import settings
from app.domain.entities import Drama, utcnow
from app.domain.exceptions import NotFoundError, ValidationFailedError
from app.domain.queries import DRAMA_SORT_FIELDS, DramaListFilters, DramaQuery, SortOrder
from app.domain.repositories import IDramaRepository
from app.domain.results import DramaHighlights, DramaPage, Pagination
from app.domain.services import IDramaService

logger = logging.getLogger(__name__)

TRENDING_WINDOW_DAYS = 7
MAX_PAGE_SIZE = 100
MAX_SHOWCASE_SIZE = 50

# Key namespaces; list-shaped ones are invalidated by pattern
LIST_PREFIX = "drama:list"
DETAIL_PREFIX = "drama:detail"
HOT_PREFIX = "drama:hot"
NEW_PREFIX = "drama:new"
TRENDING_PREFIX = "drama:trending"
HIGHLIGHTS_KEY = "recommendations:all"

_DRAMA_ADAPTER = TypeAdapter(Drama)
_DRAMA_LIST_ADAPTER = TypeAdapter(list[Drama])
_PAGE_ADAPTER = TypeAdapter(DramaPage)
_HIGHLIGHTS_ADAPTER = TypeAdapter(DramaHighlights)


class DramaService(IDramaService):
    """Filtering, sorting and paging over the drama catalog."""

    def __init__(self, drama_repository: IDramaRepository, cache: CacheService):
        self.drama_repository = drama_repository
        self.cache = cache

    async def list_dramas(self, filters: DramaListFilters) -> DramaPage:
        if filters.sort_by not in DRAMA_SORT_FIELDS:
            raise ValidationFailedError(f"sort_by must be one of: {', '.join(DRAMA_SORT_FIELDS)}")
        if filters.sort_order not in (SortOrder.ASC.value, SortOrder.DESC.value):
            raise ValidationFailedError("sort_order must be asc or desc")
        filters.page = max(1, filters.page)
        filters.limit = min(max(1, filters.limit), MAX_PAGE_SIZE)

        key = build_key(LIST_PREFIX, to_jsonable(filters))
        page, _ = await self.cache.get_or_load(
            key, settings.cache_ttl_list, lambda: self._load_page(filters), _PAGE_ADAPTER
        )
        return page

    async def _load_page(self, filters: DramaListFilters) -> DramaPage:
        query = DramaQuery(
            category=filters.category,
            tags=filters.tags,
            status=filters.status,
            is_hot=filters.is_hot,
            is_new=filters.is_new,
            min_rating=filters.min_rating,
            max_rating=filters.max_rating,
            release_date_from=filters.release_date_from,
            release_date_to=filters.release_date_to,
            search=filters.search,
            sort=[(filters.sort_by, filters.sort_order)],
            offset=(filters.page - 1) * filters.limit,
            limit=filters.limit,
        )
        dramas = await self.drama_repository.find(query)
        total = await self.drama_repository.count(query)
        return DramaPage(
            dramas=dramas,
            pagination=Pagination(
                page=filters.page,
                limit=filters.limit,
                total=total,
                pages=math.ceil(total / filters.limit),
            ),
            filters=to_jsonable(filters),
        )

    async def get_drama(self, drama_id: UUID) -> Drama:
        async def load() -> Optional[Drama]:
            return await self.drama_repository.get_by_id(drama_id)

        drama, _ = await self.cache.get_or_load(
            f"{DETAIL_PREFIX}:{drama_id}", settings.cache_ttl_detail, load, _DRAMA_ADAPTER
        )
        if drama is None:
            raise NotFoundError("Drama not found")
        return drama

    async def search_dramas(self, query: str, category: Optional[str] = None, limit: int = 20) -> list[Drama]:
        if not query.strip():
            raise ValidationFailedError("Search keyword must not be empty")
        drama_query = DramaQuery(
            search=query.strip(),
            category=category,
            sort=[("rating", "desc"), ("view_count", "desc")],
            limit=min(max(1, limit), MAX_PAGE_SIZE),
        )
        key = build_key(LIST_PREFIX, {"search": query.strip(), "category": category, "limit": drama_query.limit})
        dramas, _ = await self.cache.get_or_load(
            key,
            settings.cache_ttl_list,
            lambda: self.drama_repository.find(drama_query),
            _DRAMA_LIST_ADAPTER,
        )
        return dramas

    async def get_hot_dramas(self, limit: int = 10) -> list[Drama]:
        limit = min(max(1, limit), MAX_SHOWCASE_SIZE)
        query = DramaQuery(is_hot=True, sort=[("view_count", "desc"), ("rating", "desc")], limit=limit)
        return await self._cached_list(f"{HOT_PREFIX}:{limit}", query)

    async def get_new_dramas(self, limit: int = 10) -> list[Drama]:
        limit = min(max(1, limit), MAX_SHOWCASE_SIZE)
        query = DramaQuery(is_new=True, sort=[("release_date", "desc")], limit=limit)
        return await self._cached_list(f"{NEW_PREFIX}:{limit}", query)

    async def get_trending_dramas(self, limit: int = 10) -> list[Drama]:
        limit = min(max(1, limit), MAX_SHOWCASE_SIZE)
        query = DramaQuery(
            release_date_from=utcnow() - timedelta(days=TRENDING_WINDOW_DAYS),
            sort=[("view_count", "desc"), ("rating", "desc")],
            limit=limit,
        )
        return await self._cached_list(f"{TRENDING_PREFIX}:{limit}", query)

    async def get_recommendations(self) -> DramaHighlights:
        async def load() -> DramaHighlights:
            return DramaHighlights(
                hot=await self.get_hot_dramas(),
                new=await self.get_new_dramas(),
                trending=await self.get_trending_dramas(),
            )

        highlights, _ = await self.cache.get_or_load(
            HIGHLIGHTS_KEY, settings.cache_ttl_recommendation, load, _HIGHLIGHTS_ADAPTER
        )
        return highlights

    async def increment_view_count(self, drama_id: UUID) -> None:
        if not await self.drama_repository.increment_view_count(drama_id):
            raise NotFoundError("Drama not found")
        await self.cache.delete(f"{DETAIL_PREFIX}:{drama_id}", HIGHLIGHTS_KEY)
        for prefix in (LIST_PREFIX, HOT_PREFIX, TRENDING_PREFIX):
            await self.cache.delete_pattern(f"{prefix}:*")
        logger.info("View recorded for drama %s", drama_id)

    async def _cached_list(self, key: str, query: DramaQuery) -> list[Drama]:
        dramas, _ = await self.cache.get_or_load(
            key,
            settings.cache_ttl_list,
            lambda: self.drama_repository.find(query),
            _DRAMA_LIST_ADAPTER,
        )
        return dramas
