"""Query objects passed from the API layer into services and repositories.

Each operation receives one explicit struct with named optional fields
instead of a loose dict of request parameters. Defaults documented here are
the defaults the HTTP layer applies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from app.domain.entities import Drama


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class RecommendationType(str, Enum):
    PERSONALIZED = "personalized"
    SIMILAR = "similar"
    TRENDING = "trending"
    HOT = "hot"
    NEW = "new"
    CATEGORY_BASED = "category_based"


class RankingType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL_TIME = "all_time"


class SearchType(str, Enum):
    ALL = "all"
    DRAMA = "drama"
    USER = "user"
    CATEGORY = "category"


class SearchSortBy(str, Enum):
    RELEVANCE = "relevance"
    RATING = "rating"
    VIEW_COUNT = "view_count"
    RELEASE_DATE = "release_date"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


DRAMA_SORT_FIELDS = ("created_at", "updated_at", "rating", "view_count", "release_date")
USER_SORT_FIELDS = ("created_at", "last_login_at", "username", "email")


@dataclass
class DramaQuery:
    """Store-level drama filter.

    Every field is optional; unset fields do not constrain the result.
    ``sort`` is a list of ``(field, order)`` pairs applied in sequence.
    ``related_to`` matches dramas sharing the seed's category, any tag or
    any cast member, and never the seed itself.
    """

    category: Optional[str] = None
    categories: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    status: Optional[str] = None
    is_hot: Optional[bool] = None
    is_new: Optional[bool] = None
    min_rating: Optional[float] = None
    max_rating: Optional[float] = None
    min_view_count: Optional[int] = None
    max_view_count: Optional[int] = None
    release_date_from: Optional[datetime] = None
    release_date_to: Optional[datetime] = None
    updated_from: Optional[datetime] = None
    updated_to: Optional[datetime] = None
    search: Optional[str] = None
    exclude_ids: list[UUID] = field(default_factory=list)
    related_to: Optional[Drama] = None
    sort: list[tuple[str, str]] = field(default_factory=lambda: [("created_at", "desc")])
    offset: int = 0
    limit: Optional[int] = None


@dataclass
class DramaListFilters:
    """Parameters accepted by ``GET /dramas``."""

    page: int = 1
    limit: int = 20
    category: Optional[str] = None
    tags: Optional[list[str]] = None
    status: Optional[str] = None
    is_hot: Optional[bool] = None
    is_new: Optional[bool] = None
    min_rating: Optional[float] = None
    max_rating: Optional[float] = None
    release_date_from: Optional[datetime] = None
    release_date_to: Optional[datetime] = None
    search: Optional[str] = None
    sort_by: str = "created_at"
    sort_order: str = SortOrder.DESC.value


@dataclass
class RecommendationRequest:
    type: RecommendationType = RecommendationType.HOT
    user_id: Optional[UUID] = None
    drama_id: Optional[UUID] = None
    limit: int = 10
    categories: Optional[list[str]] = None
    exclude_watched: bool = False


@dataclass
class SearchFilters:
    type: SearchType = SearchType.ALL
    category: Optional[str] = None
    tags: Optional[list[str]] = None
    min_rating: Optional[float] = None
    max_rating: Optional[float] = None
    min_view_count: Optional[int] = None
    max_view_count: Optional[int] = None
    release_date_from: Optional[datetime] = None
    release_date_to: Optional[datetime] = None
    is_hot: Optional[bool] = None
    is_new: Optional[bool] = None
    sort_by: SearchSortBy = SearchSortBy.RELEVANCE
    sort_order: SortOrder = SortOrder.DESC
    page: int = 1
    limit: int = 20


@dataclass
class UserQuery:
    role: Optional[str] = None
    status: Optional[str] = None
    search: Optional[str] = None
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None
    last_login_after: Optional[datetime] = None
    sort_by: str = "created_at"
    sort_order: str = SortOrder.DESC.value
    page: int = 1
    limit: int = 20
