"""Result value objects returned by services.

These are plain dataclasses so the cache layer can serialise them through a
pydantic ``TypeAdapter`` and restore the exact same shape on a cache hit.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from app.domain.entities import Drama, User, utcnow


@dataclass
class Pagination:
    page: int
    limit: int
    total: int
    pages: int


@dataclass
class DramaPage:
    dramas: list[Drama]
    pagination: Pagination
    filters: dict[str, Any] = field(default_factory=dict)


@dataclass
class DramaHighlights:
    hot: list[Drama] = field(default_factory=list)
    new: list[Drama] = field(default_factory=list)
    trending: list[Drama] = field(default_factory=list)


@dataclass
class RecommendationItem:
    drama: Drama
    score: float
    reason: str
    type: str


@dataclass
class RecommendationResult:
    type: str
    items: list[RecommendationItem]
    total: int
    algorithm: str
    user_id: Optional[UUID] = None
    generated_at: datetime = field(default_factory=utcnow)
    execution_time: float = 0.0


@dataclass
class RankingMetrics:
    view_count: int
    rating: float
    comment_count: int
    favorite_count: int


@dataclass
class RankingItem:
    rank: int
    drama: Drama
    score: float
    metrics: RankingMetrics
    change: int = 0


@dataclass
class RankingResult:
    type: str
    items: list[RankingItem]
    total: int
    period_start: datetime
    period_end: datetime
    category: Optional[str] = None
    generated_at: datetime = field(default_factory=utcnow)


@dataclass
class CategoryRanking:
    category: str
    ranking: RankingResult


@dataclass
class RankingTrendItem:
    rank: int
    drama: Drama
    score: float
    change: int
    previous_rank: Optional[int]
    is_new: bool


@dataclass
class RankingTrends:
    type: str
    items: list[RankingTrendItem]
    category: Optional[str] = None
    generated_at: datetime = field(default_factory=utcnow)


@dataclass
class SearchResultItem:
    id: UUID
    type: str  # drama | user | category
    title: str
    score: float
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    highlights: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class FacetCount:
    value: str
    count: int


@dataclass
class SearchFacets:
    categories: list[FacetCount] = field(default_factory=list)
    ratings: list[FacetCount] = field(default_factory=list)
    years: list[FacetCount] = field(default_factory=list)


@dataclass
class SearchResult:
    items: list[SearchResultItem]
    total: int
    page: int
    limit: int
    pages: int
    query: str
    filters: dict[str, Any] = field(default_factory=dict)
    suggestions: list[str] = field(default_factory=list)
    facets: SearchFacets = field(default_factory=SearchFacets)
    execution_time: float = 0.0


@dataclass
class PopularSearch:
    keyword: str
    count: int
    trend: str = "stable"


@dataclass
class UserPage:
    users: list[User]
    pagination: Pagination
    filters: dict[str, Any] = field(default_factory=dict)


@dataclass
class UserStats:
    total_users: int
    active_users: int
    new_users_today: int
    new_users_this_week: int
    new_users_this_month: int
    users_by_role: dict[str, int] = field(default_factory=dict)
    users_by_status: dict[str, int] = field(default_factory=dict)


@dataclass
class AuthResult:
    user: User
    access_token: str
    refresh_token: str
    expires_in: int  # access-token lifetime in seconds

