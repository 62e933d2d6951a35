"""Pydantic schemas for API requests and responses."""

from datetime import date, datetime
from typing import Any, Generic, Literal, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.domain.entities import UserRole, UserStatus, utcnow

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------
class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str = "OK"
    data: Optional[T] = None
    timestamp: datetime = Field(default_factory=utcnow)


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error: Optional[Any] = None
    timestamp: datetime = Field(default_factory=utcnow)


def ok(data: Any = None, message: str = "OK") -> ApiResponse:
    return ApiResponse(data=data, message=message)


# ---------------------------------------------------------------------------
# Dramas
# ---------------------------------------------------------------------------
class DramaResponse(BaseModel):
    id: UUID
    title: str
    description: str
    poster: str
    category: str
    tags: list[str]
    rating: float
    view_count: int
    episodes: int
    duration: str
    status: str
    cast: list[str]
    video_urls: list[str]
    release_date: datetime
    is_hot: bool
    is_new: bool
    comment_count: int
    favorite_count: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    model_config = ConfigDict(from_attributes=True)


class DramaPageResponse(BaseModel):
    dramas: list[DramaResponse]
    pagination: PaginationResponse
    filters: dict[str, Any] = {}

    model_config = ConfigDict(from_attributes=True)


class DramaHighlightsResponse(BaseModel):
    hot: list[DramaResponse]
    new: list[DramaResponse]
    trending: list[DramaResponse]

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------
class CategoryCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    color: str = Field("#3B82F6", pattern=r"^#[0-9A-Fa-f]{6}$")
    description: Optional[str] = Field(None, max_length=200)
    icon: Optional[str] = Field(None, max_length=100)
    sort_order: int = Field(0, ge=0)
    is_active: bool = True


class CategoryUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    description: Optional[str] = Field(None, max_length=200)
    icon: Optional[str] = Field(None, max_length=100)
    sort_order: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class CategorySortItem(BaseModel):
    id: UUID
    sort_order: int = Field(..., ge=0)


class CategorySortOrderRequest(BaseModel):
    orders: list[CategorySortItem] = Field(..., min_length=1)


class CategoryResponse(BaseModel):
    id: UUID
    name: str
    color: str
    description: Optional[str] = None
    icon: Optional[str] = None
    sort_order: int
    is_active: bool
    drama_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CategoryStatsResponse(BaseModel):
    id: UUID
    name: str
    color: str
    description: Optional[str] = None
    sort_order: int
    drama_count: int
    total_views: int
    average_rating: float

    model_config = ConfigDict(from_attributes=True)


class SortOrderResult(BaseModel):
    updated: int


# ---------------------------------------------------------------------------
# Auth & users
# ---------------------------------------------------------------------------
class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=20)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    confirm_password: str
    nickname: Optional[str] = Field(None, max_length=50)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str
    remember_me: bool = False


class RefreshTokenRequest(BaseModel):
    refresh_token: Optional[str] = None


class VerifyTokenRequest(BaseModel):
    token: str


class UserResponse(BaseModel):
    id: UUID
    username: str
    email: str
    avatar: Optional[str] = None
    role: str
    status: str
    profile: dict[str, Any]
    preferences: dict[str, Any]
    stats: dict[str, Any]
    last_login_at: Optional[datetime] = None
    email_verified_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PublicUserResponse(BaseModel):
    id: UUID
    username: str
    avatar: Optional[str] = None
    profile: dict[str, Any]

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
    expires_in: int

    model_config = ConfigDict(from_attributes=True)


class TokenVerification(BaseModel):
    valid: bool
    user: Optional[UserResponse] = None


class AvailabilityResponse(BaseModel):
    available: bool


class LogoutAllResponse(BaseModel):
    sessions_closed: int


class ProfileUpdateRequest(BaseModel):
    nickname: Optional[str] = Field(None, max_length=50)
    bio: Optional[str] = Field(None, max_length=500)
    gender: Optional[Literal["male", "female", "other"]] = None
    birthday: Optional[date] = None
    location: Optional[str] = Field(None, max_length=100)
    avatar: Optional[str] = Field(None, max_length=512)
    preferences: Optional[dict[str, Any]] = None

    def profile_changes(self) -> dict[str, Any]:
        return self.model_dump(
            mode="json",
            include={"nickname", "bio", "gender", "birthday", "location"},
            exclude_none=True,
        )


class UserStatusRequest(BaseModel):
    status: UserStatus


class UserRoleRequest(BaseModel):
    role: UserRole


class UserPageResponse(BaseModel):
    users: list[UserResponse]
    pagination: PaginationResponse
    filters: dict[str, Any] = {}

    model_config = ConfigDict(from_attributes=True)


class UserStatsResponse(BaseModel):
    total_users: int
    active_users: int
    new_users_today: int
    new_users_this_week: int
    new_users_this_month: int
    users_by_role: dict[str, int]
    users_by_status: dict[str, int]

    model_config = ConfigDict(from_attributes=True)


class UserSessionResponse(BaseModel):
    session_id: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    is_active: bool
    expires_at: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Recommendations & rankings
# ---------------------------------------------------------------------------
class RecommendationItemResponse(BaseModel):
    drama: DramaResponse
    score: float
    reason: str
    type: str

    model_config = ConfigDict(from_attributes=True)


class RecommendationResponse(BaseModel):
    type: str
    items: list[RecommendationItemResponse]
    total: int
    algorithm: str
    user_id: Optional[UUID] = None
    generated_at: datetime
    execution_time: float

    model_config = ConfigDict(from_attributes=True)


class RankingMetricsResponse(BaseModel):
    view_count: int
    rating: float
    comment_count: int
    favorite_count: int

    model_config = ConfigDict(from_attributes=True)


class RankingItemResponse(BaseModel):
    rank: int
    drama: DramaResponse
    score: float
    metrics: RankingMetricsResponse
    change: int

    model_config = ConfigDict(from_attributes=True)


class RankingResponse(BaseModel):
    type: str
    items: list[RankingItemResponse]
    total: int
    period_start: datetime
    period_end: datetime
    category: Optional[str] = None
    generated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CategoryRankingResponse(BaseModel):
    category: str
    ranking: RankingResponse

    model_config = ConfigDict(from_attributes=True)


class RankingTrendItemResponse(BaseModel):
    rank: int
    drama: DramaResponse
    score: float
    change: int
    previous_rank: Optional[int] = None
    is_new: bool

    model_config = ConfigDict(from_attributes=True)


class RankingTrendsResponse(BaseModel):
    type: str
    items: list[RankingTrendItemResponse]
    category: Optional[str] = None
    generated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------
class SearchResultItemResponse(BaseModel):
    id: UUID
    type: str
    title: str
    score: float
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    highlights: list[str]
    metadata: dict[str, Any]

    model_config = ConfigDict(from_attributes=True)


class FacetCountResponse(BaseModel):
    value: str
    count: int

    model_config = ConfigDict(from_attributes=True)


class SearchFacetsResponse(BaseModel):
    categories: list[FacetCountResponse]
    ratings: list[FacetCountResponse]
    years: list[FacetCountResponse]

    model_config = ConfigDict(from_attributes=True)


class SearchResponse(BaseModel):
    items: list[SearchResultItemResponse]
    total: int
    page: int
    limit: int
    pages: int
    query: str
    filters: dict[str, Any]
    suggestions: list[str]
    facets: SearchFacetsResponse
    execution_time: float

    model_config = ConfigDict(from_attributes=True)


class PopularSearchResponse(BaseModel):
    keyword: str
    count: int
    trend: str

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------
class PreferenceActionRequest(BaseModel):
    drama_id: UUID
    action: Literal["view", "like", "favorite", "complete"]
    watch_minutes: Optional[float] = Field(None, gt=0)


class PreferenceResponse(BaseModel):
    user_id: UUID
    categories: dict[str, float]
    tags: dict[str, float]
    actors: dict[str, float]
    rating_range: dict[str, float]
    viewing_time: dict[str, float]
    recent_dramas: list[str]
    last_updated: datetime

    model_config = ConfigDict(from_attributes=True)
