"""Domain entities for DramaHub."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional
from uuid import UUID


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the store's ``DateTime`` columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_new_release(release_date: datetime, now: Optional[datetime] = None, window_days: int = 30) -> bool:
    """A drama counts as new while its release date is inside the window."""
    now = now or utcnow()
    return release_date > now - timedelta(days=window_days)


class DramaStatus(str, Enum):
    UPDATING = "updating"
    COMPLETED = "completed"
    COMING_SOON = "coming_soon"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    BANNED = "banned"
    PENDING = "pending"


def default_profile() -> dict:
    return {"nickname": None, "bio": None, "gender": None, "birthday": None, "location": None}


def default_user_settings() -> dict:
    return {
        "favorite_genres": [],
        "language": "en",
        "notifications": {
            "email": True,
            "push": True,
            "new_dramas": True,
            "recommendations": True,
        },
    }


def default_user_stats() -> dict:
    return {"total_watch_time": 0, "dramas_watched": 0, "favorites_count": 0, "comments_count": 0}


@dataclass
class Drama:
    id: UUID
    title: str
    description: str
    category: str
    release_date: datetime
    poster: str = ""
    tags: list[str] = field(default_factory=list)
    rating: float = 0.0
    view_count: int = 0
    episodes: int = 1
    duration: str = ""
    status: str = DramaStatus.UPDATING.value  # updating | completed | coming_soon
    cast: list[str] = field(default_factory=list)
    video_urls: list[str] = field(default_factory=list)
    is_hot: bool = False
    is_new: bool = False  # derived from release_date when saved
    comment_count: int = 0
    favorite_count: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class Category:
    id: UUID
    name: str
    color: str = "#3B82F6"
    description: Optional[str] = None
    icon: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True
    drama_count: int = 0  # derived, never persisted
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class CategoryStats:
    id: UUID
    name: str
    color: str
    description: Optional[str]
    sort_order: int
    drama_count: int = 0
    total_views: int = 0
    average_rating: float = 0.0


@dataclass
class User:
    id: UUID
    username: str
    email: str
    hashed_password: str
    avatar: Optional[str] = None
    role: str = UserRole.USER.value
    status: str = UserStatus.ACTIVE.value
    profile: dict = field(default_factory=default_profile)
    preferences: dict = field(default_factory=default_user_settings)
    stats: dict = field(default_factory=default_user_stats)
    last_login_at: Optional[datetime] = None
    email_verified_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value

    @property
    def display_name(self) -> str:
        return (self.profile or {}).get("nickname") or self.username


@dataclass
class UserSession:
    id: UUID
    user_id: UUID
    session_id: str
    refresh_token: str
    expires_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class UserPreference:
    """Learned viewing preferences.

    ``categories``, ``tags`` and ``actors`` map a name to a weight in [0, 1].
    ``recent_dramas`` holds the ids of dramas the user viewed or finished,
    newest first, and backs the exclude-watched recommendation flag.
    """

    id: UUID
    user_id: UUID
    categories: dict[str, float] = field(default_factory=dict)
    tags: dict[str, float] = field(default_factory=dict)
    actors: dict[str, float] = field(default_factory=dict)
    rating_range: dict = field(default_factory=lambda: {"min": 0.0, "max": 10.0, "preferred": 8.0})
    viewing_time: dict = field(
        default_factory=lambda: {"total_minutes": 0, "average_session": 0.0, "preferred_duration": 30.0}
    )
    recent_dramas: list[str] = field(default_factory=list)
    last_updated: datetime = field(default_factory=utcnow)


@dataclass
class SearchHistoryEntry:
    id: UUID
    user_id: UUID
    query: str
    filters: dict = field(default_factory=dict)
    result_count: int = 0
    clicked_items: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utcnow)
