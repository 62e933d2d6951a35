"""Repository interfaces (ports) for dependency inversion."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from app.domain.entities import (
    Category,
    CategoryStats,
    Drama,
    SearchHistoryEntry,
    User,
    UserPreference,
    UserSession,
)
from app.domain.queries import DramaQuery, UserQuery


class IDramaRepository(ABC):

    @abstractmethod
    async def create(self, drama: Drama) -> Drama:
        """Persist a drama, deriving ``is_new`` from its release date."""
        pass

    @abstractmethod
    async def get_by_id(self, drama_id: UUID) -> Optional[Drama]:
        pass

    @abstractmethod
    async def get_by_title(self, title: str) -> Optional[Drama]:
        pass

    @abstractmethod
    async def find(self, query: DramaQuery) -> list[Drama]:
        pass

    @abstractmethod
    async def count(self, query: DramaQuery) -> int:
        pass

    @abstractmethod
    async def increment_view_count(self, drama_id: UUID) -> bool:
        """Atomically add one view; returns False when the drama is unknown."""
        pass

    @abstractmethod
    async def count_by_category(self, category_name: str) -> int:
        pass

    @abstractmethod
    async def refresh_new_flags(self, cutoff: datetime) -> int:
        """Recompute ``is_new`` against ``cutoff``; returns rows changed."""
        pass


class ICategoryRepository(ABC):

    @abstractmethod
    async def create(self, category: Category) -> Category:
        pass

    @abstractmethod
    async def get_by_id(self, category_id: UUID) -> Optional[Category]:
        pass

    @abstractmethod
    async def get_by_name(self, name: str) -> Optional[Category]:
        pass

    @abstractmethod
    async def list_categories(self, active_only: bool = False) -> list[Category]:
        """Categories ordered by sort order then name, with drama counts."""
        pass

    @abstractmethod
    async def update(self, category: Category) -> Category:
        pass

    @abstractmethod
    async def delete(self, category_id: UUID) -> bool:
        pass

    @abstractmethod
    async def stats(self) -> list[CategoryStats]:
        pass

    @abstractmethod
    async def update_sort_order(self, orders: list[tuple[UUID, int]]) -> int:
        pass


class IUserRepository(ABC):

    @abstractmethod
    async def create(self, user: User) -> User:
        pass

    @abstractmethod
    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    async def get_by_username(self, username: str) -> Optional[User]:
        pass

    @abstractmethod
    async def update(self, user: User) -> User:
        pass

    @abstractmethod
    async def delete(self, user_id: UUID) -> bool:
        pass

    @abstractmethod
    async def find(self, query: UserQuery) -> tuple[list[User], int]:
        """Return one page of users and the total match count."""
        pass

    @abstractmethod
    async def search(self, text: str, limit: int = 10) -> list[User]:
        """Active users whose username, nickname or bio contains ``text``."""
        pass

    @abstractmethod
    async def count_created_since(self, since: Optional[datetime] = None) -> int:
        """Count users created at or after ``since`` (all users when None)."""
        pass

    @abstractmethod
    async def count_grouped_by(self, column: str) -> dict[str, int]:
        """Count users per ``role`` or per ``status``."""
        pass


class IUserSessionRepository(ABC):

    @abstractmethod
    async def create(self, session: UserSession) -> UserSession:
        pass

    @abstractmethod
    async def get_active_by_refresh_token(self, refresh_token: str, now: datetime) -> Optional[UserSession]:
        pass

    @abstractmethod
    async def update(self, session: UserSession) -> UserSession:
        pass

    @abstractmethod
    async def deactivate_by_refresh_token(self, refresh_token: str) -> bool:
        pass

    @abstractmethod
    async def deactivate_all(self, user_id: UUID) -> int:
        pass

    @abstractmethod
    async def list_active(self, user_id: UUID, now: datetime) -> list[UserSession]:
        pass

    @abstractmethod
    async def purge_expired(self, now: datetime) -> int:
        pass


class IUserPreferenceRepository(ABC):

    @abstractmethod
    async def get(self, user_id: UUID) -> Optional[UserPreference]:
        pass

    @abstractmethod
    async def get_or_create(self, user_id: UUID) -> UserPreference:
        pass

    @abstractmethod
    async def update(self, pref: UserPreference) -> UserPreference:
        pass


class ISearchHistoryRepository(ABC):

    @abstractmethod
    async def record(self, entry: SearchHistoryEntry) -> SearchHistoryEntry:
        pass

    @abstractmethod
    async def suggestions(self, text: str, since: datetime, limit: int = 5) -> list[str]:
        """Distinct past queries containing ``text``, most frequent first."""
        pass

    @abstractmethod
    async def popular(self, since: datetime, min_count: int = 2, limit: int = 10) -> list[tuple[str, int]]:
        pass

    @abstractmethod
    async def purge_before(self, cutoff: datetime) -> int:
        pass
