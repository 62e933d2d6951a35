"""Domain-level application service interfaces (ports).

These abstract classes define the contracts that the API layer depends on.
Concrete implementations live in ``app/services/`` and are wired together
by the composition root in ``app/core/dependencies.py``.

Every service can be replaced with a test double via FastAPI's
``app.dependency_overrides`` without touching business logic.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from app.domain.entities import Category, CategoryStats, Drama, User, UserPreference, UserSession
from app.domain.queries import (
    DramaListFilters,
    RankingType,
    RecommendationRequest,
    SearchFilters,
    UserQuery,
)
from app.domain.results import (
    CategoryRanking,
    DramaHighlights,
    DramaPage,
    PopularSearch,
    RankingResult,
    RankingTrends,
    RecommendationResult,
    SearchResult,
    UserPage,
    UserStats,
)


class IDramaService(ABC):

    @abstractmethod
    async def list_dramas(self, filters: DramaListFilters) -> DramaPage:
        pass

    @abstractmethod
    async def get_drama(self, drama_id: UUID) -> Drama:
        """Return one drama or raise ``NotFoundError``."""
        pass

    @abstractmethod
    async def search_dramas(self, query: str, category: Optional[str] = None, limit: int = 20) -> list[Drama]:
        pass

    @abstractmethod
    async def get_hot_dramas(self, limit: int = 10) -> list[Drama]:
        pass

    @abstractmethod
    async def get_new_dramas(self, limit: int = 10) -> list[Drama]:
        pass

    @abstractmethod
    async def get_trending_dramas(self, limit: int = 10) -> list[Drama]:
        pass

    @abstractmethod
    async def get_recommendations(self) -> DramaHighlights:
        pass

    @abstractmethod
    async def increment_view_count(self, drama_id: UUID) -> None:
        pass


class ICategoryService(ABC):

    @abstractmethod
    async def get_active_categories(self) -> list[Category]:
        pass

    @abstractmethod
    async def get_all_categories(self) -> list[Category]:
        pass

    @abstractmethod
    async def get_category(self, category_id: UUID) -> Category:
        pass

    @abstractmethod
    async def get_category_stats(self) -> list[CategoryStats]:
        pass

    @abstractmethod
    async def create_category(
        self,
        name: str,
        color: str = "#3B82F6",
        description: Optional[str] = None,
        icon: Optional[str] = None,
        sort_order: int = 0,
        is_active: bool = True,
    ) -> Category:
        pass

    @abstractmethod
    async def update_category(self, category_id: UUID, **changes) -> Category:
        pass

    @abstractmethod
    async def delete_category(self, category_id: UUID) -> None:
        """Delete a category nobody references; ``ConflictError`` otherwise."""
        pass

    @abstractmethod
    async def update_sort_order(self, orders: list[tuple[UUID, int]]) -> int:
        pass

    @abstractmethod
    async def toggle_category_status(self, category_id: UUID) -> Category:
        pass


class IRecommendationService(ABC):

    @abstractmethod
    async def get_recommendations(self, request: RecommendationRequest) -> RecommendationResult:
        pass


class IRankingService(ABC):

    @abstractmethod
    async def get_ranking(
        self, ranking_type: RankingType, category: Optional[str] = None, limit: int = 20
    ) -> RankingResult:
        pass

    @abstractmethod
    async def get_category_rankings(self, ranking_type: RankingType, limit: int = 10) -> list[CategoryRanking]:
        pass

    @abstractmethod
    async def get_ranking_trends(
        self, ranking_type: RankingType, category: Optional[str] = None, limit: int = 20
    ) -> RankingTrends:
        pass

    @abstractmethod
    async def clear_ranking_cache(self) -> int:
        pass


class ISearchService(ABC):

    @abstractmethod
    async def search(
        self, query: str, filters: SearchFilters, user_id: Optional[UUID] = None
    ) -> SearchResult:
        """Search dramas, users and categories.

        When ``user_id`` is given the query is written to the search history.
        """
        pass

    @abstractmethod
    async def get_search_suggestions(self, query: str, limit: int = 5) -> list[str]:
        pass

    @abstractmethod
    async def get_popular_searches(self, limit: int = 10) -> list[PopularSearch]:
        pass


class IUserService(ABC):

    @abstractmethod
    async def list_users(self, query: UserQuery) -> UserPage:
        pass

    @abstractmethod
    async def get_user(self, user_id: UUID) -> User:
        pass

    @abstractmethod
    async def update_user(
        self,
        user_id: UUID,
        profile: Optional[dict] = None,
        avatar: Optional[str] = None,
        preferences: Optional[dict] = None,
    ) -> User:
        pass

    @abstractmethod
    async def update_user_status(self, user_id: UUID, status: str) -> User:
        """Change status; banning or deactivating ends every session."""
        pass

    @abstractmethod
    async def update_user_role(self, user_id: UUID, role: str) -> User:
        pass

    @abstractmethod
    async def delete_user(self, user_id: UUID, acting_user_id: UUID) -> None:
        pass

    @abstractmethod
    async def get_user_stats(self) -> UserStats:
        pass

    @abstractmethod
    async def search_users(self, text: str, limit: int = 10) -> list[User]:
        pass

    @abstractmethod
    async def get_user_sessions(self, user_id: UUID) -> list[UserSession]:
        pass


class IPreferenceService(ABC):

    @abstractmethod
    async def get_preferences(self, user_id: UUID) -> UserPreference:
        pass

    @abstractmethod
    async def record_action(
        self,
        user_id: UUID,
        drama_id: UUID,
        action: str,
        watch_minutes: Optional[float] = None,
    ) -> UserPreference:
        """Learn from a view / like / favorite / complete action on a drama."""
        pass
