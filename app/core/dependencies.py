"""Dependency injection container."""

from typing import Annotated, Callable, Optional

import redis.asyncio as aioredis
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheService
from app.core.config import settings
from app.core.redis_client import get_redis
from app.domain.entities import User, UserRole
from app.domain.repositories import (
    ICategoryRepository,
    IDramaRepository,
    ISearchHistoryRepository,
    IUserPreferenceRepository,
    IUserRepository,
    IUserSessionRepository,
)
from app.domain.services import (
    ICategoryService,
    IDramaService,
    IPreferenceService,
    IRankingService,
    IRecommendationService,
    ISearchService,
    IUserService,
)
from app.infrastructure.database.connection import get_db
from app.infrastructure.database.repository import (
    CategoryRepository,
    DramaRepository,
    SearchHistoryRepository,
    UserPreferenceRepository,
    UserRepository,
    UserSessionRepository,
)
from app.services.auth_service import AuthService
from app.services.category_service import CategoryService
from app.services.drama_service import DramaService
from app.services.preference_service import PreferenceService
from app.services.ranking_service import RankingService
from app.services.recommendation import RecommendationService
from app.services.search_service import SearchService
from app.services.user_service import UserService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_prefix}/auth/login", auto_error=False)


# ---------------------------------------------------------------------------
# Infrastructure providers
# ---------------------------------------------------------------------------
async def get_cache(redis_client: aioredis.Redis = Depends(get_redis)) -> CacheService:
    return CacheService(redis_client)


# ---------------------------------------------------------------------------
# Repository providers
# ---------------------------------------------------------------------------
async def get_drama_repository(session: AsyncSession = Depends(get_db)) -> IDramaRepository:
    return DramaRepository(session)


async def get_category_repository(session: AsyncSession = Depends(get_db)) -> ICategoryRepository:
    return CategoryRepository(session)


async def get_user_repository(session: AsyncSession = Depends(get_db)) -> IUserRepository:
    return UserRepository(session)


async def get_session_repository(session: AsyncSession = Depends(get_db)) -> IUserSessionRepository:
    return UserSessionRepository(session)


async def get_preference_repository(
    session: AsyncSession = Depends(get_db),
) -> IUserPreferenceRepository:
    return UserPreferenceRepository(session)


async def get_search_history_repository(
    session: AsyncSession = Depends(get_db),
) -> ISearchHistoryRepository:
    return SearchHistoryRepository(session)


# ---------------------------------------------------------------------------
# Service providers
# ---------------------------------------------------------------------------
async def get_drama_service(
    drama_repo: IDramaRepository = Depends(get_drama_repository),
    cache: CacheService = Depends(get_cache),
) -> IDramaService:
    return DramaService(drama_repository=drama_repo, cache=cache)


async def get_category_service(
    category_repo: ICategoryRepository = Depends(get_category_repository),
    drama_repo: IDramaRepository = Depends(get_drama_repository),
    cache: CacheService = Depends(get_cache),
) -> ICategoryService:
    return CategoryService(category_repository=category_repo, drama_repository=drama_repo, cache=cache)


async def get_recommendation_service(
    drama_repo: IDramaRepository = Depends(get_drama_repository),
    pref_repo: IUserPreferenceRepository = Depends(get_preference_repository),
    cache: CacheService = Depends(get_cache),
) -> IRecommendationService:
    return RecommendationService(drama_repository=drama_repo, preference_repository=pref_repo, cache=cache)


async def get_ranking_service(
    drama_repo: IDramaRepository = Depends(get_drama_repository),
    category_repo: ICategoryRepository = Depends(get_category_repository),
    cache: CacheService = Depends(get_cache),
) -> IRankingService:
    return RankingService(drama_repository=drama_repo, category_repository=category_repo, cache=cache)


async def get_search_service(
    drama_repo: IDramaRepository = Depends(get_drama_repository),
    user_repo: IUserRepository = Depends(get_user_repository),
    category_repo: ICategoryRepository = Depends(get_category_repository),
    history_repo: ISearchHistoryRepository = Depends(get_search_history_repository),
    cache: CacheService = Depends(get_cache),
) -> ISearchService:
    return SearchService(
        drama_repository=drama_repo,
        user_repository=user_repo,
        category_repository=category_repo,
        history_repository=history_repo,
        cache=cache,
    )


async def get_preference_service(
    pref_repo: IUserPreferenceRepository = Depends(get_preference_repository),
    drama_repo: IDramaRepository = Depends(get_drama_repository),
) -> IPreferenceService:
    return PreferenceService(preference_repository=pref_repo, drama_repository=drama_repo)


async def get_user_service(
    user_repo: IUserRepository = Depends(get_user_repository),
    session_repo: IUserSessionRepository = Depends(get_session_repository),
    cache: CacheService = Depends(get_cache),
) -> IUserService:
    return UserService(user_repository=user_repo, session_repository=session_repo, cache=cache)


async def get_auth_service(
    user_repo: IUserRepository = Depends(get_user_repository),
    session_repo: IUserSessionRepository = Depends(get_session_repository),
    cache: CacheService = Depends(get_cache),
) -> AuthService:
    return AuthService(user_repository=user_repo, session_repository=session_repo, cache=cache)


# ---------------------------------------------------------------------------
# Auth dependencies
# ---------------------------------------------------------------------------
async def get_optional_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> Optional[User]:
    """Resolve the bearer token if one was sent; anonymous callers get None."""
    if not token:
        return None
    return await auth_service.verify_access_token(token)


async def get_current_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> User:
    """Return the authenticated user.

    Rejects missing, expired and blacklisted tokens as well as tokens of
    users that are no longer active.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        raise credentials_exception
    user = await auth_service.verify_access_token(token)
    if user is None:
        raise credentials_exception
    return user


def require_roles(*roles: UserRole) -> Callable:
    """Build a dependency admitting only users holding one of ``roles``."""
    allowed = {role.value for role in roles}

    async def checker(current_user: Annotated[User, Depends(get_current_user)]) -> User:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return checker


require_admin = require_roles(UserRole.ADMIN)
require_moderator = require_roles(UserRole.ADMIN, UserRole.MODERATOR)
