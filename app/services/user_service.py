"""User administration and self-service profile management."""

import logging
import math
from dataclasses import replace
from datetime import timedelta
from typing import Optional
from uuid import UUID

from pydantic import TypeAdapter

from app.core.cache import CacheService, build_key, to_jsonable
from app.core.config import settings
from app.domain.entities import User, UserRole, UserSession, UserStatus, utcnow
from app.domain.exceptions import NotFoundError, ValidationFailedError
from app.domain.queries import USER_SORT_FIELDS, UserQuery
from app.domain.repositories import IUserRepository, IUserSessionRepository
from app.domain.results import Pagination, UserPage, UserStats
from app.domain.services import IUserService

logger = logging.getLogger(__name__)

PROFILE_PREFIX = "user:profile"
LIST_PREFIX = "user:list"
STATS_KEY = "user:stats"

PROFILE_FIELDS = ("nickname", "bio", "gender", "birthday", "location")
# Statuses that end every open session
SESSION_ENDING_STATUSES = (UserStatus.BANNED.value, UserStatus.INACTIVE.value)

_USER_ADAPTER = TypeAdapter(User)
_PAGE_ADAPTER = TypeAdapter(UserPage)
_STATS_ADAPTER = TypeAdapter(UserStats)


class UserService(IUserService):

    def __init__(
        self,
        user_repository: IUserRepository,
        session_repository: IUserSessionRepository,
        cache: CacheService,
    ):
        self.user_repository = user_repository
        self.session_repository = session_repository
        self.cache = cache

    async def list_users(self, query: UserQuery) -> UserPage:
        if query.sort_by not in USER_SORT_FIELDS:
            raise ValidationFailedError(f"sort_by must be one of: {', '.join(USER_SORT_FIELDS)}")
        query.page = max(1, query.page)
        query.limit = min(max(1, query.limit), 100)

        async def load() -> UserPage:
            users, total = await self.user_repository.find(query)
            return UserPage(
                users=[replace(user, hashed_password="") for user in users],
                pagination=Pagination(
                    page=query.page,
                    limit=query.limit,
                    total=total,
                    pages=math.ceil(total / query.limit),
                ),
                filters=to_jsonable(query),
            )

        page, _ = await self.cache.get_or_load(
            build_key(LIST_PREFIX, to_jsonable(query)), settings.cache_ttl_user, load, _PAGE_ADAPTER
        )
        return page

    async def get_user(self, user_id: UUID) -> User:
        async def load() -> Optional[User]:
            user = await self.user_repository.get_by_id(user_id)
            # the password hash never enters the cache
            return replace(user, hashed_password="") if user else None

        user, _ = await self.cache.get_or_load(
            f"{PROFILE_PREFIX}:{user_id}", settings.cache_ttl_user, load, _USER_ADAPTER
        )
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def update_user(
        self,
        user_id: UUID,
        profile: Optional[dict] = None,
        avatar: Optional[str] = None,
        preferences: Optional[dict] = None,
    ) -> User:
        """Merge-update profile fields, avatar and notification preferences."""
        user = await self._load(user_id)
        if profile:
            merged = dict(user.profile or {})
            merged.update({k: v for k, v in profile.items() if k in PROFILE_FIELDS and v is not None})
            user.profile = merged
        if avatar is not None:
            user.avatar = avatar
        if preferences:
            merged_prefs = dict(user.preferences or {})
            notifications = preferences.get("notifications")
            if notifications:
                merged_prefs["notifications"] = {**merged_prefs.get("notifications", {}), **notifications}
            for key in ("favorite_genres", "language"):
                if preferences.get(key) is not None:
                    merged_prefs[key] = preferences[key]
            user.preferences = merged_prefs

        updated = await self.user_repository.update(user)
        await self._invalidate(user_id)
        logger.info(f"User profile updated: {user_id}")
        return updated

    async def update_user_status(self, user_id: UUID, status: str) -> User:
        if status not in {s.value for s in UserStatus}:
            raise ValidationFailedError(f"Unknown status: {status}")
        user = await self._load(user_id)
        user.status = status
        updated = await self.user_repository.update(user)
        if status in SESSION_ENDING_STATUSES:
            closed = await self.session_repository.deactivate_all(user_id)
            logger.info("Closed %d sessions for %s user %s", closed, status, user_id)
        await self._invalidate(user_id)
        return updated

    async def update_user_role(self, user_id: UUID, role: str) -> User:
        if role not in {r.value for r in UserRole}:
            raise ValidationFailedError(f"Unknown role: {role}")
        user = await self._load(user_id)
        user.role = role
        updated = await self.user_repository.update(user)
        await self._invalidate(user_id)
        logger.info(f"User {user_id} role set to {role}")
        return updated

    async def delete_user(self, user_id: UUID, acting_user_id: UUID) -> None:
        if user_id == acting_user_id:
            raise ValidationFailedError("You cannot delete your own account")
        await self._load(user_id)
        await self.session_repository.deactivate_all(user_id)
        await self.user_repository.delete(user_id)
        await self._invalidate(user_id)
        logger.info(f"User deleted: {user_id}")

    async def get_user_stats(self) -> UserStats:
        async def load() -> UserStats:
            now = utcnow()
            start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
            by_status = await self.user_repository.count_grouped_by("status")
            return UserStats(
                total_users=await self.user_repository.count_created_since(None),
                active_users=by_status.get(UserStatus.ACTIVE.value, 0),
                new_users_today=await self.user_repository.count_created_since(start_of_day),
                new_users_this_week=await self.user_repository.count_created_since(now - timedelta(days=7)),
                new_users_this_month=await self.user_repository.count_created_since(now - timedelta(days=30)),
                users_by_role=await self.user_repository.count_grouped_by("role"),
                users_by_status=by_status,
            )

        stats, _ = await self.cache.get_or_load(STATS_KEY, settings.cache_ttl_user, load, _STATS_ADAPTER)
        return stats

    async def search_users(self, text: str, limit: int = 10) -> list[User]:
        if not text.strip():
            return []
        return await self.user_repository.search(text.strip(), limit=min(max(1, limit), 50))

    async def get_user_sessions(self, user_id: UUID) -> list[UserSession]:
        await self._load(user_id)
        return await self.session_repository.list_active(user_id, utcnow())

    async def _load(self, user_id: UUID) -> User:
        user = await self.user_repository.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def _invalidate(self, user_id: UUID) -> None:
        await self.cache.delete(f"{PROFILE_PREFIX}:{user_id}", STATS_KEY)
        await self.cache.delete_pattern(f"{LIST_PREFIX}:*")
