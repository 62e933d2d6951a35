"""Repository implementations."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.entities import (
    Category,
    CategoryStats,
    Drama,
    SearchHistoryEntry,
    User,
    UserPreference,
    UserSession,
    is_new_release,
    utcnow,
)
from app.domain.queries import DramaQuery, UserQuery
from app.domain.repositories import (
    ICategoryRepository,
    IDramaRepository,
    ISearchHistoryRepository,
    IUserPreferenceRepository,
    IUserRepository,
    IUserSessionRepository,
)
from app.infrastructure.database.models import (
    CategoryModel,
    DramaModel,
    SearchHistoryModel,
    UserModel,
    UserPreferenceModel,
    UserSessionModel,
)

LIKE_ESCAPE = "\\"


def _like_pattern(text: str) -> str:
    """Substring pattern for ILIKE with wildcards in ``text`` escaped."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


# ---------------------------------------------------------------------------
# Drama Repository
# ---------------------------------------------------------------------------
DRAMA_SORT_COLUMNS = {
    "created_at": DramaModel.created_at,
    "updated_at": DramaModel.updated_at,
    "rating": DramaModel.rating,
    "view_count": DramaModel.view_count,
    "release_date": DramaModel.release_date,
    "title": DramaModel.title,
}


def _drama_conditions(query: DramaQuery) -> list:
    conditions = []
    if query.category:
        conditions.append(DramaModel.category == query.category)
    if query.categories:
        conditions.append(DramaModel.category.in_(query.categories))
    if query.tags:
        conditions.append(DramaModel.tags.overlap(query.tags))
    if query.status:
        conditions.append(DramaModel.status == query.status)
    if query.is_hot is not None:
        conditions.append(DramaModel.is_hot.is_(query.is_hot))
    if query.is_new is not None:
        conditions.append(DramaModel.is_new.is_(query.is_new))
    if query.min_rating is not None:
        conditions.append(DramaModel.rating >= query.min_rating)
    if query.max_rating is not None:
        conditions.append(DramaModel.rating <= query.max_rating)
    if query.min_view_count is not None:
        conditions.append(DramaModel.view_count >= query.min_view_count)
    if query.max_view_count is not None:
        conditions.append(DramaModel.view_count <= query.max_view_count)
    if query.release_date_from is not None:
        conditions.append(DramaModel.release_date >= query.release_date_from)
    if query.release_date_to is not None:
        conditions.append(DramaModel.release_date <= query.release_date_to)
    if query.updated_from is not None:
        conditions.append(DramaModel.updated_at >= query.updated_from)
    if query.updated_to is not None:
        conditions.append(DramaModel.updated_at <= query.updated_to)
    if query.search:
        pattern = _like_pattern(query.search)
        conditions.append(
            or_(
                DramaModel.title.ilike(pattern, escape=LIKE_ESCAPE),
                DramaModel.description.ilike(pattern, escape=LIKE_ESCAPE),
                func.array_to_string(DramaModel.tags, " ").ilike(pattern, escape=LIKE_ESCAPE),
                func.array_to_string(DramaModel.cast, " ").ilike(pattern, escape=LIKE_ESCAPE),
            )
        )
    if query.exclude_ids:
        conditions.append(DramaModel.id.notin_(query.exclude_ids))
    if query.related_to is not None:
        seed = query.related_to
        related = [DramaModel.category == seed.category]
        if seed.tags:
            related.append(DramaModel.tags.overlap(seed.tags))
        if seed.cast:
            related.append(DramaModel.cast.overlap(seed.cast))
        conditions.append(DramaModel.id != seed.id)
        conditions.append(or_(*related))
    return conditions


class DramaRepository(IDramaRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, drama: Drama) -> Drama:
        db_drama = DramaModel(
            id=drama.id,
            title=drama.title,
            description=drama.description,
            poster=drama.poster,
            category=drama.category,
            tags=drama.tags,
            rating=drama.rating,
            view_count=drama.view_count,
            episodes=drama.episodes,
            duration=drama.duration,
            status=drama.status,
            cast=drama.cast,
            video_urls=drama.video_urls,
            release_date=drama.release_date,
            is_hot=drama.is_hot,
            is_new=is_new_release(drama.release_date),
            comment_count=drama.comment_count,
            favorite_count=drama.favorite_count,
            created_at=drama.created_at,
            updated_at=drama.updated_at,
        )
        self.session.add(db_drama)
        await self.session.commit()
        await self.session.refresh(db_drama)
        return self._to_entity(db_drama)

    async def get_by_id(self, drama_id: UUID) -> Optional[Drama]:
        result = await self.session.execute(select(DramaModel).where(DramaModel.id == drama_id))
        db_drama = result.scalar_one_or_none()
        return self._to_entity(db_drama) if db_drama else None

    async def get_by_title(self, title: str) -> Optional[Drama]:
        result = await self.session.execute(select(DramaModel).where(DramaModel.title == title))
        db_drama = result.scalars().first()
        return self._to_entity(db_drama) if db_drama else None

    async def find(self, query: DramaQuery) -> list[Drama]:
        order_by = []
        for field_name, direction in query.sort:
            column = DRAMA_SORT_COLUMNS[field_name]
            order_by.append(column.asc() if direction == "asc" else column.desc())
        order_by.append(DramaModel.id.asc())

        stmt = select(DramaModel).where(*_drama_conditions(query)).order_by(*order_by)
        if query.offset:
            stmt = stmt.offset(query.offset)
        if query.limit is not None:
            stmt = stmt.limit(query.limit)
        result = await self.session.execute(stmt)
        return [self._to_entity(drama) for drama in result.scalars().all()]

    async def count(self, query: DramaQuery) -> int:
        stmt = select(func.count()).select_from(DramaModel).where(*_drama_conditions(query))
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def increment_view_count(self, drama_id: UUID) -> bool:
        result = await self.session.execute(
            update(DramaModel)
            .where(DramaModel.id == drama_id)
            .values(view_count=DramaModel.view_count + 1)
            .returning(DramaModel.id)
        )
        updated = result.scalar_one_or_none()
        await self.session.commit()
        return updated is not None

    async def count_by_category(self, category_name: str) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(DramaModel).where(DramaModel.category == category_name)
        )
        return result.scalar_one()

    async def refresh_new_flags(self, cutoff: datetime) -> int:
        fresh = DramaModel.release_date > cutoff
        result = await self.session.execute(
            update(DramaModel)
            .where(DramaModel.is_new != fresh)
            # a flag flip is not an update for ranking purposes
            .values(is_new=fresh, updated_at=DramaModel.updated_at)
        )
        await self.session.commit()
        return result.rowcount

    @staticmethod
    def _to_entity(model: DramaModel) -> Drama:
        return Drama(
            id=model.id,
            title=model.title,
            description=model.description,
            poster=model.poster,
            category=model.category,
            tags=list(model.tags or []),
            rating=model.rating,
            view_count=model.view_count,
            episodes=model.episodes,
            duration=model.duration,
            status=model.status,
            cast=list(model.cast or []),
            video_urls=list(model.video_urls or []),
            release_date=model.release_date,
            is_hot=model.is_hot,
            is_new=model.is_new,
            comment_count=model.comment_count,
            favorite_count=model.favorite_count,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


# ---------------------------------------------------------------------------
# Category Repository
# ---------------------------------------------------------------------------
class CategoryRepository(ICategoryRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, category: Category) -> Category:
        db_category = CategoryModel(
            id=category.id,
            name=category.name,
            color=category.color,
            description=category.description,
            icon=category.icon,
            sort_order=category.sort_order,
            is_active=category.is_active,
            created_at=category.created_at,
            updated_at=category.updated_at,
        )
        self.session.add(db_category)
        await self.session.commit()
        await self.session.refresh(db_category)
        return self._to_entity(db_category)

    async def get_by_id(self, category_id: UUID) -> Optional[Category]:
        return await self._get_one(CategoryModel.id == category_id)

    async def get_by_name(self, name: str) -> Optional[Category]:
        return await self._get_one(CategoryModel.name == name)

    async def list_categories(self, active_only: bool = False) -> list[Category]:
        counts = (
            select(DramaModel.category, func.count(DramaModel.id).label("drama_count"))
            .group_by(DramaModel.category)
            .subquery()
        )
        stmt = (
            select(CategoryModel, func.coalesce(counts.c.drama_count, 0))
            .outerjoin(counts, counts.c.category == CategoryModel.name)
            .order_by(CategoryModel.sort_order.asc(), CategoryModel.name.asc())
        )
        if active_only:
            stmt = stmt.where(CategoryModel.is_active.is_(True))
        result = await self.session.execute(stmt)
        return [self._to_entity(model, drama_count) for model, drama_count in result.all()]

    async def update(self, category: Category) -> Category:
        result = await self.session.execute(select(CategoryModel).where(CategoryModel.id == category.id))
        db_category = result.scalar_one()
        db_category.name = category.name
        db_category.color = category.color
        db_category.description = category.description
        db_category.icon = category.icon
        db_category.sort_order = category.sort_order
        db_category.is_active = category.is_active
        db_category.updated_at = utcnow()
        await self.session.commit()
        return await self._get_one(CategoryModel.id == category.id)

    async def delete(self, category_id: UUID) -> bool:
        result = await self.session.execute(delete(CategoryModel).where(CategoryModel.id == category_id))
        await self.session.commit()
        return result.rowcount > 0

    async def stats(self) -> list[CategoryStats]:
        stmt = (
            select(
                CategoryModel,
                func.count(DramaModel.id),
                func.coalesce(func.sum(DramaModel.view_count), 0),
                func.coalesce(func.avg(DramaModel.rating), 0.0),
            )
            .outerjoin(DramaModel, DramaModel.category == CategoryModel.name)
            .where(CategoryModel.is_active.is_(True))
            .group_by(CategoryModel.id)
            .order_by(CategoryModel.sort_order.asc(), CategoryModel.name.asc())
        )
        result = await self.session.execute(stmt)
        return [
            CategoryStats(
                id=model.id,
                name=model.name,
                color=model.color,
                description=model.description,
                sort_order=model.sort_order,
                drama_count=drama_count,
                total_views=int(total_views),
                average_rating=round(float(average_rating), 2),
            )
            for model, drama_count, total_views, average_rating in result.all()
        ]

    async def update_sort_order(self, orders: list[tuple[UUID, int]]) -> int:
        updated = 0
        for category_id, sort_order in orders:
            result = await self.session.execute(
                update(CategoryModel)
                .where(CategoryModel.id == category_id)
                .values(sort_order=sort_order)
            )
            updated += result.rowcount
        await self.session.commit()
        return updated

    async def _get_one(self, condition) -> Optional[Category]:
        result = await self.session.execute(select(CategoryModel).where(condition))
        db_category = result.scalar_one_or_none()
        if db_category is None:
            return None
        drama_count = await self.session.execute(
            select(func.count()).select_from(DramaModel).where(DramaModel.category == db_category.name)
        )
        return self._to_entity(db_category, drama_count.scalar_one())

    @staticmethod
    def _to_entity(model: CategoryModel, drama_count: int = 0) -> Category:
        return Category(
            id=model.id,
            name=model.name,
            color=model.color,
            description=model.description,
            icon=model.icon,
            sort_order=model.sort_order,
            is_active=model.is_active,
            drama_count=drama_count,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


# ---------------------------------------------------------------------------
# User Repository
# ---------------------------------------------------------------------------
USER_SORT_COLUMNS = {
    "created_at": UserModel.created_at,
    "last_login_at": UserModel.last_login_at,
    "username": UserModel.username,
    "email": UserModel.email,
}
USER_GROUP_COLUMNS = {"role": UserModel.role, "status": UserModel.status}


class UserRepository(IUserRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: User) -> User:
        db_user = UserModel(
            id=user.id,
            username=user.username,
            email=user.email,
            hashed_password=user.hashed_password,
            avatar=user.avatar,
            role=user.role,
            status=user.status,
            profile=user.profile,
            preferences=user.preferences,
            stats=user.stats,
            last_login_at=user.last_login_at,
            email_verified_at=user.email_verified_at,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
        self.session.add(db_user)
        await self.session.commit()
        await self.session.refresh(db_user)
        return self._to_entity(db_user)

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        result = await self.session.execute(select(UserModel).where(UserModel.id == user_id))
        db_user = result.scalar_one_or_none()
        return self._to_entity(db_user) if db_user else None

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(select(UserModel).where(UserModel.email == email))
        db_user = result.scalar_one_or_none()
        return self._to_entity(db_user) if db_user else None

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.session.execute(select(UserModel).where(UserModel.username == username))
        db_user = result.scalar_one_or_none()
        return self._to_entity(db_user) if db_user else None

    async def update(self, user: User) -> User:
        result = await self.session.execute(select(UserModel).where(UserModel.id == user.id))
        db_user = result.scalar_one()
        db_user.username = user.username
        db_user.email = user.email
        db_user.hashed_password = user.hashed_password
        db_user.avatar = user.avatar
        db_user.role = user.role
        db_user.status = user.status
        db_user.profile = user.profile
        db_user.preferences = user.preferences
        db_user.stats = user.stats
        db_user.last_login_at = user.last_login_at
        db_user.email_verified_at = user.email_verified_at
        db_user.updated_at = utcnow()
        await self.session.commit()
        await self.session.refresh(db_user)
        return self._to_entity(db_user)

    async def delete(self, user_id: UUID) -> bool:
        result = await self.session.execute(delete(UserModel).where(UserModel.id == user_id))
        await self.session.commit()
        return result.rowcount > 0

    async def find(self, query: UserQuery) -> tuple[list[User], int]:
        conditions = []
        if query.role:
            conditions.append(UserModel.role == query.role)
        if query.status:
            conditions.append(UserModel.status == query.status)
        if query.search:
            pattern = _like_pattern(query.search)
            conditions.append(
                or_(
                    UserModel.username.ilike(pattern, escape=LIKE_ESCAPE),
                    UserModel.email.ilike(pattern, escape=LIKE_ESCAPE),
                    UserModel.profile["nickname"].astext.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )
        if query.created_after:
            conditions.append(UserModel.created_at >= query.created_after)
        if query.created_before:
            conditions.append(UserModel.created_at <= query.created_before)
        if query.last_login_after:
            conditions.append(UserModel.last_login_at >= query.last_login_after)

        column = USER_SORT_COLUMNS[query.sort_by]
        order = column.asc().nulls_last() if query.sort_order == "asc" else column.desc().nulls_last()
        stmt = (
            select(UserModel)
            .where(*conditions)
            .order_by(order, UserModel.id.asc())
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        )
        result = await self.session.execute(stmt)
        total = await self.session.execute(select(func.count()).select_from(UserModel).where(*conditions))
        return [self._to_entity(user) for user in result.scalars().all()], total.scalar_one()

    async def search(self, text: str, limit: int = 10) -> list[User]:
        pattern = _like_pattern(text)
        stmt = (
            select(UserModel)
            .where(
                UserModel.status == "active",
                or_(
                    UserModel.username.ilike(pattern, escape=LIKE_ESCAPE),
                    UserModel.profile["nickname"].astext.ilike(pattern, escape=LIKE_ESCAPE),
                    UserModel.profile["bio"].astext.ilike(pattern, escape=LIKE_ESCAPE),
                ),
            )
            .order_by(UserModel.username.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(user) for user in result.scalars().all()]

    async def count_created_since(self, since: Optional[datetime] = None) -> int:
        stmt = select(func.count()).select_from(UserModel)
        if since is not None:
            stmt = stmt.where(UserModel.created_at >= since)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def count_grouped_by(self, column: str) -> dict[str, int]:
        group_column = USER_GROUP_COLUMNS[column]
        result = await self.session.execute(
            select(group_column, func.count()).group_by(group_column)
        )
        return {value: count for value, count in result.all()}

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            username=model.username,
            email=model.email,
            hashed_password=model.hashed_password,
            avatar=model.avatar,
            role=model.role,
            status=model.status,
            profile=dict(model.profile or {}),
            preferences=dict(model.preferences or {}),
            stats=dict(model.stats or {}),
            last_login_at=model.last_login_at,
            email_verified_at=model.email_verified_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


# ---------------------------------------------------------------------------
# User Session Repository
# ---------------------------------------------------------------------------
class UserSessionRepository(IUserSessionRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user_session: UserSession) -> UserSession:
        db_session = UserSessionModel(
            id=user_session.id,
            user_id=user_session.user_id,
            session_id=user_session.session_id,
            refresh_token=user_session.refresh_token,
            ip_address=user_session.ip_address,
            user_agent=user_session.user_agent,
            is_active=user_session.is_active,
            expires_at=user_session.expires_at,
            created_at=user_session.created_at,
            updated_at=user_session.updated_at,
        )
        self.session.add(db_session)
        await self.session.commit()
        await self.session.refresh(db_session)
        return self._to_entity(db_session)

    async def get_active_by_refresh_token(self, refresh_token: str, now: datetime) -> Optional[UserSession]:
        result = await self.session.execute(
            select(UserSessionModel).where(
                UserSessionModel.refresh_token == refresh_token,
                UserSessionModel.is_active.is_(True),
                UserSessionModel.expires_at > now,
            )
        )
        db_session = result.scalar_one_or_none()
        return self._to_entity(db_session) if db_session else None

    async def update(self, user_session: UserSession) -> UserSession:
        result = await self.session.execute(
            select(UserSessionModel).where(UserSessionModel.id == user_session.id)
        )
        db_session = result.scalar_one()
        db_session.refresh_token = user_session.refresh_token
        db_session.is_active = user_session.is_active
        db_session.expires_at = user_session.expires_at
        db_session.updated_at = utcnow()
        await self.session.commit()
        await self.session.refresh(db_session)
        return self._to_entity(db_session)

    async def deactivate_by_refresh_token(self, refresh_token: str) -> bool:
        result = await self.session.execute(
            update(UserSessionModel)
            .where(UserSessionModel.refresh_token == refresh_token)
            .values(is_active=False)
        )
        await self.session.commit()
        return result.rowcount > 0

    async def deactivate_all(self, user_id: UUID) -> int:
        result = await self.session.execute(
            update(UserSessionModel)
            .where(UserSessionModel.user_id == user_id, UserSessionModel.is_active.is_(True))
            .values(is_active=False)
        )
        await self.session.commit()
        return result.rowcount

    async def list_active(self, user_id: UUID, now: datetime) -> list[UserSession]:
        result = await self.session.execute(
            select(UserSessionModel)
            .where(
                UserSessionModel.user_id == user_id,
                UserSessionModel.is_active.is_(True),
                UserSessionModel.expires_at > now,
            )
            .order_by(UserSessionModel.created_at.desc())
        )
        return [self._to_entity(s) for s in result.scalars().all()]

    async def purge_expired(self, now: datetime) -> int:
        result = await self.session.execute(
            delete(UserSessionModel).where(
                or_(UserSessionModel.expires_at <= now, UserSessionModel.is_active.is_(False))
            )
        )
        await self.session.commit()
        return result.rowcount

    @staticmethod
    def _to_entity(model: UserSessionModel) -> UserSession:
        return UserSession(
            id=model.id,
            user_id=model.user_id,
            session_id=model.session_id,
            refresh_token=model.refresh_token,
            expires_at=model.expires_at,
            ip_address=model.ip_address,
            user_agent=model.user_agent,
            is_active=model.is_active,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


# ---------------------------------------------------------------------------
# User Preference Repository
# ---------------------------------------------------------------------------
class UserPreferenceRepository(IUserPreferenceRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: UUID) -> Optional[UserPreference]:
        result = await self.session.execute(
            select(UserPreferenceModel).where(UserPreferenceModel.user_id == user_id)
        )
        db_pref = result.scalar_one_or_none()
        return self._to_entity(db_pref) if db_pref else None

    async def get_or_create(self, user_id: UUID) -> UserPreference:
        existing = await self.get(user_id)
        if existing:
            return existing
        defaults = UserPreference(id=None, user_id=user_id)
        db_pref = UserPreferenceModel(
            user_id=user_id,
            categories=defaults.categories,
            tags=defaults.tags,
            actors=defaults.actors,
            rating_range=defaults.rating_range,
            viewing_time=defaults.viewing_time,
            recent_dramas=defaults.recent_dramas,
        )
        self.session.add(db_pref)
        await self.session.commit()
        await self.session.refresh(db_pref)
        return self._to_entity(db_pref)

    async def update(self, pref: UserPreference) -> UserPreference:
        result = await self.session.execute(
            select(UserPreferenceModel).where(UserPreferenceModel.id == pref.id)
        )
        db_pref = result.scalar_one()
        db_pref.categories = pref.categories
        db_pref.tags = pref.tags
        db_pref.actors = pref.actors
        db_pref.rating_range = pref.rating_range
        db_pref.viewing_time = pref.viewing_time
        db_pref.recent_dramas = pref.recent_dramas
        db_pref.last_updated = utcnow()
        await self.session.commit()
        await self.session.refresh(db_pref)
        return self._to_entity(db_pref)

    @staticmethod
    def _to_entity(model: UserPreferenceModel) -> UserPreference:
        return UserPreference(
            id=model.id,
            user_id=model.user_id,
            categories=dict(model.categories or {}),
            tags=dict(model.tags or {}),
            actors=dict(model.actors or {}),
            rating_range=dict(model.rating_range or {}),
            viewing_time=dict(model.viewing_time or {}),
            recent_dramas=list(model.recent_dramas or []),
            last_updated=model.last_updated,
        )


# ---------------------------------------------------------------------------
# Search History Repository
# ---------------------------------------------------------------------------
class SearchHistoryRepository(ISearchHistoryRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(self, entry: SearchHistoryEntry) -> SearchHistoryEntry:
        db_entry = SearchHistoryModel(
            id=entry.id,
            user_id=entry.user_id,
            query=entry.query,
            filters=entry.filters,
            result_count=entry.result_count,
            clicked_items=entry.clicked_items,
            timestamp=entry.timestamp,
        )
        self.session.add(db_entry)
        await self.session.commit()
        return entry

    async def suggestions(self, text: str, since: datetime, limit: int = 5) -> list[str]:
        uses = func.count(SearchHistoryModel.id)
        stmt = (
            select(SearchHistoryModel.query)
            .where(
                SearchHistoryModel.query.ilike(_like_pattern(text), escape=LIKE_ESCAPE),
                SearchHistoryModel.timestamp >= since,
            )
            .group_by(SearchHistoryModel.query)
            .order_by(uses.desc(), func.max(SearchHistoryModel.timestamp).desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def popular(self, since: datetime, min_count: int = 2, limit: int = 10) -> list[tuple[str, int]]:
        uses = func.count(SearchHistoryModel.id)
        stmt = (
            select(SearchHistoryModel.query, uses)
            .where(SearchHistoryModel.timestamp >= since)
            .group_by(SearchHistoryModel.query)
            .having(uses >= min_count)
            .order_by(uses.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [(query, count) for query, count in result.all()]

    async def purge_before(self, cutoff: datetime) -> int:
        result = await self.session.execute(
            delete(SearchHistoryModel).where(SearchHistoryModel.timestamp < cutoff)
        )
        await self.session.commit()
        return result.rowcount
