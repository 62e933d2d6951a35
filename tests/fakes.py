"""In-memory repository doubles implementing the domain ports."""

import copy
from collections import Counter
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from app.domain.entities import (
    Category,
    CategoryStats,
    Drama,
    SearchHistoryEntry,
    User,
    UserPreference,
    UserSession,
    is_new_release,
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


def _contains(haystack: Optional[str], needle: str) -> bool:
    return needle.lower() in (haystack or "").lower()


class FakeDramaRepository(IDramaRepository):

    def __init__(self, dramas: Optional[list[Drama]] = None):
        self.dramas: dict[UUID, Drama] = {}
        self.find_calls = 0
        for drama in dramas or []:
            self.dramas[drama.id] = copy.deepcopy(drama)

    async def create(self, drama: Drama) -> Drama:
        stored = copy.deepcopy(drama)
        stored.is_new = is_new_release(stored.release_date)
        self.dramas[stored.id] = stored
        return copy.deepcopy(stored)

    async def get_by_id(self, drama_id: UUID) -> Optional[Drama]:
        drama = self.dramas.get(drama_id)
        return copy.deepcopy(drama) if drama else None

    async def get_by_title(self, title: str) -> Optional[Drama]:
        for drama in self.dramas.values():
            if drama.title == title:
                return copy.deepcopy(drama)
        return None

    def _matches(self, drama: Drama, q: DramaQuery) -> bool:
        if q.category and drama.category != q.category:
            return False
        if q.categories and drama.category not in q.categories:
            return False
        if q.tags and not set(q.tags) & set(drama.tags):
            return False
        if q.status and drama.status != q.status:
            return False
        if q.is_hot is not None and drama.is_hot != q.is_hot:
            return False
        if q.is_new is not None and drama.is_new != q.is_new:
            return False
        if q.min_rating is not None and drama.rating < q.min_rating:
            return False
        if q.max_rating is not None and drama.rating > q.max_rating:
            return False
        if q.min_view_count is not None and drama.view_count < q.min_view_count:
            return False
        if q.max_view_count is not None and drama.view_count > q.max_view_count:
            return False
        if q.release_date_from is not None and drama.release_date < q.release_date_from:
            return False
        if q.release_date_to is not None and drama.release_date > q.release_date_to:
            return False
        if q.updated_from is not None and drama.updated_at < q.updated_from:
            return False
        if q.updated_to is not None and drama.updated_at > q.updated_to:
            return False
        if q.search:
            fields = [drama.title, drama.description, " ".join(drama.tags), " ".join(drama.cast)]
            if not any(_contains(value, q.search) for value in fields):
                return False
        if q.exclude_ids and drama.id in q.exclude_ids:
            return False
        if q.related_to is not None:
            seed = q.related_to
            if drama.id == seed.id:
                return False
            related = (
                drama.category == seed.category
                or set(drama.tags) & set(seed.tags)
                or set(drama.cast) & set(seed.cast)
            )
            if not related:
                return False
        return True

    async def find(self, query: DramaQuery) -> list[Drama]:
        self.find_calls += 1
        matched = [d for d in self.dramas.values() if self._matches(d, query)]
        matched.sort(key=lambda d: str(d.id))
        for field_name, direction in reversed(query.sort):
            matched.sort(key=lambda d: getattr(d, field_name), reverse=direction == "desc")
        end = None if query.limit is None else query.offset + query.limit
        return [copy.deepcopy(d) for d in matched[query.offset:end]]

    async def count(self, query: DramaQuery) -> int:
        return sum(1 for d in self.dramas.values() if self._matches(d, query))

    async def increment_view_count(self, drama_id: UUID) -> bool:
        drama = self.dramas.get(drama_id)
        if drama is None:
            return False
        drama.view_count += 1
        return True

    async def count_by_category(self, category_name: str) -> int:
        return sum(1 for d in self.dramas.values() if d.category == category_name)

    async def refresh_new_flags(self, cutoff: datetime) -> int:
        changed = 0
        for drama in self.dramas.values():
            fresh = drama.release_date > cutoff
            if drama.is_new != fresh:
                drama.is_new = fresh
                changed += 1
        return changed


class FakeCategoryRepository(ICategoryRepository):

    def __init__(self, drama_repository: FakeDramaRepository, categories: Optional[list[Category]] = None):
        self.drama_repository = drama_repository
        self.categories: dict[UUID, Category] = {}
        for category in categories or []:
            self.categories[category.id] = copy.deepcopy(category)

    def _with_count(self, category: Category) -> Category:
        result = copy.deepcopy(category)
        result.drama_count = sum(
            1 for d in self.drama_repository.dramas.values() if d.category == category.name
        )
        return result

    async def create(self, category: Category) -> Category:
        self.categories[category.id] = copy.deepcopy(category)
        return self._with_count(category)

    async def get_by_id(self, category_id: UUID) -> Optional[Category]:
        category = self.categories.get(category_id)
        return self._with_count(category) if category else None

    async def get_by_name(self, name: str) -> Optional[Category]:
        for category in self.categories.values():
            if category.name == name:
                return self._with_count(category)
        return None

    async def list_categories(self, active_only: bool = False) -> list[Category]:
        categories = [c for c in self.categories.values() if c.is_active or not active_only]
        categories.sort(key=lambda c: (c.sort_order, c.name))
        return [self._with_count(c) for c in categories]

    async def update(self, category: Category) -> Category:
        self.categories[category.id] = copy.deepcopy(category)
        return self._with_count(category)

    async def delete(self, category_id: UUID) -> bool:
        return self.categories.pop(category_id, None) is not None

    async def stats(self) -> list[CategoryStats]:
        result = []
        for category in await self.list_categories(active_only=True):
            dramas = [d for d in self.drama_repository.dramas.values() if d.category == category.name]
            average = sum(d.rating for d in dramas) / len(dramas) if dramas else 0.0
            result.append(
                CategoryStats(
                    id=category.id,
                    name=category.name,
                    color=category.color,
                    description=category.description,
                    sort_order=category.sort_order,
                    drama_count=len(dramas),
                    total_views=sum(d.view_count for d in dramas),
                    average_rating=round(average, 2),
                )
            )
        return result

    async def update_sort_order(self, orders: list[tuple[UUID, int]]) -> int:
        updated = 0
        for category_id, sort_order in orders:
            if category_id in self.categories:
                self.categories[category_id].sort_order = sort_order
                updated += 1
        return updated


class FakeUserRepository(IUserRepository):

    def __init__(self, users: Optional[list[User]] = None):
        self.users: dict[UUID, User] = {}
        for user in users or []:
            self.users[user.id] = copy.deepcopy(user)

    async def create(self, user: User) -> User:
        self.users[user.id] = copy.deepcopy(user)
        return copy.deepcopy(user)

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        user = self.users.get(user_id)
        return copy.deepcopy(user) if user else None

    async def get_by_email(self, email: str) -> Optional[User]:
        for user in self.users.values():
            if user.email == email:
                return copy.deepcopy(user)
        return None

    async def get_by_username(self, username: str) -> Optional[User]:
        for user in self.users.values():
            if user.username == username:
                return copy.deepcopy(user)
        return None

    async def update(self, user: User) -> User:
        self.users[user.id] = copy.deepcopy(user)
        return copy.deepcopy(user)

    async def delete(self, user_id: UUID) -> bool:
        return self.users.pop(user_id, None) is not None

    async def find(self, query: UserQuery) -> tuple[list[User], int]:
        users = list(self.users.values())
        if query.role:
            users = [u for u in users if u.role == query.role]
        if query.status:
            users = [u for u in users if u.status == query.status]
        if query.search:
            users = [
                u for u in users
                if _contains(u.username, query.search)
                or _contains(u.email, query.search)
                or _contains(u.profile.get("nickname"), query.search)
            ]
        users.sort(key=lambda u: getattr(u, query.sort_by) or datetime.min, reverse=query.sort_order == "desc")
        offset = (query.page - 1) * query.limit
        return [copy.deepcopy(u) for u in users[offset: offset + query.limit]], len(users)

    async def search(self, text: str, limit: int = 10) -> list[User]:
        matched = [
            u for u in self.users.values()
            if u.is_active
            and (
                _contains(u.username, text)
                or _contains(u.profile.get("nickname"), text)
                or _contains(u.profile.get("bio"), text)
            )
        ]
        matched.sort(key=lambda u: u.username)
        return [copy.deepcopy(u) for u in matched[:limit]]

    async def count_created_since(self, since: Optional[datetime] = None) -> int:
        return sum(1 for u in self.users.values() if since is None or u.created_at >= since)

    async def count_grouped_by(self, column: str) -> dict[str, int]:
        return dict(Counter(getattr(u, column) for u in self.users.values()))


class FakeSessionRepository(IUserSessionRepository):

    def __init__(self):
        self.sessions: dict[UUID, UserSession] = {}

    async def create(self, session: UserSession) -> UserSession:
        self.sessions[session.id] = copy.deepcopy(session)
        return copy.deepcopy(session)

    async def get_active_by_refresh_token(self, refresh_token: str, now: datetime) -> Optional[UserSession]:
        for session in self.sessions.values():
            if session.refresh_token == refresh_token and session.is_active and session.expires_at > now:
                return copy.deepcopy(session)
        return None

    async def update(self, session: UserSession) -> UserSession:
        self.sessions[session.id] = copy.deepcopy(session)
        return copy.deepcopy(session)

    async def deactivate_by_refresh_token(self, refresh_token: str) -> bool:
        found = False
        for session in self.sessions.values():
            if session.refresh_token == refresh_token:
                session.is_active = False
                found = True
        return found

    async def deactivate_all(self, user_id: UUID) -> int:
        closed = 0
        for session in self.sessions.values():
            if session.user_id == user_id and session.is_active:
                session.is_active = False
                closed += 1
        return closed

    async def list_active(self, user_id: UUID, now: datetime) -> list[UserSession]:
        return [
            copy.deepcopy(s) for s in self.sessions.values()
            if s.user_id == user_id and s.is_active and s.expires_at > now
        ]

    async def purge_expired(self, now: datetime) -> int:
        stale = [sid for sid, s in self.sessions.items() if s.expires_at <= now or not s.is_active]
        for sid in stale:
            del self.sessions[sid]
        return len(stale)


class FakePreferenceRepository(IUserPreferenceRepository):

    def __init__(self):
        self.preferences: dict[UUID, UserPreference] = {}

    async def get(self, user_id: UUID) -> Optional[UserPreference]:
        pref = self.preferences.get(user_id)
        return copy.deepcopy(pref) if pref else None

    async def get_or_create(self, user_id: UUID) -> UserPreference:
        if user_id not in self.preferences:
            self.preferences[user_id] = UserPreference(id=uuid4(), user_id=user_id)
        return copy.deepcopy(self.preferences[user_id])

    async def update(self, pref: UserPreference) -> UserPreference:
        self.preferences[pref.user_id] = copy.deepcopy(pref)
        return copy.deepcopy(pref)


class FakeSearchHistoryRepository(ISearchHistoryRepository):

    def __init__(self):
        self.entries: list[SearchHistoryEntry] = []

    async def record(self, entry: SearchHistoryEntry) -> SearchHistoryEntry:
        self.entries.append(copy.deepcopy(entry))
        return entry

    async def suggestions(self, text: str, since: datetime, limit: int = 5) -> list[str]:
        recent = [e for e in self.entries if e.timestamp >= since and _contains(e.query, text)]
        counts = Counter(e.query for e in recent)
        latest = {e.query: e.timestamp for e in sorted(recent, key=lambda e: e.timestamp)}
        ranked = sorted(counts, key=lambda q: (counts[q], latest[q]), reverse=True)
        return ranked[:limit]

    async def popular(self, since: datetime, min_count: int = 2, limit: int = 10) -> list[tuple[str, int]]:
        counts = Counter(e.query for e in self.entries if e.timestamp >= since)
        return [(q, c) for q, c in counts.most_common() if c >= min_count][:limit]

    async def purge_before(self, cutoff: datetime) -> int:
        before = len(self.entries)
        self.entries = [e for e in self.entries if e.timestamp >= cutoff]
        return before - len(self.entries)
