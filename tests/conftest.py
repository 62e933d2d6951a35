import os

os.environ.setdefault("ENVIRONMENT", "test")

from datetime import timedelta
from typing import Optional
from uuid import uuid4

import fakeredis
import pytest

from app.core.cache import CacheService
from app.core.security import hash_password
from app.domain.entities import Category, Drama, User, utcnow
from tests.fakes import (
    FakeCategoryRepository,
    FakeDramaRepository,
    FakePreferenceRepository,
    FakeSearchHistoryRepository,
    FakeSessionRepository,
    FakeUserRepository,
)

PASSWORD = "Secret123"


def make_drama(
    title: str = "Drama",
    category: str = "Romance",
    rating: float = 8.0,
    view_count: int = 1000,
    days_old: int = 60,
    updated_days_ago: Optional[float] = None,
    **extra,
) -> Drama:
    now = utcnow()
    updated = now - timedelta(days=updated_days_ago if updated_days_ago is not None else days_old)
    defaults = dict(
        id=uuid4(),
        title=title,
        description=f"{title} description",
        category=category,
        rating=rating,
        view_count=view_count,
        release_date=now - timedelta(days=days_old),
        created_at=now - timedelta(days=days_old),
        updated_at=updated,
    )
    defaults.update(extra)
    return Drama(**defaults)


def make_user(username: str = "alice", role: str = "user", status: str = "active", **extra) -> User:
    defaults = dict(
        id=uuid4(),
        username=username,
        email=f"{username}@example.com",
        hashed_password=hash_password(PASSWORD),
        role=role,
        status=status,
    )
    defaults.update(extra)
    user = User(**defaults)
    user.profile["nickname"] = username.title()
    return user


def make_category(name: str, sort_order: int = 0, **extra) -> Category:
    return Category(id=uuid4(), name=name, sort_order=sort_order, **extra)


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis_client(redis_server):
    return fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)


@pytest.fixture
def cache(redis_client):
    return CacheService(redis_client)


@pytest.fixture
def drama_repo():
    return FakeDramaRepository()


@pytest.fixture
def category_repo(drama_repo):
    return FakeCategoryRepository(drama_repo)


@pytest.fixture
def user_repo():
    return FakeUserRepository()


@pytest.fixture
def session_repo():
    return FakeSessionRepository()


@pytest.fixture
def preference_repo():
    return FakePreferenceRepository()


@pytest.fixture
def history_repo():
    return FakeSearchHistoryRepository()
