from uuid import uuid4

import fakeredis
import pytest
from fastapi.testclient import TestClient

import app.main as main_module
from app.core.dependencies import (
    get_category_repository,
    get_drama_repository,
    get_preference_repository,
    get_search_history_repository,
    get_session_repository,
    get_user_repository,
)
from app.core.redis_client import get_redis
from app.main import app
from tests.conftest import PASSWORD, make_category, make_drama, make_user

API = "/api/v1"


@pytest.fixture
def client(redis_server, drama_repo, category_repo, user_repo, session_repo, preference_repo, history_repo):
    async def override_redis():
        # a fresh client per request; the server holds the shared state
        redis_client = fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)
        try:
            yield redis_client
        finally:
            await redis_client.aclose()

    app.dependency_overrides.update(
        {
            get_redis: override_redis,
            get_drama_repository: lambda: drama_repo,
            get_category_repository: lambda: category_repo,
            get_user_repository: lambda: user_repo,
            get_session_repository: lambda: session_repo,
            get_preference_repository: lambda: preference_repo,
            get_search_history_repository: lambda: history_repo,
        }
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def dramas(drama_repo):
    catalog = [
        make_drama("Phoenix Reborn", category="Historical", rating=9.2, is_hot=True, updated_days_ago=1),
        make_drama("Substitute Bride", category="CEO", rating=8.5, is_hot=True, updated_days_ago=2),
        make_drama("City Nights", category="Urban", rating=7.9, is_hot=True, updated_days_ago=3),
        make_drama("Vanishing Witness", category="Mystery", rating=8.1),
    ]
    for drama in catalog:
        drama_repo.dramas[drama.id] = drama
    return catalog


@pytest.fixture
def users(user_repo):
    accounts = {
        "alice": make_user("alice"),
        "admin": make_user("admin", role="admin"),
    }
    for user in accounts.values():
        user_repo.users[user.id] = user
    return accounts


def login(client, user):
    response = client.post(f"{API}/auth/login", json={"email": user.email, "password": PASSWORD})
    assert response.status_code == 200
    return response


def auth_header(client, user):
    token = login(client, user).json()["data"]["access_token"]
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Dramas
# ---------------------------------------------------------------------------
def test_hot_dramas_sorted_by_rating(client, dramas):
    response = client.get(f"{API}/dramas?isHot=true&sortBy=rating&sortOrder=desc&limit=2")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert "timestamp" in body
    assert [d["rating"] for d in body["data"]["dramas"]] == [9.2, 8.5]
    assert body["data"]["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}


def test_repeated_list_is_served_from_cache(client, dramas, drama_repo):
    url = f"{API}/dramas?category=CEO"
    first = client.get(url).json()["data"]
    calls = drama_repo.find_calls
    second = client.get(url).json()["data"]
    assert drama_repo.find_calls == calls
    assert second["dramas"] == first["dramas"]


def test_unknown_drama_is_404(client, dramas):
    response = client.get(f"{API}/dramas/{uuid4()}")
    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Drama not found"


def test_invalid_query_is_400(client):
    response = client.get(f"{API}/dramas?limit=0")
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation failed"
    assert body["error"][0]["field"] == "query.limit"

    response = client.get(f"{API}/dramas?sortBy=title")
    assert response.status_code == 400


def test_view_feeds_preferences_for_signed_in_user(client, dramas, users, preference_repo, drama_repo):
    drama = dramas[0]
    views_before = drama.view_count
    anonymous = client.post(f"{API}/dramas/{drama.id}/view")
    assert anonymous.status_code == 200
    assert preference_repo.preferences == {}

    client.post(f"{API}/dramas/{drama.id}/view", headers=auth_header(client, users["alice"]))
    assert drama_repo.dramas[drama.id].view_count == views_before + 2
    assert preference_repo.preferences[users["alice"].id].recent_dramas == [str(drama.id)]


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------
def test_category_writes_need_admin(client, users):
    payload = {"name": "Romance", "color": "#FF6B9D"}
    assert client.post(f"{API}/categories", json=payload).status_code == 401
    forbidden = client.post(f"{API}/categories", json=payload, headers=auth_header(client, users["alice"]))
    assert forbidden.status_code == 403

    created = client.post(f"{API}/categories", json=payload, headers=auth_header(client, users["admin"]))
    assert created.status_code == 201
    assert created.json()["data"]["name"] == "Romance"
    assert [c["name"] for c in client.get(f"{API}/categories").json()["data"]] == ["Romance"]


def test_category_in_use_cannot_be_deleted(client, dramas, users, category_repo):
    category = make_category("Historical")
    category_repo.categories[category.id] = category
    response = client.delete(f"{API}/categories/{category.id}", headers=auth_header(client, users["admin"]))
    assert response.status_code == 409
    assert response.json()["success"] is False


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------
def test_register_and_duplicate(client):
    payload = {
        "username": "newbie",
        "email": "newbie@example.com",
        "password": "Passw0rd",
        "confirm_password": "Passw0rd",
    }
    response = client.post(f"{API}/auth/register", json=payload)
    assert response.status_code == 201
    assert response.json()["data"]["user"]["username"] == "newbie"
    assert "hashed_password" not in response.json()["data"]["user"]
    assert client.post(f"{API}/auth/register", json=payload).status_code == 409


def test_login_sets_refresh_cookie(client, users):
    response = login(client, users["alice"])
    set_cookie = response.headers["set-cookie"]
    assert "refresh_token=" in set_cookie
    assert "HttpOnly" in set_cookie
    assert f"Path={API}/auth" in set_cookie
    assert "refresh_token" not in response.json()["data"]

    refresh = response.cookies["refresh_token"]
    refreshed = client.post(f"{API}/auth/refresh-token", json={"refresh_token": refresh})
    assert refreshed.status_code == 200
    assert refreshed.json()["data"]["user"]["id"] == str(users["alice"].id)


def test_wrong_password_then_lockout(client, users):
    payload = {"email": users["alice"].email, "password": "Wrong123"}
    for _ in range(5):
        assert client.post(f"{API}/auth/login", json=payload).status_code == 401
    locked = client.post(f"{API}/auth/login", json={"email": users["alice"].email, "password": PASSWORD})
    assert locked.status_code == 429


def test_logout_revokes_access_token(client, users):
    headers = auth_header(client, users["alice"])
    assert client.get(f"{API}/auth/profile", headers=headers).status_code == 200
    assert client.post(f"{API}/auth/logout", headers=headers).status_code == 200
    response = client.get(f"{API}/auth/profile", headers=headers)
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
def test_user_admin_routes(client, users):
    alice = users["alice"]
    assert client.get(f"{API}/users/stats", headers=auth_header(client, alice)).status_code == 403

    admin_headers = auth_header(client, users["admin"])
    stats = client.get(f"{API}/users/stats", headers=admin_headers).json()["data"]
    assert stats["total_users"] == 2

    banned = client.put(f"{API}/users/{alice.id}/status", json={"status": "banned"}, headers=admin_headers)
    assert banned.json()["data"]["status"] == "banned"
    assert client.post(
        f"{API}/auth/login", json={"email": alice.email, "password": PASSWORD}
    ).status_code == 403


def test_own_profile_update(client, users):
    headers = auth_header(client, users["alice"])
    response = client.put(f"{API}/users/me/profile", json={"bio": "Night owl"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["profile"]["bio"] == "Night owl"


# ---------------------------------------------------------------------------
# Search, recommendations, rankings, preferences
# ---------------------------------------------------------------------------
def test_search_records_history(client, dramas, users, history_repo):
    headers = auth_header(client, users["alice"])
    response = client.get(f"{API}/search?q=phoenix&type=drama", headers=headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert [item["title"] for item in data["items"]] == ["Phoenix Reborn"]
    assert data["items"][0]["score"] == 100.0
    assert [entry.query for entry in history_repo.entries] == ["phoenix"]


def test_blank_search_query_is_400(client, dramas):
    response = client.get(f"{API}/search?q=%20%20")
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_search_rate_limit(client):
    for _ in range(20):
        assert client.get(f"{API}/search?q=x").status_code == 200
    limited = client.get(f"{API}/search?q=x")
    assert limited.status_code == 429
    assert int(limited.headers["retry-after"]) >= 1


def test_recommendation_routes(client, dramas, users):
    hot = client.get(f"{API}/search/recommendations/hot").json()["data"]
    assert hot["total"] == 3
    assert client.get(f"{API}/search/recommendations/personalized/me").status_code == 401

    mine = client.get(
        f"{API}/search/recommendations/personalized/me", headers=auth_header(client, users["alice"])
    ).json()["data"]
    assert mine["algorithm"] == "default_hot"
    assert client.get(f"{API}/search/recommendations/unknown").status_code == 400


def test_ranking_routes(client, dramas):
    ranking = client.get(f"{API}/search/rankings/weekly").json()["data"]
    assert [item["rank"] for item in ranking["items"]] == [1, 2, 3]
    trends = client.get(f"{API}/search/rankings/weekly/trends").json()["data"]
    assert all(item["is_new"] for item in trends["items"])
    assert client.get(f"{API}/search/rankings/yearly").status_code == 400


def test_preference_routes(client, dramas, users):
    headers = auth_header(client, users["alice"])
    assert client.get(f"{API}/search/preferences", headers=headers).json()["data"]["categories"] == {}
    response = client.post(
        f"{API}/search/preferences",
        json={"drama_id": str(dramas[0].id), "action": "like"},
        headers=headers,
    )
    assert response.json()["data"]["categories"] == {"Historical": 0.3}
    invalid = client.post(
        f"{API}/search/preferences", json={"drama_id": str(dramas[0].id), "action": "share"}, headers=headers
    )
    assert invalid.status_code == 400


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("database_ok,expected", [(True, 200), (False, 503)])
def test_health(client, monkeypatch, database_ok, expected):
    async def fake_check_database():
        return database_ok

    monkeypatch.setattr(main_module, "check_database", fake_check_database)
    response = client.get("/health")
    assert response.status_code == expected
    assert response.json()["services"]["redis"] == "up"
