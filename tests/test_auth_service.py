from datetime import timedelta

import pytest

from app.domain.entities import utcnow
from app.domain.exceptions import (
    AuthenticationError,
    ConflictError,
    PermissionDeniedError,
    TooManyAttemptsError,
    ValidationFailedError,
)
from app.services.auth_service import AuthService
from tests.conftest import PASSWORD, make_user


@pytest.fixture
def service(user_repo, session_repo, cache):
    return AuthService(user_repository=user_repo, session_repository=session_repo, cache=cache)


@pytest.fixture
async def alice(user_repo):
    return await user_repo.create(make_user("alice"))


async def test_register_opens_a_session(service, user_repo, session_repo):
    result = await service.register("bob_99", "Bob@Example.com", "Passw0rd", "Passw0rd")
    assert result.user.email == "bob@example.com"
    assert result.user.profile["nickname"] == "bob_99"
    assert result.user.hashed_password != "Passw0rd"
    assert len(session_repo.sessions) == 1
    assert await service.verify_access_token(result.access_token) is not None


@pytest.mark.parametrize(
    "username,password,confirm",
    [
        ("ab", "Passw0rd", "Passw0rd"),
        ("bad name", "Passw0rd", "Passw0rd"),
        ("bob", "short", "short"),
        ("bob", "alllowercase1", "alllowercase1"),
        ("bob", "Passw0rd", "Passw0rd!"),
    ],
)
async def test_register_validation(service, username, password, confirm):
    with pytest.raises(ValidationFailedError):
        await service.register(username, "bob@example.com", password, confirm)


async def test_register_duplicates_conflict(service, alice):
    with pytest.raises(ConflictError):
        await service.register("alice", "other@example.com", "Passw0rd", "Passw0rd")
    with pytest.raises(ConflictError):
        await service.register("alice2", "ALICE@example.com", "Passw0rd", "Passw0rd")


async def test_login_success_updates_last_login(service, alice, user_repo):
    result = await service.login("Alice@Example.com", PASSWORD)
    assert result.user.id == alice.id
    assert (await user_repo.get_by_id(alice.id)).last_login_at is not None


async def test_remember_me_extends_session(service, alice, session_repo):
    await service.login(alice.email, PASSWORD)
    await service.login(alice.email, PASSWORD, remember_me=True)
    short, long = sorted(session_repo.sessions.values(), key=lambda s: s.expires_at)
    assert short.expires_at - utcnow() <= timedelta(days=1)
    assert long.expires_at - utcnow() > timedelta(days=29)


async def test_lockout_after_five_failures(service, alice):
    for _ in range(5):
        with pytest.raises(AuthenticationError):
            await service.login(alice.email, "wrong")
    with pytest.raises(TooManyAttemptsError):
        await service.login(alice.email, PASSWORD)


async def test_successful_login_resets_failures(service, alice):
    for _ in range(4):
        with pytest.raises(AuthenticationError):
            await service.login(alice.email, "wrong")
    await service.login(alice.email, PASSWORD)
    for _ in range(4):
        with pytest.raises(AuthenticationError):
            await service.login(alice.email, "wrong")
    assert (await service.login(alice.email, PASSWORD)).user.id == alice.id


async def test_unknown_email_counts_as_failure(service):
    with pytest.raises(AuthenticationError):
        await service.login("nobody@example.com", PASSWORD)


async def test_banned_user_cannot_login(service, user_repo):
    banned = await user_repo.create(make_user("mallory", status="banned"))
    with pytest.raises(PermissionDeniedError):
        await service.login(banned.email, PASSWORD)


async def test_refresh_rotates_token(service, alice):
    first = await service.login(alice.email, PASSWORD)
    second = await service.refresh_token(first.refresh_token)
    assert second.refresh_token != first.refresh_token
    with pytest.raises(AuthenticationError):
        await service.refresh_token(first.refresh_token)
    assert (await service.refresh_token(second.refresh_token)).user.id == alice.id


async def test_refresh_rejects_garbage_and_access_tokens(service, alice):
    tokens = await service.login(alice.email, PASSWORD)
    with pytest.raises(AuthenticationError):
        await service.refresh_token("not-a-token")
    with pytest.raises(AuthenticationError):
        await service.refresh_token(tokens.access_token)


async def test_logout_blacklists_access_token(service, alice):
    tokens = await service.login(alice.email, PASSWORD)
    assert await service.verify_access_token(tokens.access_token) is not None
    await service.logout(tokens.access_token, tokens.refresh_token)
    assert await service.verify_access_token(tokens.access_token) is None
    with pytest.raises(AuthenticationError):
        await service.refresh_token(tokens.refresh_token)


async def test_logout_all_closes_every_session(service, alice):
    first = await service.login(alice.email, PASSWORD)
    second = await service.login(alice.email, PASSWORD)
    assert await service.logout_all(alice.id, first.access_token) == 2
    for tokens in (first, second):
        with pytest.raises(AuthenticationError):
            await service.refresh_token(tokens.refresh_token)


async def test_availability_checks(service, alice):
    assert not await service.is_username_available("alice")
    assert await service.is_username_available("carol")
    assert not await service.is_email_available("ALICE@example.com")
