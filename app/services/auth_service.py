"""Authentication service."""

import logging
import re
import time
from datetime import timedelta
from typing import Optional
from uuid import UUID, uuid4

from app.core.cache import CacheService
from app.core.config import settings
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    hash_password,
    verify_password,
)
from app.domain.entities import User, UserSession, UserStatus, default_profile, utcnow
from app.domain.exceptions import (
    AuthenticationError,
    ConflictError,
    PermissionDeniedError,
    TooManyAttemptsError,
    ValidationFailedError,
)
from app.domain.repositories import IUserRepository, IUserSessionRepository
from app.domain.results import AuthResult

logger = logging.getLogger(__name__)

BLACKLIST_PREFIX = "blacklist:token:"
FAILED_LOGIN_PREFIX = "failed_login:"

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]{3,20}$")


def validate_password_strength(password: str) -> None:
    if len(password) < 6:
        raise ValidationFailedError("Password must be at least 6 characters")
    if not (re.search(r"[a-z]", password) and re.search(r"[A-Z]", password) and re.search(r"\d", password)):
        raise ValidationFailedError(
            "Password must contain an uppercase letter, a lowercase letter and a digit"
        )


class AuthService:
    """Handles registration, login, token rotation and logout."""

    def __init__(
        self,
        user_repository: IUserRepository,
        session_repository: IUserSessionRepository,
        cache: CacheService,
    ):
        self.user_repository = user_repository
        self.session_repository = session_repository
        self.cache = cache

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        confirm_password: str,
        nickname: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuthResult:
        """Register a new user and open their first session."""
        if password != confirm_password:
            raise ValidationFailedError("Passwords do not match")
        if not USERNAME_PATTERN.match(username):
            raise ValidationFailedError(
                "Username must be 3-20 characters of letters, digits or underscores"
            )
        validate_password_strength(password)

        email = email.lower()
        if await self.user_repository.get_by_username(username):
            raise ConflictError("Username already taken")
        if await self.user_repository.get_by_email(email):
            raise ConflictError("Email already registered")

        profile = default_profile()
        profile["nickname"] = nickname or username
        user = User(
            id=uuid4(),
            username=username,
            email=email,
            hashed_password=hash_password(password),
            profile=profile,
            last_login_at=utcnow(),
        )
        created = await self.user_repository.create(user)
        logger.info(f"User registered: {created.id}")
        return await self._issue_tokens(created, ip_address, user_agent)

    async def login(
        self,
        email: str,
        password: str,
        remember_me: bool = False,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuthResult:
        """Authenticate by email and password.

        Five consecutive failures lock the email out for
        ``login_lockout_seconds``; a successful login resets the count.
        Without ``remember_me`` the session lasts ``short_session_days``.
        """
        email = email.lower()
        failed_key = f"{FAILED_LOGIN_PREFIX}{email}"
        if await self.cache.get_int(failed_key) >= settings.login_max_attempts:
            minutes = settings.login_lockout_seconds // 60
            raise TooManyAttemptsError(
                f"Too many failed login attempts. Try again in {minutes} minutes"
            )

        user = await self.user_repository.get_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            attempts = await self.cache.increment(failed_key, settings.login_lockout_seconds)
            logger.warning("Failed login for %s (attempt %s)", email, attempts)
            raise AuthenticationError("Invalid email or password")
        if user.status != UserStatus.ACTIVE.value:
            raise PermissionDeniedError(f"Account is {user.status}")

        await self.cache.delete(failed_key)
        user.last_login_at = utcnow()
        user = await self.user_repository.update(user)
        logger.info(f"User logged in: {user.id}")
        lifetime = settings.refresh_token_expire_days if remember_me else settings.short_session_days
        return await self._issue_tokens(user, ip_address, user_agent, lifetime)

    async def refresh_token(self, refresh_token: str) -> AuthResult:
        """Exchange a refresh token for a new token pair, rotating the session."""
        payload = decode_refresh_token(refresh_token)
        if payload is None:
            raise AuthenticationError("Invalid refresh token")

        now = utcnow()
        session = await self.session_repository.get_active_by_refresh_token(refresh_token, now)
        if session is None:
            raise AuthenticationError("Session expired or revoked")
        user = await self.user_repository.get_by_id(session.user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("Account is not available")

        access_token = self._access_token(user)
        new_refresh_token = create_refresh_token({"sub": str(user.id)})
        session.refresh_token = new_refresh_token
        session.expires_at = now + timedelta(days=settings.refresh_token_expire_days)
        session.updated_at = now
        await self.session_repository.update(session)
        logger.info(f"Tokens refreshed for user {user.id}")
        return AuthResult(
            user=user,
            access_token=access_token,
            refresh_token=new_refresh_token,
            expires_in=settings.access_token_expire_minutes * 60,
        )

    async def logout(self, access_token: Optional[str], refresh_token: Optional[str]) -> None:
        if access_token:
            await self.revoke_access_token(access_token)
        if refresh_token:
            await self.session_repository.deactivate_by_refresh_token(refresh_token)

    async def logout_all(self, user_id: UUID, access_token: Optional[str] = None) -> int:
        if access_token:
            await self.revoke_access_token(access_token)
        closed = await self.session_repository.deactivate_all(user_id)
        logger.info(f"Closed {closed} sessions for user {user_id}")
        return closed

    async def revoke_access_token(self, access_token: str) -> None:
        """Blacklist the token's ``jti`` for the rest of its lifetime."""
        payload = decode_access_token(access_token)
        if not payload:
            return
        jti: Optional[str] = payload.get("jti")
        exp: Optional[int] = payload.get("exp")
        if jti and exp:
            ttl = max(int(exp - time.time()), 1)
            await self.cache.set_flag(f"{BLACKLIST_PREFIX}{jti}", ttl)
            logger.info("Token jti=%s revoked (TTL=%ds)", jti, ttl)

    async def is_token_revoked(self, jti: str) -> bool:
        return await self.cache.exists(f"{BLACKLIST_PREFIX}{jti}")

    async def verify_access_token(self, access_token: str) -> Optional[User]:
        """Return the active user behind a valid, non-revoked token."""
        payload = decode_access_token(access_token)
        if payload is None:
            return None
        jti = payload.get("jti")
        if jti and await self.is_token_revoked(jti):
            return None
        try:
            user_id = UUID(payload.get("sub", ""))
        except ValueError:
            return None
        user = await self.user_repository.get_by_id(user_id)
        if user is None or not user.is_active:
            return None
        return user

    async def is_username_available(self, username: str) -> bool:
        return await self.user_repository.get_by_username(username) is None

    async def is_email_available(self, email: str) -> bool:
        return await self.user_repository.get_by_email(email.lower()) is None

    async def _issue_tokens(
        self,
        user: User,
        ip_address: Optional[str],
        user_agent: Optional[str],
        lifetime_days: Optional[int] = None,
    ) -> AuthResult:
        lifetime_days = lifetime_days or settings.refresh_token_expire_days
        access_token = self._access_token(user)
        refresh_token = create_refresh_token({"sub": str(user.id)})
        await self.session_repository.create(
            UserSession(
                id=uuid4(),
                user_id=user.id,
                session_id=uuid4().hex,
                refresh_token=refresh_token,
                expires_at=utcnow() + timedelta(days=lifetime_days),
                ip_address=ip_address,
                user_agent=user_agent,
            )
        )
        return AuthResult(
            user=user,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=settings.access_token_expire_minutes * 60,
        )

    @staticmethod
    def _access_token(user: User) -> str:
        return create_access_token(
            data={"sub": str(user.id), "email": user.email, "role": user.role},
            expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
        )
