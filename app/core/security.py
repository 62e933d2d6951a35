"""Password hashing and JWT helpers."""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign an access token; a fresh ``jti`` is added so it can be revoked."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update(
        {
            "exp": expire,
            "iat": datetime.now(timezone.utc),
            "iss": settings.jwt_issuer,
            "aud": settings.jwt_audience,
            "jti": uuid4().hex,
        }
    )
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=ALGORITHM)


def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=settings.refresh_token_expire_days)
    )
    to_encode.update(
        {
            "exp": expire,
            "iat": datetime.now(timezone.utc),
            "iss": settings.jwt_issuer,
            "aud": settings.jwt_refresh_audience,
            "jti": uuid4().hex,
        }
    )
    return jwt.encode(to_encode, settings.jwt_refresh_secret, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Return the claims of a valid access token, or None."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[ALGORITHM],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError:
        return None


def decode_refresh_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(
            token,
            settings.jwt_refresh_secret,
            algorithms=[ALGORITHM],
            audience=settings.jwt_refresh_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError:
        return None
