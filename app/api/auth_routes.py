"""Authentication API routes."""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Cookie, Depends, Request, Response, status

from app.api.schemas import (
    ApiResponse,
    AuthResponse,
    AvailabilityResponse,
    LoginRequest,
    LogoutAllResponse,
    RefreshTokenRequest,
    RegisterRequest,
    TokenVerification,
    UserResponse,
    VerifyTokenRequest,
    ok,
)
from app.core.config import settings
from app.core.dependencies import get_auth_service, get_current_user, oauth2_scheme
from app.domain.entities import User
from app.domain.exceptions import AuthenticationError
from app.domain.results import AuthResult
from app.services.auth_service import AuthService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])

REFRESH_COOKIE = "refresh_token"
SECONDS_PER_DAY = 24 * 60 * 60


def _set_refresh_cookie(response: Response, refresh_token: str, days: int) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=refresh_token,
        max_age=days * SECONDS_PER_DAY,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        path=f"{settings.api_prefix}/auth",
    )


def _clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=REFRESH_COOKIE,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        path=f"{settings.api_prefix}/auth",
    )


def _client(request: Request) -> tuple[Optional[str], Optional[str]]:
    ip_address = request.client.host if request.client else None
    return ip_address, request.headers.get("user-agent")


def _auth_payload(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(result.user),
        access_token=result.access_token,
        expires_in=result.expires_in,
    )


@router.post("/register", response_model=ApiResponse[AuthResponse], status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse:
    """Create an account and sign it in."""
    ip_address, user_agent = _client(request)
    result = await auth_service.register(
        username=body.username,
        email=body.email,
        password=body.password,
        confirm_password=body.confirm_password,
        nickname=body.nickname,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    _set_refresh_cookie(response, result.refresh_token, settings.refresh_token_expire_days)
    return ok(_auth_payload(result), "Registration successful")


@router.post("/login", response_model=ApiResponse[AuthResponse])
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse:
    """Authenticate with email and password.

    The access token is returned in the body; the refresh token only ever
    travels in an HttpOnly cookie.
    """
    ip_address, user_agent = _client(request)
    result = await auth_service.login(
        body.email,
        body.password,
        remember_me=body.remember_me,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    days = settings.refresh_token_expire_days if body.remember_me else settings.short_session_days
    _set_refresh_cookie(response, result.refresh_token, days)
    return ok(_auth_payload(result), "Login successful")


@router.post("/refresh-token", response_model=ApiResponse[AuthResponse])
async def refresh_token(
    response: Response,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    body: Optional[RefreshTokenRequest] = None,
    refresh_cookie: Annotated[Optional[str], Cookie(alias=REFRESH_COOKIE)] = None,
) -> ApiResponse:
    token = refresh_cookie or (body.refresh_token if body else None)
    if not token:
        raise AuthenticationError("Refresh token is required")
    result = await auth_service.refresh_token(token)
    _set_refresh_cookie(response, result.refresh_token, settings.refresh_token_expire_days)
    return ok(_auth_payload(result), "Token refreshed")


@router.post("/verify-token", response_model=ApiResponse[TokenVerification])
async def verify_token(
    body: VerifyTokenRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse:
    user = await auth_service.verify_access_token(body.token)
    if user is None:
        return ok(TokenVerification(valid=False), "Token is invalid")
    return ok(TokenVerification(valid=True, user=UserResponse.model_validate(user)), "Token is valid")


@router.post("/logout", response_model=ApiResponse[None])
async def logout(
    response: Response,
    current_user: Annotated[User, Depends(get_current_user)],
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    refresh_cookie: Annotated[Optional[str], Cookie(alias=REFRESH_COOKIE)] = None,
) -> ApiResponse:
    """Blacklist the presented access token and close the cookie's session."""
    await auth_service.logout(token, refresh_cookie)
    _clear_refresh_cookie(response)
    logger.info(f"User logged out: {current_user.id}")
    return ok(message="Logged out")


@router.post("/logout-all", response_model=ApiResponse[LogoutAllResponse])
async def logout_all(
    response: Response,
    current_user: Annotated[User, Depends(get_current_user)],
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse:
    closed = await auth_service.logout_all(current_user.id, token)
    _clear_refresh_cookie(response)
    return ok(LogoutAllResponse(sessions_closed=closed), "Logged out from all devices")


@router.get("/profile", response_model=ApiResponse[UserResponse])
async def get_profile(
    current_user: Annotated[User, Depends(get_current_user)],
) -> ApiResponse:
    return ok(UserResponse.model_validate(current_user))


@router.get("/check-username/{username}", response_model=ApiResponse[AvailabilityResponse])
async def check_username(
    username: str,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse:
    available = await auth_service.is_username_available(username)
    return ok(AvailabilityResponse(available=available))


@router.get("/check-email/{email}", response_model=ApiResponse[AvailabilityResponse])
async def check_email(
    email: str,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse:
    available = await auth_service.is_email_available(email)
    return ok(AvailabilityResponse(available=available))
