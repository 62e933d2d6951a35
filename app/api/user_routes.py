"""User API routes: self-service profile plus moderator and admin tooling."""

import logging
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.schemas import (
    ApiResponse,
    ProfileUpdateRequest,
    PublicUserResponse,
    UserPageResponse,
    UserResponse,
    UserRoleRequest,
    UserSessionResponse,
    UserStatsResponse,
    UserStatusRequest,
    ok,
)
from app.core.dependencies import get_current_user, get_user_service, require_admin, require_moderator
from app.domain.entities import User, UserRole, UserStatus
from app.domain.queries import SortOrder, UserQuery
from app.domain.services import IUserService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["users"])


def _ensure_owner_or_admin(user_id: UUID, current_user: User) -> None:
    if current_user.id != user_id and current_user.role != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only access your own account",
        )


async def _apply_profile_update(user_service: IUserService, user_id: UUID, body: ProfileUpdateRequest) -> User:
    return await user_service.update_user(
        user_id,
        profile=body.profile_changes(),
        avatar=body.avatar,
        preferences=body.preferences,
    )


@router.get("/search", response_model=ApiResponse[list[PublicUserResponse]])
async def search_users(
    q: Annotated[str, Query(min_length=1, max_length=50)],
    user_service: Annotated[IUserService, Depends(get_user_service)],
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
) -> ApiResponse:
    users = await user_service.search_users(q, limit)
    return ok([PublicUserResponse.model_validate(u) for u in users])


@router.get("/me/profile", response_model=ApiResponse[UserResponse])
async def get_my_profile(
    current_user: Annotated[User, Depends(get_current_user)],
    user_service: Annotated[IUserService, Depends(get_user_service)],
) -> ApiResponse:
    user = await user_service.get_user(current_user.id)
    return ok(UserResponse.model_validate(user))


@router.put("/me/profile", response_model=ApiResponse[UserResponse])
async def update_my_profile(
    body: ProfileUpdateRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    user_service: Annotated[IUserService, Depends(get_user_service)],
) -> ApiResponse:
    user = await _apply_profile_update(user_service, current_user.id, body)
    return ok(UserResponse.model_validate(user), "Profile updated")


@router.get("/me/sessions", response_model=ApiResponse[list[UserSessionResponse]])
async def get_my_sessions(
    current_user: Annotated[User, Depends(get_current_user)],
    user_service: Annotated[IUserService, Depends(get_user_service)],
) -> ApiResponse:
    sessions = await user_service.get_user_sessions(current_user.id)
    return ok([UserSessionResponse.model_validate(s) for s in sessions])


@router.get("", response_model=ApiResponse[UserPageResponse])
async def list_users(
    user_service: Annotated[IUserService, Depends(get_user_service)],
    moderator: Annotated[User, Depends(require_moderator)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    role: Optional[UserRole] = None,
    user_status: Annotated[Optional[UserStatus], Query(alias="status")] = None,
    search: Optional[str] = None,
    created_after: Annotated[Optional[datetime], Query(alias="createdAfter")] = None,
    created_before: Annotated[Optional[datetime], Query(alias="createdBefore")] = None,
    last_login_after: Annotated[Optional[datetime], Query(alias="lastLoginAfter")] = None,
    sort_by: Annotated[str, Query(alias="sortBy")] = "created_at",
    sort_order: Annotated[SortOrder, Query(alias="sortOrder")] = SortOrder.DESC,
) -> ApiResponse:
    query = UserQuery(
        role=role.value if role else None,
        status=user_status.value if user_status else None,
        search=search.strip() if search else None,
        created_after=created_after,
        created_before=created_before,
        last_login_after=last_login_after,
        sort_by=sort_by,
        sort_order=sort_order.value,
        page=page,
        limit=limit,
    )
    result = await user_service.list_users(query)
    return ok(UserPageResponse.model_validate(result))


@router.get("/stats", response_model=ApiResponse[UserStatsResponse])
async def get_user_stats(
    user_service: Annotated[IUserService, Depends(get_user_service)],
    moderator: Annotated[User, Depends(require_moderator)],
) -> ApiResponse:
    stats = await user_service.get_user_stats()
    return ok(UserStatsResponse.model_validate(stats))


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
async def get_user(
    user_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    user_service: Annotated[IUserService, Depends(get_user_service)],
) -> ApiResponse:
    _ensure_owner_or_admin(user_id, current_user)
    user = await user_service.get_user(user_id)
    return ok(UserResponse.model_validate(user))


@router.put("/{user_id}", response_model=ApiResponse[UserResponse])
async def update_user(
    user_id: UUID,
    body: ProfileUpdateRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    user_service: Annotated[IUserService, Depends(get_user_service)],
) -> ApiResponse:
    _ensure_owner_or_admin(user_id, current_user)
    user = await _apply_profile_update(user_service, user_id, body)
    return ok(UserResponse.model_validate(user), "User updated")


@router.get("/{user_id}/sessions", response_model=ApiResponse[list[UserSessionResponse]])
async def get_user_sessions(
    user_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    user_service: Annotated[IUserService, Depends(get_user_service)],
) -> ApiResponse:
    _ensure_owner_or_admin(user_id, current_user)
    sessions = await user_service.get_user_sessions(user_id)
    return ok([UserSessionResponse.model_validate(s) for s in sessions])


@router.put("/{user_id}/status", response_model=ApiResponse[UserResponse])
async def update_user_status(
    user_id: UUID,
    body: UserStatusRequest,
    admin: Annotated[User, Depends(require_admin)],
    user_service: Annotated[IUserService, Depends(get_user_service)],
) -> ApiResponse:
    """Change account status; banning or deactivating signs the user out everywhere."""
    user = await user_service.update_user_status(user_id, body.status.value)
    logger.info("User %s status set to %s by %s", user_id, body.status.value, admin.id)
    return ok(UserResponse.model_validate(user), "User status updated")


@router.put("/{user_id}/role", response_model=ApiResponse[UserResponse])
async def update_user_role(
    user_id: UUID,
    body: UserRoleRequest,
    admin: Annotated[User, Depends(require_admin)],
    user_service: Annotated[IUserService, Depends(get_user_service)],
) -> ApiResponse:
    user = await user_service.update_user_role(user_id, body.role.value)
    return ok(UserResponse.model_validate(user), "User role updated")


@router.delete("/{user_id}", response_model=ApiResponse[None])
async def delete_user(
    user_id: UUID,
    admin: Annotated[User, Depends(require_admin)],
    user_service: Annotated[IUserService, Depends(get_user_service)],
) -> ApiResponse:
    await user_service.delete_user(user_id, acting_user_id=admin.id)
    return ok(message="User deleted")
