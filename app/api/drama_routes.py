"""Drama catalog API routes."""

import logging
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.api.schemas import (
    ApiResponse,
    DramaHighlightsResponse,
    DramaPageResponse,
    DramaResponse,
    ok,
)
from app.core.dependencies import get_drama_service, get_optional_user, get_preference_service
from app.domain.entities import User
from app.domain.queries import DramaListFilters, SortOrder
from app.domain.services import IDramaService, IPreferenceService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/dramas", tags=["dramas"])


def split_csv(value: Optional[str]) -> Optional[list[str]]:
    """Turn ``"a, b,,c"`` into ``["a", "b", "c"]``; empty input gives None."""
    if not value:
        return None
    items = [item.strip() for item in value.split(",") if item.strip()]
    return items or None


@router.get("", response_model=ApiResponse[DramaPageResponse])
async def list_dramas(
    drama_service: Annotated[IDramaService, Depends(get_drama_service)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    category: Optional[str] = None,
    tags: Annotated[Optional[str], Query(description="Comma separated")] = None,
    status: Optional[str] = None,
    is_hot: Annotated[Optional[bool], Query(alias="isHot")] = None,
    is_new: Annotated[Optional[bool], Query(alias="isNew")] = None,
    min_rating: Annotated[Optional[float], Query(alias="minRating", ge=0, le=10)] = None,
    max_rating: Annotated[Optional[float], Query(alias="maxRating", ge=0, le=10)] = None,
    release_date_from: Annotated[Optional[datetime], Query(alias="releaseDateFrom")] = None,
    release_date_to: Annotated[Optional[datetime], Query(alias="releaseDateTo")] = None,
    sort_by: Annotated[str, Query(alias="sortBy")] = "created_at",
    sort_order: Annotated[SortOrder, Query(alias="sortOrder")] = SortOrder.DESC,
    search: Optional[str] = None,
) -> ApiResponse:
    """List dramas with filters, sorting and pagination."""
    filters = DramaListFilters(
        page=page,
        limit=limit,
        category=category,
        tags=split_csv(tags),
        status=status,
        is_hot=is_hot,
        is_new=is_new,
        min_rating=min_rating,
        max_rating=max_rating,
        release_date_from=release_date_from,
        release_date_to=release_date_to,
        search=search.strip() if search else None,
        sort_by=sort_by,
        sort_order=sort_order.value,
    )
    result = await drama_service.list_dramas(filters)
    return ok(DramaPageResponse.model_validate(result))


@router.get("/search", response_model=ApiResponse[list[DramaResponse]])
async def search_dramas(
    q: Annotated[str, Query(min_length=1, max_length=100)],
    drama_service: Annotated[IDramaService, Depends(get_drama_service)],
    category: Optional[str] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> ApiResponse:
    dramas = await drama_service.search_dramas(q, category=category, limit=limit)
    return ok([DramaResponse.model_validate(d) for d in dramas])


@router.get("/recommendations", response_model=ApiResponse[DramaHighlightsResponse])
async def get_highlights(
    drama_service: Annotated[IDramaService, Depends(get_drama_service)],
) -> ApiResponse:
    """Hot, new and trending dramas in one payload."""
    highlights = await drama_service.get_recommendations()
    return ok(DramaHighlightsResponse.model_validate(highlights))


@router.get("/hot", response_model=ApiResponse[list[DramaResponse]])
async def get_hot_dramas(
    drama_service: Annotated[IDramaService, Depends(get_drama_service)],
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
) -> ApiResponse:
    dramas = await drama_service.get_hot_dramas(limit)
    return ok([DramaResponse.model_validate(d) for d in dramas])


@router.get("/new", response_model=ApiResponse[list[DramaResponse]])
async def get_new_dramas(
    drama_service: Annotated[IDramaService, Depends(get_drama_service)],
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
) -> ApiResponse:
    dramas = await drama_service.get_new_dramas(limit)
    return ok([DramaResponse.model_validate(d) for d in dramas])


@router.get("/trending", response_model=ApiResponse[list[DramaResponse]])
async def get_trending_dramas(
    drama_service: Annotated[IDramaService, Depends(get_drama_service)],
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
) -> ApiResponse:
    dramas = await drama_service.get_trending_dramas(limit)
    return ok([DramaResponse.model_validate(d) for d in dramas])


@router.get("/{drama_id}", response_model=ApiResponse[DramaResponse])
async def get_drama(
    drama_id: UUID,
    drama_service: Annotated[IDramaService, Depends(get_drama_service)],
) -> ApiResponse:
    drama = await drama_service.get_drama(drama_id)
    return ok(DramaResponse.model_validate(drama))


@router.post("/{drama_id}/view", response_model=ApiResponse[None])
async def record_view(
    drama_id: UUID,
    drama_service: Annotated[IDramaService, Depends(get_drama_service)],
    pref_service: Annotated[IPreferenceService, Depends(get_preference_service)],
    current_user: Annotated[Optional[User], Depends(get_optional_user)],
) -> ApiResponse:
    """Count a view; signed-in viewers also feed their preference profile."""
    await drama_service.increment_view_count(drama_id)
    if current_user is not None:
        await pref_service.record_action(current_user.id, drama_id, "view")
    return ok(message="View recorded")
