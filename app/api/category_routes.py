"""Category API routes. Reads are public; writes need an admin."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.api.schemas import (
    ApiResponse,
    CategoryCreateRequest,
    CategoryResponse,
    CategorySortOrderRequest,
    CategoryStatsResponse,
    CategoryUpdateRequest,
    SortOrderResult,
    ok,
)
from app.core.dependencies import get_category_service, require_admin
from app.domain.entities import User
from app.domain.services import ICategoryService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=ApiResponse[list[CategoryResponse]])
async def get_active_categories(
    category_service: Annotated[ICategoryService, Depends(get_category_service)],
) -> ApiResponse:
    categories = await category_service.get_active_categories()
    return ok([CategoryResponse.model_validate(c) for c in categories])


@router.get("/all", response_model=ApiResponse[list[CategoryResponse]])
async def get_all_categories(
    category_service: Annotated[ICategoryService, Depends(get_category_service)],
) -> ApiResponse:
    """Every category, inactive ones included."""
    categories = await category_service.get_all_categories()
    return ok([CategoryResponse.model_validate(c) for c in categories])


@router.get("/stats", response_model=ApiResponse[list[CategoryStatsResponse]])
async def get_category_stats(
    category_service: Annotated[ICategoryService, Depends(get_category_service)],
) -> ApiResponse:
    stats = await category_service.get_category_stats()
    return ok([CategoryStatsResponse.model_validate(s) for s in stats])


@router.post("", response_model=ApiResponse[CategoryResponse], status_code=status.HTTP_201_CREATED)
async def create_category(
    body: CategoryCreateRequest,
    category_service: Annotated[ICategoryService, Depends(get_category_service)],
    admin: Annotated[User, Depends(require_admin)],
) -> ApiResponse:
    category = await category_service.create_category(**body.model_dump())
    logger.info("Category %s created by %s", category.name, admin.username)
    return ok(CategoryResponse.model_validate(category), "Category created")


@router.put("/sort-order", response_model=ApiResponse[SortOrderResult])
async def update_sort_order(
    body: CategorySortOrderRequest,
    category_service: Annotated[ICategoryService, Depends(get_category_service)],
    admin: Annotated[User, Depends(require_admin)],
) -> ApiResponse:
    updated = await category_service.update_sort_order([(o.id, o.sort_order) for o in body.orders])
    return ok(SortOrderResult(updated=updated), "Sort order updated")


@router.get("/{category_id}", response_model=ApiResponse[CategoryResponse])
async def get_category(
    category_id: UUID,
    category_service: Annotated[ICategoryService, Depends(get_category_service)],
) -> ApiResponse:
    category = await category_service.get_category(category_id)
    return ok(CategoryResponse.model_validate(category))


@router.put("/{category_id}", response_model=ApiResponse[CategoryResponse])
async def update_category(
    category_id: UUID,
    body: CategoryUpdateRequest,
    category_service: Annotated[ICategoryService, Depends(get_category_service)],
    admin: Annotated[User, Depends(require_admin)],
) -> ApiResponse:
    category = await category_service.update_category(category_id, **body.model_dump(exclude_none=True))
    return ok(CategoryResponse.model_validate(category), "Category updated")


@router.delete("/{category_id}", response_model=ApiResponse[None])
async def delete_category(
    category_id: UUID,
    category_service: Annotated[ICategoryService, Depends(get_category_service)],
    admin: Annotated[User, Depends(require_admin)],
) -> ApiResponse:
    """Delete a category; refused with 409 while dramas still use it."""
    await category_service.delete_category(category_id)
    return ok(message="Category deleted")


@router.patch("/{category_id}/toggle", response_model=ApiResponse[CategoryResponse])
async def toggle_category_status(
    category_id: UUID,
    category_service: Annotated[ICategoryService, Depends(get_category_service)],
    admin: Annotated[User, Depends(require_admin)],
) -> ApiResponse:
    category = await category_service.toggle_category_status(category_id)
    return ok(CategoryResponse.model_validate(category))
