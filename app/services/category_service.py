"""Category management."""

import logging
import re
from typing import Optional
from uuid import UUID, uuid4

from pydantic import TypeAdapter

from app.core.cache import CacheService
from app.core.config import settings
from app.domain.entities import Category, CategoryStats, utcnow
from app.domain.exceptions import ConflictError, NotFoundError, ValidationFailedError
from app.domain.repositories import ICategoryRepository, IDramaRepository
from app.domain.services import ICategoryService

logger = logging.getLogger(__name__)

ACTIVE_KEY = "categories:active"
ALL_KEY = "categories:all"
STATS_KEY = "categories:stats"

COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

_CATEGORY_LIST_ADAPTER = TypeAdapter(list[Category])
_STATS_ADAPTER = TypeAdapter(list[CategoryStats])


class CategoryService(ICategoryService):

    def __init__(
        self,
        category_repository: ICategoryRepository,
        drama_repository: IDramaRepository,
        cache: CacheService,
    ):
        self.category_repository = category_repository
        self.drama_repository = drama_repository
        self.cache = cache

    async def get_active_categories(self) -> list[Category]:
        categories, _ = await self.cache.get_or_load(
            ACTIVE_KEY,
            settings.cache_ttl_category,
            lambda: self.category_repository.list_categories(active_only=True),
            _CATEGORY_LIST_ADAPTER,
        )
        return categories

    async def get_all_categories(self) -> list[Category]:
        categories, _ = await self.cache.get_or_load(
            ALL_KEY,
            settings.cache_ttl_category,
            lambda: self.category_repository.list_categories(active_only=False),
            _CATEGORY_LIST_ADAPTER,
        )
        return categories

    async def get_category(self, category_id: UUID) -> Category:
        category = await self.category_repository.get_by_id(category_id)
        if category is None:
            raise NotFoundError("Category not found")
        return category

    async def get_category_stats(self) -> list[CategoryStats]:
        stats, _ = await self.cache.get_or_load(
            STATS_KEY, settings.cache_ttl_category, self.category_repository.stats, _STATS_ADAPTER
        )
        return stats

    async def create_category(
        self,
        name: str,
        color: str = "#3B82F6",
        description: Optional[str] = None,
        icon: Optional[str] = None,
        sort_order: int = 0,
        is_active: bool = True,
    ) -> Category:
        name = name.strip()
        self._validate_color(color)
        if await self.category_repository.get_by_name(name):
            raise ConflictError(f"Category '{name}' already exists")

        created = await self.category_repository.create(
            Category(
                id=uuid4(),
                name=name,
                color=color,
                description=description,
                icon=icon,
                sort_order=sort_order,
                is_active=is_active,
            )
        )
        await self.clear_cache()
        logger.info(f"Category created: {created.name} ({created.id})")
        return created

    async def update_category(self, category_id: UUID, **changes) -> Category:
        """Apply the supplied fields; fields passed as None are left untouched."""
        category = await self.get_category(category_id)

        name = changes.get("name")
        if name is not None and name.strip() != category.name:
            existing = await self.category_repository.get_by_name(name.strip())
            if existing and existing.id != category_id:
                raise ConflictError(f"Category '{name.strip()}' already exists")
            category.name = name.strip()
        if changes.get("color") is not None:
            self._validate_color(changes["color"])
            category.color = changes["color"]
        for field_name in ("description", "icon", "sort_order", "is_active"):
            if changes.get(field_name) is not None:
                setattr(category, field_name, changes[field_name])
        category.updated_at = utcnow()

        updated = await self.category_repository.update(category)
        await self.clear_cache()
        logger.info(f"Category updated: {updated.id}")
        return updated

    async def delete_category(self, category_id: UUID) -> None:
        category = await self.get_category(category_id)
        in_use = await self.drama_repository.count_by_category(category.name)
        if in_use > 0:
            raise ConflictError(
                f"Category '{category.name}' is used by {in_use} dramas and cannot be deleted"
            )
        await self.category_repository.delete(category_id)
        await self.clear_cache()
        logger.info(f"Category deleted: {category.name} ({category_id})")

    async def update_sort_order(self, orders: list[tuple[UUID, int]]) -> int:
        if not orders:
            raise ValidationFailedError("At least one category order is required")
        updated = await self.category_repository.update_sort_order(orders)
        await self.clear_cache()
        return updated

    async def toggle_category_status(self, category_id: UUID) -> Category:
        category = await self.get_category(category_id)
        category.is_active = not category.is_active
        category.updated_at = utcnow()
        updated = await self.category_repository.update(category)
        await self.clear_cache()
        logger.info("Category %s is now %s", updated.name, "active" if updated.is_active else "inactive")
        return updated

    async def clear_cache(self) -> None:
        await self.cache.delete(ACTIVE_KEY, ALL_KEY, STATS_KEY)

    @staticmethod
    def _validate_color(color: str) -> None:
        if not COLOR_PATTERN.match(color):
            raise ValidationFailedError("Color must be a hex value like #1A2B3C")
