"""Load demo categories, dramas and an admin account.

Run with ``python -m app.infrastructure.database.seed``. Rows that already
exist (matched by name, title or email) are left alone.
"""

import asyncio
import logging
from datetime import datetime
from uuid import uuid4

from app.core.config import settings
from app.core.security import hash_password
from app.domain.entities import Category, Drama, User, UserRole, default_profile
from app.infrastructure.database.connection import async_session_maker, close_db, init_db
from app.infrastructure.database.repository import CategoryRepository, DramaRepository, UserRepository

logger = logging.getLogger(__name__)

CATEGORIES = [
    ("Urban Romance", "#FF6B9D", "Love stories set in the modern city"),
    ("Historical Romance", "#4ECDC4", "Love stories set in imperial times"),
    ("CEO Romance", "#45B7D1", "Domineering CEO romances"),
    ("Sweet Love", "#96CEB4", "Light, sweet and doting romances"),
    ("Mystery", "#FFEAA7", "Suspense and detective stories"),
    ("Campus", "#DDA0DD", "Youth stories set at school"),
]

DRAMAS = [
    {
        "title": "The CEO's Substitute Bride",
        "description": "A contract marriage turns an ordinary girl and a cold CEO into a real couple.",
        "category": "CEO Romance",
        "tags": ["CEO", "substitute", "contract marriage", "sweet"],
        "rating": 8.5,
        "view_count": 1250000,
        "duration": "10 min/ep",
        "episodes": 80,
        "status": "completed",
        "cast": ["Zhang San", "Li Si", "Wang Wu"],
        "release_date": datetime(2024, 1, 15),
        "is_hot": True,
    },
    {
        "title": "Phoenix Reborn",
        "description": "A modern doctor wakes up in an ancient palace and wins over a prince with her skills.",
        "category": "Historical Romance",
        "tags": ["time travel", "palace", "doctor", "prince"],
        "rating": 9.2,
        "view_count": 2100000,
        "duration": "12 min/ep",
        "episodes": 100,
        "status": "updating",
        "cast": ["Zhao Liu", "Qian Qi", "Sun Ba"],
        "release_date": datetime(2024, 2, 1),
        "is_hot": True,
    },
    {
        "title": "Little Moments on Campus",
        "description": "First love between a top student and a cheerful freshman.",
        "category": "Campus",
        "tags": ["campus", "top student", "youth", "first love"],
        "rating": 8.8,
        "view_count": 980000,
        "duration": "8 min/ep",
        "episodes": 60,
        "status": "completed",
        "cast": ["Zhou Jiu", "Wu Shi", "Zheng Shiyi"],
        "release_date": datetime(2024, 1, 20),
    },
    {
        "title": "City Nights",
        "description": "Office workers look for love in a sprawling city.",
        "category": "Urban Romance",
        "tags": ["urban", "workplace", "office", "modern"],
        "rating": 7.9,
        "view_count": 750000,
        "duration": "15 min/ep",
        "episodes": 45,
        "status": "completed",
        "cast": ["Wang Shier", "Li Shisan"],
        "release_date": datetime(2023, 12, 10),
        "is_hot": True,
    },
    {
        "title": "The Vanishing Witness",
        "description": "A rookie detective follows a trail of clues nobody else believes in.",
        "category": "Mystery",
        "tags": ["detective", "suspense", "crime"],
        "rating": 8.1,
        "view_count": 640000,
        "duration": "12 min/ep",
        "episodes": 50,
        "status": "updating",
        "cast": ["Chen Shisi", "Lin Shiwu"],
        "release_date": datetime(2024, 3, 5),
    },
]


async def seed() -> None:
    await init_db()
    async with async_session_maker() as session:
        category_repo = CategoryRepository(session)
        drama_repo = DramaRepository(session)
        user_repo = UserRepository(session)

        for sort_order, (name, color, description) in enumerate(CATEGORIES, start=1):
            if await category_repo.get_by_name(name) is None:
                await category_repo.create(
                    Category(id=uuid4(), name=name, color=color, description=description, sort_order=sort_order)
                )
                logger.info("Seeded category %s", name)

        for data in DRAMAS:
            if await drama_repo.get_by_title(data["title"]) is None:
                await drama_repo.create(
                    Drama(id=uuid4(), poster=f"/posters/{uuid4().hex}.jpg", **data)
                )
                logger.info("Seeded drama %s", data["title"])

        if await user_repo.get_by_email(settings.seed_admin_email) is None:
            profile = default_profile()
            profile["nickname"] = "Administrator"
            await user_repo.create(
                User(
                    id=uuid4(),
                    username="admin",
                    email=settings.seed_admin_email,
                    hashed_password=hash_password(settings.seed_admin_password),
                    role=UserRole.ADMIN.value,
                    profile=profile,
                )
            )
            logger.info("Seeded admin account %s", settings.seed_admin_email)
    await close_db()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(seed())
