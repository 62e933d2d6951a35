"""User preference learning.

Every user action on a drama boosts the weights of the drama's category,
tags and cast. Weights live in [0, 1]; each map keeps only its strongest
entries once it outgrows its cap.
"""

import logging
from typing import Optional
from uuid import UUID

from app.domain.entities import UserPreference, utcnow
from app.domain.exceptions import NotFoundError, ValidationFailedError
from app.domain.repositories import IDramaRepository, IUserPreferenceRepository
from app.domain.services import IPreferenceService

logger = logging.getLogger(__name__)

# How strongly each action signals interest
ACTION_WEIGHTS = {
    "view": 0.1,
    "like": 0.3,
    "favorite": 0.5,
    "complete": 0.7,
}
TAG_FACTOR = 0.8
ACTOR_FACTOR = 0.6

MAX_CATEGORIES = 10
MAX_TAGS = 20
MAX_ACTORS = 15
MAX_RECENT_DRAMAS = 100

# Exponential smoothing factor for preferred session length
DURATION_SMOOTHING = 0.2


def boost(weights: dict[str, float], name: str, delta: float, cap: int) -> dict[str, float]:
    """Add ``delta`` to ``name``, clamp to [0, 1] and keep the ``cap`` strongest."""
    updated = dict(weights)
    updated[name] = round(min(1.0, max(0.0, updated.get(name, 0.0) + delta)), 4)
    if len(updated) > cap:
        strongest = sorted(updated.items(), key=lambda item: item[1], reverse=True)[:cap]
        updated = dict(strongest)
    return updated


def update_viewing_time(viewing_time: dict, session_minutes: float) -> dict:
    total = viewing_time.get("total_minutes", 0) + session_minutes
    sessions = viewing_time.get("sessions", 0) + 1
    preferred = viewing_time.get("preferred_duration", 30.0)
    return {
        "total_minutes": total,
        "sessions": sessions,
        "average_session": round(total / sessions, 2),
        "preferred_duration": round(
            preferred * (1 - DURATION_SMOOTHING) + session_minutes * DURATION_SMOOTHING, 2
        ),
    }


class PreferenceService(IPreferenceService):

    def __init__(
        self,
        preference_repository: IUserPreferenceRepository,
        drama_repository: IDramaRepository,
    ):
        self.preference_repository = preference_repository
        self.drama_repository = drama_repository

    async def get_preferences(self, user_id: UUID) -> UserPreference:
        """Return (or lazily create) the user's learned preferences."""
        return await self.preference_repository.get_or_create(user_id)

    async def record_action(
        self,
        user_id: UUID,
        drama_id: UUID,
        action: str,
        watch_minutes: Optional[float] = None,
    ) -> UserPreference:
        if action not in ACTION_WEIGHTS:
            raise ValidationFailedError(f"action must be one of: {', '.join(ACTION_WEIGHTS)}")
        drama = await self.drama_repository.get_by_id(drama_id)
        if drama is None:
            raise NotFoundError("Drama not found")

        weight = ACTION_WEIGHTS[action]
        pref = await self.preference_repository.get_or_create(user_id)

        pref.categories = boost(pref.categories, drama.category, weight, MAX_CATEGORIES)
        for tag in drama.tags:
            pref.tags = boost(pref.tags, tag, weight * TAG_FACTOR, MAX_TAGS)
        for actor in drama.cast:
            pref.actors = boost(pref.actors, actor, weight * ACTOR_FACTOR, MAX_ACTORS)

        if action in ("view", "complete"):
            drama_key = str(drama.id)
            recent = [d for d in pref.recent_dramas if d != drama_key]
            pref.recent_dramas = [drama_key, *recent][:MAX_RECENT_DRAMAS]
        if watch_minutes:
            pref.viewing_time = update_viewing_time(pref.viewing_time, watch_minutes)
        pref.last_updated = utcnow()

        updated = await self.preference_repository.update(pref)
        logger.info(
            "Recorded %s on drama %s for user %s (weight=%.2f)",
            action, drama_id, user_id, weight,
        )
        return updated
