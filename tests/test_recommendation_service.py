from uuid import uuid4

import pytest

from app.domain.entities import UserPreference
from app.domain.queries import RecommendationRequest, RecommendationType
from app.services.recommendation import FALLBACK_ALGORITHM, RecommendationService
from tests.conftest import make_drama
from tests.fakes import FakeDramaRepository


@pytest.fixture
def catalog():
    return [
        make_drama("Phoenix Reborn", category="Historical", rating=9.2, is_hot=True, tags=["palace"], cast=["Zhao"]),
        make_drama("Substitute Bride", category="CEO", rating=8.5, is_hot=True, tags=["contract"]),
        make_drama("City Nights", category="Urban", rating=7.9, is_hot=True),
        make_drama("Palace Secrets", category="Historical", rating=8.0, tags=["palace"], cast=["Zhao"]),
        make_drama("Campus Days", category="Campus", rating=8.8, days_old=3, is_new=True),
    ]


@pytest.fixture
def service(catalog, preference_repo, cache):
    return RecommendationService(
        drama_repository=FakeDramaRepository(catalog),
        preference_repository=preference_repo,
        cache=cache,
    )


async def test_hot_returns_only_flagged_dramas(service):
    result = await service.get_recommendations(RecommendationRequest(type=RecommendationType.HOT, limit=10))
    assert result.total == 3
    assert all(item.drama.is_hot for item in result.items)
    assert [item.drama.title for item in result.items] == ["Phoenix Reborn", "Substitute Bride", "City Nights"]
    assert result.algorithm == "popularity_score"


async def test_scores_are_sorted_and_rounded(service):
    result = await service.get_recommendations(RecommendationRequest(type=RecommendationType.TRENDING, limit=5))
    scores = [item.score for item in result.items]
    assert scores == sorted(scores, reverse=True)
    assert all(score == round(score, 2) for score in scores)


async def test_personalized_without_preferences_falls_back_to_hot(service):
    result = await service.get_recommendations(
        RecommendationRequest(type=RecommendationType.PERSONALIZED, user_id=uuid4())
    )
    assert result.algorithm == FALLBACK_ALGORITHM
    assert all(item.type == RecommendationType.HOT.value for item in result.items)


async def test_personalized_uses_learned_weights(service, preference_repo):
    user_id = uuid4()
    pref = await preference_repo.get_or_create(user_id)
    pref.categories = {"Historical": 1.0}
    await preference_repo.update(pref)

    result = await service.get_recommendations(
        RecommendationRequest(type=RecommendationType.PERSONALIZED, user_id=user_id)
    )
    assert result.algorithm == "collaborative_filtering + content_based"
    assert {item.drama.category for item in result.items} == {"Historical"}
    assert result.items[0].reason.startswith("You like Historical")


async def test_similar_excludes_seed(service, catalog):
    seed = catalog[0]
    result = await service.get_recommendations(
        RecommendationRequest(type=RecommendationType.SIMILAR, drama_id=seed.id)
    )
    assert seed.id not in {item.drama.id for item in result.items}
    assert result.items[0].drama.title == "Palace Secrets"


async def test_similar_with_unknown_seed_is_empty(service):
    result = await service.get_recommendations(
        RecommendationRequest(type=RecommendationType.SIMILAR, drama_id=uuid4())
    )
    assert result.items == [] and result.total == 0


async def test_exclude_watched(service, catalog, preference_repo):
    user_id = uuid4()
    pref = UserPreference(id=uuid4(), user_id=user_id, recent_dramas=[str(catalog[0].id)])
    await preference_repo.update(pref)

    result = await service.get_recommendations(
        RecommendationRequest(type=RecommendationType.HOT, user_id=user_id, exclude_watched=True)
    )
    assert catalog[0].id not in {item.drama.id for item in result.items}
    assert result.total == 2


async def test_category_based_respects_categories(service):
    result = await service.get_recommendations(
        RecommendationRequest(type=RecommendationType.CATEGORY_BASED, categories=["Historical"])
    )
    assert {item.drama.category for item in result.items} == {"Historical"}
    assert result.items[0].reason == "Top pick in Historical"


async def test_repeat_request_is_served_from_cache(service):
    request = RecommendationRequest(type=RecommendationType.NEW, limit=5)
    first = await service.get_recommendations(request)
    calls = service.drama_repository.find_calls
    second = await service.get_recommendations(request)
    assert service.drama_repository.find_calls == calls
    assert [item.drama.id for item in second.items] == [item.drama.id for item in first.items]
    assert second.items[0].drama.title == "Campus Days"


async def test_category_based_without_categories_is_empty(service):
    result = await service.get_recommendations(RecommendationRequest(type=RecommendationType.CATEGORY_BASED))
    assert result.items == [] and result.total == 0
    assert result.algorithm == "category_matching"


async def test_personalized_assumes_default_preferred_rating(service, preference_repo):
    low = make_drama("Budget Palace", category="Historical", rating=5.0)
    service.drama_repository.dramas[low.id] = low
    user_id = uuid4()
    pref = await preference_repo.get_or_create(user_id)
    pref.categories = {"Historical": 1.0}
    pref.rating_range = {}
    await preference_repo.update(pref)

    result = await service.get_recommendations(
        RecommendationRequest(type=RecommendationType.PERSONALIZED, user_id=user_id)
    )
    # candidates start one point below the default preferred rating of 8.0
    assert low.id not in {item.drama.id for item in result.items}
    assert {item.drama.title for item in result.items} == {"Phoenix Reborn", "Palace Secrets"}
