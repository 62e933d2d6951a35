import pytest

from app.domain.queries import RankingType
from app.services.ranking_service import RankingService
from tests.conftest import make_category, make_drama
from tests.fakes import FakeCategoryRepository, FakeDramaRepository


def build_service(dramas, cache, categories=()):
    drama_repo = FakeDramaRepository(dramas)
    category_repo = FakeCategoryRepository(drama_repo, list(categories))
    return RankingService(drama_repository=drama_repo, category_repository=category_repo, cache=cache)


@pytest.fixture
def recent_dramas():
    return [
        make_drama(f"Drama {index}", view_count=index * 1000, rating=6 + index * 0.3, updated_days_ago=1)
        for index in range(1, 8)
    ]


async def test_ranks_are_contiguous_and_ordered(recent_dramas, cache):
    service = build_service(recent_dramas, cache)
    ranking = await service.get_ranking(RankingType.WEEKLY, limit=5)
    assert [item.rank for item in ranking.items] == [1, 2, 3, 4, 5]
    scores = [item.score for item in ranking.items]
    assert scores == sorted(scores, reverse=True)
    assert ranking.total == 5
    assert ranking.items[0].metrics.view_count == ranking.items[0].drama.view_count


async def test_window_excludes_stale_dramas(cache):
    fresh = make_drama("Fresh", updated_days_ago=0.5)
    stale = make_drama("Stale", view_count=10 ** 6, updated_days_ago=3)
    service = build_service([fresh, stale], cache)
    daily = await service.get_ranking(RankingType.DAILY)
    assert [item.drama.title for item in daily.items] == ["Fresh"]
    all_time = await service.get_ranking(RankingType.ALL_TIME)
    assert [item.drama.title for item in all_time.items] == ["Stale", "Fresh"]


async def test_category_filter(recent_dramas, cache):
    recent_dramas[0].category = "Mystery"
    service = build_service(recent_dramas, cache)
    ranking = await service.get_ranking(RankingType.WEEKLY, category="Mystery")
    assert [item.drama.id for item in ranking.items] == [recent_dramas[0].id]
    assert ranking.category == "Mystery"


async def test_ranking_is_cached_until_cleared(recent_dramas, cache):
    service = build_service(recent_dramas, cache)
    await service.get_ranking(RankingType.MONTHLY)
    calls = service.drama_repository.find_calls
    await service.get_ranking(RankingType.MONTHLY)
    assert service.drama_repository.find_calls == calls

    assert await service.clear_ranking_cache() == 1
    await service.get_ranking(RankingType.MONTHLY)
    assert service.drama_repository.find_calls == calls + 1


async def test_category_rankings(cache):
    dramas = [
        make_drama("Romance A", category="Romance", updated_days_ago=1),
        make_drama("Mystery A", category="Mystery", updated_days_ago=1),
    ]
    categories = [make_category("Romance", 1), make_category("Mystery", 2), make_category("Campus", 3)]
    service = build_service(dramas, cache, categories)
    rankings = await service.get_category_rankings(RankingType.WEEKLY)
    assert [entry.category for entry in rankings] == ["Romance", "Mystery", "Campus"]
    assert rankings[0].ranking.items[0].drama.title == "Romance A"
    assert rankings[2].ranking.items == []


async def test_trends_compare_with_previous_window(cache):
    leader = make_drama("Leader", view_count=1000, rating=8.0)
    runner_up = make_drama("Runner Up", view_count=100, rating=7.0)
    newcomer = make_drama("Newcomer", view_count=100000, rating=9.0, updated_days_ago=1)
    service = build_service([leader, runner_up, newcomer], cache)

    trends = await service.get_ranking_trends(RankingType.ALL_TIME)
    by_title = {item.drama.title: item for item in trends.items}

    assert by_title["Newcomer"].rank == 1
    assert by_title["Newcomer"].is_new and by_title["Newcomer"].change == 0
    assert by_title["Newcomer"].previous_rank is None
    assert by_title["Leader"].previous_rank == 1
    assert by_title["Leader"].change == -1
    assert by_title["Runner Up"].change == -1
    assert not by_title["Runner Up"].is_new
