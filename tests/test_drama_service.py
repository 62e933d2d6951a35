from uuid import uuid4

import pytest

from app.domain.exceptions import NotFoundError, ValidationFailedError
from app.domain.queries import DramaListFilters
from app.services.drama_service import DramaService
from tests.conftest import make_drama
from tests.fakes import FakeDramaRepository


@pytest.fixture
def catalog():
    return [
        make_drama("Phoenix Reborn", category="Historical", rating=9.2, view_count=2100000, is_hot=True),
        make_drama("Substitute Bride", category="CEO", rating=8.5, view_count=1250000, is_hot=True),
        make_drama("City Nights", category="Urban", rating=7.9, view_count=750000, is_hot=True),
        make_drama("Campus Days", category="Campus", rating=8.8, view_count=980000, days_old=3, is_new=True,
                   tags=["youth"]),
        make_drama("Vanishing Witness", category="Mystery", rating=8.1, view_count=640000, cast=["Chen"]),
    ]


@pytest.fixture
def repo(catalog):
    return FakeDramaRepository(catalog)


@pytest.fixture
def service(repo, cache):
    return DramaService(drama_repository=repo, cache=cache)


async def test_hot_filter_sorted_by_rating(service):
    page = await service.list_dramas(DramaListFilters(is_hot=True, sort_by="rating", sort_order="desc", limit=2))
    assert [d.rating for d in page.dramas] == [9.2, 8.5]
    assert page.pagination.total == 3
    assert page.pagination.pages == 2


async def test_filters_combine(service):
    page = await service.list_dramas(DramaListFilters(min_rating=8.0, max_rating=9.0, sort_by="rating"))
    assert [d.title for d in page.dramas] == ["Campus Days", "Substitute Bride", "Vanishing Witness"]

    page = await service.list_dramas(DramaListFilters(tags=["youth"]))
    assert [d.title for d in page.dramas] == ["Campus Days"]

    page = await service.list_dramas(DramaListFilters(search="chen"))
    assert [d.title for d in page.dramas] == ["Vanishing Witness"]


async def test_page_past_the_end_is_empty(service):
    page = await service.list_dramas(DramaListFilters(page=5, limit=2))
    assert page.dramas == []
    assert page.pagination.total == 5 and page.pagination.pages == 3


async def test_limit_is_clamped(service):
    page = await service.list_dramas(DramaListFilters(limit=1000))
    assert page.pagination.limit == 100


@pytest.mark.parametrize("sort_by,sort_order", [("title", "desc"), ("rating", "sideways")])
async def test_invalid_sort_rejected(service, sort_by, sort_order):
    with pytest.raises(ValidationFailedError):
        await service.list_dramas(DramaListFilters(sort_by=sort_by, sort_order=sort_order))


async def test_list_is_cached(service, repo):
    filters = DramaListFilters(category="CEO")
    first = await service.list_dramas(filters)
    calls = repo.find_calls
    second = await service.list_dramas(DramaListFilters(category="CEO"))
    assert repo.find_calls == calls
    assert [d.id for d in second.dramas] == [d.id for d in first.dramas]


async def test_get_drama(service, catalog):
    drama = await service.get_drama(catalog[0].id)
    assert drama.title == "Phoenix Reborn"
    with pytest.raises(NotFoundError):
        await service.get_drama(uuid4())


async def test_view_count_invalidates_detail(service, catalog):
    drama_id = catalog[0].id
    before = await service.get_drama(drama_id)
    await service.increment_view_count(drama_id)
    after = await service.get_drama(drama_id)
    assert after.view_count == before.view_count + 1
    with pytest.raises(NotFoundError):
        await service.increment_view_count(uuid4())


async def test_showcases(service):
    hot = await service.get_hot_dramas()
    assert [d.title for d in hot] == ["Phoenix Reborn", "Substitute Bride", "City Nights"]
    assert [d.title for d in await service.get_new_dramas()] == ["Campus Days"]
    assert [d.title for d in await service.get_trending_dramas()] == ["Campus Days"]

    highlights = await service.get_recommendations()
    assert len(highlights.hot) == 3
    assert [d.title for d in highlights.new] == ["Campus Days"]


async def test_search_dramas(service):
    assert [d.title for d in await service.search_dramas("city")] == ["City Nights"]
    with pytest.raises(ValidationFailedError):
        await service.search_dramas("  ")
