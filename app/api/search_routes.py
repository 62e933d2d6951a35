"""Search, recommendation, ranking and preference API routes."""

import logging
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.api.drama_routes import split_csv
from app.api.schemas import (
    ApiResponse,
    CategoryRankingResponse,
    PopularSearchResponse,
    PreferenceActionRequest,
    PreferenceResponse,
    RankingResponse,
    RankingTrendsResponse,
    RecommendationResponse,
    SearchResponse,
    ok,
)
from app.core.dependencies import (
    get_current_user,
    get_optional_user,
    get_preference_service,
    get_ranking_service,
    get_recommendation_service,
    get_search_service,
)
from app.core.rate_limit import search_limiter
from app.domain.entities import User
from app.domain.queries import (
    RankingType,
    RecommendationRequest,
    RecommendationType,
    SearchFilters,
    SearchSortBy,
    SearchType,
    SortOrder,
)
from app.domain.services import (
    IPreferenceService,
    IRankingService,
    IRecommendationService,
    ISearchService,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/search", tags=["search"])


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------
@router.get("", response_model=ApiResponse[SearchResponse], dependencies=[Depends(search_limiter)])
async def search(
    q: Annotated[str, Query(min_length=1, max_length=100)],
    search_service: Annotated[ISearchService, Depends(get_search_service)],
    current_user: Annotated[Optional[User], Depends(get_optional_user)],
    search_type: Annotated[SearchType, Query(alias="type")] = SearchType.ALL,
    category: Optional[str] = None,
    tags: Optional[str] = None,
    min_rating: Annotated[Optional[float], Query(alias="minRating", ge=0, le=10)] = None,
    max_rating: Annotated[Optional[float], Query(alias="maxRating", ge=0, le=10)] = None,
    min_view_count: Annotated[Optional[int], Query(alias="minViewCount", ge=0)] = None,
    max_view_count: Annotated[Optional[int], Query(alias="maxViewCount", ge=0)] = None,
    release_date_from: Annotated[Optional[datetime], Query(alias="releaseDateFrom")] = None,
    release_date_to: Annotated[Optional[datetime], Query(alias="releaseDateTo")] = None,
    is_hot: Annotated[Optional[bool], Query(alias="isHot")] = None,
    is_new: Annotated[Optional[bool], Query(alias="isNew")] = None,
    sort_by: Annotated[SearchSortBy, Query(alias="sortBy")] = SearchSortBy.RELEVANCE,
    sort_order: Annotated[SortOrder, Query(alias="sortOrder")] = SortOrder.DESC,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> ApiResponse:
    """Search dramas, users and categories. Signed-in searches are kept in history."""
    filters = SearchFilters(
        type=search_type,
        category=category,
        tags=split_csv(tags),
        min_rating=min_rating,
        max_rating=max_rating,
        min_view_count=min_view_count,
        max_view_count=max_view_count,
        release_date_from=release_date_from,
        release_date_to=release_date_to,
        is_hot=is_hot,
        is_new=is_new,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    result = await search_service.search(q, filters, user_id=current_user.id if current_user else None)
    return ok(SearchResponse.model_validate(result))


@router.get("/suggestions", response_model=ApiResponse[list[str]])
async def get_suggestions(
    q: Annotated[str, Query(max_length=100)],
    search_service: Annotated[ISearchService, Depends(get_search_service)],
    limit: Annotated[int, Query(ge=1, le=20)] = 5,
) -> ApiResponse:
    return ok(await search_service.get_search_suggestions(q, limit))


@router.get("/popular", response_model=ApiResponse[list[PopularSearchResponse]])
async def get_popular(
    search_service: Annotated[ISearchService, Depends(get_search_service)],
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
) -> ApiResponse:
    popular = await search_service.get_popular_searches(limit)
    return ok([PopularSearchResponse.model_validate(p) for p in popular])


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------
@router.get("/recommendations/personalized/me", response_model=ApiResponse[RecommendationResponse])
async def get_my_recommendations(
    current_user: Annotated[User, Depends(get_current_user)],
    rec_service: Annotated[IRecommendationService, Depends(get_recommendation_service)],
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
    exclude_watched: Annotated[bool, Query(alias="excludeWatched")] = True,
) -> ApiResponse:
    request = RecommendationRequest(
        type=RecommendationType.PERSONALIZED,
        user_id=current_user.id,
        limit=limit,
        exclude_watched=exclude_watched,
    )
    result = await rec_service.get_recommendations(request)
    return ok(RecommendationResponse.model_validate(result))


@router.get("/recommendations/similar/{drama_id}", response_model=ApiResponse[RecommendationResponse])
async def get_similar(
    drama_id: UUID,
    rec_service: Annotated[IRecommendationService, Depends(get_recommendation_service)],
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
) -> ApiResponse:
    request = RecommendationRequest(type=RecommendationType.SIMILAR, drama_id=drama_id, limit=limit)
    result = await rec_service.get_recommendations(request)
    return ok(RecommendationResponse.model_validate(result))


@router.get("/recommendations/{rec_type}", response_model=ApiResponse[RecommendationResponse])
async def get_recommendations(
    rec_type: RecommendationType,
    rec_service: Annotated[IRecommendationService, Depends(get_recommendation_service)],
    current_user: Annotated[Optional[User], Depends(get_optional_user)],
    drama_id: Annotated[Optional[UUID], Query(alias="dramaId")] = None,
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
    categories: Optional[str] = None,
    exclude_watched: Annotated[bool, Query(alias="excludeWatched")] = True,
) -> ApiResponse:
    request = RecommendationRequest(
        type=rec_type,
        user_id=current_user.id if current_user else None,
        drama_id=drama_id,
        limit=limit,
        categories=split_csv(categories),
        exclude_watched=exclude_watched,
    )
    result = await rec_service.get_recommendations(request)
    return ok(RecommendationResponse.model_validate(result))


# ---------------------------------------------------------------------------
# Rankings
# ---------------------------------------------------------------------------
@router.get("/rankings/{ranking_type}", response_model=ApiResponse[RankingResponse])
async def get_ranking(
    ranking_type: RankingType,
    ranking_service: Annotated[IRankingService, Depends(get_ranking_service)],
    category: Optional[str] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> ApiResponse:
    result = await ranking_service.get_ranking(ranking_type, category, limit)
    return ok(RankingResponse.model_validate(result))


@router.get("/rankings/{ranking_type}/categories", response_model=ApiResponse[list[CategoryRankingResponse]])
async def get_category_rankings(
    ranking_type: RankingType,
    ranking_service: Annotated[IRankingService, Depends(get_ranking_service)],
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
) -> ApiResponse:
    rankings = await ranking_service.get_category_rankings(ranking_type, limit)
    return ok([CategoryRankingResponse.model_validate(r) for r in rankings])


@router.get("/rankings/{ranking_type}/trends", response_model=ApiResponse[RankingTrendsResponse])
async def get_ranking_trends(
    ranking_type: RankingType,
    ranking_service: Annotated[IRankingService, Depends(get_ranking_service)],
    category: Optional[str] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> ApiResponse:
    """Current ranking with each item's movement against the previous window."""
    trends = await ranking_service.get_ranking_trends(ranking_type, category, limit)
    return ok(RankingTrendsResponse.model_validate(trends))


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------
@router.get("/preferences", response_model=ApiResponse[PreferenceResponse])
async def get_preferences(
    current_user: Annotated[User, Depends(get_current_user)],
    pref_service: Annotated[IPreferenceService, Depends(get_preference_service)],
) -> ApiResponse:
    pref = await pref_service.get_preferences(current_user.id)
    return ok(PreferenceResponse.model_validate(pref))


@router.post("/preferences", response_model=ApiResponse[PreferenceResponse])
async def record_preference(
    body: PreferenceActionRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    pref_service: Annotated[IPreferenceService, Depends(get_preference_service)],
) -> ApiResponse:
    """Learn from an action (view, like, favorite, complete) on a drama."""
    pref = await pref_service.record_action(
        current_user.id, body.drama_id, body.action, watch_minutes=body.watch_minutes
    )
    return ok(PreferenceResponse.model_validate(pref), "Preference updated")
