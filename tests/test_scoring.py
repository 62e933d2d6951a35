from datetime import datetime, timedelta

import pytest

from app.domain.entities import UserPreference
from app.domain.queries import RankingType
from app.services.preference_service import boost, update_viewing_time
from app.services.ranking_service import (
    previous_window_bounds,
    ranking_scores,
    shift_months,
    window_bounds,
)
from app.services.recommendation import (
    hot_score,
    new_score,
    personalized_reason,
    personalized_score,
    similar_reason,
    similarity_score,
    trending_score,
)
from app.services.search_service import (
    build_highlights,
    highlight,
    levenshtein_distance,
    relevance_score,
    string_similarity,
)
from tests.conftest import make_drama


# ---------------------------------------------------------------------------
# Recommendation scores
# ---------------------------------------------------------------------------
def test_similarity_is_full_for_identical_drama():
    seed = make_drama(tags=["palace", "romance", "revenge"], cast=["A", "B"], rating=8.5)
    twin = make_drama(tags=["palace", "romance", "revenge"], cast=["A", "B"], rating=8.5)
    assert similarity_score(seed, twin) == 100.0


def test_similarity_is_zero_for_unrelated_drama():
    seed = make_drama(category="Romance", tags=["palace"], cast=["A"], rating=9.5)
    other = make_drama(category="Mystery", tags=["crime"], cast=["Z"], rating=3.0)
    assert similarity_score(seed, other) == pytest.approx(0.0)


def test_similar_reason_mentions_category_and_shared_cast():
    seed = make_drama(category="Mystery", cast=["Lin"])
    candidate = make_drama(category="Mystery", cast=["Chen", "Lin"])
    assert similar_reason(seed, candidate) == "Also Mystery, Shares cast member Lin"
    assert similar_reason(seed, make_drama(category="Campus")) == "Similar content"


def test_personalized_score_rewards_learned_weights():
    pref = UserPreference(id=None, user_id=None, categories={"Romance": 1.0}, tags={"sweet": 0.5})
    liked = make_drama(category="Romance", tags=["sweet"], rating=8.0)
    unknown = make_drama(category="Mystery", tags=["crime"], rating=8.0)
    # 40 (category) + 10 (tag) + 25 (rating at preferred)
    assert personalized_score(liked, pref) == pytest.approx(75.0)
    assert personalized_score(unknown, pref) == pytest.approx(25.0)


def test_personalized_score_is_capped():
    pref = UserPreference(
        id=None, user_id=None,
        categories={"Romance": 1.0},
        tags={"a": 1.0, "b": 1.0, "c": 1.0},
        actors={"X": 1.0},
    )
    drama = make_drama(category="Romance", tags=["a", "b", "c"], cast=["X"], rating=8.0)
    assert personalized_score(drama, pref) == 100.0


def test_personalized_reason():
    pref = UserPreference(id=None, user_id=None, categories={"Romance": 0.9})
    assert personalized_reason(make_drama(category="Romance", rating=9.0), pref) == "You like Romance, Highly rated"
    assert personalized_reason(make_drama(category="Mystery", rating=5.0), pref) == "Recommended for you"


def test_trending_prefers_recent_activity():
    now = datetime(2024, 6, 1)
    fresh = make_drama(view_count=999, rating=8.0, updated_at=now)
    stale = make_drama(view_count=999, rating=8.0, updated_at=now - timedelta(days=60))
    # log10(1000) * 10 + 8 * 8 + 20
    assert trending_score(fresh, now) == pytest.approx(114.0)
    assert trending_score(stale, now) == pytest.approx(94.0)


def test_hot_and_new_scores():
    drama = make_drama(rating=9.0, view_count=99)
    assert hot_score(drama) == pytest.approx(92.0)
    assert new_score(drama) == pytest.approx(89.0)


# ---------------------------------------------------------------------------
# Ranking scores
# ---------------------------------------------------------------------------
def test_shift_months_clamps_day():
    assert shift_months(datetime(2024, 3, 31), -1) == datetime(2024, 2, 29)
    assert shift_months(datetime(2024, 1, 15), -2) == datetime(2023, 11, 15)


def test_windows_are_contiguous():
    now = datetime(2024, 6, 15, 12)
    for ranking_type in (RankingType.DAILY, RankingType.WEEKLY, RankingType.MONTHLY):
        start, end = window_bounds(ranking_type, now)
        prev_start, prev_end = previous_window_bounds(ranking_type, now)
        assert end == now
        assert prev_end == start
        assert prev_start < prev_end


def test_daily_scores_decay_with_age():
    now = datetime(2024, 6, 1)
    fresh = make_drama(view_count=5000, updated_at=now)
    stale = make_drama(view_count=5000, updated_at=now - timedelta(hours=24))
    ancient = make_drama(view_count=5000, updated_at=now - timedelta(days=30))
    scores = ranking_scores([fresh, stale, ancient], RankingType.DAILY, now)
    assert scores[0] > scores[1] > 0
    # decay never drops below half
    assert scores[2] == pytest.approx(scores[0] * 0.5, abs=0.01)


def test_hot_and_new_boosts():
    now = datetime(2024, 6, 1)
    plain = make_drama(updated_at=now)
    hot = make_drama(updated_at=now, is_hot=True)
    new = make_drama(updated_at=now, is_new=True)
    scores = ranking_scores([plain, hot, new], RankingType.ALL_TIME, now)
    assert scores[1] == pytest.approx(scores[0] * 1.1, abs=0.01)
    assert scores[2] == pytest.approx(scores[0] * 1.05, abs=0.01)


def test_ranking_scores_empty():
    assert len(ranking_scores([], RankingType.WEEKLY, datetime(2024, 1, 1))) == 0


# ---------------------------------------------------------------------------
# Search relevance
# ---------------------------------------------------------------------------
@pytest.mark.parametrize(
    "source,target,expected",
    [("kitten", "sitting", 3), ("", "abc", 3), ("flaw", "lawn", 2), ("same", "same", 0), ("abc", "", 3)],
)
def test_levenshtein_distance(source, target, expected):
    assert levenshtein_distance(source, target) == expected


def test_string_similarity_bounds():
    assert string_similarity("", "") == 1.0
    assert string_similarity("abcd", "abcd") == 1.0
    assert string_similarity("abcd", "wxyz") == 0.0


def test_relevance_exact_contains_and_prefix():
    assert relevance_score("Phoenix", "phoenix") == 100.0
    # 80 + similarity("love", "love story") * 40
    assert relevance_score("love", "Love Story") == pytest.approx(96.0)
    # a title that is only a prefix of the query earns similarity alone
    assert relevance_score("love story returns", "Love Story") == pytest.approx(10 / 18 * 40, abs=0.01)


def test_relevance_short_title_found_through_description():
    # 0 for the title, 20 for the description, 0.4 similarity * 40
    assert relevance_score("love story", "Love", "a love story") == pytest.approx(36.0)


def test_relevance_description_bonus():
    without = relevance_score("palace", "Phoenix Reborn")
    with_description = relevance_score("palace", "Phoenix Reborn", "Intrigue inside the palace walls")
    assert with_description == pytest.approx(without + 20)


def test_highlight_excerpt():
    text = "A modern doctor wakes up in an ancient palace and wins over a prince"
    excerpt = highlight(text, "PALACE")
    assert excerpt.startswith("...") and excerpt.endswith("...")
    assert "palace" in excerpt
    assert highlight("Short", "short") == "Short"
    assert highlight("Short", "missing") is None
    assert build_highlights("rose", "Rose Garden", None, "no hit") == ["Rose Garden"]


# ---------------------------------------------------------------------------
# Preference learning
# ---------------------------------------------------------------------------
def test_boost_clamps_and_trims():
    weights = {"a": 0.95, "b": 0.2, "c": 0.1}
    boosted = boost(weights, "a", 0.3, cap=10)
    assert boosted["a"] == 1.0
    trimmed = boost(weights, "d", 0.5, cap=3)
    assert set(trimmed) == {"a", "d", "b"}


def test_update_viewing_time_accumulates():
    viewing_time = {"total_minutes": 0, "average_session": 0.0, "preferred_duration": 30.0}
    updated = update_viewing_time(viewing_time, 40)
    assert updated["total_minutes"] == 40
    assert updated["preferred_duration"] == pytest.approx(32.0)
