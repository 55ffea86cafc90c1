"""Ranking tests — scoring, leaderboard order and the best-rated admin rule.

Tests cover:
    - Clean score: lanpas and average rating, unrated users counted at 3.0
    - Adjusted score subtracts point impact and stops at 0
    - Users without lanpas are left out of both boards
    - Punishments can reorder the adjusted board only
    - best_rated ignores users below the minimum rating count
"""

from uuid import uuid4

from lanpapp.core.rankings import (
    UserActivity, average, best_rated, build_rankings, round1, top_counts,
)


A, B, C = uuid4(), uuid4(), uuid4()


def test_average_of_nothing_is_none():
    assert average([]) is None
    assert average([4, 5]) == 4.5
    assert round1(None) is None
    assert round1(4.666) == 4.7


def test_clean_score_counts_unrated_as_three():
    assert UserActivity(A, lanpas=2).clean_score == 2 * 10 + 3.0 * 20
    assert UserActivity(A, lanpas=1, average_rating=5.0).clean_score == 110


def test_adjusted_score_never_negative():
    assert UserActivity(A, lanpas=1, average_rating=4.0, point_impact=15).adjusted_score == 75
    assert UserActivity(A, lanpas=0, average_rating=1.0, point_impact=100).adjusted_score == 0


def test_inactive_users_are_not_ranked():
    boards = build_rankings([UserActivity(A, lanpas=1), UserActivity(B)])
    assert [row["user_id"] for row in boards["clean_ranking"]] == [A]
    assert [row["user_id"] for row in boards["adjusted_ranking"]] == [A]


def test_punishments_reorder_only_adjusted_board():
    boards = build_rankings([
        UserActivity(A, lanpas=3, average_rating=4.0, point_impact=40),
        UserActivity(B, lanpas=2, average_rating=4.0),
    ])
    clean, adjusted = boards["clean_ranking"], boards["adjusted_ranking"]
    assert [(r["rank"], r["user_id"], r["score"]) for r in clean] == [(1, A, 110.0), (2, B, 100.0)]
    assert [(r["rank"], r["user_id"], r["score"]) for r in adjusted] == [(1, B, 100.0), (2, A, 70.0)]
    assert clean[0]["lanpas_attended"] == 3
    assert clean[0]["average_rating"] == 4.0


def test_best_rated_needs_minimum_ratings():
    assert best_rated({A: [5, 5], B: [3, 4, 4]}) == (B, 11 / 3)
    assert best_rated({A: [5, 5]}) is None
    assert best_rated({A: [5]}, min_ratings=1) == (A, 5.0)


def test_top_counts_most_frequent_first():
    assert top_counts([A, B, B, C, B, C], 2) == [(B, 3), (C, 2)]
    assert top_counts([]) == []
