"""Vote tally tests — ranking, winner choice and the random tiebreak.

Tests cover:
    - No suggestions: empty result, no winner, no tiebreak
    - Clear winner: no tiebreak
    - Tie at the top: winner drawn from the top set only, roughly uniformly
    - All-zero votes: every suggestion is in the top set
    - Votes for unsuggested games ignored
"""

import random
from uuid import uuid4

from lanpapp.core.vote_tally import resolve_game_vote, tally_votes


A, B, C = uuid4(), uuid4(), uuid4()


# ─── Empty / clear winner ───────────────────────────────────────

def test_no_suggestions_no_winner():
    resolution = resolve_game_vote([], [A, A])
    assert resolution.results == []
    assert resolution.winner is None
    assert resolution.tiebreak is False


def test_clear_winner():
    resolution = resolve_game_vote([A, B], [A, A, A, B])
    assert resolution.winner == A
    assert resolution.tiebreak is False
    assert [(r.game_id, r.votes) for r in resolution.results] == [(A, 3), (B, 1)]
    assert [r.is_winner for r in resolution.results] == [True, False]


def test_unvoted_suggestions_count_zero():
    results = tally_votes([A, B, C], [B])
    assert {r.game_id: r.votes for r in results} == {A: 0, B: 1, C: 0}
    assert results[0].game_id == B


def test_votes_for_unsuggested_games_are_ignored():
    resolution = resolve_game_vote([A], [B, B, B, A])
    assert [(r.game_id, r.votes) for r in resolution.results] == [(A, 1)]
    assert resolution.winner == A


def test_exactly_one_winner_flag():
    resolution = resolve_game_vote([A, B, C], [A, B], random.Random(7))
    assert sum(r.is_winner for r in resolution.results) == 1


# ─── Tiebreak ───────────────────────────────────────────────────

def test_tie_picks_from_top_set_roughly_uniformly():
    rng = random.Random(1234)
    wins = {A: 0, B: 0, C: 0}
    for _ in range(1000):
        resolution = resolve_game_vote([A, B, C], [A, A, B, B, C], rng)
        assert resolution.tiebreak is True
        wins[resolution.winner] += 1
    assert wins[C] == 0
    assert 400 <= wins[A] <= 600
    assert 400 <= wins[B] <= 600


def test_all_zero_votes_is_a_tie_over_every_suggestion():
    rng = random.Random(99)
    seen = {resolve_game_vote([A, B, C], [], rng).winner for _ in range(200)}
    assert seen == {A, B, C}


def test_single_suggestion_without_votes_wins_without_tiebreak():
    resolution = resolve_game_vote([A], [])
    assert resolution.winner == A
    assert resolution.tiebreak is False


def test_seeded_rng_is_reproducible():
    first = resolve_game_vote([A, B], [A, B], random.Random(5)).winner
    second = resolve_game_vote([A, B], [A, B], random.Random(5)).winner
    assert first == second


# ─── Serialization ──────────────────────────────────────────────

def test_to_dict_shape():
    payload = resolve_game_vote([A, B], [B]).to_dict()
    assert payload["winner"] == str(B)
    assert payload["was_random_tiebreaker"] is False
    assert payload["results"][0] == {"game_id": str(B), "votes": 1, "is_winner": True}
