"""Vote Tally — resolves a lanpa's game vote into ranked results and a single winner.

Invariants:
    - Zero suggestions → no results, no winner, no tiebreak
    - Every suggested game appears in results, games without votes count 0
    - Votes for games that were never suggested are ignored
    - Results sorted descending by vote count (stable, suggestion order kept among ties)
    - Exactly one result has is_winner=True whenever there is at least one suggestion
    - Ties at the top (including all-zero) are broken by a uniform draw over the top set

Design Decisions:
    - rng injected by the caller: production passes the module-level random source,
      tests pass a seeded random.Random so the uniform draw is reproducible
    - Pure function over plain ids: the shell loads suggestion and vote rows and
      attaches game details afterwards
"""

import random
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from lanpapp.core.domain_types import GameId


@dataclass
class GameVoteResult:
    """One suggested game with its vote count."""
    game_id: GameId
    votes: int = 0
    is_winner: bool = False


@dataclass
class VoteResolution:
    """Output of resolve_game_vote."""
    results: list[GameVoteResult] = field(default_factory=list)
    winner: GameId | None = None
    tiebreak: bool = False

    def to_dict(self) -> dict:
        return {
            "results": [
                {"game_id": str(r.game_id), "votes": r.votes, "is_winner": r.is_winner}
                for r in self.results
            ],
            "winner": str(self.winner) if self.winner else None,
            "was_random_tiebreaker": self.tiebreak,
        }


def tally_votes(
    suggested_game_ids: Sequence[GameId], voted_game_ids: Iterable[GameId],
) -> list[GameVoteResult]:
    """Count votes per suggested game, sorted descending by count."""
    counts = Counter(voted_game_ids)
    results = [
        GameVoteResult(game_id=game_id, votes=counts.get(game_id, 0))
        for game_id in dict.fromkeys(suggested_game_ids)
    ]
    results.sort(key=lambda r: r.votes, reverse=True)
    return results


def resolve_game_vote(
    suggested_game_ids: Sequence[GameId],
    voted_game_ids: Iterable[GameId],
    rng: random.Random | None = None,
) -> VoteResolution:
    """Tally votes and pick the winning game, random tiebreak over the top set."""
    if not suggested_game_ids:
        return VoteResolution()

    results = tally_votes(suggested_game_ids, voted_game_ids)
    max_votes = results[0].votes
    top = [r for r in results if r.votes == max_votes]

    if len(top) == 1:
        chosen = top[0]
        tiebreak = False
    else:
        chosen = (rng or random).choice(top)  # nosec B311
        tiebreak = True

    chosen.is_winner = True
    return VoteResolution(results=results, winner=chosen.game_id, tiebreak=tiebreak)
