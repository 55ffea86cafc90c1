"""Rankings — pure scoring behind the stats and leaderboard reads.

Invariants:
    - clean score = lanpas * 10 + average rating * 20, an unrated user counts as 3.0
    - adjusted score = clean score minus the summed point_impact of applied
      punishments, never below 0
    - Only users with at least one lanpa (attended or hosted to completion) are ranked
    - Ranks start at 1; scores and averages are reported to one decimal
    - Averages of an empty score list are None, never 0

Design Decisions:
    - Plain dataclasses in, plain dicts out: the shell runs the aggregate
      queries and attaches user summaries by id
    - top_counts keeps first-seen order among equal counts so repeated reads
      of unchanged data rank the same way
"""

from collections import Counter
from collections.abc import Hashable, Iterable
from dataclasses import dataclass

from lanpapp.core.domain_types import UserId

LANPA_POINTS = 10
RATING_POINTS = 20
UNRATED_AVERAGE = 3.0
BEST_ADMIN_MIN_RATINGS = 3


def average(scores: Iterable[int | float]) -> float | None:
    scores = list(scores)
    if not scores:
        return None
    return sum(scores) / len(scores)


def round1(value: float | None) -> float | None:
    return None if value is None else round(value, 1)


def top_counts(keys: Iterable[Hashable], limit: int | None = None) -> list[tuple[Hashable, int]]:
    """Most frequent keys first."""
    return Counter(keys).most_common(limit)


@dataclass
class UserActivity:
    """Everything the leaderboard needs about one user."""
    user_id: UserId
    lanpas: int = 0
    average_rating: float | None = None
    point_impact: int = 0

    @property
    def clean_score(self) -> float:
        rating = UNRATED_AVERAGE if self.average_rating is None else self.average_rating
        return self.lanpas * LANPA_POINTS + rating * RATING_POINTS

    @property
    def adjusted_score(self) -> float:
        return max(0.0, self.clean_score - self.point_impact)


def _ranked(activities: list[UserActivity], score_of) -> list[dict]:
    ordered = sorted(activities, key=score_of, reverse=True)
    return [
        {
            "rank": position,
            "user_id": activity.user_id,
            "score": round1(score_of(activity)),
            "lanpas_attended": activity.lanpas,
            "average_rating": round1(activity.average_rating),
        }
        for position, activity in enumerate(ordered, start=1)
    ]


def build_rankings(activities: Iterable[UserActivity]) -> dict[str, list[dict]]:
    """Clean and punishment-adjusted leaderboards over active users."""
    active = [a for a in activities if a.lanpas > 0]
    return {
        "clean_ranking": _ranked(active, lambda a: a.clean_score),
        "adjusted_ranking": _ranked(active, lambda a: a.adjusted_score),
    }


def best_rated(
    scores_by_user: dict[UserId, list[int]],
    min_ratings: int = BEST_ADMIN_MIN_RATINGS,
) -> tuple[UserId, float] | None:
    """Highest average among users with at least min_ratings scores."""
    eligible = [
        (user_id, average(scores))
        for user_id, scores in scores_by_user.items()
        if len(scores) >= min_ratings
    ]
    if not eligible:
        return None
    return max(eligible, key=lambda pair: pair[1])
