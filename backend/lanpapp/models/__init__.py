"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Lanpa is the aggregate root; members, invitations, suggestions, votes,
      ratings and nominations are scoped by lanpa_id and deleted with it
    - UserPunishment is append-only and outlives its nomination

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from lanpapp.models.user import User  # noqa: F401
from lanpapp.models.lanpa import Lanpa  # noqa: F401
from lanpapp.models.lanpa_member import LanpaMember  # noqa: F401
from lanpapp.models.lanpa_invitation import LanpaInvitation  # noqa: F401
from lanpapp.models.game import Game  # noqa: F401
from lanpapp.models.game_suggestion import GameSuggestion  # noqa: F401
from lanpapp.models.game_vote import GameVote  # noqa: F401
from lanpapp.models.rating import Rating, LanpaRating  # noqa: F401
from lanpapp.models.punishment import Punishment  # noqa: F401
from lanpapp.models.punishment_nomination import PunishmentNomination  # noqa: F401
from lanpapp.models.punishment_vote import PunishmentVote  # noqa: F401
from lanpapp.models.user_punishment import UserPunishment  # noqa: F401
from lanpapp.models.notification import Notification  # noqa: F401
