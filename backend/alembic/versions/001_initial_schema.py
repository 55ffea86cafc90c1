"""Initial schema — users, lanpas, membership, games, votes, ratings, punishments, notifications.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(),
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("username", sa.String(50), nullable=False, unique=True),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("locale", sa.String(10), nullable=False, server_default="es"),
        sa.Column("notification_preferences", sa.JSON, nullable=False, server_default="{}"),
        _created_at(),
    )

    op.create_table(
        "games",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, index=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("cover_url", sa.String(500), nullable=True),
        sa.Column("genre", sa.String(50), nullable=True, index=True),
        sa.Column("min_players", sa.Integer, nullable=False, server_default="1"),
        sa.Column("max_players", sa.Integer, nullable=True),
        sa.Column(
            "created_by", UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        ),
        _created_at(),
    )

    op.create_table(
        "lanpas",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "admin_id", UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft", index=True),
        sa.Column("scheduled_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_historical", sa.Boolean, nullable=False, server_default="false"),
        sa.Column(
            "selected_game_id", UUID(as_uuid=True),
            sa.ForeignKey("games.id", ondelete="SET NULL"), nullable=True,
        ),
        _created_at(),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "lanpa_members",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "lanpa_id", UUID(as_uuid=True),
            sa.ForeignKey("lanpas.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column(
            "user_id", UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="invited"),
        sa.Column(
            "joined_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("lanpa_id", "user_id", name="uq_lanpa_members_lanpa_user"),
    )

    op.create_table(
        "lanpa_invitations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "lanpa_id", UUID(as_uuid=True),
            sa.ForeignKey("lanpas.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column("token", sa.String(64), nullable=False, unique=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("max_uses", sa.Integer, nullable=True),
        sa.Column("uses", sa.Integer, nullable=False, server_default="0"),
        _created_at(),
    )

    op.create_table(
        "game_suggestions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "lanpa_id", UUID(as_uuid=True),
            sa.ForeignKey("lanpas.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column(
            "game_id", UUID(as_uuid=True),
            sa.ForeignKey("games.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "suggested_by", UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        _created_at(),
        sa.UniqueConstraint("lanpa_id", "game_id", name="uq_game_suggestions_lanpa_game"),
    )

    op.create_table(
        "game_votes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "lanpa_id", UUID(as_uuid=True),
            sa.ForeignKey("lanpas.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column(
            "game_id", UUID(as_uuid=True),
            sa.ForeignKey("games.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "user_id", UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        _created_at(),
        sa.UniqueConstraint("lanpa_id", "user_id", name="uq_game_votes_lanpa_user"),
    )

    op.create_table(
        "ratings",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "lanpa_id", UUID(as_uuid=True),
            sa.ForeignKey("lanpas.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column(
            "from_user_id", UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "to_user_id", UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("rating_type", sa.String(20), nullable=False),
        sa.Column("score", sa.Integer, nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        _created_at(),
        sa.UniqueConstraint(
            "lanpa_id", "from_user_id", "to_user_id", name="uq_ratings_lanpa_from_to",
        ),
        sa.CheckConstraint("score >= 1 AND score <= 5", name="ck_ratings_score"),
        sa.CheckConstraint("from_user_id != to_user_id", name="ck_ratings_not_self"),
    )

    op.create_table(
        "lanpa_ratings",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "lanpa_id", UUID(as_uuid=True),
            sa.ForeignKey("lanpas.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column(
            "user_id", UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("score", sa.Integer, nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        _created_at(),
        sa.UniqueConstraint("lanpa_id", "user_id", name="uq_lanpa_ratings_lanpa_user"),
        sa.CheckConstraint("score >= 1 AND score <= 5", name="ck_lanpa_ratings_score"),
    )

    op.create_table(
        "punishments",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("point_impact", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "created_by", UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        ),
        _created_at(),
    )

    op.create_table(
        "punishment_nominations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "lanpa_id", UUID(as_uuid=True),
            sa.ForeignKey("lanpas.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column(
            "punishment_id", UUID(as_uuid=True),
            sa.ForeignKey("punishments.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "nominated_user_id", UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column(
            "nominated_by", UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending", index=True),
        sa.Column("voting_ends_at", sa.DateTime(timezone=True), nullable=False),
        _created_at(),
    )

    op.create_table(
        "punishment_votes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "nomination_id", UUID(as_uuid=True),
            sa.ForeignKey("punishment_nominations.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column(
            "user_id", UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("vote", sa.Boolean, nullable=False),
        _created_at(),
        sa.UniqueConstraint(
            "nomination_id", "user_id", name="uq_punishment_votes_nomination_user",
        ),
    )

    op.create_table(
        "user_punishments",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id", UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column(
            "punishment_id", UUID(as_uuid=True),
            sa.ForeignKey("punishments.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "lanpa_id", UUID(as_uuid=True),
            sa.ForeignKey("lanpas.id", ondelete="SET NULL"), nullable=True, index=True,
        ),
        sa.Column(
            "nomination_id", UUID(as_uuid=True),
            sa.ForeignKey("punishment_nominations.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column(
            "applied_at", sa.DateTime(timezone=True), nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("notes", sa.Text, nullable=True),
    )

    op.create_table(
        "notifications",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id", UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
        ),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("body", sa.Text, nullable=True),
        sa.Column("data", sa.JSON, nullable=False, server_default="{}"),
        sa.Column("read", sa.Boolean, nullable=False, server_default="false"),
        _created_at(),
    )


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("user_punishments")
    op.drop_table("punishment_votes")
    op.drop_table("punishment_nominations")
    op.drop_table("punishments")
    op.drop_table("lanpa_ratings")
    op.drop_table("ratings")
    op.drop_table("game_votes")
    op.drop_table("game_suggestions")
    op.drop_table("lanpa_invitations")
    op.drop_table("lanpa_members")
    op.drop_table("lanpas")
    op.drop_table("games")
    op.drop_table("users")
