"""Service test fixtures — async DB, seed factories, fake collaborators, API client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db, get_identity_provider and get_fanout overridden for route tests
    - db_manager patched for code that opens its own sessions (fanout, health)
    - Bearer token in route tests is the user's id as a string

Design Decisions:
    - SQLite in-memory with StaticPool: every session shares one connection,
      so rows seeded through test_db are visible to request sessions
    - RecordingFanout instead of DbNotificationFanout: tests assert on what
      was announced without running background tasks
"""

import random
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)
from sqlalchemy.pool import StaticPool

import lanpapp.infrastructure.database as db_module
import lanpapp.models  # noqa: F401
from lanpapp.api.dependencies import get_fanout, get_identity_provider
from lanpapp.core.domain_types import LanpaStatus, MemberStatus
from lanpapp.db.base import Base
from lanpapp.infrastructure.database import DatabaseSessionManager, get_db
from lanpapp.main import app
from lanpapp.models.game import Game
from lanpapp.models.game_suggestion import GameSuggestion
from lanpapp.models.game_vote import GameVote
from lanpapp.models.lanpa import Lanpa
from lanpapp.models.lanpa_member import LanpaMember
from lanpapp.models.punishment import Punishment
from lanpapp.models.user import User
from lanpapp.services.membership_guard import DbMembershipGuard
from tests.services.fakes import FakeIdentity, FixedClock, RecordingFanout


# ─── Database ───────────────────────────────────────────────────

@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def guard(test_db):
    return DbMembershipGuard(test_db)


@pytest.fixture
def fanout():
    return RecordingFanout()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def rng():
    return random.Random(42)


# ─── Seed factories ─────────────────────────────────────────────

@pytest.fixture
def make_user(test_db):
    async def _make(username: str | None = None, preferences: dict | None = None) -> User:
        name = username or f"user_{uuid4().hex[:8]}"
        user = User(
            id=uuid4(), username=name, display_name=name.title(),
            notification_preferences=preferences or {},
        )
        test_db.add(user)
        await test_db.commit()
        return user
    return _make


@pytest.fixture
def make_lanpa(test_db):
    """Lanpa owned by admin; members maps user -> member status."""
    async def _make(
        admin: User,
        status: LanpaStatus = LanpaStatus.DRAFT,
        members: dict[User, MemberStatus] | None = None,
        name: str = "Friday LAN",
    ) -> Lanpa:
        lanpa = Lanpa(name=name, admin_id=admin.id, status=status.value)
        test_db.add(lanpa)
        await test_db.flush()
        test_db.add(LanpaMember(
            lanpa_id=lanpa.id, user_id=admin.id, status=MemberStatus.CONFIRMED.value,
        ))
        for user, member_status in (members or {}).items():
            test_db.add(LanpaMember(
                lanpa_id=lanpa.id, user_id=user.id, status=member_status.value,
            ))
        await test_db.commit()
        return lanpa
    return _make


@pytest.fixture
def make_game(test_db):
    async def _make(name: str = "Age of Empires II", genre: str | None = "strategy") -> Game:
        game = Game(name=name, genre=genre, min_players=2, max_players=8)
        test_db.add(game)
        await test_db.commit()
        return game
    return _make


@pytest.fixture
def make_punishment(test_db):
    async def _make(
        name: str = "Buys the pizza", severity: str = "penalty", point_impact: int = 5,
    ) -> Punishment:
        punishment = Punishment(name=name, severity=severity, point_impact=point_impact)
        test_db.add(punishment)
        await test_db.commit()
        return punishment
    return _make


@pytest.fixture
def suggest_and_vote(test_db):
    """Insert suggestions and votes directly: votes maps game -> list of voters."""
    async def _seed(lanpa: Lanpa, suggested_by: User, votes: dict[Game, list[User]]):
        for game in votes:
            test_db.add(GameSuggestion(
                lanpa_id=lanpa.id, game_id=game.id, suggested_by=suggested_by.id,
            ))
        for game, voters in votes.items():
            for voter in voters:
                test_db.add(GameVote(lanpa_id=lanpa.id, game_id=game.id, user_id=voter.id))
        await test_db.commit()
    return _seed


# ─── API client ─────────────────────────────────────────────────

@pytest.fixture
async def client(test_engine, fanout):
    """FastAPI test client with DB, identity and fanout overridden."""
    async def override_get_db():
        async with fake_manager.session() as session:
            yield session

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager(test_engine)
    db_module.db_manager = fake_manager

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_provider] = lambda: FakeIdentity()
    app.dependency_overrides[get_fanout] = lambda: fanout

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
