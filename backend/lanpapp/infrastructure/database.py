"""Database Sessions — one async engine per process, one session per request.

Invariants:
    - A session that leaves its block through an exception is rolled back
      before it is closed, so a failed request never commits half its writes
    - Driver failures reach the error handler as taxonomy errors:
      IntegrityError → ConflictError (409), OperationalError → DatabaseError (503),
      other SQLAlchemyError → PersistenceError (400)
    - LanpAppError raised by a service inside the block passes through unchanged

Design Decisions:
    - db_manager is a module global assigned by the lifespan; routes reach it
      through get_db, background fanout and health through the module
    - expire_on_commit=False: services keep reading rows after commit without
      an implicit async refresh
    - SQLite (tests, local runs) gets no pool sizing arguments
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)

from lanpapp.core.errors import (
    ConflictError, DatabaseError, LanpAppError, PersistenceError,
)

logger = logging.getLogger(__name__)

_POOL_RECYCLE_SECONDS = 3600


def translate_db_error(exc: SQLAlchemyError, operation: str = "query") -> LanpAppError:
    match exc:
        case IntegrityError():
            return ConflictError("Resource already exists or violates a constraint")
        case OperationalError():
            return DatabaseError("Connection or operational error", operation)
        case _:
            return PersistenceError("Database operation failed", operation)


class DatabaseSessionManager:
    """Owns the engine and hands out request-scoped sessions."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False,
        )

    @classmethod
    def from_url(
        cls, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ) -> "DatabaseSessionManager":
        pooling = {} if database_url.startswith("sqlite") else {
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_recycle": _POOL_RECYCLE_SECONDS,
        }
        return cls(create_async_engine(database_url, pool_pre_ping=True, **pooling))

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self._session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error(
                    f"Session rolled back: {type(exc).__name__}",
                    extra={"error_code": "DATABASE_ERROR"},
                )
                raise translate_db_error(exc) from exc
            except Exception:
                await session.rollback()
                raise

    async def health_check(self) -> bool:
        """SELECT 1 round-trip for the readiness check."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            logger.error(f"Database health check failed: {exc}")
            return False
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()


db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **pool_options) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager.from_url(database_url, **pool_options)
    return db_manager


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session dependency."""
    if db_manager is None:
        raise RuntimeError("Database not initialized")
    async with db_manager.session() as session:
        yield session
