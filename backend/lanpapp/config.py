"""Settings — every tunable read from the environment (or .env) once per process.

Invariants:
    - IDENTITY_API_KEY and DATABASE_URL are never hardcoded for production;
      the defaults only match the local docker-compose stack
    - get_settings() returns the same instance for the life of the process

Design Decisions:
    - Plain postgresql:// URLs (as handed out by hosting providers) are
      rewritten to the asyncpg driver, shared with alembic/env.py
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOCAL_DATABASE_URL = "postgresql+asyncpg://lanpapp:lanpapp@db:5432/lanpapp"


def to_async_driver(url: str) -> str:
    scheme, sep, rest = url.partition("://")
    if scheme in ("postgres", "postgresql"):
        return f"postgresql+asyncpg{sep}{rest}"
    return url


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    database_url: str = LOCAL_DATABASE_URL
    database_pool_size: int = 20
    database_max_overflow: int = 10

    identity_url: str = "http://localhost:54321"
    identity_api_key: str = "identity-anon-key-placeholder"
    identity_timeout_seconds: int = 10
    identity_max_retries: int = 2
    identity_base_delay_ms: int = 200
    identity_max_delay_ms: int = 2_000

    # Invitation links point here
    frontend_url: str = "http://localhost:5173"
    # Nominations created without voting_hours
    default_voting_hours: float = 24

    cors_origins: list[str] = ["http://localhost:5173"]

    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("database_url", mode="before")
    @classmethod
    def _use_asyncpg(cls, value):
        return to_async_driver(value) if isinstance(value, str) else value


@lru_cache
def get_settings() -> Settings:
    return Settings()
