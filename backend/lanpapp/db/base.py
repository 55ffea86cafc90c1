"""SQLAlchemy Declarative Base — shared base class for all ORM models.

Invariants:
    - All models inherit from Base
    - Base is the single source of truth for table metadata
    - to_dict() never triggers a lazy load: under asyncio that would raise
      MissingGreenlet, so unloaded relationships serialize as None

Design Decisions:
    - Separate file for Base: avoids circular imports between models
"""

from sqlalchemy import inspect
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all LanpApp ORM models."""

    def loaded(self, attribute: str):
        """Attribute value if already loaded, else None."""
        if attribute in inspect(self).unloaded:
            return None
        return getattr(self, attribute)
