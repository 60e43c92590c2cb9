"""
Database layer for Agent Timeline.

Structure:
- entities/: SQLModel table definitions
- repositories/: Data access layer for the entities
- utils.py: Engine, session factory and schema creation helpers
"""

from .base import Base
from .utils import (
    create_all,
    create_engine,
    create_sessionmaker,
)

__all__ = [
    "Base",
    "create_all",
    "create_engine",
    "create_sessionmaker",
]
