"""
Base repository interfaces and utilities.

This module provides the foundational repository pattern used by the
repository implementations in the database layer. Built with async SQLAlchemy
and SQLModel; each repository method opens its own session from the factory so
that a write is durable once the method returns.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, Optional, Sequence, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

# Generic type for SQLModel entities
EntityType = TypeVar("EntityType", bound=SQLModel)


class AsyncBaseRepository(ABC, Generic[EntityType]):
    """Base async repository interface with common operations using SQLModel."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], model: Type[EntityType]) -> None:
        """Initialize repository with an async session factory and SQLModel entity class.

        Args:
            session_factory: Factory producing AsyncSession instances
            model: SQLModel entity class for this repository
        """
        self.session_factory = session_factory
        self.model = model

    @abstractmethod
    async def create(self, entity: EntityType) -> EntityType:
        """Create a new entity record.

        Args:
            entity: SQLModel instance to persist

        Returns:
            Persisted entity with generated fields populated
        """

    @abstractmethod
    async def get_by_id(self, entity_id: str) -> Optional[EntityType]:
        """Get entity by its identifier.

        Args:
            entity_id: Identifier value

        Returns:
            Entity instance or None if not found
        """

    @abstractmethod
    async def update(self, entity: EntityType) -> EntityType:
        """Update an existing entity record.

        Args:
            entity: SQLModel instance with updated fields

        Returns:
            Updated entity instance
        """

    @abstractmethod
    async def delete(self, entity_id: str) -> bool:
        """Delete entity by its identifier.

        Args:
            entity_id: Identifier value

        Returns:
            True if deleted, False if not found
        """


class QueryBuilder:
    """Utility class for building SQLModel-based database queries."""

    @staticmethod
    def apply_time_range(stmt, column, start: Optional[int], end: Optional[int]):
        """Apply an inclusive ``[start, end]`` range on ``column``.

        Args:
            stmt: SQLModel select statement
            column: Column to filter on
            start: Lower bound, ignored when None
            end: Upper bound, ignored when None

        Returns:
            Modified select statement
        """
        if start is not None:
            stmt = stmt.where(column >= start)
        if end is not None:
            stmt = stmt.where(column <= end)
        return stmt

    @staticmethod
    def apply_in(stmt, column, values: Optional[Sequence[str]]):
        """Restrict ``column`` to ``values`` when values are given."""
        if values:
            stmt = stmt.where(column.in_(list(values)))
        return stmt

    @staticmethod
    def apply_pagination(stmt, limit: Optional[int], offset: Optional[int] = None):
        """Apply pagination to a SQLModel select statement.

        Args:
            stmt: SQLModel select statement
            limit: Maximum number of records
            offset: Number of records to skip

        Returns:
            Modified select statement with pagination applied
        """
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset is not None:
            stmt = stmt.offset(offset)
        return stmt
