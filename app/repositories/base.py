"""
Generic async repository (Data Access Layer).

Implements the Repository pattern on top of SQLAlchemy's ``AsyncSession``.
Concrete repositories inherit from ``BaseRepository[T]`` and add the
entity-specific queries they need.

Error contract:
- **IntegrityError** propagates untouched; only the service knows whether a
  violated constraint means "duplicate" or "missing parent".
- Every other ``SQLAlchemyError``, and calls rejected by an open circuit,
  are rolled back and surfaced as :class:`StorageFailure`.
- ``get_all()`` always orders (by primary key unless told otherwise) so
  pagination is deterministic.
"""

import logging
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from app.core.exceptions import StorageFailure
from app.core.resilience import CircuitBreakerError, db_circuit_breaker

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=SQLModel)
ResultType = TypeVar("ResultType")


class BaseRepository(Generic[ModelType]):
    """
    Generic CRUD repository for SQLModel entities.

    Parameters
    ----------
    model : Type[ModelType]
        The SQLModel class this repository manages.
    db : AsyncSession
        An active async database session (injected per-request).
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    # ── Internal helpers ──

    async def _execute(
        self, operation: str, func: Callable[[], Awaitable[ResultType]]
    ) -> ResultType:
        """Run ``func`` through the circuit breaker and normalise failures."""
        label = f"{self.model.__name__}.{operation}"
        try:
            return await db_circuit_breaker.call(func)
        except IntegrityError:
            raise
        except CircuitBreakerError as exc:
            raise StorageFailure(label, exc) from exc
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise StorageFailure(label, exc) from exc

    def _pk_column(self) -> Any:
        """The (single-column) primary key of the managed table."""
        return next(iter(self.model.__table__.primary_key.columns))

    def _order_by(self) -> Sequence[Any]:
        """Default ordering for :meth:`get_all`: the primary key."""
        return [self._pk_column()]

    # ── Queries ──

    async def get(self, id: Any) -> Optional[ModelType]:
        """Fetch a single entity by primary key.  Returns ``None`` if not found."""

        async def _get() -> Optional[ModelType]:
            return await self.db.get(self.model, id)

        return await self._execute("get", _get)

    async def get_all(
        self, skip: int = 0, limit: Optional[int] = 100, *criteria: Any
    ) -> List[ModelType]:
        """
        Return one page of entities, optionally filtered by ``criteria``.

        Parameters
        ----------
        skip : int
            Number of rows to skip (offset).
        limit : int or None
            Maximum number of rows to return; ``None`` means no limit.
        """

        async def _get_all() -> List[ModelType]:
            stmt = (
                select(self.model)
                .where(*criteria)
                .order_by(*self._order_by())
                .offset(skip)
                .limit(limit)
            )
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

        return await self._execute("get_all", _get_all)

    async def count(self, *criteria: Any) -> int:
        """Total number of rows matching ``criteria`` (for pagination metadata)."""

        async def _count() -> int:
            stmt = select(func.count()).select_from(self.model).where(*criteria)
            result = await self.db.execute(stmt)
            return result.scalar_one()

        return await self._execute("count", _count)

    # ── Commands ──

    async def create(self, obj_in: ModelType) -> ModelType:
        """Insert a new entity and return the refreshed instance."""

        async def _create() -> ModelType:
            self.db.add(obj_in)
            await self.db.commit()
            await self.db.refresh(obj_in)
            return obj_in

        return await self._execute("create", _create)

    async def update(self, entity: ModelType) -> ModelType:
        """
        Persist changes to an entity the caller has already mutated.

        Merges, commits, then refreshes so DB-side values are reflected.
        """

        async def _update() -> ModelType:
            merged = await self.db.merge(entity)
            await self.db.commit()
            await self.db.refresh(merged)
            return merged

        return await self._execute("update", _update)

    async def delete(self, id: Any) -> bool:
        """
        Delete an entity by primary key with a single ``DELETE`` statement.

        Returns ``True`` if a row was removed, ``False`` if none matched.
        Dependent rows are handled by the database (``ON DELETE CASCADE``).
        """

        async def _delete() -> bool:
            stmt = delete(self.model).where(self._pk_column() == id)
            result = await self.db.execute(stmt)
            await self.db.commit()
            return result.rowcount > 0

        return await self._execute("delete", _delete)
