from datetime import datetime, timezone
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from app.core.exceptions import NotFoundError
from app.utils.logging import get_logger

ModelType = TypeVar("ModelType")

LOGGER = get_logger(__name__)


class TenantRepository(Generic[ModelType]):
    """Base repository implementing tenant-scoped CRUD operations.

    The repository is bound to one tenant at construction time. Every query
    it builds (select, count, update, delete) is filtered on ``tenant_id``
    and every insert is stamped with it, so callers cannot read or write
    another tenant's rows through it.

    Writes are flushed, not committed; the owning service commits the unit
    of work.
    """

    entity_name: Optional[str] = None

    def __init__(self, session: AsyncSession, model: Type[ModelType], tenant_id: UUID):
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session
            model: The SQLAlchemy model class this repository manages
            tenant_id: Tenant every query is scoped to
        """
        if tenant_id is None:
            raise ValueError("tenant_id is required for tenant-scoped repositories")
        self.session = session
        self.model = model
        self.tenant_id = tenant_id
        self.logger = LOGGER

    @property
    def name(self) -> str:
        return self.entity_name or self.model.__name__

    def scoped(self, query: Select) -> Select:
        """Restrict a select to this repository's tenant."""
        return query.where(self.model.tenant_id == self.tenant_id)

    def select(self) -> Select:
        return self.scoped(select(self.model))

    def _apply_filters(self, query, filters: Optional[Dict[str, Any]]):
        if filters:
            for field, value in filters.items():
                if value is None or not hasattr(self.model, field):
                    continue
                column = getattr(self.model, field)
                if isinstance(value, (list, tuple, set, frozenset)):
                    query = query.where(column.in_(list(value)))
                else:
                    query = query.where(column == value)
        return query

    async def get_by_id(self, id: UUID, options: Sequence = ()) -> Optional[ModelType]:
        """Get a record of this tenant by its ID."""
        try:
            query = self.select().where(self.model.id == id)
            if options:
                query = query.options(*options)
            result = await self.session.execute(query)
            return result.unique().scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error retrieving {self.name} by ID {id}: {str(e)}",
                exc_info=True,
            )
            raise

    async def get_required(self, id: UUID, options: Sequence = ()) -> ModelType:
        """Get a record or raise NotFoundError."""
        instance = await self.get_by_id(id, options)
        if instance is None:
            raise NotFoundError(self.name, id)
        return instance

    async def get_all(
        self,
        skip: int = 0,
        limit: int = 200,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Iterable = (),
        options: Sequence = (),
    ) -> List[ModelType]:
        """Get records with optional pagination, equality filters and ordering."""
        try:
            query = self._apply_filters(self.select(), filters)
            if options:
                query = query.options(*options)
            order = list(order_by) or [self.model.created_at.desc()]
            query = query.order_by(*order).offset(skip).limit(limit)
            result = await self.session.execute(query)
            return list(result.unique().scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error retrieving all {self.name}: {str(e)}",
                exc_info=True,
            )
            raise

    async def paginate(
        self,
        query: Select,
        page: int,
        limit: int,
        order_by: Iterable = (),
    ) -> Tuple[List[ModelType], int]:
        """Run an already-scoped select with page/limit; returns (items, total)."""
        try:
            count_query = select(func.count()).select_from(query.order_by(None).subquery())
            total = (await self.session.execute(count_query)).scalar_one()
            order = list(order_by) or [self.model.created_at.desc()]
            paged = query.order_by(*order).offset((page - 1) * limit).limit(limit)
            result = await self.session.execute(paged)
            return list(result.unique().scalars().all()), total
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error paginating {self.name}: {str(e)}",
                exc_info=True,
            )
            raise

    async def create(self, **kwargs) -> ModelType:
        """Create a new record stamped with this tenant."""
        try:
            kwargs["tenant_id"] = self.tenant_id
            instance = self.model(**kwargs)
            self.session.add(instance)
            await self.session.flush()
            return instance
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error creating {self.name}: {str(e)}",
                exc_info=True,
            )
            raise

    async def update(self, id: UUID, **kwargs) -> Optional[ModelType]:
        """Update an existing record of this tenant.

        Returns:
            The updated record if found, None otherwise
        """
        try:
            instance = await self.get_by_id(id)
            if not instance:
                return None
            kwargs.pop("tenant_id", None)
            for key, value in kwargs.items():
                if hasattr(instance, key):
                    setattr(instance, key, value)
            await self.session.flush()
            return instance
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error updating {self.name} {id}: {str(e)}",
                exc_info=True,
            )
            raise

    async def update_where(self, *conditions, **values) -> int:
        """Conditional write: ``UPDATE ... WHERE tenant AND conditions``.

        Returns:
            Number of rows changed. Zero means a precondition did not hold
            at write time.
        """
        if hasattr(self.model, "updated_at"):
            values.setdefault("updated_at", datetime.now(timezone.utc))
        try:
            stmt = (
                update(self.model)
                .where(self.model.tenant_id == self.tenant_id, *conditions)
                .values(**values)
                .execution_options(synchronize_session="fetch")
            )
            result = await self.session.execute(stmt)
            return result.rowcount or 0
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error in conditional update of {self.name}: {str(e)}",
                exc_info=True,
            )
            raise

    async def transition(self, id: UUID, expected_status, new_status: str, **values) -> bool:
        """Move one record to ``new_status`` only if it is still in ``expected_status``.

        ``expected_status`` may be a single status or a collection.
        """
        expected = (
            [expected_status] if isinstance(expected_status, str) else list(expected_status)
        )
        changed = await self.update_where(
            self.model.id == id,
            self.model.status.in_(expected),
            status=new_status,
            **values,
        )
        return changed == 1

    async def delete(self, id: UUID) -> bool:
        """Hard-delete a record of this tenant.

        Returns:
            True if deleted, False if not found
        """
        try:
            stmt = delete(self.model).where(
                self.model.tenant_id == self.tenant_id, self.model.id == id
            )
            result = await self.session.execute(stmt)
            return (result.rowcount or 0) > 0
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error deleting {self.name} {id}: {str(e)}",
                exc_info=True,
            )
            raise

    async def count(self, filters: Optional[Dict[str, Any]] = None, *conditions) -> int:
        """Count this tenant's records matching filters and extra conditions."""
        try:
            query = select(func.count()).select_from(self.model).where(
                self.model.tenant_id == self.tenant_id, *conditions
            )
            query = self._apply_filters(query, filters)
            result = await self.session.execute(query)
            return result.scalar_one()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error counting {self.name}: {str(e)}",
                exc_info=True,
            )
            raise

    async def next_sequence(self, number_column, prefix: str) -> int:
        """Next 1-based sequence for numbers sharing ``prefix`` in this tenant.

        Uniqueness is backed by a (tenant_id, number) constraint; a concurrent
        insert with the same number fails that constraint instead of
        duplicating it.
        """
        return await self.count(None, number_column.like(f"{prefix}%")) + 1
