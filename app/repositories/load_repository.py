from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.lifecycle import LoadStatus
from app.database.models import CheckCall, Load, LoadStatusHistory, Stop
from app.repositories.base_repository import TenantRepository
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

LOAD_DETAIL_OPTIONS = (
    selectinload(Load.stops),
    selectinload(Load.carrier),
    selectinload(Load.customer),
)

DELIVERED_STATUSES = (LoadStatus.DELIVERED.value, LoadStatus.COMPLETED.value)


class LoadRepository(TenantRepository[Load]):
    """Repository for loads of one tenant."""

    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, Load, tenant_id)

    async def get_detail(self, load_id: UUID) -> Optional[Load]:
        return await self.get_by_id(load_id, LOAD_DETAIL_OPTIONS)

    async def search(
        self,
        page: int = 1,
        limit: int = 20,
        statuses: Optional[Iterable[str]] = None,
        carrier_id: Optional[UUID] = None,
        customer_id: Optional[UUID] = None,
        order_id: Optional[UUID] = None,
        equipment_type: Optional[str] = None,
        search: Optional[str] = None,
        pickup_from: Optional[datetime] = None,
        pickup_to: Optional[datetime] = None,
        updated_from: Optional[datetime] = None,
        updated_to: Optional[datetime] = None,
    ) -> Tuple[List[Load], int]:
        query = self.select().options(*LOAD_DETAIL_OPTIONS)
        if statuses:
            query = query.where(Load.status.in_(list(statuses)))
        if carrier_id:
            query = query.where(Load.carrier_id == carrier_id)
        if customer_id:
            query = query.where(Load.customer_id == customer_id)
        if order_id:
            query = query.where(Load.order_id == order_id)
        if equipment_type:
            query = query.where(Load.equipment_type == equipment_type)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(Load.load_number.ilike(pattern), Load.commodity.ilike(pattern))
            )
        if pickup_from:
            query = query.where(Load.pickup_date >= pickup_from)
        if pickup_to:
            query = query.where(Load.pickup_date <= pickup_to)
        if updated_from:
            query = query.where(Load.updated_at >= updated_from)
        if updated_to:
            query = query.where(Load.updated_at <= updated_to)
        return await self.paginate(query, page, limit)

    async def status_counts(self) -> Dict[str, int]:
        try:
            query = (
                select(Load.status, func.count())
                .where(Load.tenant_id == self.tenant_id)
                .group_by(Load.status)
            )
            result = await self.session.execute(query)
            return {status: count for status, count in result.all()}
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting loads by status: {e}", exc_info=True)
            raise

    async def total_revenue_cents(self) -> int:
        try:
            query = select(func.coalesce(func.sum(Load.customer_rate_cents), 0)).where(
                Load.tenant_id == self.tenant_id,
                Load.status != LoadStatus.CANCELLED.value,
            )
            return int((await self.session.execute(query)).scalar_one())
        except SQLAlchemyError as e:
            self.logger.error(f"Error summing load revenue: {e}", exc_info=True)
            raise

    async def board_loads(
        self,
        terminal_since: datetime,
        carrier_id: Optional[UUID] = None,
        equipment_type: Optional[str] = None,
        pickup_from: Optional[datetime] = None,
        pickup_to: Optional[datetime] = None,
    ) -> List[Load]:
        """Loads shown on the dispatch board.

        Open loads are always included; COMPLETED and CANCELLED loads only
        when they changed after ``terminal_since``.
        """
        terminal = (LoadStatus.COMPLETED.value, LoadStatus.CANCELLED.value)
        query = self.select().options(selectinload(Load.stops), selectinload(Load.carrier))
        query = query.where(
            or_(
                Load.status.notin_(terminal),
                and_(Load.status.in_(terminal), Load.updated_at >= terminal_since),
            )
        )
        if carrier_id:
            query = query.where(Load.carrier_id == carrier_id)
        if equipment_type:
            query = query.where(Load.equipment_type == equipment_type)
        if pickup_from:
            query = query.where(Load.pickup_date >= pickup_from)
        if pickup_to:
            query = query.where(Load.pickup_date <= pickup_to)
        try:
            result = await self.session.execute(query.order_by(Load.pickup_date.asc().nulls_last()))
            return list(result.unique().scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading dispatch board: {e}", exc_info=True)
            raise

    async def count_active_for_carrier(self, carrier_id: UUID, active_statuses: Iterable[str]) -> int:
        return await self.count(None, Load.carrier_id == carrier_id, Load.status.in_(list(active_statuses)))

    async def carrier_performance(self, carrier_ids: Iterable[UUID]) -> Dict[UUID, Dict[str, Any]]:
        """Delivered-load and on-time counts per carrier.

        A load is on time when it was delivered no later than its scheduled
        delivery date; loads without a schedule count as on time.
        """
        ids = list(carrier_ids)
        if not ids:
            return {}
        on_time = case(
            (Load.delivery_date.is_(None), 1),
            (Load.delivered_at <= Load.delivery_date, 1),
            else_=0,
        )
        query = (
            select(
                Load.carrier_id,
                func.count().label("delivered"),
                func.coalesce(func.sum(on_time), 0).label("on_time"),
            )
            .where(
                Load.tenant_id == self.tenant_id,
                Load.carrier_id.in_(ids),
                Load.status.in_(DELIVERED_STATUSES),
            )
            .group_by(Load.carrier_id)
        )
        try:
            result = await self.session.execute(query)
            return {
                row.carrier_id: {"delivered": int(row.delivered), "on_time": int(row.on_time)}
                for row in result.all()
            }
        except SQLAlchemyError as e:
            self.logger.error(f"Error computing carrier performance: {e}", exc_info=True)
            raise


class LoadStatusHistoryRepository(TenantRepository[LoadStatusHistory]):
    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, LoadStatusHistory, tenant_id)

    async def for_load(self, load_id: UUID) -> List[LoadStatusHistory]:
        return await self.get_all(
            limit=500,
            filters={"load_id": load_id},
            order_by=[LoadStatusHistory.created_at.asc()],
        )


class CheckCallRepository(TenantRepository[CheckCall]):
    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, CheckCall, tenant_id)

    async def for_load(self, load_id: UUID) -> List[CheckCall]:
        return await self.get_all(
            limit=500,
            filters={"load_id": load_id},
            order_by=[CheckCall.created_at.desc()],
        )


class StopRepository(TenantRepository[Stop]):
    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, Stop, tenant_id)


class PublicTrackingRepository:
    """Unauthenticated lookup of a load by its tracking code.

    This is the one read path not bound to a tenant: tracking codes are
    globally unique and the caller has no tenant. It returns the ORM row;
    the tracking service projects it onto the narrowed public schema.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_tracking_code(self, tracking_code: str) -> Optional[Load]:
        try:
            query = (
                select(Load)
                .where(Load.tracking_code == tracking_code)
                .options(selectinload(Load.stops), selectinload(Load.customer))
            )
            result = await self.session.execute(query)
            return result.unique().scalar_one_or_none()
        except SQLAlchemyError as e:
            LOGGER.error(f"Error looking up tracking code: {e}", exc_info=True)
            raise
