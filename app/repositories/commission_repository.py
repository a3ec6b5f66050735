from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database.models import CommissionAssignment, CommissionEntry, CommissionPlan
from app.repositories.base_repository import TenantRepository


class CommissionPlanRepository(TenantRepository[CommissionPlan]):
    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, CommissionPlan, tenant_id)


class CommissionAssignmentRepository(TenantRepository[CommissionAssignment]):
    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, CommissionAssignment, tenant_id)

    async def active_for_user(self, user_id: str) -> Optional[CommissionAssignment]:
        query = (
            self.select()
            .where(CommissionAssignment.user_id == user_id, CommissionAssignment.status == "ACTIVE")
            .options(selectinload(CommissionAssignment.plan))
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def end_active_for_user(self, user_id: str, end_date: date) -> int:
        return await self.update_where(
            CommissionAssignment.user_id == user_id,
            CommissionAssignment.status == "ACTIVE",
            status="ENDED",
            end_date=end_date,
        )


class CommissionEntryRepository(TenantRepository[CommissionEntry]):
    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, CommissionEntry, tenant_id)

    async def for_load(self, load_id: UUID, user_id: str) -> Optional[CommissionEntry]:
        query = self.select().where(
            CommissionEntry.load_id == load_id,
            CommissionEntry.user_id == user_id,
            CommissionEntry.entry_type == "LOAD_COMMISSION",
            CommissionEntry.status != "REVERSED",
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def earnings(self, user_id: str, start: date, end: date) -> List[CommissionEntry]:
        query = self.select().where(
            CommissionEntry.user_id == user_id,
            CommissionEntry.commission_period >= start,
            CommissionEntry.commission_period <= end,
            CommissionEntry.status.in_(["APPROVED", "PAID"]),
        )
        result = await self.session.execute(query.order_by(CommissionEntry.commission_period.asc()))
        return list(result.scalars().all())
