from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.lifecycle import CarrierStatus
from app.database.models import Carrier, CarrierInsurance
from app.repositories.base_repository import TenantRepository


class CarrierRepository(TenantRepository[Carrier]):
    """Repository for carriers and their insurance certificates."""

    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, Carrier, tenant_id)

    async def get_detail(self, carrier_id: UUID) -> Optional[Carrier]:
        return await self.get_by_id(carrier_id, (selectinload(Carrier.insurances),))

    async def get_by_mc_number(self, mc_number: str) -> Optional[Carrier]:
        result = await self.session.execute(self.select().where(Carrier.mc_number == mc_number))
        return result.scalar_one_or_none()

    async def search(
        self,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        tier: Optional[str] = None,
        state: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Carrier], int]:
        query = self.select()
        if status:
            query = query.where(Carrier.status == status)
        if tier:
            query = query.where(Carrier.tier == tier)
        if state:
            query = query.where(Carrier.state == state)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(Carrier.name.ilike(pattern), Carrier.mc_number.ilike(pattern), Carrier.dot_number.ilike(pattern))
            )
        return await self.paginate(query, page, limit, order_by=[Carrier.name.asc()])

    async def active_with_insurance(self) -> List[Carrier]:
        return await self.get_all(
            limit=1000,
            filters={"status": CarrierStatus.ACTIVE.value},
            order_by=[Carrier.name.asc()],
            options=[selectinload(Carrier.insurances)],
        )


class CarrierInsuranceRepository(TenantRepository[CarrierInsurance]):
    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, CarrierInsurance, tenant_id)

    async def for_carrier(self, carrier_id: UUID) -> List[CarrierInsurance]:
        return await self.get_all(
            filters={"carrier_id": carrier_id},
            order_by=[CarrierInsurance.expiration_date.desc()],
        )
