from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database.models import Order
from app.repositories.base_repository import TenantRepository

ORDER_DETAIL_OPTIONS = (
    selectinload(Order.stops),
    selectinload(Order.loads),
    selectinload(Order.customer),
)


class OrderRepository(TenantRepository[Order]):
    """Repository for customer orders."""

    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, Order, tenant_id)

    async def get_detail(self, order_id: UUID) -> Optional[Order]:
        return await self.get_by_id(order_id, ORDER_DETAIL_OPTIONS)

    async def search(
        self,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        customer_id: Optional[UUID] = None,
        sales_rep_id: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Order], int]:
        query = self.select().options(selectinload(Order.stops))
        if status:
            query = query.where(Order.status == status)
        if customer_id:
            query = query.where(Order.customer_id == customer_id)
        if sales_rep_id:
            query = query.where(Order.sales_rep_id == sales_rep_id)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    Order.order_number.ilike(pattern),
                    Order.customer_reference.ilike(pattern),
                    Order.po_number.ilike(pattern),
                )
            )
        return await self.paginate(query, page, limit)
