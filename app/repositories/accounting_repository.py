from datetime import date
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.lifecycle import InvoiceStatus, SettlementStatus
from app.database.models import Invoice, Payment, PaymentApplication, Settlement, SettlementLineItem
from app.repositories.base_repository import TenantRepository

# Invoices that still carry a receivable balance
OPEN_INVOICE_STATUSES = (
    InvoiceStatus.SENT.value,
    InvoiceStatus.VIEWED.value,
    InvoiceStatus.PARTIAL.value,
    InvoiceStatus.OVERDUE.value,
)


class InvoiceRepository(TenantRepository[Invoice]):
    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, Invoice, tenant_id)

    async def get_detail(self, invoice_id: UUID) -> Optional[Invoice]:
        return await self.get_by_id(
            invoice_id, (selectinload(Invoice.line_items), selectinload(Invoice.company))
        )

    async def search(
        self,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        company_id: Optional[UUID] = None,
        load_id: Optional[UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Tuple[List[Invoice], int]:
        query = self.select().options(selectinload(Invoice.line_items))
        if status:
            query = query.where(Invoice.status == status)
        if company_id:
            query = query.where(Invoice.company_id == company_id)
        if load_id:
            query = query.where(Invoice.load_id == load_id)
        if date_from:
            query = query.where(Invoice.invoice_date >= date_from)
        if date_to:
            query = query.where(Invoice.invoice_date <= date_to)
        return await self.paginate(query, page, limit)

    async def open_invoices(self, company_id: Optional[UUID] = None) -> List[Invoice]:
        return await self.get_all(
            limit=10000,
            filters={"status": OPEN_INVOICE_STATUSES, "company_id": company_id},
            order_by=[Invoice.due_date.asc()],
            options=[selectinload(Invoice.company)],
        )

    async def past_due(self, today: date) -> List[Invoice]:
        query = self.select().where(
            Invoice.status.in_(
                [InvoiceStatus.SENT.value, InvoiceStatus.VIEWED.value, InvoiceStatus.PARTIAL.value]
            ),
            Invoice.due_date < today,
            Invoice.balance_due_cents > 0,
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def for_company_between(self, company_id: UUID, start: date, end: date) -> List[Invoice]:
        query = self.select().where(
            Invoice.company_id == company_id,
            Invoice.invoice_date >= start,
            Invoice.invoice_date <= end,
            Invoice.status != InvoiceStatus.VOID.value,
        )
        result = await self.session.execute(query.order_by(Invoice.invoice_date.asc()))
        return list(result.scalars().all())

    async def get_many(self, invoice_ids: Iterable[UUID]) -> List[Invoice]:
        ids = list(invoice_ids)
        result = await self.session.execute(self.select().where(Invoice.id.in_(ids)))
        return list(result.scalars().all())


class PaymentRepository(TenantRepository[Payment]):
    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, Payment, tenant_id)

    async def get_detail(self, payment_id: UUID) -> Optional[Payment]:
        return await self.get_by_id(payment_id, (selectinload(Payment.applications),))

    async def search(
        self,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        company_id: Optional[UUID] = None,
    ) -> Tuple[List[Payment], int]:
        query = self.select().options(selectinload(Payment.applications))
        if status:
            query = query.where(Payment.status == status)
        if company_id:
            query = query.where(Payment.company_id == company_id)
        return await self.paginate(query, page, limit)

    async def for_company_between(self, company_id: UUID, start: date, end: date) -> List[Payment]:
        query = self.select().where(
            Payment.company_id == company_id,
            Payment.payment_date >= start,
            Payment.payment_date <= end,
        )
        result = await self.session.execute(query.order_by(Payment.payment_date.asc()))
        return list(result.scalars().all())


class PaymentApplicationRepository(TenantRepository[PaymentApplication]):
    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, PaymentApplication, tenant_id)


class SettlementRepository(TenantRepository[Settlement]):
    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, Settlement, tenant_id)

    async def get_detail(self, settlement_id: UUID) -> Optional[Settlement]:
        return await self.get_by_id(
            settlement_id, (selectinload(Settlement.line_items), selectinload(Settlement.carrier))
        )

    async def search(
        self,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        carrier_id: Optional[UUID] = None,
    ) -> Tuple[List[Settlement], int]:
        query = self.select().options(selectinload(Settlement.line_items))
        if status:
            query = query.where(Settlement.status == status)
        if carrier_id:
            query = query.where(Settlement.carrier_id == carrier_id)
        return await self.paginate(query, page, limit)

    async def unpaid(self) -> List[Settlement]:
        return await self.get_all(
            limit=10000,
            filters={
                "status": (
                    SettlementStatus.CREATED.value,
                    SettlementStatus.APPROVED.value,
                    SettlementStatus.PROCESSED.value,
                )
            },
            order_by=[Settlement.due_date.asc()],
        )

    async def settled_load_ids(self, load_ids: Iterable[UUID]) -> List[UUID]:
        """Loads already carried on a non-void settlement."""
        ids = list(load_ids)
        if not ids:
            return []
        query = (
            select(SettlementLineItem.load_id)
            .join(Settlement, SettlementLineItem.settlement_id == Settlement.id)
            .where(
                Settlement.tenant_id == self.tenant_id,
                SettlementLineItem.load_id.in_(ids),
                Settlement.status != SettlementStatus.VOID.value,
            )
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())
