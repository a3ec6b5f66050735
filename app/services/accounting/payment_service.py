"""Customer payments and their application to open invoices."""

from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, InvalidStateTransitionError, NotFoundError, ValidationError
from app.core.lifecycle import InvoiceStatus
from app.database.models import Invoice, Payment, PaymentApplication
from app.repositories.accounting_repository import (
    InvoiceRepository,
    PaymentApplicationRepository,
    PaymentRepository,
)
from app.repositories.crm_repository import CompanyRepository
from app.schemas.accounting import PaymentApplicationIn, PaymentCreate, PaymentOut
from app.services.base_service import BaseService, page_envelope
from app.utils.logging import get_logger
from app.utils.numbering import format_sequential

LOGGER = get_logger(__name__)

PAYMENT_PREFIX = "PMT"
RECEIVED = "RECEIVED"
PARTIAL = "PARTIAL"
APPLIED = "APPLIED"
BOUNCED = "BOUNCED"
APPLICABLE_INVOICE_STATUSES = frozenset({
    InvoiceStatus.SENT.value,
    InvoiceStatus.VIEWED.value,
    InvoiceStatus.PARTIAL.value,
    InvoiceStatus.OVERDUE.value,
})


def payment_status(amount_cents: int, unapplied_cents: int) -> str:
    if unapplied_cents <= 0:
        return APPLIED
    if unapplied_cents < amount_cents:
        return PARTIAL
    return RECEIVED


def reopened_invoice_status(invoice: Invoice, today: date) -> str:
    """Status of an invoice whose payments were taken back."""
    if invoice.amount_paid_cents > 0:
        return InvoiceStatus.PARTIAL.value
    if invoice.due_date < today:
        return InvoiceStatus.OVERDUE.value
    return InvoiceStatus.SENT.value


class PaymentService(BaseService):
    """Service for recording and applying customer payments."""

    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, tenant_id)
        self.payment_repo = PaymentRepository(session, tenant_id)
        self.application_repo = PaymentApplicationRepository(session, tenant_id)
        self.invoice_repo = InvoiceRepository(session, tenant_id)
        self.company_repo = CompanyRepository(session, tenant_id)

    async def record_payment(self, payload: PaymentCreate) -> Payment:
        return await self.execute("record_payment", payload=payload)

    async def list_payments(self, page: int = 1, limit: int = 20, **filters) -> Dict[str, Any]:
        return await self.execute("list_payments", page=page, limit=limit, filters=filters)

    async def get_payment(self, payment_id: UUID) -> Payment:
        return await self.execute("get_payment", payment_id=payment_id)

    async def apply_payment(self, payment_id: UUID, applications: List[PaymentApplicationIn]) -> Payment:
        return await self.execute("apply_payment", payment_id=payment_id, applications=applications)

    async def mark_bounced(self, payment_id: UUID, reason: Optional[str] = None) -> Payment:
        return await self.execute("mark_bounced", payment_id=payment_id, reason=reason)

    async def _record_payment(self, payload: PaymentCreate) -> Payment:
        if await self.company_repo.get_by_id(payload.company_id) is None:
            raise NotFoundError("Company", payload.company_id)
        async with self.transaction():
            sequence = await self.payment_repo.next_sequence(Payment.payment_number, f"{PAYMENT_PREFIX}-")
            payment = await self.payment_repo.create(
                **payload.model_dump(exclude={"payment_date"}),
                payment_number=format_sequential(PAYMENT_PREFIX, sequence),
                payment_date=payload.payment_date or date.today(),
                unapplied_amount_cents=payload.amount_cents,
                status=RECEIVED,
                applications=[],
            )
        LOGGER.info(
            f"Recorded payment {payment.payment_number} for {payload.amount_cents} cents",
            extra={"tenant_id": str(self.tenant_id)},
        )
        return payment

    async def _list_payments(self, page: int, limit: int, filters: Dict[str, Any]) -> Dict[str, Any]:
        payments, total = await self.payment_repo.search(page=page, limit=limit, **filters)
        return page_envelope([PaymentOut.model_validate(p) for p in payments], total, page, limit)

    async def _get_payment(self, payment_id: UUID) -> Payment:
        payment = await self.payment_repo.get_detail(payment_id)
        if payment is None:
            raise NotFoundError("Payment", payment_id)
        return payment

    async def _apply_payment(self, payment_id: UUID, applications: List[PaymentApplicationIn]) -> Payment:
        payment = await self._get_payment(payment_id)
        if payment.status == BOUNCED:
            raise ValidationError(f"Payment {payment.payment_number} bounced and cannot be applied")

        requested = sum(a.amount_cents for a in applications)
        if requested > payment.unapplied_amount_cents:
            raise ValidationError(
                f"Applications total {requested} cents but only {payment.unapplied_amount_cents} cents are unapplied"
            )
        invoice_ids = [a.invoice_id for a in applications]
        if len(set(invoice_ids)) != len(invoice_ids):
            raise ValidationError("Each invoice can appear only once per application request")

        invoices = {i.id: i for i in await self.invoice_repo.get_many(invoice_ids)}
        for application in applications:
            invoice = invoices.get(application.invoice_id)
            if invoice is None:
                raise NotFoundError("Invoice", application.invoice_id)
            if invoice.company_id != payment.company_id:
                raise ValidationError(f"Invoice {invoice.invoice_number} belongs to a different customer")
            if invoice.status not in APPLICABLE_INVOICE_STATUSES:
                raise ValidationError(f"Invoice {invoice.invoice_number} is {invoice.status} and cannot take payments")
            if application.amount_cents > invoice.balance_due_cents:
                raise ValidationError(
                    f"Amount exceeds the {invoice.balance_due_cents} cent balance of invoice {invoice.invoice_number}"
                )

        async with self.transaction():
            for application in applications:
                invoice = invoices[application.invoice_id]
                balance = invoice.balance_due_cents - application.amount_cents
                changed = await self.invoice_repo.update_where(
                    Invoice.id == invoice.id,
                    Invoice.status == invoice.status,
                    Invoice.balance_due_cents >= application.amount_cents,
                    amount_paid_cents=Invoice.amount_paid_cents + application.amount_cents,
                    balance_due_cents=Invoice.balance_due_cents - application.amount_cents,
                    status=InvoiceStatus.PAID.value if balance == 0 else InvoiceStatus.PARTIAL.value,
                )
                if not changed:
                    raise ConflictError(f"Invoice {invoice.invoice_number} changed concurrently; reload and retry")
                await self.application_repo.create(
                    payment_id=payment.id, invoice_id=invoice.id, amount_cents=application.amount_cents
                )

            unapplied = payment.unapplied_amount_cents - requested
            changed = await self.payment_repo.update_where(
                Payment.id == payment.id,
                Payment.unapplied_amount_cents >= requested,
                Payment.status != BOUNCED,
                unapplied_amount_cents=Payment.unapplied_amount_cents - requested,
                status=payment_status(payment.amount_cents, unapplied),
            )
            if not changed:
                raise ConflictError(f"Payment {payment.payment_number} changed concurrently; reload and retry")

        LOGGER.info(
            f"Applied {requested} cents of payment {payment.payment_number} to {len(applications)} invoice(s)",
            extra={"tenant_id": str(self.tenant_id)},
        )
        self.session.expire(payment, ["applications"])
        return await self._get_payment(payment_id)

    async def _mark_bounced(self, payment_id: UUID, reason: Optional[str]) -> Payment:
        payment = await self._get_payment(payment_id)
        if payment.status == BOUNCED:
            raise InvalidStateTransitionError("payment", BOUNCED, BOUNCED, "Payment is already BOUNCED")

        today = date.today()
        applications = list(payment.applications)
        invoices = {i.id: i for i in await self.invoice_repo.get_many(a.invoice_id for a in applications)}

        async with self.transaction():
            for application in applications:
                invoice = invoices.get(application.invoice_id)
                if invoice is None:
                    continue
                invoice.amount_paid_cents -= application.amount_cents
                invoice.balance_due_cents += application.amount_cents
                if invoice.status != InvoiceStatus.VOID.value:
                    invoice.status = reopened_invoice_status(invoice, today)
                await self.application_repo.delete(application.id)

            changed = await self.payment_repo.update_where(
                Payment.id == payment.id,
                Payment.status != BOUNCED,
                status=BOUNCED,
                unapplied_amount_cents=payment.amount_cents,
                notes=reason or payment.notes,
            )
            if not changed:
                raise ConflictError(f"Payment {payment.payment_number} changed concurrently; reload and retry")
            await self.session.flush()

        LOGGER.warning(
            f"Payment {payment.payment_number} bounced; reversed {len(applications)} application(s)",
            extra={"tenant_id": str(self.tenant_id)},
        )
        self.session.expire(payment, ["applications"])
        return await self._get_payment(payment_id)
