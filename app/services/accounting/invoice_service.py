"""Customer invoices, receivables aging and statements."""

from collections import OrderedDict
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from io import BytesIO
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.lifecycle import InvoiceStatus, LoadStatus, OrderStatus, assert_transition
from app.database.models import Invoice, InvoiceLineItem, Payment
from app.repositories.accounting_repository import InvoiceRepository, PaymentRepository
from app.repositories.crm_repository import CompanyRepository
from app.repositories.load_repository import LoadRepository
from app.repositories.order_repository import OrderRepository
from app.schemas.accounting import (
    AgingReport,
    AgingRow,
    CustomerStatement,
    InvoiceCreate,
    InvoiceLineIn,
    InvoiceOut,
    InvoiceUpdate,
    StatementLine,
)
from app.services.base_service import BaseService, page_envelope
from app.services.documents.pdf_service import PDFDocumentService
from app.utils.logging import get_logger
from app.utils.numbering import format_sequential

LOGGER = get_logger(__name__)

INVOICE_PREFIX = "INV"
EDITABLE_STATUSES = frozenset({InvoiceStatus.DRAFT.value, InvoiceStatus.PENDING.value})
AGING_BUCKETS = ("current", "days_1_30", "days_31_60", "days_61_90", "days_90_plus")
# Payments that no longer count against a customer's balance
EXCLUDED_PAYMENT_STATUSES = frozenset({"BOUNCED"})


def payment_terms_days(terms: Optional[str]) -> int:
    """Days until due for terms like ``NET30``; ``DUE_ON_RECEIPT`` is zero."""
    terms = (terms or settings.accounting.default_payment_terms).upper()
    if terms.startswith("NET"):
        try:
            return int(terms[3:])
        except ValueError:
            raise ValidationError(f"Unrecognized payment terms: {terms}")
    if terms in ("DUE_ON_RECEIPT", "COD"):
        return 0
    raise ValidationError(f"Unrecognized payment terms: {terms}")


def line_amount(quantity: Decimal, unit_price_cents: int) -> int:
    return int((Decimal(quantity) * unit_price_cents).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def aging_bucket(due_date: date, as_of: date) -> str:
    days = (as_of - due_date).days
    if days <= 0:
        return "current"
    if days <= 30:
        return "days_1_30"
    if days <= 60:
        return "days_31_60"
    if days <= 90:
        return "days_61_90"
    return "days_90_plus"


def build_aging(invoices: Iterable[Invoice], as_of: date) -> AgingReport:
    """Bucket open balances by days past due, per customer and overall."""
    rows: "OrderedDict[UUID, AgingRow]" = OrderedDict()
    totals = {bucket: 0 for bucket in AGING_BUCKETS}
    for invoice in invoices:
        balance = invoice.balance_due_cents or 0
        if balance <= 0:
            continue
        row = rows.get(invoice.company_id)
        if row is None:
            company = getattr(invoice, "company", None)
            row = rows[invoice.company_id] = AgingRow(
                company_id=invoice.company_id, company_name=company.name if company else None
            )
        bucket = aging_bucket(invoice.due_date, as_of)
        setattr(row, bucket, getattr(row, bucket) + balance)
        row.total += balance
        totals[bucket] += balance
    totals["total"] = sum(totals[bucket] for bucket in AGING_BUCKETS)
    customers = sorted(rows.values(), key=lambda r: -r.total)
    return AgingReport(as_of=as_of, totals=totals, customers=customers)


def build_statement_lines(
    invoices: Iterable[Invoice], payments: Iterable[Payment], opening_balance: int
) -> List[StatementLine]:
    """Charges and payments in date order with a running balance."""
    entries = [(inv.invoice_date, 0, "INVOICE", inv.invoice_number, inv.total_cents, 0) for inv in invoices]
    entries += [(pmt.payment_date, 1, "PAYMENT", pmt.payment_number, 0, pmt.amount_cents) for pmt in payments]
    entries.sort(key=lambda e: (e[0], e[1], e[3]))

    balance = opening_balance
    lines = []
    for entry_date, _, kind, reference, charges, paid in entries:
        balance += charges - paid
        lines.append(
            StatementLine(
                date=entry_date,
                type=kind,
                reference=reference,
                charges_cents=charges,
                payments_cents=paid,
                balance_cents=balance,
            )
        )
    return lines


def _billable(invoices: Iterable[Invoice]) -> List[Invoice]:
    return [i for i in invoices if i.status != InvoiceStatus.DRAFT.value]


def _counted(payments: Iterable[Payment]) -> List[Payment]:
    return [p for p in payments if p.status not in EXCLUDED_PAYMENT_STATUSES]


class InvoiceService(BaseService):
    """Service for customer invoices and receivables reporting."""

    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, tenant_id)
        self.invoice_repo = InvoiceRepository(session, tenant_id)
        self.payment_repo = PaymentRepository(session, tenant_id)
        self.company_repo = CompanyRepository(session, tenant_id)
        self.load_repo = LoadRepository(session, tenant_id)
        self.order_repo = OrderRepository(session, tenant_id)
        self.pdf_service = PDFDocumentService()

    async def create_invoice(self, payload: InvoiceCreate) -> Invoice:
        return await self.execute("create_invoice", payload=payload)

    async def list_invoices(self, page: int = 1, limit: int = 20, **filters) -> Dict[str, Any]:
        return await self.execute("list_invoices", page=page, limit=limit, filters=filters)

    async def get_invoice(self, invoice_id: UUID) -> Invoice:
        return await self.execute("get_invoice", invoice_id=invoice_id)

    async def update_invoice(self, invoice_id: UUID, payload: InvoiceUpdate) -> Invoice:
        return await self.execute("update_invoice", invoice_id=invoice_id, payload=payload)

    async def send_invoice(self, invoice_id: UUID) -> Invoice:
        return await self.execute("send_invoice", invoice_id=invoice_id)

    async def mark_viewed(self, invoice_id: UUID) -> Invoice:
        return await self.execute("mark_viewed", invoice_id=invoice_id)

    async def void_invoice(self, invoice_id: UUID, reason: str) -> Invoice:
        return await self.execute("void_invoice", invoice_id=invoice_id, reason=reason)

    async def generate_from_load(self, load_id: UUID, payment_terms: Optional[str] = None) -> Invoice:
        return await self.execute("generate_from_load", load_id=load_id, payment_terms=payment_terms)

    async def mark_overdue(self, today: Optional[date] = None) -> int:
        return await self.execute("mark_overdue", today=today)

    async def aging_report(self, as_of: Optional[date] = None, company_id: Optional[UUID] = None) -> AgingReport:
        return await self.execute("aging_report", as_of=as_of, company_id=company_id)

    async def customer_statement(
        self, company_id: UUID, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> CustomerStatement:
        return await self.execute(
            "customer_statement", company_id=company_id, start_date=start_date, end_date=end_date
        )

    async def invoice_pdf(self, invoice_id: UUID) -> BytesIO:
        return await self.execute("invoice_pdf", invoice_id=invoice_id)

    async def statement_pdf(
        self, company_id: UUID, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> BytesIO:
        return await self.execute("statement_pdf", company_id=company_id, start_date=start_date, end_date=end_date)

    def _build_lines(self, lines: List[InvoiceLineIn]) -> List[InvoiceLineItem]:
        return [
            InvoiceLineItem(
                tenant_id=self.tenant_id,
                line_number=number,
                item_type=line.item_type,
                description=line.description,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                amount_cents=line_amount(line.quantity, line.unit_price_cents),
            )
            for number, line in enumerate(lines, start=1)
        ]

    async def _insert(
        self,
        company_id: UUID,
        lines: List[InvoiceLineIn],
        invoice_date: Optional[date] = None,
        payment_terms: Optional[str] = None,
        due_date: Optional[date] = None,
        tax_cents: int = 0,
        **extra,
    ) -> Invoice:
        invoice_date = invoice_date or date.today()
        terms = (payment_terms or settings.accounting.default_payment_terms).upper()
        due_date = due_date or invoice_date + timedelta(days=payment_terms_days(terms))
        if due_date < invoice_date:
            raise ValidationError("Due date cannot be before the invoice date")
        items = self._build_lines(lines)
        subtotal = sum(item.amount_cents for item in items)
        total = subtotal + tax_cents

        sequence = await self.invoice_repo.next_sequence(Invoice.invoice_number, f"{INVOICE_PREFIX}-")
        return await self.invoice_repo.create(
            invoice_number=format_sequential(INVOICE_PREFIX, sequence),
            company_id=company_id,
            status=InvoiceStatus.DRAFT.value,
            invoice_date=invoice_date,
            due_date=due_date,
            payment_terms=terms,
            subtotal_cents=subtotal,
            tax_cents=tax_cents,
            total_cents=total,
            amount_paid_cents=0,
            balance_due_cents=total,
            line_items=items,
            **extra,
        )

    async def _create_invoice(self, payload: InvoiceCreate) -> Invoice:
        if await self.company_repo.get_by_id(payload.company_id) is None:
            raise NotFoundError("Company", payload.company_id)
        async with self.transaction():
            invoice = await self._insert(
                payload.company_id,
                payload.line_items,
                invoice_date=payload.invoice_date,
                payment_terms=payload.payment_terms,
                due_date=payload.due_date,
                tax_cents=payload.tax_cents,
                order_id=payload.order_id,
                load_id=payload.load_id,
                notes=payload.notes,
            )
        LOGGER.info(f"Created invoice {invoice.invoice_number}", extra={"tenant_id": str(self.tenant_id)})
        return invoice

    async def _list_invoices(self, page: int, limit: int, filters: Dict[str, Any]) -> Dict[str, Any]:
        invoices, total = await self.invoice_repo.search(page=page, limit=limit, **filters)
        return page_envelope([InvoiceOut.model_validate(i) for i in invoices], total, page, limit)

    async def _get_invoice(self, invoice_id: UUID) -> Invoice:
        invoice = await self.invoice_repo.get_detail(invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)
        return invoice

    async def _update_invoice(self, invoice_id: UUID, payload: InvoiceUpdate) -> Invoice:
        invoice = await self._get_invoice(invoice_id)
        if invoice.status not in EDITABLE_STATUSES:
            raise ValidationError(f"Invoice {invoice.invoice_number} is {invoice.status} and can no longer be edited")

        changes = payload.model_dump(exclude_unset=True, exclude={"line_items"})
        async with self.transaction():
            for key, value in changes.items():
                if value is not None:
                    setattr(invoice, key, value)
            if payload.payment_terms and not payload.due_date:
                invoice.payment_terms = payload.payment_terms.upper()
                invoice.due_date = invoice.invoice_date + timedelta(days=payment_terms_days(invoice.payment_terms))
            if payload.line_items is not None:
                if not payload.line_items:
                    raise ValidationError("An invoice needs at least one line item")
                invoice.line_items = self._build_lines(payload.line_items)
            invoice.subtotal_cents = sum(item.amount_cents for item in invoice.line_items)
            invoice.total_cents = invoice.subtotal_cents + (invoice.tax_cents or 0)
            invoice.balance_due_cents = invoice.total_cents - (invoice.amount_paid_cents or 0)
            await self.session.flush()
        return invoice

    async def _move(self, invoice: Invoice, to_status: str, **values) -> Invoice:
        assert_transition("invoice", invoice.status, to_status)
        changed = await self.invoice_repo.transition(invoice.id, invoice.status, to_status, **values)
        if not changed:
            raise ConflictError(f"Invoice {invoice.invoice_number} changed concurrently; reload and retry")
        return invoice

    async def _send_invoice(self, invoice_id: UUID) -> Invoice:
        invoice = await self._get_invoice(invoice_id)
        async with self.transaction():
            await self._move(invoice, InvoiceStatus.SENT.value, sent_at=datetime.now(timezone.utc))
        LOGGER.info(f"Sent invoice {invoice.invoice_number}", extra={"tenant_id": str(self.tenant_id)})
        return invoice

    async def _mark_viewed(self, invoice_id: UUID) -> Invoice:
        invoice = await self._get_invoice(invoice_id)
        async with self.transaction():
            await self._move(invoice, InvoiceStatus.VIEWED.value, viewed_at=datetime.now(timezone.utc))
        return invoice

    async def _void_invoice(self, invoice_id: UUID, reason: str) -> Invoice:
        invoice = await self._get_invoice(invoice_id)
        if invoice.amount_paid_cents:
            raise ValidationError(
                f"Invoice {invoice.invoice_number} has payments applied; reverse them before voiding"
            )
        assert_transition("invoice", invoice.status, InvoiceStatus.VOID.value)
        async with self.transaction():
            changed = await self.invoice_repo.update_where(
                Invoice.id == invoice.id,
                Invoice.status == invoice.status,
                Invoice.amount_paid_cents == 0,
                status=InvoiceStatus.VOID.value,
                balance_due_cents=0,
                voided_at=datetime.now(timezone.utc),
                void_reason=reason,
            )
            if not changed:
                raise ConflictError(f"Invoice {invoice.invoice_number} changed concurrently; reload and retry")
        LOGGER.info(f"Voided invoice {invoice.invoice_number}", extra={"tenant_id": str(self.tenant_id)})
        return invoice

    async def _generate_from_load(self, load_id: UUID, payment_terms: Optional[str]) -> Invoice:
        load = await self.load_repo.get_by_id(load_id)
        if load is None:
            raise NotFoundError("Load", load_id)
        if load.status not in (LoadStatus.DELIVERED.value, LoadStatus.COMPLETED.value):
            raise ValidationError(f"Load {load.load_number} must be DELIVERED or COMPLETED to invoice; it is {load.status}")
        if load.customer_id is None:
            raise ValidationError(f"Load {load.load_number} has no customer to bill")
        already = await self.invoice_repo.count(
            {"load_id": load.id}, Invoice.status != InvoiceStatus.VOID.value
        )
        if already:
            raise ConflictError(f"Load {load.load_number} has already been invoiced")

        lines = [InvoiceLineIn(item_type="LINEHAUL", description=f"Linehaul - Load {load.load_number}",
                               unit_price_cents=load.customer_rate_cents or 0)]
        if load.accessorial_charges_cents:
            lines.append(InvoiceLineIn(item_type="ACCESSORIAL", description="Accessorial charges",
                                       unit_price_cents=load.accessorial_charges_cents))

        async with self.transaction():
            invoice = await self._insert(
                load.customer_id,
                lines,
                payment_terms=payment_terms,
                order_id=load.order_id,
                load_id=load.id,
            )
            if load.order_id:
                await self.order_repo.transition(load.order_id, OrderStatus.DELIVERED.value, OrderStatus.INVOICED.value)
        LOGGER.info(
            f"Generated invoice {invoice.invoice_number} from load {load.load_number}",
            extra={"tenant_id": str(self.tenant_id)},
        )
        return invoice

    async def _mark_overdue(self, today: Optional[date]) -> int:
        today = today or date.today()
        marked = 0
        async with self.transaction():
            for invoice in await self.invoice_repo.past_due(today):
                if await self.invoice_repo.transition(invoice.id, invoice.status, InvoiceStatus.OVERDUE.value):
                    marked += 1
        if marked:
            LOGGER.info(f"Marked {marked} invoice(s) overdue", extra={"tenant_id": str(self.tenant_id)})
        return marked

    async def _aging_report(self, as_of: Optional[date], company_id: Optional[UUID]) -> AgingReport:
        invoices = await self.invoice_repo.open_invoices(company_id)
        return build_aging(invoices, as_of or date.today())

    async def _customer_statement(
        self, company_id: UUID, start_date: Optional[date], end_date: Optional[date]
    ) -> CustomerStatement:
        company = await self.company_repo.get_by_id(company_id)
        if company is None:
            raise NotFoundError("Company", company_id)
        end_date = end_date or date.today()
        start_date = start_date or end_date - timedelta(days=settings.accounting.statement_days)
        if start_date > end_date:
            raise ValidationError("Statement start date must be on or before its end date")

        before = start_date - timedelta(days=1)
        prior_invoices = _billable(await self.invoice_repo.for_company_between(company_id, date.min, before))
        prior_payments = _counted(await self.payment_repo.for_company_between(company_id, date.min, before))
        opening = sum(i.total_cents for i in prior_invoices) - sum(p.amount_cents for p in prior_payments)

        invoices = _billable(await self.invoice_repo.for_company_between(company_id, start_date, end_date))
        payments = _counted(await self.payment_repo.for_company_between(company_id, start_date, end_date))
        lines = build_statement_lines(invoices, payments, opening)
        return CustomerStatement(
            company_id=company.id,
            company_name=company.name,
            start_date=start_date,
            end_date=end_date,
            opening_balance_cents=opening,
            closing_balance_cents=lines[-1].balance_cents if lines else opening,
            lines=lines,
        )

    async def _invoice_pdf(self, invoice_id: UUID) -> BytesIO:
        invoice = await self._get_invoice(invoice_id)
        return self.pdf_service.invoice(invoice, invoice.company)

    async def _statement_pdf(self, company_id: UUID, start_date: Optional[date], end_date: Optional[date]) -> BytesIO:
        statement = await self._customer_statement(company_id, start_date, end_date)
        return self.pdf_service.statement(statement)
