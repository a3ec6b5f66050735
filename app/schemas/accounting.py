"""Schemas for invoices, payments received and carrier settlements."""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import Field

from app.schemas.common import CamelModel


class InvoiceLineIn(CamelModel):
    item_type: str = "LINEHAUL"
    description: str = Field(..., min_length=1)
    quantity: Decimal = Field(Decimal("1"), gt=0)
    unit_price_cents: int


class InvoiceLineOut(CamelModel):
    id: UUID
    line_number: int
    item_type: str
    description: str
    quantity: Decimal
    unit_price_cents: int
    amount_cents: int


class InvoiceCreate(CamelModel):
    company_id: UUID
    order_id: Optional[UUID] = None
    load_id: Optional[UUID] = None
    invoice_date: Optional[date] = None
    payment_terms: Optional[str] = None
    due_date: Optional[date] = None
    tax_cents: int = Field(0, ge=0)
    notes: Optional[str] = None
    line_items: List[InvoiceLineIn] = Field(..., min_length=1)


class InvoiceUpdate(CamelModel):
    invoice_date: Optional[date] = None
    payment_terms: Optional[str] = None
    due_date: Optional[date] = None
    tax_cents: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None
    line_items: Optional[List[InvoiceLineIn]] = None


class VoidRequest(CamelModel):
    reason: str = Field(..., min_length=1)


class GenerateFromLoadRequest(CamelModel):
    load_id: UUID
    payment_terms: Optional[str] = None


class InvoiceOut(CamelModel):
    id: UUID
    invoice_number: str
    company_id: UUID
    order_id: Optional[UUID] = None
    load_id: Optional[UUID] = None
    status: str
    invoice_date: date
    due_date: date
    payment_terms: str
    subtotal_cents: int
    tax_cents: int
    total_cents: int
    amount_paid_cents: int
    balance_due_cents: int
    notes: Optional[str] = None
    sent_at: Optional[datetime] = None
    viewed_at: Optional[datetime] = None
    voided_at: Optional[datetime] = None
    void_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    line_items: List[InvoiceLineOut] = Field(default_factory=list)


class AgingRow(CamelModel):
    company_id: UUID
    company_name: Optional[str] = None
    current: int = 0
    days_1_30: int = 0
    days_31_60: int = 0
    days_61_90: int = 0
    days_90_plus: int = 0
    total: int = 0


class AgingReport(CamelModel):
    as_of: date
    totals: Dict[str, int]
    customers: List[AgingRow]


class StatementLine(CamelModel):
    date: date
    type: str
    reference: str
    charges_cents: int = 0
    payments_cents: int = 0
    balance_cents: int = 0


class CustomerStatement(CamelModel):
    company_id: UUID
    company_name: str
    start_date: date
    end_date: date
    opening_balance_cents: int
    closing_balance_cents: int
    lines: List[StatementLine]


# Payments

class PaymentCreate(CamelModel):
    company_id: UUID
    payment_date: Optional[date] = None
    method: str = Field("CHECK", pattern="^(CHECK|ACH|WIRE|CREDIT_CARD|CASH)$")
    reference_number: Optional[str] = None
    amount_cents: int = Field(..., gt=0)
    notes: Optional[str] = None


class PaymentApplicationIn(CamelModel):
    invoice_id: UUID
    amount_cents: int = Field(..., gt=0)


class ApplyPaymentRequest(CamelModel):
    applications: List[PaymentApplicationIn] = Field(..., min_length=1)


class PaymentApplicationOut(CamelModel):
    id: UUID
    invoice_id: UUID
    amount_cents: int


class PaymentOut(CamelModel):
    id: UUID
    payment_number: str
    company_id: UUID
    payment_date: date
    method: str
    reference_number: Optional[str] = None
    amount_cents: int
    unapplied_amount_cents: int
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    applications: List[PaymentApplicationOut] = Field(default_factory=list)


# Settlements

class SettlementLineIn(CamelModel):
    load_id: Optional[UUID] = None
    item_type: str = "LINEHAUL"
    description: str = Field(..., min_length=1)
    amount_cents: int


class SettlementLineOut(CamelModel):
    id: UUID
    load_id: Optional[UUID] = None
    item_type: str
    description: str
    amount_cents: int


class SettlementCreate(CamelModel):
    carrier_id: UUID
    settlement_date: Optional[date] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None
    line_items: List[SettlementLineIn] = Field(..., min_length=1)


class SettlementFromLoadRequest(CamelModel):
    load_id: UUID


class MarkPaidRequest(CamelModel):
    payment_reference: Optional[str] = None
    amount_cents: Optional[int] = Field(None, gt=0)


class SettlementOut(CamelModel):
    id: UUID
    settlement_number: str
    carrier_id: UUID
    status: str
    settlement_date: date
    due_date: date
    gross_amount_cents: int
    deductions_cents: int
    net_amount_cents: int
    amount_paid_cents: int
    payment_reference: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    void_reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    line_items: List[SettlementLineOut] = Field(default_factory=list)


class PayablesBucket(CamelModel):
    count: int = 0
    amount_cents: int = 0


class PayablesSummary(CamelModel):
    overdue: PayablesBucket
    due_today: PayablesBucket
    upcoming: PayablesBucket
    total_outstanding_cents: int
