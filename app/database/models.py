"""SQLAlchemy models for all database tables.

Every tenant-owned table carries ``tenant_id``; money is stored as integer
cents; statuses are stored as strings from ``app.core.lifecycle``.
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TIMESTAMP,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.core.lifecycle import (
    BidStatus,
    CarrierStatus,
    InvoiceStatus,
    LoadStatus,
    OrderStatus,
    PostingStatus,
    SettlementStatus,
    TenderRecipientStatus,
    TenderStatus,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TenantScoped:
    """Columns shared by every tenant-owned table."""

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow
    )


# --------------------------------------------------------------------------
# CRM
# --------------------------------------------------------------------------

class Company(TenantScoped, Base):
    """Customer, prospect or partner account."""

    __tablename__ = "companies"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    company_type: Mapped[str] = mapped_column(String(30), default="CUSTOMER", nullable=False)
    status: Mapped[str] = mapped_column(String(30), default="ACTIVE", nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    website: Mapped[Optional[str]] = mapped_column(String(255))
    address_line1: Mapped[Optional[str]] = mapped_column(String(255))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(50))
    postal_code: Mapped[Optional[str]] = mapped_column(String(20))
    country: Mapped[str] = mapped_column(String(2), default="US")
    credit_limit_cents: Mapped[Optional[int]] = mapped_column(BigInteger)
    payment_terms: Mapped[str] = mapped_column(String(20), default="NET30")
    assigned_user_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    tags: Mapped[list] = mapped_column(JSONB, default=list)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    contacts: Mapped[list["Contact"]] = relationship(
        "Contact", back_populates="company", cascade="all, delete-orphan"
    )


class Contact(TenantScoped, Base):
    """Person at a company."""

    __tablename__ = "contacts"

    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    title: Mapped[Optional[str]] = mapped_column(String(100))
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[str] = mapped_column(String(30), default="ACTIVE")

    company: Mapped["Company"] = relationship("Company", back_populates="contacts")


class Activity(TenantScoped, Base):
    """Call, email, meeting, note or task logged against CRM records."""

    __tablename__ = "activities"

    activity_type: Mapped[str] = mapped_column(String(30), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(30), default="OPEN")
    company_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id", ondelete="SET NULL"), index=True
    )
    contact_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("contacts.id", ondelete="SET NULL"), index=True
    )
    owner_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    due_date: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))


# --------------------------------------------------------------------------
# Carriers
# --------------------------------------------------------------------------

class Carrier(TenantScoped, Base):
    """Motor carrier that hauls loads."""

    __tablename__ = "carriers"
    __table_args__ = (UniqueConstraint("tenant_id", "mc_number", name="uq_carrier_mc"),)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    mc_number: Mapped[Optional[str]] = mapped_column(String(20))
    dot_number: Mapped[Optional[str]] = mapped_column(String(20))
    status: Mapped[str] = mapped_column(String(30), default=CarrierStatus.PENDING.value, nullable=False)
    status_reason: Mapped[Optional[str]] = mapped_column(Text)
    tier: Mapped[str] = mapped_column(String(20), default="UNQUALIFIED")
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(50))
    equipment_types: Mapped[list] = mapped_column(JSONB, default=list)
    service_states: Mapped[list] = mapped_column(JSONB, default=list)
    w9_on_file: Mapped[bool] = mapped_column(Boolean, default=False)
    agreement_signed: Mapped[bool] = mapped_column(Boolean, default=False)
    claims_count: Mapped[int] = mapped_column(Integer, default=0)
    approved_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    insurances: Mapped[list["CarrierInsurance"]] = relationship(
        "CarrierInsurance", back_populates="carrier", cascade="all, delete-orphan"
    )


class CarrierInsurance(TenantScoped, Base):
    """Insurance certificate on file for a carrier."""

    __tablename__ = "carrier_insurances"

    carrier_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("carriers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    insurance_type: Mapped[str] = mapped_column(String(40), nullable=False)
    insurer_name: Mapped[Optional[str]] = mapped_column(String(255))
    policy_number: Mapped[Optional[str]] = mapped_column(String(100))
    coverage_amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    effective_date: Mapped[Optional[date]] = mapped_column(Date)
    expiration_date: Mapped[date] = mapped_column(Date, nullable=False)

    carrier: Mapped["Carrier"] = relationship("Carrier", back_populates="insurances")


# --------------------------------------------------------------------------
# Orders and loads
# --------------------------------------------------------------------------

class Order(TenantScoped, Base):
    """Commercial shipment request owning stops and one or more loads."""

    __tablename__ = "orders"
    __table_args__ = (UniqueConstraint("tenant_id", "order_number", name="uq_order_number"),)

    order_number: Mapped[str] = mapped_column(String(40), nullable=False)
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(30), default=OrderStatus.PENDING.value, nullable=False, index=True)
    hold_from_status: Mapped[Optional[str]] = mapped_column(String(30))
    hold_reason: Mapped[Optional[str]] = mapped_column(Text)
    cancel_reason: Mapped[Optional[str]] = mapped_column(Text)
    customer_reference: Mapped[Optional[str]] = mapped_column(String(100))
    po_number: Mapped[Optional[str]] = mapped_column(String(100))
    sales_rep_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    equipment_type: Mapped[Optional[str]] = mapped_column(String(40))
    commodity: Mapped[Optional[str]] = mapped_column(String(255))
    weight_lbs: Mapped[Optional[int]] = mapped_column(Integer)
    customer_rate_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    fuel_surcharge_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    accessorial_charges_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    total_charges_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    special_instructions: Mapped[Optional[str]] = mapped_column(Text)

    customer: Mapped["Company"] = relationship("Company")
    stops: Mapped[list["Stop"]] = relationship(
        "Stop",
        primaryjoin="Order.id == Stop.order_id",
        order_by="Stop.sequence",
        cascade="all, delete-orphan",
    )
    loads: Mapped[list["Load"]] = relationship("Load", back_populates="order")


class Load(TenantScoped, Base):
    """Unit of physical transport; soft-cancelled, never deleted."""

    __tablename__ = "loads"
    __table_args__ = (
        UniqueConstraint("tenant_id", "load_number", name="uq_load_number"),
        Index("ix_loads_tenant_status", "tenant_id", "status"),
    )

    load_number: Mapped[str] = mapped_column(String(40), nullable=False)
    tracking_code: Mapped[str] = mapped_column(String(40), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(String(30), default=LoadStatus.UNASSIGNED.value, nullable=False)
    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("orders.id"), index=True
    )
    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), index=True
    )
    carrier_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("carriers.id"), index=True
    )
    sales_rep_id: Mapped[Optional[str]] = mapped_column(String(64))
    driver_name: Mapped[Optional[str]] = mapped_column(String(100))
    driver_phone: Mapped[Optional[str]] = mapped_column(String(50))
    truck_number: Mapped[Optional[str]] = mapped_column(String(50))
    trailer_number: Mapped[Optional[str]] = mapped_column(String(50))
    customer_rate_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    carrier_rate_cents: Mapped[Optional[int]] = mapped_column(BigInteger)
    fuel_advance_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    accessorial_charges_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    equipment_type: Mapped[Optional[str]] = mapped_column(String(40))
    commodity: Mapped[Optional[str]] = mapped_column(String(255))
    weight_lbs: Mapped[Optional[int]] = mapped_column(Integer)
    pickup_date: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    delivery_date: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    current_city: Mapped[Optional[str]] = mapped_column(String(100))
    current_state: Mapped[Optional[str]] = mapped_column(String(50))
    current_latitude: Mapped[Optional[Decimal]] = mapped_column(Numeric(9, 6))
    current_longitude: Mapped[Optional[Decimal]] = mapped_column(Numeric(9, 6))
    last_location_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    eta: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    internal_notes: Mapped[Optional[str]] = mapped_column(Text)
    dispatch_notes: Mapped[Optional[str]] = mapped_column(Text)
    dispatched_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    delivered_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    cancel_reason: Mapped[Optional[str]] = mapped_column(Text)

    order: Mapped[Optional["Order"]] = relationship("Order", back_populates="loads")
    customer: Mapped[Optional["Company"]] = relationship("Company")
    carrier: Mapped[Optional["Carrier"]] = relationship("Carrier")
    stops: Mapped[list["Stop"]] = relationship(
        "Stop",
        primaryjoin="Load.id == Stop.load_id",
        order_by="Stop.sequence",
        cascade="all, delete-orphan",
    )


class Stop(TenantScoped, Base):
    """Ordered pickup or delivery waypoint of an order or a load."""

    __tablename__ = "stops"

    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), index=True
    )
    load_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("loads.id", ondelete="CASCADE"), index=True
    )
    stop_type: Mapped[str] = mapped_column(String(20), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="PENDING")
    facility_name: Mapped[Optional[str]] = mapped_column(String(255))
    address_line1: Mapped[Optional[str]] = mapped_column(String(255))
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(50), nullable=False)
    postal_code: Mapped[Optional[str]] = mapped_column(String(20))
    appointment_start: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    appointment_end: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    arrived_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    departed_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    notes: Mapped[Optional[str]] = mapped_column(Text)


class LoadStatusHistory(TenantScoped, Base):
    """Audit row written for every load status change."""

    __tablename__ = "load_status_history"

    load_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("loads.id", ondelete="CASCADE"), nullable=False, index=True
    )
    from_status: Mapped[Optional[str]] = mapped_column(String(30))
    to_status: Mapped[str] = mapped_column(String(30), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    changed_by: Mapped[Optional[str]] = mapped_column(String(64))


class CheckCall(TenantScoped, Base):
    """Location and status report for a load on the road."""

    __tablename__ = "check_calls"

    load_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("loads.id", ondelete="CASCADE"), nullable=False, index=True
    )
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(50))
    latitude: Mapped[Optional[Decimal]] = mapped_column(Numeric(9, 6))
    longitude: Mapped[Optional[Decimal]] = mapped_column(Numeric(9, 6))
    eta: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    source: Mapped[str] = mapped_column(String(30), default="MANUAL")
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_by: Mapped[Optional[str]] = mapped_column(String(64))


# --------------------------------------------------------------------------
# Load board
# --------------------------------------------------------------------------

class LoadPosting(TenantScoped, Base):
    """Load offered to the carrier marketplace."""

    __tablename__ = "load_postings"
    __table_args__ = (Index("ix_postings_tenant_status", "tenant_id", "status"),)

    load_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("loads.id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), default=PostingStatus.ACTIVE.value, nullable=False)
    visibility: Mapped[str] = mapped_column(String(20), default="PUBLIC")
    show_rate: Mapped[bool] = mapped_column(Boolean, default=False)
    rate_type: Mapped[str] = mapped_column(String(20), default="FLAT")
    posted_rate_cents: Mapped[Optional[int]] = mapped_column(BigInteger)
    rate_min_cents: Mapped[Optional[int]] = mapped_column(BigInteger)
    rate_max_cents: Mapped[Optional[int]] = mapped_column(BigInteger)
    origin_city: Mapped[Optional[str]] = mapped_column(String(100))
    origin_state: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    dest_city: Mapped[Optional[str]] = mapped_column(String(100))
    dest_state: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    equipment_type: Mapped[Optional[str]] = mapped_column(String(40))
    pickup_date: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    delivery_date: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    auto_refresh: Mapped[bool] = mapped_column(Boolean, default=False)
    refresh_interval_hours: Mapped[int] = mapped_column(Integer, default=4)
    last_refreshed_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    carrier_ids: Mapped[list] = mapped_column(JSONB, default=list)
    view_count: Mapped[int] = mapped_column(Integer, default=0)
    booked_bid_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    booked_carrier_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    booked_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    cancel_reason: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_by: Mapped[Optional[str]] = mapped_column(String(64))

    load: Mapped["Load"] = relationship("Load")


class PostingView(TenantScoped, Base):
    """Per-carrier view counter on a posting."""

    __tablename__ = "posting_views"
    __table_args__ = (UniqueConstraint("posting_id", "carrier_id", name="uq_posting_view"),)

    posting_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("load_postings.id", ondelete="CASCADE"), nullable=False
    )
    carrier_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("carriers.id", ondelete="CASCADE"), nullable=False
    )
    view_count: Mapped[int] = mapped_column(Integer, default=1)
    last_viewed_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), server_default=func.now())


class LoadBid(TenantScoped, Base):
    """Carrier's priced offer against a posting."""

    __tablename__ = "load_bids"
    __table_args__ = (Index("ix_bids_posting_status", "posting_id", "status"),)

    posting_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("load_postings.id"), nullable=False
    )
    load_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("loads.id"), nullable=False, index=True
    )
    carrier_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("carriers.id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), default=BidStatus.PENDING.value, nullable=False)
    bid_amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    rate_type: Mapped[str] = mapped_column(String(20), default="FLAT")
    notes: Mapped[Optional[str]] = mapped_column(Text)
    truck_number: Mapped[Optional[str]] = mapped_column(String(50))
    driver_name: Mapped[Optional[str]] = mapped_column(String(100))
    driver_phone: Mapped[Optional[str]] = mapped_column(String(50))
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    counter_amount_cents: Mapped[Optional[int]] = mapped_column(BigInteger)
    counter_notes: Mapped[Optional[str]] = mapped_column(Text)
    countered_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    accepted_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    rejected_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text)
    withdrawn_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))

    carrier: Mapped["Carrier"] = relationship("Carrier")


class LoadTender(TenantScoped, Base):
    """Direct offer of a load to selected carriers."""

    __tablename__ = "load_tenders"

    load_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("loads.id"), nullable=False, index=True
    )
    tender_type: Mapped[str] = mapped_column(String(20), default="WATERFALL", nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=TenderStatus.ACTIVE.value, nullable=False, index=True)
    tender_rate_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    timeout_minutes: Mapped[int] = mapped_column(Integer, default=30)
    expires_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    accepted_carrier_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    accepted_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_by: Mapped[Optional[str]] = mapped_column(String(64))

    recipients: Mapped[list["TenderRecipient"]] = relationship(
        "TenderRecipient",
        back_populates="tender",
        order_by="TenderRecipient.position",
        cascade="all, delete-orphan",
    )


class TenderRecipient(TenantScoped, Base):
    """Carrier slot in a tender."""

    __tablename__ = "tender_recipients"
    __table_args__ = (UniqueConstraint("tender_id", "carrier_id", name="uq_tender_recipient"),)

    tender_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("load_tenders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    carrier_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("carriers.id"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=TenderRecipientStatus.PENDING.value, nullable=False)
    offered_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    expires_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    responded_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    decline_reason: Mapped[Optional[str]] = mapped_column(Text)

    tender: Mapped["LoadTender"] = relationship("LoadTender", back_populates="recipients")


# --------------------------------------------------------------------------
# Accounting
# --------------------------------------------------------------------------

class Invoice(TenantScoped, Base):
    """Customer invoice."""

    __tablename__ = "invoices"
    __table_args__ = (UniqueConstraint("tenant_id", "invoice_number", name="uq_invoice_number"),)

    invoice_number: Mapped[str] = mapped_column(String(40), nullable=False)
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False, index=True
    )
    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("orders.id"))
    load_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("loads.id"), index=True)
    status: Mapped[str] = mapped_column(String(20), default=InvoiceStatus.DRAFT.value, nullable=False, index=True)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_terms: Mapped[str] = mapped_column(String(20), default="NET30")
    subtotal_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    tax_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    total_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    amount_paid_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    balance_due_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    sent_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    viewed_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    voided_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    void_reason: Mapped[Optional[str]] = mapped_column(Text)

    company: Mapped["Company"] = relationship("Company")
    line_items: Mapped[list["InvoiceLineItem"]] = relationship(
        "InvoiceLineItem",
        back_populates="invoice",
        order_by="InvoiceLineItem.line_number",
        cascade="all, delete-orphan",
    )


class InvoiceLineItem(TenantScoped, Base):
    __tablename__ = "invoice_line_items"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    item_type: Mapped[str] = mapped_column(String(30), default="LINEHAUL")
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("1"))
    unit_price_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="line_items")


class Payment(TenantScoped, Base):
    """Payment received from a customer."""

    __tablename__ = "payments"
    __table_args__ = (UniqueConstraint("tenant_id", "payment_number", name="uq_payment_number"),)

    payment_number: Mapped[str] = mapped_column(String(40), nullable=False)
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False, index=True
    )
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    method: Mapped[str] = mapped_column(String(20), default="CHECK")
    reference_number: Mapped[Optional[str]] = mapped_column(String(100))
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    unapplied_amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="RECEIVED")
    notes: Mapped[Optional[str]] = mapped_column(Text)

    applications: Mapped[list["PaymentApplication"]] = relationship(
        "PaymentApplication", back_populates="payment", cascade="all, delete-orphan"
    )


class PaymentApplication(TenantScoped, Base):
    __tablename__ = "payment_applications"

    payment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("payments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("invoices.id"), nullable=False, index=True
    )
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)

    payment: Mapped["Payment"] = relationship("Payment", back_populates="applications")


class Settlement(TenantScoped, Base):
    """Batch of amounts owed to a carrier."""

    __tablename__ = "settlements"
    __table_args__ = (UniqueConstraint("tenant_id", "settlement_number", name="uq_settlement_number"),)

    settlement_number: Mapped[str] = mapped_column(String(40), nullable=False)
    carrier_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("carriers.id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), default=SettlementStatus.CREATED.value, nullable=False, index=True)
    settlement_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    gross_amount_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    deductions_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    net_amount_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    amount_paid_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    payment_reference: Mapped[Optional[str]] = mapped_column(String(100))
    approved_by: Mapped[Optional[str]] = mapped_column(String(64))
    approved_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    processed_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    paid_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    void_reason: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    carrier: Mapped["Carrier"] = relationship("Carrier")
    line_items: Mapped[list["SettlementLineItem"]] = relationship(
        "SettlementLineItem", back_populates="settlement", cascade="all, delete-orphan"
    )


class SettlementLineItem(TenantScoped, Base):
    __tablename__ = "settlement_line_items"

    settlement_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("settlements.id", ondelete="CASCADE"), nullable=False, index=True
    )
    load_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("loads.id"))
    item_type: Mapped[str] = mapped_column(String(30), default="LINEHAUL")
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    # Deductions are stored negative
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)

    settlement: Mapped["Settlement"] = relationship("Settlement", back_populates="line_items")


# --------------------------------------------------------------------------
# Commissions
# --------------------------------------------------------------------------

class CommissionPlan(TenantScoped, Base):
    __tablename__ = "commission_plans"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    plan_type: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="ACTIVE")
    flat_amount_cents: Mapped[Optional[int]] = mapped_column(BigInteger)
    percent_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 3))
    minimum_margin_percent: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 3))
    # [{"min_margin_percent": "10", "rate": "5"}, ...]; highest qualifying threshold wins
    tiers: Mapped[list] = mapped_column(JSONB, default=list)
    description: Mapped[Optional[str]] = mapped_column(Text)


class CommissionAssignment(TenantScoped, Base):
    __tablename__ = "commission_assignments"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    plan_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("commission_plans.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), default="ACTIVE")
    override_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 3))
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date)

    plan: Mapped["CommissionPlan"] = relationship("CommissionPlan")


class CommissionEntry(TenantScoped, Base):
    __tablename__ = "commission_entries"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    load_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("loads.id"), index=True)
    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("orders.id"))
    plan_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), ForeignKey("commission_plans.id"))
    entry_type: Mapped[str] = mapped_column(String(30), default="LOAD_COMMISSION")
    status: Mapped[str] = mapped_column(String(20), default="PENDING", index=True)
    basis_amount_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    rate_applied: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 3))
    commission_amount_cents: Mapped[int] = mapped_column(BigInteger, default=0)
    commission_period: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    reversed_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True))
    reversal_reason: Mapped[Optional[str]] = mapped_column(Text)
