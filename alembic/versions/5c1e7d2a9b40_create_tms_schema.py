"""Create TMS schema

Revision ID: 5c1e7d2a9b40
Revises:
Create Date: 2026-10-19 09:15:00.000000

"""
from typing import List, Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '5c1e7d2a9b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONB = postgresql.JSONB(astext_type=sa.Text())


def _tenant_columns() -> List[sa.Column]:
    """id, tenant_id and audit timestamps carried by every table."""
    return [
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('tenant_id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
    ]


def _index(table: str, *columns: str) -> None:
    op.create_index(op.f(f"ix_{table}_{'_'.join(columns)}"), table, list(columns))


def upgrade() -> None:
    """Upgrade schema."""

    # CRM
    op.create_table('companies',
        *_tenant_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('company_type', sa.String(length=30), nullable=False),
        sa.Column('status', sa.String(length=30), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('website', sa.String(length=255), nullable=True),
        sa.Column('address_line1', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('state', sa.String(length=50), nullable=True),
        sa.Column('postal_code', sa.String(length=20), nullable=True),
        sa.Column('country', sa.String(length=2), nullable=True),
        sa.Column('credit_limit_cents', sa.BigInteger(), nullable=True),
        sa.Column('payment_terms', sa.String(length=20), nullable=True),
        sa.Column('assigned_user_id', sa.String(length=64), nullable=True),
        sa.Column('tags', JSONB, nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    _index('companies', 'tenant_id')
    _index('companies', 'assigned_user_id')

    op.create_table('contacts',
        *_tenant_columns(),
        sa.Column('company_id', sa.UUID(), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('title', sa.String(length=100), nullable=True),
        sa.Column('is_primary', sa.Boolean(), nullable=True),
        sa.Column('status', sa.String(length=30), nullable=True),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    _index('contacts', 'tenant_id')
    _index('contacts', 'company_id')

    op.create_table('activities',
        *_tenant_columns(),
        sa.Column('activity_type', sa.String(length=30), nullable=False),
        sa.Column('subject', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=30), nullable=True),
        sa.Column('company_id', sa.UUID(), nullable=True),
        sa.Column('contact_id', sa.UUID(), nullable=True),
        sa.Column('owner_id', sa.String(length=64), nullable=True),
        sa.Column('due_date', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('completed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['contact_id'], ['contacts.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    _index('activities', 'tenant_id')
    _index('activities', 'company_id')
    _index('activities', 'contact_id')
    _index('activities', 'owner_id')

    # Carriers
    op.create_table('carriers',
        *_tenant_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('mc_number', sa.String(length=20), nullable=True),
        sa.Column('dot_number', sa.String(length=20), nullable=True),
        sa.Column('status', sa.String(length=30), nullable=False),
        sa.Column('status_reason', sa.Text(), nullable=True),
        sa.Column('tier', sa.String(length=20), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('state', sa.String(length=50), nullable=True),
        sa.Column('equipment_types', JSONB, nullable=True),
        sa.Column('service_states', JSONB, nullable=True),
        sa.Column('w9_on_file', sa.Boolean(), nullable=True),
        sa.Column('agreement_signed', sa.Boolean(), nullable=True),
        sa.Column('claims_count', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'mc_number', name='uq_carrier_mc')
    )
    _index('carriers', 'tenant_id')

    op.create_table('carrier_insurances',
        *_tenant_columns(),
        sa.Column('carrier_id', sa.UUID(), nullable=False),
        sa.Column('insurance_type', sa.String(length=40), nullable=False),
        sa.Column('insurer_name', sa.String(length=255), nullable=True),
        sa.Column('policy_number', sa.String(length=100), nullable=True),
        sa.Column('coverage_amount_cents', sa.BigInteger(), nullable=False),
        sa.Column('effective_date', sa.Date(), nullable=True),
        sa.Column('expiration_date', sa.Date(), nullable=False),
        sa.ForeignKeyConstraint(['carrier_id'], ['carriers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    _index('carrier_insurances', 'tenant_id')
    _index('carrier_insurances', 'carrier_id')

    # Orders and loads
    op.create_table('orders',
        *_tenant_columns(),
        sa.Column('order_number', sa.String(length=40), nullable=False),
        sa.Column('customer_id', sa.UUID(), nullable=False),
        sa.Column('status', sa.String(length=30), nullable=False),
        sa.Column('hold_from_status', sa.String(length=30), nullable=True),
        sa.Column('hold_reason', sa.Text(), nullable=True),
        sa.Column('cancel_reason', sa.Text(), nullable=True),
        sa.Column('customer_reference', sa.String(length=100), nullable=True),
        sa.Column('po_number', sa.String(length=100), nullable=True),
        sa.Column('sales_rep_id', sa.String(length=64), nullable=True),
        sa.Column('equipment_type', sa.String(length=40), nullable=True),
        sa.Column('commodity', sa.String(length=255), nullable=True),
        sa.Column('weight_lbs', sa.Integer(), nullable=True),
        sa.Column('customer_rate_cents', sa.BigInteger(), nullable=True),
        sa.Column('fuel_surcharge_cents', sa.BigInteger(), nullable=True),
        sa.Column('accessorial_charges_cents', sa.BigInteger(), nullable=True),
        sa.Column('total_charges_cents', sa.BigInteger(), nullable=True),
        sa.Column('special_instructions', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['customer_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'order_number', name='uq_order_number')
    )
    _index('orders', 'tenant_id')
    _index('orders', 'customer_id')
    _index('orders', 'status')
    _index('orders', 'sales_rep_id')

    op.create_table('loads',
        *_tenant_columns(),
        sa.Column('load_number', sa.String(length=40), nullable=False),
        sa.Column('tracking_code', sa.String(length=40), nullable=False),
        sa.Column('status', sa.String(length=30), nullable=False),
        sa.Column('order_id', sa.UUID(), nullable=True),
        sa.Column('customer_id', sa.UUID(), nullable=True),
        sa.Column('carrier_id', sa.UUID(), nullable=True),
        sa.Column('sales_rep_id', sa.String(length=64), nullable=True),
        sa.Column('driver_name', sa.String(length=100), nullable=True),
        sa.Column('driver_phone', sa.String(length=50), nullable=True),
        sa.Column('truck_number', sa.String(length=50), nullable=True),
        sa.Column('trailer_number', sa.String(length=50), nullable=True),
        sa.Column('customer_rate_cents', sa.BigInteger(), nullable=True),
        sa.Column('carrier_rate_cents', sa.BigInteger(), nullable=True),
        sa.Column('fuel_advance_cents', sa.BigInteger(), nullable=True),
        sa.Column('accessorial_charges_cents', sa.BigInteger(), nullable=True),
        sa.Column('equipment_type', sa.String(length=40), nullable=True),
        sa.Column('commodity', sa.String(length=255), nullable=True),
        sa.Column('weight_lbs', sa.Integer(), nullable=True),
        sa.Column('pickup_date', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('delivery_date', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('current_city', sa.String(length=100), nullable=True),
        sa.Column('current_state', sa.String(length=50), nullable=True),
        sa.Column('current_latitude', sa.Numeric(precision=9, scale=6), nullable=True),
        sa.Column('current_longitude', sa.Numeric(precision=9, scale=6), nullable=True),
        sa.Column('last_location_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('eta', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('internal_notes', sa.Text(), nullable=True),
        sa.Column('dispatch_notes', sa.Text(), nullable=True),
        sa.Column('dispatched_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('completed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('cancel_reason', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.ForeignKeyConstraint(['customer_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['carrier_id'], ['carriers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'load_number', name='uq_load_number'),
        sa.UniqueConstraint('tracking_code')
    )
    _index('loads', 'tenant_id')
    _index('loads', 'order_id')
    _index('loads', 'customer_id')
    _index('loads', 'carrier_id')
    op.create_index('ix_loads_tenant_status', 'loads', ['tenant_id', 'status'])

    op.create_table('stops',
        *_tenant_columns(),
        sa.Column('order_id', sa.UUID(), nullable=True),
        sa.Column('load_id', sa.UUID(), nullable=True),
        sa.Column('stop_type', sa.String(length=20), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('facility_name', sa.String(length=255), nullable=True),
        sa.Column('address_line1', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=False),
        sa.Column('state', sa.String(length=50), nullable=False),
        sa.Column('postal_code', sa.String(length=20), nullable=True),
        sa.Column('appointment_start', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('appointment_end', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('arrived_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('departed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['load_id'], ['loads.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    _index('stops', 'tenant_id')
    _index('stops', 'order_id')
    _index('stops', 'load_id')

    op.create_table('load_status_history',
        *_tenant_columns(),
        sa.Column('load_id', sa.UUID(), nullable=False),
        sa.Column('from_status', sa.String(length=30), nullable=True),
        sa.Column('to_status', sa.String(length=30), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('changed_by', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['load_id'], ['loads.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    _index('load_status_history', 'tenant_id')
    _index('load_status_history', 'load_id')

    op.create_table('check_calls',
        *_tenant_columns(),
        sa.Column('load_id', sa.UUID(), nullable=False),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('state', sa.String(length=50), nullable=True),
        sa.Column('latitude', sa.Numeric(precision=9, scale=6), nullable=True),
        sa.Column('longitude', sa.Numeric(precision=9, scale=6), nullable=True),
        sa.Column('eta', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('source', sa.String(length=30), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['load_id'], ['loads.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    _index('check_calls', 'tenant_id')
    _index('check_calls', 'load_id')

    # Load board
    op.create_table('load_postings',
        *_tenant_columns(),
        sa.Column('load_id', sa.UUID(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('visibility', sa.String(length=20), nullable=True),
        sa.Column('show_rate', sa.Boolean(), nullable=True),
        sa.Column('rate_type', sa.String(length=20), nullable=True),
        sa.Column('posted_rate_cents', sa.BigInteger(), nullable=True),
        sa.Column('rate_min_cents', sa.BigInteger(), nullable=True),
        sa.Column('rate_max_cents', sa.BigInteger(), nullable=True),
        sa.Column('origin_city', sa.String(length=100), nullable=True),
        sa.Column('origin_state', sa.String(length=50), nullable=True),
        sa.Column('dest_city', sa.String(length=100), nullable=True),
        sa.Column('dest_state', sa.String(length=50), nullable=True),
        sa.Column('equipment_type', sa.String(length=40), nullable=True),
        sa.Column('pickup_date', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('delivery_date', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('auto_refresh', sa.Boolean(), nullable=True),
        sa.Column('refresh_interval_hours', sa.Integer(), nullable=True),
        sa.Column('last_refreshed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('carrier_ids', JSONB, nullable=True),
        sa.Column('view_count', sa.Integer(), nullable=True),
        sa.Column('booked_bid_id', sa.UUID(), nullable=True),
        sa.Column('booked_carrier_id', sa.UUID(), nullable=True),
        sa.Column('booked_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('cancel_reason', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['load_id'], ['loads.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    _index('load_postings', 'tenant_id')
    _index('load_postings', 'load_id')
    _index('load_postings', 'origin_state')
    _index('load_postings', 'dest_state')
    op.create_index('ix_postings_tenant_status', 'load_postings', ['tenant_id', 'status'])

    op.create_table('posting_views',
        *_tenant_columns(),
        sa.Column('posting_id', sa.UUID(), nullable=False),
        sa.Column('carrier_id', sa.UUID(), nullable=False),
        sa.Column('view_count', sa.Integer(), nullable=True),
        sa.Column('last_viewed_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['posting_id'], ['load_postings.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['carrier_id'], ['carriers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('posting_id', 'carrier_id', name='uq_posting_view')
    )
    _index('posting_views', 'tenant_id')

    op.create_table('load_bids',
        *_tenant_columns(),
        sa.Column('posting_id', sa.UUID(), nullable=False),
        sa.Column('load_id', sa.UUID(), nullable=False),
        sa.Column('carrier_id', sa.UUID(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('bid_amount_cents', sa.BigInteger(), nullable=False),
        sa.Column('rate_type', sa.String(length=20), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('truck_number', sa.String(length=50), nullable=True),
        sa.Column('driver_name', sa.String(length=100), nullable=True),
        sa.Column('driver_phone', sa.String(length=50), nullable=True),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('counter_amount_cents', sa.BigInteger(), nullable=True),
        sa.Column('counter_notes', sa.Text(), nullable=True),
        sa.Column('countered_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('accepted_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('rejected_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('withdrawn_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['posting_id'], ['load_postings.id'], ),
        sa.ForeignKeyConstraint(['load_id'], ['loads.id'], ),
        sa.ForeignKeyConstraint(['carrier_id'], ['carriers.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    _index('load_bids', 'tenant_id')
    _index('load_bids', 'load_id')
    _index('load_bids', 'carrier_id')
    op.create_index('ix_bids_posting_status', 'load_bids', ['posting_id', 'status'])

    op.create_table('load_tenders',
        *_tenant_columns(),
        sa.Column('load_id', sa.UUID(), nullable=False),
        sa.Column('tender_type', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('tender_rate_cents', sa.BigInteger(), nullable=False),
        sa.Column('timeout_minutes', sa.Integer(), nullable=True),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('accepted_carrier_id', sa.UUID(), nullable=True),
        sa.Column('accepted_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['load_id'], ['loads.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    _index('load_tenders', 'tenant_id')
    _index('load_tenders', 'load_id')
    _index('load_tenders', 'status')

    op.create_table('tender_recipients',
        *_tenant_columns(),
        sa.Column('tender_id', sa.UUID(), nullable=False),
        sa.Column('carrier_id', sa.UUID(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('offered_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('responded_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('decline_reason', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['tender_id'], ['load_tenders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['carrier_id'], ['carriers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tender_id', 'carrier_id', name='uq_tender_recipient')
    )
    _index('tender_recipients', 'tenant_id')
    _index('tender_recipients', 'tender_id')
    _index('tender_recipients', 'carrier_id')

    # Accounting
    op.create_table('invoices',
        *_tenant_columns(),
        sa.Column('invoice_number', sa.String(length=40), nullable=False),
        sa.Column('company_id', sa.UUID(), nullable=False),
        sa.Column('order_id', sa.UUID(), nullable=True),
        sa.Column('load_id', sa.UUID(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('invoice_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('payment_terms', sa.String(length=20), nullable=True),
        sa.Column('subtotal_cents', sa.BigInteger(), nullable=True),
        sa.Column('tax_cents', sa.BigInteger(), nullable=True),
        sa.Column('total_cents', sa.BigInteger(), nullable=True),
        sa.Column('amount_paid_cents', sa.BigInteger(), nullable=True),
        sa.Column('balance_due_cents', sa.BigInteger(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('sent_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('viewed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('voided_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('void_reason', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.ForeignKeyConstraint(['load_id'], ['loads.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'invoice_number', name='uq_invoice_number')
    )
    _index('invoices', 'tenant_id')
    _index('invoices', 'company_id')
    _index('invoices', 'load_id')
    _index('invoices', 'status')

    op.create_table('invoice_line_items',
        *_tenant_columns(),
        sa.Column('invoice_id', sa.UUID(), nullable=False),
        sa.Column('line_number', sa.Integer(), nullable=False),
        sa.Column('item_type', sa.String(length=30), nullable=True),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('unit_price_cents', sa.BigInteger(), nullable=False),
        sa.Column('amount_cents', sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    _index('invoice_line_items', 'tenant_id')
    _index('invoice_line_items', 'invoice_id')

    op.create_table('payments',
        *_tenant_columns(),
        sa.Column('payment_number', sa.String(length=40), nullable=False),
        sa.Column('company_id', sa.UUID(), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('method', sa.String(length=20), nullable=True),
        sa.Column('reference_number', sa.String(length=100), nullable=True),
        sa.Column('amount_cents', sa.BigInteger(), nullable=False),
        sa.Column('unapplied_amount_cents', sa.BigInteger(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'payment_number', name='uq_payment_number')
    )
    _index('payments', 'tenant_id')
    _index('payments', 'company_id')

    op.create_table('payment_applications',
        *_tenant_columns(),
        sa.Column('payment_id', sa.UUID(), nullable=False),
        sa.Column('invoice_id', sa.UUID(), nullable=False),
        sa.Column('amount_cents', sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(['payment_id'], ['payments.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    _index('payment_applications', 'tenant_id')
    _index('payment_applications', 'payment_id')
    _index('payment_applications', 'invoice_id')

    op.create_table('settlements',
        *_tenant_columns(),
        sa.Column('settlement_number', sa.String(length=40), nullable=False),
        sa.Column('carrier_id', sa.UUID(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('settlement_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('gross_amount_cents', sa.BigInteger(), nullable=True),
        sa.Column('deductions_cents', sa.BigInteger(), nullable=True),
        sa.Column('net_amount_cents', sa.BigInteger(), nullable=True),
        sa.Column('amount_paid_cents', sa.BigInteger(), nullable=True),
        sa.Column('payment_reference', sa.String(length=100), nullable=True),
        sa.Column('approved_by', sa.String(length=64), nullable=True),
        sa.Column('approved_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('processed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('paid_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('void_reason', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['carrier_id'], ['carriers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'settlement_number', name='uq_settlement_number')
    )
    _index('settlements', 'tenant_id')
    _index('settlements', 'carrier_id')
    _index('settlements', 'status')

    op.create_table('settlement_line_items',
        *_tenant_columns(),
        sa.Column('settlement_id', sa.UUID(), nullable=False),
        sa.Column('load_id', sa.UUID(), nullable=True),
        sa.Column('item_type', sa.String(length=30), nullable=True),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('amount_cents', sa.BigInteger(), nullable=False, comment='Deductions are negative'),
        sa.ForeignKeyConstraint(['settlement_id'], ['settlements.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['load_id'], ['loads.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    _index('settlement_line_items', 'tenant_id')
    _index('settlement_line_items', 'settlement_id')

    # Commissions
    op.create_table('commission_plans',
        *_tenant_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('plan_type', sa.String(length=30), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('flat_amount_cents', sa.BigInteger(), nullable=True),
        sa.Column('percent_rate', sa.Numeric(precision=6, scale=3), nullable=True),
        sa.Column('minimum_margin_percent', sa.Numeric(precision=6, scale=3), nullable=True),
        sa.Column('tiers', JSONB, nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    _index('commission_plans', 'tenant_id')

    op.create_table('commission_assignments',
        *_tenant_columns(),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('plan_id', sa.UUID(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('override_rate', sa.Numeric(precision=6, scale=3), nullable=True),
        sa.Column('effective_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.ForeignKeyConstraint(['plan_id'], ['commission_plans.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    _index('commission_assignments', 'tenant_id')
    _index('commission_assignments', 'user_id')

    op.create_table('commission_entries',
        *_tenant_columns(),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('load_id', sa.UUID(), nullable=True),
        sa.Column('order_id', sa.UUID(), nullable=True),
        sa.Column('plan_id', sa.UUID(), nullable=True),
        sa.Column('entry_type', sa.String(length=30), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('basis_amount_cents', sa.BigInteger(), nullable=True),
        sa.Column('rate_applied', sa.Numeric(precision=6, scale=3), nullable=True),
        sa.Column('commission_amount_cents', sa.BigInteger(), nullable=True),
        sa.Column('commission_period', sa.Date(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('reversed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('reversal_reason', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['load_id'], ['loads.id'], ),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.ForeignKeyConstraint(['plan_id'], ['commission_plans.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    _index('commission_entries', 'tenant_id')
    _index('commission_entries', 'user_id')
    _index('commission_entries', 'load_id')
    _index('commission_entries', 'status')


def downgrade() -> None:
    """Downgrade schema."""
    # Children before parents
    for table in (
        'commission_entries',
        'commission_assignments',
        'commission_plans',
        'settlement_line_items',
        'settlements',
        'payment_applications',
        'payments',
        'invoice_line_items',
        'invoices',
        'tender_recipients',
        'load_tenders',
        'load_bids',
        'posting_views',
        'load_postings',
        'check_calls',
        'load_status_history',
        'stops',
        'loads',
        'orders',
        'carrier_insurances',
        'carriers',
        'activities',
        'contacts',
        'companies',
    ):
        op.drop_table(table)
