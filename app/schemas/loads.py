"""Schemas for loads, stops, check calls and order management."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import Field, computed_field, field_validator

from app.core.lifecycle import LoadStatus, OrderStatus
from app.schemas.common import CamelModel


def margin_percent(customer_rate_cents: Optional[int], carrier_rate_cents: Optional[int]) -> Optional[float]:
    if not customer_rate_cents or carrier_rate_cents is None:
        return None
    return round((customer_rate_cents - carrier_rate_cents) * 100.0 / customer_rate_cents, 2)


class StopIn(CamelModel):
    stop_type: str = Field(..., pattern="^(PICKUP|DELIVERY)$")
    sequence: Optional[int] = Field(None, ge=1)
    facility_name: Optional[str] = None
    address_line1: Optional[str] = None
    city: str
    state: str
    postal_code: Optional[str] = None
    appointment_start: Optional[datetime] = None
    appointment_end: Optional[datetime] = None
    notes: Optional[str] = None


class StopOut(CamelModel):
    id: UUID
    stop_type: str
    sequence: int
    status: str
    facility_name: Optional[str] = None
    address_line1: Optional[str] = None
    city: str
    state: str
    postal_code: Optional[str] = None
    appointment_start: Optional[datetime] = None
    appointment_end: Optional[datetime] = None
    arrived_at: Optional[datetime] = None
    departed_at: Optional[datetime] = None


def _required_amount(value: Optional[int]) -> int:
    # Omitted amounts are left alone; an explicit null would clear a NOT NULL column
    if value is None:
        raise ValueError("Amount cannot be null; send 0 to clear it")
    return value


class LoadCreate(CamelModel):
    order_id: Optional[UUID] = None
    customer_id: Optional[UUID] = None
    customer_rate_cents: int = Field(0, ge=0)
    carrier_rate_cents: Optional[int] = Field(None, ge=0)
    fuel_advance_cents: int = Field(0, ge=0)
    accessorial_charges_cents: int = Field(0, ge=0)
    equipment_type: Optional[str] = None
    commodity: Optional[str] = None
    weight_lbs: Optional[int] = Field(None, ge=0)
    pickup_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    sales_rep_id: Optional[str] = None
    internal_notes: Optional[str] = None
    dispatch_notes: Optional[str] = None
    stops: List[StopIn] = Field(default_factory=list)


class LoadUpdate(CamelModel):
    customer_rate_cents: Optional[int] = Field(None, ge=0)
    carrier_rate_cents: Optional[int] = Field(None, ge=0)
    fuel_advance_cents: Optional[int] = Field(None, ge=0)
    accessorial_charges_cents: Optional[int] = Field(None, ge=0)
    equipment_type: Optional[str] = None
    commodity: Optional[str] = None
    weight_lbs: Optional[int] = Field(None, ge=0)
    pickup_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    driver_name: Optional[str] = None
    driver_phone: Optional[str] = None
    truck_number: Optional[str] = None
    trailer_number: Optional[str] = None
    internal_notes: Optional[str] = None
    dispatch_notes: Optional[str] = None

    @field_validator("customer_rate_cents", "fuel_advance_cents", "accessorial_charges_cents")
    @classmethod
    def amount_not_null(cls, value: Optional[int]) -> int:
        return _required_amount(value)


class LoadStatusUpdate(CamelModel):
    status: LoadStatus
    notes: Optional[str] = None


class AssignCarrierRequest(CamelModel):
    carrier_id: UUID
    carrier_rate_cents: int = Field(..., ge=0)
    driver_name: Optional[str] = None
    driver_phone: Optional[str] = None
    truck_number: Optional[str] = None
    trailer_number: Optional[str] = None


class LocationUpdate(CamelModel):
    city: Optional[str] = None
    state: Optional[str] = None
    latitude: Optional[Decimal] = Field(None, ge=-90, le=90)
    longitude: Optional[Decimal] = Field(None, ge=-180, le=180)
    eta: Optional[datetime] = None


class CheckCallCreate(LocationUpdate):
    notes: Optional[str] = None
    source: str = "MANUAL"


class CheckCallOut(CamelModel):
    id: UUID
    load_id: UUID
    city: Optional[str] = None
    state: Optional[str] = None
    latitude: Optional[Decimal] = None
    longitude: Optional[Decimal] = None
    eta: Optional[datetime] = None
    source: str
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class CancelRequest(CamelModel):
    reason: Optional[str] = None


class StatusHistoryOut(CamelModel):
    id: UUID
    from_status: Optional[str] = None
    to_status: str
    notes: Optional[str] = None
    changed_by: Optional[str] = None
    created_at: Optional[datetime] = None


class LoadOut(CamelModel):
    id: UUID
    load_number: str
    tracking_code: str
    status: str
    order_id: Optional[UUID] = None
    customer_id: Optional[UUID] = None
    carrier_id: Optional[UUID] = None
    sales_rep_id: Optional[str] = None
    driver_name: Optional[str] = None
    driver_phone: Optional[str] = None
    truck_number: Optional[str] = None
    trailer_number: Optional[str] = None
    customer_rate_cents: int = 0
    carrier_rate_cents: Optional[int] = None
    fuel_advance_cents: int = 0
    accessorial_charges_cents: int = 0
    equipment_type: Optional[str] = None
    commodity: Optional[str] = None
    weight_lbs: Optional[int] = None
    pickup_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    current_city: Optional[str] = None
    current_state: Optional[str] = None
    last_location_at: Optional[datetime] = None
    eta: Optional[datetime] = None
    internal_notes: Optional[str] = None
    dispatch_notes: Optional[str] = None
    dispatched_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    stops: List[StopOut] = Field(default_factory=list)

    @computed_field
    @property
    def margin_cents(self) -> Optional[int]:
        if self.carrier_rate_cents is None:
            return None
        return self.customer_rate_cents - self.carrier_rate_cents

    @computed_field
    @property
    def margin_percent(self) -> Optional[float]:
        return margin_percent(self.customer_rate_cents, self.carrier_rate_cents)


class LoadStats(CamelModel):
    total: int
    by_status: Dict[str, int]
    total_revenue_cents: int


# Orders

class OrderCreate(CamelModel):
    customer_id: UUID
    customer_reference: Optional[str] = None
    po_number: Optional[str] = None
    sales_rep_id: Optional[str] = None
    equipment_type: Optional[str] = None
    commodity: Optional[str] = None
    weight_lbs: Optional[int] = Field(None, ge=0)
    customer_rate_cents: int = Field(0, ge=0)
    fuel_surcharge_cents: int = Field(0, ge=0)
    accessorial_charges_cents: int = Field(0, ge=0)
    special_instructions: Optional[str] = None
    stops: List[StopIn]

    @field_validator("stops")
    @classmethod
    def needs_two_stops(cls, stops: List[StopIn]) -> List[StopIn]:
        if len(stops) < 2:
            raise ValueError("An order needs at least one pickup and one delivery stop")
        return stops


class OrderUpdate(CamelModel):
    customer_reference: Optional[str] = None
    po_number: Optional[str] = None
    sales_rep_id: Optional[str] = None
    equipment_type: Optional[str] = None
    commodity: Optional[str] = None
    weight_lbs: Optional[int] = Field(None, ge=0)
    customer_rate_cents: Optional[int] = Field(None, ge=0)
    fuel_surcharge_cents: Optional[int] = Field(None, ge=0)
    accessorial_charges_cents: Optional[int] = Field(None, ge=0)
    special_instructions: Optional[str] = None

    @field_validator("customer_rate_cents", "fuel_surcharge_cents", "accessorial_charges_cents")
    @classmethod
    def amount_not_null(cls, value: Optional[int]) -> int:
        return _required_amount(value)


class OrderStatusUpdate(CamelModel):
    status: OrderStatus
    reason: Optional[str] = None


class HoldRequest(CamelModel):
    reason: str = Field(..., min_length=1)


class OrderOut(CamelModel):
    id: UUID
    order_number: str
    customer_id: UUID
    status: str
    hold_from_status: Optional[str] = None
    hold_reason: Optional[str] = None
    cancel_reason: Optional[str] = None
    customer_reference: Optional[str] = None
    po_number: Optional[str] = None
    sales_rep_id: Optional[str] = None
    equipment_type: Optional[str] = None
    commodity: Optional[str] = None
    weight_lbs: Optional[int] = None
    customer_rate_cents: int = 0
    fuel_surcharge_cents: int = 0
    accessorial_charges_cents: int = 0
    total_charges_cents: int = 0
    special_instructions: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    stops: List[StopOut] = Field(default_factory=list)


class LoadFromOrderRequest(CamelModel):
    carrier_rate_cents: Optional[int] = Field(None, ge=0)
    pickup_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
