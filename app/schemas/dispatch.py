"""Dispatch board, public tracking and lifecycle read models."""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import ConfigDict, Field

from app.schemas.common import CamelModel


class BoardCard(CamelModel):
    id: UUID
    load_number: str
    status: str
    carrier_id: Optional[UUID] = None
    carrier_name: Optional[str] = None
    driver_name: Optional[str] = None
    equipment_type: Optional[str] = None
    origin: Optional[str] = None
    destination: Optional[str] = None
    pickup_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    current_city: Optional[str] = None
    current_state: Optional[str] = None
    last_location_at: Optional[datetime] = None
    eta: Optional[datetime] = None
    customer_rate_cents: int = 0
    carrier_rate_cents: Optional[int] = None
    margin_cents: Optional[int] = None
    margin_percent: Optional[float] = None
    at_risk: bool = False


class BoardLane(CamelModel):
    key: str
    title: str
    statuses: List[str]
    count: int
    loads: List[BoardCard]


class BoardStats(CamelModel):
    total: int = 0
    unassigned: int = 0
    tendered: int = 0
    dispatched: int = 0
    in_transit: int = 0
    at_stop: int = 0
    delivered_today: int = 0
    total_active: int = 0
    at_risk: int = 0


class DispatchBoard(CamelModel):
    lanes: List[BoardLane]
    stats: BoardStats
    generated_at: datetime


class TrackingStop(CamelModel):
    model_config = ConfigDict(extra="forbid")

    stop_type: str
    sequence: int
    city: str
    state: str
    status: str
    appointment_start: Optional[datetime] = None
    appointment_end: Optional[datetime] = None
    arrived_at: Optional[datetime] = None
    departed_at: Optional[datetime] = None


class TrackingLocation(CamelModel):
    model_config = ConfigDict(extra="forbid")

    city: Optional[str] = None
    state: Optional[str] = None
    updated_at: Optional[datetime] = None


class TrackingResponse(CamelModel):
    """Public shipment view.

    Only the fields declared here leave the service; rates, margin and
    internal notes are not part of the type and unknown fields are rejected.
    """

    model_config = ConfigDict(extra="forbid")

    load_number: str
    status: str
    progress_percent: int
    customer_name: Optional[str] = None
    pickup_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    eta: Optional[datetime] = None
    equipment_type: Optional[str] = None
    stops: List[TrackingStop] = Field(default_factory=list)
    current_location: Optional[TrackingLocation] = None
    last_updated_at: Optional[datetime] = None


class LifecycleTable(CamelModel):
    entity: str
    statuses: List[str]
    terminal: List[str]
    transitions: Dict[str, List[str]]
