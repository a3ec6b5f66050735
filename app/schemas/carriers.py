from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from app.core.lifecycle import CarrierStatus
from app.schemas.common import CamelModel


class InsuranceIn(CamelModel):
    insurance_type: str = Field(..., pattern="^(AUTO_LIABILITY|CARGO|GENERAL_LIABILITY|WORKERS_COMP)$")
    insurer_name: Optional[str] = None
    policy_number: Optional[str] = None
    coverage_amount_cents: int = Field(..., gt=0)
    effective_date: Optional[date] = None
    expiration_date: date


class InsuranceOut(CamelModel):
    id: UUID
    carrier_id: UUID
    insurance_type: str
    insurer_name: Optional[str] = None
    policy_number: Optional[str] = None
    coverage_amount_cents: int
    effective_date: Optional[date] = None
    expiration_date: date


class CarrierCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    mc_number: Optional[str] = None
    dot_number: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    equipment_types: List[str] = Field(default_factory=list)
    service_states: List[str] = Field(default_factory=list)
    w9_on_file: bool = False
    agreement_signed: bool = False
    notes: Optional[str] = None


class CarrierUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    dot_number: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    equipment_types: Optional[List[str]] = None
    service_states: Optional[List[str]] = None
    w9_on_file: Optional[bool] = None
    agreement_signed: Optional[bool] = None
    claims_count: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class CarrierStatusUpdate(CamelModel):
    status: CarrierStatus
    reason: Optional[str] = None


class CarrierOut(CamelModel):
    id: UUID
    name: str
    mc_number: Optional[str] = None
    dot_number: Optional[str] = None
    status: str
    status_reason: Optional[str] = None
    tier: str
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    equipment_types: List[str] = Field(default_factory=list)
    service_states: List[str] = Field(default_factory=list)
    w9_on_file: bool = False
    agreement_signed: bool = False
    claims_count: int = 0
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class CarrierScorecard(CamelModel):
    carrier_id: UUID
    total_loads: int
    completed_loads: int
    on_time_loads: int
    on_time_percentage: float
    claims_count: int
    claims_rate: float
    current_tier: str
    recommended_tier: str
