from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import Field, model_validator

from app.schemas.common import CamelModel


class CommissionTier(CamelModel):
    """Rate applied when the load margin percent is at least ``min_margin_percent``."""

    min_margin_percent: Decimal = Field(..., ge=0)
    rate: Decimal = Field(..., ge=0, le=100)


class CommissionPlanCreate(CamelModel):
    name: str = Field(..., min_length=1)
    plan_type: str = Field(..., pattern="^(FLAT_FEE|PERCENT_REVENUE|PERCENT_MARGIN|TIERED)$")
    flat_amount_cents: Optional[int] = Field(None, ge=0)
    percent_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    minimum_margin_percent: Optional[Decimal] = Field(None, ge=0)
    tiers: List[CommissionTier] = Field(default_factory=list)
    description: Optional[str] = None

    @model_validator(mode="after")
    def check_plan_terms(self) -> "CommissionPlanCreate":
        if self.plan_type == "FLAT_FEE" and self.flat_amount_cents is None:
            raise ValueError("FLAT_FEE plans need flatAmountCents")
        if self.plan_type in ("PERCENT_REVENUE", "PERCENT_MARGIN") and self.percent_rate is None:
            raise ValueError(f"{self.plan_type} plans need percentRate")
        if self.plan_type == "TIERED" and not self.tiers:
            raise ValueError("TIERED plans need at least one tier")
        return self


class CommissionPlanUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    status: Optional[str] = Field(None, pattern="^(ACTIVE|INACTIVE)$")
    flat_amount_cents: Optional[int] = Field(None, ge=0)
    percent_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    minimum_margin_percent: Optional[Decimal] = Field(None, ge=0)
    tiers: Optional[List[CommissionTier]] = None
    description: Optional[str] = None


class CommissionPlanOut(CamelModel):
    id: UUID
    name: str
    plan_type: str
    status: str
    flat_amount_cents: Optional[int] = None
    percent_rate: Optional[Decimal] = None
    minimum_margin_percent: Optional[Decimal] = None
    tiers: List[CommissionTier] = Field(default_factory=list)
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class AssignmentCreate(CamelModel):
    user_id: str = Field(..., min_length=1)
    plan_id: UUID
    override_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    effective_date: Optional[date] = None


class AssignmentOut(CamelModel):
    id: UUID
    user_id: str
    plan_id: UUID
    status: str
    override_rate: Optional[Decimal] = None
    effective_date: date
    end_date: Optional[date] = None


class CalculateCommissionRequest(CamelModel):
    load_id: UUID


class ReverseCommissionRequest(CamelModel):
    reason: str = Field(..., min_length=1)


class CommissionEntryOut(CamelModel):
    id: UUID
    user_id: str
    load_id: Optional[UUID] = None
    order_id: Optional[UUID] = None
    plan_id: Optional[UUID] = None
    entry_type: str
    status: str
    basis_amount_cents: int
    rate_applied: Optional[Decimal] = None
    commission_amount_cents: int
    commission_period: date
    notes: Optional[str] = None
    reversed_at: Optional[datetime] = None
    reversal_reason: Optional[str] = None
    created_at: Optional[datetime] = None


class EarningsSummary(CamelModel):
    user_id: str
    start_date: date
    end_date: date
    entry_count: int
    total_commission_cents: int
    entries: List[CommissionEntryOut]
