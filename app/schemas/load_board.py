"""Schemas for postings, bids, tenders and carrier matches."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field, model_validator

from app.schemas.common import CamelModel


class PostingCreate(CamelModel):
    load_id: UUID
    visibility: str = Field("PUBLIC", pattern="^(PUBLIC|PRIVATE|CARRIER_LIST)$")
    show_rate: bool = False
    rate_type: str = Field("FLAT", pattern="^(FLAT|PER_MILE)$")
    posted_rate_cents: Optional[int] = Field(None, ge=0)
    rate_min_cents: Optional[int] = Field(None, ge=0)
    rate_max_cents: Optional[int] = Field(None, ge=0)
    expires_at: Optional[datetime] = None
    auto_refresh: bool = False
    refresh_interval_hours: Optional[int] = Field(None, ge=1)
    carrier_ids: List[UUID] = Field(default_factory=list)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_rate_range(self) -> "PostingCreate":
        if (
            self.rate_min_cents is not None
            and self.rate_max_cents is not None
            and self.rate_min_cents > self.rate_max_cents
        ):
            raise ValueError("rateMinCents cannot exceed rateMaxCents")
        return self


class PostingUpdate(CamelModel):
    visibility: Optional[str] = Field(None, pattern="^(PUBLIC|PRIVATE|CARRIER_LIST)$")
    show_rate: Optional[bool] = None
    rate_type: Optional[str] = Field(None, pattern="^(FLAT|PER_MILE)$")
    posted_rate_cents: Optional[int] = Field(None, ge=0)
    rate_min_cents: Optional[int] = Field(None, ge=0)
    rate_max_cents: Optional[int] = Field(None, ge=0)
    expires_at: Optional[datetime] = None
    auto_refresh: Optional[bool] = None
    refresh_interval_hours: Optional[int] = Field(None, ge=1)
    carrier_ids: Optional[List[UUID]] = None
    notes: Optional[str] = None


class PostingOut(CamelModel):
    id: UUID
    load_id: UUID
    status: str
    visibility: str
    show_rate: bool
    rate_type: str
    posted_rate_cents: Optional[int] = None
    rate_min_cents: Optional[int] = None
    rate_max_cents: Optional[int] = None
    origin_city: Optional[str] = None
    origin_state: Optional[str] = None
    dest_city: Optional[str] = None
    dest_state: Optional[str] = None
    equipment_type: Optional[str] = None
    pickup_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    expires_at: datetime
    auto_refresh: bool = False
    refresh_interval_hours: int = 4
    last_refreshed_at: Optional[datetime] = None
    view_count: int = 0
    booked_bid_id: Optional[UUID] = None
    booked_carrier_id: Optional[UUID] = None
    booked_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class PostingMetrics(CamelModel):
    posting_id: UUID
    total_views: int
    unique_viewers: int
    total_bids: int


class TrackViewRequest(CamelModel):
    carrier_id: UUID


class BidCreate(CamelModel):
    posting_id: UUID
    carrier_id: UUID
    bid_amount_cents: int = Field(..., gt=0)
    rate_type: str = Field("FLAT", pattern="^(FLAT|PER_MILE)$")
    notes: Optional[str] = None
    truck_number: Optional[str] = None
    driver_name: Optional[str] = None
    driver_phone: Optional[str] = None
    expires_at: Optional[datetime] = None


class BidRejectRequest(CamelModel):
    reason: str = Field(..., min_length=1)


class BidCounterRequest(CamelModel):
    counter_amount_cents: int = Field(..., gt=0)
    notes: Optional[str] = None


class BidOut(CamelModel):
    id: UUID
    posting_id: UUID
    load_id: UUID
    carrier_id: UUID
    carrier_name: Optional[str] = None
    status: str
    bid_amount_cents: int
    rate_type: str
    notes: Optional[str] = None
    truck_number: Optional[str] = None
    driver_name: Optional[str] = None
    driver_phone: Optional[str] = None
    expires_at: datetime
    counter_amount_cents: Optional[int] = None
    counter_notes: Optional[str] = None
    countered_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    withdrawn_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class TenderRecipientIn(CamelModel):
    carrier_id: UUID
    position: Optional[int] = Field(None, ge=1)


class TenderCreate(CamelModel):
    load_id: UUID
    tender_type: str = Field("WATERFALL", pattern="^(WATERFALL|BROADCAST)$")
    tender_rate_cents: int = Field(..., gt=0)
    timeout_minutes: Optional[int] = Field(None, ge=1)
    expires_at: Optional[datetime] = None
    notes: Optional[str] = None
    recipients: List[TenderRecipientIn] = Field(..., min_length=1)


class TenderResponseRequest(CamelModel):
    carrier_id: UUID
    accept: bool
    decline_reason: Optional[str] = None


class TenderRecipientOut(CamelModel):
    id: UUID
    carrier_id: UUID
    position: int
    status: str
    offered_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    decline_reason: Optional[str] = None


class TenderOut(CamelModel):
    id: UUID
    load_id: UUID
    tender_type: str
    status: str
    tender_rate_cents: int
    timeout_minutes: int
    expires_at: Optional[datetime] = None
    accepted_carrier_id: Optional[UUID] = None
    accepted_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    recipients: List[TenderRecipientOut] = Field(default_factory=list)


class CarrierMatch(CamelModel):
    carrier_id: UUID
    carrier_name: str
    mc_number: Optional[str] = None
    tier: str
    match_score: int
    on_time_percentage: float
    claims_rate: float
    insurance_status: str
    equipment_match: bool
    lane_match: bool
    has_bid: bool
