from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from app.schemas.common import CamelModel


class CompanyCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    company_type: str = Field("CUSTOMER", pattern="^(CUSTOMER|PROSPECT|SHIPPER|CONSIGNEE|PARTNER|VENDOR)$")
    status: str = "ACTIVE"
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    address_line1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: str = "US"
    credit_limit_cents: Optional[int] = Field(None, ge=0)
    payment_terms: str = "NET30"
    assigned_user_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None


class CompanyUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    company_type: Optional[str] = Field(None, pattern="^(CUSTOMER|PROSPECT|SHIPPER|CONSIGNEE|PARTNER|VENDOR)$")
    status: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    address_line1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    credit_limit_cents: Optional[int] = Field(None, ge=0)
    payment_terms: Optional[str] = None
    assigned_user_id: Optional[str] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None


class CompanyOut(CompanyCreate):
    id: UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ContactCreate(CamelModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = None
    is_primary: bool = False


class ContactUpdate(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = None
    is_primary: Optional[bool] = None
    status: Optional[str] = None


class ContactOut(CamelModel):
    id: UUID
    company_id: UUID
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = None
    is_primary: bool
    status: str
    created_at: Optional[datetime] = None


class ActivityCreate(CamelModel):
    activity_type: str = Field(..., pattern="^(CALL|EMAIL|MEETING|NOTE|TASK)$")
    subject: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    company_id: Optional[UUID] = None
    contact_id: Optional[UUID] = None
    owner_id: Optional[str] = None
    due_date: Optional[datetime] = None


class ActivityUpdate(CamelModel):
    subject: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[str] = Field(None, pattern="^(OPEN|COMPLETED|CANCELLED)$")
    owner_id: Optional[str] = None
    due_date: Optional[datetime] = None


class ActivityOut(CamelModel):
    id: UUID
    activity_type: str
    subject: str
    description: Optional[str] = None
    status: str
    company_id: Optional[UUID] = None
    contact_id: Optional[UUID] = None
    owner_id: Optional[str] = None
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
