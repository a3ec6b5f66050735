"""Customer relationship records: companies, their contacts and sales activities."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.database.models import Activity, Company, Contact
from app.repositories.crm_repository import ActivityRepository, CompanyRepository, ContactRepository
from app.schemas.crm import (
    ActivityCreate,
    ActivityOut,
    ActivityUpdate,
    CompanyCreate,
    CompanyOut,
    CompanyUpdate,
    ContactCreate,
    ContactUpdate,
)
from app.services.base_service import BaseService, page_envelope
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class CompanyService(BaseService):
    """Companies are deactivated, never deleted, since loads and invoices reference them."""

    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, tenant_id)
        self.company_repo = CompanyRepository(session, tenant_id)

    async def create_company(self, payload: CompanyCreate) -> Company:
        return await self.execute("create_company", payload=payload)

    async def list_companies(self, page: int = 1, limit: int = 20, **filters) -> Dict[str, Any]:
        return await self.execute("list_companies", page=page, limit=limit, filters=filters)

    async def get_company(self, company_id: UUID) -> Company:
        return await self.execute("get_company", company_id=company_id)

    async def update_company(self, company_id: UUID, payload: CompanyUpdate) -> Company:
        return await self.execute("update_company", company_id=company_id, payload=payload)

    async def deactivate_company(self, company_id: UUID) -> Company:
        return await self.execute("deactivate_company", company_id=company_id)

    async def _create_company(self, payload: CompanyCreate) -> Company:
        async with self.transaction():
            company = await self.company_repo.create(**payload.model_dump())
        LOGGER.info(f"Created company {company.name}", extra={"tenant_id": str(self.tenant_id)})
        return company

    async def _list_companies(self, page: int, limit: int, filters: Dict[str, Any]) -> Dict[str, Any]:
        companies, total = await self.company_repo.search(page=page, limit=limit, **filters)
        return page_envelope([CompanyOut.model_validate(c) for c in companies], total, page, limit)

    async def _get_company(self, company_id: UUID) -> Company:
        company = await self.company_repo.get_by_id(company_id)
        if company is None:
            raise NotFoundError("Company", company_id)
        return company

    async def _update_company(self, company_id: UUID, payload: CompanyUpdate) -> Company:
        company = await self._get_company(company_id)
        async with self.transaction():
            for key, value in payload.model_dump(exclude_unset=True).items():
                setattr(company, key, value)
            await self.session.flush()
        return company

    async def _deactivate_company(self, company_id: UUID) -> Company:
        company = await self._get_company(company_id)
        async with self.transaction():
            company.status = "INACTIVE"
            await self.session.flush()
        return company


class ContactService(BaseService):
    """Contacts belong to one company; at most one of them is primary."""

    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, tenant_id)
        self.contact_repo = ContactRepository(session, tenant_id)
        self.company_repo = CompanyRepository(session, tenant_id)

    async def create_contact(self, company_id: UUID, payload: ContactCreate) -> Contact:
        return await self.execute("create_contact", company_id=company_id, payload=payload)

    async def list_contacts(self, company_id: UUID) -> List[Contact]:
        return await self.execute("list_contacts", company_id=company_id)

    async def get_contact(self, company_id: UUID, contact_id: UUID) -> Contact:
        return await self.execute("get_contact", company_id=company_id, contact_id=contact_id)

    async def update_contact(self, company_id: UUID, contact_id: UUID, payload: ContactUpdate) -> Contact:
        return await self.execute("update_contact", company_id=company_id, contact_id=contact_id, payload=payload)

    async def delete_contact(self, company_id: UUID, contact_id: UUID) -> None:
        return await self.execute("delete_contact", company_id=company_id, contact_id=contact_id)

    async def _require_company(self, company_id: UUID) -> None:
        if await self.company_repo.get_by_id(company_id) is None:
            raise NotFoundError("Company", company_id)

    async def _create_contact(self, company_id: UUID, payload: ContactCreate) -> Contact:
        await self._require_company(company_id)
        async with self.transaction():
            if payload.is_primary:
                await self.contact_repo.clear_primary(company_id)
            return await self.contact_repo.create(company_id=company_id, **payload.model_dump())

    async def _list_contacts(self, company_id: UUID) -> List[Contact]:
        await self._require_company(company_id)
        return await self.contact_repo.for_company(company_id)

    async def _get_contact(self, company_id: UUID, contact_id: UUID) -> Contact:
        contact = await self.contact_repo.get_by_id(contact_id)
        if contact is None or contact.company_id != company_id:
            raise NotFoundError("Contact", contact_id)
        return contact

    async def _update_contact(self, company_id: UUID, contact_id: UUID, payload: ContactUpdate) -> Contact:
        contact = await self._get_contact(company_id, contact_id)
        changes = payload.model_dump(exclude_unset=True)
        async with self.transaction():
            if changes.get("is_primary") and not contact.is_primary:
                await self.contact_repo.clear_primary(company_id)
            for key, value in changes.items():
                setattr(contact, key, value)
            await self.session.flush()
        return contact

    async def _delete_contact(self, company_id: UUID, contact_id: UUID) -> None:
        contact = await self._get_contact(company_id, contact_id)
        async with self.transaction():
            await self.contact_repo.delete(contact.id)


class ActivityService(BaseService):
    """Calls, emails, meetings, notes and tasks logged against companies and contacts."""

    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, tenant_id)
        self.activity_repo = ActivityRepository(session, tenant_id)
        self.company_repo = CompanyRepository(session, tenant_id)
        self.contact_repo = ContactRepository(session, tenant_id)

    async def create_activity(self, payload: ActivityCreate, user_id: Optional[str] = None) -> Activity:
        return await self.execute("create_activity", payload=payload, user_id=user_id)

    async def list_activities(self, page: int = 1, limit: int = 20, **filters) -> Dict[str, Any]:
        return await self.execute("list_activities", page=page, limit=limit, filters=filters)

    async def get_activity(self, activity_id: UUID) -> Activity:
        return await self.execute("get_activity", activity_id=activity_id)

    async def update_activity(self, activity_id: UUID, payload: ActivityUpdate) -> Activity:
        return await self.execute("update_activity", activity_id=activity_id, payload=payload)

    async def complete_activity(self, activity_id: UUID) -> Activity:
        return await self.execute("complete_activity", activity_id=activity_id)

    async def delete_activity(self, activity_id: UUID) -> None:
        return await self.execute("delete_activity", activity_id=activity_id)

    async def _create_activity(self, payload: ActivityCreate, user_id: Optional[str]) -> Activity:
        if payload.company_id and await self.company_repo.get_by_id(payload.company_id) is None:
            raise NotFoundError("Company", payload.company_id)
        if payload.contact_id:
            contact = await self.contact_repo.get_by_id(payload.contact_id)
            if contact is None:
                raise NotFoundError("Contact", payload.contact_id)
            if payload.company_id and contact.company_id != payload.company_id:
                raise ValidationError("Contact does not belong to the given company")
        data = payload.model_dump()
        data["owner_id"] = data["owner_id"] or user_id
        async with self.transaction():
            return await self.activity_repo.create(**data, status="OPEN")

    async def _list_activities(self, page: int, limit: int, filters: Dict[str, Any]) -> Dict[str, Any]:
        activities, total = await self.activity_repo.search(page=page, limit=limit, **filters)
        return page_envelope([ActivityOut.model_validate(a) for a in activities], total, page, limit)

    async def _get_activity(self, activity_id: UUID) -> Activity:
        activity = await self.activity_repo.get_by_id(activity_id)
        if activity is None:
            raise NotFoundError("Activity", activity_id)
        return activity

    async def _update_activity(self, activity_id: UUID, payload: ActivityUpdate) -> Activity:
        activity = await self._get_activity(activity_id)
        changes = payload.model_dump(exclude_unset=True)
        if changes.get("status") == "COMPLETED" and activity.status != "COMPLETED":
            changes["completed_at"] = datetime.now(timezone.utc)
        async with self.transaction():
            for key, value in changes.items():
                setattr(activity, key, value)
            await self.session.flush()
        return activity

    async def _complete_activity(self, activity_id: UUID) -> Activity:
        activity = await self._get_activity(activity_id)
        if activity.status != "OPEN":
            raise ValidationError(f"Only OPEN activities can be completed; activity is {activity.status}")
        async with self.transaction():
            activity.status = "COMPLETED"
            activity.completed_at = datetime.now(timezone.utc)
            await self.session.flush()
        return activity

    async def _delete_activity(self, activity_id: UUID) -> None:
        activity = await self._get_activity(activity_id)
        async with self.transaction():
            await self.activity_repo.delete(activity.id)
