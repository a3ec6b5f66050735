from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import Activity, Company, Contact
from app.repositories.base_repository import TenantRepository


class CompanyRepository(TenantRepository[Company]):
    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, Company, tenant_id)

    async def search(
        self,
        page: int = 1,
        limit: int = 20,
        company_type: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        assigned_user_id: Optional[str] = None,
    ) -> Tuple[List[Company], int]:
        query = self.select()
        if company_type:
            query = query.where(Company.company_type == company_type)
        if status:
            query = query.where(Company.status == status)
        if assigned_user_id:
            query = query.where(Company.assigned_user_id == assigned_user_id)
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(Company.name.ilike(pattern), Company.email.ilike(pattern)))
        return await self.paginate(query, page, limit, order_by=[Company.name.asc()])


class ContactRepository(TenantRepository[Contact]):
    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, Contact, tenant_id)

    async def for_company(self, company_id: UUID) -> List[Contact]:
        return await self.get_all(
            filters={"company_id": company_id},
            order_by=[Contact.is_primary.desc(), Contact.last_name.asc()],
        )

    async def clear_primary(self, company_id: UUID) -> int:
        return await self.update_where(
            Contact.company_id == company_id,
            Contact.is_primary.is_(True),
            is_primary=False,
        )


class ActivityRepository(TenantRepository[Activity]):
    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, Activity, tenant_id)

    async def search(
        self,
        page: int = 1,
        limit: int = 20,
        company_id: Optional[UUID] = None,
        contact_id: Optional[UUID] = None,
        activity_type: Optional[str] = None,
        status: Optional[str] = None,
        owner_id: Optional[str] = None,
    ) -> Tuple[List[Activity], int]:
        query = self.select()
        if company_id:
            query = query.where(Activity.company_id == company_id)
        if contact_id:
            query = query.where(Activity.contact_id == contact_id)
        if activity_type:
            query = query.where(Activity.activity_type == activity_type)
        if status:
            query = query.where(Activity.status == status)
        if owner_id:
            query = query.where(Activity.owner_id == owner_id)
        return await self.paginate(query, page, limit)
