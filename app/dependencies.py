"""Centralized dependency injection for the FastAPI application.

Every tenant-scoped service is built per request from the request's database
session and the tenant id of the authenticated principal, so a service can
only ever read or write that tenant's rows.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_tenant_id
from app.core.database import get_async_session
from app.services.accounting.invoice_service import InvoiceService
from app.services.accounting.payment_service import PaymentService
from app.services.accounting.settlement_service import SettlementService
from app.services.carriers.carrier_service import CarrierService
from app.services.carriers.matching_service import CarrierMatchingService
from app.services.commissions.commission_service import CommissionService
from app.services.crm.crm_service import ActivityService, CompanyService, ContactService
from app.services.load_board.bid_service import BidService
from app.services.load_board.posting_service import PostingService
from app.services.load_board.tender_service import TenderService
from app.services.operations.dispatch_board_service import DispatchBoardService
from app.services.operations.load_service import LoadService
from app.services.operations.maintenance_service import MaintenanceService
from app.services.operations.order_service import OrderService
from app.services.operations.tracking_service import TrackingService

SessionDep = Annotated[AsyncSession, Depends(get_async_session)]
TenantDep = Annotated[UUID, Depends(get_tenant_id)]


async def get_load_service(db_session: SessionDep, tenant_id: TenantDep) -> LoadService:
    """Get load service instance.

    Args:
        db_session: Database session from dependency injection
        tenant_id: Tenant of the authenticated user

    Returns:
        LoadService: Service for load lifecycle operations
    """
    return LoadService(db_session, tenant_id)


async def get_order_service(db_session: SessionDep, tenant_id: TenantDep) -> OrderService:
    return OrderService(db_session, tenant_id)


async def get_dispatch_board_service(db_session: SessionDep, tenant_id: TenantDep) -> DispatchBoardService:
    return DispatchBoardService(db_session, tenant_id)


async def get_tracking_service(db_session: SessionDep) -> TrackingService:
    """Get the public tracking service.

    Tracking is unauthenticated and resolves the tenant from the tracking
    code itself, so no tenant dependency is taken here.
    """
    return TrackingService(db_session)


async def get_carrier_service(db_session: SessionDep, tenant_id: TenantDep) -> CarrierService:
    return CarrierService(db_session, tenant_id)


async def get_matching_service(db_session: SessionDep, tenant_id: TenantDep) -> CarrierMatchingService:
    return CarrierMatchingService(db_session, tenant_id)


async def get_posting_service(db_session: SessionDep, tenant_id: TenantDep) -> PostingService:
    return PostingService(db_session, tenant_id)


async def get_bid_service(db_session: SessionDep, tenant_id: TenantDep) -> BidService:
    return BidService(db_session, tenant_id)


async def get_tender_service(db_session: SessionDep, tenant_id: TenantDep) -> TenderService:
    return TenderService(db_session, tenant_id)


async def get_invoice_service(db_session: SessionDep, tenant_id: TenantDep) -> InvoiceService:
    return InvoiceService(db_session, tenant_id)


async def get_payment_service(db_session: SessionDep, tenant_id: TenantDep) -> PaymentService:
    return PaymentService(db_session, tenant_id)


async def get_settlement_service(db_session: SessionDep, tenant_id: TenantDep) -> SettlementService:
    return SettlementService(db_session, tenant_id)


async def get_company_service(db_session: SessionDep, tenant_id: TenantDep) -> CompanyService:
    return CompanyService(db_session, tenant_id)


async def get_contact_service(db_session: SessionDep, tenant_id: TenantDep) -> ContactService:
    return ContactService(db_session, tenant_id)


async def get_activity_service(db_session: SessionDep, tenant_id: TenantDep) -> ActivityService:
    return ActivityService(db_session, tenant_id)


async def get_commission_service(db_session: SessionDep, tenant_id: TenantDep) -> CommissionService:
    return CommissionService(db_session, tenant_id)


async def get_maintenance_service(db_session: SessionDep, tenant_id: TenantDep) -> MaintenanceService:
    """Get the maintenance service that runs the housekeeping sweeps for one tenant."""
    return MaintenanceService(db_session, tenant_id)
