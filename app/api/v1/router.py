from fastapi import APIRouter

from app.api.v1.endpoints import (
    admin,
    bids,
    carriers,
    commissions,
    crm,
    dispatch,
    invoices,
    lifecycle,
    loads,
    operations,
    orders,
    payments,
    postings,
    settlements,
    tenders,
    tracking,
    users,
)

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(users.router, prefix="/users", tags=["User"])
api_router.include_router(orders.router, prefix="/orders", tags=["Orders"])
api_router.include_router(loads.router, prefix="/loads", tags=["Loads"])
api_router.include_router(dispatch.router, prefix="/dispatch", tags=["Dispatch"])
api_router.include_router(operations.router, prefix="/operations", tags=["Operations"])
api_router.include_router(tracking.router, prefix="/tracking", tags=["Tracking"])
api_router.include_router(carriers.router, prefix="/carriers", tags=["Carriers"])
api_router.include_router(postings.router, prefix="/load-board/postings", tags=["Load Board"])
api_router.include_router(bids.router, prefix="/load-board/bids", tags=["Load Board"])
api_router.include_router(tenders.router, prefix="/load-board/tenders", tags=["Load Board"])
api_router.include_router(invoices.router, prefix="/accounting/invoices", tags=["Accounting"])
api_router.include_router(payments.router, prefix="/accounting/payments", tags=["Accounting"])
api_router.include_router(settlements.router, prefix="/accounting/settlements", tags=["Accounting"])
api_router.include_router(crm.router, prefix="/crm", tags=["CRM"])
api_router.include_router(commissions.router, prefix="/commissions", tags=["Commissions"])
api_router.include_router(lifecycle.router, prefix="/lifecycle", tags=["Lifecycle"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])

__all__ = ["api_router"]
