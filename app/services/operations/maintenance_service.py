"""On-demand housekeeping sweeps for one tenant."""

from typing import Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.accounting.invoice_service import InvoiceService
from app.services.load_board.bid_service import BidService
from app.services.load_board.posting_service import PostingService
from app.services.load_board.tender_service import TenderService
from app.services.realtime.dispatch_events import DispatchEventHub
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class MaintenanceService:
    """Runs the expiry and overdue sweeps; each sweep commits on its own."""

    SWEEPS = (
        "expire_postings",
        "refresh_postings",
        "expire_bids",
        "process_tender_timeouts",
        "expire_tenders",
        "mark_overdue_invoices",
    )

    def __init__(self, session: AsyncSession, tenant_id: UUID, event_hub: Optional[DispatchEventHub] = None):
        self.tenant_id = tenant_id
        self.postings = PostingService(session, tenant_id, event_hub)
        self.bids = BidService(session, tenant_id, event_hub)
        self.tenders = TenderService(session, tenant_id, event_hub)
        self.invoices = InvoiceService(session, tenant_id)

    async def expire_postings(self) -> int:
        return await self.postings.expire_old_postings()

    async def refresh_postings(self) -> int:
        return await self.postings.auto_refresh_postings()

    async def expire_bids(self) -> int:
        return await self.bids.expire_old_bids()

    async def process_tender_timeouts(self) -> int:
        return await self.tenders.process_waterfall_timeouts()

    async def expire_tenders(self) -> int:
        return await self.tenders.expire_old_tenders()

    async def mark_overdue_invoices(self) -> int:
        return await self.invoices.mark_overdue()

    async def run_all(self) -> Dict[str, int]:
        results = {}
        for sweep in self.SWEEPS:
            results[sweep] = await getattr(self, sweep)()
        LOGGER.info(
            "Maintenance sweeps completed",
            extra={"tenant_id": str(self.tenant_id), "results": results},
        )
        return results
