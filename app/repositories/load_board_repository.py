from datetime import datetime
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.lifecycle import BidStatus, PostingStatus, TenderStatus
from app.database.models import LoadBid, LoadPosting, LoadTender, PostingView, TenderRecipient
from app.repositories.base_repository import TenantRepository

# Order used when listing a posting's bids: open first, then by amount
BID_STATUS_ORDER = case(
    {
        BidStatus.PENDING.value: 0,
        BidStatus.COUNTERED.value: 1,
        BidStatus.ACCEPTED.value: 2,
        BidStatus.REJECTED.value: 3,
        BidStatus.EXPIRED.value: 4,
        BidStatus.WITHDRAWN.value: 5,
    },
    value=LoadBid.status,
    else_=9,
)


class PostingRepository(TenantRepository[LoadPosting]):
    """Repository for load-board postings."""

    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, LoadPosting, tenant_id)

    async def search(
        self,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = PostingStatus.ACTIVE.value,
        origin_state: Optional[str] = None,
        origin_city: Optional[str] = None,
        dest_state: Optional[str] = None,
        dest_city: Optional[str] = None,
        equipment_type: Optional[str] = None,
        pickup_from: Optional[datetime] = None,
        pickup_to: Optional[datetime] = None,
        load_id: Optional[UUID] = None,
    ) -> Tuple[List[LoadPosting], int]:
        query = self.select()
        if status:
            query = query.where(LoadPosting.status == status)
        if origin_state:
            query = query.where(func.upper(LoadPosting.origin_state) == origin_state.upper())
        if origin_city:
            query = query.where(LoadPosting.origin_city.ilike(f"%{origin_city}%"))
        if dest_state:
            query = query.where(func.upper(LoadPosting.dest_state) == dest_state.upper())
        if dest_city:
            query = query.where(LoadPosting.dest_city.ilike(f"%{dest_city}%"))
        if equipment_type:
            query = query.where(LoadPosting.equipment_type == equipment_type)
        if pickup_from:
            query = query.where(LoadPosting.pickup_date >= pickup_from)
        if pickup_to:
            query = query.where(LoadPosting.pickup_date <= pickup_to)
        if load_id:
            query = query.where(LoadPosting.load_id == load_id)
        return await self.paginate(query, page, limit, order_by=[LoadPosting.created_at.desc()])

    async def active_for_load(self, load_id: UUID) -> List[LoadPosting]:
        return await self.get_all(
            filters={"load_id": load_id, "status": PostingStatus.ACTIVE.value}
        )

    async def expire_due(self, now: datetime) -> int:
        return await self.update_where(
            LoadPosting.status == PostingStatus.ACTIVE.value,
            LoadPosting.expires_at <= now,
            status=PostingStatus.EXPIRED.value,
        )

    async def due_for_refresh(self, now: datetime) -> List[LoadPosting]:
        query = self.select().where(
            LoadPosting.status == PostingStatus.ACTIVE.value,
            LoadPosting.auto_refresh.is_(True),
        )
        result = await self.session.execute(query)
        postings = list(result.scalars().all())
        due = []
        for posting in postings:
            last = posting.last_refreshed_at or posting.created_at
            if last is None or (now - last).total_seconds() >= posting.refresh_interval_hours * 3600:
                due.append(posting)
        return due


class PostingViewRepository(TenantRepository[PostingView]):
    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, PostingView, tenant_id)

    async def find(self, posting_id: UUID, carrier_id: UUID) -> Optional[PostingView]:
        query = self.select().where(
            PostingView.posting_id == posting_id, PostingView.carrier_id == carrier_id
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def unique_viewers(self, posting_id: UUID) -> int:
        return await self.count({"posting_id": posting_id})


class BidRepository(TenantRepository[LoadBid]):
    """Repository for carrier bids."""

    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, LoadBid, tenant_id)

    async def for_posting(self, posting_id: UUID) -> List[LoadBid]:
        return await self.get_all(
            limit=500,
            filters={"posting_id": posting_id},
            order_by=[BID_STATUS_ORDER, LoadBid.bid_amount_cents.asc()],
            options=[selectinload(LoadBid.carrier)],
        )

    async def for_carrier(self, carrier_id: UUID, status: Optional[str] = None) -> List[LoadBid]:
        return await self.get_all(
            limit=500,
            filters={"carrier_id": carrier_id, "status": status},
            order_by=[LoadBid.created_at.desc()],
        )

    async def open_bid_for_carrier(self, posting_id: UUID, carrier_id: UUID, open_statuses: Iterable[str]) -> Optional[LoadBid]:
        query = self.select().where(
            LoadBid.posting_id == posting_id,
            LoadBid.carrier_id == carrier_id,
            LoadBid.status.in_(list(open_statuses)),
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def reject_open_bids(
        self,
        posting_id: UUID,
        open_statuses: Iterable[str],
        reason: str,
        now: datetime,
        exclude_bid_id: Optional[UUID] = None,
    ) -> int:
        """Reject every open bid on a posting in a single statement."""
        conditions = [
            LoadBid.posting_id == posting_id,
            LoadBid.status.in_(list(open_statuses)),
        ]
        if exclude_bid_id is not None:
            conditions.append(LoadBid.id != exclude_bid_id)
        return await self.update_where(
            *conditions,
            status=BidStatus.REJECTED.value,
            rejection_reason=reason,
            rejected_at=now,
        )

    async def expire_due(self, now: datetime, open_statuses: Iterable[str]) -> int:
        return await self.update_where(
            LoadBid.status.in_(list(open_statuses)),
            LoadBid.expires_at <= now,
            status=BidStatus.EXPIRED.value,
        )

    async def count_for_posting(self, posting_id: UUID) -> int:
        return await self.count({"posting_id": posting_id})


class TenderRepository(TenantRepository[LoadTender]):
    """Repository for direct tenders and their recipients."""

    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, LoadTender, tenant_id)

    async def get_detail(self, tender_id: UUID) -> Optional[LoadTender]:
        return await self.get_by_id(tender_id, (selectinload(LoadTender.recipients),))

    async def list_tenders(
        self, page: int, limit: int, status: Optional[str] = None, load_id: Optional[UUID] = None
    ) -> Tuple[List[LoadTender], int]:
        query = self.select().options(selectinload(LoadTender.recipients))
        if status:
            query = query.where(LoadTender.status == status)
        if load_id:
            query = query.where(LoadTender.load_id == load_id)
        return await self.paginate(query, page, limit)

    async def active_for_load(self, load_id: UUID) -> List[LoadTender]:
        return await self.get_all(
            filters={"load_id": load_id, "status": TenderStatus.ACTIVE.value},
            options=[selectinload(LoadTender.recipients)],
        )

    async def active_with_recipients(self) -> List[LoadTender]:
        return await self.get_all(
            limit=1000,
            filters={"status": TenderStatus.ACTIVE.value},
            options=[selectinload(LoadTender.recipients)],
        )


class TenderRecipientRepository(TenantRepository[TenderRecipient]):
    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, TenderRecipient, tenant_id)

    async def offers_for_carrier(self, carrier_id: UUID, status: str) -> List[TenderRecipient]:
        try:
            query = (
                self.select()
                .join(LoadTender, LoadTender.id == TenderRecipient.tender_id)
                .where(
                    TenderRecipient.carrier_id == carrier_id,
                    TenderRecipient.status == status,
                    LoadTender.status == TenderStatus.ACTIVE.value,
                )
                .options(selectinload(TenderRecipient.tender))
                .order_by(TenderRecipient.offered_at.desc())
            )
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing tender offers: {e}", exc_info=True)
            raise
