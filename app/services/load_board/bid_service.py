"""Carrier bids on load-board postings and bid acceptance."""

from datetime import datetime, timedelta, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ConflictError, InvalidStateTransitionError, NotFoundError, ValidationError
from app.core.lifecycle import (
    OPEN_BID_STATUSES,
    BidStatus,
    CarrierStatus,
    LoadStatus,
    PostingStatus,
    assert_transition,
)
from app.database.models import LoadBid, LoadPosting
from app.repositories.carrier_repository import CarrierRepository
from app.repositories.load_board_repository import (
    BidRepository,
    PostingRepository,
    TenderRecipientRepository,
    TenderRepository,
)
from app.repositories.load_repository import LoadRepository, LoadStatusHistoryRepository
from app.schemas.load_board import BidCounterRequest, BidCreate
from app.services.base_service import BaseService
from app.services.load_board.closeout import cancel_active_tenders
from app.services.operations.load_status import LoadStatusWriter
from app.services.realtime.dispatch_events import DispatchEventHub, DispatchEventType
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

ANOTHER_BID_ACCEPTED = "Another bid was accepted"


class BidService(BaseService):
    """Service for bids placed by carriers on postings."""

    def __init__(self, session: AsyncSession, tenant_id: UUID, event_hub: Optional[DispatchEventHub] = None):
        super().__init__(session, tenant_id, event_hub)
        self.bid_repo = BidRepository(session, tenant_id)
        self.posting_repo = PostingRepository(session, tenant_id)
        self.carrier_repo = CarrierRepository(session, tenant_id)
        self.load_repo = LoadRepository(session, tenant_id)
        self.tender_repo = TenderRepository(session, tenant_id)
        self.recipient_repo = TenderRecipientRepository(session, tenant_id)
        self.status_writer = LoadStatusWriter(self.load_repo, LoadStatusHistoryRepository(session, tenant_id))

    async def create_bid(self, payload: BidCreate) -> LoadBid:
        return await self.execute("create_bid", payload=payload)

    async def list_for_posting(self, posting_id: UUID) -> List[LoadBid]:
        return await self.execute("list_for_posting", posting_id=posting_id)

    async def list_for_carrier(self, carrier_id: UUID, status: Optional[str] = None) -> List[LoadBid]:
        return await self.execute("list_for_carrier", carrier_id=carrier_id, status=status)

    async def get_bid(self, bid_id: UUID) -> LoadBid:
        return await self.execute("get_bid", bid_id=bid_id)

    async def accept_bid(self, bid_id: UUID, user_id: Optional[str] = None) -> LoadBid:
        return await self.execute("accept_bid", bid_id=bid_id, user_id=user_id)

    async def reject_bid(self, bid_id: UUID, reason: str) -> LoadBid:
        return await self.execute("reject_bid", bid_id=bid_id, reason=reason)

    async def counter_bid(self, bid_id: UUID, payload: BidCounterRequest) -> LoadBid:
        return await self.execute("counter_bid", bid_id=bid_id, payload=payload)

    async def accept_counter(self, bid_id: UUID) -> LoadBid:
        return await self.execute("accept_counter", bid_id=bid_id)

    async def withdraw_bid(self, bid_id: UUID) -> LoadBid:
        return await self.execute("withdraw_bid", bid_id=bid_id)

    async def expire_old_bids(self) -> int:
        return await self.execute("expire_old_bids")

    async def _get_posting(self, posting_id: UUID) -> LoadPosting:
        posting = await self.posting_repo.get_by_id(posting_id)
        if posting is None:
            raise NotFoundError("Posting", posting_id)
        return posting

    async def _get_bid(self, bid_id: UUID) -> LoadBid:
        bid = await self.bid_repo.get_by_id(bid_id)
        if bid is None:
            raise NotFoundError("Bid", bid_id)
        return bid

    async def _create_bid(self, payload: BidCreate) -> LoadBid:
        posting = await self._get_posting(payload.posting_id)
        now = datetime.now(timezone.utc)
        if posting.status != PostingStatus.ACTIVE.value or posting.expires_at <= now:
            raise ValidationError("Bids can only be placed on ACTIVE postings")

        carrier = await self.carrier_repo.get_by_id(payload.carrier_id)
        if carrier is None:
            raise NotFoundError("Carrier", payload.carrier_id)
        if carrier.status != CarrierStatus.ACTIVE.value:
            raise ValidationError(f"Carrier {carrier.name} is {carrier.status} and cannot bid")
        if posting.visibility == "CARRIER_LIST" and str(carrier.id) not in (posting.carrier_ids or []):
            raise ValidationError("This posting is only open to selected carriers")
        if await self.bid_repo.open_bid_for_carrier(posting.id, carrier.id, OPEN_BID_STATUSES):
            raise ConflictError("Carrier already has an open bid on this posting")

        expires_at = payload.expires_at or now + timedelta(hours=settings.load_board.bid_expiry_hours)
        async with self.transaction():
            bid = await self.bid_repo.create(
                **payload.model_dump(exclude={"expires_at"}),
                load_id=posting.load_id,
                status=BidStatus.PENDING.value,
                expires_at=expires_at,
            )
            self.emit(
                DispatchEventType.BID_RECEIVED.value,
                None,
                postingId=str(posting.id),
                bidId=str(bid.id),
                carrierId=str(carrier.id),
                amountCents=bid.bid_amount_cents,
            )
        LOGGER.info(
            f"Carrier {carrier.name} bid {bid.bid_amount_cents} on posting {posting.id}",
            extra={"tenant_id": str(self.tenant_id)},
        )
        return bid

    async def _list_for_posting(self, posting_id: UUID) -> List[LoadBid]:
        await self._get_posting(posting_id)
        return await self.bid_repo.for_posting(posting_id)

    async def _list_for_carrier(self, carrier_id: UUID, status: Optional[str]) -> List[LoadBid]:
        return await self.bid_repo.for_carrier(carrier_id, status)

    async def _move_bid(self, bid: LoadBid, expected, to_status: str, **values) -> None:
        """Conditional bid write; zero rows means the bid changed under us."""
        if not await self.bid_repo.transition(bid.id, expected, to_status, **values):
            raise ConflictError("Bid changed concurrently; reload and retry")

    async def _accept_bid(self, bid_id: UUID, user_id: Optional[str]) -> LoadBid:
        bid = await self._get_bid(bid_id)
        posting = await self._get_posting(bid.posting_id)
        if posting.status != PostingStatus.ACTIVE.value:
            raise InvalidStateTransitionError(
                "posting", posting.status, PostingStatus.BOOKED.value,
                f"Cannot accept a bid on a {posting.status} posting",
            )
        if bid.status != BidStatus.PENDING.value:
            raise InvalidStateTransitionError(
                "bid", bid.status, BidStatus.ACCEPTED.value, f"Only PENDING bids can be accepted; bid is {bid.status}"
            )

        load = await self.load_repo.get_by_id(bid.load_id)
        if load is None:
            raise NotFoundError("Load", bid.load_id)
        carrier = await self.carrier_repo.get_by_id(bid.carrier_id)
        if carrier is None or carrier.status != CarrierStatus.ACTIVE.value:
            raise ValidationError("The bidding carrier is no longer ACTIVE")

        now = datetime.now(timezone.utc)
        async with self.transaction():
            booked = await self.posting_repo.transition(
                posting.id,
                PostingStatus.ACTIVE.value,
                PostingStatus.BOOKED.value,
                booked_bid_id=bid.id,
                booked_carrier_id=bid.carrier_id,
                booked_at=now,
            )
            if not booked:
                raise ConflictError("Posting is no longer ACTIVE; another bid or tender won the load")
            await self._move_bid(bid, BidStatus.PENDING.value, BidStatus.ACCEPTED.value, accepted_at=now)
            rejected = await self.bid_repo.reject_open_bids(
                posting.id, OPEN_BID_STATUSES, ANOTHER_BID_ACCEPTED, now, exclude_bid_id=bid.id
            )
            await self.status_writer.move(
                load,
                LoadStatus.TENDERED.value,
                changed_by=user_id,
                notes=f"Bid accepted from {carrier.name}",
                carrier_id=bid.carrier_id,
                carrier_rate_cents=bid.bid_amount_cents,
                truck_number=bid.truck_number,
                driver_name=bid.driver_name,
                driver_phone=bid.driver_phone,
            )
            cancelled_tenders = await self._cancel_active_tenders(load.id, now)

            self.emit(DispatchEventType.POSTING_BOOKED.value, load, postingId=str(posting.id), bidId=str(bid.id))
            self.emit(
                DispatchEventType.LOAD_ASSIGNED.value,
                load,
                carrierId=str(carrier.id),
                carrierName=carrier.name,
                source="bid",
            )

        LOGGER.info(
            f"Accepted bid {bid.id} on posting {posting.id}; rejected {rejected}, cancelled {cancelled_tenders} tender(s)",
            extra={"tenant_id": str(self.tenant_id), "user_id": user_id},
        )
        return bid

    async def _cancel_active_tenders(self, load_id: UUID, now: datetime) -> int:
        return await cancel_active_tenders(self.tender_repo, self.recipient_repo, load_id, now)

    async def _reject_bid(self, bid_id: UUID, reason: str) -> LoadBid:
        bid = await self._get_bid(bid_id)
        if bid.status != BidStatus.PENDING.value:
            raise InvalidStateTransitionError("bid", bid.status, BidStatus.REJECTED.value)
        async with self.transaction():
            await self._move_bid(
                bid,
                BidStatus.PENDING.value,
                BidStatus.REJECTED.value,
                rejection_reason=reason,
                rejected_at=datetime.now(timezone.utc),
            )
        return bid

    async def _counter_bid(self, bid_id: UUID, payload: BidCounterRequest) -> LoadBid:
        bid = await self._get_bid(bid_id)
        if bid.status != BidStatus.PENDING.value:
            raise InvalidStateTransitionError("bid", bid.status, BidStatus.COUNTERED.value)
        posting = await self._get_posting(bid.posting_id)
        if posting.status != PostingStatus.ACTIVE.value:
            raise ValidationError(f"Cannot counter a bid on a {posting.status} posting")
        async with self.transaction():
            await self._move_bid(
                bid,
                BidStatus.PENDING.value,
                BidStatus.COUNTERED.value,
                counter_amount_cents=payload.counter_amount_cents,
                counter_notes=payload.notes,
                countered_at=datetime.now(timezone.utc),
            )
        return bid

    async def _accept_counter(self, bid_id: UUID) -> LoadBid:
        """Carrier takes the counter: the bid reopens at the countered amount."""
        bid = await self._get_bid(bid_id)
        assert_transition("bid", bid.status, BidStatus.PENDING.value)
        posting = await self._get_posting(bid.posting_id)
        if posting.status != PostingStatus.ACTIVE.value:
            raise ValidationError(f"Cannot accept a counter on a {posting.status} posting")
        async with self.transaction():
            await self._move_bid(
                bid,
                BidStatus.COUNTERED.value,
                BidStatus.PENDING.value,
                bid_amount_cents=bid.counter_amount_cents,
            )
        return bid

    async def _withdraw_bid(self, bid_id: UUID) -> LoadBid:
        bid = await self._get_bid(bid_id)
        assert_transition("bid", bid.status, BidStatus.WITHDRAWN.value)
        async with self.transaction():
            await self._move_bid(
                bid,
                OPEN_BID_STATUSES,
                BidStatus.WITHDRAWN.value,
                withdrawn_at=datetime.now(timezone.utc),
            )
        return bid

    async def _expire_old_bids(self) -> int:
        async with self.transaction():
            expired = await self.bid_repo.expire_due(datetime.now(timezone.utc), OPEN_BID_STATUSES)
        if expired:
            LOGGER.info(f"Expired {expired} bid(s)", extra={"tenant_id": str(self.tenant_id)})
        return expired
