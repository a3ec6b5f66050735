"""Tests for the bid lifecycle and posting cancellation in the load board services."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from app.core.exceptions import ConflictError, InvalidStateTransitionError, ValidationError
from app.core.lifecycle import OPEN_BID_STATUSES
from app.schemas.load_board import BidCounterRequest, BidCreate
from app.services.load_board.bid_service import ANOTHER_BID_ACCEPTED, BidService
from app.services.load_board.posting_service import PostingService


def make_posting(status="ACTIVE"):
    return SimpleNamespace(
        id=uuid4(),
        load_id=uuid4(),
        status=status,
        expires_at=datetime.now(timezone.utc) + timedelta(days=1),
        visibility="PUBLIC",
        carrier_ids=[],
    )


def make_bid(posting, status="PENDING"):
    return SimpleNamespace(
        id=uuid4(),
        posting_id=posting.id,
        load_id=posting.load_id,
        carrier_id=uuid4(),
        status=status,
        bid_amount_cents=180_000,
        truck_number="T-12",
        driver_name="Pat",
        driver_phone="555-0101",
    )


@pytest.fixture
def bid_setup(mock_session, tenant_id, event_hub):
    posting = make_posting()
    bid = make_bid(posting)
    load = SimpleNamespace(id=posting.load_id, load_number="LD2024060001", status="UNASSIGNED")
    carrier = SimpleNamespace(id=bid.carrier_id, name="Swift Lines", status="ACTIVE")

    service = BidService(mock_session, tenant_id, event_hub)
    service.bid_repo = AsyncMock()
    service.bid_repo.get_by_id.return_value = bid
    service.bid_repo.transition.return_value = True
    service.bid_repo.reject_open_bids.return_value = 2
    service.bid_repo.open_bid_for_carrier.return_value = None
    service.posting_repo = AsyncMock()
    service.posting_repo.get_by_id.return_value = posting
    service.posting_repo.transition.return_value = True
    service.load_repo = AsyncMock()
    service.load_repo.get_by_id.return_value = load
    service.carrier_repo = AsyncMock()
    service.carrier_repo.get_by_id.return_value = carrier
    service.tender_repo = AsyncMock()
    service.tender_repo.active_for_load.return_value = []
    service.recipient_repo = AsyncMock()
    service.status_writer = AsyncMock()
    return SimpleNamespace(service=service, posting=posting, bid=bid, load=load, carrier=carrier)


class TestAcceptBid:
    @pytest.mark.asyncio
    async def test_accept_books_posting_and_tenders_load(self, bid_setup, mock_session, event_hub):
        s = bid_setup

        result = await s.service.accept_bid(s.bid.id, user_id="user-1")

        assert result is s.bid
        s.service.posting_repo.transition.assert_awaited_once()
        args, kwargs = s.service.posting_repo.transition.call_args
        assert args == (s.posting.id, "ACTIVE", "BOOKED")
        assert kwargs["booked_bid_id"] == s.bid.id
        assert kwargs["booked_carrier_id"] == s.bid.carrier_id

        reject_args, reject_kwargs = s.service.bid_repo.reject_open_bids.call_args
        assert reject_args[0] == s.posting.id
        assert reject_args[1] == OPEN_BID_STATUSES
        assert reject_args[2] == ANOTHER_BID_ACCEPTED
        assert reject_kwargs["exclude_bid_id"] == s.bid.id

        move_args, move_kwargs = s.service.status_writer.move.call_args
        assert move_args == (s.load, "TENDERED")
        assert move_kwargs["carrier_id"] == s.bid.carrier_id
        assert move_kwargs["carrier_rate_cents"] == 180_000

        mock_session.commit.assert_awaited_once()
        published = [call.args[0].type for call in event_hub.publish.await_args_list]
        assert published == ["posting.booked", "load.assigned"]

    @pytest.mark.asyncio
    async def test_lost_booking_race_rolls_back(self, bid_setup, mock_session, event_hub):
        s = bid_setup
        s.service.posting_repo.transition.return_value = False

        with pytest.raises(ConflictError):
            await s.service.accept_bid(s.bid.id)

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()
        s.service.bid_repo.reject_open_bids.assert_not_awaited()
        s.service.status_writer.move.assert_not_awaited()
        event_hub.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_booked_posting_rejects_accept(self, bid_setup):
        s = bid_setup
        s.posting.status = "BOOKED"

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            await s.service.accept_bid(s.bid.id)

        assert exc_info.value.status_code == 409
        s.service.posting_repo.transition.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_countered_bid_cannot_be_accepted(self, bid_setup):
        s = bid_setup
        s.bid.status = "COUNTERED"

        with pytest.raises(InvalidStateTransitionError):
            await s.service.accept_bid(s.bid.id)

    @pytest.mark.asyncio
    async def test_inactive_carrier_cannot_win(self, bid_setup):
        s = bid_setup
        s.carrier.status = "SUSPENDED"

        with pytest.raises(ValidationError):
            await s.service.accept_bid(s.bid.id)

        s.service.posting_repo.transition.assert_not_awaited()


class TestCancelPosting:
    @pytest.mark.asyncio
    async def test_cancel_rejects_open_bids(self, mock_session, tenant_id, event_hub):
        posting = make_posting()
        service = PostingService(mock_session, tenant_id, event_hub)
        service.posting_repo = AsyncMock()
        service.posting_repo.get_by_id.return_value = posting
        service.posting_repo.transition.return_value = True
        service.bid_repo = AsyncMock()
        service.bid_repo.reject_open_bids.return_value = 3

        await service.cancel_posting(posting.id, reason="Customer cancelled")

        args = service.bid_repo.reject_open_bids.call_args.args
        assert args[0] == posting.id
        assert args[2] == "Customer cancelled"
        event = event_hub.publish.await_args.args[0]
        assert event.type == "posting.cancelled"
        assert event.data["rejectedBids"] == 3

    @pytest.mark.asyncio
    async def test_cancel_of_booked_posting_is_rejected(self, mock_session, tenant_id, event_hub):
        posting = make_posting(status="BOOKED")
        service = PostingService(mock_session, tenant_id, event_hub)
        service.posting_repo = AsyncMock()
        service.posting_repo.get_by_id.return_value = posting
        service.bid_repo = AsyncMock()

        with pytest.raises(InvalidStateTransitionError):
            await service.cancel_posting(posting.id, reason=None)

        service.bid_repo.reject_open_bids.assert_not_awaited()


class TestAcceptBidClosesTenders:
    @pytest.mark.asyncio
    async def test_accept_cancels_active_tender_on_load(self, bid_setup, event_hub):
        s = bid_setup
        tender = SimpleNamespace(id=uuid4(), load_id=s.load.id, status="ACTIVE")
        s.service.tender_repo.active_for_load.return_value = [tender]
        s.service.tender_repo.transition.return_value = True

        await s.service.accept_bid(s.bid.id)

        args, kwargs = s.service.tender_repo.transition.call_args
        assert args == (tender.id, "ACTIVE", "CANCELLED")
        assert "cancelled_at" in kwargs
        assert s.service.recipient_repo.update_where.call_args.kwargs == {"status": "SKIPPED"}
        assert event_hub.publish.await_count == 2

    @pytest.mark.asyncio
    async def test_tender_race_rolls_back_booking(self, bid_setup, mock_session, event_hub):
        s = bid_setup
        s.service.tender_repo.active_for_load.return_value = [SimpleNamespace(id=uuid4(), status="ACTIVE")]
        s.service.tender_repo.transition.return_value = False

        with pytest.raises(ConflictError):
            await s.service.accept_bid(s.bid.id)

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()
        event_hub.publish.assert_not_awaited()


class TestCreateBid:
    @staticmethod
    def payload(s, **overrides):
        data = {"posting_id": s.posting.id, "carrier_id": s.carrier.id, "bid_amount_cents": 240_000}
        data.update(overrides)
        return BidCreate(**data)

    @pytest.mark.asyncio
    async def test_pending_bid_with_default_expiry(self, bid_setup, mock_session, event_hub):
        s = bid_setup
        s.service.bid_repo.create.return_value = SimpleNamespace(id=uuid4(), bid_amount_cents=240_000)

        await s.service.create_bid(self.payload(s))

        kwargs = s.service.bid_repo.create.call_args.kwargs
        assert kwargs["status"] == "PENDING"
        assert kwargs["load_id"] == s.posting.load_id
        assert kwargs["bid_amount_cents"] == 240_000
        window = kwargs["expires_at"] - datetime.now(timezone.utc)
        assert timedelta(hours=23) < window <= timedelta(hours=24)
        mock_session.commit.assert_awaited_once()
        event = event_hub.publish.await_args.args[0]
        assert event.type == "bid.received"
        assert event.data["amountCents"] == 240_000

    @pytest.mark.asyncio
    async def test_closed_posting_takes_no_bids(self, bid_setup):
        s = bid_setup
        s.posting.status = "BOOKED"

        with pytest.raises(ValidationError):
            await s.service.create_bid(self.payload(s))

        s.service.bid_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lapsed_posting_takes_no_bids(self, bid_setup):
        s = bid_setup
        s.posting.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)

        with pytest.raises(ValidationError):
            await s.service.create_bid(self.payload(s))

    @pytest.mark.asyncio
    async def test_second_open_bid_from_carrier_conflicts(self, bid_setup):
        s = bid_setup
        s.service.bid_repo.open_bid_for_carrier.return_value = s.bid

        with pytest.raises(ConflictError):
            await s.service.create_bid(self.payload(s))

        s.service.bid_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_suspended_carrier_cannot_bid(self, bid_setup):
        s = bid_setup
        s.carrier.status = "SUSPENDED"

        with pytest.raises(ValidationError):
            await s.service.create_bid(self.payload(s))

    @pytest.mark.asyncio
    async def test_carrier_list_posting_excludes_others(self, bid_setup):
        s = bid_setup
        s.posting.visibility = "CARRIER_LIST"
        s.posting.carrier_ids = [str(uuid4())]

        with pytest.raises(ValidationError, match="selected carriers"):
            await s.service.create_bid(self.payload(s))


class TestBidResponses:
    @pytest.mark.asyncio
    async def test_reject_pending_bid(self, bid_setup):
        s = bid_setup

        await s.service.reject_bid(s.bid.id, reason="Rate too high")

        args, kwargs = s.service.bid_repo.transition.call_args
        assert args == (s.bid.id, "PENDING", "REJECTED")
        assert kwargs["rejection_reason"] == "Rate too high"
        assert "rejected_at" in kwargs

    @pytest.mark.asyncio
    async def test_reject_needs_pending_bid(self, bid_setup):
        s = bid_setup
        s.bid.status = "COUNTERED"

        with pytest.raises(InvalidStateTransitionError):
            await s.service.reject_bid(s.bid.id, reason="Rate too high")

        s.service.bid_repo.transition.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_counter_pending_bid(self, bid_setup):
        s = bid_setup

        await s.service.counter_bid(s.bid.id, BidCounterRequest(counter_amount_cents=165_000, notes="Best we can do"))

        args, kwargs = s.service.bid_repo.transition.call_args
        assert args == (s.bid.id, "PENDING", "COUNTERED")
        assert kwargs["counter_amount_cents"] == 165_000
        assert kwargs["counter_notes"] == "Best we can do"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["COUNTERED", "ACCEPTED", "REJECTED"])
    async def test_counter_needs_pending_bid(self, bid_setup, status):
        s = bid_setup
        s.bid.status = status

        with pytest.raises(InvalidStateTransitionError):
            await s.service.counter_bid(s.bid.id, BidCounterRequest(counter_amount_cents=165_000))

        s.service.bid_repo.transition.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_counter_on_closed_posting_is_rejected(self, bid_setup):
        s = bid_setup
        s.posting.status = "CANCELLED"

        with pytest.raises(ValidationError):
            await s.service.counter_bid(s.bid.id, BidCounterRequest(counter_amount_cents=165_000))

    @pytest.mark.asyncio
    async def test_accept_counter_reopens_at_countered_amount(self, bid_setup):
        s = bid_setup
        s.bid.status = "COUNTERED"
        s.bid.counter_amount_cents = 165_000

        await s.service.accept_counter(s.bid.id)

        args, kwargs = s.service.bid_repo.transition.call_args
        assert args == (s.bid.id, "COUNTERED", "PENDING")
        assert kwargs == {"bid_amount_cents": 165_000}

    @pytest.mark.asyncio
    async def test_accept_counter_needs_countered_bid(self, bid_setup):
        s = bid_setup

        with pytest.raises(InvalidStateTransitionError):
            await s.service.accept_counter(s.bid.id)

    @pytest.mark.asyncio
    async def test_withdraw_countered_bid(self, bid_setup):
        s = bid_setup
        s.bid.status = "COUNTERED"

        await s.service.withdraw_bid(s.bid.id)

        args, kwargs = s.service.bid_repo.transition.call_args
        assert args == (s.bid.id, OPEN_BID_STATUSES, "WITHDRAWN")
        assert "withdrawn_at" in kwargs

    @pytest.mark.asyncio
    async def test_accepted_bid_cannot_be_withdrawn(self, bid_setup):
        s = bid_setup
        s.bid.status = "ACCEPTED"

        with pytest.raises(InvalidStateTransitionError):
            await s.service.withdraw_bid(s.bid.id)

    @pytest.mark.asyncio
    async def test_lost_race_surfaces_conflict(self, bid_setup, mock_session):
        s = bid_setup
        s.service.bid_repo.transition.return_value = False

        with pytest.raises(ConflictError):
            await s.service.reject_bid(s.bid.id, reason="Rate too high")

        mock_session.rollback.assert_awaited_once()
