"""Tests for tender responses, the waterfall and the tender sweeps."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from app.core.exceptions import ConflictError, InvalidStateTransitionError, ValidationError
from app.core.lifecycle import OPEN_BID_STATUSES
from app.services.load_board.tender_service import TENDER_WON_REASON, TenderService


def make_recipient(position, status="PENDING", expires_in=None):
    now = datetime.now(timezone.utc)
    return SimpleNamespace(
        id=uuid4(),
        carrier_id=uuid4(),
        position=position,
        status=status,
        expires_at=now + expires_in if expires_in is not None else None,
    )


def make_tender(recipients, tender_type="WATERFALL", status="ACTIVE"):
    return SimpleNamespace(
        id=uuid4(),
        load_id=uuid4(),
        tender_type=tender_type,
        status=status,
        tender_rate_cents=210_000,
        timeout_minutes=30,
        expires_at=datetime.now(timezone.utc) + timedelta(hours=2),
        recipients=recipients,
    )


def apply_transition(rows):
    """Make a mocked repo ``transition`` behave like the conditional UPDATE."""
    by_id = {row.id: row for row in rows}

    async def transition(row_id, expected, new, **values):
        row = by_id[row_id]
        allowed = (expected,) if isinstance(expected, str) else tuple(expected)
        if row.status not in allowed:
            return False
        row.status = new
        for key, value in values.items():
            setattr(row, key, value)
        return True

    return transition


@pytest.fixture
def tender_setup(mock_session, tenant_id, event_hub):
    first = make_recipient(1, status="OFFERED", expires_in=timedelta(minutes=30))
    second = make_recipient(2)
    tender = make_tender([first, second])
    load = SimpleNamespace(id=tender.load_id, load_number="LD2024060002", status="UNASSIGNED")
    carrier = SimpleNamespace(id=first.carrier_id, name="Blue Ridge Freight", status="ACTIVE")
    posting = SimpleNamespace(id=uuid4(), load_id=load.id, status="ACTIVE")

    service = TenderService(mock_session, tenant_id, event_hub)
    service.tender_repo = AsyncMock()
    service.tender_repo.get_detail.return_value = tender
    service.tender_repo.transition.side_effect = apply_transition([tender])
    service.recipient_repo = AsyncMock()
    service.recipient_repo.transition.side_effect = apply_transition([first, second])
    service.recipient_repo.update_where.return_value = 1
    service.load_repo = AsyncMock()
    service.load_repo.get_by_id.return_value = load
    service.carrier_repo = AsyncMock()
    service.carrier_repo.get_by_id.return_value = carrier
    service.posting_repo = AsyncMock()
    service.posting_repo.active_for_load.return_value = [posting]
    service.posting_repo.transition.return_value = True
    service.bid_repo = AsyncMock()
    service.bid_repo.reject_open_bids.return_value = 2
    service.status_writer = AsyncMock()
    return SimpleNamespace(
        service=service, tender=tender, first=first, second=second, load=load, carrier=carrier, posting=posting
    )


class TestAcceptTender:
    @pytest.mark.asyncio
    async def test_accept_books_open_posting_and_rejects_its_bids(self, tender_setup, mock_session, event_hub):
        s = tender_setup

        await s.service.respond(s.tender.id, s.first.carrier_id, accept=True, user_id="user-1")

        assert s.tender.status == "ACCEPTED"
        assert s.tender.accepted_carrier_id == s.carrier.id
        assert s.first.status == "ACCEPTED"
        s.service.recipient_repo.update_where.assert_awaited_once()

        move_args, move_kwargs = s.service.status_writer.move.call_args
        assert move_args == (s.load, "TENDERED")
        assert move_kwargs["carrier_rate_cents"] == 210_000

        posting_args, posting_kwargs = s.service.posting_repo.transition.call_args
        assert posting_args == (s.posting.id, "ACTIVE", "BOOKED")
        assert posting_kwargs["booked_carrier_id"] == s.carrier.id
        reject_args = s.service.bid_repo.reject_open_bids.call_args.args
        assert reject_args[0] == s.posting.id
        assert reject_args[1] == OPEN_BID_STATUSES
        assert reject_args[2] == TENDER_WON_REASON

        mock_session.commit.assert_awaited_once()
        published = [call.args[0].type for call in event_hub.publish.await_args_list]
        assert published == ["tender.accepted", "load.assigned"]

    @pytest.mark.asyncio
    async def test_booked_elsewhere_rolls_back(self, tender_setup, mock_session, event_hub):
        s = tender_setup
        s.service.posting_repo.transition.return_value = False

        with pytest.raises(ConflictError):
            await s.service.respond(s.tender.id, s.first.carrier_id, accept=True)

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()
        s.service.bid_repo.reject_open_bids.assert_not_awaited()
        event_hub.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_inactive_tender_cannot_be_answered(self, tender_setup):
        s = tender_setup
        s.tender.status = "CANCELLED"

        with pytest.raises(InvalidStateTransitionError):
            await s.service.respond(s.tender.id, s.first.carrier_id, accept=True)

        s.service.tender_repo.transition.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_carrier_without_offer_is_rejected(self, tender_setup):
        s = tender_setup

        with pytest.raises(ValidationError):
            await s.service.respond(s.tender.id, s.second.carrier_id, accept=True)

    @pytest.mark.asyncio
    async def test_expired_offer_is_rejected(self, tender_setup):
        s = tender_setup
        s.first.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)

        with pytest.raises(ValidationError, match="expired"):
            await s.service.respond(s.tender.id, s.first.carrier_id, accept=True)

        s.service.status_writer.move.assert_not_awaited()


class TestWaterfall:
    @pytest.mark.asyncio
    async def test_decline_offers_next_position(self, tender_setup, event_hub):
        s = tender_setup

        await s.service.respond(s.tender.id, s.first.carrier_id, accept=False, decline_reason="No trucks")

        assert s.first.status == "DECLINED"
        assert s.first.decline_reason == "No trucks"
        assert s.second.status == "OFFERED"
        assert s.second.expires_at > datetime.now(timezone.utc) + timedelta(minutes=29)
        assert s.tender.status == "ACTIVE"
        s.service.status_writer.move.assert_not_awaited()
        event_hub.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_last_decline_expires_tender(self, tender_setup):
        s = tender_setup
        s.second.status = "DECLINED"

        await s.service.respond(s.tender.id, s.first.carrier_id, accept=False)

        assert s.tender.status == "EXPIRED"

    @pytest.mark.asyncio
    async def test_broadcast_decline_waits_for_other_offers(self, tender_setup):
        s = tender_setup
        s.tender.tender_type = "BROADCAST"
        s.second.status = "OFFERED"

        await s.service.respond(s.tender.id, s.first.carrier_id, accept=False)

        assert s.tender.status == "ACTIVE"
        assert s.second.status == "OFFERED"


class TestTenderSweeps:
    @pytest.mark.asyncio
    async def test_timed_out_offer_moves_to_next_position(self, tender_setup, mock_session):
        s = tender_setup
        s.first.expires_at = datetime.now(timezone.utc) - timedelta(minutes=5)
        s.service.tender_repo.active_with_recipients.return_value = [s.tender]

        timed_out = await s.service.process_waterfall_timeouts()

        assert timed_out == 1
        assert s.first.status == "EXPIRED"
        assert s.second.status == "OFFERED"
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_live_offers_are_left_alone(self, tender_setup):
        s = tender_setup
        s.service.tender_repo.active_with_recipients.return_value = [s.tender]

        assert await s.service.process_waterfall_timeouts() == 0
        assert s.first.status == "OFFERED"
        s.service.recipient_repo.transition.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expire_old_tenders_closes_open_offers(self, tender_setup):
        s = tender_setup
        stale = make_tender([make_recipient(1, status="OFFERED")])
        stale.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        s.service.tender_repo.active_with_recipients.return_value = [s.tender, stale]
        s.service.tender_repo.transition.side_effect = apply_transition([s.tender, stale])

        assert await s.service.expire_old_tenders() == 1

        assert stale.status == "EXPIRED"
        assert s.tender.status == "ACTIVE"
        s.service.recipient_repo.update_where.assert_awaited_once()
        assert s.service.recipient_repo.update_where.call_args.kwargs == {"status": "EXPIRED"}
