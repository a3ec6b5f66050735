"""Tests for load cancellation and direct assignment closing load-board activity."""

from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from app.core.exceptions import ConflictError, ValidationError
from app.core.lifecycle import OPEN_BID_STATUSES
from app.schemas.loads import AssignCarrierRequest
from app.services.load_board.closeout import LOAD_ASSIGNED_REASON, LOAD_CANCELLED_REASON
from app.services.operations.load_service import LoadService


@pytest.fixture
def load_setup(mock_session, tenant_id, event_hub):
    load = SimpleNamespace(id=uuid4(), load_number="LD2024060003", status="UNASSIGNED", carrier_id=None)
    carrier = SimpleNamespace(id=uuid4(), name="Prairie Haulers", status="ACTIVE")
    posting = SimpleNamespace(id=uuid4(), load_id=load.id, status="ACTIVE")
    tender = SimpleNamespace(id=uuid4(), load_id=load.id, status="ACTIVE")

    service = LoadService(mock_session, tenant_id, event_hub)
    service.load_repo = AsyncMock()
    service.load_repo.get_detail.return_value = load
    service.carrier_repo = AsyncMock()
    service.carrier_repo.get_by_id.return_value = carrier
    service.status_writer = AsyncMock()
    service.status_writer.move.return_value = "UNASSIGNED"
    service.posting_repo = AsyncMock()
    service.posting_repo.active_for_load.return_value = [posting]
    service.posting_repo.transition.return_value = True
    service.bid_repo = AsyncMock()
    service.bid_repo.reject_open_bids.return_value = 3
    service.tender_repo = AsyncMock()
    service.tender_repo.active_for_load.return_value = [tender]
    service.tender_repo.transition.return_value = True
    service.recipient_repo = AsyncMock()
    return SimpleNamespace(service=service, load=load, carrier=carrier, posting=posting, tender=tender)


class TestCancelLoad:
    @pytest.mark.asyncio
    async def test_cancel_closes_postings_bids_and_tenders(self, load_setup, mock_session, event_hub):
        s = load_setup

        await s.service.cancel_load(s.load.id, reason="Shipper cancelled", user_id="user-1")

        move_args, move_kwargs = s.service.status_writer.move.call_args
        assert move_args == (s.load, "CANCELLED")
        assert move_kwargs["cancel_reason"] == "Shipper cancelled"

        posting_args, posting_kwargs = s.service.posting_repo.transition.call_args
        assert posting_args == (s.posting.id, "ACTIVE", "CANCELLED")
        assert posting_kwargs["cancel_reason"] == "Shipper cancelled"
        reject_args = s.service.bid_repo.reject_open_bids.call_args.args
        assert reject_args[:3] == (s.posting.id, OPEN_BID_STATUSES, LOAD_CANCELLED_REASON)

        tender_args = s.service.tender_repo.transition.call_args.args
        assert tender_args == (s.tender.id, "ACTIVE", "CANCELLED")
        assert s.service.recipient_repo.update_where.call_args.kwargs == {"status": "SKIPPED"}

        mock_session.commit.assert_awaited_once()
        published = [call.args[0].type for call in event_hub.publish.await_args_list]
        assert published == ["load.status.changed", "load.cancelled"]

    @pytest.mark.asyncio
    async def test_cancel_without_board_activity(self, load_setup, mock_session):
        s = load_setup
        s.service.posting_repo.active_for_load.return_value = []
        s.service.tender_repo.active_for_load.return_value = []

        await s.service.cancel_load(s.load.id)

        s.service.posting_repo.transition.assert_not_awaited()
        s.service.bid_repo.reject_open_bids.assert_not_awaited()
        s.service.tender_repo.transition.assert_not_awaited()
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_posting_booked_meanwhile_rolls_back_cancel(self, load_setup, mock_session, event_hub):
        s = load_setup
        s.service.posting_repo.transition.return_value = False

        with pytest.raises(ConflictError):
            await s.service.cancel_load(s.load.id)

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()
        s.service.bid_repo.reject_open_bids.assert_not_awaited()
        event_hub.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_status_update_to_cancelled_goes_through_cancel(self, load_setup):
        s = load_setup

        await s.service.update_status(s.load.id, "CANCELLED", notes="No longer needed")

        s.service.posting_repo.transition.assert_awaited_once()
        s.service.tender_repo.transition.assert_awaited_once()
        assert s.service.status_writer.move.call_args.kwargs["cancel_reason"] == "No longer needed"

    @pytest.mark.asyncio
    async def test_status_update_cannot_tender_directly(self, load_setup):
        s = load_setup

        with pytest.raises(ValidationError):
            await s.service.update_status(s.load.id, "TENDERED")

        s.service.status_writer.move.assert_not_awaited()


class TestAssignCarrier:
    @pytest.mark.asyncio
    async def test_assign_books_postings_and_cancels_tenders(self, load_setup, mock_session, event_hub):
        s = load_setup
        payload = AssignCarrierRequest(carrier_id=s.carrier.id, carrier_rate_cents=150_000, driver_name="Lee")

        await s.service.assign_carrier(s.load.id, payload, user_id="user-1")

        move_args, move_kwargs = s.service.status_writer.move.call_args
        assert move_args == (s.load, "TENDERED")
        assert move_kwargs["carrier_id"] == s.carrier.id
        assert move_kwargs["carrier_rate_cents"] == 150_000

        posting_args, posting_kwargs = s.service.posting_repo.transition.call_args
        assert posting_args == (s.posting.id, "ACTIVE", "BOOKED")
        assert posting_kwargs["booked_carrier_id"] == s.carrier.id
        assert s.service.bid_repo.reject_open_bids.call_args.args[2] == LOAD_ASSIGNED_REASON
        assert s.service.tender_repo.transition.call_args.args == (s.tender.id, "ACTIVE", "CANCELLED")

        mock_session.commit.assert_awaited_once()
        event = event_hub.publish.await_args.args[0]
        assert event.type == "load.assigned"
        assert event.data["bookedPostings"] == 1
        assert event.data["cancelledTenders"] == 1

    @pytest.mark.asyncio
    async def test_tender_race_rolls_back_assignment(self, load_setup, mock_session, event_hub):
        s = load_setup
        s.service.tender_repo.transition.return_value = False
        payload = AssignCarrierRequest(carrier_id=s.carrier.id, carrier_rate_cents=150_000)

        with pytest.raises(ConflictError):
            await s.service.assign_carrier(s.load.id, payload)

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()
        event_hub.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_inactive_carrier_is_not_assigned(self, load_setup):
        s = load_setup
        s.carrier.status = "INACTIVE"
        payload = AssignCarrierRequest(carrier_id=s.carrier.id, carrier_rate_cents=150_000)

        with pytest.raises(ValidationError):
            await s.service.assign_carrier(s.load.id, payload)

        s.service.posting_repo.active_for_load.assert_not_awaited()
