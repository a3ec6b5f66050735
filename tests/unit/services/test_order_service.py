"""Tests for putting orders on hold and releasing them."""

from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from app.core.exceptions import InvalidStateTransitionError, ValidationError
from app.services.operations.order_service import OrderService


@pytest.fixture
def order_setup(mock_session, tenant_id, event_hub):
    order = SimpleNamespace(
        id=uuid4(), order_number="ORD-00017", status="BOOKED", hold_from_status=None, hold_reason=None
    )
    service = OrderService(mock_session, tenant_id, event_hub)
    service.order_repo = AsyncMock()
    service.order_repo.get_detail.return_value = order
    service.order_repo.transition.return_value = True
    return SimpleNamespace(service=service, order=order)


class TestHoldOrder:
    @pytest.mark.asyncio
    async def test_hold_records_prior_status(self, order_setup, mock_session):
        s = order_setup

        await s.service.hold_order(s.order.id, reason="Credit check")

        args, kwargs = s.service.order_repo.transition.call_args
        assert args == (s.order.id, "BOOKED", "ON_HOLD")
        assert kwargs == {"hold_from_status": "BOOKED", "hold_reason": "Credit check"}
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_hold_needs_reason(self, order_setup):
        s = order_setup

        with pytest.raises(ValidationError):
            await s.service.hold_order(s.order.id, reason="")

        s.service.order_repo.transition.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delivered_order_cannot_be_held(self, order_setup):
        s = order_setup
        s.order.status = "DELIVERED"

        with pytest.raises(InvalidStateTransitionError):
            await s.service.hold_order(s.order.id, reason="Dispute")

    @pytest.mark.asyncio
    async def test_status_update_to_on_hold_goes_through_hold(self, order_setup):
        s = order_setup

        await s.service.update_status(s.order.id, "ON_HOLD", reason="Awaiting PO")

        assert s.service.order_repo.transition.call_args.kwargs["hold_reason"] == "Awaiting PO"


class TestReleaseOrder:
    @pytest.mark.asyncio
    async def test_release_restores_prior_status(self, order_setup):
        s = order_setup
        s.order.status = "ON_HOLD"
        s.order.hold_from_status = "DISPATCHED"
        s.order.hold_reason = "Credit check"

        await s.service.release_order(s.order.id)

        args, kwargs = s.service.order_repo.transition.call_args
        assert args == (s.order.id, "ON_HOLD", "DISPATCHED")
        assert kwargs == {"hold_from_status": None, "hold_reason": None}

    @pytest.mark.asyncio
    async def test_release_without_recorded_status_returns_to_pending(self, order_setup):
        s = order_setup
        s.order.status = "ON_HOLD"

        await s.service.release_order(s.order.id)

        assert s.service.order_repo.transition.call_args.args[2] == "PENDING"

    @pytest.mark.asyncio
    async def test_release_needs_order_on_hold(self, order_setup):
        s = order_setup

        with pytest.raises(InvalidStateTransitionError):
            await s.service.release_order(s.order.id)

        s.service.order_repo.transition.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_held_order_must_be_released_before_moving(self, order_setup):
        s = order_setup
        s.order.status = "ON_HOLD"
        s.order.hold_from_status = "BOOKED"

        with pytest.raises(InvalidStateTransitionError, match="Release the hold"):
            await s.service.update_status(s.order.id, "DISPATCHED")

        s.service.order_repo.transition.assert_not_awaited()
