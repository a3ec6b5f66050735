"""Tests for guarded load status writes and the tender waterfall order."""

from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from app.core.exceptions import ConflictError, InvalidStateTransitionError
from app.services.load_board.tender_service import next_waterfall_recipient
from app.services.operations.load_status import LoadStatusWriter


@pytest.fixture
def writer():
    load_repo = AsyncMock()
    load_repo.transition.return_value = True
    history_repo = AsyncMock()
    return LoadStatusWriter(load_repo, history_repo)


def make_load(status):
    return SimpleNamespace(id=uuid4(), load_number="LD2024060001", status=status)


@pytest.mark.asyncio
async def test_move_writes_conditionally_and_records_history(writer):
    load = make_load("TENDERED")

    previous = await writer.move(load, "DISPATCHED", changed_by="user-1", notes="Driver confirmed")

    assert previous == "TENDERED"
    args, values = writer.load_repo.transition.call_args
    assert args == (load.id, "TENDERED", "DISPATCHED")
    assert "dispatched_at" in values
    writer.history_repo.create.assert_awaited_once_with(
        load_id=load.id,
        from_status="TENDERED",
        to_status="DISPATCHED",
        notes="Driver confirmed",
        changed_by="user-1",
    )


@pytest.mark.asyncio
async def test_move_outside_lifecycle_is_rejected_before_writing(writer):
    load = make_load("UNASSIGNED")

    with pytest.raises(InvalidStateTransitionError):
        await writer.move(load, "DELIVERED")

    writer.load_repo.transition.assert_not_awaited()
    writer.history_repo.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_lost_race_raises_conflict_without_history(writer):
    writer.load_repo.transition.return_value = False
    load = make_load("DISPATCHED")

    with pytest.raises(ConflictError):
        await writer.move(load, "AT_PICKUP")

    writer.history_repo.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_explicit_timestamp_is_kept(writer):
    load = make_load("AT_DELIVERY")
    stamp = object()

    await writer.move(load, "DELIVERED", delivered_at=stamp)

    assert writer.load_repo.transition.call_args.kwargs["delivered_at"] is stamp


def test_waterfall_picks_lowest_pending_position():
    recipients = [
        SimpleNamespace(position=1, status="DECLINED"),
        SimpleNamespace(position=3, status="PENDING"),
        SimpleNamespace(position=2, status="PENDING"),
    ]

    assert next_waterfall_recipient(recipients).position == 2


def test_waterfall_exhausted():
    recipients = [
        SimpleNamespace(position=1, status="DECLINED"),
        SimpleNamespace(position=2, status="EXPIRED"),
    ]

    assert next_waterfall_recipient(recipients) is None
