"""Tests for the status transition tables."""

import pytest

from app.core.exceptions import ConflictError, InvalidStateTransitionError
from app.core.lifecycle import (
    STATUS_ENUMS,
    TRANSITION_TABLES,
    LoadStatus,
    allowed_transitions,
    assert_transition,
    can_transition,
    is_terminal,
)


@pytest.mark.parametrize("entity", sorted(TRANSITION_TABLES))
def test_every_status_has_a_row(entity):
    statuses = {s.value for s in STATUS_ENUMS[entity]}
    table = TRANSITION_TABLES[entity]

    assert set(table) == statuses
    for targets in table.values():
        assert targets <= statuses


def test_load_happy_path_is_allowed():
    path = [
        LoadStatus.UNASSIGNED,
        LoadStatus.TENDERED,
        LoadStatus.DISPATCHED,
        LoadStatus.AT_PICKUP,
        LoadStatus.PICKED_UP,
        LoadStatus.IN_TRANSIT,
        LoadStatus.AT_DELIVERY,
        LoadStatus.DELIVERED,
        LoadStatus.COMPLETED,
    ]
    for current, following in zip(path, path[1:]):
        assert can_transition("load", current, following)


def test_load_cannot_skip_dispatch():
    assert not can_transition("load", "UNASSIGNED", "IN_TRANSIT")
    assert not can_transition("load", "TENDERED", "DELIVERED")


def test_completed_and_cancelled_loads_are_terminal():
    assert is_terminal("load", "COMPLETED")
    assert is_terminal("load", LoadStatus.CANCELLED)
    assert not is_terminal("load", "DELIVERED")
    assert allowed_transitions("load", "COMPLETED") == []


def test_assert_transition_raises_conflict():
    with pytest.raises(InvalidStateTransitionError) as exc_info:
        assert_transition("load", "COMPLETED", "IN_TRANSIT")

    error = exc_info.value
    assert isinstance(error, ConflictError)
    assert error.status_code == 409
    assert error.from_status == "COMPLETED"
    assert error.to_status == "IN_TRANSIT"


def test_countered_bid_can_reopen_but_accepted_cannot():
    assert can_transition("bid", "COUNTERED", "PENDING")
    assert not can_transition("bid", "ACCEPTED", "PENDING")


def test_on_hold_order_can_return_to_active_statuses():
    assert allowed_transitions("order", "ON_HOLD") == [
        "BOOKED", "CANCELLED", "DISPATCHED", "IN_TRANSIT", "PENDING", "QUOTED"
    ]


def test_delivered_order_cannot_be_cancelled():
    assert not can_transition("order", "DELIVERED", "CANCELLED")


def test_unknown_entity_raises_key_error():
    with pytest.raises(KeyError):
        is_terminal("shipment", "ACTIVE")
