"""Tests for the dispatch board projection and public tracking view."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import uuid4

from app.services.operations.dispatch_board_service import build_board, is_at_risk
from app.services.operations.tracking_service import to_tracking_response

NOW = datetime(2024, 6, 3, 15, 0, tzinfo=timezone.utc)
SILENCE = timedelta(hours=4)


def stop(stop_type, sequence, city, state):
    return SimpleNamespace(
        stop_type=stop_type,
        sequence=sequence,
        city=city,
        state=state,
        status="PENDING",
        appointment_start=None,
        appointment_end=None,
        arrived_at=None,
        departed_at=None,
    )


def make_load(status="IN_TRANSIT", **overrides):
    values = dict(
        id=uuid4(),
        load_number="LD2024060001",
        tracking_code="ABCDEFGHJK",
        status=status,
        carrier_id=None,
        carrier=None,
        customer=SimpleNamespace(name="Acme Foods"),
        driver_name="Sam Driver",
        driver_phone="555-0100",
        equipment_type="DRY_VAN",
        stops=[
            stop("DELIVERY", 3, "Phoenix", "AZ"),
            stop("PICKUP", 1, "Dallas", "TX"),
            stop("DELIVERY", 2, "El Paso", "TX"),
        ],
        pickup_date=NOW - timedelta(days=1),
        delivery_date=NOW + timedelta(days=1),
        current_city="Midland",
        current_state="TX",
        last_location_at=NOW - timedelta(hours=1),
        dispatched_at=NOW - timedelta(days=1),
        delivered_at=None,
        eta=NOW + timedelta(hours=20),
        customer_rate_cents=250_000,
        carrier_rate_cents=200_000,
        updated_at=NOW,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestIsAtRisk:
    def test_on_schedule_load_is_not_at_risk(self):
        assert not is_at_risk(make_load(), NOW, SILENCE)

    def test_eta_after_delivery_window_is_at_risk(self):
        load = make_load(eta=NOW + timedelta(days=2))
        assert is_at_risk(load, NOW, SILENCE)

    def test_moving_load_without_recent_location_is_at_risk(self):
        load = make_load(last_location_at=NOW - timedelta(hours=5))
        assert is_at_risk(load, NOW, SILENCE)

    def test_silence_falls_back_to_dispatch_time(self):
        load = make_load(status="PICKED_UP", last_location_at=None, dispatched_at=NOW - timedelta(hours=6))
        assert is_at_risk(load, NOW, SILENCE)

    def test_silence_only_applies_to_moving_loads(self):
        load = make_load(status="DISPATCHED", last_location_at=None, dispatched_at=NOW - timedelta(hours=6))
        assert not is_at_risk(load, NOW, SILENCE)

    def test_inactive_loads_are_never_at_risk(self):
        load = make_load(status="DELIVERED", eta=NOW + timedelta(days=5))
        assert not is_at_risk(load, NOW, SILENCE)


def test_board_groups_loads_into_lanes():
    loads = [
        make_load(status="UNASSIGNED", carrier_rate_cents=None),
        make_load(status="AT_PICKUP"),
        make_load(status="IN_TRANSIT", last_location_at=NOW - timedelta(hours=8)),
        make_load(status="DELIVERED", delivered_at=NOW - timedelta(hours=2)),
        make_load(status="CANCELLED"),
    ]

    board = build_board(loads, NOW, SILENCE)

    lanes = {lane.key: lane for lane in board.lanes}
    assert [lane.key for lane in board.lanes] == [
        "UNASSIGNED", "TENDERED", "DISPATCHED", "IN_TRANSIT", "DELIVERED", "COMPLETED"
    ]
    assert lanes["IN_TRANSIT"].count == 2
    assert lanes["COMPLETED"].count == 1
    assert lanes["TENDERED"].loads == []

    stats = board.stats
    assert stats.total == 5
    assert stats.unassigned == 1
    assert stats.in_transit == 2
    assert stats.at_stop == 1
    assert stats.delivered_today == 1
    assert stats.total_active == 2
    assert stats.at_risk == 1


def test_board_card_lane_endpoints_and_margin():
    board = build_board([make_load()], NOW, SILENCE)
    card = board.lanes[3].loads[0]

    assert card.origin == "Dallas, TX"
    assert card.destination == "Phoenix, AZ"
    assert card.margin_cents == 50_000
    assert card.margin_percent == 20.0


def test_unassigned_card_has_no_margin():
    board = build_board([make_load(status="UNASSIGNED", carrier_rate_cents=None)], NOW, SILENCE)
    card = board.lanes[0].loads[0]

    assert card.margin_cents is None
    assert card.margin_percent is None


def test_tracking_view_excludes_rates_and_driver():
    response = to_tracking_response(make_load())
    payload = response.model_dump(by_alias=True)

    assert payload["loadNumber"] == "LD2024060001"
    assert payload["customerName"] == "Acme Foods"
    assert payload["progressPercent"] == 60
    assert payload["currentLocation"]["city"] == "Midland"
    assert [s["sequence"] for s in payload["stops"]] == [1, 2, 3]
    for hidden in ("customerRateCents", "carrierRateCents", "driverName", "driverPhone", "carrierId"):
        assert hidden not in payload


def test_tracking_view_without_location():
    response = to_tracking_response(make_load(status="UNASSIGNED", current_city=None, current_state=None))

    assert response.current_location is None
    assert response.progress_percent == 0
