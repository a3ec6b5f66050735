"""Dispatch board projection of a tenant's loads into lanes."""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.lifecycle import LOAD_ACTIVE_STATUSES, LoadStatus
from app.database.models import Load
from app.repositories.load_repository import LoadRepository
from app.schemas.dispatch import BoardCard, BoardLane, BoardStats, DispatchBoard
from app.schemas.loads import margin_percent
from app.services.base_service import BaseService
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

S = LoadStatus
# (key, title, statuses) in board order
BOARD_LANES = (
    ("UNASSIGNED", "Unassigned", (S.UNASSIGNED,)),
    ("TENDERED", "Tendered", (S.TENDERED,)),
    ("DISPATCHED", "Dispatched", (S.DISPATCHED,)),
    ("IN_TRANSIT", "In Transit", (S.AT_PICKUP, S.PICKED_UP, S.IN_TRANSIT, S.AT_DELIVERY)),
    ("DELIVERED", "Delivered", (S.DELIVERED,)),
    ("COMPLETED", "Completed", (S.COMPLETED, S.CANCELLED)),
)
MOVING_STATUSES = frozenset({S.PICKED_UP.value, S.IN_TRANSIT.value})
AT_STOP_STATUSES = frozenset({S.AT_PICKUP.value, S.AT_DELIVERY.value})
TERMINAL_WINDOW = timedelta(hours=24)


def is_at_risk(load: Load, now: datetime, silence: timedelta) -> bool:
    """Active load running late or gone quiet.

    Late: the ETA is past the scheduled delivery. Quiet: the truck is rolling
    and has not reported a location within ``silence``.
    """
    if load.status not in LOAD_ACTIVE_STATUSES:
        return False
    if load.eta and load.delivery_date and load.eta > load.delivery_date:
        return True
    if load.status in MOVING_STATUSES:
        last = load.last_location_at or load.dispatched_at
        if last is None or now - last > silence:
            return True
    return False


def _endpoint(stops, stop_type: str, last: bool = False) -> Optional[str]:
    matching = sorted((s for s in stops if s.stop_type == stop_type), key=lambda s: s.sequence)
    if not matching:
        return None
    stop = matching[-1] if last else matching[0]
    return f"{stop.city}, {stop.state}"


def build_card(load: Load, now: datetime, silence: timedelta) -> BoardCard:
    margin = None if load.carrier_rate_cents is None else load.customer_rate_cents - load.carrier_rate_cents
    return BoardCard(
        id=load.id,
        load_number=load.load_number,
        status=load.status,
        carrier_id=load.carrier_id,
        carrier_name=load.carrier.name if load.carrier is not None else None,
        driver_name=load.driver_name,
        equipment_type=load.equipment_type,
        origin=_endpoint(load.stops, "PICKUP"),
        destination=_endpoint(load.stops, "DELIVERY", last=True),
        pickup_date=load.pickup_date,
        delivery_date=load.delivery_date,
        current_city=load.current_city,
        current_state=load.current_state,
        last_location_at=load.last_location_at,
        eta=load.eta,
        customer_rate_cents=load.customer_rate_cents or 0,
        carrier_rate_cents=load.carrier_rate_cents,
        margin_cents=margin,
        margin_percent=margin_percent(load.customer_rate_cents, load.carrier_rate_cents),
        at_risk=is_at_risk(load, now, silence),
    )


def build_board(loads: List[Load], now: datetime, silence: timedelta) -> DispatchBoard:
    cards = [build_card(load, now, silence) for load in loads]
    lanes = []
    for key, title, statuses in BOARD_LANES:
        values = [s.value for s in statuses]
        lane_cards = [card for card in cards if card.status in values]
        lanes.append(BoardLane(key=key, title=title, statuses=values, count=len(lane_cards), loads=lane_cards))

    counts: Dict[str, int] = {}
    for card in cards:
        counts[card.status] = counts.get(card.status, 0) + 1
    today = now.date()
    stats = BoardStats(
        total=len(cards),
        unassigned=counts.get(S.UNASSIGNED.value, 0),
        tendered=counts.get(S.TENDERED.value, 0),
        dispatched=counts.get(S.DISPATCHED.value, 0),
        in_transit=sum(counts.get(s.value, 0) for s in BOARD_LANES[3][2]),
        at_stop=sum(counts.get(s, 0) for s in AT_STOP_STATUSES),
        delivered_today=sum(
            1 for load in loads
            if load.delivered_at is not None and load.delivered_at.astimezone(timezone.utc).date() == today
        ),
        total_active=sum(counts.get(s, 0) for s in LOAD_ACTIVE_STATUSES),
        at_risk=sum(1 for card in cards if card.at_risk),
    )
    return DispatchBoard(lanes=lanes, stats=stats, generated_at=now)


class DispatchBoardService(BaseService):
    """Read-only board; realtime notifications come from the mutating services."""

    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, tenant_id)
        self.load_repo = LoadRepository(session, tenant_id)
        self.silence = timedelta(hours=settings.load_board.at_risk_silence_hours)

    async def get_board(
        self,
        carrier_id: Optional[UUID] = None,
        equipment_type: Optional[str] = None,
        pickup_from: Optional[datetime] = None,
        pickup_to: Optional[datetime] = None,
    ) -> DispatchBoard:
        return await self.execute(
            "get_board",
            carrier_id=carrier_id,
            equipment_type=equipment_type,
            pickup_from=pickup_from,
            pickup_to=pickup_to,
        )

    async def get_stats(self) -> BoardStats:
        board = await self.get_board()
        return board.stats

    async def _get_board(self, **filters) -> DispatchBoard:
        now = datetime.now(timezone.utc)
        loads = await self.load_repo.board_loads(terminal_since=now - TERMINAL_WINDOW, **filters)
        return build_board(loads, now, self.silence)
