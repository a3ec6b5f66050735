"""Public shipment tracking by tracking code."""

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.core.lifecycle import LoadStatus
from app.database.models import Load
from app.repositories.load_repository import PublicTrackingRepository
from app.schemas.dispatch import TrackingLocation, TrackingResponse, TrackingStop
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

S = LoadStatus
PROGRESS = {
    S.UNASSIGNED.value: 0,
    S.TENDERED.value: 10,
    S.DISPATCHED.value: 20,
    S.AT_PICKUP.value: 30,
    S.PICKED_UP.value: 40,
    S.IN_TRANSIT.value: 60,
    S.AT_DELIVERY.value: 85,
    S.DELIVERED.value: 100,
    S.COMPLETED.value: 100,
    S.CANCELLED.value: 0,
}


def to_tracking_response(load: Load) -> TrackingResponse:
    """Project a load onto the public tracking view field by field."""
    location = None
    if load.current_city or load.current_state:
        location = TrackingLocation(
            city=load.current_city,
            state=load.current_state,
            updated_at=load.last_location_at,
        )
    return TrackingResponse(
        load_number=load.load_number,
        status=load.status,
        progress_percent=PROGRESS.get(load.status, 0),
        customer_name=load.customer.name if load.customer is not None else None,
        pickup_date=load.pickup_date,
        delivery_date=load.delivery_date,
        eta=load.eta,
        equipment_type=load.equipment_type,
        stops=[
            TrackingStop(
                stop_type=stop.stop_type,
                sequence=stop.sequence,
                city=stop.city,
                state=stop.state,
                status=stop.status,
                appointment_start=stop.appointment_start,
                appointment_end=stop.appointment_end,
                arrived_at=stop.arrived_at,
                departed_at=stop.departed_at,
            )
            for stop in sorted(load.stops, key=lambda s: s.sequence)
        ],
        current_location=location,
        last_updated_at=load.last_location_at or load.updated_at,
    )


class TrackingService:
    """Unauthenticated lookups; the only service not bound to a tenant."""

    def __init__(self, session: AsyncSession):
        self.repository = PublicTrackingRepository(session)

    async def track(self, tracking_code: str) -> TrackingResponse:
        code = tracking_code.strip().upper()
        load = await self.repository.get_by_tracking_code(code)
        if load is None:
            LOGGER.info("Tracking code not found", extra={"tracking_code": code})
            raise NotFoundError("Shipment")
        return to_tracking_response(load)
