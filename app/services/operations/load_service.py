"""Load lifecycle service: creation, status changes, carrier assignment,
tracking updates and rate confirmations."""

from datetime import datetime, timezone
from io import BytesIO
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.core.lifecycle import CarrierStatus, LoadStatus, PostingStatus, is_terminal
from app.database.models import CheckCall, Load, LoadStatusHistory, Stop
from app.repositories.carrier_repository import CarrierRepository
from app.repositories.crm_repository import CompanyRepository
from app.repositories.load_board_repository import (
    BidRepository,
    PostingRepository,
    TenderRecipientRepository,
    TenderRepository,
)
from app.repositories.load_repository import (
    CheckCallRepository,
    LoadRepository,
    LoadStatusHistoryRepository,
)
from app.schemas.loads import (
    AssignCarrierRequest,
    CheckCallCreate,
    LoadCreate,
    LoadOut,
    LoadStats,
    LoadUpdate,
    LocationUpdate,
    StopIn,
)
from app.services.base_service import BaseService, page_envelope
from app.services.documents.pdf_service import PDFDocumentService
from app.services.load_board.closeout import (
    LOAD_ASSIGNED_REASON,
    LOAD_CANCELLED_REASON,
    cancel_active_tenders,
    close_active_postings,
)
from app.services.operations.load_status import LoadStatusWriter
from app.services.realtime.dispatch_events import DispatchEventHub, DispatchEventType
from app.utils.logging import get_logger
from app.utils.numbering import format_load_number, generate_tracking_code, load_number_prefix

LOGGER = get_logger(__name__)

# Extra events published alongside load.status.changed
STATUS_EVENTS = {
    LoadStatus.DISPATCHED.value: DispatchEventType.LOAD_DISPATCHED,
    LoadStatus.DELIVERED.value: DispatchEventType.LOAD_DELIVERED,
}
HISTORY_STATUSES = (LoadStatus.COMPLETED.value, LoadStatus.CANCELLED.value)


def build_stops(tenant_id: UUID, stops: List[StopIn], **owner) -> List[Stop]:
    """Stop rows for a load or order, numbered in the order given when no
    sequence is supplied."""
    return [
        Stop(
            tenant_id=tenant_id,
            sequence=stop.sequence or index,
            **owner,
            **stop.model_dump(exclude={"sequence"}),
        )
        for index, stop in enumerate(stops, start=1)
    ]


class LoadService(BaseService):
    """Service for managing loads of one tenant."""

    def __init__(self, session: AsyncSession, tenant_id: UUID, event_hub: Optional[DispatchEventHub] = None):
        super().__init__(session, tenant_id, event_hub)
        self.load_repo = LoadRepository(session, tenant_id)
        self.history_repo = LoadStatusHistoryRepository(session, tenant_id)
        self.check_call_repo = CheckCallRepository(session, tenant_id)
        self.carrier_repo = CarrierRepository(session, tenant_id)
        self.company_repo = CompanyRepository(session, tenant_id)
        self.posting_repo = PostingRepository(session, tenant_id)
        self.bid_repo = BidRepository(session, tenant_id)
        self.tender_repo = TenderRepository(session, tenant_id)
        self.recipient_repo = TenderRecipientRepository(session, tenant_id)
        self.status_writer = LoadStatusWriter(self.load_repo, self.history_repo)
        self.pdf_service = PDFDocumentService()

    # Public API

    async def create_load(self, payload: LoadCreate, user_id: Optional[str] = None) -> Load:
        return await self.execute("create_load", payload=payload, user_id=user_id)

    async def list_loads(self, page: int = 1, limit: int = 20, **filters) -> Dict[str, Any]:
        return await self.execute("list_loads", page=page, limit=limit, filters=filters)

    async def get_load(self, load_id: UUID) -> Load:
        return await self.execute("get_load", load_id=load_id)

    async def update_load(self, load_id: UUID, payload: LoadUpdate) -> Load:
        return await self.execute("update_load", load_id=load_id, payload=payload)

    async def update_status(
        self, load_id: UUID, status: str, notes: Optional[str] = None, user_id: Optional[str] = None
    ) -> Load:
        return await self.execute("update_status", load_id=load_id, status=status, notes=notes, user_id=user_id)

    async def assign_carrier(
        self, load_id: UUID, payload: AssignCarrierRequest, user_id: Optional[str] = None
    ) -> Load:
        return await self.execute("assign_carrier", load_id=load_id, payload=payload, user_id=user_id)

    async def dispatch_load(self, load_id: UUID, notes: Optional[str] = None, user_id: Optional[str] = None) -> Load:
        return await self.execute("dispatch_load", load_id=load_id, notes=notes, user_id=user_id)

    async def update_location(self, load_id: UUID, payload: LocationUpdate, user_id: Optional[str] = None) -> Load:
        check_call = CheckCallCreate(**payload.model_dump(), source="LOCATION_UPDATE")
        await self.execute("add_check_call", load_id=load_id, payload=check_call, user_id=user_id)
        return await self.get_load(load_id)

    async def add_check_call(self, load_id: UUID, payload: CheckCallCreate, user_id: Optional[str] = None) -> CheckCall:
        return await self.execute("add_check_call", load_id=load_id, payload=payload, user_id=user_id)

    async def list_check_calls(self, load_id: UUID) -> List[CheckCall]:
        return await self.execute("list_check_calls", load_id=load_id)

    async def status_history(self, load_id: UUID) -> List[LoadStatusHistory]:
        return await self.execute("status_history", load_id=load_id)

    async def cancel_load(self, load_id: UUID, reason: Optional[str] = None, user_id: Optional[str] = None) -> Load:
        return await self.execute("cancel_load", load_id=load_id, reason=reason, user_id=user_id)

    async def get_stats(self) -> LoadStats:
        return await self.execute("get_stats")

    async def rate_confirmation(self, load_id: UUID) -> BytesIO:
        return await self.execute("rate_confirmation", load_id=load_id)

    async def load_history(
        self,
        page: int = 1,
        limit: int = 20,
        customer_id: Optional[UUID] = None,
        carrier_id: Optional[UUID] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Completed and cancelled loads with their margins."""
        return await self.execute(
            "list_loads",
            page=page,
            limit=limit,
            filters={
                "status": HISTORY_STATUSES,
                "customer_id": customer_id,
                "carrier_id": carrier_id,
                "updated_from": date_from,
                "updated_to": date_to,
            },
        )

    # Handlers

    async def _create_load(self, payload: LoadCreate, user_id: Optional[str]) -> Load:
        if payload.customer_id and not await self.company_repo.get_by_id(payload.customer_id):
            raise ValidationError(f"Customer {payload.customer_id} not found")

        now = datetime.now(timezone.utc)
        async with self.transaction():
            sequence = await self.load_repo.next_sequence(Load.load_number, load_number_prefix(now))
            data = payload.model_dump(exclude={"stops"})
            load = await self.load_repo.create(
                **data,
                load_number=format_load_number(now, sequence),
                tracking_code=generate_tracking_code(),
                status=LoadStatus.UNASSIGNED.value,
                stops=build_stops(self.tenant_id, payload.stops),
            )
            await self.history_repo.create(
                load_id=load.id,
                from_status=None,
                to_status=LoadStatus.UNASSIGNED.value,
                notes="Load created",
                changed_by=user_id,
            )
            self.emit(DispatchEventType.LOAD_CREATED.value, load)

        LOGGER.info(
            f"Created load {load.load_number}",
            extra={"tenant_id": str(self.tenant_id), "load_id": str(load.id)},
        )
        return load

    async def _list_loads(self, page: int, limit: int, filters: Dict[str, Any]) -> Dict[str, Any]:
        status = filters.pop("status", None)
        if status:
            filters["statuses"] = [status] if isinstance(status, str) else list(status)
        loads, total = await self.load_repo.search(page=page, limit=limit, **filters)
        items = [LoadOut.model_validate(load) for load in loads]
        return page_envelope(items, total, page, limit)

    async def _get_load(self, load_id: UUID) -> Load:
        load = await self.load_repo.get_detail(load_id)
        if load is None:
            raise NotFoundError("Load", load_id)
        return load

    async def _update_load(self, load_id: UUID, payload: LoadUpdate) -> Load:
        load = await self._get_load(load_id)
        if is_terminal("load", load.status):
            raise ValidationError(f"Load {load.load_number} is {load.status} and can no longer be edited")

        changes = payload.model_dump(exclude_unset=True)
        if not changes:
            return load
        async with self.transaction():
            for key, value in changes.items():
                setattr(load, key, value)
            await self.session.flush()
            self.emit(DispatchEventType.LOAD_UPDATED.value, load, fields=sorted(changes))
        return load

    async def _update_status(self, load_id: UUID, status: str, notes: Optional[str], user_id: Optional[str]) -> Load:
        load = await self._get_load(load_id)
        to_status = LoadStatus(status).value
        if to_status == LoadStatus.CANCELLED.value:
            return await self._cancel_load(load_id, notes, user_id)
        if to_status == LoadStatus.TENDERED.value:
            raise ValidationError("Loads are tendered by assigning a carrier, accepting a bid or accepting a tender")
        if to_status == LoadStatus.DISPATCHED.value and load.carrier_id is None:
            raise ValidationError("A carrier must be assigned before dispatch")

        async with self.transaction():
            from_status = await self.status_writer.move(load, to_status, changed_by=user_id, notes=notes)
            self.emit(
                DispatchEventType.LOAD_STATUS_CHANGED.value,
                load,
                fromStatus=from_status,
                toStatus=to_status,
            )
            extra_event = STATUS_EVENTS.get(to_status)
            if extra_event:
                self.emit(extra_event.value, load)

        LOGGER.info(
            f"Load {load.load_number} moved {from_status} -> {to_status}",
            extra={"tenant_id": str(self.tenant_id), "user_id": user_id},
        )
        return load

    async def _assign_carrier(self, load_id: UUID, payload: AssignCarrierRequest, user_id: Optional[str]) -> Load:
        load = await self._get_load(load_id)
        carrier = await self.carrier_repo.get_by_id(payload.carrier_id)
        if carrier is None:
            raise NotFoundError("Carrier", payload.carrier_id)
        if carrier.status != CarrierStatus.ACTIVE.value:
            raise ValidationError(f"Carrier {carrier.name} is {carrier.status}; only ACTIVE carriers can be assigned")

        now = datetime.now(timezone.utc)
        async with self.transaction():
            await self.status_writer.move(
                load,
                LoadStatus.TENDERED.value,
                changed_by=user_id,
                notes=f"Assigned to {carrier.name}",
                carrier_id=carrier.id,
                carrier_rate_cents=payload.carrier_rate_cents,
                driver_name=payload.driver_name,
                driver_phone=payload.driver_phone,
                truck_number=payload.truck_number,
                trailer_number=payload.trailer_number,
            )
            booked = await close_active_postings(
                self.posting_repo,
                self.bid_repo,
                load.id,
                PostingStatus.BOOKED.value,
                LOAD_ASSIGNED_REASON,
                now,
                booked_carrier_id=carrier.id,
                booked_at=now,
            )
            cancelled_tenders = await cancel_active_tenders(self.tender_repo, self.recipient_repo, load.id, now)
            self.emit(
                DispatchEventType.LOAD_ASSIGNED.value,
                load,
                carrierId=str(carrier.id),
                carrierName=carrier.name,
                source="direct",
                bookedPostings=booked,
                cancelledTenders=cancelled_tenders,
            )
        return load

    async def _dispatch_load(self, load_id: UUID, notes: Optional[str], user_id: Optional[str]) -> Load:
        load = await self._get_load(load_id)
        if load.carrier_id is None:
            raise ValidationError("A carrier must be assigned before dispatch")
        async with self.transaction():
            values = {"dispatch_notes": notes} if notes else {}
            from_status = await self.status_writer.move(
                load, LoadStatus.DISPATCHED.value, changed_by=user_id, notes=notes, **values
            )
            self.emit(
                DispatchEventType.LOAD_STATUS_CHANGED.value,
                load,
                fromStatus=from_status,
                toStatus=LoadStatus.DISPATCHED.value,
            )
            self.emit(DispatchEventType.LOAD_DISPATCHED.value, load)
        return load

    async def _add_check_call(self, load_id: UUID, payload: CheckCallCreate, user_id: Optional[str]) -> CheckCall:
        load = await self._get_load(load_id)
        if is_terminal("load", load.status):
            raise ValidationError(f"Load {load.load_number} is {load.status}; location updates are closed")

        now = datetime.now(timezone.utc)
        async with self.transaction():
            check_call = await self.check_call_repo.create(
                load_id=load.id,
                city=payload.city,
                state=payload.state,
                latitude=payload.latitude,
                longitude=payload.longitude,
                eta=payload.eta,
                source=payload.source,
                notes=payload.notes,
                created_by=user_id,
            )
            load.current_city = payload.city or load.current_city
            load.current_state = payload.state or load.current_state
            if payload.latitude is not None:
                load.current_latitude = payload.latitude
                load.current_longitude = payload.longitude
            if payload.eta is not None:
                load.eta = payload.eta
            load.last_location_at = now
            await self.session.flush()
            self.emit(
                DispatchEventType.CHECK_CALL_RECEIVED.value,
                load,
                city=payload.city,
                state=payload.state,
                eta=payload.eta.isoformat() if payload.eta else None,
            )
        return check_call

    async def _list_check_calls(self, load_id: UUID) -> List[CheckCall]:
        await self._get_load(load_id)
        return await self.check_call_repo.for_load(load_id)

    async def _status_history(self, load_id: UUID) -> List[LoadStatusHistory]:
        await self._get_load(load_id)
        return await self.history_repo.for_load(load_id)

    async def _cancel_load(self, load_id: UUID, reason: Optional[str], user_id: Optional[str]) -> Load:
        load = await self._get_load(load_id)
        now = datetime.now(timezone.utc)
        async with self.transaction():
            from_status = await self.status_writer.move(
                load,
                LoadStatus.CANCELLED.value,
                changed_by=user_id,
                notes=reason,
                cancel_reason=reason,
            )
            closed = await close_active_postings(
                self.posting_repo,
                self.bid_repo,
                load.id,
                PostingStatus.CANCELLED.value,
                LOAD_CANCELLED_REASON,
                now,
                cancelled_at=now,
                cancel_reason=reason or LOAD_CANCELLED_REASON,
            )
            cancelled_tenders = await cancel_active_tenders(self.tender_repo, self.recipient_repo, load.id, now)
            self.emit(
                DispatchEventType.LOAD_STATUS_CHANGED.value,
                load,
                fromStatus=from_status,
                toStatus=LoadStatus.CANCELLED.value,
            )
            self.emit(DispatchEventType.LOAD_CANCELLED.value, load, reason=reason)
        if closed or cancelled_tenders:
            LOGGER.info(
                f"Closed {closed} posting(s) and {cancelled_tenders} tender(s) with load {load.load_number}",
                extra={"tenant_id": str(self.tenant_id)},
            )
        return load

    async def _get_stats(self) -> LoadStats:
        by_status = await self.load_repo.status_counts()
        revenue = await self.load_repo.total_revenue_cents()
        return LoadStats(
            total=sum(by_status.values()),
            by_status={status.value: by_status.get(status.value, 0) for status in LoadStatus},
            total_revenue_cents=revenue,
        )

    async def _rate_confirmation(self, load_id: UUID) -> BytesIO:
        load = await self._get_load(load_id)
        if load.carrier_id is None or load.carrier is None:
            raise ValidationError("Rate confirmation requires an assigned carrier")
        return self.pdf_service.rate_confirmation(load, load.carrier)
