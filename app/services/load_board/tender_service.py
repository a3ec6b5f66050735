"""Direct tenders: offering a load to chosen carriers in waterfall or broadcast."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ConflictError, InvalidStateTransitionError, NotFoundError, ValidationError
from app.core.lifecycle import (
    CarrierStatus,
    LoadStatus,
    PostingStatus,
    TenderRecipientStatus,
    TenderStatus,
)
from app.database.models import LoadTender, TenderRecipient
from app.repositories.carrier_repository import CarrierRepository
from app.repositories.load_board_repository import (
    BidRepository,
    PostingRepository,
    TenderRecipientRepository,
    TenderRepository,
)
from app.repositories.load_repository import LoadRepository, LoadStatusHistoryRepository
from app.schemas.load_board import TenderCreate, TenderOut
from app.services.base_service import BaseService, page_envelope
from app.services.load_board.closeout import OPEN_RECIPIENT_STATUSES, close_active_postings
from app.services.operations.load_status import LoadStatusWriter
from app.services.realtime.dispatch_events import DispatchEventHub, DispatchEventType
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

R = TenderRecipientStatus
TENDER_WON_REASON = "Load was tendered to another carrier"


def next_waterfall_recipient(recipients: List[TenderRecipient]) -> Optional[TenderRecipient]:
    waiting = [r for r in recipients if r.status == R.PENDING.value]
    return min(waiting, key=lambda r: r.position) if waiting else None


class TenderService(BaseService):
    """Service for direct tenders and carrier responses."""

    def __init__(self, session: AsyncSession, tenant_id: UUID, event_hub: Optional[DispatchEventHub] = None):
        super().__init__(session, tenant_id, event_hub)
        self.tender_repo = TenderRepository(session, tenant_id)
        self.recipient_repo = TenderRecipientRepository(session, tenant_id)
        self.load_repo = LoadRepository(session, tenant_id)
        self.carrier_repo = CarrierRepository(session, tenant_id)
        self.posting_repo = PostingRepository(session, tenant_id)
        self.bid_repo = BidRepository(session, tenant_id)
        self.status_writer = LoadStatusWriter(self.load_repo, LoadStatusHistoryRepository(session, tenant_id))

    async def create_tender(self, payload: TenderCreate, user_id: Optional[str] = None) -> LoadTender:
        return await self.execute("create_tender", payload=payload, user_id=user_id)

    async def list_tenders(self, page: int = 1, limit: int = 20, **filters) -> Dict[str, Any]:
        return await self.execute("list_tenders", page=page, limit=limit, filters=filters)

    async def get_tender(self, tender_id: UUID) -> LoadTender:
        return await self.execute("get_tender", tender_id=tender_id)

    async def respond(
        self,
        tender_id: UUID,
        carrier_id: UUID,
        accept: bool,
        decline_reason: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> LoadTender:
        return await self.execute(
            "respond",
            tender_id=tender_id,
            carrier_id=carrier_id,
            accept=accept,
            decline_reason=decline_reason,
            user_id=user_id,
        )

    async def cancel_tender(self, tender_id: UUID) -> LoadTender:
        return await self.execute("cancel_tender", tender_id=tender_id)

    async def offers_for_carrier(self, carrier_id: UUID) -> List[TenderRecipient]:
        return await self.execute("offers_for_carrier", carrier_id=carrier_id)

    async def process_waterfall_timeouts(self) -> int:
        return await self.execute("process_waterfall_timeouts")

    async def expire_old_tenders(self) -> int:
        return await self.execute("expire_old_tenders")

    async def _create_tender(self, payload: TenderCreate, user_id: Optional[str]) -> LoadTender:
        load = await self.load_repo.get_by_id(payload.load_id)
        if load is None:
            raise NotFoundError("Load", payload.load_id)
        if load.status != LoadStatus.UNASSIGNED.value:
            raise ValidationError(f"Only UNASSIGNED loads can be tendered; load {load.load_number} is {load.status}")
        if await self.tender_repo.active_for_load(load.id):
            raise ConflictError(f"Load {load.load_number} already has an active tender")

        carrier_ids = [r.carrier_id for r in payload.recipients]
        if len(set(carrier_ids)) != len(carrier_ids):
            raise ValidationError("Each carrier can appear only once in a tender")
        for carrier_id in carrier_ids:
            carrier = await self.carrier_repo.get_by_id(carrier_id)
            if carrier is None:
                raise NotFoundError("Carrier", carrier_id)
            if carrier.status != CarrierStatus.ACTIVE.value:
                raise ValidationError(f"Carrier {carrier.name} is {carrier.status} and cannot be tendered")

        now = datetime.now(timezone.utc)
        timeout = payload.timeout_minutes or settings.load_board.tender_timeout_minutes
        window = timedelta(minutes=timeout)
        ordered = sorted(
            enumerate(payload.recipients, start=1),
            key=lambda item: (item[1].position or item[0], item[0]),
        )
        broadcast = payload.tender_type == "BROADCAST"
        if payload.expires_at:
            expires_at = payload.expires_at
        else:
            expires_at = now + (window if broadcast else window * len(ordered))

        recipients = []
        for position, (_, recipient) in enumerate(ordered, start=1):
            offered = broadcast or position == 1
            recipients.append(
                TenderRecipient(
                    tenant_id=self.tenant_id,
                    carrier_id=recipient.carrier_id,
                    position=position,
                    status=R.OFFERED.value if offered else R.PENDING.value,
                    offered_at=now if offered else None,
                    expires_at=(expires_at if broadcast else now + window) if offered else None,
                )
            )

        async with self.transaction():
            tender = await self.tender_repo.create(
                load_id=load.id,
                tender_type=payload.tender_type,
                status=TenderStatus.ACTIVE.value,
                tender_rate_cents=payload.tender_rate_cents,
                timeout_minutes=timeout,
                expires_at=expires_at,
                notes=payload.notes,
                created_by=user_id,
                recipients=recipients,
            )
        LOGGER.info(
            f"Created {payload.tender_type} tender for load {load.load_number} to {len(recipients)} carrier(s)",
            extra={"tenant_id": str(self.tenant_id)},
        )
        return tender

    async def _list_tenders(self, page: int, limit: int, filters: Dict[str, Any]) -> Dict[str, Any]:
        tenders, total = await self.tender_repo.list_tenders(page, limit, **filters)
        return page_envelope([TenderOut.model_validate(t) for t in tenders], total, page, limit)

    async def _get_tender(self, tender_id: UUID) -> LoadTender:
        tender = await self.tender_repo.get_detail(tender_id)
        if tender is None:
            raise NotFoundError("Tender", tender_id)
        return tender

    async def _move_recipient(self, recipient: TenderRecipient, expected: str, to_status: str, **values) -> None:
        if not await self.recipient_repo.transition(recipient.id, expected, to_status, **values):
            raise ConflictError("Tender offer changed concurrently; reload and retry")

    async def _skip_open_recipients(self, tender_id: UUID) -> int:
        return await self.recipient_repo.update_where(
            TenderRecipient.tender_id == tender_id,
            TenderRecipient.status.in_(OPEN_RECIPIENT_STATUSES),
            status=R.SKIPPED.value,
        )

    async def _respond(
        self,
        tender_id: UUID,
        carrier_id: UUID,
        accept: bool,
        decline_reason: Optional[str],
        user_id: Optional[str],
    ) -> LoadTender:
        tender = await self._get_tender(tender_id)
        if tender.status != TenderStatus.ACTIVE.value:
            raise InvalidStateTransitionError(
                "tender", tender.status, TenderStatus.ACCEPTED.value if accept else tender.status,
                f"Tender is {tender.status}, not ACTIVE",
            )
        recipient = next((r for r in tender.recipients if r.carrier_id == carrier_id), None)
        if recipient is None or recipient.status != R.OFFERED.value:
            raise ValidationError("This carrier has no open offer on the tender")

        now = datetime.now(timezone.utc)
        if recipient.expires_at is not None and recipient.expires_at <= now:
            raise ValidationError("The offer has expired")

        if accept:
            await self._accept(tender, recipient, now, user_id)
        else:
            async with self.transaction():
                await self._move_recipient(
                    recipient, R.OFFERED.value, R.DECLINED.value, responded_at=now, decline_reason=decline_reason
                )
                await self._advance(tender, now)
        return await self._get_tender(tender_id)

    async def _accept(self, tender: LoadTender, recipient: TenderRecipient, now: datetime, user_id: Optional[str]) -> None:
        load = await self.load_repo.get_by_id(tender.load_id)
        if load is None:
            raise NotFoundError("Load", tender.load_id)
        carrier = await self.carrier_repo.get_by_id(recipient.carrier_id)
        if carrier is None or carrier.status != CarrierStatus.ACTIVE.value:
            raise ValidationError("The responding carrier is no longer ACTIVE")

        async with self.transaction():
            changed = await self.tender_repo.transition(
                tender.id,
                TenderStatus.ACTIVE.value,
                TenderStatus.ACCEPTED.value,
                accepted_carrier_id=recipient.carrier_id,
                accepted_at=now,
            )
            if not changed:
                raise ConflictError("Tender is no longer ACTIVE; reload and retry")
            await self._move_recipient(recipient, R.OFFERED.value, R.ACCEPTED.value, responded_at=now)
            await self._skip_open_recipients(tender.id)
            await self.status_writer.move(
                load,
                LoadStatus.TENDERED.value,
                changed_by=user_id,
                notes=f"Tender accepted by {carrier.name}",
                carrier_id=carrier.id,
                carrier_rate_cents=tender.tender_rate_cents,
            )
            await close_active_postings(
                self.posting_repo,
                self.bid_repo,
                load.id,
                PostingStatus.BOOKED.value,
                TENDER_WON_REASON,
                now,
                booked_carrier_id=carrier.id,
                booked_at=now,
            )

            self.emit(DispatchEventType.TENDER_ACCEPTED.value, load, tenderId=str(tender.id), carrierId=str(carrier.id))
            self.emit(
                DispatchEventType.LOAD_ASSIGNED.value,
                load,
                carrierId=str(carrier.id),
                carrierName=carrier.name,
                source="tender",
            )
        LOGGER.info(
            f"Tender {tender.id} accepted by {carrier.name}",
            extra={"tenant_id": str(self.tenant_id), "user_id": user_id},
        )

    async def _advance(self, tender: LoadTender, now: datetime) -> None:
        """After a decline or timeout: offer the next waterfall position, or
        expire the tender when nobody is left."""
        recipients = list(tender.recipients)
        if any(r.status == R.OFFERED.value for r in recipients):
            return
        if tender.tender_type == "WATERFALL":
            nxt = next_waterfall_recipient(recipients)
            if nxt is not None:
                await self._move_recipient(
                    nxt,
                    R.PENDING.value,
                    R.OFFERED.value,
                    offered_at=now,
                    expires_at=now + timedelta(minutes=tender.timeout_minutes),
                )
                return
        if not await self.tender_repo.transition(tender.id, TenderStatus.ACTIVE.value, TenderStatus.EXPIRED.value):
            raise ConflictError("Tender changed concurrently; reload and retry")
        LOGGER.info(f"Tender {tender.id} exhausted its recipients and expired")

    async def _cancel_tender(self, tender_id: UUID) -> LoadTender:
        tender = await self._get_tender(tender_id)
        if tender.status != TenderStatus.ACTIVE.value:
            raise InvalidStateTransitionError("tender", tender.status, TenderStatus.CANCELLED.value)
        async with self.transaction():
            changed = await self.tender_repo.transition(
                tender.id,
                TenderStatus.ACTIVE.value,
                TenderStatus.CANCELLED.value,
                cancelled_at=datetime.now(timezone.utc),
            )
            if not changed:
                raise ConflictError("Tender is no longer ACTIVE; reload and retry")
            await self._skip_open_recipients(tender.id)
        return tender

    async def _offers_for_carrier(self, carrier_id: UUID) -> List[TenderRecipient]:
        return await self.recipient_repo.offers_for_carrier(carrier_id, R.OFFERED.value)

    async def _process_waterfall_timeouts(self) -> int:
        now = datetime.now(timezone.utc)
        timed_out = 0
        async with self.transaction():
            for tender in await self.tender_repo.active_with_recipients():
                expired = [
                    r for r in tender.recipients
                    if r.status == R.OFFERED.value and r.expires_at is not None and r.expires_at <= now
                ]
                for recipient in expired:
                    await self._move_recipient(recipient, R.OFFERED.value, R.EXPIRED.value, responded_at=now)
                if expired:
                    timed_out += len(expired)
                    await self._advance(tender, now)
        if timed_out:
            LOGGER.info(f"Timed out {timed_out} tender offer(s)", extra={"tenant_id": str(self.tenant_id)})
        return timed_out

    async def _expire_old_tenders(self) -> int:
        now = datetime.now(timezone.utc)
        expired = 0
        async with self.transaction():
            for tender in await self.tender_repo.active_with_recipients():
                if tender.expires_at is None or tender.expires_at > now:
                    continue
                if await self.tender_repo.transition(tender.id, TenderStatus.ACTIVE.value, TenderStatus.EXPIRED.value):
                    await self.recipient_repo.update_where(
                        TenderRecipient.tender_id == tender.id,
                        TenderRecipient.status.in_(OPEN_RECIPIENT_STATUSES),
                        status=R.EXPIRED.value,
                    )
                    expired += 1
        if expired:
            LOGGER.info(f"Expired {expired} tender(s)", extra={"tenant_id": str(self.tenant_id)})
        return expired
