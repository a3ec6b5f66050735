"""Carrier settlements (accounts payable)."""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.lifecycle import LoadStatus, SettlementStatus, assert_transition
from app.database.models import Settlement, SettlementLineItem
from app.repositories.accounting_repository import SettlementRepository
from app.repositories.carrier_repository import CarrierRepository
from app.repositories.load_repository import LoadRepository
from app.schemas.accounting import (
    PayablesBucket,
    PayablesSummary,
    SettlementCreate,
    SettlementLineIn,
    SettlementOut,
)
from app.services.base_service import BaseService, page_envelope
from app.utils.logging import get_logger
from app.utils.numbering import format_sequential

LOGGER = get_logger(__name__)

SETTLEMENT_PREFIX = "SET"
SETTLEABLE_LOAD_STATUSES = frozenset({LoadStatus.DELIVERED.value, LoadStatus.COMPLETED.value})


def settlement_totals(lines: Iterable[SettlementLineIn]) -> Dict[str, int]:
    """Positive lines are earnings, negative lines are deductions."""
    gross = sum(line.amount_cents for line in lines if line.amount_cents > 0)
    deductions = -sum(line.amount_cents for line in lines if line.amount_cents < 0)
    return {
        "gross_amount_cents": gross,
        "deductions_cents": deductions,
        "net_amount_cents": gross - deductions,
    }


def summarize_payables(settlements: Iterable[Settlement], today: date) -> PayablesSummary:
    overdue, due_today, upcoming = PayablesBucket(), PayablesBucket(), PayablesBucket()
    for settlement in settlements:
        outstanding = settlement.net_amount_cents - (settlement.amount_paid_cents or 0)
        if settlement.due_date < today:
            bucket = overdue
        elif settlement.due_date == today:
            bucket = due_today
        else:
            bucket = upcoming
        bucket.count += 1
        bucket.amount_cents += outstanding
    return PayablesSummary(
        overdue=overdue,
        due_today=due_today,
        upcoming=upcoming,
        total_outstanding_cents=overdue.amount_cents + due_today.amount_cents + upcoming.amount_cents,
    )


class SettlementService(BaseService):
    """Service for paying carriers for hauled loads."""

    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, tenant_id)
        self.settlement_repo = SettlementRepository(session, tenant_id)
        self.carrier_repo = CarrierRepository(session, tenant_id)
        self.load_repo = LoadRepository(session, tenant_id)

    async def create_settlement(self, payload: SettlementCreate) -> Settlement:
        return await self.execute("create_settlement", payload=payload)

    async def generate_from_load(self, load_id: UUID) -> Settlement:
        return await self.execute("generate_from_load", load_id=load_id)

    async def list_settlements(self, page: int = 1, limit: int = 20, **filters) -> Dict[str, Any]:
        return await self.execute("list_settlements", page=page, limit=limit, filters=filters)

    async def get_settlement(self, settlement_id: UUID) -> Settlement:
        return await self.execute("get_settlement", settlement_id=settlement_id)

    async def approve(self, settlement_id: UUID, user_id: Optional[str] = None) -> Settlement:
        return await self.execute("approve", settlement_id=settlement_id, user_id=user_id)

    async def process(self, settlement_id: UUID) -> Settlement:
        return await self.execute("process", settlement_id=settlement_id)

    async def mark_paid(
        self, settlement_id: UUID, payment_reference: Optional[str] = None, amount_cents: Optional[int] = None
    ) -> Settlement:
        return await self.execute(
            "mark_paid", settlement_id=settlement_id, payment_reference=payment_reference, amount_cents=amount_cents
        )

    async def void(self, settlement_id: UUID, reason: str) -> Settlement:
        return await self.execute("void", settlement_id=settlement_id, reason=reason)

    async def payables_summary(self, today: Optional[date] = None) -> PayablesSummary:
        return await self.execute("payables_summary", today=today)

    async def _insert(
        self,
        carrier_id: UUID,
        lines: List[SettlementLineIn],
        settlement_date: Optional[date] = None,
        due_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> Settlement:
        settlement_date = settlement_date or date.today()
        due_date = due_date or settlement_date + timedelta(days=settings.accounting.settlement_terms_days)
        sequence = await self.settlement_repo.next_sequence(Settlement.settlement_number, f"{SETTLEMENT_PREFIX}-")
        return await self.settlement_repo.create(
            settlement_number=format_sequential(SETTLEMENT_PREFIX, sequence),
            carrier_id=carrier_id,
            status=SettlementStatus.CREATED.value,
            settlement_date=settlement_date,
            due_date=due_date,
            amount_paid_cents=0,
            notes=notes,
            line_items=[
                SettlementLineItem(tenant_id=self.tenant_id, **line.model_dump()) for line in lines
            ],
            **settlement_totals(lines),
        )

    async def _require_carrier(self, carrier_id: UUID):
        carrier = await self.carrier_repo.get_by_id(carrier_id)
        if carrier is None:
            raise NotFoundError("Carrier", carrier_id)
        return carrier

    async def _create_settlement(self, payload: SettlementCreate) -> Settlement:
        await self._require_carrier(payload.carrier_id)
        load_ids = [line.load_id for line in payload.line_items if line.load_id]
        if load_ids and await self.settlement_repo.settled_load_ids(load_ids):
            raise ConflictError("One or more loads are already on another settlement")
        if settlement_totals(payload.line_items)["net_amount_cents"] < 0:
            raise ValidationError("Deductions cannot exceed the gross amount")
        async with self.transaction():
            settlement = await self._insert(
                payload.carrier_id,
                payload.line_items,
                settlement_date=payload.settlement_date,
                due_date=payload.due_date,
                notes=payload.notes,
            )
        LOGGER.info(f"Created settlement {settlement.settlement_number}", extra={"tenant_id": str(self.tenant_id)})
        return settlement

    async def _generate_from_load(self, load_id: UUID) -> Settlement:
        load = await self.load_repo.get_by_id(load_id)
        if load is None:
            raise NotFoundError("Load", load_id)
        if load.status not in SETTLEABLE_LOAD_STATUSES:
            raise ValidationError(f"Load {load.load_number} must be DELIVERED or COMPLETED to settle; it is {load.status}")
        if load.carrier_id is None or load.carrier_rate_cents is None:
            raise ValidationError(f"Load {load.load_number} has no carrier rate to settle")
        if await self.settlement_repo.settled_load_ids([load.id]):
            raise ConflictError(f"Load {load.load_number} is already on a settlement")

        lines = [SettlementLineIn(load_id=load.id, item_type="LINEHAUL",
                                  description=f"Linehaul - Load {load.load_number}",
                                  amount_cents=load.carrier_rate_cents)]
        if load.accessorial_charges_cents:
            lines.append(SettlementLineIn(load_id=load.id, item_type="ACCESSORIAL",
                                          description="Accessorial charges",
                                          amount_cents=load.accessorial_charges_cents))
        if load.fuel_advance_cents:
            lines.append(SettlementLineIn(load_id=load.id, item_type="FUEL_ADVANCE",
                                          description="Fuel advance",
                                          amount_cents=-load.fuel_advance_cents))

        async with self.transaction():
            settlement = await self._insert(load.carrier_id, lines)
        LOGGER.info(
            f"Generated settlement {settlement.settlement_number} from load {load.load_number}",
            extra={"tenant_id": str(self.tenant_id)},
        )
        return settlement

    async def _list_settlements(self, page: int, limit: int, filters: Dict[str, Any]) -> Dict[str, Any]:
        settlements, total = await self.settlement_repo.search(page=page, limit=limit, **filters)
        return page_envelope([SettlementOut.model_validate(s) for s in settlements], total, page, limit)

    async def _get_settlement(self, settlement_id: UUID) -> Settlement:
        settlement = await self.settlement_repo.get_detail(settlement_id)
        if settlement is None:
            raise NotFoundError("Settlement", settlement_id)
        return settlement

    async def _move(self, settlement_id: UUID, to_status: str, **values) -> Settlement:
        settlement = await self._get_settlement(settlement_id)
        assert_transition("settlement", settlement.status, to_status)
        async with self.transaction():
            changed = await self.settlement_repo.transition(settlement.id, settlement.status, to_status, **values)
            if not changed:
                raise ConflictError(f"Settlement {settlement.settlement_number} changed concurrently; reload and retry")
        LOGGER.info(
            f"Settlement {settlement.settlement_number} moved to {to_status}",
            extra={"tenant_id": str(self.tenant_id)},
        )
        return settlement

    async def _approve(self, settlement_id: UUID, user_id: Optional[str]) -> Settlement:
        return await self._move(
            settlement_id, SettlementStatus.APPROVED.value, approved_by=user_id, approved_at=datetime.now(timezone.utc)
        )

    async def _process(self, settlement_id: UUID) -> Settlement:
        return await self._move(settlement_id, SettlementStatus.PROCESSED.value, processed_at=datetime.now(timezone.utc))

    async def _mark_paid(
        self, settlement_id: UUID, payment_reference: Optional[str], amount_cents: Optional[int]
    ) -> Settlement:
        settlement = await self._get_settlement(settlement_id)
        amount = amount_cents if amount_cents is not None else settlement.net_amount_cents
        if amount != settlement.net_amount_cents:
            raise ValidationError(
                f"Payment of {amount} cents does not match the {settlement.net_amount_cents} cent net amount"
            )
        return await self._move(
            settlement_id,
            SettlementStatus.PAID.value,
            amount_paid_cents=amount,
            payment_reference=payment_reference,
            paid_at=datetime.now(timezone.utc),
        )

    async def _void(self, settlement_id: UUID, reason: str) -> Settlement:
        settlement = await self._get_settlement(settlement_id)
        if settlement.amount_paid_cents:
            raise ValidationError(f"Settlement {settlement.settlement_number} has payments and cannot be voided")
        return await self._move(settlement_id, SettlementStatus.VOID.value, void_reason=reason)

    async def _payables_summary(self, today: Optional[date]) -> PayablesSummary:
        return summarize_payables(await self.settlement_repo.unpaid(), today or date.today())
