"""Carrier onboarding, compliance and performance tiering."""

from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.lifecycle import LOAD_ACTIVE_STATUSES, CarrierStatus, assert_transition
from app.database.models import Carrier, CarrierInsurance
from app.repositories.carrier_repository import CarrierInsuranceRepository, CarrierRepository
from app.repositories.load_repository import LoadRepository
from app.schemas.carriers import CarrierCreate, CarrierOut, CarrierScorecard, CarrierUpdate, InsuranceIn
from app.services.base_service import BaseService, page_envelope
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Coverage an ACTIVE carrier must hold, in cents
INSURANCE_MINIMUMS = {
    "AUTO_LIABILITY": 1_000_000 * 100,
    "CARGO": 100_000 * 100,
    "GENERAL_LIABILITY": 500_000 * 100,
}

# Best tier first: (tier, min loads, min on-time ratio, max claims ratio, min months active)
TIER_CRITERIA = (
    ("PLATINUM", 100, 0.95, 0.01, 12),
    ("GOLD", 50, 0.90, 0.02, 6),
    ("SILVER", 25, 0.85, 0.03, 3),
    ("BRONZE", 10, 0.0, 1.0, 0),
)
STATUSES_NEEDING_REASON = frozenset({CarrierStatus.SUSPENDED.value, CarrierStatus.BLACKLISTED.value})


def recommend_tier(total_loads: int, on_time_ratio: float, claims_ratio: float, months_active: int) -> str:
    for tier, min_loads, min_on_time, max_claims, min_months in TIER_CRITERIA:
        if (
            total_loads >= min_loads
            and on_time_ratio >= min_on_time
            and claims_ratio <= max_claims
            and months_active >= min_months
        ):
            return tier
    return "UNQUALIFIED"


def insurance_shortfalls(insurances: Iterable[CarrierInsurance], today: date) -> List[str]:
    """Coverage types missing, expired or below minimum; empty when compliant."""
    best: Dict[str, int] = {}
    for policy in insurances:
        if policy.expiration_date < today:
            continue
        best[policy.insurance_type] = max(best.get(policy.insurance_type, 0), policy.coverage_amount_cents)
    problems = []
    for insurance_type, minimum in INSURANCE_MINIMUMS.items():
        held = best.get(insurance_type)
        if held is None:
            problems.append(f"{insurance_type} insurance missing or expired")
        elif held < minimum:
            problems.append(f"{insurance_type} coverage below ${minimum // 100:,}")
    return problems


def months_between(start: Optional[datetime], end: datetime) -> int:
    if start is None:
        return 0
    return max(0, (end.year - start.year) * 12 + end.month - start.month)


class CarrierService(BaseService):
    """Service for managing the tenant's carrier roster."""

    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, tenant_id)
        self.carrier_repo = CarrierRepository(session, tenant_id)
        self.insurance_repo = CarrierInsuranceRepository(session, tenant_id)
        self.load_repo = LoadRepository(session, tenant_id)

    async def create_carrier(self, payload: CarrierCreate) -> Carrier:
        return await self.execute("create_carrier", payload=payload)

    async def list_carriers(self, page: int = 1, limit: int = 20, **filters) -> Dict[str, Any]:
        return await self.execute("list_carriers", page=page, limit=limit, filters=filters)

    async def get_carrier(self, carrier_id: UUID) -> Carrier:
        return await self.execute("get_carrier", carrier_id=carrier_id)

    async def update_carrier(self, carrier_id: UUID, payload: CarrierUpdate) -> Carrier:
        return await self.execute("update_carrier", carrier_id=carrier_id, payload=payload)

    async def add_insurance(self, carrier_id: UUID, payload: InsuranceIn) -> CarrierInsurance:
        return await self.execute("add_insurance", carrier_id=carrier_id, payload=payload)

    async def list_insurance(self, carrier_id: UUID) -> List[CarrierInsurance]:
        return await self.execute("list_insurance", carrier_id=carrier_id)

    async def remove_insurance(self, carrier_id: UUID, insurance_id: UUID) -> None:
        return await self.execute("remove_insurance", carrier_id=carrier_id, insurance_id=insurance_id)

    async def approve_carrier(self, carrier_id: UUID) -> Carrier:
        return await self.execute("approve_carrier", carrier_id=carrier_id)

    async def update_status(self, carrier_id: UUID, status: str, reason: Optional[str] = None) -> Carrier:
        return await self.execute("update_status", carrier_id=carrier_id, status=status, reason=reason)

    async def deactivate_carrier(self, carrier_id: UUID, reason: Optional[str] = None) -> Carrier:
        return await self.execute("deactivate_carrier", carrier_id=carrier_id, reason=reason)

    async def get_scorecard(self, carrier_id: UUID) -> CarrierScorecard:
        return await self.execute("get_scorecard", carrier_id=carrier_id)

    async def _create_carrier(self, payload: CarrierCreate) -> Carrier:
        if payload.mc_number and await self.carrier_repo.get_by_mc_number(payload.mc_number):
            raise ConflictError(f"A carrier with MC number {payload.mc_number} already exists")
        async with self.transaction():
            carrier = await self.carrier_repo.create(
                **payload.model_dump(),
                status=CarrierStatus.PENDING.value,
                tier="UNQUALIFIED",
            )
        LOGGER.info(f"Created carrier {carrier.name}", extra={"tenant_id": str(self.tenant_id)})
        return carrier

    async def _list_carriers(self, page: int, limit: int, filters: Dict[str, Any]) -> Dict[str, Any]:
        carriers, total = await self.carrier_repo.search(page=page, limit=limit, **filters)
        return page_envelope([CarrierOut.model_validate(c) for c in carriers], total, page, limit)

    async def _get_carrier(self, carrier_id: UUID) -> Carrier:
        carrier = await self.carrier_repo.get_detail(carrier_id)
        if carrier is None:
            raise NotFoundError("Carrier", carrier_id)
        return carrier

    async def _update_carrier(self, carrier_id: UUID, payload: CarrierUpdate) -> Carrier:
        carrier = await self._get_carrier(carrier_id)
        async with self.transaction():
            for key, value in payload.model_dump(exclude_unset=True).items():
                setattr(carrier, key, value)
            await self.session.flush()
        return carrier

    async def _add_insurance(self, carrier_id: UUID, payload: InsuranceIn) -> CarrierInsurance:
        await self._get_carrier(carrier_id)
        if payload.effective_date and payload.effective_date > payload.expiration_date:
            raise ValidationError("Insurance effective date must be before its expiration date")
        async with self.transaction():
            return await self.insurance_repo.create(carrier_id=carrier_id, **payload.model_dump())

    async def _list_insurance(self, carrier_id: UUID) -> List[CarrierInsurance]:
        await self._get_carrier(carrier_id)
        return await self.insurance_repo.for_carrier(carrier_id)

    async def _remove_insurance(self, carrier_id: UUID, insurance_id: UUID) -> None:
        policy = await self.insurance_repo.get_by_id(insurance_id)
        if policy is None or policy.carrier_id != carrier_id:
            raise NotFoundError("Insurance", insurance_id)
        async with self.transaction():
            await self.insurance_repo.delete(insurance_id)

    async def _approve_carrier(self, carrier_id: UUID) -> Carrier:
        carrier = await self._get_carrier(carrier_id)
        if carrier.status != CarrierStatus.PENDING.value:
            raise ValidationError(f"Only PENDING carriers can be approved; carrier is {carrier.status}")

        problems = []
        if not carrier.w9_on_file:
            problems.append("W-9 not on file")
        if not carrier.agreement_signed:
            problems.append("Carrier agreement not signed")
        problems.extend(insurance_shortfalls(carrier.insurances, date.today()))
        if problems:
            raise ValidationError(f"Carrier cannot be approved: {'; '.join(problems)}")

        async with self.transaction():
            changed = await self.carrier_repo.transition(
                carrier.id,
                CarrierStatus.PENDING.value,
                CarrierStatus.ACTIVE.value,
                approved_at=datetime.now(timezone.utc),
                status_reason=None,
            )
            if not changed:
                raise ConflictError(f"Carrier {carrier.name} changed concurrently; reload and retry")
        LOGGER.info(f"Approved carrier {carrier.name}", extra={"tenant_id": str(self.tenant_id)})
        return carrier

    async def _update_status(self, carrier_id: UUID, status: str, reason: Optional[str]) -> Carrier:
        carrier = await self._get_carrier(carrier_id)
        to_status = CarrierStatus(status).value
        if to_status in STATUSES_NEEDING_REASON and not reason:
            raise ValidationError(f"A reason is required to set a carrier {to_status}")
        if to_status == CarrierStatus.ACTIVE.value and carrier.status == CarrierStatus.PENDING.value:
            return await self._approve_carrier(carrier_id)
        assert_transition("carrier", carrier.status, to_status)

        async with self.transaction():
            changed = await self.carrier_repo.transition(carrier.id, carrier.status, to_status, status_reason=reason)
            if not changed:
                raise ConflictError(f"Carrier {carrier.name} changed concurrently; reload and retry")
        return carrier

    async def _deactivate_carrier(self, carrier_id: UUID, reason: Optional[str]) -> Carrier:
        active = await self.load_repo.count_active_for_carrier(carrier_id, LOAD_ACTIVE_STATUSES)
        if active:
            raise ValidationError(f"Carrier has {active} active load(s) and cannot be deactivated")
        return await self._update_status(carrier_id, CarrierStatus.INACTIVE.value, reason)

    async def _get_scorecard(self, carrier_id: UUID) -> CarrierScorecard:
        carrier = await self._get_carrier(carrier_id)
        total_loads = await self.load_repo.count({"carrier_id": carrier_id})
        performance = (await self.load_repo.carrier_performance([carrier_id])).get(
            carrier_id, {"delivered": 0, "on_time": 0}
        )
        completed = performance["delivered"]
        on_time_ratio = performance["on_time"] / completed if completed else 0.0
        claims_ratio = (carrier.claims_count or 0) / completed if completed else 0.0
        months = months_between(carrier.approved_at or carrier.created_at, datetime.now(timezone.utc))
        return CarrierScorecard(
            carrier_id=carrier.id,
            total_loads=total_loads,
            completed_loads=completed,
            on_time_loads=performance["on_time"],
            on_time_percentage=round(on_time_ratio * 100, 1),
            claims_count=carrier.claims_count or 0,
            claims_rate=round(claims_ratio * 100, 2),
            current_tier=carrier.tier,
            recommended_tier=recommend_tier(completed, on_time_ratio, claims_ratio, months),
        )
