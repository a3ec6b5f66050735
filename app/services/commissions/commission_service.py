"""Sales commissions: plans, per-user assignments and per-load entries."""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.lifecycle import LoadStatus
from app.database.models import CommissionAssignment, CommissionEntry, CommissionPlan
from app.repositories.commission_repository import (
    CommissionAssignmentRepository,
    CommissionEntryRepository,
    CommissionPlanRepository,
)
from app.repositories.load_repository import LoadRepository
from app.repositories.order_repository import OrderRepository
from app.schemas.commissions import (
    AssignmentCreate,
    CommissionEntryOut,
    CommissionPlanCreate,
    CommissionPlanUpdate,
    CommissionTier,
    EarningsSummary,
)
from app.services.base_service import BaseService
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

COMMISSIONABLE_LOAD_STATUSES = frozenset({LoadStatus.DELIVERED.value, LoadStatus.COMPLETED.value})
HUNDRED = Decimal("100")


@dataclass
class CommissionQuote:
    basis_amount_cents: int
    rate_applied: Optional[Decimal]
    commission_amount_cents: int


def _cents(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def tier_rate(tiers: Iterable[CommissionTier], margin_percent: Decimal) -> Decimal:
    """Rate of the highest tier whose threshold the margin reaches; zero below every tier."""
    reached = [t for t in tiers if margin_percent >= t.min_margin_percent]
    if not reached:
        return Decimal("0")
    return max(reached, key=lambda t: t.min_margin_percent).rate


def compute_commission(
    plan_type: str,
    revenue_cents: int,
    cost_cents: int,
    percent_rate: Optional[Decimal] = None,
    flat_amount_cents: Optional[int] = None,
    tiers: Iterable[CommissionTier] = (),
    override_rate: Optional[Decimal] = None,
) -> CommissionQuote:
    margin = revenue_cents - cost_cents
    if plan_type == "FLAT_FEE":
        return CommissionQuote(revenue_cents, None, flat_amount_cents or 0)

    if plan_type == "PERCENT_REVENUE":
        basis = revenue_cents
        rate = override_rate if override_rate is not None else percent_rate
    elif plan_type == "PERCENT_MARGIN":
        basis = margin
        rate = override_rate if override_rate is not None else percent_rate
    elif plan_type == "TIERED":
        basis = margin
        margin_pct = Decimal(margin) * HUNDRED / revenue_cents if revenue_cents else Decimal("0")
        rate = override_rate if override_rate is not None else tier_rate(tiers, margin_pct)
    else:
        raise ValidationError(f"Unknown commission plan type: {plan_type}")

    rate = Decimal(rate or 0)
    amount = _cents(Decimal(max(basis, 0)) * rate / HUNDRED)
    return CommissionQuote(basis, rate, amount)


def plan_tiers(plan: CommissionPlan) -> List[CommissionTier]:
    return [CommissionTier.model_validate(t) for t in (plan.tiers or [])]


def _tiers_json(tiers: Iterable[CommissionTier]) -> List[Dict[str, Any]]:
    return [t.model_dump(mode="json") for t in tiers]


class CommissionService(BaseService):
    """Service for commission plans, assignments and load commissions."""

    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, tenant_id)
        self.plan_repo = CommissionPlanRepository(session, tenant_id)
        self.assignment_repo = CommissionAssignmentRepository(session, tenant_id)
        self.entry_repo = CommissionEntryRepository(session, tenant_id)
        self.load_repo = LoadRepository(session, tenant_id)
        self.order_repo = OrderRepository(session, tenant_id)

    async def create_plan(self, payload: CommissionPlanCreate) -> CommissionPlan:
        return await self.execute("create_plan", payload=payload)

    async def list_plans(self, status: Optional[str] = None) -> List[CommissionPlan]:
        return await self.execute("list_plans", status=status)

    async def get_plan(self, plan_id: UUID) -> CommissionPlan:
        return await self.execute("get_plan", plan_id=plan_id)

    async def update_plan(self, plan_id: UUID, payload: CommissionPlanUpdate) -> CommissionPlan:
        return await self.execute("update_plan", plan_id=plan_id, payload=payload)

    async def assign_plan(self, payload: AssignmentCreate) -> CommissionAssignment:
        return await self.execute("assign_plan", payload=payload)

    async def list_assignments(self, user_id: Optional[str] = None) -> List[CommissionAssignment]:
        return await self.execute("list_assignments", user_id=user_id)

    async def calculate_for_load(self, load_id: UUID) -> CommissionEntry:
        return await self.execute("calculate_for_load", load_id=load_id)

    async def list_entries(self, user_id: Optional[str] = None, status: Optional[str] = None) -> List[CommissionEntry]:
        return await self.execute("list_entries", user_id=user_id, status=status)

    async def approve_entry(self, entry_id: UUID) -> CommissionEntry:
        return await self.execute("approve_entry", entry_id=entry_id)

    async def reverse_entry(self, entry_id: UUID, reason: str) -> CommissionEntry:
        return await self.execute("reverse_entry", entry_id=entry_id, reason=reason)

    async def earnings(self, user_id: str, start_date: date, end_date: date) -> EarningsSummary:
        return await self.execute("earnings", user_id=user_id, start_date=start_date, end_date=end_date)

    async def _create_plan(self, payload: CommissionPlanCreate) -> CommissionPlan:
        data = payload.model_dump(exclude={"tiers"})
        async with self.transaction():
            plan = await self.plan_repo.create(**data, tiers=_tiers_json(payload.tiers), status="ACTIVE")
        LOGGER.info(f"Created {plan.plan_type} commission plan {plan.name}", extra={"tenant_id": str(self.tenant_id)})
        return plan

    async def _list_plans(self, status: Optional[str]) -> List[CommissionPlan]:
        return await self.plan_repo.get_all(
            limit=500, filters={"status": status}, order_by=[CommissionPlan.name.asc()]
        )

    async def _get_plan(self, plan_id: UUID) -> CommissionPlan:
        plan = await self.plan_repo.get_by_id(plan_id)
        if plan is None:
            raise NotFoundError("CommissionPlan", plan_id)
        return plan

    async def _update_plan(self, plan_id: UUID, payload: CommissionPlanUpdate) -> CommissionPlan:
        plan = await self._get_plan(plan_id)
        changes = payload.model_dump(exclude_unset=True, exclude={"tiers"})
        async with self.transaction():
            for key, value in changes.items():
                setattr(plan, key, value)
            if payload.tiers is not None:
                plan.tiers = _tiers_json(payload.tiers)
            await self.session.flush()
        return plan

    async def _assign_plan(self, payload: AssignmentCreate) -> CommissionAssignment:
        plan = await self._get_plan(payload.plan_id)
        if plan.status != "ACTIVE":
            raise ValidationError(f"Commission plan {plan.name} is {plan.status}")
        effective = payload.effective_date or date.today()
        async with self.transaction():
            ended = await self.assignment_repo.end_active_for_user(payload.user_id, effective)
            assignment = await self.assignment_repo.create(
                user_id=payload.user_id,
                plan_id=plan.id,
                status="ACTIVE",
                override_rate=payload.override_rate,
                effective_date=effective,
            )
        LOGGER.info(
            f"Assigned plan {plan.name} to user {payload.user_id}; ended {ended} previous assignment(s)",
            extra={"tenant_id": str(self.tenant_id)},
        )
        return assignment

    async def _list_assignments(self, user_id: Optional[str]) -> List[CommissionAssignment]:
        return await self.assignment_repo.get_all(
            limit=500,
            filters={"user_id": user_id},
            order_by=[CommissionAssignment.effective_date.desc()],
        )

    async def _calculate_for_load(self, load_id: UUID) -> CommissionEntry:
        load = await self.load_repo.get_by_id(load_id)
        if load is None:
            raise NotFoundError("Load", load_id)
        if load.status not in COMMISSIONABLE_LOAD_STATUSES:
            raise ValidationError(f"Load {load.load_number} must be DELIVERED or COMPLETED; it is {load.status}")

        sales_rep_id = load.sales_rep_id
        if load.order_id:
            order = await self.order_repo.get_by_id(load.order_id)
            if order is not None and order.sales_rep_id:
                sales_rep_id = order.sales_rep_id
        if not sales_rep_id:
            raise ValidationError(f"Load {load.load_number} has no sales rep to pay")

        assignment = await self.assignment_repo.active_for_user(sales_rep_id)
        if assignment is None:
            raise ValidationError(f"User {sales_rep_id} has no active commission plan")
        plan = assignment.plan
        if await self.entry_repo.for_load(load.id, sales_rep_id):
            raise ConflictError(f"Commission for load {load.load_number} was already calculated")

        revenue = load.customer_rate_cents or 0
        if plan.plan_type != "FLAT_FEE" and plan.plan_type != "PERCENT_REVENUE" and load.carrier_rate_cents is None:
            raise ValidationError(f"Load {load.load_number} has no carrier rate to compute a margin")
        cost = load.carrier_rate_cents or 0
        if plan.minimum_margin_percent is not None:
            margin_pct = Decimal(revenue - cost) * HUNDRED / revenue if revenue else Decimal("0")
            if margin_pct < plan.minimum_margin_percent:
                raise ValidationError(
                    f"Load margin {margin_pct:.1f}% is below the plan minimum of {plan.minimum_margin_percent}%"
                )

        quote = compute_commission(
            plan.plan_type,
            revenue,
            cost,
            percent_rate=plan.percent_rate,
            flat_amount_cents=plan.flat_amount_cents,
            tiers=plan_tiers(plan),
            override_rate=assignment.override_rate,
        )
        period = (load.delivered_at.date() if load.delivered_at else date.today()).replace(day=1)
        async with self.transaction():
            entry = await self.entry_repo.create(
                user_id=sales_rep_id,
                load_id=load.id,
                order_id=load.order_id,
                plan_id=plan.id,
                entry_type="LOAD_COMMISSION",
                status="PENDING",
                basis_amount_cents=quote.basis_amount_cents,
                rate_applied=quote.rate_applied,
                commission_amount_cents=quote.commission_amount_cents,
                commission_period=period,
            )
        LOGGER.info(
            f"Calculated {quote.commission_amount_cents} cent commission on load {load.load_number}",
            extra={"tenant_id": str(self.tenant_id), "user_id": sales_rep_id},
        )
        return entry

    async def _list_entries(self, user_id: Optional[str], status: Optional[str]) -> List[CommissionEntry]:
        return await self.entry_repo.get_all(
            limit=1000,
            filters={"user_id": user_id, "status": status},
            order_by=[CommissionEntry.commission_period.desc()],
        )

    async def _get_entry(self, entry_id: UUID) -> CommissionEntry:
        entry = await self.entry_repo.get_by_id(entry_id)
        if entry is None:
            raise NotFoundError("CommissionEntry", entry_id)
        return entry

    async def _approve_entry(self, entry_id: UUID) -> CommissionEntry:
        entry = await self._get_entry(entry_id)
        async with self.transaction():
            if not await self.entry_repo.transition(entry.id, "PENDING", "APPROVED"):
                raise ValidationError(f"Only PENDING commissions can be approved; entry is {entry.status}")
        return entry

    async def _reverse_entry(self, entry_id: UUID, reason: str) -> CommissionEntry:
        entry = await self._get_entry(entry_id)
        async with self.transaction():
            changed = await self.entry_repo.transition(
                entry.id,
                ("PENDING", "APPROVED"),
                "REVERSED",
                reversed_at=datetime.now(timezone.utc),
                reversal_reason=reason,
            )
            if not changed:
                raise ValidationError(f"Commission entry is {entry.status} and cannot be reversed")
        return entry

    async def _earnings(self, user_id: str, start_date: date, end_date: date) -> EarningsSummary:
        if start_date > end_date:
            raise ValidationError("startDate must be on or before endDate")
        entries = await self.entry_repo.earnings(user_id, start_date, end_date)
        return EarningsSummary(
            user_id=user_id,
            start_date=start_date,
            end_date=end_date,
            entry_count=len(entries),
            total_commission_cents=sum(e.commission_amount_cents for e in entries),
            entries=[CommissionEntryOut.model_validate(e) for e in entries],
        )
