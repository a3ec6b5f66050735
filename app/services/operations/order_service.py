"""Order service: customer orders, hold/release and load creation from an order."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, InvalidStateTransitionError, NotFoundError, ValidationError
from app.core.lifecycle import LoadStatus, OrderStatus, assert_transition
from app.database.models import Load, Order
from app.repositories.crm_repository import CompanyRepository
from app.repositories.load_repository import LoadRepository, LoadStatusHistoryRepository
from app.repositories.order_repository import OrderRepository
from app.schemas.loads import LoadFromOrderRequest, OrderCreate, OrderOut, OrderUpdate, StopIn
from app.services.base_service import BaseService, page_envelope
from app.services.operations.load_service import build_stops
from app.services.realtime.dispatch_events import DispatchEventHub, DispatchEventType
from app.utils.logging import get_logger
from app.utils.numbering import (
    format_load_number,
    format_order_number,
    generate_tracking_code,
    load_number_prefix,
)

LOGGER = get_logger(__name__)

LOCKED_FOR_EDIT = frozenset({
    OrderStatus.DELIVERED.value,
    OrderStatus.COMPLETED.value,
    OrderStatus.CANCELLED.value,
})
NOT_CANCELLABLE = frozenset({OrderStatus.INVOICED.value, OrderStatus.COMPLETED.value})


class OrderService(BaseService):
    """Service for managing customer orders."""

    def __init__(self, session: AsyncSession, tenant_id: UUID, event_hub: Optional[DispatchEventHub] = None):
        super().__init__(session, tenant_id, event_hub)
        self.order_repo = OrderRepository(session, tenant_id)
        self.company_repo = CompanyRepository(session, tenant_id)
        self.load_repo = LoadRepository(session, tenant_id)
        self.history_repo = LoadStatusHistoryRepository(session, tenant_id)

    async def create_order(self, payload: OrderCreate, user_id: Optional[str] = None) -> Order:
        return await self.execute("create_order", payload=payload, user_id=user_id)

    async def list_orders(self, page: int = 1, limit: int = 20, **filters) -> Dict[str, Any]:
        return await self.execute("list_orders", page=page, limit=limit, filters=filters)

    async def get_order(self, order_id: UUID) -> Order:
        return await self.execute("get_order", order_id=order_id)

    async def update_order(self, order_id: UUID, payload: OrderUpdate) -> Order:
        return await self.execute("update_order", order_id=order_id, payload=payload)

    async def update_status(self, order_id: UUID, status: str, reason: Optional[str] = None) -> Order:
        return await self.execute("update_status", order_id=order_id, status=status, reason=reason)

    async def hold_order(self, order_id: UUID, reason: str) -> Order:
        return await self.execute("hold_order", order_id=order_id, reason=reason)

    async def release_order(self, order_id: UUID) -> Order:
        return await self.execute("release_order", order_id=order_id)

    async def cancel_order(self, order_id: UUID, reason: Optional[str] = None) -> Order:
        return await self.execute("cancel_order", order_id=order_id, reason=reason)

    async def create_load_from_order(
        self, order_id: UUID, payload: LoadFromOrderRequest, user_id: Optional[str] = None
    ) -> Load:
        return await self.execute("create_load_from_order", order_id=order_id, payload=payload, user_id=user_id)

    async def _create_order(self, payload: OrderCreate, user_id: Optional[str]) -> Order:
        if not await self.company_repo.get_by_id(payload.customer_id):
            raise ValidationError(f"Customer {payload.customer_id} not found")
        stop_types = {stop.stop_type for stop in payload.stops}
        if not {"PICKUP", "DELIVERY"} <= stop_types:
            raise ValidationError("An order needs at least one pickup and one delivery stop")

        data = payload.model_dump(exclude={"stops"})
        total = payload.customer_rate_cents + payload.fuel_surcharge_cents + payload.accessorial_charges_cents
        async with self.transaction():
            order = await self.order_repo.create(
                **data,
                order_number=format_order_number(datetime.now(timezone.utc)),
                status=OrderStatus.PENDING.value,
                total_charges_cents=total,
                stops=build_stops(self.tenant_id, payload.stops),
            )
        LOGGER.info(
            f"Created order {order.order_number}",
            extra={"tenant_id": str(self.tenant_id), "user_id": user_id},
        )
        return order

    async def _list_orders(self, page: int, limit: int, filters: Dict[str, Any]) -> Dict[str, Any]:
        orders, total = await self.order_repo.search(page=page, limit=limit, **filters)
        return page_envelope([OrderOut.model_validate(o) for o in orders], total, page, limit)

    async def _get_order(self, order_id: UUID) -> Order:
        order = await self.order_repo.get_detail(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    async def _update_order(self, order_id: UUID, payload: OrderUpdate) -> Order:
        order = await self._get_order(order_id)
        if order.status in LOCKED_FOR_EDIT:
            raise ValidationError(f"Order {order.order_number} is {order.status} and can no longer be edited")

        changes = payload.model_dump(exclude_unset=True)
        async with self.transaction():
            for key, value in changes.items():
                setattr(order, key, value)
            order.total_charges_cents = (
                (order.customer_rate_cents or 0)
                + (order.fuel_surcharge_cents or 0)
                + (order.accessorial_charges_cents or 0)
            )
            await self.session.flush()
        return order

    async def _move(self, order: Order, to_status: str, **values) -> None:
        assert_transition("order", order.status, to_status)
        if not await self.order_repo.transition(order.id, order.status, to_status, **values):
            raise ConflictError(f"Order {order.order_number} changed concurrently; reload and retry")

    async def _update_status(self, order_id: UUID, status: str, reason: Optional[str]) -> Order:
        to_status = OrderStatus(status).value
        if to_status == OrderStatus.ON_HOLD.value:
            return await self._hold_order(order_id, reason or "")
        if to_status == OrderStatus.CANCELLED.value:
            return await self._cancel_order(order_id, reason)

        order = await self._get_order(order_id)
        if order.status == OrderStatus.ON_HOLD.value:
            raise InvalidStateTransitionError(
                "order", order.status, to_status, "Release the hold before changing the order status"
            )
        async with self.transaction():
            await self._move(order, to_status)
        return order

    async def _hold_order(self, order_id: UUID, reason: str) -> Order:
        if not reason:
            raise ValidationError("A reason is required to put an order on hold")
        order = await self._get_order(order_id)
        previous = order.status
        async with self.transaction():
            await self._move(order, OrderStatus.ON_HOLD.value, hold_from_status=previous, hold_reason=reason)
        LOGGER.info(f"Order {order.order_number} put on hold from {previous}")
        return order

    async def _release_order(self, order_id: UUID) -> Order:
        order = await self._get_order(order_id)
        if order.status != OrderStatus.ON_HOLD.value:
            raise InvalidStateTransitionError(
                "order", order.status, "release", f"Order {order.order_number} is not on hold"
            )
        restore = order.hold_from_status or OrderStatus.PENDING.value
        async with self.transaction():
            await self._move(order, restore, hold_from_status=None, hold_reason=None)
        return order

    async def _cancel_order(self, order_id: UUID, reason: Optional[str]) -> Order:
        order = await self._get_order(order_id)
        if order.status in NOT_CANCELLABLE:
            raise InvalidStateTransitionError(
                "order", order.status, OrderStatus.CANCELLED.value,
                f"Order {order.order_number} is {order.status} and cannot be cancelled",
            )
        async with self.transaction():
            await self._move(order, OrderStatus.CANCELLED.value, cancel_reason=reason)
        return order

    async def _create_load_from_order(
        self, order_id: UUID, payload: LoadFromOrderRequest, user_id: Optional[str]
    ) -> Load:
        order = await self._get_order(order_id)
        if order.status in LOCKED_FOR_EDIT or order.status == OrderStatus.ON_HOLD.value:
            raise ValidationError(f"Cannot create a load for an order that is {order.status}")

        stops = [StopIn.model_validate(stop) for stop in sorted(order.stops, key=lambda s: s.sequence)]
        pickups = [s for s in order.stops if s.stop_type == "PICKUP"]
        deliveries = [s for s in order.stops if s.stop_type == "DELIVERY"]
        pickup_date = payload.pickup_date or (pickups[0].appointment_start if pickups else None)
        delivery_date = payload.delivery_date or (deliveries[-1].appointment_start if deliveries else None)

        now = datetime.now(timezone.utc)
        async with self.transaction():
            sequence = await self.load_repo.next_sequence(Load.load_number, load_number_prefix(now))
            load = await self.load_repo.create(
                load_number=format_load_number(now, sequence),
                tracking_code=generate_tracking_code(),
                status=LoadStatus.UNASSIGNED.value,
                order_id=order.id,
                customer_id=order.customer_id,
                sales_rep_id=order.sales_rep_id,
                customer_rate_cents=order.customer_rate_cents + order.fuel_surcharge_cents,
                accessorial_charges_cents=order.accessorial_charges_cents,
                carrier_rate_cents=payload.carrier_rate_cents,
                equipment_type=order.equipment_type,
                commodity=order.commodity,
                weight_lbs=order.weight_lbs,
                pickup_date=pickup_date,
                delivery_date=delivery_date,
                stops=build_stops(self.tenant_id, stops),
            )
            await self.history_repo.create(
                load_id=load.id,
                to_status=LoadStatus.UNASSIGNED.value,
                notes=f"Created from order {order.order_number}",
                changed_by=user_id,
            )
            if order.status in (OrderStatus.PENDING.value, OrderStatus.QUOTED.value):
                await self._move(order, OrderStatus.BOOKED.value)
            self.emit(DispatchEventType.LOAD_CREATED.value, load, orderId=str(order.id))
        return load
