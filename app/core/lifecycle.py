"""Status enums and the authoritative transition table for each entity.

Every status change in the service layer goes through ``assert_transition``;
a pair that is not listed here is rejected before anything is written.
"""

from enum import Enum
from typing import Dict, FrozenSet, Mapping, Type

from app.core.exceptions import InvalidStateTransitionError


class LoadStatus(str, Enum):
    UNASSIGNED = "UNASSIGNED"
    TENDERED = "TENDERED"
    DISPATCHED = "DISPATCHED"
    AT_PICKUP = "AT_PICKUP"
    PICKED_UP = "PICKED_UP"
    IN_TRANSIT = "IN_TRANSIT"
    AT_DELIVERY = "AT_DELIVERY"
    DELIVERED = "DELIVERED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    QUOTED = "QUOTED"
    BOOKED = "BOOKED"
    DISPATCHED = "DISPATCHED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    INVOICED = "INVOICED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    ON_HOLD = "ON_HOLD"


class PostingStatus(str, Enum):
    ACTIVE = "ACTIVE"
    BOOKED = "BOOKED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class BidStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    COUNTERED = "COUNTERED"
    EXPIRED = "EXPIRED"
    WITHDRAWN = "WITHDRAWN"


class TenderStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ACCEPTED = "ACCEPTED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class TenderRecipientStatus(str, Enum):
    PENDING = "PENDING"
    OFFERED = "OFFERED"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    EXPIRED = "EXPIRED"
    SKIPPED = "SKIPPED"


class InvoiceStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    SENT = "SENT"
    VIEWED = "VIEWED"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    VOID = "VOID"


class SettlementStatus(str, Enum):
    CREATED = "CREATED"
    APPROVED = "APPROVED"
    PROCESSED = "PROCESSED"
    PAID = "PAID"
    VOID = "VOID"


class CarrierStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    BLACKLISTED = "BLACKLISTED"


def _table(entries: Mapping[Enum, tuple]) -> Dict[str, FrozenSet[str]]:
    return {src.value: frozenset(dst.value for dst in targets) for src, targets in entries.items()}


L = LoadStatus
LOAD_TRANSITIONS = _table({
    L.UNASSIGNED: (L.TENDERED, L.CANCELLED),
    L.TENDERED: (L.DISPATCHED, L.CANCELLED),
    L.DISPATCHED: (L.AT_PICKUP, L.PICKED_UP, L.IN_TRANSIT, L.CANCELLED),
    L.AT_PICKUP: (L.PICKED_UP, L.IN_TRANSIT, L.CANCELLED),
    L.PICKED_UP: (L.IN_TRANSIT, L.CANCELLED),
    L.IN_TRANSIT: (L.AT_DELIVERY, L.DELIVERED, L.CANCELLED),
    L.AT_DELIVERY: (L.DELIVERED, L.CANCELLED),
    L.DELIVERED: (L.COMPLETED, L.CANCELLED),
    L.COMPLETED: (),
    L.CANCELLED: (),
})

O = OrderStatus
ORDER_TRANSITIONS = _table({
    O.PENDING: (O.QUOTED, O.BOOKED, O.ON_HOLD, O.CANCELLED),
    O.QUOTED: (O.BOOKED, O.ON_HOLD, O.CANCELLED),
    O.BOOKED: (O.DISPATCHED, O.ON_HOLD, O.CANCELLED),
    O.DISPATCHED: (O.IN_TRANSIT, O.ON_HOLD, O.CANCELLED),
    O.IN_TRANSIT: (O.DELIVERED, O.ON_HOLD, O.CANCELLED),
    O.DELIVERED: (O.INVOICED, O.COMPLETED),
    O.INVOICED: (O.COMPLETED,),
    O.COMPLETED: (),
    O.CANCELLED: (),
    # Release from hold returns to the recorded prior status
    O.ON_HOLD: (O.PENDING, O.QUOTED, O.BOOKED, O.DISPATCHED, O.IN_TRANSIT, O.CANCELLED),
})

P = PostingStatus
POSTING_TRANSITIONS = _table({
    P.ACTIVE: (P.BOOKED, P.EXPIRED, P.CANCELLED),
    P.BOOKED: (),
    P.EXPIRED: (),
    P.CANCELLED: (),
})

B = BidStatus
BID_TRANSITIONS = _table({
    B.PENDING: (B.ACCEPTED, B.REJECTED, B.COUNTERED, B.EXPIRED, B.WITHDRAWN),
    # Carrier takes the counter (back to PENDING) or walks away; system
    # sweeps reject or expire whatever is left open.
    B.COUNTERED: (B.PENDING, B.REJECTED, B.EXPIRED, B.WITHDRAWN),
    B.ACCEPTED: (),
    B.REJECTED: (),
    B.EXPIRED: (),
    B.WITHDRAWN: (),
})

T = TenderStatus
TENDER_TRANSITIONS = _table({
    T.ACTIVE: (T.ACCEPTED, T.EXPIRED, T.CANCELLED),
    T.ACCEPTED: (),
    T.EXPIRED: (),
    T.CANCELLED: (),
})

R = TenderRecipientStatus
TENDER_RECIPIENT_TRANSITIONS = _table({
    R.PENDING: (R.OFFERED, R.SKIPPED),
    R.OFFERED: (R.ACCEPTED, R.DECLINED, R.EXPIRED, R.SKIPPED),
    R.ACCEPTED: (),
    R.DECLINED: (),
    R.EXPIRED: (),
    R.SKIPPED: (),
})

I = InvoiceStatus
INVOICE_TRANSITIONS = _table({
    I.DRAFT: (I.PENDING, I.SENT, I.VOID),
    I.PENDING: (I.SENT, I.VOID),
    I.SENT: (I.VIEWED, I.PARTIAL, I.PAID, I.OVERDUE, I.VOID),
    I.VIEWED: (I.PARTIAL, I.PAID, I.OVERDUE, I.VOID),
    I.PARTIAL: (I.PAID, I.OVERDUE, I.SENT),
    I.OVERDUE: (I.PARTIAL, I.PAID, I.VOID),
    # A bounced payment reopens a paid invoice
    I.PAID: (I.PARTIAL, I.SENT, I.OVERDUE),
    I.VOID: (),
})

S = SettlementStatus
SETTLEMENT_TRANSITIONS = _table({
    S.CREATED: (S.APPROVED, S.VOID),
    S.APPROVED: (S.PROCESSED, S.VOID),
    S.PROCESSED: (S.PAID, S.VOID),
    S.PAID: (),
    S.VOID: (),
})

C = CarrierStatus
CARRIER_TRANSITIONS = _table({
    C.PENDING: (C.ACTIVE, C.INACTIVE, C.BLACKLISTED),
    C.ACTIVE: (C.INACTIVE, C.SUSPENDED, C.BLACKLISTED),
    C.INACTIVE: (C.ACTIVE, C.BLACKLISTED),
    C.SUSPENDED: (C.ACTIVE, C.INACTIVE, C.BLACKLISTED),
    C.BLACKLISTED: (),
})

TRANSITION_TABLES: Dict[str, Dict[str, FrozenSet[str]]] = {
    "load": LOAD_TRANSITIONS,
    "order": ORDER_TRANSITIONS,
    "posting": POSTING_TRANSITIONS,
    "bid": BID_TRANSITIONS,
    "tender": TENDER_TRANSITIONS,
    "tender_recipient": TENDER_RECIPIENT_TRANSITIONS,
    "invoice": INVOICE_TRANSITIONS,
    "settlement": SETTLEMENT_TRANSITIONS,
    "carrier": CARRIER_TRANSITIONS,
}

STATUS_ENUMS: Dict[str, Type[Enum]] = {
    "load": LoadStatus,
    "order": OrderStatus,
    "posting": PostingStatus,
    "bid": BidStatus,
    "tender": TenderStatus,
    "tender_recipient": TenderRecipientStatus,
    "invoice": InvoiceStatus,
    "settlement": SettlementStatus,
    "carrier": CarrierStatus,
}

LOAD_ACTIVE_STATUSES = frozenset({
    L.TENDERED.value, L.DISPATCHED.value, L.AT_PICKUP.value, L.PICKED_UP.value,
    L.IN_TRANSIT.value, L.AT_DELIVERY.value,
})
OPEN_BID_STATUSES = frozenset({B.PENDING.value, B.COUNTERED.value})


def _value(status) -> str:
    return status.value if isinstance(status, Enum) else str(status)


def _get_table(entity: str) -> Dict[str, FrozenSet[str]]:
    try:
        return TRANSITION_TABLES[entity]
    except KeyError:
        raise KeyError(f"No transition table for entity '{entity}'") from None


def is_terminal(entity: str, status) -> bool:
    return not _get_table(entity).get(_value(status))


def can_transition(entity: str, from_status, to_status) -> bool:
    return _value(to_status) in _get_table(entity).get(_value(from_status), frozenset())


def allowed_transitions(entity: str, from_status) -> list:
    return sorted(_get_table(entity).get(_value(from_status), frozenset()))


def assert_transition(entity: str, from_status, to_status) -> None:
    """Raise InvalidStateTransitionError unless from -> to is in the table."""
    if not can_transition(entity, from_status, to_status):
        raise InvalidStateTransitionError(entity, _value(from_status), _value(to_status))
