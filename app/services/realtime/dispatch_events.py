"""Per-tenant realtime channel for dispatch board notifications.

Notifications are a cache-invalidation signal for connected boards; the
board itself is always re-read over REST, so a dropped message only delays
a refresh.
"""

from collections import defaultdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Set
from uuid import UUID

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ConfigDict, Field

from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DispatchEventType(str, Enum):
    LOAD_CREATED = "load.created"
    LOAD_UPDATED = "load.updated"
    LOAD_STATUS_CHANGED = "load.status.changed"
    LOAD_ASSIGNED = "load.assigned"
    LOAD_DISPATCHED = "load.dispatched"
    LOAD_DELIVERED = "load.delivered"
    LOAD_CANCELLED = "load.cancelled"
    CHECK_CALL_RECEIVED = "check-call.received"
    POSTING_BOOKED = "posting.booked"
    POSTING_CANCELLED = "posting.cancelled"
    BID_RECEIVED = "bid.received"
    TENDER_ACCEPTED = "tender.accepted"
    HEARTBEAT = "heartbeat"


class DispatchEvent(BaseModel):
    """Notification pushed to every board connected for a tenant."""

    model_config = ConfigDict(populate_by_name=True)

    type: str
    tenant_id: UUID = Field(exclude=True)
    load_id: Optional[UUID] = Field(None, alias="loadId")
    load_number: Optional[str] = Field(None, alias="loadNumber")
    status: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class DispatchEventHub:
    """Tracks WebSocket connections per tenant and fans events out to them."""

    def __init__(self):
        self._connections: Dict[UUID, Set[WebSocket]] = defaultdict(set)

    async def connect(self, tenant_id: UUID, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections[tenant_id].add(websocket)
        LOGGER.info(
            "Dispatch board connected",
            extra={"tenant_id": str(tenant_id), "connections": len(self._connections[tenant_id])},
        )

    def disconnect(self, tenant_id: UUID, websocket: WebSocket) -> None:
        connections = self._connections.get(tenant_id)
        if not connections:
            return
        connections.discard(websocket)
        if not connections:
            self._connections.pop(tenant_id, None)

    def connection_count(self, tenant_id: Optional[UUID] = None) -> int:
        if tenant_id is not None:
            return len(self._connections.get(tenant_id, ()))
        return sum(len(c) for c in self._connections.values())

    async def publish(self, event: DispatchEvent) -> int:
        """Send an event to the tenant's boards; returns how many received it."""
        delivered = 0
        payload = event.to_wire()
        for websocket in list(self._connections.get(event.tenant_id, ())):
            try:
                await websocket.send_json(payload)
                delivered += 1
            except (WebSocketDisconnect, RuntimeError, ConnectionError) as e:
                LOGGER.info(
                    f"Dropping dispatch board connection: {e}",
                    extra={"tenant_id": str(event.tenant_id)},
                )
                self.disconnect(event.tenant_id, websocket)
        if delivered:
            LOGGER.debug(f"Published {event.type} to {delivered} board(s)")
        return delivered


dispatch_hub = DispatchEventHub()
