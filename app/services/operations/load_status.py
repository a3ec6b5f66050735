"""Guarded load status writes shared by the load, bid and tender services."""

from datetime import datetime, timezone
from typing import Optional

from app.core.exceptions import ConflictError
from app.core.lifecycle import LoadStatus, assert_transition
from app.database.models import Load
from app.repositories.load_repository import LoadRepository, LoadStatusHistoryRepository

# Status -> timestamp column stamped when a load enters it
STATUS_TIMESTAMPS = {
    LoadStatus.DISPATCHED.value: "dispatched_at",
    LoadStatus.DELIVERED.value: "delivered_at",
    LoadStatus.COMPLETED.value: "completed_at",
    LoadStatus.CANCELLED.value: "cancelled_at",
}


class LoadStatusWriter:
    """Moves a load through its lifecycle.

    Every move is checked against the load transition table, written with
    ``WHERE status = <observed>`` and recorded in the status history. When the
    conditional write matches no row another request changed the load first
    and the caller's unit of work must roll back.
    """

    def __init__(self, load_repo: LoadRepository, history_repo: LoadStatusHistoryRepository):
        self.load_repo = load_repo
        self.history_repo = history_repo

    async def move(
        self,
        load: Load,
        to_status: str,
        changed_by: Optional[str] = None,
        notes: Optional[str] = None,
        **values,
    ) -> str:
        """Transition ``load`` to ``to_status``; returns the previous status."""
        to_status = LoadStatus(to_status).value
        from_status = load.status
        assert_transition("load", from_status, to_status)

        stamp = STATUS_TIMESTAMPS.get(to_status)
        if stamp:
            values.setdefault(stamp, datetime.now(timezone.utc))

        changed = await self.load_repo.transition(load.id, from_status, to_status, **values)
        if not changed:
            raise ConflictError(
                f"Load {load.load_number} is no longer {from_status}; reload and retry"
            )

        await self.history_repo.create(
            load_id=load.id,
            from_status=from_status,
            to_status=to_status,
            notes=notes,
            changed_by=changed_by,
        )
        return from_status
