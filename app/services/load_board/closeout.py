"""Closing a load's open load-board activity once the load is taken or dead.

These run inside the caller's unit of work, next to the load's own status
move, so a load never ends up TENDERED or CANCELLED while a posting on it
still accepts bids or a tender on it still waits for answers.
"""

from datetime import datetime
from uuid import UUID

from app.core.exceptions import ConflictError
from app.core.lifecycle import (
    OPEN_BID_STATUSES,
    PostingStatus,
    TenderRecipientStatus,
    TenderStatus,
)
from app.database.models import TenderRecipient
from app.repositories.load_board_repository import (
    BidRepository,
    PostingRepository,
    TenderRecipientRepository,
    TenderRepository,
)

OPEN_RECIPIENT_STATUSES = (TenderRecipientStatus.PENDING.value, TenderRecipientStatus.OFFERED.value)
LOAD_CANCELLED_REASON = "Load was cancelled"
LOAD_ASSIGNED_REASON = "Load was assigned to another carrier"


async def close_active_postings(
    posting_repo: PostingRepository,
    bid_repo: BidRepository,
    load_id: UUID,
    to_status: str,
    bid_reason: str,
    now: datetime,
    **values,
) -> int:
    """Move every ACTIVE posting of a load to ``to_status`` (BOOKED or
    CANCELLED) and reject the open bids under each.

    Returns:
        Number of postings closed
    """
    postings = await posting_repo.active_for_load(load_id)
    for posting in postings:
        if not await posting_repo.transition(posting.id, PostingStatus.ACTIVE.value, to_status, **values):
            raise ConflictError("A posting on this load changed concurrently; reload and retry")
        await bid_repo.reject_open_bids(posting.id, OPEN_BID_STATUSES, bid_reason, now)
    return len(postings)


async def cancel_active_tenders(
    tender_repo: TenderRepository,
    recipient_repo: TenderRecipientRepository,
    load_id: UUID,
    now: datetime,
) -> int:
    """Cancel every ACTIVE tender of a load; its open offers become SKIPPED."""
    tenders = await tender_repo.active_for_load(load_id)
    for tender in tenders:
        if not await tender_repo.transition(
            tender.id, TenderStatus.ACTIVE.value, TenderStatus.CANCELLED.value, cancelled_at=now
        ):
            raise ConflictError("A tender on this load changed concurrently; reload and retry")
        await recipient_repo.update_where(
            TenderRecipient.tender_id == tender.id,
            TenderRecipient.status.in_(OPEN_RECIPIENT_STATUSES),
            status=TenderRecipientStatus.SKIPPED.value,
        )
    return len(tenders)
