"""Load-board postings: publishing loads to carriers, refresh and expiry."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ConflictError, InvalidStateTransitionError, NotFoundError, ValidationError
from app.core.lifecycle import OPEN_BID_STATUSES, LoadStatus, PostingStatus, assert_transition
from app.database.models import LoadPosting
from app.repositories.load_board_repository import BidRepository, PostingRepository, PostingViewRepository
from app.repositories.load_repository import LoadRepository
from app.schemas.load_board import PostingCreate, PostingMetrics, PostingOut, PostingUpdate
from app.services.base_service import BaseService, page_envelope
from app.services.realtime.dispatch_events import DispatchEventHub, DispatchEventType
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

CANCELLED_POSTING_REASON = "Posting was cancelled"


def lane_endpoints(stops) -> Dict[str, Optional[str]]:
    """Origin from the first pickup, destination from the last delivery."""
    ordered = sorted(stops, key=lambda s: s.sequence)
    pickups = [s for s in ordered if s.stop_type == "PICKUP"]
    deliveries = [s for s in ordered if s.stop_type == "DELIVERY"]
    origin = pickups[0] if pickups else None
    dest = deliveries[-1] if deliveries else None
    return {
        "origin_city": origin.city if origin else None,
        "origin_state": origin.state if origin else None,
        "dest_city": dest.city if dest else None,
        "dest_state": dest.state if dest else None,
    }


class PostingService(BaseService):
    """Service for load-board postings."""

    def __init__(self, session: AsyncSession, tenant_id: UUID, event_hub: Optional[DispatchEventHub] = None):
        super().__init__(session, tenant_id, event_hub)
        self.posting_repo = PostingRepository(session, tenant_id)
        self.view_repo = PostingViewRepository(session, tenant_id)
        self.bid_repo = BidRepository(session, tenant_id)
        self.load_repo = LoadRepository(session, tenant_id)
        self.expiry = timedelta(days=settings.load_board.posting_expiry_days)

    async def create_posting(self, payload: PostingCreate, user_id: Optional[str] = None) -> LoadPosting:
        return await self.execute("create_posting", payload=payload, user_id=user_id)

    async def search_postings(self, page: int = 1, limit: int = 20, **filters) -> Dict[str, Any]:
        return await self.execute("search_postings", page=page, limit=limit, filters=filters)

    async def get_posting(self, posting_id: UUID) -> LoadPosting:
        return await self.execute("get_posting", posting_id=posting_id)

    async def update_posting(self, posting_id: UUID, payload: PostingUpdate) -> LoadPosting:
        return await self.execute("update_posting", posting_id=posting_id, payload=payload)

    async def cancel_posting(self, posting_id: UUID, reason: Optional[str] = None) -> LoadPosting:
        return await self.execute("cancel_posting", posting_id=posting_id, reason=reason)

    async def expire_posting(self, posting_id: UUID) -> LoadPosting:
        return await self.execute("expire_posting", posting_id=posting_id)

    async def refresh_posting(self, posting_id: UUID) -> LoadPosting:
        return await self.execute("refresh_posting", posting_id=posting_id)

    async def track_view(self, posting_id: UUID, carrier_id: UUID) -> PostingMetrics:
        return await self.execute("track_view", posting_id=posting_id, carrier_id=carrier_id)

    async def get_metrics(self, posting_id: UUID) -> PostingMetrics:
        return await self.execute("get_metrics", posting_id=posting_id)

    async def expire_old_postings(self) -> int:
        return await self.execute("expire_old_postings")

    async def auto_refresh_postings(self) -> int:
        return await self.execute("auto_refresh_postings")

    async def _create_posting(self, payload: PostingCreate, user_id: Optional[str]) -> LoadPosting:
        load = await self.load_repo.get_detail(payload.load_id)
        if load is None:
            raise NotFoundError("Load", payload.load_id)
        if load.status != LoadStatus.UNASSIGNED.value:
            raise ValidationError(f"Only UNASSIGNED loads can be posted; load {load.load_number} is {load.status}")
        if await self.posting_repo.active_for_load(load.id):
            raise ConflictError(f"Load {load.load_number} already has an active posting")

        now = datetime.now(timezone.utc)
        data = payload.model_dump(exclude={"load_id", "carrier_ids", "expires_at", "refresh_interval_hours"})
        async with self.transaction():
            posting = await self.posting_repo.create(
                **data,
                **lane_endpoints(load.stops),
                load_id=load.id,
                status=PostingStatus.ACTIVE.value,
                equipment_type=load.equipment_type,
                pickup_date=load.pickup_date,
                delivery_date=load.delivery_date,
                expires_at=payload.expires_at or now + self.expiry,
                refresh_interval_hours=payload.refresh_interval_hours or settings.load_board.posting_refresh_hours,
                last_refreshed_at=now,
                carrier_ids=[str(c) for c in payload.carrier_ids],
                created_by=user_id,
            )
        LOGGER.info(
            f"Posted load {load.load_number}",
            extra={"tenant_id": str(self.tenant_id), "posting_id": str(posting.id)},
        )
        return posting

    async def _search_postings(self, page: int, limit: int, filters: Dict[str, Any]) -> Dict[str, Any]:
        filters.setdefault("status", PostingStatus.ACTIVE.value)
        postings, total = await self.posting_repo.search(page=page, limit=limit, **filters)
        return page_envelope([PostingOut.model_validate(p) for p in postings], total, page, limit)

    async def _get_posting(self, posting_id: UUID) -> LoadPosting:
        posting = await self.posting_repo.get_by_id(posting_id)
        if posting is None:
            raise NotFoundError("Posting", posting_id)
        return posting

    def _require_active(self, posting: LoadPosting, to_status: str) -> None:
        if posting.status != PostingStatus.ACTIVE.value:
            raise InvalidStateTransitionError(
                "posting", posting.status, to_status, f"Posting is {posting.status}, not ACTIVE"
            )

    async def _update_posting(self, posting_id: UUID, payload: PostingUpdate) -> LoadPosting:
        posting = await self._get_posting(posting_id)
        self._require_active(posting, PostingStatus.ACTIVE.value)
        changes = payload.model_dump(exclude_unset=True)
        if "carrier_ids" in changes and changes["carrier_ids"] is not None:
            changes["carrier_ids"] = [str(c) for c in changes["carrier_ids"]]
        low = changes.get("rate_min_cents", posting.rate_min_cents)
        high = changes.get("rate_max_cents", posting.rate_max_cents)
        if low is not None and high is not None and low > high:
            raise ValidationError("rateMinCents cannot exceed rateMaxCents")

        async with self.transaction():
            for key, value in changes.items():
                setattr(posting, key, value)
            await self.session.flush()
        return posting

    async def _cancel_posting(self, posting_id: UUID, reason: Optional[str]) -> LoadPosting:
        posting = await self._get_posting(posting_id)
        assert_transition("posting", posting.status, PostingStatus.CANCELLED.value)
        now = datetime.now(timezone.utc)

        async with self.transaction():
            changed = await self.posting_repo.transition(
                posting.id,
                PostingStatus.ACTIVE.value,
                PostingStatus.CANCELLED.value,
                cancelled_at=now,
                cancel_reason=reason,
            )
            if not changed:
                raise ConflictError("Posting is no longer ACTIVE; reload and retry")
            rejected = await self.bid_repo.reject_open_bids(
                posting.id, OPEN_BID_STATUSES, reason or CANCELLED_POSTING_REASON, now
            )
            self.emit(
                DispatchEventType.POSTING_CANCELLED.value,
                None,
                postingId=str(posting.id),
                loadId=str(posting.load_id),
                rejectedBids=rejected,
            )
        LOGGER.info(
            f"Cancelled posting {posting.id}; rejected {rejected} open bid(s)",
            extra={"tenant_id": str(self.tenant_id)},
        )
        return posting

    async def _expire_posting(self, posting_id: UUID) -> LoadPosting:
        posting = await self._get_posting(posting_id)
        assert_transition("posting", posting.status, PostingStatus.EXPIRED.value)
        async with self.transaction():
            if not await self.posting_repo.transition(posting.id, PostingStatus.ACTIVE.value, PostingStatus.EXPIRED.value):
                raise ConflictError("Posting is no longer ACTIVE; reload and retry")
        return posting

    async def _refresh_posting(self, posting_id: UUID) -> LoadPosting:
        posting = await self._get_posting(posting_id)
        self._require_active(posting, PostingStatus.ACTIVE.value)
        now = datetime.now(timezone.utc)
        async with self.transaction():
            changed = await self.posting_repo.update_where(
                LoadPosting.id == posting.id,
                LoadPosting.status == PostingStatus.ACTIVE.value,
                expires_at=now + self.expiry,
                last_refreshed_at=now,
            )
            if not changed:
                raise ConflictError("Posting is no longer ACTIVE; reload and retry")
        return posting

    async def _track_view(self, posting_id: UUID, carrier_id: UUID) -> PostingMetrics:
        posting = await self._get_posting(posting_id)
        now = datetime.now(timezone.utc)
        async with self.transaction():
            await self.posting_repo.update_where(
                LoadPosting.id == posting.id,
                view_count=LoadPosting.view_count + 1,
            )
            view = await self.view_repo.find(posting.id, carrier_id)
            if view is None:
                await self.view_repo.create(posting_id=posting.id, carrier_id=carrier_id, view_count=1, last_viewed_at=now)
            else:
                view.view_count += 1
                view.last_viewed_at = now
                await self.session.flush()
        return await self._get_metrics(posting_id)

    async def _get_metrics(self, posting_id: UUID) -> PostingMetrics:
        posting = await self._get_posting(posting_id)
        await self.session.refresh(posting, ["view_count"])
        return PostingMetrics(
            posting_id=posting.id,
            total_views=posting.view_count or 0,
            unique_viewers=await self.view_repo.unique_viewers(posting.id),
            total_bids=await self.bid_repo.count_for_posting(posting.id),
        )

    async def _expire_old_postings(self) -> int:
        async with self.transaction():
            expired = await self.posting_repo.expire_due(datetime.now(timezone.utc))
        if expired:
            LOGGER.info(f"Expired {expired} posting(s)", extra={"tenant_id": str(self.tenant_id)})
        return expired

    async def _auto_refresh_postings(self) -> int:
        now = datetime.now(timezone.utc)
        async with self.transaction():
            due = await self.posting_repo.due_for_refresh(now)
            for posting in due:
                posting.last_refreshed_at = now
                posting.expires_at = max(posting.expires_at, now + self.expiry)
            await self.session.flush()
        if due:
            LOGGER.info(f"Auto-refreshed {len(due)} posting(s)", extra={"tenant_id": str(self.tenant_id)})
        return len(due)
