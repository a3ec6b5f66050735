"""Load board writes against a real database session.

Runs the services on an in-memory SQLite database so the conditional
UPDATEs behind bid acceptance and cancellation are exercised end to end.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.pool import StaticPool

from app.core.database import Base
from app.core.exceptions import ConflictError, ValidationError
from app.database.models import Carrier, Load, LoadBid, LoadPosting, LoadTender, TenderRecipient
from app.schemas.load_board import BidCreate
from app.services.load_board.bid_service import ANOTHER_BID_ACCEPTED, BidService
from app.services.load_board.closeout import LOAD_CANCELLED_REASON
from app.services.load_board.posting_service import PostingService
from app.services.operations.load_service import LoadService


@compiles(JSONB, "sqlite")
def _jsonb_as_json(element, compiler, **kw):
    return "JSON"


@pytest_asyncio.fixture
async def db_session():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def board(db_session, tenant_id):
    """One UNASSIGNED load posted to the board with three carrier bids."""
    now = datetime.now(timezone.utc)
    load = Load(
        tenant_id=tenant_id,
        load_number="LD2024060100",
        tracking_code=f"TRK{uuid4().hex[:10].upper()}",
        customer_rate_cents=300_000,
    )
    carriers = [Carrier(tenant_id=tenant_id, name=f"Carrier {n}", status="ACTIVE") for n in range(1, 4)]
    db_session.add_all([load, *carriers])
    await db_session.flush()

    posting = LoadPosting(tenant_id=tenant_id, load_id=load.id, status="ACTIVE", expires_at=now + timedelta(days=1))
    db_session.add(posting)
    await db_session.flush()

    def bid(carrier, amount, status):
        return LoadBid(
            tenant_id=tenant_id,
            posting_id=posting.id,
            load_id=load.id,
            carrier_id=carrier.id,
            bid_amount_cents=amount,
            status=status,
            expires_at=now + timedelta(hours=24),
        )

    winner = bid(carriers[0], 240_000, "PENDING")
    refused = bid(carriers[1], 260_000, "REJECTED")
    other = bid(carriers[2], 250_000, "PENDING")
    db_session.add_all([winner, refused, other])
    await db_session.commit()
    return SimpleNamespace(load=load, carriers=carriers, posting=posting, winner=winner, refused=refused, other=other)


async def status_of(session, model, row_id):
    return await session.scalar(select(model.status).where(model.id == row_id))


@pytest.mark.asyncio
async def test_accepting_bid_books_posting_and_rejects_open_bids(db_session, tenant_id, event_hub, board):
    service = BidService(db_session, tenant_id, event_hub)

    await service.accept_bid(board.winner.id, user_id="user-1")

    assert await status_of(db_session, LoadPosting, board.posting.id) == "BOOKED"
    assert await status_of(db_session, LoadBid, board.winner.id) == "ACCEPTED"
    assert await status_of(db_session, LoadBid, board.refused.id) == "REJECTED"
    assert await status_of(db_session, LoadBid, board.other.id) == "REJECTED"
    assert await status_of(db_session, Load, board.load.id) == "TENDERED"

    reason = await db_session.scalar(select(LoadBid.rejection_reason).where(LoadBid.id == board.other.id))
    assert reason == ANOTHER_BID_ACCEPTED
    untouched = await db_session.scalar(select(LoadBid.rejected_at).where(LoadBid.id == board.refused.id))
    assert untouched is None
    booked_carrier = await db_session.scalar(
        select(LoadPosting.booked_carrier_id).where(LoadPosting.id == board.posting.id)
    )
    assert booked_carrier == board.carriers[0].id


@pytest.mark.asyncio
async def test_second_accept_on_booked_posting_fails(db_session, tenant_id, event_hub, board):
    service = BidService(db_session, tenant_id, event_hub)
    await service.accept_bid(board.winner.id)

    with pytest.raises(ConflictError):
        await service.accept_bid(board.other.id)

    assert await status_of(db_session, LoadBid, board.other.id) == "REJECTED"


@pytest.mark.asyncio
async def test_cancelling_posting_rejects_pending_and_countered_bids(db_session, tenant_id, event_hub, board):
    board.other.status = "COUNTERED"
    await db_session.commit()
    service = PostingService(db_session, tenant_id, event_hub)

    await service.cancel_posting(board.posting.id, reason="Shipper moved the date")

    assert await status_of(db_session, LoadPosting, board.posting.id) == "CANCELLED"
    assert await status_of(db_session, LoadBid, board.winner.id) == "REJECTED"
    assert await status_of(db_session, LoadBid, board.other.id) == "REJECTED"
    assert await status_of(db_session, Load, board.load.id) == "UNASSIGNED"


@pytest.mark.asyncio
async def test_cancelling_load_closes_posting_and_tender(db_session, tenant_id, event_hub, board):
    tender = LoadTender(
        tenant_id=tenant_id,
        load_id=board.load.id,
        tender_type="WATERFALL",
        status="ACTIVE",
        tender_rate_cents=230_000,
        timeout_minutes=30,
        recipients=[
            TenderRecipient(tenant_id=tenant_id, carrier_id=board.carriers[0].id, position=1, status="OFFERED"),
            TenderRecipient(tenant_id=tenant_id, carrier_id=board.carriers[1].id, position=2, status="PENDING"),
        ],
    )
    db_session.add(tender)
    await db_session.commit()

    await LoadService(db_session, tenant_id, event_hub).cancel_load(board.load.id, reason="Freight not ready")

    assert await status_of(db_session, Load, board.load.id) == "CANCELLED"
    assert await status_of(db_session, LoadPosting, board.posting.id) == "CANCELLED"
    assert await status_of(db_session, LoadBid, board.winner.id) == "REJECTED"
    assert await status_of(db_session, LoadTender, tender.id) == "CANCELLED"
    recipient_statuses = await db_session.scalars(
        select(TenderRecipient.status).where(TenderRecipient.tender_id == tender.id)
    )
    assert set(recipient_statuses) == {"SKIPPED"}
    reason = await db_session.scalar(select(LoadBid.rejection_reason).where(LoadBid.id == board.winner.id))
    assert reason == LOAD_CANCELLED_REASON

    with pytest.raises(ValidationError):
        await BidService(db_session, tenant_id, event_hub).create_bid(
            BidCreate(posting_id=board.posting.id, carrier_id=board.carriers[2].id, bid_amount_cents=200_000)
        )
