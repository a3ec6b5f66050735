"""Ranks the tenant's active carriers against a load-board posting."""

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.database.models import Carrier, LoadPosting
from app.repositories.carrier_repository import CarrierRepository
from app.repositories.load_board_repository import BidRepository, PostingRepository
from app.repositories.load_repository import LoadRepository
from app.schemas.load_board import CarrierMatch
from app.services.base_service import BaseService
from app.services.carriers.carrier_service import insurance_shortfalls
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

EQUIPMENT_POINTS = 30
LANE_POINTS_PER_END = 10
ON_TIME_POINTS = 25
CLAIMS_POINTS = 15
# Claims rate (percent of delivered loads) at which the claims component reaches zero
CLAIMS_RATE_CEILING = 5.0
INSURANCE_POINTS = 10


@dataclass
class MatchFactors:
    equipment_match: bool
    origin_match: bool
    dest_match: bool
    on_time_ratio: float
    claims_rate: float
    insurance_valid: bool


def score_match(factors: MatchFactors) -> int:
    """Weighted 0..100 fit score of a carrier for a posting."""
    score = 0.0
    if factors.equipment_match:
        score += EQUIPMENT_POINTS
    if factors.origin_match:
        score += LANE_POINTS_PER_END
    if factors.dest_match:
        score += LANE_POINTS_PER_END
    score += ON_TIME_POINTS * min(max(factors.on_time_ratio, 0.0), 1.0)
    score += CLAIMS_POINTS * max(0.0, 1.0 - factors.claims_rate / CLAIMS_RATE_CEILING)
    if factors.insurance_valid:
        score += INSURANCE_POINTS
    return max(0, min(100, round(score)))


def _upper_set(values) -> set:
    return {str(v).upper() for v in (values or [])}


def match_factors(
    carrier: Carrier, posting: LoadPosting, performance: Optional[Dict[str, int]], today: date
) -> MatchFactors:
    performance = performance or {"delivered": 0, "on_time": 0}
    delivered = performance["delivered"]
    states = _upper_set(carrier.service_states)
    equipment = _upper_set(carrier.equipment_types)
    return MatchFactors(
        equipment_match=bool(posting.equipment_type) and posting.equipment_type.upper() in equipment,
        origin_match=bool(posting.origin_state) and posting.origin_state.upper() in states,
        dest_match=bool(posting.dest_state) and posting.dest_state.upper() in states,
        on_time_ratio=performance["on_time"] / delivered if delivered else 0.0,
        claims_rate=(carrier.claims_count or 0) * 100.0 / delivered if delivered else 0.0,
        insurance_valid=not insurance_shortfalls(carrier.insurances, today),
    )


class CarrierMatchingService(BaseService):
    """Computes carrier matches on demand; nothing is persisted."""

    def __init__(self, session: AsyncSession, tenant_id: UUID):
        super().__init__(session, tenant_id)
        self.posting_repo = PostingRepository(session, tenant_id)
        self.carrier_repo = CarrierRepository(session, tenant_id)
        self.load_repo = LoadRepository(session, tenant_id)
        self.bid_repo = BidRepository(session, tenant_id)

    async def find_matches(self, posting_id: UUID, limit: int = 20, min_score: int = 0) -> List[CarrierMatch]:
        return await self.execute("find_matches", posting_id=posting_id, limit=limit, min_score=min_score)

    async def _find_matches(self, posting_id: UUID, limit: int, min_score: int) -> List[CarrierMatch]:
        posting = await self.posting_repo.get_by_id(posting_id)
        if posting is None:
            raise NotFoundError("Posting", posting_id)

        carriers = await self.carrier_repo.active_with_insurance()
        performance = await self.load_repo.carrier_performance(c.id for c in carriers)
        bidders = {bid.carrier_id for bid in await self.bid_repo.for_posting(posting_id)}
        today = date.today()

        matches = []
        for carrier in carriers:
            factors = match_factors(carrier, posting, performance.get(carrier.id), today)
            score = score_match(factors)
            if score < min_score:
                continue
            matches.append(
                CarrierMatch(
                    carrier_id=carrier.id,
                    carrier_name=carrier.name,
                    mc_number=carrier.mc_number,
                    tier=carrier.tier,
                    match_score=score,
                    on_time_percentage=round(factors.on_time_ratio * 100, 1),
                    claims_rate=round(factors.claims_rate, 2),
                    insurance_status="valid" if factors.insurance_valid else "expired",
                    equipment_match=factors.equipment_match,
                    lane_match=factors.origin_match or factors.dest_match,
                    has_bid=carrier.id in bidders,
                )
            )
        matches.sort(key=lambda m: (-m.match_score, m.carrier_name))
        LOGGER.debug(f"Matched {len(matches)} carriers for posting {posting_id}")
        return matches[:limit]
