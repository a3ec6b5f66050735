"""Tests for commission calculation per plan type."""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.core.exceptions import ValidationError
from app.schemas.commissions import CommissionTier
from app.services.commissions.commission_service import compute_commission, plan_tiers, tier_rate

TIERS = [
    CommissionTier(min_margin_percent=Decimal("10"), rate=Decimal("3")),
    CommissionTier(min_margin_percent=Decimal("30"), rate=Decimal("8")),
    CommissionTier(min_margin_percent=Decimal("20"), rate=Decimal("5")),
]


def test_flat_fee_ignores_margin():
    quote = compute_commission("FLAT_FEE", 200_000, 199_000, flat_amount_cents=5_000)

    assert quote.commission_amount_cents == 5_000
    assert quote.rate_applied is None


def test_percent_of_revenue():
    quote = compute_commission("PERCENT_REVENUE", 200_000, 160_000, percent_rate=Decimal("5"))

    assert quote.basis_amount_cents == 200_000
    assert quote.commission_amount_cents == 10_000


def test_percent_of_margin():
    quote = compute_commission("PERCENT_MARGIN", 200_000, 160_000, percent_rate=Decimal("10"))

    assert quote.basis_amount_cents == 40_000
    assert quote.commission_amount_cents == 4_000


def test_negative_margin_pays_nothing():
    quote = compute_commission("PERCENT_MARGIN", 100_000, 120_000, percent_rate=Decimal("10"))

    assert quote.basis_amount_cents == -20_000
    assert quote.commission_amount_cents == 0


def test_tiered_uses_highest_reached_tier():
    # 25% margin reaches the 10% and 20% tiers
    quote = compute_commission("TIERED", 200_000, 150_000, tiers=TIERS)

    assert quote.rate_applied == Decimal("5")
    assert quote.commission_amount_cents == 2_500


def test_tiered_below_every_tier_pays_nothing():
    quote = compute_commission("TIERED", 200_000, 190_000, tiers=TIERS)

    assert quote.rate_applied == Decimal("0")
    assert quote.commission_amount_cents == 0


def test_override_rate_replaces_plan_rate():
    quote = compute_commission("TIERED", 200_000, 150_000, tiers=TIERS, override_rate=Decimal("10"))

    assert quote.commission_amount_cents == 5_000


def test_amounts_round_half_up():
    quote = compute_commission("PERCENT_REVENUE", 333, 0, percent_rate=Decimal("2.5"))
    assert quote.commission_amount_cents == 8

    quote = compute_commission("PERCENT_REVENUE", 100, 0, percent_rate=Decimal("2.5"))
    assert quote.commission_amount_cents == 3


def test_unknown_plan_type_is_rejected():
    with pytest.raises(ValidationError):
        compute_commission("PER_MILE", 100_000, 50_000)


def test_tier_rate_at_exact_threshold():
    assert tier_rate(TIERS, Decimal("30")) == Decimal("8")
    assert tier_rate(TIERS, Decimal("9.99")) == Decimal("0")


def test_plan_tiers_parse_stored_json():
    plan = SimpleNamespace(tiers=[{"min_margin_percent": "10", "rate": "5"}])

    assert plan_tiers(plan) == [CommissionTier(min_margin_percent=Decimal("10"), rate=Decimal("5"))]
    assert plan_tiers(SimpleNamespace(tiers=None)) == []
