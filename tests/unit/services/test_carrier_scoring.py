"""Tests for carrier match scoring, tier recommendation and insurance compliance."""

from datetime import date, datetime, timedelta
from types import SimpleNamespace

import pytest

from app.services.carriers.carrier_service import (
    insurance_shortfalls,
    months_between,
    recommend_tier,
)
from app.services.carriers.matching_service import MatchFactors, match_factors, score_match

TODAY = date(2024, 6, 1)


def policy(insurance_type, dollars, expires=TODAY + timedelta(days=90)):
    return SimpleNamespace(
        insurance_type=insurance_type, coverage_amount_cents=dollars * 100, expiration_date=expires
    )


def compliant_policies():
    return [
        policy("AUTO_LIABILITY", 1_000_000),
        policy("CARGO", 100_000),
        policy("GENERAL_LIABILITY", 500_000),
    ]


class TestScoreMatch:
    def test_perfect_carrier_scores_100(self):
        factors = MatchFactors(True, True, True, on_time_ratio=1.0, claims_rate=0.0, insurance_valid=True)
        assert score_match(factors) == 100

    def test_worst_carrier_scores_zero(self):
        factors = MatchFactors(False, False, False, on_time_ratio=0.0, claims_rate=10.0, insurance_valid=False)
        assert score_match(factors) == 0

    def test_partial_claims_rate_scales_claims_points(self):
        factors = MatchFactors(False, False, False, on_time_ratio=0.0, claims_rate=2.5, insurance_valid=False)
        assert score_match(factors) == 8  # 15 * 0.5 rounded

    def test_on_time_ratio_is_clamped(self):
        factors = MatchFactors(False, False, False, on_time_ratio=1.7, claims_rate=5.0, insurance_valid=False)
        assert score_match(factors) == 25


def test_match_factors_from_carrier_and_posting():
    carrier = SimpleNamespace(
        equipment_types=["dry_van", "REEFER"],
        service_states=["tx", "OK"],
        claims_count=0,
        insurances=compliant_policies(),
    )
    posting = SimpleNamespace(equipment_type="DRY_VAN", origin_state="TX", dest_state="CA")

    factors = match_factors(carrier, posting, {"delivered": 10, "on_time": 8}, TODAY)

    assert factors.equipment_match is True
    assert factors.origin_match is True
    assert factors.dest_match is False
    assert factors.on_time_ratio == pytest.approx(0.8)
    assert factors.claims_rate == 0.0
    assert factors.insurance_valid is True
    assert score_match(factors) == 85


def test_match_factors_without_history():
    carrier = SimpleNamespace(equipment_types=[], service_states=None, claims_count=None, insurances=[])
    posting = SimpleNamespace(equipment_type=None, origin_state="TX", dest_state="CA")

    factors = match_factors(carrier, posting, None, TODAY)

    assert factors.on_time_ratio == 0.0
    assert factors.claims_rate == 0.0
    assert factors.equipment_match is False
    assert factors.insurance_valid is False


class TestInsuranceShortfalls:
    def test_compliant_carrier_has_no_shortfalls(self):
        assert insurance_shortfalls(compliant_policies(), TODAY) == []

    def test_expired_policy_counts_as_missing(self):
        policies = compliant_policies()
        policies[1] = policy("CARGO", 100_000, expires=TODAY - timedelta(days=1))

        assert insurance_shortfalls(policies, TODAY) == ["CARGO insurance missing or expired"]

    def test_policy_expiring_today_is_still_valid(self):
        policies = compliant_policies()
        policies[0] = policy("AUTO_LIABILITY", 1_000_000, expires=TODAY)

        assert insurance_shortfalls(policies, TODAY) == []

    def test_low_coverage_is_reported(self):
        policies = compliant_policies()
        policies[2] = policy("GENERAL_LIABILITY", 250_000)

        assert insurance_shortfalls(policies, TODAY) == ["GENERAL_LIABILITY coverage below $500,000"]

    def test_best_unexpired_policy_wins(self):
        policies = compliant_policies() + [policy("CARGO", 50_000)]

        assert insurance_shortfalls(policies, TODAY) == []


class TestRecommendTier:
    @pytest.mark.parametrize(
        "loads,on_time,claims,months,expected",
        [
            (150, 0.97, 0.005, 24, "PLATINUM"),
            (150, 0.92, 0.005, 24, "GOLD"),
            (60, 0.96, 0.0, 8, "GOLD"),
            (30, 0.86, 0.02, 4, "SILVER"),
            (12, 0.50, 0.20, 0, "BRONZE"),
            (5, 1.0, 0.0, 36, "UNQUALIFIED"),
        ],
    )
    def test_tiers(self, loads, on_time, claims, months, expected):
        assert recommend_tier(loads, on_time, claims, months) == expected


def test_months_between():
    assert months_between(None, datetime(2024, 6, 1)) == 0
    assert months_between(datetime(2023, 11, 20), datetime(2024, 6, 1)) == 7
    assert months_between(datetime(2024, 7, 1), datetime(2024, 6, 1)) == 0
