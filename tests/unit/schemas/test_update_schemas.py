"""Tests for partial-update payloads on loads and orders."""

import pytest
from pydantic import ValidationError

from app.schemas.loads import LoadUpdate, OrderUpdate


class TestLoadUpdate:
    def test_omitted_amounts_stay_unset(self):
        update = LoadUpdate.model_validate({"commodity": "Lumber"})

        assert update.model_dump(exclude_unset=True) == {"commodity": "Lumber"}

    @pytest.mark.parametrize("field", ["customerRateCents", "fuelAdvanceCents", "accessorialChargesCents"])
    def test_explicit_null_amount_is_rejected(self, field):
        with pytest.raises(ValidationError, match="cannot be null"):
            LoadUpdate.model_validate({field: None})

    def test_zero_clears_an_amount(self):
        update = LoadUpdate.model_validate({"customerRateCents": 0})

        assert update.model_dump(exclude_unset=True) == {"customer_rate_cents": 0}

    def test_nullable_fields_accept_null(self):
        update = LoadUpdate.model_validate({"carrierRateCents": None, "driverName": None})

        assert update.model_dump(exclude_unset=True) == {"carrier_rate_cents": None, "driver_name": None}


class TestOrderUpdate:
    @pytest.mark.parametrize("field", ["customerRateCents", "fuelSurchargeCents", "accessorialChargesCents"])
    def test_explicit_null_amount_is_rejected(self, field):
        with pytest.raises(ValidationError):
            OrderUpdate.model_validate({field: None})

    def test_amount_update_passes(self):
        update = OrderUpdate.model_validate({"fuelSurchargeCents": 12_500})

        assert update.fuel_surcharge_cents == 12_500
