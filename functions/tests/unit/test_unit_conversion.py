"""Unit tests for unit normalization and compatibility."""

import pytest

from models.service_catalog import ServiceUnit
from services.unit_conversion import normalize_unit, units_are_compatible


class TestNormalizeUnit:
    """Tests for normalize_unit."""

    @pytest.mark.parametrize("token,expected", [
        ("Sq Ft", "sq_ft"),
        ("sqft", "sqft"),
        ("square foot", "square_feet"),
        ("linear foot", "linear_feet"),
        ("cubic yard", "cubic_yards"),
        ("Zone", "zones"),
        ("spout", "spouts"),
        ("foot", "feet"),
        ("sq. ft.", "sq_ft"),
        ("", ""),
    ])
    def test_normalization(self, token, expected):
        assert normalize_unit(token) == expected

    def test_unknown_token_passes_through(self):
        assert normalize_unit("Pallets") == "pallets"


class TestUnitsAreCompatible:
    """Tests for the compatibility table."""

    @pytest.mark.parametrize("token,service_unit", [
        ("sq_ft", "sqft"),
        ("square_feet", "sqft"),
        ("", "sqft"),
        ("feet", "linear_feet"),
        ("ft", "linear_feet"),
        ("lin_ft", "linear_feet"),
        ("yards", "cubic_yards"),
        ("cu_yd", "cubic_yards"),
        ("pieces", "each"),
        ("", "each"),
        ("zones", "each"),
        ("spouts", "each"),
        ("zones", "zone"),
        ("sections", "section"),
        ("setup", "setup"),
    ])
    def test_compatible(self, token, service_unit):
        assert units_are_compatible(token, service_unit) is True

    @pytest.mark.parametrize("token,service_unit", [
        ("sqft", "linear_feet"),
        ("", "linear_feet"),
        ("feet", "sqft"),
        ("yards", "sqft"),
        ("", "zone"),
        ("zones", "setup"),
    ])
    def test_incompatible(self, token, service_unit):
        assert units_are_compatible(token, service_unit) is False

    def test_identity_always_compatible(self):
        for unit in ServiceUnit:
            assert units_are_compatible(unit.value, unit.value)

    def test_accepts_enum_service_unit(self):
        assert units_are_compatible("sq_ft", ServiceUnit.SQFT)
