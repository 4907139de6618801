"""
TaxConfig Validation Tests.

Invalid tax configurations are rejected with ValueError at construction.
"""

from decimal import Decimal

import pytest

from gym_modules.tax.config import DEFAULT_TAX_TYPES, TaxConfig


class TestTaxConfigDefaults:

    def test_defaults(self):
        config = TaxConfig.with_defaults()
        assert config.currency_code == "INR"
        assert config.currency_symbol == "₹"
        assert config.quantum == Decimal("0.01")
        assert config.valid_tax_types == DEFAULT_TAX_TYPES

    def test_from_dict_coerces_strings(self):
        config = TaxConfig.from_dict({
            "reconciliation_tolerance": "0.05",
            "max_rate": "50",
            "valid_tax_types": ["vat", "other"],
        })
        assert config.reconciliation_tolerance == Decimal("0.05")
        assert config.max_rate == Decimal("50")
        assert config.valid_tax_types == ("vat", "other")

    def test_zero_decimal_places_quantum(self):
        assert TaxConfig(currency_code="JPY", decimal_places=0).quantum == Decimal("1")


class TestTaxConfigViolations:

    @pytest.mark.parametrize("code", ["", "RUPEE", "IN"])
    def test_currency_code_must_be_three_letters(self, code):
        with pytest.raises(ValueError, match="currency_code"):
            TaxConfig(currency_code=code)

    def test_negative_decimal_places(self):
        with pytest.raises(ValueError, match="decimal_places cannot be negative"):
            TaxConfig(decimal_places=-1)

    def test_negative_tolerance(self):
        with pytest.raises(ValueError, match="reconciliation_tolerance"):
            TaxConfig(reconciliation_tolerance=Decimal("-0.01"))

    @pytest.mark.parametrize("max_rate", ["0", "-5"])
    def test_max_rate_must_be_positive(self, max_rate):
        with pytest.raises(ValueError, match="max_rate must be positive"):
            TaxConfig(max_rate=max_rate)

    def test_empty_tax_types(self):
        with pytest.raises(ValueError, match="valid_tax_types cannot be empty"):
            TaxConfig(valid_tax_types=())

    def test_duplicate_tax_types(self, captured_logs):
        with pytest.raises(ValueError, match="duplicates"):
            TaxConfig(valid_tax_types=("gst", "vat", "gst"))

        warnings = [r for r in captured_logs() if r["message"] == "tax_config_duplicate_tax_types"]
        assert warnings[0]["duplicate_tax_types"] == ["gst"]

    def test_unknown_key_rejected(self):
        with pytest.raises(TypeError):
            TaxConfig.from_dict({"currency": "INR"})
