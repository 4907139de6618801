"""Tests for the engine tracer (GYM_ENGINE_TRACE)."""

from decimal import Decimal

from gym_engines.tax import TaxSetting, calculate_tax_amounts
from gym_engines.tracer import compute_input_fingerprint, traced_engine
from tests.factories import make_catalog, selection


def _traces(records: list[dict]) -> list[dict]:
    return [r for r in records if r["message"] == "GYM_ENGINE_TRACE"]


class TestFingerprint:

    def test_deterministic(self):
        args = {"base_amount": Decimal("100"), "selection": {"b": True, "a": False}}
        assert compute_input_fingerprint(("base_amount", "selection"), args) == (
            compute_input_fingerprint(("base_amount", "selection"), dict(args))
        )

    def test_key_order_irrelevant(self):
        one = compute_input_fingerprint(("s",), {"s": {"a": True, "b": False}})
        two = compute_input_fingerprint(("s",), {"s": {"b": False, "a": True}})
        assert one == two

    def test_missing_field_recorded_as_null(self):
        fp = compute_input_fingerprint(("absent",), {})
        assert len(fp) == 16

    def test_different_inputs_differ(self):
        assert compute_input_fingerprint(("x",), {"x": 1}) != compute_input_fingerprint(
            ("x",), {"x": 2}
        )


class TestTracedEngine:

    def test_trace_emitted_for_calculation(self, captured_logs):
        calculate_tax_amounts(Decimal("1000"), selection("3"), make_catalog())

        traces = _traces(captured_logs())
        assert len(traces) == 1
        assert traces[0]["engine_name"] == "tax"
        assert traces[0]["engine_version"] == "1.0"
        assert traces[0]["function"] == "calculate_tax_amounts"
        assert len(traces[0]["input_fingerprint"]) == 16

    def test_positional_and_keyword_calls_share_fingerprint(self, captured_logs):
        taxes = make_catalog()
        calculate_tax_amounts(Decimal("1000"), selection("3"), taxes)
        calculate_tax_amounts(
            base_amount=Decimal("1000"), selection=selection("3"), all_taxes=taxes
        )

        first, second = _traces(captured_logs())
        assert first["input_fingerprint"] == second["input_fingerprint"]

    def test_return_value_unchanged(self):
        @traced_engine("sample", "0.1")
        def double(x):
            return x * 2

        assert double(21) == 42
        assert double.__name__ == "double"

    def test_catalog_changes_fingerprint(self, captured_logs):
        exclusive = [TaxSetting(id="a", name="Levy", rate=10, is_inclusive=False)]
        inclusive = [TaxSetting(id="a", name="Levy", rate=20, is_inclusive=True)]
        calculate_tax_amounts(Decimal("100"), {"a": True}, exclusive)
        calculate_tax_amounts(Decimal("100"), {"a": True}, inclusive)

        first, second = _traces(captured_logs())
        assert first["input_fingerprint"] != second["input_fingerprint"]
