"""
Module: gym_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the import surface for higher layers
    (gym_services, gym_modules).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import gym_kernel logging.  MUST NOT import gym_services or
    gym_modules.

Invariants enforced:
    - Decimal-only arithmetic: monetary amounts and rates use ``Decimal``.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from gym_engines import TaxSetting, calculate_tax_amounts
"""

from gym_engines.tax import (
    TaxBreakdownItem,
    TaxCalculationResult,
    TaxMode,
    TaxSetting,
    calculate_tax_amounts,
    create_initial_selection,
    filter_taxes_by_type,
    format_tax_breakdown,
    get_current_tax_mode,
    tax_mode_label,
    validate_tax_calculation,
    validate_tax_selection,
)
from gym_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "TaxBreakdownItem",
    "TaxCalculationResult",
    "TaxMode",
    "TaxSetting",
    "calculate_tax_amounts",
    "create_initial_selection",
    "filter_taxes_by_type",
    "format_tax_breakdown",
    "get_current_tax_mode",
    "tax_mode_label",
    "validate_tax_calculation",
    "validate_tax_selection",
    "compute_input_fingerprint",
    "traced_engine",
]
