"""
Tax Engine - Select and calculate inclusive/exclusive taxes for billing.

Pure functions with no I/O - the tax catalog is provided as a parameter.

A bill may carry several taxes, but they must all be of one regime:
either every selected tax is *inclusive* (already folded into the quoted
amount) or every selected tax is *exclusive* (added on top).  The
functions here filter the catalog for the active regime, decide whether a
new selection is legal, and compute the tax breakdown.

Usage:
    from decimal import Decimal
    from gym_engines.tax import TaxSetting, calculate_tax_amounts

    taxes = [
        TaxSetting(id="cgst", name="CGST", rate=Decimal("9"), is_inclusive=False),
        TaxSetting(id="sgst", name="SGST", rate=Decimal("9"), is_inclusive=False),
    ]
    result = calculate_tax_amounts(
        base_amount=Decimal("1000"),
        selection={"cgst": True, "sgst": True},
        all_taxes=taxes,
    )
    print(result.tax_amount)    # 180
    print(result.total_amount)  # 1180

Rounding:
    Amounts are kept at full Decimal precision inside the engine so that
    several taxes never compound rounding error.  Rounding to currency
    subunits happens only at presentation (``TaxCalculationResult.rounded``,
    ``format_tax_breakdown``) and when persisting.

Preconditions:
    ``base_amount`` must be finite and non-negative.  The engine does not
    clamp or validate it; the billing layer owns that contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

from gym_engines.tracer import traced_engine
from gym_kernel.logging_config import get_logger

logger = get_logger("engines.tax")

HUNDRED = Decimal("100")
DEFAULT_TOLERANCE = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Coerce int/str/float/Decimal to Decimal without binary float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class TaxMode(str, Enum):
    """Tax regime currently enforced by a selection."""

    INCLUSIVE = "inclusive"  # Tax included in the quoted amount
    EXCLUSIVE = "exclusive"  # Tax added on top of the quoted amount
    UNSET = "unset"  # Nothing selected

    @classmethod
    def for_setting(cls, tax: TaxSetting) -> TaxMode:
        return cls.INCLUSIVE if tax.is_inclusive else cls.EXCLUSIVE


@dataclass(frozen=True)
class TaxSetting:
    """
    A configured tax rule from the master tax settings.

    ``rate`` is a percentage (18 for 18%).  ``is_inclusive`` never changes
    for the lifetime of a setting; it is the basis of mutual exclusivity.
    """

    id: str
    name: str
    rate: Decimal
    is_inclusive: bool
    is_active: bool = True
    tax_type: str = "gst"
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(self, "rate", to_decimal(self.rate))
        if self.rate < 0:
            raise ValueError("Tax rate cannot be negative")

    @property
    def mode(self) -> TaxMode:
        return TaxMode.for_setting(self)


@dataclass(frozen=True)
class TaxBreakdownItem:
    """Calculated amount for a single selected tax."""

    tax_id: str
    name: str
    rate: Decimal
    amount: Decimal
    mode: TaxMode


@dataclass(frozen=True)
class TaxCalculationResult:
    """
    Complete tax calculation result.

    Always recomputed from scratch from (base amount, selection, catalog);
    never patched incrementally.
    """

    base_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    tax_breakdown: tuple[TaxBreakdownItem, ...] = field(default_factory=tuple)
    mode: TaxMode = TaxMode.UNSET

    @property
    def tax_count(self) -> int:
        return len(self.tax_breakdown)

    @property
    def net_amount(self) -> Decimal:
        """Amount before tax (the extracted principal for inclusive taxes)."""
        return self.total_amount - self.tax_amount

    def rounded(self, decimal_places: int = 2) -> TaxCalculationResult:
        """Copy with every monetary field rounded half-up for presentation.

        Each field is rounded independently, so the sum of rounded breakdown
        amounts may differ from the rounded ``tax_amount`` by at most half a
        subunit per tax.
        """
        quantum = Decimal(10) ** -decimal_places

        def q(value: Decimal) -> Decimal:
            return value.quantize(quantum, rounding=ROUND_HALF_UP)

        return replace(
            self,
            base_amount=q(self.base_amount),
            tax_amount=q(self.tax_amount),
            total_amount=q(self.total_amount),
            tax_breakdown=tuple(
                replace(item, amount=q(item.amount)) for item in self.tax_breakdown
            ),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "base_amount": str(self.base_amount),
            "tax_amount": str(self.tax_amount),
            "total_amount": str(self.total_amount),
            "mode": self.mode.value,
            "tax_breakdown": [
                {
                    "tax_id": item.tax_id,
                    "name": item.name,
                    "rate": str(item.rate),
                    "amount": str(item.amount),
                    "mode": item.mode.value,
                }
                for item in self.tax_breakdown
            ],
        }


# ---------------------------------------------------------------------------
# Catalog helpers
# ---------------------------------------------------------------------------


def _selected_ids(selection: Mapping[str, bool]) -> set[str]:
    return {str(tax_id) for tax_id, selected in selection.items() if selected}


def _selected_active(
    selection: Mapping[str, bool],
    all_taxes: Sequence[TaxSetting],
) -> list[TaxSetting]:
    """Selected taxes present and active in the catalog, in catalog order."""
    ids = _selected_ids(selection)
    return [tax for tax in all_taxes if tax.is_active and tax.id in ids]


def create_initial_selection(all_taxes: Iterable[TaxSetting]) -> dict[str, bool]:
    """Selection map with every known tax unselected."""
    return {tax.id: False for tax in all_taxes}


def filter_taxes_by_type(
    all_taxes: Sequence[TaxSetting],
    mode: TaxMode | None,
) -> list[TaxSetting]:
    """
    Taxes eligible for selection under the given mode.

    Preserves catalog order and never returns inactive taxes.  With no
    mode (``UNSET`` or ``None``) every active tax is eligible.
    """
    if mode is None or mode == TaxMode.UNSET:
        return [tax for tax in all_taxes if tax.is_active]
    return [tax for tax in all_taxes if tax.is_active and tax.mode == mode]


def get_current_tax_mode(
    selection: Mapping[str, bool],
    all_taxes: Sequence[TaxSetting],
) -> TaxMode:
    """Mode of the currently selected taxes; ``UNSET`` when none."""
    selected = _selected_active(selection, all_taxes)
    if not selected:
        return TaxMode.UNSET
    return selected[0].mode


def validate_tax_selection(
    current_selection: Mapping[str, bool],
    candidate_tax_id: str,
    all_taxes: Sequence[TaxSetting],
) -> bool:
    """
    Check whether selecting ``candidate_tax_id`` keeps a single tax mode.

    Returns False for unknown or inactive candidates.  Any active tax is
    allowed when nothing is selected; otherwise the candidate must share
    the mode of every currently selected tax.
    """
    candidate_tax_id = str(candidate_tax_id)
    candidate = next((tax for tax in all_taxes if tax.id == candidate_tax_id), None)
    if candidate is None or not candidate.is_active:
        return False

    selected = _selected_active(current_selection, all_taxes)
    if not selected:
        return True

    return all(tax.is_inclusive == candidate.is_inclusive for tax in selected)


# ---------------------------------------------------------------------------
# Calculation
# ---------------------------------------------------------------------------


@traced_engine(
    "tax", "1.0", fingerprint_fields=("base_amount", "selection", "all_taxes"),
)
def calculate_tax_amounts(
    base_amount: Decimal | int | str,
    selection: Mapping[str, bool],
    all_taxes: Sequence[TaxSetting],
) -> TaxCalculationResult:
    """
    Calculate the tax breakdown for a base amount.

    Exclusive: each tax is ``base * rate / 100`` and the total grows by
    the tax.  Inclusive: the base already contains the tax, so the
    principal ``base / (1 + sum(rates) / 100)`` is extracted first and each
    tax is ``principal * rate / 100``; the total equals the base.

    Selected ids that are unknown or inactive are ignored.  Breakdown
    entries follow catalog order.
    """
    base = to_decimal(base_amount)
    selected = _selected_active(selection, all_taxes)

    if not selected:
        return TaxCalculationResult(
            base_amount=base,
            tax_amount=Decimal("0"),
            total_amount=base,
            tax_breakdown=(),
            mode=TaxMode.UNSET,
        )

    mode = selected[0].mode
    applicable = [tax for tax in selected if tax.mode == mode]
    if len(applicable) != len(selected):
        logger.warning("tax_calculation_mixed_modes_ignored", extra={
            "mode": mode.value,
            "ignored_tax_ids": [t.id for t in selected if t.mode != mode],
        })

    if mode == TaxMode.INCLUSIVE:
        combined_rate = sum((tax.rate for tax in applicable), Decimal("0"))
        taxable = base / (1 + combined_rate / HUNDRED)
    else:
        taxable = base

    breakdown = tuple(
        TaxBreakdownItem(
            tax_id=tax.id,
            name=tax.name,
            rate=tax.rate,
            amount=taxable * tax.rate / HUNDRED,
            mode=mode,
        )
        for tax in applicable
    )
    tax_amount = sum((item.amount for item in breakdown), Decimal("0"))
    total_amount = base if mode == TaxMode.INCLUSIVE else base + tax_amount

    logger.debug("tax_calculation_completed", extra={
        "base_amount": base,
        "mode": mode.value,
        "tax_count": len(breakdown),
        "tax_amount": tax_amount,
        "total_amount": total_amount,
    })

    return TaxCalculationResult(
        base_amount=base,
        tax_amount=tax_amount,
        total_amount=total_amount,
        tax_breakdown=breakdown,
        mode=mode,
    )


def validate_tax_calculation(
    result: TaxCalculationResult,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> bool:
    """Check a result is non-negative and its breakdown reconciles with tax_amount."""
    if result.base_amount < 0 or result.tax_amount < 0 or result.total_amount < 0:
        return False
    breakdown_total = sum((item.amount for item in result.tax_breakdown), Decimal("0"))
    return abs(breakdown_total - result.tax_amount) <= tolerance


# ---------------------------------------------------------------------------
# Presentation
# ---------------------------------------------------------------------------

_MODE_LABELS = {
    TaxMode.UNSET: "No taxes selected",
    TaxMode.INCLUSIVE: "Tax Inclusive",
    TaxMode.EXCLUSIVE: "Tax Exclusive",
}


def tax_mode_label(mode: TaxMode | None) -> str:
    """Human-readable label for a tax mode."""
    return _MODE_LABELS[mode or TaxMode.UNSET]


def format_rate(rate: Decimal) -> str:
    """Render a percentage without trailing zeros (18.000 -> "18")."""
    return format(to_decimal(rate).normalize(), "f")


def format_tax_breakdown(
    breakdown: Sequence[TaxBreakdownItem],
    currency_symbol: str = "₹",
    decimal_places: int = 2,
) -> str:
    """One-line summary, e.g. ``Tax Exclusive - GST (18%): ₹180.00``."""
    if not breakdown:
        return "No taxes applied"

    quantum = Decimal(10) ** -decimal_places
    parts = [
        f"{item.name} ({format_rate(item.rate)}%): "
        f"{currency_symbol}{item.amount.quantize(quantum, rounding=ROUND_HALF_UP)}"
        for item in breakdown
    ]
    return f"{tax_mode_label(breakdown[0].mode)} - {', '.join(parts)}"
