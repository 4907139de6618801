"""
Gym Services.

Stateful orchestration over the pure engines in ``gym_engines``.

Services:
- TaxSelectionController: tax selection state for one billing session
"""

from gym_services.tax_selection import (
    RejectionReason,
    SelectionOutcome,
    TaxChangeObserver,
    TaxSelectionController,
)

__all__ = [
    "RejectionReason",
    "SelectionOutcome",
    "TaxChangeObserver",
    "TaxSelectionController",
]
