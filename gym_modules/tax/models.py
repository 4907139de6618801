"""
Tax Domain Models.

The master tax setting itself is the engine-level ``TaxSetting``
(``gym_engines.tax``); this module holds the module-only DTOs.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class ReceiptTaxLine:
    """A tax applied to a receipt, as recorded at billing time."""

    id: UUID
    receipt_id: UUID
    tax_setting_id: str
    tax_name: str
    tax_type: str
    tax_percentage: Decimal
    is_inclusive: bool
    base_amount: Decimal
    tax_amount: Decimal
