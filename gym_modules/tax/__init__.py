"""
Tax Module.

Responsibility:
    Master tax settings and per-receipt tax records for gym billing.
    Delegates all computation to ``gym_engines.tax`` and all selection
    state to ``gym_services.tax_selection``.

Invariants:
    - All monetary amounts and rates use ``Decimal`` -- NEVER ``float``.
    - A tax setting's ``is_inclusive`` flag is fixed once created.

Failure modes:
    - ``TaxConfig.__post_init__`` raises ``ValueError`` for invalid values.
    - Services raise the typed errors of ``gym_kernel.exceptions``.
"""

from gym_modules.tax.config import TaxConfig
from gym_modules.tax.models import ReceiptTaxLine
from gym_modules.tax.service import ReceiptTaxService, TaxSettingsService

__all__ = [
    "ReceiptTaxLine",
    "ReceiptTaxService",
    "TaxConfig",
    "TaxSettingsService",
]
