"""
Tax Configuration Schema.

Defines the structure and sensible defaults for billing tax settings.
Actual values are loaded from YAML at runtime (see ``gym_config``).
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Self

from gym_kernel.logging_config import get_logger

logger = get_logger("modules.tax.config")

DEFAULT_TAX_TYPES = (
    "cgst",
    "sgst",
    "igst",
    "gst",
    "vat",
    "service_tax",
    "other",
)


@dataclass
class TaxConfig:
    """
    Configuration schema for the tax module.

    Field defaults match an Indian GST setup.  Override at instantiation:

        config = TaxConfig(currency_code="AED", currency_symbol="AED ")
    """

    # Currency presentation
    currency_code: str = "INR"
    currency_symbol: str = "₹"
    decimal_places: int = 2

    # Reconciliation of breakdown vs total tax
    reconciliation_tolerance: Decimal = Decimal("0.01")

    # Master tax settings validation
    max_rate: Decimal = Decimal("100")
    valid_tax_types: tuple[str, ...] = field(default_factory=lambda: DEFAULT_TAX_TYPES)

    def __post_init__(self):
        self.reconciliation_tolerance = Decimal(str(self.reconciliation_tolerance))
        self.max_rate = Decimal(str(self.max_rate))
        self.valid_tax_types = tuple(self.valid_tax_types)

        if not self.currency_code or len(self.currency_code) != 3:
            raise ValueError(
                f"currency_code must be a 3-letter ISO 4217 code, got '{self.currency_code}'"
            )

        if self.decimal_places < 0:
            raise ValueError("decimal_places cannot be negative")

        if self.reconciliation_tolerance < 0:
            raise ValueError("reconciliation_tolerance cannot be negative")

        if self.max_rate <= 0:
            raise ValueError("max_rate must be positive")

        if not self.valid_tax_types:
            raise ValueError("valid_tax_types cannot be empty")

        if len(set(self.valid_tax_types)) != len(self.valid_tax_types):
            duplicates = sorted(
                {t for t in self.valid_tax_types if self.valid_tax_types.count(t) > 1}
            )
            logger.warning(
                "tax_config_duplicate_tax_types",
                extra={"duplicate_tax_types": duplicates},
            )
            raise ValueError(f"valid_tax_types contains duplicates: {duplicates}")

        logger.info(
            "tax_config_initialized",
            extra={
                "currency_code": self.currency_code,
                "decimal_places": self.decimal_places,
                "reconciliation_tolerance": str(self.reconciliation_tolerance),
                "max_rate": str(self.max_rate),
                "tax_type_count": len(self.valid_tax_types),
            },
        )

    @property
    def quantum(self) -> Decimal:
        """Smallest currency subunit, e.g. Decimal("0.01")."""
        return Decimal(10) ** -self.decimal_places

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the default settings."""
        logger.info("tax_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary (e.g., loaded from a YAML file)."""
        logger.info(
            "tax_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
