"""
Typed exception hierarchy for the gym billing kernel.

Every error carries a machine-readable ``code`` and the structured data
needed to act on it, so callers catch by type instead of parsing messages:

    try:
        service.update(tax_id, is_inclusive=True, actor_id=actor)
    except TaxInclusivityImmutableError as e:
        show_error(code=e.code, tax=e.tax_id)

Hierarchy:

    GymKernelError (base)
    |
    +-- TaxSettingError
    |   +-- TaxSettingNotFoundError
    |   +-- InvalidTaxSettingError
    |   +-- TaxInclusivityImmutableError
    |
    +-- ReceiptTaxError
    |   +-- InvalidTaxCalculationError
    |
    +-- ConfigurationError

Refused tax selections are NOT exceptions: the selection controller
reports them through ``SelectionOutcome``.
"""


class GymKernelError(Exception):
    """
    Base exception for all gym kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "GYM_KERNEL_ERROR"


# Tax setting exceptions


class TaxSettingError(GymKernelError):
    """Base exception for tax setting errors."""

    code: str = "TAX_SETTING_ERROR"


class TaxSettingNotFoundError(TaxSettingError):
    """Tax setting with given ID was not found."""

    code: str = "TAX_SETTING_NOT_FOUND"

    def __init__(self, tax_id: str):
        self.tax_id = str(tax_id)
        super().__init__(f"Tax setting not found: {tax_id}")


class InvalidTaxSettingError(TaxSettingError):
    """A tax setting field failed validation."""

    code: str = "INVALID_TAX_SETTING"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid tax setting {field}: {reason}")


class TaxInclusivityImmutableError(TaxSettingError):
    """Attempted to flip is_inclusive on an existing tax setting."""

    code: str = "TAX_INCLUSIVITY_IMMUTABLE"

    def __init__(self, tax_id: str):
        self.tax_id = str(tax_id)
        super().__init__(
            f"Tax setting {tax_id}: is_inclusive cannot change after creation"
        )


# Receipt tax exceptions


class ReceiptTaxError(GymKernelError):
    """Base exception for receipt tax mapping errors."""

    code: str = "RECEIPT_TAX_ERROR"


class InvalidTaxCalculationError(ReceiptTaxError):
    """Calculation result does not reconcile and cannot be recorded."""

    code: str = "INVALID_TAX_CALCULATION"

    def __init__(self, receipt_id: str, reason: str):
        self.receipt_id = str(receipt_id)
        self.reason = reason
        super().__init__(
            f"Cannot record taxes for receipt {receipt_id}: {reason}"
        )


# Configuration exceptions


class ConfigurationError(GymKernelError):
    """Configuration file could not be loaded or is invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, path: str, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Invalid configuration {path}: {reason}")
