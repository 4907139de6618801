"""
Tax Services -- master tax settings and receipt tax persistence.

Responsibility:
    Thin glue between the pure tax engines and the embedded database.
    ``TaxSettingsService`` maintains the master tax catalog;
    ``ReceiptTaxService`` records the breakdown applied to a receipt and
    restores a selection when the receipt is edited again.

Architecture:
    gym_modules -- persistence glue (this layer).
    All tax arithmetic lives in ``gym_engines.tax``; selection state lives
    in ``gym_services.tax_selection``.

Invariants:
    - ``is_inclusive`` of a tax setting never changes after creation.
    - Tax settings are soft-deleted (``is_active = False``), never removed.
    - Recorded receipt taxes reconcile with their calculation result
      within the configured tolerance.
    - Amounts are ``Decimal`` throughout -- NEVER ``float``.

Transaction boundary:
    Services ``flush`` so generated ids and constraint errors surface
    immediately; the caller commits, typically via
    ``gym_kernel.db.engine.session_scope()``.

Usage:
    with session_scope() as session:
        settings = TaxSettingsService(session)
        gst = settings.create(
            name="GST", rate=Decimal("18"), is_inclusive=False, actor_id=actor,
        )
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from gym_engines.tax import (
    TaxCalculationResult,
    TaxSetting,
    format_tax_breakdown,
    to_decimal,
    validate_tax_calculation,
)
from gym_kernel.exceptions import (
    InvalidTaxCalculationError,
    InvalidTaxSettingError,
    TaxInclusivityImmutableError,
    TaxSettingNotFoundError,
)
from gym_kernel.logging_config import get_logger
from gym_modules.tax.config import TaxConfig
from gym_modules.tax.models import ReceiptTaxLine
from gym_modules.tax.orm import ReceiptTaxMappingModel, TaxSettingModel

logger = get_logger("modules.tax.service")


def _as_uuid(value: UUID | str) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _active_config() -> TaxConfig:
    # gym_config imports this package, so resolve it at call time
    from gym_config import get_active_config

    return get_active_config()


class TaxSettingsService:
    """
    Maintains the master tax settings catalog.

    Contract:
        Callers supply a ``Session`` and optionally a ``TaxConfig`` (the
        active config from ``gym_config`` otherwise).  Mutations validate
        input, flush, and return the engine-level ``TaxSetting`` DTO.

    Guarantees:
        - ``list_active`` / ``load_catalog`` order by tax type then name.
        - ``update`` refuses to flip ``is_inclusive``.
    """

    def __init__(self, session: Session, config: TaxConfig | None = None):
        self._session = session
        self._config = config or _active_config()

    # =========================================================================
    # Queries
    # =========================================================================

    def list_active(self) -> list[TaxSetting]:
        stmt = (
            select(TaxSettingModel)
            .where(TaxSettingModel.is_active.is_(True))
            .order_by(TaxSettingModel.tax_type, TaxSettingModel.name)
        )
        return [row.to_dto() for row in self._session.scalars(stmt)]

    def list_all(self) -> list[TaxSetting]:
        stmt = select(TaxSettingModel).order_by(
            TaxSettingModel.tax_type, TaxSettingModel.name
        )
        return [row.to_dto() for row in self._session.scalars(stmt)]

    def get(self, tax_id: UUID | str) -> TaxSetting:
        return self._get_model(tax_id).to_dto()

    def load_catalog(self, include_inactive: bool = False) -> tuple[TaxSetting, ...]:
        """Catalog snapshot for ``TaxSelectionController``."""
        taxes = self.list_all() if include_inactive else self.list_active()
        logger.debug("tax_catalog_loaded", extra={
            "tax_count": len(taxes),
            "include_inactive": include_inactive,
        })
        return tuple(taxes)

    # =========================================================================
    # Mutations
    # =========================================================================

    def create(
        self,
        *,
        name: str,
        rate: Decimal | int | str,
        is_inclusive: bool,
        actor_id: UUID,
        tax_type: str = "gst",
        is_active: bool = True,
        description: str | None = None,
    ) -> TaxSetting:
        name = self._validate_name(name)
        rate = self._validate_rate(rate)
        self._validate_tax_type(tax_type)

        model = TaxSettingModel(
            name=name,
            tax_type=tax_type,
            rate=rate,
            is_inclusive=is_inclusive,
            is_active=is_active,
            description=description,
            created_by_id=actor_id,
        )
        self._session.add(model)
        self._session.flush()

        logger.info("tax_setting_created", extra={
            "tax_id": str(model.id),
            "tax_name": name,
            "tax_type": tax_type,
            "rate": str(rate),
            "is_inclusive": is_inclusive,
            "actor_id": str(actor_id),
        })
        return model.to_dto()

    def update(
        self,
        tax_id: UUID | str,
        *,
        actor_id: UUID,
        name: str | None = None,
        tax_type: str | None = None,
        rate: Decimal | int | str | None = None,
        is_inclusive: bool | None = None,
        is_active: bool | None = None,
        description: str | None = None,
    ) -> TaxSetting:
        """Update the given fields; ``None`` leaves a field unchanged."""
        model = self._get_model(tax_id)

        if is_inclusive is not None and is_inclusive != model.is_inclusive:
            logger.warning("tax_setting_inclusivity_change_rejected", extra={
                "tax_id": str(model.id),
                "is_inclusive": model.is_inclusive,
                "actor_id": str(actor_id),
            })
            raise TaxInclusivityImmutableError(str(model.id))

        if name is not None:
            model.name = self._validate_name(name)
        if tax_type is not None:
            self._validate_tax_type(tax_type)
            model.tax_type = tax_type
        if rate is not None:
            model.rate = self._validate_rate(rate)
        if is_active is not None:
            model.is_active = is_active
        if description is not None:
            model.description = description
        model.updated_by_id = actor_id
        self._session.flush()

        logger.info("tax_setting_updated", extra={
            "tax_id": str(model.id),
            "actor_id": str(actor_id),
        })
        return model.to_dto()

    def deactivate(self, tax_id: UUID | str, *, actor_id: UUID) -> TaxSetting:
        """Soft-delete a tax setting."""
        model = self._get_model(tax_id)
        model.is_active = False
        model.updated_by_id = actor_id
        self._session.flush()

        logger.info("tax_setting_deactivated", extra={
            "tax_id": str(model.id),
            "actor_id": str(actor_id),
        })
        return model.to_dto()

    # =========================================================================
    # Internals
    # =========================================================================

    def _get_model(self, tax_id: UUID | str) -> TaxSettingModel:
        key = _as_uuid(tax_id)
        model = self._session.get(TaxSettingModel, key) if key is not None else None
        if model is None:
            raise TaxSettingNotFoundError(str(tax_id))
        return model

    def _validate_name(self, name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise InvalidTaxSettingError("name", "Tax name is required")
        return name

    def _validate_rate(self, rate: Decimal | int | str) -> Decimal:
        rate = to_decimal(rate)
        if not rate.is_finite() or rate < 0:
            raise InvalidTaxSettingError("rate", "Rate must be positive")
        if rate > self._config.max_rate:
            raise InvalidTaxSettingError(
                "rate", f"Rate cannot exceed {self._config.max_rate}%"
            )
        return rate

    def _validate_tax_type(self, tax_type: str) -> None:
        if tax_type not in self._config.valid_tax_types:
            raise InvalidTaxSettingError(
                "tax_type",
                f"must be one of {list(self._config.valid_tax_types)}, got '{tax_type}'",
            )


class ReceiptTaxService:
    """
    Records and restores the taxes applied to a receipt.

    Contract:
        ``record_receipt_taxes`` replaces any existing rows for the receipt
        with one row per breakdown item.  ``load_selection`` rebuilds a
        selection map suitable for ``TaxSelectionController.set_selection``.

    Guarantees:
        - Unreconciled results are never written.
        - Stored amounts are rounded half-up to ``config.decimal_places``.
    """

    def __init__(self, session: Session, config: TaxConfig | None = None):
        self._session = session
        self._config = config or _active_config()

    def record_receipt_taxes(
        self,
        receipt_id: UUID,
        result: TaxCalculationResult,
        catalog: Sequence[TaxSetting],
        actor_id: UUID,
    ) -> list[ReceiptTaxLine]:
        if not validate_tax_calculation(result, self._config.reconciliation_tolerance):
            logger.error("receipt_tax_calculation_invalid", extra={
                "receipt_id": str(receipt_id),
                "tax_amount": str(result.tax_amount),
                "breakdown_count": result.tax_count,
            })
            raise InvalidTaxCalculationError(
                str(receipt_id), "breakdown does not reconcile or amount is negative"
            )

        by_id = {tax.id: tax for tax in catalog}
        setting_ids: dict[str, UUID] = {}
        for item in result.tax_breakdown:
            key = _as_uuid(item.tax_id) if item.tax_id in by_id else None
            if key is None:
                raise TaxSettingNotFoundError(item.tax_id)
            setting_ids[item.tax_id] = key

        removed = self._delete_rows(receipt_id)
        base_amount = self._round(result.base_amount)

        rows = []
        for item in result.tax_breakdown:
            tax = by_id[item.tax_id]
            row = ReceiptTaxMappingModel(
                receipt_id=receipt_id,
                tax_setting_id=setting_ids[item.tax_id],
                tax_name=item.name,
                tax_type=tax.tax_type,
                tax_percentage=item.rate,
                is_inclusive=tax.is_inclusive,
                base_amount=base_amount,
                tax_amount=self._round(item.amount),
                created_by_id=actor_id,
            )
            self._session.add(row)
            rows.append(row)
        self._session.flush()

        logger.info("receipt_taxes_recorded", extra={
            "receipt_id": str(receipt_id),
            "tax_count": len(rows),
            "replaced_count": removed,
            "mode": result.mode.value,
            "tax_amount": str(self._round(result.tax_amount)),
            "total_amount": str(self._round(result.total_amount)),
        })
        return [row.to_dto() for row in rows]

    def list_receipt_taxes(self, receipt_id: UUID) -> list[ReceiptTaxLine]:
        stmt = (
            select(ReceiptTaxMappingModel)
            .where(ReceiptTaxMappingModel.receipt_id == receipt_id)
            .order_by(ReceiptTaxMappingModel.tax_type, ReceiptTaxMappingModel.tax_name)
        )
        return [row.to_dto() for row in self._session.scalars(stmt)]

    def load_selection(
        self,
        receipt_id: UUID,
        catalog: Sequence[TaxSetting],
    ) -> dict[str, bool]:
        """Selection map over ``catalog`` marking the taxes stored for a receipt."""
        stored = {line.tax_setting_id for line in self.list_receipt_taxes(receipt_id)}
        return {tax.id: tax.id in stored for tax in catalog}

    def format_breakdown(self, result: TaxCalculationResult) -> str:
        """Receipt line text in the configured currency, e.g. ``₹180.00``."""
        return format_tax_breakdown(
            result.tax_breakdown,
            currency_symbol=self._config.currency_symbol,
            decimal_places=self._config.decimal_places,
        )

    def delete_receipt_taxes(self, receipt_id: UUID) -> int:
        removed = self._delete_rows(receipt_id)
        self._session.flush()
        logger.info("receipt_taxes_deleted", extra={
            "receipt_id": str(receipt_id),
            "removed_count": removed,
        })
        return removed

    def _delete_rows(self, receipt_id: UUID) -> int:
        stmt = delete(ReceiptTaxMappingModel).where(
            ReceiptTaxMappingModel.receipt_id == receipt_id
        )
        return self._session.execute(stmt).rowcount

    def _round(self, value: Decimal) -> Decimal:
        return value.quantize(self._config.quantum, rounding=ROUND_HALF_UP)
