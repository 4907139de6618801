"""
Tax Selection Controller -- stateful tax selection for one billing session.

Responsibility:
    Own the selection map for an invoice/receipt being edited and keep the
    derived state (tax mode, filtered catalog, calculation result) in step
    with it.  All arithmetic and legality checks are delegated to the pure
    engines in ``gym_engines.tax``.

Architecture:
    gym_services -- stateful orchestration over pure engines.
    No persistence: the catalog is a snapshot supplied by the caller
    (usually ``TaxSettingsService.load_catalog()``), and a previously stored
    selection is loaded with ``set_selection``.

Invariants:
    - Mutual exclusivity: selected taxes always share one ``is_inclusive``
      value.  Every selection that adds a tax goes through
      ``validate_tax_selection``.
    - Atomic recomputation: each mutation rebuilds mode, filtered catalog
      and result while holding one lock, then notifies observers before the
      lock is released.  Observers never see a half-updated state, and two
      threads never interleave their recompute passes.
    - The calculation result is always recomputed from scratch.

Failure modes:
    - Illegal selections are refused, not raised: ``toggle`` and
      ``set_selection`` return a rejected ``SelectionOutcome`` and leave the
      state unchanged.  Mixed-mode bulk selections are logged at WARNING.
    - Every observer is notified even when an earlier one raises; the
      first observer exception then propagates to the caller of the
      mutating operation.  The new state is already committed.
    - An observer that mutates the controller triggers a nested
      notification with the newer result; observers not yet reached by the
      outer pass receive only that newer result.

Usage:
    controller = TaxSelectionController(
        taxes=settings_service.load_catalog(),
        base_amount=Decimal("1000"),
        on_change=lambda result: render(result.rounded()),
    )
    controller.toggle(gst_id)
    print(controller.get_tax_type_label())  # "Tax Exclusive"
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from gym_engines.tax import (
    TaxCalculationResult,
    TaxMode,
    TaxSetting,
    calculate_tax_amounts,
    create_initial_selection,
    filter_taxes_by_type,
    get_current_tax_mode,
    tax_mode_label,
    to_decimal,
    validate_tax_selection,
)
from gym_kernel.logging_config import get_logger

logger = get_logger("services.tax_selection")

TaxChangeObserver = Callable[[TaxCalculationResult], None]


class RejectionReason(str, Enum):
    """Why a selection change was refused."""

    UNKNOWN_TAX = "unknown_tax"
    INACTIVE_TAX = "inactive_tax"
    INCOMPATIBLE_MODE = "incompatible_mode"
    MIXED_MODES = "mixed_modes"


@dataclass(frozen=True)
class SelectionOutcome:
    """Result of a selection change.  Truthy when the change was applied."""

    accepted: bool
    reason: RejectionReason | None = None

    def __bool__(self) -> bool:
        return self.accepted

    @classmethod
    def accept(cls) -> SelectionOutcome:
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: RejectionReason) -> SelectionOutcome:
        return cls(accepted=False, reason=reason)


class TaxSelectionController:
    """
    Selection state for one billing session.

    Contract:
        Callers supply the tax catalog and the base amount.  Mutations go
        through ``toggle``, ``clear_all``, ``set_selection``,
        ``set_base_amount`` and ``initialize``; each one that changes state
        recomputes every derived field and notifies observers with the new
        ``TaxCalculationResult``.

    Guarantees:
        - ``tax_mode`` is UNSET exactly when nothing is selected.
        - Every tax in ``filtered_taxes`` matches ``tax_mode`` (all active
          taxes when UNSET).
        - ``calculation_result`` always reflects the current base amount,
          selection and catalog.

    Non-goals:
        - Does NOT validate the base amount; a finite, non-negative amount
          is the caller's responsibility.
        - Does NOT persist the selection (see ``ReceiptTaxService``).
    """

    def __init__(
        self,
        taxes: Iterable[TaxSetting] = (),
        base_amount: Decimal | int | str = 0,
        on_change: TaxChangeObserver | None = None,
    ):
        self._lock = threading.RLock()
        self._session_id = uuid4().hex
        self._observers: list[TaxChangeObserver] = []
        self._base_amount = to_decimal(base_amount)
        self._taxes: tuple[TaxSetting, ...] = tuple(taxes)
        self._selection: dict[str, bool] = create_initial_selection(self._taxes)
        self._tax_mode = TaxMode.UNSET
        self._filtered_taxes: tuple[TaxSetting, ...] = ()
        self._result: TaxCalculationResult
        self._recompute()

        if on_change is not None:
            self.subscribe(on_change)

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, observer: TaxChangeObserver) -> Callable[[], None]:
        """Register an observer; returns a callable that unregisters it."""
        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    # =========================================================================
    # Actions
    # =========================================================================

    def initialize(self, taxes: Iterable[TaxSetting]) -> None:
        """Replace the catalog snapshot and reset every selection."""
        with self._lock:
            self._taxes = tuple(taxes)
            logger.info("tax_selection_initialized", extra={
                "selection_session_id": self._session_id,
                "tax_count": len(self._taxes),
                "active_tax_count": sum(1 for t in self._taxes if t.is_active),
            })
            self._commit(create_initial_selection(self._taxes))

    def toggle(self, tax_id: str) -> SelectionOutcome:
        """
        Flip one tax.  Deselection is always allowed; selection must pass
        ``validate_tax_selection`` or the state is left unchanged.
        """
        tax_id = str(tax_id)
        with self._lock:
            if self._selection.get(tax_id, False):
                selection = dict(self._selection)
                selection[tax_id] = False
                logger.debug("tax_deselected", extra={
                    "selection_session_id": self._session_id,
                    "tax_id": tax_id,
                })
                self._commit(selection)
                return SelectionOutcome.accept()

            if not validate_tax_selection(self._selection, tax_id, self._taxes):
                reason = self._refusal_reason(tax_id)
                logger.debug("tax_selection_refused", extra={
                    "selection_session_id": self._session_id,
                    "tax_id": tax_id,
                    "reason": reason.value,
                    "tax_mode": self._tax_mode.value,
                })
                return SelectionOutcome.reject(reason)

            selection = dict(self._selection)
            selection[tax_id] = True
            logger.debug("tax_selected", extra={
                "selection_session_id": self._session_id,
                "tax_id": tax_id,
            })
            self._commit(selection)
            return SelectionOutcome.accept()

    def clear_all(self) -> None:
        """Unselect every tax."""
        with self._lock:
            self._commit({tax_id: False for tax_id in self._selection})

    def set_selection(self, selection: Mapping[str, bool]) -> SelectionOutcome:
        """
        Bulk-replace the selection, e.g. when reopening a stored receipt.

        Selected ids must all be active and share one mode; otherwise the
        call is refused with a warning and the state is left unchanged.
        Ids not in the catalog are dropped.  An empty selection clears all.
        """
        with self._lock:
            wanted = {str(tax_id) for tax_id, selected in selection.items() if selected}
            known = {tax.id for tax in self._taxes}
            unknown = sorted(wanted - known)
            if unknown:
                logger.debug("tax_selection_unknown_ids_dropped", extra={
                    "selection_session_id": self._session_id,
                    "tax_ids": unknown,
                })

            chosen = [tax for tax in self._taxes if tax.id in wanted]
            if not chosen:
                self._commit({tax_id: False for tax_id in self._selection})
                return SelectionOutcome.accept()

            inactive = [tax.id for tax in chosen if not tax.is_active]
            if inactive:
                logger.warning("tax_selection_rejected", extra={
                    "selection_session_id": self._session_id,
                    "reason": RejectionReason.INACTIVE_TAX.value,
                    "tax_ids": inactive,
                })
                return SelectionOutcome.reject(RejectionReason.INACTIVE_TAX)

            if len({tax.is_inclusive for tax in chosen}) > 1:
                logger.warning("tax_selection_rejected", extra={
                    "selection_session_id": self._session_id,
                    "reason": RejectionReason.MIXED_MODES.value,
                    "tax_ids": [tax.id for tax in chosen],
                })
                return SelectionOutcome.reject(RejectionReason.MIXED_MODES)

            new_selection = create_initial_selection(self._taxes)
            for tax in chosen:
                new_selection[tax.id] = True
            self._commit(new_selection)
            return SelectionOutcome.accept()

    def set_base_amount(self, base_amount: Decimal | int | str) -> None:
        """Change the amount taxes are computed against."""
        with self._lock:
            self._base_amount = to_decimal(base_amount)
            self._commit(self._selection)

    # =========================================================================
    # Queries
    # =========================================================================

    def is_tax_selectable(self, tax_id: str) -> bool:
        """Whether toggling ``tax_id`` would be accepted right now."""
        tax_id = str(tax_id)
        with self._lock:
            tax = self._find(tax_id)
            if tax is None or not tax.is_active:
                return False
            if self._selection.get(tax_id, False):
                return True
            if self._tax_mode == TaxMode.UNSET:
                return True
            return tax.mode == self._tax_mode

    def get_tax_type_label(self) -> str:
        with self._lock:
            return tax_mode_label(self._tax_mode)

    @property
    def taxes(self) -> tuple[TaxSetting, ...]:
        return self._taxes

    @property
    def selection(self) -> dict[str, bool]:
        with self._lock:
            return dict(self._selection)

    @property
    def selected_taxes(self) -> list[TaxSetting]:
        with self._lock:
            return [tax for tax in self._taxes if self._selection.get(tax.id, False)]

    @property
    def tax_mode(self) -> TaxMode:
        return self._tax_mode

    @property
    def filtered_taxes(self) -> tuple[TaxSetting, ...]:
        return self._filtered_taxes

    @property
    def calculation_result(self) -> TaxCalculationResult:
        return self._result

    @property
    def base_amount(self) -> Decimal:
        return self._base_amount

    # =========================================================================
    # Internals
    # =========================================================================

    def _find(self, tax_id: str) -> TaxSetting | None:
        return next((tax for tax in self._taxes if tax.id == tax_id), None)

    def _refusal_reason(self, tax_id: str) -> RejectionReason:
        tax = self._find(tax_id)
        if tax is None:
            return RejectionReason.UNKNOWN_TAX
        if not tax.is_active:
            return RejectionReason.INACTIVE_TAX
        return RejectionReason.INCOMPATIBLE_MODE

    def _recompute(self) -> None:
        """Rebuild every derived field from selection, catalog and base amount."""
        self._tax_mode = get_current_tax_mode(self._selection, self._taxes)
        self._filtered_taxes = tuple(filter_taxes_by_type(self._taxes, self._tax_mode))
        self._result = calculate_tax_amounts(
            self._base_amount, self._selection, self._taxes
        )

    def _commit(self, selection: dict[str, bool]) -> None:
        """Apply a new selection, recompute, then notify.  Caller holds the lock."""
        self._selection = selection
        self._recompute()
        self._notify()

    def _notify(self) -> None:
        """
        Deliver the current result to every observer, then re-raise the
        first observer error, if any.
        """
        result = self._result
        errors: list[Exception] = []
        for observer in list(self._observers):
            if self._result is not result:
                # a nested commit from an observer already delivered a newer result
                break
            try:
                observer(result)
            except Exception as exc:
                logger.error("tax_observer_failed", exc_info=True, extra={
                    "selection_session_id": self._session_id,
                    "observer": getattr(observer, "__qualname__", repr(observer)),
                })
                errors.append(exc)
        if errors:
            raise errors[0]
