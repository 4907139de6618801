"""
Tax ORM Persistence Models (``gym_modules.tax.orm``).

Responsibility:
    SQLAlchemy ORM models for the master tax settings and the per-receipt
    tax mapping.  ``TaxSettingModel.to_dto()`` produces the engine-level
    ``TaxSetting`` consumed by the selection controller.

Architecture position:
    **Modules layer** -- persistence companions to the pure engine types.
    Inherits from ``TrackedBase`` which provides id (UUID PK), created_at,
    updated_at, created_by_id (NOT NULL) and updated_by_id.

Invariants enforced:
    - Rates and monetary fields use Decimal (Numeric(38,9)) -- NEVER float.
    - Receipt mapping rows are a snapshot: tax name, type, rate and
      inclusivity are copied at billing time so later edits to the master
      setting do not rewrite issued receipts.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from gym_engines.tax import TaxSetting
from gym_kernel.db.base import TrackedBase
from gym_modules.tax.models import ReceiptTaxLine


# ---------------------------------------------------------------------------
# TaxSettingModel
# ---------------------------------------------------------------------------

class TaxSettingModel(TrackedBase):
    """
    ORM model for a master tax setting.

    Deactivation is a soft delete (``is_active = False``); rows are never
    removed because receipt mappings reference them.
    """

    __tablename__ = "master_tax_settings"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    tax_type: Mapped[str] = mapped_column(String(50), nullable=False, default="gst")
    rate: Mapped[Decimal] = mapped_column(nullable=False)
    is_inclusive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_tax_setting_active", "is_active"),
        Index("idx_tax_setting_type", "tax_type"),
    )

    def to_dto(self) -> TaxSetting:
        return TaxSetting(
            id=str(self.id),
            name=self.name,
            rate=self.rate,
            is_inclusive=self.is_inclusive,
            is_active=self.is_active,
            tax_type=self.tax_type,
            description=self.description,
        )

    def __repr__(self) -> str:
        mode = "inclusive" if self.is_inclusive else "exclusive"
        return f"<TaxSettingModel {self.name}: {self.rate}% {mode}>"


# ---------------------------------------------------------------------------
# ReceiptTaxMappingModel
# ---------------------------------------------------------------------------

class ReceiptTaxMappingModel(TrackedBase):
    """
    ORM model for one tax line applied to a receipt.

    ``tax_amount`` and ``base_amount`` are stored rounded to currency
    subunits.
    """

    __tablename__ = "receipt_tax_mapping"

    receipt_id: Mapped[UUID] = mapped_column(nullable=False)
    tax_setting_id: Mapped[UUID] = mapped_column(
        ForeignKey("master_tax_settings.id"), nullable=False,
    )
    tax_name: Mapped[str] = mapped_column(String(255), nullable=False)
    tax_type: Mapped[str] = mapped_column(String(50), nullable=False)
    tax_percentage: Mapped[Decimal] = mapped_column(nullable=False)
    is_inclusive: Mapped[bool] = mapped_column(Boolean, nullable=False)
    base_amount: Mapped[Decimal] = mapped_column(nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False)

    __table_args__ = (
        Index("idx_receipt_tax_receipt", "receipt_id"),
        Index("idx_receipt_tax_setting", "tax_setting_id"),
    )

    def to_dto(self) -> ReceiptTaxLine:
        return ReceiptTaxLine(
            id=self.id,
            receipt_id=self.receipt_id,
            tax_setting_id=str(self.tax_setting_id),
            tax_name=self.tax_name,
            tax_type=self.tax_type,
            tax_percentage=self.tax_percentage,
            is_inclusive=self.is_inclusive,
            base_amount=self.base_amount,
            tax_amount=self.tax_amount,
        )

    def __repr__(self) -> str:
        return (
            f"<ReceiptTaxMappingModel receipt={self.receipt_id} "
            f"{self.tax_name} {self.tax_amount}>"
        )
