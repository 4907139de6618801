"""ORM round-trip tests for the Tax module.

Verifies that every Tax ORM model can be persisted, queried back with
correct field values, that FK constraints are enforced by the database,
and that session_scope commits or rolls back.

Models under test (2):
    TaxSettingModel, ReceiptTaxMappingModel
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from gym_engines.tax import TaxMode
from gym_kernel.db.engine import session_scope
from gym_modules.tax.orm import ReceiptTaxMappingModel, TaxSettingModel


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_setting(session, test_actor_id, **overrides):
    """Create and flush a TaxSettingModel with sensible defaults."""
    defaults = dict(
        name="GST",
        tax_type="gst",
        rate=Decimal("18"),
        is_inclusive=False,
        is_active=True,
        created_by_id=test_actor_id,
    )
    defaults.update(overrides)
    obj = TaxSettingModel(**defaults)
    session.add(obj)
    session.flush()
    return obj


# ===================================================================
# TaxSettingModel
# ===================================================================

class TestTaxSettingModelORM:

    def test_create_and_query(self, session, test_actor_id):
        obj = _make_setting(session, test_actor_id, description="Standard rate")
        queried = session.get(TaxSettingModel, obj.id)

        assert queried is not None
        assert queried.name == "GST"
        assert queried.rate == Decimal("18")
        assert queried.is_inclusive is False
        assert queried.description == "Standard rate"
        assert queried.created_by_id == test_actor_id

    def test_to_dto(self, session, test_actor_id):
        obj = _make_setting(
            session, test_actor_id, name="VAT", tax_type="vat",
            rate=Decimal("12.5"), is_inclusive=True,
        )
        dto = obj.to_dto()

        assert dto.id == str(obj.id)
        assert dto.name == "VAT"
        assert dto.rate == Decimal("12.5")
        assert dto.mode == TaxMode.INCLUSIVE
        assert dto.tax_type == "vat"

    def test_audit_timestamps_set(self, session, test_actor_id):
        obj = _make_setting(session, test_actor_id)
        session.refresh(obj)
        assert obj.created_at is not None
        assert obj.updated_at is not None

    def test_name_required(self, session, test_actor_id):
        with pytest.raises(IntegrityError):
            _make_setting(session, test_actor_id, name=None)


# ===================================================================
# ReceiptTaxMappingModel
# ===================================================================

class TestReceiptTaxMappingModelORM:

    def test_create_and_query(self, session, test_actor_id):
        setting = _make_setting(session, test_actor_id)
        receipt_id = uuid4()
        row = ReceiptTaxMappingModel(
            receipt_id=receipt_id,
            tax_setting_id=setting.id,
            tax_name="GST",
            tax_type="gst",
            tax_percentage=Decimal("18"),
            is_inclusive=False,
            base_amount=Decimal("1000.00"),
            tax_amount=Decimal("180.00"),
            created_by_id=test_actor_id,
        )
        session.add(row)
        session.flush()

        dto = session.get(ReceiptTaxMappingModel, row.id).to_dto()
        assert dto.receipt_id == receipt_id
        assert dto.tax_setting_id == str(setting.id)
        assert dto.tax_amount == Decimal("180.00")
        assert dto.base_amount == Decimal("1000.00")

    def test_fk_tax_setting_enforced(self, session, test_actor_id):
        row = ReceiptTaxMappingModel(
            receipt_id=uuid4(),
            tax_setting_id=uuid4(),
            tax_name="Ghost",
            tax_type="gst",
            tax_percentage=Decimal("5"),
            is_inclusive=False,
            base_amount=Decimal("100"),
            tax_amount=Decimal("5"),
            created_by_id=test_actor_id,
        )
        session.add(row)
        with pytest.raises(IntegrityError):
            session.flush()


# ===================================================================
# Transaction scope
# ===================================================================

class TestSessionScope:

    def test_commits_on_success(self, session, test_actor_id):
        with session_scope() as scoped:
            _make_setting(scoped, test_actor_id, name="CGST", tax_type="cgst")

        names = session.scalars(select(TaxSettingModel.name)).all()
        assert names == ["CGST"]

    def test_rolls_back_on_error(self, session, test_actor_id):
        with pytest.raises(RuntimeError):
            with session_scope() as scoped:
                _make_setting(scoped, test_actor_id, name="SGST", tax_type="sgst")
                raise RuntimeError("abort")

        assert session.scalars(select(TaxSettingModel)).all() == []
