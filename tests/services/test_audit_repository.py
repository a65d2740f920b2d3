"""
Tests for the persistent override audit log.

Covers:
- append_session stores records in approval order
- Re-persisting the same session is idempotent
- A diverging session is refused
- High-precision rates and offset timestamps re-persist idempotently
- Stored rows cannot be updated or deleted
"""

from dataclasses import replace
from datetime import UTC, date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select

from pricing_kernel.db.engine import session_scope
from pricing_kernel.domain.order import OrderEditingSession, OrderSide
from pricing_kernel.domain.override import OverrideAuditRecord
from pricing_kernel.exceptions import ImmutabilityViolationError
from pricing_kernel.models.override_audit import OverrideAuditRecordModel
from pricing_services.audit_repository import OverrideAuditRepository


def _record(material_id="M1", original="8.000", override="9.000", minute=30):
    return OverrideAuditRecord(
        material_id=material_id,
        original_rate=Decimal(original),
        override_rate=Decimal(override),
        reason="customer requested adjustment",
        approved_by="U-100",
        approved_at=datetime(2026, 1, 15, 9, minute, tzinfo=UTC),
        approver_name="Amal Al-Harthy",
    )


def _session(*records):
    return OrderEditingSession(
        order_id="SO-1001",
        side=OrderSide.SALES,
        order_date=date(2026, 1, 15),
        audit_log=tuple(records),
    )


class TestOverrideAuditRepository:
    def test_append_and_list(self, db_session_factory):
        repo = OverrideAuditRepository(db_session_factory)
        inserted = repo.append_session("SO-1001", _session(_record(), _record("M2", "4", "5", 31)))
        assert inserted == 2

        stored = repo.list_for_order("SO-1001")
        assert [r.material_id for r in stored] == ["M1", "M2"]
        first = stored[0]
        assert first.original_rate == Decimal("8.000")
        assert first.override_rate == Decimal("9.000")
        assert first.approved_by == "U-100"
        assert first.approver_name == "Amal Al-Harthy"
        assert first.approved_at == datetime(2026, 1, 15, 9, 30, tzinfo=UTC)

    def test_idempotent_and_incremental(self, db_session_factory):
        repo = OverrideAuditRepository(db_session_factory)
        session = _session(_record())
        assert repo.append_session("SO-1001", session) == 1
        assert repo.append_session("SO-1001", session) == 0

        grown = replace(session, audit_log=session.audit_log + (_record("M3", "10", "9.5", 45),))
        assert repo.append_session("SO-1001", grown) == 1
        assert len(repo.list_for_order("SO-1001")) == 2

    def test_orders_are_isolated(self, db_session_factory):
        repo = OverrideAuditRepository(db_session_factory)
        repo.append_session("SO-1001", _session(_record()))
        assert repo.list_for_order("SO-2002") == ()

    def test_diverging_session_refused(self, db_session_factory):
        repo = OverrideAuditRepository(db_session_factory)
        repo.append_session("SO-1001", _session(_record()))
        with pytest.raises(ImmutabilityViolationError):
            repo.append_session("SO-1001", _session(_record("M9")))
        with pytest.raises(ImmutabilityViolationError):
            repo.append_session("SO-1001", _session())
        assert len(repo.list_for_order("SO-1001")) == 1

    def test_high_precision_rates_persist_idempotently(self, db_session_factory):
        repo = OverrideAuditRepository(db_session_factory)
        # 10.1234 at a 12.34567% discount, then a hand-entered rate
        discounted = Decimal("10.1234") - Decimal("10.1234") * Decimal("12.34567") / 100
        session = _session(_record(original=str(discounted), override="8.87325491234"))
        assert repo.append_session("SO-1001", session) == 1
        assert repo.append_session("SO-1001", session) == 0

        stored = repo.list_for_order("SO-1001")[0]
        assert abs(stored.override_rate - Decimal("8.87325491234")) < Decimal("1E-9")

    def test_rewritten_reason_refused(self, db_session_factory):
        repo = OverrideAuditRepository(db_session_factory)
        repo.append_session("SO-1001", _session(_record()))
        rewritten = replace(_record(), reason="rate agreed by phone")
        with pytest.raises(ImmutabilityViolationError):
            repo.append_session("SO-1001", _session(rewritten, _record("M2", "4", "5", 31)))

    @pytest.mark.parametrize("field,value", [
        ("approved_at", datetime(2026, 1, 15, 10, 30, tzinfo=UTC)),
        ("approver_name", "Someone Else"),
        ("override_rate", Decimal("9.001")),
    ])
    def test_any_changed_field_refused(self, db_session_factory, field, value):
        repo = OverrideAuditRepository(db_session_factory)
        repo.append_session("SO-1001", _session(_record()))
        with pytest.raises(ImmutabilityViolationError):
            repo.append_session("SO-1001", _session(replace(_record(), **{field: value})))

    def test_offset_timestamp_reads_back_same_instant(self, db_session_factory):
        muscat = timezone(timedelta(hours=4))
        record = replace(_record(), approved_at=datetime(2026, 1, 15, 13, 30, tzinfo=muscat))
        repo = OverrideAuditRepository(db_session_factory)
        repo.append_session("SO-1001", _session(record))

        stored = repo.list_for_order("SO-1001")[0]
        assert stored.approved_at == datetime(2026, 1, 15, 9, 30, tzinfo=UTC)
        assert repo.append_session("SO-1001", _session(record)) == 0

    def test_rows_cannot_be_updated(self, db_session_factory):
        OverrideAuditRepository(db_session_factory).append_session(
            "SO-1001", _session(_record()),
        )
        with pytest.raises(ImmutabilityViolationError):
            with session_scope(db_session_factory) as db:
                row = db.scalars(select(OverrideAuditRecordModel)).one()
                row.override_rate = Decimal("1")

    def test_rows_cannot_be_deleted(self, db_session_factory):
        OverrideAuditRepository(db_session_factory).append_session(
            "SO-1001", _session(_record()),
        )
        with pytest.raises(ImmutabilityViolationError):
            with session_scope(db_session_factory) as db:
                db.delete(db.scalars(select(OverrideAuditRecordModel)).one())
        assert len(OverrideAuditRepository(db_session_factory).list_for_order("SO-1001")) == 1
