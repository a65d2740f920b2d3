"""
Tests for contract activity evaluation.

Covers:
- is_active: status flag and inclusive end date
- is_contract_expired on the whole contract
- summarize_contract counts
"""

from datetime import UTC, date, datetime
from decimal import Decimal

from pricing_engines.contract_activity import (
    is_active,
    is_contract_expired,
    is_expired,
    summarize_contract,
)
from pricing_kernel.domain.override import OverrideAuditRecord
from pricing_kernel.domain.pricing import (
    ContractRateCatalog,
    ContractRateEntry,
    ContractRateVariant,
    ContractStatus,
)

TODAY = date(2026, 1, 15)


def _entry(material_id="M1", end=None, status=ContractStatus.ACTIVE):
    return ContractRateEntry(
        material_id, ContractRateVariant.FIXED_RATE, date(2025, 1, 1),
        contract_rate=Decimal("8"), end_date=end, status=status,
    )


def _record(material_id):
    return OverrideAuditRecord(
        material_id=material_id,
        original_rate=Decimal("8"),
        override_rate=Decimal("9"),
        reason="customer requested adjustment",
        approved_by="U-100",
        approved_at=datetime(2026, 1, 15, 9, tzinfo=UTC),
    )


class TestIsActive:
    def test_active_without_end_date(self):
        assert is_active(_entry(), TODAY)

    def test_end_date_in_future(self):
        assert is_active(_entry(end=date(2026, 2, 15)), TODAY)

    def test_end_date_today_is_inclusive(self):
        assert is_active(_entry(end=TODAY), TODAY)

    def test_end_date_yesterday_is_not_active(self):
        assert not is_active(_entry(end=date(2026, 1, 14)), TODAY)

    def test_past_end_date_ignores_active_flag(self):
        entry = _entry(end=date(2025, 6, 30), status=ContractStatus.ACTIVE)
        assert not is_active(entry, TODAY)
        assert is_expired(entry, TODAY)

    def test_inactive_flag(self):
        assert not is_active(_entry(status=ContractStatus.INACTIVE), TODAY)

    def test_none_entry_is_neither_active_nor_expired(self):
        assert not is_active(None, TODAY)
        assert not is_expired(None, TODAY)


class TestContractExpiry:
    def test_contract_end_before_today(self):
        catalog = ContractRateCatalog.from_entries([], "CUST-001", date(2026, 1, 1))
        assert is_contract_expired(catalog, TODAY)

    def test_contract_end_today_not_expired(self):
        catalog = ContractRateCatalog.from_entries([], "CUST-001", TODAY)
        assert not is_contract_expired(catalog, TODAY)

    def test_no_contract_end_date(self):
        assert not is_contract_expired(ContractRateCatalog.empty("CUST-001"), TODAY)


class TestSummarizeContract:
    def test_empty_catalog_has_no_summary(self):
        assert summarize_contract(ContractRateCatalog.empty(), (), TODAY) is None

    def test_counts(self):
        catalog = ContractRateCatalog.from_entries([
            _entry("M1"),
            _entry("M2", end=date(2025, 12, 31)),
            _entry("M3", status=ContractStatus.INACTIVE),
        ])
        summary = summarize_contract(catalog, (_record("M1"), _record("M1")), TODAY)
        assert summary.total_materials == 3
        assert summary.active_rates == 1
        assert summary.expired_rates == 2
        assert summary.overridden_rates == 1
        assert summary.has_active_contract

    def test_all_expired(self):
        catalog = ContractRateCatalog.from_entries([_entry("M1", end=date(2025, 1, 31))])
        summary = summarize_contract(catalog, (), TODAY)
        assert not summary.has_active_contract
