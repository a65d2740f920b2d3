"""
Tests for OrderEditingService.

Covers:
- Session start with clock date, configured VAT and contract catalog
- Collaborator lookups (material source, stock advisor)
- Stale-catalog guard
- End-to-end override workflow with the role-based approval capability
- Read-only views: rate details, contract summary, validation, submission
"""

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from pricing_config import PricingConfig
from pricing_kernel.domain.order import LineLockState, OrderSide
from pricing_kernel.domain.override import OverrideRejectionReason
from pricing_kernel.domain.pricing import ContractRateCatalog, RateWarningType
from pricing_kernel.exceptions import NoPendingOverrideError, StaleCatalogError
from pricing_services.order_editing_service import OrderEditingService

MANAGER_TOKEN = "token-manager-amal"
CLERK_TOKEN = "token-clerk-saif"
NOW = datetime(2026, 1, 15, 9, 0, 0, tzinfo=UTC)


@pytest.fixture
def service(material_source, stock_advisor, override_authority,
            pricing_config, deterministic_clock):
    return OrderEditingService(
        material_source, stock_advisor, override_authority,
        pricing_config, deterministic_clock,
    )


@pytest.fixture
def session(service, catalog):
    return service.start_session("SO-1001", OrderSide.SALES, catalog)


class TestStartSession:
    def test_uses_clock_date_and_config_vat(self, session):
        assert session.order_date == date(2026, 1, 15)
        assert session.vat_rate == Decimal("5")
        assert session.catalog.counterparty_id == "CUST-001"

    def test_explicit_order_date(self, service, catalog):
        session = service.start_session(
            "PO-77", OrderSide.PURCHASE, catalog, order_date=date(2026, 1, 10),
        )
        assert session.side == OrderSide.PURCHASE
        assert session.order_date == date(2026, 1, 10)

    def test_logs_with_order_context(self, service, catalog, captured_logs):
        service.start_session("SO-2002", OrderSide.SALES, catalog)
        started = [r for r in captured_logs() if r["message"] == "order_session_started"]
        assert started[-1]["order_id"] == "SO-2002"


class TestLineEdits:
    def test_material_resolved_through_source(self, service, session):
        session = service.set_material(session, 0, "M2")
        assert session.lines[0].rate == Decimal("8.00000")

    def test_quantity_consults_stock_advisor(self, service, session, stock_advisor):
        session = service.set_material(session, 0, "M1")
        session = service.set_quantity(session, 0, "15")
        assert "M1" in stock_advisor.calls
        warning = session.warnings_for("M1")[0]
        assert warning.warning_type == RateWarningType.STOCK_INSUFFICIENT
        assert session.lines[0].amount == Decimal("120.000")

    def test_low_stock_warning_on_material_selection(self, service, session):
        session = service.set_quantity(session, 0, "1")
        session = service.set_material(session, 0, "M3")
        assert session.warnings_for("M3")[0].message == "Low stock: 40 kg"

    def test_stale_catalog_refused(self, service, session):
        other = ContractRateCatalog.empty("CUST-999")
        with pytest.raises(StaleCatalogError) as exc_info:
            service.set_material(session, 0, "M1", catalog=other)
        assert exc_info.value.expected_counterparty == "CUST-001"
        assert exc_info.value.code == "STALE_CATALOG"

    def test_matching_catalog_accepted(self, service, session, catalog):
        session = service.set_material(session, 0, "M1", catalog=catalog)
        assert session.lines[0].rate == Decimal("8.000")

    def test_tolerance_comes_from_config(self, material_source, stock_advisor,
                                          override_authority, deterministic_clock, catalog):
        loose = OrderEditingService(
            material_source, stock_advisor, override_authority,
            PricingConfig(rate_tolerance=Decimal("0.5")), deterministic_clock,
        )
        session = loose.start_session("SO-1", OrderSide.SALES, catalog)
        session = loose.set_material(session, 0, "M1")
        nudged = loose.set_rate(session, 0, "8.4")
        assert nudged.pending_override is None
        assert nudged.lines[0].rate == Decimal("8.4")
        assert nudged.lines[0].lock_state == LineLockState.LOCKED
        assert loose.set_rate(session, 0, "8.6").pending_override is not None


class TestOverrideWorkflow:
    def _pending(self, service, session):
        session = service.set_material(session, 0, "M1")
        session = service.set_quantity(session, 0, "10")
        return service.set_rate(session, 0, "9.000")

    def test_manager_approval(self, service, session):
        session = self._pending(service, session)
        outcome = service.submit_override(
            session, "customer requested adjustment", MANAGER_TOKEN,
        )
        assert outcome.approved
        session = outcome.session
        assert session.lines[0].rate == Decimal("9.000")
        assert session.lines[0].lock_state == LineLockState.OVERRIDDEN
        record = session.audit_log[0]
        assert record.approved_by == "U-100"
        assert record.approver_name == "Amal Al-Harthy"
        assert record.approved_at == NOW

    def test_decision_message_uses_configured_currency(
        self, material_source, stock_advisor, override_authority, deterministic_clock, catalog,
    ):
        usd = OrderEditingService(
            material_source, stock_advisor, override_authority,
            PricingConfig(currency_code="USD", display_places=2), deterministic_clock,
        )
        session = usd.start_session("SO-3", OrderSide.SALES, catalog)
        outcome = usd.submit_override(
            self._pending(usd, session), "customer requested adjustment", MANAGER_TOKEN,
        )
        expected = "Rate overridden: USD 9.00 (was USD 8.00) - customer requested adjustment"
        assert outcome.decision.message == expected
        assert outcome.session.warnings_for("M1")[-1].message == expected

    def test_clerk_is_not_authorized(self, service, session):
        session = self._pending(service, session)
        outcome = service.submit_override(
            session, "customer requested adjustment", CLERK_TOKEN,
        )
        assert not outcome.approved
        assert outcome.decision.rejection == OverrideRejectionReason.NOT_AUTHORIZED
        assert outcome.session.lines[0].rate == Decimal("8.000")
        assert outcome.session.audit_log == ()

    def test_unknown_token_is_invalid_credential(self, service, session):
        session = self._pending(service, session)
        outcome = service.submit_override(session, "customer requested adjustment", "nope")
        assert outcome.decision.rejection == OverrideRejectionReason.INVALID_CREDENTIAL

    def test_missing_proof_is_invalid_credential(self, service, session):
        session = self._pending(service, session)
        outcome = service.submit_override(session, "customer requested adjustment", None)
        assert outcome.decision.rejection == OverrideRejectionReason.INVALID_CREDENTIAL

    def test_retry_after_rejection(self, service, session):
        session = self._pending(service, session)
        rejected = service.submit_override(session, "short", MANAGER_TOKEN)
        assert rejected.session.pending_override is not None
        accepted = service.submit_override(
            rejected.session, "customer requested adjustment", MANAGER_TOKEN,
        )
        assert accepted.approved
        assert len(accepted.session.audit_log) == 1

    def test_nothing_pending(self, service, session):
        with pytest.raises(NoPendingOverrideError):
            service.submit_override(session, "customer requested adjustment", MANAGER_TOKEN)

    def test_cancel(self, service, session):
        session = self._pending(service, session)
        assert service.cancel_override(session).pending_override is None


class TestViews:
    def test_rate_details(self, service, session):
        details = service.rate_details(session, "M3")
        assert details.effective_rate == Decimal("10.000")
        assert details.rationale.startswith("Price guarantee: Using market rate")

    def test_rate_details_unknown_material(self, service, session):
        assert service.rate_details(session, "M404") is None

    def test_contract_summary(self, service, session):
        summary = service.contract_summary(session)
        assert summary.total_materials == 4
        assert summary.active_rates == 3
        assert summary.expired_rates == 1
        assert summary.overridden_rates == 0

    def test_validate_and_submit(self, service, session):
        session = service.set_material(session, 0, "M2")
        session = service.set_quantity(session, 0, "5")
        session = service.set_discount(session, "10")
        session = service.set_taxable(session, False)
        assert service.validate(session) == {}
        payload = service.to_submission(session).to_dict()
        assert payload["vat_rate"] == "0"
        assert payload["lines"][0]["total_price"] == "40.00000"

    def test_vat_rate_and_lines(self, service, session):
        session = service.add_line(session)
        session = service.remove_line(session, 1)
        session = service.set_vat_rate(session, "15")
        assert session.vat_rate == Decimal("15")
        assert len(session.lines) == 1

    def test_load_contract(self, service, session):
        session = service.set_material(session, 0, "M1")
        session = service.load_contract(session, ContractRateCatalog.empty("CUST-002"))
        assert session.catalog.counterparty_id == "CUST-002"
        assert session.lines[0].is_empty
