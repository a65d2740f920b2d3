"""
Tests for JSON logging of order-editing events.

Covers:
- Engine events carry the order/material/actor context bound around them
- Pricing errors logged with exc_info expose their code and fields
- Context binding, nesting and rejection of unknown fields
- Handler installation is idempotent and reversible
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from pricing_engines.override import OverrideAuthorizer
from pricing_engines.rate_resolver import resolve_rate
from pricing_kernel.domain.override import OverrideRequest
from pricing_kernel.domain.pricing import (
    ContractRateEntry,
    ContractRateVariant,
    Material,
    RateWarningType,
)
from pricing_kernel.exceptions import ApproverNotAuthorizedError, StaleCatalogError
from pricing_kernel.logging_config import (
    LogContext,
    configure_logging,
    get_logger,
    reset_logging,
)

TODAY = date(2026, 1, 15)
COPPER = Material("M1", "Copper wire", "kg", Decimal("10.000"))
COPPER_FIXED = ContractRateEntry(
    "M1", ContractRateVariant.FIXED_RATE, date(2025, 6, 1),
    contract_rate=Decimal("8.000"), end_date=date(2026, 2, 15),
)


@pytest.fixture
def log_stream():
    """Install the JSON handler on a fresh stream, then restore the suite setup."""
    reset_logging()
    stream = StringIO()
    configure_logging(level=logging.DEBUG, stream=stream)
    yield stream
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _events(stream: StringIO, message: str | None = None) -> list[dict]:
    records = [json.loads(line) for line in stream.getvalue().splitlines() if line]
    if message is None:
        return records
    return [r for r in records if r["message"] == message]


class _RefusingAuthority:
    def verify(self, proof, request):
        raise ApproverNotAuthorizedError("U-200", ("manager",))


class TestEngineEvents:
    def test_rate_resolved_carries_bound_context(self, log_stream):
        with LogContext.bind(order_id="SO-1001", material_id="M1"):
            resolve_rate(COPPER, COPPER_FIXED, TODAY)

        (event,) = _events(log_stream, "rate_resolved")
        assert event["order_id"] == "SO-1001"
        assert event["material_id"] == "M1"
        assert event["effective_rate"] == "8.000"
        assert event["is_contract_rate"] is True
        assert event["logger"] == "pricing_kernel.engines.rate_resolver"
        assert event["level"] == "DEBUG"

    def test_context_does_not_leak_after_bind(self, log_stream):
        with LogContext.bind(order_id="SO-1001"):
            pass
        resolve_rate(COPPER, None, TODAY)
        (event,) = _events(log_stream, "rate_resolved")
        assert "order_id" not in event

    def test_rejected_override_logs_error_code(self, log_stream):
        request = OverrideRequest(
            "M1", Decimal("8.000"), Decimal("9.000"), "customer requested adjustment", "tok",
        )
        with LogContext.bind(order_id="SO-1001", actor_id="U-200"):
            OverrideAuthorizer(_RefusingAuthority()).authorize(request, None)

        (event,) = _events(log_stream, "override_rejected")
        assert event["level"] == "WARNING"
        assert event["rejection"] == "not_authorized"
        assert event["error_code"] == "APPROVER_NOT_AUTHORIZED"
        assert event["actor_id"] == "U-200"

    def test_every_line_is_json_with_core_keys(self, log_stream):
        resolve_rate(COPPER, COPPER_FIXED, TODAY)
        records = _events(log_stream)
        assert records
        for record in records:
            assert {"ts", "level", "logger", "message"} <= set(record)


class TestErrorFields:
    def test_pricing_error_code_and_fields(self, log_stream):
        try:
            raise StaleCatalogError("CUST-001", "CUST-002")
        except StaleCatalogError:
            get_logger("services.order_editing").error("set_material_failed", exc_info=True)

        (event,) = _events(log_stream, "set_material_failed")
        assert event["exc_type"] == "StaleCatalogError"
        assert event["exc_code"] == "STALE_CATALOG"
        assert event["exc_fields"] == {
            "expected_counterparty": "CUST-001",
            "actual_counterparty": "CUST-002",
        }
        assert "Traceback" in event["traceback"]

    def test_tuple_fields_become_lists(self, log_stream):
        try:
            raise ApproverNotAuthorizedError("U-200", ("manager",))
        except ApproverNotAuthorizedError:
            get_logger("test").warning("approval_failed", exc_info=True)

        (event,) = _events(log_stream, "approval_failed")
        assert event["exc_fields"]["required_roles"] == ["manager"]

    def test_foreign_error_has_no_code(self, log_stream):
        try:
            raise KeyError("M9")
        except KeyError:
            get_logger("test").error("lookup_failed", exc_info=True)

        (event,) = _events(log_stream, "lookup_failed")
        assert event["exc_type"] == "KeyError"
        assert "exc_code" not in event

    def test_decimal_and_enum_extras(self, log_stream):
        get_logger("test").info("warning_raised", extra={
            "rate": Decimal("8.125"),
            "warning_type": RateWarningType.STOCK_LOW,
            "order_date": TODAY,
        })
        (event,) = _events(log_stream, "warning_raised")
        assert event["rate"] == "8.125"
        assert event["warning_type"] == "stock_low"
        assert event["order_date"] == "2026-01-15"


class TestLogContext:
    def test_nested_bind_restores_outer_values(self):
        with LogContext.bind(order_id="SO-1001", material_id="M1"):
            with LogContext.bind(material_id="M2", actor_id="U-100"):
                assert LogContext.get_all() == {
                    "order_id": "SO-1001", "material_id": "M2", "actor_id": "U-100",
                }
            assert LogContext.get_all() == {"order_id": "SO-1001", "material_id": "M1"}
        assert LogContext.get_all() == {}

    def test_none_values_are_ignored(self):
        LogContext.set(order_id="SO-1001")
        with LogContext.bind(order_id=None, material_id="M1"):
            assert LogContext.get_all()["order_id"] == "SO-1001"

    def test_bind_restores_on_error(self):
        with pytest.raises(StaleCatalogError):
            with LogContext.bind(order_id="SO-1001"):
                raise StaleCatalogError("CUST-001", "CUST-002")
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError, match="trace_id"):
            LogContext.set(trace_id="t-1")

    def test_clear(self):
        LogContext.set(order_id="SO-1001", actor_id="U-100")
        LogContext.clear()
        assert LogContext.get_all() == {}


class TestConfigureLogging:
    def test_second_call_keeps_first_handler(self, log_stream):
        configure_logging(stream=StringIO())
        get_logger("test").info("still_first")
        assert _events(log_stream, "still_first")

    def test_reset_removes_handler(self, log_stream):
        reset_logging()
        get_logger("test").warning("after_reset")
        assert not _events(log_stream, "after_reset")
