"""
Pytest fixtures for the contract pricing test suite.

Provides:
- Structured logging configured once per run, with per-test LogContext reset
- ``captured_logs`` for asserting on emitted JSON log records
- A deterministic clock pinned to 2026-01-15 09:00 UTC
- In-memory collaborators (materials, stock, approvers)
- An in-memory SQLite session factory for audit persistence tests
"""

import json
import logging
from datetime import UTC, date, datetime
from decimal import Decimal
from io import StringIO

import pytest

from pricing_config import PricingConfig
from pricing_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from pricing_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from pricing_kernel.domain.clock import DeterministicClock
from pricing_kernel.domain.override import ApproverIdentity
from pricing_kernel.domain.pricing import (
    ContractRateCatalog,
    ContractRateEntry,
    ContractRateVariant,
    ContractStatus,
    Material,
)
from pricing_kernel.domain.stock import StockSnapshot
from pricing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from pricing_services.override_authority import RoleBasedOverrideAuthority


TODAY = date(2026, 1, 15)
NOW = datetime(2026, 1, 15, 9, 0, 0, tzinfo=UTC)

MANAGER_TOKEN = "token-manager-amal"
CLERK_TOKEN = "token-clerk-saif"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture pricing_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            recompute_totals(...)
            logs = captured_logs()
            assert any(r["message"] == "totals_recomputed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("pricing_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records
    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock and configuration
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(NOW)


@pytest.fixture
def pricing_config() -> PricingConfig:
    return PricingConfig.with_defaults()


# =============================================================================
# In-memory collaborators
# =============================================================================


class InMemoryMaterialSource:
    def __init__(self, materials):
        self._materials = {m.material_id: m for m in materials}

    def get_material(self, material_id):
        return self._materials.get(material_id)


class InMemoryStockAdvisor:
    def __init__(self, snapshots=()):
        self._snapshots = {s.material_id: s for s in snapshots}
        self.calls: list[str] = []

    def get_stock(self, material_id):
        self.calls.append(material_id)
        return self._snapshots.get(material_id)


class TokenCredentialVerifier:
    """Maps opaque session tokens to approvers, like an identity provider would."""

    def __init__(self, identities):
        self._identities = dict(identities)

    def resolve(self, proof):
        return self._identities.get(proof)


@pytest.fixture
def materials() -> list[Material]:
    return [
        Material("M1", "Copper wire", "kg", Decimal("10.000")),
        Material("M2", "Aluminium scrap", "kg", Decimal("10.000")),
        Material("M3", "Brass fittings", "kg", Decimal("10.000")),
        Material("M4", "Steel offcuts", "kg", Decimal("4.250")),
    ]


@pytest.fixture
def material_source(materials) -> InMemoryMaterialSource:
    return InMemoryMaterialSource(materials)


@pytest.fixture
def stock_advisor() -> InMemoryStockAdvisor:
    return InMemoryStockAdvisor([
        StockSnapshot("M1", Decimal("10"), Decimal("5"), "kg"),
        StockSnapshot("M2", Decimal("500"), Decimal("50"), "kg"),
        StockSnapshot("M3", Decimal("40"), Decimal("40"), "kg"),
    ])


@pytest.fixture
def credential_verifier() -> TokenCredentialVerifier:
    return TokenCredentialVerifier({
        MANAGER_TOKEN: ApproverIdentity("U-100", "Amal Al-Harthy", ("manager",)),
        CLERK_TOKEN: ApproverIdentity("U-200", "Saif Al-Busaidi", ("sales_clerk",)),
    })


@pytest.fixture
def override_authority(credential_verifier, pricing_config) -> RoleBasedOverrideAuthority:
    return RoleBasedOverrideAuthority(
        credential_verifier, pricing_config.override_approver_roles,
    )


@pytest.fixture
def catalog() -> ContractRateCatalog:
    """Customer contract: M1 fixed, M2 discount, M3 price guarantee, M4 expired."""
    return ContractRateCatalog.from_entries(
        [
            ContractRateEntry(
                "M1", ContractRateVariant.FIXED_RATE, date(2025, 6, 1),
                contract_rate=Decimal("8.000"), end_date=date(2026, 2, 15),
            ),
            ContractRateEntry(
                "M2", ContractRateVariant.DISCOUNT_PERCENTAGE, date(2025, 6, 1),
                discount_percentage=Decimal("20"), end_date=date(2026, 12, 31),
            ),
            ContractRateEntry(
                "M3", ContractRateVariant.MINIMUM_PRICE_GUARANTEE, date(2025, 6, 1),
                contract_rate=Decimal("12.000"),
            ),
            ContractRateEntry(
                "M4", ContractRateVariant.FIXED_RATE, date(2025, 1, 1),
                contract_rate=Decimal("3.900"), end_date=date(2026, 1, 14),
                status=ContractStatus.ACTIVE,
            ),
        ],
        counterparty_id="CUST-001",
        contract_end_date=date(2026, 12, 31),
    )


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_session_factory():
    """Fresh in-memory SQLite database with audit-log tables and listeners."""
    init_engine_from_url("sqlite://")
    create_tables()
    register_immutability_listeners()
    yield get_session_factory()
    unregister_immutability_listeners()
    drop_tables()
    reset_engine()
