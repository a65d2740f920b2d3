"""
pricing_services.order_editing_service -- Drives one order edit.

Responsibility:
    Resolve collaborator data (materials, stock snapshots, approver
    identities, "today") and feed it to the pure ``order_lines`` reducers,
    one causal edit at a time.

Architecture position:
    Services -- orchestration over engines + kernel.  The only layer that
    reads the clock or calls collaborators.

Invariants enforced:
    - Sessions are values: every method takes a session and returns the next
      one.  The service keeps no per-order state, so the caller owning the
      session is its only writer.
    - Stale guard: a material edit carrying a catalog for another
      counterparty is refused before any resolution runs.
    - Override rejections are returned in ``OverrideOutcome.decision``;
      they are never raised to the caller.

Failure modes:
    - ValidationError subclasses on bad quantities, rates, discounts or line
      positions (the session is not changed).
    - StaleCatalogError from ``set_material``.
    - NoPendingOverrideError from ``submit_override``.

Usage:
    service = OrderEditingService(materials, stock, authority, config, clock)
    session = service.start_session("SO-1001", OrderSide.SALES, catalog)
    session = service.set_material(session, 0, "M1")
    session = service.set_quantity(session, 0, "15")
    session = service.set_rate(session, 0, "9.000")
    if session.pending_override:
        outcome = service.submit_override(session, reason, proof)
        session = outcome.session
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from pricing_config import PricingConfig
from pricing_engines import order_lines
from pricing_engines.contract_activity import ContractSummary, summarize_contract
from pricing_engines.order_lines import OrderSubmission
from pricing_engines.override import OverrideAuthorizer
from pricing_engines.rate_resolver import resolve_rate
from pricing_kernel.domain.clock import Clock, SystemClock
from pricing_kernel.domain.order import OrderEditingSession, OrderSide
from pricing_kernel.domain.override import OverrideAuthority, OverrideDecision
from pricing_kernel.domain.pricing import (
    ContractRateCatalog,
    MaterialSource,
    RateResolution,
)
from pricing_kernel.domain.stock import StockAdvisor
from pricing_kernel.exceptions import NoPendingOverrideError, StaleCatalogError
from pricing_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.order_editing")


@dataclass(frozen=True)
class OverrideOutcome:
    """The next session plus the authorizer's decision."""

    session: OrderEditingSession
    decision: OverrideDecision

    @property
    def approved(self) -> bool:
        return self.decision.approved


class OrderEditingService:
    """
    Order-entry facade shared by the sales and purchase flows.

    Contract:
        Receives collaborators via constructor injection: a
        ``MaterialSource``, a ``StockAdvisor``, an ``OverrideAuthority``,
        a ``PricingConfig`` and a ``Clock``.
    Guarantees:
        - Rates are resolved against the session's catalog and the clock's
          current day.
        - ``approved_at`` on audit records comes from the clock.
        - Display strings use the configured currency and decimal places.
    Non-goals:
        - Persisting orders; see ``to_submission`` for the payload and
          ``OverrideAuditRepository`` for the audit log.
    """

    def __init__(
        self,
        material_source: MaterialSource,
        stock_advisor: StockAdvisor,
        authority: OverrideAuthority,
        config: PricingConfig | None = None,
        clock: Clock | None = None,
    ):
        self._materials = material_source
        self._stock = stock_advisor
        self._config = config or PricingConfig.with_defaults()
        self._clock = clock or SystemClock()
        self._authorizer = OverrideAuthorizer(
            authority,
            self._config.min_override_reason_length,
            currency_code=self._config.currency_code,
            places=self._config.display_places,
        )

    @property
    def config(self) -> PricingConfig:
        return self._config

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start_session(
        self,
        order_id: str,
        side: OrderSide,
        catalog: ContractRateCatalog | None = None,
        order_date: date | None = None,
    ) -> OrderEditingSession:
        with LogContext.bind(order_id=order_id):
            return order_lines.new_session(
                order_id,
                side,
                order_date or self._clock.today(),
                catalog,
                self._config.default_vat_rate,
            )

    def load_contract(
        self,
        session: OrderEditingSession,
        catalog: ContractRateCatalog,
    ) -> OrderEditingSession:
        with LogContext.bind(order_id=session.order_id):
            logger.info("contract_loaded", extra={
                "previous_counterparty_id": session.catalog.counterparty_id,
                "counterparty_id": catalog.counterparty_id,
                "contract_entries": len(catalog),
            })
            return order_lines.load_contract(session, catalog)

    # ------------------------------------------------------------------
    # Line edits
    # ------------------------------------------------------------------

    def set_material(
        self,
        session: OrderEditingSession,
        index: int,
        material_id: str | None,
        catalog: ContractRateCatalog | None = None,
    ) -> OrderEditingSession:
        """Select a material on a line.

        ``catalog`` is the catalog the caller fetched alongside the
        material.  When it belongs to another counterparty than the
        session's, the edit is refused with ``StaleCatalogError``.
        """
        if (
            catalog is not None
            and catalog.counterparty_id != session.catalog.counterparty_id
        ):
            logger.warning("stale_catalog_rejected", extra={
                "order_id": session.order_id,
                "expected_counterparty_id": session.catalog.counterparty_id,
                "actual_counterparty_id": catalog.counterparty_id,
            })
            raise StaleCatalogError(
                session.catalog.counterparty_id, catalog.counterparty_id,
            )

        with LogContext.bind(order_id=session.order_id, material_id=material_id):
            material = self._materials.get_material(material_id) if material_id else None
            snapshot = self._stock.get_stock(material_id) if material_id else None
            return order_lines.set_material(
                session,
                index,
                material_id,
                material,
                self._clock.today(),
                snapshot,
                currency_code=self._config.currency_code,
                places=self._config.display_places,
            )

    def set_quantity(
        self,
        session: OrderEditingSession,
        index: int,
        quantity: Decimal | int | str,
    ) -> OrderEditingSession:
        material_id = session.line(index).material_id
        with LogContext.bind(order_id=session.order_id, material_id=material_id):
            snapshot = self._stock.get_stock(material_id) if material_id else None
            return order_lines.set_quantity(session, index, quantity, snapshot)

    def set_rate(
        self,
        session: OrderEditingSession,
        index: int,
        rate: Decimal | int | str,
    ) -> OrderEditingSession:
        material_id = session.line(index).material_id
        with LogContext.bind(order_id=session.order_id, material_id=material_id):
            return order_lines.set_rate(
                session, index, rate, self._config.rate_tolerance,
            )

    def add_line(self, session: OrderEditingSession) -> OrderEditingSession:
        return order_lines.add_line(session)

    def remove_line(self, session: OrderEditingSession, index: int) -> OrderEditingSession:
        return order_lines.remove_line(session, index)

    # ------------------------------------------------------------------
    # Order-level settings
    # ------------------------------------------------------------------

    def set_discount(
        self,
        session: OrderEditingSession,
        discount_percent: Decimal | int | str,
    ) -> OrderEditingSession:
        return order_lines.set_discount(session, discount_percent)

    def set_taxable(self, session: OrderEditingSession, taxable: bool) -> OrderEditingSession:
        return order_lines.set_taxable(session, taxable)

    def set_vat_rate(
        self,
        session: OrderEditingSession,
        vat_rate: Decimal | int | str,
    ) -> OrderEditingSession:
        return order_lines.set_vat_rate(session, vat_rate)

    # ------------------------------------------------------------------
    # Override workflow
    # ------------------------------------------------------------------

    def submit_override(
        self,
        session: OrderEditingSession,
        reason: str,
        approver_credential_proof: Any,
    ) -> OverrideOutcome:
        """Decide the pending override of ``session``.

        Raises:
            NoPendingOverrideError: nothing is awaiting approval.
        """
        pending = session.pending_override
        if pending is None:
            raise NoPendingOverrideError()

        request = pending.to_request(reason, approver_credential_proof)
        with LogContext.bind(order_id=session.order_id, material_id=pending.material_id):
            decision = self._authorizer.authorize(request, self._clock.now())
            next_session = order_lines.apply_override_decision(
                session,
                decision,
                currency_code=self._config.currency_code,
                places=self._config.display_places,
            )
            if decision.approved:
                with LogContext.bind(actor_id=decision.record.approved_by):
                    logger.info("override_recorded", extra={
                        "line_index": pending.line_index,
                        "audit_log_size": len(next_session.audit_log),
                    })
        return OverrideOutcome(session=next_session, decision=decision)

    def cancel_override(self, session: OrderEditingSession) -> OrderEditingSession:
        return order_lines.cancel_override(session)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def rate_details(
        self,
        session: OrderEditingSession,
        material_id: str,
    ) -> RateResolution | None:
        """Rate rationale for display; None when the material is unknown."""
        material = self._materials.get_material(material_id)
        if material is None:
            logger.warning("material_not_found", extra={"material_id": material_id})
            return None
        return resolve_rate(
            material,
            session.catalog.get(material_id),
            self._clock.today(),
            self._config.currency_code,
            self._config.display_places,
        )

    def contract_summary(self, session: OrderEditingSession) -> ContractSummary | None:
        return summarize_contract(session.catalog, session.audit_log, self._clock.today())

    def validate(
        self,
        session: OrderEditingSession,
        is_draft: bool = False,
    ) -> dict[str, str]:
        return order_lines.validate_order(session, is_draft)

    def to_submission(
        self,
        session: OrderEditingSession,
        is_draft: bool = False,
    ) -> OrderSubmission:
        return order_lines.to_submission(session, is_draft)
