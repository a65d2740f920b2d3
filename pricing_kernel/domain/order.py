"""
Order editing domain types (``pricing_kernel.domain.order``).

Responsibility
--------------
Value objects for an order being edited: lines, derived totals, warnings,
and the ``OrderEditingSession`` that owns them together with the override
audit log.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* ``OrderLine.amount`` is a property, so ``amount == quantity * rate`` holds
  for every line that can exist.
* ``OrderEditingSession`` is frozen.  Engine operations return a new session
  via ``dataclasses.replace``; the caller owns the only reference.
* The audit log is a tuple that only grows within a session.
* Per material, a session keeps at most one warning per family (pricing
  family vs stock family); a newer warning replaces the older one.

Line lock state machine::

    UNLOCKED <--(material selection)--> LOCKED --(approved override)--> OVERRIDDEN

``OVERRIDDEN`` is terminal for a material id within the session: selecting
the same material again on any line re-enters ``OVERRIDDEN``, never
``LOCKED``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum

from pricing_kernel.domain.override import OverrideAuditRecord, PendingOverride
from pricing_kernel.domain.pricing import (
    ContractRateCatalog,
    ContractRateVariant,
    RateWarningType,
)
from pricing_kernel.domain.values import ZERO
from pricing_kernel.exceptions import LineIndexError


class OrderSide(str, Enum):
    """Which entry flow the session belongs to."""

    SALES = "sales"  # counterparty is a customer
    PURCHASE = "purchase"  # counterparty is a supplier


class LineLockState(str, Enum):
    """Whether a line's rate may be edited directly."""

    UNLOCKED = "unlocked"
    LOCKED = "locked"
    OVERRIDDEN = "overridden"


_STOCK_WARNINGS = frozenset({
    RateWarningType.STOCK_INSUFFICIENT,
    RateWarningType.STOCK_LOW,
})


@dataclass(frozen=True)
class OrderWarning:
    """Human-readable, non-blocking notice surfaced next to the order."""

    warning_type: RateWarningType
    message: str
    material_id: str | None = None

    @property
    def is_stock_warning(self) -> bool:
        return self.warning_type in _STOCK_WARNINGS


@dataclass(frozen=True)
class OrderLine:
    """One material line of an order."""

    material_id: str | None = None
    quantity: Decimal = ZERO
    rate: Decimal = ZERO
    lock_state: LineLockState = LineLockState.UNLOCKED
    market_rate: Decimal | None = None
    rate_variant: ContractRateVariant | None = None
    original_rate: Decimal | None = None
    override_reason: str | None = None

    @property
    def amount(self) -> Decimal:
        return self.quantity * self.rate

    @property
    def is_locked(self) -> bool:
        return self.lock_state == LineLockState.LOCKED

    @property
    def is_overridden(self) -> bool:
        return self.lock_state == LineLockState.OVERRIDDEN

    @property
    def is_empty(self) -> bool:
        return self.material_id is None


@dataclass(frozen=True)
class OrderTotals:
    """Order-level figures derived from the line list. Never stored alone."""

    subtotal: Decimal = ZERO
    discount_percent: Decimal = ZERO
    discount_amount: Decimal = ZERO
    taxable_base: Decimal = ZERO
    vat_rate: Decimal = ZERO
    vat_amount: Decimal = ZERO
    net_amount: Decimal = ZERO


@dataclass(frozen=True)
class OrderEditingSession:
    """Everything one order edit owns: lines, audit log, warnings, totals."""

    order_id: str
    side: OrderSide
    order_date: date
    catalog: ContractRateCatalog = field(default_factory=ContractRateCatalog.empty)
    lines: tuple[OrderLine, ...] = (OrderLine(),)
    audit_log: tuple[OverrideAuditRecord, ...] = ()
    warnings: tuple[OrderWarning, ...] = ()
    pending_override: PendingOverride | None = None
    discount_percent: Decimal = ZERO
    taxable: bool = True
    vat_rate: Decimal = Decimal("5")
    totals: OrderTotals = field(default_factory=OrderTotals)

    def line(self, index: int) -> OrderLine:
        if index < 0 or index >= len(self.lines):
            raise LineIndexError(index, len(self.lines))
        return self.lines[index]

    def with_line(self, index: int, line: OrderLine) -> OrderEditingSession:
        self.line(index)
        lines = self.lines[:index] + (line,) + self.lines[index + 1:]
        return replace(self, lines=lines)

    def is_overridden(self, material_id: str | None) -> bool:
        """True once any override for the material has been approved."""
        if material_id is None:
            return False
        return any(r.material_id == material_id for r in self.audit_log)

    def audit_records_for(self, material_id: str) -> tuple[OverrideAuditRecord, ...]:
        return tuple(r for r in self.audit_log if r.material_id == material_id)

    def warnings_for(self, material_id: str | None) -> tuple[OrderWarning, ...]:
        return tuple(w for w in self.warnings if w.material_id == material_id)


def with_warning(
    warnings: tuple[OrderWarning, ...],
    warning: OrderWarning,
) -> tuple[OrderWarning, ...]:
    """Add ``warning``, replacing any same-family warning for its material."""
    kept = tuple(
        w for w in warnings
        if not (
            w.material_id == warning.material_id
            and w.is_stock_warning == warning.is_stock_warning
        )
    )
    return kept + (warning,)


def without_warnings(
    warnings: tuple[OrderWarning, ...],
    material_id: str | None,
    *,
    stock_only: bool = False,
) -> tuple[OrderWarning, ...]:
    """Drop warnings for ``material_id`` (optionally only the stock family)."""
    return tuple(
        w for w in warnings
        if not (
            w.material_id == material_id
            and (w.is_stock_warning or not stock_only)
        )
    )
