"""
pricing_engines.order_lines -- OrderLineCalculator session reducers.

Responsibility:
    Apply one causal edit (material selection, quantity, rate, discount,
    tax flag, contract change, override decision) to an
    ``OrderEditingSession`` and return the next session with its totals
    recomputed from the whole line list.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Collaborator data (material, stock snapshot, override decision) is
    resolved by the caller and passed in; ``today`` is passed in.

Invariants enforced:
    - Sessions are frozen: every reducer returns a new session.
    - ``amount == quantity * rate`` for every line (``OrderLine.amount`` is
      derived).
    - Totals are recomputed after every edit, never patched.
    - Line lock state machine::

          UNLOCKED <--(set_material)--> LOCKED --(approved override)--> OVERRIDDEN

      ``OVERRIDDEN`` is terminal for a material id within the session.
    - A rate edit on a LOCKED line that differs from the locked rate by more
      than the tolerance never changes the line; it records a
      ``PendingOverride`` instead.  A smaller edit is applied and the line
      stays LOCKED.
    - A rejected override leaves lines, totals and audit log untouched.
    - The audit log only grows.

Failure modes:
    - ``InvalidQuantityError`` / ``InvalidRateError`` /
      ``InvalidDiscountError`` on bad input; the session is not changed.
    - ``LineIndexError`` for a position with no line.
    - ``NoPendingOverrideError`` when a decision arrives with nothing pending.
    - ``OverrideMismatchError`` when the decision answers a different request
      than the pending one.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Any

from pricing_engines.contract_activity import is_contract_expired
from pricing_engines.override import override_warning_message, requires_override
from pricing_engines.rate_resolver import resolve_rate
from pricing_engines.stock_adequacy import classify, stock_warning
from pricing_engines.totals import recompute_totals
from pricing_kernel.domain.order import (
    LineLockState,
    OrderEditingSession,
    OrderLine,
    OrderSide,
    OrderWarning,
    with_warning,
    without_warnings,
)
from pricing_kernel.domain.override import (
    OverrideAuditRecord,
    OverrideDecision,
    PendingOverride,
)
from pricing_kernel.domain.pricing import (
    ContractRateCatalog,
    Material,
    RateWarningType,
)
from pricing_kernel.domain.stock import StockSnapshot
from pricing_kernel.domain.values import HUNDRED, ZERO, to_decimal
from pricing_kernel.exceptions import (
    InvalidDiscountError,
    InvalidQuantityError,
    InvalidRateError,
    NoPendingOverrideError,
    OverrideMismatchError,
)
from pricing_kernel.logging_config import get_logger

logger = get_logger("engines.order_lines")

DEFAULT_RATE_TOLERANCE = Decimal("0.001")
DEFAULT_VAT_RATE = Decimal("5")

# Resolution classifications that surface as a warning next to the order.
_SURFACED_RATE_WARNINGS = frozenset({
    RateWarningType.CONTRACT_EXPIRED,
    RateWarningType.RATE_ABOVE_MARKET,
})


# =============================================================================
# Session lifecycle
# =============================================================================


def new_session(
    order_id: str,
    side: OrderSide,
    order_date: date,
    catalog: ContractRateCatalog | None = None,
    vat_rate: Decimal = DEFAULT_VAT_RATE,
) -> OrderEditingSession:
    """Create a session with one empty line and recomputed totals."""
    session = OrderEditingSession(
        order_id=order_id,
        side=OrderSide(side),
        order_date=order_date,
        catalog=catalog or ContractRateCatalog.empty(),
        vat_rate=to_decimal(vat_rate, InvalidRateError),
    )
    session = load_contract(session, session.catalog)
    logger.info("order_session_started", extra={
        "order_id": order_id,
        "side": session.side.value,
        "order_date": order_date,
        "counterparty_id": session.catalog.counterparty_id,
        "contract_entries": len(session.catalog),
    })
    return session


def load_contract(
    session: OrderEditingSession,
    catalog: ContractRateCatalog,
) -> OrderEditingSession:
    """Switch the session to ``catalog`` (counterparty change).

    Lines reset to one empty line; warnings and any pending override are
    cleared.  The audit log is kept.
    """
    warnings: tuple[OrderWarning, ...] = ()
    if is_contract_expired(catalog, session.order_date):
        warnings = (OrderWarning(
            warning_type=RateWarningType.CONTRACT_EXPIRED,
            message=(
                f"Contract expired on {catalog.contract_end_date.isoformat()}. "
                "Standard rates will apply."
            ),
        ),)
        logger.info("contract_expired_on_load", extra={
            "counterparty_id": catalog.counterparty_id,
            "contract_end_date": catalog.contract_end_date,
        })

    return _recompute(replace(
        session,
        catalog=catalog,
        lines=(OrderLine(),),
        warnings=warnings,
        pending_override=None,
    ))


# =============================================================================
# Line edits
# =============================================================================


def set_material(
    session: OrderEditingSession,
    index: int,
    material_id: str | None,
    material: Material | None,
    today: date,
    snapshot: StockSnapshot | None = None,
    *,
    currency_code: str = "OMR",
    places: int = 3,
) -> OrderEditingSession:
    """Select ``material_id`` on line ``index`` and resolve its rate.

    ``material`` is the caller's lookup result for ``material_id``; None
    means the material is unknown, which yields rate 0 and a
    ``material_not_found`` warning instead of an error.
    """
    old = session.line(index)
    session = _forget_line_material(session, index, old)

    if not material_id:
        line = OrderLine(quantity=old.quantity)
        return _recompute(session.with_line(index, line))

    warnings = session.warnings
    if material is None:
        logger.warning("material_not_found", extra={
            "material_id": material_id,
            "line_index": index,
        })
        line = OrderLine(material_id=material_id, quantity=old.quantity)
        warnings = with_warning(warnings, OrderWarning(
            warning_type=RateWarningType.MATERIAL_NOT_FOUND,
            material_id=material_id,
            message=f"Material {material_id} not found. Rate must be entered manually.",
        ))
        return _recompute(replace(session.with_line(index, line), warnings=warnings))

    resolution = resolve_rate(
        material, session.catalog.get(material_id), today, currency_code, places,
    )

    if session.is_overridden(material_id):
        lock_state = LineLockState.OVERRIDDEN
    elif resolution.is_contract_rate:
        lock_state = LineLockState.LOCKED
    else:
        lock_state = LineLockState.UNLOCKED

    line = OrderLine(
        material_id=material_id,
        quantity=old.quantity,
        rate=resolution.effective_rate,
        lock_state=lock_state,
        market_rate=resolution.market_rate,
        rate_variant=resolution.variant,
    )

    if lock_state != LineLockState.OVERRIDDEN:
        if resolution.warning_type in _SURFACED_RATE_WARNINGS:
            warnings = with_warning(warnings, OrderWarning(
                warning_type=resolution.warning_type,
                material_id=material_id,
                message=resolution.rationale,
            ))
        else:
            warnings = _drop_pricing_warnings(warnings, material_id)

    if line.quantity > ZERO:
        warnings = _apply_stock_warning(warnings, material_id, line.quantity, snapshot)

    logger.info("line_material_selected", extra={
        "line_index": index,
        "material_id": material_id,
        "rate": str(line.rate),
        "lock_state": lock_state.value,
        "is_contract_rate": resolution.is_contract_rate,
        "is_expired": resolution.is_expired,
    })
    return _recompute(replace(session.with_line(index, line), warnings=warnings))


def set_quantity(
    session: OrderEditingSession,
    index: int,
    quantity: Decimal | int | str,
    snapshot: StockSnapshot | None = None,
) -> OrderEditingSession:
    """Set the quantity of line ``index`` and classify stock adequacy.

    Stock classification only produces a warning; the amount is always
    ``quantity * rate``.
    """
    qty = to_decimal(quantity, InvalidQuantityError)
    line = replace(session.line(index), quantity=qty)
    session = session.with_line(index, line)

    if line.material_id is not None:
        session = replace(
            session,
            warnings=_apply_stock_warning(
                session.warnings, line.material_id, qty, snapshot,
            ),
        )
    return _recompute(session)


def set_rate(
    session: OrderEditingSession,
    index: int,
    rate: Decimal | int | str,
    tolerance: Decimal = DEFAULT_RATE_TOLERANCE,
) -> OrderEditingSession:
    """Edit the rate of line ``index``.

    UNLOCKED and OVERRIDDEN lines take the rate directly.  A LOCKED line
    records a ``PendingOverride`` when the change exceeds ``tolerance``;
    within tolerance the rate is applied and the line stays LOCKED.
    """
    new_rate = to_decimal(rate, InvalidRateError)
    line = session.line(index)

    if requires_override(line, new_rate, tolerance):
        pending = PendingOverride(
            line_index=index,
            material_id=line.material_id,
            original_rate=line.rate,
            requested_rate=new_rate,
        )
        logger.info("override_required", extra={
            "line_index": index,
            "material_id": line.material_id,
            "original_rate": str(line.rate),
            "requested_rate": str(new_rate),
        })
        return replace(session, pending_override=pending)

    if line.is_locked:
        logger.debug("locked_rate_edit_within_tolerance", extra={
            "line_index": index,
            "material_id": line.material_id,
            "requested_rate": str(new_rate),
        })

    return _recompute(session.with_line(index, replace(line, rate=new_rate)))


def add_line(session: OrderEditingSession) -> OrderEditingSession:
    """Append an empty line."""
    return _recompute(replace(session, lines=session.lines + (OrderLine(),)))


def remove_line(session: OrderEditingSession, index: int) -> OrderEditingSession:
    """Remove line ``index``; the last remaining line is never removed."""
    line = session.line(index)
    if len(session.lines) == 1:
        return session

    lines = session.lines[:index] + session.lines[index + 1:]
    warnings = session.warnings
    if line.material_id is not None and all(
        other.material_id != line.material_id for other in lines
    ):
        warnings = without_warnings(warnings, line.material_id)

    pending = session.pending_override
    if pending is not None:
        if pending.line_index == index:
            pending = None
        elif pending.line_index > index:
            pending = replace(pending, line_index=pending.line_index - 1)

    return _recompute(replace(
        session, lines=lines, warnings=warnings, pending_override=pending,
    ))


# =============================================================================
# Order-level settings
# =============================================================================


def set_discount(
    session: OrderEditingSession,
    discount_percent: Decimal | int | str,
) -> OrderEditingSession:
    pct = to_decimal(discount_percent, InvalidDiscountError)
    if pct > HUNDRED:
        raise InvalidDiscountError(discount_percent)
    return _recompute(replace(session, discount_percent=pct))


def set_taxable(session: OrderEditingSession, taxable: bool) -> OrderEditingSession:
    return _recompute(replace(session, taxable=bool(taxable)))


def set_vat_rate(
    session: OrderEditingSession,
    vat_rate: Decimal | int | str,
) -> OrderEditingSession:
    return _recompute(replace(session, vat_rate=to_decimal(vat_rate, InvalidRateError)))


# =============================================================================
# Override workflow
# =============================================================================


def apply_override_decision(
    session: OrderEditingSession,
    decision: OverrideDecision,
    *,
    currency_code: str = "OMR",
    places: int = 3,
) -> OrderEditingSession:
    """Fold an authorizer decision into the session.

    Approved: the pending line takes the requested rate, every line of that
    material becomes OVERRIDDEN, exactly one audit record is appended and a
    ``rate_override_applied`` warning replaces the material's pricing
    warning.  Rejected: the session is returned unchanged, pending override
    included, so the request can be retried or cancelled.
    """
    pending = session.pending_override
    if pending is None:
        raise NoPendingOverrideError()
    request = decision.request
    if (
        request.material_id != pending.material_id
        or request.original_rate != pending.original_rate
        or request.requested_rate != pending.requested_rate
    ):
        raise OverrideMismatchError(pending.material_id, request.material_id)
    if not decision.approved:
        return session

    record = decision.record
    lines = tuple(
        _overridden_line(line, record) if i == pending.line_index
        else _mark_overridden(line, record.material_id)
        for i, line in enumerate(session.lines)
    )
    warnings = with_warning(session.warnings, OrderWarning(
        warning_type=RateWarningType.RATE_OVERRIDE,
        material_id=record.material_id,
        message=override_warning_message(record, currency_code, places),
    ))

    return _recompute(replace(
        session,
        lines=lines,
        warnings=warnings,
        audit_log=session.audit_log + (record,),
        pending_override=None,
    ))


def cancel_override(session: OrderEditingSession) -> OrderEditingSession:
    """Drop the pending override; lines are unchanged."""
    if session.pending_override is None:
        return session
    logger.info("override_cancelled", extra={
        "material_id": session.pending_override.material_id,
        "line_index": session.pending_override.line_index,
    })
    return replace(session, pending_override=None)


# =============================================================================
# Validation and submission
# =============================================================================


def validate_order(
    session: OrderEditingSession,
    is_draft: bool = False,
) -> dict[str, str]:
    """Return field errors keyed by field name; empty when the order is valid.

    ``lines`` flags a line with no material, ``quantity`` a selected material
    whose quantity is not positive.
    """
    errors: dict[str, str] = {}
    if session.catalog.counterparty_id is None:
        errors["counterparty"] = "Please select a counterparty"

    if not is_draft:
        if any(line.is_empty for line in session.lines):
            errors["lines"] = "Please fill in all item details"
        if any(
            not line.is_empty and line.quantity <= ZERO for line in session.lines
        ):
            errors["quantity"] = "Quantity must be greater than zero"
    return errors


@dataclass(frozen=True)
class SubmissionLine:
    material_id: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    is_overridden: bool = False
    override_reason: str | None = None
    original_rate: Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "material_id": self.material_id,
            "quantity": str(self.quantity),
            "unit_price": str(self.unit_price),
            "total_price": str(self.total_price),
        }
        if self.is_overridden:
            data["is_overridden"] = True
            data["override_reason"] = self.override_reason
            data["original_rate"] = (
                str(self.original_rate) if self.original_rate is not None else None
            )
        return data


@dataclass(frozen=True)
class OrderSubmission:
    """Payload handed to order persistence."""

    order_id: str
    side: OrderSide
    counterparty_id: str | None
    order_date: date
    is_draft: bool
    lines: tuple[SubmissionLine, ...]
    subtotal: Decimal
    discount_percent: Decimal
    discount_amount: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    net_amount: Decimal
    overrides: tuple[OverrideAuditRecord, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "side": self.side.value,
            "counterparty_id": self.counterparty_id,
            "order_date": self.order_date.isoformat(),
            "status": "draft" if self.is_draft else "submitted",
            "lines": [line.to_dict() for line in self.lines],
            "subtotal": str(self.subtotal),
            "discount_percent": str(self.discount_percent),
            "discount_amount": str(self.discount_amount),
            "vat_rate": str(self.vat_rate),
            "vat_amount": str(self.vat_amount),
            "net_amount": str(self.net_amount),
            "overrides": [
                {
                    "material_id": r.material_id,
                    "original_rate": str(r.original_rate),
                    "override_rate": str(r.override_rate),
                    "reason": r.reason,
                    "approved_by": r.approved_by,
                    "approved_at": r.approved_at.isoformat(),
                }
                for r in self.overrides
            ],
        }


def to_submission(
    session: OrderEditingSession,
    is_draft: bool = False,
) -> OrderSubmission:
    """Build the persistence payload.

    Drafts keep every line with a material; otherwise only lines with a
    material, a quantity and a rate are kept.
    """
    if is_draft:
        kept = [line for line in session.lines if not line.is_empty]
    else:
        kept = [
            line for line in session.lines
            if not line.is_empty and line.quantity != ZERO and line.rate != ZERO
        ]

    lines = tuple(_submission_line(session, line) for line in kept)
    totals = session.totals
    return OrderSubmission(
        order_id=session.order_id,
        side=session.side,
        counterparty_id=session.catalog.counterparty_id,
        order_date=session.order_date,
        is_draft=is_draft,
        lines=lines,
        subtotal=totals.subtotal,
        discount_percent=totals.discount_percent,
        discount_amount=totals.discount_amount,
        vat_rate=totals.vat_rate,
        vat_amount=totals.vat_amount,
        net_amount=totals.net_amount,
        overrides=session.audit_log,
    )


# =============================================================================
# Helpers
# =============================================================================


def _submission_line(session: OrderEditingSession, line: OrderLine) -> SubmissionLine:
    reason, original_rate = line.override_reason, line.original_rate
    if line.is_overridden and reason is None:
        # Sibling or re-selected lines carry no reason of their own.
        records = session.audit_records_for(line.material_id)
        if records:
            reason, original_rate = records[-1].reason, records[-1].original_rate
    return SubmissionLine(
        material_id=line.material_id,
        quantity=line.quantity,
        unit_price=line.rate,
        total_price=line.amount,
        is_overridden=line.is_overridden,
        override_reason=reason,
        original_rate=original_rate,
    )


def _recompute(session: OrderEditingSession) -> OrderEditingSession:
    totals = recompute_totals(
        session.lines, session.discount_percent, session.taxable, session.vat_rate,
    )
    return replace(session, totals=totals)


def _forget_line_material(
    session: OrderEditingSession,
    index: int,
    old: OrderLine,
) -> OrderEditingSession:
    """Clear state tied to the material a line is about to stop using."""
    pending = session.pending_override
    if pending is not None and pending.line_index == index:
        session = replace(session, pending_override=None)

    if old.material_id is None:
        return session
    still_used = any(
        line.material_id == old.material_id
        for i, line in enumerate(session.lines) if i != index
    )
    if still_used:
        return session
    return replace(session, warnings=without_warnings(session.warnings, old.material_id))


def _drop_pricing_warnings(
    warnings: tuple[OrderWarning, ...],
    material_id: str,
) -> tuple[OrderWarning, ...]:
    return tuple(
        w for w in warnings
        if w.material_id != material_id or w.is_stock_warning
    )


def _apply_stock_warning(
    warnings: tuple[OrderWarning, ...],
    material_id: str,
    quantity: Decimal,
    snapshot: StockSnapshot | None,
) -> tuple[OrderWarning, ...]:
    warnings = without_warnings(warnings, material_id, stock_only=True)
    if snapshot is None:
        return warnings
    warning = stock_warning(classify(quantity, snapshot), snapshot)
    if warning is None:
        return warnings
    return with_warning(warnings, warning)


def _overridden_line(line: OrderLine, record: OverrideAuditRecord) -> OrderLine:
    return replace(
        line,
        rate=record.override_rate,
        lock_state=LineLockState.OVERRIDDEN,
        original_rate=record.original_rate,
        override_reason=record.reason,
    )


def _mark_overridden(line: OrderLine, material_id: str) -> OrderLine:
    if line.material_id != material_id or line.is_overridden:
        return line
    return replace(line, lock_state=LineLockState.OVERRIDDEN)
