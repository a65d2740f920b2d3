"""
pricing_engines.totals -- Order totals reducer.

Responsibility:
    Derive order-level figures from the complete line list.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Recompute, don't patch: totals are always derived from the whole line
      list, never adjusted incrementally.
    - Idempotence: identical inputs yield identical (Decimal-equal) totals.
    - No rounding; display layers quantize.

Formula::

    subtotal        = sum(line.amount)
    discount_amount = subtotal * discount_percent / 100
    taxable_base    = subtotal - discount_amount
    vat_amount      = taxable_base * vat_rate / 100   (0 when not taxable)
    net_amount      = taxable_base + vat_amount
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from pricing_engines.tracer import traced_engine
from pricing_kernel.domain.order import OrderLine, OrderTotals
from pricing_kernel.domain.values import HUNDRED, ZERO
from pricing_kernel.logging_config import get_logger

logger = get_logger("engines.totals")


@traced_engine(
    "order_totals", "1.0",
    fingerprint_fields=("discount_percent", "taxable", "vat_rate"),
)
def recompute_totals(
    lines: Iterable[OrderLine],
    discount_percent: Decimal,
    taxable: bool,
    vat_rate: Decimal,
) -> OrderTotals:
    """Derive ``OrderTotals`` from ``lines``.

    A non-taxable order reports ``vat_rate`` 0, matching what is persisted
    for tax-exempt counterparties.
    """
    subtotal = sum((line.amount for line in lines), ZERO)
    discount_amount = subtotal * discount_percent / HUNDRED
    taxable_base = subtotal - discount_amount
    effective_vat_rate = vat_rate if taxable else ZERO
    vat_amount = taxable_base * effective_vat_rate / HUNDRED
    net_amount = taxable_base + vat_amount

    logger.debug("totals_recomputed", extra={
        "subtotal": str(subtotal),
        "discount_amount": str(discount_amount),
        "vat_amount": str(vat_amount),
        "net_amount": str(net_amount),
    })

    return OrderTotals(
        subtotal=subtotal,
        discount_percent=discount_percent,
        discount_amount=discount_amount,
        taxable_base=taxable_base,
        vat_rate=effective_vat_rate,
        vat_amount=vat_amount,
        net_amount=net_amount,
    )
