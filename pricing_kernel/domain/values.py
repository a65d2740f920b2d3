"""
Values -- Decimal coercion and display helpers for pricing computations.

Responsibility:
    Turn user- or collaborator-supplied numbers into ``Decimal`` at the
    domain boundary, and render Decimals as human-readable currency strings.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Decimal-only arithmetic: floats are converted through ``str()`` so
      ``0.1`` becomes ``Decimal("0.1")`` rather than its binary expansion.
    - Rounding is display-only.  ``format_amount`` quantizes a copy; it never
      feeds a rounded value back into computation.

Failure modes:
    - ``to_decimal`` raises the caller-supplied ValidationError subclass on
      values that cannot be parsed, NaN, or infinities.
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from pricing_kernel.exceptions import ValidationError

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(
    value: Decimal | int | float | str | None,
    error: Callable[[object], ValidationError],
    *,
    allow_negative: bool = False,
) -> Decimal:
    """Coerce ``value`` to a finite Decimal or raise ``error(value)``.

    ``None`` and blank strings are rejected; callers that treat a blank field
    as zero must do so explicitly.
    """
    if value is None or isinstance(value, bool):
        raise error(value)
    if isinstance(value, Decimal):
        result = value
    else:
        text = str(value).strip()
        if not text:
            raise error(value)
        try:
            result = Decimal(text)
        except (InvalidOperation, ValueError) as exc:
            raise error(value) from exc
    if not result.is_finite():
        raise error(value)
    if not allow_negative and result < ZERO:
        raise error(value)
    return result


def format_amount(value: Decimal, places: int, currency_code: str | None = None) -> str:
    """Render ``value`` with a fixed number of decimal places.

    >>> format_amount(Decimal("8"), 3, "OMR")
    'OMR 8.000'
    """
    quantum = Decimal(1).scaleb(-places)
    text = str(value.quantize(quantum, rounding=ROUND_HALF_UP))
    if currency_code:
        return f"{currency_code} {text}"
    return text


def format_percent(value: Decimal, places: int = 1) -> str:
    """Render a percentage with ``places`` decimals (no sign, no % suffix)."""
    quantum = Decimal(1).scaleb(-places)
    return str(value.quantize(quantum, rounding=ROUND_HALF_UP))
