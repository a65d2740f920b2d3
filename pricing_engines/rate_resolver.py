"""
pricing_engines.rate_resolver -- Effective unit rate for a material line.

Responsibility:
    Resolve the unit rate that applies to a material given its (optional)
    contract rate entry and the current day, and classify the result into a
    human-readable rationale for display.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import pricing_kernel/domain types and sibling engines.

Invariants enforced:
    - Determinism: ``effective_rate`` is a pure function of
      (material, entry, today).  No hidden state.
    - Inactive or expired entries resolve to ``material.standard_price``.
    - Variant dispatch is exhaustive: ``_RATE_RULES`` has one rule per
      ``ContractRateVariant`` member, checked at import time.
    - The rationale never feeds back into the numeric result.

Variant rules:
    FIXED_RATE               contract_rate, even when above market.
    DISCOUNT_PERCENTAGE      max(0, market - market * pct / 100).
    MINIMUM_PRICE_GUARANTEE  min(market, contract_rate).

Failure modes:
    - UnsupportedContractVariantError if dispatch ever falls through.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from decimal import Decimal

from pricing_engines.contract_activity import is_active
from pricing_engines.tracer import traced_engine
from pricing_kernel.domain.pricing import (
    ContractRateEntry,
    ContractRateVariant,
    Material,
    RateResolution,
    RateWarningType,
)
from pricing_kernel.domain.values import (
    HUNDRED,
    ZERO,
    format_amount,
    format_percent,
)
from pricing_kernel.exceptions import UnsupportedContractVariantError
from pricing_kernel.logging_config import get_logger

logger = get_logger("engines.rate_resolver")


def _fixed_rate(market: Decimal, entry: ContractRateEntry) -> Decimal:
    return entry.contract_rate


def _discount_percentage(market: Decimal, entry: ContractRateEntry) -> Decimal:
    discount = market * entry.discount_percentage / HUNDRED
    return max(ZERO, market - discount)


def _minimum_price_guarantee(market: Decimal, entry: ContractRateEntry) -> Decimal:
    return min(market, entry.contract_rate)


_RATE_RULES: dict[ContractRateVariant, Callable[[Decimal, ContractRateEntry], Decimal]] = {
    ContractRateVariant.FIXED_RATE: _fixed_rate,
    ContractRateVariant.DISCOUNT_PERCENTAGE: _discount_percentage,
    ContractRateVariant.MINIMUM_PRICE_GUARANTEE: _minimum_price_guarantee,
}

_missing_rules = set(ContractRateVariant) - set(_RATE_RULES)
if _missing_rules:
    raise RuntimeError(
        f"rate_resolver has no rule for variants: {sorted(v.value for v in _missing_rules)}"
    )


def _contract_rate_for(material: Material, entry: ContractRateEntry) -> Decimal:
    rule = _RATE_RULES.get(entry.variant)
    if rule is None:
        logger.error("rate_resolver_unsupported_variant", extra={
            "material_id": material.material_id,
            "variant": str(entry.variant),
        })
        raise UnsupportedContractVariantError(entry.variant)
    return rule(material.standard_price, entry)


@traced_engine("rate_resolver", "1.0", fingerprint_fields=("material", "entry", "today"))
def effective_rate(
    material: Material,
    entry: ContractRateEntry | None,
    today: date,
) -> Decimal:
    """Return the unit rate that applies to ``material`` on ``today``.

    Args:
        material: The material being priced.
        entry: The counterparty's contract entry for the material, if any.
        today: The day the rate must be enforceable on.

    Returns:
        The contract-derived rate when ``entry`` is active, otherwise
        ``material.standard_price``.
    """
    if entry is None or not is_active(entry, today):
        return material.standard_price
    return _contract_rate_for(material, entry)


def resolve_rate(
    material: Material,
    entry: ContractRateEntry | None,
    today: date,
    currency_code: str = "OMR",
    places: int = 3,
) -> RateResolution:
    """Resolve the effective rate and classify it for display.

    The numeric result is exactly ``effective_rate(material, entry, today)``.
    """
    rate = effective_rate(material, entry, today)
    market = material.standard_price

    if entry is None:
        resolution = RateResolution(
            material_id=material.material_id,
            effective_rate=rate,
            market_rate=market,
            is_contract_rate=False,
            rationale=f"Standard market rate: {format_amount(market, places, currency_code)}",
        )
    elif not is_active(entry, today):
        ended = entry.end_date.isoformat() if entry.end_date else "unknown"
        resolution = RateResolution(
            material_id=material.material_id,
            effective_rate=rate,
            market_rate=market,
            is_contract_rate=False,
            is_expired=True,
            contract_rate=entry.contract_rate,
            variant=entry.variant,
            expiry_date=entry.end_date,
            rationale=(
                f"Contract EXPIRED on {ended}. Using standard rate: "
                f"{format_amount(market, places, currency_code)}. Renewal pending."
            ),
            warning_type=RateWarningType.CONTRACT_EXPIRED,
        )
        logger.info("contract_entry_expired", extra={
            "material_id": material.material_id,
            "variant": entry.variant.value,
            "end_date": entry.end_date,
            "status": entry.status.value,
            "today": today,
        })
    else:
        rationale, warning_type = _active_rationale(
            entry, rate, market, currency_code, places,
        )
        resolution = RateResolution(
            material_id=material.material_id,
            effective_rate=rate,
            market_rate=market,
            is_contract_rate=True,
            contract_rate=entry.contract_rate,
            variant=entry.variant,
            discount_percentage=entry.discount_percentage,
            expiry_date=entry.end_date,
            rationale=rationale,
            warning_type=warning_type,
        )

    logger.debug("rate_resolved", extra={
        "material_id": material.material_id,
        "effective_rate": str(resolution.effective_rate),
        "market_rate": str(market),
        "is_contract_rate": resolution.is_contract_rate,
        "is_expired": resolution.is_expired,
    })
    return resolution


def _active_rationale(
    entry: ContractRateEntry,
    rate: Decimal,
    market: Decimal,
    currency_code: str,
    places: int,
) -> tuple[str, RateWarningType]:
    """Describe an active contract rate relative to market."""

    def fmt(value: Decimal) -> str:
        return format_amount(value, places, currency_code)

    until = f" - Active until {entry.end_date.isoformat()}" if entry.end_date else ""
    warning_type = RateWarningType.RATE_APPLIED

    if entry.variant == ContractRateVariant.FIXED_RATE:
        diff = market - rate
        if diff > ZERO and market > ZERO:
            pct = format_percent(diff / market * HUNDRED)
            text = (
                f"Fixed contract rate: {fmt(rate)} ({pct}% savings vs market "
                f"{fmt(market)}){until}"
            )
        elif diff < ZERO:
            if market > ZERO:
                premium = f"{format_percent(-diff / market * HUNDRED)}% above market"
            else:
                premium = "above market"
            text = f"Fixed contract rate: {fmt(rate)} ({premium} {fmt(market)}){until}"
            warning_type = RateWarningType.RATE_ABOVE_MARKET
        else:
            text = f"Fixed contract rate: {fmt(rate)} (matches market rate){until}"
    elif entry.variant == ContractRateVariant.DISCOUNT_PERCENTAGE:
        text = (
            f"Contract discount: {entry.discount_percentage}% off market rate "
            f"({fmt(rate)} vs {fmt(market)}){until}"
        )
    elif rate == entry.contract_rate:
        text = (
            f"Price guarantee: Using contract rate {fmt(rate)} "
            f"(market: {fmt(market)}){until}"
        )
    else:
        text = (
            f"Price guarantee: Using market rate {fmt(rate)} "
            f"(contract allows up to {fmt(entry.contract_rate)}){until}"
        )
    return text, warning_type
