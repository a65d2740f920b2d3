"""
Contract pricing domain types (``pricing_kernel.domain.pricing``).

Responsibility
--------------
Frozen value objects for materials, negotiated contract rate entries, the
per-session contract rate catalog, and the result of rate resolution.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  May import only
from ``domain/values`` and ``pricing_kernel.exceptions``.

Invariants enforced
-------------------
* Materials carry a non-negative ``standard_price``.
* A contract entry's fields agree with its variant: FixedRate and
  MinimumPriceGuarantee carry a non-negative ``contract_rate``;
  DiscountPercentage carries a ``discount_percentage`` in 0..100.
* ``end_date`` never precedes ``start_date``.
* A catalog holds at most one entry per material.

Failure modes
-------------
* ``MalformedContractEntryError`` on any of the above violations.
* ``InvalidRateError`` on a negative or non-numeric ``standard_price``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Protocol

from pricing_kernel.domain.values import HUNDRED, ZERO, to_decimal
from pricing_kernel.exceptions import InvalidRateError, MalformedContractEntryError


class ContractRateVariant(str, Enum):
    """How a contract entry derives its rate from the market price."""

    FIXED_RATE = "fixed_rate"
    DISCOUNT_PERCENTAGE = "discount_percentage"
    MINIMUM_PRICE_GUARANTEE = "minimum_price_guarantee"


class ContractStatus(str, Enum):
    """Administrative status flag on a contract entry."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class RateWarningType(str, Enum):
    """Category of a user-facing warning raised during order entry."""

    CONTRACT_EXPIRED = "contract_expired"
    RATE_APPLIED = "contract_rate_applied"
    RATE_ABOVE_MARKET = "contract_rate_above_market"
    RATE_OVERRIDE = "rate_override_applied"
    STOCK_INSUFFICIENT = "stock_insufficient"
    STOCK_LOW = "stock_low"
    MATERIAL_NOT_FOUND = "material_not_found"


@dataclass(frozen=True)
class Material:
    """A sellable/purchasable material with its current market rate."""

    material_id: str
    name: str
    unit: str
    standard_price: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "standard_price", to_decimal(self.standard_price, InvalidRateError),
        )


@dataclass(frozen=True)
class ContractRateEntry:
    """A negotiated pricing rule for one material.

    Owned by the contract record of the counterparty; read-only here.
    """

    material_id: str
    variant: ContractRateVariant
    start_date: date
    contract_rate: Decimal | None = None
    discount_percentage: Decimal | None = None
    end_date: date | None = None
    status: ContractStatus = ContractStatus.ACTIVE
    description: str = ""

    def __post_init__(self) -> None:
        try:
            variant = ContractRateVariant(self.variant)
            status = ContractStatus(self.status)
        except ValueError as exc:
            raise MalformedContractEntryError(self.material_id, str(exc)) from exc
        object.__setattr__(self, "variant", variant)
        object.__setattr__(self, "status", status)

        def _malformed(value: object) -> MalformedContractEntryError:
            return MalformedContractEntryError(
                self.material_id, f"invalid numeric value {value!r}",
            )

        if variant in (
            ContractRateVariant.FIXED_RATE,
            ContractRateVariant.MINIMUM_PRICE_GUARANTEE,
        ):
            if self.contract_rate is None:
                raise MalformedContractEntryError(
                    self.material_id, f"{variant.value} requires contract_rate",
                )
            object.__setattr__(
                self, "contract_rate", to_decimal(self.contract_rate, _malformed),
            )
        elif self.contract_rate is not None:
            object.__setattr__(
                self, "contract_rate", to_decimal(self.contract_rate, _malformed),
            )

        if variant == ContractRateVariant.DISCOUNT_PERCENTAGE:
            if self.discount_percentage is None:
                raise MalformedContractEntryError(
                    self.material_id, "discount_percentage requires a percentage",
                )
            pct = to_decimal(self.discount_percentage, _malformed)
            if pct > HUNDRED:
                raise MalformedContractEntryError(
                    self.material_id,
                    f"discount_percentage must be between 0 and 100, got {pct}",
                )
            object.__setattr__(self, "discount_percentage", pct)

        if self.end_date is not None and self.end_date < self.start_date:
            raise MalformedContractEntryError(
                self.material_id,
                f"end_date {self.end_date} precedes start_date {self.start_date}",
            )


@dataclass(frozen=True)
class ContractRateCatalog:
    """Immutable-per-session lookup of contract rate entries by material.

    ``counterparty_id`` identifies the customer (sales) or supplier
    (purchase) whose contract produced the entries; ``contract_end_date`` is
    the end of the contract as a whole, used for the load-time expiry notice.
    """

    counterparty_id: str | None = None
    contract_end_date: date | None = None
    entries: Mapping[str, ContractRateEntry] = field(
        default_factory=lambda: MappingProxyType({}),
    )

    @classmethod
    def from_entries(
        cls,
        entries: Iterable[ContractRateEntry],
        counterparty_id: str | None = None,
        contract_end_date: date | None = None,
    ) -> ContractRateCatalog:
        by_material: dict[str, ContractRateEntry] = {}
        for entry in entries:
            if entry.material_id in by_material:
                raise MalformedContractEntryError(
                    entry.material_id, "duplicate entry for material in contract",
                )
            by_material[entry.material_id] = entry
        return cls(
            counterparty_id=counterparty_id,
            contract_end_date=contract_end_date,
            entries=MappingProxyType(by_material),
        )

    @classmethod
    def empty(cls, counterparty_id: str | None = None) -> ContractRateCatalog:
        return cls(counterparty_id=counterparty_id)

    def get(self, material_id: str | None) -> ContractRateEntry | None:
        if material_id is None:
            return None
        return self.entries.get(material_id)

    def has_entry(self, material_id: str | None) -> bool:
        return material_id is not None and material_id in self.entries

    @property
    def material_ids(self) -> tuple[str, ...]:
        return tuple(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class RateResolution:
    """Outcome of resolving the effective rate for one material.

    ``rationale`` and ``warning_type`` are display classification only; they
    never influence ``effective_rate``.
    """

    material_id: str
    effective_rate: Decimal
    market_rate: Decimal
    is_contract_rate: bool
    is_expired: bool = False
    contract_rate: Decimal | None = None
    variant: ContractRateVariant | None = None
    discount_percentage: Decimal | None = None
    expiry_date: date | None = None
    rationale: str = ""
    warning_type: RateWarningType | None = None

    @property
    def savings(self) -> Decimal:
        """Per-unit saving against market, never negative."""
        return max(ZERO, self.market_rate - self.effective_rate)

    @property
    def has_contract(self) -> bool:
        return self.is_contract_rate or self.is_expired


class MaterialSource(Protocol):
    """Read-only source of material master data."""

    def get_material(self, material_id: str) -> Material | None:
        """Return the material, or None when it is unknown."""
        ...
