"""
pricing_engines.contract_activity -- Contract enforceability predicate.

Responsibility:
    Decide whether a contract rate entry is enforceable on a given day, and
    summarize a counterparty's catalog (active / expired / overridden).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import pricing_kernel/domain types.

Invariants enforced:
    - An entry is active iff its status flag is ``active`` AND it has no end
      date or its end date is on or after ``today`` (the end date itself is
      enforceable through end of day).
    - An entry whose end date has passed is never active, whatever its flag.
    - Purity: ``today`` is always passed in; no clock access.

Failure modes:
    None.  ``None`` entries are simply not active.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from pricing_kernel.domain.override import OverrideAuditRecord
from pricing_kernel.domain.pricing import (
    ContractRateCatalog,
    ContractRateEntry,
    ContractStatus,
)


def is_active(entry: ContractRateEntry | None, today: date) -> bool:
    """True iff ``entry`` is enforceable on ``today``."""
    if entry is None:
        return False
    if entry.status != ContractStatus.ACTIVE:
        return False
    if entry.end_date is None:
        return True
    return entry.end_date >= today


def is_expired(entry: ContractRateEntry | None, today: date) -> bool:
    """True when an entry exists but is not enforceable on ``today``."""
    return entry is not None and not is_active(entry, today)


def is_contract_expired(catalog: ContractRateCatalog, today: date) -> bool:
    """True when the counterparty's contract as a whole ended before ``today``."""
    return (
        catalog.contract_end_date is not None
        and catalog.contract_end_date < today
    )


@dataclass(frozen=True)
class ContractSummary:
    """Counts of a catalog's entries by enforceability on one day."""

    total_materials: int
    active_rates: int
    expired_rates: int
    overridden_rates: int

    @property
    def has_active_contract(self) -> bool:
        return self.active_rates > 0


def summarize_contract(
    catalog: ContractRateCatalog,
    audit_log: Iterable[OverrideAuditRecord],
    today: date,
) -> ContractSummary | None:
    """Summarize ``catalog`` as of ``today``; None for an empty catalog.

    ``overridden_rates`` counts distinct materials with at least one
    approved override in ``audit_log``.
    """
    if len(catalog) == 0:
        return None
    active = sum(1 for e in catalog.entries.values() if is_active(e, today))
    overridden = len({r.material_id for r in audit_log})
    return ContractSummary(
        total_materials=len(catalog),
        active_rates=active,
        expired_rates=len(catalog) - active,
        overridden_rates=overridden,
    )
