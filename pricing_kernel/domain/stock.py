"""
Stock snapshot types (``pricing_kernel.domain.stock``).

A ``StockSnapshot`` is a point-in-time read supplied by the stock advisor
collaborator for one line edit.  It is advisory only: classification never
blocks line computation or the override flow.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Protocol

from pricing_kernel.domain.values import to_decimal
from pricing_kernel.exceptions import InvalidQuantityError


class StockAdequacy(str, Enum):
    """Advisory classification of a requested quantity against stock."""

    INSUFFICIENT = "insufficient"
    LOW = "low"
    SUFFICIENT = "sufficient"


@dataclass(frozen=True)
class StockSnapshot:
    """Current stock and reorder threshold for one material."""

    material_id: str
    current_stock: Decimal
    reorder_level: Decimal
    unit: str = ""

    def __post_init__(self) -> None:
        # Negative on-hand is possible after unposted issues; keep it.
        object.__setattr__(
            self,
            "current_stock",
            to_decimal(self.current_stock, InvalidQuantityError, allow_negative=True),
        )
        object.__setattr__(
            self,
            "reorder_level",
            to_decimal(self.reorder_level, InvalidQuantityError, allow_negative=True),
        )


class StockAdvisor(Protocol):
    """Supplies stock snapshots; the engine only classifies, never fetches."""

    def get_stock(self, material_id: str) -> StockSnapshot | None:
        """Return the current snapshot, or None when stock is not tracked."""
        ...
