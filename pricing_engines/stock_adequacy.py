"""
pricing_engines.stock_adequacy -- Advisory stock classification.

Classifies a requested quantity against a stock snapshot supplied by the
stock advisor.  Purely advisory: the result only produces a warning, it
never blocks line computation or the override flow.

    insufficient  quantity > current_stock
    low           not insufficient and current_stock <= reorder_level
    sufficient    otherwise
"""

from __future__ import annotations

from decimal import Decimal

from pricing_kernel.domain.order import OrderWarning
from pricing_kernel.domain.pricing import RateWarningType
from pricing_kernel.domain.stock import StockAdequacy, StockSnapshot
from pricing_kernel.logging_config import get_logger

logger = get_logger("engines.stock_adequacy")


def classify(quantity: Decimal, snapshot: StockSnapshot) -> StockAdequacy:
    """Classify ``quantity`` against ``snapshot``."""
    if quantity > snapshot.current_stock:
        result = StockAdequacy.INSUFFICIENT
    elif snapshot.current_stock <= snapshot.reorder_level:
        result = StockAdequacy.LOW
    else:
        result = StockAdequacy.SUFFICIENT

    logger.debug("stock_classified", extra={
        "material_id": snapshot.material_id,
        "quantity": str(quantity),
        "current_stock": str(snapshot.current_stock),
        "reorder_level": str(snapshot.reorder_level),
        "adequacy": result.value,
    })
    return result


def stock_warning(
    adequacy: StockAdequacy,
    snapshot: StockSnapshot,
) -> OrderWarning | None:
    """Warning text for a classification; None when stock is sufficient."""
    available = f"{snapshot.current_stock} {snapshot.unit}".rstrip()
    if adequacy == StockAdequacy.INSUFFICIENT:
        return OrderWarning(
            warning_type=RateWarningType.STOCK_INSUFFICIENT,
            material_id=snapshot.material_id,
            message=f"Insufficient stock! Available: {available}",
        )
    if adequacy == StockAdequacy.LOW:
        return OrderWarning(
            warning_type=RateWarningType.STOCK_LOW,
            material_id=snapshot.material_id,
            message=f"Low stock: {available}",
        )
    return None
