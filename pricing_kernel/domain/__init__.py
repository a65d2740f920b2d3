"""Pure domain value objects for contract pricing and order editing."""

from pricing_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from pricing_kernel.domain.order import (
    LineLockState,
    OrderEditingSession,
    OrderLine,
    OrderSide,
    OrderTotals,
    OrderWarning,
)
from pricing_kernel.domain.override import (
    ApproverIdentity,
    OverrideAuditRecord,
    OverrideAuthority,
    OverrideDecision,
    OverrideRejectionReason,
    OverrideRequest,
    PendingOverride,
)
from pricing_kernel.domain.pricing import (
    ContractRateCatalog,
    ContractRateEntry,
    ContractRateVariant,
    ContractStatus,
    Material,
    MaterialSource,
    RateResolution,
    RateWarningType,
)
from pricing_kernel.domain.stock import StockAdequacy, StockAdvisor, StockSnapshot

__all__ = [
    "ApproverIdentity",
    "Clock",
    "ContractRateCatalog",
    "ContractRateEntry",
    "ContractRateVariant",
    "ContractStatus",
    "DeterministicClock",
    "LineLockState",
    "Material",
    "MaterialSource",
    "OrderEditingSession",
    "OrderLine",
    "OrderSide",
    "OrderTotals",
    "OrderWarning",
    "OverrideAuditRecord",
    "OverrideAuthority",
    "OverrideDecision",
    "OverrideRejectionReason",
    "OverrideRequest",
    "PendingOverride",
    "RateResolution",
    "RateWarningType",
    "StockAdequacy",
    "StockAdvisor",
    "StockSnapshot",
    "SystemClock",
]
