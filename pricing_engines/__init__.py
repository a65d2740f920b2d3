"""
Module: pricing_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    contract-pricing engines.  This is the canonical import surface for
    ``pricing_services``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import pricing_kernel (domain, exceptions, logging) and sibling
    engine modules.  MUST NOT import pricing_services.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      ``today`` and ``approved_at`` are passed in by services, which read
      them from the injected ``Clock``.
    - Decimal-only arithmetic; no rounding of derived values.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    ``effective_rate`` and ``recompute_totals`` are traced via
    ``@traced_engine`` (see ``pricing_engines.tracer``), emitting
    PRICING_ENGINE_TRACE records with engine name, version, input
    fingerprint and duration.

Usage:
    from pricing_engines import effective_rate, resolve_rate
    from pricing_engines import OverrideAuthorizer
    from pricing_engines import order_lines
"""

from pricing_kernel.logging_config import get_logger

logger = get_logger("engines")

from pricing_engines import order_lines  # noqa: E402
from pricing_engines.contract_activity import (  # noqa: E402
    ContractSummary,
    is_active,
    is_contract_expired,
    is_expired,
    summarize_contract,
)
from pricing_engines.order_lines import (  # noqa: E402
    OrderSubmission,
    SubmissionLine,
)
from pricing_engines.override import (  # noqa: E402
    OverrideAuthorizer,
    override_warning_message,
    requires_override,
    validate_override_request,
)
from pricing_engines.rate_resolver import effective_rate, resolve_rate  # noqa: E402
from pricing_engines.stock_adequacy import classify, stock_warning  # noqa: E402
from pricing_engines.totals import recompute_totals  # noqa: E402
from pricing_engines.tracer import compute_input_fingerprint, traced_engine  # noqa: E402

__all__ = [
    "ContractSummary",
    "OrderSubmission",
    "OverrideAuthorizer",
    "SubmissionLine",
    "classify",
    "compute_input_fingerprint",
    "effective_rate",
    "is_active",
    "is_contract_expired",
    "is_expired",
    "order_lines",
    "override_warning_message",
    "recompute_totals",
    "requires_override",
    "resolve_rate",
    "stock_warning",
    "summarize_contract",
    "traced_engine",
    "validate_override_request",
]
