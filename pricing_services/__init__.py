"""
pricing_services -- Package init and public API.

Responsibility:
    Orchestration services that compose the pure pricing engines with
    injected collaborators, the clock, and database sessions.  This is the
    **only** layer that may hold database sessions or read wall-clock time.

Architecture position:
    Services -- orchestration over engines + kernel.

    Dependency direction:
        pricing_services/ -> pricing_engines/  (allowed)
        pricing_services/ -> pricing_kernel/   (allowed)
        pricing_engines/  -> pricing_services/ (FORBIDDEN)
        pricing_kernel/   -> pricing_services/ (FORBIDDEN)
"""

from pricing_kernel.logging_config import get_logger

logger = get_logger("services")

from pricing_services.audit_repository import OverrideAuditRepository  # noqa: E402
from pricing_services.order_editing_service import (  # noqa: E402
    OrderEditingService,
    OverrideOutcome,
)
from pricing_services.override_authority import (  # noqa: E402
    CredentialVerifier,
    RoleBasedOverrideAuthority,
)

__all__ = [
    "CredentialVerifier",
    "OrderEditingService",
    "OverrideAuditRepository",
    "OverrideOutcome",
    "RoleBasedOverrideAuthority",
]
