"""
pricing_services.override_authority -- Role-gated approval capability.

Responsibility:
    Turn an opaque approver credential proof into an ``ApproverIdentity``
    and check that the approver may override contract rates.

Architecture position:
    Services layer.  Implements the kernel ``OverrideAuthority`` protocol
    consumed by ``pricing_engines.override.OverrideAuthorizer``.

Invariants:
    - There is no shared secret.  Proof verification is delegated to an
      injected ``CredentialVerifier`` (identity provider, session store,
      signed token checker, ...), which resolves a real principal.
    - Allowed roles come from ``PricingConfig.override_approver_roles``.
"""

from __future__ import annotations

from typing import Any, Protocol

from pricing_kernel.domain.override import ApproverIdentity, OverrideRequest
from pricing_kernel.exceptions import ApproverNotAuthorizedError, InvalidCredentialError
from pricing_kernel.logging_config import get_logger

logger = get_logger("services.override_authority")


class CredentialVerifier(Protocol):
    """Resolves a credential proof to the principal it belongs to."""

    def resolve(self, proof: Any) -> ApproverIdentity | None:
        """Return the approver, or None when the proof does not verify."""
        ...


class RoleBasedOverrideAuthority:
    """``OverrideAuthority`` that requires one of the configured roles."""

    def __init__(
        self,
        verifier: CredentialVerifier,
        approver_roles: tuple[str, ...] = ("manager",),
    ):
        self._verifier = verifier
        self._approver_roles = tuple(approver_roles)

    @property
    def approver_roles(self) -> tuple[str, ...]:
        return self._approver_roles

    def verify(self, proof: Any, request: OverrideRequest) -> ApproverIdentity:
        if proof is None:
            raise InvalidCredentialError("Approver credentials are required")

        approver = self._verifier.resolve(proof)
        if approver is None:
            logger.warning("override_credential_rejected", extra={
                "material_id": request.material_id,
            })
            raise InvalidCredentialError()

        if not approver.has_any_role(self._approver_roles):
            logger.warning("override_approver_not_authorized", extra={
                "material_id": request.material_id,
                "approver_id": approver.approver_id,
                "approver_roles": list(approver.roles),
                "required_roles": list(self._approver_roles),
            })
            raise ApproverNotAuthorizedError(approver.approver_id, self._approver_roles)

        logger.debug("override_approver_verified", extra={
            "material_id": request.material_id,
            "approver_id": approver.approver_id,
        })
        return approver
