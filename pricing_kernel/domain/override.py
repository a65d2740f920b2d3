"""
Rate override domain types (``pricing_kernel.domain.override``).

Responsibility
--------------
Value objects for the contract-rate override workflow: the transient
request, the pending state held by an editing session, the approver identity
resolved from a credential proof, the decision returned by the authorizer,
and the append-only audit record.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* ``OverrideAuditRecord`` is frozen and only ever appended to a session's
  audit log; nothing in the kernel updates or removes one.
* ``approved_by`` is the identity resolved by the approval capability, not a
  fixed label.
* ``OverrideDecision`` is either approved with a record, or rejected with a
  reason -- never both.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol

from pricing_kernel.domain.values import HUNDRED, ZERO


@dataclass(frozen=True)
class ApproverIdentity:
    """The real principal behind a verified credential proof."""

    approver_id: str
    display_name: str
    roles: tuple[str, ...] = ()

    def has_any_role(self, roles: tuple[str, ...]) -> bool:
        return any(role in self.roles for role in roles)


@dataclass(frozen=True)
class OverrideRequest:
    """A request to deviate from the contract-resolved rate of a line.

    ``approver_credential_proof`` is opaque to the engine; only the injected
    approval capability interprets it.
    """

    material_id: str
    original_rate: Decimal
    requested_rate: Decimal
    reason: str
    approver_credential_proof: Any = None

    @property
    def difference(self) -> Decimal:
        return self.requested_rate - self.original_rate

    @property
    def difference_percent(self) -> Decimal:
        """Difference as a percentage of the original rate (0 when original is 0)."""
        if self.original_rate == ZERO:
            return ZERO
        return self.difference / self.original_rate * HUNDRED

    @property
    def is_increase(self) -> bool:
        return self.difference > ZERO

    def __repr__(self) -> str:
        # Never echo the credential proof into logs or tracebacks.
        return (
            f"OverrideRequest(material_id={self.material_id!r}, "
            f"original_rate={self.original_rate!r}, "
            f"requested_rate={self.requested_rate!r}, reason={self.reason!r})"
        )


@dataclass(frozen=True)
class PendingOverride:
    """A locked-line rate edit awaiting an approval decision."""

    line_index: int
    material_id: str
    original_rate: Decimal
    requested_rate: Decimal

    def to_request(self, reason: str, proof: Any) -> OverrideRequest:
        return OverrideRequest(
            material_id=self.material_id,
            original_rate=self.original_rate,
            requested_rate=self.requested_rate,
            reason=reason,
            approver_credential_proof=proof,
        )


@dataclass(frozen=True)
class OverrideAuditRecord:
    """Immutable log entry for one approved override."""

    material_id: str
    original_rate: Decimal
    override_rate: Decimal
    reason: str
    approved_by: str
    approved_at: datetime
    approver_name: str = ""


class OverrideRejectionReason(str, Enum):
    """Why an override request was not accepted."""

    REASON_TOO_SHORT = "reason_too_short"
    INVALID_CREDENTIAL = "invalid_credential"
    NOT_AUTHORIZED = "not_authorized"
    NO_CHANGE = "no_change"


@dataclass(frozen=True)
class OverrideDecision:
    """Result of an authorization attempt."""

    approved: bool
    request: OverrideRequest
    record: OverrideAuditRecord | None = None
    rejection: OverrideRejectionReason | None = None
    error_code: str | None = None
    message: str = ""

    def __post_init__(self) -> None:
        if self.approved and (self.record is None or self.rejection is not None):
            raise ValueError("Approved decision must carry a record and no rejection")
        if not self.approved and (self.record is not None or self.rejection is None):
            raise ValueError("Rejected decision must carry a rejection and no record")


class OverrideAuthority(Protocol):
    """Capability that turns a credential proof into an authorized approver.

    Implementations raise ``AuthorizationError`` subclasses when the proof is
    invalid or the approver may not override contract rates.
    """

    def verify(self, proof: Any, request: OverrideRequest) -> ApproverIdentity:
        ...
