"""
pricing_engines.override -- Override request validation and authorization.

Responsibility:
    Decide whether a rate edit on a locked line needs approval, validate the
    resulting ``OverrideRequest``, consult the injected approval capability,
    and produce an ``OverrideDecision`` carrying the audit record on success.

Architecture position:
    Engines -- pure calculation layer.  The only collaborator is the injected
    ``OverrideAuthority``; ``approved_at`` is passed in by the caller.

Invariants enforced:
    - A rate edit within ``tolerance`` of the locked rate never needs an
      override.
    - The reason is checked on its trimmed length before the credential is
      ever presented to the authority.
    - Rejections are returned as values, never coerced into acceptance; the
      rejected request produces no audit record.
    - ``approved_by`` is the identity the authority resolved from the proof.

Failure modes:
    - ``OverrideReasonTooShortError`` from ``validate_override_request``.
    - ``AuthorizationError`` subclasses raised by the authority are caught
      here and converted into rejected decisions.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pricing_kernel.domain.order import OrderLine
from pricing_kernel.domain.override import (
    OverrideAuditRecord,
    OverrideAuthority,
    OverrideDecision,
    OverrideRejectionReason,
    OverrideRequest,
)
from pricing_kernel.domain.values import format_amount
from pricing_kernel.exceptions import (
    ApproverNotAuthorizedError,
    AuthorizationError,
    OverrideReasonTooShortError,
)
from pricing_kernel.logging_config import get_logger

logger = get_logger("engines.override")

DEFAULT_MIN_REASON_LENGTH = 10


def requires_override(
    line: OrderLine,
    requested_rate: Decimal,
    tolerance: Decimal,
) -> bool:
    """True when setting ``requested_rate`` on ``line`` must be approved."""
    if not line.is_locked:
        return False
    return abs(requested_rate - line.rate) > tolerance


def validate_override_request(
    request: OverrideRequest,
    min_reason_length: int = DEFAULT_MIN_REASON_LENGTH,
) -> None:
    """Raise ``OverrideReasonTooShortError`` when the trimmed reason is short."""
    length = len((request.reason or "").strip())
    if length < min_reason_length:
        raise OverrideReasonTooShortError(length, min_reason_length)


def override_warning_message(
    record: OverrideAuditRecord,
    currency_code: str = "OMR",
    places: int = 3,
) -> str:
    """User-facing summary of an approved override."""
    return (
        f"Rate overridden: {format_amount(record.override_rate, places, currency_code)} "
        f"(was {format_amount(record.original_rate, places, currency_code)}) "
        f"- {record.reason}"
    )


class OverrideAuthorizer:
    """Gate manual deviations from the contract-resolved rate.

    Usage::

        authorizer = OverrideAuthorizer(authority, min_reason_length=10)
        decision = authorizer.authorize(request, approved_at=clock.now())
        if decision.approved:
            audit_log = audit_log + (decision.record,)
    """

    def __init__(
        self,
        authority: OverrideAuthority,
        min_reason_length: int = DEFAULT_MIN_REASON_LENGTH,
        currency_code: str = "OMR",
        places: int = 3,
    ):
        self._authority = authority
        self._min_reason_length = min_reason_length
        self._currency_code = currency_code
        self._places = places

    def authorize(
        self,
        request: OverrideRequest,
        approved_at: datetime,
    ) -> OverrideDecision:
        """Validate ``request`` and ask the authority to approve it."""
        try:
            validate_override_request(request, self._min_reason_length)
        except OverrideReasonTooShortError as exc:
            return self._reject(request, OverrideRejectionReason.REASON_TOO_SHORT, exc)

        if request.requested_rate == request.original_rate:
            logger.info("override_rejected", extra={
                "material_id": request.material_id,
                "rejection": OverrideRejectionReason.NO_CHANGE.value,
            })
            return OverrideDecision(
                approved=False,
                request=request,
                rejection=OverrideRejectionReason.NO_CHANGE,
                message="Requested rate equals the current rate",
            )

        try:
            approver = self._authority.verify(
                request.approver_credential_proof, request,
            )
        except ApproverNotAuthorizedError as exc:
            return self._reject(request, OverrideRejectionReason.NOT_AUTHORIZED, exc)
        except AuthorizationError as exc:
            return self._reject(request, OverrideRejectionReason.INVALID_CREDENTIAL, exc)

        record = OverrideAuditRecord(
            material_id=request.material_id,
            original_rate=request.original_rate,
            override_rate=request.requested_rate,
            reason=request.reason.strip(),
            approved_by=approver.approver_id,
            approved_at=approved_at,
            approver_name=approver.display_name,
        )

        logger.info("override_approved", extra={
            "material_id": request.material_id,
            "original_rate": str(request.original_rate),
            "override_rate": str(request.requested_rate),
            "difference": str(request.difference),
            "approved_by": approver.approver_id,
        })

        return OverrideDecision(
            approved=True,
            request=request,
            record=record,
            message=override_warning_message(record, self._currency_code, self._places),
        )

    def _reject(
        self,
        request: OverrideRequest,
        rejection: OverrideRejectionReason,
        exc: Exception,
    ) -> OverrideDecision:
        code = getattr(exc, "code", None)
        logger.warning("override_rejected", extra={
            "material_id": request.material_id,
            "rejection": rejection.value,
            "error_code": code,
        })
        return OverrideDecision(
            approved=False,
            request=request,
            rejection=rejection,
            error_code=code,
            message=str(exc),
        )
