"""
pricing_services.audit_repository -- Persistent override audit log.

Responsibility:
    Store the approved overrides of an editing session and read them back
    for downstream reporting.

Architecture position:
    Services layer.  Owns SQLAlchemy sessions via ``session_scope``; maps
    between ``OverrideAuditRecord`` values and ``OverrideAuditRecordModel``
    rows.

Invariants enforced:
    - Atomic per order: all records of one ``append_session`` call are
      written in a single transaction, or none are.
    - Idempotent: a record's position in the session's audit log is its
      ``sequence``; records already stored for the order are skipped, so
      re-persisting the same session never duplicates a record.
    - Append-only: the stored log must be a prefix of the session's log.
      A divergent session is refused rather than rewriting history.
      Every persisted field takes part in the comparison.

Failure modes:
    - ImmutabilityViolationError when the stored log is not a prefix of the
      session's audit log.
    - IntegrityError if a concurrent writer stored the same sequence first.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from pricing_kernel.db.engine import session_scope
from pricing_kernel.domain.order import OrderEditingSession
from pricing_kernel.domain.override import OverrideAuditRecord
from pricing_kernel.exceptions import ImmutabilityViolationError
from pricing_kernel.logging_config import LogContext, get_logger
from pricing_kernel.models.override_audit import OverrideAuditRecordModel

logger = get_logger("services.audit_repository")


# SQLite hands Numeric values back through a float, so stored rates are
# matched to the ninth decimal rather than digit for digit.
RATE_MATCH_TOLERANCE = Decimal("1E-9")


def _rates_match(stored: Decimal, rate: Decimal) -> bool:
    return abs(stored - rate) <= RATE_MATCH_TOLERANCE


def _same_record(stored: OverrideAuditRecord, record: OverrideAuditRecord) -> bool:
    """True when ``stored`` is the persisted form of ``record``, field by field."""
    return (
        stored.material_id == record.material_id
        and _rates_match(stored.original_rate, record.original_rate)
        and _rates_match(stored.override_rate, record.override_rate)
        and stored.reason == record.reason
        and stored.approved_by == record.approved_by
        and stored.approver_name == record.approver_name
        and stored.approved_at == record.approved_at
    )


class OverrideAuditRepository:
    """Append-only store of override audit records, keyed by order."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None):
        self._session_factory = session_factory

    def append_session(self, order_id: str, editing_session: OrderEditingSession) -> int:
        """Persist the records of ``editing_session`` not yet stored.

        Returns:
            The number of records inserted.
        """
        with LogContext.bind(order_id=order_id):
            with session_scope(self._session_factory) as db:
                stored = [
                    row.to_dto() for row in db.scalars(
                        select(OverrideAuditRecordModel)
                        .where(OverrideAuditRecordModel.order_id == order_id)
                        .order_by(OverrideAuditRecordModel.sequence)
                    )
                ]
                log = editing_session.audit_log
                if len(stored) > len(log) or not all(
                    _same_record(s, r) for s, r in zip(stored, log)
                ):
                    logger.error("audit_log_divergence", extra={
                        "stored_records": len(stored),
                        "session_records": len(log),
                    })
                    raise ImmutabilityViolationError(
                        "OverrideAuditLog",
                        order_id,
                        "session audit log does not extend the stored log",
                    )

                new_records = log[len(stored):]
                for sequence, record in enumerate(new_records, start=len(stored)):
                    db.add(OverrideAuditRecordModel.from_dto(
                        record, order_id, sequence, editing_session.side.value,
                    ))

            logger.info("override_audit_persisted", extra={
                "inserted": len(new_records),
                "total_records": len(log),
            })
        return len(new_records)

    def list_for_order(self, order_id: str) -> tuple[OverrideAuditRecord, ...]:
        """Stored records of ``order_id`` in approval order."""
        with session_scope(self._session_factory) as db:
            rows = db.scalars(
                select(OverrideAuditRecordModel)
                .where(OverrideAuditRecordModel.order_id == order_id)
                .order_by(OverrideAuditRecordModel.sequence)
            ).all()
            return tuple(row.to_dto() for row in rows)
