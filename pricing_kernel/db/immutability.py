"""
ORM-Level Immutability Enforcement for override audit records.

===============================================================================
HOW IT WORKS
===============================================================================

SQLAlchemy fires mapper events before UPDATE/DELETE operations reach the
database.  We register listeners that intercept these events:

    session.flush()
         |
         v
    [before_update event] --> _check_audit_record_immutability() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _check_audit_record_delete() --------> ImmutabilityViolationError

If a check fails the flush aborts and the transaction is rolled back by
``session_scope``.  The database is never modified.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                    | When Immutable         | Why
--------------------------|------------------------|------------------------------
OverrideAuditRecordModel  | ALWAYS (from creation) | Override audit trail is append-only

===============================================================================
USAGE
===============================================================================

    from pricing_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    from pricing_kernel.db.immutability import unregister_immutability_listeners
    unregister_immutability_listeners()
"""

from sqlalchemy import event

from pricing_kernel.exceptions import ImmutabilityViolationError
from pricing_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_audit_record_immutability(mapper, connection, target):
    """Prevent any updates to override audit records."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "OverrideAuditRecord",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="OverrideAuditRecord",
        entity_id=str(target.id),
        reason="Override audit records are immutable and cannot be modified",
    )


def _check_audit_record_delete(mapper, connection, target):
    """Prevent deletion of override audit records."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "OverrideAuditRecord",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="OverrideAuditRecord",
        entity_id=str(target.id),
        reason="Override audit records cannot be deleted",
    )


def register_immutability_listeners():
    """Register all immutability enforcement event listeners (idempotent)."""
    from pricing_kernel.models.override_audit import OverrideAuditRecordModel

    if not event.contains(
        OverrideAuditRecordModel, "before_update", _check_audit_record_immutability,
    ):
        event.listen(
            OverrideAuditRecordModel, "before_update", _check_audit_record_immutability,
        )
    if not event.contains(
        OverrideAuditRecordModel, "before_delete", _check_audit_record_delete,
    ):
        event.listen(
            OverrideAuditRecordModel, "before_delete", _check_audit_record_delete,
        )


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests.
    """
    from pricing_kernel.models.override_audit import OverrideAuditRecordModel

    _safe_remove_listener(
        OverrideAuditRecordModel, "before_update", _check_audit_record_immutability,
    )
    _safe_remove_listener(
        OverrideAuditRecordModel, "before_delete", _check_audit_record_delete,
    )
