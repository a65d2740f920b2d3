"""SQLAlchemy ORM models for the pricing kernel."""

from pricing_kernel.models.override_audit import OverrideAuditRecordModel

__all__ = ["OverrideAuditRecordModel"]
