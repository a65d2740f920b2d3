"""
Module: pricing_kernel.models.override_audit
Responsibility: ORM persistence for approved contract-rate overrides.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain value objects only.

Invariants enforced:
    - Append-only: ORM listeners in db/immutability.py reject UPDATE and
      DELETE of any row.
    - Ordering: UNIQUE(order_id, sequence) -- the position of a record in
      its order's audit log is fixed at insert time, so re-persisting the
      same session cannot duplicate records.
    - Rates are Numeric(38, 18); ``approved_at`` is stored in UTC so
      backends that drop the offset still read back the same instant.

Failure modes:
    - IntegrityError on duplicate (order_id, sequence).
    - ImmutabilityViolationError on UPDATE/DELETE.

Audit relevance:
    Downstream reporting reads overrides from this table.  ``approved_by``
    holds the approver id resolved by the approval capability.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pricing_kernel.db.base import Base
from pricing_kernel.domain.override import OverrideAuditRecord


class OverrideAuditRecordModel(Base):
    """Persistent override audit record. Never updated or deleted."""

    __tablename__ = "override_audit_records"

    __table_args__ = (
        UniqueConstraint("order_id", "sequence", name="uq_override_audit_order_seq"),
        Index("ix_override_audit_material", "material_id"),
    )

    order_id: Mapped[str] = mapped_column(String(100), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    order_side: Mapped[str] = mapped_column(String(20), nullable=False)
    material_id: Mapped[str] = mapped_column(String(100), nullable=False)
    original_rate: Mapped[Decimal] = mapped_column(Numeric(38, 18), nullable=False)
    override_rate: Mapped[Decimal] = mapped_column(Numeric(38, 18), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    approved_by: Mapped[str] = mapped_column(String(100), nullable=False)
    approver_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    approved_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    @classmethod
    def from_dto(
        cls,
        record: OverrideAuditRecord,
        order_id: str,
        sequence: int,
        order_side: str,
    ) -> OverrideAuditRecordModel:
        return cls(
            order_id=order_id,
            sequence=sequence,
            order_side=order_side,
            material_id=record.material_id,
            original_rate=record.original_rate,
            override_rate=record.override_rate,
            reason=record.reason,
            approved_by=record.approved_by,
            approver_name=record.approver_name,
            approved_at=record.approved_at.astimezone(timezone.utc),
        )

    def to_dto(self) -> OverrideAuditRecord:
        approved_at = self.approved_at
        # Backends without timezone support hand back naive UTC values.
        if approved_at.tzinfo is None:
            approved_at = approved_at.replace(tzinfo=timezone.utc)
        return OverrideAuditRecord(
            material_id=self.material_id,
            original_rate=Decimal(self.original_rate),
            override_rate=Decimal(self.override_rate),
            reason=self.reason,
            approved_by=self.approved_by,
            approved_at=approved_at,
            approver_name=self.approver_name,
        )
