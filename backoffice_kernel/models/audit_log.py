"""
Module: backoffice_kernel.models.audit_log
Responsibility: Append-only record of who changed what.  One row per
    create, update, delete or status change performed by a module service.
Architecture position: Kernel > Models.  Written only by
    ``backoffice_kernel.services.audit_service.AuditService``.

Invariants enforced:
    - Rows are never updated; services only insert.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from backoffice_kernel.db.base import Base, UUIDString


class AuditAction(str, Enum):
    """Kind of change recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    STATUS_CHANGE = "STATUS_CHANGE"
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class AuditLog(Base):
    """One audited change to a record."""

    __tablename__ = "audit_logs"

    __table_args__ = (
        Index("idx_audit_log_record", "table_name", "record_id"),
        Index("idx_audit_log_actor", "actor_id"),
        Index("idx_audit_log_timestamp", "occurred_at"),
    )

    table_name: Mapped[str] = mapped_column(String(100), nullable=False)
    record_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    action: Mapped[str] = mapped_column(String(30), nullable=False)
    old_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    new_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    business_unit_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} {self.table_name}:{self.record_id}>"
