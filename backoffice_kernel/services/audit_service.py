"""
AuditService -- append-only change log.

Responsibility:
    Records create/update/delete/status-change rows in ``audit_logs`` for
    material requests, departments, users and leave balances, and serves
    the per-record history.

Architecture position:
    Kernel > Services.  Flushes within the caller's transaction; never
    commits.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.logging_config import get_logger
from backoffice_kernel.models.audit_log import AuditAction, AuditLog

logger = get_logger("services.audit")


def _jsonable(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class AuditService:
    """Writes and reads the audit log."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def record(
        self,
        table_name: str,
        record_id: UUID,
        action: AuditAction,
        actor_id: UUID,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        business_unit_id: UUID | None = None,
    ) -> AuditLog:
        entry = AuditLog(
            table_name=table_name,
            record_id=record_id,
            action=action.value,
            old_values=_jsonable(old_values) if old_values is not None else None,
            new_values=_jsonable(new_values) if new_values is not None else None,
            actor_id=actor_id,
            business_unit_id=business_unit_id,
            occurred_at=self._clock.now(),
        )
        self._session.add(entry)
        self._session.flush()
        logger.debug(
            "audit_recorded",
            extra={
                "table_name": table_name,
                "record_id": str(record_id),
                "action": action.value,
            },
        )
        return entry

    def history(self, table_name: str, record_id: UUID) -> list[AuditLog]:
        """All audit rows for one record, oldest first."""
        return list(
            self._session.execute(
                select(AuditLog)
                .where(AuditLog.table_name == table_name)
                .where(AuditLog.record_id == record_id)
                .order_by(AuditLog.occurred_at, AuditLog.id)
            ).scalars()
        )
