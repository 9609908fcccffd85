"""Shared ORM models for the back-office kernel."""

from backoffice_kernel.models.audit_log import AuditAction, AuditLog
from backoffice_kernel.models.organization import BusinessUnit, Department, User
from backoffice_kernel.services.sequence_service import SequenceCounter

__all__ = [
    "AuditAction",
    "AuditLog",
    "BusinessUnit",
    "Department",
    "User",
    "SequenceCounter",
]
