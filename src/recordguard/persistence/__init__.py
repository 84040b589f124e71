"""Persistence layer: append-only audit log."""

from recordguard.persistence.audit_log import AuditKind, AuditLog, AuditRecord

__all__ = ["AuditKind", "AuditLog", "AuditRecord"]
