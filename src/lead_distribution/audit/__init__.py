"""Audit trail."""

from .log import AuditLog, AuditEntry, AuditEventType

__all__ = ["AuditLog", "AuditEntry", "AuditEventType"]
