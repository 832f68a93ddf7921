"""
Audit trail: append-only record of every pipeline step.
"""

from rent_reclaim.audit.sink import AuditAction, AuditEntry, AuditSink

__all__ = ["AuditAction", "AuditEntry", "AuditSink"]
