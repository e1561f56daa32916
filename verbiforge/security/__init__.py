"""
Security module - tamper-aware audit trail for store operations.
"""

from verbiforge.security.audit import (
    AuditEventType,
    AuditSeverity,
    TamperAwareAuditLog,
)

__all__ = ["AuditEventType", "AuditSeverity", "TamperAwareAuditLog"]
