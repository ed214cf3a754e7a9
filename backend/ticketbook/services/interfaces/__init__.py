"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .audit import AuditSink
from .log_audit import LogAuditSink

__all__ = ['AuditSink', 'LogAuditSink']
