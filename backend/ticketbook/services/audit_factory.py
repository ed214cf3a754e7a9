"""
Audit sink factory.
Configures where activity records are delivered.
"""

from typing import Optional

from ticketbook.core.config import get_settings
from ticketbook.db.session import SessionLocal
from ticketbook.services.audit_service import AuditDispatcher, DatabaseAuditSink
from ticketbook.services.interfaces.audit import AuditSink
from ticketbook.services.interfaces.log_audit import LogAuditSink


def get_audit_sink() -> AuditSink:
    """
    Get configured audit sink.

    - database: activity_logs table (default)
    - log: structured log line only

    Selected via the AUDIT_SINK env var.
    """
    settings = get_settings()

    if settings.AUDIT_SINK == "log":
        return LogAuditSink()
    return DatabaseAuditSink(SessionLocal)


_dispatcher: Optional[AuditDispatcher] = None


def get_audit_dispatcher() -> AuditDispatcher:
    """Get audit dispatcher singleton. Also used as a FastAPI dependency."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = AuditDispatcher(get_audit_sink(), enabled=get_settings().AUDIT_ENABLED)
    return _dispatcher
