"""
Log-only audit sink.
"""

from typing import Optional

from ticketbook.core.logging import get_logger
from ticketbook.services.interfaces.audit import AuditSink

logger = get_logger("ticketbook.audit")


class LogAuditSink(AuditSink):
    """Writes each record as a structured log event. Nothing is persisted."""

    async def record(
        self,
        actor_id: Optional[int],
        action: str,
        resource_type: Optional[str],
        resource_id: Optional[int],
        details: Optional[str],
        origin_address: Optional[str],
    ) -> None:
        logger.info(
            "audit_record",
            actor_id=actor_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details,
            origin_address=origin_address,
        )
