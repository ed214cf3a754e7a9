"""
Audit sink interface.
Decouples the booking transactions from wherever activity records end up.
"""

from abc import ABC, abstractmethod
from typing import Optional


class AuditSink(ABC):
    """
    Receives one record per reservation or cancellation outcome.

    Implementations:
    - LogAuditSink: structured log line only
    - DatabaseAuditSink: activity_logs row written in its own session

    Sinks may raise; the dispatcher contains the failure so it never
    reaches the booking that triggered it.
    """

    @abstractmethod
    async def record(
        self,
        actor_id: Optional[int],
        action: str,
        resource_type: Optional[str],
        resource_id: Optional[int],
        details: Optional[str],
        origin_address: Optional[str],
    ) -> None:
        """
        Persist a single activity record.

        Args:
            actor_id: User who performed the action
            action: Snake-case action name, e.g. booking_created
            resource_type: Kind of resource touched, e.g. booking
            resource_id: Identifier of that resource, if one exists
            details: Free-form human readable description
            origin_address: Client address the request came from
        """
        pass
