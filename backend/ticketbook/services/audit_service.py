"""
Audit delivery for committed (and rejected) booking actions.

DELIVERY STRATEGY: fire-and-forget
==================================

The booking transaction has already committed or rolled back by the time an
audit record is emitted. The dispatcher schedules `sink.record(...)` as its
own asyncio task and returns immediately, so:

  - a slow sink never adds latency to the booking response
  - a failing sink is logged and counted, never re-raised
  - the database sink writes in a fresh session, never the booking's session

Pending tasks are held in a set until they finish; without a strong
reference the event loop may garbage-collect a running task. `drain()`
awaits whatever is still in flight (shutdown, tests).
"""

import asyncio
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ticketbook.core.logging import get_logger
from ticketbook.core.metrics import audit_failures
from ticketbook.models.activity_log import ActivityLog
from ticketbook.services.interfaces.audit import AuditSink

logger = get_logger(__name__)


class DatabaseAuditSink(AuditSink):
    """Writes activity_logs rows through an independent session."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def record(
        self,
        actor_id: Optional[int],
        action: str,
        resource_type: Optional[str],
        resource_id: Optional[int],
        details: Optional[str],
        origin_address: Optional[str],
    ) -> None:
        async with self.session_factory() as session:
            session.add(
                ActivityLog(
                    user_id=actor_id,
                    action=action,
                    resource_type=resource_type,
                    resource_id=resource_id,
                    details=details,
                    ip_address=origin_address,
                )
            )
            await session.commit()


class AuditDispatcher:
    """Schedules audit records on a sink without ever failing the caller."""

    def __init__(self, sink: AuditSink, enabled: bool = True):
        self.sink = sink
        self.enabled = enabled
        self._pending: set[asyncio.Task] = set()

    def emit(
        self,
        actor_id: Optional[int],
        action: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[int] = None,
        details: Optional[str] = None,
        origin_address: Optional[str] = None,
    ) -> None:
        if not self.enabled:
            return

        task = asyncio.create_task(
            self._deliver(actor_id, action, resource_type, resource_id, details, origin_address)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, actor_id, action, resource_type, resource_id, details, origin_address) -> None:
        try:
            await self.sink.record(
                actor_id, action, resource_type, resource_id, details, origin_address
            )
        except Exception as e:
            # Best effort: the booking outcome is already final.
            audit_failures.inc()
            logger.error(
                "audit_record_failed",
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                error=str(e),
            )

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every scheduled record to be delivered or to fail."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
