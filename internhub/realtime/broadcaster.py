"""
Synchronization broadcaster.

Typed in-process pub/sub: every connected session owns a bounded queue and
receives the events whose audience includes its principal. Emission never
blocks and never raises into the mutating request. Delivery is at-most-once:
a full queue drops its oldest event, since any later event triggers the same
full refetch.

When a publisher (the Redis bridge) is attached, events are published to it
instead and come back through `deliver` on every worker, including this one.
"""

import asyncio
import uuid
from typing import Awaitable, Callable, Dict, List, Optional, Set

import structlog

from internhub.config import settings
from internhub.core.security import Principal
from internhub.realtime.events import ChangeEvent

logger = structlog.get_logger(__name__)

Publisher = Callable[[ChangeEvent], Awaitable[None]]


class SessionChannel:
    """Outbound event queue of one connected session."""

    def __init__(self, principal: Principal, max_queue_size: int):
        self.id = uuid.uuid4()
        self.principal = principal
        self.dropped = 0
        self.closed = False
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue_size)

    def offer(self, event: ChangeEvent) -> bool:
        """Enqueue without blocking; on overflow the oldest event is discarded."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            try:
                self._queue.get_nowait()
                self.dropped += 1
            except asyncio.QueueEmpty:
                pass
            self._queue.put_nowait(event)
            logger.warning(
                "broadcast_dropped",
                session_id=str(self.id),
                role=self.principal.role.value,
                dropped_total=self.dropped,
            )
        return True

    async def receive(self) -> ChangeEvent:
        return await self._queue.get()

    def pending(self) -> List[ChangeEvent]:
        """Drain everything currently queued (used by tests and shutdown)."""
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except asyncio.QueueEmpty:
                return events

    def close(self) -> None:
        self.closed = True


class Broadcaster:
    """Fan-out of change events to connected sessions."""

    def __init__(self, max_queue_size: Optional[int] = None):
        self.max_queue_size = max_queue_size or settings.BROADCAST_QUEUE_SIZE
        self._sessions: Dict[uuid.UUID, SessionChannel] = {}
        self._publisher: Optional[Publisher] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def connect(self, principal: Principal) -> SessionChannel:
        channel = SessionChannel(principal, self.max_queue_size)
        self._sessions[channel.id] = channel
        logger.info(
            "session_connected",
            session_id=str(channel.id),
            role=principal.role.value,
            sessions=len(self._sessions),
        )
        return channel

    def disconnect(self, channel: SessionChannel) -> None:
        channel.close()
        self._sessions.pop(channel.id, None)
        logger.info("session_disconnected", session_id=str(channel.id), sessions=len(self._sessions))

    def attach_publisher(self, publisher: Publisher) -> None:
        self._publisher = publisher

    def detach_publisher(self) -> None:
        self._publisher = None

    def emit(self, event: ChangeEvent) -> None:
        """
        Fire-and-forget emission of one event.

        Errors are logged and swallowed; the mutation that triggered the
        event has already been committed.
        """
        try:
            if self._publisher is not None:
                self._schedule_publish(event)
            else:
                self.deliver(event)
            logger.debug(
                "broadcast_emitted",
                kind=event.kind.value,
                action=event.action,
                entity_type=event.entity_type.value,
                entity_id=str(event.entity_id) if event.entity_id else None,
            )
        except Exception as e:
            logger.error("broadcast_emit_failed", kind=event.kind.value, error=str(e))

    def deliver(self, event: ChangeEvent) -> int:
        """Hand an event to every local session in its audience."""
        delivered = 0
        for channel in list(self._sessions.values()):
            if event.audience.includes(channel.principal) and channel.offer(event):
                delivered += 1
        return delivered

    def _schedule_publish(self, event: ChangeEvent) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.deliver(event)
            return
        task = loop.create_task(self._publish(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _publish(self, event: ChangeEvent) -> None:
        try:
            await self._publisher(event)
        except Exception as e:
            # Other workers miss this event; local sessions still get it
            logger.warning("broadcast_publish_failed", kind=event.kind.value, error=str(e))
            self.deliver(event)

    async def drain(self) -> None:
        """Wait for in-flight publishes."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


# Process-wide broadcaster
broadcaster = Broadcaster()


def get_broadcaster() -> Broadcaster:
    """Dependency returning the process-wide broadcaster."""
    return broadcaster
