"""Redis pub/sub bridge fanning broadcast events out across worker processes."""

import asyncio
from typing import Optional

import structlog
from redis import asyncio as aioredis
from redis.exceptions import ConnectionError, RedisError, TimeoutError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from internhub.config import Settings
from internhub.realtime.broadcaster import Broadcaster
from internhub.realtime.events import ChangeEvent

logger = structlog.get_logger(__name__)


class RedisBroadcastBridge:
    """
    Publishes every emitted event to one Redis channel and delivers every
    message received on that channel to the local broadcaster.

    - Publish retries with exponential backoff on transient errors
    - A listener task per worker re-dispatches to local sessions
    - Graceful degradation: on connect failure the broadcaster stays local-only
    """

    def __init__(self, settings: Settings, broadcaster: Broadcaster):
        self.settings = settings
        self.broadcaster = broadcaster
        self.channel = settings.BROADCAST_CHANNEL
        self._client: Optional[aioredis.Redis] = None
        self._listener: Optional[asyncio.Task] = None
        self._is_connected = False

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    async def connect(self) -> None:
        """Connect, start listening, and route the broadcaster's emits through Redis."""
        try:
            self._client = aioredis.from_url(
                self.settings.REDIS_URL,
                socket_timeout=self.settings.REDIS_SOCKET_TIMEOUT,
                health_check_interval=self.settings.REDIS_HEALTH_CHECK_INTERVAL,
                decode_responses=True,
            )
            await self._client.ping()
            self._is_connected = True
        except Exception as e:
            logger.error("broadcast_bridge_connect_failed", error=str(e))
            logger.warning("broadcast_bridge_degraded", mode="local-only")
            self._is_connected = False
            return

        self._listener = asyncio.create_task(self._listen())
        self.broadcaster.attach_publisher(self.publish)
        logger.info("broadcast_bridge_connected", channel=self.channel)

    async def disconnect(self) -> None:
        self.broadcaster.detach_publisher()
        if self._listener:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        if self._client:
            try:
                await self._client.aclose()
                logger.info("broadcast_bridge_closed")
            except Exception as e:
                logger.error("broadcast_bridge_close_failed", error=str(e))
        self._is_connected = False

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type((ConnectionError, TimeoutError)),
        reraise=True,
    )
    async def publish(self, event: ChangeEvent) -> None:
        if not self._client:
            raise ConnectionError("Redis bridge is not connected")
        await self._client.publish(self.channel, event.model_dump_json())

    async def _listen(self) -> None:
        pubsub = self._client.pubsub()
        await pubsub.subscribe(self.channel)
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    event = ChangeEvent.model_validate_json(message["data"])
                except ValueError as e:
                    logger.error("broadcast_bridge_bad_payload", error=str(e))
                    continue
                self.broadcaster.deliver(event)
        except asyncio.CancelledError:
            raise
        except RedisError as e:
            logger.error("broadcast_bridge_listener_failed", error=str(e))
            self.broadcaster.detach_publisher()
            self._is_connected = False
        finally:
            try:
                await pubsub.unsubscribe(self.channel)
                await pubsub.aclose()
            except RedisError as e:
                logger.debug("broadcast_bridge_unsubscribe_failed", error=str(e))
