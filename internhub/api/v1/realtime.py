"""
Realtime API
WebSocket feed of change events for the caller's audience
"""

import asyncio

import structlog
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import async_sessionmaker

from internhub.core.exceptions import PipelineError
from internhub.core.security import resolve_principal
from internhub.db.session import AsyncSessionLocal
from internhub.realtime.broadcaster import Broadcaster, SessionChannel, get_broadcaster

logger = structlog.get_logger(__name__)

router = APIRouter()


def get_session_factory() -> async_sessionmaker:
    return AsyncSessionLocal


async def _forward_events(websocket: WebSocket, channel: SessionChannel) -> None:
    while True:
        event = await channel.receive()
        await websocket.send_json(event.to_client())


async def _drain_client(websocket: WebSocket) -> None:
    # Clients only send keepalives; anything else is ignored
    while True:
        message = await websocket.receive_text()
        if message == "ping":
            await websocket.send_json({"type": "pong"})


@router.websocket("/ws")
async def realtime_feed(
    websocket: WebSocket,
    token: str = Query(...),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """
    Change-event stream

    Authenticate with `?token=<access token>`. Each message is a change
    descriptor; clients refetch the affected collections when one arrives.
    """
    try:
        async with session_factory() as db:
            principal = await resolve_principal(db, token)
    except PipelineError as e:
        logger.info("realtime_auth_failed", error=e.error_type)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    channel = broadcaster.connect(principal)
    await websocket.send_json({"type": "connected", "role": principal.role.value, "session_id": str(channel.id)})

    tasks = [
        asyncio.create_task(_forward_events(websocket, channel)),
        asyncio.create_task(_drain_client(websocket)),
    ]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning("realtime_session_error", session_id=str(channel.id), error=str(exc))
    finally:
        for task in tasks:
            task.cancel()
        broadcaster.disconnect(channel)
