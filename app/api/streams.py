"""
WebSocket plumbing for live collection snapshots.
The subscription lives exactly as long as the socket: a disconnect (or a
failed send) unsubscribes, so no listener outlives its consumer.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from fastapi import WebSocket, WebSocketDisconnect

from app.api.deps import build_gateway, resolve_user
from app.errors import NotAuthenticated
from app.modules.store.gateway import PersistenceGateway
from app.modules.store.subscription import Subscription

logger = logging.getLogger(__name__)

WS_UNAUTHORIZED = 4401


async def accept_gateway(websocket: WebSocket, token: str | None) -> PersistenceGateway | None:
    await websocket.accept()
    try:
        user_id = resolve_user(token)
    except NotAuthenticated as e:
        await websocket.close(code=WS_UNAUTHORIZED, reason=str(e))
        return None
    return build_gateway(websocket.app.state.store, user_id)


async def stream_snapshots(
    websocket: WebSocket,
    open_subscription: Callable[[], Awaitable[Subscription]],
    encode: Callable,
) -> None:
    subscription = await open_subscription()

    async def watch_disconnect() -> None:
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
        except (WebSocketDisconnect, RuntimeError):
            pass
        finally:
            subscription.unsubscribe()

    watcher = asyncio.create_task(watch_disconnect())
    try:
        async for snapshot in subscription:
            await websocket.send_json(encode(snapshot))
    except (WebSocketDisconnect, RuntimeError) as e:
        logger.info("Snapshot stream for %s closed: %s", subscription.path, e)
    finally:
        subscription.unsubscribe()
        watcher.cancel()
        logger.info(
            "Snapshot stream for %s ended: %d delivered, %d dropped",
            subscription.path, subscription.delivered, subscription.dropped,
        )
