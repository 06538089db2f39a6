"""WebSocket endpoint — live newPoints delivery to browser clients.

Learn: Each client connects to /ws. The handler:
1. Registers a Subscription with the app's Notifier
2. Forwards every queued message to the WebSocket client
3. Answers {"type": "ping"} with {"type": "pong"}
4. Unsubscribes when either side goes away

There is no replay — a client only sees events ingested after it connected.
The client can GET /api/leaderboard to catch up.
"""

import asyncio
import json

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from houseboard.events.types import PONG
from houseboard.realtime.notifier import Notifier, Subscription

logger = structlog.get_logger()
router = APIRouter()


@router.websocket("/ws")
async def points_websocket(websocket: WebSocket):
    """Stream newPoints messages until the client disconnects.

    Learn: Two concurrent tasks run:
    1. Notifier listener — reads the subscription queue, sends to WebSocket
    2. Client listener — reads from WebSocket (ping/pong keepalive)

    When either side finishes, the other is cancelled.
    """
    notifier: Notifier = websocket.app.state.notifier
    client = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"

    # Subscribe before accepting so nothing ingested after the handshake is missed.
    sub = notifier.subscribe(label=client)
    try:
        await websocket.accept()
    except Exception:
        notifier.unsubscribe(sub)
        raise

    async def notifier_listener(subscription: Subscription):
        """Forward queued messages to the WebSocket client."""
        try:
            async for message in subscription:
                await websocket.send_text(json.dumps(message))
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.debug("ws.send_failed", client=client, error=str(e))

    async def client_listener():
        """Handle incoming messages — only ping for now."""
        try:
            while True:
                data = await websocket.receive_text()
                try:
                    msg = json.loads(data)
                except json.JSONDecodeError:
                    continue
                if isinstance(msg, dict) and msg.get("type") == "ping":
                    await websocket.send_text(json.dumps({"type": PONG}))
        except WebSocketDisconnect:
            pass

    send_task = asyncio.create_task(notifier_listener(sub))
    recv_task = asyncio.create_task(client_listener())

    try:
        done, pending = await asyncio.wait(
            [send_task, recv_task],
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
    finally:
        notifier.unsubscribe(sub)
        if websocket.client_state == WebSocketState.CONNECTED:
            await websocket.close()
