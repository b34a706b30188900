"""WebSocket endpoint for live-reload clients."""

import asyncio
import contextlib
import json
import logging
from uuid import uuid4

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from livedir.api.deps import get_hub
from livedir.events import Event, EventType, ReloadHub

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("")
async def livereload_endpoint(
    websocket: WebSocket,
    hub: ReloadHub = Depends(get_hub),
) -> None:
    """WebSocket endpoint pushing reload events to the browser.

    On connect the client receives a ``connected`` event, then one
    ``reload`` event per detected change:
    {
        "id": "abc123",
        "type": "reload",
        "timestamp": "2024-01-01T00:00:00Z",
        "data": {}
    }

    Clients may send {"action": "ping"} and get {"action": "pong"} back.
    """
    await websocket.accept()

    subscriber_id = f"ws-{uuid4().hex[:8]}"
    logger.debug(f"WebSocket connected: {subscriber_id}")

    queue = hub.subscribe(subscriber_id)

    try:
        await websocket.send_json(Event(type=EventType.CONNECTED).to_json())

        receive_task = asyncio.create_task(_handle_receive(websocket, subscriber_id))
        send_task = asyncio.create_task(_handle_send(websocket, queue))

        # Wait for either task to complete (client disconnect or error)
        done, pending = await asyncio.wait(
            [receive_task, send_task],
            return_when=asyncio.FIRST_COMPLETED,
        )

        for task in pending:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        for task in done:
            error = task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                logger.error(f"WebSocket error for {subscriber_id}: {error}")

    except WebSocketDisconnect:
        logger.debug(f"WebSocket disconnected: {subscriber_id}")

    finally:
        hub.unsubscribe(subscriber_id)


async def _handle_receive(websocket: WebSocket, subscriber_id: str) -> None:
    """Handle incoming WebSocket messages."""
    while True:
        data = await websocket.receive_text()
        try:
            message = json.loads(data)
        except json.JSONDecodeError:
            logger.warning(f"Invalid JSON from {subscriber_id}: {data}")
            continue

        action = message.get("action") if isinstance(message, dict) else None
        if action == "ping":
            await websocket.send_json({"action": "pong"})
        else:
            logger.debug(f"Unknown action from {subscriber_id}: {action}")


async def _handle_send(websocket: WebSocket, queue: asyncio.Queue[Event]) -> None:
    """Send events from queue to WebSocket."""
    while True:
        event = await queue.get()
        await websocket.send_json(event.to_json())
