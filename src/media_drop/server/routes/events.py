"""Push channel for state changes (ready, disconnected, message_sent, message_failed)."""

import asyncio
import contextlib
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/events")
async def event_stream(websocket: WebSocket) -> None:
    hub = websocket.app.state.media.events

    # Subscribe before accepting so nothing published after the handshake is missed.
    with hub.subscribe() as queue:
        await websocket.accept()

        async def forward() -> None:
            while True:
                event = await queue.get()
                await websocket.send_json(event.to_dict())

        sender = asyncio.create_task(forward())
        try:
            # Clients never send anything meaningful; receiving only detects the disconnect.
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.debug("Event subscriber disconnected")
        finally:
            sender.cancel()
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await sender
