"""
WebSocket endpoint for live draft updates.

Protocol (JSON text frames):
- client -> server: {"type": "join-draft", "draftId": "..."}
                    {"type": "leave-draft", "draftId": "..."}
- server -> client: {"type": "joined" | "left", "draftId": "..."} acknowledgements,
                    {"type": "error", "message": "..."} for malformed requests,
                    and every draft event published on a joined channel

One connection can follow any number of drafts. Channel membership does not
depend on draft state, so a client may join before the draft starts.
"""
import asyncio
import contextlib
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from database import settings
from core.broadcaster import DraftBroadcaster, QueueSubscriber

router = APIRouter(tags=["websocket"])
logger = logging.getLogger(__name__)


async def _pump(websocket: WebSocket, subscriber: QueueSubscriber):
    while True:
        message = await subscriber.queue.get()
        await websocket.send_json(message)


def _handle_message(broadcaster: DraftBroadcaster, subscriber: QueueSubscriber, data) -> dict:
    if not isinstance(data, dict):
        return {"type": "error", "message": "Expected a JSON object"}

    message_type = data.get("type")
    draft_id = data.get("draftId")
    if message_type not in ("join-draft", "leave-draft"):
        return {"type": "error", "message": f"Unknown message type: {message_type}"}
    if not draft_id:
        return {"type": "error", "message": "draftId is required"}

    if message_type == "join-draft":
        broadcaster.join(str(draft_id), subscriber)
        return {"type": "joined", "draftId": str(draft_id)}

    broadcaster.leave(str(draft_id), subscriber)
    return {"type": "left", "draftId": str(draft_id)}


@router.websocket("/ws")
async def draft_updates(websocket: WebSocket):
    broadcaster: DraftBroadcaster = websocket.app.state.broadcaster
    await websocket.accept()

    subscriber = QueueSubscriber(asyncio.get_running_loop(), maxsize=settings.channel_queue_size)
    sender = asyncio.create_task(_pump(websocket, subscriber))
    logger.info(f"WebSocket subscriber {subscriber.id} connected")

    try:
        while True:
            try:
                data = await websocket.receive_json()
            except ValueError:
                await subscriber.queue.put({"type": "error", "message": "Invalid JSON"})
                continue
            await subscriber.queue.put(_handle_message(broadcaster, subscriber, data))

    except WebSocketDisconnect:
        logger.info(f"WebSocket subscriber {subscriber.id} disconnected")
    finally:
        broadcaster.leave_all(subscriber)
        sender.cancel()
        with contextlib.suppress(Exception, asyncio.CancelledError):
            await sender
