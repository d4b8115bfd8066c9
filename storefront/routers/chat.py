"""
Chat WebSocket Router
ws://host/chat - streaming shopping assistant
"""

import asyncio
import uuid
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from storefront.config import settings
from storefront.dependencies import ServiceContainer, get_services
from storefront.services.chat import ChatSession, ProductContextLoader

logger = structlog.get_logger()

router = APIRouter(tags=["chat"])


class WebSocketChannel:
    """
    Guarded sender for one WebSocket.

    Sends are serialized and silently skipped once the socket is closed.
    """

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._closed = False
        self._lock = asyncio.Lock()

    @property
    def closed(self) -> bool:
        return (
            self._closed
            or self.websocket.client_state != WebSocketState.CONNECTED
            or self.websocket.application_state != WebSocketState.CONNECTED
        )

    def mark_closed(self) -> None:
        self._closed = True

    async def send(self, event: Dict[str, Any]) -> None:
        async with self._lock:
            if self.closed:
                return
            try:
                await self.websocket.send_json(event)
            except (WebSocketDisconnect, RuntimeError) as e:
                # Peer went away between the state check and the send
                self._closed = True
                logger.info("chat_send_after_close", error=str(e))


def _frame_text(message: Dict[str, Any]) -> str:
    text = message.get("text")
    if text is not None:
        return text
    return (message.get("bytes") or b"").decode("utf-8", errors="replace")


@router.websocket("/chat")
async def chat_websocket(
    websocket: WebSocket,
    services: ServiceContainer = Depends(get_services)
):
    """
    One chat session per connection.

    Inbound: {"type": "message", "content": "..."}
    Outbound: {"type": "token", "content": "..."}*, then {"type": "done"}
              or {"type": "error", "message": "..."}
    """
    await websocket.accept()

    connection_id = uuid.uuid4().hex[:12]
    client = websocket.client.host if websocket.client else "unknown"
    logger.info("chat_connection_opened", connection_id=connection_id, client=client)

    channel = WebSocketChannel(websocket)
    session = ChatSession(
        channel=channel,
        completions=services.completions,
        context_loader=ProductContextLoader(services.search_index, limit=settings.chat_context_limit),
        model=settings.chat_model,
        reasoning_effort=settings.chat_reasoning_effort,
        store_name=settings.chat_store_name,
        primary_language=settings.chat_primary_language,
        retry_attempts=settings.chat_retry_attempts,
        retry_initial_delay=settings.chat_retry_initial_delay,
        connection_id=connection_id,
    )
    worker = asyncio.create_task(session.run())

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            await session.receive(_frame_text(message))
    except WebSocketDisconnect:
        pass
    finally:
        channel.mark_closed()
        session.close()
        # An in-flight turn finishes (or abandons its stream) on its own
        await worker
        logger.info(
            "chat_connection_closed",
            connection_id=connection_id,
            client=client,
            history_turns=len(session.history)
        )
