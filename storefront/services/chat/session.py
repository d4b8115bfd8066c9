"""
Chat Session
Per-connection state machine for the streaming shopping assistant.

Flow per accepted message:
1. Lazily load the catalog snapshot (once per connection)
2. Append the user turn, build system prompt + full history
3. Open the completion stream with retry (3 attempts, 0.5s/1.0s backoff)
4. Relay content deltas as token events, accumulate reasoning server-side
5. Store the assistant turn and send done, or send error and store nothing
"""

import asyncio
import json
from typing import Any, Dict, List, Optional, Protocol

import structlog
from pydantic import ValidationError

from storefront.services.chat.models import (
    ClientMessage,
    ConversationTurn,
    DoneEvent,
    ErrorEvent,
    SessionState,
    TokenEvent,
)
from storefront.services.chat.prompt import build_api_messages, build_system_prompt
from storefront.services.monitoring.error_tracking import capture_exception
from storefront.services.openrouter import call_with_retry

logger = structlog.get_logger(__name__)

INVALID_FORMAT_MESSAGE = "Invalid message format. Expected JSON with type and content."
INVALID_MESSAGE_MESSAGE = 'Message must have type "message" and a non-empty content string.'
GENERATION_FAILED_MESSAGE = "Failed to get a response from the AI. Please try again."


class ChatChannel(Protocol):
    """Outbound side of a client connection."""

    @property
    def closed(self) -> bool: ...

    async def send(self, event: Dict[str, Any]) -> None: ...


class ChatSession:
    """
    Conversation state for one client connection.

    Valid messages are queued and executed one turn at a time by run(), so
    the history is never touched by two turns at once. Invalid frames are
    answered immediately from receive().
    """

    def __init__(
        self,
        channel: ChatChannel,
        completions,
        context_loader,
        model: str,
        reasoning_effort: str = "high",
        store_name: str = "our yarn shop",
        primary_language: str = "Swedish",
        retry_attempts: int = 3,
        retry_initial_delay: float = 0.5,
        connection_id: Optional[str] = None
    ):
        """
        Args:
            channel: Where events are sent
            completions: Client exposing async stream_chat(model, messages, reasoning_effort)
            context_loader: Object exposing async load() -> catalog JSON string
            model: Completion model slug
            reasoning_effort: Provider reasoning effort
            store_name: Store name used in the system prompt
            primary_language: Fallback answer language
            retry_attempts: Total attempts to open the completion stream
            retry_initial_delay: First backoff in seconds, doubled per retry
            connection_id: Identifier for logs
        """
        self.channel = channel
        self.completions = completions
        self.context_loader = context_loader
        self.model = model
        self.reasoning_effort = reasoning_effort
        self.store_name = store_name
        self.primary_language = primary_language
        self.retry_attempts = retry_attempts
        self.retry_initial_delay = retry_initial_delay
        self.connection_id = connection_id

        self.state = SessionState.IDLE
        self.history: List[ConversationTurn] = []
        self.product_context: Optional[str] = None
        self._pending: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self.logger = logger.bind(connection_id=connection_id)

    async def _send(self, event) -> None:
        if self.channel.closed:
            return
        await self.channel.send(event.model_dump())

    def parse_frame(self, raw: str):
        """
        Validate an inbound frame.

        Returns:
            (content, None) for a valid message, (None, error message) otherwise
        """
        try:
            payload = json.loads(raw)
        except (TypeError, ValueError):
            return None, INVALID_FORMAT_MESSAGE

        try:
            message = ClientMessage.model_validate(payload)
        except ValidationError:
            return None, INVALID_MESSAGE_MESSAGE

        content = message.content.strip()
        if not content:
            return None, INVALID_MESSAGE_MESSAGE

        return content, None

    async def receive(self, raw: str) -> bool:
        """
        Handle one inbound frame: reply with an error or queue the message.

        Returns:
            True if the message was queued
        """
        if self.state == SessionState.CLOSED:
            return False

        content, error = self.parse_frame(raw)
        if error is not None:
            self.logger.info("chat_frame_rejected", reason=error)
            await self._send(ErrorEvent(message=error))
            return False

        self._pending.put_nowait(content)
        return True

    async def run(self) -> None:
        """Execute queued messages in arrival order until closed."""
        while True:
            content = await self._pending.get()
            if content is None or self.state == SessionState.CLOSED:
                break
            await self.handle_message(content)

    def close(self) -> None:
        """Mark the session closed and stop run() after the current turn."""
        self.state = SessionState.CLOSED
        self._pending.put_nowait(None)

    async def handle_message(self, content: str) -> None:
        """
        Run one full turn for a validated user message.

        Always ends with exactly one done or error event unless the
        connection closed in the meantime.
        """
        if self.product_context is None:
            self.state = SessionState.CONTEXT_LOADING
            self.product_context = await self.context_loader.load()

        self.history.append(ConversationTurn(role="user", content=content))
        self.state = SessionState.GENERATING

        try:
            assistant_turn = await self._generate()
        except Exception as e:
            self.logger.error("chat_completion_failed", error=str(e), exc_info=True)
            capture_exception(e, component="chat", connection_id=self.connection_id)
            await self._send(ErrorEvent(message=GENERATION_FAILED_MESSAGE))
        else:
            if assistant_turn is not None:
                self.history.append(assistant_turn)
                await self._send(DoneEvent())
                self.logger.info(
                    "chat_turn_completed",
                    history_turns=len(self.history),
                    content_chars=len(assistant_turn.content)
                )
        finally:
            if self.state != SessionState.CLOSED:
                self.state = SessionState.IDLE

    async def _generate(self) -> Optional[ConversationTurn]:
        """
        Stream one assistant reply.

        Returns:
            The assistant turn, or None if the connection closed mid-stream
        """
        system_prompt = build_system_prompt(
            self.product_context,
            store_name=self.store_name,
            primary_language=self.primary_language,
        )
        messages = build_api_messages(system_prompt, self.history)

        async def open_stream():
            return await self.completions.stream_chat(
                model=self.model,
                messages=messages,
                reasoning_effort=self.reasoning_effort,
            )

        stream = await call_with_retry(
            open_stream,
            attempts=self.retry_attempts,
            initial_delay=self.retry_initial_delay,
        )

        content_parts: List[str] = []
        reasoning_parts: List[str] = []
        reasoning_details: List[Dict[str, Any]] = []
        first_content_seen = False

        try:
            async for delta in stream:
                if self.channel.closed:
                    self.logger.info("chat_stream_abandoned", reason="connection_closed")
                    return None

                if delta.content:
                    text = delta.content
                    # Some providers open with a spurious space
                    if not first_content_seen:
                        first_content_seen = True
                        if text[0].isspace():
                            text = text[1:]
                    if text:
                        content_parts.append(text)
                        await self._send(TokenEvent(content=text))

                if delta.reasoning:
                    reasoning_parts.append(delta.reasoning)
                if delta.reasoning_details:
                    reasoning_details.extend(delta.reasoning_details)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        return ConversationTurn(
            role="assistant",
            content="".join(content_parts),
            reasoning="".join(reasoning_parts) if reasoning_parts else None,
            reasoning_details=reasoning_details,
        )
