"""
OpenRouter Completion Client
Streams chat completions through OpenRouter's OpenAI-compatible API,
including the provider's reasoning deltas.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, TypeVar

import structlog
from openai import AsyncOpenAI
from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass
class ChatDelta:
    """Incremental piece of a streamed completion."""

    content: Optional[str] = None
    reasoning: Optional[str] = None
    reasoning_details: List[Dict[str, Any]] = field(default_factory=list)


def _as_dict(record: Any) -> Dict[str, Any]:
    if isinstance(record, dict):
        return record
    return record.model_dump(exclude_none=True)


def delta_from_chunk(chunk: Any) -> Optional[ChatDelta]:
    """
    Extract the first choice's delta from a streamed chunk.

    OpenRouter adds "reasoning" and "reasoning_details" to the delta; the
    OpenAI SDK keeps them as extra attributes.

    Returns:
        ChatDelta, or None when the chunk has no choices/delta
    """
    choices = getattr(chunk, "choices", None)
    if not choices:
        return None

    delta = getattr(choices[0], "delta", None)
    if delta is None:
        return None

    details = getattr(delta, "reasoning_details", None) or []
    return ChatDelta(
        content=getattr(delta, "content", None),
        reasoning=getattr(delta, "reasoning", None),
        reasoning_details=[_as_dict(record) for record in details],
    )


def _log_retry(retry_state: RetryCallState) -> None:
    logger.warning(
        "completion_request_retry",
        attempt=retry_state.attempt_number,
        wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
        error=str(retry_state.outcome.exception()) if retry_state.outcome else None,
    )


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    attempts: int = 3,
    initial_delay: float = 0.5,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
) -> T:
    """
    Await fn() with exponential backoff.

    With the defaults: up to 3 attempts, waiting 0.5s then 1.0s. The last
    attempt's exception is re-raised unchanged.

    Args:
        fn: Zero-argument callable returning an awaitable
        attempts: Total attempts including the first
        initial_delay: Wait before the first retry, doubled each retry
        sleep: Coroutine used to wait between attempts

    Returns:
        fn's result
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=initial_delay),
        before_sleep=_log_retry,
        reraise=True,
        sleep=sleep,
    )
    # fn may be a lambda returning a coroutine; await it inside each attempt
    async for attempt in retrying:
        with attempt:
            return await fn()


class OpenRouterClient:
    """
    Streaming chat completions via OpenRouter.
    """

    def __init__(self, api_key: Optional[str], base_url: str, timeout: float = 120.0):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.client: Optional[AsyncOpenAI] = None

    @classmethod
    def from_settings(cls, settings) -> "OpenRouterClient":
        return cls(
            api_key=settings.openrouter_api_key,
            base_url=settings.openrouter_base_url,
            timeout=settings.openrouter_timeout_seconds,
        )

    def init(self) -> None:
        """
        Create the API client.

        Raises:
            RuntimeError: If OPENROUTER_API_KEY is not configured
        """
        if not self.api_key:
            raise RuntimeError("Missing required setting: OPENROUTER_API_KEY")
        self.client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)
        logger.info("openrouter_client_initialized", base_url=self.base_url)

    async def stream_chat(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        reasoning_effort: str = "high"
    ) -> AsyncIterator[ChatDelta]:
        """
        Open a streaming completion.

        The request itself is awaited here, so connection and HTTP errors
        surface from this call; errors while reading the stream surface from
        the returned iterator.

        Args:
            model: OpenRouter model slug
            messages: Chat messages in API shape
            reasoning_effort: OpenRouter reasoning effort ("low" | "medium" | "high")

        Returns:
            Async iterator of ChatDelta in arrival order
        """
        if self.client is None:
            self.init()

        stream = await self.client.chat.completions.create(
            model=model,
            messages=messages,
            stream=True,
            extra_body={"reasoning": {"effort": reasoning_effort}},
        )
        return self._iter_deltas(stream)

    async def _iter_deltas(self, stream) -> AsyncIterator[ChatDelta]:
        try:
            async for chunk in stream:
                delta = delta_from_chunk(chunk)
                if delta is not None:
                    yield delta
        finally:
            await stream.close()

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
            self.client = None
