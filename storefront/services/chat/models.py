"""
Pydantic schemas for the chat WebSocket protocol and conversation history
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class SessionState(str, Enum):
    """Lifecycle of one chat connection."""

    IDLE = "idle"
    CONTEXT_LOADING = "context_loading"
    GENERATING = "generating"
    CLOSED = "closed"


class ClientMessage(BaseModel):
    """
    Inbound frame: {"type": "message", "content": "..."}
    """
    type: Literal["message"]
    content: str


class TokenEvent(BaseModel):
    type: Literal["token"] = "token"
    content: str


class DoneEvent(BaseModel):
    type: Literal["done"] = "done"


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str


class ConversationTurn(BaseModel):
    """
    One turn of the in-memory conversation history.

    Assistant turns keep the provider's reasoning so it can be replayed on
    the next request.
    """
    role: Literal["system", "user", "assistant"]
    content: str
    reasoning: Optional[str] = None
    reasoning_details: List[Dict[str, Any]] = Field(default_factory=list)

    def to_api_message(self) -> Dict[str, Any]:
        """Shape expected by the chat completions API."""
        message: Dict[str, Any] = {"role": self.role, "content": self.content}
        if self.role == "assistant":
            if self.reasoning is not None:
                message["reasoning"] = self.reasoning
            if self.reasoning_details:
                message["reasoning_details"] = self.reasoning_details
        return message
