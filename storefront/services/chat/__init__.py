"""
Chat Module
Streaming shopping assistant grounded in the product search index
"""

from storefront.services.chat.context import ProductContextLoader
from storefront.services.chat.models import ConversationTurn, SessionState
from storefront.services.chat.session import ChatSession

__all__ = [
    "ChatSession",
    "ConversationTurn",
    "ProductContextLoader",
    "SessionState",
]
