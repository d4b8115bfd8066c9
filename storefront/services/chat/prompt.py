"""
Chat Prompt Builder
System prompt template and request message assembly
"""

from typing import Any, Dict, List, Sequence

from storefront.services.chat.models import ConversationTurn

SYSTEM_PROMPT_TEMPLATE = """You are a helpful shopping assistant for {store_name}. \
Your job is to help customers find the right yarn and accessories for their needs and projects.

Ask questions to understand what the customer needs: what they want to knit or crochet, \
preferred quality, budget and colour preferences. Then give personal product recommendations \
from the store's catalog.

Language: always answer in the language the customer writes in. If it is unclear, answer in {primary_language}.

Only recommend products that appear in the catalog below. Never invent products, prices, \
variants or stock levels. If nothing in the catalog fits, say so.

When recommending products, list each one on its own line with its title, price and a link \
in the form /products/<handle>, followed by one sentence on why it fits.

The store's current catalog in JSON format:
{products}"""


def build_system_prompt(product_context: str, store_name: str, primary_language: str) -> str:
    """Interpolate the catalog snapshot into the system prompt."""
    return SYSTEM_PROMPT_TEMPLATE.format(
        store_name=store_name,
        primary_language=primary_language,
        products=product_context,
    )


def build_api_messages(system_prompt: str, history: Sequence[ConversationTurn]) -> List[Dict[str, Any]]:
    """
    System turn followed by the full history in chronological order.
    """
    system_turn = ConversationTurn(role="system", content=system_prompt)
    return [system_turn.to_api_message()] + [turn.to_api_message() for turn in history]
