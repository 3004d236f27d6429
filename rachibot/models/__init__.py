"""Models package for chat schemas and the LLM provider client."""

from rachibot.models.openrouter_client import OpenRouterClient
from rachibot.models.schemas import (
    ChatMessage,
    CommandRequest,
    ContentPart,
    ConversationTurn,
    Generation,
    ImagePart,
    TextPart,
    Usage,
)

__all__ = [
    # Schemas
    "ChatMessage",
    "CommandRequest",
    "ContentPart",
    "ConversationTurn",
    "Generation",
    "ImagePart",
    "TextPart",
    "Usage",
    # Client
    "OpenRouterClient",
]
