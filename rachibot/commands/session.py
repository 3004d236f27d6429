"""Commands inspecting or dropping the loaded conversation context."""

from typing import Optional

from rachibot.core.dispatcher import Reply
from rachibot.core.services import Services
from rachibot.core.state import RequestState
from rachibot.models.schemas import ChatMessage

ROLE_ICONS = {
    "system": "⚙️",
    "user": "🤔",
    "assistant": "🤖",
    "tool": "🔧",
}

PREVIEW_CHARS = 137


def preview(text: str) -> str:
    """First line of the trimmed text, cut to ``PREVIEW_CHARS``."""
    return text.strip()[:PREVIEW_CHARS].split("\n")[0].strip()


def summarize(messages: list[ChatMessage]) -> str:
    """One ``<icon> <preview>`` line per text part of every message."""
    return "\n".join(
        f"{ROLE_ICONS[message.role]} {preview(text)}"
        for message in messages
        for text in message.text_parts()
    )


async def show_context(state: RequestState, services: Services) -> Optional[Reply]:
    if state.has_tag("raw"):
        return Reply([message.model_dump(mode="json") for message in state.context])
    return Reply(summarize(state.context))


async def clear_context(state: RequestState, services: Services) -> Optional[Reply]:
    return Reply(await services.context.clear(state.caller, state.group))
