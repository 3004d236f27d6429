"""Conversation context persisted as a bounded, expiring Redis list.

Each list entry under ``context:<caller>:<group>`` is one turn: a JSON
array of chat messages. Storage keeps the most recent
``max_turns`` turns; a read replays the last *L* of them, where *L* comes
from the request, the caller's ``length`` feature, or the default.

Reads and appends are not atomic with respect to concurrent requests for
the same pair; interleaved turns are accepted.
"""

from typing import Optional

import structlog
from pydantic import ValidationError

from rachibot.core.features import FeatureFlags
from rachibot.models.schemas import ChatMessage, ConversationTurn, turn_adapter
from rachibot.storage.base import KeyValueStore

logger = structlog.get_logger(__name__)

DEFAULT_LENGTH = 7
MAX_TURNS = 42
CONTEXT_TTL = 3600


def context_key(caller: str, group: str) -> str:
    return f"context:{caller}:{group}"


class ContextStore:
    """Loads, appends and clears conversation turns.

    Args:
        store: Backing key-value store.
        features: Feature flags used for the ``context`` and ``length`` settings.
        max_turns: Turns kept per list and upper clamp for window lengths.
        ttl: Expiry refreshed on every append.
        default_length: Window length when nothing else is configured.
    """

    def __init__(
        self,
        store: KeyValueStore,
        features: FeatureFlags,
        max_turns: int = MAX_TURNS,
        ttl: int = CONTEXT_TTL,
        default_length: int = DEFAULT_LENGTH,
    ) -> None:
        self.store = store
        self.features = features
        self.max_turns = max_turns
        self.ttl = ttl
        self.default_length = default_length

    async def should_include(self, caller: str, tagged: bool) -> bool:
        """Context is replayed when the caller enabled it or the request is tagged."""
        return tagged or await self.features.is_enabled(caller, "context")

    async def window_length(self, caller: str, requested: Optional[str] = None) -> int:
        """Resolve how many turns to replay.

        The requested value wins over the caller's ``length`` feature. Any
        explicit value is clamped to ``[0, max_turns]`` and written back to
        the feature so later requests reuse it. A value that is not an
        integer is replaced by the default.
        """
        value = requested if requested is not None else await self.features.get(caller, "length")
        if value is None or value == "":
            return self.default_length
        try:
            length = min(max(int(value), 0), self.max_turns)
        except ValueError:
            logger.info("context_length_reset", caller=caller, value=value)
            length = self.default_length
        await self.features.set(caller, "length", str(length))
        return length

    async def load(
        self,
        caller: str,
        group: str,
        requested_length: Optional[str] = None,
    ) -> list[ConversationTurn]:
        """Return the most recent turns, oldest first.

        Entries that no longer parse as a turn are skipped.
        """
        length = await self.window_length(caller, requested_length)
        if length <= 0:
            return []
        items = await self.store.lrange(context_key(caller, group), -length, -1)
        turns = []
        for item in items:
            try:
                turns.append(turn_adapter.validate_json(item))
            except ValidationError as e:
                logger.warning("context_turn_skipped", caller=caller, group=group, error=str(e))
        logger.debug("context_loaded", caller=caller, group=group, turns=len(turns), length=length)
        return turns

    async def load_messages(
        self,
        caller: str,
        group: str,
        requested_length: Optional[str] = None,
    ) -> list[ChatMessage]:
        """Same as :meth:`load`, flattened into one message list."""
        turns = await self.load(caller, group, requested_length)
        return [message for turn in turns for message in turn]

    async def append(self, caller: str, group: str, turn: ConversationTurn) -> None:
        """Push *turn*, keep the newest ``max_turns`` entries and refresh expiry."""
        key = context_key(caller, group)
        await self.store.rpush(key, turn_adapter.dump_json(turn).decode("utf-8"))
        await self.store.ltrim(key, -self.max_turns, -1)
        await self.store.expire(key, self.ttl)

    async def clear(self, caller: str, group: str) -> int:
        """Drop the whole list. Returns the number of keys removed."""
        return await self.store.delete(context_key(caller, group))
