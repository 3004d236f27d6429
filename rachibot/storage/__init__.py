"""Key-value storage backends."""

from rachibot.storage.base import KeyValueStore
from rachibot.storage.memory_store import InMemoryStore
from rachibot.storage.redis_store import RedisStore

__all__ = ["KeyValueStore", "InMemoryStore", "RedisStore"]
