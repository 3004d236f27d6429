"""Process-local store used when Redis is unreachable and in tests.

Mirrors the subset of Redis semantics :class:`RedisStore` exposes:
string values, hashes, lists with inclusive negative-index ranges and
per-key expiry. Expired keys are purged lazily on access.
"""

import time
from typing import Any, Optional

import structlog

logger = structlog.get_logger(__name__)


def _redis_slice(items: list[str], start: int, stop: int) -> list[str]:
    """Apply Redis ``LRANGE`` index rules to a Python list."""
    length = len(items)
    if start < 0:
        start = max(length + start, 0)
    if stop < 0:
        stop = length + stop
    if start >= length or stop < start:
        return []
    return items[start : stop + 1]


class InMemoryStore:
    """Dictionary-backed key-value store.

    Args:
        default_ttl: Expiry applied by :meth:`set` when no ttl is passed.
    """

    def __init__(self, default_ttl: Optional[int] = None) -> None:
        self.default_ttl = default_ttl
        self._data: dict[str, Any] = {}
        self._expires: dict[str, float] = {}

    async def connect(self) -> None:
        logger.info("memory_store_ready")

    async def close(self) -> None:
        self._data.clear()
        self._expires.clear()

    async def ping(self) -> bool:
        return True

    # ── Internals ─────────────────────────────────────────────────

    def _alive(self, key: str) -> bool:
        deadline = self._expires.get(key)
        if deadline is not None and deadline <= time.monotonic():
            self._data.pop(key, None)
            self._expires.pop(key, None)
        return key in self._data

    def _typed(self, key: str, kind: type) -> Any:
        if not self._alive(key):
            return None
        value = self._data[key]
        if not isinstance(value, kind):
            raise TypeError(
                f"WRONGTYPE key {key} holds {type(value).__name__}, not {kind.__name__}"
            )
        return value

    # ── Strings ───────────────────────────────────────────────────

    async def get(self, key: str) -> Optional[str]:
        return self._typed(key, str)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        self._data[key] = value
        self._expires.pop(key, None)
        ttl = ttl if ttl is not None else self.default_ttl
        if ttl is not None:
            self._expires[key] = time.monotonic() + ttl
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._alive(key):
                del self._data[key]
                self._expires.pop(key, None)
                removed += 1
        return removed

    async def expire(self, key: str, seconds: int) -> bool:
        if not self._alive(key):
            return False
        self._expires[key] = time.monotonic() + seconds
        return True

    # ── Hashes ────────────────────────────────────────────────────

    async def hget(self, key: str, field: str) -> Optional[str]:
        mapping = self._typed(key, dict)
        return None if mapping is None else mapping.get(field)

    async def hset(self, key: str, field: str, value: str) -> int:
        mapping = self._typed(key, dict)
        if mapping is None:
            mapping = self._data[key] = {}
        added = 0 if field in mapping else 1
        mapping[field] = value
        return added

    async def hgetall(self, key: str) -> dict[str, str]:
        mapping = self._typed(key, dict)
        return dict(mapping or {})

    # ── Lists ─────────────────────────────────────────────────────

    async def rpush(self, key: str, *values: str) -> int:
        items = self._typed(key, list)
        if items is None:
            items = self._data[key] = []
        items.extend(values)
        return len(items)

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        items = self._typed(key, list)
        return list(_redis_slice(items or [], start, stop))

    async def ltrim(self, key: str, start: int, stop: int) -> bool:
        items = self._typed(key, list)
        if items is None:
            return True
        kept = _redis_slice(items, start, stop)
        if kept:
            self._data[key] = list(kept)
        else:
            await self.delete(key)
        return True

    def ttl(self, key: str) -> Optional[float]:
        """Seconds left before *key* expires, ``None`` when it never does."""
        if not self._alive(key):
            return None
        deadline = self._expires.get(key)
        return None if deadline is None else deadline - time.monotonic()
