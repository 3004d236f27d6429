"""Key-value store interface shared by the Redis and in-memory backends."""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """String key-value operations the interpreter relies on.

    Values are always ``str``. List ranges follow Redis semantics: both
    bounds are inclusive and negative indexes count from the tail.
    """

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def ping(self) -> bool: ...

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool: ...

    async def delete(self, *keys: str) -> int: ...

    async def expire(self, key: str, seconds: int) -> bool: ...

    async def hget(self, key: str, field: str) -> Optional[str]: ...

    async def hset(self, key: str, field: str, value: str) -> int: ...

    async def hgetall(self, key: str) -> dict[str, str]: ...

    async def rpush(self, key: str, *values: str) -> int: ...

    async def lrange(self, key: str, start: int, stop: int) -> list[str]: ...

    async def ltrim(self, key: str, start: int, stop: int) -> bool: ...
