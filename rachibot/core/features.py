"""Per-caller feature flags stored in the ``feature:<caller>`` hash."""

from typing import Optional

from rachibot.storage.base import KeyValueStore


def feature_key(caller: str) -> str:
    return f"feature:{caller}"


class FeatureFlags:
    """Reads and toggles caller feature settings.

    Flags are ``"true"``/``"false"`` strings; the hash also carries the
    numeric ``length`` context setting.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    async def get(self, caller: str, name: str) -> Optional[str]:
        return await self.store.hget(feature_key(caller), name)

    async def set(self, caller: str, name: str, value: str) -> int:
        return await self.store.hset(feature_key(caller), name, value)

    async def enable(self, caller: str, name: str) -> int:
        return await self.set(caller, name, "true")

    async def disable(self, caller: str, name: str) -> int:
        return await self.set(caller, name, "false")

    async def is_enabled(self, caller: str, name: str) -> bool:
        return await self.get(caller, name) == "true"

    async def all(self, caller: str) -> dict[str, str]:
        return await self.store.hgetall(feature_key(caller))

    async def reset(self, caller: str) -> int:
        return await self.store.delete(feature_key(caller))
