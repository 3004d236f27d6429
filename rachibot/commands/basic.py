"""Store and introspection commands answered without the model.

Covers tag/label introspection, the generic ``set``/``get`` store,
``echo``, ``ping``, ``snapshot``, feature toggles and the last usage
record.
"""

import json
from typing import Any, Optional

from rachibot.core.dispatcher import Reply
from rachibot.core.errors import KeyNotFound, NotFoundError, UpstreamFailure
from rachibot.core.parser import match_args
from rachibot.core.services import Services
from rachibot.core.state import RequestState


def store_key(name: str) -> str:
    return f"key:{name}"


def usage_key(caller: str, group: str) -> str:
    return f"usage:{caller}:{group}:last"


def format_pairs(mapping: dict[str, Any]) -> str:
    return "\n".join(f"{key}: {value}" for key, value in mapping.items())


# ── Introspection ─────────────────────────────────────────────────


async def show_tags(state: RequestState, services: Services) -> Optional[Reply]:
    return Reply(", ".join(state.tags))


async def show_labels(state: RequestState, services: Services) -> Optional[Reply]:
    lines = [f"{key}: {value}" if value else key for key, value in state.labels.items()]
    return Reply("\n".join(lines))


# ── Generic store ─────────────────────────────────────────────────


async def set_from_reference(state: RequestState, services: Services) -> Optional[Reply]:
    """``set <key>`` with a quoted message: the reference becomes the value."""
    key = match_args(r"set\s+(\S+)", state.message, "set").group(1)
    await services.store.set(store_key(key), state.reference)
    return Reply(f"{key}: {state.reference}")


async def set_value(state: RequestState, services: Services) -> Optional[Reply]:
    """``set <key> <value>``."""
    key, value = match_args(r"set\s+(\S+)\s+(.+)", state.message, "set").groups()
    await services.store.set(store_key(key), value)
    return Reply(f"{key}: {value}")


async def _get(services: Services, key: str) -> str:
    value = await services.store.get(store_key(key))
    if not value:
        raise KeyNotFound(f"key {key} not found")
    return value


async def get_reference(state: RequestState, services: Services) -> Optional[Reply]:
    """``get`` with a quoted message: the reference names the key."""
    return Reply(await _get(services, state.reference))


async def get_value(state: RequestState, services: Services) -> Optional[Reply]:
    key = match_args(r"get\s+(\S+)", state.message, "get").group(1)
    return Reply(await _get(services, key))


async def echo(state: RequestState, services: Services) -> Optional[Reply]:
    """Echo the image (``#image``), the reference (``#ref``) or the text."""
    if state.has_tag("image") and state.image:
        return Reply(state.image)
    if state.has_tag("ref") and state.reference:
        return Reply(state.reference)
    state.message = match_args(r"echo\s*(.*)", state.message, "echo").group(1)
    return Reply(state.message)


# ── Liveness ──────────────────────────────────────────────────────


async def ping(state: RequestState, services: Services) -> Optional[Reply]:
    return Reply("pong")


async def snapshot(state: RequestState, services: Services) -> Optional[Reply]:
    return Reply(state.snapshot())


# ── Feature flags ─────────────────────────────────────────────────


async def enable_feature(state: RequestState, services: Services) -> Optional[Reply]:
    name = match_args(r"enable\s+(\S+)", state.message, "enable").group(1)
    return Reply(await services.features.enable(state.caller, name))


async def disable_feature(state: RequestState, services: Services) -> Optional[Reply]:
    name = match_args(r"disable\s+(\S+)", state.message, "disable").group(1)
    return Reply(await services.features.disable(state.caller, name))


async def list_features(state: RequestState, services: Services) -> Optional[Reply]:
    """Show flags; ``#reset`` drops them all, ``#raw`` returns the mapping."""
    if state.has_tag("reset"):
        return Reply(await services.features.reset(state.caller))
    features = await services.features.all(state.caller)
    if state.has_tag("raw"):
        return Reply(features)
    return Reply(format_pairs(features))


# ── Usage ─────────────────────────────────────────────────────────


async def last_usage(state: RequestState, services: Services) -> Optional[Reply]:
    value = await services.store.get(usage_key(state.caller, state.group))
    if not value:
        raise NotFoundError("usage not found")
    try:
        record = json.loads(value)
    except ValueError as exc:
        raise UpstreamFailure("corrupt usage record") from exc
    return Reply(format_pairs(record))
