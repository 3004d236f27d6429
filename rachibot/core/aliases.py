"""Model alias resolution over ``key:/<name>`` hops.

A directive like ``/fast`` is not a model identifier: the store maps
``key:/fast`` to another name or to a ``provider/model`` string. The
resolver follows hops until a value contains ``/``. The alias graph is
mutable from outside and may contain cycles; only the depth bound
guarantees termination.
"""

from collections.abc import Sequence

import structlog

from rachibot.core.errors import AliasNotFound, ChainTooDeep
from rachibot.storage.base import KeyValueStore

logger = structlog.get_logger(__name__)

MAX_CHAIN_DEPTH = 42
SEPARATOR = "/"


def render_chain(chain: Sequence[str]) -> str:
    """Render ``["a", "b"]`` as ``/a -> /b``."""
    return " -> ".join(f"/{name}" for name in chain)


def alias_key(name: str) -> str:
    return f"key:/{name}"


class AliasResolver:
    """Walks alias hops in the key-value store.

    Args:
        store: Store holding ``key:/<name>`` entries.
        max_depth: Chain length after which resolution gives up.
    """

    def __init__(self, store: KeyValueStore, max_depth: int = MAX_CHAIN_DEPTH) -> None:
        self.store = store
        self.max_depth = max_depth

    async def resolve(self, chain: "Sequence[str] | str") -> list[str]:
        """Extend *chain* until its last element is a qualified identifier.

        Args:
            chain: Seed chain, or a single seed name.

        Returns:
            The full chain; its last element is the ``provider/model`` id.

        Raises:
            ChainTooDeep: If more than ``max_depth`` hops are needed.
            AliasNotFound: If a hop is missing from the store.
        """
        chain = [chain] if isinstance(chain, str) else list(chain)
        if not chain:
            chain = [""]

        name = chain[-1]
        while SEPARATOR not in name:
            if len(chain) > self.max_depth:
                logger.warning("alias_chain_too_deep", chain=render_chain(chain[:3]), depth=len(chain))
                raise ChainTooDeep("too deep key chain")
            value = await self.store.get(alias_key(name))
            if not value:
                raise AliasNotFound(f"key chain {render_chain(chain)} not found", chain)
            name = value
            chain.append(name)

        logger.debug("alias_resolved", chain=render_chain(chain))
        return chain

    async def resolve_model(self, name: str) -> str:
        """Return only the terminal identifier for *name*."""
        return (await self.resolve(name))[-1]
