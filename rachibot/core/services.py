"""Explicitly constructed service handles injected into the interpreter.

Nothing in the command path reaches for a module-level client: the
HTTP app builds one :class:`Services` at startup and tests build one
around an in-memory store, a fake model and mocked HTTP transports.
"""

from dataclasses import dataclass
from typing import Any, Optional, Protocol

import httpx
import structlog

from rachibot.bridges.card_game import CardGameBridge
from rachibot.bridges.esports import EsportsBridge
from rachibot.bridges.github import GitHubBridge
from rachibot.bridges.web import WebBridge, new_http_client
from rachibot.core.aliases import AliasResolver
from rachibot.core.config import Settings
from rachibot.core.context_store import ContextStore
from rachibot.core.features import FeatureFlags
from rachibot.models.schemas import ChatMessage, Generation
from rachibot.storage.base import KeyValueStore

logger = structlog.get_logger(__name__)


class ModelCapability(Protocol):
    """What the interpreter needs from the LLM provider."""

    async def generate(self, model_id: str, messages: list[ChatMessage]) -> Generation: ...

    async def list_models(self) -> list[dict[str, Any]]: ...

    async def credits(self) -> str: ...

    async def forward(self, body: bytes, content_type: str = "application/json") -> httpx.Response: ...

    async def close(self) -> None: ...


@dataclass
class Services:
    """Handles shared by every request.

    Attributes:
        settings: Loaded configuration.
        store: Key-value store.
        model: LLM provider capability.
        http: Outbound HTTP client shared by the bridges.
        features: Per-caller feature flags.
        aliases: Model alias resolver.
        context: Conversation context adapter.
        web: Generic web fetching.
        github: GitHub REST bridge.
        card_game: Room and deck listings.
        esports: Match schedules.
    """

    settings: Settings
    store: KeyValueStore
    model: ModelCapability
    http: httpx.AsyncClient
    features: FeatureFlags
    aliases: AliasResolver
    context: ContextStore
    web: WebBridge
    github: GitHubBridge
    card_game: CardGameBridge
    esports: EsportsBridge

    @classmethod
    def build(
        cls,
        settings: Settings,
        store: KeyValueStore,
        model: ModelCapability,
        http: Optional[httpx.AsyncClient] = None,
    ) -> "Services":
        """Wire every handle from *settings* around the given store and model."""
        limits = settings.interpreter
        http = http or new_http_client(timeout=limits.http_timeout)
        features = FeatureFlags(store)
        web = WebBridge(http)
        return cls(
            settings=settings,
            store=store,
            model=model,
            http=http,
            features=features,
            aliases=AliasResolver(store, max_depth=limits.max_chain_depth),
            context=ContextStore(
                store,
                features,
                max_turns=limits.context_max_turns,
                ttl=limits.context_ttl,
                default_length=limits.default_context_length,
            ),
            web=web,
            github=GitHubBridge(
                http,
                token=settings.github.token.get_secret_value(),
                api_base_url=settings.github.api_base_url,
            ),
            card_game=CardGameBridge(web),
            esports=EsportsBridge(web, timezone=limits.timezone),
        )

    async def aclose(self) -> None:
        """Release network resources."""
        await self.http.aclose()
        await self.model.close()
        await self.store.close()
        logger.info("services_closed")
