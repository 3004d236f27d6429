"""rachibot core - message parsing, alias resolution, dispatch and context handling."""

from rachibot.core.config import (
    GitHubSettings,
    InterpreterSettings,
    MasterSettings,
    OpenRouterSettings,
    RedisSettings,
    ServerSettings,
    Settings,
    SystemSettings,
)
from rachibot.core.errors import (
    AliasNotFound,
    AuthorizationMissing,
    ChainTooDeep,
    CommandError,
    EndpointDisabled,
    ForbiddenError,
    InvalidCommand,
    KeyNotFound,
    NotFoundError,
    NoUserMessage,
    TagPromptNotFound,
    UpstreamFailure,
)

__all__ = [
    # Configuration
    "SystemSettings",
    "ServerSettings",
    "RedisSettings",
    "OpenRouterSettings",
    "GitHubSettings",
    "InterpreterSettings",
    "MasterSettings",
    "Settings",
    # Errors
    "CommandError",
    "InvalidCommand",
    "ChainTooDeep",
    "NoUserMessage",
    "NotFoundError",
    "KeyNotFound",
    "AliasNotFound",
    "TagPromptNotFound",
    "ForbiddenError",
    "EndpointDisabled",
    "AuthorizationMissing",
    "UpstreamFailure",
]
