"""Configuration management for rachibot using Pydantic Settings."""

from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SystemSettings(BaseSettings):
    """System-level configuration settings.

    Attributes:
        environment: Deployment environment (development, staging, production).
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_level(cls, v: str) -> str:
        """Accept lowercase level names from the environment."""
        return v.upper() if isinstance(v, str) else v

    model_config = SettingsConfigDict(
        env_prefix="RACHIBOT_SYSTEM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class ServerSettings(BaseSettings):
    """HTTP server settings.

    Attributes:
        host: Interface uvicorn binds to.
        port: Port uvicorn listens on.
    """

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=3000, description="Bind port", gt=0, le=65535)

    model_config = SettingsConfigDict(
        env_prefix="RACHIBOT_SERVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class RedisSettings(BaseSettings):
    """Redis configuration settings.

    Attributes:
        host: Redis server host.
        port: Redis server port.
        db: Redis database number.
        password: Redis authentication password (optional).
        url: Full connection URL; overrides the individual fields when set.
    """

    host: str = Field(default="localhost", description="Redis server host")
    port: int = Field(default=6379, description="Redis server port")
    db: int = Field(default=0, description="Redis database number", ge=0, le=15)
    password: SecretStr | None = Field(default=None, description="Redis password")
    url: Optional[str] = Field(default=None, description="Redis connection URL")

    @property
    def connection_url(self) -> str:
        """Generate Redis connection URL."""
        if self.url:
            return self.url
        password_part = f":{self.password.get_secret_value()}@" if self.password else ""
        return f"redis://{password_part}{self.host}:{self.port}/{self.db}"

    model_config = SettingsConfigDict(
        env_prefix="RACHIBOT_REDIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class OpenRouterSettings(BaseSettings):
    """OpenRouter LLM configuration settings.

    Attributes:
        api_key: OpenRouter API key.
        base_url: Base URL of the OpenAI-compatible API.
        timeout: Request timeout in seconds.
    """

    api_key: SecretStr = Field(default=SecretStr(""), description="OpenRouter API key")
    base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="OpenRouter API base URL",
    )
    timeout: float = Field(default=120.0, description="Request timeout in seconds", gt=0)

    @property
    def is_configured(self) -> bool:
        """Whether a real API key has been provided."""
        return bool(self.api_key.get_secret_value())

    model_config = SettingsConfigDict(
        env_prefix="RACHIBOT_OPENROUTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class GitHubSettings(BaseSettings):
    """GitHub REST API settings.

    Attributes:
        token: Personal access token used as a bearer credential.
        api_base_url: GitHub REST API root.
        help_owner: Owner of the repository whose source answers ``help``.
        help_repo: Repository whose source answers ``help``.
        help_path: File sent to the model for ``help``.
        pulls_owner: Owner of the repository polled by ``guyu``.
        pulls_repo: Repository polled by ``guyu``.
    """

    token: SecretStr = Field(default=SecretStr(""), description="GitHub token")
    api_base_url: str = Field(default="https://api.github.com", description="GitHub API URL")
    help_owner: str = Field(default="xqm32", description="Help source owner")
    help_repo: str = Field(default="rachibot", description="Help source repository")
    help_path: str = Field(default="src/index.ts", description="Help source file path")
    pulls_owner: str = Field(default="genius-invokation", description="Pull request feed owner")
    pulls_repo: str = Field(default="genius-invokation", description="Pull request feed repository")

    model_config = SettingsConfigDict(
        env_prefix="RACHIBOT_GITHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class InterpreterSettings(BaseSettings):
    """Limits and defaults of the command interpreter.

    Attributes:
        max_chain_depth: Maximum alias hops before resolution fails.
        context_max_turns: Turns kept in a conversation list.
        context_ttl: Seconds a conversation list survives without writes.
        default_context_length: Turns replayed when nothing else is configured.
        command_length_limit: Messages at least this long skip short commands.
        timezone: Zone used for schedule dates.
        smart_questions_ttl: Seconds the cached essay survives.
        http_timeout: Timeout for outbound content fetches.
    """

    max_chain_depth: int = Field(default=42, gt=0)
    context_max_turns: int = Field(default=42, gt=0)
    context_ttl: int = Field(default=3600, gt=0)
    default_context_length: int = Field(default=7, ge=0)
    command_length_limit: int = Field(default=42, gt=0)
    timezone: str = Field(default="Asia/Shanghai")
    smart_questions_ttl: int = Field(default=86400, gt=0)
    http_timeout: float = Field(default=30.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="RACHIBOT_INTERPRETER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class MasterSettings(BaseSettings):
    """Master settings combining all configuration classes.

    Provides unified access to all subsystem configurations.
    """

    system: SystemSettings = Field(default_factory=SystemSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    openrouter: OpenRouterSettings = Field(default_factory=OpenRouterSettings)
    github: GitHubSettings = Field(default_factory=GitHubSettings)
    interpreter: InterpreterSettings = Field(default_factory=InterpreterSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def from_env(cls) -> "MasterSettings":
        """Load settings from environment variables and .env file.

        Returns:
            MasterSettings instance with all configuration loaded.
        """
        return cls(
            system=SystemSettings(),
            server=ServerSettings(),
            redis=RedisSettings(),
            openrouter=OpenRouterSettings(),
            github=GitHubSettings(),
            interpreter=InterpreterSettings(),
        )

    @property
    def redis_url(self) -> str:
        """Redis connection URL."""
        return self.redis.connection_url


# Alias so main.py can do: from rachibot.core.config import Settings
Settings = MasterSettings
