"""FastAPI application and main entry point for rachibot."""

from contextlib import asynccontextmanager
from typing import Any, Optional

# Load .env into os.environ before settings are read
from dotenv import load_dotenv
load_dotenv(override=False)

import redis.asyncio as redis
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from rachibot import __version__
from rachibot.api.proxy import get_services
from rachibot.api.proxy import router as proxy_router
from rachibot.core.config import Settings
from rachibot.core.errors import CommandError
from rachibot.core.interpreter import CommandInterpreter
from rachibot.core.logging_setup import configure_logging
from rachibot.core.services import Services
from rachibot.models.openrouter_client import OpenRouterClient
from rachibot.models.schemas import CommandRequest
from rachibot.storage import InMemoryStore, KeyValueStore, RedisStore

logger = structlog.get_logger(__name__)

GREETING = "Hello, rachibot!"


async def open_store(settings: Settings) -> KeyValueStore:
    """Connect to Redis, falling back to the in-process store."""
    store = RedisStore(url=settings.redis_url)
    try:
        await store.connect()
        await logger.ainfo("store_backend", backend="redis")
        return store
    except (redis.RedisError, OSError) as exc:
        await logger.awarning("redis_unavailable_using_memory", reason=str(exc))
        await store.close()

    memory_store = InMemoryStore()
    await memory_store.connect()
    await logger.ainfo("store_backend", backend="in-memory")
    return memory_store


async def build_services(settings: Settings) -> Services:
    """Construct every service handle from *settings*."""
    store = await open_store(settings)
    if not settings.openrouter.is_configured:
        await logger.awarning("openrouter_api_key_missing")
    model = OpenRouterClient(
        api_key=settings.openrouter.api_key.get_secret_value(),
        api_base_url=settings.openrouter.base_url,
        timeout_seconds=settings.openrouter.timeout,
    )
    return Services.build(settings, store, model)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build services on startup unless they were injected, close them on shutdown."""
    owned = getattr(app.state, "services", None) is None
    if owned:
        settings = Settings.from_env()
        configure_logging(settings.system.log_level, json=settings.system.environment == "production")
        await logger.ainfo("application_startup_starting", environment=settings.system.environment)
        services = await build_services(settings)
        app.state.services = services
        app.state.interpreter = CommandInterpreter(services)
    await logger.ainfo("application_started")
    yield
    if owned:
        await logger.ainfo("application_shutdown_starting")
        await app.state.services.aclose()
        app.state.services = None
        app.state.interpreter = None


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        services: Pre-built services; when given the app neither builds
            nor closes its own.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="rachibot",
        description="Message-command interpreter in front of an LLM provider",
        version=__version__,
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services
        app.state.interpreter = CommandInterpreter(services)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CommandError)
    async def command_error_handler(request: Request, exc: CommandError) -> JSONResponse:
        await logger.awarning(
            "command_failed",
            path=request.url.path,
            status=exc.status_code,
            error=exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    # ── Completions pass-through ─────────────────────────────────
    app.include_router(proxy_router)

    @app.get("/", response_class=PlainTextResponse)
    async def greeting() -> str:
        return GREETING

    @app.get("/health")
    async def health_check(request: Request) -> dict[str, Any]:
        """Health check endpoint.

        Returns:
            Overall status and the store backend's ping result.
        """
        store = get_services(request).store
        store_ok = await store.ping()
        return {
            "ok": store_ok,
            "store": f"{'redis' if isinstance(store, RedisStore) else 'in-memory'}"
            f" ({'healthy' if store_ok else 'unhealthy'})",
        }

    @app.post("/")
    async def handle_command(payload: CommandRequest, request: Request) -> Any:
        """Interpret one command message.

        Text replies are sent as plain text, anything else as JSON.
        """
        interpreter: CommandInterpreter = request.app.state.interpreter
        reply = await interpreter.handle(payload)
        if isinstance(reply, str):
            return PlainTextResponse(reply)
        return reply

    return app


# Create application instance
app = create_app()


def run() -> None:
    """Start uvicorn on the configured host and port."""
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run(
        "rachibot.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )


if __name__ == "__main__":
    run()
