"""
OpenAI-compatible completions pass-through.

Endpoints:
  POST /api/v1/chat/completions  - forward the raw body to OpenRouter and
                                   stream the answer back unchanged

The route can be switched off at runtime by storing ``"false"`` under
``key:$/api/v1/chat/completions``.
"""

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from rachibot.core.errors import EndpointDisabled
from rachibot.core.services import Services

logger = structlog.get_logger(__name__)

COMPLETIONS_PATH = "/api/v1/chat/completions"
KILL_SWITCH_KEY = f"key:${COMPLETIONS_PATH}"

router = APIRouter(tags=["proxy"])


def get_services(request: Request) -> Services:
    return request.app.state.services


@router.post(COMPLETIONS_PATH)
async def chat_completions(request: Request) -> StreamingResponse:
    """Forward a chat completion request to the model provider.

    Raises:
        EndpointDisabled: If the kill switch is set.
    """
    services = get_services(request)
    if await services.store.get(KILL_SWITCH_KEY) == "false":
        raise EndpointDisabled("endpoint disabled")

    body = await request.body()
    content_type = request.headers.get("content-type", "application/json")
    upstream = await services.model.forward(body, content_type)
    logger.info("completion_forwarded", status=upstream.status_code, size=len(body))

    return StreamingResponse(
        upstream.aiter_bytes(),
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type"),
        background=BackgroundTask(upstream.aclose),
    )
