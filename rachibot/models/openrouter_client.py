"""OpenRouter client for rachibot: the opaque model capability.

Speaks the OpenAI-compatible ``/chat/completions`` API and exposes the
OpenRouter account endpoints the commands need (model catalogue and
credit balance). Calls are made once: failures surface as
:class:`~rachibot.core.errors.UpstreamFailure` and are never retried.
"""

import time
from typing import Any, Optional

import httpx
import structlog

from rachibot.core.errors import UpstreamFailure
from rachibot.models.schemas import ChatMessage, Generation, Usage

logger = structlog.get_logger(__name__)


class OpenRouterClient:
    """Async client for OpenRouter.

    Supports:
    - Chat completion with text and image parts
    - Model catalogue listing
    - Credit balance lookup
    - Raw pass-through of completion requests (streamed back unchanged)
    """

    API_BASE_URL = "https://openrouter.ai/api/v1"
    REQUEST_TIMEOUT = 120.0  # 2 minutes

    def __init__(
        self,
        api_key: str,
        api_base_url: str = API_BASE_URL,
        timeout_seconds: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the OpenRouter client.

        Args:
            api_key: OpenRouter API key.
            api_base_url: Base URL of the OpenAI-compatible API.
            timeout_seconds: Request timeout in seconds.
            transport: Optional httpx transport (tests use ``MockTransport``).
        """
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.client = httpx.AsyncClient(
            base_url=self.api_base_url,
            timeout=httpx.Timeout(timeout_seconds),
            headers={"Authorization": f"Bearer {api_key}"},
            transport=transport,
        )

        logger.info("openrouter_client_initialized", base_url=self.api_base_url)

    # ── Public interface ─────────────────────────────────────────

    async def generate(self, model_id: str, messages: list[ChatMessage]) -> Generation:
        """Run one chat completion.

        Args:
            model_id: Fully-qualified ``provider/model`` identifier.
            messages: Ordered conversation to send.

        Returns:
            Generation with the reply text, usage and the reply messages.

        Raises:
            UpstreamFailure: If the request fails or the body is malformed.
        """
        start_time = time.time()
        payload: dict[str, Any] = {
            "model": model_id,
            "messages": [m.to_wire() for m in messages],
        }

        logger.info("openrouter_request", model=model_id, messages=len(messages))
        data = await self._request_json("POST", "/chat/completions", json=payload)
        latency_ms = (time.time() - start_time) * 1000

        choices = data.get("choices") or []
        if not choices:
            error = data.get("error") or {}
            raise UpstreamFailure(
                f"model {model_id} returned no choices: {error.get('message', 'empty response')}"
            )
        message = choices[0].get("message") or {}
        text = message.get("content") or ""

        usage_data = data.get("usage") or {}
        usage = Usage(
            prompt_tokens=usage_data.get("prompt_tokens", 0),
            completion_tokens=usage_data.get("completion_tokens", 0),
            total_tokens=usage_data.get("total_tokens", 0),
        )

        logger.info(
            "openrouter_success",
            model=data.get("model", model_id),
            tokens=usage.total_tokens,
            latency_ms=latency_ms,
        )

        return Generation(
            text=text,
            model_id=data.get("model") or model_id,
            usage=usage,
            messages=[ChatMessage(role="assistant", content=text)],
        )

    async def list_models(self) -> list[dict[str, Any]]:
        """Return the OpenRouter model catalogue (``data`` array)."""
        data = await self._request_json("GET", "/models")
        models = data.get("data")
        if not isinstance(models, list):
            raise UpstreamFailure("unexpected model list response")
        return models

    async def credits(self) -> str:
        """Return the raw credit balance document."""
        try:
            response = await self.client.get("/credits")
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("openrouter_credits_failed", error=str(exc))
            raise UpstreamFailure(f"credits request failed: {exc}") from exc
        return response.text

    async def forward(self, body: bytes, content_type: str = "application/json") -> httpx.Response:
        """Send a raw completion request and return the unread streaming response.

        The caller owns the response and must close it.
        """
        request = self.client.build_request(
            "POST",
            "/chat/completions",
            content=body,
            headers={"Content-Type": content_type},
        )
        try:
            return await self.client.send(request, stream=True)
        except httpx.HTTPError as exc:
            logger.error("openrouter_forward_failed", error=str(exc))
            raise UpstreamFailure(f"completion pass-through failed: {exc}") from exc

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
        logger.debug("openrouter_client_closed")

    # ── Private ──────────────────────────────────────────────────

    async def _request_json(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self.client.request(method, path, **kwargs)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.error("openrouter_http_error", path=path, status=status)
            raise UpstreamFailure(f"openrouter {path} answered {status}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("openrouter_error", path=path, error=str(exc))
            raise UpstreamFailure(f"openrouter {path} failed: {exc}") from exc
        if not isinstance(data, dict):
            raise UpstreamFailure(f"unexpected openrouter {path} response")
        return data
