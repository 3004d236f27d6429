"""Shared fixtures: in-memory store, fake model and a mocked web."""

from typing import Any, Callable, Optional

import httpx
import pytest

from rachibot.core.config import Settings
from rachibot.core.interpreter import CommandInterpreter
from rachibot.core.services import Services
from rachibot.models.schemas import ChatMessage, Generation, Usage
from rachibot.storage import InMemoryStore

Route = Callable[[httpx.Request], httpx.Response]


class FakeModel:
    """Model capability that answers with a fixed text and records calls."""

    def __init__(self, text: str = "hi there") -> None:
        self.text = text
        self.calls: list[tuple[str, list[ChatMessage]]] = []
        self.models: list[dict[str, Any]] = []
        self.credit_text = '{"data":{"total_credits":10,"total_usage":1}}'
        self.forwarded: list[bytes] = []
        self.forward_response = httpx.Response(
            200,
            json={"id": "gen-1", "choices": []},
        )
        self.closed = False

    async def generate(self, model_id: str, messages: list[ChatMessage]) -> Generation:
        self.calls.append((model_id, list(messages)))
        return Generation(
            text=self.text,
            model_id=model_id,
            usage=Usage(prompt_tokens=11, completion_tokens=5, total_tokens=16),
            messages=[ChatMessage(role="assistant", content=self.text)],
        )

    async def list_models(self) -> list[dict[str, Any]]:
        return self.models

    async def credits(self) -> str:
        return self.credit_text

    async def forward(self, body: bytes, content_type: str = "application/json") -> httpx.Response:
        self.forwarded.append(body)
        return self.forward_response

    async def close(self) -> None:
        self.closed = True

    @property
    def last_messages(self) -> list[ChatMessage]:
        return self.calls[-1][1]


class MockWeb:
    """Routes outbound requests by ``scheme://host/path``; unknown URLs answer 404."""

    def __init__(self) -> None:
        self.routes: dict[str, Route] = {}
        self.requests: list[httpx.Request] = []

    def add(self, url: str, route: Optional[Route] = None, **response: Any) -> None:
        if route is None:
            status = response.pop("status_code", 200)
            route = lambda request: httpx.Response(status, **response)  # noqa: E731
        self.routes[url.rstrip("/")] = route

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url.copy_with(query=None)).rstrip("/")
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, text="not found")
        return route(request)


@pytest.fixture
def settings():
    """Default settings, independent of the environment."""
    return Settings()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def model():
    return FakeModel()


@pytest.fixture
def web():
    return MockWeb()


@pytest.fixture
def services(settings, store, model, web):
    http = httpx.AsyncClient(transport=httpx.MockTransport(web), follow_redirects=True)
    return Services.build(settings, store, model, http=http)


@pytest.fixture
def interpreter(services):
    return CommandInterpreter(services)
