"""GitHub REST bridge: pull request feed and raw file contents."""

from typing import Any

import httpx
import structlog

from rachibot.core.errors import NotFoundError, UpstreamFailure

logger = structlog.get_logger(__name__)

API_VERSION = "2022-11-28"


class GitHubBridge:
    """Minimal GitHub REST client.

    Args:
        http: Shared outbound HTTP client.
        token: Bearer token; anonymous requests are made when empty.
        api_base_url: REST API root.
    """

    def __init__(self, http: httpx.AsyncClient, token: str = "", api_base_url: str = "https://api.github.com") -> None:
        self.http = http
        self.token = token
        self.api_base_url = api_base_url.rstrip("/")

    def _headers(self, accept: str = "application/vnd.github+json") -> dict[str, str]:
        headers = {"Accept": accept, "X-GitHub-Api-Version": API_VERSION}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get(self, path: str, accept: str = "application/vnd.github+json", **params: Any) -> httpx.Response:
        url = f"{self.api_base_url}{path}"
        try:
            response = await self.http.get(url, headers=self._headers(accept), params=params or None)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("github_http_error", path=path, status=exc.response.status_code)
            raise UpstreamFailure(f"github {path} answered {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.warning("github_request_failed", path=path, error=str(exc)[:200])
            raise UpstreamFailure(f"github {path} failed: {exc}") from exc
        return response

    async def latest_pull(self, owner: str, repo: str) -> dict[str, Any]:
        """Return the most recently updated pull request of any state.

        Raises:
            NotFoundError: If the repository has no pull requests.
        """
        response = await self._get(
            f"/repos/{owner}/{repo}/pulls",
            state="all",
            sort="updated",
            direction="desc",
        )
        pulls = response.json()
        if not pulls:
            raise NotFoundError(f"no pull requests in {owner}/{repo}")
        return pulls[0]

    async def file_contents(self, owner: str, repo: str, path: str) -> str:
        """Return the raw text of *path* on the default branch."""
        response = await self._get(
            f"/repos/{owner}/{repo}/contents/{path}",
            accept="application/vnd.github.raw+json",
        )
        return response.text
