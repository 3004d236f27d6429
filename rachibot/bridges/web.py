"""Web toolkit for commands: fetch pages, extract text and harvest links.

All requests go through one shared ``httpx.AsyncClient`` injected by the
service container, so tests can swap in an ``httpx.MockTransport``.

Usage::

    web = WebBridge(http)
    links = extract_links(reference, message)
    parts = await web.harvest(links, extract_all=False, extract_first=True)
"""

from __future__ import annotations

import asyncio
import ipaddress
import re
from html import unescape
from typing import Any, Optional

import httpx
import structlog

from rachibot.core.errors import InvalidCommand, UpstreamFailure
from rachibot.models.schemas import TextPart

logger = structlog.get_logger(__name__)

# ── Lightweight HTML → text extraction ────────────────────────────────

_TAG_RE = re.compile(r"<script[^>]*>.*?</script>", re.S | re.I)
_STYLE_RE = re.compile(r"<style[^>]*>.*?</style>", re.S | re.I)
_HTML_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\n{3,}")

LINK_RE = re.compile(r"https?://[^\s`]+")
XKCD_IMAGE_RE = re.compile(r'<meta property="og:image" content="([^"]*)">')

XKCD_URL = "https://xkcd.com"
XKCD_RANDOM_URL = "https://c.xkcd.com/random/comic"
IP_LOOKUP_URL = "https://ip.zxinc.org/api.php"
HACKER_NEWS_URL = "https://news.ycombinator.com"
GITHUB_TRENDING_URL = "https://github.com/trending"
SMART_QUESTIONS_URL = "http://www.catb.org/~esr/faqs/smart-questions.html"

# Common headers to avoid bot blocks
DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


def html_to_text(html: str) -> str:
    """Strip HTML tags, scripts and styles; return readable plain text."""
    text = _TAG_RE.sub("", html)
    text = _STYLE_RE.sub("", text)
    text = _HTML_RE.sub("\n", text)
    text = _WS_RE.sub("\n\n", text)
    return unescape(text.strip())


def extract_links(*texts: Optional[str]) -> list[str]:
    """Collect ``http(s)://`` URLs from *texts*, deduplicated in discovery order."""
    links: dict[str, None] = {}
    for text in texts:
        if not text:
            continue
        for link in LINK_RE.findall(text):
            links[link] = None
    return list(links)


def resource_block(uri: str, text: str) -> str:
    """Wrap fetched *text* in a tagged block naming its source."""
    return f'<resource uri="{uri}">\n{text}\n</resource>'


def is_ip_address(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def new_http_client(timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """Build the shared outbound client used by every bridge."""
    return httpx.AsyncClient(
        timeout=timeout,
        headers=DEFAULT_HEADERS,
        follow_redirects=True,
        transport=transport,
    )


class WebBridge:
    """Generic page fetching plus the small scraping commands.

    Args:
        http: Shared outbound HTTP client.
    """

    def __init__(self, http: httpx.AsyncClient) -> None:
        self.http = http

    # ── Fetch ─────────────────────────────────────────────────────

    async def fetch_text(
        self,
        url: str,
        *,
        method: str = "GET",
        check_status: bool = True,
        **kwargs: Any,
    ) -> str:
        """Fetch *url* and return the body as text.

        Args:
            url: Target URL.
            method: HTTP method.
            check_status: Fail on 4xx/5xx answers when true.

        Raises:
            UpstreamFailure: On transport errors or (when checked) bad status.
        """
        response = await self._send(method, url, check_status=check_status, **kwargs)
        return response.text

    async def fetch_json(self, url: str, *, method: str = "GET", **kwargs: Any) -> Any:
        """Fetch *url* and decode the JSON body.

        Raises:
            UpstreamFailure: On transport errors, bad status or invalid JSON.
        """
        response = await self._send(method, url, check_status=True, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamFailure(f"invalid JSON from {url}") from exc

    async def _send(self, method: str, url: str, *, check_status: bool, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.http.request(method, url, **kwargs)
            if check_status:
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("web_fetch_status", url=url[:200], status=exc.response.status_code)
            raise UpstreamFailure(f"{url} answered {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.warning("web_fetch_failed", url=url[:200], error=str(exc)[:200])
            raise UpstreamFailure(f"failed to fetch {url}: {exc}") from exc
        return response

    # ── Link harvesting ───────────────────────────────────────────

    async def harvest(
        self,
        links: list[str],
        *,
        extract_all: bool = False,
        extract_first: bool = False,
    ) -> list[TextPart]:
        """Fetch every link concurrently and wrap each body as a resource block.

        Args:
            links: Deduplicated URLs in discovery order.
            extract_all: Strip markup from every page.
            extract_first: Strip markup from the first page only.

        Returns:
            One text part per link, in the order of *links*.
        """

        async def fetch(index: int, link: str) -> TextPart:
            text = await self.fetch_text(link, check_status=False)
            if extract_all or (extract_first and index == 0):
                text = html_to_text(text)
            return TextPart(text=resource_block(link, text))

        parts = await asyncio.gather(*(fetch(i, link) for i, link in enumerate(links)))
        logger.info("links_harvested", count=len(parts))
        return list(parts)

    # ── Small scrapers ────────────────────────────────────────────

    async def xkcd_image(self, comic: str = "", random: bool = False) -> str:
        """Return the ``og:image`` URL of an xkcd comic.

        Args:
            comic: Comic number; empty means the latest comic.
            random: Pick a random comic instead.

        Raises:
            UpstreamFailure: If the page carries no image meta tag.
        """
        if random:
            url = XKCD_RANDOM_URL
        elif comic:
            url = f"{XKCD_URL}/{comic}"
        else:
            url = XKCD_URL
        html = await self.fetch_text(url, check_status=False)
        meta = XKCD_IMAGE_RE.search(html)
        if meta is None:
            raise UpstreamFailure("xkcd image not found")
        return meta.group(1)

    async def ip_location(self, host: str) -> str:
        """Look up the geographic location of an IP address.

        Raises:
            InvalidCommand: If *host* is not an IPv4/IPv6 address.
            UpstreamFailure: If the lookup answer has no location.
        """
        if not is_ip_address(host):
            raise InvalidCommand("invalid ip address")
        payload = await self.fetch_json(IP_LOOKUP_URL, params={"type": "json", "ip": host})
        try:
            return payload["data"]["location"]
        except (KeyError, TypeError) as exc:
            raise UpstreamFailure("unexpected ip lookup response") from exc
