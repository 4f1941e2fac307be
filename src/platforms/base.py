"""Abstract base class for ATS scraper adapters."""

import html
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

import httpx
from pydantic import ValidationError

from src.core.errors import FetchError, InputValidationError
from src.core.schemas import RawPosting

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0
DEFAULT_USER_AGENT = "jobs-match-engine/0.1"

_BLOCK_TAG_RE = re.compile(r"<\s*(?:br\s*/?|/p|/li|/h[1-6]|/div|/ul|/ol)\s*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_BLANK_LINES_RE = re.compile(r"\n\s*\n+")


def is_remote(location: str) -> bool:
    return "remote" in location.lower()


def text_field(item: dict[str, Any], key: str) -> str:
    """Return item[key] when it is a string, else an empty string."""
    value = item.get(key)
    return value if isinstance(value, str) else ""


def as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def html_to_text(content: str) -> str:
    """Flatten (possibly entity-escaped) HTML to plain lines, one per block element."""
    if not content:
        return ""
    text = html.unescape(content)
    text = _BLOCK_TAG_RE.sub("\n", text)
    text = _TAG_RE.sub("", text)
    text = html.unescape(text)
    return _BLANK_LINES_RE.sub("\n", text).strip()


class ScraperAdapter(ABC):
    """Base class that every ATS adapter must implement.

    Adapters fetch a company's whole board in one request (no pagination) and
    normalize each posting to a RawPosting. Pass a shared ``httpx.AsyncClient``
    to reuse connections; otherwise a short-lived client is opened per fetch.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_S,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._headers = {"User-Agent": user_agent, "Accept": "application/json"}

    @property
    @abstractmethod
    def platform_id(self) -> str:
        """Unique identifier for this platform (e.g. 'greenhouse')."""

    @abstractmethod
    async def fetch_jobs(self, slug: str) -> list[RawPosting]:
        """Fetch and normalize every open posting on a company's board."""

    async def _get(self, url: str) -> httpx.Response:
        try:
            if self._client is not None:
                return await self._client.get(url, headers=self._headers, timeout=self._timeout)
            async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
                return await client.get(url, headers=self._headers)
        except httpx.HTTPError as e:
            msg = f"fetching {self.platform_id} board {url}: {e}"
            raise FetchError(msg) from e

    async def _get_json(self, url: str) -> Any:
        """GET a URL and decode its JSON body. Non-2xx responses are errors."""
        response = await self._get(url)
        if response.status_code != 200:
            msg = f"{self.platform_id} API returned status {response.status_code} for {url}"
            raise FetchError(msg)
        return decode_json(response, self.platform_id)


def decode_json(response: httpx.Response, platform: str) -> Any:
    try:
        return response.json()
    except ValueError as e:
        msg = f"decoding {platform} response: {e}"
        raise FetchError(msg) from e


def parse_all(
    items: list[dict[str, Any]],
    parse: Callable[[dict[str, Any]], RawPosting],
    slug: str,
) -> list[RawPosting]:
    """Normalize every item, skipping the ones that fail validation.

    A single malformed posting never fails the whole board.
    """
    postings: list[RawPosting] = []
    for item in items:
        try:
            postings.append(parse(item))
        except (InputValidationError, ValidationError):
            logger.warning("Skipping malformed posting on board '%s'", slug, exc_info=True)
    return postings
