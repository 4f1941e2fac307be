"""Name-keyed lookup of scraper adapters, built once at startup."""

from collections.abc import Iterable

import httpx

from src.core.errors import NotFoundError
from src.platforms.base import DEFAULT_TIMEOUT_S, DEFAULT_USER_AGENT, ScraperAdapter
from src.platforms.greenhouse import GreenhouseAdapter
from src.platforms.lever import LeverAdapter


class ScraperRegistry:
    """Maps a platform id to its adapter. Read-only after construction."""

    def __init__(self, adapters: Iterable[ScraperAdapter]) -> None:
        self._adapters: dict[str, ScraperAdapter] = {}
        for adapter in adapters:
            if adapter.platform_id in self._adapters:
                msg = f"duplicate adapter for platform '{adapter.platform_id}'"
                raise ValueError(msg)
            self._adapters[adapter.platform_id] = adapter

    @classmethod
    def default(
        cls,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_S,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> "ScraperRegistry":
        """Registry with the Greenhouse and Lever adapters."""
        return cls([
            GreenhouseAdapter(client, timeout=timeout, user_agent=user_agent),
            LeverAdapter(client, timeout=timeout, user_agent=user_agent),
        ])

    def get(self, platform: str) -> ScraperAdapter:
        adapter = self._adapters.get(platform.lower())
        if adapter is None:
            msg = f"no scraper registered for platform: {platform}"
            raise NotFoundError(msg)
        return adapter

    def platforms(self) -> list[str]:
        return sorted(self._adapters)

    def __contains__(self, platform: object) -> bool:
        return isinstance(platform, str) and platform.lower() in self._adapters
