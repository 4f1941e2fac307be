"""Tests for the scraper registry."""

import pytest

from src.core.errors import NotFoundError
from src.core.schemas import RawPosting
from src.platforms.base import ScraperAdapter
from src.platforms.greenhouse import GreenhouseAdapter
from src.platforms.lever import LeverAdapter
from src.platforms.registry import ScraperRegistry


class _StubAdapter(ScraperAdapter):
    def __init__(self, platform: str) -> None:
        super().__init__()
        self._platform = platform

    @property
    def platform_id(self) -> str:
        return self._platform

    async def fetch_jobs(self, slug: str) -> list[RawPosting]:
        return []


class TestScraperRegistry:
    def test_default_has_greenhouse_and_lever(self) -> None:
        registry = ScraperRegistry.default()
        assert registry.platforms() == ["greenhouse", "lever"]
        assert isinstance(registry.get("greenhouse"), GreenhouseAdapter)
        assert isinstance(registry.get("lever"), LeverAdapter)

    def test_lookup_case_insensitive(self) -> None:
        registry = ScraperRegistry.default()
        assert registry.get("Greenhouse").platform_id == "greenhouse"
        assert "LEVER" in registry

    def test_unknown_platform(self) -> None:
        registry = ScraperRegistry.default()
        with pytest.raises(NotFoundError, match="workday"):
            registry.get("workday")
        assert "workday" not in registry

    def test_contains_non_string(self) -> None:
        assert 42 not in ScraperRegistry([])

    def test_duplicate_platform_rejected(self) -> None:
        with pytest.raises(ValueError, match="duplicate"):
            ScraperRegistry([_StubAdapter("x"), _StubAdapter("x")])

    def test_custom_adapters(self) -> None:
        stub = _StubAdapter("ashby")
        registry = ScraperRegistry([stub])
        assert registry.get("ashby") is stub
        assert registry.platforms() == ["ashby"]

    def test_default_shares_settings(self) -> None:
        registry = ScraperRegistry.default(timeout=5.0, user_agent="ua/2")
        for platform in registry.platforms():
            adapter = registry.get(platform)
            assert adapter._timeout == 5.0
            assert adapter._headers["User-Agent"] == "ua/2"
