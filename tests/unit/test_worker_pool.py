"""Tests for the bounded-concurrency scrape worker pool."""

import asyncio

import pytest

from src.core.db import create_company, get_company, init_db, list_jobs
from src.core.errors import FetchError
from src.core.schemas import RawPosting
from src.pipeline.worker_pool import CANCELLED_ERROR, WorkerPool
from src.platforms.base import ScraperAdapter
from src.platforms.registry import ScraperRegistry


def _postings(slug: str, n: int = 2) -> list[RawPosting]:
    return [
        RawPosting(external_id=f"{slug}-{i}", title=f"Engineer {i}", description="Go")
        for i in range(n)
    ]


class _FakeAdapter(ScraperAdapter):
    """Returns two postings per slug and records peak concurrency."""

    def __init__(self, delay: float = 0.01) -> None:
        super().__init__()
        self.delay = delay
        self.in_flight = 0
        self.peak = 0
        self.calls: list[str] = []

    @property
    def platform_id(self) -> str:
        return "fake"

    async def fetch_jobs(self, slug: str) -> list[RawPosting]:
        self.calls.append(slug)
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        return _postings(slug)


class _BrokenAdapter(ScraperAdapter):
    @property
    def platform_id(self) -> str:
        return "broken"

    async def fetch_jobs(self, slug: str) -> list[RawPosting]:
        msg = "lever API returned status 500"
        raise FetchError(msg)


class _CrashingAdapter(ScraperAdapter):
    @property
    def platform_id(self) -> str:
        return "crashing"

    async def fetch_jobs(self, slug: str) -> list[RawPosting]:
        msg = "unexpected payload"
        raise KeyError(msg)


class _SlowAdapter(ScraperAdapter):
    @property
    def platform_id(self) -> str:
        return "slow"

    async def fetch_jobs(self, slug: str) -> list[RawPosting]:
        await asyncio.sleep(5)
        return []


@pytest.fixture()
def db(tmp_path):  # type: ignore[no-untyped-def]
    return init_db(tmp_path / "test.db")


@pytest.fixture()
def fake() -> _FakeAdapter:
    return _FakeAdapter()


@pytest.fixture()
def registry(fake: _FakeAdapter) -> ScraperRegistry:
    return ScraperRegistry([fake, _BrokenAdapter(), _CrashingAdapter(), _SlowAdapter()])


def _companies(db, n: int, platform: str = "fake"):  # type: ignore[no-untyped-def]
    return [create_company(db, f"Company {i}", platform, f"co{i}") for i in range(n)]


class TestWorkerPool:
    def test_rejects_zero_workers(self, db, registry) -> None:  # type: ignore[no-untyped-def]
        with pytest.raises(ValueError, match="workers"):
            WorkerPool(registry, db, workers=0)

    async def test_empty_input(self, db, registry) -> None:  # type: ignore[no-untyped-def]
        assert await WorkerPool(registry, db).run([]) == []

    @pytest.mark.parametrize("workers", [1, 3, 5, 10])
    async def test_one_result_per_company(  # type: ignore[no-untyped-def]
        self, db, registry, fake, workers: int,
    ) -> None:
        companies = _companies(db, 5)
        results = await WorkerPool(registry, db, workers=workers).run(companies)

        assert len(results) == 5
        assert {r.company.id for r in results} == {c.id for c in companies}
        assert all(r.ok and r.new_jobs == 2 for r in results)
        assert len(list_jobs(db)) == 10
        assert fake.peak <= workers

    async def test_concurrency_reaches_pool_size(  # type: ignore[no-untyped-def]
        self, db, registry, fake,
    ) -> None:
        companies = _companies(db, 6)
        await WorkerPool(registry, db, workers=3).run(companies)
        assert fake.peak == 3

    async def test_rerun_inserts_nothing(self, db, registry) -> None:  # type: ignore[no-untyped-def]
        companies = _companies(db, 2)
        pool = WorkerPool(registry, db, workers=2)
        first = await pool.run(companies)
        second = await pool.run(companies)

        assert sum(r.new_jobs for r in first) == 4
        assert sum(r.new_jobs for r in second) == 0
        assert all(r.ok for r in second)
        assert len(list_jobs(db)) == 4

    async def test_failure_isolated(self, db, registry) -> None:  # type: ignore[no-untyped-def]
        ok = create_company(db, "Good", "fake", "good")
        bad = create_company(db, "Bad", "broken", "bad")
        results = await WorkerPool(registry, db, workers=5).run([ok, bad])

        by_name = {r.company.name: r for r in results}
        assert by_name["Good"].ok
        assert by_name["Good"].new_jobs == 2
        assert by_name["Bad"].error is not None
        assert "Bad" in by_name["Bad"].error
        assert "status 500" in by_name["Bad"].error

    async def test_unexpected_exception_wrapped(  # type: ignore[no-untyped-def]
        self, db, registry,
    ) -> None:
        company = create_company(db, "Crashy", "crashing", "crashy")
        [result] = await WorkerPool(registry, db).run([company])
        assert result.error is not None
        assert result.error.startswith("scraping Crashy:")

    async def test_unknown_platform(self, db, registry) -> None:  # type: ignore[no-untyped-def]
        company = create_company(db, "Mystery", "workday", "mystery")
        [result] = await WorkerPool(registry, db).run([company])
        assert result.error is not None
        assert "no scraper registered for platform: workday" in result.error

    async def test_timeout(self, db, registry) -> None:  # type: ignore[no-untyped-def]
        company = create_company(db, "Sloth", "slow", "sloth")
        [result] = await WorkerPool(registry, db, fetch_timeout=0.05).run([company])
        assert result.error is not None
        assert "timed out" in result.error

    async def test_success_stamps_company(self, db, registry) -> None:  # type: ignore[no-untyped-def]
        ok = create_company(db, "Good", "fake", "good")
        bad = create_company(db, "Bad", "broken", "bad")
        await WorkerPool(registry, db).run([ok, bad])
        assert get_company(db, ok.id).last_scraped_at is not None
        assert get_company(db, bad.id).last_scraped_at is None

    async def test_cancel_before_start(  # type: ignore[no-untyped-def]
        self, db, registry, fake,
    ) -> None:
        companies = _companies(db, 3)
        cancel = asyncio.Event()
        cancel.set()
        results = await WorkerPool(registry, db).run(companies, cancel=cancel)

        assert len(results) == 3
        assert all(r.error == CANCELLED_ERROR for r in results)
        assert fake.calls == []
        assert list_jobs(db) == []

    async def test_cancel_mid_run(self, db, registry, fake) -> None:  # type: ignore[no-untyped-def]
        companies = _companies(db, 4)
        cancel = asyncio.Event()
        original = fake.fetch_jobs

        async def fetch_then_cancel(slug: str) -> list[RawPosting]:
            postings = await original(slug)
            cancel.set()
            return postings

        fake.fetch_jobs = fetch_then_cancel  # type: ignore[method-assign]
        results = await WorkerPool(registry, db, workers=1).run(companies, cancel=cancel)

        assert len(results) == 4
        assert results[0].ok
        assert results[0].new_jobs == 2
        assert [r.error for r in results[1:]] == [CANCELLED_ERROR] * 3
