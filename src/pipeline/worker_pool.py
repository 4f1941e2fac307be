"""Bounded-concurrency scrape of company boards with idempotent job insertion.

N worker tasks drain one queue that is filled with every company before the
workers start; nothing is enqueued during a run. Each company yields exactly
one ScrapeResult. The results list, guarded by one asyncio.Lock, is the only
state the workers share. Result order across companies is not defined.

Cancellation is checked before each company is started, never mid-fetch.
Companies still queued when the cancel event is set are reported with a
cancellation error instead of being scraped.

Postings are written to SQLite synchronously on the event loop, one commit per
posting. Other workers' fetches wait while a write commits; for a local
database file this stays well below network latency.
"""

import asyncio
import logging
import sqlite3

from src.core.db import create_job_if_absent, stamp_company_scraped
from src.core.errors import FetchError, PersistenceError
from src.core.schemas import CompanyTarget, RawPosting, ScrapeResult
from src.platforms.base import DEFAULT_TIMEOUT_S
from src.platforms.registry import ScraperRegistry

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 5
CANCELLED_ERROR = "scrape cancelled before this company started"


class WorkerPool:
    """Scrape many companies with at most ``workers`` fetches in flight."""

    def __init__(
        self,
        registry: ScraperRegistry,
        conn: sqlite3.Connection,
        workers: int = DEFAULT_WORKERS,
        fetch_timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        if workers < 1:
            msg = f"workers must be >= 1, got {workers}"
            raise ValueError(msg)
        self._registry = registry
        self._conn = conn
        self._workers = workers
        self._fetch_timeout = fetch_timeout

    async def run(
        self,
        companies: list[CompanyTarget],
        cancel: asyncio.Event | None = None,
    ) -> list[ScrapeResult]:
        """Scrape every company once. Returns one result per company."""
        if not companies:
            return []

        queue: asyncio.Queue[CompanyTarget] = asyncio.Queue()
        for company in companies:
            queue.put_nowait(company)

        results: list[ScrapeResult] = []
        lock = asyncio.Lock()
        cancel = cancel or asyncio.Event()

        n_workers = min(self._workers, len(companies))
        logger.info("Scraping %d companies with %d workers", len(companies), n_workers)
        await asyncio.gather(*(
            self._worker(queue, results, lock, cancel) for _ in range(n_workers)
        ))

        failed = sum(1 for r in results if not r.ok)
        logger.info(
            "Scrape finished: %d ok, %d failed, %d new jobs",
            len(results) - failed,
            failed,
            sum(r.new_jobs for r in results),
        )
        return results

    async def _worker(
        self,
        queue: "asyncio.Queue[CompanyTarget]",
        results: list[ScrapeResult],
        lock: asyncio.Lock,
        cancel: asyncio.Event,
    ) -> None:
        while True:
            try:
                company = queue.get_nowait()
            except asyncio.QueueEmpty:
                return

            if cancel.is_set():
                result = ScrapeResult(company=company, error=CANCELLED_ERROR)
            else:
                result = await self._scrape_company(company)

            async with lock:
                results.append(result)
            queue.task_done()

    async def _scrape_company(self, company: CompanyTarget) -> ScrapeResult:
        try:
            postings = await self._fetch(company)
        except FetchError as e:
            logger.warning("%s", e)
            return ScrapeResult(company=company, error=str(e))

        new_jobs = 0
        for posting in postings:
            try:
                if create_job_if_absent(self._conn, company.id, posting):
                    new_jobs += 1
            except PersistenceError:
                logger.warning(
                    "Skipping posting %s for %s", posting.external_id, company.name, exc_info=True,
                )

        try:
            stamp_company_scraped(self._conn, company.id)
        except PersistenceError:
            logger.warning("Could not stamp scrape time for %s", company.name, exc_info=True)

        logger.info("%s: %d postings, %d new", company.name, len(postings), new_jobs)
        return ScrapeResult(company=company, new_jobs=new_jobs)

    async def _fetch(self, company: CompanyTarget) -> list[RawPosting]:
        """Resolve the adapter and fetch, wrapping any failure with the company name."""
        try:
            adapter = self._registry.get(company.platform)
            return await asyncio.wait_for(adapter.fetch_jobs(company.slug), self._fetch_timeout)
        except asyncio.TimeoutError as e:
            msg = f"scraping {company.name}: timed out after {self._fetch_timeout:.0f}s"
            raise FetchError(msg) from e
        except Exception as e:
            msg = f"scraping {company.name}: {e}"
            raise FetchError(msg) from e
