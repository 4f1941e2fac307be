"""Orchestrator: wires the worker pool, classifier, matcher, H1B adjustment and notifiers.

Data flow:
  1. Worker pool scrapes enabled companies, inserting new postings
  2. Every unscored job is classified, matched, adjusted and persisted
  3. Newly scored jobs above the notify threshold pass the filter chain
     built from the profile and are announced
"""

import asyncio
import logging
import sqlite3

from src.core.config import Settings
from src.core.db import (
    get_company,
    get_profile,
    list_companies,
    list_jobs,
    list_unscored_jobs,
    sponsor_company_ids,
    update_job_classification,
    update_job_score,
)
from src.core.errors import JobsError, NotFoundError
from src.core.schemas import CompanyTarget, JobRecord, ScrapeResult
from src.pipeline.classifier import classify_job
from src.pipeline.filters import FilterParams, apply_filters, build_filters
from src.pipeline.h1b import score_h1b
from src.pipeline.matching import MatchingPipeline
from src.pipeline.notifier import Notifier, notify_all
from src.pipeline.worker_pool import WorkerPool
from src.platforms.registry import ScraperRegistry
from src.profile.schema import CandidateProfile

logger = logging.getLogger(__name__)


class ScrapeSummary:
    """Per-batch success/failure counts."""

    def __init__(
        self,
        succeeded: int,
        failed: int,
        new_jobs: int,
        errors: dict[str, str],
    ) -> None:
        self.succeeded = succeeded
        self.failed = failed
        self.new_jobs = new_jobs
        self.errors = errors

    @property
    def total(self) -> int:
        return self.succeeded + self.failed


class ScoringSummary:
    """Outcome of one scoring pass."""

    def __init__(self, scored_ids: list[str], failed: int) -> None:
        self.scored_ids = scored_ids
        self.failed = failed

    @property
    def scored(self) -> int:
        return len(self.scored_ids)


def summarize(results: list[ScrapeResult]) -> ScrapeSummary:
    errors = {r.company.name: r.error for r in results if r.error is not None}
    return ScrapeSummary(
        succeeded=len(results) - len(errors),
        failed=len(errors),
        new_jobs=sum(r.new_jobs for r in results),
        errors=errors,
    )


def require_profile(conn: sqlite3.Connection) -> CandidateProfile:
    profile = get_profile(conn)
    if profile is None:
        msg = "no profile stored; load one with the 'profile' command first"
        raise NotFoundError(msg)
    return profile


async def run_scrape(
    settings: Settings,
    conn: sqlite3.Connection,
    registry: ScraperRegistry,
    cancel: asyncio.Event | None = None,
) -> list[ScrapeResult]:
    """Scrape every enabled company through the worker pool."""
    companies = list_companies(conn, enabled_only=True)
    if not companies:
        logger.info("No enabled companies to scrape")
        return []
    pool = WorkerPool(
        registry,
        conn,
        workers=settings.scraping.workers,
        fetch_timeout=settings.scraping.fetch_timeout_s,
    )
    return await pool.run(companies, cancel=cancel)


def score_job(
    job: JobRecord,
    company: CompanyTarget,
    profile: CandidateProfile,
    matcher: MatchingPipeline,
) -> tuple[float, float, list[str], list[str], str]:
    """Return (skill score, final score, matched, missing, reason) for a classified job."""
    result = matcher.score(job.description, profile.skills)
    adjustment = score_h1b(job, company, profile)
    final = round(max(0.0, min(100.0, result.score + adjustment.delta)), 2)
    reason = result.reason
    if adjustment.reason:
        reason = f"{reason} | {adjustment.reason}" if reason else adjustment.reason
    return result.score, final, result.matched_skills, result.missing_skills, reason


def score_unscored_jobs(
    conn: sqlite3.Connection,
    profile: CandidateProfile,
    matcher: MatchingPipeline,
) -> ScoringSummary:
    """Classify, score and persist every job that has not been scored yet.

    Jobs are processed one at a time. A job that fails is logged, counted and
    left unscored for the next pass.
    """
    jobs = list_unscored_jobs(conn)
    companies: dict[str, CompanyTarget] = {}
    scored_ids: list[str] = []
    failed = 0

    for job in jobs:
        try:
            classification = classify_job(job.title, job.description)
            update_job_classification(conn, job.id, classification)
            job = job.model_copy(update=classification.model_dump())

            if job.company_id not in companies:
                companies[job.company_id] = get_company(conn, job.company_id)
            skill, final, matched, missing, reason = score_job(
                job, companies[job.company_id], profile, matcher,
            )
            update_job_score(
                conn,
                job.id,
                skill_score=skill,
                match_score=final,
                matched_skills=matched,
                missing_skills=missing,
                reason=reason,
            )
        except JobsError:
            logger.warning("Scoring failed for job %s (%s)", job.id, job.title, exc_info=True)
            failed += 1
            continue
        logger.debug("Scored %s @ %s: %.1f", job.title, job.company_name, final)
        scored_ids.append(job.id)

    logger.info("Scored %d jobs (%d failed, mode=%s)", len(scored_ids), failed, matcher.mode)
    return ScoringSummary(scored_ids=scored_ids, failed=failed)


def notify_matches(
    conn: sqlite3.Connection,
    profile: CandidateProfile,
    notifiers: list[Notifier],
    min_score: float,
    job_ids: list[str] | None = None,
) -> int:
    """Announce new jobs at or above min_score that pass the profile's filters.

    When job_ids is given only those jobs are considered. Returns the number
    of jobs announced.
    """
    if not notifiers:
        return 0

    floor = max(min_score, profile.min_match_score)
    jobs = list_jobs(conn, min_score=floor, status="new")
    if job_ids is not None:
        wanted = set(job_ids)
        jobs = [job for job in jobs if job.id in wanted]

    params = FilterParams(
        titles=profile.preferred_roles,
        locations=profile.preferred_locations,
        h1b_only=profile.visa_required,
    )
    sponsor_ids = sponsor_company_ids(conn) if params.h1b_only else None
    jobs = apply_filters(jobs, build_filters(params, sponsor_ids))

    for job in jobs:
        notify_all(notifiers, job, job.company_name, job.match_score or 0.0)
    logger.info("Notified %d matches (score >= %.0f)", len(jobs), floor)
    return len(jobs)
