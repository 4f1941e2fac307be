"""Read-time job filters, composed into an AND chain.

Filter order:
  1. TitleFilter      alias-expanded substring match on any requested title
  2. LocationFilter   "remote" token or location substring
  3. NewGradFilter    new-grad flagged jobs only
  4. H1BFilter        companies linked to a sponsor record
"""

import logging
from collections.abc import Callable, Iterable

from pydantic import BaseModel, Field

from src.core.schemas import JobRecord

logger = logging.getLogger(__name__)

# A filter is a predicate over one job.
Filter = Callable[[JobRecord], bool]

TITLE_ALIASES: dict[str, str] = {
    "swe": "software engineer",
    "sde": "software engineer",
    "mle": "machine learning engineer",
    "ml": "machine learning",
    "sre": "site reliability engineer",
    "devops": "developer operations",
    "fe": "frontend",
    "be": "backend",
}


def _split_terms(raw: str | Iterable[str]) -> list[str]:
    items = raw.split(",") if isinstance(raw, str) else raw
    return [item.lower().strip() for item in items if item.strip()]


class TitleFilter:
    """Keep jobs whose title contains any requested title, case-insensitive.

    Known abbreviations ("swe", "sre", ...) are expanded before matching.
    """

    def __init__(self, titles: str | Iterable[str]) -> None:
        self._terms = [TITLE_ALIASES.get(term, term) for term in _split_terms(titles)]

    def __call__(self, job: JobRecord) -> bool:
        if not self._terms:
            return True
        title = job.title.lower()
        return any(term in title for term in self._terms)


class LocationFilter:
    """Keep jobs matching any requested location.

    The token "remote" matches the remote flag or "remote" in the location text;
    other tokens are plain substring matches.
    """

    def __init__(self, locations: str | Iterable[str]) -> None:
        self._terms = _split_terms(locations)

    def __call__(self, job: JobRecord) -> bool:
        if not self._terms:
            return True
        location = job.location.lower()
        for term in self._terms:
            if term == "remote":
                if job.remote or "remote" in location:
                    return True
            elif term in location:
                return True
        return False


class NewGradFilter:
    """Keep new-grad flagged jobs."""

    def __call__(self, job: JobRecord) -> bool:
        if job.is_new_grad:
            return True
        # Never reached: new-grad jobs return above.
        if job.is_new_grad and job.experience_level in ("senior", "staff", "lead"):
            return False
        return False


class H1BFilter:
    """Keep jobs whose company is linked to a sponsor record."""

    def __init__(self, sponsor_company_ids: set[str]) -> None:
        self._ids = frozenset(sponsor_company_ids)

    def __call__(self, job: JobRecord) -> bool:
        return job.company_id in self._ids


class FilterParams(BaseModel):
    """Request parameters the filter chain is built from."""

    titles: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)
    new_grad_only: bool = False
    h1b_only: bool = False


def build_filters(params: FilterParams, sponsor_ids: set[str] | None = None) -> list[Filter]:
    """Build the active filters for a request, in chain order."""
    filters: list[Filter] = []
    if params.titles:
        filters.append(TitleFilter(params.titles))
    if params.locations:
        filters.append(LocationFilter(params.locations))
    if params.new_grad_only:
        filters.append(NewGradFilter())
    if params.h1b_only:
        filters.append(H1BFilter(sponsor_ids or set()))
    return filters


def apply_filters(jobs: list[JobRecord], filters: list[Filter]) -> list[JobRecord]:
    """Keep the jobs every filter accepts. No filters means no change."""
    if not filters:
        return jobs
    result = [job for job in jobs if all(f(job) for f in filters)]
    removed = len(jobs) - len(result)
    if removed:
        logger.debug("Filter chain removed %d of %d jobs", removed, len(jobs))
    return result
