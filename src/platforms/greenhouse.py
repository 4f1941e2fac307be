"""Greenhouse job board adapter (boards-api.greenhouse.io)."""

import logging
from datetime import datetime
from typing import Any

from src.core.errors import FetchError, InputValidationError
from src.core.schemas import RawPosting
from src.platforms.base import (
    ScraperAdapter,
    as_list,
    decode_json,
    html_to_text,
    is_remote,
    parse_all,
    text_field,
)

logger = logging.getLogger(__name__)

BOARD_URL = "https://boards-api.greenhouse.io/v1/boards/{slug}/jobs"


class GreenhouseAdapter(ScraperAdapter):
    """Fetches a board listing, then the same listing with content=true.

    The second round-trip carries full descriptions, which are merged into the
    first listing by job id. A non-200 on the content call keeps the bare
    listing.
    """

    @property
    def platform_id(self) -> str:
        return "greenhouse"

    async def fetch_jobs(self, slug: str) -> list[RawPosting]:
        url = BOARD_URL.format(slug=slug)
        listing = _jobs_of(await self._get_json(url))

        response = await self._get(f"{url}?content=true")
        if response.status_code == 200:
            with_content = _jobs_of(decode_json(response, self.platform_id))
            content = {
                job["id"]: job.get("content")
                for job in with_content
                if isinstance(job.get("id"), (int, str))
            }
            for job in listing:
                job_id = job.get("id")
                if isinstance(job_id, (int, str)) and content.get(job_id):
                    job["content"] = content[job_id]
        else:
            logger.debug("Greenhouse content call for %s returned %d", slug, response.status_code)

        postings = parse_all(listing, parse_job, slug)
        logger.debug("Greenhouse %s: %d postings", slug, len(postings))
        return postings


def _jobs_of(data: Any) -> list[dict[str, Any]]:
    if not isinstance(data, dict) or not isinstance(data.get("jobs"), list):
        msg = "greenhouse response has no 'jobs' list"
        raise FetchError(msg)
    return [job for job in data["jobs"] if isinstance(job, dict)]


def parse_job(job: dict[str, Any]) -> RawPosting:
    """Normalize one Greenhouse job object."""
    title = text_field(job, "title").strip()
    if not isinstance(job.get("id"), (int, str)) or not title:
        msg = f"greenhouse job missing id or title: {job!r:.200}"
        raise InputValidationError(msg)

    location = _location_name(job.get("location"))
    departments = ", ".join(
        text_field(d, "name") for d in as_list(job.get("departments"))
        if isinstance(d, dict) and text_field(d, "name")
    )
    return RawPosting(
        external_id=str(job["id"]),
        title=title,
        description=html_to_text(text_field(job, "content")),
        location=location,
        remote=is_remote(location),
        department=departments,
        url=text_field(job, "absolute_url"),
        posted_at=_parse_timestamp(text_field(job, "updated_at")),
    )


def _location_name(location: Any) -> str:
    if isinstance(location, dict):
        return text_field(location, "name")
    if isinstance(location, str):
        return location
    return ""


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.debug("Unparseable Greenhouse timestamp: %s", value)
        return None
