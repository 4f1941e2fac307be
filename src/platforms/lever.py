"""Lever postings adapter (api.lever.co)."""

import logging
from datetime import datetime, timezone
from typing import Any

from src.core.errors import FetchError, InputValidationError
from src.core.schemas import RawPosting
from src.platforms.base import (
    ScraperAdapter,
    as_list,
    html_to_text,
    is_remote,
    parse_all,
    text_field,
)

logger = logging.getLogger(__name__)

POSTINGS_URL = "https://api.lever.co/v0/postings/{slug}?mode=json"


class LeverAdapter(ScraperAdapter):
    """Fetches all postings for a Lever site in one call."""

    @property
    def platform_id(self) -> str:
        return "lever"

    async def fetch_jobs(self, slug: str) -> list[RawPosting]:
        data = await self._get_json(POSTINGS_URL.format(slug=slug))
        if not isinstance(data, list):
            msg = f"lever response for {slug} is not a list"
            raise FetchError(msg)
        postings = parse_all([p for p in data if isinstance(p, dict)], parse_posting, slug)
        logger.debug("Lever %s: %d postings", slug, len(postings))
        return postings


def parse_posting(posting: dict[str, Any]) -> RawPosting:
    """Normalize one Lever posting. List sections are appended to the description."""
    title = text_field(posting, "text").strip()
    if not isinstance(posting.get("id"), (int, str)) or not posting["id"] or not title:
        msg = f"lever posting missing id or text: {posting!r:.200}"
        raise InputValidationError(msg)

    description = text_field(posting, "descriptionPlain")
    for section in as_list(posting.get("lists")):
        if not isinstance(section, dict):
            continue
        heading = text_field(section, "text")
        description += "\n\n" + heading + "\n" + html_to_text(text_field(section, "content"))

    categories = posting.get("categories")
    if not isinstance(categories, dict):
        categories = {}
    location = text_field(categories, "location")

    posted_at = None
    created = posting.get("createdAt")
    if isinstance(created, (int, float)) and not isinstance(created, bool) and created > 0:
        try:
            posted_at = datetime.fromtimestamp(created / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.debug("Unparseable Lever createdAt: %s", created)

    return RawPosting(
        external_id=str(posting["id"]),
        title=title,
        description=description,
        location=location,
        remote=is_remote(location),
        department=text_field(categories, "department"),
        url=text_field(posting, "hostedURL"),
        posted_at=posted_at,
    )
