"""Heuristic seniority, new-grad and visa-stance classification.

Experience level, first match wins:
  1. new-grad phrase anywhere in title + description -> entry, new grad
  2. title contains "intern"                          -> intern
  3. title contains a senior marker                   -> senior
  4. title contains staff / principal                 -> staff
  5. title contains lead / manager / director         -> lead
  6. years range in the title ("3-5 years")           -> bucket by upper bound
  7. any years mention in the text ("5+ years")       -> bucket by number
  8. otherwise                                        -> mid

Visa sentiment: negative phrasing wins over positive phrasing, which wins over
a bare visa keyword (neutral).
"""

import re

from src.core.schemas import ExperienceLevel, JobClassification, VisaSentiment

NEW_GRAD_PATTERNS: tuple[str, ...] = (
    "new grad", "new graduate", "university grad", "entry level", "entry-level",
    "junior", "associate", "early career", "early-career", "campus",
    "recent graduate", "fresh graduate", "0-2 years", "0-1 years", "1-2 years",
)

VISA_NEGATIVE_PATTERNS: tuple[str, ...] = (
    "no visa sponsorship", "not sponsor", "cannot sponsor", "will not sponsor",
    "without sponsorship", "no sponsorship", "must be authorized",
    "must be legally authorized", "authorized to work", "without visa sponsorship",
    "u.s. citizen", "us citizen", "permanent resident", "green card",
    "security clearance required",
)

VISA_POSITIVE_PATTERNS: tuple[str, ...] = (
    "visa sponsorship available", "will sponsor", "sponsorship provided",
    "we sponsor", "open to sponsorship", "h1b sponsorship", "visa support",
)

VISA_KEYWORDS: tuple[str, ...] = (
    "visa", "sponsorship", "h1b", "h-1b", "work authorization",
)

_YEARS_RANGE_RE = re.compile(r"(\d+)\s*[-–]\s*(\d+)\s*(?:years?|yrs?|yoe)\b", re.IGNORECASE)
_YEARS_RE = re.compile(r"(\d+)\+?\s*(?:years?|yrs?|yoe)\b", re.IGNORECASE)


def classify_job(title: str, description: str) -> JobClassification:
    """Classify a posting from its title and description."""
    title_lower = title.lower()
    combined = f"{title_lower} {description.lower()}"

    level, new_grad = _experience(title_lower, combined)
    mentioned, sentiment = _visa(combined)
    return JobClassification(
        experience_level=level,
        is_new_grad=new_grad,
        visa_mentioned=mentioned,
        visa_sentiment=sentiment,
    )


def _experience(title: str, combined: str) -> tuple[ExperienceLevel, bool]:
    if any(p in combined for p in NEW_GRAD_PATTERNS):
        return "entry", True
    if "intern" in title:
        return "intern", False
    if "senior" in title or "sr." in title or "sr " in title:
        return "senior", False
    if "staff" in title or "principal" in title:
        return "staff", False
    if "lead" in title or "manager" in title or "director" in title:
        return "lead", False

    m = _YEARS_RANGE_RE.search(title)
    if m:
        return _bucket_years(int(m.group(2))), False
    m = _YEARS_RE.search(combined)
    if m:
        return _bucket_years(int(m.group(1))), False
    return "mid", False


def _bucket_years(years: int) -> ExperienceLevel:
    if years >= 5:
        return "senior"
    if years >= 3:
        return "mid"
    return "entry"


def _visa(text: str) -> tuple[bool, VisaSentiment]:
    if any(p in text for p in VISA_NEGATIVE_PATTERNS):
        return True, "negative"
    if any(p in text for p in VISA_POSITIVE_PATTERNS):
        return True, "positive"
    if any(k in text for k in VISA_KEYWORDS):
        return True, "neutral"
    return False, "none"
