"""Visa-sponsorship score adjustment and sponsor-record linking."""

import logging
import re
import sqlite3
import uuid
from pathlib import Path
from typing import Any

import yaml

from src.core.db import find_sponsor_by_name, link_company_to_sponsor, list_companies
from src.core.errors import InputValidationError
from src.core.schemas import CompanyTarget, H1BAdjustment, JobRecord, SponsorRecord
from src.profile.schema import CandidateProfile

logger = logging.getLogger(__name__)

POSITIVE_VISA_BONUS = 10.0
NEGATIVE_VISA_PENALTY = -20.0
NEW_GRAD_BONUS = 5.0
NEW_GRAD_MAX_YEARS = 2

# (minimum approval rate, bonus), checked in order.
_SPONSOR_TIERS: tuple[tuple[float, float], ...] = ((90.0, 15.0), (70.0, 10.0))
_SPONSOR_FLOOR_BONUS = 5.0

_CORPORATE_SUFFIXES: tuple[str, ...] = (
    ", inc", ", llc", ", ltd", "inc.", " inc", " llc", " ltd", " corp.", " corp", " co.",
)
_PUNCTUATION_RE = re.compile(r"[,.']")


def score_h1b(job: JobRecord, company: CompanyTarget, profile: CandidateProfile) -> H1BAdjustment:
    """Compute the additive sponsorship delta for one job.

    Returns a zero adjustment whenever the profile does not need sponsorship.
    """
    if not profile.visa_required:
        return H1BAdjustment()

    delta = 0.0
    reasons: list[str] = []

    if company.sponsors_h1b:
        rate = company.h1b_approval_rate or 0.0
        bonus = _SPONSOR_FLOOR_BONUS
        for min_rate, tier_bonus in _SPONSOR_TIERS:
            if rate >= min_rate:
                bonus = tier_bonus
                break
        delta += bonus
        reasons.append(f"H1B sponsor ({rate:.0f}% approval)")

    if job.visa_sentiment == "positive":
        delta += POSITIVE_VISA_BONUS
        reasons.append("Visa Sponsorship mentioned positively")
    elif job.visa_sentiment == "negative":
        delta += NEGATIVE_VISA_PENALTY
        reasons.append("No visa sponsorship")

    if job.is_new_grad and profile.experience_years <= NEW_GRAD_MAX_YEARS:
        delta += NEW_GRAD_BONUS
        reasons.append("New Grad friendly")

    return H1BAdjustment(delta=delta, reason=" | ".join(reasons))


def normalize_employer_name(name: str) -> str:
    """Reduce an employer name to the key used to join sponsor records.

    >>> normalize_employer_name("Stripe, Inc.")
    'stripe'
    """
    normalized = name.lower().strip()
    for suffix in _CORPORATE_SUFFIXES:
        if normalized.endswith(suffix):
            normalized = normalized[: -len(suffix)]
    normalized = _PUNCTUATION_RE.sub("", normalized)
    return normalized.strip()


def load_sponsors_yaml(path: str | Path) -> list[SponsorRecord]:
    """Read sponsor statistics from a YAML list of mappings.

    Each entry needs ``company_name``; ``approval_rate``, ``total_petitions``
    and ``fiscal_year`` are optional. The normalized name is derived here.
    """
    path = Path(path)
    if not path.exists():
        msg = f"Sponsor file not found: {path}"
        raise FileNotFoundError(msg)
    raw: Any = yaml.safe_load(path.read_text()) or []
    if not isinstance(raw, list):
        msg = f"Sponsor file must contain a list of entries: {path}"
        raise InputValidationError(msg)

    sponsors: list[SponsorRecord] = []
    for entry in raw:
        if not isinstance(entry, dict) or not str(entry.get("company_name", "")).strip():
            msg = f"Sponsor entry needs a company_name: {entry!r}"
            raise InputValidationError(msg)
        normalized = normalize_employer_name(str(entry["company_name"]))
        sponsors.append(SponsorRecord.model_validate({
            **entry,
            "id": str(uuid.uuid4()),
            "normalized_name": normalized,
        }))
    return sponsors


def link_companies(conn: sqlite3.Connection) -> int:
    """Link every company to its sponsor record by normalized name.

    Returns the number of companies linked.
    """
    linked = 0
    for company in list_companies(conn):
        sponsor = find_sponsor_by_name(conn, normalize_employer_name(company.name))
        if sponsor is None:
            continue
        link_company_to_sponsor(conn, company.id, sponsor)
        logger.debug("Linked %s to sponsor %s", company.name, sponsor.company_name)
        linked += 1
    logger.info("Linked %d companies to sponsor records", linked)
    return linked
