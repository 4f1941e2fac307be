"""SQLite persistence for companies, jobs, the profile singleton, and sponsor data."""

import json
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from src.core.errors import (
    AmbiguousReferenceError,
    InputValidationError,
    NotFoundError,
    PersistenceError,
)
from src.core.schemas import (
    JOB_STATUSES,
    CompanyTarget,
    JobClassification,
    JobRecord,
    RawPosting,
    SponsorRecord,
)
from src.profile.schema import CandidateProfile

_COMPANIES_TABLE = """
CREATE TABLE IF NOT EXISTS companies (
    id                TEXT    PRIMARY KEY,
    name              TEXT    NOT NULL,
    platform          TEXT    NOT NULL,
    slug              TEXT    NOT NULL,
    career_url        TEXT    NOT NULL DEFAULT '',
    enabled           INTEGER NOT NULL DEFAULT 1,
    last_scraped_at   TEXT,
    created_at        TEXT    NOT NULL,
    h1b_sponsor_id    TEXT,
    sponsors_h1b      INTEGER NOT NULL DEFAULT 0,
    h1b_approval_rate REAL,
    h1b_total_filed   INTEGER,
    UNIQUE(platform, slug)
);
"""

_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS jobs (
    id               TEXT    PRIMARY KEY,
    company_id       TEXT    NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
    external_id      TEXT    NOT NULL,
    title            TEXT    NOT NULL,
    description      TEXT    NOT NULL DEFAULT '',
    location         TEXT    NOT NULL DEFAULT '',
    remote           INTEGER NOT NULL DEFAULT 0,
    department       TEXT    NOT NULL DEFAULT '',
    url              TEXT    NOT NULL DEFAULT '',
    posted_at        TEXT,
    scraped_at       TEXT,
    created_at       TEXT    NOT NULL,
    status           TEXT    NOT NULL DEFAULT 'new',
    experience_level TEXT,
    is_new_grad      INTEGER NOT NULL DEFAULT 0,
    visa_mentioned   INTEGER NOT NULL DEFAULT 0,
    visa_sentiment   TEXT    NOT NULL DEFAULT 'none',
    skill_score      REAL,
    match_score      REAL,
    matched_skills   TEXT    NOT NULL DEFAULT '[]',
    missing_skills   TEXT    NOT NULL DEFAULT '[]',
    match_reason     TEXT    NOT NULL DEFAULT '',
    scored_at        TEXT,
    UNIQUE(company_id, external_id)
);
"""

_PROFILE_TABLE = """
CREATE TABLE IF NOT EXISTS profile (
    id                  INTEGER PRIMARY KEY CHECK (id = 1),
    name                TEXT    NOT NULL DEFAULT '',
    email               TEXT    NOT NULL DEFAULT '',
    skills              TEXT    NOT NULL DEFAULT '[]',
    experience_years    INTEGER NOT NULL DEFAULT 0,
    preferred_roles     TEXT    NOT NULL DEFAULT '[]',
    preferred_locations TEXT    NOT NULL DEFAULT '[]',
    min_match_score     REAL    NOT NULL DEFAULT 0.0,
    visa_required       INTEGER NOT NULL DEFAULT 0,
    updated_at          TEXT    NOT NULL
);
"""

_SPONSORS_TABLE = """
CREATE TABLE IF NOT EXISTS h1b_sponsors (
    id              TEXT    PRIMARY KEY,
    company_name    TEXT    NOT NULL,
    normalized_name TEXT    NOT NULL UNIQUE,
    approval_rate   REAL    NOT NULL DEFAULT 0.0,
    total_petitions INTEGER NOT NULL DEFAULT 0,
    fiscal_year     INTEGER
);
"""

_JOB_SELECT = """
SELECT j.*, c.name AS company_name
FROM jobs j
JOIN companies c ON c.id = j.company_id
"""


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute(_COMPANIES_TABLE)
    conn.execute(_JOBS_TABLE)
    conn.execute(_PROFILE_TABLE)
    conn.execute(_SPONSORS_TABLE)
    conn.commit()
    return conn


def _new_id() -> str:
    return str(uuid.uuid4())


def _write(
    conn: sqlite3.Connection,
    sql: str,
    params: tuple[Any, ...],
    what: str,
) -> sqlite3.Cursor:
    """Execute a single write and commit, wrapping driver errors."""
    try:
        cursor = conn.execute(sql, params)
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        msg = f"{what} failed: {e}"
        raise PersistenceError(msg) from e
    return cursor


# ---------------------------------------------------------------------------
# Companies
# ---------------------------------------------------------------------------


def _row_to_company(row: sqlite3.Row) -> CompanyTarget:
    data = dict(row)
    data["enabled"] = bool(data["enabled"])
    data["sponsors_h1b"] = bool(data["sponsors_h1b"])
    return CompanyTarget.model_validate(data)


def create_company(
    conn: sqlite3.Connection,
    name: str,
    platform: str,
    slug: str,
    career_url: str = "",
) -> CompanyTarget:
    """Register a company to scrape. Returns the stored record."""
    if not name.strip() or not slug.strip() or not platform.strip():
        msg = "company name, platform and slug must not be empty"
        raise InputValidationError(msg)
    company_id = _new_id()
    _write(
        conn,
        """
        INSERT INTO companies (id, name, platform, slug, career_url, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            company_id,
            name.strip(),
            platform.strip().lower(),
            slug.strip(),
            career_url,
            datetime.now().isoformat(),
        ),
        f"creating company '{name}'",
    )
    return get_company(conn, company_id)


def get_company(conn: sqlite3.Connection, company_id: str) -> CompanyTarget:
    row = conn.execute("SELECT * FROM companies WHERE id = ?", (company_id,)).fetchone()
    if row is None:
        msg = f"company not found: {company_id}"
        raise NotFoundError(msg)
    return _row_to_company(row)


def list_companies(conn: sqlite3.Connection, enabled_only: bool = False) -> list[CompanyTarget]:
    query = "SELECT * FROM companies"
    if enabled_only:
        query += " WHERE enabled = 1"
    query += " ORDER BY name"
    return [_row_to_company(row) for row in conn.execute(query).fetchall()]


def delete_company(conn: sqlite3.Connection, company_id: str) -> None:
    """Delete a company and, via cascade, its jobs."""
    cursor = _write(
        conn, "DELETE FROM companies WHERE id = ?", (company_id,), f"deleting company {company_id}",
    )
    if cursor.rowcount == 0:
        msg = f"company not found: {company_id}"
        raise NotFoundError(msg)


def set_company_enabled(conn: sqlite3.Connection, company_id: str, enabled: bool) -> None:
    cursor = _write(
        conn,
        "UPDATE companies SET enabled = ? WHERE id = ?",
        (int(enabled), company_id),
        f"updating company {company_id}",
    )
    if cursor.rowcount == 0:
        msg = f"company not found: {company_id}"
        raise NotFoundError(msg)


def stamp_company_scraped(
    conn: sqlite3.Connection,
    company_id: str,
    when: datetime | None = None,
) -> None:
    """Record when a company's board was last scraped."""
    _write(
        conn,
        "UPDATE companies SET last_scraped_at = ? WHERE id = ?",
        ((when or datetime.now()).isoformat(), company_id),
        f"stamping company {company_id}",
    )


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


def _row_to_job(row: sqlite3.Row) -> JobRecord:
    data = dict(row)
    for flag in ("remote", "is_new_grad", "visa_mentioned"):
        data[flag] = bool(data[flag])
    data["matched_skills"] = json.loads(data["matched_skills"] or "[]")
    data["missing_skills"] = json.loads(data["missing_skills"] or "[]")
    return JobRecord.model_validate(data)


def create_job_if_absent(conn: sqlite3.Connection, company_id: str, posting: RawPosting) -> bool:
    """Insert a posting unless (company_id, external_id) already exists.

    Returns True if a new row was inserted, False if it was a duplicate.
    Existing rows are never updated.
    """
    now = datetime.now().isoformat()
    cursor = _write(
        conn,
        """
        INSERT OR IGNORE INTO jobs
            (id, company_id, external_id, title, description, location, remote,
             department, url, posted_at, scraped_at, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            _new_id(),
            company_id,
            posting.external_id,
            posting.title,
            posting.description,
            posting.location,
            int(posting.remote),
            posting.department,
            posting.url,
            posting.posted_at.isoformat() if posting.posted_at else None,
            now,
            now,
        ),
        f"inserting job {posting.external_id}",
    )
    return cursor.rowcount == 1


def get_job(conn: sqlite3.Connection, job_id: str) -> JobRecord:
    row = conn.execute(_JOB_SELECT + " WHERE j.id = ?", (job_id,)).fetchone()
    if row is None:
        msg = f"job not found: {job_id}"
        raise NotFoundError(msg)
    return _row_to_job(row)


def resolve_job(conn: sqlite3.Connection, ref: str) -> JobRecord:
    """Look up a job by full id or by a unique id prefix.

    Raises NotFoundError when nothing matches and AmbiguousReferenceError when
    the prefix matches more than one job.
    """
    ref = ref.strip()
    if not ref:
        msg = "job reference must not be empty"
        raise InputValidationError(msg)
    exact = conn.execute("SELECT id FROM jobs WHERE id = ?", (ref,)).fetchone()
    if exact is not None:
        return get_job(conn, exact["id"])

    pattern = ref.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
    rows = conn.execute(
        "SELECT id FROM jobs WHERE id LIKE ? ESCAPE '\\' LIMIT 2", (pattern,),
    ).fetchall()
    if not rows:
        msg = f"job not found: {ref}"
        raise NotFoundError(msg)
    if len(rows) > 1:
        msg = f"job reference '{ref}' matches more than one job"
        raise AmbiguousReferenceError(msg)
    return get_job(conn, rows[0]["id"])


def list_jobs(
    conn: sqlite3.Connection,
    *,
    min_score: float = 0.0,
    company_id: str | None = None,
    status: str | None = None,
    only_remote: bool = False,
    sponsors_only: bool = False,
    new_grad_only: bool = False,
) -> list[JobRecord]:
    """List jobs, best match first, narrowed by the given SQL-level filters."""
    query = _JOB_SELECT + " WHERE 1=1"
    args: list[Any] = []

    if min_score > 0:
        query += " AND COALESCE(j.match_score, 0) >= ?"
        args.append(min_score)
    if company_id:
        query += " AND j.company_id = ?"
        args.append(company_id)
    if status:
        query += " AND j.status = ?"
        args.append(status)
    if only_remote:
        query += " AND j.remote = 1"
    if sponsors_only:
        query += " AND c.sponsors_h1b = 1"
    if new_grad_only:
        query += " AND j.is_new_grad = 1"

    query += " ORDER BY j.match_score IS NULL, j.match_score DESC, j.created_at DESC"
    return [_row_to_job(row) for row in conn.execute(query, args).fetchall()]


def list_unscored_jobs(conn: sqlite3.Connection) -> list[JobRecord]:
    rows = conn.execute(_JOB_SELECT + " WHERE j.scored_at IS NULL").fetchall()
    return [_row_to_job(row) for row in rows]


def update_job_status(conn: sqlite3.Connection, job_id: str, status: str) -> None:
    if status not in JOB_STATUSES:
        msg = f"status must be one of {list(JOB_STATUSES)}, got '{status}'"
        raise InputValidationError(msg)
    cursor = _write(
        conn, "UPDATE jobs SET status = ? WHERE id = ?", (status, job_id), f"updating job {job_id}",
    )
    if cursor.rowcount == 0:
        msg = f"job not found: {job_id}"
        raise NotFoundError(msg)


def update_job_classification(
    conn: sqlite3.Connection,
    job_id: str,
    classification: JobClassification,
) -> None:
    _write(
        conn,
        """
        UPDATE jobs
        SET experience_level = ?, is_new_grad = ?, visa_mentioned = ?, visa_sentiment = ?
        WHERE id = ?
        """,
        (
            classification.experience_level,
            int(classification.is_new_grad),
            int(classification.visa_mentioned),
            classification.visa_sentiment,
            job_id,
        ),
        f"classifying job {job_id}",
    )


def update_job_score(
    conn: sqlite3.Connection,
    job_id: str,
    *,
    skill_score: float,
    match_score: float,
    matched_skills: list[str],
    missing_skills: list[str],
    reason: str,
) -> None:
    _write(
        conn,
        """
        UPDATE jobs
        SET skill_score = ?, match_score = ?, matched_skills = ?, missing_skills = ?,
            match_reason = ?, scored_at = ?
        WHERE id = ?
        """,
        (
            skill_score,
            match_score,
            json.dumps(matched_skills),
            json.dumps(missing_skills),
            reason,
            datetime.now().isoformat(),
            job_id,
        ),
        f"scoring job {job_id}",
    )


# ---------------------------------------------------------------------------
# Profile singleton
# ---------------------------------------------------------------------------


def get_profile(conn: sqlite3.Connection) -> CandidateProfile | None:
    """Return the stored profile, or None if it has not been set yet."""
    row = conn.execute("SELECT * FROM profile WHERE id = 1").fetchone()
    if row is None:
        return None
    return CandidateProfile(
        name=row["name"],
        email=row["email"],
        skills=json.loads(row["skills"]),
        experience_years=row["experience_years"],
        preferred_roles=json.loads(row["preferred_roles"]),
        preferred_locations=json.loads(row["preferred_locations"]),
        min_match_score=row["min_match_score"],
        visa_required=bool(row["visa_required"]),
    )


def upsert_profile(conn: sqlite3.Connection, profile: CandidateProfile) -> None:
    _write(
        conn,
        """
        INSERT INTO profile
            (id, name, email, skills, experience_years, preferred_roles,
             preferred_locations, min_match_score, visa_required, updated_at)
        VALUES (1, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            name = excluded.name,
            email = excluded.email,
            skills = excluded.skills,
            experience_years = excluded.experience_years,
            preferred_roles = excluded.preferred_roles,
            preferred_locations = excluded.preferred_locations,
            min_match_score = excluded.min_match_score,
            visa_required = excluded.visa_required,
            updated_at = excluded.updated_at
        """,
        (
            profile.name,
            profile.email,
            json.dumps(profile.skills),
            profile.experience_years,
            json.dumps(profile.preferred_roles),
            json.dumps(profile.preferred_locations),
            profile.min_match_score,
            int(profile.visa_required),
            datetime.now().isoformat(),
        ),
        "saving profile",
    )


# ---------------------------------------------------------------------------
# Sponsor records
# ---------------------------------------------------------------------------


def upsert_sponsor(conn: sqlite3.Connection, sponsor: SponsorRecord) -> None:
    """Insert a sponsor record, refreshing its statistics if the name is known."""
    _write(
        conn,
        """
        INSERT INTO h1b_sponsors
            (id, company_name, normalized_name, approval_rate, total_petitions, fiscal_year)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(normalized_name) DO UPDATE SET
            company_name = excluded.company_name,
            approval_rate = excluded.approval_rate,
            total_petitions = excluded.total_petitions,
            fiscal_year = excluded.fiscal_year
        """,
        (
            sponsor.id,
            sponsor.company_name,
            sponsor.normalized_name,
            sponsor.approval_rate,
            sponsor.total_petitions,
            sponsor.fiscal_year,
        ),
        f"saving sponsor '{sponsor.company_name}'",
    )


def find_sponsor_by_name(conn: sqlite3.Connection, normalized_name: str) -> SponsorRecord | None:
    row = conn.execute(
        "SELECT * FROM h1b_sponsors WHERE normalized_name = ?", (normalized_name,),
    ).fetchone()
    if row is None:
        return None
    return SponsorRecord.model_validate(dict(row))


def link_company_to_sponsor(
    conn: sqlite3.Connection,
    company_id: str,
    sponsor: SponsorRecord,
) -> None:
    _write(
        conn,
        """
        UPDATE companies
        SET h1b_sponsor_id = ?, sponsors_h1b = 1, h1b_approval_rate = ?, h1b_total_filed = ?
        WHERE id = ?
        """,
        (sponsor.id, sponsor.approval_rate, sponsor.total_petitions, company_id),
        f"linking company {company_id}",
    )


def sponsor_company_ids(conn: sqlite3.Connection) -> set[str]:
    """Return the ids of all companies linked to a sponsor record."""
    rows = conn.execute("SELECT id FROM companies WHERE sponsors_h1b = 1").fetchall()
    return {row["id"] for row in rows}
