"""Core data models for the ingestion and scoring pipeline."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ExperienceLevel = Literal["intern", "entry", "mid", "senior", "staff", "lead"]
VisaSentiment = Literal["none", "positive", "negative", "neutral"]
JobStatus = Literal["new", "applied", "interviewing", "offer", "rejected", "archived"]

JOB_STATUSES: tuple[str, ...] = ("new", "applied", "interviewing", "offer", "rejected", "archived")


class CompanyTarget(BaseModel):
    """A company whose ATS board is scraped, with optional sponsor linkage."""

    id: str
    name: str
    platform: str
    slug: str
    career_url: str = ""
    enabled: bool = True
    last_scraped_at: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    h1b_sponsor_id: str | None = None
    sponsors_h1b: bool = False
    h1b_approval_rate: float | None = None
    h1b_total_filed: int | None = None


class RawPosting(BaseModel):
    """A posting as normalized by a scraper adapter. Never persisted directly."""

    model_config = ConfigDict(frozen=True)

    external_id: str
    title: str
    description: str = ""
    location: str = ""
    remote: bool = False
    department: str = ""
    url: str = ""
    posted_at: datetime | None = None


class JobRecord(BaseModel):
    """A stored job posting with classification and scoring fields."""

    id: str
    company_id: str
    company_name: str = ""
    external_id: str
    title: str
    description: str = ""
    location: str = ""
    remote: bool = False
    department: str = ""
    url: str = ""
    posted_at: datetime | None = None
    scraped_at: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    status: JobStatus = "new"

    experience_level: ExperienceLevel | None = None
    is_new_grad: bool = False
    visa_mentioned: bool = False
    visa_sentiment: VisaSentiment = "none"

    skill_score: float | None = None
    match_score: float | None = None
    matched_skills: list[str] = Field(default_factory=list)
    missing_skills: list[str] = Field(default_factory=list)
    match_reason: str = ""
    scored_at: datetime | None = None


class SponsorRecord(BaseModel):
    """Historical visa-petition statistics for one employer."""

    id: str
    company_name: str
    normalized_name: str
    approval_rate: float = Field(default=0.0, ge=0.0, le=100.0)
    total_petitions: int = Field(default=0, ge=0)
    fiscal_year: int | None = None


class JobSkills(BaseModel):
    """Canonical skills found in a job description, bucketed by section."""

    required: list[str] = Field(default_factory=list)
    preferred: list[str] = Field(default_factory=list)
    mentioned: list[str] = Field(default_factory=list)


class SkillScoreResult(BaseModel):
    """Outcome of scoring one job against the profile. Recomputed every pass."""

    score: float = Field(default=0.0, ge=0.0, le=100.0)
    matched_skills: list[str] = Field(default_factory=list)
    missing_skills: list[str] = Field(default_factory=list)
    reason: str = ""


class JobClassification(BaseModel):
    """Heuristic seniority and visa signals derived from title + description."""

    model_config = ConfigDict(frozen=True)

    experience_level: ExperienceLevel = "mid"
    is_new_grad: bool = False
    visa_mentioned: bool = False
    visa_sentiment: VisaSentiment = "none"


class H1BAdjustment(BaseModel):
    """Additive score delta from sponsorship signals."""

    model_config = ConfigDict(frozen=True)

    delta: float = 0.0
    reason: str = ""


class ScrapeResult(BaseModel):
    """Outcome of scraping one company. error is None on success."""

    company: CompanyTarget
    new_jobs: int = Field(default=0, ge=0)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
