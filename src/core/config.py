"""Configuration models and YAML loader for the job matching engine."""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

MatcherMode = Literal["keyword", "llm", "hybrid"]


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/jobs.db"


class ScrapingConfig(BaseModel):
    """Worker pool and ATS fetch settings."""

    workers: int = Field(default=5, ge=1, le=32)
    fetch_timeout_s: float = Field(default=30.0, gt=0.0)
    user_agent: str = "jobs-match-engine/0.1"


class MatcherConfig(BaseModel):
    """Scoring strategy selection for the matching pipeline."""

    mode: MatcherMode = "keyword"
    llm_threshold: float = Field(default=30.0, ge=0.0, le=100.0)
    llm_provider: str = "anthropic"
    llm_model: str | None = None
    llm_timeout_s: float = Field(default=30.0, gt=0.0)
    max_description_chars: int = Field(default=3000, ge=200)

    @field_validator("mode", mode="before")
    @classmethod
    def mode_lowercase(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.lower().strip()
        return v


class NotifyConfig(BaseModel):
    """Where and when to announce new high-scoring matches."""

    min_score: float = Field(default=50.0, ge=0.0, le=100.0)
    terminal: bool = True
    webhook_url: str | None = None
    webhook_timeout_s: float = Field(default=10.0, gt=0.0)


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    scraping: ScrapingConfig = Field(default_factory=ScrapingConfig)
    matcher: MatcherConfig = Field(default_factory=MatcherConfig)
    notify: NotifyConfig = Field(default_factory=NotifyConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
