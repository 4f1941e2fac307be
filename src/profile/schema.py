"""CandidateProfile model for config/profile.yaml and the profile singleton."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator


class CandidateProfile(BaseModel):
    """The single candidate every job is scored against."""

    name: str = ""
    email: str = ""
    skills: list[str] = Field(default_factory=list)
    experience_years: int = Field(default=0, ge=0)
    preferred_roles: list[str] = Field(default_factory=list)
    preferred_locations: list[str] = Field(default_factory=list)
    min_match_score: float = Field(default=0.0, ge=0.0, le=100.0)
    visa_required: bool = False

    @field_validator("skills", "preferred_roles", "preferred_locations")
    @classmethod
    def strip_blank_entries(cls, v: list[str]) -> list[str]:
        return [item.strip() for item in v if item.strip()]

    @classmethod
    def from_yaml(cls, path: str | Path) -> "CandidateProfile":
        """Load profile from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Profile file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)

    def to_yaml(self, path: str | Path) -> None:
        """Write profile to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump()
        path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=False))
