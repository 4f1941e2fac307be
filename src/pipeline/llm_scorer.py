"""LLM-assisted technical skill-fit scoring."""

import logging
from typing import Any

from src.core.errors import ExternalModelError
from src.core.schemas import SkillScoreResult
from src.profile.llm import parse_json_response
from src.profile.llm.base import SYSTEM_PROMPT, LLMProvider

logger = logging.getLogger(__name__)

DEFAULT_MAX_DESCRIPTION_CHARS = 3000


def truncate_description(description: str, max_chars: int = DEFAULT_MAX_DESCRIPTION_CHARS) -> str:
    if len(description) <= max_chars:
        return description
    return description[:max_chars] + "..."


def build_prompt(
    profile_skills: list[str],
    description: str,
    max_chars: int = DEFAULT_MAX_DESCRIPTION_CHARS,
) -> str:
    """Assemble the user prompt from the candidate's skills and the job text."""
    skills = ", ".join(profile_skills) if profile_skills else "not specified"
    return (
        "CANDIDATE SKILLS\n"
        f"{skills}\n\n"
        "JOB DESCRIPTION\n"
        f"{truncate_description(description, max_chars)}\n"
    )


def parse_skill_score(raw_text: str) -> SkillScoreResult:
    """Parse an LLM JSON reply into a SkillScoreResult.

    Handles markdown-wrapped JSON. Clamps score to 0-100.
    Raises ExternalModelError on a malformed reply.
    """
    try:
        data = parse_json_response(raw_text)
    except ValueError as e:
        raise ExternalModelError(str(e)) from e

    if "score" not in data:
        msg = "LLM response missing 'score' field"
        raise ExternalModelError(msg)

    try:
        raw_score = float(data["score"])
    except (TypeError, ValueError) as e:
        msg = f"LLM score is not a number: {data['score']!r}"
        raise ExternalModelError(msg) from e

    return SkillScoreResult(
        score=max(0.0, min(100.0, raw_score)),
        matched_skills=_skill_list(data, "matched_skills"),
        missing_skills=_skill_list(data, "missing_skills"),
        reason=str(data.get("reason", "")),
    )


def _skill_list(data: dict[str, Any], field: str) -> list[str]:
    value = data.get(field)
    if value is None:
        return []
    if not isinstance(value, list):
        msg = f"LLM field '{field}' is not a list: {value!r:.100}"
        raise ExternalModelError(msg)
    return [str(s) for s in value]


class LLMSkillScorer:
    """Score skill fit by asking an external model."""

    def __init__(
        self,
        provider: LLMProvider,
        model: str | None = None,
        max_description_chars: int = DEFAULT_MAX_DESCRIPTION_CHARS,
    ) -> None:
        self._provider = provider
        self._model = model
        self._max_chars = max_description_chars

    @property
    def provider_id(self) -> str:
        return self._provider.provider_id

    def score(self, description: str, profile_skills: list[str]) -> SkillScoreResult:
        """Score one job. Any provider or parse failure raises ExternalModelError."""
        prompt = build_prompt(profile_skills, description, self._max_chars)
        try:
            raw = self._provider.complete(prompt, model=self._model, system=SYSTEM_PROMPT)
        except Exception as e:
            msg = f"{self._provider.provider_id} call failed: {e}"
            raise ExternalModelError(msg) from e
        return parse_skill_score(raw)
