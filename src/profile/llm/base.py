"""Abstract base class for LLM providers and shared response handling."""

import json
import re
from abc import ABC, abstractmethod
from typing import Any

SYSTEM_PROMPT = (
    "You are a technical recruiter evaluating skill fit between a candidate "
    "and a job posting.\n\n"
    "Rate the TECHNICAL SKILL FIT ONLY from 0-100. Ignore location, salary, "
    "seniority and visa status; those are scored separately.\n\n"
    "Return ONLY a JSON object (no markdown, no explanation) with these fields:\n"
    "- score (integer 0-100)\n"
    "- matched_skills (list[str]): candidate skills the job asks for\n"
    "- missing_skills (list[str]): skills the job asks for that the candidate lacks\n"
    "- reason (string): one sentence explaining the score"
)

DEFAULT_TIMEOUT_S = 30.0

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?```\s*$")


def parse_json_response(raw_text: str) -> dict[str, Any]:
    """Decode an LLM reply that should be a JSON object.

    Handles markdown-wrapped JSON (```json ... ```) and plain JSON.
    Raises ValueError if the text is not a JSON object.
    """
    cleaned = _FENCE_OPEN_RE.sub("", raw_text.strip())
    cleaned = _FENCE_CLOSE_RE.sub("", cleaned)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        msg = f"Failed to parse LLM response as JSON: {e}"
        raise ValueError(msg) from e

    if not isinstance(data, dict):
        msg = f"Expected a JSON object from LLM, got {type(data).__name__}"
        raise ValueError(msg)
    return data


class LLMProvider(ABC):
    """Base class that every LLM provider must implement."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_S) -> None:
        self.timeout = timeout

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique identifier for this provider (e.g. 'anthropic')."""

    @abstractmethod
    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
    ) -> str:
        """Send a prompt to the LLM and return raw response text.

        Args:
            prompt: User message describing the candidate and the job.
            model: Override the provider's default model. None uses default.
            system: Override the system prompt. None falls back to SYSTEM_PROMPT.

        Returns:
            Raw text response from the LLM (expected to be JSON).
        """

    @property
    @abstractmethod
    def default_model(self) -> str:
        """The default model ID used when no override is specified."""

    @property
    @abstractmethod
    def env_var(self) -> str | None:
        """Environment variable name for the API key, or None if not needed."""
