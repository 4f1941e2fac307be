"""Matching pipeline: keyword, llm or hybrid skill scoring with fallback.

  keyword  keyword coverage score only
  llm      external model; on failure, keyword score
  hybrid   keyword first; the model is consulted only when the keyword score
           reaches llm_threshold, and a model failure keeps the keyword result
"""

import logging

from src.core.config import MatcherConfig, MatcherMode
from src.core.errors import ExternalModelError
from src.core.schemas import SkillScoreResult
from src.pipeline.llm_scorer import LLMSkillScorer
from src.pipeline.skill_scorer import SkillScorer
from src.profile.llm import get_provider

logger = logging.getLogger(__name__)

DEFAULT_LLM_THRESHOLD = 30.0


class MatchingPipeline:
    """Select a scoring strategy and absorb external-model failures."""

    def __init__(
        self,
        keyword_scorer: SkillScorer,
        llm_scorer: LLMSkillScorer | None = None,
        mode: MatcherMode = "keyword",
        llm_threshold: float = DEFAULT_LLM_THRESHOLD,
    ) -> None:
        if mode not in ("keyword", "llm", "hybrid"):
            msg = f"Unknown matcher mode '{mode}'"
            raise ValueError(msg)
        if mode != "keyword" and llm_scorer is None:
            logger.warning("Matcher mode '%s' has no LLM scorer; using keyword scoring", mode)
            mode = "keyword"
        self._keyword = keyword_scorer
        self._llm = llm_scorer
        self._mode: MatcherMode = mode
        self._threshold = llm_threshold

    @classmethod
    def from_config(cls, config: MatcherConfig, keyword_scorer: SkillScorer) -> "MatchingPipeline":
        """Build a pipeline, resolving the LLM provider for non-keyword modes."""
        llm_scorer = None
        if config.mode != "keyword":
            provider = get_provider(config.llm_provider, timeout=config.llm_timeout_s)
            llm_scorer = LLMSkillScorer(
                provider,
                model=config.llm_model,
                max_description_chars=config.max_description_chars,
            )
        return cls(keyword_scorer, llm_scorer, mode=config.mode, llm_threshold=config.llm_threshold)

    @property
    def mode(self) -> MatcherMode:
        return self._mode

    def score(self, description: str, profile_skills: list[str]) -> SkillScoreResult:
        """Score one job. Never raises for an external-model failure."""
        if self._mode == "keyword" or self._llm is None:
            return self._keyword.score(description, profile_skills)
        # Nothing to ask the model about; the keyword scorer returns the zero result.
        if not profile_skills or not description.strip():
            return self._keyword.score(description, profile_skills)

        if self._mode == "llm":
            return self._llm_or_fallback(description, profile_skills, None)

        keyword_result = self._keyword.score(description, profile_skills)
        if keyword_result.score < self._threshold:
            return keyword_result
        return self._llm_or_fallback(description, profile_skills, keyword_result)

    def _llm_or_fallback(
        self,
        description: str,
        profile_skills: list[str],
        keyword_result: SkillScoreResult | None,
    ) -> SkillScoreResult:
        assert self._llm is not None
        try:
            return self._llm.score(description, profile_skills)
        except ExternalModelError:
            logger.warning(
                "LLM scoring via %s failed; falling back to keyword score",
                self._llm.provider_id,
                exc_info=True,
            )
        if keyword_result is not None:
            return keyword_result
        return self._keyword.score(description, profile_skills)
