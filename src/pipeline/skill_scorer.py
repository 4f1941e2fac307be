"""Keyword skill-coverage scoring.

score = cov(required) * 70 + cov(preferred) * 20 + cov(mentioned) * 10

where cov(bucket) is matched / total, or 1.0 when the bucket is empty. A job
that states no requirements is not penalized for it.
"""

from src.core.schemas import JobSkills, SkillScoreResult
from src.skills.extractor import SkillExtractor
from src.skills.taxonomy import SkillTaxonomy

REQUIRED_WEIGHT = 70.0
PREFERRED_WEIGHT = 20.0
MENTIONED_WEIGHT = 10.0


def _coverage(bucket: list[str], have: set[str]) -> tuple[float, list[str]]:
    if not bucket:
        return 1.0, []
    matched = [skill for skill in bucket if skill in have]
    return len(matched) / len(bucket), matched


class SkillScorer:
    """Score a job description against a candidate's skill list."""

    def __init__(self, taxonomy: SkillTaxonomy, extractor: SkillExtractor | None = None) -> None:
        self._taxonomy = taxonomy
        self._extractor = extractor or SkillExtractor(taxonomy)

    @property
    def extractor(self) -> SkillExtractor:
        return self._extractor

    def score(self, description: str, profile_skills: list[str]) -> SkillScoreResult:
        if not profile_skills:
            return SkillScoreResult(score=0.0, reason="No skills in profile")
        if not description or not description.strip():
            return SkillScoreResult(score=0.0, reason="No job description")

        have = {self._taxonomy.normalize(skill) for skill in profile_skills}
        job_skills = self._extractor.extract_from_job(description)
        return self._score_buckets(job_skills, have)

    def _score_buckets(self, job_skills: JobSkills, have: set[str]) -> SkillScoreResult:
        req_cov, req_matched = _coverage(job_skills.required, have)
        pref_cov, pref_matched = _coverage(job_skills.preferred, have)
        ment_cov, ment_matched = _coverage(job_skills.mentioned, have)

        score = (
            req_cov * REQUIRED_WEIGHT
            + pref_cov * PREFERRED_WEIGHT
            + ment_cov * MENTIONED_WEIGHT
        )
        score = round(max(0.0, min(100.0, score)), 2)

        missing_required = [s for s in job_skills.required if s not in have]
        missing_preferred = [s for s in job_skills.preferred if s not in have]

        return SkillScoreResult(
            score=score,
            matched_skills=req_matched + pref_matched + ment_matched,
            missing_skills=missing_required + missing_preferred,
            reason=_build_reason(job_skills, req_matched, missing_required, missing_preferred),
        )


def _build_reason(
    job_skills: JobSkills,
    req_matched: list[str],
    missing_required: list[str],
    missing_preferred: list[str],
) -> str:
    if not job_skills.required:
        return "No required skills listed in job description"

    reason = f"{len(req_matched)}/{len(job_skills.required)} required skills matched"
    if not missing_required and not missing_preferred:
        return reason + ". Full match on all required and preferred skills."
    if missing_required:
        return reason + f". Missing required: {', '.join(missing_required)}."
    return reason + f". Missing preferred: {', '.join(missing_preferred)}."
