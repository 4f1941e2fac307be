"""Section-aware skill extraction from job descriptions and resumes.

A description is scanned line by line. Heading lines switch the active
bucket; every other line is appended to it:

  - "Requirements", "Qualifications", "Must have", "What you'll need"
        -> required
  - "Nice to have", "Bonus", "Preferred qualifications"
        -> preferred
  - anything before the first heading -> mentioned

Within a bucket, multi-word aliases are matched by plain substring, then
single-word aliases and canonical names by whole-word match. A skill lands in
at most one bucket, in required -> preferred -> mentioned priority.
"""

import re

from src.core.schemas import JobSkills
from src.skills.taxonomy import SkillTaxonomy

# Checked before the required pattern so "Preferred Qualifications" is preferred.
_PREFERRED_RE = re.compile(
    r"(nice.to.have|bonus|preferred qualifications?|what would be (great|nice)"
    r"|additional qualifications?)",
    re.IGNORECASE,
)
_REQUIRED_RE = re.compile(
    r"(requirements?|qualifications?|must.have|what you.?ll need\b|minimum qualifications?)",
    re.IGNORECASE,
)

_BUCKETS = ("required", "preferred", "mentioned")


def _word_pattern(term: str) -> re.Pattern[str]:
    """Match term only when not glued to another alphanumeric character."""
    return re.compile(rf"(?<![a-z0-9]){re.escape(term)}(?![a-z0-9])")


class SkillExtractor:
    """Find canonical skills in free text using a SkillTaxonomy."""

    def __init__(self, taxonomy: SkillTaxonomy) -> None:
        self._taxonomy = taxonomy
        aliases = taxonomy.aliases
        self._phrase_aliases: list[tuple[str, str]] = [
            (alias, canonical) for alias, canonical in aliases.items() if " " in alias
        ]
        self._word_terms: list[tuple[re.Pattern[str], str]] = [
            (_word_pattern(alias), canonical)
            for alias, canonical in aliases.items()
            if " " not in alias
        ]
        self._word_terms.extend(
            (_word_pattern(skill.lower()), skill) for skill in taxonomy.skills
        )

    @property
    def taxonomy(self) -> SkillTaxonomy:
        return self._taxonomy

    def extract_from_job(self, description: str) -> JobSkills:
        """Bucket the skills of a job description into required/preferred/mentioned."""
        sections = _split_sections(description)
        seen: set[str] = set()
        buckets: dict[str, list[str]] = {name: [] for name in _BUCKETS}

        for name in _BUCKETS:
            for skill in self.find_skills(sections[name]):
                if skill not in seen:
                    seen.add(skill)
                    buckets[name].append(skill)

        return JobSkills(**buckets)

    def extract_from_resume(self, text: str) -> list[str]:
        """Return every known skill in a resume. Resumes have no sections."""
        return self.find_skills(text)

    def find_skills(self, text: str) -> list[str]:
        """Return canonical skills present in text, deduplicated, first-seen order."""
        if not text:
            return []
        lower = text.lower()
        seen: set[str] = set()
        found: list[str] = []

        for alias, canonical in self._phrase_aliases:
            if canonical not in seen and alias in lower:
                seen.add(canonical)
                found.append(canonical)

        for pattern, canonical in self._word_terms:
            if canonical not in seen and pattern.search(lower):
                seen.add(canonical)
                found.append(canonical)

        return found


def _split_sections(text: str) -> dict[str, str]:
    sections: dict[str, list[str]] = {name: [] for name in _BUCKETS}
    current = "mentioned"
    for line in text.splitlines():
        stripped = line.strip()
        if _PREFERRED_RE.search(stripped):
            current = "preferred"
            continue
        if _REQUIRED_RE.search(stripped):
            current = "required"
            continue
        sections[current].append(stripped)
    return {name: " ".join(lines) for name, lines in sections.items()}
