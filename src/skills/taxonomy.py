"""Skill taxonomy: canonical names, aliases, and case-insensitive lookup.

Build one SkillTaxonomy at startup and hand it to the extractor and scorer;
the lookup index is immutable once constructed.
"""

from collections.abc import Iterable, Mapping

SKILLS: tuple[str, ...] = (
    # Languages
    "Go", "Python", "Java", "JavaScript", "TypeScript", "Rust",
    "C++", "C#", "Ruby", "PHP", "Kotlin", "Swift", "SQL", "R", "Scala",
    # Frameworks
    "React", "Next.js", "Vue", "Angular", "Django", "Flask",
    "Spring Boot", "Express", "FastAPI", "Gin", "Echo", "Fiber", "Rails",
    "Node.js",
    # Databases
    "PostgreSQL", "MySQL", "MongoDB", "Redis", "SQLite", "DynamoDB",
    "Cassandra", "Elasticsearch", "Neo4j", "ClickHouse", "Snowflake",
    # Cloud
    "AWS", "GCP", "Azure", "S3", "EC2", "Lambda", "Cloud Run",
    "BigQuery", "ECS", "EKS", "GKE", "CloudFormation",
    # DevOps
    "Docker", "Kubernetes", "Terraform", "Ansible", "Jenkins",
    "GitHub Actions", "CircleCI", "ArgoCD", "Helm", "Pulumi",
    # Tools & protocols
    "Git", "Linux", "Nginx", "Kafka", "RabbitMQ", "gRPC", "GraphQL",
    "REST", "Prometheus", "Grafana", "Datadog", "OpenTelemetry",
    # Concepts
    "microservices", "CI/CD", "distributed systems", "system design",
    "API design", "event-driven", "caching", "load balancing",
    "message queue", "observability",
)

# Alternate spellings and abbreviations -> canonical name (many-to-one).
ALIASES: dict[str, str] = {
    "js": "JavaScript",
    "ts": "TypeScript",
    "k8s": "Kubernetes",
    "kube": "Kubernetes",
    "postgres": "PostgreSQL",
    "pg": "PostgreSQL",
    "mongo": "MongoDB",
    "node": "Node.js",
    "nodejs": "Node.js",
    "gh actions": "GitHub Actions",
    "google cloud": "GCP",
    "microsoft azure": "Azure",
    "rabbit": "RabbitMQ",
    "elk": "Elasticsearch",
    "elastic": "Elasticsearch",
    "cicd": "CI/CD",
    "rest api": "REST",
    "restful": "REST",
    "amazon web services": "AWS",
    "google kubernetes engine": "GKE",
    "amazon eks": "EKS",
    "amazon ecs": "ECS",
    "golang": "Go",
    "python3": "Python",
    "react.js": "React",
    "reactjs": "React",
    "vue.js": "Vue",
    "vuejs": "Vue",
    "nextjs": "Next.js",
    "angular.js": "Angular",
    "angularjs": "Angular",
}


class SkillTaxonomy:
    """Case-insensitive lookup over canonical skill names and their aliases."""

    def __init__(
        self,
        skills: Iterable[str] = SKILLS,
        aliases: Mapping[str, str] = ALIASES,
    ) -> None:
        self._skills = tuple(skills)
        self._aliases = {alias.lower().strip(): canonical for alias, canonical in aliases.items()}

        unknown = sorted(set(self._aliases.values()) - set(self._skills))
        if unknown:
            msg = f"aliases point at unknown canonical skills: {unknown}"
            raise ValueError(msg)

        # Canonical names win over an alias that happens to spell the same key.
        self._index: dict[str, str] = dict(self._aliases)
        for skill in self._skills:
            self._index[skill.lower()] = skill

    @property
    def skills(self) -> tuple[str, ...]:
        return self._skills

    @property
    def aliases(self) -> dict[str, str]:
        """Lower-cased alias -> canonical name."""
        return dict(self._aliases)

    def normalize(self, raw: str) -> str:
        """Return the canonical name for a skill, or the input unchanged if unknown."""
        return self._index.get(raw.lower().strip(), raw)

    def is_known(self, raw: str) -> bool:
        return raw.lower().strip() in self._index

    def __len__(self) -> int:
        return len(self._skills)
