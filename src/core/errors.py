"""Error taxonomy shared by the ingestion and scoring pipeline.

Per-company and per-job errors are collected into batch results by the
callers; only usage errors short-circuit a single call.
"""


class JobsError(Exception):
    """Base class for all pipeline errors."""


class NotFoundError(JobsError, LookupError):
    """Unknown platform, company, job, or profile."""


class InputValidationError(JobsError, ValueError):
    """Malformed upstream input (ATS payload, status value, model reply)."""


class FetchError(JobsError):
    """Network or decode failure while fetching one company's postings."""


class PersistenceError(JobsError):
    """Insert or update failure for a single record."""


class ExternalModelError(JobsError):
    """External scoring model call failed or returned an unusable reply."""


class AmbiguousReferenceError(JobsError, LookupError):
    """An identifier prefix resolved to more than one record."""
