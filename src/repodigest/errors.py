"""Error taxonomy for the ingestion and commit pipelines.

Whole-run errors (validation, auth, not found, forbidden) propagate to the
caller and abort the run before or during the top-level fetch. Item-level
errors (transient network failures, single row writes) are absorbed by the
coordinators and reported as failed items or sentinel summaries.
"""

from __future__ import annotations


class RepoDigestError(Exception):
    """Base class for all repodigest errors."""


class ValidationError(RepoDigestError, ValueError):
    """Malformed input: bad repository URL, empty identifiers."""


class AuthError(RepoDigestError):
    """No usable VCS host token, or the host rejected it (HTTP 401)."""


class NotFoundError(RepoDigestError):
    """Repository, branch, or project does not exist (HTTP 404 / missing row)."""


class ForbiddenError(RepoDigestError):
    """The host refused access, e.g. rate limit or missing scope (HTTP 403)."""


class TransientNetworkError(RepoDigestError):
    """Timeout, connection failure, or 5xx response from the host."""


class RequestTimeoutError(TransientNetworkError):
    """The host did not answer within the request timeout."""


class MalformedResponseError(RepoDigestError):
    """The host answered with a payload that does not match the expected schema."""


class PersistenceError(RepoDigestError):
    """A write or read against the persistence store failed."""
