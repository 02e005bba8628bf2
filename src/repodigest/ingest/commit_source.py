"""CommitSource — recent commit metadata and per-commit diffs.

``latest_commits`` raises on whole-run failures. ``fetch_diff`` never raises
for host-side problems: it returns a ``DiffResult`` whose ``failure`` names
what went wrong, and the caller stores the matching sentinel summary.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import httpx

from repodigest.config import resolve_github_token
from repodigest.errors import (
    AuthError,
    ForbiddenError,
    NotFoundError,
    RepoDigestError,
    RequestTimeoutError,
)
from repodigest.github.client import GitHubClient, parse_github_url
from repodigest.github.schemas import CommitResponse
from repodigest.ingest.summarizer import Sentinel
from repodigest.logger import get_logger

log = get_logger(__name__)

COMMIT_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# The host lists commits in graph order, not by date; sort a full page
# before cutting to the requested limit.
LISTING_PAGE_SIZE = 30


@dataclass(frozen=True)
class CommitInfo:
    commit_hash: str
    commit_message: str
    commit_author_name: str
    commit_author_avatar: str
    commit_date: str  # UTC, COMMIT_DATE_FORMAT


class DiffFailure(Enum):
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    TIMEOUT = "timeout"
    NETWORK = "network"

    @property
    def sentinel(self) -> Sentinel:
        return _FAILURE_SENTINELS[self]


_FAILURE_SENTINELS = {
    DiffFailure.NOT_FOUND: Sentinel.DIFF_NOT_FOUND,
    DiffFailure.FORBIDDEN: Sentinel.DIFF_FORBIDDEN,
    DiffFailure.TIMEOUT: Sentinel.DIFF_TIMEOUT,
    DiffFailure.NETWORK: Sentinel.DIFF_NETWORK,
}


@dataclass(frozen=True)
class DiffResult:
    text: str = ""
    failure: DiffFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def _to_info(commit: CommitResponse) -> CommitInfo:
    return CommitInfo(
        commit_hash=commit.sha,
        commit_message=commit.commit.message,
        commit_author_name=commit.commit.author.name,
        commit_author_avatar=commit.author.avatar_url if commit.author else "",
        commit_date=commit.authored_at.strftime(COMMIT_DATE_FORMAT),
    )


class CommitSource:
    """Read commits and diffs from the GitHub API.

    Args:
        token:        Default token; a per-call token takes precedence, then
                      ``GITHUB_TOKEN``. Public repositories work without one.
        api_url:      GitHub API base URL.
        timeout:      Timeout for the commit listing, in seconds.
        diff_timeout: Timeout for each diff request, in seconds.
        retries:      Attempts per request for transient failures.
        transport:    Optional httpx transport (tests).
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
        diff_timeout: float = 30.0,
        retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token
        self._api_url = api_url
        self._timeout = timeout
        self._diff_timeout = diff_timeout
        self._retries = retries
        self._transport = transport

    def _client(self, token: str | None = None) -> GitHubClient:
        return GitHubClient(
            resolve_github_token(token or self._token),
            api_url=self._api_url,
            timeout=self._timeout,
            retries=self._retries,
            transport=self._transport,
        )

    async def latest_commits(
        self, github_url: str, limit: int = 10, token: str | None = None
    ) -> list[CommitInfo]:
        """Return at most *limit* commits, newest first.

        Ordering is by author date descending with ties broken by hash, so the
        result is deterministic whatever order the host lists them in.
        """
        owner, repo = parse_github_url(github_url)
        async with self._client(token) as client:
            commits = await client.list_commits(
                owner, repo, per_page=max(limit, LISTING_PAGE_SIZE)
            )
        infos = [_to_info(c) for c in commits]
        # two stable passes: hash ascending, then date descending
        infos.sort(key=lambda c: c.commit_hash)
        infos.sort(key=lambda c: c.commit_date, reverse=True)
        return infos[:limit]

    async def fetch_diff(
        self, github_url: str, commit_hash: str, token: str | None = None
    ) -> DiffResult:
        owner, repo = parse_github_url(github_url)
        try:
            async with self._client(token) as client:
                text = await client.get_commit_diff(
                    owner, repo, commit_hash, timeout=self._diff_timeout
                )
        except NotFoundError:
            failure = DiffFailure.NOT_FOUND
        except (AuthError, ForbiddenError):
            failure = DiffFailure.FORBIDDEN
        except RequestTimeoutError:
            failure = DiffFailure.TIMEOUT
        except RepoDigestError:
            failure = DiffFailure.NETWORK
        else:
            return DiffResult(text=text)
        log.warning("diff_fetch_failed", commit=commit_hash, reason=failure.value)
        return DiffResult(failure=failure)
