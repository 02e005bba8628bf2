"""Async GitHub REST client.

Maps host responses onto the repodigest error taxonomy:
  401                 → AuthError
  403                 → ForbiddenError (includes primary rate limiting)
  404 / 409 (empty)   → NotFoundError
  429 / 5xx           → TransientNetworkError (retried)
  timeout             → RequestTimeoutError  (retried)
  connection failure  → TransientNetworkError (retried)

The token is sent as a bearer header only; it never appears in URLs,
log events, or exception messages.
"""

from __future__ import annotations

import base64
import binascii
import urllib.parse
from typing import Any

import httpx
import pydantic
import tenacity

from repodigest.errors import (
    AuthError,
    ForbiddenError,
    MalformedResponseError,
    NotFoundError,
    RepoDigestError,
    RequestTimeoutError,
    TransientNetworkError,
    ValidationError,
)
from repodigest.github.schemas import BlobResponse, CommitList, CommitResponse, TreeResponse
from repodigest.logger import get_logger

log = get_logger(__name__)

DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"

_JSON_MEDIA_TYPE = "application/vnd.github+json"
_API_VERSION = "2022-11-28"
_USER_AGENT = "repodigest/0.1"
_DEFAULT_API_URL = "https://api.github.com"


def parse_github_url(url: str) -> tuple[str, str]:
    """Return ``(owner, repo)`` for a GitHub repository URL.

    Accepts ``https://github.com/owner/repo``, trailing slashes, a ``.git``
    suffix, deeper paths (``/tree/main/...``) and ``git@github.com:owner/repo.git``.

    Raises:
        ValidationError: If the URL is empty or has no owner/repo segments.
    """
    if not url or not url.strip():
        raise ValidationError("GitHub URL must not be empty")
    url = url.strip()

    if url.startswith("git@"):
        _, _, path = url.partition(":")
    else:
        parsed = urllib.parse.urlparse(url)
        if parsed.scheme not in ("https", "http") or not parsed.netloc:
            raise ValidationError(f"Invalid GitHub URL: '{url}'")
        path = parsed.path

    segments = [s for s in path.split("/") if s]
    if len(segments) < 2:
        raise ValidationError(f"GitHub URL is missing owner/repo: '{url}'")
    owner, repo = segments[0], segments[1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not owner or not repo:
        raise ValidationError(f"GitHub URL is missing owner/repo: '{url}'")
    return owner, repo


class GitHubClient:
    """Thin async wrapper over the GitHub REST API v3.

    Args:
        token:     Personal access token, or None for unauthenticated access.
        api_url:   API base URL (GitHub Enterprise: ``https://host/api/v3``).
        timeout:   Default per-request timeout in seconds.
        retries:   Attempts per request for transient failures (>= 1).
        transport: Optional httpx transport (tests inject ``httpx.MockTransport``).
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        api_url: str = _DEFAULT_API_URL,
        timeout: float = 30.0,
        retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {
            "Accept": _JSON_MEDIA_TYPE,
            "X-GitHub-Api-Version": _API_VERSION,
            "User-Agent": _USER_AGENT,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._retries = max(1, retries)
        self._client = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def get_tree(self, owner: str, repo: str, branch: str) -> TreeResponse:
        """Recursive tree listing of *branch*."""
        ref = urllib.parse.quote(branch, safe="")
        response = await self._request(
            f"/repos/{owner}/{repo}/git/trees/{ref}", params={"recursive": "1"}
        )
        return _validate(TreeResponse, response, "tree listing")

    async def get_blob(self, owner: str, repo: str, sha: str) -> bytes:
        """Raw bytes of the blob *sha*."""
        response = await self._request(f"/repos/{owner}/{repo}/git/blobs/{sha}")
        blob = _validate(BlobResponse, response, f"blob {sha}")
        if blob.encoding == "base64":
            try:
                return base64.b64decode(blob.content)
            except binascii.Error as exc:
                raise MalformedResponseError(f"Blob {sha} is not valid base64: {exc}") from exc
        return blob.content.encode("utf-8")

    async def list_commits(self, owner: str, repo: str, per_page: int = 30) -> list[CommitResponse]:
        response = await self._request(
            f"/repos/{owner}/{repo}/commits", params={"per_page": str(per_page)}
        )
        try:
            return CommitList.validate_python(response.json())
        except (pydantic.ValidationError, ValueError) as exc:
            raise MalformedResponseError(f"Unexpected commit list payload: {exc}") from exc

    async def get_commit_diff(
        self, owner: str, repo: str, sha: str, timeout: float | None = None
    ) -> str:
        """Unified diff text of commit *sha*."""
        response = await self._request(
            f"/repos/{owner}/{repo}/commits/{sha}",
            headers={"Accept": DIFF_MEDIA_TYPE},
            timeout=timeout,
        )
        return response.text

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        path: str,
        *,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """GET *path*, retrying transient failures with exponential backoff."""
        async for attempt in tenacity.AsyncRetrying(
            retry=tenacity.retry_if_exception_type(TransientNetworkError),
            stop=tenacity.stop_after_attempt(self._retries),
            wait=tenacity.wait_exponential(multiplier=0.5, min=1, max=8),
            reraise=True,
        ):
            with attempt:
                return await self._get_once(path, params=params, headers=headers, timeout=timeout)
        raise AssertionError("unreachable")  # pragma: no cover

    async def _get_once(
        self,
        path: str,
        *,
        params: dict[str, str] | None,
        headers: dict[str, str] | None,
        timeout: float | None,
    ) -> httpx.Response:
        kwargs: dict[str, Any] = {"params": params, "headers": headers}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            response = await self._client.get(path, **kwargs)
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(f"GitHub request timed out: {path}") from exc
        except httpx.TransportError as exc:
            raise TransientNetworkError(f"GitHub request failed: {path}: {exc}") from exc
        log.debug("github_request", path=path, status=response.status_code)
        _raise_for_status(response, path)
        return response


def _raise_for_status(response: httpx.Response, path: str) -> None:
    status = response.status_code
    if status < 400:
        return
    if status == 401:
        raise AuthError("GitHub rejected the token (401 Bad credentials)")
    if status == 403:
        raise ForbiddenError(
            f"GitHub refused access to {path} (403): rate limit or insufficient token scope"
        )
    if status == 404:
        raise NotFoundError(f"Not found on GitHub: {path}")
    if status == 409:
        # GitHub answers 409 for trees of an empty repository.
        raise NotFoundError(f"Repository is empty: {path}")
    if status == 429 or status >= 500:
        raise TransientNetworkError(f"GitHub returned {status} for {path}")
    raise RepoDigestError(f"GitHub returned {status} for {path}")


def _validate(model: type[pydantic.BaseModel], response: httpx.Response, what: str):
    try:
        return model.model_validate(response.json())
    except (pydantic.ValidationError, ValueError) as exc:
        raise MalformedResponseError(f"Unexpected {what} payload: {exc}") from exc
