"""RepositorySource — fetch the text files of a GitHub repository branch.

Lists the recursive tree of the branch, drops ignored paths, then fetches the
remaining blobs with a hard concurrency cap to respect host rate limits.

Whole-run failures (no token, 401, 403, 404 on the tree) raise. A single
blob that cannot be fetched or decoded is skipped with a warning.
"""

from __future__ import annotations

import asyncio
import posixpath
from dataclasses import dataclass
from fnmatch import fnmatchcase

import httpx

from repodigest.config import MAX_FETCH_CONCURRENCY, resolve_github_token
from repodigest.errors import AuthError, RepoDigestError
from repodigest.github.client import GitHubClient, parse_github_url
from repodigest.github.schemas import TreeEntry
from repodigest.logger import get_logger

log = get_logger(__name__)

# Patterns ending in "/**" match a directory at any depth; all others match
# the full path or the basename. Matching is case-insensitive.
DEFAULT_IGNORE_PATTERNS: tuple[str, ...] = (
    # VCS metadata
    ".git/**", ".svn/**", ".hg/**", ".gitignore", ".gitattributes", ".gitmodules",
    # dependency lock files
    "package-lock.json", "yarn.lock", "pnpm-lock.yaml", "poetry.lock", "Pipfile.lock",
    "Cargo.lock", "composer.lock", "Gemfile.lock", "go.sum",
    # dependency directories
    "node_modules/**", "bower_components/**", "vendor/**", ".venv/**", "venv/**",
    "__pycache__/**",
    # OS clutter
    ".DS_Store", "Thumbs.db",
    # binaries
    "*.png", "*.jpg", "*.jpeg", "*.gif", "*.bmp", "*.webp", "*.svg", "*.ico",
    "*.pdf", "*.zip", "*.tar", "*.gz", "*.tgz", "*.rar", "*.7z",
    "*.jar", "*.war", "*.class", "*.exe", "*.dll", "*.so", "*.dylib", "*.o", "*.a",
    "*.bin", "*.pyc", "*.woff", "*.woff2", "*.ttf", "*.otf", "*.eot",
    "*.mp3", "*.mp4", "*.wav", "*.mov", "*.avi", "*.sqlite", "*.db",
)


@dataclass(frozen=True)
class SourceFile:
    path: str
    content: str


def is_ignored(path: str, patterns: tuple[str, ...] | list[str]) -> bool:
    """True if *path* (repository-relative, ``/``-separated) matches any pattern."""
    lowered = path.lower()
    name = posixpath.basename(lowered)
    directories = lowered.split("/")[:-1]
    for pattern in patterns:
        pat = pattern.lower()
        if pat.endswith("/**"):
            dir_pat = pat[:-3]
            if any(fnmatchcase(d, dir_pat) for d in directories):
                return True
            continue
        if fnmatchcase(lowered, pat) or fnmatchcase(name, pat):
            return True
    return False


class RepositorySource:
    """Produce ``SourceFile`` documents for a repository URL.

    Args:
        api_url:         GitHub API base URL.
        max_concurrency: Concurrent blob fetches (1–5).
        timeout:         Per-request timeout in seconds.
        retries:         Attempts per request for transient failures.
        max_file_bytes:  Larger blobs are skipped without being fetched.
        extra_ignore:    Patterns added to DEFAULT_IGNORE_PATTERNS.
        transport:       Optional httpx transport (tests).
    """

    def __init__(
        self,
        *,
        api_url: str = "https://api.github.com",
        max_concurrency: int = 3,
        timeout: float = 30.0,
        retries: int = 3,
        max_file_bytes: int = 1_000_000,
        extra_ignore: list[str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not 1 <= max_concurrency <= MAX_FETCH_CONCURRENCY:
            raise ValueError(
                f"max_concurrency must be between 1 and {MAX_FETCH_CONCURRENCY}"
            )
        self._api_url = api_url
        self._max_concurrency = max_concurrency
        self._timeout = timeout
        self._retries = retries
        self._max_file_bytes = max_file_bytes
        self.ignore_patterns = DEFAULT_IGNORE_PATTERNS + tuple(extra_ignore or ())
        self._transport = transport

    async def load(
        self, github_url: str, branch: str = "main", token: str | None = None
    ) -> list[SourceFile]:
        """Return every non-ignored text file on *branch*, in tree order.

        Raises:
            ValidationError: *github_url* has no owner/repo.
            AuthError: No token available, or the host rejected it.
            NotFoundError: Repository or branch does not exist.
            ForbiddenError: Access refused (permissions, rate limit).
        """
        owner, repo = parse_github_url(github_url)
        token = resolve_github_token(token)
        if not token:
            raise AuthError(
                "A GitHub token is required to load a repository. "
                "Pass one explicitly or set GITHUB_TOKEN."
            )

        async with GitHubClient(
            token,
            api_url=self._api_url,
            timeout=self._timeout,
            retries=self._retries,
            transport=self._transport,
        ) as client:
            tree = await client.get_tree(owner, repo, branch)
            if tree.truncated:
                log.warning("tree_truncated", repo=f"{owner}/{repo}", branch=branch)

            entries = [e for e in tree.tree if self._wanted(e)]
            semaphore = asyncio.Semaphore(self._max_concurrency)
            results = await asyncio.gather(
                *(self._fetch(client, semaphore, owner, repo, e) for e in entries)
            )

        files = [f for f in results if f is not None]
        log.info(
            "repository_loaded",
            repo=f"{owner}/{repo}",
            branch=branch,
            files=len(files),
            skipped=len(entries) - len(files),
        )
        return files

    def _wanted(self, entry: TreeEntry) -> bool:
        if entry.type != "blob" or is_ignored(entry.path, self.ignore_patterns):
            return False
        if entry.size is not None and entry.size > self._max_file_bytes:
            log.info("file_too_large", path=entry.path, size=entry.size)
            return False
        return True

    async def _fetch(
        self,
        client: GitHubClient,
        semaphore: asyncio.Semaphore,
        owner: str,
        repo: str,
        entry: TreeEntry,
    ) -> SourceFile | None:
        async with semaphore:
            try:
                raw = await client.get_blob(owner, repo, entry.sha)
            except RepoDigestError as exc:
                log.warning("file_fetch_failed", path=entry.path, error=str(exc))
                return None
        if b"\x00" in raw:
            log.info("binary_file_skipped", path=entry.path)
            return None
        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError:
            log.info("binary_file_skipped", path=entry.path)
            return None
        return SourceFile(path=entry.path, content=content)
