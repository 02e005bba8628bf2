"""Tests for RepositorySource and the ignore list."""

from __future__ import annotations

import asyncio

import pytest

from repodigest.errors import AuthError, ForbiddenError, NotFoundError, ValidationError
from repodigest.github.client import GitHubClient
from repodigest.ingest.repository_source import (
    DEFAULT_IGNORE_PATTERNS,
    RepositorySource,
    is_ignored,
)

URL = "https://github.com/acme/widgets"


def _source(github, **kwargs) -> RepositorySource:
    kwargs.setdefault("retries", 1)
    return RepositorySource(transport=github.transport(), **kwargs)


# ------------------------------------------------------------------
# is_ignored
# ------------------------------------------------------------------

@pytest.mark.parametrize("path", [
    ".gitignore",
    ".git/config",
    "package-lock.json",
    "web/yarn.lock",
    "poetry.lock",
    "node_modules/react/index.js",
    "packages/app/node_modules/x.js",
    "vendor/lib.go",
    ".DS_Store",
    "docs/.DS_Store",
    "assets/logo.png",
    "assets/LOGO.PNG",
    "docs/manual.pdf",
    "dist/bundle.tar.gz",
    "fonts/inter.woff2",
])
def test_default_ignore_matches(path):
    assert is_ignored(path, DEFAULT_IGNORE_PATTERNS)


@pytest.mark.parametrize("path", [
    "src/app.py",
    "README.md",
    "package.json",
    "src/gitignore_parser.py",
    "src/vendored.py",
])
def test_default_ignore_keeps_source(path):
    assert not is_ignored(path, DEFAULT_IGNORE_PATTERNS)


def test_extra_ignore_patterns(github):
    source = _source(github, extra_ignore=["docs/**", "*.csv"])
    assert is_ignored("docs/guide.md", source.ignore_patterns)
    assert is_ignored("data/rows.csv", source.ignore_patterns)
    assert not is_ignored("src/app.py", source.ignore_patterns)


# ------------------------------------------------------------------
# load
# ------------------------------------------------------------------

@pytest.mark.asyncio
async def test_load_returns_text_files_in_tree_order(github):
    github.files = {
        "README.md": "# Widgets",
        "src/app.py": "print('hi')",
        "package-lock.json": "{}",
        "logo.png": b"\x89PNG\r\n",
    }
    files = await _source(github).load(URL, token="ghp_test")
    assert [(f.path, f.content) for f in files] == [
        ("README.md", "# Widgets"),
        ("src/app.py", "print('hi')"),
    ]
    # ignored files are never fetched
    assert len(github.paths("/git/blobs/" + github._sha("package-lock.json"))) == 0


@pytest.mark.asyncio
async def test_load_uses_branch(github):
    github.files = {"a.py": "x"}
    await _source(github).load(URL, branch="develop", token="t")
    assert github.paths("/git/trees/develop")


@pytest.mark.asyncio
async def test_load_skips_binary_content(github):
    github.files = {"a.py": "x", "blob.dat": b"\x00\x01\x02", "latin1.txt": b"caf\xe9"}
    files = await _source(github).load(URL, token="t")
    assert [f.path for f in files] == ["a.py"]


@pytest.mark.asyncio
async def test_load_skips_files_over_size_limit(github):
    github.files = {"small.py": "x", "huge.json": "y" * 100}
    files = await _source(github, max_file_bytes=50).load(URL, token="t")
    assert [f.path for f in files] == ["small.py"]


@pytest.mark.asyncio
async def test_single_blob_failure_does_not_abort(github):
    github.files = {"a.py": "a", "b.py": "b", "c.py": "c"}
    github.blob_errors = {"b.py": 500}
    files = await _source(github).load(URL, token="t")
    assert [f.path for f in files] == ["a.py", "c.py"]


@pytest.mark.asyncio
async def test_undecodable_blob_content_does_not_abort(github):
    github.files = {"a.py": "a", "b.py": "b", "c.py": "c"}
    github.corrupt_blobs = {"b.py"}
    files = await _source(github).load(URL, token="t")
    assert [f.path for f in files] == ["a.py", "c.py"]
    assert [f.content for f in files] == ["a", "c"]


@pytest.mark.asyncio
async def test_load_truncated_tree_still_returns_files(github):
    github.files = {"a.py": "a"}
    github.truncated = True
    files = await _source(github).load(URL, token="t")
    assert len(files) == 1


@pytest.mark.asyncio
async def test_missing_token_raises_before_any_request(github, monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    github.files = {"a.py": "a"}
    with pytest.raises(AuthError, match="GITHUB_TOKEN"):
        await _source(github).load(URL)
    assert github.requests == []


@pytest.mark.asyncio
async def test_token_from_environment(github, monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_env")
    github.files = {"a.py": "a"}
    await _source(github).load(URL)
    assert github.requests[0].headers["Authorization"] == "Bearer ghp_env"


@pytest.mark.asyncio
@pytest.mark.parametrize("status,error", [
    (401, AuthError),
    (403, ForbiddenError),
    (404, NotFoundError),
])
async def test_tree_failure_aborts_run(github, status, error):
    github.tree_status = status
    with pytest.raises(error):
        await _source(github).load(URL, token="t")


@pytest.mark.asyncio
async def test_invalid_url_fails_fast(github):
    with pytest.raises(ValidationError):
        await _source(github).load("https://github.com/only-owner", token="t")
    assert github.requests == []


@pytest.mark.parametrize("value", [0, 6])
def test_max_concurrency_bounds(value):
    with pytest.raises(ValueError, match="max_concurrency"):
        RepositorySource(max_concurrency=value)


@pytest.mark.asyncio
async def test_blob_fetch_concurrency_is_capped(github, monkeypatch):
    github.files = {f"f{i}.py": str(i) for i in range(12)}
    source = _source(github, max_concurrency=2)

    active = 0
    peak = 0
    original = GitHubClient.get_blob

    async def tracking_get_blob(self, owner, repo, sha):
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        try:
            return await original(self, owner, repo, sha)
        finally:
            active -= 1

    monkeypatch.setattr(GitHubClient, "get_blob", tracking_get_blob)
    files = await source.load(URL, token="t")
    assert len(files) == 12
    assert peak == 2
