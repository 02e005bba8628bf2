"""Tests for CommitSource."""

from __future__ import annotations

import httpx
import pytest

from repodigest.errors import ForbiddenError, NotFoundError, ValidationError
from repodigest.github.client import DIFF_MEDIA_TYPE
from repodigest.ingest.commit_source import CommitSource, DiffFailure
from repodigest.ingest.summarizer import Sentinel

URL = "https://github.com/acme/widgets"


def _source(github, **kwargs) -> CommitSource:
    kwargs.setdefault("retries", 1)
    return CommitSource("ghp_test", transport=github.transport(), **kwargs)


# ------------------------------------------------------------------
# latest_commits
# ------------------------------------------------------------------

@pytest.mark.asyncio
async def test_latest_commits_maps_fields(github):
    github.add_commit(
        "abc123",
        "2024-05-01T10:00:00Z",
        message="Fix parser\n\nLonger body",
        author="Grace",
        avatar="https://avatars.example/grace.png",
    )
    [info] = await _source(github).latest_commits(URL)
    assert info.commit_hash == "abc123"
    assert info.commit_message == "Fix parser\n\nLonger body"
    assert info.commit_author_name == "Grace"
    assert info.commit_author_avatar == "https://avatars.example/grace.png"
    assert info.commit_date == "2024-05-01T10:00:00Z"


@pytest.mark.asyncio
async def test_latest_commits_sorted_newest_first(github):
    github.add_commit("old", "2024-01-01T00:00:00Z")
    github.add_commit("new", "2024-03-01T00:00:00Z")
    github.add_commit("mid", "2024-02-01T00:00:00Z")
    infos = await _source(github).latest_commits(URL)
    assert [i.commit_hash for i in infos] == ["new", "mid", "old"]


@pytest.mark.asyncio
async def test_latest_commits_ties_broken_by_hash(github):
    github.add_commit("bbb", "2024-01-01T00:00:00Z")
    github.add_commit("aaa", "2024-01-01T00:00:00Z")
    github.add_commit("ccc", "2024-01-01T00:00:00Z")
    infos = await _source(github).latest_commits(URL)
    assert [i.commit_hash for i in infos] == ["aaa", "bbb", "ccc"]


@pytest.mark.asyncio
async def test_latest_commits_normalizes_timezone(github):
    github.add_commit("tz", "2024-05-01T12:30:00+02:00")
    [info] = await _source(github).latest_commits(URL)
    assert info.commit_date == "2024-05-01T10:30:00Z"


@pytest.mark.asyncio
async def test_latest_commits_respects_limit(github):
    for i in range(15):
        github.add_commit(f"c{i:02d}", f"2024-01-{i + 1:02d}T00:00:00Z")
    infos = await _source(github).latest_commits(URL, limit=10)
    assert len(infos) == 10
    assert github.requests[0].url.params["per_page"] == "30"


@pytest.mark.asyncio
async def test_latest_commits_sorts_full_page_before_limit(github):
    # listed oldest first: the newest commits sit past the first 10 entries
    for i in range(15):
        github.add_commit(f"c{i:02d}", f"2024-01-{i + 1:02d}T00:00:00Z")
    infos = await _source(github).latest_commits(URL, limit=10)
    assert [i.commit_hash for i in infos] == [f"c{i:02d}" for i in range(14, 4, -1)]


@pytest.mark.asyncio
async def test_latest_commits_large_limit_widens_page(github):
    await _source(github).latest_commits(URL, limit=50)
    assert github.requests[0].url.params["per_page"] == "50"


@pytest.mark.asyncio
async def test_latest_commits_null_author_has_empty_avatar(github):
    github.add_commit("abc", "2024-01-01T00:00:00Z", avatar=None)
    [info] = await _source(github).latest_commits(URL)
    assert info.commit_author_avatar == ""


@pytest.mark.asyncio
async def test_latest_commits_invalid_url(github):
    with pytest.raises(ValidationError):
        await _source(github).latest_commits("https://github.com/acme")
    assert github.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize("status,error", [(404, NotFoundError), (403, ForbiddenError)])
async def test_latest_commits_whole_run_errors(github, status, error):
    github.commits_status = status
    with pytest.raises(error):
        await _source(github).latest_commits(URL)


@pytest.mark.asyncio
async def test_public_repo_without_token(github, monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    github.add_commit("abc", "2024-01-01T00:00:00Z")
    source = CommitSource(None, transport=github.transport(), retries=1)
    assert len(await source.latest_commits(URL)) == 1
    assert "Authorization" not in github.requests[0].headers


# ------------------------------------------------------------------
# fetch_diff
# ------------------------------------------------------------------

@pytest.mark.asyncio
async def test_fetch_diff_returns_text(github):
    github.add_commit("abc", "2024-01-01T00:00:00Z", diff="diff --git a/x b/x\n+1\n")
    result = await _source(github).fetch_diff(URL, "abc")
    assert result.ok
    assert result.text == "diff --git a/x b/x\n+1\n"
    assert github.requests[0].headers["Accept"] == DIFF_MEDIA_TYPE


@pytest.mark.asyncio
@pytest.mark.parametrize("status,failure", [
    (404, DiffFailure.NOT_FOUND),
    (403, DiffFailure.FORBIDDEN),
    (500, DiffFailure.NETWORK),
])
async def test_fetch_diff_http_failures(github, status, failure):
    github.diff_errors["abc"] = status
    result = await _source(github).fetch_diff(URL, "abc")
    assert not result.ok
    assert result.failure is failure
    assert result.text == ""


@pytest.mark.asyncio
async def test_fetch_diff_timeout(github):
    github.diff_errors["abc"] = httpx.ReadTimeout("slow")
    result = await _source(github, diff_timeout=0.5).fetch_diff(URL, "abc")
    assert result.failure is DiffFailure.TIMEOUT


@pytest.mark.asyncio
async def test_fetch_diff_connection_error(github):
    github.diff_errors["abc"] = httpx.ConnectError("refused")
    result = await _source(github).fetch_diff(URL, "abc")
    assert result.failure is DiffFailure.NETWORK


@pytest.mark.parametrize("failure,sentinel", [
    (DiffFailure.NOT_FOUND, Sentinel.DIFF_NOT_FOUND),
    (DiffFailure.FORBIDDEN, Sentinel.DIFF_FORBIDDEN),
    (DiffFailure.TIMEOUT, Sentinel.DIFF_TIMEOUT),
    (DiffFailure.NETWORK, Sentinel.DIFF_NETWORK),
])
def test_each_failure_has_distinct_sentinel(failure, sentinel):
    assert failure.sentinel is sentinel


def test_sentinels_are_distinct():
    values = [s.value for s in Sentinel]
    assert len(values) == len(set(values))
