"""Shared pytest fixtures."""

from __future__ import annotations

import base64
import hashlib
from functools import partial

import httpx
import pytest

from repodigest.db.connection import Database
from repodigest.db.models import Project
from repodigest.db.repository import Repository
from repodigest.db.store import SqliteStore
from repodigest.ingest.commit_source import CommitSource
from repodigest.ingest.repository_source import RepositorySource

TEST_EMBEDDING_MODEL = "test/embed"
TEST_DIMS = 4
REPO_URL = "https://github.com/acme/widgets"


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with migrations applied, closed after test."""
    db = Database(tmp_path / ".repodigest.db")
    conn = db.open()
    yield conn
    conn.close()


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db)


@pytest.fixture
def store(repo):
    """SqliteStore with 4-dimension vectors and one project 'p1'."""
    repo.add_project(Project(id="p1", name="widgets", github_url=REPO_URL))
    return SqliteStore(repo, TEST_EMBEDDING_MODEL, TEST_DIMS)


class FakeGitHub:
    """In-memory GitHub REST API served through ``httpx.MockTransport``.

    Set ``files``, ``commits`` and ``diffs``; force failures with the
    ``*_status`` / ``*_errors`` attributes. Every request is recorded.
    """

    def __init__(self) -> None:
        self.files: dict[str, str | bytes] = {}
        self.tree_status: int | None = None
        self.truncated = False
        self.blob_errors: dict[str, int] = {}
        self.corrupt_blobs: set[str] = set()
        self.commits: list[dict] = []
        self.commits_status: int | None = None
        self.diffs: dict[str, str] = {}
        self.diff_errors: dict[str, int | Exception] = {}
        self.requests: list[httpx.Request] = []

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def add_commit(
        self,
        sha: str,
        date: str,
        message: str = "change",
        author: str = "Ada",
        avatar: str | None = "https://avatars.example/ada.png",
        diff: str | None = None,
    ) -> None:
        self.commits.append(
            {
                "sha": sha,
                "commit": {"message": message, "author": {"name": author, "date": date}},
                "author": {"avatar_url": avatar} if avatar is not None else None,
            }
        )
        self.diffs[sha] = diff if diff is not None else f"diff --git a/{sha} b/{sha}\n+{sha}\n"

    def paths(self, suffix: str) -> list[str]:
        return [r.url.path for r in self.requests if r.url.path.endswith(suffix)]

    # ------------------------------------------------------------------

    @staticmethod
    def _sha(path: str) -> str:
        return hashlib.sha1(path.encode()).hexdigest()

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = request.url.path.strip("/").split("/")
        # repos/{owner}/{repo}/...
        rest = parts[3:]

        if rest[:2] == ["git", "trees"]:
            if self.tree_status:
                return httpx.Response(self.tree_status, json={"message": "error"})
            tree = [
                {"path": p, "type": "blob", "sha": self._sha(p), "size": len(_bytes(d))}
                for p, d in self.files.items()
            ]
            tree.append({"path": "src", "type": "tree", "sha": "dir"})
            return httpx.Response(
                200, json={"sha": "root", "tree": tree, "truncated": self.truncated}
            )

        if rest[:2] == ["git", "blobs"]:
            by_sha = {self._sha(p): p for p in self.files}
            path = by_sha.get(rest[2])
            if path is None:
                return httpx.Response(404, json={"message": "Not Found"})
            if path in self.blob_errors:
                return httpx.Response(self.blob_errors[path], json={"message": "error"})
            data = _bytes(self.files[path])
            content = base64.b64encode(data).decode("ascii")
            if path in self.corrupt_blobs:
                # three characters can never be valid padded base64
                content = "abc"
            return httpx.Response(
                200,
                json={
                    "sha": rest[2],
                    "content": content,
                    "encoding": "base64",
                    "size": len(data),
                },
            )

        if rest == ["commits"]:
            if self.commits_status:
                return httpx.Response(self.commits_status, json={"message": "error"})
            per_page = int(request.url.params.get("per_page", "30"))
            return httpx.Response(200, json=self.commits[:per_page])

        if len(rest) == 2 and rest[0] == "commits":
            sha = rest[1]
            error = self.diff_errors.get(sha)
            if isinstance(error, Exception):
                raise error
            if error:
                return httpx.Response(error, json={"message": "error"})
            if sha not in self.diffs:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, text=self.diffs[sha])

        return httpx.Response(404, json={"message": "Not Found"})


def _bytes(data: str | bytes) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else data


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def cli_env(tmp_path, monkeypatch, github):
    """Run CLI commands in tmp_path against FakeGitHub with 4-dim embeddings.

    Sources built by the CLI get the fake transport; litellm calls still
    need patching in the test.
    """
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("repodigest.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml")
    for var in ("REPODIGEST_SUMMARY_MODEL", "REPODIGEST_EMBEDDING_MODEL", "REPODIGEST_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")
    (tmp_path / "repodigest.yaml").write_text(
        "embedding:\n  dimensions: 4\ngithub:\n  retries: 1\nlogging:\n  level: WARNING\n",
        encoding="utf-8",
    )
    monkeypatch.setattr(
        "repodigest.cli.runtime.RepositorySource",
        partial(RepositorySource, transport=github.transport()),
    )
    monkeypatch.setattr(
        "repodigest.cli.runtime.CommitSource",
        partial(CommitSource, transport=github.transport()),
    )
    return tmp_path
