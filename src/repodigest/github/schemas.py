"""Pydantic models for the GitHub REST payloads the pipelines consume.

Only the fields actually read are declared; everything else in the payload
is ignored. Responses are validated here, at the boundary, so downstream
code never handles untyped dicts.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, TypeAdapter


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class TreeEntry(_Payload):
    path: str
    type: str  # blob | tree | commit (submodule)
    sha: str
    size: int | None = None


class TreeResponse(_Payload):
    sha: str
    tree: list[TreeEntry]
    truncated: bool = False


class BlobResponse(_Payload):
    sha: str
    content: str
    encoding: str = "base64"
    size: int | None = None


class GitActor(_Payload):
    name: str = ""
    date: datetime


class GitCommit(_Payload):
    message: str = ""
    author: GitActor


class GitHubUser(_Payload):
    avatar_url: str = ""


class CommitResponse(_Payload):
    sha: str
    commit: GitCommit
    # null when the commit email is not linked to a GitHub account
    author: GitHubUser | None = None

    @property
    def authored_at(self) -> datetime:
        dt = self.commit.author.date
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)


CommitList = TypeAdapter(list[CommitResponse])
