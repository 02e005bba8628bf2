"""Domain models for the repodigest database layer."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Project:
    id: str
    name: str
    github_url: str
    github_token: str | None = None
    created_at: str | None = None
    deleted_at: str | None = None  # soft delete marker

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


@dataclass
class Document:
    """One ingested repository file.

    An empty ``embedding`` means no vector is available for this row; it is
    a sentinel, not an error.
    """

    project_id: str
    file_name: str
    source_code: str
    summary: str
    embedding: list[float] = field(default_factory=list)
    id: int | None = None  # set after insert
    created_at: str | None = None


@dataclass
class Commit:
    id: str
    project_id: str
    commit_hash: str
    commit_message: str
    commit_author_name: str
    commit_author_avatar: str
    commit_date: str
    summary: str
    created_at: str | None = None
