"""Persistence interface consumed by the pipelines, and its SQLite adapter.

The coordinators receive a ``PersistenceStore`` at construction instead of
reaching for a shared database handle. ``SqliteStore`` implements it on top of
``Repository``; every sqlite3 failure surfaces as ``PersistenceError``.
"""

from __future__ import annotations

import sqlite3
from typing import Protocol

from repodigest.db.models import Commit, Document
from repodigest.db.repository import Repository
from repodigest.db.vectors import ensure_vec_table, model_to_slug
from repodigest.errors import NotFoundError, PersistenceError


class PersistenceStore(Protocol):
    """Durable store keyed by project id."""

    async def create_document(
        self, project_id: str, file_name: str, source_code: str, summary: str
    ) -> int: ...

    async def update_document_embedding(self, document_id: int, vector: list[float]) -> None: ...

    async def list_commit_hashes(self, project_id: str) -> list[str]: ...

    async def bulk_insert_commits(self, rows: list[Commit]) -> int: ...

    async def find_project_github_url(self, project_id: str) -> str: ...

    async def find_project_github_token(self, project_id: str) -> str | None: ...

    async def search_documents(
        self, project_id: str, vector: list[float], limit: int = 10
    ) -> list[tuple[Document, float]]: ...


class SqliteStore:
    """``PersistenceStore`` backed by a local SQLite + sqlite-vec database.

    sqlite3 calls are short and run inline on the event loop thread, so the
    connection is only ever touched from one thread.

    Args:
        repo:            Repository over an initialised connection.
        embedding_model: LiteLLM embedding model; selects the vec table.
        dimensions:      Vector length of that model.
    """

    def __init__(self, repo: Repository, embedding_model: str, dimensions: int) -> None:
        self._repo = repo
        self._dimensions = dimensions
        self.vec_table = ensure_vec_table(
            repo.conn, model_to_slug(embedding_model), dimensions
        )

    @property
    def repository(self) -> Repository:
        return self._repo

    async def create_document(
        self, project_id: str, file_name: str, source_code: str, summary: str
    ) -> int:
        try:
            return self._repo.add_document(
                Document(
                    project_id=project_id,
                    file_name=file_name,
                    source_code=source_code,
                    summary=summary,
                )
            )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to insert document '{file_name}': {exc}") from exc

    async def update_document_embedding(self, document_id: int, vector: list[float]) -> None:
        if len(vector) != self._dimensions:
            raise PersistenceError(
                f"Embedding for document {document_id} has {len(vector)} dimensions, "
                f"expected {self._dimensions}"
            )
        try:
            self._repo.set_embedding(self.vec_table, document_id, vector)
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Failed to store embedding for document {document_id}: {exc}"
            ) from exc

    async def list_commit_hashes(self, project_id: str) -> list[str]:
        try:
            return self._repo.list_commit_hashes(project_id)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to read commit hashes: {exc}") from exc

    async def bulk_insert_commits(self, rows: list[Commit]) -> int:
        try:
            return self._repo.add_commits(rows)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to insert {len(rows)} commits: {exc}") from exc

    async def find_project_github_url(self, project_id: str) -> str:
        try:
            url = self._repo.find_project_github_url(project_id)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to read project '{project_id}': {exc}") from exc
        if not url:
            raise NotFoundError(f"Project '{project_id}' not found or has no GitHub URL")
        return url

    async def find_project_github_token(self, project_id: str) -> str | None:
        try:
            return self._repo.find_project_github_token(project_id)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to read project '{project_id}': {exc}") from exc

    async def search_documents(
        self, project_id: str, vector: list[float], limit: int = 10
    ) -> list[tuple[Document, float]]:
        try:
            return self._repo.search_documents(self.vec_table, project_id, vector, limit)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Vector search failed: {exc}") from exc
