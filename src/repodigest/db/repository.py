"""Repository pattern for all repodigest database operations.

Single interface for: projects, documents, document embeddings (sqlite-vec),
and commits. Vec tables are model-managed (ensure_vec_table); the repository
handles read + write.
"""

from __future__ import annotations

import json
import sqlite3

from repodigest.db.models import Commit, Document, Project

_DOCUMENT_COLUMNS = "id, project_id, file_name, source_code, summary, created_at"
_COMMIT_COLUMNS = (
    "id, project_id, commit_hash, commit_message, commit_author_name, "
    "commit_author_avatar, commit_date, summary, created_at"
)


class Repository:
    """Data access layer for all repodigest database entities.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use. Every write commits immediately, so each
    row is its own unit of atomicity.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with sqlite-vec loaded and schema
                migrated (see Database.open).
        """
        self._conn = conn

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def add_project(self, project: Project) -> None:
        self._conn.execute(
            """
            INSERT INTO projects (id, name, github_url, github_token)
            VALUES (?, ?, ?, ?)
            """,
            (project.id, project.name, project.github_url, project.github_token),
        )
        self._conn.commit()

    def get_project(self, project_id: str) -> Project | None:
        """Return a project by ID (soft-deleted included), or None if not found."""
        row = self._conn.execute(
            "SELECT id, name, github_url, github_token, created_at, deleted_at "
            "FROM projects WHERE id = ?",
            (project_id,),
        ).fetchone()
        return _row_to_project(row) if row else None

    def list_projects(self, include_deleted: bool = False) -> list[Project]:
        """Return projects ordered by creation time (oldest first).

        Soft-deleted projects are excluded unless *include_deleted* is set.
        """
        sql = (
            "SELECT id, name, github_url, github_token, created_at, deleted_at "
            "FROM projects"
        )
        if not include_deleted:
            sql += " WHERE deleted_at IS NULL"
        sql += " ORDER BY created_at, rowid"
        return [_row_to_project(r) for r in self._conn.execute(sql).fetchall()]

    def soft_delete_project(self, project_id: str) -> bool:
        """Mark a project deleted. Documents and commits are kept.

        Returns:
            True if a live project was marked, False if it was missing or
            already deleted.
        """
        cur = self._conn.execute(
            "UPDATE projects SET deleted_at = datetime('now') "
            "WHERE id = ? AND deleted_at IS NULL",
            (project_id,),
        )
        self._conn.commit()
        return cur.rowcount > 0

    def find_project_github_url(self, project_id: str) -> str | None:
        row = self._conn.execute(
            "SELECT github_url FROM projects WHERE id = ?", (project_id,)
        ).fetchone()
        return row["github_url"] if row and row["github_url"] else None

    def find_project_github_token(self, project_id: str) -> str | None:
        row = self._conn.execute(
            "SELECT github_token FROM projects WHERE id = ?", (project_id,)
        ).fetchone()
        return row["github_token"] if row and row["github_token"] else None

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def add_document(self, document: Document) -> int:
        """Insert a document row without its embedding. Returns the new id."""
        cur = self._conn.execute(
            """
            INSERT INTO documents (project_id, file_name, source_code, summary)
            VALUES (?, ?, ?, ?)
            """,
            (
                document.project_id,
                document.file_name,
                document.source_code,
                document.summary,
            ),
        )
        self._conn.commit()
        return cur.lastrowid

    def get_document(self, document_id: int, vec_table: str | None = None) -> Document | None:
        """Return a document by id, with its embedding if *vec_table* is given.

        Args:
            document_id: Row id returned by add_document().
            vec_table: Vec table to read the embedding from. When omitted, or
                when the document has no vector, ``embedding`` is empty.
        """
        row = self._conn.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ?", (document_id,)
        ).fetchone()
        if row is None:
            return None
        doc = _row_to_document(row)
        if vec_table is not None:
            doc.embedding = self.get_embedding(vec_table, document_id)
        return doc

    def list_documents(self, project_id: str, vec_table: str | None = None) -> list[Document]:
        """Return all documents of *project_id* in insertion order."""
        rows = self._conn.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE project_id = ? ORDER BY id",
            (project_id,),
        ).fetchall()
        docs = [_row_to_document(r) for r in rows]
        if vec_table is not None:
            for doc in docs:
                doc.embedding = self.get_embedding(vec_table, doc.id)
        return docs

    def count_documents(self, project_id: str) -> int:
        return self._conn.execute(
            "SELECT COUNT(*) FROM documents WHERE project_id = ?", (project_id,)
        ).fetchone()[0]

    # ------------------------------------------------------------------
    # Vec embeddings
    # ------------------------------------------------------------------

    def set_embedding(self, table: str, document_id: int, embedding: list[float]) -> None:
        """Write the embedding for *document_id* (rowid = document id)."""
        self._conn.execute(f"DELETE FROM {table} WHERE rowid = ?", (document_id,))
        self._conn.execute(
            f"INSERT INTO {table}(rowid, embedding) VALUES (?, ?)",
            (document_id, json.dumps(embedding)),
        )
        self._conn.commit()

    def get_embedding(self, table: str, document_id: int) -> list[float]:
        """Return the stored vector for *document_id*, or [] if none exists."""
        row = self._conn.execute(
            f"SELECT vec_to_json(embedding) AS embedding FROM {table} WHERE rowid = ?",
            (document_id,),
        ).fetchone()
        return json.loads(row["embedding"]) if row else []

    def search_documents(
        self, table: str, project_id: str, embedding: list[float], limit: int = 10
    ) -> list[tuple[Document, float]]:
        """Cosine nearest-neighbour search within one project.

        Returns (document, distance) pairs sorted by ascending distance.
        Documents without an embedding never match.
        """
        rows = self._conn.execute(
            f"""
            SELECT d.id, d.project_id, d.file_name, d.source_code, d.summary, d.created_at,
                   vec_distance_cosine(v.embedding, ?) AS distance
            FROM documents d
            JOIN {table} v ON v.rowid = d.id
            WHERE d.project_id = ?
            ORDER BY distance
            LIMIT ?
            """,
            (json.dumps(embedding), project_id, limit),
        ).fetchall()
        return [(_row_to_document(r), r["distance"]) for r in rows]

    # ------------------------------------------------------------------
    # Commits
    # ------------------------------------------------------------------

    def list_commit_hashes(self, project_id: str) -> list[str]:
        return [
            r["commit_hash"]
            for r in self._conn.execute(
                "SELECT commit_hash FROM commits WHERE project_id = ?", (project_id,)
            ).fetchall()
        ]

    def add_commits(self, commits: list[Commit]) -> int:
        """Insert all *commits* in one transaction, preserving list order.

        Returns:
            Number of rows inserted.
        """
        if not commits:
            return 0
        with self._conn:
            self._conn.executemany(
                """
                INSERT INTO commits (
                    id, project_id, commit_hash, commit_message, commit_author_name,
                    commit_author_avatar, commit_date, summary
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        c.id,
                        c.project_id,
                        c.commit_hash,
                        c.commit_message,
                        c.commit_author_name,
                        c.commit_author_avatar,
                        c.commit_date,
                        c.summary,
                    )
                    for c in commits
                ],
            )
        return len(commits)

    def list_commits(self, project_id: str) -> list[Commit]:
        """Return the project's commits, newest commit_date first."""
        rows = self._conn.execute(
            f"SELECT {_COMMIT_COLUMNS} FROM commits WHERE project_id = ? "
            "ORDER BY commit_date DESC, rowid",
            (project_id,),
        ).fetchall()
        return [_row_to_commit(r) for r in rows]


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

def _row_to_project(row: sqlite3.Row) -> Project:
    return Project(
        id=row["id"],
        name=row["name"],
        github_url=row["github_url"],
        github_token=row["github_token"],
        created_at=row["created_at"],
        deleted_at=row["deleted_at"],
    )


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        project_id=row["project_id"],
        file_name=row["file_name"],
        source_code=row["source_code"],
        summary=row["summary"],
        created_at=row["created_at"],
    )


def _row_to_commit(row: sqlite3.Row) -> Commit:
    return Commit(
        id=row["id"],
        project_id=row["project_id"],
        commit_hash=row["commit_hash"],
        commit_message=row["commit_message"],
        commit_author_name=row["commit_author_name"],
        commit_author_avatar=row["commit_author_avatar"],
        commit_date=row["commit_date"],
        summary=row["summary"],
        created_at=row["created_at"],
    )
