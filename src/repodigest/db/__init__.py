"""repodigest database layer."""

from repodigest.db.connection import Database
from repodigest.db.migrations import MIGRATIONS, run_migrations
from repodigest.db.models import Commit, Document, Project
from repodigest.db.repository import Repository
from repodigest.db.store import PersistenceStore, SqliteStore
from repodigest.db.vectors import ensure_vec_table, model_to_slug, vec_table_name

__all__ = [
    "Commit",
    "Database",
    "Document",
    "MIGRATIONS",
    "PersistenceStore",
    "Project",
    "Repository",
    "SqliteStore",
    "ensure_vec_table",
    "model_to_slug",
    "run_migrations",
    "vec_table_name",
]
