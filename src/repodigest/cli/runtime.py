"""Shared CLI plumbing: config, logging, database and pipeline wiring."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console

from repodigest.cli.errors import (
    err_config,
    err_no_api_key,
    err_project_deleted,
    err_project_not_found,
    message_for,
)
from repodigest.config import ConfigError, RepoDigestConfig, load_config
from repodigest.db.connection import Database
from repodigest.db.models import Project
from repodigest.db.repository import Repository
from repodigest.db.store import SqliteStore
from repodigest.ingest.commit_source import CommitSource
from repodigest.ingest.commit_tracker import CommitTracker
from repodigest.ingest.coordinator import IngestionCoordinator
from repodigest.ingest.embedder import Embedder
from repodigest.ingest.repository_source import RepositorySource
from repodigest.ingest.summarizer import Summarizer
from repodigest.logger import configure_logging
from repodigest.rag.llm_client import validate_api_key
from repodigest.rag.retriever import Retriever

console = Console()

DEFAULT_DB = Path(".repodigest.db")

# Set by the --verbose callback in main.py.
state = {"verbose": False}


def load_runtime_config() -> RepoDigestConfig:
    """Load config and configure logging; exit 1 on invalid config."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)
    configure_logging("DEBUG" if state["verbose"] else cfg.logging.level)
    return cfg


def require_api_keys(*models: str) -> None:
    for model in models:
        try:
            validate_api_key(model)
        except EnvironmentError:
            provider = model.split("/")[0] if "/" in model else "openai"
            console.print(err_no_api_key(provider))
            raise typer.Exit(1)


def open_db(db_path: Path) -> sqlite3.Connection:
    return Database(db_path).open()


def open_store(conn: sqlite3.Connection, cfg: RepoDigestConfig) -> SqliteStore:
    return SqliteStore(Repository(conn), cfg.embedding.model, cfg.embedding.dimensions)


def fail(exc: Exception) -> NoReturn:
    """Print the actionable message for a whole-run failure and exit 1."""
    console.print(message_for(exc))
    raise typer.Exit(1)


# ------------------------------------------------------------------
# Pipeline wiring
# ------------------------------------------------------------------


def build_summarizer(cfg: RepoDigestConfig) -> Summarizer:
    s = cfg.summarizer
    return Summarizer(
        model=s.model,
        max_tokens=s.max_tokens,
        code_max_chars=s.code_max_chars,
        diff_max_chars=s.diff_max_chars,
    )


def build_embedder(cfg: RepoDigestConfig) -> Embedder:
    return Embedder(model=cfg.embedding.model, dimensions=cfg.embedding.dimensions)


def build_coordinator(cfg: RepoDigestConfig, store: SqliteStore) -> IngestionCoordinator:
    g = cfg.github
    source = RepositorySource(
        api_url=g.api_url,
        max_concurrency=g.max_concurrency,
        timeout=g.request_timeout,
        retries=g.retries,
        max_file_bytes=g.max_file_bytes,
        extra_ignore=g.ignore,
    )
    return IngestionCoordinator(
        store, source, build_summarizer(cfg), build_embedder(cfg), branch=g.branch
    )


def build_tracker(cfg: RepoDigestConfig, store: SqliteStore) -> CommitTracker:
    g = cfg.github
    source = CommitSource(
        api_url=g.api_url,
        timeout=g.request_timeout,
        diff_timeout=g.diff_timeout,
        retries=g.retries,
    )
    return CommitTracker(store, source, build_summarizer(cfg), limit=g.commit_limit)


def build_retriever(cfg: RepoDigestConfig, store: SqliteStore) -> Retriever:
    return Retriever(store, build_embedder(cfg))


def require_live_project(store: SqliteStore, project_id: str) -> Project:
    """Return the project, or exit 1 if it is unknown or soft-deleted."""
    project = store.repository.get_project(project_id)
    if project is None:
        console.print(err_project_not_found(project_id))
        raise typer.Exit(1)
    if project.is_deleted:
        console.print(err_project_deleted(project_id))
        raise typer.Exit(1)
    return project
