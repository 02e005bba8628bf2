"""repodigest ingest — summarize and embed every file of a project's repository.

Usage:
  repodigest ingest <project-id>
  repodigest ingest <project-id> --token ghp_...

A run that loads the repository always exits 0, even when some files failed;
the tally shows how many. Only whole-run failures (auth, missing repository,
rate limiting) exit 1.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from repodigest.cli.errors import err_no_db
from repodigest.cli.runtime import (
    DEFAULT_DB,
    build_coordinator,
    console,
    fail,
    load_runtime_config,
    open_db,
    open_store,
    require_api_keys,
    require_live_project,
)
from repodigest.db.models import Project
from repodigest.errors import RepoDigestError
from repodigest.ingest.coordinator import IngestionCoordinator, IngestResult


def ingest_cmd(
    project_id: Annotated[str, typer.Argument(help="Project id (see: repodigest projects).")],
    token: Annotated[
        str | None,
        typer.Option("--token", help="GitHub token (default: stored project token, then $GITHUB_TOKEN)."),
    ] = None,
    branch: Annotated[
        str | None,
        typer.Option("--branch", "-b", help="Branch to ingest (default: github.branch from config)."),
    ] = None,
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .repodigest.db."),
    ] = DEFAULT_DB,
) -> None:
    """Ingest the repository of an existing project."""
    cfg = load_runtime_config()
    require_api_keys(cfg.summarizer.model, cfg.embedding.model)
    if branch:
        cfg.github.branch = branch

    if not db.exists():
        console.print(err_no_db(str(db)))
        raise typer.Exit(1)

    conn = open_db(db)
    try:
        store = open_store(conn, cfg)
        project = require_live_project(store, project_id)
        try:
            result = run_ingest(build_coordinator(cfg, store), project, token)
        except RepoDigestError as exc:
            fail(exc)
    finally:
        conn.close()

    print_ingest_result(result)


def run_ingest(
    coordinator: IngestionCoordinator, project: Project, token: str | None = None
) -> IngestResult:
    """Run one ingestion with a spinner. Whole-run errors propagate."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
        console=console,
    ) as prog:
        prog.add_task(f"Ingesting {project.github_url}…", total=None)
        return asyncio.run(
            coordinator.ingest(
                project.id, project.github_url, token=token or project.github_token
            )
        )


def print_ingest_result(result: IngestResult) -> None:
    console.print(
        f"[green]✓[/] {result.succeeded} documents stored"
        + (
            f"  [yellow]({result.without_embedding} without embedding)[/]"
            if result.without_embedding
            else ""
        )
    )
    if result.failed:
        console.print(f"[yellow]✗[/] {result.failed} files failed:")
        for path, error in sorted(result.failures.items()):
            console.print(f"    {escape(path)}: [dim]{escape(error)}[/]")
