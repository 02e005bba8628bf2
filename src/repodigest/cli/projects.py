"""repodigest add / projects / remove — project lifecycle.

``add`` is the creation flow: the project row is written first, then one
ingestion run and one commit poll follow. A failed ingestion leaves the
project in place so ``repodigest ingest`` can be re-run later.

``remove`` is a soft delete: documents and commits stay in the database.
"""

from __future__ import annotations

import asyncio
import uuid
from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from repodigest.cli.commits import print_poll_result
from repodigest.cli.errors import err_no_db, err_project_not_found, message_for
from repodigest.cli.ingest import print_ingest_result, run_ingest
from repodigest.cli.runtime import (
    DEFAULT_DB,
    build_coordinator,
    build_tracker,
    console,
    fail,
    load_runtime_config,
    open_db,
    open_store,
    require_api_keys,
)
from repodigest.db.models import Project
from repodigest.errors import RepoDigestError, ValidationError
from repodigest.github.client import parse_github_url

_DbOption = Annotated[Path, typer.Option("--db", help="Path to .repodigest.db (created if missing).")]


def add_cmd(
    url: Annotated[str, typer.Argument(help="GitHub repository URL.")],
    name: Annotated[
        str | None,
        typer.Option("--name", "-n", help="Project name (default: repository name)."),
    ] = None,
    token: Annotated[
        str | None,
        typer.Option("--token", help="GitHub token stored with the project (default: $GITHUB_TOKEN)."),
    ] = None,
    branch: Annotated[
        str | None,
        typer.Option("--branch", "-b", help="Branch to ingest (default: github.branch from config)."),
    ] = None,
    skip_poll: Annotated[
        bool,
        typer.Option("--skip-poll", help="Do not summarize recent commits after ingesting."),
    ] = False,
    db: _DbOption = DEFAULT_DB,
) -> None:
    """Create a project, ingest its repository and summarize recent commits."""
    cfg = load_runtime_config()
    require_api_keys(cfg.summarizer.model, cfg.embedding.model)
    if branch:
        cfg.github.branch = branch

    try:
        _, repo_name = parse_github_url(url)
    except ValidationError as exc:
        fail(exc)

    project = Project(
        id=str(uuid.uuid4()),
        name=name or repo_name,
        github_url=url.strip(),
        github_token=token,
    )

    conn = open_db(db)
    try:
        store = open_store(conn, cfg)
        store.repository.add_project(project)
        console.print(f"[green]✓[/] Project [bold]{escape(project.name)}[/] created: {project.id}")

        try:
            result = run_ingest(build_coordinator(cfg, store), project, token)
        except RepoDigestError as exc:
            console.print(message_for(exc))
            console.print(
                "  The project was kept. Fix the problem, then run:\n"
                f"    repodigest ingest {project.id}"
            )
            raise typer.Exit(1)
        print_ingest_result(result)

        if skip_poll:
            return
        try:
            rows = asyncio.run(build_tracker(cfg, store).poll(project.id))
        except RepoDigestError as exc:
            fail(exc)
        print_poll_result(rows)
    finally:
        conn.close()


def projects_cmd(
    all_: Annotated[
        bool,
        typer.Option("--all", help="Include removed projects."),
    ] = False,
    db: _DbOption = DEFAULT_DB,
) -> None:
    """List projects with their document and commit counts."""
    if not db.exists():
        console.print(err_no_db(str(db)))
        raise typer.Exit(1)

    cfg = load_runtime_config()
    conn = open_db(db)
    try:
        repo = open_store(conn, cfg).repository
        projects = repo.list_projects(include_deleted=all_)
        if not projects:
            console.print("[dim]No projects. Run:  repodigest add <github-url>[/]")
            return

        table = Table(show_header=True, header_style="bold")
        table.add_column("ID")
        table.add_column("Name")
        table.add_column("Repository")
        table.add_column("Documents", justify="right")
        table.add_column("Commits", justify="right")
        if all_:
            table.add_column("Removed")
        for p in projects:
            row = [
                p.id,
                escape(p.name),
                p.github_url,
                str(repo.count_documents(p.id)),
                str(len(repo.list_commit_hashes(p.id))),
            ]
            if all_:
                row.append(p.deleted_at or "")
            table.add_row(*row)
        console.print(table)
    finally:
        conn.close()


def remove_cmd(
    project_id: Annotated[str, typer.Argument(help="Project id to remove.")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    db: _DbOption = DEFAULT_DB,
) -> None:
    """Remove a project from listings. Its documents and commits are kept."""
    if not db.exists():
        console.print(err_no_db(str(db)))
        raise typer.Exit(1)

    cfg = load_runtime_config()
    conn = open_db(db)
    try:
        repo = open_store(conn, cfg).repository
        project = repo.get_project(project_id)
        if project is None or project.is_deleted:
            console.print(err_project_not_found(project_id))
            raise typer.Exit(1)

        console.print(f"\nRemove project: [bold]{escape(project.name)}[/] ({project.github_url})")
        if not yes:
            if not typer.confirm("Confirm removal?", default=False):
                console.print("[dim]Cancelled.[/]")
                raise typer.Exit(0)

        repo.soft_delete_project(project_id)
        console.print(f"[green]✓[/] Removed: {escape(project.name)}")
        console.print("  [dim]Documents and commits are kept in the database.[/]")
    finally:
        conn.close()
