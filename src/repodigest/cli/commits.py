"""repodigest poll / watch / commits — incremental commit summaries.

  poll     one poll of one project
  watch    poll every live project on a fixed interval, one project at a time
  commits  list stored commit summaries (read-only, never polls)
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from repodigest.cli.errors import err_no_db, err_project_not_found
from repodigest.cli.runtime import (
    DEFAULT_DB,
    build_tracker,
    console,
    fail,
    load_runtime_config,
    open_db,
    open_store,
    require_api_keys,
    require_live_project,
)
from repodigest.db.models import Commit
from repodigest.db.store import SqliteStore
from repodigest.errors import RepoDigestError
from repodigest.ingest.commit_tracker import CommitTracker
from repodigest.logger import get_logger

log = get_logger(__name__)

_DbOption = Annotated[Path, typer.Option("--db", help="Path to .repodigest.db.")]


def poll_cmd(
    project_id: Annotated[str, typer.Argument(help="Project id (see: repodigest projects).")],
    db: _DbOption = DEFAULT_DB,
) -> None:
    """Summarize commits not seen before for one project."""
    cfg = load_runtime_config()
    require_api_keys(cfg.summarizer.model)

    if not db.exists():
        console.print(err_no_db(str(db)))
        raise typer.Exit(1)

    conn = open_db(db)
    try:
        store = open_store(conn, cfg)
        require_live_project(store, project_id)
        try:
            rows = asyncio.run(build_tracker(cfg, store).poll(project_id))
        except RepoDigestError as exc:
            fail(exc)
    finally:
        conn.close()

    print_poll_result(rows)


def watch_cmd(
    interval: Annotated[
        float,
        typer.Option("--interval", "-i", min=1.0, help="Seconds between polling rounds."),
    ] = 300.0,
    rounds: Annotated[
        int,
        typer.Option("--rounds", hidden=True, help="Stop after N rounds (0 = forever)."),
    ] = 0,
    db: _DbOption = DEFAULT_DB,
) -> None:
    """Poll every project repeatedly. Stop with Ctrl+C."""
    cfg = load_runtime_config()
    require_api_keys(cfg.summarizer.model)

    if not db.exists():
        console.print(err_no_db(str(db)))
        raise typer.Exit(1)

    conn = open_db(db)
    try:
        store = open_store(conn, cfg)
        tracker = build_tracker(cfg, store)
        asyncio.run(_watch(store, tracker, interval, rounds))
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/]")
    finally:
        conn.close()


async def _watch(
    store: SqliteStore, tracker: CommitTracker, interval: float, rounds: int
) -> None:
    completed = 0
    while True:
        for project in store.repository.list_projects():
            try:
                rows = await tracker.poll(project.id)
            except RepoDigestError as exc:
                # one broken project must not stop the others
                log.warning("watch_poll_failed", project_id=project.id, error=str(exc))
                console.print(f"[yellow]✗[/] {project.name}: {exc}")
                continue
            if rows:
                console.print(f"[green]✓[/] {project.name}: {len(rows)} new commits")
        completed += 1
        if rounds and completed >= rounds:
            return
        await asyncio.sleep(interval)


def commits_cmd(
    project_id: Annotated[str, typer.Argument(help="Project id (see: repodigest projects).")],
    db: _DbOption = DEFAULT_DB,
) -> None:
    """List stored commit summaries, newest first."""
    if not db.exists():
        console.print(err_no_db(str(db)))
        raise typer.Exit(1)

    cfg = load_runtime_config()
    conn = open_db(db)
    try:
        repo = open_store(conn, cfg).repository
        if repo.get_project(project_id) is None:
            console.print(err_project_not_found(project_id))
            raise typer.Exit(1)
        commits = repo.list_commits(project_id)
    finally:
        conn.close()

    if not commits:
        console.print(f"[dim]No commits stored yet. Run:  repodigest poll {project_id}[/]")
        return
    console.print(_commit_table(commits))


def print_poll_result(rows: list[Commit]) -> None:
    if not rows:
        console.print("[dim]No new commits.[/]")
        return
    console.print(f"[green]✓[/] {len(rows)} new commits summarized")
    console.print(_commit_table(rows))


def _commit_table(commits: list[Commit]) -> Table:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Date")
    table.add_column("Hash")
    table.add_column("Author")
    table.add_column("Message")
    table.add_column("Summary")
    for c in commits:
        table.add_row(
            c.commit_date,
            c.commit_hash[:7],
            escape(c.commit_author_name),
            escape(c.commit_message.splitlines()[0]) if c.commit_message else "",
            escape(c.summary),
        )
    return table
