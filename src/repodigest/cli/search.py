"""repodigest search — semantic search over a project's file summaries."""

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
    build_retriever,
    console,
    fail,
    load_runtime_config,
    open_db,
    open_store,
    require_api_keys,
)
from repodigest.errors import RepoDigestError


def search_cmd(
    project_id: Annotated[str, typer.Argument(help="Project id (see: repodigest projects).")],
    question: Annotated[str, typer.Argument(help="Natural-language question.")],
    top_k: Annotated[
        int,
        typer.Option("--top-k", "-k", min=1, help="Number of files to return."),
    ] = 10,
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .repodigest.db."),
    ] = DEFAULT_DB,
) -> None:
    """Find the files whose summaries best match QUESTION."""
    cfg = load_runtime_config()
    require_api_keys(cfg.embedding.model)

    if not db.exists():
        console.print(err_no_db(str(db)))
        raise typer.Exit(1)

    conn = open_db(db)
    try:
        store = open_store(conn, cfg)
        if store.repository.get_project(project_id) is None:
            console.print(err_project_not_found(project_id))
            raise typer.Exit(1)
        try:
            hits = asyncio.run(build_retriever(cfg, store).search(project_id, question, top_k))
        except RepoDigestError as exc:
            fail(exc)
    finally:
        conn.close()

    if not hits:
        console.print("[yellow]No matching documents.[/]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("File")
    table.add_column("Similarity", justify="right")
    table.add_column("Summary")
    for rank, hit in enumerate(hits, start=1):
        table.add_row(
            str(rank), escape(hit.file_name), f"{hit.similarity:.3f}", escape(hit.summary)
        )
    console.print(table)
