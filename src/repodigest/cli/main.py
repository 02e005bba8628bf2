"""repodigest CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from repodigest.cli.commits import commits_cmd, poll_cmd, watch_cmd
from repodigest.cli.ingest import ingest_cmd
from repodigest.cli.projects import add_cmd, projects_cmd, remove_cmd
from repodigest.cli.runtime import state
from repodigest.cli.search import search_cmd


def _version() -> str:
    try:
        return importlib.metadata.version("repodigest")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"repodigest {_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="repodigest",
    help=(
        "repodigest — summarized, searchable knowledge base of a GitHub repository.\n\n"
        "  repodigest add     Create a project and ingest its repository.\n"
        "  repodigest poll    Summarize commits not seen before.\n"
        "  repodigest search  Ask which files deal with a topic."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Debug logging."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """repodigest — summarized, searchable knowledge base of a GitHub repository."""
    state["verbose"] = verbose


app.command("add")(add_cmd)
app.command("ingest")(ingest_cmd)
app.command("poll")(poll_cmd)
app.command("watch")(watch_cmd)
app.command("commits")(commits_cmd)
app.command("projects")(projects_cmd)
app.command("remove")(remove_cmd)
app.command("search")(search_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed repodigest version."""
    typer.echo(f"repodigest {_version()}")


if __name__ == "__main__":
    app()
