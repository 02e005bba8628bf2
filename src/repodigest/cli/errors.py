"""repodigest rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from repodigest.cli.errors import err_no_api_key
    console.print(err_no_api_key("gemini"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from repodigest.errors import (
    AuthError,
    ForbiddenError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)

_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "google": "GOOGLE_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "azure": "AZURE_API_KEY",
    "groq": "GROQ_API_KEY",
}


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'gemini'. Set:  export GEMINI_API_KEY=...
    """
    env_var = _KEY_ENV.get(provider.lower(), f"{provider.upper()}_API_KEY")
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=..."
    )


def err_no_db(db_path: str = ".repodigest.db") -> str:
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  repodigest add <github-url> --name <name>"
    )


def err_project_not_found(project_id: str) -> str:
    return (
        f"[red]Error:[/] Project '{project_id}' not found.\n"
        "  Run:  repodigest projects  to see all projects."
    )


def err_project_deleted(project_id: str) -> str:
    return (
        f"[red]Error:[/] Project '{project_id}' has been removed.\n"
        "  Its data is kept, but it can no longer be ingested or polled.\n"
        "  Re-add the repository:  repodigest add <github-url> --name <name>"
    )


def err_github_auth() -> str:
    return (
        "[red]Error:[/] GitHub authentication failed (missing or invalid token).\n"
        "  Set:  export GITHUB_TOKEN=ghp_...\n"
        "  or pass:  --token ghp_..."
    )


def err_github_forbidden(detail: str) -> str:
    return (
        f"[red]Error:[/] GitHub refused access: {detail}\n"
        "  Check the token has the 'repo' scope, or wait for the rate limit to reset."
    )


def err_repo_not_found(detail: str) -> str:
    return (
        f"[red]Error:[/] {detail}\n"
        "  Check the repository URL and branch (github.branch in repodigest.yaml)."
    )


def err_invalid_input(detail: str) -> str:
    return (
        f"[red]Error:[/] {detail}\n"
        "  Example:  repodigest add https://github.com/owner/repo --name demo"
    )


def err_persistence(detail: str) -> str:
    return (
        f"[red]Error:[/] Database write failed: {detail}\n"
        "  Check the --db path is writable and not locked by another process."
    )


def err_config(detail: str) -> str:
    return (
        f"[red]Error:[/] Invalid configuration: {detail}\n"
        "  Fix repodigest.yaml or ~/.repodigest/config.yaml and retry."
    )


def message_for(exc: Exception) -> str:
    """Actionable message for a whole-run failure."""
    if isinstance(exc, AuthError):
        return err_github_auth()
    if isinstance(exc, ForbiddenError):
        return err_github_forbidden(str(exc))
    if isinstance(exc, NotFoundError):
        return err_repo_not_found(str(exc))
    if isinstance(exc, ValidationError):
        return err_invalid_input(str(exc))
    if isinstance(exc, PersistenceError):
        return err_persistence(str(exc))
    return f"[red]Error:[/] {exc}"
