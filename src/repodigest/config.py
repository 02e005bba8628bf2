"""repodigest configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (REPODIGEST_SUMMARY_MODEL, REPODIGEST_EMBEDDING_MODEL,
     REPODIGEST_LOG_LEVEL)
  3. Per-project repodigest.yaml  (current working directory)
  4. Global ~/.repodigest/config.yaml  (defaults only — no tokens or API keys)
  5. Hardcoded defaults

Credentials (GITHUB_TOKEN, model API keys) come from environment variables or
explicit CLI flags, never from config files that may be shared.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".repodigest"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "repodigest.yaml"

# Matches api_key, api-secret, github_token, access_token, token, secret,
# password, credentials. Does NOT match max_tokens.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["github", "summarizer", "embedding", "logging"]
)

# Host rate limits: never more than this many concurrent tree fetches.
MAX_FETCH_CONCURRENCY = 5


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class GithubCfg:
    """VCS host access (repodigest.yaml: github:)."""

    api_url: str = "https://api.github.com"
    branch: str = "main"
    max_concurrency: int = 3
    request_timeout: float = 30.0
    diff_timeout: float = 30.0
    commit_limit: int = 10
    max_file_bytes: int = 1_000_000
    retries: int = 3
    ignore: list[str] = field(default_factory=list)


@dataclass
class SummarizerCfg:
    """LLM summarization (repodigest.yaml: summarizer:)."""

    model: str = "gemini/gemini-1.5-flash"
    max_tokens: int = 300
    code_max_chars: int = 10_000
    diff_max_chars: int = 50_000


@dataclass
class EmbeddingCfg:
    """Embedding model (repodigest.yaml: embedding:)."""

    model: str = "gemini/text-embedding-004"
    dimensions: int = 768


@dataclass
class LoggingCfg:
    level: str = "INFO"


@dataclass
class RepoDigestConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    github: GithubCfg = field(default_factory=GithubCfg)
    summarizer: SummarizerCfg = field(default_factory=SummarizerCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any credential-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Config '{source}' contains a forbidden key '{full}'.\n"
                        f"  Tokens and API keys must be set via environment variables.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: RepoDigestConfig) -> None:
    g = cfg.github
    if not 1 <= g.max_concurrency <= MAX_FETCH_CONCURRENCY:
        raise ConfigError(
            f"github.max_concurrency must be between 1 and {MAX_FETCH_CONCURRENCY}, "
            f"got {g.max_concurrency}"
        )
    if g.commit_limit < 1:
        raise ConfigError(f"github.commit_limit must be >= 1, got {g.commit_limit}")
    if g.retries < 1:
        raise ConfigError(f"github.retries must be >= 1, got {g.retries}")
    if cfg.embedding.dimensions < 1:
        raise ConfigError(
            f"embedding.dimensions must be >= 1, got {cfg.embedding.dimensions}"
        )
    s = cfg.summarizer
    if s.code_max_chars < 1 or s.diff_max_chars < 1:
        raise ConfigError("summarizer.code_max_chars and diff_max_chars must be >= 1")


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> RepoDigestConfig:
    """Build a *RepoDigestConfig* from a merged raw YAML dict."""
    cfg = RepoDigestConfig()

    if "github" in data:
        g = data["github"] or {}
        d = cfg.github
        cfg.github = GithubCfg(
            api_url=str(g.get("api_url", d.api_url)).rstrip("/"),
            branch=str(g.get("branch", d.branch)),
            max_concurrency=int(g.get("max_concurrency", d.max_concurrency)),
            request_timeout=float(g.get("request_timeout", d.request_timeout)),
            diff_timeout=float(g.get("diff_timeout", d.diff_timeout)),
            commit_limit=int(g.get("commit_limit", d.commit_limit)),
            max_file_bytes=int(g.get("max_file_bytes", d.max_file_bytes)),
            retries=int(g.get("retries", d.retries)),
            ignore=[str(p) for p in g.get("ignore", d.ignore) or []],
        )

    if "summarizer" in data:
        s = data["summarizer"] or {}
        d = cfg.summarizer
        cfg.summarizer = SummarizerCfg(
            model=str(s.get("model", d.model)),
            max_tokens=int(s.get("max_tokens", d.max_tokens)),
            code_max_chars=int(s.get("code_max_chars", d.code_max_chars)),
            diff_max_chars=int(s.get("diff_max_chars", d.diff_max_chars)),
        )

    if "embedding" in data:
        e = data["embedding"] or {}
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            dimensions=int(e.get("dimensions", cfg.embedding.dimensions)),
        )

    if "logging" in data:
        lg = data["logging"] or {}
        cfg.logging = LoggingCfg(level=str(lg.get("level", cfg.logging.level)))

    return cfg


def _apply_env_overrides(cfg: RepoDigestConfig) -> RepoDigestConfig:
    """Apply REPODIGEST_* environment variable overrides."""
    if model := os.environ.get("REPODIGEST_SUMMARY_MODEL"):
        cfg.summarizer.model = model
    if model := os.environ.get("REPODIGEST_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if level := os.environ.get("REPODIGEST_LOG_LEVEL"):
        cfg.logging.level = level
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> RepoDigestConfig:
    """Load and return a merged *RepoDigestConfig*.

    Applies layers in order: global → per-project → env vars.

    Args:
        project_dir: Directory to search for *repodigest.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If any config file contains credential-like keys or an
            out-of-range value.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        # Project files end up in version control too.
        _check_no_api_keys(raw_project, project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _apply_env_overrides(_cfg_from_dict(merged))
    _validate(cfg)
    return cfg


def resolve_github_token(explicit: str | None = None) -> str | None:
    """Return *explicit* if given, else ``GITHUB_TOKEN`` from the environment."""
    if explicit:
        return explicit
    return os.environ.get("GITHUB_TOKEN") or None
