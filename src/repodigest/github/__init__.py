"""GitHub REST access: async client and validated payload models."""

from repodigest.github.client import DIFF_MEDIA_TYPE, GitHubClient, parse_github_url

__all__ = ["DIFF_MEDIA_TYPE", "GitHubClient", "parse_github_url"]
