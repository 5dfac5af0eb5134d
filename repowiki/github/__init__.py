"""GitHub repository host client."""

from .client import GitHubClient

__all__ = ["GitHubClient"]
