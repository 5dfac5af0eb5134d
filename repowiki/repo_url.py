"""Parsing of GitHub repository references."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import InvalidRepoUrlError

_REPO_URL_PATTERNS = (
    re.compile(r"^https?://github\.com/([\w.-]+)/([\w.-]+?)(?:\.git)?/?$", re.IGNORECASE),
    re.compile(r"^git@github\.com:([\w.-]+)/([\w.-]+?)(?:\.git)?$", re.IGNORECASE),
    re.compile(r"^([\w.-]+)/([\w.-]+)$"),
)


@dataclass(frozen=True)
class ParsedRepo:
    owner: str
    repo: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"


def parse_repo_url(value: str) -> ParsedRepo:
    """Accept https URLs, SSH remotes and ``owner/repo`` shorthand."""
    normalized = value.strip()
    for pattern in _REPO_URL_PATTERNS:
        match = pattern.match(normalized)
        if match:
            return ParsedRepo(owner=match.group(1), repo=match.group(2))
    raise InvalidRepoUrlError(f"Invalid GitHub repository URL: {value}", details={"repoUrl": value})


__all__ = ["ParsedRepo", "parse_repo_url"]
