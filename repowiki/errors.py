"""Structured error taxonomy for pipeline runs."""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

_RETRYABLE_PATTERN = re.compile(r"timeout|rate.?limit|429|5\d\d", re.IGNORECASE)


class PipelineError(RuntimeError):
    """Base error carrying a stable machine-readable code."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details) if details else {}
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class EmptyFileTreeError(PipelineError):
    """Raised when no analyzable paths remain after filtering."""

    code = "EMPTY_FILE_TREE"
    status_code = 422


class InvalidSignalPathsError(PipelineError):
    """Raised when signal selection yields no path present in the tree."""

    code = "INVALID_SIGNAL_PATHS"
    status_code = 422


class InvalidSubsystemNamesError(PipelineError):
    """Raised when any extracted subsystem uses a technical-layer name."""

    code = "INVALID_SUBSYSTEM_NAMES"
    status_code = 422


class EmptyEvidenceContextError(PipelineError):
    """Raised when a subsystem has no file to cite, even for fallback evidence."""

    code = "EMPTY_EVIDENCE_CONTEXT"
    status_code = 422


class MissingSubsystemEvidenceError(PipelineError):
    """Raised when drafting is asked for a subsystem with no computed evidence."""

    code = "MISSING_SUBSYSTEM_EVIDENCE"
    status_code = 500


class MissingWikiCitationsError(PipelineError):
    """Raised when a drafted page keeps zero valid citations after linking."""

    code = "MISSING_WIKI_CITATIONS"
    status_code = 422


class RepositoryFetchError(PipelineError):
    """Raised when the repository host cannot serve a tree or file."""

    code = "GITHUB_FETCH_FAILED"
    status_code = 502


class GenerationError(PipelineError):
    """Raised when the generation backend fails or returns an unusable payload."""

    code = "GENERATION_FAILED"
    status_code = 502


class InvalidRepoUrlError(PipelineError):
    code = "INVALID_REPO_URL"
    status_code = 400


class InvalidRequestError(PipelineError):
    code = "INVALID_REQUEST"
    status_code = 400


class CacheNotFoundError(PipelineError):
    code = "CACHE_NOT_FOUND"
    status_code = 404


def is_retryable_error(error: BaseException) -> bool:
    """Return True when the error message looks transient (timeouts, throttling, 5xx)."""
    return bool(_RETRYABLE_PATTERN.search(str(error)))


__all__ = [
    "CacheNotFoundError",
    "EmptyEvidenceContextError",
    "EmptyFileTreeError",
    "GenerationError",
    "InvalidRepoUrlError",
    "InvalidRequestError",
    "InvalidSignalPathsError",
    "InvalidSubsystemNamesError",
    "MissingSubsystemEvidenceError",
    "MissingWikiCitationsError",
    "PipelineError",
    "RepositoryFetchError",
    "is_retryable_error",
]
