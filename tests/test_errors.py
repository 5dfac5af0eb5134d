"""Tests for the error taxonomy."""

from __future__ import annotations

import pytest

from repowiki.errors import (
    EmptyEvidenceContextError,
    GenerationError,
    MissingSubsystemEvidenceError,
    PipelineError,
    RepositoryFetchError,
    is_retryable_error,
)


def test_error_to_dict_includes_details_when_present() -> None:
    error = EmptyEvidenceContextError("no files", details={"subsystemId": "cart"})
    assert error.to_dict() == {
        "error": "no files",
        "code": "EMPTY_EVIDENCE_CONTEXT",
        "details": {"subsystemId": "cart"},
    }
    assert error.status_code == 422


def test_error_overrides_code_and_status() -> None:
    error = PipelineError("boom", code="CUSTOM", status_code=418)
    assert error.to_dict() == {"error": "boom", "code": "CUSTOM"}
    assert error.status_code == 418


def test_error_status_codes() -> None:
    assert MissingSubsystemEvidenceError("x").status_code == 500
    assert RepositoryFetchError("x").code == "GITHUB_FETCH_FAILED"
    assert GenerationError("x").status_code == 502


@pytest.mark.parametrize(
    "message,expected",
    [
        ("Request timeout", True),
        ("HTTP 429: Too Many Requests", True),
        ("API rate limit exceeded", True),
        ("secondary ratelimit hit", True),
        ("HTTP 503: Service Unavailable", True),
        ("HTTP 404: Not Found", False),
        ("HTTP 401: Bad credentials", False),
    ],
)
def test_is_retryable_error(message: str, expected: bool) -> None:
    assert is_retryable_error(RuntimeError(message)) is expected
