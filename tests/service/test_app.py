"""Tests for the FastAPI service mode."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from repowiki.config import RepoWikiConfig
from repowiki.errors import CacheNotFoundError, GenerationError, InvalidRepoUrlError
from repowiki.models import AnalyzeCacheRecord, AnalyzeOutcome, AnalyzeResult
from repowiki.qa import QAAssistant
from repowiki.service import create_app
from tests._fixtures.fakes import FakeStreamer


def _record(repo: str = "shop") -> AnalyzeCacheRecord:
    return AnalyzeCacheRecord(
        cache_key=f"acme__{repo}__abc",
        owner="acme",
        repo=repo,
        head_sha="abc",
        created_at="2026-01-01T00:00:00Z",
        result=AnalyzeResult(product_summary="A storefront.", subsystems=[], wiki_pages=[]),
    )


class _StubOrchestrator:
    def __init__(self) -> None:
        self.analyze_calls: list[dict[str, object]] = []

    def run_analyze(self, repo_url: str, *, force_refresh: bool = False) -> AnalyzeOutcome:
        self.analyze_calls.append({"repo_url": repo_url, "force_refresh": force_refresh})
        if repo_url == "boom":
            raise RuntimeError("unexpected")
        if "/" not in repo_url:
            raise InvalidRepoUrlError(f"Invalid GitHub repository URL: {repo_url}")
        return AnalyzeOutcome(source="fresh", record=_record(), default_branch="main")

    def load_cached(self, owner: str, repo: str) -> AnalyzeOutcome:
        if repo != "shop":
            raise CacheNotFoundError("No cached analysis found for this repository.")
        return AnalyzeOutcome(source="cache", record=_record())

    def list_recent(self, limit: int = 3) -> list[AnalyzeCacheRecord]:
        return [_record("shop"), _record("blog")][:limit]


@pytest.fixture
def orchestrator() -> _StubOrchestrator:
    return _StubOrchestrator()


@pytest.fixture
def streamer() -> FakeStreamer:
    return FakeStreamer(["Checkout ", "uses pay()."])


@pytest.fixture
def assistant(tmp_path: Path, streamer: FakeStreamer) -> QAAssistant:
    return QAAssistant(RepoWikiConfig(root=tmp_path), runner=streamer)


@pytest.fixture
def client(orchestrator: _StubOrchestrator, assistant: QAAssistant) -> TestClient:
    app = create_app(lambda: orchestrator, lambda: assistant)  # type: ignore[arg-type, return-value]
    return TestClient(app, raise_server_exceptions=False)


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_analyze_endpoint(client: TestClient, orchestrator: _StubOrchestrator) -> None:
    response = client.post("/analyze", json={"repoUrl": "acme/shop", "forceRefresh": True})

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ready"
    assert payload["source"] == "fresh"
    assert payload["cacheKey"] == "acme__shop__abc"
    assert payload["defaultBranch"] == "main"
    assert orchestrator.analyze_calls == [{"repo_url": "acme/shop", "force_refresh": True}]


def test_analyze_endpoint_maps_pipeline_errors(client: TestClient) -> None:
    response = client.post("/analyze", json={"repoUrl": "nonsense"})
    assert response.status_code == 400
    assert response.json() == {
        "error": "Invalid GitHub repository URL: nonsense",
        "code": "INVALID_REPO_URL",
    }


def test_analyze_endpoint_validates_body(client: TestClient) -> None:
    response = client.post("/analyze", json={"forceRefresh": True})
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "INVALID_REQUEST"
    assert body["error"] == "Invalid request payload"
    assert body["details"][0]["loc"] == ["body", "repoUrl"]


def test_unexpected_errors_become_500(client: TestClient) -> None:
    response = client.post("/analyze", json={"repoUrl": "boom"})
    assert response.status_code == 500
    assert response.json()["code"] == "INTERNAL_SERVER_ERROR"


def test_cached_analysis_endpoint(client: TestClient) -> None:
    response = client.get("/analyze/acme/shop")
    assert response.status_code == 200
    assert response.json()["source"] == "cache"

    missing = client.get("/analyze/acme/unknown")
    assert missing.status_code == 404
    assert missing.json()["code"] == "CACHE_NOT_FOUND"


def test_recent_endpoint(client: TestClient) -> None:
    response = client.get("/analyze/recent", params={"limit": 1})
    assert response.status_code == 200
    assert response.json() == {
        "items": [
            {"owner": "acme", "repo": "shop", "headSha": "abc", "createdAt": "2026-01-01T00:00:00Z"}
        ]
    }


def test_qa_endpoint_streams_plain_text(client: TestClient, streamer: FakeStreamer) -> None:
    response = client.post(
        "/qa",
        json={
            "messages": [{"role": "user", "content": "  How does checkout work?  "}],
            "context": {
                "repo": "acme/shop",
                "headSha": "abc",
                "subsystems": [{"name": "Checkout", "description": "Pays for carts"}],
                "wikiPages": [{"subsystemName": "Checkout", "markdown": "## Overview\nUses pay()."}],
            },
        },
    )

    assert response.status_code == 200
    assert response.text == "Checkout uses pay()."
    assert response.headers["content-type"] == "text/plain; charset=utf-8"
    assert response.headers["cache-control"] == "no-cache, no-transform"
    (call,) = streamer.calls
    assert call["messages"] == [{"role": "user", "content": "How does checkout work?"}]
    assert "Head SHA: abc" in call["system"]
    assert "## Checkout\n## Overview\nUses pay()." in call["system"]


def test_qa_endpoint_rejects_invalid_payload(client: TestClient, streamer: FakeStreamer) -> None:
    for payload in (
        {"messages": []},
        {"messages": [{"role": "system", "content": "hi"}]},
        {"messages": [{"role": "user", "content": "   "}]},
    ):
        response = client.post("/qa", json=payload)
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REQUEST"
    assert streamer.calls == []


def test_qa_endpoint_reports_mid_stream_failure(client: TestClient, streamer: FakeStreamer) -> None:
    streamer.fail_after = GenerationError("LLM stream interrupted: reset")

    response = client.post("/qa", json={"messages": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 200
    assert response.text == "Checkout uses pay().I hit a streaming error. Please retry."


def test_qa_endpoint_maps_errors_before_streaming(orchestrator: _StubOrchestrator, tmp_path: Path) -> None:
    class _Offline:
        def stream_chat(self, messages, *, system=None, temperature=None):
            raise GenerationError("LLM request failed: connection refused")

    assistant = QAAssistant(RepoWikiConfig(root=tmp_path), runner=_Offline())
    app = create_app(lambda: orchestrator, lambda: assistant)  # type: ignore[arg-type, return-value]
    client = TestClient(app, raise_server_exceptions=False)

    response = client.post("/qa", json={"messages": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 502
    assert response.json() == {
        "error": "LLM request failed: connection refused",
        "code": "GENERATION_FAILED",
    }
