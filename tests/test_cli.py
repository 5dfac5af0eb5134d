"""CLI behaviour tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from repowiki import cli
from repowiki.cli import _build_parser
from repowiki.errors import CacheNotFoundError
from repowiki.models import AnalyzeCacheRecord, AnalyzeOutcome, AnalyzeResult, Citation, WikiPage
from repowiki.qa import QAAssistant
from tests._fixtures.fakes import FakeStreamer


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "analyze", "acme/shop"])
    assert args.verbose is True
    assert args.command == "analyze"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["recent", "--verbose"])
    assert args.verbose is True
    assert args.limit == 3


def test_cli_analyze_flags() -> None:
    parser = _build_parser()
    args = parser.parse_args(["analyze", "acme/shop", "--force-refresh", "--output", "out"])
    assert args.force_refresh is True
    assert args.output == Path("out")


def _outcome() -> AnalyzeOutcome:
    page = WikiPage(
        subsystem_id="checkout",
        subsystem_name="Checkout",
        markdown="## Overview\nPays [a.py:1-2](https://x)\n",
        citations=[Citation(path="a.py", start_line=1, end_line=2, url="https://x")],
    )
    record = AnalyzeCacheRecord(
        cache_key="acme__shop__abc",
        owner="acme",
        repo="shop",
        head_sha="abc",
        created_at="2026-01-01T00:00:00Z",
        result=AnalyzeResult(product_summary="A storefront.", subsystems=[], wiki_pages=[page]),
    )
    return AnalyzeOutcome(source="fresh", record=record)


class _StubOrchestrator:
    def __init__(self, config) -> None:
        self.config = config

    def run_analyze(self, repo_url: str, *, force_refresh: bool = False) -> AnalyzeOutcome:
        return _outcome()

    def load_cached(self, owner: str, repo: str) -> AnalyzeOutcome:
        raise CacheNotFoundError("No cached analysis found for this repository.")

    def list_recent(self, limit: int = 3):
        return [_outcome().record]


@pytest.fixture(autouse=True)
def _stub_orchestrator(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "Orchestrator", _StubOrchestrator)


def test_cli_analyze_writes_pages(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = tmp_path / "wiki"
    cli.main(["--config", str(tmp_path), "analyze", "acme/shop", "--output", str(output)])

    assert (output / "checkout.md").read_text(encoding="utf-8").startswith("# Checkout\n\n## Overview")
    result = json.loads((output / "result.json").read_text(encoding="utf-8"))
    assert result["cacheKey"] == "acme__shop__abc"
    assert "Wrote 1 pages" in capsys.readouterr().out


def test_cli_recent_prints_short_sha(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["--config", str(tmp_path), "recent"])
    assert capsys.readouterr().out.strip() == "acme/shop\tabc\t2026-01-01T00:00:00Z"


def test_cli_reports_pipeline_errors(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--config", str(tmp_path), "show", "acme", "shop"])
    assert excinfo.value.code == 1
    assert "repowiki show failed: No cached analysis found" in capsys.readouterr().err


class _CachedOrchestrator(_StubOrchestrator):
    def load_cached(self, owner: str, repo: str) -> AnalyzeOutcome:
        return _outcome()


def test_cli_ask_streams_answer_from_cached_wiki(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    streamer = FakeStreamer(["Checkout ", "calls a.py."])
    monkeypatch.setattr(cli, "Orchestrator", _CachedOrchestrator)
    monkeypatch.setattr(cli, "QAAssistant", lambda config: QAAssistant(config, runner=streamer))

    cli.main(["--config", str(tmp_path), "ask", "acme", "shop", "Where is payment handled?"])

    assert capsys.readouterr().out == "Checkout calls a.py.\n"
    (call,) = streamer.calls
    assert call["messages"] == [{"role": "user", "content": "Where is payment handled?"}]
    assert "Repository: acme/shop" in call["system"]
    assert "## Checkout\n## Overview" in call["system"]


def test_cli_logging_options() -> None:
    args = _build_parser().parse_args(["--log-format", "json", "--log-file", "run.log", "serve"])
    assert args.log_format == "json"
    assert args.log_file == Path("run.log")
    assert args.command == "serve"
