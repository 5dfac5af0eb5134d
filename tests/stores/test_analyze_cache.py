"""Tests for the analyze result cache."""

from __future__ import annotations

import json
from pathlib import Path

from repowiki.models import AnalyzeCacheRecord, AnalyzeResult, Citation, WikiPage
from repowiki.stores import AnalyzeCache, build_cache_key
from tests.conftest import make_subsystem


def _record(owner: str, repo: str, sha: str, created_at: str) -> AnalyzeCacheRecord:
    return AnalyzeCacheRecord(
        cache_key=build_cache_key(owner, repo, sha),
        owner=owner,
        repo=repo,
        head_sha=sha,
        created_at=created_at,
        result=AnalyzeResult(
            product_summary="A storefront.",
            subsystems=[make_subsystem("checkout", "Checkout", ["src/pay.py"])],
            wiki_pages=[
                WikiPage(
                    subsystem_id="checkout",
                    subsystem_name="Checkout",
                    markdown="## Overview",
                    citations=[Citation(path="src/pay.py", start_line=1, end_line=2, url="https://x")],
                )
            ],
        ),
    )


def test_build_cache_key_sanitises_segments() -> None:
    assert build_cache_key("Acme Corp", "Shop/Web", "ABC") == "acme_corp__shop_web__abc"


def test_analyze_cache_round_trip(tmp_path: Path) -> None:
    record = _record("acme", "shop", "abc", "2026-01-01T00:00:00Z")
    AnalyzeCache(tmp_path).put(record)

    loaded = AnalyzeCache(tmp_path).get(record.cache_key)

    assert loaded == record
    assert not list(tmp_path.glob("*.tmp"))


def test_analyze_cache_ignores_malformed_files(tmp_path: Path) -> None:
    (tmp_path / "acme__shop__abc.json").write_text(json.dumps({"cacheKey": 1}), encoding="utf-8")
    (tmp_path / "acme__shop__def.json").write_text("{not json", encoding="utf-8")
    cache = AnalyzeCache(tmp_path)
    assert cache.get("acme__shop__abc") is None
    assert cache.get("acme__shop__def") is None
    assert cache.latest_for_repo("acme", "shop") is None


def test_latest_for_repo_picks_newest(tmp_path: Path) -> None:
    cache = AnalyzeCache(tmp_path)
    cache.put(_record("acme", "shop", "old", "2026-01-01T00:00:00Z"))
    cache.put(_record("acme", "shop", "new", "2026-02-01T00:00:00Z"))
    cache.put(_record("acme", "shop-admin", "x", "2026-03-01T00:00:00Z"))

    latest = cache.latest_for_repo("ACME", "shop")
    assert latest is not None
    assert latest.head_sha == "new"


def test_list_recent_keeps_one_record_per_repo() -> None:
    cache = AnalyzeCache(None)
    cache.put(_record("acme", "shop", "a", "2026-01-01T00:00:00Z"))
    cache.put(_record("acme", "shop", "b", "2026-01-03T00:00:00Z"))
    cache.put(_record("acme", "blog", "c", "2026-01-02T00:00:00Z"))
    cache.put(_record("acme", "docs", "d", "2025-12-01T00:00:00Z"))

    recent = cache.list_recent(2)

    assert [(record.repo, record.head_sha) for record in recent] == [("shop", "b"), ("blog", "c")]
    assert cache.list_recent(0) == []


def test_latest_for_repo_handles_double_underscore_names(tmp_path: Path) -> None:
    cache = AnalyzeCache(tmp_path)
    record = _record("acme", "my__repo", "abc", "2026-01-01T00:00:00Z")
    cache.put(record)
    cache.put(_record("acme", "my", "def", "2026-02-01T00:00:00Z"))

    assert cache.get(record.cache_key) == record
    latest = cache.latest_for_repo("acme", "my__repo")
    assert latest is not None
    assert latest.head_sha == "abc"
