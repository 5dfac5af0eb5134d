"""Cache of analyze results keyed by owner, repo and head commit."""

from __future__ import annotations

import json
import re
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..logging import get_logger
from ..models import AnalyzeCacheRecord, AnalyzeResult, Citation, Subsystem, WikiPage

_UNSAFE_SEGMENT = re.compile(r"[^a-z0-9._-]")

logger = get_logger("stores.analyze_cache")


def _safe_segment(value: str) -> str:
    return _UNSAFE_SEGMENT.sub("_", value.lower())


def build_cache_key(owner: str, repo: str, head_sha: str) -> str:
    return f"{_safe_segment(owner)}__{_safe_segment(repo)}__{_safe_segment(head_sha)}"


class AnalyzeCache:
    """Stores one JSON record per commit snapshot.

    With ``directory=None`` records only live in memory for the lifetime of
    the instance. Records are written whole and never updated in place.
    """

    def __init__(self, directory: Path | None) -> None:
        self._directory = directory
        self._memory: Dict[str, AnalyzeCacheRecord] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[AnalyzeCacheRecord]:
        if self._directory is None:
            with self._lock:
                return self._memory.get(key)
        return self._read_file(self._directory / f"{key}.json")

    def put(self, record: AnalyzeCacheRecord) -> None:
        if self._directory is None:
            with self._lock:
                self._memory[record.cache_key] = record
            return
        self._directory.mkdir(parents=True, exist_ok=True)
        target = self._directory / f"{record.cache_key}.json"
        temp = target.with_suffix(".json.tmp")
        temp.write_text(json.dumps(record.to_dict(), indent=2), encoding="utf-8")
        temp.replace(target)
        logger.debug("Stored analyze record %s", record.cache_key)

    def latest_for_repo(self, owner: str, repo: str) -> Optional[AnalyzeCacheRecord]:
        """Return the newest record for ``owner/repo`` regardless of commit."""
        owner_key = owner.lower()
        repo_key = repo.lower()
        candidates = [
            record
            for _, record in self._iter_records()
            if record.owner.lower() == owner_key and record.repo.lower() == repo_key
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda record: _timestamp(record.created_at))

    def list_recent(self, limit: int) -> List[AnalyzeCacheRecord]:
        """Return the newest records, at most one per repository."""
        if limit <= 0:
            return []
        records = sorted(
            (record for _, record in self._iter_records()),
            key=lambda record: _timestamp(record.created_at),
            reverse=True,
        )
        unique: Dict[str, AnalyzeCacheRecord] = {}
        for record in records:
            repo_key = f"{record.owner.lower()}::{record.repo.lower()}"
            unique.setdefault(repo_key, record)
        return list(unique.values())[:limit]

    # ------------------------------------------------------------------
    # Internal helpers

    def _iter_records(self) -> List[tuple[str, AnalyzeCacheRecord]]:
        if self._directory is None:
            with self._lock:
                return list(self._memory.items())
        if not self._directory.is_dir():
            return []
        loaded: List[tuple[str, AnalyzeCacheRecord]] = []
        for path in sorted(self._directory.glob("*.json")):
            record = self._read_file(path)
            if record is not None:
                loaded.append((path.stem, record))
        return loaded

    @staticmethod
    def _read_file(path: Path) -> Optional[AnalyzeCacheRecord]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as exc:
            logger.debug("Ignoring unreadable cache file %s: %s", path, exc)
            return None
        record = record_from_dict(data)
        if record is None:
            logger.debug("Ignoring malformed cache file %s", path)
        return record


def _timestamp(value: str) -> float:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return 0.0


def record_from_dict(payload: Any) -> Optional[AnalyzeCacheRecord]:
    """Parse a serialised record, returning None when any field is malformed."""
    if not isinstance(payload, dict):
        return None
    fields = ("cacheKey", "owner", "repo", "headSha", "createdAt")
    if not all(isinstance(payload.get(name), str) for name in fields):
        return None
    result = _result_from_dict(payload.get("result"))
    if result is None:
        return None
    return AnalyzeCacheRecord(
        cache_key=payload["cacheKey"],
        owner=payload["owner"],
        repo=payload["repo"],
        head_sha=payload["headSha"],
        created_at=payload["createdAt"],
        result=result,
    )


def _result_from_dict(payload: Any) -> Optional[AnalyzeResult]:
    if not isinstance(payload, dict) or not isinstance(payload.get("productSummary"), str):
        return None
    raw_subsystems = payload.get("subsystems")
    raw_pages = payload.get("wikiPages")
    if not isinstance(raw_subsystems, list) or not isinstance(raw_pages, list):
        return None
    subsystems = [_subsystem_from_dict(item) for item in raw_subsystems]
    pages = [_page_from_dict(item) for item in raw_pages]
    if any(item is None for item in subsystems) or any(item is None for item in pages):
        return None
    return AnalyzeResult(
        product_summary=payload["productSummary"],
        subsystems=[item for item in subsystems if item is not None],
        wiki_pages=[item for item in pages if item is not None],
    )


def _str_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        return None
    return list(value)


def _subsystem_from_dict(payload: Any) -> Optional[Subsystem]:
    if not isinstance(payload, dict):
        return None
    text_fields = ("id", "name", "description", "userJourney")
    if not all(isinstance(payload.get(name), str) for name in text_fields):
        return None
    relevant = _str_list(payload.get("relevantPaths"))
    entry_points = _str_list(payload.get("entryPoints"))
    external = _str_list(payload.get("externalServices", []))
    if relevant is None or entry_points is None or external is None:
        return None
    return Subsystem(
        id=payload["id"],
        name=payload["name"],
        description=payload["description"],
        user_journey=payload["userJourney"],
        relevant_paths=relevant,
        entry_points=entry_points,
        external_services=external,
    )


def _citation_from_dict(payload: Any) -> Optional[Citation]:
    if not isinstance(payload, dict):
        return None
    path = payload.get("path")
    start = payload.get("startLine")
    end = payload.get("endLine")
    url = payload.get("url")
    if not isinstance(path, str) or not isinstance(url, str):
        return None
    if not isinstance(start, int) or not isinstance(end, int) or start <= 0 or end < start:
        return None
    return Citation(path=path, start_line=start, end_line=end, url=url)


def _page_from_dict(payload: Any) -> Optional[WikiPage]:
    if not isinstance(payload, dict):
        return None
    subsystem_id = payload.get("subsystemId")
    subsystem_name = payload.get("subsystemName")
    markdown = payload.get("markdown")
    raw_citations = payload.get("citations")
    if not isinstance(subsystem_id, str) or not isinstance(subsystem_name, str):
        return None
    if not isinstance(markdown, str) or not isinstance(raw_citations, list):
        return None
    citations = [_citation_from_dict(item) for item in raw_citations]
    if any(item is None for item in citations):
        return None
    return WikiPage(
        subsystem_id=subsystem_id,
        subsystem_name=subsystem_name,
        markdown=markdown,
        citations=[item for item in citations if item is not None],
    )


__all__ = ["AnalyzeCache", "build_cache_key", "record_from_dict"]
