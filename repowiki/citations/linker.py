"""Parse, validate and rewrite inline citation markers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Tuple

from ..logging import get_logger
from ..models import Citation
from .permalink import build_permalink

CITE_MARKER_PATTERN = re.compile(r"\[\[cite:([^:\]]+):(\d+)-(\d+)\]\]")

logger = get_logger("citations")


@dataclass
class LinkedMarkdown:
    """Rewritten markdown plus the citations that survived validation."""

    markdown: str
    citations: List[Citation]


def link_citations(
    markdown: str,
    *,
    owner: str,
    repo: str,
    sha: str,
    line_counts: Mapping[str, int],
) -> LinkedMarkdown:
    """Replace ``[[cite:path:start-end]]`` markers with permalinks.

    Markers pointing at unknown paths or out-of-range lines are removed, leaving
    the surrounding prose uncited. Repeated markers collapse into one citation
    while every occurrence is still rewritten.
    """
    seen: Dict[Tuple[str, int, int], Citation] = {}
    dropped: List[str] = []

    def _replace(match: re.Match[str]) -> str:
        path = match.group(1).strip()
        start_line = int(match.group(2))
        end_line = int(match.group(3))
        total = line_counts.get(path)
        if not total:
            dropped.append(match.group(0))
            return ""
        if start_line <= 0 or end_line < start_line or end_line > total:
            dropped.append(match.group(0))
            return ""

        key = (path, start_line, end_line)
        citation = seen.get(key)
        if citation is None:
            citation = Citation(
                path=path,
                start_line=start_line,
                end_line=end_line,
                url=build_permalink(
                    owner=owner,
                    repo=repo,
                    sha=sha,
                    path=path,
                    start_line=start_line,
                    end_line=end_line,
                ),
            )
            seen[key] = citation
        return f"[{path}:{start_line}-{end_line}]({citation.url})"

    linked = CITE_MARKER_PATTERN.sub(_replace, markdown)
    if dropped:
        logger.debug("Dropped %d unverifiable citation marker(s): %s", len(dropped), ", ".join(dropped[:5]))
    return LinkedMarkdown(markdown=linked, citations=list(seen.values()))


__all__ = ["CITE_MARKER_PATTERN", "LinkedMarkdown", "link_citations"]
