"""Core data models shared across repowiki components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass
class RepoFile:
    """A blob listed in the repository tree."""

    path: str
    size: int


@dataclass
class RepoFileContent:
    """Decoded text of a repository file at a fixed ref."""

    path: str
    content: str
    size: int


@dataclass
class RepoHead:
    """Default branch and its head commit."""

    default_branch: str
    head_sha: str


@dataclass
class Subsystem:
    """A user-facing feature area extracted from the repository."""

    id: str
    name: str
    description: str
    user_journey: str
    relevant_paths: List[str] = field(default_factory=list)
    entry_points: List[str] = field(default_factory=list)
    external_services: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "userJourney": self.user_journey,
            "relevantPaths": list(self.relevant_paths),
            "entryPoints": list(self.entry_points),
            "externalServices": list(self.external_services),
        }


@dataclass
class SubsystemList:
    """Product summary plus the canonical subsystem taxonomy for a run."""

    product_summary: str
    subsystems: List[Subsystem]


@dataclass(frozen=True)
class ScoredPath:
    """Relevance of a repository path to one subsystem."""

    path: str
    score: float


@dataclass
class EvidenceItem:
    """A line range asserted to support a subsystem's behaviour."""

    path: str
    start_line: int
    end_line: int
    rationale: str
    score: float
    provenance: str = "model"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "rationale": self.rationale,
            "score": self.score,
            "provenance": self.provenance,
        }


@dataclass
class SubsystemEvidence:
    """Validated evidence for a single subsystem."""

    subsystem_id: str
    subsystem_name: str
    evidence: List[EvidenceItem]
    fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subsystemId": self.subsystem_id,
            "subsystemName": self.subsystem_name,
            "evidence": [item.to_dict() for item in self.evidence],
            "fallback": self.fallback,
        }


@dataclass(frozen=True)
class Citation:
    """A verified reference from page text to a file line range."""

    path: str
    start_line: int
    end_line: int
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "url": self.url,
        }


@dataclass
class WikiPage:
    """Linked markdown page for one subsystem."""

    subsystem_id: str
    subsystem_name: str
    markdown: str
    citations: List[Citation]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subsystemId": self.subsystem_id,
            "subsystemName": self.subsystem_name,
            "markdown": self.markdown,
            "citations": [citation.to_dict() for citation in self.citations],
        }


@dataclass
class AnalyzeResult:
    """The artifact handed to downstream consumers."""

    product_summary: str
    subsystems: List[Subsystem]
    wiki_pages: List[WikiPage]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productSummary": self.product_summary,
            "subsystems": [subsystem.to_dict() for subsystem in self.subsystems],
            "wikiPages": [page.to_dict() for page in self.wiki_pages],
        }


@dataclass
class AnalyzeCacheRecord:
    """Persisted result of a successful run for one commit snapshot."""

    cache_key: str
    owner: str
    repo: str
    head_sha: str
    created_at: str
    result: AnalyzeResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cacheKey": self.cache_key,
            "owner": self.owner,
            "repo": self.repo,
            "headSha": self.head_sha,
            "createdAt": self.created_at,
            "result": self.result.to_dict(),
        }


@dataclass
class AnalyzeOutcome:
    """What a pipeline invocation returns to the CLI and service."""

    source: str
    record: AnalyzeCacheRecord
    default_branch: Optional[str] = None
    signal_paths: List[str] = field(default_factory=list)
    evidence: List[SubsystemEvidence] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        record = self.record
        payload: Dict[str, Any] = {
            "status": "ready",
            "source": self.source,
            "cacheKey": record.cache_key,
            "repo": f"{record.owner}/{record.repo}",
            "headSha": record.head_sha,
            "createdAt": record.created_at,
            "productSummary": record.result.product_summary,
            "subsystems": [subsystem.to_dict() for subsystem in record.result.subsystems],
            "wikiPages": [page.to_dict() for page in record.result.wiki_pages],
        }
        if self.default_branch is not None:
            payload["defaultBranch"] = self.default_branch
        if self.signal_paths:
            payload["signalPaths"] = list(self.signal_paths)
        if self.evidence:
            payload["evidenceMappings"] = [item.to_dict() for item in self.evidence]
        return payload


@dataclass
class ChatMessage:
    """One turn of a question-answering conversation."""

    role: str
    content: str


@dataclass
class QAContext:
    """Analysis facts a question-answering session may draw on.

    ``subsystems`` holds ``(name, description)`` pairs and ``wiki_pages``
    holds ``(subsystem_name, markdown)`` pairs.
    """

    repo: Optional[str] = None
    head_sha: Optional[str] = None
    product_summary: Optional[str] = None
    subsystems: List[Tuple[str, str]] = field(default_factory=list)
    wiki_pages: List[Tuple[str, str]] = field(default_factory=list)


__all__ = [
    "AnalyzeCacheRecord",
    "AnalyzeOutcome",
    "AnalyzeResult",
    "ChatMessage",
    "Citation",
    "EvidenceItem",
    "QAContext",
    "RepoFile",
    "RepoFileContent",
    "RepoHead",
    "ScoredPath",
    "Subsystem",
    "SubsystemEvidence",
    "SubsystemList",
    "WikiPage",
]
