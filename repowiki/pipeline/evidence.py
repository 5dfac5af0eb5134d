"""Maps a subsystem to verified, line-accurate evidence ranges."""

from __future__ import annotations

from typing import Iterable, List, Mapping, Sequence

from ..citations.line_numbering import count_lines, windowed
from ..errors import EmptyEvidenceContextError, GenerationError
from ..llm.schemas import EvidenceItemSchema, EvidenceMappingSchema
from ..llm.structured import Generator
from ..logging import get_logger
from ..models import EvidenceItem, RepoFileContent, Subsystem, SubsystemEvidence
from ..prompting import PromptBuilder
from ..prompting.builder import FileContext
from .scoring import score_paths

MAX_EVIDENCE_ITEMS = 8
FALLBACK_FILE_COUNT = 3
FALLBACK_LINE_SPAN = 40
FALLBACK_SCORE = 0.2

logger = get_logger("pipeline.evidence")


def build_file_contexts(
    files: Sequence[RepoFileContent],
    *,
    max_lines: int = 220,
    head_lines: int = 150,
    tail_lines: int = 60,
) -> List[FileContext]:
    return [
        FileContext(
            path=file.path,
            excerpt=windowed(file.content, max_lines, head_lines, tail_lines),
            total_lines=count_lines(file.content),
        )
        for file in files
    ]


def validate_evidence_items(
    items: Iterable[EvidenceItemSchema],
    line_counts: Mapping[str, int],
) -> List[EvidenceItem]:
    """Keep items whose path was shown and whose range fits the real file.

    ``line_counts`` must only contain the files that were in the prompt and
    must be computed from fetched content, never from model claims.
    """
    accepted: List[EvidenceItem] = []
    for item in items:
        path = item.path.strip()
        total = line_counts.get(path)
        if total is None:
            logger.debug("Rejecting evidence for path outside context: %s", path)
            continue
        if item.start_line <= 0 or item.end_line < item.start_line or item.end_line > total:
            logger.debug(
                "Rejecting evidence range %s:%d-%d (file has %d lines)",
                path,
                item.start_line,
                item.end_line,
                total,
            )
            continue
        accepted.append(
            EvidenceItem(
                path=path,
                start_line=item.start_line,
                end_line=item.end_line,
                rationale=item.rationale.strip(),
                score=min(max(float(item.score), 0.0), 1.0),
            )
        )
    accepted.sort(key=lambda evidence: -evidence.score)
    return accepted[:MAX_EVIDENCE_ITEMS]


def build_fallback_evidence(subsystem: Subsystem, files: Sequence[RepoFileContent]) -> SubsystemEvidence:
    """Cite the head of up to three candidate files with a low fixed score."""
    if not files:
        raise EmptyEvidenceContextError(
            f"No files available to build evidence for subsystem {subsystem.id}",
            details={"subsystemId": subsystem.id},
        )
    items = [
        EvidenceItem(
            path=file.path,
            start_line=1,
            end_line=min(FALLBACK_LINE_SPAN, count_lines(file.content)),
            rationale=f"Fallback evidence from {file.path}",
            score=FALLBACK_SCORE,
            provenance="fallback",
        )
        for file in list(files)[:FALLBACK_FILE_COUNT]
    ]
    return SubsystemEvidence(
        subsystem_id=subsystem.id,
        subsystem_name=subsystem.name,
        evidence=items,
        fallback=True,
    )


def rank_available_files(subsystem: Subsystem, files: Mapping[str, RepoFileContent]) -> List[RepoFileContent]:
    """Order every fetched file by its relevance to ``subsystem``."""
    ranked = score_paths(subsystem, sorted(files), max_files=len(files))
    return [files[item.path] for item in ranked]


def map_evidence(
    repo_slug: str,
    subsystem: Subsystem,
    files: Mapping[str, RepoFileContent],
    candidate_paths: Sequence[str],
    *,
    generator: Generator,
    prompts: PromptBuilder,
    max_lines: int = 220,
    head_lines: int = 150,
    tail_lines: int = 60,
) -> SubsystemEvidence:
    """Turn the top-ranked candidates for one subsystem into validated evidence."""
    candidates = [files[path] for path in dict.fromkeys(candidate_paths) if path in files]
    if not candidates:
        logger.warning(
            "No candidate files fetched for %s; using fallback evidence from other files",
            subsystem.id,
            extra={"meta": {"subsystemId": subsystem.id, "availableFiles": len(files)}},
        )
        return build_fallback_evidence(subsystem, rank_available_files(subsystem, files))

    contexts = build_file_contexts(
        candidates, max_lines=max_lines, head_lines=head_lines, tail_lines=tail_lines
    )
    prompt = prompts.evidence(repo_slug, subsystem, contexts)
    try:
        mapping = generator.generate(prompt, EvidenceMappingSchema, temperature=0.1)
    except GenerationError as exc:
        logger.warning(
            "Evidence generation failed for %s (%s); using fallback",
            subsystem.id,
            exc,
            extra={"meta": {"subsystemId": subsystem.id, "code": exc.code}},
        )
        return build_fallback_evidence(subsystem, candidates)

    line_counts = {context.path: context.total_lines for context in contexts}
    items = validate_evidence_items(mapping.evidence, line_counts)
    if not items:
        logger.warning(
            "Model returned no valid evidence for %s (%d proposed); using fallback",
            subsystem.id,
            len(mapping.evidence),
        )
        return build_fallback_evidence(subsystem, candidates)

    logger.info("Mapped %d evidence items for %s", len(items), subsystem.id)
    return SubsystemEvidence(subsystem_id=subsystem.id, subsystem_name=subsystem.name, evidence=items)


__all__ = [
    "FALLBACK_SCORE",
    "MAX_EVIDENCE_ITEMS",
    "build_fallback_evidence",
    "build_file_contexts",
    "map_evidence",
    "rank_available_files",
    "validate_evidence_items",
]
