"""Drafts a wiki page per subsystem and links its citations."""

from __future__ import annotations

from typing import List, Mapping, Optional

from ..citations.line_numbering import build_line_counts
from ..citations.linker import link_citations
from ..errors import GenerationError, MissingSubsystemEvidenceError, MissingWikiCitationsError
from ..llm.schemas import WikiDraftSchema
from ..llm.structured import Generator
from ..logging import get_logger
from ..models import RepoFileContent, Subsystem, SubsystemEvidence, WikiPage
from ..prompting import PromptBuilder
from ..prompting.builder import EvidenceExcerpt

MAX_EXCERPT_LINES = 60
MIN_MARKDOWN_CHARS = 100

logger = get_logger("pipeline.drafting")


def build_evidence_excerpt(content: str, start_line: int, end_line: int, max_lines: int = MAX_EXCERPT_LINES) -> str:
    """Number the lines of ``[start_line, end_line]``, capped at ``max_lines``."""
    lines = content.split("\n")
    last = min(end_line, start_line + max_lines - 1, len(lines))
    return "\n".join(
        f"{number:>5} | {lines[number - 1]}" for number in range(start_line, last + 1)
    )


def draft_page(
    repo_slug: str,
    subsystem: Subsystem,
    evidence: Optional[SubsystemEvidence],
    files: Mapping[str, RepoFileContent],
    *,
    owner: str,
    repo: str,
    sha: str,
    generator: Generator,
    prompts: PromptBuilder,
) -> WikiPage:
    if evidence is None or not evidence.evidence:
        raise MissingSubsystemEvidenceError(
            f"Evidence was not computed for subsystem {subsystem.id}",
            details={"subsystemId": subsystem.id},
        )

    excerpts: List[EvidenceExcerpt] = []
    for item in evidence.evidence:
        file = files.get(item.path)
        if file is None:
            continue
        excerpts.append(
            EvidenceExcerpt(
                path=item.path,
                start_line=item.start_line,
                end_line=item.end_line,
                rationale=item.rationale,
                excerpt=build_evidence_excerpt(file.content, item.start_line, item.end_line),
            )
        )

    prompt = prompts.wiki_page(repo_slug, subsystem, excerpts)
    draft = generator.generate(prompt, WikiDraftSchema, temperature=0.2)

    linked = link_citations(
        draft.markdown,
        owner=owner,
        repo=repo,
        sha=sha,
        line_counts=build_line_counts(files.values()),
    )
    if not linked.citations:
        raise MissingWikiCitationsError(
            f"Wiki page for {subsystem.id} has no valid citations",
            details={"subsystemId": subsystem.id},
        )
    if len(linked.markdown) < MIN_MARKDOWN_CHARS:
        raise GenerationError(
            f"Wiki page for {subsystem.id} is too short",
            details={"subsystemId": subsystem.id, "length": len(linked.markdown)},
        )

    logger.info("Drafted page for %s with %d citations", subsystem.id, len(linked.citations))
    return WikiPage(
        subsystem_id=subsystem.id,
        subsystem_name=subsystem.name,
        markdown=linked.markdown,
        citations=linked.citations,
    )


__all__ = ["MAX_EXCERPT_LINES", "build_evidence_excerpt", "draft_page"]
