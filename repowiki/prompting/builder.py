"""Builds generation prompts from Jinja templates."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ..models import QAContext, RepoFileContent, Subsystem
from .constants import (
    FORBIDDEN_SUBSYSTEM_NAMES,
    MAX_PROMPT_SIGNAL_FILES,
    MAX_PROMPT_TREE_PATHS,
    MAX_QA_PAGE_CHARS,
    MAX_QA_SUBSYSTEMS,
    MAX_SIGNAL_SNIPPET_LINES,
    WIKI_SECTION_HEADINGS,
)


@dataclass
class FileContext:
    """A numbered excerpt of one candidate file."""

    path: str
    excerpt: str
    total_lines: int


@dataclass
class EvidenceExcerpt:
    """A cited range with the numbered lines the drafter may quote."""

    path: str
    start_line: int
    end_line: int
    rationale: str
    excerpt: str


class PromptBuilder:
    """Renders the pipeline and Q&A prompts."""

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir
        self._env = self._create_env(templates_dir)

    def signal_paths(self, repo_slug: str, tree_paths: Sequence[str]) -> str:
        return self._render("signal_paths.j2", repo_slug=repo_slug, tree_paths=list(tree_paths))

    def subsystems(
        self,
        repo_slug: str,
        tree_paths: Sequence[str],
        signal_files: Sequence[RepoFileContent],
    ) -> str:
        snippets: List[Dict[str, str]] = []
        for file in list(signal_files)[:MAX_PROMPT_SIGNAL_FILES]:
            snippet = "\n".join(file.content.split("\n")[:MAX_SIGNAL_SNIPPET_LINES])
            snippets.append({"path": file.path, "snippet": snippet})
        return self._render(
            "subsystems.j2",
            repo_slug=repo_slug,
            tree_paths=list(tree_paths)[:MAX_PROMPT_TREE_PATHS],
            signal_files=snippets,
            forbidden_names=", ".join(FORBIDDEN_SUBSYSTEM_NAMES),
        )

    def evidence(
        self,
        repo_slug: str,
        subsystem: Subsystem,
        file_contexts: Sequence[FileContext],
    ) -> str:
        return self._render(
            "evidence.j2",
            repo_slug=repo_slug,
            subsystem=subsystem,
            file_contexts=list(file_contexts),
        )

    def wiki_page(
        self,
        repo_slug: str,
        subsystem: Subsystem,
        evidence: Sequence[EvidenceExcerpt],
    ) -> str:
        return self._render(
            "wiki_page.j2",
            repo_slug=repo_slug,
            subsystem=subsystem,
            evidence=list(evidence),
            headings=WIKI_SECTION_HEADINGS,
        )

    def qa(self, context: QAContext | None) -> str:
        """System prompt for a Q&A turn, grounded in ``context`` when one is given."""
        if context is None:
            return self._render("qa.j2", context=None, subsystems=[], page_context="")
        page_context = "\n\n".join(
            f"## {name}\n{markdown}" for name, markdown in context.wiki_pages
        )[:MAX_QA_PAGE_CHARS]
        return self._render(
            "qa.j2",
            context=context,
            subsystems=list(context.subsystems)[:MAX_QA_SUBSYSTEMS],
            page_context=page_context,
        )

    def _render(self, template_name: str, **context: object) -> str:
        template = self._env.get_template(template_name)
        return template.render(**context).strip() + "\n"

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories: List[str] = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(Path(__file__).with_name("templates")))
        loader = FileSystemLoader(directories)
        return Environment(
            loader=loader,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )


__all__ = ["EvidenceExcerpt", "FileContext", "PromptBuilder"]
