"""Pipeline orchestration for analyze runs."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Dict, List

from .config import RepoWikiConfig, load_config_or_default
from .errors import CacheNotFoundError, EmptyFileTreeError
from .filters import filter_paths
from .github.client import GitHubClient
from .llm.runner import LLMRunner
from .llm.structured import Generator, StructuredGenerator
from .logging import get_logger
from .models import (
    AnalyzeCacheRecord,
    AnalyzeOutcome,
    AnalyzeResult,
    RepoFileContent,
    Subsystem,
    SubsystemEvidence,
    WikiPage,
)
from .pipeline.concurrency import run_bounded
from .pipeline.drafting import draft_page
from .pipeline.evidence import map_evidence
from .pipeline.scoring import select_evidence_paths
from .pipeline.signals import select_signal_paths
from .pipeline.subsystems import extract_subsystems
from .prompting import PromptBuilder
from .repo_url import ParsedRepo, parse_repo_url
from .stores import AnalyzeCache, build_cache_key


class Orchestrator:
    """Coordinates a single all-or-nothing analyze run per request."""

    def __init__(
        self,
        config: RepoWikiConfig | None = None,
        *,
        github: GitHubClient | None = None,
        generator: Generator | None = None,
        prompt_builder: PromptBuilder | None = None,
        cache: AnalyzeCache | None = None,
    ) -> None:
        self.config = config or load_config_or_default(Path.cwd())
        self.github = github or self._build_github_client(self.config)
        self.generator = generator or StructuredGenerator(LLMRunner.from_config(self.config.llm))
        self.prompt_builder = prompt_builder or PromptBuilder(self.config.templates_dir)
        self.cache = cache or AnalyzeCache(self.config.cache.directory)
        self.logger = get_logger("orchestrator")

    def run_analyze(self, repo_url: str, *, force_refresh: bool = False) -> AnalyzeOutcome:
        """Analyze the default branch head of ``repo_url``, reusing a cached snapshot when present."""
        parsed = parse_repo_url(repo_url)
        head = self.github.get_repo_head(parsed.owner, parsed.repo)
        cache_key = build_cache_key(parsed.owner, parsed.repo, head.head_sha)
        self.logger.info("Starting analyze run for %s@%s", parsed.slug, head.head_sha[:7])

        if not force_refresh:
            cached = self.cache.get(cache_key)
            if cached is not None:
                self.logger.info("Serving %s from cache", cache_key)
                return AnalyzeOutcome(source="cache", record=cached)

        outcome = self._run_fresh(parsed, head.head_sha, cache_key)
        outcome.default_branch = head.default_branch
        return outcome

    def load_cached(self, owner: str, repo: str) -> AnalyzeOutcome:
        record = self.cache.latest_for_repo(owner, repo)
        if record is None:
            raise CacheNotFoundError(
                "No cached analysis found for this repository.",
                details={"owner": owner, "repo": repo},
            )
        return AnalyzeOutcome(source="cache", record=record)

    def list_recent(self, limit: int = 3) -> List[AnalyzeCacheRecord]:
        return self.cache.list_recent(limit)

    def _run_fresh(self, parsed: ParsedRepo, sha: str, cache_key: str) -> AnalyzeOutcome:
        pipeline_cfg = self.config.pipeline
        repo_files = self.github.get_file_tree(parsed.owner, parsed.repo, sha)
        tree_paths = filter_paths(file.path for file in repo_files)
        if not tree_paths:
            raise EmptyFileTreeError(
                "Repository has no analyzable files.", details={"repo": parsed.slug}
            )
        self.logger.debug("Tree has %d eligible paths", len(tree_paths))

        signal_paths = select_signal_paths(
            parsed.slug, tree_paths, generator=self.generator, prompts=self.prompt_builder
        )
        signal_files = self.github.get_file_contents(parsed.owner, parsed.repo, sha, signal_paths)
        extracted = extract_subsystems(
            parsed.slug,
            tree_paths,
            signal_files,
            generator=self.generator,
            prompts=self.prompt_builder,
        )

        ranked = select_evidence_paths(
            extracted.subsystems, tree_paths, max_files=pipeline_cfg.max_evidence_files
        )
        evidence_paths = list(
            dict.fromkeys(item.path for scored in ranked.values() for item in scored)
        )
        fetched = self.github.get_file_contents(parsed.owner, parsed.repo, sha, evidence_paths)
        files: Dict[str, RepoFileContent] = {file.path: file for file in fetched}
        self.logger.info("Fetched %d evidence files for %d subsystems", len(files), len(ranked))

        def _map(subsystem: Subsystem) -> SubsystemEvidence:
            return map_evidence(
                parsed.slug,
                subsystem,
                files,
                [item.path for item in ranked.get(subsystem.id, [])],
                generator=self.generator,
                prompts=self.prompt_builder,
                max_lines=pipeline_cfg.context_max_lines,
                head_lines=pipeline_cfg.context_head_lines,
                tail_lines=pipeline_cfg.context_tail_lines,
            )

        evidence = run_bounded(_map, extracted.subsystems, max_workers=pipeline_cfg.concurrency)
        evidence_by_id = {item.subsystem_id: item for item in evidence}

        def _draft(subsystem: Subsystem) -> WikiPage:
            return draft_page(
                parsed.slug,
                subsystem,
                evidence_by_id.get(subsystem.id),
                files,
                owner=parsed.owner,
                repo=parsed.repo,
                sha=sha,
                generator=self.generator,
                prompts=self.prompt_builder,
            )

        pages = run_bounded(_draft, extracted.subsystems, max_workers=pipeline_cfg.concurrency)

        record = AnalyzeCacheRecord(
            cache_key=cache_key,
            owner=parsed.owner,
            repo=parsed.repo,
            head_sha=sha,
            created_at=datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            result=AnalyzeResult(
                product_summary=extracted.product_summary,
                subsystems=extracted.subsystems,
                wiki_pages=pages,
            ),
        )
        self.cache.put(record)
        self.logger.info("Analyze run for %s completed with %d pages", parsed.slug, len(pages))
        return AnalyzeOutcome(
            source="fresh",
            record=record,
            signal_paths=signal_paths,
            evidence=evidence,
        )

    @staticmethod
    def _build_github_client(config: RepoWikiConfig) -> GitHubClient:
        github_cfg = config.github
        return GitHubClient(
            github_cfg.token,
            api_url=github_cfg.api_url,
            max_file_bytes=github_cfg.max_file_bytes,
            max_retries=github_cfg.max_retries,
            fetch_concurrency=github_cfg.fetch_concurrency,
            request_timeout=github_cfg.request_timeout,
        )


__all__ = ["Orchestrator"]
