"""Signal file selection."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from ..errors import EmptyFileTreeError, InvalidSignalPathsError
from ..llm.schemas import SignalPathSelection
from ..llm.structured import Generator
from ..logging import get_logger
from ..prompting import PromptBuilder

logger = get_logger("pipeline.signals")


def validate_signal_paths(candidates: Iterable[str], tree_paths: Sequence[str]) -> List[str]:
    """Deduplicate model-proposed paths and keep only those present in the tree."""
    available = set(tree_paths)
    selected: List[str] = []
    seen: set[str] = set()
    for path in candidates:
        if path in seen:
            continue
        seen.add(path)
        if path in available:
            selected.append(path)
        else:
            logger.debug("Dropping signal path not present in tree: %s", path)
    return selected


def select_signal_paths(
    repo_slug: str,
    tree_paths: Sequence[str],
    *,
    generator: Generator,
    prompts: PromptBuilder,
) -> List[str]:
    """Ask the backend for representative files and keep the ones that exist."""
    if not tree_paths:
        raise EmptyFileTreeError("Repository has no eligible files after filtering")

    prompt = prompts.signal_paths(repo_slug, tree_paths)
    selection = generator.generate(prompt, SignalPathSelection, temperature=0.1)
    selected = validate_signal_paths(selection.paths, tree_paths)
    if not selected:
        raise InvalidSignalPathsError(
            "Model did not return usable signal paths",
            details={"returned": len(selection.paths)},
        )
    logger.info("Selected %d signal paths out of %d", len(selected), len(tree_paths))
    return selected


__all__ = ["select_signal_paths", "validate_signal_paths"]
