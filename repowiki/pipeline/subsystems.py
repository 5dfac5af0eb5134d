"""Subsystem extraction with the technical-layer naming guardrail."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from ..errors import InvalidSubsystemNamesError
from ..llm.schemas import SubsystemListSchema
from ..llm.structured import Generator
from ..logging import get_logger
from ..models import RepoFileContent, Subsystem, SubsystemList
from ..prompting import FORBIDDEN_SUBSYSTEM_NAMES, PromptBuilder

FORBIDDEN_NAME_SET = frozenset(name.lower() for name in FORBIDDEN_SUBSYSTEM_NAMES)

logger = get_logger("pipeline.subsystems")


def forbidden_subsystem_names(subsystems: Iterable[Subsystem]) -> List[str]:
    """Return the names that collide with a technical-layer word."""
    return [
        subsystem.name
        for subsystem in subsystems
        if subsystem.name.strip().lower() in FORBIDDEN_NAME_SET
    ]


def validate_subsystem_names(subsystem_list: SubsystemList) -> SubsystemList:
    """Reject the whole list when any subsystem carries a forbidden name."""
    offending = forbidden_subsystem_names(subsystem_list.subsystems)
    if offending:
        raise InvalidSubsystemNamesError(
            "Model produced invalid subsystem names",
            details={
                "offendingNames": offending,
                "forbiddenNames": list(FORBIDDEN_SUBSYSTEM_NAMES),
            },
        )
    return subsystem_list


def extract_subsystems(
    repo_slug: str,
    tree_paths: Sequence[str],
    signal_files: Sequence[RepoFileContent],
    *,
    generator: Generator,
    prompts: PromptBuilder,
) -> SubsystemList:
    prompt = prompts.subsystems(repo_slug, tree_paths, signal_files)
    output = generator.generate(prompt, SubsystemListSchema, temperature=0.2)
    subsystem_list = validate_subsystem_names(output.to_subsystem_list())
    logger.info(
        "Extracted %d subsystems: %s",
        len(subsystem_list.subsystems),
        ", ".join(subsystem.id for subsystem in subsystem_list.subsystems),
    )
    return subsystem_list


__all__ = [
    "FORBIDDEN_NAME_SET",
    "extract_subsystems",
    "forbidden_subsystem_names",
    "validate_subsystem_names",
]
