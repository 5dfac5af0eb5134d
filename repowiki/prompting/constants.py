"""Shared constants for prompting and output guardrails."""

from __future__ import annotations

FORBIDDEN_SUBSYSTEM_NAMES: tuple[str, ...] = (
    "frontend",
    "backend",
    "api",
    "utils",
    "shared",
    "database",
    "infrastructure",
)

WIKI_SECTION_HEADINGS: tuple[str, ...] = (
    "Overview",
    "How It Works",
    "User Flow",
    "Entry Points",
    "Data Models",
    "External Dependencies",
    "Gotchas",
)

MAX_PROMPT_TREE_PATHS = 800
MAX_PROMPT_SIGNAL_FILES = 20
MAX_SIGNAL_SNIPPET_LINES = 120

MAX_QA_SUBSYSTEMS = 12
MAX_QA_PAGE_CHARS = 22_000


__all__ = [
    "FORBIDDEN_SUBSYSTEM_NAMES",
    "MAX_PROMPT_SIGNAL_FILES",
    "MAX_PROMPT_TREE_PATHS",
    "MAX_QA_PAGE_CHARS",
    "MAX_QA_SUBSYSTEMS",
    "MAX_SIGNAL_SNIPPET_LINES",
    "WIKI_SECTION_HEADINGS",
]
