"""Deterministic lexical ranking of repository paths per subsystem.

This is the only stage whose output is fully reproducible: it decides which
files the generation backend ever sees for a subsystem, so it must not depend
on anything but its inputs.
"""

from __future__ import annotations

import re
from typing import Dict, List, Sequence, Set

from ..models import ScoredPath, Subsystem

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")

RELEVANT_PATH_BONUS = 12.0
ENTRY_POINT_BONUS = 10.0
KEYWORD_SEGMENT_BONUS = 1.4
ID_SUBSTRING_BONUS = 3.0
NAME_SUBSTRING_BONUS = 2.0

_SOURCE_EXTENSIONS = {
    "ts",
    "tsx",
    "js",
    "jsx",
    "mjs",
    "cjs",
    "py",
    "go",
    "rs",
    "java",
    "kt",
    "rb",
    "php",
    "cs",
    "swift",
    "scala",
    "c",
    "cc",
    "cpp",
    "h",
    "hpp",
}
_DOC_CONFIG_EXTENSIONS = {
    "md",
    "mdx",
    "rst",
    "txt",
    "json",
    "yaml",
    "yml",
    "toml",
    "ini",
    "cfg",
    "lock",
}


def tokenize(text: str) -> List[str]:
    """Lowercase, split on non-alphanumerics and drop tokens shorter than 3 chars."""
    return [token for token in _TOKEN_SPLIT.split(text.lower()) if len(token) >= 3]


def build_keywords(subsystem: Subsystem) -> Set[str]:
    parts = [
        subsystem.id,
        subsystem.name,
        subsystem.description,
        subsystem.user_journey,
        *subsystem.relevant_paths,
        *subsystem.entry_points,
    ]
    return set(tokenize(" ".join(parts)))


def extension_weight(path: str) -> float:
    file_name = path.rsplit("/", 1)[-1]
    extension = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
    if extension in _SOURCE_EXTENSIONS:
        return 2.0
    if extension in _DOC_CONFIG_EXTENSIONS:
        return 0.5
    return 1.0


def score_path(path: str, subsystem: Subsystem, keywords: Set[str]) -> float:
    score = 0.0
    if path in subsystem.relevant_paths:
        score += RELEVANT_PATH_BONUS
    if path in subsystem.entry_points:
        score += ENTRY_POINT_BONUS
    for token in tokenize(path):
        if token in keywords:
            score += KEYWORD_SEGMENT_BONUS
    lowered = path.lower()
    if subsystem.id and subsystem.id in lowered:
        score += ID_SUBSTRING_BONUS
    hyphenated_name = subsystem.name.lower().replace(" ", "-")
    if hyphenated_name and hyphenated_name in lowered:
        score += NAME_SUBSTRING_BONUS
    return score + extension_weight(path)


def score_paths(subsystem: Subsystem, tree_paths: Sequence[str], max_files: int = 8) -> List[ScoredPath]:
    """Rank ``tree_paths`` by relevance to ``subsystem``.

    Ties are broken by ascending path so repeated calls give identical output.
    """
    keywords = build_keywords(subsystem)
    scored = [ScoredPath(path=path, score=score_path(path, subsystem, keywords)) for path in dict.fromkeys(tree_paths)]
    ranked = sorted((item for item in scored if item.score > 0), key=lambda item: (-item.score, item.path))
    return ranked[:max_files]


def select_evidence_paths(
    subsystems: Sequence[Subsystem],
    tree_paths: Sequence[str],
    max_files: int = 8,
) -> Dict[str, List[ScoredPath]]:
    """Score every subsystem against the cleaned tree, keyed by subsystem id."""
    return {subsystem.id: score_paths(subsystem, tree_paths, max_files) for subsystem in subsystems}


__all__ = [
    "build_keywords",
    "extension_weight",
    "score_path",
    "score_paths",
    "select_evidence_paths",
    "tokenize",
]
