"""Path filtering for raw repository tree listings."""

from __future__ import annotations

from typing import Iterable, List

_SKIP_DIR_SEGMENTS = {
    "node_modules",
    ".agents",
    ".claude",
    ".next",
    "dist",
    "build",
    "coverage",
    ".coverage",
    ".git",
    ".turbo",
    ".cache",
    "vendor",
    "test",
    "tests",
    "__tests__",
}

_LOCKFILE_NAMES = {
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "bun.lockb",
    "Cargo.lock",
    "composer.lock",
}

_BINARY_EXTENSIONS = {
    "png",
    "jpg",
    "jpeg",
    "gif",
    "ico",
    "webp",
    "pdf",
    "zip",
    "tar",
    "gz",
    "mp3",
    "mp4",
    "mov",
    "wasm",
    "exe",
    "dll",
}


def should_include_path(path: str) -> bool:
    """Return True when the path is worth showing to later pipeline stages."""
    if not path or path.endswith("/"):
        return False

    segments = path.split("/")
    if any(segment in _SKIP_DIR_SEGMENTS for segment in segments):
        return False

    file_name = segments[-1]
    if file_name in _LOCKFILE_NAMES:
        return False

    extension = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
    if extension and extension in _BINARY_EXTENSIONS:
        return False

    return True


def filter_paths(raw_paths: Iterable[str]) -> List[str]:
    """Strip, deduplicate and filter a raw path listing, keeping first-seen order."""
    seen: set[str] = set()
    cleaned: List[str] = []
    for raw in raw_paths:
        path = raw.strip()
        if path in seen:
            continue
        seen.add(path)
        if should_include_path(path):
            cleaned.append(path)
    return cleaned


__all__ = ["filter_paths", "should_include_path"]
