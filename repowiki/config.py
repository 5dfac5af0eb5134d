"""Configuration loading for repowiki (.repowiki.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import yaml

from .logging import get_logger

CONFIG_FILENAME = ".repowiki.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class LLMConfig:
    """Generation backend settings."""

    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    request_timeout: Optional[float] = None


@dataclass
class GitHubConfig:
    """Repository host client settings."""

    token: Optional[str] = None
    api_url: str = "https://api.github.com"
    max_file_bytes: int = 150_000
    max_retries: int = 3
    fetch_concurrency: int = 6
    request_timeout: float = 30.0


@dataclass
class PipelineConfig:
    """Bounds applied by the pipeline stages."""

    concurrency: int = 4
    max_evidence_files: int = 8
    context_max_lines: int = 220
    context_head_lines: int = 150
    context_tail_lines: int = 60


@dataclass
class CacheConfig:
    """Where analyze records are persisted."""

    directory: Optional[Path] = None


@dataclass
class RepoWikiConfig:
    """Represents the settings defined in .repowiki.yml."""

    root: Path
    llm: LLMConfig = field(default_factory=LLMConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    templates_dir: Optional[Path] = None


def load_config(config_path: Path) -> RepoWikiConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        config = RepoWikiConfig(root=root)
        config.cache.directory = root / ".cache" / "analyze"
        _apply_environment(config)
        return config

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    llm_data = _as_dict(data.get("llm"))
    llm = LLMConfig(
        model=_as_str(llm_data.get("model")),
        base_url=_as_str(llm_data.get("base_url")),
        api_key=_as_str(llm_data.get("api_key")),
        temperature=_as_float(llm_data.get("temperature")),
        max_tokens=_as_int(llm_data.get("max_tokens")),
        request_timeout=_as_float(llm_data.get("request_timeout")),
    )

    github_data = _as_dict(data.get("github"))
    github = GitHubConfig()
    github.token = _as_str(github_data.get("token"))
    github.api_url = _as_str(github_data.get("api_url")) or github.api_url
    github.max_file_bytes = _positive(github_data.get("max_file_bytes"), github.max_file_bytes)
    github.max_retries = _non_negative(github_data.get("max_retries"), github.max_retries)
    github.fetch_concurrency = _positive(
        github_data.get("fetch_concurrency"), github.fetch_concurrency
    )
    github.request_timeout = _as_float(github_data.get("request_timeout")) or github.request_timeout

    pipeline_data = _as_dict(data.get("pipeline"))
    pipeline = PipelineConfig()
    pipeline.concurrency = _positive(pipeline_data.get("concurrency"), pipeline.concurrency)
    pipeline.max_evidence_files = _positive(
        pipeline_data.get("max_evidence_files"), pipeline.max_evidence_files
    )
    pipeline.context_max_lines = _positive(
        pipeline_data.get("context_max_lines"), pipeline.context_max_lines
    )
    pipeline.context_head_lines = _positive(
        pipeline_data.get("context_head_lines"), pipeline.context_head_lines
    )
    pipeline.context_tail_lines = _positive(
        pipeline_data.get("context_tail_lines"), pipeline.context_tail_lines
    )

    cache_data = _as_dict(data.get("cache"))
    cache_dir = _as_str(cache_data.get("directory"))
    cache = CacheConfig(directory=root / (cache_dir or ".cache/analyze"))

    prompts_data = _as_dict(data.get("prompts"))
    templates_dir_str = _as_str(prompts_data.get("templates_dir"))
    templates_dir = root / templates_dir_str if templates_dir_str else None

    config = RepoWikiConfig(
        root=root,
        llm=llm,
        github=github,
        pipeline=pipeline,
        cache=cache,
        templates_dir=templates_dir,
    )
    _apply_environment(config)
    return config


def load_config_or_default(root: Path) -> RepoWikiConfig:
    """Like :func:`load_config`, but an invalid file degrades to defaults with a warning."""
    try:
        return load_config(root)
    except ConfigError as exc:
        get_logger("config").warning("Ignoring invalid configuration: %s", exc)
        return RepoWikiConfig(root=root)


def _apply_environment(config: RepoWikiConfig) -> None:
    if not config.github.token:
        config.github.token = _first_env_value(("REPOWIKI_GITHUB_TOKEN", "GITHUB_TOKEN"))
    cache_override = os.getenv("REPOWIKI_CACHE_DIR")
    if cache_override:
        config.cache.directory = Path(cache_override).expanduser()


def _first_env_value(keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = os.getenv(key)
        if value:
            return value
    return None


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _positive(value: Any, default: int) -> int:
    parsed = _as_int(value)
    return parsed if parsed is not None and parsed > 0 else default


def _non_negative(value: Any, default: int) -> int:
    parsed = _as_int(value)
    return parsed if parsed is not None and parsed >= 0 else default


__all__ = [
    "CONFIG_FILENAME",
    "CacheConfig",
    "ConfigError",
    "GitHubConfig",
    "LLMConfig",
    "PipelineConfig",
    "RepoWikiConfig",
    "load_config",
    "load_config_or_default",
]
