"""Persistence for analyze results."""

from .analyze_cache import AnalyzeCache, build_cache_key, record_from_dict

__all__ = ["AnalyzeCache", "build_cache_key", "record_from_dict"]
