"""Evidence-grounded generation pipeline stages."""

from .drafting import build_evidence_excerpt, draft_page
from .evidence import build_fallback_evidence, map_evidence, validate_evidence_items
from .scoring import score_paths, select_evidence_paths, tokenize
from .signals import select_signal_paths, validate_signal_paths
from .subsystems import extract_subsystems, validate_subsystem_names

__all__ = [
    "build_evidence_excerpt",
    "build_fallback_evidence",
    "draft_page",
    "extract_subsystems",
    "map_evidence",
    "score_paths",
    "select_evidence_paths",
    "select_signal_paths",
    "tokenize",
    "validate_evidence_items",
    "validate_signal_paths",
    "validate_subsystem_names",
]
