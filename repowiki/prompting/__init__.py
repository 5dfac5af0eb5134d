"""Prompt construction for the generation stages."""

from .builder import PromptBuilder
from .constants import FORBIDDEN_SUBSYSTEM_NAMES, WIKI_SECTION_HEADINGS

__all__ = ["FORBIDDEN_SUBSYSTEM_NAMES", "PromptBuilder", "WIKI_SECTION_HEADINGS"]
