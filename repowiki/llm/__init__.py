"""Generation backend adapters."""

from .runner import LLMRunner
from .structured import StructuredGenerator

__all__ = ["LLMRunner", "StructuredGenerator"]
