"""Schema-constrained generation on top of :class:`LLMRunner`."""

from __future__ import annotations

import json
from typing import Optional, Protocol, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import GenerationError
from ..logging import get_logger

T = TypeVar("T", bound=BaseModel)


class TextRunner(Protocol):
    def run(self, prompt: str, *, system: str | None = None, temperature: Optional[float] = None) -> str:
        """Return the raw completion text for ``prompt``."""


class Generator(Protocol):
    """Anything that turns a prompt into an instance of a pydantic schema."""

    def generate(self, prompt: str, schema: Type[T], *, temperature: Optional[float] = None) -> T:
        """Return a validated instance of ``schema``."""


class StructuredGenerator:
    """Asks the runner for JSON matching a schema and validates the reply."""

    SYSTEM_PROMPT = (
        "You are a precise software analyst documenting a code repository. "
        "Only state facts visible in the provided files and respond with JSON only."
    )

    def __init__(self, runner: TextRunner) -> None:
        self._runner = runner
        self.logger = get_logger("llm")

    def generate(self, prompt: str, schema: Type[T], *, temperature: Optional[float] = None) -> T:
        full_prompt = self._append_schema(prompt, schema)
        self.logger.debug("Requesting %s (%d prompt chars)", schema.__name__, len(full_prompt))
        response = self._runner.run(full_prompt, system=self.SYSTEM_PROMPT, temperature=temperature)
        return self.parse(response, schema)

    @classmethod
    def parse(cls, response_text: str, schema: Type[T]) -> T:
        """Extract JSON from ``response_text`` and validate it against ``schema``."""
        text = cls._strip_code_fence(response_text)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise GenerationError(
                f"Model response for {schema.__name__} is not valid JSON",
                details={"schema": schema.__name__},
            ) from exc
        try:
            return schema.model_validate(data)
        except ValidationError as exc:
            raise GenerationError(
                f"Model response does not match {schema.__name__}",
                details={"schema": schema.__name__, "errors": exc.error_count()},
            ) from exc

    @staticmethod
    def _append_schema(prompt: str, schema: Type[BaseModel]) -> str:
        schema_json = json.dumps(schema.model_json_schema(by_alias=True), indent=2)
        return (
            f"{prompt}\n\n# OUTPUT FORMAT\n\n"
            f"You MUST respond with valid JSON matching this schema:\n\n```json\n{schema_json}\n```"
        )

    @staticmethod
    def _strip_code_fence(response_text: str) -> str:
        text = response_text.strip()
        if "```json" in text:
            start = text.find("```json") + 7
            end = text.find("```", start)
            return text[start:end if end != -1 else None].strip()
        if "```" in text:
            start = text.find("```") + 3
            end = text.find("```", start)
            return text[start:end if end != -1 else None].strip()
        return text


__all__ = ["Generator", "StructuredGenerator", "TextRunner"]
