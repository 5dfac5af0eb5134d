"""Repository question answering over a cached analysis."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterator, Optional, Protocol, Sequence

from .config import RepoWikiConfig, load_config_or_default
from .errors import InvalidRequestError
from .llm.runner import LLMRunner
from .logging import get_logger
from .models import AnalyzeCacheRecord, ChatMessage, QAContext
from .prompting import PromptBuilder

MAX_QA_MESSAGES = 30
QA_TEMPERATURE = 0.2


class ChatStreamer(Protocol):
    def stream_chat(
        self,
        messages: Sequence[Dict[str, str]],
        *,
        system: str | None = None,
        temperature: Optional[float] = None,
    ) -> Iterator[str]:
        ...


class QAAssistant:
    """Answers follow-up questions about a repository, optionally grounded in its wiki."""

    def __init__(
        self,
        config: RepoWikiConfig | None = None,
        *,
        runner: ChatStreamer | None = None,
        prompt_builder: PromptBuilder | None = None,
    ) -> None:
        self.config = config or load_config_or_default(Path.cwd())
        self.runner = runner or LLMRunner.from_config(self.config.llm)
        self.prompt_builder = prompt_builder or PromptBuilder(self.config.templates_dir)
        self.logger = get_logger("qa")

    def stream_answer(
        self,
        messages: Sequence[ChatMessage],
        context: QAContext | None = None,
    ) -> Iterator[str]:
        """Start a streamed answer to the last turn of ``messages``.

        Only the most recent turns are sent. Backend connection errors raise
        here; errors while streaming raise from the returned iterator.
        """
        if not messages:
            raise InvalidRequestError("At least one message is required.")
        recent = list(messages)[-MAX_QA_MESSAGES:]
        self.logger.info(
            "Answering repository question",
            extra={
                "meta": {
                    "repo": context.repo if context else None,
                    "messages": len(recent),
                    "grounded": context is not None,
                }
            },
        )
        return self.runner.stream_chat(
            [{"role": message.role, "content": message.content} for message in recent],
            system=self.prompt_builder.qa(context),
            temperature=QA_TEMPERATURE,
        )

    def answer(self, messages: Sequence[ChatMessage], context: QAContext | None = None) -> str:
        return "".join(self.stream_answer(messages, context))


def context_from_record(record: AnalyzeCacheRecord) -> QAContext:
    """Project a cached analysis onto the facts a Q&A prompt uses."""
    result = record.result
    return QAContext(
        repo=f"{record.owner}/{record.repo}",
        head_sha=record.head_sha,
        product_summary=result.product_summary,
        subsystems=[(subsystem.name, subsystem.description) for subsystem in result.subsystems],
        wiki_pages=[(page.subsystem_name, page.markdown) for page in result.wiki_pages],
    )


__all__ = ["MAX_QA_MESSAGES", "QA_TEMPERATURE", "QAAssistant", "context_from_record"]
