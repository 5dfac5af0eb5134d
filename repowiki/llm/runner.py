"""Adapter around an OpenAI-compatible chat completions endpoint."""

from __future__ import annotations

import json
import os
import socket
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Iterator, List, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import GenerationError, PipelineError

if TYPE_CHECKING:
    from ..config import LLMConfig

_AUTO_API_KEY = object()

ChatMessages = List[Dict[str, str]]


@dataclass
class LLMRequest:
    """Represents a single completion request."""

    prompt: str
    system: Optional[str]
    model: str
    temperature: Optional[float]
    max_tokens: Optional[int]
    base_url: str
    api_key: Optional[str]
    request_timeout: Optional[float]
    messages: Optional[ChatMessages] = None


class LLMRunner:
    """Executes prompts against the configured chat completions backend."""

    DEFAULT_MODEL = "openai/gpt-5-mini"
    DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
    ENV_MODEL_KEYS = ("REPOWIKI_LLM_MODEL", "OPENAI_MODEL")
    ENV_BASE_URL_KEYS = ("REPOWIKI_LLM_BASE_URL", "OPENAI_BASE_URL")
    ENV_API_KEY_KEYS = ("REPOWIKI_LLM_API_KEY", "OPENAI_API_KEY")

    def __init__(
        self,
        model: str | None = None,
        *,
        base_url: str | None = None,
        temperature: Optional[float] = 0.2,
        max_tokens: Optional[int] = None,
        api_key: str | None | object = _AUTO_API_KEY,
        request_timeout: Optional[float] = 120.0,
        runner: Callable[[LLMRequest], str] | None = None,
        streamer: Callable[[LLMRequest], Iterable[str]] | None = None,
    ) -> None:
        self.model = model or self._first_env_value(self.ENV_MODEL_KEYS) or self.DEFAULT_MODEL
        resolved_url = base_url or self._first_env_value(self.ENV_BASE_URL_KEYS) or self.DEFAULT_BASE_URL
        self.base_url = resolved_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        if api_key is _AUTO_API_KEY:
            self.api_key = self._first_env_value(self.ENV_API_KEY_KEYS)
        else:
            self.api_key = api_key  # type: ignore[assignment]
        self.request_timeout = request_timeout
        self._runner = runner or self._http_runner
        self._streamer = streamer or self._http_streamer

    @classmethod
    def from_config(cls, llm_cfg: "LLMConfig") -> "LLMRunner":
        """Build a runner, letting unset config values fall back to env and defaults."""
        kwargs: Dict[str, object] = {}
        if llm_cfg.model:
            kwargs["model"] = llm_cfg.model
        if llm_cfg.base_url:
            kwargs["base_url"] = llm_cfg.base_url
        if llm_cfg.api_key is not None:
            kwargs["api_key"] = llm_cfg.api_key
        if llm_cfg.temperature is not None:
            kwargs["temperature"] = llm_cfg.temperature
        if llm_cfg.max_tokens is not None:
            kwargs["max_tokens"] = llm_cfg.max_tokens
        if llm_cfg.request_timeout is not None:
            kwargs["request_timeout"] = llm_cfg.request_timeout
        return cls(**kwargs)  # type: ignore[arg-type]

    def run(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Send the prompt and return the response text."""
        return self._runner(self._request(prompt, system, temperature))

    def stream_chat(
        self,
        messages: Sequence[Dict[str, str]],
        *,
        system: str | None = None,
        temperature: Optional[float] = None,
    ) -> Iterator[str]:
        """Start a streamed multi-turn completion and return its text chunks.

        Connection and authentication failures raise here, before the first
        chunk; failures while reading raise from the returned iterator.
        """
        request = self._request("", system, temperature, messages=[dict(message) for message in messages])
        return iter(self._streamer(request))

    def _request(
        self,
        prompt: str,
        system: str | None,
        temperature: Optional[float],
        *,
        messages: Optional[ChatMessages] = None,
    ) -> LLMRequest:
        return LLMRequest(
            prompt=prompt,
            system=system,
            model=self.model,
            temperature=temperature if temperature is not None else self.temperature,
            max_tokens=self.max_tokens,
            base_url=self.base_url,
            api_key=self.api_key,
            request_timeout=self.request_timeout,
            messages=messages,
        )

    @staticmethod
    def _http_runner(request: LLMRequest) -> str:
        with LLMRunner._open(request, stream=False) as response:
            raw = response.read()
        try:
            response_payload = json.loads(raw.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise GenerationError("LLM backend returned invalid JSON") from exc

        content = LLMRunner._extract_content(response_payload)
        if not content:
            raise GenerationError("LLM backend returned an empty response")
        return content.strip()

    @staticmethod
    def _http_streamer(request: LLMRequest) -> Iterator[str]:
        response = LLMRunner._open(request, stream=True)
        return LLMRunner._iter_events(response)

    @staticmethod
    def _open(request: LLMRequest, *, stream: bool):
        if not request.api_key:
            raise PipelineError(
                "LLM API key is missing",
                code="MISSING_LLM_API_KEY",
                details={"env": list(LLMRunner.ENV_API_KEY_KEYS)},
            )
        endpoint = f"{request.base_url}/chat/completions"
        payload: dict[str, object] = {
            "model": request.model,
            "messages": LLMRunner._build_messages(request),
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        if stream:
            payload["stream"] = True

        data = json.dumps(payload).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {request.api_key}",
        }
        http_request = Request(endpoint, data=data, headers=headers, method="POST")
        timeout = request.request_timeout or 120.0

        try:
            return urlopen(http_request, timeout=timeout)  # type: ignore[arg-type]
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            message = detail.strip() or exc.reason
            raise GenerationError(
                f"LLM request failed with status {exc.code}: {message}",
                details={"status": exc.code},
            ) from exc
        except (socket.timeout, TimeoutError) as exc:
            raise GenerationError(
                f"LLM request timeout after {timeout}s", details={"timeout": timeout}
            ) from exc
        except URLError as exc:
            raise GenerationError(f"LLM request failed: {exc.reason}") from exc

    @staticmethod
    def _iter_events(response) -> Iterator[str]:
        """Yield content deltas from a server-sent events body."""
        with response:
            try:
                for raw_line in response:
                    line = raw_line.decode("utf-8", errors="replace").strip()
                    if not line.startswith("data:"):
                        continue
                    data = line[len("data:") :].strip()
                    if data == "[DONE]":
                        return
                    try:
                        event = json.loads(data)
                    except json.JSONDecodeError as exc:
                        raise GenerationError("LLM stream returned invalid JSON") from exc
                    delta = LLMRunner._extract_delta(event)
                    if delta:
                        yield delta
            except (socket.timeout, TimeoutError) as exc:
                raise GenerationError("LLM stream timed out") from exc
            except OSError as exc:
                raise GenerationError(f"LLM stream interrupted: {exc}") from exc

    @staticmethod
    def _build_messages(request: LLMRequest) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if request.system:
            messages.append({"role": "system", "content": request.system})
        if request.messages is not None:
            messages.extend(request.messages)
        else:
            messages.append({"role": "user", "content": request.prompt})
        return messages

    @staticmethod
    def _extract_content(payload: dict[str, object]) -> str:
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        message = first.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, str):
                return content
        text = first.get("text")
        if isinstance(text, str):
            return text
        return ""

    @staticmethod
    def _extract_delta(event: object) -> str:
        if not isinstance(event, dict):
            return ""
        choices = event.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return ""
        delta = choices[0].get("delta")
        if isinstance(delta, dict) and isinstance(delta.get("content"), str):
            return delta["content"]
        return ""

    @staticmethod
    def _first_env_value(keys: Sequence[str]) -> str | None:
        for key in keys:
            value = os.getenv(key)
            if value:
                return value
        return None


__all__ = ["ChatMessages", "LLMRequest", "LLMRunner"]
