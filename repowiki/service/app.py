"""FastAPI application exposing analyze runs, cached results and repository Q&A."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, Iterator, List, Literal, Optional

from fastapi import Depends, FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..errors import PipelineError
from ..logging import get_logger
from ..models import ChatMessage, QAContext
from ..orchestrator import Orchestrator
from ..qa import QAAssistant

logger = get_logger("service")


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    repo_url: str = Field(min_length=1)
    force_refresh: bool = False


class RecentItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    owner: str
    repo: str
    head_sha: str
    created_at: str


class RecentResponse(BaseModel):
    items: List[RecentItem]


class HealthResponse(BaseModel):
    status: str


class QAMessage(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    role: Literal["user", "assistant"]
    content: str = Field(min_length=1)


class QASubsystem(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str
    description: str


class QAWikiPage(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    subsystem_name: str
    markdown: str


class QAContextPayload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True
    )

    repo: Optional[str] = None
    head_sha: Optional[str] = None
    product_summary: Optional[str] = None
    subsystems: Optional[List[QASubsystem]] = None
    wiki_pages: Optional[List[QAWikiPage]] = None

    def to_context(self) -> QAContext:
        return QAContext(
            repo=self.repo or None,
            head_sha=self.head_sha or None,
            product_summary=self.product_summary or None,
            subsystems=[(item.name, item.description) for item in self.subsystems or []],
            wiki_pages=[(page.subsystem_name, page.markdown) for page in self.wiki_pages or []],
        )


class QARequest(BaseModel):
    messages: List[QAMessage] = Field(min_length=1)
    context: Optional[QAContextPayload] = None


STREAM_ERROR_MESSAGE = "I hit a streaming error. Please retry."


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def _default_assistant() -> QAAssistant:
    return QAAssistant()


def _guard_stream(chunks: Iterator[str]) -> Iterator[str]:
    # Headers are already sent once streaming starts, so failures become a final text chunk.
    try:
        yield from chunks
    except PipelineError as exc:
        logger.error("QA stream error", extra={"meta": {"code": exc.code, "error": exc.message}})
        yield STREAM_ERROR_MESSAGE


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
    assistant_factory: Callable[[], QAAssistant] = _default_assistant,
) -> FastAPI:
    """Create the FastAPI application exposing repowiki operations."""

    app = FastAPI(title="repowiki", version="0.1.0")

    async def get_orchestrator() -> Orchestrator:
        # Lazy-instantiate per request so runs share no mutable state.
        return orchestrator_factory()

    async def get_assistant() -> QAAssistant:
        return assistant_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/analyze")
    async def analyze(
        payload: AnalyzeRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        outcome = await loop.run_in_executor(
            None,
            lambda: orchestrator.run_analyze(payload.repo_url, force_refresh=payload.force_refresh),
        )
        return outcome.to_dict()

    @app.get("/analyze/recent", response_model=RecentResponse, response_model_by_alias=True)
    async def recent(
        limit: int = Query(default=3, ge=1, le=50),
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> RecentResponse:
        records = orchestrator.list_recent(limit)
        return RecentResponse(
            items=[
                RecentItem(
                    owner=record.owner,
                    repo=record.repo,
                    head_sha=record.head_sha,
                    created_at=record.created_at,
                )
                for record in records
            ]
        )

    @app.get("/analyze/{owner}/{repo}")
    async def cached_analysis(
        owner: str,
        repo: str,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        return orchestrator.load_cached(owner, repo).to_dict()

    @app.post("/qa")
    async def qa(
        payload: QARequest,
        assistant: QAAssistant = Depends(get_assistant),
    ) -> StreamingResponse:
        messages = [ChatMessage(role=item.role, content=item.content) for item in payload.messages]
        context = payload.context.to_context() if payload.context is not None else None
        loop = asyncio.get_running_loop()
        chunks = await loop.run_in_executor(None, lambda: assistant.stream_answer(messages, context))
        return StreamingResponse(
            _guard_stream(chunks),
            media_type="text/plain; charset=utf-8",
            headers={"Cache-Control": "no-cache, no-transform"},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_: Any, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid request payload",
                "code": "INVALID_REQUEST",
                "details": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(PipelineError)
    async def pipeline_error_handler(_: Any, exc: PipelineError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Request failed: %s",
                exc.message,
                extra={"meta": {"code": exc.code, "status": exc.status_code}},
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(_: Any, exc: Exception) -> JSONResponse:
        logger.exception("Unexpected service error: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Unexpected server error", "code": "INTERNAL_SERVER_ERROR"},
        )

    return app


def run_service(host: str = "0.0.0.0", port: int = 8000) -> None:  # pragma: no cover - integration path
    import uvicorn

    # log_config=None keeps the handlers configure_logging installed on uvicorn's loggers.
    uvicorn.run(create_app(), host=host, port=port, log_config=None)


__all__ = ["AnalyzeRequest", "QARequest", "create_app", "run_service"]
