"""AI endpoints - direct template queries, chat and suggestions."""

from functools import lru_cache
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.ai.chat import ChatAssistant
from backend.app.ai.context import QueryContext
from backend.app.ai.executor import QueryTemplateExecutor
from backend.app.ai.prompts import get_suggested_queries
from backend.app.api.auth import get_query_context
from backend.app.api.errors import raise_for_result
from backend.app.config import get_settings
from backend.app.db.engine import get_session
from backend.app.db.reporting import SqlReportingStore
from backend.app.llm.client import ChatModelClient, get_llm_client
from backend.app.middleware.ratelimit import RateLimitMiddleware, create_default_bucket_map
from backend.app.ratelimit import build_rate_limiters
from backend.app.utils.logging import StructuredQueryLogger
from backend.app.utils.metrics import PrometheusQueryMetrics

router = APIRouter(prefix="/ai", tags=["ai"])


class QueryRequest(BaseModel):
    """Request body for POST /ai/query."""

    template: str = Field(..., min_length=1, description="Query template name")
    params: dict[str, Any] = Field(default_factory=dict, description="Template parameters")


class ChatMessageIn(BaseModel):
    """One conversation message from the client."""

    role: str
    content: str


class ChatRequest(BaseModel):
    """Request body for POST /ai/chat."""

    messages: list[ChatMessageIn] = Field(..., min_length=1)


@lru_cache
def get_rate_limit_middleware() -> RateLimitMiddleware:
    """Process-wide rate limiter for the AI buckets."""
    return RateLimitMiddleware(build_rate_limiters(get_settings()), create_default_bucket_map())


def enforce_rate_limit(
    request: Request,
    context: Annotated[QueryContext, Depends(get_query_context)],
    middleware: Annotated[RateLimitMiddleware, Depends(get_rate_limit_middleware)],
) -> QueryContext:
    """Resolve the caller and count the request against its bucket.

    Plain `def` so FastAPI runs it in the threadpool; the Redis limiter uses the
    blocking client.

    Raises:
        HTTPException: 429 with Retry-After when over quota
    """
    allowed, retry_after = middleware.check_rate_limit(request.url.path, context)
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={"code": "rate_limited", "message": "Too many requests"},
            headers={"Retry-After": str(retry_after)},
        )
    return context


def get_executor(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> QueryTemplateExecutor:
    """Executor bound to this request's database session."""
    settings = get_settings()
    return QueryTemplateExecutor(
        SqlReportingStore(session, search_limit=settings.search_result_limit),
        metrics=PrometheusQueryMetrics(),
        query_logger=StructuredQueryLogger(),
        timeout_ms=settings.query_timeout_ms,
    )


@lru_cache
def get_chat_model() -> ChatModelClient:
    """Process-wide model client; reuses one HTTP connection pool."""
    return get_llm_client()


def get_chat_assistant(
    executor: Annotated[QueryTemplateExecutor, Depends(get_executor)],
    llm: Annotated[ChatModelClient, Depends(get_chat_model)],
) -> ChatAssistant:
    return ChatAssistant(llm, executor, llm_timeout_ms=get_settings().llm_timeout_ms)


@router.get("/query")
async def list_templates(
    context: Annotated[QueryContext, Depends(enforce_rate_limit)],
    executor: Annotated[QueryTemplateExecutor, Depends(get_executor)],
) -> dict[str, Any]:
    """List the templates available to the caller."""
    return {
        "data": {
            "templates": executor.list_available_templates(context),
            "scope": context.scope.value,
            "canCompareOrgs": context.can_compare_orgs,
        }
    }


@router.post("/query")
async def run_query(
    request: QueryRequest,
    context: Annotated[QueryContext, Depends(enforce_rate_limit)],
    executor: Annotated[QueryTemplateExecutor, Depends(get_executor)],
) -> dict[str, Any]:
    """Execute one query template.

    Returns:
        `{"data": ...}` on success

    Raises:
        HTTPException: mapped from the executor's error kind
    """
    result = await executor.execute(context, request.template, request.params)
    raise_for_result(result)
    return {"data": result.data}


@router.post("/chat")
async def chat(
    request: ChatRequest,
    context: Annotated[QueryContext, Depends(enforce_rate_limit)],
    assistant: Annotated[ChatAssistant, Depends(get_chat_assistant)],
) -> dict[str, Any]:
    """Answer one chat turn, running at most one template on the caller's behalf."""
    messages = [m.model_dump() for m in request.messages]
    reply = await assistant.reply(context, messages)
    return reply.to_dict()


@router.get("/suggestions")
async def suggestions(
    context: Annotated[QueryContext, Depends(get_query_context)],
) -> dict[str, Any]:
    """Starter questions for the caller's scope."""
    return {"data": get_suggested_queries(context)}
