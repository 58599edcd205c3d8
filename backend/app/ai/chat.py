"""Chat assistant: model proposes a template call, executor runs it, model summarizes.

The model never touches data directly. Any query it proposes is handed to the
same `QueryTemplateExecutor` the direct endpoint uses, so scope and tenant
checks apply unchanged.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from backend.app.ai.context import QueryContext
from backend.app.ai.executor import QueryErrorKind, QueryTemplateExecutor
from backend.app.ai.prompts import SUMMARY_INSTRUCTION, generate_system_prompt
from backend.app.llm.client import ChatMessages, ChatModelClient
from backend.app.utils.metrics import record_llm_call

logger = logging.getLogger(__name__)

DEFAULT_LLM_TIMEOUT_MS = 30000

SERVICE_ERROR_MESSAGE = "Sorry, I encountered an error with the AI service."
EMPTY_RESPONSE_MESSAGE = "No response from AI service."
TIMEOUT_MESSAGE = "Sorry, the AI service took too long to respond."

_ALLOWED_ROLES = frozenset({"user", "assistant"})


@dataclass(frozen=True)
class ChatReply:
    """One assistant turn, with the fetched data when a query ran."""

    message: str
    query: dict[str, Any] | None = None
    data: Any = None
    analysis: str | None = None
    error: str | None = None
    error_kind: QueryErrorKind | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "query": self.query,
            "data": self.data,
            "analysis": self.analysis,
            "error": self.error,
            "errorKind": self.error_kind.value if self.error_kind else None,
        }


class ModelCallError(Exception):
    """A text-generation call failed or timed out."""

    def __init__(self, user_message: str):
        super().__init__(user_message)
        self.user_message = user_message


def parse_model_json(content: str) -> dict[str, Any] | None:
    """Parse a JSON-mode response; None if it is not a JSON object."""
    try:
        parsed = json.loads(content)
    except (json.JSONDecodeError, TypeError):
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_query(response: dict[str, Any]) -> tuple[str, dict[str, Any]] | None:
    """Pull `(template, params)` from a proposal, ignoring malformed shapes."""
    query = response.get("query")
    if not isinstance(query, dict):
        return None
    template = query.get("template")
    if not isinstance(template, str) or not template:
        return None
    params = query.get("params")
    return template, params if isinstance(params, dict) else {}


class ChatAssistant:
    """Runs the propose / execute / summarize loop for one chat turn."""

    def __init__(
        self,
        llm: ChatModelClient,
        executor: QueryTemplateExecutor,
        *,
        llm_timeout_ms: int = DEFAULT_LLM_TIMEOUT_MS,
    ) -> None:
        self._llm = llm
        self._executor = executor
        self._llm_timeout_ms = llm_timeout_ms

    async def _complete(self, stage: str, messages: ChatMessages) -> str:
        try:
            content = await asyncio.wait_for(
                self._llm.complete_json(messages), self._llm_timeout_ms / 1000
            )
        except TimeoutError as e:
            record_llm_call(stage, "timeout")
            logger.warning(f"LLM {stage} call timed out after {self._llm_timeout_ms}ms")
            raise ModelCallError(TIMEOUT_MESSAGE) from e
        except Exception as e:
            record_llm_call(stage, "error")
            logger.error(f"LLM {stage} call failed: {e}", exc_info=True)
            raise ModelCallError(SERVICE_ERROR_MESSAGE) from e

        record_llm_call(stage, "success")
        return content

    async def reply(
        self,
        context: QueryContext,
        messages: list[dict[str, str]],
        *,
        today: date | None = None,
    ) -> ChatReply:
        """Answer one chat turn.

        Args:
            context: Resolved caller scope
            messages: Conversation so far; only user/assistant roles are forwarded
            today: Date used for relative-date hints in the system prompt

        Returns:
            ChatReply; model and query failures are reported in its fields
        """
        chat_messages: ChatMessages = [
            {"role": "system", "content": generate_system_prompt(context, today)}
        ]
        chat_messages += [
            {"role": m["role"], "content": m["content"]}
            for m in messages
            if m.get("role") in _ALLOWED_ROLES
        ]

        try:
            content = await self._complete("propose", chat_messages)
        except ModelCallError as e:
            return ChatReply(message=e.user_message)

        if not content:
            return ChatReply(message=EMPTY_RESPONSE_MESSAGE)

        proposal = parse_model_json(content)
        if proposal is None:
            return ChatReply(message=content)

        message = str(proposal.get("message") or "")
        query = extract_query(proposal)
        if query is None:
            return ChatReply(message=message)

        template, params = query
        query_info = {"template": template, "params": params}
        result = await self._executor.execute(context, template, params)
        if not result.ok:
            return ChatReply(
                message=message,
                query=query_info,
                error=result.error,
                error_kind=result.error_kind,
            )

        follow_up = chat_messages + [
            {"role": "assistant", "content": json.dumps(proposal)},
            {
                "role": "user",
                "content": f"{SUMMARY_INSTRUCTION}\n\n{json.dumps(result.data, indent=2, default=str)}",
            },
        ]
        analysis: str | None = None
        try:
            summary = await self._complete("summarize", follow_up)
        except ModelCallError:
            summary = ""
        if summary:
            parsed = parse_model_json(summary)
            if parsed is None:
                analysis = summary
            elif parsed.get("message"):
                analysis = str(parsed["message"])

        return ChatReply(message=message, query=query_info, data=result.data, analysis=analysis)
