"""Structured logging for query template execution."""

import logging
from typing import Any

from backend.app.ai.context import QueryContext

logger = logging.getLogger(__name__)

_WARNING_OUTCOMES = frozenset({"bad_request", "not_found", "no_data", "cancelled"})
_SECURITY_OUTCOMES = frozenset({"forbidden", "cross_tenant"})


class StructuredQueryLogger:
    """Structured logger for template calls.

    Scope and tenant denials carry `security_event=True` so they can be
    filtered apart from ordinary validation errors.
    """

    def log_outcome(
        self,
        context: QueryContext,
        template: str,
        outcome: str,
        latency_ms: float,
        *,
        org_id: str | None = None,
        error: str | None = None,
        exc: BaseException | None = None,
    ) -> None:
        """Log template call outcome with structured data."""
        log_data: dict[str, Any] = {
            "caller_id": context.caller_id,
            "scope": context.scope.value,
            "template": template,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
            "org_id": org_id,
        }

        if error:
            log_data["error"] = error

        log_msg = f"AI query: {template} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        elif outcome in _SECURITY_OUTCOMES:
            log_data["security_event"] = True
            logger.warning(log_msg, extra={"structured": log_data})
        elif outcome in _WARNING_OUTCOMES:
            logger.warning(log_msg, extra={"structured": log_data})
        else:
            logger.error(log_msg, extra={"structured": log_data}, exc_info=exc)
