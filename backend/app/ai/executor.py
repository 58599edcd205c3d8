"""Query template executor: gate, validate and dispatch template calls.

Every call goes through the same pipeline regardless of entry point (direct
query endpoint or chat assistant):

1. template exists
2. template is available to the caller's scope
3. `orgId` is defaulted from context or checked against the allowed set
4. parameters validate against the template's record
5. the store fetch runs under a deadline

Failures never escape as exceptions; they come back as a `QueryResult` with
an `error_kind` the HTTP layer maps onto a status code.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import ValidationError

from backend.app.ai.context import QueryContext
from backend.app.ai.permissions import can_access_org
from backend.app.ai.templates import TEMPLATES, TemplateName, get_template
from backend.app.db.reporting import RecordNotFoundError, ReportingStore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 5000


class QueryErrorKind(str, Enum):
    """Failure categories of a template call."""

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CROSS_TENANT = "cross_tenant"
    BAD_REQUEST = "bad_request"
    NO_DATA = "no_data"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    INTERNAL = "internal"

    @property
    def is_security_event(self) -> bool:
        return self in (QueryErrorKind.FORBIDDEN, QueryErrorKind.CROSS_TENANT)


@dataclass(frozen=True)
class QueryResult:
    """Outcome of one template call. Exactly one of data/error is meaningful."""

    data: Any = None
    error: str | None = None
    error_kind: QueryErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any) -> "QueryResult":
        return cls(data=data)

    @classmethod
    def failure(cls, kind: QueryErrorKind, message: str) -> "QueryResult":
        return cls(error=message, error_kind=kind)


class QueryCancelledError(Exception):
    """Template call was cancelled by the caller."""

    pass


@dataclass
class CancelToken:
    """Token for cancellation signaling."""

    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    def throw_if_cancelled(self) -> None:
        """Raise QueryCancelledError if cancelled."""
        if self.cancelled:
            raise QueryCancelledError("query cancelled")


class QueryMetrics:
    """Interface for template execution metrics."""

    def record_latency(self, template: str, outcome: str, latency_ms: float) -> None:
        """Record template execution latency."""
        pass

    def inc_error(self, template: str, kind: str) -> None:
        """Increment error counter."""
        pass

    def inc_security_denial(self, template: str, reason: str) -> None:
        """Increment denied-access counter."""
        pass


class QueryLogger:
    """Interface for structured logging of template outcomes."""

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
        """Log one template call outcome."""
        pass


def list_available_templates(context: QueryContext) -> list[str]:
    """Template names the caller may invoke, in registration order."""
    return [
        name.value
        for name, definition in TEMPLATES.items()
        if definition.is_available_to(context)
    ]


def format_validation_error(exc: ValidationError) -> str:
    """Flatten pydantic errors into `field: message; ...`."""
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err["loc"]) or "params"
        parts.append(f"{field}: {err['msg']}")
    return "; ".join(parts)


class QueryTemplateExecutor:
    """Runs query templates for a resolved QueryContext against a ReportingStore."""

    def __init__(
        self,
        store: ReportingStore,
        *,
        metrics: QueryMetrics | None = None,
        query_logger: QueryLogger | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        """Initialize executor.

        Args:
            store: Data-fetch collaborator
            metrics: Metrics recorder (optional, defaults to no-op)
            query_logger: Structured logger (optional, defaults to no-op)
            timeout_ms: Deadline for a single store fetch
        """
        self._store = store
        self._metrics = metrics or QueryMetrics()
        self._logger = query_logger or QueryLogger()
        self._timeout_ms = timeout_ms

    def list_available_templates(self, context: QueryContext) -> list[str]:
        return list_available_templates(context)

    async def execute(
        self,
        context: QueryContext,
        template_name: str,
        params: dict[str, Any] | None = None,
        *,
        cancel_token: CancelToken | None = None,
        timeout_ms: int | None = None,
    ) -> QueryResult:
        """Run one template call.

        Args:
            context: Caller scope for this request
            template_name: Wire name of the template
            params: Caller-supplied parameters (camelCase keys); not mutated
            cancel_token: Cancellation token (optional)
            timeout_ms: Per-call deadline override

        Returns:
            QueryResult with data on success, error and error_kind otherwise
        """
        start = time.monotonic()
        name = str(template_name)

        definition = get_template(name)
        if definition is None:
            return self._fail(
                context, name, start, QueryErrorKind.NOT_FOUND, f"Unknown query template: {name}"
            )

        if not definition.is_available_to(context):
            return self._fail(
                context,
                name,
                start,
                QueryErrorKind.FORBIDDEN,
                f"Query template '{name}' is not available",
            )

        call_params = dict(params or {})
        requested_org = call_params.pop("orgId", None)
        snake_org = call_params.pop("org_id", None)
        if requested_org is None:
            requested_org = snake_org

        org_id: str | None = None
        if definition.requires_org:
            if requested_org is None or requested_org == "":
                org_id = context.default_org_id()
                if org_id is None:
                    return self._fail(
                        context,
                        name,
                        start,
                        QueryErrorKind.BAD_REQUEST,
                        "orgId: no organization specified for query",
                    )
            elif not isinstance(requested_org, str):
                return self._fail(
                    context, name, start, QueryErrorKind.BAD_REQUEST, "orgId: must be a string"
                )
            elif not can_access_org(context, requested_org):
                return self._fail(
                    context,
                    name,
                    start,
                    QueryErrorKind.CROSS_TENANT,
                    "Access denied to organization",
                    org_id=requested_org,
                )
            else:
                org_id = requested_org
            call_params["orgId"] = org_id

        try:
            validated = definition.params_model.model_validate(call_params)
        except ValidationError as e:
            return self._fail(
                context,
                name,
                start,
                QueryErrorKind.BAD_REQUEST,
                format_validation_error(e),
                org_id=org_id,
            )

        timeout_sec = (timeout_ms if timeout_ms is not None else self._timeout_ms) / 1000
        try:
            if cancel_token is not None:
                cancel_token.throw_if_cancelled()
            data = await asyncio.wait_for(definition.fetch(self._store, validated), timeout_sec)
        except QueryCancelledError:
            return self._fail(
                context, name, start, QueryErrorKind.CANCELLED, "Query cancelled", org_id=org_id
            )
        except TimeoutError as e:
            return self._fail(
                context,
                name,
                start,
                QueryErrorKind.TIMEOUT,
                "Query timed out",
                org_id=org_id,
                exc=e,
            )
        except RecordNotFoundError as e:
            return self._fail(context, name, start, QueryErrorKind.NO_DATA, str(e), org_id=org_id)
        except Exception as e:
            return self._fail(
                context,
                name,
                start,
                QueryErrorKind.INTERNAL,
                "Failed to execute query",
                org_id=org_id,
                exc=e,
            )

        elapsed_ms = (time.monotonic() - start) * 1000
        self._metrics.record_latency(name, "success", elapsed_ms)
        self._logger.log_outcome(context, name, "success", elapsed_ms, org_id=org_id)
        return QueryResult.success(data)

    def _fail(
        self,
        context: QueryContext,
        template: str,
        start: float,
        kind: QueryErrorKind,
        message: str,
        *,
        org_id: str | None = None,
        exc: BaseException | None = None,
    ) -> QueryResult:
        elapsed_ms = (time.monotonic() - start) * 1000
        label = template if template in _KNOWN_NAMES else "unknown"
        self._metrics.record_latency(label, kind.value, elapsed_ms)
        self._metrics.inc_error(label, kind.value)
        if kind.is_security_event:
            self._metrics.inc_security_denial(label, kind.value)
        self._logger.log_outcome(
            context, template, kind.value, elapsed_ms, org_id=org_id, error=message, exc=exc
        )
        return QueryResult.failure(kind, message)


# Bounds metric label cardinality to the registry.
_KNOWN_NAMES = frozenset(name.value for name in TemplateName)
