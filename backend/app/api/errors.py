"""Map query failures onto HTTP responses."""

from fastapi import HTTPException, status

from backend.app.ai.executor import QueryErrorKind, QueryResult

STATUS_BY_KIND: dict[QueryErrorKind, int] = {
    QueryErrorKind.BAD_REQUEST: status.HTTP_400_BAD_REQUEST,
    QueryErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    QueryErrorKind.CROSS_TENANT: status.HTTP_403_FORBIDDEN,
    QueryErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    QueryErrorKind.NO_DATA: status.HTTP_404_NOT_FOUND,
    QueryErrorKind.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    QueryErrorKind.CANCELLED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    QueryErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def raise_for_result(result: QueryResult) -> None:
    """Raise HTTPException if the result is a failure.

    Body shape: `{"detail": {"code": <error kind>, "message": <error>}}`.
    """
    if result.ok:
        return

    kind = result.error_kind or QueryErrorKind.INTERNAL
    raise HTTPException(
        status_code=STATUS_BY_KIND[kind],
        detail={"code": kind.value, "message": result.error},
    )
