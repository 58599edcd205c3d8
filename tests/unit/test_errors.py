"""Unit tests for mapping query failures onto HTTP errors."""

import pytest
from fastapi import HTTPException

from backend.app.ai.executor import QueryErrorKind, QueryResult
from backend.app.api.errors import STATUS_BY_KIND, raise_for_result


def test_success_does_not_raise() -> None:
    raise_for_result(QueryResult.success({"items": []}))


@pytest.mark.parametrize(
    ("kind", "status_code"),
    [
        (QueryErrorKind.BAD_REQUEST, 400),
        (QueryErrorKind.FORBIDDEN, 403),
        (QueryErrorKind.CROSS_TENANT, 403),
        (QueryErrorKind.NOT_FOUND, 404),
        (QueryErrorKind.NO_DATA, 404),
        (QueryErrorKind.TIMEOUT, 504),
        (QueryErrorKind.CANCELLED, 500),
        (QueryErrorKind.INTERNAL, 500),
    ],
)
def test_error_kind_status(kind: QueryErrorKind, status_code: int) -> None:
    with pytest.raises(HTTPException) as exc_info:
        raise_for_result(QueryResult.failure(kind, "boom"))

    assert exc_info.value.status_code == status_code
    assert exc_info.value.detail == {"code": kind.value, "message": "boom"}


def test_every_kind_is_mapped() -> None:
    assert set(STATUS_BY_KIND) == set(QueryErrorKind)
