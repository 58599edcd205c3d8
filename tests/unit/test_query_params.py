"""Unit tests for template parameter records."""

from datetime import date

import pytest
from pydantic import ValidationError

from backend.app.models.query_params import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    CrossOrgSpendingParams,
    MonthlyExpensesParams,
    PriceAtDateParams,
    SearchItemsParams,
    TopVendorsParams,
)


def test_params_accept_camel_case_wire_names() -> None:
    params = MonthlyExpensesParams.model_validate(
        {"orgId": "org-a", "startDate": "2025-01-01", "endDate": "2025-01-31"}
    )
    assert params.org_id == "org-a"
    assert params.start_date == date(2025, 1, 1)
    assert params.end_date == date(2025, 1, 31)


def test_params_ignore_unknown_keys() -> None:
    params = SearchItemsParams.model_validate(
        {"orgId": "org-a", "searchTerm": "flour", "sql": "DROP TABLE"}
    )
    assert params.search_term == "flour"
    assert not hasattr(params, "sql")


def test_date_alias_on_price_at_date() -> None:
    params = PriceAtDateParams.model_validate(
        {"orgId": "org-a", "itemId": "item-1", "date": "2025-02-15"}
    )
    assert params.as_of == date(2025, 2, 15)


def test_end_date_before_start_date_is_rejected() -> None:
    with pytest.raises(ValidationError, match="endDate must be on or after startDate"):
        MonthlyExpensesParams.model_validate(
            {"orgId": "org-a", "startDate": "2025-02-01", "endDate": "2025-01-01"}
        )


def test_cross_org_spending_checks_date_order() -> None:
    with pytest.raises(ValidationError):
        CrossOrgSpendingParams.model_validate({"startDate": "2025-02-01", "endDate": "2025-01-01"})


def test_invalid_date_is_rejected() -> None:
    with pytest.raises(ValidationError):
        MonthlyExpensesParams.model_validate(
            {"orgId": "org-a", "startDate": "last month", "endDate": "2025-01-01"}
        )


def test_limit_defaults_and_bounds() -> None:
    base = {"orgId": "org-a", "startDate": "2025-01-01", "endDate": "2025-01-31"}

    assert TopVendorsParams.model_validate(base).limit == DEFAULT_LIMIT
    assert TopVendorsParams.model_validate({**base, "limit": MAX_LIMIT}).limit == MAX_LIMIT
    with pytest.raises(ValidationError):
        TopVendorsParams.model_validate({**base, "limit": 0})
    with pytest.raises(ValidationError):
        TopVendorsParams.model_validate({**base, "limit": MAX_LIMIT + 1})


def test_empty_search_term_is_rejected() -> None:
    with pytest.raises(ValidationError):
        SearchItemsParams.model_validate({"orgId": "org-a", "searchTerm": ""})


def test_params_are_frozen() -> None:
    params = SearchItemsParams.model_validate({"orgId": "org-a", "searchTerm": "flour"})
    with pytest.raises(ValidationError):
        params.org_id = "org-b"  # type: ignore[misc]
