"""Models package - re-exports for convenience."""

from backend.app.models.query_params import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    CrossOrgItemPricesParams,
    CrossOrgSpendingParams,
    CurrentPriceParams,
    ExpensesByCategoryParams,
    MonthlyExpensesParams,
    OrgDateRangeParams,
    OrgParams,
    PriceAtDateParams,
    PriceHistoryParams,
    RecurringExpenseHistoryParams,
    RecurringTemplatesParams,
    SearchItemsParams,
    TemplateParams,
    TopPriceChangesParams,
    TopVendorsParams,
)

__all__ = [
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "CrossOrgItemPricesParams",
    "CrossOrgSpendingParams",
    "CurrentPriceParams",
    "ExpensesByCategoryParams",
    "MonthlyExpensesParams",
    "OrgDateRangeParams",
    "OrgParams",
    "PriceAtDateParams",
    "PriceHistoryParams",
    "RecurringExpenseHistoryParams",
    "RecurringTemplatesParams",
    "SearchItemsParams",
    "TemplateParams",
    "TopPriceChangesParams",
    "TopVendorsParams",
]
