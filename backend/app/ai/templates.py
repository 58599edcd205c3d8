"""Fixed registry of read-only AI query templates.

Templates are addressed by `TemplateName` only. The registry is built once at
import and is not extensible at runtime; each entry pairs a parameter record
with the store coroutine that answers it and the scope it needs.
"""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any

from backend.app.ai.context import QueryContext
from backend.app.ai.permissions import can_query_cross_org
from backend.app.db.reporting import Payload, ReportingStore
from backend.app.models.query_params import (
    CrossOrgItemPricesParams,
    CrossOrgSpendingParams,
    CurrentPriceParams,
    ExpensesByCategoryParams,
    MonthlyExpensesParams,
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


class TemplateName(str, Enum):
    """Names of all query templates."""

    CURRENT_PRICE = "current_price"
    PRICE_AT_DATE = "price_at_date"
    PRICE_HISTORY = "price_history"
    TOP_PRICE_CHANGES = "top_price_changes"
    MONTHLY_EXPENSES = "monthly_expenses"
    EXPENSES_BY_CATEGORY = "expenses_by_category"
    TOP_VENDORS = "top_vendors"
    SEARCH_ITEMS = "search_items"
    RECURRING_TEMPLATES = "recurring_templates"
    RECURRING_EXPENSE_HISTORY = "recurring_expense_history"
    CROSS_ORG_ITEM_PRICES = "cross_org_item_prices"
    CROSS_ORG_SPENDING = "cross_org_spending"


class ScopeRequirement(str, Enum):
    """Which callers may invoke a template."""

    ORG_OR_GLOBAL = "org_or_global"
    CROSS_ORG = "cross_org"


Fetch = Callable[[ReportingStore, Any], Awaitable[Payload]]


@dataclass(frozen=True)
class TemplateDefinition:
    """A named, parameterized read-only query."""

    name: TemplateName
    params_model: type[TemplateParams]
    scope_requirement: ScopeRequirement
    description: str
    fetch: Fetch

    @property
    def requires_org(self) -> bool:
        """Whether the template reads a single organization's data."""
        return issubclass(self.params_model, OrgParams)

    @property
    def param_names(self) -> list[str]:
        """Wire names of the template parameters, required ones first."""
        fields = self.params_model.model_fields
        required = [f.alias or n for n, f in fields.items() if f.is_required()]
        optional = [f"{f.alias or n}?" for n, f in fields.items() if not f.is_required()]
        return required + optional

    def is_available_to(self, context: QueryContext) -> bool:
        if self.scope_requirement is ScopeRequirement.CROSS_ORG:
            return can_query_cross_org(context)
        return True


def _define(
    name: TemplateName,
    params_model: type[TemplateParams],
    description: str,
    fetch: Fetch,
    scope_requirement: ScopeRequirement = ScopeRequirement.ORG_OR_GLOBAL,
) -> tuple[TemplateName, TemplateDefinition]:
    return name, TemplateDefinition(
        name=name,
        params_model=params_model,
        scope_requirement=scope_requirement,
        description=description,
        fetch=fetch,
    )


# Registration order is the listing order.
TEMPLATES: Mapping[TemplateName, TemplateDefinition] = MappingProxyType(
    dict(
        [
            _define(
                TemplateName.CURRENT_PRICE,
                CurrentPriceParams,
                "Latest price of an item as of now",
                lambda store, p: store.current_price(p),
            ),
            _define(
                TemplateName.PRICE_AT_DATE,
                PriceAtDateParams,
                "Price of an item in effect on a given date",
                lambda store, p: store.price_at_date(p),
            ),
            _define(
                TemplateName.PRICE_HISTORY,
                PriceHistoryParams,
                "Ordered price series of an item since a start date",
                lambda store, p: store.price_history(p),
            ),
            _define(
                TemplateName.TOP_PRICE_CHANGES,
                TopPriceChangesParams,
                "Items with the largest price changes since a start date",
                lambda store, p: store.top_price_changes(p),
            ),
            _define(
                TemplateName.MONTHLY_EXPENSES,
                MonthlyExpensesParams,
                "Monthly expense totals with tax breakdown",
                lambda store, p: store.monthly_expenses(p),
            ),
            _define(
                TemplateName.EXPENSES_BY_CATEGORY,
                ExpensesByCategoryParams,
                "Expense totals grouped by category",
                lambda store, p: store.expenses_by_category(p),
            ),
            _define(
                TemplateName.TOP_VENDORS,
                TopVendorsParams,
                "Vendors ranked by spend",
                lambda store, p: store.top_vendors(p),
            ),
            _define(
                TemplateName.SEARCH_ITEMS,
                SearchItemsParams,
                "Inventory items whose name matches a search term",
                lambda store, p: store.search_items(p),
            ),
            _define(
                TemplateName.RECURRING_TEMPLATES,
                RecurringTemplatesParams,
                "Active recurring expense templates",
                lambda store, p: store.recurring_templates(p),
            ),
            _define(
                TemplateName.RECURRING_EXPENSE_HISTORY,
                RecurringExpenseHistoryParams,
                "Expense series of one recurring template with summary statistics",
                lambda store, p: store.recurring_expense_history(p),
            ),
            _define(
                TemplateName.CROSS_ORG_ITEM_PRICES,
                CrossOrgItemPricesParams,
                "Current prices of matching items across all organizations",
                lambda store, p: store.cross_org_item_prices(p),
                ScopeRequirement.CROSS_ORG,
            ),
            _define(
                TemplateName.CROSS_ORG_SPENDING,
                CrossOrgSpendingParams,
                "Spending totals per organization",
                lambda store, p: store.cross_org_spending(p),
                ScopeRequirement.CROSS_ORG,
            ),
        ]
    )
)


def get_template(name: str) -> TemplateDefinition | None:
    """Look up a template by its wire name."""
    try:
        return TEMPLATES[TemplateName(name)]
    except ValueError:
        return None
