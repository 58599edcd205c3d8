"""Read-only data fetches behind the AI query templates.

`ReportingStore` is the seam the template executor dispatches to; the SQL
implementation below is the production one. Every org-scoped read filters by
the organization id it was handed. Authorization has already happened by the
time these run, so nothing here consults the caller.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.ai.aggregates import (
    ExpenseFigures,
    rank_vendors,
    summarize_amounts,
    summarize_by_category,
    summarize_monthly,
    summarize_org_spending,
)
from backend.app.db.models import (
    Expense,
    ExpenseCategory,
    InventoryItem,
    InventoryPriceHistory,
    Organization,
    RecurringExpenseTemplate,
)
from backend.app.db.prices import compute_change, get_current_price, get_price_at
from backend.app.db.queries import (
    select_expenses,
    select_items,
    select_prices,
    select_recurring_templates,
)
from backend.app.models.query_params import (
    CrossOrgItemPricesParams,
    CrossOrgSpendingParams,
    CurrentPriceParams,
    ExpensesByCategoryParams,
    MonthlyExpensesParams,
    OrgDateRangeParams,
    PriceAtDateParams,
    PriceHistoryParams,
    RecurringExpenseHistoryParams,
    RecurringTemplatesParams,
    SearchItemsParams,
    TopPriceChangesParams,
    TopVendorsParams,
)

logger = logging.getLogger(__name__)

Payload = dict[str, Any]


class RecordNotFoundError(Exception):
    """A referenced item, price or template does not exist in the organization."""

    pass


class ReportingStore(Protocol):
    """Data-fetch collaborator, one coroutine per query template."""

    async def current_price(self, params: CurrentPriceParams) -> Payload: ...

    async def price_at_date(self, params: PriceAtDateParams) -> Payload: ...

    async def price_history(self, params: PriceHistoryParams) -> Payload: ...

    async def top_price_changes(self, params: TopPriceChangesParams) -> Payload: ...

    async def monthly_expenses(self, params: MonthlyExpensesParams) -> Payload: ...

    async def expenses_by_category(self, params: ExpensesByCategoryParams) -> Payload: ...

    async def top_vendors(self, params: TopVendorsParams) -> Payload: ...

    async def search_items(self, params: SearchItemsParams) -> Payload: ...

    async def recurring_templates(self, params: RecurringTemplatesParams) -> Payload: ...

    async def recurring_expense_history(
        self, params: RecurringExpenseHistoryParams
    ) -> Payload: ...

    async def cross_org_item_prices(self, params: CrossOrgItemPricesParams) -> Payload: ...

    async def cross_org_spending(self, params: CrossOrgSpendingParams) -> Payload: ...


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _money(value: Any) -> float | None:
    return float(value) if value is not None else None


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SqlReportingStore:
    """SQL implementation of ReportingStore."""

    def __init__(self, session: AsyncSession, *, search_limit: int = 20) -> None:
        self._session = session
        self._search_limit = search_limit

    async def _get_item(self, org_id: str, item_id: str) -> InventoryItem:
        result = await self._session.execute(
            select_items(org_id).where(InventoryItem.id == item_id)
        )
        item = result.scalar_one_or_none()
        if item is None:
            raise RecordNotFoundError("Inventory item not found")
        return item

    async def _expense_figures(self, params: OrgDateRangeParams) -> list[ExpenseFigures]:
        stmt = (
            select_expenses(params.org_id)
            .add_columns(ExpenseCategory.name)
            .outerjoin(ExpenseCategory, Expense.category_id == ExpenseCategory.id)
            .where(
                Expense.expense_date >= params.start_date,
                Expense.expense_date <= params.end_date,
            )
        )
        result = await self._session.execute(stmt)
        return [
            ExpenseFigures(
                amount=expense.amount,
                amount_pre_tax=expense.amount_pre_tax,
                tax_amount=expense.tax_amount,
                expense_date=expense.expense_date,
                vendor=expense.vendor,
                category_id=expense.category_id,
                category_name=category_name,
            )
            for expense, category_name in result.all()
        ]

    async def current_price(self, params: CurrentPriceParams) -> Payload:
        item = await self._get_item(params.org_id, params.item_id)
        price = await get_current_price(self._session, params.org_id, params.item_id)
        if price is None:
            raise RecordNotFoundError("No price recorded for this item")

        return {
            "itemId": item.id,
            "itemName": item.name,
            "unit": item.unit,
            "currentPrice": float(price.unit_price),
            "vendor": price.vendor,
            "effectiveAt": _iso(price.effective_at),
        }

    async def price_at_date(self, params: PriceAtDateParams) -> Payload:
        item = await self._get_item(params.org_id, params.item_id)
        price = await get_price_at(self._session, params.org_id, params.item_id, params.as_of)
        if price is None:
            raise RecordNotFoundError("No price recorded for this item on or before that date")

        return {
            "itemId": item.id,
            "itemName": item.name,
            "unit": item.unit,
            "price": float(price.unit_price),
            "vendor": price.vendor,
            "effectiveAt": _iso(price.effective_at),
            "queryDate": params.as_of.isoformat(),
        }

    async def price_history(self, params: PriceHistoryParams) -> Payload:
        item = await self._get_item(params.org_id, params.item_id)
        start = datetime.combine(params.start_date, datetime.min.time(), tzinfo=UTC)
        result = await self._session.execute(
            select_prices(params.org_id, params.item_id)
            .where(InventoryPriceHistory.effective_at >= start)
            .order_by(InventoryPriceHistory.effective_at.asc())
        )

        return {
            "itemId": item.id,
            "itemName": item.name,
            "unit": item.unit,
            "history": [
                {
                    "price": float(row.unit_price),
                    "vendor": row.vendor,
                    "effectiveAt": _iso(row.effective_at),
                    "note": row.note,
                }
                for row in result.scalars().all()
            ],
        }

    async def top_price_changes(self, params: TopPriceChangesParams) -> Payload:
        result = await self._session.execute(
            select_items(params.org_id).where(InventoryItem.is_active.is_(True))
        )
        items = result.scalars().all()

        changes = []
        for item in items:
            start = await get_price_at(self._session, params.org_id, item.id, params.start_date)
            end = await get_current_price(self._session, params.org_id, item.id)
            if start is None or end is None:
                continue

            change = compute_change(start.unit_price, end.unit_price)
            if change.change == 0 or change.percent_change is None:
                continue

            changes.append(
                {
                    "itemId": item.id,
                    "itemName": item.name,
                    "unit": item.unit,
                    "startPrice": change.start_price,
                    "endPrice": change.end_price,
                    "change": change.change,
                    "percentChange": change.percent_change,
                }
            )

        changes.sort(key=lambda c: abs(c["percentChange"]), reverse=True)
        return {"items": changes[: params.limit]}

    async def monthly_expenses(self, params: MonthlyExpensesParams) -> Payload:
        return summarize_monthly(await self._expense_figures(params))

    async def expenses_by_category(self, params: ExpensesByCategoryParams) -> Payload:
        return summarize_by_category(await self._expense_figures(params))

    async def top_vendors(self, params: TopVendorsParams) -> Payload:
        return rank_vendors(await self._expense_figures(params), params.limit)

    async def search_items(self, params: SearchItemsParams) -> Payload:
        result = await self._session.execute(
            select_items(params.org_id)
            .where(InventoryItem.name.ilike(_like_pattern(params.search_term), escape="\\"))
            .order_by(InventoryItem.name)
            .limit(self._search_limit)
        )

        return {
            "items": [
                {
                    "id": item.id,
                    "name": item.name,
                    "sku": item.sku,
                    "unit": item.unit,
                    "isActive": item.is_active,
                }
                for item in result.scalars().all()
            ]
        }

    async def recurring_templates(self, params: RecurringTemplatesParams) -> Payload:
        result = await self._session.execute(
            select_recurring_templates(params.org_id)
            .add_columns(ExpenseCategory.name)
            .outerjoin(
                ExpenseCategory, RecurringExpenseTemplate.category_id == ExpenseCategory.id
            )
            .where(RecurringExpenseTemplate.is_active.is_(True))
            .order_by(RecurringExpenseTemplate.name)
        )

        return {
            "templates": [
                {
                    "id": template.id,
                    "name": template.name,
                    "vendor": template.vendor,
                    "estimatedAmount": _money(template.estimated_amount),
                    "frequency": template.frequency,
                    "typicalDayOfMonth": template.typical_day_of_month,
                    "categoryName": category_name or "Uncategorized",
                }
                for template, category_name in result.all()
            ]
        }

    async def recurring_expense_history(self, params: RecurringExpenseHistoryParams) -> Payload:
        result = await self._session.execute(
            select_recurring_templates(params.org_id).where(
                RecurringExpenseTemplate.id == params.template_id
            )
        )
        template = result.scalar_one_or_none()
        if template is None:
            raise RecordNotFoundError("Recurring expense template not found")

        result = await self._session.execute(
            select_expenses(params.org_id)
            .where(
                Expense.recurring_template_id == params.template_id,
                Expense.expense_date >= params.start_date,
                Expense.expense_date <= params.end_date,
            )
            .order_by(Expense.expense_date.asc())
        )
        history = [
            {
                "date": expense.expense_date.isoformat(),
                "month": expense.expense_date.strftime("%Y-%m"),
                "amount": float(expense.amount),
                "preTax": _money(expense.amount_pre_tax),
                "tax": _money(expense.tax_amount),
                "notes": expense.notes,
            }
            for expense in result.scalars().all()
        ]

        return {
            "templateId": template.id,
            "templateName": template.name,
            "vendor": template.vendor,
            "estimatedAmount": _money(template.estimated_amount),
            "history": history,
            "summary": summarize_amounts([h["amount"] for h in history]),
        }

    async def cross_org_item_prices(self, params: CrossOrgItemPricesParams) -> Payload:
        result = await self._session.execute(
            select(InventoryItem, Organization.name)
            .join(Organization, InventoryItem.org_id == Organization.id)
            .where(
                InventoryItem.name.ilike(_like_pattern(params.item_name), escape="\\"),
                InventoryItem.is_active.is_(True),
            )
            .order_by(Organization.name, InventoryItem.name)
        )

        comparisons = []
        for item, org_name in result.all():
            price = await get_current_price(self._session, item.org_id, item.id)
            if price is None:
                continue
            comparisons.append(
                {
                    "orgId": item.org_id,
                    "orgName": org_name,
                    "itemId": item.id,
                    "itemName": item.name,
                    "unit": item.unit,
                    "currentPrice": float(price.unit_price),
                    "vendor": price.vendor,
                    "effectiveAt": _iso(price.effective_at),
                }
            )

        return {"comparisons": comparisons}

    async def cross_org_spending(self, params: CrossOrgSpendingParams) -> Payload:
        result = await self._session.execute(
            select(Organization.id, Organization.name).order_by(Organization.name)
        )
        orgs = [(org_id, name) for org_id, name in result.all()]

        result = await self._session.execute(
            select(Expense).where(
                Expense.expense_date >= params.start_date,
                Expense.expense_date <= params.end_date,
            )
        )
        rows_by_org: dict[str, list[ExpenseFigures]] = {}
        for expense in result.scalars().all():
            rows_by_org.setdefault(expense.org_id, []).append(
                ExpenseFigures(
                    amount=expense.amount,
                    amount_pre_tax=expense.amount_pre_tax,
                    tax_amount=expense.tax_amount,
                )
            )

        logger.debug("cross-org spending over %d orgs", len(orgs))
        return summarize_org_spending(orgs, rows_by_org)
