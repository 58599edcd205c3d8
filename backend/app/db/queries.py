"""Tenancy-safe select helpers.

Every org-scoped read in the reporting layer starts from one of these so the
`org_id` filter cannot be forgotten.
"""

from sqlalchemy import Select, select

from backend.app.db.models import (
    Expense,
    InventoryItem,
    InventoryPriceHistory,
    RecurringExpenseTemplate,
)


def select_items(org_id: str) -> Select:
    """Select inventory items belonging to one organization."""
    return select(InventoryItem).where(InventoryItem.org_id == org_id)


def select_prices(org_id: str, item_id: str) -> Select:
    """Select ledger rows for one item within one organization."""
    return select(InventoryPriceHistory).where(
        InventoryPriceHistory.org_id == org_id,
        InventoryPriceHistory.item_id == item_id,
    )


def select_expenses(org_id: str) -> Select:
    """Select expenses belonging to one organization."""
    return select(Expense).where(Expense.org_id == org_id)


def select_recurring_templates(org_id: str) -> Select:
    """Select recurring expense templates belonging to one organization."""
    return select(RecurringExpenseTemplate).where(RecurringExpenseTemplate.org_id == org_id)
