"""Dev seeding helper for stub authentication.

Seeds one organization with a member, a superadmin, and a small amount of
inventory and expense data so the AI endpoints return something useful with
`Authorization: Bearer dev-user-1`.
"""

import asyncio
from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.engine import get_async_engine
from backend.app.db.models import (
    Expense,
    ExpenseCategory,
    InventoryItem,
    InventoryPriceHistory,
    Member,
    Organization,
    RecurringExpenseTemplate,
    User,
)

# Fixed IDs usable as stub bearer tokens
DEV_ORG_ID = "dev-org-1"
DEV_USER_ID = "dev-user-1"
DEV_SUPERADMIN_ID = "dev-superadmin"


def build_dev_rows() -> list[object]:
    """Rows for the dev organization, in insert order."""
    rent = RecurringExpenseTemplate(
        id="dev-tpl-rent",
        org_id=DEV_ORG_ID,
        category_id="dev-cat-facilities",
        name="Office rent",
        vendor="Landlord LLC",
        estimated_amount=Decimal("2000.00"),
        frequency="monthly",
        typical_day_of_month=1,
    )
    return [
        Organization(id=DEV_ORG_ID, name="Dev Org 1"),
        User(id=DEV_USER_ID, name="Dev User", email="dev@example.com", role="user"),
        User(id=DEV_SUPERADMIN_ID, name="Dev Admin", email="admin@example.com", role="superadmin"),
        Member(organization_id=DEV_ORG_ID, user_id=DEV_USER_ID, role="owner"),
        ExpenseCategory(id="dev-cat-facilities", org_id=DEV_ORG_ID, name="Facilities"),
        ExpenseCategory(id="dev-cat-supplies", org_id=DEV_ORG_ID, name="Supplies"),
        rent,
        InventoryItem(id="dev-item-flour", org_id=DEV_ORG_ID, name="Flour", sku="FL-25", unit="bag"),
        InventoryPriceHistory(
            org_id=DEV_ORG_ID,
            item_id="dev-item-flour",
            unit_price=Decimal("18.50"),
            vendor="Mill Co",
            effective_at=datetime(2025, 1, 1, tzinfo=UTC),
        ),
        InventoryPriceHistory(
            org_id=DEV_ORG_ID,
            item_id="dev-item-flour",
            unit_price=Decimal("21.00"),
            vendor="Mill Co",
            effective_at=datetime(2025, 6, 1, tzinfo=UTC),
        ),
        Expense(
            org_id=DEV_ORG_ID,
            category_id="dev-cat-facilities",
            recurring_template_id=rent.id,
            vendor="Landlord LLC",
            amount=Decimal("2000.00"),
            expense_date=date(2025, 5, 1),
        ),
        Expense(
            org_id=DEV_ORG_ID,
            category_id="dev-cat-supplies",
            vendor="Mill Co",
            amount=Decimal("108.00"),
            amount_pre_tax=Decimal("100.00"),
            tax_amount=Decimal("8.00"),
            expense_date=date(2025, 5, 12),
        ),
    ]


async def seed_dev_data() -> None:
    """Seed dev organization, users and sample data.

    Idempotent: does nothing if the dev organization already exists.
    """
    async with AsyncSession(get_async_engine()) as session:
        if await session.get(Organization, DEV_ORG_ID) is not None:
            print(f"Dev org already exists: {DEV_ORG_ID}")
            return

        print(f"Creating dev org {DEV_ORG_ID} with sample data...")
        for row in build_dev_rows():
            session.add(row)
            # Flush in order so foreign keys resolve without relationship wiring
            await session.flush()

        await session.commit()
        print("Dev seeding complete")


if __name__ == "__main__":
    asyncio.run(seed_dev_data())
