"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates:
- organization, user, member
- inventory_items, inventory_price_history
- expense_categories, recurring_expense_templates, expenses
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )


def upgrade() -> None:
    """Create all tables."""
    # organization table
    op.create_table(
        "organization",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        _created_at(),
    )

    # user table
    op.create_table(
        "user",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("role", sa.Text(), nullable=False, server_default="user"),
        _created_at(),
    )

    # member table
    op.create_table(
        "member",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("organization_id", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("role", sa.Text(), nullable=False, server_default="member"),
        _created_at(),
        sa.ForeignKeyConstraint(["organization_id"], ["organization.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("organization_id", "user_id", name="uq_member_org_user"),
    )
    op.create_index("idx_member_user", "member", ["user_id"])

    # inventory_items table
    op.create_table(
        "inventory_items",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("org_id", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("sku", sa.Text(), nullable=True),
        sa.Column("unit", sa.Text(), nullable=False, server_default="each"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.ForeignKeyConstraint(["org_id"], ["organization.id"]),
    )
    op.create_index("idx_items_org_name", "inventory_items", ["org_id", "name"])

    # inventory_price_history table (append-only)
    op.create_table(
        "inventory_price_history",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("org_id", sa.Text(), nullable=False),
        sa.Column("item_id", sa.Text(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 4), nullable=False),
        sa.Column("currency", sa.Text(), nullable=False, server_default="USD"),
        sa.Column("vendor", sa.Text(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("source", sa.Text(), nullable=True, server_default="manual"),
        sa.Column("effective_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_by", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["org_id"], ["organization.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["inventory_items.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "idx_price_org_item_effective",
        "inventory_price_history",
        ["org_id", "item_id", "effective_at"],
    )

    # expense_categories table
    op.create_table(
        "expense_categories",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("org_id", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(["org_id"], ["organization.id"]),
    )

    # recurring_expense_templates table
    op.create_table(
        "recurring_expense_templates",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("org_id", sa.Text(), nullable=False),
        sa.Column("category_id", sa.Text(), nullable=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("vendor", sa.Text(), nullable=True),
        sa.Column("estimated_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("frequency", sa.Text(), nullable=False, server_default="monthly"),
        sa.Column("typical_day_of_month", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(["org_id"], ["organization.id"]),
        sa.ForeignKeyConstraint(["category_id"], ["expense_categories.id"]),
    )

    # expenses table
    op.create_table(
        "expenses",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("org_id", sa.Text(), nullable=False),
        sa.Column("category_id", sa.Text(), nullable=True),
        sa.Column("recurring_template_id", sa.Text(), nullable=True),
        sa.Column("vendor", sa.Text(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("amount_pre_tax", sa.Numeric(12, 2), nullable=True),
        sa.Column("tax_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("expense_date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["org_id"], ["organization.id"]),
        sa.ForeignKeyConstraint(["category_id"], ["expense_categories.id"]),
        sa.ForeignKeyConstraint(["recurring_template_id"], ["recurring_expense_templates.id"]),
    )
    op.create_index("idx_expenses_org_date", "expenses", ["org_id", "expense_date"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("idx_expenses_org_date", table_name="expenses")
    op.drop_table("expenses")
    op.drop_table("recurring_expense_templates")
    op.drop_table("expense_categories")
    op.drop_index("idx_price_org_item_effective", table_name="inventory_price_history")
    op.drop_table("inventory_price_history")
    op.drop_index("idx_items_org_name", table_name="inventory_items")
    op.drop_table("inventory_items")
    op.drop_index("idx_member_user", table_name="member")
    op.drop_table("member")
    op.drop_table("user")
    op.drop_table("organization")
