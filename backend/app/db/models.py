"""SQLAlchemy ORM models for organizations, inventory pricing and expenses."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Organization(Base):
    """Organization table - top-level tenancy boundary."""

    __tablename__ = "organization"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    members: Mapped[list["Member"]] = relationship("Member", back_populates="organization")


class User(Base):
    """User account. `role` carries the platform-wide role (e.g. superadmin)."""

    __tablename__ = "user"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_new_id)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    role: Mapped[str] = mapped_column(Text, nullable=False, default="user")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    memberships: Mapped[list["Member"]] = relationship("Member", back_populates="user")


class Member(Base):
    """Organization membership with an org-level role."""

    __tablename__ = "member"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_member_org_user"),
        Index("idx_member_user", "user_id"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_new_id)
    organization_id: Mapped[str] = mapped_column(
        Text, ForeignKey("organization.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        Text, ForeignKey("user.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(Text, nullable=False, default="member")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    organization: Mapped["Organization"] = relationship("Organization", back_populates="members")
    user: Mapped["User"] = relationship("User", back_populates="memberships")


class InventoryItem(Base):
    """Inventory item tracked for pricing."""

    __tablename__ = "inventory_items"
    __table_args__ = (Index("idx_items_org_name", "org_id", "name"),)

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_new_id)
    org_id: Mapped[str] = mapped_column(Text, ForeignKey("organization.id"), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    sku: Mapped[str | None] = mapped_column(Text, nullable=True)
    unit: Mapped[str] = mapped_column(Text, nullable=False, default="each")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class InventoryPriceHistory(Base):
    """Append-only price ledger. Rows are never updated in place."""

    __tablename__ = "inventory_price_history"
    __table_args__ = (
        Index("idx_price_org_item_effective", "org_id", "item_id", "effective_at"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_new_id)
    org_id: Mapped[str] = mapped_column(Text, ForeignKey("organization.id"), nullable=False)
    item_id: Mapped[str] = mapped_column(
        Text, ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False
    )
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    currency: Mapped[str] = mapped_column(Text, nullable=False, default="USD")
    vendor: Mapped[str | None] = mapped_column(Text, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str | None] = mapped_column(Text, nullable=True, default="manual")
    effective_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class ExpenseCategory(Base):
    """Org-scoped expense category."""

    __tablename__ = "expense_categories"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_new_id)
    org_id: Mapped[str] = mapped_column(Text, ForeignKey("organization.id"), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)


class RecurringExpenseTemplate(Base):
    """Recurring expense definition (subscriptions, utilities)."""

    __tablename__ = "recurring_expense_templates"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_new_id)
    org_id: Mapped[str] = mapped_column(Text, ForeignKey("organization.id"), nullable=False)
    category_id: Mapped[str | None] = mapped_column(
        Text, ForeignKey("expense_categories.id"), nullable=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    vendor: Mapped[str | None] = mapped_column(Text, nullable=True)
    estimated_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    frequency: Mapped[str] = mapped_column(Text, nullable=False, default="monthly")
    typical_day_of_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Relationships
    category: Mapped["ExpenseCategory | None"] = relationship("ExpenseCategory")


class Expense(Base):
    """Expense row. `amount` includes tax."""

    __tablename__ = "expenses"
    __table_args__ = (Index("idx_expenses_org_date", "org_id", "expense_date"),)

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_new_id)
    org_id: Mapped[str] = mapped_column(Text, ForeignKey("organization.id"), nullable=False)
    category_id: Mapped[str | None] = mapped_column(
        Text, ForeignKey("expense_categories.id"), nullable=True
    )
    recurring_template_id: Mapped[str | None] = mapped_column(
        Text, ForeignKey("recurring_expense_templates.id"), nullable=True
    )
    vendor: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    amount_pre_tax: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tax_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    expense_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    category: Mapped["ExpenseCategory | None"] = relationship("ExpenseCategory")
