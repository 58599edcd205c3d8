"""Pure aggregation helpers for expense reporting templates.

Amounts arrive as Decimal from the database and leave as float, matching the
JSON payloads the assistant and dashboards consume. A missing pre-tax amount
falls back to the gross amount; a missing tax amount counts as zero.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

UNCATEGORIZED_ID = "uncategorized"
UNCATEGORIZED_NAME = "Uncategorized"


@dataclass(frozen=True)
class ExpenseFigures:
    """The subset of an expense row the aggregations need."""

    amount: Decimal | float
    amount_pre_tax: Decimal | float | None = None
    tax_amount: Decimal | float | None = None
    expense_date: date | None = None
    vendor: str | None = None
    category_id: str | None = None
    category_name: str | None = None

    @property
    def total(self) -> float:
        return float(self.amount)

    @property
    def pre_tax(self) -> float:
        if self.amount_pre_tax:
            return float(self.amount_pre_tax)
        return float(self.amount)

    @property
    def tax(self) -> float:
        return float(self.tax_amount) if self.tax_amount else 0.0


@dataclass
class _Bucket:
    total: float = 0.0
    pre_tax: float = 0.0
    tax: float = 0.0
    count: int = 0

    def add(self, row: ExpenseFigures) -> None:
        self.total += row.total
        self.pre_tax += row.pre_tax
        self.tax += row.tax
        self.count += 1


def _tax_rate(tax: float, pre_tax: float) -> float:
    return (tax / pre_tax) * 100 if pre_tax > 0 else 0.0


def summarize_monthly(rows: Iterable[ExpenseFigures]) -> dict[str, Any]:
    """Totals per YYYY-MM month, ascending, with grand totals."""
    buckets: dict[str, _Bucket] = {}
    for row in rows:
        if row.expense_date is None:
            continue
        month = row.expense_date.strftime("%Y-%m")
        buckets.setdefault(month, _Bucket()).add(row)

    months = [
        {
            "month": month,
            "total": bucket.total,
            "preTaxTotal": bucket.pre_tax,
            "taxTotal": bucket.tax,
            "effectiveTaxRate": _tax_rate(bucket.tax, bucket.pre_tax),
            "count": bucket.count,
        }
        for month, bucket in sorted(buckets.items())
    ]

    grand_total = sum(m["total"] for m in months)
    grand_pre_tax = sum(m["preTaxTotal"] for m in months)
    grand_tax = sum(m["taxTotal"] for m in months)

    return {
        "months": months,
        "grandTotal": grand_total,
        "grandPreTaxTotal": grand_pre_tax,
        "grandTaxTotal": grand_tax,
        "averageTaxRate": _tax_rate(grand_tax, grand_pre_tax),
        "totalCount": sum(m["count"] for m in months),
    }


def summarize_by_category(rows: Iterable[ExpenseFigures]) -> dict[str, Any]:
    """Totals per category, largest first, with share of the grand total."""
    buckets: dict[str, _Bucket] = {}
    names: dict[str, str] = {}
    for row in rows:
        category_id = row.category_id or UNCATEGORIZED_ID
        names.setdefault(category_id, row.category_name or UNCATEGORIZED_NAME)
        buckets.setdefault(category_id, _Bucket()).add(row)

    grand_total = sum(b.total for b in buckets.values())
    grand_tax = sum(b.tax for b in buckets.values())

    categories = sorted(
        (
            {
                "categoryId": category_id,
                "categoryName": names[category_id],
                "total": bucket.total,
                "preTaxTotal": bucket.pre_tax,
                "taxTotal": bucket.tax,
                "count": bucket.count,
                "percentOfTotal": (bucket.total / grand_total) * 100 if grand_total > 0 else 0.0,
            }
            for category_id, bucket in buckets.items()
        ),
        key=lambda c: c["total"],
        reverse=True,
    )

    return {"categories": categories, "grandTotal": grand_total, "grandTaxTotal": grand_tax}


def rank_vendors(rows: Iterable[ExpenseFigures], limit: int) -> dict[str, Any]:
    """Top vendors by gross spend. Rows without a vendor are skipped."""
    buckets: dict[str, _Bucket] = {}
    for row in rows:
        if not row.vendor:
            continue
        buckets.setdefault(row.vendor, _Bucket()).add(row)

    vendors = sorted(
        (
            {
                "vendor": vendor,
                "total": bucket.total,
                "preTaxTotal": bucket.pre_tax,
                "taxTotal": bucket.tax,
                "count": bucket.count,
            }
            for vendor, bucket in buckets.items()
        ),
        key=lambda v: v["total"],
        reverse=True,
    )
    return {"vendors": vendors[:limit]}


def summarize_org_spending(
    orgs: Iterable[tuple[str, str]], rows_by_org: dict[str, list[ExpenseFigures]]
) -> dict[str, Any]:
    """Spending per organization, largest first. Orgs without expenses report zero."""
    spending = []
    for org_id, org_name in orgs:
        bucket = _Bucket()
        for row in rows_by_org.get(org_id, []):
            bucket.add(row)
        spending.append(
            {
                "orgId": org_id,
                "orgName": org_name,
                "total": bucket.total,
                "preTaxTotal": bucket.pre_tax,
                "taxTotal": bucket.tax,
                "count": bucket.count,
            }
        )

    spending.sort(key=lambda s: s["total"], reverse=True)
    return {
        "spending": spending,
        "grandTotal": sum(s["total"] for s in spending),
        "grandTaxTotal": sum(s["taxTotal"] for s in spending),
    }


def summarize_amounts(amounts: list[float]) -> dict[str, Any]:
    """Count/total/average/min/max and the max-min spread of a series."""
    if not amounts:
        return {"count": 0, "total": 0.0, "average": 0.0, "min": 0.0, "max": 0.0, "variance": 0.0}

    total = sum(amounts)
    low = min(amounts)
    high = max(amounts)
    return {
        "count": len(amounts),
        "total": total,
        "average": total / len(amounts),
        "min": low,
        "max": high,
        "variance": high - low,
    }
