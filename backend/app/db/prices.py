"""Point-in-time reads over the append-only price ledger."""

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.models import InventoryPriceHistory
from backend.app.db.queries import select_prices


@dataclass(frozen=True)
class PriceChange:
    """Price movement of one item between two instants."""

    start_price: float
    end_price: float
    change: float
    percent_change: float | None


def end_of_day(day: date) -> datetime:
    """Last instant (UTC) that still belongs to `day`."""
    return datetime.combine(day + timedelta(days=1), time.min, tzinfo=UTC) - timedelta(
        microseconds=1
    )


def as_instant(at: date | datetime) -> datetime:
    """Date-only bounds are inclusive of the whole day."""
    if isinstance(at, datetime):
        return at
    return end_of_day(at)


async def get_price_at(
    session: AsyncSession, org_id: str, item_id: str, at: date | datetime
) -> InventoryPriceHistory | None:
    """Latest ledger row effective at or before `at`, or None."""
    stmt = (
        select_prices(org_id, item_id)
        .where(InventoryPriceHistory.effective_at <= as_instant(at))
        .order_by(InventoryPriceHistory.effective_at.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_current_price(
    session: AsyncSession, org_id: str, item_id: str
) -> InventoryPriceHistory | None:
    """Latest ledger row effective as of now."""
    return await get_price_at(session, org_id, item_id, datetime.now(UTC))


async def get_price_change(
    session: AsyncSession,
    org_id: str,
    item_id: str,
    start: date | datetime,
    end: date | datetime,
) -> PriceChange | None:
    """Price change between two instants; None if either end has no price."""
    start_row = await get_price_at(session, org_id, item_id, start)
    end_row = await get_price_at(session, org_id, item_id, end)
    if start_row is None or end_row is None:
        return None

    return compute_change(start_row.unit_price, end_row.unit_price)


def compute_change(start_price: Decimal | float, end_price: Decimal | float) -> PriceChange:
    """Absolute and percent change; percent is None when the start price is zero."""
    start_value = float(start_price)
    end_value = float(end_price)
    change = end_value - start_value
    percent = (change / start_value) * 100 if start_value != 0 else None
    return PriceChange(
        start_price=start_value,
        end_price=end_value,
        change=change,
        percent_change=percent,
    )
