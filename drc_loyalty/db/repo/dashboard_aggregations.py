from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.db.models.campaigns import Campaign
from drc_loyalty.db.models.receipts import Receipt
from drc_loyalty.db.models.users import User


async def count_users_by_status(session: AsyncSession) -> dict[str, int]:
    stmt = select(User.status, func.count(User.id)).group_by(User.status)
    result = await session.execute(stmt)
    return {str(status): int(count) for status, count in result.all()}


async def sum_member_spend(session: AsyncSession) -> Decimal:
    result = await session.execute(select(func.coalesce(func.sum(User.total_spent), 0)))
    return Decimal(result.scalar_one() or 0)


async def sum_outstanding_points(session: AsyncSession) -> int:
    result = await session.execute(select(func.coalesce(func.sum(User.points_balance), 0)))
    return int(result.scalar_one() or 0)


async def count_receipts_by_status(session: AsyncSession) -> dict[str, int]:
    stmt = select(Receipt.status, func.count(Receipt.id)).group_by(Receipt.status)
    result = await session.execute(stmt)
    return {str(status): int(count) for status, count in result.all()}


async def average_receipt_amount(session: AsyncSession) -> Decimal:
    result = await session.execute(select(func.coalesce(func.avg(Receipt.amount), 0)))
    return Decimal(result.scalar_one() or 0)


async def daily_receipt_totals(
    session: AsyncSession,
    *,
    from_date: date,
    to_date: date,
) -> dict[date, tuple[Decimal, int]]:
    stmt = (
        select(Receipt.receipt_date, func.sum(Receipt.amount), func.count(Receipt.id))
        .where(Receipt.receipt_date >= from_date, Receipt.receipt_date <= to_date)
        .group_by(Receipt.receipt_date)
    )
    result = await session.execute(stmt)
    return {
        receipt_date: (Decimal(amount or 0), int(count))
        for receipt_date, amount, count in result.all()
    }


async def top_campaign_brands(session: AsyncSession, *, limit: int) -> list[tuple[str, int]]:
    campaigns_total = func.count(Campaign.id)
    stmt = (
        select(Campaign.brand, campaigns_total)
        .group_by(Campaign.brand)
        .order_by(campaigns_total.desc(), Campaign.brand.asc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return [(str(brand), int(count)) for brand, count in result.all()]
