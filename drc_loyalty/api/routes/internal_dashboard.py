from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal

from fastapi import APIRouter, Request
from pydantic import BaseModel

from drc_loyalty.db.repo import dashboard_aggregations
from drc_loyalty.db.session import SessionLocal
from drc_loyalty.economy.points.time import kinshasa_local_date

from .deps import require_internal_actor, utc_now

router = APIRouter(prefix="/internal/dashboard", tags=["internal", "dashboard"])

CHART_DAYS = 7
TOP_BRANDS_LIMIT = 4
RECEIPT_STATUSES = ("PENDING", "VERIFIED", "REJECTED")


class DashboardStatsResponse(BaseModel):
    generated_at: datetime
    active_users: int
    users_by_status: dict[str, int]
    total_sales: Decimal
    receipts_processed: int
    receipts_by_status: dict[str, int]
    receipts_pending: int
    avg_basket: Decimal
    points_outstanding: int


class DailySalesPoint(BaseModel):
    day: date
    name: str
    sales: Decimal
    receipts: int


class BrandPoint(BaseModel):
    name: str
    value: int


class DashboardChartsResponse(BaseModel):
    sales_data: list[DailySalesPoint]
    brand_data: list[BrandPoint]


@router.get("/stats", response_model=DashboardStatsResponse)
async def get_dashboard_stats(request: Request) -> DashboardStatsResponse:
    require_internal_actor(request)
    async with SessionLocal.begin() as session:
        users_by_status = await dashboard_aggregations.count_users_by_status(session)
        total_sales = await dashboard_aggregations.sum_member_spend(session)
        points_outstanding = await dashboard_aggregations.sum_outstanding_points(session)
        receipt_counts = await dashboard_aggregations.count_receipts_by_status(session)
        avg_basket = await dashboard_aggregations.average_receipt_amount(session)

    return DashboardStatsResponse(
        generated_at=utc_now(),
        active_users=users_by_status.get("ACTIVE", 0),
        users_by_status=users_by_status,
        total_sales=total_sales,
        receipts_processed=sum(receipt_counts.values()),
        receipts_by_status={status: receipt_counts.get(status, 0) for status in RECEIPT_STATUSES},
        receipts_pending=receipt_counts.get("PENDING", 0),
        avg_basket=avg_basket.quantize(Decimal("0.01")),
        points_outstanding=points_outstanding,
    )


@router.get("/charts", response_model=DashboardChartsResponse)
async def get_dashboard_charts(request: Request) -> DashboardChartsResponse:
    require_internal_actor(request)
    to_date = kinshasa_local_date(utc_now())
    from_date = to_date - timedelta(days=CHART_DAYS - 1)
    async with SessionLocal.begin() as session:
        totals = await dashboard_aggregations.daily_receipt_totals(
            session,
            from_date=from_date,
            to_date=to_date,
        )
        brands = await dashboard_aggregations.top_campaign_brands(session, limit=TOP_BRANDS_LIMIT)

    sales_data: list[DailySalesPoint] = []
    for offset in range(CHART_DAYS):
        day = from_date + timedelta(days=offset)
        sales, receipts = totals.get(day, (Decimal("0"), 0))
        sales_data.append(
            DailySalesPoint(day=day, name=day.strftime("%a"), sales=sales, receipts=receipts)
        )
    return DashboardChartsResponse(
        sales_data=sales_data,
        brand_data=[BrandPoint(name=brand, value=count) for brand, count in brands],
    )
