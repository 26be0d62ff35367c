from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from drc_loyalty.db.models.users import User
from drc_loyalty.db.repo.ledger_repo import LedgerRepo
from drc_loyalty.db.session import SessionLocal
from drc_loyalty.economy.points.errors import PointsUserNotFoundError
from drc_loyalty.economy.points.segments import classify_segment
from drc_loyalty.economy.points.service import PointsService

from .deps import require_shopper_user_id, utc_now

router = APIRouter(prefix="/users", tags=["users"])


class ShopperProfileResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str | None = None
    phone_number: str
    status: str
    segment: str
    points_balance: int
    points_expiring: int
    points_expires_at: date | None = None
    total_spent: Decimal
    joined_at: datetime
    last_receipt_at: datetime | None = None


class LedgerEntryResponse(BaseModel):
    id: int
    entry_type: str
    direction: str
    amount: int
    balance_after: int | None = None
    source: str
    created_at: datetime


def profile_as_response(user: User, *, now_utc: datetime) -> ShopperProfileResponse:
    segment = classify_segment(
        total_spent=user.total_spent,
        joined_at=user.joined_at,
        last_receipt_at=user.last_receipt_at,
        now_utc=now_utc,
    )
    return ShopperProfileResponse(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        phone_number=user.phone_number,
        status=user.status,
        segment=segment.value,
        points_balance=user.points_balance,
        points_expiring=user.points_expiring,
        points_expires_at=user.points_expires_at,
        total_spent=user.total_spent,
        joined_at=user.joined_at,
        last_receipt_at=user.last_receipt_at,
    )


@router.get("/me", response_model=ShopperProfileResponse)
async def get_my_profile(request: Request) -> ShopperProfileResponse:
    user_id = require_shopper_user_id(request)
    now_utc = utc_now()
    try:
        async with SessionLocal.begin() as session:
            user = await PointsService.sync_user_expiration(session, user_id=user_id, now_utc=now_utc)
    except PointsUserNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_USER_NOT_FOUND"}) from exc

    return profile_as_response(user, now_utc=now_utc)


@router.get("/me/ledger", response_model=list[LedgerEntryResponse])
async def get_my_ledger(
    request: Request,
    limit: int = Query(default=50, ge=1, le=200),
) -> list[LedgerEntryResponse]:
    user_id = require_shopper_user_id(request)
    async with SessionLocal.begin() as session:
        entries = await LedgerRepo.list_by_user(session, user_id=user_id, limit=limit)

    return [
        LedgerEntryResponse(
            id=entry.id,
            entry_type=entry.entry_type,
            direction=entry.direction,
            amount=entry.amount,
            balance_after=entry.balance_after,
            source=entry.source,
            created_at=entry.created_at,
        )
        for entry in entries
    ]
