from __future__ import annotations

from datetime import date, datetime

import structlog
from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from drc_loyalty.db.repo.receipts_repo import ReceiptsRepo
from drc_loyalty.db.repo.users_repo import UsersRepo
from drc_loyalty.db.session import SessionLocal
from drc_loyalty.economy.points.errors import (
    PointsInsufficientBalanceError,
    PointsInvalidAdjustmentError,
    PointsUserNotFoundError,
)
from drc_loyalty.economy.points.service import PointsService

from .deps import require_internal_actor, utc_now
from .receipts_helpers import receipt_as_response
from .receipts_models import ReceiptResponse
from .users import ShopperProfileResponse, profile_as_response

router = APIRouter(prefix="/internal/users", tags=["internal", "users"])
logger = structlog.get_logger(__name__)

USER_STATUSES = {"ACTIVE", "SUSPENDED", "BANNED"}
USER_DETAIL_RECENT_RECEIPTS = 20


class UserDetailResponse(ShopperProfileResponse):
    gender: str | None = None
    birthdate: date | None = None
    login_locked_until: datetime | None = None
    recent_receipts: list[ReceiptResponse] = Field(default_factory=list)


class UserStatusUpdateRequest(BaseModel):
    status: str = Field(min_length=1, max_length=16)
    reason: str | None = Field(default=None, max_length=255)


class UserStatusResponse(BaseModel):
    user_id: int
    status: str


class PointsAdjustmentRequest(BaseModel):
    delta: int
    reason: str = Field(min_length=1, max_length=255)


class PointsAdjustmentResponse(BaseModel):
    user_id: int
    delta: int
    points_balance: int


def _normalize_user_status(raw_status: str) -> str:
    status = raw_status.strip().upper()
    if status not in USER_STATUSES:
        raise HTTPException(status_code=422, detail={"code": "E_USER_STATUS_INVALID"})
    return status


@router.get("", response_model=list[ShopperProfileResponse])
async def list_users(
    request: Request,
    query: str | None = Query(default=None, max_length=100),
    status: str | None = Query(default=None, max_length=16),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> list[ShopperProfileResponse]:
    require_internal_actor(request)
    normalized_status = _normalize_user_status(status) if status else None
    async with SessionLocal.begin() as session:
        users = await UsersRepo.search(
            session,
            query=(query or "").strip() or None,
            status=normalized_status,
            limit=limit,
            offset=offset,
        )
    now_utc = utc_now()
    return [profile_as_response(user, now_utc=now_utc) for user in users]


@router.get("/{user_id}", response_model=UserDetailResponse)
async def get_user_detail(user_id: int, request: Request) -> UserDetailResponse:
    require_internal_actor(request)
    async with SessionLocal.begin() as session:
        user = await UsersRepo.get_by_id(session, user_id)
        if user is None:
            raise HTTPException(status_code=404, detail={"code": "E_USER_NOT_FOUND"})
        receipts = await ReceiptsRepo.list_by_user(
            session,
            user_id=user_id,
            limit=USER_DETAIL_RECENT_RECEIPTS,
        )
        items_by_receipt = await ReceiptsRepo.list_items_by_receipt_ids(
            session,
            [receipt.id for receipt in receipts],
        )

    profile = profile_as_response(user, now_utc=utc_now())
    return UserDetailResponse(
        **profile.model_dump(),
        gender=user.gender,
        birthdate=user.birthdate,
        login_locked_until=user.login_locked_until,
        recent_receipts=[
            receipt_as_response(receipt, items_by_receipt.get(receipt.id, []))
            for receipt in receipts
        ],
    )


@router.put("/{user_id}/status", response_model=UserStatusResponse)
async def update_user_status(
    user_id: int,
    payload: UserStatusUpdateRequest,
    request: Request,
) -> UserStatusResponse:
    actor = require_internal_actor(request)
    desired_status = _normalize_user_status(payload.status)

    async with SessionLocal.begin() as session:
        updated = await UsersRepo.set_status(session, user_id=user_id, status=desired_status)
    if updated == 0:
        raise HTTPException(status_code=404, detail={"code": "E_USER_NOT_FOUND"})

    logger.info(
        "internal_user_status_changed",
        user_id=user_id,
        next_status=desired_status,
        reason=(payload.reason or "").strip() or None,
        actor=actor,
    )
    return UserStatusResponse(user_id=user_id, status=desired_status)


@router.put("/{user_id}/points", response_model=PointsAdjustmentResponse)
async def adjust_user_points(
    user_id: int,
    payload: PointsAdjustmentRequest,
    request: Request,
) -> PointsAdjustmentResponse:
    actor = require_internal_actor(request)
    try:
        async with SessionLocal.begin() as session:
            result = await PointsService.adjust_manually(
                session,
                user_id=user_id,
                delta=payload.delta,
                reason=payload.reason.strip(),
                actor=actor,
                now_utc=utc_now(),
            )
    except PointsInvalidAdjustmentError as exc:
        raise HTTPException(status_code=422, detail={"code": "E_POINTS_DELTA_INVALID"}) from exc
    except PointsUserNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_USER_NOT_FOUND"}) from exc
    except PointsInsufficientBalanceError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_INSUFFICIENT_POINTS"}) from exc

    return PointsAdjustmentResponse(
        user_id=result.user_id,
        delta=result.delta,
        points_balance=result.balance_after,
    )
