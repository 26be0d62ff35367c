from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from drc_loyalty.db.repo.receipts_repo import ReceiptsRepo
from drc_loyalty.db.session import SessionLocal
from drc_loyalty.economy.receipts.errors import (
    ReceiptAlreadyReviewedError,
    ReceiptNotFoundError,
    ReceiptRejectedError,
    ReceiptUserNotFoundError,
)
from drc_loyalty.economy.receipts.moderation import ReceiptModerationService
from drc_loyalty.economy.receipts.types import ModerationResult

from .deps import require_internal_actor, utc_now
from .receipts_helpers import receipt_as_response, rejection_response
from .receipts_models import ReceiptResponse

router = APIRouter(prefix="/internal/receipts", tags=["internal", "receipts"])

RECEIPT_STATUSES = {"PENDING", "VERIFIED", "REJECTED"}


class ReceiptApproveRequest(BaseModel):
    corrected_amount: Decimal | None = Field(default=None, gt=0)


class ReceiptRejectRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=64)


class ModerationResponse(BaseModel):
    receipt_id: UUID
    status: str
    points: int
    campaign: str | None = None
    code: str | None = None


def _as_response(result: ModerationResult) -> ModerationResponse:
    return ModerationResponse(
        receipt_id=result.receipt_id,
        status=result.status.value.lower(),
        points=result.points,
        campaign=result.campaign,
        code=result.code,
    )


@router.get("/pending", response_model=list[ReceiptResponse])
async def list_pending_receipts(
    request: Request,
    limit: int = Query(default=50, ge=1, le=200),
) -> list[ReceiptResponse]:
    require_internal_actor(request)
    async with SessionLocal.begin() as session:
        receipts = await ReceiptsRepo.list_pending(session, limit=limit)
        items_by_receipt = await ReceiptsRepo.list_items_by_receipt_ids(
            session,
            [receipt.id for receipt in receipts],
        )
    return [
        receipt_as_response(receipt, items_by_receipt.get(receipt.id, []))
        for receipt in receipts
    ]


@router.get("", response_model=list[ReceiptResponse])
async def list_receipts(
    request: Request,
    status: str | None = Query(default=None, max_length=16),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> list[ReceiptResponse]:
    require_internal_actor(request)
    normalized_status = status.strip().upper() if status else None
    if normalized_status is not None and normalized_status not in RECEIPT_STATUSES:
        raise HTTPException(status_code=422, detail={"code": "E_RECEIPT_STATUS_INVALID"})

    async with SessionLocal.begin() as session:
        receipts = await ReceiptsRepo.list_recent(
            session,
            status=normalized_status,
            limit=limit,
            offset=offset,
        )
        items_by_receipt = await ReceiptsRepo.list_items_by_receipt_ids(
            session,
            [receipt.id for receipt in receipts],
        )
    return [
        receipt_as_response(receipt, items_by_receipt.get(receipt.id, []))
        for receipt in receipts
    ]


@router.post("/{receipt_id}/approve", response_model=ModerationResponse)
async def approve_receipt(
    receipt_id: UUID,
    payload: ReceiptApproveRequest,
    request: Request,
) -> ModerationResponse | JSONResponse:
    reviewer = require_internal_actor(request)
    try:
        async with SessionLocal.begin() as session:
            result = await ReceiptModerationService.approve(
                session,
                receipt_id=receipt_id,
                reviewer=reviewer,
                corrected_amount=payload.corrected_amount,
                now_utc=utc_now(),
            )
    except ReceiptRejectedError as exc:
        return rejection_response(exc.code, exc.message)
    except ReceiptNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_RECEIPT_NOT_FOUND"}) from exc
    except ReceiptAlreadyReviewedError as exc:
        raise HTTPException(status_code=409, detail={"code": "RECEIPT_ALREADY_REVIEWED"}) from exc
    except ReceiptUserNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_USER_NOT_FOUND"}) from exc

    return _as_response(result)


@router.post("/{receipt_id}/reject", response_model=ModerationResponse)
async def reject_receipt(
    receipt_id: UUID,
    payload: ReceiptRejectRequest,
    request: Request,
) -> ModerationResponse:
    reviewer = require_internal_actor(request)
    try:
        async with SessionLocal.begin() as session:
            result = await ReceiptModerationService.reject(
                session,
                receipt_id=receipt_id,
                reviewer=reviewer,
                reason=payload.reason.strip(),
                now_utc=utc_now(),
            )
    except ReceiptNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_RECEIPT_NOT_FOUND"}) from exc
    except ReceiptAlreadyReviewedError as exc:
        raise HTTPException(status_code=409, detail={"code": "RECEIPT_ALREADY_REVIEWED"}) from exc

    return _as_response(result)
