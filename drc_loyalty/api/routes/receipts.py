from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from drc_loyalty.db.repo.receipts_repo import ReceiptsRepo
from drc_loyalty.db.session import SessionLocal
from drc_loyalty.economy.receipts.errors import (
    ErrorCode,
    ReceiptRejectedError,
    ReceiptUserInactiveError,
    ReceiptUserNotFoundError,
)
from drc_loyalty.economy.receipts.service import ReceiptService
from drc_loyalty.services.image_storage import store_receipt_image
from drc_loyalty.services.ocr import OcrResponseError, OcrUnavailableError, analyze_receipt_image

from .deps import require_shopper_user_id, utc_now
from .receipts_helpers import (
    decode_image,
    extracted_from_payload,
    receipt_as_response,
    rejection_response,
)
from .receipts_models import (
    ReceiptItemPayload,
    ReceiptResponse,
    ReceiptScanRequest,
    ReceiptScanResponse,
    ReceiptSubmitRequest,
    ReceiptSubmitResponse,
)

router = APIRouter(prefix="/receipts", tags=["receipts"])
logger = structlog.get_logger(__name__)


@router.post("/scan", response_model=ReceiptScanResponse)
async def scan_receipt(payload: ReceiptScanRequest, request: Request) -> ReceiptScanResponse:
    require_shopper_user_id(request)
    image_bytes = decode_image(payload.image_base64)
    if image_bytes is None:
        raise HTTPException(status_code=422, detail={"code": "E_INVALID_IMAGE"})

    try:
        extraction = await analyze_receipt_image(image_bytes, content_type=payload.content_type)
    except OcrUnavailableError as exc:
        raise HTTPException(status_code=503, detail={"code": "E_OCR_UNAVAILABLE"}) from exc
    except OcrResponseError as exc:
        raise HTTPException(status_code=502, detail={"code": "E_OCR_BAD_RESPONSE"}) from exc

    return ReceiptScanResponse(
        merchant_name=extraction.merchant_name,
        total_amount=extraction.total_amount,
        currency=extraction.currency,
        date=extraction.date,
        items=[
            ReceiptItemPayload(
                name=item.name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=item.total,
                category=item.category,
            )
            for item in extraction.items
        ],
        confidence=extraction.confidence,
        receipt_number=extraction.receipt_number,
    )


@router.post("", response_model=ReceiptSubmitResponse)
async def submit_receipt(
    payload: ReceiptSubmitRequest,
    request: Request,
) -> ReceiptSubmitResponse | JSONResponse:
    user_id = require_shopper_user_id(request)
    image_bytes = decode_image(payload.image_base64)
    if image_bytes is None:
        return rejection_response(ErrorCode.INVALID_INPUT, "Receipt image is missing or invalid.")

    try:
        image = await store_receipt_image(image_bytes)
        result = await ReceiptService.submit(
            user_id=user_id,
            extracted=extracted_from_payload(payload),
            image=image,
            now_utc=utc_now(),
        )
    except ReceiptRejectedError as exc:
        return rejection_response(exc.code, exc.message)
    except ReceiptUserNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_USER_NOT_FOUND"}) from exc
    except ReceiptUserInactiveError as exc:
        raise HTTPException(status_code=403, detail={"code": "E_USER_INACTIVE"}) from exc
    except (SQLAlchemyError, OSError):
        logger.exception("receipt_processing_failed", user_id=user_id)
        return rejection_response(ErrorCode.INTERNAL_ERROR)

    return ReceiptSubmitResponse(
        points=result.points,
        status=result.status.value.lower(),
        receipt_id=result.receipt_id,
        campaign=result.campaign,
    )


@router.get("/me", response_model=list[ReceiptResponse])
async def list_my_receipts(
    request: Request,
    limit: int = Query(default=50, ge=1, le=200),
) -> list[ReceiptResponse]:
    user_id = require_shopper_user_id(request)
    async with SessionLocal.begin() as session:
        receipts = await ReceiptsRepo.list_by_user(session, user_id=user_id, limit=limit)
        items_by_receipt = await ReceiptsRepo.list_items_by_receipt_ids(
            session,
            [receipt.id for receipt in receipts],
        )

    return [
        receipt_as_response(receipt, items_by_receipt.get(receipt.id, []))
        for receipt in receipts
    ]
