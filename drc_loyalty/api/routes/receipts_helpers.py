from __future__ import annotations

import base64
import binascii

from fastapi.responses import JSONResponse

from drc_loyalty.db.models.receipt_items import ReceiptItem
from drc_loyalty.db.models.receipts import Receipt
from drc_loyalty.economy.receipts.errors import (
    ERROR_CLASS_BY_CODE,
    ERROR_MESSAGES,
    ErrorClass,
    ErrorCode,
)
from drc_loyalty.economy.receipts.types import ExtractedItem, ExtractedReceipt
from drc_loyalty.services.image_storage import MAX_RECEIPT_IMAGE_BYTES

from .receipts_models import ReceiptItemResponse, ReceiptResponse, ReceiptSubmitRequest

HTTP_STATUS_BY_ERROR_CLASS: dict[ErrorClass, int] = {
    ErrorClass.DUPLICATE: 409,
    ErrorClass.ELIGIBILITY: 422,
    ErrorClass.VALIDATION: 422,
    ErrorClass.INFRASTRUCTURE: 500,
}


def rejection_status_code(code: ErrorCode) -> int:
    if code == ErrorCode.RATE_LIMIT_EXCEEDED:
        return 429
    return HTTP_STATUS_BY_ERROR_CLASS[ERROR_CLASS_BY_CODE[code]]


def rejection_response(code: ErrorCode, message: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=rejection_status_code(code),
        content={
            "success": False,
            "error": message or ERROR_MESSAGES[code],
            "code": code.value,
        },
    )


def decode_image(image_base64: str) -> bytes | None:
    raw = image_base64.strip()
    if raw.startswith("data:"):
        _, _, raw = raw.partition(",")
    try:
        image_bytes = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError):
        return None
    if not image_bytes or len(image_bytes) > MAX_RECEIPT_IMAGE_BYTES:
        return None
    return image_bytes


def extracted_from_payload(payload: ReceiptSubmitRequest) -> ExtractedReceipt:
    return ExtractedReceipt(
        merchant_name=payload.merchant_name,
        total_amount=payload.total_amount,
        currency=payload.currency,
        receipt_date=payload.date,
        confidence=payload.confidence,
        receipt_number=payload.receipt_number,
        items=[
            ExtractedItem(
                name=item.name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=item.total,
                category=item.category,
            )
            for item in payload.items
        ],
    )


def receipt_as_response(receipt: Receipt, items: list[ReceiptItem]) -> ReceiptResponse:
    return ReceiptResponse(
        id=receipt.id,
        user_id=receipt.user_id,
        supermarket_name=receipt.supermarket_name,
        amount=receipt.amount,
        currency=receipt.currency,
        receipt_date=receipt.receipt_date,
        status=receipt.status,
        points_awarded=receipt.points_awarded,
        confidence_score=receipt.confidence_score,
        image_url=receipt.image_url,
        campaign_id=receipt.campaign_id,
        reject_reason=receipt.reject_reason,
        created_at=receipt.created_at,
        reviewed_at=receipt.reviewed_at,
        items=[
            ReceiptItemResponse(
                name=item.name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=item.total,
                category=item.category,
            )
            for item in items
        ],
    )
