from __future__ import annotations

import base64
import json
import re
from decimal import Decimal

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from drc_loyalty.core.config import get_settings

logger = structlog.get_logger(__name__)

_CODE_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class OcrUnavailableError(Exception):
    pass


class OcrResponseError(Exception):
    pass


class OcrItem(BaseModel):
    name: str
    quantity: int = Field(default=1, ge=0)
    unit_price: Decimal = Field(default=Decimal("0"), alias="unitPrice")
    total: Decimal = Decimal("0")
    category: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class OcrExtraction(BaseModel):
    merchant_name: str | None = Field(default=None, alias="merchantName")
    total_amount: Decimal | None = Field(default=None, alias="totalAmount")
    currency: str | None = None
    date: str | None = None
    items: list[OcrItem] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    receipt_number: str | None = Field(default=None, alias="receiptNumber")

    model_config = ConfigDict(populate_by_name=True)


def strip_code_fences(raw_text: str) -> str:
    return _CODE_FENCE_PATTERN.sub("", raw_text.strip())


def parse_extraction(raw_text: str) -> OcrExtraction:
    try:
        payload = json.loads(strip_code_fences(raw_text))
    except json.JSONDecodeError as exc:
        raise OcrResponseError("OCR reply is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise OcrResponseError("OCR reply is not a JSON object")
    try:
        return OcrExtraction.model_validate(payload)
    except ValidationError as exc:
        raise OcrResponseError("OCR reply does not match the receipt schema") from exc


async def analyze_receipt_image(
    image_bytes: bytes,
    *,
    content_type: str = "image/jpeg",
    client: httpx.AsyncClient | None = None,
) -> OcrExtraction:
    settings = get_settings()
    if not settings.ocr_api_url:
        raise OcrUnavailableError("OCR service is not configured")

    body = {
        "image": base64.b64encode(image_bytes).decode("ascii"),
        "content_type": content_type,
    }
    headers = {"Authorization": f"Bearer {settings.ocr_api_key}"} if settings.ocr_api_key else {}

    owns_client = client is None
    http_client = client or httpx.AsyncClient(timeout=settings.ocr_timeout_seconds)
    try:
        response = await http_client.post(settings.ocr_api_url, json=body, headers=headers)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning("ocr_request_failed", error_type=type(exc).__name__)
        raise OcrUnavailableError("OCR service request failed") from exc
    finally:
        if owns_client:
            await http_client.aclose()

    extraction = parse_extraction(response.text)
    logger.info(
        "ocr_receipt_extracted",
        confidence=extraction.confidence,
        items=len(extraction.items),
    )
    return extraction
