from __future__ import annotations

import json
from decimal import Decimal
from types import SimpleNamespace

import httpx
import pytest

from drc_loyalty.services import ocr

OCR_REPLY = {
    "merchantName": "Kin Marché",
    "totalAmount": 20000,
    "currency": "CDF",
    "date": "2026-09-01",
    "items": [{"name": "Cahier", "quantity": 10, "unitPrice": 2000, "total": 20000}],
    "confidence": 0.95,
    "receiptNumber": "KM-000123",
}


def _settings(*, ocr_api_url: str = "https://ocr.example.com/v1/receipts") -> SimpleNamespace:
    return SimpleNamespace(ocr_api_url=ocr_api_url, ocr_api_key="ocr-key", ocr_timeout_seconds=5.0)


def test_parse_extraction_accepts_fenced_json() -> None:
    raw_text = "```json\n" + json.dumps(OCR_REPLY) + "\n```"

    extraction = ocr.parse_extraction(raw_text)

    assert extraction.merchant_name == "Kin Marché"
    assert extraction.total_amount == Decimal("20000")
    assert extraction.items[0].unit_price == Decimal("2000")
    assert extraction.receipt_number == "KM-000123"


@pytest.mark.parametrize(
    "raw_text",
    [
        "not json at all",
        "[1, 2, 3]",
        json.dumps({**OCR_REPLY, "confidence": 1.7}),
    ],
)
def test_parse_extraction_rejects_malformed_replies(raw_text: str) -> None:
    with pytest.raises(ocr.OcrResponseError):
        ocr.parse_extraction(raw_text)


async def test_analyze_receipt_image_posts_base64_payload(monkeypatch) -> None:
    seen_requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen_requests.append(request)
        return httpx.Response(200, text=json.dumps(OCR_REPLY))

    monkeypatch.setattr(ocr, "get_settings", _settings)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        extraction = await ocr.analyze_receipt_image(b"image-bytes", client=client)

    assert extraction.confidence == 0.95
    body = json.loads(seen_requests[0].content)
    assert body == {"image": "aW1hZ2UtYnl0ZXM=", "content_type": "image/jpeg"}
    assert seen_requests[0].headers["Authorization"] == "Bearer ocr-key"


async def test_analyze_receipt_image_maps_http_failure(monkeypatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="busy")

    monkeypatch.setattr(ocr, "get_settings", _settings)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ocr.OcrUnavailableError):
            await ocr.analyze_receipt_image(b"image-bytes", client=client)


async def test_analyze_receipt_image_requires_configuration(monkeypatch) -> None:
    monkeypatch.setattr(ocr, "get_settings", lambda: _settings(ocr_api_url=""))

    with pytest.raises(ocr.OcrUnavailableError):
        await ocr.analyze_receipt_image(b"image-bytes")
