from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class ReceiptItemPayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    quantity: int = Field(default=1, ge=0)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)
    total: Decimal = Field(default=Decimal("0"), ge=0)
    category: str | None = Field(default=None, max_length=64)


class ReceiptScanRequest(BaseModel):
    image_base64: str = Field(min_length=1)
    content_type: str = Field(default="image/jpeg", max_length=64)


class ReceiptScanResponse(BaseModel):
    merchant_name: str | None = None
    total_amount: Decimal | None = None
    currency: str | None = None
    date: str | None = None
    items: list[ReceiptItemPayload] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    receipt_number: str | None = None


class ReceiptSubmitRequest(BaseModel):
    image_base64: str = Field(min_length=1)
    merchant_name: str | None = Field(default=None, max_length=255)
    total_amount: Decimal | None = None
    currency: str | None = Field(default=None, max_length=8)
    date: str | None = Field(default=None, max_length=32)
    items: list[ReceiptItemPayload] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    receipt_number: str | None = Field(default=None, max_length=64)


class ReceiptSubmitResponse(BaseModel):
    success: bool = True
    points: int = Field(ge=0)
    status: str
    receipt_id: UUID
    campaign: str | None = None


class ReceiptItemResponse(BaseModel):
    name: str
    quantity: int
    unit_price: Decimal
    total: Decimal
    category: str | None = None


class ReceiptResponse(BaseModel):
    id: UUID
    user_id: int
    supermarket_name: str
    amount: Decimal
    currency: str
    receipt_date: date
    status: str
    points_awarded: int
    confidence_score: float
    image_url: str
    campaign_id: int | None = None
    reject_reason: str | None = None
    created_at: datetime
    reviewed_at: datetime | None = None
    items: list[ReceiptItemResponse] = Field(default_factory=list)
