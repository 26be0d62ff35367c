from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID


class ReceiptStatus(str, Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class ReceiptRoute(str, Enum):
    VERIFY = "VERIFY"
    REVIEW = "REVIEW"
    REJECT = "REJECT"


@dataclass(slots=True)
class ExtractedItem:
    name: str
    quantity: int = 1
    unit_price: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    category: str | None = None


@dataclass(slots=True)
class ExtractedReceipt:
    merchant_name: str | None
    total_amount: Decimal | None
    currency: str | None
    receipt_date: str | None
    confidence: float
    receipt_number: str | None = None
    items: list[ExtractedItem] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ValidatedReceipt:
    merchant_name: str
    amount: Decimal
    currency: str
    receipt_date: date
    confidence: float
    receipt_number: str | None
    items: tuple[ExtractedItem, ...]


@dataclass(frozen=True, slots=True)
class StoredImage:
    sha256: str
    url: str


@dataclass(frozen=True, slots=True)
class CampaignCandidate:
    id: int
    name: str
    target_audience: str
    min_spend: Decimal | None
    max_redemptions: int | None
    conversions: int
    reward_type: str
    reward_value: str


@dataclass(slots=True)
class ReceiptProcessResult:
    receipt_id: UUID
    status: ReceiptStatus
    points: int
    campaign: str | None = None
    campaign_id: int | None = None
    success: bool = True


@dataclass(slots=True)
class ModerationResult:
    receipt_id: UUID
    status: ReceiptStatus
    points: int
    campaign: str | None = None
    code: str | None = None
