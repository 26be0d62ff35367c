from __future__ import annotations

import re
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from drc_loyalty.economy.receipts.constants import MAX_RECEIPT_ITEMS, SUPPORTED_CURRENCIES
from drc_loyalty.economy.receipts.errors import ErrorCode, ReceiptRejectedError
from drc_loyalty.economy.receipts.types import ExtractedReceipt, ValidatedReceipt

_RECEIPT_NUMBER_STRIP_PATTERN = re.compile(r"[^0-9A-Z]+")
_CENT = Decimal("0.01")


def normalize_receipt_number(raw_number: str | None) -> str | None:
    if raw_number is None:
        return None
    normalized = _RECEIPT_NUMBER_STRIP_PATTERN.sub("", raw_number.strip().upper())
    return normalized or None


def parse_receipt_date(raw_date: str | None) -> date | None:
    if not raw_date:
        return None
    try:
        return date.fromisoformat(raw_date.strip()[:10])
    except ValueError:
        return None


def validate_amount(amount: Decimal | None, *, max_amount: int) -> Decimal:
    if amount is None:
        raise ReceiptRejectedError(ErrorCode.INVALID_AMOUNT)
    try:
        normalized = Decimal(amount).quantize(_CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ReceiptRejectedError(ErrorCode.INVALID_AMOUNT) from exc
    if not normalized.is_finite() or normalized <= 0:
        raise ReceiptRejectedError(ErrorCode.INVALID_AMOUNT)
    if normalized > max_amount:
        raise ReceiptRejectedError(ErrorCode.AMOUNT_TOO_HIGH)
    return normalized


def validate_extracted_receipt(
    extracted: ExtractedReceipt,
    *,
    today: date,
    max_amount: int,
    max_age_days: int,
) -> ValidatedReceipt:
    merchant_name = (extracted.merchant_name or "").strip()
    if not merchant_name:
        raise ReceiptRejectedError(ErrorCode.INVALID_INPUT, "Store name is missing.")

    amount = validate_amount(extracted.total_amount, max_amount=max_amount)

    receipt_date = parse_receipt_date(extracted.receipt_date)
    if receipt_date is None:
        raise ReceiptRejectedError(ErrorCode.INVALID_INPUT, "Receipt date is missing or invalid.")
    if receipt_date > today:
        raise ReceiptRejectedError(ErrorCode.INVALID_INPUT, "Receipt date is in the future.")
    if receipt_date < today - timedelta(days=max_age_days):
        raise ReceiptRejectedError(ErrorCode.INVALID_INPUT, "Receipt is too old.")

    currency = (extracted.currency or "CDF").strip().upper()
    if currency not in SUPPORTED_CURRENCIES:
        raise ReceiptRejectedError(ErrorCode.INVALID_INPUT, "Unsupported currency.")

    if len(extracted.items) > MAX_RECEIPT_ITEMS:
        raise ReceiptRejectedError(ErrorCode.INVALID_INPUT, "Too many line items.")

    return ValidatedReceipt(
        merchant_name=merchant_name,
        amount=amount,
        currency=currency,
        receipt_date=receipt_date,
        confidence=extracted.confidence,
        receipt_number=normalize_receipt_number(extracted.receipt_number),
        items=tuple(extracted.items),
    )
