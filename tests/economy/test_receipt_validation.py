from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from drc_loyalty.economy.receipts.errors import ErrorClass, ErrorCode, ReceiptRejectedError
from drc_loyalty.economy.receipts.types import ExtractedItem, ExtractedReceipt
from drc_loyalty.economy.receipts.validation import (
    normalize_receipt_number,
    validate_amount,
    validate_extracted_receipt,
)

TODAY = date(2026, 9, 1)


def _extracted(**overrides) -> ExtractedReceipt:
    values = {
        "merchant_name": "Kin Marché",
        "total_amount": Decimal("20000"),
        "currency": "cdf",
        "receipt_date": TODAY.isoformat(),
        "confidence": 0.95,
        "receipt_number": " ab-123/45 ",
        "items": [ExtractedItem(name="Cahier", quantity=10, unit_price=Decimal("2000"), total=Decimal("20000"))],
    }
    values.update(overrides)
    return ExtractedReceipt(**values)


def _validate(extracted: ExtractedReceipt):
    return validate_extracted_receipt(extracted, today=TODAY, max_amount=10_000_000, max_age_days=30)


def test_validate_extracted_receipt_normalizes_fields() -> None:
    validated = _validate(_extracted())

    assert validated.merchant_name == "Kin Marché"
    assert validated.amount == Decimal("20000.00")
    assert validated.currency == "CDF"
    assert validated.receipt_date == TODAY
    assert validated.receipt_number == "AB12345"
    assert len(validated.items) == 1


def test_missing_currency_defaults_to_cdf() -> None:
    assert _validate(_extracted(currency=None)).currency == "CDF"


def test_timestamp_dates_are_truncated_to_day() -> None:
    validated = _validate(_extracted(receipt_date=f"{TODAY.isoformat()}T18:45:00Z"))
    assert validated.receipt_date == TODAY


@pytest.mark.parametrize(
    "overrides",
    [
        {"merchant_name": "  "},
        {"receipt_date": None},
        {"receipt_date": "yesterday"},
        {"receipt_date": (TODAY + timedelta(days=1)).isoformat()},
        {"receipt_date": (TODAY - timedelta(days=31)).isoformat()},
        {"currency": "EUR"},
    ],
)
def test_invalid_receipts_are_rejected_as_validation_errors(overrides: dict) -> None:
    with pytest.raises(ReceiptRejectedError) as exc_info:
        _validate(_extracted(**overrides))

    assert exc_info.value.code == ErrorCode.INVALID_INPUT
    assert exc_info.value.error_class == ErrorClass.VALIDATION


@pytest.mark.parametrize("amount", [None, Decimal("0"), Decimal("-5")])
def test_validate_amount_rejects_non_positive(amount: Decimal | None) -> None:
    with pytest.raises(ReceiptRejectedError) as exc_info:
        validate_amount(amount, max_amount=1000)
    assert exc_info.value.code == ErrorCode.INVALID_AMOUNT


def test_validate_amount_rejects_above_maximum() -> None:
    with pytest.raises(ReceiptRejectedError) as exc_info:
        validate_amount(Decimal("1000.01"), max_amount=1000)
    assert exc_info.value.code == ErrorCode.AMOUNT_TOO_HIGH


def test_normalize_receipt_number_drops_empty_values() -> None:
    assert normalize_receipt_number(None) is None
    assert normalize_receipt_number(" -/- ") is None
    assert normalize_receipt_number("no 00042") == "NO00042"
