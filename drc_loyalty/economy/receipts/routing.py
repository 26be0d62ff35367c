from __future__ import annotations

from drc_loyalty.economy.receipts.types import ReceiptRoute


def route_by_confidence(
    confidence: float,
    *,
    auto_verify_threshold: float,
    min_confidence: float,
) -> ReceiptRoute:
    if confidence >= auto_verify_threshold:
        return ReceiptRoute.VERIFY
    if confidence >= min_confidence:
        return ReceiptRoute.REVIEW
    return ReceiptRoute.REJECT
