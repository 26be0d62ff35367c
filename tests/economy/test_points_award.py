from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from drc_loyalty.economy.points.time import add_months, kinshasa_local_date
from drc_loyalty.economy.receipts.points import base_points, compute_award
from drc_loyalty.economy.receipts.routing import route_by_confidence
from drc_loyalty.economy.receipts.types import CampaignCandidate, ReceiptRoute


def _campaign(*, reward_type: str, reward_value: str) -> CampaignCandidate:
    return CampaignCandidate(
        id=1,
        name="Back to School",
        target_audience="all",
        min_spend=None,
        max_redemptions=None,
        conversions=0,
        reward_type=reward_type,
        reward_value=reward_value,
    )


@pytest.mark.parametrize(
    ("amount", "expected"),
    [
        (Decimal("20000"), 200),
        (Decimal("199.99"), 1),
        (Decimal("99.99"), 0),
        (Decimal("0"), 0),
    ],
)
def test_base_points_rounds_down(amount: Decimal, expected: int) -> None:
    assert base_points(amount, divisor=100) == expected


def test_compute_award_uses_flat_points_campaign_value() -> None:
    campaign = _campaign(reward_type="points", reward_value="500")
    assert compute_award(Decimal("20000"), campaign=campaign, divisor=100) == 500


def test_compute_award_falls_back_to_base_points_for_non_points_campaign() -> None:
    campaign = _campaign(reward_type="voucher", reward_value="Free soda")
    assert compute_award(Decimal("20000"), campaign=campaign, divisor=100) == 200


def test_compute_award_without_campaign_uses_base_points() -> None:
    assert compute_award(Decimal("4500"), campaign=None, divisor=100) == 45


def test_confidence_boundary_routes_to_review_below_threshold() -> None:
    assert (
        route_by_confidence(0.79, auto_verify_threshold=0.8, min_confidence=0.4)
        == ReceiptRoute.REVIEW
    )
    assert (
        route_by_confidence(0.80, auto_verify_threshold=0.8, min_confidence=0.4)
        == ReceiptRoute.VERIFY
    )
    assert (
        route_by_confidence(0.39, auto_verify_threshold=0.8, min_confidence=0.4)
        == ReceiptRoute.REJECT
    )


def test_add_months_clamps_to_month_end() -> None:
    assert add_months(date(2026, 8, 31), 6) == date(2027, 2, 28)
    assert add_months(date(2026, 3, 15), 6) == date(2026, 9, 15)
    assert add_months(date(2027, 8, 31), 6) == date(2028, 2, 29)


def test_kinshasa_local_date_crosses_midnight() -> None:
    late_utc = datetime(2026, 3, 1, 23, 30, tzinfo=timezone.utc)
    assert kinshasa_local_date(late_utc) == date(2026, 3, 2)
