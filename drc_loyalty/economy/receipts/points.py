from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal

from drc_loyalty.economy.receipts.eligibility import parse_points_value
from drc_loyalty.economy.receipts.types import CampaignCandidate


def base_points(amount: Decimal, *, divisor: int) -> int:
    if amount <= 0:
        return 0
    return int((amount / Decimal(divisor)).to_integral_value(rounding=ROUND_FLOOR))


def compute_award(amount: Decimal, *, campaign: CampaignCandidate | None, divisor: int) -> int:
    if campaign is not None and campaign.reward_type == "points":
        flat_value = parse_points_value(campaign.reward_value)
        if flat_value is not None:
            return flat_value
    return base_points(amount, divisor=divisor)
