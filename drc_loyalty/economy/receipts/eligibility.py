from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from drc_loyalty.db.models.campaigns import Campaign
from drc_loyalty.economy.points.segments import audience_includes
from drc_loyalty.economy.points.types import UserSegment
from drc_loyalty.economy.receipts.errors import ErrorCode, ReceiptRejectedError
from drc_loyalty.economy.receipts.types import CampaignCandidate


def candidate_from_model(campaign: Campaign) -> CampaignCandidate:
    return CampaignCandidate(
        id=campaign.id,
        name=campaign.name,
        target_audience=campaign.target_audience,
        min_spend=campaign.min_spend,
        max_redemptions=campaign.max_redemptions,
        conversions=campaign.conversions,
        reward_type=campaign.reward_type,
        reward_value=campaign.reward_value,
    )


def parse_points_value(reward_value: str) -> int | None:
    stripped = reward_value.strip()
    if not (stripped.isascii() and stripped.isdigit()):
        return None
    return int(stripped)


def has_budget(candidate: CampaignCandidate) -> bool:
    return candidate.max_redemptions is None or candidate.conversions < candidate.max_redemptions


def meets_min_spend(candidate: CampaignCandidate, amount: Decimal) -> bool:
    return candidate.min_spend is None or amount >= candidate.min_spend


def pick_campaign(candidates: Sequence[CampaignCandidate]) -> CampaignCandidate:
    """Highest points value when all candidates award comparable points, else newest."""
    points_values = [
        parse_points_value(c.reward_value) if c.reward_type == "points" else None
        for c in candidates
    ]
    if all(value is not None for value in points_values):
        return max(zip(points_values, candidates), key=lambda pair: (pair[0], pair[1].id))[1]
    return max(candidates, key=lambda c: c.id)


def select_campaign(
    candidates: Sequence[CampaignCandidate],
    *,
    amount: Decimal,
    segment: UserSegment,
    require_campaign: bool,
) -> CampaignCandidate | None:
    audience_matched = [c for c in candidates if audience_includes(c.target_audience, segment)]
    spend_matched = [c for c in audience_matched if meets_min_spend(c, amount)]
    eligible = [c for c in spend_matched if has_budget(c)]

    if eligible:
        return pick_campaign(eligible)
    if spend_matched:
        raise ReceiptRejectedError(ErrorCode.CAMPAIGN_MAX_REACHED)
    if audience_matched:
        raise ReceiptRejectedError(ErrorCode.BELOW_MINIMUM_SPEND)
    if require_campaign:
        raise ReceiptRejectedError(ErrorCode.NO_ACTIVE_CAMPAIGN)
    return None
