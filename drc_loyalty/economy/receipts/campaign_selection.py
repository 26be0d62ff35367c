from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.core.config import get_settings
from drc_loyalty.db.models.users import User
from drc_loyalty.db.repo.campaigns_repo import CampaignsRepo
from drc_loyalty.economy.points.segments import classify_segment
from drc_loyalty.economy.receipts.eligibility import candidate_from_model, select_campaign
from drc_loyalty.economy.receipts.errors import ErrorCode, ReceiptRejectedError
from drc_loyalty.economy.receipts.points import compute_award
from drc_loyalty.economy.receipts.types import CampaignCandidate


async def resolve_award(
    session: AsyncSession,
    *,
    user: User,
    supermarket_id: UUID,
    amount: Decimal,
    receipt_date: date,
    now_utc: datetime,
) -> tuple[CampaignCandidate | None, int]:
    """Locks the store's live campaigns and decides which one applies and its award.

    Candidate rows stay locked until the caller's transaction ends so the
    budget check and the conversion increment see the same state.
    """
    settings = get_settings()
    campaigns = await CampaignsRepo.list_candidates_for_update(
        session,
        supermarket_id=supermarket_id,
        receipt_date=receipt_date,
    )
    segment = classify_segment(
        total_spent=user.total_spent,
        joined_at=user.joined_at,
        last_receipt_at=user.last_receipt_at,
        now_utc=now_utc,
    )
    campaign = select_campaign(
        [candidate_from_model(item) for item in campaigns],
        amount=amount,
        segment=segment,
        require_campaign=settings.receipts_require_campaign,
    )
    points = compute_award(amount, campaign=campaign, divisor=settings.points_base_divisor)
    if points <= 0:
        raise ReceiptRejectedError(
            ErrorCode.BELOW_MINIMUM_SPEND,
            "The receipt amount is too low to earn points.",
        )
    return campaign, points
