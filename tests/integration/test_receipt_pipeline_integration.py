from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy import func, select

from drc_loyalty.db.models.campaigns import Campaign
from drc_loyalty.db.models.receipt_submissions import ReceiptSubmission
from drc_loyalty.db.models.receipts import Receipt
from drc_loyalty.db.models.users import User
from drc_loyalty.db.session import SessionLocal
from drc_loyalty.economy.points.constants import LEDGER_ENTRY_RECEIPT_AWARD
from drc_loyalty.economy.receipts.errors import ErrorCode, ReceiptRejectedError
from drc_loyalty.economy.receipts.moderation import ReceiptModerationService
from drc_loyalty.economy.receipts.service import ReceiptService
from drc_loyalty.economy.receipts.types import ReceiptStatus

from tests.integration.loyalty_fixtures import (
    UTC,
    count_ledger_entries,
    create_campaign,
    create_supermarket,
    create_user,
    image_for,
    kin_marche_receipt,
)


async def _submit(*, user_id: int, image_seed: str, now_utc: datetime, **receipt_fields):
    return await ReceiptService.submit(
        user_id=user_id,
        extracted=kin_marche_receipt(now_utc=now_utc, **receipt_fields),
        image=image_for(image_seed),
        now_utc=now_utc,
    )


@pytest.mark.asyncio
async def test_back_to_school_awards_last_slot_then_reports_budget_exhausted() -> None:
    now_utc = datetime.now(UTC)
    user_id = await create_user(phone_suffix=1, now_utc=now_utc)
    supermarket_id = await create_supermarket(name="Kin Marché", now_utc=now_utc)
    campaign_id = await create_campaign(
        name="Back to School",
        supermarket_id=supermarket_id,
        now_utc=now_utc,
        reward_value="500",
        min_spend=15000,
        max_redemptions=5000,
        conversions=4999,
    )

    result = await _submit(user_id=user_id, image_seed="bts-1", now_utc=now_utc)

    assert result.success is True
    assert result.points == 500
    assert result.status == ReceiptStatus.VERIFIED
    assert result.campaign == "Back to School"

    with pytest.raises(ReceiptRejectedError) as exc_info:
        await _submit(user_id=user_id, image_seed="bts-2", now_utc=now_utc, amount="21000")
    assert exc_info.value.code == ErrorCode.CAMPAIGN_MAX_REACHED

    async with SessionLocal.begin() as session:
        campaign = await session.get(Campaign, campaign_id)
        user = await session.get(User, user_id)
        verified_receipts = await session.scalar(
            select(func.count(Receipt.id)).where(Receipt.status == "VERIFIED")
        )
        rejected_attempts = await session.scalar(
            select(func.count(ReceiptSubmission.id)).where(
                ReceiptSubmission.user_id == user_id,
                ReceiptSubmission.result == "CAMPAIGN_MAX_REACHED",
            )
        )
        assert campaign is not None
        assert user is not None
        assert campaign.conversions == 5000
        assert user.points_balance == 500
        assert user.points_expiring == 500
        assert user.points_expires_at is not None
        assert verified_receipts == 1
        assert rejected_attempts == 1


@pytest.mark.asyncio
async def test_same_image_is_never_awarded_twice() -> None:
    now_utc = datetime.now(UTC)
    user_id = await create_user(phone_suffix=2, now_utc=now_utc)
    supermarket_id = await create_supermarket(name="Kin Marché", now_utc=now_utc)
    await create_campaign(name="Everyday", supermarket_id=supermarket_id, now_utc=now_utc)

    await _submit(user_id=user_id, image_seed="same-image", now_utc=now_utc)
    with pytest.raises(ReceiptRejectedError) as exc_info:
        await _submit(user_id=user_id, image_seed="same-image", now_utc=now_utc, amount="30000")

    assert exc_info.value.code == ErrorCode.DUPLICATE_IMAGE
    assert await count_ledger_entries(user_id=user_id, entry_type=LEDGER_ENTRY_RECEIPT_AWARD) == 1


@pytest.mark.asyncio
async def test_reused_receipt_number_is_rejected() -> None:
    now_utc = datetime.now(UTC)
    user_id = await create_user(phone_suffix=3, now_utc=now_utc)
    supermarket_id = await create_supermarket(name="Kin Marché", now_utc=now_utc)
    await create_campaign(name="Everyday", supermarket_id=supermarket_id, now_utc=now_utc)

    await _submit(user_id=user_id, image_seed="number-1", now_utc=now_utc, receipt_number="KM-0042")
    with pytest.raises(ReceiptRejectedError) as exc_info:
        await _submit(
            user_id=user_id,
            image_seed="number-2",
            now_utc=now_utc,
            amount="25000",
            receipt_number="km 0042",
        )

    assert exc_info.value.code == ErrorCode.DUPLICATE_RECEIPT_NUMBER


@pytest.mark.asyncio
async def test_same_store_amount_and_date_is_flagged_similar() -> None:
    now_utc = datetime.now(UTC)
    first_user_id = await create_user(phone_suffix=4, now_utc=now_utc)
    second_user_id = await create_user(phone_suffix=5, now_utc=now_utc)
    supermarket_id = await create_supermarket(name="Kin Marché", now_utc=now_utc)
    await create_campaign(name="Everyday", supermarket_id=supermarket_id, now_utc=now_utc)

    await _submit(user_id=first_user_id, image_seed="similar-1", now_utc=now_utc)
    with pytest.raises(ReceiptRejectedError) as exc_info:
        await _submit(user_id=second_user_id, image_seed="similar-2", now_utc=now_utc)

    assert exc_info.value.code == ErrorCode.SIMILAR_RECEIPT_EXISTS


@pytest.mark.asyncio
async def test_unknown_store_is_not_a_partner() -> None:
    now_utc = datetime.now(UTC)
    user_id = await create_user(phone_suffix=6, now_utc=now_utc)
    await create_supermarket(name="City Market", now_utc=now_utc)

    with pytest.raises(ReceiptRejectedError) as exc_info:
        await _submit(user_id=user_id, image_seed="unknown-store", now_utc=now_utc)

    assert exc_info.value.code == ErrorCode.NOT_PARTNER_STORE


@pytest.mark.asyncio
async def test_pending_receipt_awards_nothing_until_approved() -> None:
    now_utc = datetime.now(UTC)
    user_id = await create_user(phone_suffix=7, now_utc=now_utc)
    supermarket_id = await create_supermarket(name="Kin Marché", now_utc=now_utc)
    campaign_id = await create_campaign(name="Everyday", supermarket_id=supermarket_id, now_utc=now_utc)

    pending = await _submit(user_id=user_id, image_seed="pending-1", now_utc=now_utc, confidence=0.79)

    assert pending.status == ReceiptStatus.PENDING
    assert pending.points == 0
    assert await count_ledger_entries(user_id=user_id, entry_type=LEDGER_ENTRY_RECEIPT_AWARD) == 0

    async with SessionLocal.begin() as session:
        moderation = await ReceiptModerationService.approve(
            session,
            receipt_id=pending.receipt_id,
            reviewer="ops-anna",
            now_utc=now_utc,
        )

    assert moderation.status == ReceiptStatus.VERIFIED
    assert moderation.points == 500

    async with SessionLocal.begin() as session:
        receipt = await session.get(Receipt, pending.receipt_id)
        campaign = await session.get(Campaign, campaign_id)
        user = await session.get(User, user_id)
        assert receipt is not None and campaign is not None and user is not None
        assert receipt.status == "VERIFIED"
        assert receipt.reviewed_by == "ops-anna"
        assert receipt.campaign_id == campaign_id
        assert campaign.conversions == 1
        assert user.points_balance == 500


@pytest.mark.asyncio
async def test_rejected_review_keeps_points_at_zero() -> None:
    now_utc = datetime.now(UTC)
    user_id = await create_user(phone_suffix=8, now_utc=now_utc)
    supermarket_id = await create_supermarket(name="Kin Marché", now_utc=now_utc)
    await create_campaign(name="Everyday", supermarket_id=supermarket_id, now_utc=now_utc)

    pending = await _submit(user_id=user_id, image_seed="pending-2", now_utc=now_utc, confidence=0.6)

    async with SessionLocal.begin() as session:
        moderation = await ReceiptModerationService.reject(
            session,
            receipt_id=pending.receipt_id,
            reviewer="ops-anna",
            reason="unreadable total",
            now_utc=now_utc,
        )

    assert moderation.status == ReceiptStatus.REJECTED
    assert moderation.points == 0
    async with SessionLocal.begin() as session:
        user = await session.get(User, user_id)
        assert user is not None
        assert user.points_balance == 0
