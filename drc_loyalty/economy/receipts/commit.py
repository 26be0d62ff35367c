from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.db.models.notifications import Notification
from drc_loyalty.db.models.receipt_items import ReceiptItem
from drc_loyalty.db.models.receipts import Receipt
from drc_loyalty.db.models.supermarkets import Supermarket
from drc_loyalty.db.repo.campaigns_repo import CampaignsRepo
from drc_loyalty.db.repo.notifications_repo import NotificationsRepo
from drc_loyalty.db.repo.receipts_repo import ReceiptsRepo
from drc_loyalty.economy.points.constants import LEDGER_ENTRY_RECEIPT_AWARD
from drc_loyalty.economy.points.service import PointsService
from drc_loyalty.economy.receipts.errors import ErrorCode, ReceiptRejectedError
from drc_loyalty.economy.receipts.types import (
    CampaignCandidate,
    ReceiptStatus,
    StoredImage,
    ValidatedReceipt,
)


async def insert_receipt(
    session: AsyncSession,
    *,
    user_id: int,
    validated: ValidatedReceipt,
    supermarket: Supermarket,
    image: StoredImage,
    status: ReceiptStatus,
    now_utc: datetime,
) -> Receipt:
    receipt = Receipt(
        id=uuid4(),
        user_id=user_id,
        supermarket_id=supermarket.id,
        supermarket_name=supermarket.name,
        merchant_name_raw=validated.merchant_name[:255],
        amount=validated.amount,
        currency=validated.currency,
        receipt_date=validated.receipt_date,
        receipt_number=validated.receipt_number,
        image_sha256=image.sha256,
        image_url=image.url,
        confidence_score=validated.confidence,
        status=status.value,
        points_awarded=0,
        campaign_id=None,
        created_at=now_utc,
        updated_at=now_utc,
    )
    items = [
        ReceiptItem(
            name=item.name,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total=item.total,
            category=item.category,
        )
        for item in validated.items
    ]
    try:
        return await ReceiptsRepo.create(session, receipt=receipt, items=items)
    except IntegrityError as exc:
        raise ReceiptRejectedError(ErrorCode.DUPLICATE_RECEIPT) from exc


async def award_receipt(
    session: AsyncSession,
    *,
    receipt: Receipt,
    campaign: CampaignCandidate | None,
    points: int,
    now_utc: datetime,
) -> int:
    """Moves a stored receipt to VERIFIED and books its award in the same transaction.

    Returns the user's balance after the credit. A campaign whose budget was
    exhausted concurrently aborts the whole transaction.
    """
    if campaign is not None:
        conversions = await CampaignsRepo.increment_conversions(
            session,
            campaign_id=campaign.id,
            now_utc=now_utc,
        )
        if conversions is None:
            raise ReceiptRejectedError(ErrorCode.CAMPAIGN_MAX_REACHED)

    receipt.status = ReceiptStatus.VERIFIED.value
    receipt.points_awarded = points
    receipt.campaign_id = campaign.id if campaign is not None else None
    receipt.updated_at = now_utc
    await session.flush()

    metadata: dict[str, object] = {"receipt_id": str(receipt.id)}
    if campaign is not None:
        metadata["campaign_id"] = campaign.id
    balance_after = await PointsService.credit(
        session,
        user_id=receipt.user_id,
        points=points,
        entry_type=LEDGER_ENTRY_RECEIPT_AWARD,
        source="RECEIPT",
        idempotency_key=f"receipt:award:{receipt.id}",
        now_utc=now_utc,
        spent=receipt.amount,
        receipt_at=now_utc,
        metadata=metadata,
    )

    message = f"You earned {points} points for your receipt at {receipt.supermarket_name}."
    if campaign is not None:
        message = f"{message} Campaign: {campaign.name}."
    await NotificationsRepo.create(
        session,
        notification=Notification(
            user_id=receipt.user_id,
            title="Points Earned",
            message=message,
            notification_type="reward",
            kind="RECEIPT_AWARD",
            created_at=now_utc,
        ),
    )
    return balance_after
