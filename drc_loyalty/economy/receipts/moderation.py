from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.core.config import get_settings
from drc_loyalty.db.models.notifications import Notification
from drc_loyalty.db.models.receipts import Receipt
from drc_loyalty.db.repo.notifications_repo import NotificationsRepo
from drc_loyalty.db.repo.receipts_repo import ReceiptsRepo
from drc_loyalty.db.repo.users_repo import UsersRepo
from drc_loyalty.economy.receipts.attempts import record_submission
from drc_loyalty.economy.receipts.campaign_selection import resolve_award
from drc_loyalty.economy.receipts.commit import award_receipt
from drc_loyalty.economy.receipts.constants import SUBMISSION_SOURCE_MODERATION
from drc_loyalty.economy.receipts.errors import (
    ReceiptAlreadyReviewedError,
    ReceiptNotFoundError,
    ReceiptRejectedError,
    ReceiptUserNotFoundError,
)
from drc_loyalty.economy.receipts.types import ModerationResult, ReceiptStatus
from drc_loyalty.economy.receipts.validation import validate_amount

logger = structlog.get_logger(__name__)


class ReceiptModerationService:
    @staticmethod
    async def _load_pending_for_update(session: AsyncSession, receipt_id: UUID) -> Receipt:
        receipt = await ReceiptsRepo.get_by_id_for_update(session, receipt_id)
        if receipt is None:
            raise ReceiptNotFoundError
        if receipt.status != ReceiptStatus.PENDING.value:
            raise ReceiptAlreadyReviewedError
        return receipt

    @staticmethod
    async def _mark_rejected(
        session: AsyncSession,
        *,
        receipt: Receipt,
        reviewer: str,
        reason: str,
        now_utc: datetime,
    ) -> ModerationResult:
        receipt.status = ReceiptStatus.REJECTED.value
        receipt.points_awarded = 0
        receipt.reject_reason = reason[:64]
        receipt.reviewed_by = reviewer
        receipt.reviewed_at = now_utc
        receipt.updated_at = now_utc
        await session.flush()

        await NotificationsRepo.create(
            session,
            notification=Notification(
                user_id=receipt.user_id,
                title="Receipt Rejected",
                message=(
                    f"Your receipt from {receipt.supermarket_name} was not approved. "
                    f"Reason: {receipt.reject_reason}."
                ),
                notification_type="system",
                kind="RECEIPT_REJECTED",
                created_at=now_utc,
            ),
        )
        await record_submission(
            session,
            user_id=receipt.user_id,
            image_sha256=receipt.image_sha256,
            result=ReceiptStatus.REJECTED.value,
            now_utc=now_utc,
            source=SUBMISSION_SOURCE_MODERATION,
            metadata={"receipt_id": str(receipt.id), "reviewer": reviewer, "reason": reason},
        )
        logger.info(
            "receipt_moderation_rejected",
            receipt_id=str(receipt.id),
            reviewer=reviewer,
            reason=receipt.reject_reason,
        )
        return ModerationResult(
            receipt_id=receipt.id,
            status=ReceiptStatus.REJECTED,
            points=0,
            code=receipt.reject_reason,
        )

    @staticmethod
    async def approve(
        session: AsyncSession,
        *,
        receipt_id: UUID,
        reviewer: str,
        now_utc: datetime,
        corrected_amount: Decimal | None = None,
    ) -> ModerationResult:
        """Re-runs campaign eligibility against the live campaign state.

        An ineligible receipt is moved to REJECTED with the rejection code as
        its reason instead of failing the moderation call.
        """
        receipt = await ReceiptModerationService._load_pending_for_update(session, receipt_id)
        if corrected_amount is not None:
            receipt.amount = validate_amount(
                corrected_amount,
                max_amount=get_settings().receipt_max_amount,
            )

        user = await UsersRepo.get_by_id_for_update(session, receipt.user_id)
        if user is None:
            raise ReceiptUserNotFoundError

        try:
            campaign, points = await resolve_award(
                session,
                user=user,
                supermarket_id=receipt.supermarket_id,
                amount=receipt.amount,
                receipt_date=receipt.receipt_date,
                now_utc=now_utc,
            )
        except ReceiptRejectedError as exc:
            return await ReceiptModerationService._mark_rejected(
                session,
                receipt=receipt,
                reviewer=reviewer,
                reason=exc.code.value,
                now_utc=now_utc,
            )

        await award_receipt(session, receipt=receipt, campaign=campaign, points=points, now_utc=now_utc)
        receipt.reviewed_by = reviewer
        receipt.reviewed_at = now_utc
        await session.flush()

        await record_submission(
            session,
            user_id=receipt.user_id,
            image_sha256=receipt.image_sha256,
            result=ReceiptStatus.VERIFIED.value,
            now_utc=now_utc,
            source=SUBMISSION_SOURCE_MODERATION,
            metadata={"receipt_id": str(receipt.id), "reviewer": reviewer},
        )
        logger.info(
            "receipt_moderation_approved",
            receipt_id=str(receipt.id),
            reviewer=reviewer,
            points=points,
            campaign_id=(campaign.id if campaign is not None else None),
        )
        return ModerationResult(
            receipt_id=receipt.id,
            status=ReceiptStatus.VERIFIED,
            points=points,
            campaign=(campaign.name if campaign is not None else None),
        )

    @staticmethod
    async def reject(
        session: AsyncSession,
        *,
        receipt_id: UUID,
        reviewer: str,
        reason: str,
        now_utc: datetime,
    ) -> ModerationResult:
        receipt = await ReceiptModerationService._load_pending_for_update(session, receipt_id)
        return await ReceiptModerationService._mark_rejected(
            session,
            receipt=receipt,
            reviewer=reviewer,
            reason=reason,
            now_utc=now_utc,
        )
