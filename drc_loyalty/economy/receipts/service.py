from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.core.config import get_settings
from drc_loyalty.db.models.notifications import Notification
from drc_loyalty.db.models.supermarkets import Supermarket
from drc_loyalty.db.models.users import User
from drc_loyalty.db.repo.notifications_repo import NotificationsRepo
from drc_loyalty.db.repo.supermarkets_repo import SupermarketsRepo
from drc_loyalty.db.repo.users_repo import UsersRepo
from drc_loyalty.db.session import SessionLocal
from drc_loyalty.economy.points.time import kinshasa_local_date
from drc_loyalty.economy.receipts.attempts import record_rejected_submission, record_submission
from drc_loyalty.economy.receipts.campaign_selection import resolve_award
from drc_loyalty.economy.receipts.commit import award_receipt, insert_receipt
from drc_loyalty.economy.receipts.errors import (
    ErrorCode,
    ReceiptRejectedError,
    ReceiptUserInactiveError,
    ReceiptUserNotFoundError,
)
from drc_loyalty.economy.receipts.fraud_guard import (
    enforce_submission_rate_limit,
    ensure_not_duplicate,
    ensure_not_similar,
)
from drc_loyalty.economy.receipts.matching import resolve_partner_store
from drc_loyalty.economy.receipts.routing import route_by_confidence
from drc_loyalty.economy.receipts.types import (
    ExtractedReceipt,
    ReceiptProcessResult,
    ReceiptRoute,
    ReceiptStatus,
    StoredImage,
)
from drc_loyalty.economy.receipts.validation import validate_extracted_receipt

logger = structlog.get_logger(__name__)


class ReceiptService:
    @staticmethod
    async def _load_active_user_for_update(session: AsyncSession, user_id: int) -> User:
        user = await UsersRepo.get_by_id_for_update(session, user_id)
        if user is None:
            raise ReceiptUserNotFoundError
        if user.status != "ACTIVE":
            raise ReceiptUserInactiveError
        return user

    @staticmethod
    async def _resolve_store(session: AsyncSession, merchant_name: str) -> Supermarket:
        supermarkets = await SupermarketsRepo.list_active(session)
        supermarket = resolve_partner_store(merchant_name, supermarkets)
        if supermarket is None:
            raise ReceiptRejectedError(ErrorCode.NOT_PARTNER_STORE)
        return supermarket

    @staticmethod
    async def process_receipt(
        session: AsyncSession,
        *,
        user_id: int,
        extracted: ExtractedReceipt,
        image: StoredImage,
        now_utc: datetime,
    ) -> ReceiptProcessResult:
        user = await ReceiptService._load_active_user_for_update(session, user_id)
        try:
            result = await ReceiptService._process_for_user(
                session,
                user=user,
                extracted=extracted,
                image=image,
                now_utc=now_utc,
            )
        except ReceiptRejectedError as exc:
            logger.info(
                "receipt_rejected",
                user_id=user_id,
                code=exc.code.value,
                error_class=exc.error_class.value,
            )
            raise

        logger.info(
            "receipt_processed",
            user_id=user_id,
            receipt_id=str(result.receipt_id),
            status=result.status.value,
            points=result.points,
            campaign_id=result.campaign_id,
        )
        return result

    @staticmethod
    async def submit(
        *,
        user_id: int,
        extracted: ExtractedReceipt,
        image: StoredImage,
        now_utc: datetime,
    ) -> ReceiptProcessResult:
        """Runs the pipeline in its own transaction; rejections are audited after it rolls back."""
        try:
            async with SessionLocal.begin() as session:
                return await ReceiptService.process_receipt(
                    session,
                    user_id=user_id,
                    extracted=extracted,
                    image=image,
                    now_utc=now_utc,
                )
        except ReceiptRejectedError as exc:
            await record_rejected_submission(
                user_id=user_id,
                image_sha256=image.sha256,
                result=exc.code.value,
                now_utc=now_utc,
                metadata={"merchant_name": (extracted.merchant_name or "")[:255]},
            )
            raise

    @staticmethod
    async def _process_for_user(
        session: AsyncSession,
        *,
        user: User,
        extracted: ExtractedReceipt,
        image: StoredImage,
        now_utc: datetime,
    ) -> ReceiptProcessResult:
        settings = get_settings()
        validated = validate_extracted_receipt(
            extracted,
            today=kinshasa_local_date(now_utc),
            max_amount=settings.receipt_max_amount,
            max_age_days=settings.receipt_max_age_days,
        )
        route = route_by_confidence(
            validated.confidence,
            auto_verify_threshold=settings.receipt_auto_verify_confidence,
            min_confidence=settings.receipt_min_confidence,
        )
        if route == ReceiptRoute.REJECT:
            raise ReceiptRejectedError(ErrorCode.LOW_CONFIDENCE)

        await ensure_not_duplicate(
            session,
            image_sha256=image.sha256,
            receipt_number=validated.receipt_number,
        )
        supermarket = await ReceiptService._resolve_store(session, validated.merchant_name)
        await ensure_not_similar(
            session,
            supermarket_id=supermarket.id,
            amount=validated.amount,
            receipt_date=validated.receipt_date,
        )
        await enforce_submission_rate_limit(session, user_id=user.id, now_utc=now_utc)

        if route == ReceiptRoute.REVIEW:
            receipt = await insert_receipt(
                session,
                user_id=user.id,
                validated=validated,
                supermarket=supermarket,
                image=image,
                status=ReceiptStatus.PENDING,
                now_utc=now_utc,
            )
            await record_submission(
                session,
                user_id=user.id,
                image_sha256=image.sha256,
                result=ReceiptStatus.PENDING.value,
                now_utc=now_utc,
            )
            await NotificationsRepo.create(
                session,
                notification=Notification(
                    user_id=user.id,
                    title="Receipt Under Review",
                    message=(
                        f"Your receipt from {supermarket.name} is being reviewed. "
                        "Points will be credited once it is approved."
                    ),
                    notification_type="system",
                    kind="RECEIPT_PENDING",
                    created_at=now_utc,
                ),
            )
            return ReceiptProcessResult(
                receipt_id=receipt.id,
                status=ReceiptStatus.PENDING,
                points=0,
            )

        campaign, points = await resolve_award(
            session,
            user=user,
            supermarket_id=supermarket.id,
            amount=validated.amount,
            receipt_date=validated.receipt_date,
            now_utc=now_utc,
        )
        receipt = await insert_receipt(
            session,
            user_id=user.id,
            validated=validated,
            supermarket=supermarket,
            image=image,
            status=ReceiptStatus.VERIFIED,
            now_utc=now_utc,
        )
        await award_receipt(
            session,
            receipt=receipt,
            campaign=campaign,
            points=points,
            now_utc=now_utc,
        )
        await record_submission(
            session,
            user_id=user.id,
            image_sha256=image.sha256,
            result=ReceiptStatus.VERIFIED.value,
            now_utc=now_utc,
            metadata={"receipt_id": str(receipt.id)},
        )
        return ReceiptProcessResult(
            receipt_id=receipt.id,
            status=ReceiptStatus.VERIFIED,
            points=points,
            campaign=(campaign.name if campaign is not None else None),
            campaign_id=(campaign.id if campaign is not None else None),
        )
