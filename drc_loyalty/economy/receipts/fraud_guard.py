from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.db.repo.receipts_repo import ReceiptsRepo
from drc_loyalty.economy.receipts.constants import (
    RECEIPT_RATE_LIMIT_MAX_SUBMISSIONS,
    RECEIPT_RATE_LIMIT_WINDOW,
)
from drc_loyalty.economy.receipts.errors import ErrorCode, ReceiptRejectedError


async def ensure_not_duplicate(
    session: AsyncSession,
    *,
    image_sha256: str,
    receipt_number: str | None,
) -> None:
    if await ReceiptsRepo.exists_by_image_hash(session, image_sha256):
        raise ReceiptRejectedError(ErrorCode.DUPLICATE_IMAGE)
    if receipt_number is not None and await ReceiptsRepo.exists_by_receipt_number(
        session, receipt_number
    ):
        raise ReceiptRejectedError(ErrorCode.DUPLICATE_RECEIPT_NUMBER)


async def ensure_not_similar(
    session: AsyncSession,
    *,
    supermarket_id: UUID,
    amount: Decimal,
    receipt_date: date,
) -> None:
    if await ReceiptsRepo.exists_similar(
        session,
        supermarket_id=supermarket_id,
        amount=amount,
        receipt_date=receipt_date,
    ):
        raise ReceiptRejectedError(ErrorCode.SIMILAR_RECEIPT_EXISTS)


async def enforce_submission_rate_limit(
    session: AsyncSession,
    *,
    user_id: int,
    now_utc: datetime,
) -> None:
    submissions = await ReceiptsRepo.count_user_submissions(
        session,
        user_id=user_id,
        since_utc=now_utc - RECEIPT_RATE_LIMIT_WINDOW,
    )
    if submissions >= RECEIPT_RATE_LIMIT_MAX_SUBMISSIONS:
        raise ReceiptRejectedError(ErrorCode.RATE_LIMIT_EXCEEDED)
