from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.db.models.receipt_submissions import ReceiptSubmission
from drc_loyalty.db.repo.receipts_repo import ReceiptsRepo
from drc_loyalty.db.session import SessionLocal
from drc_loyalty.economy.receipts.constants import SUBMISSION_SOURCE_API

logger = structlog.get_logger(__name__)


async def record_submission(
    session: AsyncSession,
    *,
    user_id: int,
    image_sha256: str,
    result: str,
    now_utc: datetime,
    source: str = SUBMISSION_SOURCE_API,
    metadata: dict[str, object] | None = None,
) -> None:
    await ReceiptsRepo.create_submission(
        session,
        submission=ReceiptSubmission(
            user_id=user_id,
            image_sha256=image_sha256,
            result=result,
            source=source,
            attempted_at=now_utc,
            metadata_=metadata or {},
        ),
    )


async def record_rejected_submission(
    *,
    user_id: int,
    image_sha256: str,
    result: str,
    now_utc: datetime,
    metadata: dict[str, object] | None = None,
) -> bool:
    """Audits a rejection in its own transaction; returns False if the write failed.

    The caller is already propagating the rejection, so a storage failure here
    is logged rather than raised over it.
    """
    try:
        async with SessionLocal.begin() as attempt_session:
            await record_submission(
                attempt_session,
                user_id=user_id,
                image_sha256=image_sha256,
                result=result,
                now_utc=now_utc,
                metadata=metadata,
            )
    except SQLAlchemyError:
        logger.exception("receipt_rejection_audit_failed", user_id=user_id, result=result)
        return False
    return True
