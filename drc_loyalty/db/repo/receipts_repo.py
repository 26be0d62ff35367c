from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.db.models.receipt_items import ReceiptItem
from drc_loyalty.db.models.receipt_submissions import ReceiptSubmission
from drc_loyalty.db.models.receipts import Receipt


class ReceiptsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, receipt_id: UUID) -> Receipt | None:
        return await session.get(Receipt, receipt_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, receipt_id: UUID) -> Receipt | None:
        stmt = select(Receipt).where(Receipt.id == receipt_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def exists_by_image_hash(session: AsyncSession, image_sha256: str) -> bool:
        stmt = select(exists().where(Receipt.image_sha256 == image_sha256))
        result = await session.execute(stmt)
        return bool(result.scalar_one())

    @staticmethod
    async def exists_by_receipt_number(session: AsyncSession, receipt_number: str) -> bool:
        stmt = select(exists().where(Receipt.receipt_number == receipt_number))
        result = await session.execute(stmt)
        return bool(result.scalar_one())

    @staticmethod
    async def exists_similar(
        session: AsyncSession,
        *,
        supermarket_id: UUID,
        amount: Decimal,
        receipt_date: date,
    ) -> bool:
        stmt = select(
            exists().where(
                Receipt.supermarket_id == supermarket_id,
                Receipt.amount == amount,
                Receipt.receipt_date == receipt_date,
                Receipt.status != "REJECTED",
            )
        )
        result = await session.execute(stmt)
        return bool(result.scalar_one())

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        receipt: Receipt,
        items: Sequence[ReceiptItem] = (),
    ) -> Receipt:
        session.add(receipt)
        await session.flush()
        for item in items:
            item.receipt_id = receipt.id
            session.add(item)
        if items:
            await session.flush()
        return receipt

    @staticmethod
    async def list_by_user(
        session: AsyncSession,
        *,
        user_id: int,
        limit: int = 50,
    ) -> list[Receipt]:
        stmt = (
            select(Receipt)
            .where(Receipt.user_id == user_id)
            .order_by(Receipt.created_at.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_pending(session: AsyncSession, *, limit: int = 50) -> list[Receipt]:
        stmt = (
            select(Receipt)
            .where(Receipt.status == "PENDING")
            .order_by(Receipt.created_at.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_recent(
        session: AsyncSession,
        *,
        status: str | None,
        limit: int,
        offset: int = 0,
    ) -> list[Receipt]:
        stmt = select(Receipt)
        if status is not None:
            stmt = stmt.where(Receipt.status == status)
        stmt = stmt.order_by(Receipt.created_at.desc(), Receipt.id.desc()).limit(limit).offset(offset)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_items_by_receipt_ids(
        session: AsyncSession,
        receipt_ids: Iterable[UUID],
    ) -> dict[UUID, list[ReceiptItem]]:
        ids = tuple(set(receipt_ids))
        if not ids:
            return {}
        stmt = (
            select(ReceiptItem)
            .where(ReceiptItem.receipt_id.in_(ids))
            .order_by(ReceiptItem.id.asc())
        )
        result = await session.execute(stmt)
        grouped: dict[UUID, list[ReceiptItem]] = {receipt_id: [] for receipt_id in ids}
        for item in result.scalars().all():
            grouped[item.receipt_id].append(item)
        return grouped

    @staticmethod
    async def create_submission(
        session: AsyncSession,
        *,
        submission: ReceiptSubmission,
    ) -> ReceiptSubmission:
        session.add(submission)
        await session.flush()
        return submission

    @staticmethod
    async def count_user_submissions(
        session: AsyncSession,
        *,
        user_id: int,
        since_utc: datetime,
    ) -> int:
        stmt = select(func.count(ReceiptSubmission.id)).where(
            ReceiptSubmission.user_id == user_id,
            ReceiptSubmission.source == "API",
            ReceiptSubmission.attempted_at >= since_utc,
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)
