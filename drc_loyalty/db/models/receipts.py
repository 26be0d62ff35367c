from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CHAR,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    text,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from drc_loyalty.db.models.base import Base


class Receipt(Base):
    __tablename__ = "receipts"
    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING','VERIFIED','REJECTED')",
            name="ck_receipts_status",
        ),
        CheckConstraint("amount > 0", name="ck_receipts_amount_positive"),
        CheckConstraint("points_awarded >= 0", name="ck_receipts_points_awarded_non_negative"),
        CheckConstraint(
            "confidence_score >= 0 AND confidence_score <= 1",
            name="ck_receipts_confidence_range",
        ),
        CheckConstraint(
            "status = 'VERIFIED' OR points_awarded = 0",
            name="ck_receipts_points_only_when_verified",
        ),
        Index("idx_receipts_user_created", "user_id", "created_at"),
        Index("idx_receipts_status_created", "status", "created_at"),
        Index("idx_receipts_similarity", "supermarket_id", "receipt_date", "amount"),
        Index("idx_receipts_campaign", "campaign_id"),
        Index(
            "uq_receipts_receipt_number",
            "receipt_number",
            unique=True,
            postgresql_where=text("receipt_number IS NOT NULL"),
        ),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    supermarket_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("supermarkets.id"),
        nullable=False,
    )
    supermarket_name: Mapped[str] = mapped_column(String(255), nullable=False)
    merchant_name_raw: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    receipt_date: Mapped[date] = mapped_column(Date, nullable=False)
    receipt_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    image_sha256: Mapped[str] = mapped_column(CHAR(64), unique=True, nullable=False)
    image_url: Mapped[str] = mapped_column(String(512), nullable=False)
    confidence_score: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    points_awarded: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    campaign_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("campaigns.id"),
        nullable=True,
    )
    reject_reason: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
