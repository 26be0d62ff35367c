from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from drc_loyalty.db.models.base import Base


class Campaign(Base):
    __tablename__ = "campaigns"
    __table_args__ = (
        CheckConstraint("status IN ('draft','active','ended')", name="ck_campaigns_status"),
        CheckConstraint(
            "target_audience IN ('all','vip','new','churn_risk')",
            name="ck_campaigns_target_audience",
        ),
        CheckConstraint(
            "reward_type IN ('points','voucher','giveaway')",
            name="ck_campaigns_reward_type",
        ),
        CheckConstraint("start_date <= end_date", name="ck_campaigns_date_range"),
        CheckConstraint("conversions >= 0", name="ck_campaigns_conversions_non_negative"),
        CheckConstraint(
            "max_redemptions IS NULL OR max_redemptions > 0",
            name="ck_campaigns_max_redemptions_positive",
        ),
        CheckConstraint(
            "max_redemptions IS NULL OR conversions <= max_redemptions",
            name="ck_campaigns_conversions_le_max",
        ),
        CheckConstraint("min_spend IS NULL OR min_spend >= 0", name="ck_campaigns_min_spend"),
        Index("idx_campaigns_status_dates", "status", "start_date", "end_date"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    brand: Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    mechanic: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    min_spend: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    max_redemptions: Mapped[int | None] = mapped_column(Integer, nullable=True)
    conversions: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    target_audience: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        server_default=text("'all'"),
    )
    reward_type: Mapped[str] = mapped_column(String(16), nullable=False)
    reward_value: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
