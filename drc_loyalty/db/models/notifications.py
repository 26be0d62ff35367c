from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    BOOLEAN,
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from drc_loyalty.db.models.base import Base


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        CheckConstraint(
            "notification_type IN ('expiration','system','reward')",
            name="ck_notifications_type",
        ),
        Index("idx_notifications_user_created", "user_id", "created_at"),
        Index(
            "uq_notifications_expiration_warning",
            "user_id",
            "expires_for_date",
            unique=True,
            postgresql_where=text("kind = 'EXPIRATION_WARNING'"),
        ),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    notification_type: Mapped[str] = mapped_column(String(16), nullable=False)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    expires_for_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    read: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, server_default=text("false"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
