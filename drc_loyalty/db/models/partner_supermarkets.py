from __future__ import annotations

from uuid import UUID

from sqlalchemy import BigInteger, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from drc_loyalty.db.models.base import Base


class PartnerSupermarket(Base):
    __tablename__ = "partner_supermarkets"
    __table_args__ = (Index("idx_partner_supermarkets_supermarket", "supermarket_id"),)

    partner_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("partners.id", ondelete="CASCADE"),
        primary_key=True,
    )
    supermarket_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("supermarkets.id", ondelete="CASCADE"),
        primary_key=True,
    )
