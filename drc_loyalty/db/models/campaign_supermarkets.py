from __future__ import annotations

from uuid import UUID

from sqlalchemy import BigInteger, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from drc_loyalty.db.models.base import Base


class CampaignSupermarket(Base):
    __tablename__ = "campaign_supermarkets"
    __table_args__ = (Index("idx_campaign_supermarkets_supermarket", "supermarket_id"),)

    campaign_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        primary_key=True,
    )
    supermarket_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("supermarkets.id", ondelete="CASCADE"),
        primary_key=True,
    )
