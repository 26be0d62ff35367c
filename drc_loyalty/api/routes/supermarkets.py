from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel

from drc_loyalty.db.models.supermarkets import Supermarket
from drc_loyalty.db.repo.supermarkets_repo import SupermarketsRepo
from drc_loyalty.db.session import SessionLocal

router = APIRouter(prefix="/supermarkets", tags=["supermarkets"])


class SupermarketResponse(BaseModel):
    id: UUID
    name: str
    address: str
    active: bool
    logo_url: str | None = None
    business_hours: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    avg_basket: Decimal


def supermarket_as_response(supermarket: Supermarket) -> SupermarketResponse:
    return SupermarketResponse(
        id=supermarket.id,
        name=supermarket.name,
        address=supermarket.address,
        active=supermarket.active,
        logo_url=supermarket.logo_url,
        business_hours=supermarket.business_hours,
        latitude=supermarket.latitude,
        longitude=supermarket.longitude,
        avg_basket=supermarket.avg_basket,
    )


@router.get("", response_model=list[SupermarketResponse])
async def list_partner_supermarkets() -> list[SupermarketResponse]:
    async with SessionLocal.begin() as session:
        supermarkets = await SupermarketsRepo.list_active(session)
    return [supermarket_as_response(supermarket) for supermarket in supermarkets]
